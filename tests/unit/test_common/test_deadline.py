import time

from session_gateway.common.deadline import Deadline


def test_unbounded_deadline_has_no_remaining_time():
    assert Deadline().remaining() is None
    assert Deadline.after(None).remaining() is None
    assert Deadline.after(0).remaining() is None


def test_deadline_counts_down():
    deadline = Deadline.after(30)
    remaining = deadline.remaining()

    assert remaining is not None
    assert 0 < remaining <= 30


def test_past_deadline_is_clamped_to_zero():
    deadline = Deadline(expires_at=time.monotonic() - 5)

    assert deadline.remaining() == 0.0
