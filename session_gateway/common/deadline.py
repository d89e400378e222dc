"""
Request Deadline

A deadline is created once per inbound request and threaded through every
upstream call so that the total latency of a completion stays bounded.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Deadline:
    """
    Absolute point in time (time.monotonic) after which upstream work is abandoned.

    ``expires_at=None`` means no deadline.
    """

    expires_at: Optional[float] = None

    @classmethod
    def after(cls, seconds: Optional[float]) -> "Deadline":
        """Deadline ``seconds`` from now; ``None`` or a non-positive value disables it."""
        if seconds is None or seconds <= 0:
            return cls()
        return cls(expires_at=time.monotonic() + seconds)

    def remaining(self) -> Optional[float]:
        """
        Seconds left, clamped at zero

        Returns None when there is no deadline, so the value can be passed
        straight to anyio.fail_after().
        """
        if self.expires_at is None:
            return None
        return max(0.0, self.expires_at - time.monotonic())
