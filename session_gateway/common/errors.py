"""
Error Definitions

Defines custom exception classes used in the application for unified error handling.
Every fatal error surfaces to the client as HTTP 500 with a JSON body of the form
{"error": "<message>"}.
"""

from typing import Any, Optional


class AppError(Exception):
    """
    Application Base Exception
    
    Base class for all custom exceptions, containing error message, type, and code.
    """
    
    def __init__(
        self,
        message: str,
        error_type: str = "app_error",
        code: str = "internal_error",
        details: Optional[dict[str, Any]] = None,
        status_code: int = 500,
    ):
        """
        Initialize exception
        
        Args:
            message: Error message
            error_type: Error type
            code: Error code
            details: Extra error details (logged, never returned to clients)
            status_code: HTTP status code
        """
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.code = code
        self.details = details or {}
        self.status_code = status_code
    
    def to_dict(self) -> dict[str, Any]:
        """
        Convert to dictionary format (for API response)
        
        Returns:
            dict: Error information dictionary
        """
        return {"error": self.message}

    def to_stream_dict(self) -> dict[str, Any]:
        """Error payload embedded in an SSE error frame"""
        return {
            "error": {
                "message": self.message,
                "type": self.error_type,
                "code": self.code,
            }
        }


class RequestParseError(AppError):
    """
    Request Parse Error
    
    Raised when the inbound request body is not valid JSON or has the wrong shape.
    """
    
    def __init__(
        self,
        message: str = "Invalid request body",
        code: str = "invalid_request",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            error_type="invalid_request_error",
            code=code,
            details=details,
        )


class MalformedRecordError(AppError):
    """
    Malformed Upstream Record
    
    Raised when a single NDJSON line cannot be decoded. Never fatal: the
    transcoder skips the line and keeps reading.
    """
    
    def __init__(self, message: str = "Malformed upstream record", details: Optional[dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_type="upstream_error",
            code="malformed_record",
            details=details,
        )


class UpstreamError(AppError):
    """
    Upstream Service Error
    
    Base class for failures talking to the upstream chat service.
    """
    
    def __init__(
        self,
        message: str = "Upstream service error",
        code: str = "upstream_error",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            error_type="upstream_error",
            code=code,
            details=details,
        )


class SessionCreateError(UpstreamError):
    """Session creation answered with a non-2xx status"""
    
    def __init__(self, upstream_status: int, details: Optional[dict[str, Any]] = None):
        super().__init__(
            message=f"Create Session Failed: {upstream_status}",
            code="session_create_failed",
            details=details,
        )
        self.upstream_status = upstream_status


class MissingSessionIdError(UpstreamError):
    """Session creation succeeded but the body carries no chat_session_id"""
    
    def __init__(self, message: str = "Upstream session response has no chat_session_id", details: Optional[dict[str, Any]] = None):
        super().__init__(message=message, code="missing_session_id", details=details)


class SendMessageError(UpstreamError):
    """Send-message answered with a non-2xx status"""
    
    def __init__(self, upstream_status: int, details: Optional[dict[str, Any]] = None):
        super().__init__(
            message=f"Send Message Failed: {upstream_status}",
            code="send_message_failed",
            details=details,
        )
        self.upstream_status = upstream_status


class StreamReadError(UpstreamError):
    """Reading the upstream response body failed"""
    
    def __init__(self, message: str = "Upstream stream read failed", details: Optional[dict[str, Any]] = None):
        super().__init__(message=message, code="stream_read_error", details=details)


class UpstreamConnectionError(UpstreamError):
    """The upstream could not be reached"""
    
    def __init__(self, message: str = "Upstream connection failed", details: Optional[dict[str, Any]] = None):
        super().__init__(message=message, code="upstream_connection_error", details=details)


class UpstreamTimeoutError(UpstreamError):
    """The request deadline or an HTTP timeout expired while waiting on the upstream"""
    
    def __init__(self, message: str = "Upstream request timed out", details: Optional[dict[str, Any]] = None):
        super().__init__(message=message, code="upstream_timeout", details=details)
