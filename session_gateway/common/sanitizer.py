"""
Data Sanitization Module

Masks bearer tokens so that upstream request logs never contain them in plain text.
"""

from typing import Any, Mapping


def sanitize_authorization(value: str) -> str:
    """
    Sanitize authorization field value
    
    Examples:
        >>> sanitize_authorization("Bearer sk-1234567890abcdef")
        'Bearer sk-1***...***ef'
        >>> sanitize_authorization("Bearer ")
        'Bearer <empty>'
    """
    if not value:
        return value
    
    prefix = ""
    token = value
    if value.lower().startswith("bearer "):
        prefix = "Bearer "
        token = value[7:].strip()
    
    if not token:
        return f"{prefix}<empty>"
    if len(token) <= 8:
        return f"{prefix}***"
    return f"{prefix}{token[:4]}***...***{token[-2:]}"


def sanitize_headers(headers: Mapping[str, Any]) -> dict[str, Any]:
    """Copy of the upstream header set with the Authorization value masked"""
    return {
        key: sanitize_authorization(value) if key.lower() == "authorization" else value
        for key, value in headers.items()
    }
