"""
Middleware Module
"""

from session_gateway.middleware.cors import PermissiveCORSMiddleware

__all__ = ["PermissiveCORSMiddleware"]
