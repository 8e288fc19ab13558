"""
HTTP middleware: response security headers and request logging.
"""

from .logging import LoggingMiddleware
from .security import SecurityHeaders

__all__ = [
    "LoggingMiddleware",
    "SecurityHeaders",
]
