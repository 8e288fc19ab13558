"""
API layer for the VEMS booking core.
"""

from .app import create_app
from .container import ServiceContainer
from .middleware import SecurityHeaders, LoggingMiddleware

__all__ = [
    "create_app",
    "ServiceContainer",
    "SecurityHeaders",
    "LoggingMiddleware",
]
