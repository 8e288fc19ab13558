"""
Clients for external collaborators.
"""

from .directory import DirectoryService
from .notification import NotificationService

__all__ = [
    "DirectoryService",
    "NotificationService",
]
