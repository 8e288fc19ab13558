"""
External API-related exceptions.
"""


class ExternalAPIError(Exception):
    """Base exception for external API errors."""
    pass


class DirectoryLookupError(ExternalAPIError):
    """Exception raised when a directory lookup fails."""
    pass


class DirectoryNotFoundError(DirectoryLookupError):
    """Exception raised when a directory record does not exist."""
    pass


class NotificationAPIError(ExternalAPIError):
    """Exception raised when the SMS gateway rejects or drops a message."""
    pass
