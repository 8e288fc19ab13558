"""
Storage exceptions.
"""


class StorageError(Exception):
    """Persistence failure. The in-flight mutation was rolled back."""
    pass
