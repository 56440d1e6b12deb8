"""
Publish pipeline errors
Each error carries the HTTP status the router answers with
"""
from fastapi import status


class PublishError(Exception):
    """Base class for failures of a publish request"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PublishValidationError(PublishError):
    """Missing path, metadata, required file or required metadata key. Nothing was written."""
    status_code = status.HTTP_400_BAD_REQUEST


class PersistenceError(PublishError):
    """Database failure; the open transaction was rolled back."""


class CollaboratorError(PublishError):
    """Probe or upload failure on an asset the publish cannot do without."""


class StorageIOError(PublishError):
    """Copy or mkdir failure for a required static file."""
