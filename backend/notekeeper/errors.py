"""Error taxonomy surfaced to API callers.

Storage failures never leak past the service layer: services translate
them into one of these kinds, and ``main`` renders them as JSON.
"""
from __future__ import annotations

from fastapi import status


class NoteKeeperError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(NoteKeeperError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class Forbidden(NoteKeeperError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class InvalidLink(NoteKeeperError):
    # one message for absent, used and dangling tokens alike
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Link is invalid or has already been used"

    def __init__(self):
        super().__init__(self.default_message)


class Conflict(NoteKeeperError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflicting update"


class InvalidOperation(NoteKeeperError):
    status_code = 422
    default_message = "Invalid operation"


class DocumentStoreError(Exception):
    """Raised by the document store on I/O or decoding failures."""
