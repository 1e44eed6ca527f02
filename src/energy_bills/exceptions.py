"""Error taxonomy shared by the pipeline, the store and the HTTP layer."""

from __future__ import annotations


class BillsError(Exception):
    """Base exception for all energy-bill errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ClientError(BillsError):
    """The request itself is unacceptable (bad input, duplicate, wrong state)."""


class InvalidFileError(ClientError):
    """Raised when an upload is missing, is not a PDF, or is too large."""


class DuplicateBillError(ClientError):
    """Raised when a document with the same fingerprint was already stored."""


class BillNotReprocessableError(ClientError):
    """Raised when reprocessing is requested for a bill that is not eligible."""


class BillNotFoundError(BillsError):
    """Raised when a bill identifier does not exist."""


class ProcessingError(BillsError):
    """Failure after a bill record exists (extraction, transformation, file access)."""


class ExtractionError(ProcessingError):
    """Raised when the extraction gateway cannot produce valid bill fields."""


class SavedFileReadError(ProcessingError):
    """Raised when the stored PDF of a bill cannot be read back for reprocessing."""


class BillSupersededError(ClientError):
    """Raised when deleting a bill that a reprocessed record still points to."""
