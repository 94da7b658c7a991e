"""Exception types raised by the extraction core.

Every failure surfaced to callers derives from :class:`ExtractionError`
and carries a human-readable message suitable for an API response.
"""


class ExtractionError(Exception):
    """Base error for document extraction failures."""


class UploadRejectedError(ExtractionError):
    """Raised when an upload fails validation before any processing."""


class UnsupportedMediaTypeError(ExtractionError):
    """Raised for media types that are neither images nor PDFs."""

    def __init__(self, media_type: str) -> None:
        super().__init__(f"Unsupported file type: {media_type or 'unknown'}")
        self.media_type = media_type


class BackendUnavailableError(ExtractionError):
    """Raised when a required third-party engine or library is not ready."""


class RecognitionError(ExtractionError):
    """Raised when decoding or text recognition fails outright."""


class ExtractionCancelledError(ExtractionError):
    """Raised when the caller cancels an extraction between stages."""
