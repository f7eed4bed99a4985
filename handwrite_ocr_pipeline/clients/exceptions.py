"""
Custom exception classes for per-file processing (extraction, file store).

This module defines domain-specific exceptions that provide clear error context
for backend calls and file operations, making error handling and debugging
easier in the orchestration layer. Every exception below is caught at the
per-file boundary and reduced to a failed ProcessingOutcome; none of them stops
the batch.

Exception Hierarchy:
- HandwriteProcessingError (base for all per-file errors)
  ├── UnsupportedFileTypeError
  ├── ExtractionError
  │   ├── TransportError
  │   └── MalformedResponseError
  ├── EmptyContentError
  └── PersistenceError
      └── SourceMoveError

Configuration problems are reported with ConfigError from
handwrite_ocr_pipeline.domain.config and abort the run before any file is queued.
"""


class HandwriteProcessingError(Exception):
    """Base exception for all per-file processing errors.

    All pipeline-specific exceptions inherit from this class, allowing for
    broad exception catching when needed while maintaining specific error types
    for precise error handling.
    """

    def __init__(self, message: str, original_exception: Exception | None = None):
        """Initialize the exception.

        Args:
            message: Human-readable error message describing what went wrong.
            original_exception: Optional original exception that caused this error.
        """
        super().__init__(message)
        self.message = message
        self.original_exception = original_exception

    def __str__(self) -> str:
        """Return string representation with context."""
        if self.original_exception:
            orig_type = type(self.original_exception).__name__
            orig_msg = str(self.original_exception)
            return f"{self.message} (Original: {orig_type}: {orig_msg})"
        return self.message


class UnsupportedFileTypeError(HandwriteProcessingError):
    """Exception raised when a file's extension is not in the allow-list.

    Raised before the file is read, so no backend call is attempted.
    """

    def __init__(self, extension: str):
        """Initialize the exception.

        Args:
            extension: The rejected file extension (without the dot).
        """
        super().__init__(f"Unsupported file type: {extension or '(none)'}")
        self.extension = extension


class ExtractionError(HandwriteProcessingError):
    """Base exception for structured extraction failures.

    Raised by the extraction client when the backend call fails or its reply
    cannot be turned into a StructuredExtractionResult.
    """

    pass


class TransportError(ExtractionError):
    """Exception raised when the vision backend call itself fails.

    This covers network errors, rate limits, authentication failures and server
    errors surfaced by the backend SDK.
    """

    pass


class MalformedResponseError(ExtractionError):
    """Exception raised when the backend reply cannot be parsed.

    Raised when the reply has no text, contains no locatable JSON object, or
    the JSON fails to decode.
    """

    pass


class EmptyContentError(HandwriteProcessingError):
    """Exception raised when the reply decoded but the transcription is blank."""

    def __init__(self, message: str = "No text extracted from file"):
        super().__init__(message)


class PersistenceError(HandwriteProcessingError):
    """Exception raised for file store failures.

    This exception is raised when reading a source file, creating a folder,
    writing a note, or moving a source file fails. Destination collisions
    during a move are resolved by renaming and do not raise.
    """

    pass


class SourceMoveError(PersistenceError):
    """Exception raised when the source file cannot be moved after its note
    was written.

    The note is left in place; note_path records where it was written.
    """

    def __init__(
        self, message: str, note_path: str, original_exception: Exception | None = None
    ):
        """Initialize the exception.

        Args:
            message: Human-readable error message describing what went wrong.
            note_path: Vault path of the note that was already written.
            original_exception: Optional original exception that caused this error.
        """
        super().__init__(message, original_exception)
        self.note_path = note_path
