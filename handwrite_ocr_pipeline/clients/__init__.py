"""External collaborators (Gemini, vault file store).

This module provides the vision backend abstraction and its Gemini
implementation, the structured extraction client built on top of it, the
local vault file store with its backlink formatter, and the custom exception
classes used for per-file error handling.
"""

from .exceptions import (
    EmptyContentError,
    ExtractionError,
    HandwriteProcessingError,
    MalformedResponseError,
    PersistenceError,
    SourceMoveError,
    TransportError,
    UnsupportedFileTypeError,
)
from .extraction_client import StructuredExtractionClient
from .file_store import FileStore, LinkFormatter, LocalFileStore
from .gemini_client import GeminiClient
from .vision_backend import VisionBackend

__all__ = [
    "VisionBackend",
    "GeminiClient",
    "StructuredExtractionClient",
    "FileStore",
    "LocalFileStore",
    "LinkFormatter",
    "HandwriteProcessingError",
    "UnsupportedFileTypeError",
    "ExtractionError",
    "TransportError",
    "MalformedResponseError",
    "EmptyContentError",
    "PersistenceError",
    "SourceMoveError",
]
