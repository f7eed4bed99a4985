"""
Domain models for the Handwrite OCR Pipeline.

This module defines the data structures that flow through the pipeline, from
the structured extraction result returned for a single file, through the
render contexts used by the template renderer, to the per-file processing
outcome and progress snapshots reported by the batch processor.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

Scalar = str | int | float
"""A single template value."""

ExtractedValue = str | int | float | list[Scalar]
"""A validated extracted variable value: a string, a number, or an ordered
sequence of strings/numbers."""


class VariableType(Enum):
    """Declared type of an extractable variable.

    Values:
        STRING: Free text value
        ARRAY: Ordered list of strings or numbers
        NUMBER: Integer or floating point value
    """

    STRING = "string"
    ARRAY = "array"
    NUMBER = "number"

    @property
    def placeholder(self) -> str:
        """JSON placeholder used in the prompt's structure example."""
        if self is VariableType.ARRAY:
            return "[]"
        if self is VariableType.NUMBER:
            return "0"
        return '""'


@dataclass(frozen=True)
class StructuredExtractionResult:
    """Represents what the vision backend returned for a single file.

    Produced once per input file by the extraction client and consumed once by
    note assembly. Missing keys in extracted_variables mean the backend did not
    return that variable; they are never an error.
    """

    content: str
    """Transcribed body text. Empty when the backend omitted it."""

    extracted_variables: dict[str, ExtractedValue] = field(default_factory=dict)
    """Validated variables keyed by their configured name. Never contains a key
    outside the configured ExtractableVariableSpec names."""


@dataclass
class FilenameContext:
    """Values available to the filename template. Built once per note."""

    base_name: str
    """Original filename with its trailing extension removed."""

    extension: str
    """Trailing extension including the dot, or empty string."""

    original_filename: str
    """Source filename as passed to the renderer."""

    date_processed: str
    """ISO 8601 processing timestamp (UTC, millisecond precision)."""

    seconds_base36: str
    """Seconds since local midnight in base 36. Disambiguates files processed
    within the same run."""

    variables: dict[str, Any] = field(default_factory=dict)
    """Custom and extracted variables flattened into the context."""

    def to_fields(self) -> dict[str, Any]:
        """Return the template lookup table. Passed variables override built-ins."""
        fields: dict[str, Any] = {
            "baseName": self.base_name,
            "extension": self.extension,
            "originalFilename": self.original_filename,
            "dateProcessed": self.date_processed,
            "secondsBase36": self.seconds_base36,
        }
        fields.update(self.variables)
        return fields


@dataclass
class NoteRenderContext:
    """Values available to the note template. Built once per note."""

    content: str
    """Transcribed text. Literal braces are escaped by the renderer."""

    tags: list[str]
    """Merged, de-duplicated tag list (default tags first)."""

    filename: str
    """Source file base name."""

    absolute_file_path: str
    """Absolute filesystem path of the source, at its post-move location when
    moving is enabled."""

    relative_file_path: str
    """Vault-relative path of the source, at its post-move location when moving
    is enabled."""

    markdown_link: str
    """Pre-formatted backlink from the note to the source file."""

    date_processed: str
    """ISO 8601 processing timestamp."""

    page_count: int
    """Number of pages in the source."""

    model_used: str
    """Model identifier used for extraction."""

    custom_variables: dict[str, Any] = field(default_factory=dict)
    """Static custom variables merged with extracted variables (extracted wins)."""

    def builtin_fields(self) -> dict[str, Any]:
        """Return the built-in template fields keyed by their token names."""
        return {
            "content": self.content,
            "tags": self.tags,
            "filename": self.filename,
            "absoluteFilePath": self.absolute_file_path,
            "relativeFilePath": self.relative_file_path,
            "markdownLink": self.markdown_link,
            "dateProcessed": self.date_processed,
            "pageCount": self.page_count,
            "modelUsed": self.model_used,
        }


@dataclass(frozen=True)
class ProcessingOutcome:
    """Represents the result of processing a single source file.

    The batch result map holds exactly one outcome per input file, keyed by
    the file's vault-relative path.
    """

    success: bool
    """True when the note was written (and the source moved, if enabled)."""

    file_path: str | None = None
    """Vault-relative path of the created note. Set on success, and on failure
    when the note was written but a later step failed."""

    error: str | None = None
    """Human-readable error message. None on success."""


@dataclass(frozen=True)
class BatchProgress:
    """Transient progress snapshot emitted on every batch state change."""

    current: int
    """Files completed plus files in flight."""

    total: int
    """Number of files in the batch."""

    current_file: str
    """Name of the file just picked up, or empty string when a file completed."""


@dataclass(frozen=True)
class NotePlan:
    """Resolved paths and link for a note before it is written."""

    output_path: str
    """Vault-relative path of the note to write."""

    source_path: str
    """Vault-relative path the source will have once the note is written
    (the processed-folder destination when moving is enabled)."""

    markdown_link: str
    """Backlink to source_path from the note."""
