"""
FileProcessor runs one source file through the complete pipeline.

This module provides the FileProcessor class which handles the end-to-end
processing of a single source file: checking its type → reading its bytes →
structured extraction → note assembly. It is the per-file error boundary: every
failure is converted to a failed ProcessingOutcome with a human-readable
message, so one bad file never stops its siblings.

Example usage:
    >>> processor = FileProcessor(store, extraction_client, assembler, gemini_cfg)
    >>> outcome = await processor.process_file("Scans/page 1.png")
    >>> outcome.success, outcome.file_path
    (True, 'Handwritten Notes/page 1.md')
"""

import logging
import posixpath

from handwrite_ocr_pipeline.clients.exceptions import (
    EmptyContentError,
    HandwriteProcessingError,
    SourceMoveError,
    UnsupportedFileTypeError,
)
from handwrite_ocr_pipeline.clients.extraction_client import StructuredExtractionClient
from handwrite_ocr_pipeline.clients.file_store import FileStore
from handwrite_ocr_pipeline.domain.config import SUPPORTED_EXTENSIONS, GeminiConfig
from handwrite_ocr_pipeline.domain.models import (
    ProcessingOutcome,
    StructuredExtractionResult,
)
from handwrite_ocr_pipeline.orchestration.note_assembler import NoteAssembler
from handwrite_ocr_pipeline.utils.logging import log_error

IMAGE_MIME_TYPES = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "webp": "image/webp",
    "gif": "image/gif",
}


def file_extension(path: str) -> str:
    """Lowercase extension of path without the dot, or "" if none."""
    name = posixpath.basename(path)
    _, dot, extension = name.rpartition(".")
    return extension.lower() if dot and extension else ""


def is_supported_file(path: str) -> bool:
    return file_extension(path) in SUPPORTED_EXTENSIONS


class FileProcessor:
    """Processes a single source file into a note.

    Attributes:
        file_store: Vault file operations.
        extraction_client: Structured extraction client.
        assembler: Note assembler for writing the result.
        gemini_config: Prompt and extractable variable configuration.
        logger: Logger instance for this processor.
    """

    def __init__(
        self,
        file_store: FileStore,
        extraction_client: StructuredExtractionClient,
        assembler: NoteAssembler,
        gemini_config: GeminiConfig,
    ) -> None:
        self.file_store = file_store
        self.extraction_client = extraction_client
        self.assembler = assembler
        self.gemini_config = gemini_config
        self.logger = logging.getLogger(__name__)

    async def extract(self, path: str) -> StructuredExtractionResult:
        """Check the type, read the file and run the extraction for it.

        Raises:
            UnsupportedFileTypeError: If the extension is not allowed. Raised
                before the file is read.
            PersistenceError: If the file cannot be read.
            ExtractionError: If the backend call or reply parsing fails.
            EmptyContentError: If no text was transcribed.
        """
        extension = file_extension(path)
        if extension not in SUPPORTED_EXTENSIONS:
            raise UnsupportedFileTypeError(extension)

        data = self.file_store.read_bytes(path)
        prompt = self.gemini_config.prompt
        specs = self.gemini_config.extractable_variables

        if extension == "pdf":
            result = await self.extraction_client.extract_from_pdf(data, prompt, specs)
        else:
            result = await self.extraction_client.extract_from_image(
                data, IMAGE_MIME_TYPES[extension], prompt, specs
            )

        if not result.content.strip():
            raise EmptyContentError()

        self.logger.debug(
            f"Extracted {len(result.content)} chars and "
            f"{len(result.extracted_variables)} variables from {path}"
        )
        return result

    async def process_file(self, path: str) -> ProcessingOutcome:
        """Process one file. Never raises for per-file failures.

        Args:
            path: Vault path of the source file.

        Returns:
            ProcessingOutcome with the note path on success, or the error
            message on failure.
        """
        step = "Extraction"
        try:
            result = await self.extract(path)
            step = "Note Assembly"
            note_path = self.assembler.assemble(path, result)
        except SourceMoveError as e:
            log_error(self.logger, e, {"file": path, "step": "Source Move"})
            return ProcessingOutcome(success=False, file_path=e.note_path, error=str(e))
        except HandwriteProcessingError as e:
            log_error(self.logger, e, {"file": path, "step": step})
            return ProcessingOutcome(success=False, error=str(e))
        except Exception as e:
            log_error(self.logger, e, {"file": path, "step": step})
            return ProcessingOutcome(
                success=False, error=f"Unexpected error: {type(e).__name__}: {e}"
            )

        return ProcessingOutcome(success=True, file_path=note_path)
