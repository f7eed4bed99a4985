"""Pipeline orchestration and workflow coordination"""

from handwrite_ocr_pipeline.orchestration.batch_processor import BatchProcessor
from handwrite_ocr_pipeline.orchestration.file_processor import FileProcessor
from handwrite_ocr_pipeline.orchestration.note_assembler import NoteAssembler
from handwrite_ocr_pipeline.orchestration.pipeline import Pipeline

__all__ = ["Pipeline", "BatchProcessor", "FileProcessor", "NoteAssembler"]
