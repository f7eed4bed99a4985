"""
Pipeline orchestrates a complete handwriting transcription run.

This module provides the Pipeline class which coordinates the run: discovering
supported files from the configured input paths, driving them through the
BatchProcessor with a progress bar, logging every result as it completes, and
aggregating outcomes for summary reporting. Individual file failures never stop
the run; they are recorded as failed outcomes.

Input paths are vault-relative. A folder is searched recursively for files with
a supported extension. A plain file is queued as given, even when its extension
is not supported, so that it is reported as a failure rather than silently
ignored. Missing paths are logged and skipped.

Example usage:
    >>> pipeline = Pipeline(
    ...     file_store=store,
    ...     batch_processor=batch,
    ...     processing_config=cfg.processing,
    ...     input_config=cfg.input,
    ...     model_id="gemini-2.5-flash-preview-05-20",
    ... )
    >>> summary = pipeline.run()
    >>> print(f"Processed {summary['total_files']} files, "
    ...       f"{summary['successful_files']} successful, "
    ...       f"{summary['failed_files']} failed")
"""

import asyncio
import logging
import time
from typing import Any

from handwrite_ocr_pipeline.clients.file_store import FileStore, normalize_path
from handwrite_ocr_pipeline.domain.config import (
    SUPPORTED_EXTENSIONS,
    InputConfig,
    ProcessingConfig,
)
from handwrite_ocr_pipeline.domain.models import ProcessingOutcome
from handwrite_ocr_pipeline.orchestration.batch_processor import BatchProcessor
from handwrite_ocr_pipeline.utils.logging import (
    log_completion,
    log_config_summary,
    log_file_result,
    log_skipped_path,
    log_startup,
)
from handwrite_ocr_pipeline.utils.progress import ProgressBar


def discover_files(
    file_store: FileStore, paths: list[str], logger: logging.Logger
) -> list[str]:
    """Resolve input paths into a list of source files.

    Args:
        file_store: Vault file operations.
        paths: Vault-relative files or folders.
        logger: Logger used to report skipped paths.

    Returns:
        Vault-relative file paths in input order, without duplicates.
    """
    discovered: list[str] = []
    for raw_path in paths:
        path = normalize_path(raw_path)

        if file_store.is_folder(path):
            files = file_store.list_files(path, SUPPORTED_EXTENSIONS)
            if not files:
                log_skipped_path(logger, raw_path, "no supported files")
            discovered.extend(files)
        elif file_store.exists(path):
            discovered.append(path)
        else:
            log_skipped_path(logger, raw_path, "not found")

    return list(dict.fromkeys(discovered))


class Pipeline:
    """Orchestrates discovery, batch processing and result aggregation.

    Attributes:
        file_store: Vault file operations used for discovery.
        batch_processor: Work queue that processes the discovered files.
        processing_config: Concurrency and progress display options.
        input_config: Configured input files and folders.
        model_id: Model identifier, logged in the configuration summary.
        logger: Logger instance for this pipeline.
    """

    def __init__(
        self,
        file_store: FileStore,
        batch_processor: BatchProcessor,
        processing_config: ProcessingConfig,
        input_config: InputConfig,
        model_id: str,
    ) -> None:
        self.file_store = file_store
        self.batch_processor = batch_processor
        self.processing_config = processing_config
        self.input_config = input_config
        self.model_id = model_id
        self.logger = logging.getLogger(__name__)

    def discover_files(self) -> list[str]:
        return discover_files(self.file_store, self.input_config.paths, self.logger)

    def _on_result(self, path: str, outcome: ProcessingOutcome) -> None:
        log_file_result(self.logger, path, outcome)

    async def _process(
        self, files: list[str], progress_bar: ProgressBar
    ) -> dict[str, ProcessingOutcome]:
        return await self.batch_processor.process_batch(
            files,
            self.processing_config.concurrent_workers,
            on_progress=progress_bar.on_progress,
            on_result=self._on_result,
        )

    def run(self) -> dict[str, Any]:
        """Execute the complete run.

        Returns:
            Dictionary containing aggregated summary with keys:
            - total_files: Number of files processed
            - successful_files: Count of files whose note was created
            - failed_files: Count of failed files
            - results: Mapping of source path to ProcessingOutcome
            - total_time: Total execution time in seconds

        Example:
            >>> summary = pipeline.run()
            >>> for path, outcome in summary["results"].items():
            ...     if not outcome.success:
            ...         print(f"Failed: {path}: {outcome.error}")
        """
        log_startup(self.logger, "Starting Handwrite OCR Pipeline")
        start_time = time.time()

        files = self.discover_files()
        log_config_summary(
            self.logger,
            len(files),
            self.model_id,
            self.processing_config.concurrent_workers,
        )

        results: dict[str, ProcessingOutcome] = {}
        if files:
            with ProgressBar(
                total=len(files),
                desc="Transcribing",
                unit="file",
                disable=not self.processing_config.show_progress,
            ) as progress_bar:
                results = asyncio.run(self._process(files, progress_bar))
        else:
            self.logger.info("No files found to process")

        successful = sum(1 for outcome in results.values() if outcome.success)
        failed = len(results) - successful
        log_completion(self.logger, successful, failed)

        return {
            "total_files": len(results),
            "successful_files": successful,
            "failed_files": failed,
            "results": results,
            "total_time": time.time() - start_time,
        }
