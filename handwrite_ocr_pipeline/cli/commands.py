"""Command implementations for the Handwrite OCR Pipeline CLI.

This module contains the command functions that implement the dry-run and
processing workflows. These commands are called from the main entry point
after configuration validation and client initialization.
"""

import logging
import posixpath
from typing import Any

from tabulate import tabulate

from handwrite_ocr_pipeline.clients.exceptions import PersistenceError
from handwrite_ocr_pipeline.clients.file_store import FileStore
from handwrite_ocr_pipeline.domain.config import SUPPORTED_EXTENSIONS, AppConfig
from handwrite_ocr_pipeline.orchestration.file_processor import file_extension
from handwrite_ocr_pipeline.orchestration.pipeline import Pipeline, discover_files
from handwrite_ocr_pipeline.utils.logging import (
    _format_with_emoji,
    _supports_unicode,
    log_config_summary,
    log_error_summary,
    log_summary_table,
    log_timing_summary,
)


def _format_size(size: int) -> str:
    """Format a byte count for display (e.g. 2048 -> "2.0 KB")."""
    if size < 1024:
        return f"{size} B"
    elif size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    else:
        return f"{size / (1024 * 1024):.1f} MB"


def dry_run_command(
    cfg: AppConfig, logger: logging.Logger, file_store: FileStore
) -> int:
    """Execute dry-run mode to preview files without processing.

    Discovers the files the configured input paths resolve to and displays a
    preview table with each file's name, type and size. No backend call is
    made and nothing in the vault is written.

    Args:
        cfg: Application configuration object
        logger: Logger instance for logging messages
        file_store: Vault file store

    Returns:
        Exit code: 0 for success
    """
    logger.info("Dry-run mode enabled - previewing files without processing")
    files = discover_files(file_store, cfg.input.paths, logger)

    log_config_summary(
        logger, len(files), cfg.gemini.model, cfg.processing.concurrent_workers
    )

    if not files:
        logger.info("No files found to process")
        return 0

    table_data = []
    unsupported = 0
    for path in files:
        extension = file_extension(path)
        if extension not in SUPPORTED_EXTENSIONS:
            unsupported += 1
            file_type = f"{extension or '(none)'} (unsupported)"
        else:
            file_type = extension
        try:
            size = _format_size(file_store.size(path))
        except PersistenceError:
            size = "?"
        table_data.append([posixpath.basename(path), file_type, size])

    tablefmt = "grid" if _supports_unicode() else "simple"
    logger.info("Preview of files to be processed:")
    logger.info(
        tabulate(table_data, headers=["File", "Type", "Size"], tablefmt=tablefmt)
    )
    logger.info(f"Total files: {len(files)}")
    if unsupported:
        message = f"{unsupported} files have an unsupported type and would fail"
        logger.info(_format_with_emoji(message, "⚠️", "[WARN]"))

    return 0


def _determine_exit_code(summary: dict[str, Any]) -> int:
    """Determine the appropriate exit code based on processing summary.

    Args:
        summary: Dictionary containing processing summary with keys:
            - failed_files: Number of files that failed processing
            - successful_files: Number of files that succeeded
            - total_files: Total number of files processed

    Returns:
        Exit code: 0 for success, 1 for partial failure, 2 for complete failure
    """
    failed_files = summary.get("failed_files", 0)
    successful_files = summary.get("successful_files", 0)
    total_files = summary.get("total_files", 0)

    if not isinstance(failed_files, int):
        failed_files = 0
    if not isinstance(successful_files, int):
        successful_files = 0
    if not isinstance(total_files, int):
        total_files = 0

    if failed_files == 0:
        return 0  # Success
    elif successful_files > 0:
        return 1  # Partial failure
    elif total_files > 0:
        return 2  # Complete failure
    else:
        return 0  # No files is not an error


def process_command(
    cfg: AppConfig, logger: logging.Logger, pipeline: Pipeline
) -> int:
    """Execute the full processing workflow.

    Runs the pipeline and displays the summary: created notes, total time,
    and failed files with suggestions.

    Args:
        cfg: Application configuration object
        logger: Logger instance for logging messages
        pipeline: Fully wired pipeline

    Returns:
        Exit code: 0 for success, 1 for partial failure, 2 for complete failure
    """
    logger.info("Starting pipeline execution...")
    if cfg.output.move_after_processing:
        logger.info(
            f"Source files will be moved to: {cfg.output.processed_folder}"
        )

    summary = pipeline.run()

    results = summary.get("results", {})
    total_time = summary.get("total_time", 0.0)
    if not isinstance(results, dict):
        results = {}
    if not isinstance(total_time, (int, float)):
        total_time = 0.0

    log_summary_table(logger, results)
    log_timing_summary(logger, float(total_time))
    log_error_summary(logger, results)

    return _determine_exit_code(summary)
