"""Logging utilities for the Handwrite OCR Pipeline.

This module provides structured logging functions that integrate with Hydra's
logging system and support unicode/emoji for user-friendly terminal output.
"""

import logging
import os
import posixpath
import sys

from tabulate import tabulate

from handwrite_ocr_pipeline.domain.models import ProcessingOutcome

PACKAGE_LOGGER = "handwrite_ocr_pipeline"


def _supports_unicode() -> bool:
    """Detect if terminal supports unicode/emoji.

    Checks system encoding and environment variables to determine if the
    terminal can display unicode characters and emoji.

    Returns:
        True if terminal supports unicode, False otherwise
    """
    # Check for explicit ASCII-only mode
    if os.environ.get("FORCE_ASCII") == "1":
        return False

    encoding = getattr(sys.stdout, "encoding", None)
    if encoding is None:
        return False

    unicode_encodings = {"utf-8", "utf-16", "utf-32", "utf-8-sig"}
    return encoding.lower() in unicode_encodings


def _format_with_emoji(message: str, emoji: str, fallback: str) -> str:
    """Format message with emoji or fallback text.

    Args:
        message: The message text to format
        emoji: Unicode emoji character to prepend
        fallback: ASCII fallback text to use if unicode not supported

    Returns:
        Formatted message with emoji or fallback
    """
    if _supports_unicode():
        return f"{emoji} {message}"
    else:
        return f"{fallback} {message}"


def setup_logging(debug_mode: bool = False) -> logging.Logger:
    """Initialize logging configuration for the pipeline.

    Hydra configures handlers and formatting when @hydra.main() is used, so
    this function only adjusts the package logger level. Debug mode is a
    diagnostics side channel and does not change processing behavior.

    Args:
        debug_mode: Lower the package logger to DEBUG when True.

    Returns:
        Configured logger instance ready for use

    Example:
        >>> logger = setup_logging(debug_mode=True)
        >>> logger.debug("Prompt built")
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(logging.DEBUG if debug_mode else logging.INFO)

    return logging.getLogger(f"{PACKAGE_LOGGER}.main")


def log_startup(logger: logging.Logger, message: str) -> None:
    """Log pipeline startup message.

    Example:
        >>> log_startup(logger, "Starting Handwrite OCR Pipeline")
        # Output: "🚀 Starting Handwrite OCR Pipeline" or "[START] ..."
    """
    formatted_message = _format_with_emoji(message, "🚀", "[START]")
    logger.info(formatted_message)


def log_config_summary(
    logger: logging.Logger, file_count: int, model: str, workers: int
) -> None:
    """Log configuration summary with file count.

    Args:
        logger: Logger instance to use for logging
        file_count: Number of supported files discovered for processing
        model: Model identifier used for extraction
        workers: Configured concurrent worker count

    Example:
        >>> log_config_summary(logger, 5, "gemini-2.5-flash", 4)
        # Output: "📋 Discovered 5 files to process (model: gemini-2.5-flash,
        # workers: 4)"
    """
    message = f"Discovered {file_count} files to process (model: {model}, workers: {workers})"
    formatted_message = _format_with_emoji(message, "📋", "[CONFIG]")
    logger.info(formatted_message)


def log_skipped_path(logger: logging.Logger, path: str, reason: str) -> None:
    """Log an input path that was skipped during discovery.

    Example:
        >>> log_skipped_path(logger, "Scans/missing.png", "not found")
        # Output: "⏭️ Skipped \"Scans/missing.png\": not found"
    """
    message = f'Skipped "{path}": {reason}'
    formatted_message = _format_with_emoji(message, "⏭️", "[SKIP]")
    logger.info(formatted_message)


def log_file_result(
    logger: logging.Logger, path: str, outcome: ProcessingOutcome
) -> None:
    """Log the outcome of a single file as soon as it completes.

    Example:
        >>> log_file_result(logger, "Scans/a.png", ProcessingOutcome(True, "N/a.md"))
        # Output: "✓ a.png → N/a.md" or "[OK] a.png -> N/a.md"
    """
    name = posixpath.basename(path)
    if outcome.success:
        arrow = "→" if _supports_unicode() else "->"
        logger.info(_format_with_emoji(f"{name} {arrow} {outcome.file_path}", "✓", "[OK]"))
    else:
        logger.info(_format_with_emoji(f"{name}: {outcome.error}", "✗", "[FAIL]"))


def log_completion(logger: logging.Logger, successful: int, failed: int) -> None:
    """Log batch completion with success and failure counts.

    Example:
        >>> log_completion(logger, 3, 1)
        # Output: "✅ Processing complete: 3 successful, 1 failed"
    """
    message = f"Processing complete: {successful} successful, {failed} failed"
    formatted_message = _format_with_emoji(message, "✅", "[DONE]")
    logger.info(formatted_message)


def log_error(logger: logging.Logger, error: Exception, context: dict) -> None:
    """Log an error with structured context information.

    The full traceback is only emitted at DEBUG level.

    Args:
        logger: Logger instance to use for logging
        error: Exception that was raised
        context: Dictionary containing context information such as:
            - file: Vault path of the source file
            - step: Processing step where error occurred

    Example:
        >>> log_error(logger, ValueError("bad"), {"file": "a.png", "step": "Extraction"})
        # Output: "❌ Error processing \"a.png\"\\n   Step: Extraction\\n
        # Error: ValueError: bad"
    """
    file_path = context.get("file", "Unknown")
    step = context.get("step", "Unknown")
    error_type = type(error).__name__
    error_message = str(error)

    if _supports_unicode():
        header = f'❌ Error processing "{file_path}"'
    else:
        header = f'[ERROR] Error processing "{file_path}"'

    message = f"{header}\n   Step: {step}\n   Error: {error_type}: {error_message}"

    logger.error(message)
    if sys.exc_info()[0] is not None:
        logger.debug("Full traceback:", exc_info=True)


def log_summary_table(
    logger: logging.Logger, results: dict[str, ProcessingOutcome]
) -> None:
    """Log a per-file summary table of successfully created notes.

    Args:
        logger: Logger instance to use for logging
        results: Mapping of source path to ProcessingOutcome

    Example:
        >>> log_summary_table(logger, results)
        # Output: Formatted table with one row per created note
    """
    table_data = []
    for path, outcome in sorted(results.items()):
        if outcome.success:
            source = path if len(path) <= 40 else "..." + path[-37:]
            table_data.append([source, outcome.file_path])

    tablefmt = "grid" if _supports_unicode() else "simple"

    if table_data:
        table_str = tabulate(table_data, headers=["Source", "Note"], tablefmt=tablefmt)
        logger.info("")
        logger.info("Summary:")
        logger.info(table_str)
    else:
        logger.info("Summary: No notes created")

    failed_count = sum(1 for outcome in results.values() if not outcome.success)
    if failed_count > 0:
        logger.info("")
        logger.info(f"Failed files: {failed_count}")


def log_timing_summary(logger: logging.Logger, total_time: float) -> None:
    """Log total execution time in a human-readable format.

    Example:
        >>> log_timing_summary(logger, 195.5)
        # Output: "⏱️ Total time: 3m 15s" or "[TIME] Total time: 3m 15s"
    """
    minutes = int(total_time // 60)
    seconds = int(total_time % 60)

    time_str = f"{minutes}m {seconds}s" if minutes > 0 else f"{seconds}s"

    message = f"Total time: {time_str}"
    formatted_message = _format_with_emoji(message, "⏱️", "[TIME]")
    logger.info("")
    logger.info(formatted_message)


def get_error_suggestion(error_message: str) -> str:
    """Get actionable suggestion based on error message pattern.

    Args:
        error_message: Error message string to analyze

    Returns:
        Actionable suggestion string based on error pattern

    Example:
        >>> get_error_suggestion("Gemini API request failed (429): quota")
        'Wait 60 seconds and retry, or lower processing.concurrent_workers'
    """
    error_lower = error_message.lower()

    if (
        "rate limit" in error_lower
        or "429" in error_lower
        or "resource_exhausted" in error_lower
    ):
        return "Wait 60 seconds and retry, or lower processing.concurrent_workers"
    elif (
        "network" in error_lower
        or "connection" in error_lower
        or "timeout" in error_lower
    ):
        return "Check internet connection and retry"
    elif (
        "api key" in error_lower
        or "401" in error_lower
        or "403" in error_lower
        or "permission" in error_lower
    ):
        return "Check API key validity and permissions"
    elif "unsupported file type" in error_lower:
        return "Convert the file to PDF, PNG, JPG, WEBP or GIF"
    elif "no text extracted" in error_lower:
        return "Check that the image is legible and contains handwriting"
    elif "json" in error_lower or "no response" in error_lower:
        return "Retry the file; if it keeps failing, simplify the extraction prompt"
    elif "move" in error_lower:
        return "The note was created; move the source file manually"
    elif "failed to read" in error_lower or "not found" in error_lower:
        return "Verify the file exists inside the vault"
    else:
        return "Review error details and check logs for more information"


def log_error_summary(
    logger: logging.Logger, results: dict[str, ProcessingOutcome]
) -> None:
    """Log detailed error summary with suggestions for failed files.

    Args:
        logger: Logger instance to use for logging
        results: Mapping of source path to ProcessingOutcome

    Example:
        >>> log_error_summary(logger, results)
        # Output: Detailed error information with suggestions
    """
    failed = [
        (path, outcome) for path, outcome in sorted(results.items()) if not outcome.success
    ]

    if not failed:
        return

    failed_count = len(failed)
    if _supports_unicode():
        header = f"❌ Errors ({failed_count} files failed):"
    else:
        header = f"[ERRORS] Errors ({failed_count} files failed):"

    logger.info("")
    logger.info(header)
    logger.info("")

    arrow = "→" if _supports_unicode() else "->"
    for idx, (path, outcome) in enumerate(failed, start=1):
        error = outcome.error or "Unknown error"
        logger.info(f'{idx}. "{path}"')
        logger.info(f"   Error: {error}")
        logger.info(f"   {arrow} Suggestion: {get_error_suggestion(error)}")
        logger.info("")
