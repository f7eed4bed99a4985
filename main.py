"""Main entry point for the Handwrite OCR Pipeline."""

import logging
import sys

import hydra
from hydra.utils import to_absolute_path
from omegaconf import DictConfig

from handwrite_ocr_pipeline.cli.commands import dry_run_command, process_command
from handwrite_ocr_pipeline.clients.exceptions import HandwriteProcessingError
from handwrite_ocr_pipeline.clients.extraction_client import StructuredExtractionClient
from handwrite_ocr_pipeline.clients.file_store import LinkFormatter, LocalFileStore
from handwrite_ocr_pipeline.clients.gemini_client import GeminiClient
from handwrite_ocr_pipeline.domain.config import (
    AppConfig,
    ConfigError,
    build_app_config,
    register_configs,
    validate_api_key,
)
from handwrite_ocr_pipeline.orchestration.batch_processor import BatchProcessor
from handwrite_ocr_pipeline.orchestration.file_processor import FileProcessor
from handwrite_ocr_pipeline.orchestration.note_assembler import NoteAssembler
from handwrite_ocr_pipeline.orchestration.pipeline import Pipeline
from handwrite_ocr_pipeline.utils.logging import setup_logging

# Register structured configs with Hydra before the decorator composes them
register_configs()


def initialize_file_store(cfg: AppConfig, logger: logging.Logger) -> LocalFileStore:
    """Open the vault configured in cfg.vault.

    Raises:
        ConfigError: If the vault root is not an existing directory.
    """
    root = to_absolute_path(cfg.vault.root)
    file_store = LocalFileStore(root)
    if not file_store.root.is_dir():
        raise ConfigError(f"Vault root does not exist or is not a folder: {root}")
    logger.info(f"Vault: {file_store.root}")
    return file_store


def initialize_pipeline(
    cfg: AppConfig, logger: logging.Logger, file_store: LocalFileStore
) -> Pipeline:
    """Wire the backend, extraction client, assembler and work queue.

    Args:
        cfg: Application configuration object
        logger: Logger instance
        file_store: Vault file store

    Returns:
        Pipeline ready to run
    """
    logger.info("Initializing Gemini client...")
    backend = GeminiClient(cfg.gemini, cfg.retry)
    extraction_client = StructuredExtractionClient(backend)

    assembler = NoteAssembler(
        file_store,
        LinkFormatter(cfg.output.link_style),
        cfg.templates,
        cfg.output,
        extraction_client.model_id,
    )
    file_processor = FileProcessor(
        file_store, extraction_client, assembler, cfg.gemini
    )

    return Pipeline(
        file_store=file_store,
        batch_processor=BatchProcessor(file_processor),
        processing_config=cfg.processing,
        input_config=cfg.input,
        model_id=extraction_client.model_id,
    )


@hydra.main(version_base=None, config_path="conf", config_name="config")
def main(cfg: DictConfig) -> int:
    """Main entry point for the pipeline.

    Args:
        cfg: Hydra configuration object

    Returns:
        Exit code: 0 for success, 1 for partial failure, 2 for complete failure,
        3 for configuration or fatal errors
    """
    logger = setup_logging(cfg.processing.debug_mode)

    try:
        app_cfg = build_app_config(cfg)
        file_store = initialize_file_store(app_cfg, logger)

        if app_cfg.processing.dry_run:
            return dry_run_command(app_cfg, logger, file_store)

        validate_api_key(app_cfg)
        pipeline = initialize_pipeline(app_cfg, logger, file_store)
        return process_command(app_cfg, logger, pipeline)

    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return 3
    except HandwriteProcessingError as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 3
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 3


if __name__ == "__main__":
    sys.exit(main())  # type: ignore[call-arg]
