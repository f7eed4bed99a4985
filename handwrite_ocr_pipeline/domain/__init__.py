"""Domain models, configuration schemas and template rendering

This module provides the domain layer for the Handwrite OCR Pipeline,
including type-safe configuration schemas, domain models, and the template
renderer used for note content and file names.
"""

from .config import (
    AppConfig,
    ConfigError,
    ExtractableVariableSpec,
    GeminiConfig,
    InputConfig,
    OutputConfig,
    ProcessingConfig,
    RetryConfig,
    TemplateConfig,
    VaultConfig,
    build_app_config,
    register_configs,
    validate_api_key,
)
from .models import (
    BatchProgress,
    FilenameContext,
    NoteRenderContext,
    ProcessingOutcome,
    StructuredExtractionResult,
    VariableType,
)
from .template_renderer import TemplateRenderer

__all__ = [
    "ExtractableVariableSpec",
    "GeminiConfig",
    "RetryConfig",
    "TemplateConfig",
    "OutputConfig",
    "ProcessingConfig",
    "VaultConfig",
    "InputConfig",
    "AppConfig",
    "build_app_config",
    "register_configs",
    "validate_api_key",
    "ConfigError",
    "VariableType",
    "StructuredExtractionResult",
    "FilenameContext",
    "NoteRenderContext",
    "ProcessingOutcome",
    "BatchProgress",
    "TemplateRenderer",
]
