"""
Configuration dataclasses for the Handwrite OCR Pipeline.

This module defines type-safe configuration schemas using Python dataclasses.
These schemas are registered with Hydra to enable validation and IDE autocomplete
support for configuration values. The composed Hydra config is converted into
these dataclasses once, at startup, by build_app_config().
"""

from dataclasses import dataclass, field
from typing import Any

from hydra.core.config_store import ConfigStore
from omegaconf import DictConfig, OmegaConf

from .models import VariableType


class ConfigError(Exception):
    """Configuration error for the Handwrite OCR Pipeline.

    Raised when configuration values are invalid or inconsistent, or when a
    required value (such as the API key) is missing at batch start. Using a
    dedicated exception type makes it easier to distinguish configuration
    problems from per-file processing failures.
    """


DEFAULT_PROMPT = """Extract the handwritten text from this image.
- Put the main text content in the "content" field, preserving ALL line breaks and formatting
- Use $ for LaTeX, not ```latex.
- Transcribe the text exactly as it appears, including newlines, spacing, and paragraph breaks.
- IMPORTANT: Preserve all line breaks and whitespace in the content field."""

DEFAULT_NOTE_TEMPLATE = """---
attachments:
  - {{markdownLink}}
dateCreated: {{dateProcessed}}
tags: {{tags}}
dateModified: {{dateProcessed}}
---

# Handwritten Note

{{content}}"""

SUPPORTED_EXTENSIONS = ("pdf", "png", "jpg", "jpeg", "webp", "gif")


@dataclass
class ExtractableVariableSpec:
    """A named field the vision backend is asked to locate in a document."""

    name: str
    """Variable name. Used as the JSON key in the backend reply and as the
    template token name (e.g. {{author}})."""

    type: str = "string"
    """Declared value type. Options: 'string', 'array', 'number'."""

    description: str = ""
    """Instruction sent to the backend describing what to look for."""

    def __post_init__(self) -> None:
        """Validate name and type."""
        if not self.name or not self.name.strip():
            raise ConfigError("Extractable variable name cannot be empty")
        if self.name == "content":
            raise ConfigError(
                "'content' is reserved for the transcribed text and cannot be "
                "used as an extractable variable name"
            )
        valid_types = [t.value for t in VariableType]
        if self.type not in valid_types:
            raise ConfigError(
                f"Extractable variable '{self.name}' has invalid type "
                f"'{self.type}'. Options: {', '.join(valid_types)}"
            )

    @property
    def variable_type(self) -> VariableType:
        return VariableType(self.type)


def _default_extractable_variables() -> list[ExtractableVariableSpec]:
    return [
        ExtractableVariableSpec(
            name="tags",
            type="array",
            description=(
                "Find any hashtags (words starting with #) and list them. "
                "If no hashtags are found, return an empty array."
            ),
        )
    ]


@dataclass
class GeminiConfig:
    """Configuration for the Gemini vision backend and the extraction prompt."""

    api_key: str = ""
    """Gemini API key. Obtain from https://aistudio.google.com/apikey. Checked
    once before a batch starts."""

    model: str = "gemini-2.5-flash-preview-05-20"
    """Model identifier passed to the generate call. Also exposed to note
    templates as {{modelUsed}}."""

    prompt: str = DEFAULT_PROMPT
    """Base extraction prompt. The variable list and JSON structure example
    are appended to it for every request."""

    extractable_variables: list[ExtractableVariableSpec] = field(
        default_factory=_default_extractable_variables
    )
    """Variables the backend is asked to extract alongside the content."""

    def __post_init__(self) -> None:
        """Validate model and variable name uniqueness."""
        if not self.model or not self.model.strip():
            raise ConfigError("gemini.model is required and cannot be empty")
        seen: set[str] = set()
        for spec in self.extractable_variables:
            if spec.name in seen:
                raise ConfigError(
                    f"Duplicate extractable variable name: '{spec.name}'. "
                    "Variable names must be unique."
                )
            seen.add(spec.name)


@dataclass
class RetryConfig:
    """Configuration for retry behavior with exponential backoff.

    Only transport errors raised by the vision backend are retried.
    """

    max_attempts: int = 3
    """Maximum number of attempts (including the first) before giving up."""

    initial_delay: int = 2
    """Initial delay in seconds before first retry."""

    backoff_multiplier: float = 2.0
    """Multiplier for exponential backoff. Delay doubles by default on each retry."""

    max_delay: int = 16
    """Maximum delay cap in seconds to prevent excessively long waits."""

    def __post_init__(self) -> None:
        """Validate retry configuration parameters."""
        if self.max_attempts <= 0:
            raise ConfigError("max_attempts must be greater than 0")
        if self.initial_delay <= 0:
            raise ConfigError("initial_delay must be greater than 0")
        if self.backoff_multiplier <= 0:
            raise ConfigError("backoff_multiplier must be greater than 0")
        if self.max_delay <= 0:
            raise ConfigError("max_delay must be greater than 0")
        if self.max_delay < self.initial_delay:
            raise ConfigError(
                "max_delay must be greater than or equal to initial_delay"
            )


@dataclass
class TemplateConfig:
    """Templates for generated note content and file names."""

    note_template: str = DEFAULT_NOTE_TEMPLATE
    """Note body template. Built-ins: {{content}}, {{tags}}, {{filename}},
    {{absoluteFilePath}}, {{relativeFilePath}}, {{markdownLink}},
    {{dateProcessed}}, {{pageCount}}, {{modelUsed}}, plus every custom or
    extracted variable as {{name}} or {{customVariables.name}}."""

    filename_template: str = "{{baseName}}.md"
    """Output file name template. Built-ins: {{baseName}}, {{extension}},
    {{originalFilename}}, {{dateProcessed}}, {{secondsBase36}}, plus every
    scalar custom or extracted variable."""

    custom_variables: dict[str, Any] = field(default_factory=dict)
    """Static fields available to templates. Extracted variables with the
    same name take precedence."""

    def __post_init__(self) -> None:
        """Validate that the filename template is not blank."""
        if not self.filename_template or not self.filename_template.strip():
            raise ConfigError("templates.filename_template cannot be empty")


@dataclass
class OutputConfig:
    """Where generated notes go and what happens to the source files."""

    output_folder: str = "Handwritten Notes"
    """Vault-relative folder that receives generated notes. Created if missing."""

    move_after_processing: bool = False
    """Whether to move each source file into processed_folder after its note
    has been written."""

    processed_folder: str = "Processed Handwritten Files"
    """Vault-relative folder that receives processed source files."""

    default_tags: list[str] = field(default_factory=list)
    """Tags added to every note. Extracted tags are appended after these."""

    auto_open: bool = False
    """Whether to open each created note with the system handler."""

    link_style: str = "wikilink"
    """Backlink format. Options: 'wikilink' ([[path|name]]), 'markdown'
    ([name](<path>))."""

    def __post_init__(self) -> None:
        """Validate folders and link style."""
        if not self.output_folder or not self.output_folder.strip():
            raise ConfigError("output.output_folder cannot be empty")
        if self.move_after_processing and not self.processed_folder.strip():
            raise ConfigError(
                "output.processed_folder is required when "
                "output.move_after_processing is enabled"
            )
        if self.link_style not in ("wikilink", "markdown"):
            raise ConfigError(
                f"Invalid link_style '{self.link_style}'. "
                "Options: 'wikilink', 'markdown'"
            )


@dataclass
class ProcessingConfig:
    """Configuration for batch processing behavior."""

    concurrent_workers: int = 4
    """Number of files processed concurrently (1-10). Clamped again to the
    number of files at batch start."""

    show_progress: bool = True
    """Whether to display a progress bar while the batch runs."""

    debug_mode: bool = False
    """Enable debug logging for the pipeline packages."""

    dry_run: bool = False
    """Preview mode. Lists the files that would be processed without calling
    the vision backend."""

    def __post_init__(self) -> None:
        """Validate worker count range."""
        if not 1 <= self.concurrent_workers <= 10:
            raise ConfigError(
                f"concurrent_workers must be between 1 and 10, "
                f"got {self.concurrent_workers}"
            )


@dataclass
class VaultConfig:
    """Location of the Markdown vault that all configured paths are relative to."""

    root: str = "."
    """Vault root directory. Relative values resolve against the directory the
    command was launched from."""


@dataclass
class InputConfig:
    """Files or folders to process."""

    paths: list[str] = field(default_factory=list)
    """Vault-relative file or folder paths. Folders are searched recursively
    for supported files."""


@dataclass
class AppConfig:
    """Top-level application configuration.

    Combines all configuration groups into a single type-safe configuration
    object.
    """

    gemini: GeminiConfig = field(default_factory=GeminiConfig)
    """Vision backend and prompt configuration."""

    templates: TemplateConfig = field(default_factory=TemplateConfig)
    """Note and filename templates."""

    output: OutputConfig = field(default_factory=OutputConfig)
    """Output folder, tag and move policies."""

    processing: ProcessingConfig = field(default_factory=ProcessingConfig)
    """Concurrency and display options."""

    retry: RetryConfig = field(default_factory=RetryConfig)
    """Retry configuration for backend transport errors."""

    vault: VaultConfig = field(default_factory=VaultConfig)
    """Vault location."""

    input: InputConfig = field(default_factory=InputConfig)
    """Files and folders to process."""


def build_app_config(cfg: DictConfig) -> AppConfig:
    """Convert a composed Hydra config into a validated AppConfig.

    Each group is instantiated explicitly so that __post_init__ validation
    runs for every dataclass, including the nested variable specs.

    Args:
        cfg: Hydra configuration object

    Returns:
        Validated AppConfig instance

    Raises:
        ConfigError: If any value fails validation.
    """
    raw: dict[str, Any] = OmegaConf.to_container(cfg, resolve=True)  # type: ignore[assignment]

    gemini_kw = dict(raw.get("gemini", {}))
    specs = [
        ExtractableVariableSpec(**spec)
        for spec in gemini_kw.pop("extractable_variables", [])
    ]

    return AppConfig(
        gemini=GeminiConfig(extractable_variables=specs, **gemini_kw),
        templates=TemplateConfig(**raw.get("templates", {})),
        output=OutputConfig(**raw.get("output", {})),
        processing=ProcessingConfig(**raw.get("processing", {})),
        retry=RetryConfig(**raw.get("retry", {})),
        vault=VaultConfig(**raw.get("vault", {})),
        input=InputConfig(**raw.get("input", {})),
    )


def validate_api_key(cfg: AppConfig) -> None:
    """Ensure an API key is configured before any file is queued.

    Raises:
        ConfigError: If the API key is missing or blank.
    """
    if not cfg.gemini.api_key or not cfg.gemini.api_key.strip():
        raise ConfigError(
            "Gemini API key is not set. Set gemini.api_key=<key> on the command "
            "line or export GEMINI_API_KEY."
        )


def register_configs() -> None:
    """Register structured configs with Hydra.

    This function must be called before Hydra initializes so that
    conf/config.yaml can extend the schema through its defaults list.
    """
    cs = ConfigStore.instance()
    cs.store(name="base_config", node=AppConfig)
