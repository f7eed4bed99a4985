"""
NoteAssembler turns one StructuredExtractionResult into a note in the vault.

For a single source file it:
1. Renders the output filename from the filename template
2. Ensures the output folder exists
3. Resolves where the source file will live once processing finishes (the
   processed folder when moving is enabled) and builds the backlink to it
4. Merges extracted tags into the configured default tags
5. Renders the note content and creates or overwrites the note
6. Moves the source file into the processed folder, if enabled
7. Opens the created note, if enabled (best-effort)

The backlink and path fields always reference the source's final location, so
the link in the note is not stale after the move in step 6.

Example usage:
    >>> assembler = NoteAssembler(store, LinkFormatter(), templates, output, model)
    >>> note_path = assembler.assemble("Scans/page 1.png", result)
    >>> note_path
    'Handwritten Notes/page 1.md'
"""

from collections.abc import Callable
from datetime import datetime, timezone
import logging
import posixpath
import re
from typing import Any

from handwrite_ocr_pipeline.clients.exceptions import (
    PersistenceError,
    SourceMoveError,
)
from handwrite_ocr_pipeline.clients.file_store import (
    FileStore,
    LinkFormatter,
    join_path,
    normalize_path,
)
from handwrite_ocr_pipeline.domain.config import OutputConfig, TemplateConfig
from handwrite_ocr_pipeline.domain.models import (
    NotePlan,
    NoteRenderContext,
    StructuredExtractionResult,
)
from handwrite_ocr_pipeline.domain.template_renderer import (
    TemplateRenderer,
    iso_timestamp,
    split_filename,
)

_INVALID_FILENAME_CHARS = re.compile(r'[<>:"|?*\x00-\x1f/\\]')


def merge_tags(default_tags: list[str], extracted_tags: Any) -> list[str]:
    """Merge extracted tags into the default tag list.

    A bare string counts as a single tag; non-string and blank entries are
    ignored. Defaults come first, followed by new extracted tags in source
    order. Matching is exact and case-sensitive.

    Args:
        default_tags: Statically configured tags.
        extracted_tags: Tags returned by the backend (list, string, or None).

    Returns:
        De-duplicated tag list.

    Example:
        >>> merge_tags(["a", "b"], ["b", "c"])
        ['a', 'b', 'c']
    """
    if isinstance(extracted_tags, str):
        candidates = [extracted_tags]
    elif isinstance(extracted_tags, list):
        candidates = extracted_tags
    else:
        candidates = []

    merged: list[str] = []
    for tag in [*default_tags, *candidates]:
        if isinstance(tag, str) and tag.strip() and tag not in merged:
            merged.append(tag)
    return merged


def sanitize_filename(filename: str) -> str:
    """Replace characters that are invalid in file names with underscores.

    Returns:
        Sanitized filename, or "unnamed" if nothing usable remains.
    """
    sanitized = _INVALID_FILENAME_CHARS.sub("_", filename).strip(" .")
    return sanitized if sanitized else "unnamed"


def collision_free_name(filename: str, now: datetime) -> str:
    """Append a filesystem-safe timestamp to a filename before its extension.

    Example:
        "page.png" -> "page_2024-05-01T10-20-30-123Z.png"
    """
    stem, extension = split_filename(filename)
    timestamp = re.sub(r"[:.]", "-", iso_timestamp(now))
    return f"{stem}_{timestamp}{extension}"


class NoteAssembler:
    """Builds and writes the note for a single processed source file.

    Attributes:
        file_store: Vault file operations.
        link_formatter: Backlink formatter.
        templates: Note and filename templates plus static custom variables.
        output: Output folder, tag, move and auto-open policies.
        model_id: Model identifier exposed to templates as {{modelUsed}}.
        clock: Returns the processing time; injectable for reproducible output.
    """

    def __init__(
        self,
        file_store: FileStore,
        link_formatter: LinkFormatter,
        templates: TemplateConfig,
        output: OutputConfig,
        model_id: str,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.file_store = file_store
        self.link_formatter = link_formatter
        self.templates = templates
        self.output = output
        self.model_id = model_id
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.logger = logging.getLogger(__name__)

    def variable_bag(
        self, result: StructuredExtractionResult, tags: list[str]
    ) -> dict[str, Any]:
        """Static custom variables overlaid with extracted ones and merged tags.

        An empty merged tag list leaves a static "tags" custom variable in
        place, so configured tags still reach the note.
        """
        variables: dict[str, Any] = dict(self.templates.custom_variables)
        variables.update(result.extracted_variables)
        if tags or "tags" not in self.templates.custom_variables:
            variables["tags"] = tags
        else:
            variables["tags"] = self.templates.custom_variables["tags"]
        return variables

    def processed_destination(self, source_path: str, now: datetime) -> str:
        """Vault path the source file will be moved to.

        Never points at an existing file: on a collision the name gets a
        timestamp suffix.
        """
        folder = normalize_path(self.output.processed_folder)
        name = posixpath.basename(source_path)
        destination = join_path(folder, name)
        if self.file_store.exists(destination):
            destination = join_path(folder, collision_free_name(name, now))
        return destination

    def plan(
        self,
        source_path: str,
        result: StructuredExtractionResult,
        tags: list[str],
        now: datetime,
    ) -> NotePlan:
        """Resolve output path, final source path and backlink (steps 1-3)."""
        filename = TemplateRenderer.render_filename(
            self.templates.filename_template,
            posixpath.basename(source_path),
            self.variable_bag(result, tags),
            now,
        )
        output_folder = normalize_path(self.output.output_folder)
        output_path = join_path(output_folder, sanitize_filename(filename))

        self.file_store.ensure_folder(output_folder)

        if self.output.move_after_processing:
            final_source_path = self.processed_destination(source_path, now)
        else:
            final_source_path = normalize_path(source_path)

        return NotePlan(
            output_path=output_path,
            source_path=final_source_path,
            markdown_link=self.link_formatter.format(final_source_path, output_path),
        )

    def build_render_context(
        self,
        source_path: str,
        plan: NotePlan,
        result: StructuredExtractionResult,
        tags: list[str],
        now: datetime,
    ) -> NoteRenderContext:
        stem, _ = split_filename(posixpath.basename(source_path))
        return NoteRenderContext(
            content=result.content,
            tags=tags,
            filename=stem,
            absolute_file_path=self.file_store.absolute_path(plan.source_path),
            relative_file_path=plan.source_path,
            markdown_link=plan.markdown_link,
            date_processed=iso_timestamp(now),
            page_count=1,
            model_used=self.model_id,
            custom_variables=self.variable_bag(result, tags),
        )

    def render(
        self, source_path: str, result: StructuredExtractionResult
    ) -> tuple[NotePlan, str]:
        """Plan the note and render its content without writing anything but
        the output folder.

        Tags are merged before the filename is rendered. The order has no
        effect on the filename because array tokens stay verbatim there.

        Returns:
            Tuple of (plan, rendered note content).
        """
        now = self.clock()
        tags = merge_tags(
            self.output.default_tags, result.extracted_variables.get("tags")
        )
        plan = self.plan(source_path, result, tags, now)
        context = self.build_render_context(source_path, plan, result, tags, now)
        content = TemplateRenderer.render_content(self.templates.note_template, context)
        return plan, content

    def write_note(self, path: str, content: str) -> None:
        """Create the note, or overwrite it if one already exists at path."""
        if self.file_store.exists(path):
            self.logger.debug(f"Overwriting existing note {path}")
            self.file_store.overwrite(path, content)
        else:
            self.file_store.create(path, content)

    def move_source(self, source_path: str, destination: str, note_path: str) -> str:
        """Move the source into the processed folder (step 6).

        If the planned destination was taken while the note was being written,
        a fresh timestamped name is used instead.

        Returns:
            Vault path the source was moved to.

        Raises:
            SourceMoveError: If the move fails. The note stays in place.
        """
        try:
            folder = posixpath.dirname(destination)
            self.file_store.ensure_folder(folder)
            if self.file_store.exists(destination):
                self.logger.warning(
                    f"{destination} appeared during processing; "
                    f"backlink in {note_path} will not match the moved file"
                )
                destination = self.processed_destination(source_path, self.clock())
            self.file_store.move(source_path, destination)
        except PersistenceError as e:
            raise SourceMoveError(
                f"Note created at {note_path}, but failed to move source file",
                note_path=note_path,
                original_exception=e,
            ) from e

        self.logger.debug(f"Moved {source_path} to {destination}")
        return destination

    def open_note(self, note_path: str) -> None:
        """Open the created note (step 7). Failures are logged, never raised."""
        try:
            self.file_store.open_file(note_path)
        except Exception as e:
            self.logger.warning(f"Could not open {note_path}: {e}")

    def assemble(self, source_path: str, result: StructuredExtractionResult) -> str:
        """Write the note for source_path and apply the move/open policies.

        Args:
            source_path: Vault path of the source file.
            result: Extraction result for the source file.

        Returns:
            Vault path of the written note.

        Raises:
            PersistenceError: If the folder or note cannot be written.
            SourceMoveError: If the note was written but the move failed.
        """
        plan, content = self.render(source_path, result)
        self.write_note(plan.output_path, content)

        if self.output.move_after_processing:
            self.move_source(source_path, plan.source_path, plan.output_path)

        if self.output.auto_open:
            self.open_note(plan.output_path)

        return plan.output_path
