"""
Template rendering for generated note content and filenames.

This module provides the TemplateRenderer class which substitutes {{name}}
tokens in user-defined templates. Templates are parsed into a sequence of
literal and token nodes and evaluated against a lookup table; nothing produced
by a substitution is scanned again, so values can never introduce new tokens.

Token syntax:
- {{name}}, {{ name }}, {{.name}}: whitespace inside the braces and a single
  leading dot are ignored
- {{customVariables.name}}: explicit access to the custom/extracted variable bag
- Tokens that do not resolve are left verbatim in the output

Array values (tags and any array variable) render as a YAML block sequence in
note content. An empty array renders as [], so "tags: {{tags}}" becomes
"tags: []".

Example usage:
    >>> from handwrite_ocr_pipeline.domain.template_renderer import TemplateRenderer
    >>>
    >>> TemplateRenderer.render_filename("{{baseName}}.md", "meeting notes.png", {})
    'meeting notes.md'
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
import re
from typing import Any

from .models import FilenameContext, NoteRenderContext

CUSTOM_VARIABLES_PREFIX = "customVariables."

_TOKEN_NAME = re.compile(r"\s*\.?([A-Za-z_][\w.\-]*)\s*")
_KEY_SUFFIX = re.compile(r":[ \t]*$")
_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


@dataclass(frozen=True)
class Literal:
    """Text copied to the output unchanged."""

    text: str


@dataclass(frozen=True)
class Token:
    """A {{name}} placeholder. raw keeps the original text for unmatched tokens."""

    name: str
    raw: str


def parse_template(template: str) -> list[Literal | Token]:
    """Split a template into literal and token nodes.

    A "{{ ... }}" span whose inner text is not a valid name stays part of the
    surrounding literal text.

    Args:
        template: Template source text.

    Returns:
        Ordered list of Literal and Token nodes covering the whole template.
    """
    nodes: list[Literal | Token] = []
    literal_start = 0
    pos = 0

    while True:
        start = template.find("{{", pos)
        if start == -1:
            break
        end = template.find("}}", start + 2)
        if end == -1:
            break

        match = _TOKEN_NAME.fullmatch(template, start + 2, end)
        if match is None:
            pos = start + 1
            continue

        if start > literal_start:
            nodes.append(Literal(template[literal_start:start]))
        nodes.append(Token(name=match.group(1), raw=template[start : end + 2]))
        pos = literal_start = end + 2

    if literal_start < len(template):
        nodes.append(Literal(template[literal_start:]))

    return nodes


def escape_braces(text: str) -> str:
    """Backslash-escape literal {{ and }} so they cannot read as tokens."""
    return text.replace("{{", "\\{\\{").replace("}}", "\\}\\}")


def format_scalar(value: Any) -> str | None:
    """Format a string or number for substitution.

    Returns:
        The formatted value, or None when the value is not a scalar.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (str, int, float)):
        return str(value)
    return None


def format_yaml_sequence(items: list[Any]) -> str:
    """Format items as a YAML block sequence, one "  - item" line each."""
    return "\n".join(f"  - {format_scalar(item) or item}" for item in items)


def to_base36(number: int) -> str:
    """Encode a non-negative integer in lowercase base 36."""
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def iso_timestamp(now: datetime) -> str:
    """Format a datetime as UTC ISO 8601 with millisecond precision and Z suffix."""
    utc = now.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def seconds_since_midnight_base36(now: datetime) -> str:
    """Base-36 count of seconds elapsed since local midnight."""
    local = now.astimezone()
    midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    return to_base36(int((local - midnight).total_seconds()))


def split_filename(filename: str) -> tuple[str, str]:
    """Split a filename at its last dot.

    Returns:
        Tuple of (base_name, extension). The extension includes the dot and is
        empty when the name has no trailing extension.
    """
    dot = filename.rfind(".")
    if dot == -1 or dot == len(filename) - 1:
        return filename, ""
    return filename[:dot], filename[dot:]


class TemplateRenderer:
    """Stateless renderer for note content and filenames.

    All methods are pure: no I/O and no shared state. Built-in note fields take
    precedence over custom variables of the same bare name; the
    {{customVariables.name}} form always reaches the custom variable.
    """

    @staticmethod
    def render_content(template: str, context: NoteRenderContext) -> str:
        """Render a note body template.

        Args:
            template: Note template text.
            context: Render context for a single note.

        Returns:
            Rendered note text.
        """
        fields = context.builtin_fields()
        fields["content"] = escape_braces(context.content)
        custom = context.custom_variables

        custom_tags = custom.get("tags")
        if not context.tags and custom_tags:
            fields["tags"] = (
                custom_tags if isinstance(custom_tags, list) else [custom_tags]
            )

        def lookup(name: str) -> tuple[bool, Any]:
            if name.startswith(CUSTOM_VARIABLES_PREFIX):
                key = name[len(CUSTOM_VARIABLES_PREFIX) :]
                return key in custom, custom.get(key)
            if name in fields:
                return True, fields[name]
            return name in custom, custom.get(name)

        return TemplateRenderer._evaluate(parse_template(template), lookup, True)

    @staticmethod
    def build_filename_context(
        original_filename: str,
        variables: dict[str, Any],
        now: datetime | None = None,
    ) -> FilenameContext:
        """Build the filename context for a source file.

        Args:
            original_filename: Source filename, usually including its extension.
            variables: Custom and extracted variables to flatten in.
            now: Processing time. Defaults to the current time.

        Returns:
            FilenameContext for the file.
        """
        now = now or datetime.now(timezone.utc)
        base_name, extension = split_filename(original_filename)
        return FilenameContext(
            base_name=base_name,
            extension=extension,
            original_filename=original_filename,
            date_processed=iso_timestamp(now),
            seconds_base36=seconds_since_midnight_base36(now),
            variables=dict(variables),
        )

    @staticmethod
    def render_filename(
        template: str,
        original_filename: str,
        variables: dict[str, Any],
        now: datetime | None = None,
    ) -> str:
        """Render a filename template.

        Only scalar values are substituted; tokens naming arrays are left
        verbatim like any other unresolved token.

        Args:
            template: Filename template text.
            original_filename: Source filename.
            variables: Custom and extracted variables. They override the
                built-in filename fields when names collide.
            now: Processing time. Defaults to the current time.

        Returns:
            Rendered filename.
        """
        context = TemplateRenderer.build_filename_context(
            original_filename, variables, now
        )
        fields = context.to_fields()

        def lookup(name: str) -> tuple[bool, Any]:
            return name in fields, fields.get(name)

        return TemplateRenderer._evaluate(parse_template(template), lookup, False)

    @staticmethod
    def _evaluate(
        nodes: list[Literal | Token],
        lookup: Callable[[str], tuple[bool, Any]],
        expand_arrays: bool,
    ) -> str:
        parts: list[str] = []

        for node in nodes:
            if isinstance(node, Literal):
                parts.append(node.text)
                continue

            found, value = lookup(node.name)
            if not found:
                parts.append(node.raw)
                continue

            if isinstance(value, (list, tuple)):
                if not expand_arrays:
                    parts.append(node.raw)
                elif not value:
                    parts.append("[]")
                else:
                    # "key: {{list}}" becomes "key:" followed by the block
                    if parts and _KEY_SUFFIX.search(parts[-1]):
                        parts[-1] = parts[-1].rstrip(" \t")
                    parts.append("\n" + format_yaml_sequence(list(value)))
                continue

            formatted = format_scalar(value)
            parts.append(node.raw if formatted is None else formatted)

        return "".join(parts)
