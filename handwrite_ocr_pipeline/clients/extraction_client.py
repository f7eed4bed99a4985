"""
Structured extraction client.

This module turns a document plus a base prompt and a list of extractable
variable specs into a StructuredExtractionResult. It builds the extraction
prompt, calls the vision backend, locates the JSON object in the free-text
reply, and projects the decoded object onto the configured variables,
validating each value against its declared type.

Reply parsing is lenient: the JSON may be wrapped in a ```json
fence, an unlabeled fence, or surrounded by commentary.

Example usage:
    >>> client = StructuredExtractionClient(GeminiClient(config, retry))
    >>> result = await client.extract_from_image(
    ...     png_bytes, "image/png", config.prompt, config.extractable_variables
    ... )
    >>> result.content
    'Meeting with Ana ...'
"""

import json
import logging
import math
from typing import Any

from ..domain.config import ExtractableVariableSpec
from ..domain.models import (
    ExtractedValue,
    Scalar,
    StructuredExtractionResult,
    VariableType,
)
from .exceptions import ExtractionError, MalformedResponseError, TransportError
from .vision_backend import VisionBackend

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"


def build_extraction_prompt(
    base_prompt: str, variable_specs: list[ExtractableVariableSpec]
) -> str:
    """Build the full prompt sent to the backend.

    The base prompt is followed by a human-readable list of variables to
    extract (when any are configured) and always by a JSON structure example
    listing "content" and one placeholder per variable.

    Args:
        base_prompt: User-configured extraction prompt.
        variable_specs: Variables to request.

    Returns:
        Complete prompt text.
    """
    prompt = base_prompt

    if variable_specs:
        prompt += "\n\nAdditionally, extract the following variables:\n"
        for spec in variable_specs:
            prompt += f"- {spec.name} ({spec.type}): {spec.description}\n"

    fields = ['  "content": "the transcribed text"']
    fields.extend(
        f'  "{spec.name}": {spec.variable_type.placeholder}' for spec in variable_specs
    )

    prompt += (
        "\n\nReturn the response in valid JSON format with the following structure:\n"
    )
    prompt += "{\n" + ",\n".join(fields) + "\n}"

    return prompt


def _fenced_block(text: str, fence: str) -> str | None:
    start = text.find(fence)
    if start == -1:
        return None
    start += len(fence)
    end = text.find("```", start)
    if end == -1:
        return None
    return text[start:end].strip()


def parse_json_response(text: str | None) -> dict[str, Any]:
    """Locate and decode the JSON object in a backend reply.

    Prefers the content of a ```json fence, then of any ``` fence, then the
    raw text; within that, decodes the slice from the first "{" to the last "}".

    Args:
        text: Reply text from the backend.

    Returns:
        Decoded JSON object.

    Raises:
        MalformedResponseError: If the reply is empty, has no JSON object, or
            fails to decode.
    """
    if not text:
        raise MalformedResponseError("no response")

    candidate = _fenced_block(text, "```json")
    if candidate is None:
        candidate = _fenced_block(text, "```")
    if candidate is None:
        candidate = text

    start = candidate.find("{")
    end = candidate.rfind("}")
    if start == -1 or end <= start:
        raise MalformedResponseError("No JSON object found in response")

    try:
        parsed = json.loads(candidate[start : end + 1])
    except json.JSONDecodeError as e:
        raise MalformedResponseError(
            "Failed to parse JSON response", original_exception=e
        ) from e

    if not isinstance(parsed, dict):
        raise MalformedResponseError(
            f"Expected a JSON object, got {type(parsed).__name__}"
        )

    return parsed


def _as_scalar(value: Any) -> Scalar | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (str, int)):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return value
    return None


def coerce_value(value: Any, variable_type: VariableType) -> ExtractedValue | None:
    """Validate a decoded value against its declared type.

    Arrays accept a list (non-scalar items are dropped) or a bare scalar, which
    becomes a one-element list. Numbers accept numbers and numeric strings.
    Strings accept strings and numbers.

    Returns:
        The coerced value, or None when it cannot be represented as the type.
    """
    if variable_type is VariableType.ARRAY:
        if isinstance(value, list):
            items = [_as_scalar(item) for item in value]
            return [item for item in items if item is not None]
        scalar = _as_scalar(value)
        return None if scalar is None else [scalar]

    if variable_type is VariableType.NUMBER:
        if isinstance(value, str):
            try:
                number = float(value.strip())
            except ValueError:
                return None
            if not math.isfinite(number):
                return None
            return int(number) if number.is_integer() else number
        scalar = _as_scalar(value)
        return scalar if isinstance(scalar, (int, float)) else None

    scalar = _as_scalar(value)
    return None if scalar is None else str(scalar)


def project_variables(
    parsed: dict[str, Any], variable_specs: list[ExtractableVariableSpec]
) -> dict[str, ExtractedValue]:
    """Copy configured variables out of a decoded reply.

    Keys that are not configured are ignored, missing keys are omitted, and
    values that fail type validation are treated as not found.
    """
    extracted: dict[str, ExtractedValue] = {}

    for spec in variable_specs:
        if spec.name not in parsed:
            continue
        value = coerce_value(parsed[spec.name], spec.variable_type)
        if value is None:
            logger.debug(
                f"Discarding variable '{spec.name}': {parsed[spec.name]!r} "
                f"is not a valid {spec.type}"
            )
            continue
        extracted[spec.name] = value

    return extracted


class StructuredExtractionClient:
    """Extracts transcribed content and variables from a document.

    Attributes:
        backend: Vision backend used for generation.
    """

    def __init__(self, backend: VisionBackend) -> None:
        self.backend = backend

    @property
    def model_id(self) -> str:
        return self.backend.model_id

    async def extract(
        self,
        data: bytes,
        mime_type: str,
        base_prompt: str,
        variable_specs: list[ExtractableVariableSpec],
    ) -> StructuredExtractionResult:
        """Run a structured extraction for a single document.

        Args:
            data: Raw document bytes.
            mime_type: MIME type of the document.
            base_prompt: User-configured extraction prompt.
            variable_specs: Variables to request.

        Returns:
            StructuredExtractionResult. content is "" when the backend omitted it.

        Raises:
            TransportError: If the backend call fails.
            MalformedResponseError: If the reply cannot be parsed.
        """
        prompt = build_extraction_prompt(base_prompt, variable_specs)

        try:
            text = await self.backend.generate(prompt, data, mime_type)
        except ExtractionError:
            raise
        except Exception as e:
            raise TransportError(
                f"Vision backend call failed for {mime_type}", original_exception=e
            ) from e

        parsed = parse_json_response(text)

        content = parsed.get("content")
        if content is None:
            content = ""
        elif not isinstance(content, str):
            content = str(content)

        return StructuredExtractionResult(
            content=content,
            extracted_variables=project_variables(parsed, variable_specs),
        )

    async def extract_from_image(
        self,
        data: bytes,
        mime_type: str,
        base_prompt: str,
        variable_specs: list[ExtractableVariableSpec],
    ) -> StructuredExtractionResult:
        """Extract from a raster image with the given MIME type."""
        return await self.extract(data, mime_type, base_prompt, variable_specs)

    async def extract_from_pdf(
        self,
        data: bytes,
        base_prompt: str,
        variable_specs: list[ExtractableVariableSpec],
    ) -> StructuredExtractionResult:
        """Extract from a PDF document."""
        return await self.extract(data, PDF_MIME_TYPE, base_prompt, variable_specs)
