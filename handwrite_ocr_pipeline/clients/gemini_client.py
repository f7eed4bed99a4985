"""Gemini vision backend implementation.

This module provides the VisionBackend implementation for Google's Gemini
models using the google-genai SDK. Documents are sent inline (the SDK handles
base64 encoding) together with the text prompt in a single generate call on the
async client, so several requests can be in flight at once without blocking
the event loop.
"""

import logging

from google import genai
from google.genai import errors, types

from ..domain.config import GeminiConfig, RetryConfig
from ..utils.retry import retry_with_backoff
from .exceptions import TransportError
from .vision_backend import VisionBackend

logger = logging.getLogger(__name__)


class GeminiClient(VisionBackend):
    """Client for the Gemini generate-content API.

    Server-side failures (5xx) are retried with exponential backoff according
    to the retry configuration; every other SDK error, and the last failed
    attempt, surfaces as TransportError.

    Example:
        >>> config = GeminiConfig(api_key="your-key")
        >>> client = GeminiClient(config, RetryConfig())
        >>> text = await client.generate(prompt, png_bytes, "image/png")
    """

    def __init__(self, config: GeminiConfig, retry: RetryConfig) -> None:
        """Initialize the Gemini client.

        Args:
            config: Gemini configuration containing API key and model.
            retry: Retry configuration for transient server errors.

        Raises:
            TransportError: If SDK client initialization fails.
        """
        try:
            self.config = config
            self.client = genai.Client(api_key=config.api_key)
        except Exception as e:
            error_msg = f"Failed to initialize Gemini client: {str(e)}"
            logger.error(error_msg)
            raise TransportError(error_msg, original_exception=e) from e

        self._generate_content = retry_with_backoff(
            max_attempts=retry.max_attempts,
            initial_delay=retry.initial_delay,
            backoff_multiplier=retry.backoff_multiplier,
            max_delay=retry.max_delay,
            exceptions=(errors.ServerError,),
        )(self._generate_content_once)

        logger.info(f"GeminiClient initialized (model: {config.model})")

    @property
    def model_id(self) -> str:
        return self.config.model

    async def _generate_content_once(
        self, contents: list[str | types.Part]
    ) -> types.GenerateContentResponse:
        return await self.client.aio.models.generate_content(
            model=self.config.model, contents=contents
        )

    async def generate(self, prompt: str, data: bytes, mime_type: str) -> str | None:
        """Send the prompt and document inline and return the reply text.

        Args:
            prompt: Full extraction prompt.
            data: Raw document bytes.
            mime_type: MIME type of the document.

        Returns:
            Reply text, or None when the response carried no text.

        Raises:
            TransportError: If the API call fails after retries.
        """
        contents: list[str | types.Part] = [
            prompt,
            types.Part.from_bytes(data=data, mime_type=mime_type),
        ]

        logger.debug(
            f"Calling Gemini {self.config.model} "
            f"({mime_type}, {len(data)} bytes, prompt {len(prompt)} chars)"
        )

        try:
            response = await self._generate_content(contents)
        except errors.APIError as e:
            error_msg = f"Gemini API request failed ({e.code}): {e.message}"
            logger.debug(error_msg)
            raise TransportError(error_msg, original_exception=e) from e
        except Exception as e:
            error_msg = f"Unexpected error calling Gemini API: {str(e)}"
            logger.debug(error_msg)
            raise TransportError(error_msg, original_exception=e) from e

        logger.debug(f"Gemini response:\n{response.text}")
        return response.text
