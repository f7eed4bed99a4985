"""
Abstract base class for vision backend implementations.

This module defines the narrow interface the extraction client uses to send a
prompt plus one binary document to an AI vision model and receive free text
back. Implementations own transport details (authentication, encoding, HTTP)
and surface every transport failure as TransportError.

Example workflow:
    # text = await backend.generate(prompt, image_bytes, "image/png")
"""

from abc import ABC, abstractmethod


class VisionBackend(ABC):
    """Abstract base class for all vision backend implementations."""

    @property
    @abstractmethod
    def model_id(self) -> str:
        """Model identifier used for generation requests.

        Exposed to note templates as {{modelUsed}}.
        """
        pass

    @abstractmethod
    async def generate(self, prompt: str, data: bytes, mime_type: str) -> str | None:
        """Send a prompt and a binary document, return the reply text.

        Args:
            prompt: Full text prompt.
            data: Raw document bytes (image or PDF).
            mime_type: MIME type of data, e.g. "image/png" or "application/pdf".

        Returns:
            Reply text, or None when the backend returned no text.

        Raises:
            TransportError: If the backend call fails.
        """
        pass
