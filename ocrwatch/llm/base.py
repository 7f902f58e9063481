from abc import ABC, abstractmethod


class BaseLlmClient(ABC):
    """Contract for all language-model adapters."""

    @abstractmethod
    async def process_text(self, text: str) -> str:
        """Transform recognized text with the language model.

        Args:
            text: Non-empty OCR output.

        Returns:
            The model's answer.

        Raises:
            LlmServiceError: on any failure, including an empty answer.
        """

    @abstractmethod
    async def check_health(self) -> bool:
        """Return True when the model service is reachable."""
