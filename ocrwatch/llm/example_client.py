"""Example language-model adapter.

Use this module as a reference when implementing new model adapters.
Implement BaseLlmClient and register the provider in LlmClientFactory.
"""

from typing import ClassVar

from ocrwatch.llm.base import BaseLlmClient


class ExampleLlmClient(BaseLlmClient):
    """Example adapter that returns a fixed answer. No network calls."""

    DEFAULT_ANSWER: ClassVar[str] = "Example answer"

    async def process_text(self, text: str) -> str:
        _ = text
        return self.DEFAULT_ANSWER

    async def check_health(self) -> bool:
        return True
