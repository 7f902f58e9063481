from ocrwatch.config.settings import Settings
from ocrwatch.exceptions import ConfigError
from ocrwatch.llm.base import BaseLlmClient
from ocrwatch.llm.example_client import ExampleLlmClient
from ocrwatch.llm.workflow_client import WorkflowLlmClient

SUPPORTED_PROVIDERS = ("workflow", "example")


class LlmClientFactory:
    """Creates the configured language-model adapter."""

    @classmethod
    def create(cls, settings: Settings) -> BaseLlmClient:
        provider = settings.llm_provider.lower()
        if provider == "example":
            return ExampleLlmClient()
        if provider == "workflow":
            return WorkflowLlmClient(
                url=settings.local_llm_url,
                user=settings.llm_user,
                api_key=settings.local_llm_api_key,
                timeout_seconds=settings.llm_timeout_seconds,
                health_check_url=settings.llm_health_check_url,
                health_timeout_seconds=settings.llm_health_check_timeout_seconds,
            )
        raise ConfigError(
            f"Unknown LLM provider '{provider}'. Choose from: {list(SUPPORTED_PROVIDERS)}"
        )
