from ocrwatch.llm.base import BaseLlmClient
from ocrwatch.llm.factory import LlmClientFactory
from ocrwatch.llm.workflow_client import WorkflowLlmClient

__all__ = ["BaseLlmClient", "LlmClientFactory", "WorkflowLlmClient"]
