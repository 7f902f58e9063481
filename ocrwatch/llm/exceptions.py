from ocrwatch.exceptions import ServiceError


class LlmServiceError(ServiceError):
    """Raised when the language-model call fails or returns no answer."""
