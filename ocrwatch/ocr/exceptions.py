from ocrwatch.exceptions import ServiceError


class OcrServiceError(ServiceError):
    """Raised when the OCR service call fails (network, HTTP status, payload)."""
