import asyncio
import mimetypes
from pathlib import Path

import httpx

from ocrwatch.exceptions import FileError
from ocrwatch.logging.logger import Log, preview
from ocrwatch.ocr.base import BaseOcrClient
from ocrwatch.ocr.exceptions import OcrServiceError


class HttpOcrClient(BaseOcrClient):
    """OCR adapter for the local HTTP OCR service.

    Uploads the image as multipart field ``image`` with a ``language`` query
    parameter and reads ``data.text`` from the JSON response.
    """

    def __init__(
        self,
        *,
        api_url: str,
        health_check_url: str,
        language: str,
        timeout_seconds: float = 30,
        health_timeout_seconds: float = 5,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_url = api_url
        self._health_check_url = health_check_url
        self._language = language
        self._timeout_seconds = timeout_seconds
        self._health_timeout_seconds = health_timeout_seconds
        self._transport = transport

    async def recognize(self, image_path: Path) -> str | None:
        path = Path(image_path)
        content = await self._read_image(path)
        mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        Log.debug("Calling OCR API", url=self._api_url, language=self._language)

        try:
            async with self._client(self._timeout_seconds) as client:
                response = await client.post(
                    self._api_url,
                    params={"language": self._language},
                    files={"image": (path.name, content, mime_type)},
                )
                response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise OcrServiceError(f"OCR request timed out: {exc}", cause=exc) from exc
        except httpx.HTTPError as exc:
            raise OcrServiceError(f"OCR request failed: {exc}", cause=exc) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise OcrServiceError(f"OCR returned invalid JSON: {exc}", cause=exc) from exc

        text = self._extract_text(payload)
        if text is None:
            Log.warning("OCR found no text", file=path.name)
            return None
        Log.info("OCR recognized text", file=path.name, length=len(text), preview=preview(text))
        return text

    async def check_health(self) -> bool:
        Log.debug("Checking OCR service health", url=self._health_check_url)
        try:
            async with self._client(self._health_timeout_seconds) as client:
                response = await client.get(self._health_check_url)
        except httpx.HTTPError as exc:
            Log.warning(f"OCR health check failed: {exc}")
            return False
        if not response.is_success:
            Log.warning("OCR health check failed", status_code=response.status_code)
            return False
        Log.info("OCR service is healthy")
        return True

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self._transport)

    @staticmethod
    async def _read_image(path: Path) -> bytes:
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError as exc:
            raise FileError(f"Image file not found: {path}", cause=exc) from exc
        except OSError as exc:
            raise FileError(f"Cannot read image file {path}: {exc}", cause=exc) from exc

    @staticmethod
    def _extract_text(payload: object) -> str | None:
        data = payload.get("data") if isinstance(payload, dict) else None
        text = data.get("text") if isinstance(data, dict) else None
        if not isinstance(text, str) or not text.strip():
            return None
        return text
