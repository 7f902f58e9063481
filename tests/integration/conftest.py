import json
from collections.abc import Callable
from pathlib import Path

import httpx
import pytest

from ocrwatch.config.settings import Settings

OCR_URL = "http://ocr.test/api/v1/ocr"
OCR_HEALTH_URL = "http://ocr.test/health"
LLM_URL = "http://llm.test/v1/workflows/run"


class FakeServices:
    """In-process OCR and workflow endpoints served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.ocr_text: str | None = "hello"
        self.llm_answer = "world"
        self.llm_times_out = False
        self.ocr_uploads: list[str] = []
        self.llm_questions: list[str] = []

    def handle(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/health":
            return httpx.Response(200, json={"status": "ok"})
        if request.url.host == "ocr.test":
            body = request.read()
            marker = b'filename="'
            start = body.index(marker) + len(marker)
            self.ocr_uploads.append(body[start : body.index(b'"', start)].decode())
            return httpx.Response(200, json={"data": {"text": self.ocr_text}})
        payload = json.loads(request.read())
        if payload["user"] == "health-check":
            return httpx.Response(200, json={"data": {"outputs": {"text": "ok"}}})
        self.llm_questions.append(payload["inputs"]["question"])
        if self.llm_times_out:
            raise httpx.ReadTimeout("workflow did not answer", request=request)
        return httpx.Response(200, json={"data": {"outputs": {"text": self.llm_answer}}})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)


@pytest.fixture()
def fake_services() -> FakeServices:
    return FakeServices()


@pytest.fixture()
def integration_settings(make_settings: Callable[..., Settings]) -> Settings:
    return make_settings(
        ocr_api_url=OCR_URL,
        health_check_url=OCR_HEALTH_URL,
        local_llm_url=LLM_URL,
        stability_poll_interval_seconds=0.05,
        stability_threshold=2,
        stability_max_wait_seconds=2.0,
    )


@pytest.fixture()
def write_image(watch_folder: Path, png_bytes: bytes) -> Callable[[str], Path]:
    def _write(name: str) -> Path:
        path = watch_folder / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(png_bytes)
        return path

    return _write
