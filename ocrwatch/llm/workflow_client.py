import httpx

from ocrwatch.llm.base import BaseLlmClient
from ocrwatch.llm.exceptions import LlmServiceError
from ocrwatch.logging.logger import Log, preview

HEALTH_CHECK_USER = "health-check"


class WorkflowLlmClient(BaseLlmClient):
    """Adapter for a blocking workflow-run endpoint.

    Request: ``{"inputs": {"question": text}, "response_mode": "blocking", "user": user}``.
    Response: ``{"data": {"outputs": {"text": answer}}}``.
    """

    def __init__(
        self,
        *,
        url: str,
        user: str,
        api_key: str | None = None,
        timeout_seconds: float = 60,
        health_check_url: str | None = None,
        health_timeout_seconds: float = 10,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._user = user
        self._api_key = api_key
        self._timeout_seconds = timeout_seconds
        self._health_check_url = health_check_url
        self._health_timeout_seconds = health_timeout_seconds
        self._transport = transport

    async def process_text(self, text: str) -> str:
        if not text or not text.strip():
            raise LlmServiceError("LLM input text is empty")

        Log.info("Calling LLM", length=len(text), preview=preview(text))
        try:
            async with self._client(self._timeout_seconds) as client:
                response = await client.post(
                    self._url,
                    json=self._build_payload(text, self._user),
                    headers=self._headers(),
                )
                response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise LlmServiceError(f"LLM request timed out: {exc}", cause=exc) from exc
        except httpx.HTTPError as exc:
            raise LlmServiceError(f"LLM request failed: {exc}", cause=exc) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise LlmServiceError(f"LLM returned invalid JSON: {exc}", cause=exc) from exc

        answer = self._extract_answer(payload)
        if answer is None:
            raise LlmServiceError("LLM response has no data.outputs.text")
        Log.info("LLM answered", length=len(answer), preview=preview(answer))
        return answer

    async def check_health(self) -> bool:
        try:
            async with self._client(self._health_timeout_seconds) as client:
                if self._health_check_url:
                    response = await client.get(self._health_check_url, headers=self._headers())
                else:
                    response = await client.post(
                        self._url,
                        json=self._build_payload("test", HEALTH_CHECK_USER),
                        headers=self._headers(),
                    )
        except httpx.HTTPError as exc:
            Log.warning(f"LLM health check failed: {exc}")
            return False
        if not response.is_success:
            Log.warning("LLM health check failed", status_code=response.status_code)
            return False
        Log.info("LLM service is healthy")
        return True

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self._transport)

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    @staticmethod
    def _build_payload(question: str, user: str) -> dict[str, object]:
        return {
            "inputs": {"question": question},
            "response_mode": "blocking",
            "user": user,
        }

    @staticmethod
    def _extract_answer(payload: object) -> str | None:
        data = payload.get("data") if isinstance(payload, dict) else None
        outputs = data.get("outputs") if isinstance(data, dict) else None
        text = outputs.get("text") if isinstance(outputs, dict) else None
        if not isinstance(text, str) or not text:
            return None
        return text
