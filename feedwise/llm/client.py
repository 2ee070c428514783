"""OpenAI-compatible chat completion client."""

from http import HTTPStatus

import httpx
import structlog

from feedwise.llm.errors import LlmApiError


logger = structlog.get_logger()

DEFAULT_BASE_URL = "https://api.perplexity.ai"
DEFAULT_MODEL = "sonar"
_REQUEST_TIMEOUT = 60.0


class ChatCompletionClient:
    """Client for a ``/chat/completions`` endpoint.

    Sends a single request per call; there is no retry.

    Attributes:
        model: Model identifier sent with every request.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        timeout: float = _REQUEST_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: Bearer token for the API.
            base_url: API root; ``/chat/completions`` is appended.
            model: Model identifier.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (used by tests).
        """
        self._api_key = api_key
        self._endpoint = f"{base_url.rstrip('/')}/chat/completions"
        self.model = model
        self._timeout = timeout
        self._transport = transport
        self._log = logger.bind(component="llm", subcomponent="client")

    def complete(self, prompt: str, system_instruction: str | None = None) -> str:
        """Send one chat completion request.

        Args:
            prompt: User message.
            system_instruction: Optional system message placed first.

        Returns:
            Content of the first choice.

        Raises:
            LlmApiError: On network errors, non-200 responses, an ``error``
                object in the body, or a missing or empty answer.
        """
        messages = []
        if system_instruction:
            messages.append({"role": "system", "content": system_instruction})
        messages.append({"role": "user", "content": prompt})

        response = self._send({"model": self.model, "messages": messages})
        if response.status_code != HTTPStatus.OK:
            self._log.warning("llm_request_rejected", status=response.status_code)
            msg = f"Chat completion returned {response.status_code}"
            raise LlmApiError(msg, status_code=response.status_code)

        return self._extract_text(response)

    def _send(self, body: dict[str, object]) -> httpx.Response:
        try:
            with httpx.Client(
                timeout=self._timeout, transport=self._transport
            ) as client:
                return client.post(
                    self._endpoint,
                    headers={
                        "Authorization": f"Bearer {self._api_key}",
                        "Content-Type": "application/json",
                    },
                    json=body,
                )
        except httpx.HTTPError as exc:
            msg = f"Chat completion request failed: {exc}"
            raise LlmApiError(msg) from exc

    @staticmethod
    def _extract_text(response: httpx.Response) -> str:
        """Extract the answer from the API response.

        Raises:
            LlmApiError: If the response is missing expected fields.
        """
        try:
            data = response.json()
        except ValueError as exc:
            msg = "Chat completion response is not JSON"
            raise LlmApiError(msg) from exc

        if not isinstance(data, dict):
            msg = "Chat completion response is not an object"
            raise LlmApiError(msg)

        if data.get("error"):
            error = data["error"]
            detail = error.get("message") if isinstance(error, dict) else error
            msg = f"Chat completion error: {detail}"
            raise LlmApiError(msg)

        choices = data.get("choices") or []
        if not choices:
            msg = "No choices in chat completion response"
            raise LlmApiError(msg)

        message = choices[0].get("message") or {}
        text: str = message.get("content") or ""
        if not text.strip():
            msg = "Empty content in chat completion response"
            raise LlmApiError(msg)

        return text
