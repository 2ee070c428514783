"""HTTP client for retrieving feed documents."""

import time
from urllib.parse import urlparse

import httpx
import structlog

from feedwise.fetch.config import FetchConfig
from feedwise.fetch.constants import (
    DEFAULT_CHUNK_SIZE,
    FEED_ACCEPT_HEADER,
    HTTP_STATUS_BAD_REQUEST,
    HTTP_STATUS_OK_MAX,
    HTTP_STATUS_OK_MIN,
    HTTP_STATUS_SERVER_ERROR_MIN,
    HTTP_STATUS_TOO_MANY_REQUESTS,
)
from feedwise.fetch.metrics import FetchMetrics
from feedwise.fetch.models import (
    FetchError,
    FetchErrorClass,
    FetchResult,
    ResponseSizeExceededError,
)
from feedwise.fetch.redact import redact_headers, redact_url_credentials


logger = structlog.get_logger()


def classify_status(status_code: int) -> FetchError | None:
    """Map an HTTP status to a fetch error.

    Args:
        status_code: Response status.

    Returns:
        None for 2xx, otherwise the classified error.
    """
    if HTTP_STATUS_OK_MIN <= status_code < HTTP_STATUS_OK_MAX:
        return None

    if status_code == HTTP_STATUS_TOO_MANY_REQUESTS:
        error_class, label = FetchErrorClass.RATE_LIMITED, "Rate limited"
    elif status_code >= HTTP_STATUS_SERVER_ERROR_MIN:
        error_class, label = FetchErrorClass.HTTP_5XX, "Server error"
    elif status_code >= HTTP_STATUS_BAD_REQUEST:
        error_class, label = FetchErrorClass.HTTP_4XX, "Client error"
    else:
        error_class, label = FetchErrorClass.UNKNOWN, "Unexpected status"

    return FetchError(
        error_class=error_class,
        message=f"{label} ({status_code})",
        status_code=status_code,
    )


def read_limited(response: httpx.Response, limit: int) -> bytes:
    """Drain a streaming response, refusing bodies over ``limit`` bytes.

    Raises:
        ResponseSizeExceededError: As soon as the running total passes the limit.
    """
    chunks: list[bytes] = []
    received = 0
    for chunk in response.iter_bytes(chunk_size=DEFAULT_CHUNK_SIZE):
        received += len(chunk)
        if received > limit:
            msg = f"Response body passed {limit} bytes (read {received})"
            raise ResponseSizeExceededError(msg)
        chunks.append(chunk)
    return b"".join(chunks)


class HttpFetcher:
    """Downloads feed documents, one request per call.

    Failures never raise. They come back as a FetchResult whose ``error``
    says what went wrong, so one bad feed cannot interrupt a job.
    """

    def __init__(
        self,
        config: FetchConfig | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the HTTP fetcher.

        Args:
            config: Timeout, size limit and headers.
            transport: Optional httpx transport (used by tests).
        """
        self._config = config or FetchConfig()
        self._transport = transport
        self._headers = {
            "User-Agent": self._config.user_agent,
            "Accept": FEED_ACCEPT_HEADER,
            "Accept-Encoding": "gzip, deflate",
            **self._config.headers,
        }
        self._metrics = FetchMetrics.get_instance()
        self._log = logger.bind(component="fetch")

    def fetch(self, url: str, source_id: str | None = None) -> FetchResult:
        """Download ``url`` once.

        Args:
            url: Feed URL.
            source_id: Source the feed belongs to, for logging.

        Returns:
            The response, or the classified reason there is none.
        """
        log = self._log.bind(
            source_id=source_id,
            url=redact_url_credentials(url),
            domain=urlparse(url).netloc,
        )
        log.debug("fetch_started", headers=redact_headers(self._headers))

        started_ns = time.perf_counter_ns()
        result = self._request(url)
        elapsed_ms = (time.perf_counter_ns() - started_ns) / 1_000_000

        self._metrics.record_fetch(result, elapsed_ms)
        log.info(
            "fetch_complete",
            status_code=result.status_code,
            bytes=result.body_size,
            duration_ms=round(elapsed_ms, 2),
            error_class=result.error.error_class.value if result.error else None,
        )
        return result

    def _request(self, url: str) -> FetchResult:
        limit = self._config.max_response_size_bytes
        try:
            with (
                httpx.Client(
                    timeout=self._config.timeout_seconds,
                    follow_redirects=True,
                    transport=self._transport,
                ) as client,
                client.stream("GET", url, headers=self._headers) as response,
            ):
                declared = response.headers.get("content-length", "")
                if declared.isdigit() and int(declared) > limit:
                    return self._failure(
                        url,
                        FetchErrorClass.RESPONSE_SIZE_EXCEEDED,
                        f"Declared size {declared} exceeds limit {limit}",
                        status_code=response.status_code,
                    )

                return FetchResult(
                    status_code=response.status_code,
                    final_url=str(response.url),
                    headers=dict(response.headers),
                    body_bytes=read_limited(response, limit),
                    error=classify_status(response.status_code),
                )

        except ResponseSizeExceededError as e:
            return self._failure(url, FetchErrorClass.RESPONSE_SIZE_EXCEEDED, str(e))
        except httpx.TimeoutException as e:
            return self._failure(
                url, FetchErrorClass.NETWORK_TIMEOUT, f"Request timed out: {e}"
            )
        except httpx.ConnectError as e:
            reason = str(e)
            if "SSL" in reason or "CERTIFICATE" in reason.upper():
                return self._failure(
                    url, FetchErrorClass.SSL_ERROR, f"TLS error: {reason}"
                )
            return self._failure(
                url, FetchErrorClass.CONNECTION_ERROR, f"Connection failed: {reason}"
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            return self._failure(
                url,
                FetchErrorClass.UNKNOWN,
                f"Request failed: {str(e) or type(e).__name__}",
            )

    @staticmethod
    def _failure(
        url: str,
        error_class: FetchErrorClass,
        message: str,
        status_code: int | None = None,
    ) -> FetchResult:
        return FetchResult(
            status_code=status_code or 0,
            final_url=url,
            error=FetchError(
                error_class=error_class, message=message, status_code=status_code
            ),
        )
