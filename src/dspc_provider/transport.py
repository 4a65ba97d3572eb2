"""Authenticated HTTP transport for the DSPC API.

The transport resolves request paths against the configured endpoint, encodes
JSON bodies, attaches authentication headers and executes the call under a
caller supplied ``RequestContext``. It never interprets status codes; that is
left to the client layer.
"""

import json
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeout
from typing import Any
from urllib.parse import urljoin, urlsplit

import requests
import structlog
from pydantic import BaseModel

from .config import EndpointConfig
from .errors import (
    ConnectionFailedError,
    EncodeError,
    InvalidURLError,
    RequestCancelledError,
    RequestTimeoutError,
    TransportError,
)

logger = structlog.get_logger()

HTTP_SCHEMES = ("http", "https")


class RequestContext:
    """Cancellation and deadline signal shared by one or more calls.

    A context may be cancelled from any thread. Calls waiting on it return
    ``RequestCancelledError`` shortly afterwards.
    """

    def __init__(self, timeout: float | None = None) -> None:
        self._cancelled = threading.Event()
        self.deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None without a deadline."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    @property
    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline


def _check_http_url(url: str) -> None:
    parts = urlsplit(url)
    if parts.scheme not in HTTP_SCHEMES or not parts.hostname:
        raise InvalidURLError(f"invalid URL {url!r}: expected an http(s) URL with a host")
    # .port raises ValueError when the port is not a number in range
    if parts.port == 0:
        raise InvalidURLError(f"invalid URL {url!r}: port 0")


def resolve_url(base: str, path: str) -> str:
    """Resolve a request path against the endpoint URL.

    Standard reference resolution applies, so ``https://h/`` + ``/r`` and
    ``https://h`` + ``r`` both give ``https://h/r``; an absolute path
    replaces the endpoint path and an absolute URL replaces the endpoint.

    Raises:
        InvalidURLError: If the endpoint or the resolved URL is not a valid
            http(s) URL
    """
    try:
        _check_http_url(base)
    except ValueError as e:
        raise InvalidURLError(f"invalid endpoint URL: {e}") from e

    try:
        resolved = urljoin(base, path)
        _check_http_url(resolved)
    except ValueError as e:
        raise InvalidURLError(f"invalid path {path!r}: {e}") from e
    return resolved


def encode_body(body: Any) -> bytes | None:
    """Serialize a request body to JSON bytes."""
    if body is None:
        return None
    if isinstance(body, BaseModel):
        body = body.model_dump(by_alias=True)
    try:
        return json.dumps(body).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise EncodeError(f"failed to marshal request body: {e}") from e


def build_headers(api_key: str | None) -> dict[str, str]:
    """JSON content type plus a bearer token when an API key is set."""
    headers = {"Content-Type": "application/json"}
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"
    return headers


def _discard(future: "Future[requests.Response]") -> None:
    """Close a response nobody is waiting for any more."""
    if future.cancelled() or future.exception() is not None:
        return
    future.result().close()


class Transport:
    """Executes authenticated HTTP calls against the configured endpoint."""

    poll_interval = 0.05

    def __init__(
        self,
        config: EndpointConfig,
        session: requests.Session | None = None,
        max_workers: int = 8,
    ) -> None:
        """Initialize transport."""
        self.config = config
        self._session = session or requests.Session()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="dspc-http")

    def __enter__(self) -> "Transport":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Release the worker pool and pooled connections."""
        self._executor.shutdown(wait=False, cancel_futures=True)
        self._session.close()

    def headers(self) -> dict[str, str]:
        return build_headers(self.config.api_key)

    def effective_timeout(self, context: RequestContext) -> float:
        """Configured timeout, shortened to the context deadline if sooner."""
        timeout = float(self.config.timeout_seconds)
        remaining = context.remaining()
        if remaining is not None:
            timeout = min(timeout, remaining)
        return timeout

    def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        context: RequestContext | None = None,
    ) -> requests.Response:
        """Perform one HTTP call and return the raw response.

        Args:
            method: HTTP method
            path: Path relative to the endpoint, or an absolute path/URL
            body: JSON-serializable value or pydantic model, sent as the body
            context: Cancellation/deadline signal, defaults to none

        Returns:
            The response, whatever its status code

        Raises:
            InvalidURLError: If the endpoint or path is malformed
            EncodeError: If the body cannot be serialized; nothing is sent
            RequestCancelledError: If the context is cancelled first
            RequestTimeoutError: If the deadline or timeout is exceeded
            ConnectionFailedError: If the connection fails
            TransportError: For any other failure raised by requests
        """
        context = context or RequestContext()
        url = resolve_url(self.config.endpoint, path)
        data = encode_body(body)

        if context.cancelled:
            raise RequestCancelledError(f"{method} {url} cancelled before it was sent")
        if context.expired:
            raise RequestTimeoutError(f"{method} {url} deadline exceeded before it was sent")

        timeout = self.effective_timeout(context)
        if timeout <= 0:
            raise RequestTimeoutError(f"{method} {url} deadline exceeded before it was sent")

        logger.debug("Sending request", method=method, url=url)
        future = self._executor.submit(
            self._session.request,
            method,
            url,
            data=data,
            headers=self.headers(),
            timeout=timeout,
        )

        try:
            response = self._wait(future, context, method, url)
        except requests.Timeout as e:
            raise RequestTimeoutError(f"{method} {url} timed out: {e}") from e
        except requests.ConnectionError as e:
            raise ConnectionFailedError(f"failed to make request {method} {url}: {e}") from e
        except (requests.exceptions.InvalidURL, requests.exceptions.MissingSchema) as e:
            raise InvalidURLError(f"invalid URL {url!r}: {e}") from e
        except requests.RequestException as e:
            raise TransportError(f"failed to make request {method} {url}: {e}") from e

        logger.debug("Received response", method=method, url=url, status=response.status_code)
        return response

    def _wait(
        self,
        future: "Future[requests.Response]",
        context: RequestContext,
        method: str,
        url: str,
    ) -> requests.Response:
        """Wait for the worker, giving up as soon as the context says so."""
        while True:
            if context.cancelled or context.expired:
                future.cancel()
                future.add_done_callback(_discard)
                if context.cancelled:
                    logger.info("Request cancelled", method=method, url=url)
                    raise RequestCancelledError(f"{method} {url} cancelled")
                logger.info("Request deadline exceeded", method=method, url=url)
                raise RequestTimeoutError(f"{method} {url} deadline exceeded")

            wait = self.poll_interval
            remaining = context.remaining()
            if remaining is not None:
                wait = min(wait, remaining)
            try:
                response = future.result(timeout=wait)
            except FuturesTimeout:
                continue

            if context.cancelled:
                response.close()
                raise RequestCancelledError(f"{method} {url} cancelled")
            return response
