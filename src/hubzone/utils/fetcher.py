"""
Resilient HTTP Fetcher

Bounded-retry GET with linear backoff and cooperative cancellation, shared by
every acquisition step.
"""
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Optional, TypeVar

import requests

from src.hubzone.utils.errors import FetchCancelled, FetchExhausted, SourceUnavailable
from src.hubzone.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

CHUNK_SIZE = 64 * 1024


class CancellationToken:
    """
    Cooperative cancellation flag shared between a caller and running fetches.

    Usage:
        token = CancellationToken()
        pipeline.run_import(cancel=token)
        ...
        token.cancel()  # from another thread
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, seconds: float) -> bool:
        """Sleep up to `seconds`; returns True early if cancelled."""
        return self._event.wait(seconds)

    def raise_if_cancelled(self, url: Optional[str] = None) -> None:
        if self._event.is_set():
            raise FetchCancelled("Fetch cancelled", url=url)


class ResilientFetcher:
    """
    HTTP GET with bounded retries.

    Network failures and timeouts are retried up to max_retries attempts,
    waiting retry_delay_seconds * n after failed attempt n. HTTP error
    statuses are returned to the caller untouched. Cancellation is never
    retried.
    """

    def __init__(
        self,
        max_retries: int = 3,
        retry_delay_seconds: float = 1.0,
        timeout_seconds: float = 60.0,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the fetcher.

        Args:
            max_retries: Total attempts per request (>= 1)
            retry_delay_seconds: Base backoff delay
            timeout_seconds: Per-attempt connect/read timeout
            session: Override the HTTP session (for testing)
        """
        self.max_retries = max(1, max_retries)
        self.retry_delay_seconds = retry_delay_seconds
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": "hubzone-map-loader/0.1"})
        logger.info(
            "fetcher_initialized",
            max_retries=self.max_retries,
            retry_delay_seconds=retry_delay_seconds,
            timeout_seconds=timeout_seconds
        )

    def fetch(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> requests.Response:
        """
        GET a URL and read its full body.

        Args:
            url: Target URL
            params: Query parameters
            cancel: Cancellation token

        Returns:
            Response with content loaded (any status code)

        Raises:
            FetchCancelled: If the token is cancelled
            FetchExhausted: If every attempt failed at the network level
        """
        token = cancel or CancellationToken()

        def attempt() -> requests.Response:
            response = self.session.get(url, params=params, timeout=self.timeout_seconds, stream=True)
            try:
                chunks = []
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    token.raise_if_cancelled(url)
                    if chunk:
                        chunks.append(chunk)
                response._content = b"".join(chunks)
            finally:
                response.close()
            return response

        return self._with_retries(url, token, attempt)

    def download(
        self,
        url: str,
        dest_path: str,
        cancel: Optional[CancellationToken] = None,
    ) -> int:
        """
        Stream a response body to a file.

        Args:
            url: Target URL
            dest_path: File to write
            cancel: Cancellation token

        Returns:
            Number of bytes written

        Raises:
            SourceUnavailable: If the server answers with a non-success status
            FetchCancelled: If the token is cancelled (partial file removed)
            FetchExhausted: If every attempt failed at the network level
        """
        token = cancel or CancellationToken()
        destination = Path(dest_path)
        destination.parent.mkdir(parents=True, exist_ok=True)

        def attempt() -> int:
            response = self.session.get(url, timeout=self.timeout_seconds, stream=True)
            try:
                if not response.ok:
                    raise SourceUnavailable(url, response.status_code, response.reason or "")

                written = 0
                with open(destination, "wb") as fh:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        token.raise_if_cancelled(url)
                        if chunk:
                            fh.write(chunk)
                            written += len(chunk)
                return written
            finally:
                response.close()

        try:
            written = self._with_retries(url, token, attempt)
        except Exception:
            destination.unlink(missing_ok=True)
            raise

        logger.info("download_complete", url=url, path=str(destination), bytes=written)
        return written

    def _with_retries(self, url: str, token: CancellationToken, attempt: Callable[[], T]) -> T:
        last_error: Optional[BaseException] = None

        for attempt_number in range(1, self.max_retries + 1):
            token.raise_if_cancelled(url)
            try:
                return attempt()
            except requests.RequestException as e:
                last_error = e
                logger.warning(
                    "fetch_attempt_failed",
                    url=url,
                    attempt=attempt_number,
                    max_retries=self.max_retries,
                    error=str(e),
                    error_type=type(e).__name__
                )

            if attempt_number < self.max_retries:
                delay = self.retry_delay_seconds * attempt_number
                if token.wait(delay):
                    raise FetchCancelled("Fetch cancelled during backoff", url=url)

        logger.error("fetch_exhausted", url=url, attempts=self.max_retries, error=str(last_error))
        raise FetchExhausted(url, self.max_retries, last_error) from last_error
