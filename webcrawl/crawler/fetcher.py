"""Page fetcher capability, its requests-based default, and wrappers.

Concurrency model:
- `HttpPageFetcher` keeps one `requests.Session` per worker thread and is safe
  to call from many workers at once.
- A fetcher that is not thread-safe must be wrapped in `SerializedFetcher`; the
  crawl engine calls `fetch` concurrently and does not serialize on its own.
"""

from __future__ import annotations

import socket
import threading
import time
from typing import Protocol, runtime_checkable

import requests

from .config import CrawlConfig
from .constants import DEFAULT_RETRY_BACKOFF_SECONDS, READ_CHUNK_BYTES, RETRYABLE_STATUS_CODES
from .types import FailureReason, FetchFailure, FetchOutcome, FetchSuccess, PageContent
from .url import is_http_url


@runtime_checkable
class PageFetcher(Protocol):
    """Fetch one URL within `timeout` seconds.

    Implementations enforce the timeout themselves and report every failure
    mode as a `FetchFailure` instead of raising.
    """

    def fetch(self, url: str, timeout: float) -> FetchOutcome:
        ...


class HttpPageFetcher:
    """Fetch pages over HTTP(S) with `requests`.

    `timeout` bounds the whole fetch, not each socket operation: the body is
    streamed, and a watchdog timer shuts the connection down once the deadline
    passes so a server trickling bytes cannot hold a worker. `close()` does the
    same for every response still being read.
    """

    def __init__(self, config: CrawlConfig | None = None) -> None:
        self.config = config or CrawlConfig()

        self._thread_local = threading.local()
        self._sessions_lock = threading.Lock()
        self._sessions: list[requests.Session] = []
        self._inflight: set[requests.Response] = set()
        self._closed = False

    def fetch(self, url: str, timeout: float) -> FetchOutcome:
        if not is_http_url(url):
            return FetchFailure(url=url, reason=FailureReason.INVALID_URL, message="Not an http(s) URL")

        if self.closed:
            return FetchFailure(url=url, reason=FailureReason.CANCELLED, message="Fetcher is closed")

        started = time.monotonic()
        deadline = started + timeout
        try:
            session = self._thread_local_session()
            response = session.get(
                url,
                headers=self.config.headers(),
                timeout=timeout,
                allow_redirects=True,
                stream=True,
            )
        except requests.Timeout as exc:
            return FetchFailure(url=url, reason=FailureReason.TIMEOUT, message=_describe(exc))
        except requests.ConnectionError as exc:
            reason = FailureReason.CANCELLED if self.closed else FailureReason.CONNECTION_ERROR
            return FetchFailure(url=url, reason=reason, message=_describe(exc))
        except requests.RequestException as exc:
            return FetchFailure(url=url, reason=FailureReason.REQUEST_ERROR, message=_describe(exc))

        try:
            if not 200 <= response.status_code < 300:
                return FetchFailure(
                    url=url,
                    reason=FailureReason.HTTP_STATUS,
                    message=f"HTTP status {response.status_code}",
                    status_code=response.status_code,
                )
            body_or_failure = self._read_body(url, response, deadline, timeout)
        finally:
            response.close()

        if isinstance(body_or_failure, FetchFailure):
            return body_or_failure

        return FetchSuccess(
            PageContent(
                requested_url=url,
                final_url=response.url or url,
                status_code=response.status_code,
                content_type=response.headers.get("Content-Type"),
                body=body_or_failure,
                elapsed_ms=int((time.monotonic() - started) * 1000),
            )
        )

    def _read_body(
        self,
        url: str,
        response: requests.Response,
        deadline: float,
        timeout: float,
    ) -> bytes | FetchFailure:
        with self._sessions_lock:
            if self._closed:
                return FetchFailure(url=url, reason=FailureReason.CANCELLED, message="Fetcher is closed")
            self._inflight.add(response)

        expired = threading.Event()

        def expire() -> None:
            expired.set()
            _abort(response)

        watchdog = threading.Timer(max(0.0, deadline - time.monotonic()), expire)
        watchdog.daemon = True
        watchdog.start()

        chunks: list[bytes] = []
        try:
            for chunk in response.iter_content(chunk_size=READ_CHUNK_BYTES):
                if expired.is_set() or self.closed or time.monotonic() >= deadline:
                    break
                chunks.append(chunk)
        except requests.RequestException as exc:
            cut_off = self._cut_off(url, expired, deadline, timeout)
            if cut_off is not None:
                return cut_off
            reason = (
                FailureReason.CONNECTION_ERROR
                if isinstance(exc, (requests.ConnectionError, requests.exceptions.ChunkedEncodingError))
                else FailureReason.REQUEST_ERROR
            )
            return FetchFailure(url=url, reason=reason, message=_describe(exc))
        finally:
            watchdog.cancel()
            with self._sessions_lock:
                self._inflight.discard(response)

        # An aborted read can also end as a short, error-free body.
        cut_off = self._cut_off(url, expired, deadline, timeout)
        if cut_off is not None:
            return cut_off
        return b"".join(chunks)

    def _cut_off(
        self,
        url: str,
        expired: threading.Event,
        deadline: float,
        timeout: float,
    ) -> FetchFailure | None:
        if self.closed:
            return FetchFailure(url=url, reason=FailureReason.CANCELLED, message="Fetcher closed mid-request")
        if expired.is_set() or time.monotonic() >= deadline:
            return FetchFailure(
                url=url,
                reason=FailureReason.TIMEOUT,
                message=f"Response not complete within {timeout:.1f}s",
            )
        return None

    @property
    def closed(self) -> bool:
        with self._sessions_lock:
            return self._closed

    def close(self) -> None:
        """Refuse new fetches, abort responses being read, and close every session."""

        with self._sessions_lock:
            self._closed = True
            sessions, self._sessions = self._sessions, []
            inflight = list(self._inflight)

        for response in inflight:
            _abort(response)
        for session in sessions:
            session.close()

    def __enter__(self) -> "HttpPageFetcher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _thread_local_session(self) -> requests.Session:
        session = getattr(self._thread_local, "session", None)
        if session is None:
            session = requests.Session()
            with self._sessions_lock:
                self._sessions.append(session)
            self._thread_local.session = session
        return session


def _abort(response: requests.Response) -> None:
    """Shut down the socket under a streamed response so a blocked read returns."""

    connection = getattr(response.raw, "connection", None)
    sock = getattr(connection, "sock", None)
    if sock is None:
        return
    try:
        # Base-class shutdown leaves TLS state to the reading thread.
        socket.socket.shutdown(sock, socket.SHUT_RDWR)
    except OSError:
        # Reader already finished and closed the socket.
        return


def _describe(exc: BaseException) -> str:
    return f"{exc.__class__.__name__}: {exc}"


def is_transient(outcome: FetchOutcome) -> bool:
    """Return True for failures worth retrying: timeouts, resets, 408/429/5xx."""

    if outcome.ok:
        return False
    if outcome.reason in {FailureReason.TIMEOUT, FailureReason.CONNECTION_ERROR}:
        return True
    if outcome.reason == FailureReason.HTTP_STATUS and outcome.status_code is not None:
        return outcome.status_code in RETRYABLE_STATUS_CODES or outcome.status_code >= 500
    return False


class RetryingFetcher:
    """Retry transient failures of an inner fetcher with linear backoff.

    Retries are a policy layered above the fetch call; the crawl engine itself
    never retries. All attempts share the caller's `timeout` budget: each one
    gets what is left, and no retry starts once the budget cannot cover the
    backoff, so the wrapped fetch still honours the `PageFetcher` contract.
    """

    def __init__(
        self,
        inner: PageFetcher,
        *,
        retries: int = 1,
        backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS,
    ) -> None:
        if retries < 0:
            raise ValueError("retries must be >= 0")
        if backoff_seconds < 0:
            raise ValueError("backoff_seconds must be >= 0")
        self.inner = inner
        self.retries = retries
        self.backoff_seconds = backoff_seconds

    def fetch(self, url: str, timeout: float) -> FetchOutcome:
        deadline = time.monotonic() + timeout
        outcome = self.inner.fetch(url, timeout)

        for attempt in range(1, self.retries + 1):
            if not is_transient(outcome):
                break

            backoff = self.backoff_seconds * attempt
            remaining = deadline - time.monotonic() - backoff
            if remaining <= 0:
                break
            if backoff > 0:
                time.sleep(backoff)
            outcome = self.inner.fetch(url, remaining)

        return outcome

    def close(self) -> None:
        close = getattr(self.inner, "close", None)
        if callable(close):
            close()


class SerializedFetcher:
    """Serialize calls into a fetcher that is not safe for concurrent use.

    Time spent waiting for the lock counts against the caller's `timeout`.
    """

    def __init__(self, inner: PageFetcher) -> None:
        self.inner = inner
        self._lock = threading.Lock()

    def fetch(self, url: str, timeout: float) -> FetchOutcome:
        deadline = time.monotonic() + timeout
        if not self._lock.acquire(timeout=timeout):
            return FetchFailure(
                url=url,
                reason=FailureReason.TIMEOUT,
                message="Timed out waiting for the serialized fetcher",
            )
        try:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return FetchFailure(
                    url=url,
                    reason=FailureReason.TIMEOUT,
                    message="Timed out waiting for the serialized fetcher",
                )
            return self.inner.fetch(url, remaining)
        finally:
            self._lock.release()

    def close(self) -> None:
        close = getattr(self.inner, "close", None)
        if callable(close):
            close()


__all__ = [
    "HttpPageFetcher",
    "PageFetcher",
    "RetryingFetcher",
    "SerializedFetcher",
    "is_transient",
]
