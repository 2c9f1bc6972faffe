"""HTTP fetcher with a wall-clock deadline and a single https -> http origin fallback."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import datetime, timezone
from threading import Event, Timer
from urllib.parse import urlparse

from requests import Response, Session
from requests.adapters import HTTPAdapter
from requests.exceptions import ConnectionError as RequestsConnectionError
from requests.exceptions import RequestException, Timeout
from urllib3.util.retry import Retry

from .errors import FetchError, FetchTimeoutError, HttpStatusError, NetworkError, ValidationError
from .models import FetchResult
from .validation import is_supported_url

READ_CHUNK_SIZE = 16384


def make_session(user_agent: str, pool_size: int = 16) -> Session:
    """Create a requests session with a browser user agent and no automatic retries."""
    session = Session()
    session.headers.update(
        {
            "User-Agent": user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
        }
    )
    adapter = HTTPAdapter(
        pool_connections=pool_size,
        pool_maxsize=pool_size,
        max_retries=Retry(total=0, redirect=5, raise_on_status=False),
    )
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def http_fallback_url(url: str) -> str | None:
    """Return the bare ``http://host`` origin for an https URL, else None."""
    parsed = urlparse(url)
    if parsed.scheme != "https" or not parsed.netloc:
        return None
    return f"http://{parsed.netloc}"


def should_fall_back(url: str, exc: FetchError) -> bool:
    """An error status on a subpage is an answer about that page, not about the scheme."""
    if isinstance(exc, HttpStatusError):
        return urlparse(url).path in {"", "/"}
    return True


def decode_body(content: bytes, encoding: str | None) -> str:
    try:
        return content.decode(encoding or "utf-8", errors="replace")
    except LookupError:
        return content.decode("utf-8", errors="replace")


class RequestsFetcher:
    """Requests-based fetcher. Raises FetchError subclasses instead of returning blanks.

    ``timeout`` is a deadline for the whole call, fallback included. The body is
    streamed, and a watchdog shuts the socket down once the deadline passes, so
    a server trickling bytes cannot hold a worker past it.
    """

    def __init__(
        self,
        *,
        session: Session,
        logger: logging.Logger,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._session = session
        self._logger = logger
        self._clock = clock

    def fetch(self, url: str, timeout: float) -> FetchResult:
        if not is_supported_url(url):
            raise ValidationError(f"Unsupported URL: {url!r}")
        deadline = self._clock() + timeout
        try:
            return self._get(url, timeout, deadline)
        except FetchError as exc:
            fallback = http_fallback_url(url) if should_fall_back(url, exc) else None
            if fallback is None or self._clock() >= deadline:
                raise
            self._logger.debug("Retrying %s over http after %s error: %s", url, exc.kind, exc)
            try:
                return self._get(fallback, timeout, deadline)
            except NetworkError:
                raise exc from None

    def _timed_out(self, url: str, timeout: float) -> FetchTimeoutError:
        return FetchTimeoutError(f"Timed out after {timeout:g}s fetching {url}", url=url)

    def _get(self, url: str, timeout: float, deadline: float) -> FetchResult:
        remaining = deadline - self._clock()
        if remaining <= 0:
            raise self._timed_out(url, timeout)
        try:
            response = self._session.get(url, timeout=remaining, stream=True)
        except Timeout as exc:
            raise self._timed_out(url, timeout) from exc
        except RequestsConnectionError as exc:
            raise NetworkError(f"Could not connect to {url}: {exc}", url=url) from exc
        except RequestException as exc:
            raise NetworkError(f"Request failed for {url}: {exc}", url=url) from exc
        try:
            if response.status_code >= 400:
                raise HttpStatusError(
                    f"HTTP {response.status_code} from {url}",
                    url=url,
                    status_code=response.status_code,
                )
            body = self._read_body(response, url, timeout, deadline)
        finally:
            response.close()
        return FetchResult(
            url=str(getattr(response, "url", None) or url),
            status_ok=True,
            body=body,
            fetched_at=datetime.now(timezone.utc),
        )

    def _read_body(self, response: Response, url: str, timeout: float, deadline: float) -> str:
        expired = Event()

        def abort() -> None:
            expired.set()
            response.raw.shutdown()

        watchdog = Timer(max(deadline - self._clock(), 0.0), abort)
        watchdog.daemon = True
        watchdog.start()
        chunks: list[bytes] = []
        try:
            for chunk in response.iter_content(chunk_size=READ_CHUNK_SIZE):
                if expired.is_set() or self._clock() >= deadline:
                    raise self._timed_out(url, timeout)
                chunks.append(chunk)
        except (RequestException, OSError) as exc:
            if expired.is_set() or self._clock() >= deadline:
                raise self._timed_out(url, timeout) from exc
            raise NetworkError(f"Read failed for {url}: {exc}", url=url) from exc
        finally:
            watchdog.cancel()
        if expired.is_set():
            raise self._timed_out(url, timeout)
        return decode_body(b"".join(chunks), response.encoding)
