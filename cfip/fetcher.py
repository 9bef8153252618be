from __future__ import annotations
import logging
import threading
import time
from urllib.parse import urljoin

import requests


logger = logging.getLogger(__name__)

REDIRECT_STATUSES = (301, 302)


class FetchError(Exception):
    """A single source could not be retrieved.

    ``kind`` is one of ``status``, ``redirect``, ``timeout`` or ``transport``.
    """

    def __init__(self, reason: str, kind: str = "transport", url: str = ""):
        super().__init__(reason)
        self.reason = reason
        self.kind = kind
        self.url = url


class Fetcher:
    """HTTP GET with manual redirects and one wall-clock deadline per fetch.

    Without an injected ``session`` every thread gets its own
    ``requests.Session``, so aggregator workers never share one.
    """

    def __init__(self,
                 timeout: float = 10.0,
                 max_redirects: int = 5,
                 user_agent: str = "cfip-aggregator/0.1",
                 session: requests.Session | None = None,
                 clock=time.monotonic):
        self.timeout = timeout
        self.max_redirects = max_redirects
        self.user_agent = user_agent
        self.clock = clock
        self._shared = self._configure(session) if session is not None else None
        self._local = threading.local()

    def _configure(self, session: requests.Session) -> requests.Session:
        session.headers.update({
            "User-Agent": self.user_agent,
            "Accept": "application/json,text/html;q=0.9,text/plain;q=0.8,*/*;q=0.5",
        })
        return session

    @property
    def session(self) -> requests.Session:
        if self._shared is not None:
            return self._shared
        s = getattr(self._local, "session", None)
        if s is None:
            s = self._local.session = self._configure(requests.Session())
        return s

    def fetch(self, url: str) -> str:
        """Return the body of ``url``, following up to ``max_redirects`` 301/302 hops.

        One deadline covers the whole redirect chain and the body download.
        """
        deadline = self.clock() + self.timeout
        current = url
        for _ in range(self.max_redirects + 1):
            r = self._get(current, deadline)
            try:
                if r.status_code in REDIRECT_STATUSES:
                    location = r.headers.get("Location")
                    if not location:
                        raise FetchError(f"HTTP {r.status_code} without Location", "redirect", current)
                    nxt = urljoin(current, location)
                    logger.debug(f"[fetch] {current} -> {nxt} ({r.status_code})")
                    current = nxt
                    continue
                if not 200 <= r.status_code < 300:
                    raise FetchError(f"HTTP {r.status_code}", "status", current)
                return self._read_body(r, current, deadline)
            finally:
                r.close()
        raise FetchError(f"too many redirects (> {self.max_redirects})", "redirect", url)

    def _remaining(self, url: str, deadline: float) -> float:
        left = deadline - self.clock()
        if left <= 0:
            raise FetchError("Request timeout", "timeout", url)
        return left

    def _get(self, url: str, deadline: float) -> requests.Response:
        try:
            return self.session.get(
                url,
                timeout=self._remaining(url, deadline),
                allow_redirects=False,
                stream=True,
            )
        except requests.Timeout as e:
            raise FetchError("Request timeout", "timeout", url) from e
        except requests.RequestException as e:
            raise FetchError(f"{type(e).__name__}: {e}", "transport", url) from e

    def _abort(self, r: requests.Response, url: str, expired: threading.Event) -> None:
        expired.set()
        logger.debug(f"[fetch] {url}: deadline reached, cutting body read")
        if r.raw is None:
            return
        try:
            # shut the socket's read side so a blocked recv returns at once
            r.raw.shutdown()
        except (OSError, ValueError, RuntimeError) as e:
            logger.debug(f"[fetch] {url}: socket shutdown failed: {e}")

    def _read_body(self, r: requests.Response, url: str, deadline: float) -> str:
        expired = threading.Event()
        watchdog = threading.Timer(self._remaining(url, deadline), self._abort, args=(r, url, expired))
        watchdog.daemon = True
        watchdog.start()
        chunks = []
        try:
            for chunk in r.iter_content(chunk_size=16384):
                if expired.is_set():
                    break
                self._remaining(url, deadline)
                if chunk:
                    chunks.append(chunk)
        except requests.Timeout as e:
            raise FetchError("Request timeout", "timeout", url) from e
        except (requests.RequestException, OSError, ValueError) as e:
            if expired.is_set():
                raise FetchError("Request timeout", "timeout", url) from e
            if isinstance(e, requests.RequestException):
                raise FetchError(f"{type(e).__name__}: {e}", "transport", url) from e
            raise
        finally:
            watchdog.cancel()
        if expired.is_set():
            # a close-delimited body ends quietly on shutdown; it is still partial
            raise FetchError("Request timeout", "timeout", url)
        encoding = r.encoding or "utf-8"
        try:
            return b"".join(chunks).decode(encoding, errors="replace")
        except LookupError:
            return b"".join(chunks).decode("utf-8", errors="replace")
