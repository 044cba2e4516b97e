"""Shared transport helpers used by the resolver, POM parser and metadata reader.

Encapsulates request/timeout error handling so callers only ever see
"bytes" or "not here". A repository that times out or refuses connections
is treated exactly like one that does not have the artifact, so resolution
falls through to the next repository.
"""
from __future__ import annotations

import logging
import os
import tempfile
import time
from typing import Any, Dict, Optional
from urllib.parse import unquote, urlsplit

import requests

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)


def uri_to_path(uri: str) -> str:
    """Convert a ``file://`` URI (or a plain path) into a filesystem path."""
    if uri.startswith("file:"):
        parts = urlsplit(uri)
        path = unquote(parts.path)
        if parts.netloc and parts.netloc != "localhost":
            path = f"//{parts.netloc}{path}"
        return path
    return uri


def is_file_uri(uri: str) -> bool:
    """Return True for ``file:`` URIs and scheme-less paths."""
    scheme = urlsplit(uri).scheme
    return scheme in ("", "file")


class Transport:
    """Fetches bytes from ``file://`` and ``http(s)://`` locations.

    One instance is shared by a resolution pass; it holds a
    ``requests.Session`` so repeated probes against the same host reuse
    connections.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        retries: Optional[int] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.timeout = timeout if timeout is not None else Constants.REQUEST_TIMEOUT
        self.retries = max(1, retries if retries is not None else Constants.HTTP_RETRY_MAX)
        self.headers = {"User-Agent": Constants.USER_AGENT}
        if headers:
            self.headers.update(headers)
        self._session: Optional[requests.Session] = None

    @property
    def session(self) -> requests.Session:
        """Lazily created HTTP session."""
        if self._session is None:
            self._session = requests.Session()
            self._session.headers.update(self.headers)
        return self._session

    def close(self) -> None:
        """Release the HTTP session, if any."""
        if self._session is not None:
            self._session.close()
            self._session = None

    def fetch(self, url: str) -> Optional[bytes]:
        """Return the content at ``url`` or None when it is not available."""
        if is_file_uri(url):
            return self._fetch_file(url)
        return self._fetch_http(url)

    def fetch_text(self, url: str, encoding: str = "utf-8") -> Optional[str]:
        """Like :meth:`fetch`, decoded to text."""
        content = self.fetch(url)
        if content is None:
            return None
        return content.decode(encoding, errors="replace")

    def exists(self, url: str) -> bool:
        """Return True when ``url`` can be fetched."""
        if is_file_uri(url):
            return os.path.isfile(uri_to_path(url))
        return self.fetch(url) is not None

    def _fetch_file(self, url: str) -> Optional[bytes]:
        path = uri_to_path(url)
        if not os.path.isfile(path):
            if is_debug_enabled(logger):
                logger.debug(
                    "File not present",
                    extra=extra_context(
                        event="file_read", component="transport", action="read",
                        outcome="not_found", target=path,
                    ),
                )
            return None
        with open(path, "rb") as fh:
            return fh.read()

    def _fetch_http(self, url: str) -> Optional[bytes]:
        safe_target = safe_url(url)
        for attempt in range(self.retries):
            with Timer() as t:
                try:
                    if is_debug_enabled(logger):
                        logger.debug(
                            "HTTP request",
                            extra=extra_context(
                                event="http_request", component="transport", action="GET",
                                target=safe_target, attempt=attempt + 1,
                            ),
                        )
                    response = self.session.get(url, timeout=self.timeout)
                except requests.Timeout:
                    logger.warning(
                        "Request to %s timed out after %s seconds",
                        safe_target,
                        self.timeout,
                        extra=extra_context(
                            event="http_error", component="transport", action="GET",
                            outcome="timeout", target=safe_target, attempt=attempt + 1,
                        ),
                    )
                    return None
                except requests.RequestException as exc:  # includes ConnectionError
                    logger.debug(
                        "Connection error for %s: %s",
                        safe_target,
                        exc,
                        extra=extra_context(
                            event="http_error", component="transport", action="GET",
                            outcome="connection_error", target=safe_target, attempt=attempt + 1,
                        ),
                    )
                    self._backoff(attempt)
                    continue

            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP response",
                    extra=extra_context(
                        event="http_response", component="transport", action="GET",
                        status_code=response.status_code, duration_ms=t.duration_ms(),
                        target=safe_target,
                    ),
                )
            if response.status_code == 200:
                return response.content
            if response.status_code < 500:
                return None
            self._backoff(attempt)
        return None

    def _backoff(self, attempt: int) -> None:
        if attempt < self.retries - 1:
            time.sleep(Constants.HTTP_RETRY_BASE_DELAY_SEC * (2 ** attempt))


def write_atomic(path: str, content: Any) -> None:
    """Write ``content`` (bytes or str) to ``path`` via a temp file and rename.

    A reader never observes a partially written file; on any failure the
    temp file is removed and the destination is left untouched.
    """
    directory = os.path.dirname(path) or "."
    os.makedirs(directory, exist_ok=True)
    data = content.encode("utf-8") if isinstance(content, str) else content
    fd, tmp_path = tempfile.mkstemp(prefix=".plydep-", suffix=".tmp", dir=directory)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise
