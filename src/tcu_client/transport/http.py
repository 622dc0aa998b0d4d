"""
tcu-client — default HTTP transport

File: src/tcu_client/transport/http.py
Last updated: 2026-10-18

Purpose
- ``requests``-backed Transport posting XML envelopes to the TCU base URL.

What should be included in this file
- Pooled session with fixed XML headers and TLS verification control.
- Mapping of requests exceptions onto transport error types.

Functional requirements
- No socket-level retries here; the dispatcher owns the retry budget.
- HTTP error statuses are returned, never raised.

Non-functional requirements
- Error text is redacted before it leaves this module.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from types import TracebackType

import requests
from requests.adapters import HTTPAdapter

from tcu_client.constants import DEFAULT_USER_AGENT, XML_CONTENT_TYPE, XML_ENCODING
from tcu_client.security.redaction import redact_text
from tcu_client.transport.base import (
    TransportConnectionError,
    TransportResponse,
    TransportTimeoutError,
)

logger = logging.getLogger(__name__)


class RequestsTransport:
    """Transport over a ``requests.Session``."""

    def __init__(
        self,
        base_url: str,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        verify_tls: bool = True,
        pool_maxsize: int = 10,
        session: requests.Session | None = None,
        extra_headers: Mapping[str, str] | None = None,
    ) -> None:
        normalized = base_url.strip().rstrip("/")
        if not normalized.startswith(("http://", "https://")):
            raise ValueError("base_url must be an http(s) URL")
        self._base_url = normalized
        self._verify_tls = verify_tls
        self._owns_session = session is None
        self._session = session if session is not None else self._create_session(pool_maxsize)
        self._session.headers.update(
            {
                "Content-Type": f"{XML_CONTENT_TYPE}; charset={XML_ENCODING}",
                "Accept": XML_CONTENT_TYPE,
                "User-Agent": user_agent,
            }
        )
        if extra_headers:
            self._session.headers.update(dict(extra_headers))

    @property
    def base_url(self) -> str:
        return self._base_url

    @staticmethod
    def _create_session(pool_maxsize: int) -> requests.Session:
        session = requests.Session()
        adapter = HTTPAdapter(max_retries=0, pool_maxsize=pool_maxsize)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session

    def url_for(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    def send(self, path: str, method: str, body: bytes, timeout: float) -> TransportResponse:
        url = self.url_for(path)
        try:
            response = self._session.request(
                method,
                url,
                data=body,
                timeout=timeout,
                verify=self._verify_tls,
            )
        except requests.Timeout as exc:
            raise TransportTimeoutError(
                f"{method} {url} timed out after {timeout}s: {redact_text(str(exc))}"
            ) from exc
        except requests.ConnectionError as exc:
            raise TransportConnectionError(
                f"{method} {url} failed to connect: {redact_text(str(exc))}"
            ) from exc
        except requests.RequestException as exc:
            raise TransportConnectionError(
                f"{method} {url} failed: {redact_text(str(exc))}"
            ) from exc

        logger.debug(
            "tcu transport response",
            extra={"url": url, "http_status": response.status_code, "bytes": len(response.content)},
        )
        return TransportResponse(
            status=response.status_code,
            body=response.content,
            headers=dict(response.headers),
        )

    def close(self) -> None:
        if self._owns_session:
            self._session.close()

    def __enter__(self) -> RequestsTransport:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


__all__ = ["RequestsTransport"]
