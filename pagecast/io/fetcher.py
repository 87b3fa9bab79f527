"""HTTP fetch delegate for remote pages.

Responsibilities:
- Fetch raw page markup with a browser-like user agent and bounded timeout.
- Return any non-exception response as usable input, whatever its status code.
- Map transport failures to `FetchError`.
"""

from __future__ import annotations

import socket
from typing import Protocol

import requests

from ..errors import FetchError
from ..models.datatypes import FetchedDocument

_DEFAULT_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


class DocumentFetcher(Protocol):
    """Protocol for fetch delegates used by the fetch stage."""

    def fetch(self, url: str) -> FetchedDocument:
        """Return raw markup and transport metadata for `url`."""


class HttpFetcher:
    """requests-based fetch delegate."""

    def __init__(
        self,
        *,
        timeout_seconds: float = 30.0,
        user_agent: str = _DEFAULT_USER_AGENT,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.user_agent = user_agent

    def fetch(self, url: str) -> FetchedDocument:
        try:
            response = requests.get(
                url,
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as exc:
            if isinstance(exc, requests.Timeout):
                raise FetchError(
                    f"Fetching `{url}` timed out after {self.timeout_seconds:g} seconds.",
                    failure_kind="timeout",
                ) from exc
            raise FetchError(
                f"Fetching `{url}` failed: {exc}",
                hint="Check the URL and network connectivity, then process the entry again.",
            ) from exc
        except (TimeoutError, socket.timeout) as exc:
            raise FetchError(
                f"Fetching `{url}` timed out after {self.timeout_seconds:g} seconds.",
                failure_kind="timeout",
            ) from exc

        return FetchedDocument(
            content=response.text,
            status_code=response.status_code,
            headers={str(key): str(value) for key, value in response.headers.items()},
        )
