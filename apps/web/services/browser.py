"""Browser-boundary helpers: current URL, in-place rewrite, full navigation."""

from __future__ import annotations

from typing import Iterable, Optional, Protocol
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit


class BrowserLocation(Protocol):
    """What the connection flow needs from the browser's location bar."""

    @property
    def url(self) -> str: ...

    def replace(self, url: str) -> None:
        """Rewrite the current URL without navigating (history.replaceState)."""

    def assign(self, url: str) -> None:
        """Leave the app with a full-page navigation."""


class RequestLocation:
    """Location bound to one inbound HTTP request; records what the flow asked for."""

    def __init__(self, url: str):
        self._url = url
        self.replaced_url: Optional[str] = None
        self.navigated_to: Optional[str] = None

    @property
    def url(self) -> str:
        return self.replaced_url or self._url

    def replace(self, url: str) -> None:
        self.replaced_url = url

    def assign(self, url: str) -> None:
        self.navigated_to = url


def query_param(url: str, name: str) -> Optional[str]:
    for key, value in parse_qsl(urlsplit(url).query, keep_blank_values=True):
        if key == name:
            return value
    return None


def strip_query_params(url: str, names: Iterable[str]) -> str:
    """Return url without the given query parameters, keeping everything else in order."""
    drop = set(names)
    parts = urlsplit(url)
    kept = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k not in drop]
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(kept), parts.fragment))
