"""
fetch.py

Responsibility: isolate all HTTP access.

This module must be the only place that:
- Sends HTTP requests (spec documents, template archives)
- Interprets HTTP error responses

Everything else (installer, generator entry points) uses this client.
"""

from __future__ import annotations

from pathlib import Path

import requests

from specgen import __version__
from specgen.errors import SpecFetchError


class HttpClient:
    def __init__(self, timeout: float = 30.0) -> None:
        self._timeout = timeout

    def _headers(self) -> dict[str, str]:
        return {"User-Agent": f"specgen/{__version__}"}

    def _request(self, url: str, *, stream: bool = False) -> requests.Response:
        try:
            r = requests.get(url, headers=self._headers(), timeout=self._timeout, stream=stream)
        except requests.RequestException as e:
            raise SpecFetchError(f"Unable to fetch {url}: {e}") from e
        if r.status_code >= 400:
            raise SpecFetchError(f"HTTP error {r.status_code} fetching {url}: {r.reason}")
        return r

    def get_text(self, url: str) -> str:
        r = self._request(url)
        # Spec documents are UTF-8 unless the server says otherwise.
        if not r.encoding or r.encoding.lower() == "iso-8859-1":
            r.encoding = "utf-8"
        return r.text

    def download(self, url: str, destination: Path) -> Path:
        """
        Stream `url` into `destination` and return it.
        """
        r = self._request(url, stream=True)
        destination.parent.mkdir(parents=True, exist_ok=True)
        with r, destination.open("wb") as fh:
            for chunk in r.iter_content(chunk_size=64 * 1024):
                if chunk:
                    fh.write(chunk)
        return destination


def fetch_spec(url: str, *, timeout: float = 30.0) -> str:
    return HttpClient(timeout).get_text(url)
