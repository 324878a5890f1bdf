from __future__ import annotations

import requests
from bs4 import BeautifulSoup

from .config_schema import PageConfig


def did_from_document(doc: BeautifulSoup | None, *, selector: str = "p#bsky_did") -> str | None:
    """
    Read the author's did from a parsed bsky.app post page.

    The page embeds it in a marker element (<p id="bsky_did">). Returns None
    when the document or the marker is missing.
    """
    if doc is None:
        return None

    element = doc.select_one(selector)
    if element is None:
        return None

    did = element.get_text().strip()
    return did or None


class PostPageFetcher:
    """Fetch a post's public page and parse it for the did marker."""

    def __init__(
        self,
        page: PageConfig | None = None,
        *,
        session: requests.Session | None = None,
        user_agent: str | None = None,
    ) -> None:
        self._page = page or PageConfig()
        self._session = session or requests.Session()
        if user_agent:
            self._session.headers.setdefault("User-Agent", user_agent)

    def fetch(self, url: str) -> BeautifulSoup | None:
        """Return the parsed page, or None if it cannot be fetched."""
        try:
            resp = self._session.get(url, timeout=self._page.timeout_secs)
        except requests.exceptions.RequestException:
            return None

        return BeautifulSoup(resp.text, "html.parser")

    def resolve_did(self, url: str) -> str | None:
        return did_from_document(self.fetch(url), selector=self._page.did_selector)
