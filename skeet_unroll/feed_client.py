from __future__ import annotations

from typing import Any
from urllib.parse import urlsplit

import requests

from .config_schema import FeedConfig
from .errors import FeedError

GET_POST_THREAD = "app.bsky.feed.getPostThread"


def post_id_from_url(url: str) -> str | None:
    """
    Return the record key of a post URL, i.e. its last path segment.

    https://bsky.app/profile/alice.bsky.social/post/3kabc -> 3kabc
    """
    value = (url or "").strip()
    if not value:
        return None

    try:
        path = urlsplit(value).path
    except ValueError:
        return None

    segment = path.rstrip("/").rsplit("/", 1)[-1]
    return segment or None


def post_at_uri(did: str, post_id: str) -> str:
    return f"at://{did}/app.bsky.feed.post/{post_id}"


class BlueskyFeedClient:
    """
    Minimal client for the public AppView getPostThread endpoint.

    One GET per call: no auth, no retries, no pagination.
    """

    def __init__(
        self,
        feed: FeedConfig | None = None,
        *,
        session: requests.Session | None = None,
    ) -> None:
        self._feed = feed or FeedConfig()
        self._session = session or requests.Session()
        self._session.headers.setdefault("User-Agent", self._feed.user_agent)

    def post_thread_url(self, did: str, post_id: str) -> str:
        return f"{self._feed.api_base}/xrpc/{GET_POST_THREAD}?uri={post_at_uri(did, post_id)}"

    def fetch_post_thread(self, did: str, post_id: str) -> dict[str, Any] | None:
        """
        Fetch the full reply tree below a post.

        Returns the decoded JSON object, or None when the body is not a JSON
        object. Raises FeedError when the request itself fails.
        """
        url = self.post_thread_url(did, post_id)

        try:
            resp = self._session.get(url, timeout=self._feed.timeout_secs)
        except requests.exceptions.RequestException as e:
            raise FeedError(f"getPostThread request failed: {e}") from e

        try:
            data = resp.json()
        except ValueError:
            return None

        return data if isinstance(data, dict) else None
