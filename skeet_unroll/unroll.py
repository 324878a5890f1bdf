from __future__ import annotations

from typing import Any, Protocol

from .cache import ThreadCache, UnrollResult
from .config_schema import DEFAULT_CDN_TEMPLATE, AppConfig
from .errors import FeedError
from .feed_client import BlueskyFeedClient, post_id_from_url
from .identity import PostPageFetcher
from .post import ErrorResult, ThreadResult
from .raw import thread_root_from_response
from .request_log import RequestLog
from .storage import KeyValueStore
from .thread import reconstruct_thread


class DidResolver(Protocol):
    def resolve_did(self, url: str) -> str | None: ...


class PostThreadSource(Protocol):
    def fetch_post_thread(self, did: str, post_id: str) -> dict[str, Any] | None: ...


class ThreadUnroller:
    """
    Turn a post URL into its unrolled thread.

    Cache lookup first; on a miss: resolve the author's did from the post page,
    fetch the reply tree, reduce it to the self-reply chain, store the result.
    FeedError from the upstream API is not caught here.
    """

    def __init__(
        self,
        *,
        cache: ThreadCache,
        pages: DidResolver,
        feed: PostThreadSource,
        log: RequestLog | None = None,
        cdn_template: str = DEFAULT_CDN_TEMPLATE,
    ) -> None:
        self._cache = cache
        self._pages = pages
        self._feed = feed
        self._log = log
        self._cdn_template = cdn_template

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        *,
        store: KeyValueStore,
        log: RequestLog | None = None,
    ) -> "ThreadUnroller":
        return cls(
            cache=ThreadCache(store),
            pages=PostPageFetcher(config.page, user_agent=config.feed.user_agent),
            feed=BlueskyFeedClient(config.feed),
            log=log,
            cdn_template=config.normalize.cdn_template,
        )

    def unroll(self, post_url: str | None) -> UnrollResult:
        url = post_url or ""
        if not url.strip():
            self._warn("page_unresolved", url, reason="missing_url")
            return ErrorResult()

        cached = self._cache.get(url)
        if cached is not None:
            self._info("cache_hit", url, posts=len(cached.thread))
            return cached

        self._info("cache_miss", url)
        return self._cache.get_or_compute(url, lambda: self._build(url))

    def _build(self, url: str) -> UnrollResult:
        post_id = post_id_from_url(url)
        if post_id is None:
            self._warn("page_unresolved", url, reason="no_post_id")
            return ErrorResult()

        did = self._pages.resolve_did(url)
        if did is None:
            self._warn("page_unresolved", url, reason="no_did")
            return ErrorResult()

        try:
            payload = self._feed.fetch_post_thread(did, post_id)
            if payload is None:
                raise FeedError("getPostThread returned a body that is not a JSON object")
            root = thread_root_from_response(payload)
        except FeedError as e:
            if self._log is not None:
                self._log.error("feed_failed", post_url=url, did=did, post_id=post_id, reason=str(e))
            raise

        thread = reconstruct_thread(root, cdn_template=self._cdn_template)
        author = root.post.author if root.post is not None else {}
        self._info("thread_fetched", url, did=did, post_id=post_id, posts=len(thread))

        return ThreadResult(author=author, thread=tuple(thread))

    def _info(self, event: str, url: str, **data: Any) -> None:
        if self._log is not None:
            self._log.info(event, post_url=url, **data)

    def _warn(self, event: str, url: str, **data: Any) -> None:
        if self._log is not None:
            self._log.warning(event, post_url=url, **data)
