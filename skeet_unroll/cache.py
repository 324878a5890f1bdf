from __future__ import annotations

from contextlib import contextmanager
from threading import Lock
from typing import Callable, Iterator

from .errors import StorageError
from .post import ErrorResult, ThreadResult
from .storage import KeyValueStore

UnrollResult = ThreadResult | ErrorResult


class ThreadCache:
    """
    Write-once memo of unrolled threads, keyed by the raw post URL.

    URLs are used verbatim: a trailing slash or a different query string is a
    different key. Only successful results are stored, and a stored result is
    never replaced.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store
        self._guard = Lock()
        self._key_locks: dict[str, Lock] = {}
        self._key_users: dict[str, int] = {}

    def get(self, url: str) -> ThreadResult | None:
        raw = self._store.get(url)
        if raw is None:
            return None
        if not isinstance(raw, dict):
            raise StorageError(f"Cached value for {url!r} is not an object")
        try:
            return ThreadResult.from_dict(raw)
        except (KeyError, TypeError, ValueError) as e:
            raise StorageError(f"Cached value for {url!r} could not be read: {e}") from e

    def put(self, url: str, result: ThreadResult) -> bool:
        """Persist result unless url already has one. Returns True when written."""
        if not isinstance(result, ThreadResult):
            raise ValueError("only successful thread results can be cached")
        with self._locked(url):
            return self._put_once(url, result)

    def get_or_compute(self, url: str, compute: Callable[[], UnrollResult]) -> UnrollResult:
        """
        Return the cached result for url, or run compute once and store it.

        Concurrent callers for the same url wait for the first one instead of
        repeating the upstream fetches. Error results are handed back but not
        stored, so the next caller tries again.
        """
        with self._locked(url):
            cached = self.get(url)
            if cached is not None:
                return cached

            result = compute()
            if isinstance(result, ThreadResult):
                self._put_once(url, result)
            return result

    def _put_once(self, url: str, result: ThreadResult) -> bool:
        # Caller holds the per-key lock.
        if self._store.get(url) is not None:
            return False
        self._store.set(url, result.to_dict())
        return True

    @contextmanager
    def _locked(self, url: str) -> Iterator[None]:
        with self._guard:
            lock = self._key_locks.setdefault(url, Lock())
            self._key_users[url] = self._key_users.get(url, 0) + 1

        try:
            with lock:
                yield
        finally:
            with self._guard:
                remaining = self._key_users[url] - 1
                if remaining:
                    self._key_users[url] = remaining
                else:
                    del self._key_users[url]
                    del self._key_locks[url]
