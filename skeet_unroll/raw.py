from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from .errors import FeedError


@dataclass(frozen=True)
class RawPost:
    """
    Read-only view of one upstream post record (app.bsky.feed.defs#postView).

    embed and facets are kept as the raw upstream values; the normalizer decides
    which variants it understands.
    """

    uri: str
    cid: str
    author_did: str | None
    author: Mapping[str, Any]
    text: str
    embed: Any = None
    facets: Any = None
    reply_root_cid: str | None = None
    reply_parent_cid: str | None = None


@dataclass(frozen=True)
class ThreadNode:
    """
    One node of the reply tree returned by getPostThread.

    post is None for node variants without a post view (not-found or blocked
    replies); such nodes never join a thread.
    """

    post: RawPost | None
    replies: tuple["ThreadNode", ...] = ()


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _coerce_str(value: Any) -> str | None:
    if isinstance(value, str):
        s = value.strip()
        return s if s else None
    return None


def _nonblank_str(value: Any) -> str | None:
    # Returned unchanged; only non-strings and blank strings are rejected.
    if isinstance(value, str) and value.strip():
        return value
    return None


def raw_post_from_mapping(item: Any) -> RawPost | None:
    """Best-effort extraction of a RawPost; None when uri or cid is missing."""
    post = _mapping(item)
    uri = _coerce_str(post.get("uri"))
    cid = _coerce_str(post.get("cid"))
    if not uri or not cid:
        return None

    author = _mapping(post.get("author"))
    record = _mapping(post.get("record"))
    reply = _mapping(record.get("reply"))

    text = record.get("text")

    return RawPost(
        uri=uri,
        cid=cid,
        author_did=_coerce_str(author.get("did")),
        author=dict(author),
        text=text if isinstance(text, str) else "",
        embed=record.get("embed"),
        facets=record.get("facets"),
        reply_root_cid=_coerce_str(_mapping(reply.get("root")).get("cid")),
        reply_parent_cid=_coerce_str(_mapping(reply.get("parent")).get("cid")),
    )


@dataclass
class _Frame:
    data: Mapping[str, Any]
    sink: list[ThreadNode]
    pending: list[Any] = field(default_factory=list)
    children: list[ThreadNode] = field(default_factory=list)


def _frame(item: Any, sink: list[ThreadNode]) -> _Frame:
    data = _mapping(item)
    replies = data.get("replies")
    # Reversed so pop() yields replies in document order.
    pending = list(reversed(replies)) if isinstance(replies, list) else []
    return _Frame(data=data, sink=sink, pending=pending)


def thread_node_from_mapping(item: Any) -> ThreadNode:
    """
    Parse one upstream thread node and its whole reply subtree.

    Iterative, since getPostThread can return up to 1000 levels of replies.
    """
    out: list[ThreadNode] = []
    stack = [_frame(item, out)]

    while stack:
        top = stack[-1]
        if top.pending:
            stack.append(_frame(top.pending.pop(), top.children))
            continue

        stack.pop()
        top.sink.append(
            ThreadNode(
                post=raw_post_from_mapping(top.data.get("post")),
                replies=tuple(top.children),
            )
        )

    return out[0]


def thread_root_from_response(payload: Any) -> ThreadNode:
    """
    Parse a getPostThread response body into the root ThreadNode.

    Raises FeedError when the body does not carry a usable thread.post.
    """
    if not isinstance(payload, Mapping):
        raise FeedError("getPostThread response is not a JSON object")

    thread = payload.get("thread")
    if not isinstance(thread, Mapping):
        message = _coerce_str(payload.get("message")) or _coerce_str(payload.get("error"))
        raise FeedError(f"getPostThread response has no thread: {message or 'unknown error'}")

    root = thread_node_from_mapping(thread)
    if root.post is None:
        raise FeedError("getPostThread thread has no readable root post")
    return root
