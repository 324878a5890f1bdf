from __future__ import annotations

from typing import Iterable

from .config_schema import DEFAULT_CDN_TEMPLATE
from .normalize import normalize_post
from .post import NormalizedPost
from .raw import RawPost, ThreadNode


def _continues_chain(post: RawPost, *, author_did: str, root_cid: str, parent_cid: str) -> bool:
    if post.author_did != author_did:
        return False
    if post.reply_root_cid != root_cid:
        return False
    return post.reply_parent_cid == parent_cid


def _pushed(replies: Iterable[ThreadNode], parent_cid: str) -> list[tuple[ThreadNode, str]]:
    # Reversed so the worklist pops siblings in document order.
    return [(node, parent_cid) for node in reversed(tuple(replies))]


def extract_replies(
    root: ThreadNode,
    author_did: str,
    *,
    cdn_template: str = DEFAULT_CDN_TEMPLATE,
) -> list[NormalizedPost]:
    """
    Walk the reply tree below root and return the author's self-reply chain.

    A reply joins the chain only when it is by author_did, points at the same
    thread root, and answers the post accepted just before it. Rejected replies
    are dropped with their whole subtree, so a self-reply under someone else's
    comment never shows up. Accepted siblings (a branching self-thread) are kept
    in document order, each followed by its own continuation.
    """
    if root.post is None:
        return []

    root_cid = root.post.cid
    out: list[NormalizedPost] = []
    worklist = _pushed(root.replies, root_cid)

    while worklist:
        node, parent_cid = worklist.pop()
        post = node.post
        if post is None or not _continues_chain(
            post, author_did=author_did, root_cid=root_cid, parent_cid=parent_cid
        ):
            continue

        out.append(normalize_post(post, author_did, cdn_template=cdn_template))
        worklist.extend(_pushed(node.replies, post.cid))

    return out


def reconstruct_thread(
    root: ThreadNode,
    *,
    cdn_template: str = DEFAULT_CDN_TEMPLATE,
) -> list[NormalizedPost]:
    """Return the root post followed by its same-author reply chain."""
    if root.post is None:
        raise ValueError("thread root has no post")

    author_did = root.post.author_did or ""
    head = normalize_post(root.post, author_did, cdn_template=cdn_template)
    return [head] + extract_replies(root, author_did, cdn_template=cdn_template)
