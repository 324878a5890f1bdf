from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

OFFLINE_DID = "did:plc:offlineauthor000000000000"
OFFLINE_OTHER_DID = "did:plc:offlinereader000000000000"


def _post(
    rkey: str,
    cid: str,
    text: str,
    *,
    did: str = OFFLINE_DID,
    root_cid: str | None = None,
    parent_cid: str | None = None,
    embed: dict[str, Any] | None = None,
    facets: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    record: dict[str, Any] = {
        "$type": "app.bsky.feed.post",
        "text": text,
        "createdAt": "2025-01-01T00:00:00.000Z",
    }
    if root_cid and parent_cid:
        record["reply"] = {
            "root": {"cid": root_cid, "uri": f"at://{OFFLINE_DID}/app.bsky.feed.post/3offroot"},
            "parent": {"cid": parent_cid},
        }
    if embed is not None:
        record["embed"] = embed
    if facets is not None:
        record["facets"] = facets

    handle = "offline.example" if did == OFFLINE_DID else "reader.example"
    return {
        "uri": f"at://{did}/app.bsky.feed.post/{rkey}",
        "cid": cid,
        "author": {"did": did, "handle": handle, "displayName": handle.split(".")[0].title()},
        "record": record,
    }


def _sample_thread() -> dict[str, Any]:
    root_cid = "bafyoffroot"
    return {
        "thread": {
            "$type": "app.bsky.feed.defs#threadViewPost",
            "post": _post("3offroot", root_cid, "A short thread about pull-ups. 🧵"),
            "replies": [
                {
                    "$type": "app.bsky.feed.defs#threadViewPost",
                    "post": _post(
                        "3offr1",
                        "bafyoffr1",
                        "Reader comment, not part of the thread.",
                        did=OFFLINE_OTHER_DID,
                        root_cid=root_cid,
                        parent_cid=root_cid,
                    ),
                    "replies": [],
                },
                {
                    "$type": "app.bsky.feed.defs#threadViewPost",
                    "post": _post(
                        "3offp1",
                        "bafyoffp1",
                        "1/ Start with dead hangs. Notes: https://example.com/hangs",
                        root_cid=root_cid,
                        parent_cid=root_cid,
                        facets=[
                            {
                                "index": {"byteStart": 33, "byteEnd": 58},
                                "features": [
                                    {
                                        "$type": "app.bsky.richtext.facet#link",
                                        "uri": "https://example.com/hangs",
                                    }
                                ],
                            }
                        ],
                    ),
                    "replies": [
                        {
                            "$type": "app.bsky.feed.defs#threadViewPost",
                            "post": _post(
                                "3offp2",
                                "bafyoffp2",
                                "2/ Then scapular pulls.",
                                root_cid=root_cid,
                                parent_cid="bafyoffp1",
                                embed={
                                    "$type": "app.bsky.embed.images",
                                    "images": [
                                        {
                                            "alt": "scapular pull",
                                            "image": {
                                                "$type": "blob",
                                                "ref": {"$link": "bafkreioffimg"},
                                                "mimeType": "image/jpeg",
                                                "size": 1000,
                                            },
                                        }
                                    ],
                                },
                            ),
                            "replies": [],
                        }
                    ],
                },
            ],
        }
    }


@dataclass
class OfflinePostPages:
    """Network-free did resolver: every URL belongs to the offline author."""

    did: str | None = OFFLINE_DID
    calls: list[str] = field(default_factory=list)

    def resolve_did(self, url: str) -> str | None:
        self.calls.append(url)
        return self.did


@dataclass
class OfflinePostThreadSource:
    """
    Network-free getPostThread stub.

    Returns a deterministic three-post self-thread with one foreign reply.
    """

    payload: dict[str, Any] = field(default_factory=_sample_thread)
    calls: list[tuple[str, str]] = field(default_factory=list)

    def fetch_post_thread(self, did: str, post_id: str) -> dict[str, Any] | None:
        self.calls.append((did, post_id))
        return copy.deepcopy(self.payload)
