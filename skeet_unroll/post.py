from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

SUCCESS_MESSAGE = "success"
INVALID_URL_MESSAGE = "Error: Invalid URL"


@dataclass(frozen=True)
class FacetLink:
    """A hyperlink annotation over a byte range of a post's text."""

    uri: str
    start: int
    end: int

    def __post_init__(self) -> None:
        if not (0 <= self.start <= self.end):
            raise ValueError(f"invalid facet range: start={self.start} end={self.end}")

    def to_dict(self) -> dict[str, Any]:
        return {"uri": self.uri, "start": self.start, "end": self.end}


@dataclass(frozen=True)
class NormalizedPost:
    """One post of an unrolled thread, reduced to the fields clients render."""

    uri: str
    text: str
    embed: Sequence[str] = ()
    facets: Sequence[FacetLink] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "uri": self.uri,
            "text": self.text,
            "embed": list(self.embed),
            "facets": [f.to_dict() for f in self.facets],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "NormalizedPost":
        return cls(
            uri=str(data["uri"]),
            text=str(data.get("text") or ""),
            embed=tuple(str(u) for u in data.get("embed") or ()),
            facets=tuple(
                FacetLink(uri=str(f["uri"]), start=int(f["start"]), end=int(f["end"]))
                for f in data.get("facets") or ()
            ),
        )


@dataclass(frozen=True)
class ThreadResult:
    """
    The cached artifact: author profile plus the ordered self-reply chain.

    thread[0] is always the root post. The author object is passed through
    verbatim from the upstream response.
    """

    author: Mapping[str, Any]
    thread: Sequence[NormalizedPost]
    message: str = field(default=SUCCESS_MESSAGE, init=False)

    @property
    def ok(self) -> bool:
        return True

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "author": dict(self.author),
            "thread": [p.to_dict() for p in self.thread],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ThreadResult":
        if data.get("message") != SUCCESS_MESSAGE:
            raise ValueError("only success payloads can be read back as ThreadResult")
        author = data.get("author")
        return cls(
            author=dict(author) if isinstance(author, Mapping) else {},
            thread=tuple(NormalizedPost.from_dict(p) for p in data.get("thread") or ()),
        )


@dataclass(frozen=True)
class ErrorResult:
    message: str = INVALID_URL_MESSAGE

    def __post_init__(self) -> None:
        if self.message == SUCCESS_MESSAGE:
            raise ValueError("an error result cannot carry the success message")

    @property
    def ok(self) -> bool:
        return False

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message}
