from __future__ import annotations

import unittest
from typing import Any

import requests
from bs4 import BeautifulSoup

from skeet_unroll.config_schema import PageConfig
from skeet_unroll.identity import PostPageFetcher, did_from_document

_PAGE = """\
<!doctype html>
<html>
<head><title>Post</title></head>
<body>
  <div id="root">
    <p id="bsky_handle">alice.test</p>
    <p id="bsky_did">
      did:plc:abc123
    </p>
  </div>
</body>
</html>
"""


class _FakeResponse:
    def __init__(self, text: str) -> None:
        self.text = text


class _FakeSession:
    def __init__(self, *, text: str = "", exc: Exception | None = None) -> None:
        self._text = text
        self._exc = exc
        self.headers: dict[str, str] = {}
        self.calls: list[dict[str, Any]] = []

    def get(self, url: str, *, timeout: float | None = None) -> _FakeResponse:
        self.calls.append({"url": url, "timeout": timeout})
        if self._exc is not None:
            raise self._exc
        return _FakeResponse(self._text)


class TestDidFromDocument(unittest.TestCase):
    def test_reads_trimmed_marker_text(self) -> None:
        doc = BeautifulSoup(_PAGE, "html.parser")
        self.assertEqual(did_from_document(doc), "did:plc:abc123")

    def test_missing_document_or_marker(self) -> None:
        self.assertIsNone(did_from_document(None))
        self.assertIsNone(did_from_document(BeautifulSoup("<p>nothing</p>", "html.parser")))
        self.assertIsNone(did_from_document(BeautifulSoup('<p id="bsky_did">  </p>', "html.parser")))

    def test_marker_must_be_a_paragraph(self) -> None:
        doc = BeautifulSoup('<div id="bsky_did">did:plc:x</div>', "html.parser")
        self.assertIsNone(did_from_document(doc))


class TestPostPageFetcher(unittest.TestCase):
    def test_resolves_did_from_fetched_page(self) -> None:
        session = _FakeSession(text=_PAGE)
        fetcher = PostPageFetcher(PageConfig(timeout_secs=5), session=session)  # type: ignore[arg-type]

        did = fetcher.resolve_did("https://bsky.app/profile/alice.test/post/3kabc")

        self.assertEqual(did, "did:plc:abc123")
        self.assertEqual(session.calls[0]["timeout"], 5)

    def test_request_failure_is_unknown_identity(self) -> None:
        session = _FakeSession(exc=requests.exceptions.ConnectionError("down"))
        fetcher = PostPageFetcher(session=session)  # type: ignore[arg-type]

        self.assertIsNone(fetcher.fetch("https://bsky.app/profile/a/post/1"))
        self.assertIsNone(fetcher.resolve_did("https://bsky.app/profile/a/post/1"))

    def test_invalid_url_is_unknown_identity(self) -> None:
        session = _FakeSession(exc=requests.exceptions.MissingSchema("no scheme"))
        fetcher = PostPageFetcher(session=session)  # type: ignore[arg-type]

        self.assertIsNone(fetcher.resolve_did("not a url"))


if __name__ == "__main__":
    unittest.main()
