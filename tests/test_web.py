from __future__ import annotations

import io
import json
import unittest
from unittest import mock

from skeet_unroll.cache import ThreadCache
from skeet_unroll.config_schema import AppConfig
from skeet_unroll.errors import FeedError
from skeet_unroll.offline import OfflinePostPages, OfflinePostThreadSource
from skeet_unroll.request_log import RequestLog
from skeet_unroll.storage import SQLiteKeyValueStore
from skeet_unroll.unroll import ThreadUnroller
from skeet_unroll.web import create_app

URL = "https://bsky.app/profile/offline.example/post/3offroot"


class _BrokenFeed:
    def __init__(self, exc: Exception) -> None:
        self._exc = exc

    def fetch_post_thread(self, did: str, post_id: str) -> object:
        raise self._exc


class TestUnrollEndpoint(unittest.TestCase):
    def setUp(self) -> None:
        self.store = SQLiteKeyValueStore.open(":memory:")
        self.stream = io.StringIO()
        self.log = RequestLog(stream=self.stream)

    def tearDown(self) -> None:
        self.store.close()

    def _client(self, *, pages: object | None = None, feed: object | None = None, config: AppConfig | None = None):
        unroller = ThreadUnroller(
            cache=ThreadCache(self.store),
            pages=pages or OfflinePostPages(),  # type: ignore[arg-type]
            feed=feed or OfflinePostThreadSource(),  # type: ignore[arg-type]
            log=self.log,
        )
        app = create_app(config, unroller=unroller, log=self.log)
        app.testing = True
        return app.test_client()

    def test_success_returns_thread_json(self) -> None:
        resp = self._client().get("/bskyunroll", query_string={"postURL": URL})

        self.assertEqual(resp.status_code, 200)
        body = resp.get_json()
        self.assertEqual(list(body.keys()), ["message", "author", "thread"])
        self.assertEqual(body["message"], "success")
        self.assertEqual(len(body["thread"]), 3)
        self.assertEqual(resp.headers["Access-Control-Allow-Origin"], "*")

    def test_unresolvable_url_is_400(self) -> None:
        resp = self._client(pages=OfflinePostPages(did=None)).get(
            "/bskyunroll", query_string={"postURL": URL}
        )

        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json(), {"message": "Error: Invalid URL"})
        self.assertEqual(resp.headers["Access-Control-Allow-Origin"], "*")
        self.assertEqual(self.store.count(), 0)

    def test_missing_query_parameter_is_400(self) -> None:
        resp = self._client().get("/bskyunroll")

        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json(), {"message": "Error: Invalid URL"})

    def test_upstream_failure_is_502(self) -> None:
        resp = self._client(feed=_BrokenFeed(FeedError("getPostThread request failed: timeout"))).get(
            "/bskyunroll", query_string={"postURL": URL}
        )

        self.assertEqual(resp.status_code, 502)
        self.assertEqual(resp.get_json(), {"message": "Error: getPostThread request failed: timeout"})
        self.assertEqual(resp.headers["Access-Control-Allow-Origin"], "*")
        self.assertEqual(self.store.count(), 0)

    def test_unexpected_failure_is_500(self) -> None:
        resp = self._client(feed=_BrokenFeed(KeyError("boom"))).get(
            "/bskyunroll", query_string={"postURL": URL}
        )

        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.get_json(), {"message": "Error: Internal server error"})

    def test_preflight_allows_any_origin(self) -> None:
        resp = self._client().options("/bskyunroll", headers={"Origin": "https://reader.test"})

        self.assertLess(resp.status_code, 300)
        self.assertEqual(resp.headers["Access-Control-Allow-Origin"], "*")

    def test_endpoint_and_origin_follow_config(self) -> None:
        cfg = AppConfig.model_validate(
            {"server": {"endpoint": "/unroll/", "cors_origin": "https://app.test"}}
        )
        client = self._client(config=cfg)

        resp = client.get("/unroll", query_string={"postURL": URL})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.headers["Access-Control-Allow-Origin"], "https://app.test")
        self.assertEqual(client.get("/bskyunroll", query_string={"postURL": URL}).status_code, 404)

    def test_each_request_is_logged(self) -> None:
        client = self._client()
        client.get("/bskyunroll", query_string={"postURL": URL})
        client.get("/bskyunroll", query_string={"postURL": URL})

        records = [json.loads(ln) for ln in self.stream.getvalue().splitlines() if ln.strip()]
        received = [r for r in records if r["event"] == "request_received"]
        self.assertEqual(len(received), 2)
        self.assertEqual(received[0]["post_url"], URL)
        self.assertIn("cache_hit", [r["event"] for r in records])


class TestCreateAppDefaultWiring(unittest.TestCase):
    def test_app_opens_configured_cache_and_serves_from_it(self) -> None:
        cfg = AppConfig.model_validate({"cache": {"path": ":memory:"}})
        stream = io.StringIO()
        pages = OfflinePostPages()
        feed = OfflinePostThreadSource()

        with mock.patch("skeet_unroll.unroll.PostPageFetcher", return_value=pages), mock.patch(
            "skeet_unroll.unroll.BlueskyFeedClient", return_value=feed
        ):
            app = create_app(cfg, log=RequestLog(stream=stream))
        app.testing = True
        client = app.test_client()

        first = client.get("/bskyunroll", query_string={"postURL": URL})
        second = client.get("/bskyunroll", query_string={"postURL": URL})

        self.assertEqual(first.status_code, 200)
        self.assertEqual(second.get_json(), first.get_json())
        self.assertEqual(len(feed.calls), 1)

        records = [json.loads(ln) for ln in stream.getvalue().splitlines() if ln.strip()]
        opened = [r for r in records if r["event"] == "cache_opened"]
        self.assertEqual(len(opened), 1)
        self.assertEqual(opened[0]["data"], {"path": ":memory:", "entries": 0})
        self.assertIn("cache_hit", [r["event"] for r in records])


if __name__ == "__main__":
    unittest.main()
