"""Tests for the upstream client and the resolver pipeline."""

import shutil
import tempfile
import unittest

import httpx

from prenivdl.resolver import (
    MediaResolver,
    MediaUnavailableError,
    PlatformNotConfiguredError,
    UnsupportedPlatformError,
)
from prenivdl.upstream import (
    FetchStrategy,
    InvalidResponseError,
    UpstreamClient,
    UpstreamHTTPError,
    UpstreamNetworkError,
    UpstreamStatusError,
    UpstreamTimeoutError,
    encode_target,
)

from tests.helpers import make_config

TIKTOK_URL = "https://www.tiktok.com/@user/video/1"


def _routes(table):
    """MockTransport keyed by request path; records every request it sees."""
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        response = table.get(request.url.path)
        if response is None:
            return httpx.Response(404, json={"message": "no route"})
        if isinstance(response, Exception):
            raise response
        return response

    return httpx.MockTransport(handler), seen


class TestUpstreamClient(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.config = make_config(self.test_dir)

    def tearDown(self):
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def test_encode_target_matches_uri_component(self):
        self.assertEqual(encode_target("https://a.b/c?d=e&f=g h"), "https%3A%2F%2Fa.b%2Fc%3Fd%3De%26f%3Dg%20h")
        self.assertEqual(encode_target("a-b_c.d!e~f*g'h(i)"), "a-b_c.d!e~f*g'h(i)")

    async def test_request_shape(self):
        transport, seen = _routes({"/download/youtube": httpx.Response(200, json={"status": True, "data": {}})})
        client = UpstreamClient(self.config, transport=transport)
        await client.fetch_json("youtube", "https://youtu.be/x")
        request = seen[0]
        self.assertEqual(request.url.params["url"], "https://youtu.be/x")
        self.assertIn("Mobile", request.headers["user-agent"])

    async def test_status_false_is_a_failure(self):
        transport, _ = _routes({"/download/youtube": httpx.Response(200, json={"status": False, "msg": "Video is private"})})
        client = UpstreamClient(self.config, transport=transport)
        with self.assertRaises(UpstreamStatusError) as ctx:
            await client.fetch([FetchStrategy("youtube", "primary")], "https://youtu.be/x")
        self.assertEqual(str(ctx.exception), "Video is private")

    async def test_http_error_carries_status(self):
        transport, _ = _routes({"/download/youtube": httpx.Response(503, json={"message": "busy"})})
        client = UpstreamClient(self.config, transport=transport)
        with self.assertRaises(UpstreamHTTPError) as ctx:
            await client.fetch_json("youtube", "https://youtu.be/x")
        self.assertEqual(ctx.exception.status_code, 503)
        self.assertEqual(str(ctx.exception), "busy")

    async def test_timeout_and_network_errors(self):
        for error, expected in (
            (httpx.ReadTimeout("slow"), UpstreamTimeoutError),
            (httpx.ConnectError("refused"), UpstreamNetworkError),
        ):
            with self.subTest(error=type(error).__name__):
                transport, _ = _routes({"/download/youtube": error})
                client = UpstreamClient(self.config, transport=transport)
                with self.assertRaises(expected):
                    await client.fetch_json("youtube", "https://youtu.be/x")

    async def test_non_json_body(self):
        transport, _ = _routes({"/download/youtube": httpx.Response(200, text="<html>")})
        client = UpstreamClient(self.config, transport=transport)
        with self.assertRaises(InvalidResponseError):
            await client.fetch_json("youtube", "https://youtu.be/x")

    async def test_tiktok_falls_back_to_v1(self):
        legacy = {"status": True, "data": {"title": "Legacy", "downloads": [{"url": "https://v/1.mp4", "text": "MP4"}]}}
        transport, seen = _routes({
            "/download/tiktok": httpx.Response(200, json={"status": True, "data": {"downloads": {}}}),
            "/download/tiktok/v1": httpx.Response(200, json=legacy),
        })
        resolver = MediaResolver(self.config, transport=transport)
        resolution = await resolver.resolve(TIKTOK_URL)
        self.assertEqual(len(seen), 2)
        self.assertEqual(resolution.fetch.variant, "v1")
        self.assertEqual(resolution.result.links[0].quality, "HD (No Watermark)")

    async def test_tiktok_unrecognized_primary_shape_falls_back(self):
        legacy = {"status": True, "data": {"title": "Legacy", "downloads": [{"url": "https://v/1.mp4", "text": "MP4"}]}}
        transport, seen = _routes({
            "/download/tiktok": httpx.Response(200, json={"status": True, "data": {"downloads": {"error": "rate limited"}}}),
            "/download/tiktok/v1": httpx.Response(200, json=legacy),
        })
        resolution = await MediaResolver(self.config, transport=transport).resolve(TIKTOK_URL)
        self.assertEqual(len(seen), 2)
        self.assertEqual(resolution.fetch.variant, "v1")
        self.assertEqual(len(resolution.result.links), 1)

    async def test_tiktok_primary_success_skips_fallback(self):
        primary = {"status": True, "data": {"downloads": {"video": ["https://v/1.mp4"]}}}
        transport, seen = _routes({"/download/tiktok": httpx.Response(200, json=primary)})
        resolution = await MediaResolver(self.config, transport=transport).resolve(TIKTOK_URL)
        self.assertEqual(len(seen), 1)
        self.assertEqual(resolution.fetch.endpoint_key, "tiktok")

    async def test_all_strategies_fail_with_last_message(self):
        transport, _ = _routes({
            "/download/tiktok": httpx.Response(500, json={"message": "primary down"}),
            "/download/tiktok/v1": httpx.Response(200, json={"status": False, "msg": "legacy says no"}),
        })
        with self.assertRaises(UpstreamStatusError) as ctx:
            await MediaResolver(self.config, transport=transport).resolve(TIKTOK_URL)
        self.assertEqual(str(ctx.exception), "legacy says no")


class TestMediaResolver(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.config = make_config(self.test_dir)

    def tearDown(self):
        shutil.rmtree(self.test_dir, ignore_errors=True)

    async def test_unsupported_url(self):
        with self.assertRaises(UnsupportedPlatformError):
            await MediaResolver(self.config).resolve("https://example.com/video")

    async def test_platform_not_configured(self):
        config = make_config(self.test_dir, api_endpoints={"youtube": ""})
        with self.assertRaises(PlatformNotConfiguredError):
            await MediaResolver(config).resolve("https://youtu.be/x")

    async def test_empty_media_distinct_from_failure(self):
        transport, _ = _routes({"/download/youtube": httpx.Response(200, json={"status": True, "data": {"formats": []}})})
        resolver = MediaResolver(self.config, transport=transport)
        resolution = await resolver.resolve("https://youtu.be/x")
        self.assertTrue(resolution.is_empty)
        with self.assertRaises(MediaUnavailableError):
            await resolver.resolve("https://youtu.be/x", require_media=True)

    async def test_generic_platform_uses_extractor(self):
        payload = {"status": True, "data": {"title": "Post", "media": [{"url": "https://w/a.mp4"}], "cover": "https://w/c.jpg"}}
        transport, _ = _routes({"/download/weibo": httpx.Response(200, json=payload)})
        resolution = await MediaResolver(self.config, transport=transport).resolve("https://weibo.com/1/abc")
        self.assertIsNone(resolution.normalized)
        self.assertEqual([link.url for link in resolution.result.links], ["https://w/a.mp4"])


if __name__ == "__main__":
    unittest.main()
