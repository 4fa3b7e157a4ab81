"""Tests for the HTTP API."""

import shutil
import tempfile
import unittest

import httpx
from fastapi.testclient import TestClient

from prenivdl import __version__
from prenivdl.server import create_app

from tests.helpers import make_config


class TestServer(unittest.TestCase):

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.config = make_config(self.test_dir)
        self.requests = []
        self.routes = {}

        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            route = self.routes.get(request.url.path)
            if route is None:
                return httpx.Response(404, json={"message": "no route"})
            if isinstance(route, Exception):
                raise route
            return route

        self.client = TestClient(create_app(self.config, transport=httpx.MockTransport(handler)))

    def tearDown(self):
        self.client.close()
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def test_index_and_health(self):
        self.assertEqual(self.client.get("/").json()["version"], __version__)
        health = self.client.get("/health").json()
        self.assertEqual(health["status"], "ok")
        self.assertIn("uptime", health)
        self.assertIn("timestamp", health)

    def test_platforms(self):
        body = self.client.get("/api/platforms").json()
        self.assertTrue(body["success"])
        self.assertIn({"id": "spotify", "name": "Spotify", "types": ["audio"]}, body["platforms"])

    def test_info_requires_url(self):
        response = self.client.get("/api/info")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"success": False, "error": "URL parameter is required"})

    def test_info_unsupported_platform(self):
        response = self.client.get("/api/info", params={"url": "https://example.com/v/1"})
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()["success"])
        self.assertIn("Unsupported platform", response.json()["error"])
        self.assertEqual(self.requests, [])

    def test_info_success(self):
        self.routes["/download/spotify"] = httpx.Response(200, json={
            "status": True,
            "data": {"title": "Song", "artist": "Band", "duration": 1000, "download": "https://s/t.mp3", "image": "https://s/c.jpg"},
        })
        response = self.client.get("/api/info", params={"url": "https://open.spotify.com/track/1"})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["platform"], "spotify")
        self.assertEqual(body["data"]["author"], "Band")
        self.assertEqual(body["data"]["links"][0], {"url": "https://s/t.mp3", "quality": "MP3", "type": "audio", "format": "mp3"})
        self.assertNotIn("message", body)

    def test_info_empty_media(self):
        self.routes["/download/youtube"] = httpx.Response(200, json={"status": True, "data": {}})
        body = self.client.get("/api/info", params={"url": "https://youtu.be/x"}).json()
        self.assertTrue(body["success"])
        self.assertEqual(body["data"]["links"], [])
        self.assertIn("private", body["message"])

    def test_info_upstream_failure(self):
        self.routes["/download/youtube"] = httpx.Response(502, json={"message": "bad gateway"})
        response = self.client.get("/api/info", params={"url": "https://youtu.be/x"})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(
            response.json(),
            {"success": False, "error": "bad gateway", "platform": "youtube", "upstream_status": 502},
        )

    def test_info_status_false(self):
        self.routes["/download/youtube"] = httpx.Response(200, json={"status": False, "msg": "Private video"})
        response = self.client.get("/api/info", params={"url": "https://youtu.be/x"})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["error"], "Private video")

    def test_download_requires_url(self):
        response = self.client.get("/api/download")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "URL parameter is required")

    def test_download_streams_with_headers(self):
        self.routes["/file.mp3"] = httpx.Response(200, content=b"ID3data", headers={"Content-Type": "audio/mpeg"})
        response = self.client.get(
            "/api/download",
            params={"url": "https://cdn.test/file.mp3", "filename": "my song!", "type": "audio"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.content, b"ID3data")
        self.assertEqual(response.headers["content-disposition"], 'attachment; filename="my_song_.mp3"')
        self.assertEqual(response.headers["content-type"], "audio/mpeg")
        self.assertEqual(response.headers["content-length"], "7")

    def test_download_defaults_to_video(self):
        self.routes["/clip"] = httpx.Response(200, content=b"mp4")
        response = self.client.get("/api/download", params={"url": "https://cdn.test/clip", "type": "bogus"})
        self.assertEqual(response.headers["content-type"], "video/mp4")
        self.assertEqual(response.headers["content-disposition"], 'attachment; filename="download.mp4"')

    def test_download_upstream_failure(self):
        self.routes["/missing.mp4"] = httpx.Response(404)
        response = self.client.get("/api/download", params={"url": "https://cdn.test/missing.mp4"})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"success": False, "error": "Failed to download file"})


if __name__ == "__main__":
    unittest.main()
