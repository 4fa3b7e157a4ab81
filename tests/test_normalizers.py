"""Tests for the per-platform normalizers."""

import json
import unittest

from prenivdl.normalizers import UnknownPlatformError, UnknownVariantError, has_normalizer, normalize
from prenivdl.normalizers import pinterest, spotify, tiktok


class TestDispatch(unittest.TestCase):

    def test_unknown_platform(self):
        self.assertFalse(has_normalizer("weibo"))
        with self.assertRaises(UnknownPlatformError):
            normalize("weibo", {})

    def test_unknown_variant_fails_closed(self):
        with self.assertRaises(UnknownVariantError):
            normalize("tiktok", {}, "v2")
        with self.assertRaises(UnknownVariantError):
            normalize("spotify", {}, "v1")

    def test_malformed_payloads_yield_empty_results(self):
        for platform in ("tiktok", "instagram", "facebook", "youtube", "spotify", "pinterest", "kuaishou", "twitter"):
            for raw in (None, "oops", 42, [], {}, {"duration": float("inf")}):
                with self.subTest(platform=platform, raw=raw):
                    result = normalize(platform, raw)
                    self.assertEqual(result.downloads, [])
                    self.assertEqual(result.media, [])


class TestTikTok(unittest.TestCase):

    def test_bucketed_shape(self):
        raw = {
            "title": "T",
            "author": {"nickname": "nick"},
            "music": {"title": "Song"},
            "downloads": {"video": ["https://v/1.mp4", {"url": "https://v/2.mp4"}], "audio": ["https://a/1.mp3"]},
        }
        result = normalize("tiktok", raw)
        buckets = result.buckets()
        self.assertEqual([v.url for v in buckets["video"]], ["https://v/1.mp4", "https://v/2.mp4"])
        self.assertEqual([v.url for v in buckets["audio"]], ["https://a/1.mp3"])
        self.assertEqual(buckets["image"], [])
        self.assertEqual(result.author, "nick")
        self.assertEqual(result.metadata["audio_title"], "Song")
        self.assertEqual(result.metadata["shape"], "bucketed")

    def test_flat_shape_classified_by_label(self):
        raw = {
            "title": "Legacy",
            "creator": "someone",
            "downloads": [
                {"url": "https://a/m.mp3", "text": "Download MP3"},
                {"url": "https://v/hd.mp4", "text": "Download MP4 HD"},
                {"url": "https://i/1.jpeg", "text": "Photo 1"},
                {"url": "not-a-url", "text": "Download MP4"},
            ],
        }
        result = normalize("tiktok", raw, "v1")
        self.assertEqual([(v.type, v.url) for v in result.downloads], [
            ("video", "https://v/hd.mp4"),
            ("audio", "https://a/m.mp3"),
            ("image", "https://i/1.jpeg"),
        ])
        self.assertEqual(result.downloads[2].format, "jpg")
        self.assertEqual(result.author, "someone")

    def test_structure_beats_variant_hint(self):
        raw = {"downloads": {"video": ["https://v/1.mp4"]}}
        self.assertEqual(tiktok.detect_shape(raw), "bucketed")
        result = normalize("tiktok", raw, "v1")
        self.assertEqual(result.downloads[0].url, "https://v/1.mp4")
        self.assertEqual(result.metadata["variant_hint"], "v1")

    def test_duration_in_milliseconds(self):
        self.assertEqual(normalize("tiktok", {"duration": 15}).duration, 15000)

    def test_overflowing_duration_is_dropped(self):
        raw = json.loads('{"duration": 1e400, "downloads": {"video": ["https://v/1.mp4"]}}')
        result = normalize("tiktok", raw)
        self.assertIsNone(result.duration)
        self.assertEqual(len(result.downloads), 1)
        self.assertIsNone(normalize("youtube", {"duration": 1e400}).duration)
        self.assertIsNone(normalize("spotify", {"duration": float("inf")}).duration)

    def test_has_downloads_needs_a_known_shape_with_urls(self):
        self.assertTrue(tiktok.has_downloads({"downloads": {"video": ["https://v/1.mp4"]}}))
        self.assertTrue(tiktok.has_downloads({"downloads": [{"url": "https://v/1.mp4", "text": "MP4"}]}))
        self.assertFalse(tiktok.has_downloads({"downloads": {"error": "rate limited"}}))
        self.assertFalse(tiktok.has_downloads({"downloads": {"video": []}}))
        self.assertFalse(tiktok.has_downloads({"downloads": "https://v/1.mp4"}))
        self.assertFalse(tiktok.has_downloads(None))

class TestSpotify(unittest.TestCase):

    def test_fallback_literals(self):
        result = normalize("spotify", {"download": "https://s/t.mp3"})
        self.assertEqual(result.title, spotify.NO_TITLE)
        self.assertEqual(result.title, "No title")
        self.assertEqual(result.author, "Unknown artist")
        self.assertEqual(result.downloads[0].format, "mp3")
        self.assertEqual(result.downloads[0].type, "audio")

    def test_fields_taken_when_present(self):
        raw = {"title": "Song", "artist": "Band", "duration": 180000, "download": "https://s/t.mp3", "image": "https://s/c.jpg"}
        result = normalize("spotify", raw)
        self.assertEqual((result.title, result.author, result.duration), ("Song", "Band", 180000))
        self.assertEqual(result.thumbnail, "https://s/c.jpg")

    def test_blank_title_uses_fallback(self):
        self.assertEqual(normalize("spotify", {"title": "   "}).title, "No title")


class TestPinterest(unittest.TestCase):

    def test_original_preferred_over_large(self):
        raw = {"media_urls": [
            {"type": "image", "quality": "large", "url": "https://p/l.jpg"},
            {"type": "image", "quality": "original", "url": "https://p/o.jpg"},
        ]}
        result = normalize("pinterest", raw)
        self.assertEqual(result.default_download.url, "https://p/o.jpg")
        self.assertEqual([v.url for v in result.downloads], ["https://p/o.jpg", "https://p/l.jpg"])

    def test_large_then_first(self):
        raw = {"media_urls": [{"quality": "small", "url": "https://p/s.jpg"}, {"quality": "large", "url": "https://p/l.jpg"}]}
        self.assertEqual(normalize("pinterest", raw).default_download.url, "https://p/l.jpg")
        raw = {"media_urls": [{"quality": "small", "url": "https://p/s.jpg"}, {"quality": "medium", "url": "https://p/m.jpg"}]}
        self.assertEqual(normalize("pinterest", raw).default_download.url, "https://p/s.jpg")

    def test_classification(self):
        self.assertEqual(pinterest.classify({"type": "video", "url": "https://p/v.mp4"}), "video")
        self.assertEqual(pinterest.classify({"url": "https://p/anim.gif"}), "gif")
        self.assertEqual(pinterest.classify({"url": "https://p/still.png"}), "image")

    def test_gif_typed_image_with_gif_format(self):
        result = normalize("pinterest", {"media_urls": [{"url": "https://p/anim.gif"}]})
        self.assertEqual((result.downloads[0].type, result.downloads[0].format), ("image", "gif"))

    def test_legacy_shape(self):
        raw = {"video": "https://p/v.mp4", "image": "https://p/i.jpg"}
        result = normalize("pinterest", raw, "v1")
        self.assertEqual(result.metadata["shape"], "legacy")
        self.assertEqual([v.type for v in result.downloads], ["video", "image"])


class TestOtherPlatforms(unittest.TestCase):

    def test_instagram_mixed_carousel(self):
        raw = [
            {"url": "https://cdn/a.mp4", "thumbnail": "https://cdn/t.jpg"},
            "https://cdn/b.jpg",
        ]
        result = normalize("instagram", raw)
        self.assertEqual([m.type for m in result.media], ["video", "image"])
        self.assertEqual(result.thumbnail, "https://cdn/t.jpg")

    def test_youtube_orders_muxed_first(self):
        raw = {
            "title": "Clip",
            "duration": 60,
            "formats": [
                {"type": "video", "quality": "720p", "url": "https://y/720-silent.mp4"},
                {"type": "audio", "quality": "128kbps", "url": "https://y/a.m4a", "extension": "m4a"},
                {"type": "video_with_audio", "quality": "720p", "url": "https://y/720.mp4"},
                {"type": "storyboard", "url": "https://y/sb.jpg"},
            ],
        }
        result = normalize("youtube", raw)
        self.assertEqual([v.url for v in result.downloads], ["https://y/720.mp4", "https://y/720-silent.mp4", "https://y/a.m4a"])
        self.assertEqual(result.downloads[2].format, "m4a")
        self.assertEqual(result.duration, 60000)

    def test_facebook_resolution_echoed(self):
        result = normalize("facebook", {"media": [{"url": "https://f/hd.mp4", "resolution": "720p (HD)"}]})
        self.assertEqual(result.downloads[0].quality, "720p (HD)")
        self.assertEqual(result.downloads[0].resolution, "720p (HD)")

    def test_kuaishou_flags_gate_media(self):
        raw = {"hasVideo": True, "hasAtlas": False, "original": {"videoUrl": "https://k/v.mp4", "atlas": ["https://k/1.jpg"]}}
        result = normalize("kuaishou", raw)
        self.assertEqual([v.url for v in result.downloads], ["https://k/v.mp4"])
        raw["hasAtlas"] = True
        self.assertEqual(len(normalize("kuaishou", raw).downloads), 2)

    def test_twitter_quality(self):
        result = normalize("twitter", {"media": [{"url": "https://t/720.mp4", "quality": "720"}]})
        self.assertEqual(result.downloads[0].resolution, "720")


if __name__ == "__main__":
    unittest.main()
