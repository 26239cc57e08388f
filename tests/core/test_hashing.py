"""Tests for ``searchmetrics.core.hashing`` -- derived click-buoy keys."""

from __future__ import annotations

from searchmetrics.core.hashing import content_hash, counter_key


class TestContentHash:
    def test_known_md5_value(self):
        assert content_hash("hello") == "5d41402abc4b2a76b9719d911017c592"

    def test_lowercase_hex_128_bit(self):
        digest = content_hash("Cats & Dogs")
        assert len(digest) == 32
        assert digest == digest.lower()
        int(digest, 16)

    def test_utf8_text(self):
        assert content_hash("café") != content_hash("cafe")

    def test_deterministic(self):
        assert content_hash("cats") == content_hash("cats")


class TestCounterKey:
    def test_prefix_underscore_hash(self):
        assert counter_key("wp_swpext_metrics_click_buoy", "hello") == (
            "wp_swpext_metrics_click_buoy_5d41402abc4b2a76b9719d911017c592"
        )

    def test_custom_key_function(self):
        assert counter_key("p", "abc", key_fn=str.upper) == "p_ABC"
