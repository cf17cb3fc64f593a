"""Tests for log preview helpers."""

from subrelay.utils import preview, safe_truncate


class TestSafeTruncate:

    def test_short_text_unchanged(self):
        assert safe_truncate("short", 10) == "short"

    def test_breaks_at_word_boundary(self):
        assert safe_truncate("hello wonderful world", 12) == "hello..."

    def test_hard_cut_without_boundary(self):
        assert safe_truncate("a" * 30, 10) == "a" * 10 + "..."

    def test_empty(self):
        assert safe_truncate("", 5) == ""


class TestPreview:

    def test_subtitle_breaks_and_whitespace(self):
        assert preview("Line one\\NLine   two") == "Line one Line two"

    def test_control_characters_removed(self):
        assert preview("a\x00b\x07c") == "abc"

    def test_truncated(self):
        assert len(preview("word " * 40, 20)) <= 23
