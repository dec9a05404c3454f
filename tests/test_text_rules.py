"""
Tests for Text Cleanup Rules
"""

from patronclean.services.text_rules import advanced_cleanup, remove_line_breaks


class TestRemoveLineBreaks:
    def test_newline(self):
        assert remove_line_breaks("12 MG Road\nBengaluru") == "12 MG Road Bengaluru"

    def test_mixed_breaks_collapse(self):
        assert remove_line_breaks("a\r\n\nb") == "a b"

    def test_unchanged_returns_none(self):
        assert remove_line_breaks("single line") is None

    def test_non_string_ignored(self):
        assert remove_line_breaks(5) is None


class TestAdvancedCleanup:
    def test_space_before_comma(self):
        assert advanced_cleanup("Hello ,world") == "Hello, world"

    def test_missing_space_after_period(self):
        assert advanced_cleanup("Dr.Smith") == "Dr. Smith"

    def test_trims(self):
        assert advanced_cleanup("  hi  ") == "hi"

    def test_emails_keep_punctuation(self):
        assert advanced_cleanup("reader@library.org") is None

    def test_email_still_trimmed(self):
        assert advanced_cleanup(" reader@library.org ") == "reader@library.org"

    def test_clean_text_returns_none(self):
        assert advanced_cleanup("Hello, world") is None

    def test_non_string_ignored(self):
        assert advanced_cleanup(42) is None
