"""
Unit tests for text sanitization and display cleanup.

WHAT: Script stripping, redaction, idempotence, directive-token removal
WHY: Provider text is untrusted and shown to real users
HOW: Literal inputs with exact expected outputs
"""

import pytest

from haggle.models.decision import Action
from haggle.utils.text import (
    DEFAULT_MESSAGES,
    clean_display_content,
    sanitize_text,
    truncate,
)


@pytest.mark.unit
class TestSanitizeText:

    def test_script_blocks_removed(self):
        assert sanitize_text("<script>alert(1)</script>Hello there") == "Hello there"

    def test_javascript_uri_removed(self):
        assert "javascript" not in sanitize_text("Visit javascript:alert(1) now").lower()

    @pytest.mark.parametrize("text,expected", [
        ("Contact me at bob@example.com today", "Contact me at [EMAIL_FILTERED] today"),
        ("Card 4111 1111 1111 1111 works", "Card [CARD_FILTERED] works"),
        ("My SSN is 123-45-6789", "My SSN is [SSN_FILTERED]"),
        ("Call 555-123-4567", "Call [PHONE_FILTERED]"),
        ("This is a scam", "This is a [FILTERED]"),
        ("Send a wire transfer first", "Send a [FILTERED] first"),
    ])
    def test_redactions(self, text, expected):
        assert sanitize_text(text) == expected

    def test_disallowed_characters_and_whitespace(self):
        assert sanitize_text("Great   offer!!!   ***") == "Great offer!!!"

    def test_length_is_bounded(self):
        result = sanitize_text("word " * 200)
        assert len(result) <= 500
        assert result.endswith("...")

    @pytest.mark.parametrize("text", [
        "<scr<script>ipt>alert(1)</script>I accept",
        "Email bob@example.com or call 555-123-4567!",
        "COUNTER: How about $850?   <iframe src=x></iframe>",
        "word " * 200,
        "Price: <b>$500</b> & free money",
        "",
    ])
    def test_sanitize_is_idempotent(self, text):
        once = sanitize_text(text)
        assert sanitize_text(once) == once

    @pytest.mark.parametrize("depth", [3, 6, 8, 12])
    def test_deeply_nested_javascript_uri_removed(self, depth):
        # Each level splices "javascript:" back together once the inner one is removed
        payload = "javascript:"
        for _ in range(depth):
            payload = "java" + payload + "script:"

        once = sanitize_text("click " + payload + "alert(1)")

        assert "javascript" not in once.lower()
        assert once == "click alert(1)"
        assert sanitize_text(once) == once


@pytest.mark.unit
class TestCleanDisplayContent:

    def test_directive_token_removed_and_capitalised(self):
        assert clean_display_content("ACCEPT: sounds good to me", Action.ACCEPT) == "Sounds good to me."

    def test_existing_terminal_punctuation_kept(self):
        assert clean_display_content("COUNTER how about $850?", Action.COUNTER) == "How about $850?"

    @pytest.mark.parametrize("action", list(Action))
    def test_empty_content_falls_back_to_default(self, action):
        assert clean_display_content("", action) == DEFAULT_MESSAGES[action]

    def test_only_directive_falls_back_to_default(self):
        assert clean_display_content("REJECT:", Action.REJECT) == "I cannot accept that offer."

    def test_lowercase_words_are_not_directives(self):
        assert clean_display_content("i accept", Action.ACCEPT) == "I accept."


@pytest.mark.unit
def test_truncate_keeps_ellipsis_inside_bound():
    assert truncate("abcdefghij", 8) == "abcde..."
    assert truncate("short", 8) == "short"
