"""Tests for scenevoice.language — dominant script detection."""

import pytest

from scenevoice.language import detect_language, language_shares


class TestDetectLanguage:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("Hello world", "en"),
            ("你好世界", "zh"),
            ("こんにちは", "ja"),
            ("カタカナです", "ja"),
            ("你好你好 hello", "mixed"),
            ("12345 !!", "unknown"),
            ("", "unknown"),
        ],
    )
    def test_detect(self, text, expected):
        assert detect_language(text) == expected


class TestLanguageShares:
    def test_empty_is_all_zero(self):
        assert language_shares("") == {"zh": 0.0, "ja": 0.0, "en": 0.0}

    def test_shares_over_all_characters(self):
        shares = language_shares("ab  ")
        assert shares["en"] == pytest.approx(50.0)
        assert shares["zh"] == 0.0
