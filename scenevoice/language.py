"""Dominant-language detection for TTS ``text_lang`` selection."""

import re

CHINESE = "zh"
JAPANESE = "ja"
ENGLISH = "en"
MIXED = "mixed"
UNKNOWN = "unknown"

_CHINESE_CHARS = re.compile(
    "["
    "\u4e00-\u9fff"              # CJK unified ideographs
    "\u3400-\u4dbf"              # extension A
    "\U00020000-\U0002a6df"      # extension B
    "\U0002a700-\U0002ceaf"      # extensions C-E
    "\uf900-\ufaff"              # compatibility ideographs
    "\u3300-\u33ff"              # CJK compatibility
    "\ufe30-\ufe4f"              # compatibility forms
    "\U0002f800-\U0002fa1f"      # compatibility supplement
    "]"
)
_JAPANESE_KANA = re.compile("[\u3040-\u309f\u30a0-\u30ff]")
_LATIN_LETTERS = re.compile("[a-zA-Z]")

DOMINANT_PERCENT = 60.0
MIXED_PERCENT = 20.0


def language_shares(text: str) -> dict[str, float]:
    """Percentage of characters in each script, over all characters of *text*."""
    counts = {CHINESE: 0, JAPANESE: 0, ENGLISH: 0}
    if not text:
        return {lang: 0.0 for lang in counts}

    for char in text:
        if _CHINESE_CHARS.match(char):
            counts[CHINESE] += 1
        elif _JAPANESE_KANA.match(char):
            counts[JAPANESE] += 1
        elif _LATIN_LETTERS.match(char):
            counts[ENGLISH] += 1

    total = len(text)
    return {lang: count / total * 100 for lang, count in counts.items()}


def detect_language(text: str) -> str:
    """Return zh/ja/en when one script exceeds 60 %, mixed when two exceed 20 %."""
    if not text:
        return UNKNOWN

    shares = language_shares(text)
    for lang in (CHINESE, JAPANESE, ENGLISH):
        if shares[lang] > DOMINANT_PERCENT:
            return lang

    if sum(1 for share in shares.values() if share > MIXED_PERCENT) >= 2:
        return MIXED
    return UNKNOWN
