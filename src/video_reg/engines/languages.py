"""Mapping of locale tags to OCR engine language codes."""

from typing import Dict, List, Sequence

DEFAULT_LANGUAGE_HINTS = ("zh-Hans", "zh-Hant")

# Region subtags that imply a Chinese script
_CHINESE_REGIONS = {
    "cn": "zh-hans",
    "sg": "zh-hans",
    "tw": "zh-hant",
    "hk": "zh-hant",
    "mo": "zh-hant",
}

EASYOCR_CODES: Dict[str, str] = {
    "zh-hans": "ch_sim",
    "zh-hant": "ch_tra",
    "en": "en",
    "ja": "ja",
    "ko": "ko",
    "fr": "fr",
    "de": "de",
    "es": "es",
    "it": "it",
    "pt": "pt",
    "ru": "ru",
}

TESSERACT_CODES: Dict[str, str] = {
    "zh-hans": "chi_sim",
    "zh-hant": "chi_tra",
    "en": "eng",
    "ja": "jpn",
    "ko": "kor",
    "fr": "fra",
    "de": "deu",
    "es": "spa",
    "it": "ita",
    "pt": "por",
    "ru": "rus",
}


class UnsupportedLanguageError(ValueError):
    """A language hint has no code for the selected engine."""

    pass


def normalize_tag(tag: str) -> str:
    """
    Normalize a locale tag to the keys used by the code tables.

    ``zh_CN``, ``zh-Hans-CN`` and ``zh-cn`` all become ``zh-hans``; other
    languages collapse to their primary subtag (``en-US`` -> ``en``).
    """
    parts = tag.strip().replace("_", "-").lower().split("-")
    primary = parts[0]

    if primary != "zh":
        return primary

    for part in parts[1:]:
        if part in ("hans", "hant"):
            return f"zh-{part}"
        if part in _CHINESE_REGIONS:
            return _CHINESE_REGIONS[part]

    return "zh-hans"


def map_languages(hints: Sequence[str], table: Dict[str, str]) -> List[str]:
    """
    Map locale tags to engine codes, preserving order and dropping repeats.

    Raises:
        UnsupportedLanguageError: If a tag has no code in the table
    """
    codes: List[str] = []
    for hint in hints:
        key = normalize_tag(hint)
        if key not in table:
            raise UnsupportedLanguageError(f"Unsupported language hint: {hint!r}")
        code = table[key]
        if code not in codes:
            codes.append(code)
    return codes
