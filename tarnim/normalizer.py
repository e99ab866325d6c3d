"""
Arabic Text Normalizer

Canonicalizes Arabic script so that hymn titles and lyrics match a query
regardless of diacritics or letter-variant spelling:

1. Tashkeel (U+064B-U+0652), superscript alef (U+0670) and tatweel (U+0640)
   are removed outright.
2. Alef variants collapse to bare alef; taa marbuta, alef maksura and the
   hamza-carrying waw/yaa map to their plain forms.

The same ``normalize()`` is used on the write path (import) and the read
path (queries), so equal-after-normalization strings always match.
"""

import re
from types import MappingProxyType
from typing import Optional


# ---------------------------------------------------------------------------
# Tables (built once at import, read-only afterwards)
# ---------------------------------------------------------------------------

_TASHKEEL_RE = re.compile("[\u064B-\u0652\u0670\u0640]")

ALEF_VARIANTS = MappingProxyType({
    "أ": "ا",  # alef with hamza above
    "إ": "ا",  # alef with hamza below
    "آ": "ا",  # alef with madda
    "ٱ": "ا",  # alef wasla
})

OTHER_VARIANTS = MappingProxyType({
    "ة": "ه",  # taa marbuta -> haa
    "ى": "ي",  # alef maksura -> yaa
    "ؤ": "و",  # waw with hamza -> waw
    "ئ": "ي",  # yaa with hamza -> yaa
})

# str.translate substitutes in a single pass, so a mapped character is never
# looked up a second time.
_CHAR_TABLE = MappingProxyType(
    {ord(k): v for k, v in {**ALEF_VARIANTS, **OTHER_VARIANTS}.items()}
)

_ARABIC_RE = re.compile("[\u0600-\u06FF]")
_DIGITS_RE = re.compile("[0-9]+")

# Hymn numbers are 32-bit signed; anything outside is treated as unparseable.
NUMBER_MIN = -(2 ** 31)
NUMBER_MAX = 2 ** 31 - 1


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def normalize(text: Optional[str]) -> str:
    """Return the canonical search form of ``text`` ("" for None or blank input)."""
    if text is None or not text.strip():
        return ""
    stripped = _TASHKEEL_RE.sub("", text)
    return stripped.translate(_CHAR_TABLE)


def is_numeric_only(text: Optional[str]) -> bool:
    """True if ``text`` is one or more ASCII digits once surrounding whitespace is trimmed."""
    if not text:
        return False
    return _DIGITS_RE.fullmatch(text.strip()) is not None


def contains_arabic(text: Optional[str]) -> bool:
    """True if any character falls in the Arabic Unicode block."""
    if not text:
        return False
    return _ARABIC_RE.search(text) is not None


def parse_number(text: Optional[str]) -> Optional[int]:
    """Parse ``text`` as a hymn number, or None if it is not one or is out of range."""
    if text is None:
        return None
    try:
        value = int(text)
    except ValueError:
        return None
    if not NUMBER_MIN <= value <= NUMBER_MAX:
        return None
    return value


def extract_first_number(text: Optional[str]) -> Optional[int]:
    """
    Return the first run of ASCII digits in ``text`` as an int.

    Used to recover queries like "ترنيمة 42" where the hymn number is
    embedded in surrounding words. A run too large to be a hymn number
    gives None.
    """
    if not text:
        return None
    match = _DIGITS_RE.search(text)
    if match is None:
        return None
    return parse_number(match.group(0))
