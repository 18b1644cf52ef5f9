"""
Normalization helpers: reduce formatting noise in titles and artist names so
that the same song compares equal across catalog versions.
"""
from __future__ import annotations

import re
from typing import List, Optional

# Trailing annotations that distinguish releases of the same song.
TRAILING_ANNOTATIONS: List[str] = [
    "remastered", "remaster", "remix", "radio edit", "radio version",
    "edit", "mono", "stereo", "version", "single version", "album version",
    "extended", "extended version", "deluxe", "deluxe edition",
    "explicit", "clean", "instrumental", "acapella", "live",
]

# Unicode whitespace; \s under re.ASCII only covers ASCII blanks
_ANY_SPACE = r"[\s\u00a0\u1680\u2000-\u200a\u2028\u2029\u202f\u205f\u3000\ufeff]"

# Longest first so "radio edit" is consumed before "edit" (sorted() is stable for ties).
_ANNOTATION_PATTERNS = [
    re.compile(rf"\b{re.escape(token)}(?:{_ANY_SPACE}+\d+)?\b{_ANY_SPACE}*$", re.IGNORECASE | re.ASCII)
    for token in sorted(TRAILING_ANNOTATIONS, key=len, reverse=True)
]

_DASHES = re.compile(r"[–—-]")
_PARENS = re.compile(r"\([^)]*\)")
_BRACKETS = re.compile(r"\[[^\]]*\]")
_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_text(s: Optional[str]) -> str:
    """Trim, collapse whitespace, lowercase."""
    if not s:
        return ""
    return _WHITESPACE.sub(" ", s.strip()).lower()


def normalize_title(title: Optional[str]) -> str:
    """
    Title normalization for dedupe comparison:
    - lowercase
    - en-dash / em-dash / hyphen -> space
    - drop (...) and [...] blocks (remaster years, edit names)
    - drop trailing annotations ("remastered 2003", "radio edit", "live" ...)
    - drop everything but a-z, 0-9 and whitespace
    - collapse whitespace, trim

    Each annotation is stripped at most once per call, so stacked trailers
    ("song remix live") need a second call to reduce fully.
    """
    if not title:
        return ""

    s = title.lower()
    s = _DASHES.sub(" ", s)
    s = _PARENS.sub("", s)
    s = _BRACKETS.sub("", s)

    # Each annotation gets one chance, in length order
    for pattern in _ANNOTATION_PATTERNS:
        s = pattern.sub("", s)

    s = _NON_ALNUM.sub("", s)
    s = _WHITESPACE.sub(" ", s)
    return s.strip()


def normalize_artist(artist: Optional[str]) -> str:
    """Lowercase, collapse whitespace, trim. Punctuation is kept."""
    if not artist:
        return ""
    return _WHITESPACE.sub(" ", artist.lower()).strip()
