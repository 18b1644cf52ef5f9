# pairs_text.py
"""
Editable text sheet for pairs:

    Pair 0
    Original: Title — Artist
    Sampled: Title — Artist

The sheet is downloaded, corrected by hand, and uploaded back as confirmed text.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

from lib.pairing.models import Pair, Track

_PAIR_LINE = re.compile(r"^Pair\s+(\d+)", re.IGNORECASE)
_ORIGINAL_LINE = re.compile(r"^Original:\s*(.+?)\s*—\s*(.+)$", re.IGNORECASE)
_SAMPLED_LINE = re.compile(r"^Sampled:\s*(.+?)\s*—\s*(.+)$", re.IGNORECASE)


@dataclass
class ParsedPair:
    pair_number: Optional[int]
    original: Optional[Track] = None
    sampled: Optional[Track] = None


def _track_line(track: Optional[Track]) -> str:
    if track is None:
        return ""
    return f"{track.title} — {track.artist}"


def render_pairs_text(pairs: Sequence[Pair]) -> str:
    blocks = []
    for index, pair in enumerate(pairs):
        blocks.append(
            f"Pair {index}\n"
            f"Original: {_track_line(pair.original_track)}\n"
            f"Sampled: {_track_line(pair.sampled_track)}\n\n"
        )
    return "".join(blocks)


def parse_pairs_text(text: str) -> List[ParsedPair]:
    """
    Parse a confirmed sheet. Blank and unrecognized lines are ignored;
    Original/Sampled lines before the first "Pair N" header are dropped.
    """
    pairs: List[ParsedPair] = []
    current: Optional[ParsedPair] = None

    for raw_line in (text or "").split("\n"):
        line = raw_line.strip()
        if not line:
            continue

        m = _PAIR_LINE.match(line)
        if m:
            if current is not None:
                pairs.append(current)
            current = ParsedPair(pair_number=int(m.group(1)))
            continue

        if current is None:
            continue

        m = _ORIGINAL_LINE.match(line)
        if m:
            current.original = Track(title=m.group(1).strip(), artist=m.group(2).strip())
            continue

        m = _SAMPLED_LINE.match(line)
        if m:
            current.sampled = Track(title=m.group(1).strip(), artist=m.group(2).strip())

    if current is not None:
        pairs.append(current)

    return pairs


def validate_parsed_pairs(pairs: Sequence[ParsedPair]) -> Optional[str]:
    """First problem found, or None when every pair has both tracks."""
    for pair in pairs:
        if pair.original is None:
            return f"Pair {pair.pair_number} is missing the Original track"
        if pair.sampled is None:
            return f"Pair {pair.pair_number} is missing the Sampled track"
    return None


def parsed_to_pairs(parsed: Sequence[ParsedPair]) -> List[Pair]:
    return [Pair(original_track=p.original, sampled_track=p.sampled) for p in parsed]
