"""
Data model for pairing: tracks, pairs, pairing plans and merge diagnostics.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from collections.abc import Mapping as MappingABC
from typing import Any, Dict, List, Optional


class Mapping(str, Enum):
    """
    Which parity plays the "original" role inside a range.
    """
    EVEN_ORIGINAL = "EVEN_ORIGINAL"  # even positions are originals, odd are samples
    ODD_ORIGINAL = "ODD_ORIGINAL"    # odd positions are originals, even are samples


class CollisionReason(str, Enum):
    DUPLICATE_WITHIN_BATCH = "duplicate_within_batch"
    ALREADY_IN_STORE = "already_in_store"


@dataclass
class Track:
    """A single playlist track. `extra` carries enrichment fields untouched."""
    title: str
    artist: str
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"title": self.title, "artist": self.artist, **self.extra}


@dataclass
class Pair:
    """
    One original/sample pair.

    Positions are 1-based indexes into the playlist the pair was built from.
    Records loaded from older exports may not carry positions (None).
    """
    original_track: Optional[Track]
    sampled_track: Optional[Track]
    original_pos: Optional[int] = None
    sampled_pos: Optional[int] = None


@dataclass
class TrioOverride:
    original: int
    sample_a: int
    sample_b: int

    @property
    def positions(self) -> List[int]:
        return [self.original, self.sample_a, self.sample_b]


@dataclass
class RangeRule:
    start: int
    end: int
    mapping: Mapping

    def covers(self, pos: int) -> bool:
        return self.start <= pos <= self.end


@dataclass
class PairingPlan:
    trios: List[TrioOverride] = field(default_factory=list)
    ranges: List[RangeRule] = field(default_factory=list)


@dataclass
class Collision:
    """A newly submitted pair whose key was already seen."""
    pair: Pair
    key: str
    reason: CollisionReason

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pair": pair_to_dict(self.pair),
            "key": self.key,
            "reason": self.reason.value,
        }


# =========================
# Wire-format adapters
# =========================


def track_from_dict(data: Any) -> Optional[Track]:
    if not isinstance(data, MappingABC):
        return None
    extra = {k: v for k, v in data.items() if k not in ("title", "artist")}
    return Track(
        title=str(data.get("title") or ""),
        artist=str(data.get("artist") or ""),
        extra=extra,
    )


def _opt_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def pair_from_dict(data: MappingABC) -> Pair:
    """
    Build a Pair from either wire shape:
      - {"originalTrack", "sampledTrack", "originalPos", "sampledPos"} (stored pairs)
      - {"original", "sampled", "pairIndex"} (JSON export)

    When positions are missing but a pairIndex is present, positions are
    derived as 2*i+1 / 2*i+2 (sequential layout of the export).
    """
    original = data.get("original") or data.get("originalTrack")
    sampled = data.get("sampled") or data.get("sampledTrack")

    original_pos = _opt_int(data.get("originalPos"))
    sampled_pos = _opt_int(data.get("sampledPos"))
    pair_index = _opt_int(data.get("pairIndex"))
    if pair_index is not None:
        if original_pos is None:
            original_pos = pair_index * 2 + 1
        if sampled_pos is None:
            sampled_pos = pair_index * 2 + 2

    return Pair(
        original_track=track_from_dict(original),
        sampled_track=track_from_dict(sampled),
        original_pos=original_pos,
        sampled_pos=sampled_pos,
    )


def pair_to_dict(pair: Pair) -> Dict[str, Any]:
    return {
        "originalTrack": pair.original_track.to_dict() if pair.original_track else None,
        "sampledTrack": pair.sampled_track.to_dict() if pair.sampled_track else None,
        "originalPos": pair.original_pos,
        "sampledPos": pair.sampled_pos,
    }
