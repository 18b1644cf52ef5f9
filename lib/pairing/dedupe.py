"""
Stable identity keys for tracks and pairs, plus duplicate detectors.

A pair key looks like "O:<title>|<artist>||S:<title>|<artist>" built from the
normalized fields, so "Song - Remastered 2003" and "Song (2018 Remaster)" by
the same artist produce the same key.
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

from lib.pairing.models import Pair, Track
from lib.pairing.normalizer import normalize_artist, normalize_title


def key_for_track(track: Optional[Track]) -> str:
    if track is None:
        return ""
    return f"{normalize_title(track.title)}|{normalize_artist(track.artist)}"


def pair_key(pair: Optional[Pair]) -> str:
    """
    Dedupe key for a pair. "" means unkeyable: the pair is absent or carries
    no track at all. A single missing track only empties its own component.
    """
    if pair is None:
        return ""
    original_key = key_for_track(pair.original_track)
    sampled_key = key_for_track(pair.sampled_track)
    if not original_key and not sampled_key:
        return ""
    return f"O:{original_key}||S:{sampled_key}"


def detect_duplicate_tracks(tracks: Iterable[Track]) -> List[Tuple[Track, List[int]]]:
    """
    Exact title|artist repeats inside a playlist.
    Returns (track, [first_position, repeat_position]) per repeat, 1-based.
    """
    seen: Dict[str, int] = {}
    duplicates: List[Tuple[Track, List[int]]] = []
    for index, track in enumerate(tracks):
        key = f"{track.title}|{track.artist}"
        if key in seen:
            duplicates.append((track, [seen[key], index + 1]))
        else:
            seen[key] = index + 1
    return duplicates


def detect_duplicates_in_pairs(pairs: Iterable[Pair]) -> List[str]:
    """Tracks used more than once across pairs, as '"title" by artist' labels."""
    seen = set()
    duplicates: List[str] = []
    for pair in pairs:
        for track in (pair.original_track, pair.sampled_track):
            if track is None:
                continue
            key = f"{track.title}|{track.artist}"
            if key in seen:
                label = f'"{track.title}" by {track.artist}'
                if label not in duplicates:
                    duplicates.append(label)
            else:
                seen.add(key)
    return duplicates
