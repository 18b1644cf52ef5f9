"""
Pair construction: from a validated pairing plan, or sequentially (1,2), (3,4), ...
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Sequence, Set

from lib.pairing.models import Mapping, Pair, PairingPlan, Track

logger = logging.getLogger(__name__)


class PairingBuildError(Exception):
    """A plan that cannot be turned into pairs (e.g. unmatched range parity)."""


class OddTrackCountError(PairingBuildError):
    def __init__(self, track_count: int):
        super().__init__(f"Sequential pairing needs an even number of tracks (got {track_count})")
        self.track_count = track_count


@dataclass
class BuildResult:
    pairs: List[Pair]
    leftover_positions: List[int] = field(default_factory=list)


def _track_at(tracks: Sequence[Track], pos: int) -> Track:
    if pos < 1 or pos > len(tracks):
        raise PairingBuildError(f"Track position {pos} is outside the playlist [1..{len(tracks)}]")
    return tracks[pos - 1]


def _make_pair(tracks: Sequence[Track], original_pos: int, sampled_pos: int) -> Pair:
    return Pair(
        original_track=_track_at(tracks, original_pos),
        sampled_track=_track_at(tracks, sampled_pos),
        original_pos=original_pos,
        sampled_pos=sampled_pos,
    )


def build_pairs_from_plan(tracks: Sequence[Track], plan: PairingPlan) -> BuildResult:
    """
    Apply a validated plan to a playlist.

    1. Trios first: (original, sampleA) and (original, sampleB); all three positions used.
    2. Ranges in plan order: unused positions split by parity per mapping and
       zipped in ascending order. Unequal counts raise PairingBuildError.
    3. Positions never used are returned as leftover_positions (warning only).
    4. Pairs are sorted by min(original_pos, sampled_pos).

    Raises:
        PairingBuildError: range with unmatched originals/samples, or a
            position outside the track list.
    """
    pairs: List[Pair] = []
    used: Set[int] = set()

    logger.debug(f"[pairing] building pairs from {len(tracks)} tracks")

    for index, trio in enumerate(plan.trios, start=1):
        logger.debug(
            f"[pairing] trio {index}: original={trio.original} samples={trio.sample_a},{trio.sample_b}"
        )
        pairs.append(_make_pair(tracks, trio.original, trio.sample_a))
        pairs.append(_make_pair(tracks, trio.original, trio.sample_b))
        used.update(trio.positions)

    for index, rng in enumerate(plan.ranges, start=1):
        available = [pos for pos in range(rng.start, rng.end + 1) if pos not in used]

        originals: List[int] = []
        samples: List[int] = []
        for pos in available:
            is_even = pos % 2 == 0
            if is_even == (rng.mapping == Mapping.EVEN_ORIGINAL):
                originals.append(pos)
            else:
                samples.append(pos)

        if len(originals) != len(samples):
            message = (
                f"Range {index} [{rng.start}..{rng.end}]: unmatched tracks "
                f"({len(originals)} originals, {len(samples)} samples)"
            )
            logger.error(f"[pairing] {message}")
            raise PairingBuildError(message)

        for original_pos, sampled_pos in zip(originals, samples):
            pairs.append(_make_pair(tracks, original_pos, sampled_pos))
            used.add(original_pos)
            used.add(sampled_pos)

        logger.debug(
            f"[pairing] range {index} [{rng.start}..{rng.end}] {rng.mapping.value}: "
            f"{len(originals)} pair(s)"
        )

    leftover = [pos for pos in range(1, len(tracks) + 1) if pos not in used]
    if leftover:
        logger.warning(
            f"[pairing] {len(leftover)} track(s) not paired: positions {', '.join(map(str, leftover))}"
        )

    pairs.sort(key=lambda p: min(p.original_pos, p.sampled_pos))

    logger.info(f"[pairing] total pairs created: {len(pairs)}")
    return BuildResult(pairs=pairs, leftover_positions=leftover)


def build_sequential_pairs(tracks: Sequence[Track]) -> List[Pair]:
    """Default pairing: (1,2), (3,4), ... Odd playlists are rejected."""
    if len(tracks) % 2 != 0:
        raise OddTrackCountError(len(tracks))
    return [_make_pair(tracks, pos, pos + 1) for pos in range(1, len(tracks) + 1, 2)]
