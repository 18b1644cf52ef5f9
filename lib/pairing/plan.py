"""
Pairing plan normalization and validation.

Two tiers on purpose:
  - normalize_plan() is permissive: garbage trios/ranges are dropped silently.
  - validate_plan() is strict: every violation is collected and returned.
"""
from __future__ import annotations

import re
from collections.abc import Mapping as MappingABC
from dataclasses import dataclass, field
from typing import Any, List, Optional, Set

from lib.pairing.models import Mapping, PairingPlan, RangeRule, TrioOverride

_LEADING_INT = re.compile(r"^[+-]?\d+")


@dataclass
class ValidationResult:
    ok: bool
    errors: List[str] = field(default_factory=list)


def parse_leading_int(value: Any) -> Optional[int]:
    """
    Leading-integer parse of the trimmed string form:
    "7" / 7 / " 7 " / "7abc" / 7.9 -> 7, "abc" / None / "" -> None.
    """
    if value is None or isinstance(value, bool):
        return None
    m = _LEADING_INT.match(str(value).strip())
    if not m:
        return None
    return int(m.group(0))


def _clamp(value: int, track_count: int) -> int:
    return max(1, min(track_count, value))


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _normalize_trio(raw: Any, track_count: int) -> Optional[TrioOverride]:
    if not isinstance(raw, MappingABC):
        return None
    original = parse_leading_int(raw.get("original"))
    sample_a = parse_leading_int(raw.get("sampleA"))
    sample_b = parse_leading_int(raw.get("sampleB"))
    if original is None or sample_a is None or sample_b is None:
        return None
    return TrioOverride(
        original=_clamp(original, track_count),
        sample_a=_clamp(sample_a, track_count),
        sample_b=_clamp(sample_b, track_count),
    )


def _normalize_range(raw: Any, track_count: int) -> Optional[RangeRule]:
    if not isinstance(raw, MappingABC):
        return None
    start = parse_leading_int(raw.get("start"))
    end = parse_leading_int(raw.get("end"))
    if start is None or end is None:
        return None

    if start > end:
        start, end = end, start
    start = _clamp(start, track_count)
    end = _clamp(end, track_count)

    try:
        mapping = Mapping(str(raw.get("mapping")).strip())
    except ValueError:
        return None

    return RangeRule(start=start, end=end, mapping=mapping)


def normalize_plan(raw_plan: Any, track_count: int) -> PairingPlan:
    """
    Coerce a raw plan (decoded JSON) into a PairingPlan.

    - trios / ranges default to []
    - fields are parsed as integers; a bad field drops its whole trio/range
    - values are clamped to [1..track_count]
    - reversed ranges are swapped, unknown mappings are dropped
    - ranges are sorted by start (stable)

    Never raises.
    """
    if not isinstance(raw_plan, MappingABC):
        raw_plan = {}

    trios = [
        trio
        for trio in (_normalize_trio(t, track_count) for t in _as_list(raw_plan.get("trios")))
        if trio is not None
    ]
    ranges = [
        rng
        for rng in (_normalize_range(r, track_count) for r in _as_list(raw_plan.get("ranges")))
        if rng is not None
    ]
    ranges.sort(key=lambda r: r.start)

    return PairingPlan(trios=trios, ranges=ranges)


def validate_plan(plan: PairingPlan, track_count: int) -> ValidationResult:
    """
    Check a (normalized) plan against a playlist of track_count tracks.

    Violations are accumulated, never raised:
    - at least one range is required
    - trio positions in range, distinct, not shared with another trio
    - range bounds in range, start <= end
    - no overlapping ranges ([1,5] + [6,10] is fine, [1,5] + [5,10] is not)
    - every non-trio position covered by exactly one range
    """
    errors: List[str] = []

    if not plan.ranges:
        errors.append("Pairing plan must have at least one range rule")

    trio_tracks: Set[int] = set()
    for index, trio in enumerate(plan.trios, start=1):
        tracks = trio.positions

        for track in tracks:
            if track < 1 or track > track_count:
                errors.append(f"Trio {index}: track {track} is out of range [1..{track_count}]")

        unique_tracks = set(tracks)
        if len(unique_tracks) != 3:
            errors.append(
                f"Trio {index}: must contain 3 distinct track numbers "
                f"(got: {', '.join(str(t) for t in tracks)})"
            )

        for track in sorted(unique_tracks):
            if track in trio_tracks:
                errors.append(f"Track {track} appears in multiple trios")
        trio_tracks.update(unique_tracks)

    for index, rng in enumerate(plan.ranges, start=1):
        if rng.start < 1 or rng.start > track_count:
            errors.append(f"Range {index}: start {rng.start} is out of range [1..{track_count}]")
        if rng.end < 1 or rng.end > track_count:
            errors.append(f"Range {index}: end {rng.end} is out of range [1..{track_count}]")
        if rng.start > rng.end:
            errors.append(f"Range {index}: start ({rng.start}) must be <= end ({rng.end})")

    for i in range(len(plan.ranges)):
        for j in range(i + 1, len(plan.ranges)):
            a = plan.ranges[i]
            b = plan.ranges[j]
            overlap = a.end >= b.start and b.end >= a.start
            touching = a.end + 1 == b.start or b.end + 1 == a.start
            if overlap and not touching:
                errors.append(
                    f"Ranges {i + 1} [{a.start}..{a.end}] and {j + 1} [{b.start}..{b.end}] overlap"
                )

    for track_num in range(1, track_count + 1):
        if track_num in trio_tracks:
            continue
        covering = sum(1 for rng in plan.ranges if rng.covers(track_num))
        if covering == 0:
            errors.append(f"Track {track_num} is not covered by any range and is not in a trio")
        elif covering > 1:
            errors.append(f"Track {track_num} is covered by multiple ranges (only one allowed)")

    return ValidationResult(ok=not errors, errors=errors)
