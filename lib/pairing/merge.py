"""
Fold newly built pairs into the previously accumulated canonical pairs.

Stored pairs always win ties: the first pair seen for a key is kept, so a
re-scraped duplicate never replaces what is already in the store.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Set

from lib.pairing.dedupe import pair_key
from lib.pairing.models import Collision, CollisionReason, Pair


@dataclass
class MergeResult:
    pairs: List[Pair]
    added: int = 0
    collisions: List[Collision] = field(default_factory=list)


def merge_pairs(stored: Sequence[Pair], new: Sequence[Pair]) -> List[Pair]:
    """stored ++ new, first occurrence per key, unkeyable pairs dropped."""
    by_key: Dict[str, Pair] = {}
    for pair in [*stored, *new]:
        key = pair_key(pair)
        if not key or key in by_key:
            continue
        by_key[key] = pair
    # dicts keep insertion order: stored pairs first, then newly seen ones
    return list(by_key.values())


def classify_collisions(stored: Sequence[Pair], new: Sequence[Pair]) -> List[Collision]:
    """Which of the new pairs were already stored or repeated in the batch. Reporting only."""
    stored_keys: Set[str] = {k for k in (pair_key(p) for p in stored) if k}
    batch_keys: Set[str] = set()
    collisions: List[Collision] = []

    for pair in new:
        key = pair_key(pair)
        if not key:
            continue
        if key in stored_keys:
            collisions.append(Collision(pair=pair, key=key, reason=CollisionReason.ALREADY_IN_STORE))
        elif key in batch_keys:
            collisions.append(Collision(pair=pair, key=key, reason=CollisionReason.DUPLICATE_WITHIN_BATCH))
        batch_keys.add(key)

    return collisions


def merge_into_store(stored: Sequence[Pair], new: Sequence[Pair]) -> MergeResult:
    merged = merge_pairs(stored, new)
    baseline = len(merge_pairs(stored, []))
    return MergeResult(
        pairs=merged,
        added=len(merged) - baseline,
        collisions=classify_collisions(stored, new),
    )
