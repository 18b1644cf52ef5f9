"""
Playlist pairing: plan normalization/validation, pair building and dedupe-aware merging.

Public API:
  - normalize_plan(raw_plan, track_count) -> PairingPlan
  - validate_plan(plan, track_count) -> ValidationResult
  - build_pairs_from_plan(tracks, plan) -> BuildResult
  - build_sequential_pairs(tracks) -> list[Pair]
  - pair_key(pair) -> str
  - merge_pairs(stored, new) -> list[Pair]
  - PairStore(path)
"""
from lib.pairing.builder import (
    BuildResult,
    OddTrackCountError,
    PairingBuildError,
    build_pairs_from_plan,
    build_sequential_pairs,
)
from lib.pairing.dedupe import pair_key, key_for_track
from lib.pairing.merge import MergeResult, classify_collisions, merge_into_store, merge_pairs
from lib.pairing.models import (
    Collision,
    CollisionReason,
    Mapping,
    Pair,
    PairingPlan,
    RangeRule,
    Track,
    TrioOverride,
    pair_from_dict,
    pair_to_dict,
    track_from_dict,
)
from lib.pairing.normalizer import normalize_artist, normalize_title
from lib.pairing.plan import ValidationResult, normalize_plan, parse_leading_int, validate_plan
from lib.pairing.store import PairStore, StoreFormatError

__all__ = [
    "BuildResult",
    "OddTrackCountError",
    "PairingBuildError",
    "build_pairs_from_plan",
    "build_sequential_pairs",
    "pair_key",
    "key_for_track",
    "MergeResult",
    "classify_collisions",
    "merge_into_store",
    "merge_pairs",
    "Collision",
    "CollisionReason",
    "Mapping",
    "Pair",
    "PairingPlan",
    "RangeRule",
    "Track",
    "TrioOverride",
    "pair_from_dict",
    "pair_to_dict",
    "track_from_dict",
    "normalize_artist",
    "normalize_title",
    "ValidationResult",
    "normalize_plan",
    "parse_leading_int",
    "validate_plan",
    "PairStore",
    "StoreFormatError",
]
