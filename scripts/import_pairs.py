#!/usr/bin/env python3
"""
Import a JSON export ([{"pairIndex", "original", "sampled"}, ...] or
{"pairs": [...]}) into the canonical pair store.

Usage:
    python scripts/import_pairs.py new-pairs-data.json [pairs.enriched.json]

Positions are derived from pairIndex (2*i+1 / 2*i+2). Pairs already in the
store (same normalized title/artist on both sides) are skipped.
"""
from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List

from lib.pairing.models import Pair, pair_from_dict
from lib.pairing.store import PairStore, StoreFormatError

logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
logger = logging.getLogger(__name__)

# Fields kept from the export; everything else is enrichment we do not store
EXPORT_TRACK_FIELDS = ("title", "artist", "spotifyUrl", "youtubeId", "startSec")


def _slim_track(track: Dict[str, Any]) -> Dict[str, Any]:
    slim = {k: track.get(k) for k in EXPORT_TRACK_FIELDS}
    slim["startSec"] = track.get("startSec") or 0
    return slim


def load_export(path: Path) -> List[Pair]:
    data = json.loads(path.read_text(encoding="utf-8"))
    records = data.get("pairs", []) if isinstance(data, dict) else data
    if not isinstance(records, list):
        raise ValueError(f"{path}: expected a list of pairs")

    pairs: List[Pair] = []
    for rec in records:
        if not isinstance(rec, dict):
            continue
        rec = dict(rec)
        for side in ("original", "sampled"):
            if isinstance(rec.get(side), dict):
                rec[side] = _slim_track(rec[side])
        pairs.append(pair_from_dict(rec))
    return pairs


def main(argv: list[str]) -> int:
    if len(argv) < 2:
        print("Usage: import_pairs.py <export.json> [store.json]")
        return 2

    export_path = Path(argv[1])
    store_path = Path(argv[2]) if len(argv) > 2 else Path(os.getenv("PAIRS_STORE_PATH", "pairs.enriched.json"))

    try:
        pairs = load_export(export_path)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to read export {export_path}: {e}")
        return 1

    try:
        result = PairStore(store_path).merge(pairs)
    except StoreFormatError as e:
        logger.error(f"Pair store {store_path} is unreadable: {e}")
        return 1
    for collision in result.collisions:
        logger.info(f"skipped ({collision.reason.value}): {collision.key}")
    print(f"Imported {result.added} of {len(pairs)} pairs into {store_path} (total {len(result.pairs)})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv))
