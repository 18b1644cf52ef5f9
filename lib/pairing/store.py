"""
JSON file persistence for the canonical pair store.

The file holds a flat list of {originalTrack, sampledTrack, originalPos,
sampledPos} records. It is read once at the start of a merge and rewritten
atomically (temp file + os.replace) at the end.

PairStore does no locking. Concurrent merges on the same file race; callers
must serialize them (app.py holds an asyncio.Lock around merges).
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import List, Sequence

from lib.pairing.merge import MergeResult, merge_into_store
from lib.pairing.models import Pair, pair_from_dict, pair_to_dict

logger = logging.getLogger(__name__)


class StoreFormatError(ValueError):
    """The store file exists but does not hold a list of pair records."""


class PairStore:
    def __init__(self, path: str | Path):
        self.path = Path(path).expanduser()

    def load(self) -> List[Pair]:
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise StoreFormatError(f"Pair store {self.path} is not valid JSON: {e}") from e
        if not isinstance(data, list):
            raise StoreFormatError(f"Pair store {self.path} must contain a JSON array")
        return [pair_from_dict(item) for item in data if isinstance(item, dict)]

    def save(self, pairs: Sequence[Pair]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps([pair_to_dict(p) for p in pairs], indent=2, ensure_ascii=False)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp, self.path)
        except BaseException:
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise

    def merge(self, new_pairs: Sequence[Pair]) -> MergeResult:
        stored = self.load()
        result = merge_into_store(stored, new_pairs)
        self.save(result.pairs)
        logger.info(
            f"[store] merged path={self.path} stored={len(stored)} new={len(new_pairs)} "
            f"added={result.added} collisions={len(result.collisions)} total={len(result.pairs)}"
        )
        return result
