import json
import tempfile
import unittest
from pathlib import Path

from lib.pairing.models import Pair, Track
from lib.pairing.store import PairStore, StoreFormatError


class PairStoreTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.path = Path(self._tmp.name) / "pairs.enriched.json"
        self.store = PairStore(self.path)

    def test_missing_file_is_empty_store(self):
        self.assertEqual(self.store.load(), [])

    def test_save_writes_stored_shape(self):
        pair = Pair(
            Track("One", "X", {"youtubeId": "abc", "startSec": 12}),
            Track("Two", "Y"),
            original_pos=1,
            sampled_pos=2,
        )
        self.store.save([pair])

        data = json.loads(self.path.read_text(encoding="utf-8"))
        self.assertEqual(
            data,
            [
                {
                    "originalTrack": {"title": "One", "artist": "X", "youtubeId": "abc", "startSec": 12},
                    "sampledTrack": {"title": "Two", "artist": "Y"},
                    "originalPos": 1,
                    "sampledPos": 2,
                }
            ],
        )
        self.assertEqual(self.store.load(), [pair])
        self.assertEqual(list(Path(self._tmp.name).glob("*.tmp")), [])

    def test_merge_persists_and_skips_known_pairs(self):
        first = self.store.merge([Pair(Track("One", "X"), Track("Two", "Y"), 1, 2)])
        self.assertEqual(first.added, 1)

        second = self.store.merge(
            [
                Pair(Track("One - Remastered", "x"), Track("Two", "Y"), 5, 6),
                Pair(Track("Three", "Z"), Track("Four", "W"), 7, 8),
            ]
        )
        self.assertEqual(second.added, 1)
        self.assertEqual(len(second.collisions), 1)

        reloaded = self.store.load()
        self.assertEqual([p.original_track.title for p in reloaded], ["One", "Three"])
        self.assertEqual(reloaded[0].original_pos, 1)

    def test_loads_export_shaped_records(self):
        self.path.write_text(
            json.dumps([{"pairIndex": 2, "original": {"title": "A", "artist": "B"}, "sampled": {"title": "C", "artist": "D"}}]),
            encoding="utf-8",
        )
        pairs = self.store.load()
        self.assertEqual((pairs[0].original_pos, pairs[0].sampled_pos), (5, 6))
        self.assertEqual(pairs[0].sampled_track.title, "C")

    def test_corrupted_store_raises(self):
        self.path.write_text("{not json", encoding="utf-8")
        with self.assertRaises(StoreFormatError):
            self.store.load()

        self.path.write_text(json.dumps({"pairs": []}), encoding="utf-8")
        with self.assertRaises(StoreFormatError):
            self.store.load()


if __name__ == "__main__":
    unittest.main()
