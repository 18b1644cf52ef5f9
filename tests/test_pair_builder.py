import unittest

from lib.pairing.builder import (
    OddTrackCountError,
    PairingBuildError,
    build_pairs_from_plan,
    build_sequential_pairs,
)
from lib.pairing.models import Mapping, PairingPlan, RangeRule, Track, TrioOverride
from lib.pairing.plan import normalize_plan, validate_plan


def _tracks(n: int):
    return [Track(f"Track {i}", f"Artist {i}", {"spotifyUrl": f"https://open.spotify.com/track/{i}"}) for i in range(1, n + 1)]


def _positions(pairs):
    return [(p.original_pos, p.sampled_pos) for p in pairs]


class BuildPairsFromPlanTests(unittest.TestCase):
    def test_trio_and_ranges(self):
        tracks = _tracks(11)
        plan = PairingPlan(
            trios=[TrioOverride(5, 6, 7)],
            ranges=[
                RangeRule(1, 4, Mapping.EVEN_ORIGINAL),
                RangeRule(8, 11, Mapping.ODD_ORIGINAL),
            ],
        )
        self.assertTrue(validate_plan(plan, len(tracks)).ok)

        result = build_pairs_from_plan(tracks, plan)

        self.assertEqual(
            _positions(result.pairs),
            [(2, 1), (4, 3), (5, 6), (5, 7), (9, 8), (11, 10)],
        )
        self.assertEqual(result.leftover_positions, [])
        trio_pairs = result.pairs[2:4]
        self.assertIs(trio_pairs[0].original_track, trio_pairs[1].original_track)
        self.assertIs(result.pairs[0].original_track, tracks[1])
        self.assertEqual(result.pairs[0].sampled_track.extra["spotifyUrl"], "https://open.spotify.com/track/1")

    def test_odd_span_after_trio_is_fatal(self):
        tracks = _tracks(10)
        plan = normalize_plan(
            {
                "trios": [{"original": 5, "sampleA": 6, "sampleB": 7}],
                "ranges": [
                    {"start": 1, "end": 4, "mapping": "EVEN_ORIGINAL"},
                    {"start": 8, "end": 10, "mapping": "ODD_ORIGINAL"},
                ],
            },
            len(tracks),
        )
        self.assertTrue(validate_plan(plan, len(tracks)).ok)

        with self.assertRaises(PairingBuildError) as ctx:
            build_pairs_from_plan(tracks, plan)
        self.assertEqual(
            str(ctx.exception),
            "Range 2 [8..10]: unmatched tracks (1 originals, 2 samples)",
        )

    def test_odd_range_is_never_truncated(self):
        plan = PairingPlan(ranges=[RangeRule(1, 5, Mapping.EVEN_ORIGINAL)])
        with self.assertRaises(PairingBuildError) as ctx:
            build_pairs_from_plan(_tracks(5), plan)
        self.assertIn("(2 originals, 3 samples)", str(ctx.exception))

    def test_every_position_used_exactly_once(self):
        tracks = _tracks(10)
        plan = PairingPlan(
            ranges=[
                RangeRule(1, 6, Mapping.EVEN_ORIGINAL),
                RangeRule(7, 10, Mapping.ODD_ORIGINAL),
            ]
        )
        result = build_pairs_from_plan(tracks, plan)

        self.assertEqual(
            _positions(result.pairs),
            [(2, 1), (4, 3), (6, 5), (7, 8), (9, 10)],
        )
        used = sorted(pos for pair in result.pairs for pos in (pair.original_pos, pair.sampled_pos))
        self.assertEqual(used, list(range(1, 11)))

    def test_unused_positions_are_reported_as_leftover(self):
        plan = PairingPlan(ranges=[RangeRule(1, 4, Mapping.ODD_ORIGINAL)])
        with self.assertLogs("lib.pairing.builder", level="WARNING") as logs:
            result = build_pairs_from_plan(_tracks(6), plan)
        self.assertEqual(_positions(result.pairs), [(1, 2), (3, 4)])
        self.assertEqual(result.leftover_positions, [5, 6])
        self.assertIn("positions 5, 6", logs.output[0])

    def test_position_outside_playlist(self):
        plan = PairingPlan(ranges=[RangeRule(1, 4, Mapping.EVEN_ORIGINAL)])
        with self.assertRaises(PairingBuildError):
            build_pairs_from_plan(_tracks(2), plan)


class SequentialPairsTests(unittest.TestCase):
    def test_adjacent_pairs(self):
        pairs = build_sequential_pairs(_tracks(4))
        self.assertEqual(_positions(pairs), [(1, 2), (3, 4)])
        self.assertEqual(pairs[1].sampled_track.title, "Track 4")

    def test_odd_count_rejected(self):
        with self.assertRaises(OddTrackCountError) as ctx:
            build_sequential_pairs(_tracks(3))
        self.assertEqual(ctx.exception.track_count, 3)

    def test_empty_playlist(self):
        self.assertEqual(build_sequential_pairs([]), [])


if __name__ == "__main__":
    unittest.main()
