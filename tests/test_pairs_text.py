import unittest

from lib.pairing.models import Pair, Track
from pairs_text import parse_pairs_text, render_pairs_text, validate_parsed_pairs

SHEET = """Pair 0
Original: Every Breath You Take — The Police
Sampled: I'll Be Missing You — Puff Daddy, Faith Evans

Pair 1
Original: Let It Whip — Dazz Band
Sampled: Hey-Ya! — OutKast

"""


class RenderPairsTextTests(unittest.TestCase):
    def test_render_numbers_pairs_from_zero(self):
        pairs = [
            Pair(Track("Every Breath You Take", "The Police"), Track("I'll Be Missing You", "Puff Daddy, Faith Evans"), 1, 2),
            Pair(Track("Let It Whip", "Dazz Band"), Track("Hey-Ya!", "OutKast"), 3, 4),
        ]
        self.assertEqual(render_pairs_text(pairs), SHEET)

    def test_render_empty(self):
        self.assertEqual(render_pairs_text([]), "")


class ParsePairsTextTests(unittest.TestCase):
    def test_parses_rendered_sheet(self):
        parsed = parse_pairs_text(SHEET)
        self.assertEqual([p.pair_number for p in parsed], [0, 1])
        self.assertEqual(parsed[0].sampled.title, "I'll Be Missing You")
        self.assertEqual(parsed[0].sampled.artist, "Puff Daddy, Faith Evans")
        self.assertEqual(parsed[1].sampled.title, "Hey-Ya!")
        self.assertIsNone(validate_parsed_pairs(parsed))

    def test_tolerates_spacing_case_and_noise(self):
        text = (
            "Original: orphan — ignored\n"
            "  pair 3  \n"
            "\n"
            "original:   Song A—Artist A  \n"
            "some comment\n"
            "SAMPLED: Song B — Artist B — Remix\n"
        )
        parsed = parse_pairs_text(text)
        self.assertEqual(len(parsed), 1)
        self.assertEqual(parsed[0].pair_number, 3)
        self.assertEqual((parsed[0].original.title, parsed[0].original.artist), ("Song A", "Artist A"))
        self.assertEqual((parsed[0].sampled.title, parsed[0].sampled.artist), ("Song B", "Artist B — Remix"))

    def test_missing_track_is_reported(self):
        parsed = parse_pairs_text("Pair 0\nOriginal: A — B\n\nPair 1\nSampled: C — D\n")
        self.assertEqual(validate_parsed_pairs(parsed), "Pair 0 is missing the Sampled track")

        parsed = parse_pairs_text("Pair 4\nSampled: C — D\n")
        self.assertEqual(validate_parsed_pairs(parsed), "Pair 4 is missing the Original track")

    def test_no_pairs(self):
        self.assertEqual(parse_pairs_text("hello\nworld"), [])
        self.assertEqual(parse_pairs_text(""), [])


if __name__ == "__main__":
    unittest.main()
