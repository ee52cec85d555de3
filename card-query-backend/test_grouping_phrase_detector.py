"""
Tests for structural grouping phrase detection.
"""

import unittest

from grouping_phrase_detector import _trim_phrase, extract_grouping_phrase


class TestTrimPhrase(unittest.TestCase):
    def test_stop_word(self):
        self.assertEqual(_trim_phrase("issuer with balance over 500"), "issuer")

    def test_punctuation_and_article(self):
        self.assertEqual(_trim_phrase("the card network?"), "card network")

    def test_no_change(self):
        self.assertEqual(_trim_phrase("type"), "type")


class TestExplicitPatterns(unittest.TestCase):
    def test_grouped_by(self):
        self.assertEqual(extract_grouping_phrase("show cards grouped by network"), "network")

    def test_group_by(self):
        self.assertEqual(extract_grouping_phrase("average apr group by issuer"), "issuer")

    def test_organized_by(self):
        self.assertEqual(extract_grouping_phrase("cards organized by type"), "type")

    def test_breakdown_by(self):
        self.assertEqual(extract_grouping_phrase("breakdown by issuer"), "issuer")

    def test_distribution_by(self):
        self.assertEqual(extract_grouping_phrase("distribution by card type"), "card type")

    def test_per(self):
        self.assertEqual(extract_grouping_phrase("sum of limits per card type"), "card type")


class TestBareBy(unittest.TestCase):
    def test_aggregation(self):
        self.assertEqual(extract_grouping_phrase("total balance by issuer"), "issuer")

    def test_breakdown_of(self):
        self.assertEqual(extract_grouping_phrase("breakdown of my cards by network"), "network")

    def test_sorted_by_is_not_grouping(self):
        self.assertIsNone(extract_grouping_phrase("show cards sorted by apr"))
        self.assertIsNone(extract_grouping_phrase("cards ordered by balance"))

    def test_words_between_ordering_verb_and_by(self):
        self.assertIsNone(extract_grouping_phrase("sort my cards by apr"))
        self.assertIsNone(extract_grouping_phrase("rank all my cards by limit"))
        self.assertIsNone(extract_grouping_phrase("filter these by issuer"))

    def test_card_listing_is_not_grouping(self):
        self.assertIsNone(extract_grouping_phrase("show my cards by due date"))
        self.assertIsNone(extract_grouping_phrase("list cards by balance"))

    def test_listing_verb_without_cards_still_groups(self):
        self.assertEqual(extract_grouping_phrase("show total balance by issuer"), "issuer")

    def test_later_by_after_sorted_by(self):
        self.assertEqual(
            extract_grouping_phrase("cards sorted by apr, totals by issuer"), "issuer"
        )

    def test_trailing_clause_trimmed(self):
        self.assertEqual(
            extract_grouping_phrase("total balance by issuer with balance over 500"), "issuer"
        )


class TestNoGrouping(unittest.TestCase):
    def test_plain(self):
        self.assertIsNone(extract_grouping_phrase("show me my cards"))

    def test_empty(self):
        self.assertIsNone(extract_grouping_phrase(""))
        self.assertIsNone(extract_grouping_phrase(None))
        self.assertIsNone(extract_grouping_phrase("   "))


if __name__ == "__main__":
    unittest.main()
