"""
End-to-end tests: text → entities → StructuredQuery → result.
"""

import os
import unittest
from unittest import mock

from query_decomposer import DistinctClause, Sorting
from query_pipeline import PipelineConfig, QueryPipeline


CARDS = [
    {"card_name": "Sapphire", "issuer": "Chase", "card_network": "Visa",
     "current_balance": 6200, "apr": 21.99, "credit_limit": 12000},
    {"card_name": "Double Cash", "issuer": "Citi", "card_network": "Mastercard",
     "current_balance": 0, "apr": 18.24, "credit_limit": 8000},
    {"card_name": "Freedom", "issuer": "Chase", "card_network": "Visa",
     "current_balance": 1500, "apr": 24.49, "credit_limit": 5000},
    {"card_name": "Venture", "issuer": "Capital One", "card_network": "Visa",
     "current_balance": 5400, "apr": 27.99, "credit_limit": 9000},
    {"card_name": "Gold", "issuer": "American Express", "card_network": "Amex",
     "current_balance": 7400, "apr": 26.0, "credit_limit": 15000},
]


class TestScenarios(unittest.TestCase):
    def setUp(self):
        self.pipeline = QueryPipeline()

    def test_cards_with_highest_balance(self):
        outcome = self.pipeline.handle("cards with highest balance", CARDS)
        self.assertTrue(outcome.success)
        self.assertEqual(outcome.structured_query.sorting, Sorting("current_balance", "desc"))
        balances = [c["current_balance"] for c in outcome.result.results]
        self.assertEqual(balances, sorted(balances, reverse=True))

    def test_lowest_apr(self):
        outcome = self.pipeline.handle("which card has the lowest apr", CARDS)
        aprs = [c["apr"] for c in outcome.result.results]
        self.assertEqual(aprs, sorted(aprs))
        self.assertEqual(outcome.result.results[0]["card_name"], "Double Cash")

    def test_different_issuers(self):
        outcome = self.pipeline.handle("what are the different issuers", CARDS)
        self.assertEqual(outcome.structured_query.distinct, DistinctClause("issuer"))
        self.assertEqual(
            [v["value"] for v in outcome.result.values],
            ["Chase", "Citi", "Capital One", "American Express"],
        )
        self.assertEqual(outcome.result.total, 4)

    def test_total_balance_by_issuer(self):
        outcome = self.pipeline.handle("total balance by issuer", CARDS)
        rows = {row["issuer"]: row["sum_current_balance"] for row in outcome.result.results}
        self.assertEqual(rows, {
            "Chase": 7700,
            "Citi": 0,
            "Capital One": 5400,
            "American Express": 7400,
        })

    def test_visa_balance_and_apr(self):
        outcome = self.pipeline.handle(
            "visa cards with balance over 5000 and APR less than 25", CARDS
        )
        self.assertEqual([c["card_name"] for c in outcome.result.results], ["Sapphire"])
        for card in outcome.result.results:
            self.assertEqual(card["card_network"], "Visa")
            self.assertGreater(card["current_balance"], 5000)
            self.assertLess(card["apr"], 25)

    def test_empty_text(self):
        outcome = self.pipeline.handle("", CARDS)
        self.assertTrue(outcome.success)
        self.assertTrue(outcome.structured_query.is_empty())
        self.assertEqual(outcome.result.results, CARDS)
        self.assertEqual(outcome.result.total, len(CARDS))


class TestMoreQuestions(unittest.TestCase):
    def setUp(self):
        self.pipeline = QueryPipeline()

    def test_chase_or_citi(self):
        outcome = self.pipeline.handle("chase or citi cards", CARDS)
        self.assertEqual(
            [c["card_name"] for c in outcome.result.results],
            ["Sapphire", "Double Cash", "Freedom"],
        )

    def test_how_many_cards(self):
        outcome = self.pipeline.handle("how many cards do I have", CARDS)
        self.assertEqual(outcome.result.results, [{"count": 5}])

    def test_paid_off(self):
        outcome = self.pipeline.handle("which cards are paid off", CARDS)
        self.assertEqual([c["card_name"] for c in outcome.result.results], ["Double Cash"])

    def test_networks(self):
        outcome = self.pipeline.handle("what networks do I have", CARDS)
        self.assertEqual(
            [v["value"] for v in outcome.result.values],
            ["Visa", "Mastercard", "Amex"],
        )

    def test_unrecognised_text_is_broad(self):
        outcome = self.pipeline.handle("tell me a joke", CARDS)
        self.assertTrue(outcome.success)
        self.assertEqual(outcome.result.total, len(CARDS))


class TestRevisedReadings(unittest.TestCase):
    def setUp(self):
        self.pipeline = QueryPipeline()

    def test_sort_with_words_before_by_is_not_grouping(self):
        outcome = self.pipeline.handle("sort my cards by apr", CARDS)
        self.assertIsNone(outcome.structured_query.grouping)
        self.assertEqual(outcome.result.results, CARDS)

    def test_show_cards_by_due_date_lists_cards(self):
        outcome = self.pipeline.handle("show my cards by due date", CARDS)
        self.assertIsNone(outcome.structured_query.grouping)
        self.assertEqual(outcome.result.total, len(CARDS))

    def test_lowest_balance_includes_paid_off_card(self):
        records = [
            {"card_name": "A", "current_balance": 100},
            {"card_name": "B", "current_balance": 0},
            {"card_name": "C", "current_balance": 900},
        ]
        outcome = self.pipeline.handle("which card has the lowest balance", records)
        self.assertEqual([c["card_name"] for c in outcome.result.results], ["B", "A", "C"])

    def test_breakdown_lists_cards_per_issuer(self):
        outcome = self.pipeline.handle("breakdown of issuers", CARDS)
        chase = outcome.result.values[0]
        self.assertEqual(chase["value"], "Chase")
        self.assertEqual([c["card_name"] for c in chase["cards"]], ["Sapphire", "Freedom"])

    def test_and_between_issuers(self):
        outcome = self.pipeline.handle("what is my balance on chase and citi", CARDS)
        self.assertEqual(
            [c["card_name"] for c in outcome.result.results],
            ["Sapphire", "Double Cash", "Freedom"],
        )

    def test_amex_stored_as_network_or_short_issuer(self):
        records = CARDS + [
            {"card_name": "Blue Cash", "issuer": "Amex", "card_network": "Amex", "current_balance": 200},
        ]
        outcome = self.pipeline.handle("amex cards", records)
        self.assertEqual([c["card_name"] for c in outcome.result.results], ["Gold", "Blue Cash"])


class TestFailures(unittest.TestCase):
    def test_bad_records_reported(self):
        outcome = QueryPipeline().handle("cards with highest balance", None)
        self.assertFalse(outcome.success)
        self.assertIsNone(outcome.result)
        self.assertIn("sequence", outcome.error)

    def test_none_text(self):
        outcome = QueryPipeline().handle(None, CARDS)
        self.assertTrue(outcome.success)
        self.assertEqual(outcome.result.total, len(CARDS))


class TestConfig(unittest.TestCase):
    def test_defaults(self):
        config = PipelineConfig()
        self.assertEqual((config.amount_min_digits, config.amount_allow_k), (3, True))

    def test_from_env(self):
        with mock.patch.dict(os.environ, {"AMOUNT_MIN_DIGITS": "2", "AMOUNT_ALLOW_K": "false"}):
            config = PipelineConfig.from_env()
        self.assertEqual((config.amount_min_digits, config.amount_allow_k), (2, False))

    def test_from_env_bad_value(self):
        with mock.patch.dict(os.environ, {"AMOUNT_MIN_DIGITS": "many"}):
            self.assertEqual(PipelineConfig.from_env().amount_min_digits, 3)

    def test_config_reaches_extractor(self):
        pipeline = QueryPipeline(PipelineConfig(amount_min_digits=2))
        outcome = pipeline.handle("cards with apr under 25", CARDS)
        self.assertEqual(outcome.entities.amount, 25)


if __name__ == "__main__":
    unittest.main()
