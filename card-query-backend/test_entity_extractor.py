"""
Regression tests for card question entity extraction.

No records required; every test runs on text only.
"""

import unittest

from entity_extractor import (
    EntityBag,
    EntityExtractor,
    extract_attribute,
    extract_entities,
)


class TestEmptyInput(unittest.TestCase):
    def test_empty_string(self):
        self.assertEqual(extract_entities(""), EntityBag())

    def test_none(self):
        self.assertEqual(extract_entities(None), EntityBag())

    def test_whitespace(self):
        self.assertEqual(extract_entities("   \n "), EntityBag())

    def test_non_string(self):
        self.assertEqual(extract_entities(42), EntityBag())

    def test_defaults(self):
        bag = EntityBag()
        self.assertIsNone(bag.attribute)
        self.assertIsNone(bag.aggregation)
        self.assertEqual(bag.compound_operators.logical_operators, [])
        self.assertEqual(bag.conditions, [])


# =============================================================================
# ATTRIBUTE
# =============================================================================

class TestExtractAttribute(unittest.TestCase):
    def test_interest_rate_is_apr(self):
        self.assertEqual(extract_attribute("what is my interest rate"), "apr")

    def test_generic_rate_is_apr(self):
        self.assertEqual(extract_attribute("show me rate"), "apr")

    def test_reward_rate_is_rewards(self):
        self.assertEqual(extract_attribute("what is the reward rate on dining"), "rewards")

    def test_card_type(self):
        self.assertEqual(extract_attribute("what type of card is this"), "card_type")
        self.assertEqual(extract_attribute("what kind of card"), "card_type")
        self.assertEqual(extract_attribute("card kind"), "card_type")

    def test_credit_limit(self):
        self.assertEqual(extract_attribute("max credit"), "credit_limit")
        self.assertEqual(extract_attribute("maximum credit"), "credit_limit")
        self.assertEqual(extract_attribute("what's my limit"), "credit_limit")

    def test_due_date(self):
        self.assertEqual(extract_attribute("payment due"), "due_date")
        self.assertEqual(extract_attribute("when is it due"), "due_date")

    def test_statement_close(self):
        self.assertEqual(extract_attribute("when does statement close"), "statement_close")

    def test_card_name(self):
        self.assertEqual(extract_attribute("name of my card"), "card_name")
        self.assertEqual(extract_attribute("card title"), "card_name")

    def test_nickname(self):
        self.assertEqual(extract_attribute("what is the nick"), "nickname")
        self.assertEqual(extract_attribute("card alias"), "nickname")

    def test_annual_fee(self):
        self.assertEqual(extract_attribute("show me fee"), "annual_fee")
        self.assertEqual(extract_attribute("annual fees"), "annual_fee")

    def test_payment_amount(self):
        self.assertEqual(extract_attribute("amount to pay"), "payment_amount")
        self.assertEqual(extract_attribute("minimum payment"), "payment_amount")

    def test_issuer(self):
        self.assertEqual(extract_attribute("which bank"), "issuer")
        self.assertEqual(extract_attribute("financial institution"), "issuer")

    def test_network(self):
        self.assertEqual(extract_attribute("payment network"), "card_network")
        self.assertEqual(extract_attribute("network"), "card_network")

    def test_balance(self):
        self.assertEqual(extract_attribute("how much do I owe"), "balance")
        self.assertEqual(extract_attribute("outstanding debt"), "balance")

    def test_grace_period(self):
        self.assertEqual(extract_attribute("grace period on my card"), "grace_period")

    def test_utilization(self):
        self.assertEqual(extract_attribute("credit utilization"), "utilization")

    def test_available_credit(self):
        self.assertEqual(extract_attribute("available credit"), "available_credit")

    def test_none(self):
        self.assertIsNone(extract_attribute("hello there"))
        self.assertIsNone(extract_attribute(None))


# =============================================================================
# MODIFIER / SORT INPUTS
# =============================================================================

class TestModifier(unittest.TestCase):
    def test_highest(self):
        bag = extract_entities("cards with highest balance")
        self.assertEqual(bag.modifier, "highest")
        self.assertEqual(bag.attribute, "balance")

    def test_lowest(self):
        self.assertEqual(extract_entities("which card has the lowest apr").modifier, "lowest")

    def test_synonyms(self):
        self.assertEqual(extract_entities("card with longest grace period").modifier, "highest")
        self.assertEqual(extract_entities("card with shortest grace period").modifier, "lowest")

    def test_best_is_not_a_modifier(self):
        self.assertIsNone(extract_entities("best card for travel").modifier)

    def test_comparison_words_are_masked(self):
        bag = extract_entities("cards with balance at least 1000")
        self.assertIsNone(bag.modifier)
        self.assertIsNone(bag.aggregation)


# =============================================================================
# CATEGORY / MERCHANT / AMOUNT
# =============================================================================

class TestCategoryMerchant(unittest.TestCase):
    def test_category_and_merchant(self):
        bag = extract_entities("best card for travel at costco")
        self.assertEqual(bag.category, "travel")
        self.assertEqual(bag.merchant, "costco")

    def test_costco_alone_is_warehouse(self):
        bag = extract_entities("best card for costco")
        self.assertEqual(bag.category, "warehouse")
        self.assertIsNone(bag.merchant)

    def test_merchant_without_category(self):
        bag = extract_entities("best card for walmart")
        self.assertEqual(bag.merchant, "walmart")
        self.assertIsNone(bag.category)

    def test_category_keyword_not_reused_as_merchant(self):
        bag = extract_entities("card for flight booking")
        self.assertEqual(bag.category, "travel")
        self.assertIsNone(bag.merchant)

    def test_show_is_not_a_category(self):
        self.assertIsNone(extract_entities("show me visa cards").category)


class TestAmount(unittest.TestCase):
    def test_dollar_amount(self):
        self.assertEqual(extract_entities("best card for $1000 travel purchase").amount, 1000)

    def test_short_bare_number_ignored(self):
        self.assertIsNone(extract_entities("cards with apr under 25").amount)

    def test_configurable_min_digits(self):
        extractor = EntityExtractor(amount_min_digits=2)
        self.assertEqual(extractor.extract("cards with apr under 25").amount, 25)


# =============================================================================
# BALANCE FILTER / VALUES
# =============================================================================

class TestBalanceFilter(unittest.TestCase):
    def test_with_balance(self):
        self.assertEqual(extract_entities("cards with balance").balance_filter, "with_balance")

    def test_implicit_with_balance(self):
        self.assertEqual(extract_entities("show my balances").balance_filter, "with_balance")

    def test_zero_balance(self):
        self.assertEqual(extract_entities("cards with zero balance").balance_filter, "zero_balance")
        self.assertEqual(extract_entities("which cards are paid off").balance_filter, "zero_balance")
        self.assertEqual(extract_entities("cards with no balance").balance_filter, "zero_balance")
        self.assertEqual(extract_entities("cards with $0 balance").balance_filter, "zero_balance")

    def test_no_filter(self):
        self.assertIsNone(extract_entities("what's my total balance").balance_filter)

    def test_lowest_balance_ranking_keeps_zero_balances(self):
        bag = extract_entities("which card has the lowest balance")
        self.assertEqual(bag.modifier, "lowest")
        self.assertIsNone(bag.balance_filter)

    def test_highest_balance_ranking_still_implicit(self):
        self.assertEqual(
            extract_entities("which card has the highest balance").balance_filter, "with_balance"
        )

    def test_explicit_with_balance_survives_lowest(self):
        self.assertEqual(
            extract_entities("cards with a balance, lowest first").balance_filter, "with_balance"
        )


class TestValues(unittest.TestCase):
    def test_network_value(self):
        self.assertEqual(extract_entities("show me visa cards").network_value, "Visa")
        self.assertEqual(extract_entities("my master card").network_value, "Mastercard")
        self.assertEqual(extract_entities("amex cards").network_value, "Amex")

    def test_issuer_value(self):
        self.assertEqual(extract_entities("my capital one card").issuer_value, "Capital One")
        self.assertEqual(extract_entities("bofa cards").issuer_value, "Bank of America")


# =============================================================================
# DISTINCT / GROUPING / AGGREGATION
# =============================================================================

class TestDistinct(unittest.TestCase):
    def test_what_networks(self):
        bag = extract_entities("what networks do I have")
        self.assertTrue(bag.distinct_query.is_distinct)
        self.assertEqual(bag.distinct_query.field, "card_network")

    def test_different_issuers(self):
        self.assertEqual(extract_entities("what are the different issuers").distinct_query.field, "issuer")

    def test_defaults_to_issuer(self):
        self.assertEqual(extract_entities("what are the different ones").distinct_query.field, "issuer")
        self.assertEqual(extract_entities("show me different things").distinct_query.field, "issuer")

    def test_card_types(self):
        self.assertEqual(extract_entities("how many different card types").distinct_query.field, "card_type")

    def test_breakdown(self):
        bag = extract_entities("breakdown of cards by network")
        self.assertEqual(bag.distinct_query.field, "card_network")
        self.assertEqual(bag.grouping.group_by, "card_network")

    def test_breakdown_asks_for_details(self):
        bag = extract_entities("breakdown of issuers")
        self.assertEqual(bag.distinct_query.field, "issuer")
        self.assertTrue(bag.distinct_query.include_details)

    def test_plain_distinct_has_no_details(self):
        self.assertFalse(extract_entities("what are the different issuers").distinct_query.include_details)

    def test_plain_listing(self):
        bag = extract_entities("show me my cards")
        self.assertIsNone(bag.distinct_query)
        self.assertIsNone(bag.grouping)
        self.assertIsNone(bag.aggregation)


class TestGrouping(unittest.TestCase):
    def test_group_by_issuer(self):
        self.assertEqual(extract_entities("total balance by issuer").grouping.group_by, "issuer")

    def test_grouped_by_network(self):
        self.assertEqual(extract_entities("cards grouped by network").grouping.group_by, "card_network")

    def test_bank_is_issuer(self):
        self.assertEqual(extract_entities("average apr per bank").grouping.group_by, "issuer")

    def test_unknown_phrase_passed_through(self):
        self.assertEqual(extract_entities("total balance by due date").grouping.group_by, "due date")


class TestAggregation(unittest.TestCase):
    def test_total(self):
        agg = extract_entities("total balance by issuer").aggregation
        self.assertEqual((agg.operation, agg.field), ("sum", "balance"))

    def test_add_up(self):
        agg = extract_entities("add up all my balances").aggregation
        self.assertEqual((agg.operation, agg.field), ("sum", "balance"))

    def test_average(self):
        agg = extract_entities("average apr").aggregation
        self.assertEqual((agg.operation, agg.field), ("avg", "apr"))

    def test_count_has_no_field(self):
        agg = extract_entities("how many cards have a balance").aggregation
        self.assertEqual((agg.operation, agg.field), ("count", None))

    def test_how_many_cards(self):
        agg = extract_entities("how many cards").aggregation
        self.assertEqual((agg.operation, agg.field), ("count", None))

    def test_minimum(self):
        agg = extract_entities("what's my minimum balance").aggregation
        self.assertEqual((agg.operation, agg.field), ("min", "balance"))

    def test_highest_without_cards(self):
        agg = extract_entities("highest balance").aggregation
        self.assertEqual((agg.operation, agg.field), ("max", "balance"))

    def test_highest_with_cards_is_ranking(self):
        self.assertIsNone(extract_entities("cards with highest balance").aggregation)
        self.assertIsNone(extract_entities("which has the highest apr").aggregation)


# =============================================================================
# CONDITIONS / COMPOUND OPERATORS
# =============================================================================

class TestConditions(unittest.TestCase):
    def test_numeric_comparisons(self):
        bag = extract_entities("visa cards with balance over 5000 and APR less than 25")
        summary = [(c.kind, c.field_alias, c.operator, c.value) for c in bag.conditions]
        self.assertEqual(summary, [
            ("network", "card_network", "==", "Visa"),
            ("comparison", "balance", ">", 5000),
            ("comparison", "apr", "<", 25),
        ])
        self.assertEqual(bag.compound_operators.logical_operators, ["AND", "AND"])

    def test_k_and_dollar_values(self):
        bag = extract_entities("credit limit at least 10k and annual fee under $100")
        summary = [(c.field_alias, c.operator, c.value) for c in bag.conditions]
        self.assertEqual(summary, [("credit limit", ">=", 10000), ("annual fee", "<", 100)])

    def test_negative_value_is_absolute(self):
        bag = extract_entities("balance over -500")
        self.assertEqual(bag.conditions[0].value, 500)

    def test_zero_threshold(self):
        bag = extract_entities("annual fee equal to 0")
        self.assertEqual((bag.conditions[0].operator, bag.conditions[0].value), ("==", 0))

    def test_or_between_issuers(self):
        bag = extract_entities("chase or citi cards")
        self.assertEqual([c.value for c in bag.conditions], ["Chase", "Citi"])
        self.assertIn("OR", bag.compound_operators.logical_operators)

    def test_single_condition_has_no_operators(self):
        self.assertEqual(extract_entities("show me visa cards").compound_operators.logical_operators, [])

    def test_operator_count_invariant(self):
        texts = [
            "chase or citi cards with balance over 1000",
            "visa or mastercard and apr under 20",
            "best card for travel at costco",
            "show me my cards",
        ]
        for text in texts:
            with self.subTest(text=text):
                bag = extract_entities(text)
                expected = max(len(bag.conditions) - 1, 0)
                self.assertEqual(len(bag.compound_operators.logical_operators), expected)

    def test_missing_connector_is_and(self):
        bag = extract_entities("chase cards with balance over 1000")
        self.assertEqual(bag.compound_operators.logical_operators, ["AND"])

    def test_duplicates_collapse(self):
        bag = extract_entities("chase and chase cards")
        self.assertEqual(len(bag.conditions), 1)

    def test_and_between_issuers_is_or(self):
        bag = extract_entities("what is my balance on chase and citi")
        self.assertEqual([c.value for c in bag.conditions], ["Chase", "Citi"])
        self.assertEqual(bag.compound_operators.logical_operators, ["OR"])

    def test_and_between_networks_is_or(self):
        bag = extract_entities("visa and mastercard cards")
        self.assertEqual(bag.compound_operators.logical_operators, ["OR"])

    def test_and_between_comparisons_stays_and(self):
        bag = extract_entities("balance over 100 and balance under 500")
        self.assertEqual(bag.compound_operators.logical_operators, ["AND"])

    def test_and_between_issuer_and_comparison_stays_and(self):
        bag = extract_entities("chase and balance over 1000")
        self.assertEqual(bag.compound_operators.logical_operators, ["AND"])

    def test_american_express_is_issuer_not_network_condition(self):
        bag = extract_entities("american express cards")
        self.assertEqual([(c.kind, c.value) for c in bag.conditions], [("issuer", "American Express")])


class TestDeterminism(unittest.TestCase):
    def test_repeatable(self):
        text = "chase or citi cards with balance over 1000 by issuer"
        self.assertEqual(extract_entities(text), extract_entities(text))

    def test_case_insensitive(self):
        self.assertEqual(
            extract_entities("TOTAL BALANCE BY ISSUER"),
            extract_entities("total balance by issuer"),
        )

    def test_to_dict(self):
        data = extract_entities("total balance by issuer").to_dict()
        self.assertEqual(data["aggregation"], {"operation": "sum", "field": "balance"})
        self.assertEqual(data["grouping"], {"group_by": "issuer"})


if __name__ == "__main__":
    unittest.main()
