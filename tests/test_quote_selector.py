"""
Tests for quote selection: normalization, weighting and tie-breaks.
"""
from decimal import Decimal

import pytest

from logistics_oms.core.exceptions import InvalidInputError
from logistics_oms.services.quote_selector import (
    EXPRESS,
    STANDARD,
    SelectionCriteria,
    criteria_from_settings,
    score_quotes,
    select_best,
    select_scored,
)

RELIABILITY = {"A": 0.9, "B": 0.7, "C": 0.8}


@pytest.fixture
def three_quotes(make_quote):
    return [
        make_quote("A", "50.00", 3),
        make_quote("B", "40.00", 5),
        make_quote("C", "45.00", 4),
    ]


class TestScoring:

    def test_standard_weights_reproduce_reference_scores(self, three_quotes):
        scored = {s.quote.carrier_code: s for s in score_quotes(three_quotes, STANDARD, RELIABILITY)}

        assert scored["A"].price_score == pytest.approx(0.0)
        assert scored["B"].price_score == pytest.approx(1.0)
        assert scored["C"].price_score == pytest.approx(0.5)

        assert scored["A"].speed_score == pytest.approx(1.0)
        assert scored["B"].speed_score == pytest.approx(0.0)
        assert scored["C"].speed_score == pytest.approx(0.5)

        assert scored["A"].reliability_score == pytest.approx(1.0)
        assert scored["B"].reliability_score == pytest.approx(0.0)
        assert scored["C"].reliability_score == pytest.approx(0.5)

        assert scored["A"].composite_score == pytest.approx(0.4)
        assert scored["B"].composite_score == pytest.approx(0.6)
        assert scored["C"].composite_score == pytest.approx(0.5)

    def test_standard_weights_pick_cheapest(self, three_quotes):
        assert select_best(three_quotes, STANDARD, RELIABILITY).carrier_code == "B"

    def test_ranking_is_best_first(self, three_quotes):
        ranked = [s.quote.carrier_code for s in score_quotes(three_quotes, STANDARD, RELIABILITY)]
        assert ranked == ["B", "C", "A"]

    def test_express_weights_pick_fastest(self, three_quotes):
        # A: 0.3*0 + 0.6*1 + 0.1*1 = 0.7 beats B: 0.3 and C: 0.5
        assert select_best(three_quotes, EXPRESS, RELIABILITY).carrier_code == "A"

    def test_identical_values_score_one(self, make_quote):
        quotes = [make_quote("A", "30.00", 2), make_quote("B", "30.00", 2)]
        for scored in score_quotes(quotes, STANDARD, {"A": 0.9, "B": 0.9}):
            assert scored.price_score == 1.0
            assert scored.speed_score == 1.0
            assert scored.reliability_score == 1.0

    def test_missing_reliability_uses_default(self, make_quote):
        quotes = [make_quote("A", "30.00", 2), make_quote("Z", "30.00", 2)]
        reliability_only = SelectionCriteria(0, 0, 1)

        # Z falls back to 0.80, below A's 0.9
        assert select_best(quotes, reliability_only, {"A": 0.9}).carrier_code == "A"
        # Raising the default above A flips the result
        assert select_best(quotes, reliability_only, {"A": 0.9}, default_reliability=0.95).carrier_code == "Z"

    def test_single_quote_is_selected(self, make_quote):
        only = make_quote("A", "99.00", 7)
        assert select_best([only], STANDARD) is only


class TestTieBreaks:

    def test_equal_everything_prefers_smaller_carrier_code(self, make_quote):
        quotes = [make_quote("ZETA", "40.00", 3), make_quote("ALPHA", "40.00", 3)]
        assert select_best(quotes, STANDARD).carrier_code == "ALPHA"
        assert select_best(list(reversed(quotes)), STANDARD).carrier_code == "ALPHA"

    def test_equal_composite_prefers_lower_price(self, make_quote):
        # Speed only: both 2 days, so composite ties at 1.0
        speed_only = SelectionCriteria(0, 1, 0)
        quotes = [make_quote("A", "55.00", 2), make_quote("B", "45.00", 2)]
        assert select_best(quotes, speed_only).carrier_code == "B"

    def test_equal_composite_and_price_prefers_fewer_days(self, make_quote):
        # Price only: composite ties at 1.0 for equal prices
        price_only = SelectionCriteria(1, 0, 0)
        quotes = [make_quote("A", "45.00", 4), make_quote("B", "45.00", 2)]
        assert select_best(quotes, price_only).carrier_code == "B"

    def test_zero_weights_fall_back_to_tie_break(self, three_quotes):
        nothing = SelectionCriteria(0, 0, 0)
        assert select_best(three_quotes, nothing, RELIABILITY).carrier_code == "B"

    def test_same_carrier_two_services_is_deterministic(self, make_quote):
        quotes = [
            make_quote("A", "40.00", 3, service_type="SURFACE", quote_id="q-2"),
            make_quote("A", "40.00", 3, service_type="EXPRESS", quote_id="q-1"),
        ]
        assert select_best(quotes, STANDARD).quote_id == "q-1"


class TestDeterminism:

    def test_order_of_input_does_not_matter(self, three_quotes):
        forward = select_best(three_quotes, STANDARD, RELIABILITY)
        backward = select_best(list(reversed(three_quotes)), STANDARD, RELIABILITY)
        assert forward is backward

    def test_repeated_calls_return_same_member(self, three_quotes):
        first = select_best(three_quotes, STANDARD, RELIABILITY)
        second = select_best(three_quotes, STANDARD, RELIABILITY)
        assert first is second
        assert first in three_quotes


class TestInvalidInput:

    @pytest.mark.parametrize("criteria", [STANDARD, EXPRESS, SelectionCriteria(0, 0, 0)])
    def test_empty_list_raises(self, criteria):
        with pytest.raises(InvalidInputError):
            select_best([], criteria)

    def test_mixed_currency_raises(self, make_quote):
        quotes = [make_quote("A", "40.00", 3, currency="INR"), make_quote("B", "2.00", 3, currency="USD")]
        with pytest.raises(InvalidInputError) as exc_info:
            select_best(quotes, STANDARD)
        assert exc_info.value.details["currencies"] == ["INR", "USD"]

    @pytest.mark.parametrize("weights", [(-0.1, 0.5, 0.5), (0.5, float("nan"), 0.5), (0.5, 0.5, float("inf"))])
    def test_criteria_reject_bad_weights(self, weights):
        with pytest.raises(InvalidInputError):
            SelectionCriteria(*weights)

    def test_criteria_need_not_sum_to_one(self):
        criteria = SelectionCriteria(2, 1, 1)
        assert criteria.total_weight == 4.0


class TestSelectedQuote:

    def test_selected_quote_keeps_criteria_and_scores(self, three_quotes):
        selected = select_scored(three_quotes, STANDARD, RELIABILITY)
        assert selected.quote.carrier_code == "B"
        assert selected.criteria is STANDARD
        assert selected.scored.composite_score == pytest.approx(0.6)
        assert selected.selected_at.tzinfo is not None

    def test_presets_from_settings(self):
        class _Settings:
            CRITERIA_STANDARD_PRICE = 0.6
            CRITERIA_STANDARD_SPEED = 0.2
            CRITERIA_STANDARD_RELIABILITY = 0.2
            CRITERIA_EXPRESS_PRICE = 0.3
            CRITERIA_EXPRESS_SPEED = 0.6
            CRITERIA_EXPRESS_RELIABILITY = 0.1

        assert criteria_from_settings(_Settings, express=False) == STANDARD
        assert criteria_from_settings(_Settings, express=True) == EXPRESS

    def test_price_is_decimal(self, three_quotes):
        assert select_best(three_quotes, STANDARD, RELIABILITY).price == Decimal("40.00")
