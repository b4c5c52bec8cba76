"""
Tests for bid comparison scoring.
"""
from decimal import Decimal

import pytest

from procureflow.core.errors import InvalidInput, InvalidWeights
from procureflow.schemas import Bid
from procureflow.services.bid_comparison import compare, quality_score, validate_weights


def make_bid(bid_id, supplier_id, amount, lead=4, warranty=2, coverage=90.0) -> Bid:
    return Bid(
        bid_id=bid_id,
        supplier_id=supplier_id,
        total_bid_amount=Decimal(str(amount)),
        average_lead_time_weeks=lead,
        warranty_years=warranty,
        certifications_coverage_pct=coverage,
    )


@pytest.fixture
def bids():
    return [
        make_bid("BID_A", "SUP_A", 1000, lead=4, warranty=2, coverage=90),
        make_bid("BID_B", "SUP_B", 1200, lead=6, warranty=3, coverage=95),
        make_bid("BID_C", "SUP_C", 1100, lead=8, warranty=1, coverage=80),
    ]


# ============= WEIGHTS =============

class TestWeights:
    """Weight validation."""

    def test_defaults(self):
        assert validate_weights(None) == {"price": 40, "quality": 30, "leadTime": 20, "compliance": 10}

    def test_snake_case_lead_time_accepted(self):
        weights = validate_weights({"price": 25, "quality": 25, "lead_time": 25, "compliance": 25})
        assert weights["leadTime"] == 25

    @pytest.mark.parametrize("weights", [
        {"price": 40, "quality": 30, "leadTime": 20, "compliance": 5},
        {"price": 50, "quality": 30, "leadTime": 20, "compliance": 10},
        {"price": 70, "quality": 30},
        {"price": 40, "quality": 30, "leadTime": 20, "compliance": 10, "brand": 0},
        {"price": -10, "quality": 60, "leadTime": 30, "compliance": 20},
        {"price": float("nan"), "quality": 100, "leadTime": 0, "compliance": 0},
        {"price": float("inf"), "quality": 100, "leadTime": 0, "compliance": 0},
        {"price": float("-inf"), "quality": 100, "leadTime": 0, "compliance": 0},
    ])
    def test_invalid_weights_rejected(self, bids, weights):
        with pytest.raises(InvalidWeights):
            compare(bids, weights)

    def test_invalid_weights_are_invalid_input(self, bids):
        with pytest.raises(InvalidInput):
            compare(bids, {"price": 100, "quality": 100, "leadTime": 0, "compliance": 0})

    @pytest.mark.parametrize("weights", [
        {"price": 100, "quality": 0, "leadTime": 0, "compliance": 0},
        {"price": 25, "quality": 25, "leadTime": 25, "compliance": 25},
        {"price": 33.5, "quality": 33.5, "leadTime": 33, "compliance": 0},
    ])
    def test_weights_summing_to_100_succeed(self, bids, weights):
        assert compare(bids, weights).winning_bid_id


# ============= SCORING =============

class TestScoring:
    """Category scores, ranking and output shape."""

    def test_category_scores(self, bids):
        result = compare(bids)
        scores = {s.bid_id: s.category_scores for s in result.scores}

        assert scores["BID_A"].price == 100
        assert scores["BID_B"].price == 0
        assert scores["BID_C"].price == 50
        assert scores["BID_A"].lead_time == 100
        assert scores["BID_C"].lead_time == 0
        assert scores["BID_A"].quality == pytest.approx(95)
        assert scores["BID_B"].quality == pytest.approx(97.5)
        assert scores["BID_C"].quality == pytest.approx(65)
        assert scores["BID_B"].compliance == 95

    def test_ranking_and_winner(self, bids):
        result = compare(bids)

        assert [s.bid_id for s in result.scores] == ["BID_A", "BID_B", "BID_C"]
        assert [s.rank for s in result.scores] == [1, 2, 3]
        assert result.winning_bid_id == "BID_A"
        assert result.scores[0].overall_score == pytest.approx(97.5)
        assert result.scores[1].overall_score == pytest.approx(48.75)

    def test_cost_breakdown(self, bids):
        breakdown = compare(bids).cost_breakdown

        assert breakdown.lowest_bid.bid_id == "BID_A"
        assert breakdown.highest_bid.bid_id == "BID_B"
        assert breakdown.potential_savings == Decimal("200")

    def test_runner_up_deltas(self, bids):
        result = compare(bids)
        runner = result.runners_up[0]

        assert runner.bid_id == "BID_B"
        assert runner.score_delta == pytest.approx(48.75)
        assert runner.category_deltas.price == 100
        assert len(result.runners_up) == 2

    def test_equal_prices_score_100(self):
        result = compare([make_bid("X", "S1", 500), make_bid("Y", "S2", 500)])
        assert all(s.category_scores.price == 100 for s in result.scores)
        assert all(s.category_scores.lead_time == 100 for s in result.scores)

    def test_tie_broken_by_lower_amount(self):
        # Price weight zero, everything else equal: only the tie-break separates them
        weights = {"price": 0, "quality": 50, "leadTime": 25, "compliance": 25}
        result = compare([make_bid("X", "S1", 900), make_bid("Y", "S2", 800)], weights)
        assert result.winning_bid_id == "Y"

    def test_single_bid(self):
        result = compare([make_bid("ONLY", "S1", 700)])

        assert result.winning_bid_id == "ONLY"
        assert result.runners_up == []
        assert result.cost_breakdown.potential_savings == 0

    def test_warranty_capped_at_two_years(self):
        assert quality_score(make_bid("X", "S", 1, warranty=5, coverage=80)) == pytest.approx(90)
        assert quality_score(make_bid("X", "S", 1, warranty=1, coverage=80)) == pytest.approx(65)

    def test_zero_bids_rejected(self):
        with pytest.raises(InvalidInput):
            compare([])


class TestMonotonicity:
    """Lowering a bid's price never hurts it."""

    @pytest.mark.parametrize("new_amount", [1150, 1000, 950, 500])
    def test_lower_price_never_lowers_price_score_or_rank(self, bids, new_amount):
        before = {s.bid_id: s for s in compare(bids).scores}
        cheaper = [make_bid("BID_B", "SUP_B", new_amount, lead=6, warranty=3, coverage=95) if b.bid_id == "BID_B" else b
                   for b in bids]
        after = {s.bid_id: s for s in compare(cheaper).scores}

        assert after["BID_B"].category_scores.price >= before["BID_B"].category_scores.price
        assert after["BID_B"].rank <= before["BID_B"].rank


class TestSupersededBids:
    """A later bid from the same supplier replaces the earlier one."""

    def test_later_bid_wins(self, bids):
        resubmitted = bids + [make_bid("BID_B2", "SUP_B", 900, lead=6, warranty=3, coverage=95)]
        result = compare(resubmitted)

        assert result.superseded_bid_ids == ["BID_B"]
        assert "BID_B" not in {b.bid_id for b in result.bids}
        assert result.winning_bid_id == "BID_B2"

    def test_deterministic(self, bids):
        assert compare(bids).to_json_dict() == compare(bids).to_json_dict()
