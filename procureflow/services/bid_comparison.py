"""
Bid comparison service.

Normalizes each received bid per category (min-max across the bid set,
inverted where lower is better), applies the caller's weights and ranks the
bids. The output carries enough per-category detail to explain why one bid
beat another without re-deriving scores.
"""
from decimal import Decimal
import math
from typing import Dict, List, Optional, Tuple

from procureflow.core.config import DEFAULT_WEIGHTS
from procureflow.core.errors import InvalidInput, InvalidWeights
from procureflow.core.logging import get_logger
from procureflow.schemas import (
    Bid, BidAmount, BidComparison, BidScore, CategoryScores, CostBreakdown, RunnerUp,
)

logger = get_logger(__name__)

WEIGHT_KEYS = ("price", "quality", "leadTime", "compliance")

# Warranty length that earns a full warranty score
FULL_WARRANTY_YEARS = 2


def validate_weights(weights: Optional[Dict[str, float]]) -> Dict[str, float]:
    """Normalize key spelling and check the weights sum to 100."""
    if weights is None:
        return dict(DEFAULT_WEIGHTS)

    normalized = {("leadTime" if k == "lead_time" else k): v for k, v in weights.items()}
    if set(normalized) != set(WEIGHT_KEYS):
        raise InvalidWeights(f"Weights must have exactly the keys {list(WEIGHT_KEYS)}")
    for key, value in normalized.items():
        if not isinstance(value, (int, float)) or isinstance(value, bool) or value < 0:
            raise InvalidWeights(f"Weight '{key}' must be a non-negative number")
        if not math.isfinite(value):
            raise InvalidWeights(f"Weight '{key}' must be a finite number")
    total = sum(normalized.values())
    if abs(total - 100) > 1e-9:
        raise InvalidWeights(f"Weights must sum to 100, got {total:g}")
    return normalized


def latest_bids(bids: List[Bid]) -> Tuple[List[Bid], List[str]]:
    """
    Drop superseded bids: a later bid from the same supplier replaces earlier ones.

    Returns:
        Tuple of (current bids in submission order, superseded bid ids)
    """
    latest: Dict[str, Bid] = {}
    superseded: List[str] = []
    for bid in bids:
        previous = latest.get(bid.supplier_id)
        if previous is not None:
            superseded.append(previous.bid_id)
        latest[bid.supplier_id] = bid
    current = [b for b in bids if latest[b.supplier_id] is b]
    return current, superseded


def _inverted_minmax(value: float, low: float, high: float) -> float:
    if high == low:
        return 100.0
    return 100.0 * (high - value) / (high - low)


def price_score(bid: Bid, min_price: Decimal, max_price: Decimal) -> float:
    return _inverted_minmax(float(bid.total_bid_amount), float(min_price), float(max_price))


def lead_time_score(bid: Bid, min_lead: int, max_lead: int) -> float:
    return _inverted_minmax(bid.average_lead_time_weeks, min_lead, max_lead)


def quality_score(bid: Bid) -> float:
    warranty = min(bid.warranty_years, FULL_WARRANTY_YEARS) / FULL_WARRANTY_YEARS * 100.0
    return 0.5 * warranty + 0.5 * bid.certifications_coverage_pct


def compliance_score(bid: Bid) -> float:
    return float(bid.certifications_coverage_pct)


def _category_scores(bid: Bid, bids: List[Bid]) -> CategoryScores:
    prices = [b.total_bid_amount for b in bids]
    leads = [b.average_lead_time_weeks for b in bids]
    return CategoryScores(
        price=round(price_score(bid, min(prices), max(prices)), 2),
        quality=round(quality_score(bid), 2),
        lead_time=round(lead_time_score(bid, min(leads), max(leads)), 2),
        compliance=round(compliance_score(bid), 2),
    )


def _overall(scores: CategoryScores, weights: Dict[str, float]) -> float:
    total = (
        weights["price"] / 100 * scores.price
        + weights["quality"] / 100 * scores.quality
        + weights["leadTime"] / 100 * scores.lead_time
        + weights["compliance"] / 100 * scores.compliance
    )
    return round(total, 2)


def compare(bids: List[Bid], weights: Optional[Dict[str, float]] = None) -> BidComparison:
    """
    Score and rank bids.

    Args:
        bids: Received bids; a later bid from the same supplier supersedes earlier ones
        weights: {price, quality, leadTime, compliance} summing to 100

    Returns:
        BidComparison with ranked scores, the winner, cost breakdown and runner-up deltas

    Raises:
        InvalidWeights: weights with wrong keys, negative values, or not summing to 100
        InvalidInput: no bids
    """
    weights = validate_weights(weights)
    if not bids:
        raise InvalidInput("No bids to compare")

    current, superseded = latest_bids(bids)
    by_id = {b.bid_id: b for b in current}

    scored = []
    for bid in current:
        categories = _category_scores(bid, current)
        scored.append((bid, categories, _overall(categories, weights)))

    scored.sort(key=lambda s: (-s[2], s[0].total_bid_amount, s[0].bid_id))

    scores = [
        BidScore(
            bid_id=bid.bid_id,
            supplier_id=bid.supplier_id,
            overall_score=overall,
            rank=rank,
            category_scores=categories,
        )
        for rank, (bid, categories, overall) in enumerate(scored, start=1)
    ]

    winner = scores[0]
    runners_up = [
        RunnerUp(
            bid_id=s.bid_id,
            supplier_id=s.supplier_id,
            rank=s.rank,
            overall_score=s.overall_score,
            score_delta=round(winner.overall_score - s.overall_score, 2),
            category_deltas=CategoryScores(
                price=round(winner.category_scores.price - s.category_scores.price, 2),
                quality=round(winner.category_scores.quality - s.category_scores.quality, 2),
                lead_time=round(winner.category_scores.lead_time - s.category_scores.lead_time, 2),
                compliance=round(winner.category_scores.compliance - s.category_scores.compliance, 2),
            ),
        )
        for s in scores[1:]
    ]

    lowest = min(current, key=lambda b: (b.total_bid_amount, b.bid_id))
    highest = max(current, key=lambda b: (b.total_bid_amount, b.bid_id))

    logger.info(
        f"Compared {len(current)} bids ({len(superseded)} superseded); "
        f"winner {winner.bid_id} at {winner.overall_score}"
    )

    return BidComparison(
        weights=weights,
        bids=[by_id[s.bid_id] for s in scores],
        scores=scores,
        winning_bid_id=winner.bid_id,
        cost_breakdown=CostBreakdown(
            lowest_bid=BidAmount(bid_id=lowest.bid_id, supplier_id=lowest.supplier_id, amount=lowest.total_bid_amount),
            highest_bid=BidAmount(bid_id=highest.bid_id, supplier_id=highest.supplier_id, amount=highest.total_bid_amount),
            potential_savings=highest.total_bid_amount - lowest.total_bid_amount,
        ),
        runners_up=runners_up,
        superseded_bid_ids=superseded,
    )
