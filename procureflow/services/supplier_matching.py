"""
Supplier matching service.

Scores every supplier in the directory against an item list and a buyer
location, then ranks the suppliers that clear the minimum score.

Scoring Factors & Weights:
    Category Match    30%  - specialized 100, carried 50, averaged over providable items
    Location          20%  - same state 100, same region 75, otherwise 25
    Capacity          10%  - headroom of maxOrderValue over the assignable order value
    Item Coverage     40%  - share of requested items the supplier can provide
"""
from decimal import Decimal
from typing import Dict, List, Optional, Tuple, Union

from procureflow.core.config import settings
from procureflow.core.errors import InvalidInput
from procureflow.core.logging import get_logger
from procureflow.schemas import (
    Item, Location, MatchedItem, MatchSet, MatchSummary, ScoreBreakdown,
    Supplier, SupplierMatch, UnmatchedItem, UnmatchedReason,
)
from procureflow.services.constants import (
    CAPACITY_TIERS,
    CAPACITY_WEIGHT,
    CARRIED_SCORE,
    CATEGORY_WEIGHT,
    COVERAGE_WEIGHT,
    LOCATION_WEIGHT,
    OTHER_REGION_SCORE,
    SAME_REGION_SCORE,
    SAME_STATE_SCORE,
    SPECIALIZED_SCORE,
    region_for_state,
)

logger = get_logger(__name__)


def _norm(value: str) -> str:
    return value.strip().lower()


def carries_category(supplier: Supplier, category: str) -> bool:
    return _norm(category) in {_norm(c) for c in supplier.categories}


def can_provide(supplier: Supplier, item: Item) -> bool:
    """A supplier can provide an item it carries whose line total fits its order ceiling."""
    return carries_category(supplier, item.category) and item.line_total <= supplier.max_order_value


# ============= SUB-SCORES =============

def category_score(supplier: Supplier, providable: List[Item]) -> float:
    if not providable:
        return 0.0
    specialties = {_norm(s) for s in supplier.specialties}
    scores = [
        SPECIALIZED_SCORE if _norm(item.category) in specialties else CARRIED_SCORE
        for item in providable
    ]
    return sum(scores) / len(scores)


def location_score(
    supplier_location: Location,
    buyer_location: Location,
    regions: Optional[Dict[str, List[str]]] = None,
) -> float:
    if supplier_location.state == buyer_location.state:
        return SAME_STATE_SCORE
    supplier_region = region_for_state(supplier_location.state, regions)
    if supplier_region is not None and supplier_region == region_for_state(buyer_location.state, regions):
        return SAME_REGION_SCORE
    return OTHER_REGION_SCORE


def capacity_score(max_order_value: Decimal, order_value: Decimal) -> float:
    if order_value <= 0:
        return 0.0
    for multiple, score in CAPACITY_TIERS:
        if max_order_value >= order_value * Decimal(str(multiple)):
            return score
    return 0.0


def coverage_score(providable_count: int, total_items: int) -> float:
    if total_items <= 0:
        return 0.0
    return 100.0 * providable_count / total_items


def _score(
    items: List[Item],
    supplier: Supplier,
    buyer_location: Union[Location, str],
    regions: Optional[Dict[str, List[str]]] = None,
) -> Tuple[SupplierMatch, float]:
    """Score a supplier; also returns the unrounded total the threshold is checked against."""
    buyer = Location.parse(buyer_location)
    providable = [item for item in items if can_provide(supplier, item)]
    order_value = sum((item.line_total for item in providable), Decimal("0"))

    breakdown = {
        "category_score": category_score(supplier, providable),
        "location_score": location_score(supplier.location, buyer, regions),
        "capacity_score": capacity_score(supplier.max_order_value, order_value),
        "coverage_score": coverage_score(len(providable), len(items)),
    }
    total = (
        breakdown["category_score"] * CATEGORY_WEIGHT
        + breakdown["location_score"] * LOCATION_WEIGHT
        + breakdown["capacity_score"] * CAPACITY_WEIGHT
        + breakdown["coverage_score"] * COVERAGE_WEIGHT
    )

    return SupplierMatch(
        supplier_id=supplier.id,
        supplier_name=supplier.name,
        supplier_email=supplier.email,
        location=str(supplier.location),
        total_score=round(total, 2),
        breakdown=ScoreBreakdown(**{k: round(v, 2) for k, v in breakdown.items()}),
        matched_items=[
            MatchedItem(
                item_id=item.id,
                item_name=item.name,
                quantity=item.quantity,
                estimated_unit_price=item.unit_price,
                estimated_total_price=item.line_total,
            )
            for item in providable
        ],
        estimated_total_cost=order_value,
    ), total


def score_supplier(
    items: List[Item],
    supplier: Supplier,
    buyer_location: Union[Location, str],
    regions: Optional[Dict[str, List[str]]] = None,
) -> SupplierMatch:
    """Score a single supplier against the full item list."""
    return _score(items, supplier, buyer_location, regions)[0]


def _rank_key(match: SupplierMatch) -> Tuple:
    return (
        -match.total_score,
        -match.breakdown.coverage_score,
        match.estimated_total_cost,
        match.supplier_id,
    )


def _unmatched_reason(item: Item, suppliers: List[Supplier]) -> UnmatchedReason:
    if not suppliers:
        return UnmatchedReason.NO_SUPPLIERS
    carriers = [s for s in suppliers if carries_category(s, item.category)]
    if not carriers:
        return UnmatchedReason.NO_CATEGORY_MATCH
    if not any(can_provide(s, item) for s in carriers):
        return UnmatchedReason.INSUFFICIENT_CAPACITY
    return UnmatchedReason.BELOW_THRESHOLD


def match(
    items: List[Item],
    suppliers: List[Supplier],
    buyer_location: Union[Location, str],
    min_score: float = 60,
    max_results: int = 5,
    regions: Optional[Dict[str, List[str]]] = None,
) -> MatchSet:
    """
    Rank suppliers for an item list.

    Args:
        items: Items to source
        suppliers: Supplier directory
        buyer_location: Buyer location ("City, ST" or Location)
        min_score: Suppliers scoring below this are dropped
        max_results: Maximum number of ranked suppliers returned
        regions: Optional region table overriding the US map

    Returns:
        MatchSet with ranked matches and the items no returned supplier covers

    Raises:
        InvalidInput: no items, bad thresholds, or an unparseable location
    """
    if not items:
        raise InvalidInput("No items to match")
    if not 0 <= min_score <= 100:
        raise InvalidInput(f"min_score must be between 0 and 100, got {min_score}")
    if max_results < 1:
        raise InvalidInput(f"max_results must be at least 1, got {max_results}")
    try:
        buyer = Location.parse(buyer_location)
    except ValueError as e:
        raise InvalidInput(str(e)) from e

    regions = regions or settings.REGIONS

    scored = [_score(items, s, buyer, regions) for s in suppliers]
    survivors = sorted(
        (m for m, total in scored if total >= min_score),
        key=_rank_key,
    )[:max_results]

    covered = {mi.item_id for m in survivors for mi in m.matched_items}
    unmatched = [
        UnmatchedItem(item_id=item.id, item_name=item.name, reason=_unmatched_reason(item, suppliers))
        for item in items
        if item.id not in covered
    ]

    logger.info(
        f"Matched {len(survivors)}/{len(suppliers)} suppliers for {len(items)} items "
        f"near {buyer} ({len(unmatched)} unmatched)"
    )

    return MatchSet(
        buyer_location=str(buyer),
        min_score=min_score,
        max_results=max_results,
        matches=survivors,
        unmatched_items=unmatched,
        summary=MatchSummary(
            total_items=len(items),
            matched_items=len(covered),
            unmatched_items=len(unmatched),
            recommended_supplier_count=len(survivors),
            total_estimated_cost=sum(
                (item.line_total for item in items if item.id in covered), Decimal("0")
            ),
        ),
    )
