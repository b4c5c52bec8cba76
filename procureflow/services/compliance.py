"""
Compliance classification for procurement items.

Rules are deterministic and evaluated per item across four domains:
fire safety, moisture, ADA accessibility and electrical certification.
"""
import re
from typing import Iterable, List, Optional, Tuple

from procureflow.core.config import settings
from procureflow.core.errors import InvalidInput
from procureflow.schemas import (
    ComplianceIssue, ComplianceReport, ComplianceSummary, IssueType, Item,
    MoistureZone, Severity,
)
from procureflow.services.constants import (
    ELECTRICAL_CATEGORIES,
    ELECTRICAL_CERTIFICATION_PATTERN,
    FIRE_CERTIFICATION_PATTERN,
    FIRE_NEGATION_PATTERN,
    MOISTURE_ALLOWED_MATERIALS,
    MOISTURE_DISALLOWED_MATERIALS,
    SEVERITY_RISK_POINTS,
)

CM_PER_INCH = 2.54

_UNIT = r'("|”|in\b\.?|inches\b|cm\b)?'
_HEIGHT_SUFFIX = re.compile(r'(\d+(?:\.\d+)?)\s*' + _UNIT + r'\s*(?:H\b|high\b|height\b|tall\b)', re.IGNORECASE)
_HEIGHT_PREFIX = re.compile(r'(?:height|\bH)\s*[:=]\s*(\d+(?:\.\d+)?)\s*' + _UNIT, re.IGNORECASE)


def parse_height_inches(dimensions: Optional[str]) -> Optional[float]:
    """
    Extract the height component of a dimensions string, in inches.

    Understands `80"L x 76"W x 14"H`, `36 in H`, `91 cm high` and `Height: 30in`.
    Returns None when no height is declared.
    """
    if not dimensions:
        return None

    match = _HEIGHT_SUFFIX.search(dimensions) or _HEIGHT_PREFIX.search(dimensions)
    if not match:
        return None

    value = float(match.group(1))
    unit = (match.group(2) or "").lower()
    if unit == "cm" or (not unit and "cm" in dimensions.lower()):
        value = value / CM_PER_INCH
    return round(value, 2)


# ============= RULES =============

def is_fire_certification(certification: str) -> bool:
    return bool(FIRE_CERTIFICATION_PATTERN.search(certification)) and not FIRE_NEGATION_PATTERN.search(certification)


def check_fire_safety(item: Item) -> Optional[ComplianceIssue]:
    if not item.compliance.fire_rating_required:
        return None
    if any(is_fire_certification(c) for c in item.compliance.certifications):
        return None
    return ComplianceIssue(
        item_id=item.id,
        item_name=item.name,
        issue_type=IssueType.FIRE_SAFETY,
        severity=Severity.CRITICAL,
        description=f"{item.name} requires a fire rating but lists no fire safety certification",
        recommendation="Obtain CAL 117-2013 (or equivalent) certification or specify a compliant alternative",
        affected_quantity=item.quantity,
    )


def check_moisture(item: Item) -> Optional[ComplianceIssue]:
    if item.compliance.moisture_zone != MoistureZone.WET:
        return None

    material = (item.specifications.material or "").lower()
    for disallowed in MOISTURE_DISALLOWED_MATERIALS:
        if disallowed in material:
            return ComplianceIssue(
                item_id=item.id,
                item_name=item.name,
                issue_type=IssueType.MOISTURE,
                severity=Severity.CRITICAL,
                description=f"{item.name} is specified in {item.specifications.material}, which is not suitable for wet areas",
                recommendation="Switch to a moisture-resistant material such as marine plywood, stainless steel, ceramic or sealed wood",
                affected_quantity=item.quantity,
            )

    if any(allowed in material for allowed in MOISTURE_ALLOWED_MATERIALS):
        return None

    return ComplianceIssue(
        item_id=item.id,
        item_name=item.name,
        issue_type=IssueType.MOISTURE,
        severity=Severity.INFO,
        description=f"Moisture resistance of '{item.specifications.material or 'unspecified material'}' could not be verified for a wet area",
        recommendation="Request moisture-resistance documentation from the supplier",
        affected_quantity=item.quantity,
    )


def check_ada(item: Item, ada_range: Tuple[float, float]) -> Optional[ComplianceIssue]:
    if not item.compliance.ada_relevant:
        return None

    low, high = ada_range
    height = parse_height_inches(item.specifications.dimensions)
    if height is None:
        return ComplianceIssue(
            item_id=item.id,
            item_name=item.name,
            issue_type=IssueType.ADA,
            severity=Severity.INFO,
            description=f"{item.name} is ADA-relevant but declares no height dimension",
            recommendation=f"Confirm the accessible height is between {low:g} and {high:g} inches",
            affected_quantity=item.quantity,
        )
    if low <= height <= high:
        return None

    return ComplianceIssue(
        item_id=item.id,
        item_name=item.name,
        issue_type=IssueType.ADA,
        severity=Severity.WARNING,
        description=f"Height of {height:g}in is outside the accessible range of {low:g}-{high:g}in",
        recommendation=f"Specify an accessible height between {low:g} and {high:g} inches",
        affected_quantity=item.quantity,
    )


def check_electrical(item: Item) -> Optional[ComplianceIssue]:
    if item.category.strip().lower() not in ELECTRICAL_CATEGORIES:
        return None
    if any(ELECTRICAL_CERTIFICATION_PATTERN.search(c) for c in item.compliance.certifications):
        return None
    return ComplianceIssue(
        item_id=item.id,
        item_name=item.name,
        issue_type=IssueType.ELECTRICAL,
        severity=Severity.CRITICAL,
        description=f"{item.name} is an electrical product without UL or CE certification",
        recommendation="Require UL (US) or CE (EU) listing before purchase",
        affected_quantity=item.quantity,
    )


def classify_item(item: Item, ada_range: Tuple[float, float]) -> List[ComplianceIssue]:
    """Run every rule against one item."""
    candidates = [
        check_fire_safety(item),
        check_moisture(item),
        check_ada(item, ada_range),
        check_electrical(item),
    ]
    return [issue for issue in candidates if issue is not None]


# ============= REPORT =============

def summarize(items: List[Item], issues: List[ComplianceIssue]) -> ComplianceSummary:
    counts = {severity: 0 for severity in Severity}
    flagged = set()
    for issue in issues:
        counts[issue.severity] += 1
        if issue.severity in (Severity.CRITICAL, Severity.WARNING):
            flagged.add(issue.item_id)

    risk = sum(SEVERITY_RISK_POINTS[s.value] * n for s, n in counts.items())
    return ComplianceSummary(
        total_items=len(items),
        critical=counts[Severity.CRITICAL],
        warning=counts[Severity.WARNING],
        info=counts[Severity.INFO],
        compliant_items=len([i for i in items if i.id not in flagged]),
        risk_score=min(100, risk),
    )


def _recommendations(issues: List[ComplianceIssue]) -> List[str]:
    ordered = []
    for severity in (Severity.CRITICAL, Severity.WARNING):
        for issue in issues:
            if issue.severity == severity and issue.recommendation not in ordered:
                ordered.append(issue.recommendation)
    return ordered


def classify(
    items: List[Item],
    item_ids: Optional[Iterable[str]] = None,
    ada_range: Optional[Tuple[float, float]] = None,
) -> ComplianceReport:
    """
    Classify items against the four compliance domains.

    Args:
        items: Items to evaluate
        item_ids: Optional subset of item ids to evaluate
        ada_range: Accessible (min, max) height in inches; defaults to settings

    Returns:
        ComplianceReport with issues in item order and a severity summary

    Raises:
        InvalidInput: no items, or item_ids naming unknown items
    """
    if not items:
        raise InvalidInput("No items to classify")

    if item_ids:
        wanted = list(dict.fromkeys(item_ids))
        known = {i.id for i in items}
        unknown = [i for i in wanted if i not in known]
        if unknown:
            raise InvalidInput(f"Unknown item ids: {', '.join(unknown)}")
        items = [i for i in items if i.id in set(wanted)]

    ada_range = ada_range or (settings.ADA_MIN_HEIGHT_IN, settings.ADA_MAX_HEIGHT_IN)

    issues: List[ComplianceIssue] = []
    for item in items:
        issues.extend(classify_item(item, ada_range))

    return ComplianceReport(
        issues=issues,
        summary=summarize(items, issues),
        recommendations=_recommendations(issues),
    )
