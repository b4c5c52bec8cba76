"""
Reference tables for compliance rules and supplier location scoring.
"""
import re
from typing import Dict, List, Optional

# ============= REGIONS =============

US_REGIONS: Dict[str, List[str]] = {
    "West": ["CA", "OR", "WA", "NV", "AZ", "UT", "CO", "ID", "MT", "WY", "NM", "AK", "HI"],
    "Midwest": ["IL", "OH", "MI", "IN", "WI", "MN", "MO", "IA", "KS", "NE", "SD", "ND"],
    "South": ["TX", "FL", "GA", "NC", "SC", "VA", "TN", "AL", "MS", "LA", "AR", "OK", "KY", "WV"],
    "Northeast": ["NY", "PA", "NJ", "MA", "CT", "RI", "ME", "NH", "VT", "DE", "MD", "DC"],
}


def region_for_state(state: str, regions: Optional[Dict[str, List[str]]] = None) -> Optional[str]:
    """Return the region containing `state`, or None when the table has no entry."""
    state = (state or "").strip().upper()
    for region, states in (regions or US_REGIONS).items():
        if state in {s.upper() for s in states}:
            return region
    return None


# ============= SUPPLIER SCORING =============

CATEGORY_WEIGHT = 0.3
LOCATION_WEIGHT = 0.2
CAPACITY_WEIGHT = 0.1
COVERAGE_WEIGHT = 0.4

SPECIALIZED_SCORE = 100.0
CARRIED_SCORE = 50.0

SAME_STATE_SCORE = 100.0
SAME_REGION_SCORE = 75.0
OTHER_REGION_SCORE = 25.0

# (multiple of order value the supplier can absorb, score), checked in order
CAPACITY_TIERS = [
    (1.2, 100.0),
    (1.0, 75.0),
    (0.5, 50.0),
]

# ============= COMPLIANCE =============

SEVERITY_RISK_POINTS = {
    "critical": 10,
    "warning": 3,
    "info": 1,
}

# Checked before the allowed list: "unsealed wood" contains "sealed wood".
MOISTURE_DISALLOWED_MATERIALS = [
    "unsealed wood",
    "particleboard",
    "particle board",
    "chipboard",
    "mdf",
]

MOISTURE_ALLOWED_MATERIALS = [
    "marine plywood",
    "stainless steel",
    "plastic",
    "ceramic",
    "glass",
    "sealed wood",
    "porcelain",
    "quartz",
    "solid surface",
    "acrylic",
]

FIRE_CERTIFICATION_PATTERN = re.compile(
    r"(cal\s*-?\s*117|tb\s*-?\s*117|nfpa\s*-?\s*(260|701)|bs\s*-?\s*5852|fire[- ]?(rated|retardant|resistant))",
    re.IGNORECASE,
)

# "Not fire rated", "non-fire-retardant" and the like carry no fire certification
FIRE_NEGATION_PATTERN = re.compile(r"\b(not|non|no)\b[- ]*fire", re.IGNORECASE)

ELECTRICAL_CERTIFICATION_PATTERN = re.compile(r"\b(c?ul(us)?|ce)\b", re.IGNORECASE)

ELECTRICAL_CATEGORIES = frozenset({
    "electronics",
    "electronic",
    "appliances",
    "appliance",
    "hvac",
    "electrical",
    "lighting",
})
