"""
Pydantic models for procurement workflow artifacts.

Attributes are snake_case; serialized JSON uses camelCase aliases so persisted
artifacts keep the field names callers already know (itemSet, totalBidAmount, ...).
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional
import enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> Dict[str, Any]:
        """Serialize for persistence or an HTTP response."""
        return self.model_dump(mode="json", by_alias=True)


# ============= ENUMS =============

class Stage(str, enum.Enum):
    NOT_STARTED = "not_started"
    EXTRACTION = "extraction"
    COMPLIANCE = "compliance"
    SUPPLIER_MATCHING = "supplier_matching"
    RFQ = "rfq"
    BID_COMPARISON = "bid_comparison"
    BID_ACCEPTED = "bid_accepted"
    CONTRACT = "contract"
    PURCHASE_ORDER = "purchase_order"
    SHIPMENT = "shipment"
    DELIVERY = "delivery"
    QUALITY_CONTROL = "quality_control"
    COMPLETED = "completed"


# Canonical forward order; position doubles as the stage rank.
STAGE_ORDER = list(Stage)


class ArtifactKey(str, enum.Enum):
    ITEM_SET = "itemSet"
    COMPLIANCE_REPORT = "complianceReport"
    MATCH_SET = "matchSet"
    RFQ_BUNDLE = "rfqBundle"
    BID_COMPARISON = "bidComparison"
    ACCEPTED_BID = "acceptedBid"
    CONTRACT = "contract"
    PURCHASE_ORDER = "purchaseOrder"
    SHIPMENT = "shipment"
    DELIVERY = "delivery"
    QUALITY_ISSUES = "qualityIssues"
    COMPLETION = "completion"
    CURRENT_STAGE = "currentStage"


class MoistureZone(str, enum.Enum):
    NONE = "none"
    WET = "wet"


class IssueType(str, enum.Enum):
    FIRE_SAFETY = "fire_safety"
    MOISTURE = "moisture"
    ADA = "ada"
    ELECTRICAL = "electrical"


class Severity(str, enum.Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class UnmatchedReason(str, enum.Enum):
    NO_SUPPLIERS = "no_suppliers"
    NO_CATEGORY_MATCH = "no_category_match"
    INSUFFICIENT_CAPACITY = "insufficient_capacity"
    BELOW_THRESHOLD = "below_threshold"


class PaymentMethod(str, enum.Enum):
    CREDIT_CARD = "credit_card"
    ACH = "ach"
    WIRE = "wire"


class QualityIssueType(str, enum.Enum):
    DAMAGED = "damaged"
    DEFECTIVE = "defective"
    WRONG_ITEM = "wrong_item"
    MISSING_PARTS = "missing_parts"


class QualitySeverity(str, enum.Enum):
    CRITICAL = "critical"
    MAJOR = "major"
    MINOR = "minor"


class QualityIssueStatus(str, enum.Enum):
    OPEN = "open"
    RESOLVED = "resolved"


# ============= ITEMS =============

class ItemSpecifications(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    dimensions: Optional[str] = None
    material: Optional[str] = None
    finish: Optional[str] = None
    color: Optional[str] = None
    weight: Optional[str] = None


class ItemCompliance(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    fire_rating_required: bool = False
    moisture_zone: MoistureZone = MoistureZone.NONE
    ada_relevant: bool = False
    certifications_required: List[str] = Field(default_factory=list)
    # Certifications the item already carries
    certifications: List[str] = Field(default_factory=list)


class Item(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    category: str
    subcategory: Optional[str] = None
    name: str
    quantity: int = Field(ge=0)
    unit_price: Decimal = Field(ge=0)
    specifications: ItemSpecifications = Field(default_factory=ItemSpecifications)
    compliance: ItemCompliance = Field(default_factory=ItemCompliance)

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


class ItemSet(CamelModel):
    project_name: str
    items: List[Item]
    total_estimated_cost: Optional[Decimal] = None
    extracted_at: datetime = Field(default_factory=utcnow)
    source: str = "unknown"

    @model_validator(mode="after")
    def fill_total(self) -> "ItemSet":
        if self.total_estimated_cost is None:
            self.total_estimated_cost = sum((i.line_total for i in self.items), Decimal("0"))
        return self


# ============= COMPLIANCE =============

class ComplianceIssue(CamelModel):
    item_id: str
    item_name: str
    issue_type: IssueType
    severity: Severity
    description: str
    recommendation: str
    affected_quantity: int


class ComplianceSummary(CamelModel):
    total_items: int
    critical: int
    warning: int
    info: int
    compliant_items: int
    risk_score: int


class ComplianceReport(CamelModel):
    issues: List[ComplianceIssue]
    summary: ComplianceSummary
    recommendations: List[str] = Field(default_factory=list)


# ============= SUPPLIERS =============

class Location(CamelModel):
    city: str = ""
    state: str

    @field_validator("state")
    @classmethod
    def normalize_state(cls, v: str) -> str:
        return v.strip().upper()

    @classmethod
    def parse(cls, value: Any) -> "Location":
        """Accept a Location, a {city, state} dict, or a "City, ST" string."""
        if isinstance(value, Location):
            return value
        if isinstance(value, dict):
            return cls.model_validate(value)
        if isinstance(value, str) and value.strip():
            parts = [p.strip() for p in value.split(",")]
            if len(parts) == 1:
                return cls(city="", state=parts[0])
            return cls(city=", ".join(parts[:-1]), state=parts[-1])
        raise ValueError(f"Unrecognized location: {value!r}")

    def __str__(self) -> str:
        return f"{self.city}, {self.state}" if self.city else self.state


class Supplier(CamelModel):
    id: str
    name: str
    location: Location
    categories: List[str]
    specialties: List[str] = Field(default_factory=list)
    max_order_value: Decimal = Field(ge=0)
    certifications: List[str] = Field(default_factory=list)
    email: Optional[str] = None

    @field_validator("location", mode="before")
    @classmethod
    def parse_location(cls, v: Any) -> Any:
        return Location.parse(v)


class ScoreBreakdown(CamelModel):
    category_score: float
    location_score: float
    capacity_score: float
    coverage_score: float


class MatchedItem(CamelModel):
    item_id: str
    item_name: str
    quantity: int
    estimated_unit_price: Decimal
    estimated_total_price: Decimal


class SupplierMatch(CamelModel):
    supplier_id: str
    supplier_name: str
    supplier_email: Optional[str] = None
    location: str
    total_score: float
    breakdown: ScoreBreakdown
    matched_items: List[MatchedItem]
    estimated_total_cost: Decimal


class UnmatchedItem(CamelModel):
    item_id: str
    item_name: str
    reason: UnmatchedReason


class MatchSummary(CamelModel):
    total_items: int
    matched_items: int
    unmatched_items: int
    recommended_supplier_count: int
    total_estimated_cost: Decimal


class MatchSet(CamelModel):
    buyer_location: str
    min_score: float
    max_results: int
    matches: List[SupplierMatch]
    unmatched_items: List[UnmatchedItem]
    summary: MatchSummary


# ============= RFQ =============

class RFQSupplierEntry(CamelModel):
    supplier_id: str
    supplier_name: str
    supplier_email: Optional[str] = None
    item_count: int
    estimated_value: Decimal
    status: str = "awaiting_response"
    ack: Optional[str] = None
    document: str
    sent_at: datetime = Field(default_factory=utcnow)


class RFQBundle(CamelModel):
    rfq_id: str
    project_name: str
    due_date: str
    status: str = "sent"
    suppliers: List[RFQSupplierEntry]
    total_estimated_value: Decimal
    created_at: datetime = Field(default_factory=utcnow)


# ============= BIDS =============

class Bid(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    bid_id: str
    supplier_id: str
    supplier_name: Optional[str] = None
    total_bid_amount: Decimal = Field(ge=0)
    average_lead_time_weeks: int = Field(ge=0)
    warranty_years: int = Field(ge=0)
    certifications_coverage_pct: float = Field(ge=0, le=100)
    submitted_at: Optional[datetime] = None


class CategoryScores(CamelModel):
    price: float
    quality: float
    lead_time: float
    compliance: float


class BidScore(CamelModel):
    bid_id: str
    supplier_id: str
    overall_score: float
    rank: int
    category_scores: CategoryScores


class BidAmount(CamelModel):
    bid_id: str
    supplier_id: str
    amount: Decimal


class CostBreakdown(CamelModel):
    lowest_bid: BidAmount
    highest_bid: BidAmount
    potential_savings: Decimal


class RunnerUp(CamelModel):
    bid_id: str
    supplier_id: str
    rank: int
    overall_score: float
    score_delta: float
    category_deltas: CategoryScores


class BidComparison(CamelModel):
    weights: Dict[str, float]
    bids: List[Bid]
    scores: List[BidScore]
    winning_bid_id: str
    cost_breakdown: CostBreakdown
    runners_up: List[RunnerUp]
    superseded_bid_ids: List[str] = Field(default_factory=list)


class AcceptedBid(Bid):
    overall_score: float
    rank: int
    accepted_at: datetime = Field(default_factory=utcnow)


# ============= FULFILLMENT =============

class Contract(CamelModel):
    contract_id: str
    bid_id: str
    supplier_id: str
    supplier_name: Optional[str] = None
    amount: Decimal
    warranty_years: int
    status: str = "draft"
    document: str
    created_at: datetime = Field(default_factory=utcnow)


class PurchaseOrder(CamelModel):
    po_number: str
    contract_id: str
    supplier_id: str
    supplier_name: Optional[str] = None
    amount: Decimal
    payment_method: PaymentMethod
    status: str = "pending_payment"
    created_at: datetime = Field(default_factory=utcnow)


class Shipment(CamelModel):
    tracking_number: str
    carrier: str
    po_number: str
    status: str = "in_transit"
    estimated_delivery: str
    last_update: datetime = Field(default_factory=utcnow)


class Delivery(CamelModel):
    po_number: str
    received_quantity: int
    expected_quantity: int
    shortfall: int
    status: str = "delivered"
    notes: str = ""
    confirmed_at: datetime = Field(default_factory=utcnow)


class QualityIssue(CamelModel):
    issue_id: str
    item_name: str
    item_id: Optional[str] = None
    issue_type: QualityIssueType
    severity: QualitySeverity
    description: str
    status: QualityIssueStatus = QualityIssueStatus.OPEN
    reported_at: datetime = Field(default_factory=utcnow)
    resolved_at: Optional[datetime] = None
    resolution: Optional[str] = None


# ============= WORKFLOW =============

class WorkflowState(CamelModel):
    workspace_id: str
    current_stage: Stage = Stage.NOT_STARTED
    artifacts: Dict[ArtifactKey, Any] = Field(default_factory=dict)

    def has(self, key: ArtifactKey) -> bool:
        return self.artifacts.get(key) is not None


class StageResult(CamelModel):
    """Successful (OK) result of a stage invocation."""

    stage: Stage
    artifact_key: Optional[ArtifactKey] = None
    artifact: Any = None
    summary: str
    current_stage: Stage
    next_command: Optional[str] = None
