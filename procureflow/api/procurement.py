"""
Procurement workflow API routes - one command per stage plus status and auto-run.
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from procureflow.core.errors import ProcurementError
from procureflow.core.logging import get_logger
from procureflow.services.state_store import SqlWorkflowStateStore
from procureflow.services.workflow import StageStateMachine

logger = get_logger(__name__)

router = APIRouter(prefix="/api/procurement/{workspace_id}", tags=["Procurement"])

_machine: Optional[StageStateMachine] = None


def get_state_machine() -> StageStateMachine:
    """Dependency returning the process-wide state machine."""
    global _machine
    if _machine is None:
        _machine = StageStateMachine(SqlWorkflowStateStore())
    return _machine


def procurement_error_handler(request: Request, exc: ProcurementError) -> JSONResponse:
    """Render typed workflow errors as {code, message, stage?}."""
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


# ============= SCHEMAS =============

class ExtractionRequest(BaseModel):
    raw_document: Optional[str] = None
    item_count_hint: Optional[int] = None
    item_set: Optional[Dict[str, Any]] = None


class ComplianceRequest(BaseModel):
    item_ids: Optional[List[str]] = None


class SupplierMatchingRequest(BaseModel):
    buyer_location: Optional[str] = None  # "City, ST"
    min_score: float = 60
    max_results: int = 5


class RFQRequest(BaseModel):
    supplier_ids: Optional[List[str]] = None
    due_date: Optional[str] = None  # YYYY-MM-DD
    include_compliance: bool = True


class BidComparisonRequest(BaseModel):
    bids: Optional[List[Dict[str, Any]]] = None  # camelCase Bid records
    weights: Optional[Dict[str, float]] = None


class BidAcceptedRequest(BaseModel):
    bid_id: Optional[str] = None
    supplier_id: Optional[str] = None


class PurchaseOrderRequest(BaseModel):
    payment_method: str = "ach"  # credit_card, ach, wire


class ShipmentRequest(BaseModel):
    tracking_number: Optional[str] = None
    carrier: str = "DHL"
    estimated_delivery: Optional[str] = None


class DeliveryRequest(BaseModel):
    received_quantity: int = Field(ge=0)
    notes: str = ""


class QualityIssueRequest(BaseModel):
    item_name: str
    issue_type: str  # damaged, defective, wrong_item, missing_parts
    severity: str  # critical, major, minor
    description: str
    item_id: Optional[str] = None


class ResolveQualityIssueRequest(BaseModel):
    resolution: str


class RunWorkflowRequest(BaseModel):
    buyer_location: Optional[str] = None
    raw_document: Optional[str] = None
    item_count_hint: int = 30
    weights: Optional[Dict[str, float]] = None


# ============= ROUTES =============

@router.get("/status")
def get_status(workspace_id: str, machine: StageStateMachine = Depends(get_state_machine)):
    """Current stage and the command to run next."""
    return machine.status(workspace_id)


@router.post("/extraction")
def run_extraction(
    workspace_id: str,
    request: Optional[ExtractionRequest] = None,
    machine: StageStateMachine = Depends(get_state_machine),
):
    request = request or ExtractionRequest()
    return machine.extraction(
        workspace_id,
        raw_document=request.raw_document,
        item_count_hint=request.item_count_hint,
        item_set=request.item_set,
    ).to_json_dict()


@router.post("/compliance")
def run_compliance(
    workspace_id: str,
    request: Optional[ComplianceRequest] = None,
    machine: StageStateMachine = Depends(get_state_machine),
):
    request = request or ComplianceRequest()
    return machine.compliance(workspace_id, item_ids=request.item_ids).to_json_dict()


@router.post("/supplier-matching")
def run_supplier_matching(
    workspace_id: str,
    request: Optional[SupplierMatchingRequest] = None,
    machine: StageStateMachine = Depends(get_state_machine),
):
    request = request or SupplierMatchingRequest()
    return machine.supplier_matching(
        workspace_id,
        buyer_location=request.buyer_location,
        min_score=request.min_score,
        max_results=request.max_results,
    ).to_json_dict()


@router.post("/rfq")
def run_rfq(
    workspace_id: str,
    request: Optional[RFQRequest] = None,
    machine: StageStateMachine = Depends(get_state_machine),
):
    request = request or RFQRequest()
    return machine.rfq(
        workspace_id,
        supplier_ids=request.supplier_ids,
        due_date=request.due_date,
        include_compliance=request.include_compliance,
    ).to_json_dict()


@router.post("/bid-comparison")
def run_bid_comparison(
    workspace_id: str,
    request: Optional[BidComparisonRequest] = None,
    machine: StageStateMachine = Depends(get_state_machine),
):
    request = request or BidComparisonRequest()
    return machine.bid_comparison(workspace_id, bids=request.bids, weights=request.weights).to_json_dict()


@router.post("/bid-accepted")
def run_bid_accepted(
    workspace_id: str,
    request: Optional[BidAcceptedRequest] = None,
    machine: StageStateMachine = Depends(get_state_machine),
):
    request = request or BidAcceptedRequest()
    return machine.bid_accepted(
        workspace_id, bid_id=request.bid_id, supplier_id=request.supplier_id
    ).to_json_dict()


@router.post("/contract")
def run_contract(workspace_id: str, machine: StageStateMachine = Depends(get_state_machine)):
    return machine.contract(workspace_id).to_json_dict()


@router.post("/purchase-order")
def run_purchase_order(
    workspace_id: str,
    request: Optional[PurchaseOrderRequest] = None,
    machine: StageStateMachine = Depends(get_state_machine),
):
    request = request or PurchaseOrderRequest()
    return machine.purchase_order(workspace_id, payment_method=request.payment_method).to_json_dict()


@router.post("/shipment")
def run_shipment(
    workspace_id: str,
    request: Optional[ShipmentRequest] = None,
    machine: StageStateMachine = Depends(get_state_machine),
):
    request = request or ShipmentRequest()
    return machine.shipment(
        workspace_id,
        tracking_number=request.tracking_number,
        carrier=request.carrier,
        estimated_delivery=request.estimated_delivery,
    ).to_json_dict()


@router.post("/delivery")
def run_delivery(
    workspace_id: str,
    request: DeliveryRequest,
    machine: StageStateMachine = Depends(get_state_machine),
):
    return machine.delivery(
        workspace_id, received_quantity=request.received_quantity, notes=request.notes
    ).to_json_dict()


@router.post("/quality-control")
def run_quality_control(
    workspace_id: str,
    request: QualityIssueRequest,
    machine: StageStateMachine = Depends(get_state_machine),
):
    return machine.quality_control(
        workspace_id,
        item_name=request.item_name,
        issue_type=request.issue_type,
        severity=request.severity,
        description=request.description,
        item_id=request.item_id,
    ).to_json_dict()


@router.post("/quality-control/{issue_id}/resolve")
def resolve_quality_issue(
    workspace_id: str,
    issue_id: str,
    request: ResolveQualityIssueRequest,
    machine: StageStateMachine = Depends(get_state_machine),
):
    return machine.resolve_quality_issue(workspace_id, issue_id, request.resolution).to_json_dict()


@router.post("/complete")
def run_complete(workspace_id: str, machine: StageStateMachine = Depends(get_state_machine)):
    return machine.complete(workspace_id).to_json_dict()


@router.post("/run")
def run_full_workflow(
    workspace_id: str,
    request: Optional[RunWorkflowRequest] = None,
    machine: StageStateMachine = Depends(get_state_machine),
):
    """Run every stage from extraction to completion with default parameters."""
    request = request or RunWorkflowRequest()
    results = machine.run_full_workflow(
        workspace_id,
        buyer_location=request.buyer_location,
        raw_document=request.raw_document,
        item_count_hint=request.item_count_hint,
        weights=request.weights,
    )
    return {"workspaceId": workspace_id, "stages": [r.to_json_dict() for r in results]}
