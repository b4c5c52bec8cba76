"""
Procurement stage state machine.

Sequences the workflow stages for a workspace:

    extraction -> compliance -> supplier_matching -> rfq -> bid_comparison ->
    bid_accepted -> contract -> purchase_order -> shipment -> delivery ->
    quality_control -> completed

Each stage checks that its precondition artifact exists, runs its logic, and
commits its output artifact together with `currentStage` in one store
transaction. Nothing is written when a stage fails. Re-running an earlier
stage replaces its artifact but does not invalidate downstream artifacts and
never moves `currentStage` backwards; callers re-run the dependent stages.
"""
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
import time

from pydantic import ValidationError

from procureflow.core.config import settings
from procureflow.core.errors import InvalidInput, PrecursorMissing, ProcurementError
from procureflow.core.logging import audit_logger, get_logger
from procureflow.schemas import (
    AcceptedBid, ArtifactKey, Bid, BidComparison, CamelModel, ComplianceReport,
    Contract, Delivery, ItemSet, MatchSet, PaymentMethod, PurchaseOrder,
    QualityIssue, QualityIssueStatus, QualityIssueType, QualitySeverity,
    RFQBundle, RFQSupplierEntry, Shipment, Stage, STAGE_ORDER, StageResult, utcnow,
)
from procureflow.services import bid_comparison, compliance, llm_provider, supplier_matching
from procureflow.services.collaborators import (
    ItemExtractor, Notifier, SupplierDirectory,
    get_item_extractor, get_notifier, get_supplier_directory,
)
from procureflow.services.demo_data import simulate_bids
from procureflow.services.state_store import WorkflowStateStore, WorkspaceLocks

logger = get_logger(__name__)

# Stage -> command to run next; lets a caller resume after a restart.
NEXT_COMMANDS: Dict[Stage, Optional[str]] = {
    Stage.NOT_STARTED: "extraction",
    Stage.EXTRACTION: "compliance",
    Stage.COMPLIANCE: "supplier_matching",
    Stage.SUPPLIER_MATCHING: "rfq",
    Stage.RFQ: "bid_comparison",
    Stage.BID_COMPARISON: "bid_accepted",
    Stage.BID_ACCEPTED: "contract",
    Stage.CONTRACT: "purchase_order",
    Stage.PURCHASE_ORDER: "shipment",
    Stage.SHIPMENT: "delivery",
    Stage.DELIVERY: "quality_control",
    Stage.QUALITY_CONTROL: "complete",
    Stage.COMPLETED: None,
}

# Artifact each stage produces; consumers name the producer when it is missing.
PRODUCED_BY: Dict[ArtifactKey, Stage] = {
    ArtifactKey.ITEM_SET: Stage.EXTRACTION,
    ArtifactKey.COMPLIANCE_REPORT: Stage.COMPLIANCE,
    ArtifactKey.MATCH_SET: Stage.SUPPLIER_MATCHING,
    ArtifactKey.RFQ_BUNDLE: Stage.RFQ,
    ArtifactKey.BID_COMPARISON: Stage.BID_COMPARISON,
    ArtifactKey.ACCEPTED_BID: Stage.BID_ACCEPTED,
    ArtifactKey.CONTRACT: Stage.CONTRACT,
    ArtifactKey.PURCHASE_ORDER: Stage.PURCHASE_ORDER,
    ArtifactKey.SHIPMENT: Stage.SHIPMENT,
    ArtifactKey.DELIVERY: Stage.DELIVERY,
    ArtifactKey.QUALITY_ISSUES: Stage.QUALITY_CONTROL,
    ArtifactKey.COMPLETION: Stage.COMPLETED,
}

SHIPMENT_TRANSIT_DAYS = 5

# (artifact key, value, summary) returned by every stage handler
HandlerResult = Tuple[Optional[ArtifactKey], Any, str]


def _now_ms() -> int:
    return int(time.time() * 1000)


def _money(value) -> str:
    return f"${value:,.2f}"


class StageStateMachine:
    """Runs procurement stages against a workflow state store."""

    def __init__(
        self,
        store: WorkflowStateStore,
        extractor: Optional[ItemExtractor] = None,
        directory: Optional[SupplierDirectory] = None,
        notifier: Optional[Notifier] = None,
    ):
        self.store = store
        self.extractor = extractor or get_item_extractor()
        self.directory = directory or get_supplier_directory()
        self.notifier = notifier or get_notifier()
        self.locks = WorkspaceLocks()

    # ============= PLUMBING =============

    def _run(self, workspace_id: str, stage: Stage, handler: Callable[..., HandlerResult]) -> StageResult:
        """Lock the workspace, run a handler and commit its artifact with the new stage."""
        if not workspace_id or not workspace_id.strip():
            raise InvalidInput("workspace_id is required")

        outcome: Dict[str, Any] = {}

        def step(state) -> Dict[ArtifactKey, Any]:
            try:
                artifact_key, artifact, summary = handler(state)
            except ProcurementError as e:
                logger.info(
                    f"Stage {stage.value} rejected: {e.message}",
                    extra={"workspace_id": workspace_id, "stage": stage.value},
                )
                raise
            except Exception:
                logger.exception(
                    f"Stage {stage.value} failed unexpectedly",
                    extra={"workspace_id": workspace_id, "stage": stage.value},
                )
                raise

            if isinstance(artifact, CamelModel):
                artifact = artifact.to_json_dict()
            elif isinstance(artifact, list):
                artifact = [a.to_json_dict() if isinstance(a, CamelModel) else a for a in artifact]

            current = state.current_stage
            if STAGE_ORDER.index(stage) > STAGE_ORDER.index(current):
                current = stage

            outcome.update(artifact_key=artifact_key, artifact=artifact, summary=summary, current=current)
            values: Dict[ArtifactKey, Any] = {ArtifactKey.CURRENT_STAGE: current.value}
            if artifact_key is not None:
                values[artifact_key] = artifact
            return values

        # Threads of this process queue here; store.apply serializes across processes
        with self.locks.get(workspace_id):
            self.store.apply(workspace_id, step)

        artifact_key, artifact = outcome["artifact_key"], outcome["artifact"]
        summary, current = outcome["summary"], outcome["current"]

        audit_logger.log(
            "stage_committed",
            workspace_id=workspace_id,
            stage=stage.value,
            artifact_key=artifact_key.value if artifact_key else None,
            details={"current_stage": current.value},
        )
        self.notifier.notify(workspace_id, summary)

        return StageResult(
            stage=stage,
            artifact_key=artifact_key,
            artifact=artifact,
            summary=summary,
            current_stage=current,
            next_command=NEXT_COMMANDS[current],
        )

    @staticmethod
    def _require(state, key: ArtifactKey) -> Any:
        value = state.artifacts.get(key)
        if value is None:
            producer = PRODUCED_BY[key]
            raise PrecursorMissing(
                producer.value,
                f"No {key.value} found. Run '{producer.value}' first.",
            )
        return value

    # ============= STAGE 1: EXTRACTION =============

    def extraction(
        self,
        workspace_id: str,
        raw_document: Optional[str] = None,
        item_count_hint: Optional[int] = None,
        item_set: Optional[Union[ItemSet, Dict[str, Any]]] = None,
    ) -> StageResult:
        """Entry point: produce the item set from a document, a supplied item set, or the demo catalog."""

        def handler(state) -> HandlerResult:
            if item_set is not None:
                try:
                    items = item_set if isinstance(item_set, ItemSet) else ItemSet.model_validate(item_set)
                except ValidationError as e:
                    raise InvalidInput(f"Invalid item set: {e.error_count()} validation errors") from e
            else:
                count = 30 if item_count_hint is None else item_count_hint
                if count < 1:
                    raise InvalidInput("item_count_hint must be at least 1")
                items = self.extractor.extract(raw_document, count)

            if not items.items:
                raise InvalidInput("Extraction produced zero items")

            categories: Dict[str, int] = {}
            for item in items.items:
                categories[item.category] = categories.get(item.category, 0) + 1
            breakdown = ", ".join(f"{c}: {n}" for c, n in categories.items())
            summary = (
                f"Stage 1 complete: extracted {len(items.items)} items for '{items.project_name}' "
                f"(est. {_money(items.total_estimated_cost)}). Categories: {breakdown}."
            )
            return ArtifactKey.ITEM_SET, items, summary

        return self._run(workspace_id, Stage.EXTRACTION, handler)

    # ============= STAGE 2: COMPLIANCE =============

    def compliance(self, workspace_id: str, item_ids: Optional[List[str]] = None) -> StageResult:
        def handler(state) -> HandlerResult:
            items = ItemSet.model_validate(self._require(state, ArtifactKey.ITEM_SET))
            report = compliance.classify(items.items, item_ids)
            s = report.summary
            summary = (
                f"Stage 2 complete: analyzed {s.total_items} items. "
                f"{s.critical} critical, {s.warning} warning, {s.info} info issues; "
                f"{s.compliant_items} compliant items; risk score {s.risk_score}/100."
            )
            return ArtifactKey.COMPLIANCE_REPORT, report, summary

        return self._run(workspace_id, Stage.COMPLIANCE, handler)

    # ============= STAGE 3: SUPPLIER MATCHING =============

    def supplier_matching(
        self,
        workspace_id: str,
        buyer_location: Optional[str] = None,
        min_score: float = 60,
        max_results: int = 5,
    ) -> StageResult:
        def handler(state) -> HandlerResult:
            self._require(state, ArtifactKey.COMPLIANCE_REPORT)
            items = ItemSet.model_validate(self._require(state, ArtifactKey.ITEM_SET))
            match_set = supplier_matching.match(
                items.items,
                self.directory.list_suppliers(),
                buyer_location or settings.DEFAULT_BUYER_LOCATION,
                min_score=min_score,
                max_results=max_results,
            )
            s = match_set.summary
            top = match_set.matches[0] if match_set.matches else None
            summary = (
                f"Stage 3 complete: {s.recommended_supplier_count} suppliers matched near "
                f"{match_set.buyer_location}; {s.matched_items}/{s.total_items} items covered."
            )
            if top:
                summary += f" Top match: {top.supplier_name} ({top.total_score}/100)."
            if s.unmatched_items:
                summary += f" {s.unmatched_items} items unmatched."
            return ArtifactKey.MATCH_SET, match_set, summary

        return self._run(workspace_id, Stage.SUPPLIER_MATCHING, handler)

    # ============= STAGE 4: RFQ =============

    def rfq(
        self,
        workspace_id: str,
        supplier_ids: Optional[List[str]] = None,
        due_date: Optional[str] = None,
        include_compliance: bool = True,
    ) -> StageResult:
        def handler(state) -> HandlerResult:
            match_set = MatchSet.model_validate(self._require(state, ArtifactKey.MATCH_SET))
            items = ItemSet.model_validate(self._require(state, ArtifactKey.ITEM_SET))

            if supplier_ids:
                by_id = {m.supplier_id: m for m in match_set.matches}
                unknown = [s for s in supplier_ids if s not in by_id]
                if unknown:
                    raise InvalidInput(f"Suppliers not in the match set: {', '.join(unknown)}")
                targets = [by_id[s] for s in dict.fromkeys(supplier_ids)]
            else:
                targets = match_set.matches[:settings.RFQ_DEFAULT_SUPPLIERS]
            if not targets:
                raise InvalidInput("No matched suppliers to send an RFQ to")

            if due_date:
                try:
                    deadline = date.fromisoformat(due_date).isoformat()
                except ValueError:
                    raise InvalidInput(f"due_date must be YYYY-MM-DD, got {due_date!r}") from None
            else:
                deadline = (date.today() + timedelta(days=settings.RFQ_RESPONSE_DAYS)).isoformat()

            issues = []
            if include_compliance and state.has(ArtifactKey.COMPLIANCE_REPORT):
                issues = ComplianceReport.model_validate(state.artifacts[ArtifactKey.COMPLIANCE_REPORT]).issues

            rfq_id = f"RFQ-{workspace_id[:8]}-{_now_ms()}"
            entries = []
            for match in targets:
                item_ids = {mi.item_id for mi in match.matched_items}
                document = llm_provider.generate_rfq_document(
                    rfq_id,
                    items.project_name,
                    deadline,
                    match.supplier_name,
                    [mi.to_json_dict() for mi in match.matched_items],
                    [i.to_json_dict() for i in issues if i.item_id in item_ids] if include_compliance else None,
                )
                ack = self.notifier.send_rfq(match.supplier_id, document, rfq_id=rfq_id, email=match.supplier_email)
                entries.append(RFQSupplierEntry(
                    supplier_id=match.supplier_id,
                    supplier_name=match.supplier_name,
                    supplier_email=match.supplier_email,
                    item_count=len(match.matched_items),
                    estimated_value=match.estimated_total_cost,
                    ack=ack,
                    document=document,
                ))

            bundle = RFQBundle(
                rfq_id=rfq_id,
                project_name=items.project_name,
                due_date=deadline,
                suppliers=entries,
                total_estimated_value=sum((e.estimated_value for e in entries), Decimal("0")),
            )
            summary = (
                f"Stage 4 complete: RFQ {rfq_id} sent to {len(entries)} suppliers "
                f"({', '.join(e.supplier_name for e in entries)}), due {deadline}. "
                f"Total RFQ value {_money(bundle.total_estimated_value)}."
            )
            return ArtifactKey.RFQ_BUNDLE, bundle, summary

        return self._run(workspace_id, Stage.RFQ, handler)

    # ============= STAGE 5: BID COMPARISON =============

    def bid_comparison(
        self,
        workspace_id: str,
        bids: Optional[List[Union[Bid, Dict[str, Any]]]] = None,
        weights: Optional[Dict[str, float]] = None,
    ) -> StageResult:
        def handler(state) -> HandlerResult:
            bundle = RFQBundle.model_validate(self._require(state, ArtifactKey.RFQ_BUNDLE))

            if bids is None:
                if not settings.SIMULATE_BIDS:
                    raise InvalidInput("bids are required when bid simulation is disabled")
                received = simulate_bids(bundle)
            else:
                try:
                    received = [b if isinstance(b, Bid) else Bid.model_validate(b) for b in bids]
                except ValidationError as e:
                    raise InvalidInput(f"Invalid bid: {e.error_count()} validation errors") from e

            invited = {e.supplier_id for e in bundle.suppliers}
            uninvited = sorted({b.supplier_id for b in received if b.supplier_id not in invited})
            if uninvited:
                raise InvalidInput(f"Bids from suppliers not sent RFQ {bundle.rfq_id}: {', '.join(uninvited)}")

            comparison = bid_comparison.compare(received, weights or settings.DEFAULT_BID_WEIGHTS)
            winner = next(b for b in comparison.bids if b.bid_id == comparison.winning_bid_id)
            top = comparison.scores[0]
            summary = (
                f"Stage 5 complete: compared {len(comparison.bids)} bids. "
                f"Recommended: {winner.supplier_name or winner.supplier_id} "
                f"({top.overall_score}/100, {_money(winner.total_bid_amount)}). "
                f"Potential savings {_money(comparison.cost_breakdown.potential_savings)}."
            )
            return ArtifactKey.BID_COMPARISON, comparison, summary

        return self._run(workspace_id, Stage.BID_COMPARISON, handler)

    # ============= STAGE 6: BID ACCEPTANCE =============

    def bid_accepted(
        self,
        workspace_id: str,
        bid_id: Optional[str] = None,
        supplier_id: Optional[str] = None,
    ) -> StageResult:
        def handler(state) -> HandlerResult:
            comparison = BidComparison.model_validate(self._require(state, ArtifactKey.BID_COMPARISON))

            if bid_id:
                chosen = next((b for b in comparison.bids if b.bid_id == bid_id), None)
                if chosen is None:
                    raise InvalidInput(f"Bid {bid_id} is not a current bid in the comparison")
            elif supplier_id:
                chosen = next((b for b in comparison.bids if b.supplier_id == supplier_id), None)
                if chosen is None:
                    raise InvalidInput(f"No current bid from supplier {supplier_id}")
            else:
                chosen = next(b for b in comparison.bids if b.bid_id == comparison.winning_bid_id)

            score = next(s for s in comparison.scores if s.bid_id == chosen.bid_id)
            accepted = AcceptedBid(**chosen.model_dump(), overall_score=score.overall_score, rank=score.rank)
            summary = (
                f"Stage 6 complete: accepted bid {accepted.bid_id} from "
                f"{accepted.supplier_name or accepted.supplier_id} for {_money(accepted.total_bid_amount)} "
                f"(rank {accepted.rank}, {accepted.average_lead_time_weeks} weeks lead time)."
            )
            return ArtifactKey.ACCEPTED_BID, accepted, summary

        return self._run(workspace_id, Stage.BID_ACCEPTED, handler)

    # ============= STAGE 7: CONTRACT =============

    def contract(self, workspace_id: str) -> StageResult:
        def handler(state) -> HandlerResult:
            accepted = AcceptedBid.model_validate(self._require(state, ArtifactKey.ACCEPTED_BID))
            contract_id = f"CONTRACT-{_now_ms()}"
            record = Contract(
                contract_id=contract_id,
                bid_id=accepted.bid_id,
                supplier_id=accepted.supplier_id,
                supplier_name=accepted.supplier_name,
                amount=accepted.total_bid_amount,
                warranty_years=accepted.warranty_years,
                document=llm_provider.generate_contract_document(contract_id, accepted.to_json_dict()),
            )
            summary = (
                f"Stage 7 complete: contract {contract_id} drafted with "
                f"{record.supplier_name or record.supplier_id} for {_money(record.amount)}."
            )
            return ArtifactKey.CONTRACT, record, summary

        return self._run(workspace_id, Stage.CONTRACT, handler)

    # ============= STAGE 8: PURCHASE ORDER =============

    def purchase_order(self, workspace_id: str, payment_method: str = "ach") -> StageResult:
        def handler(state) -> HandlerResult:
            contract = Contract.model_validate(self._require(state, ArtifactKey.CONTRACT))
            try:
                method = PaymentMethod(payment_method)
            except ValueError:
                raise InvalidInput(
                    f"payment_method must be one of {[m.value for m in PaymentMethod]}"
                ) from None

            po = PurchaseOrder(
                po_number=f"PO-{_now_ms()}",
                contract_id=contract.contract_id,
                supplier_id=contract.supplier_id,
                supplier_name=contract.supplier_name,
                amount=contract.amount,
                payment_method=method,
            )
            summary = (
                f"Stage 8 complete: purchase order {po.po_number} for {_money(po.amount)} "
                f"via {method.value.upper()}, pending payment."
            )
            return ArtifactKey.PURCHASE_ORDER, po, summary

        return self._run(workspace_id, Stage.PURCHASE_ORDER, handler)

    # ============= STAGE 9: SHIPMENT =============

    def shipment(
        self,
        workspace_id: str,
        tracking_number: Optional[str] = None,
        carrier: str = "DHL",
        estimated_delivery: Optional[str] = None,
    ) -> StageResult:
        def handler(state) -> HandlerResult:
            po = PurchaseOrder.model_validate(self._require(state, ArtifactKey.PURCHASE_ORDER))
            if not carrier or not carrier.strip():
                raise InvalidInput("carrier is required")
            if estimated_delivery:
                try:
                    eta = date.fromisoformat(estimated_delivery).isoformat()
                except ValueError:
                    raise InvalidInput(
                        f"estimated_delivery must be YYYY-MM-DD, got {estimated_delivery!r}"
                    ) from None
            else:
                eta = (date.today() + timedelta(days=SHIPMENT_TRANSIT_DAYS)).isoformat()

            record = Shipment(
                tracking_number=tracking_number or f"{carrier.strip().upper()}{_now_ms() % 10 ** 9:09d}",
                carrier=carrier.strip(),
                po_number=po.po_number,
                estimated_delivery=eta,
            )
            summary = (
                f"Stage 9: shipment {record.tracking_number} via {record.carrier} in transit, "
                f"estimated delivery {eta}."
            )
            return ArtifactKey.SHIPMENT, record, summary

        return self._run(workspace_id, Stage.SHIPMENT, handler)

    # ============= STAGE 10: DELIVERY =============

    def delivery(self, workspace_id: str, received_quantity: int, notes: str = "") -> StageResult:
        def handler(state) -> HandlerResult:
            shipment = Shipment.model_validate(self._require(state, ArtifactKey.SHIPMENT))
            if received_quantity is None or received_quantity < 0:
                raise InvalidInput("received_quantity must be zero or more")

            expected = self._expected_quantity(state)
            record = Delivery(
                po_number=shipment.po_number,
                received_quantity=received_quantity,
                expected_quantity=expected,
                shortfall=max(0, expected - received_quantity),
                notes=notes or "",
            )
            summary = f"Stage 10 complete: delivery confirmed, {received_quantity} units received."
            if record.shortfall:
                summary += f" {record.shortfall} short of the {expected} ordered."
            return ArtifactKey.DELIVERY, record, summary

        return self._run(workspace_id, Stage.DELIVERY, handler)

    @staticmethod
    def _expected_quantity(state) -> int:
        """Units matched to the accepted supplier; 0 when unknown."""
        accepted = state.artifacts.get(ArtifactKey.ACCEPTED_BID)
        match_set = state.artifacts.get(ArtifactKey.MATCH_SET)
        if not accepted or not match_set:
            return 0
        matches = MatchSet.model_validate(match_set).matches
        for match in matches:
            if match.supplier_id == accepted.get("supplierId"):
                return sum(mi.quantity for mi in match.matched_items)
        return 0

    # ============= STAGE 11: QUALITY CONTROL =============

    def quality_control(
        self,
        workspace_id: str,
        item_name: str,
        issue_type: str,
        severity: str,
        description: str,
        item_id: Optional[str] = None,
    ) -> StageResult:
        """Record a quality issue against the delivery; issues accumulate."""

        def handler(state) -> HandlerResult:
            self._require(state, ArtifactKey.DELIVERY)
            if not item_name or not description:
                raise InvalidInput("item_name and description are required")
            try:
                kind = QualityIssueType(issue_type)
                level = QualitySeverity(severity)
            except ValueError as e:
                raise InvalidInput(str(e)) from None
            if item_id and state.has(ArtifactKey.ITEM_SET):
                known = {i["id"] for i in state.artifacts[ArtifactKey.ITEM_SET]["items"]}
                if item_id not in known:
                    raise InvalidInput(f"Unknown item id: {item_id}")

            issues = list(state.artifacts.get(ArtifactKey.QUALITY_ISSUES) or [])
            issue = QualityIssue(
                issue_id=f"QC-{_now_ms()}-{len(issues) + 1}",
                item_name=item_name,
                item_id=item_id,
                issue_type=kind,
                severity=level,
                description=description,
            )
            issues.append(issue.to_json_dict())
            summary = (
                f"Stage 11: quality issue {issue.issue_id} reported for {item_name} "
                f"({kind.value}, {level.value}). {len(issues)} issues on record."
            )
            return ArtifactKey.QUALITY_ISSUES, issues, summary

        return self._run(workspace_id, Stage.QUALITY_CONTROL, handler)

    def resolve_quality_issue(self, workspace_id: str, issue_id: str, resolution: str) -> StageResult:
        """Mark a recorded quality issue resolved. Does not move currentStage."""

        def handler(state) -> HandlerResult:
            issues = [QualityIssue.model_validate(i) for i in self._require(state, ArtifactKey.QUALITY_ISSUES)]
            if not resolution:
                raise InvalidInput("resolution is required")
            target = next((i for i in issues if i.issue_id == issue_id), None)
            if target is None:
                raise InvalidInput(f"Unknown quality issue: {issue_id}")

            updated = target.model_copy(update={
                "status": QualityIssueStatus.RESOLVED,
                "resolved_at": utcnow(),
                "resolution": resolution,
            })
            issues = [updated if i.issue_id == issue_id else i for i in issues]
            still_open = len([i for i in issues if i.status == QualityIssueStatus.OPEN])
            summary = f"Quality issue {issue_id} resolved: {resolution}. {still_open} issues still open."
            return ArtifactKey.QUALITY_ISSUES, issues, summary

        return self._run(workspace_id, Stage.QUALITY_CONTROL, handler)

    # ============= COMPLETION =============

    def complete(self, workspace_id: str) -> StageResult:
        def handler(state) -> HandlerResult:
            self._require(state, ArtifactKey.DELIVERY)
            items = state.artifacts.get(ArtifactKey.ITEM_SET) or {}
            matches = state.artifacts.get(ArtifactKey.MATCH_SET) or {}
            accepted = state.artifacts.get(ArtifactKey.ACCEPTED_BID) or {}
            po = state.artifacts.get(ArtifactKey.PURCHASE_ORDER) or {}
            open_issues = [
                i for i in (state.artifacts.get(ArtifactKey.QUALITY_ISSUES) or [])
                if i.get("status") == QualityIssueStatus.OPEN.value
            ]

            completion = {
                "completedAt": utcnow().isoformat(),
                "totalItems": len(items.get("items", [])),
                "suppliersMatched": len(matches.get("matches", [])),
                "finalCost": accepted.get("totalBidAmount", "0"),
                "poNumber": po.get("poNumber", "N/A"),
                "openQualityIssues": len(open_issues),
            }
            summary = (
                f"Procurement workflow complete: {completion['totalItems']} items, "
                f"{completion['suppliersMatched']} suppliers matched, final cost "
                f"${completion['finalCost']}, PO {completion['poNumber']}."
            )
            if open_issues:
                summary += f" {len(open_issues)} quality issues remain open."
            return ArtifactKey.COMPLETION, completion, summary

        return self._run(workspace_id, Stage.COMPLETED, handler)

    # ============= STATUS & AUTO-RUN =============

    def status(self, workspace_id: str) -> Dict[str, Any]:
        """Current stage plus the static stage -> next command map."""
        if not workspace_id or not workspace_id.strip():
            raise InvalidInput("workspace_id is required")
        state = self.store.load_state(workspace_id)
        return {
            "workspaceId": workspace_id,
            "currentStage": state.current_stage.value,
            "nextCommand": NEXT_COMMANDS[state.current_stage],
            "completedArtifacts": [k.value for k in PRODUCED_BY if state.has(k)],
            "commands": {stage.value: command for stage, command in NEXT_COMMANDS.items()},
        }

    def run_full_workflow(
        self,
        workspace_id: str,
        buyer_location: Optional[str] = None,
        raw_document: Optional[str] = None,
        item_count_hint: int = 30,
        weights: Optional[Dict[str, float]] = None,
    ) -> List[StageResult]:
        """
        Run extraction through completion in one call.

        Uses the winning bid, default purchase order and shipment parameters,
        and confirms delivery of the full expected quantity. Stops at the first
        failing stage; stages already committed stay committed.
        """
        results = []
        with self.locks.get(workspace_id):
            results.append(self.extraction(workspace_id, raw_document=raw_document, item_count_hint=item_count_hint))
            results.append(self.compliance(workspace_id))
            results.append(self.supplier_matching(workspace_id, buyer_location=buyer_location))
            results.append(self.rfq(workspace_id))
            results.append(self.bid_comparison(workspace_id, weights=weights))
            results.append(self.bid_accepted(workspace_id))
            results.append(self.contract(workspace_id))
            results.append(self.purchase_order(workspace_id))
            results.append(self.shipment(workspace_id))
            expected = self._expected_quantity(self.store.load_state(workspace_id))
            results.append(self.delivery(workspace_id, received_quantity=expected))
            results.append(self.complete(workspace_id))

        logger.info(
            f"Full workflow completed in {len(results)} stages",
            extra={"workspace_id": workspace_id, "stage": Stage.COMPLETED.value},
        )
        return results
