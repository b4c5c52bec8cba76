"""
External collaborators of the workflow: item extraction, supplier directory
and notification delivery.

Each collaborator is an abstract interface with a demo/log implementation
that needs no network access and one or more production implementations.
The `get_*` factories pick the implementation from settings.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
import json

import httpx
from pydantic import ValidationError
from redis.exceptions import RedisError

from procureflow.core.config import settings
from procureflow.core.errors import UpstreamError, UpstreamTimeout
from procureflow.core.logging import get_logger
from procureflow.schemas import ItemSet, Supplier
from procureflow.services import llm_provider
from procureflow.services.demo_data import DEMO_PROJECT_NAME, demo_item_set, demo_suppliers

logger = get_logger(__name__)


# ============= EXTRACTION =============

class ItemExtractor(ABC):
    """Turns a BOM document (or nothing, in demo mode) into an ItemSet."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def extract(self, raw_document: Optional[str], item_count_hint: int = 30) -> ItemSet:
        """
        Raises:
            UpstreamError: extraction failed or produced malformed output
            UpstreamTimeout: the extraction backend did not answer in time
        """
        pass


class DemoItemExtractor(ItemExtractor):
    """Deterministic hotel-renovation BOM from the demo catalog."""

    @property
    def name(self) -> str:
        return "demo"

    def extract(self, raw_document: Optional[str], item_count_hint: int = 30) -> ItemSet:
        if raw_document:
            logger.info("Demo extractor ignores document content; using the demo catalog")
        return demo_item_set(item_count_hint)


class LLMItemExtractor(ItemExtractor):
    """Extracts items from document text with the configured LLM provider."""

    @property
    def name(self) -> str:
        return settings.LLM_PROVIDER

    def extract(self, raw_document: Optional[str], item_count_hint: int = 30) -> ItemSet:
        if not raw_document:
            logger.info("No document supplied; generating demo items")
            return demo_item_set(item_count_hint)

        data = llm_provider.extract_items(raw_document, item_count_hint)
        return self._to_item_set(data)

    @staticmethod
    def _to_item_set(data: Dict[str, Any]) -> ItemSet:
        project_info = data.get("projectInfo") or {}
        items = data.get("items")
        if not isinstance(items, list):
            raise UpstreamError("Extraction results contain no item list")

        for n, item in enumerate(items, start=1):
            if isinstance(item, dict) and not item.get("id"):
                item["id"] = f"item_{n:03d}"

        try:
            return ItemSet.model_validate({
                "projectName": data.get("projectName") or project_info.get("projectName") or DEMO_PROJECT_NAME,
                "items": items,
                "totalEstimatedCost": data.get("totalEstimatedCost") or project_info.get("totalEstimatedCost"),
                "source": "llm_extracted",
            })
        except ValidationError as e:
            raise UpstreamError(f"Extraction results failed validation: {e.error_count()} errors") from e


def get_item_extractor() -> ItemExtractor:
    if llm_provider.provider_enabled():
        return LLMItemExtractor()
    return DemoItemExtractor()


# ============= SUPPLIER DIRECTORY =============

class SupplierDirectory(ABC):

    @abstractmethod
    def list_suppliers(self) -> List[Supplier]:
        pass


class StaticSupplierDirectory(SupplierDirectory):
    """Fixed supplier list, defaulting to the demo directory."""

    def __init__(self, suppliers: Optional[List[Supplier]] = None):
        self._suppliers = list(suppliers) if suppliers is not None else demo_suppliers()

    @classmethod
    def from_file(cls, path: str) -> "StaticSupplierDirectory":
        """Load a JSON array of supplier records."""
        with open(path, "r", encoding="utf-8") as f:
            records = json.load(f)
        logger.info(f"Loaded {len(records)} suppliers from {path}")
        return cls([Supplier.model_validate(r) for r in records])

    def list_suppliers(self) -> List[Supplier]:
        return list(self._suppliers)


def get_supplier_directory() -> SupplierDirectory:
    if settings.SUPPLIER_DIRECTORY_PATH:
        return StaticSupplierDirectory.from_file(settings.SUPPLIER_DIRECTORY_PATH)
    return StaticSupplierDirectory()


# ============= NOTIFICATION =============

class Notifier(ABC):
    """Delivers RFQ documents to suppliers and progress messages to the UI."""

    @abstractmethod
    def send_rfq(self, supplier_id: str, rfq_document: str,
                 rfq_id: Optional[str] = None, email: Optional[str] = None) -> str:
        """
        Deliver an RFQ document and return an acknowledgement reference.

        Raises:
            UpstreamError: the document could not be handed off
        """
        pass

    @abstractmethod
    def notify(self, workspace_id: str, message: str) -> None:
        """Fire-and-forget progress message. Never raises."""
        pass


class LogNotifier(Notifier):
    """Logs deliveries instead of sending them."""

    def send_rfq(self, supplier_id: str, rfq_document: str,
                 rfq_id: Optional[str] = None, email: Optional[str] = None) -> str:
        logger.info(
            f"RFQ {rfq_id} ready for {supplier_id} <{email or 'no email'}> ({len(rfq_document)} chars)",
            extra={"supplier_id": supplier_id},
        )
        return f"logged:{rfq_id}:{supplier_id}"

    def notify(self, workspace_id: str, message: str) -> None:
        logger.info(message, extra={"workspace_id": workspace_id})


class QueueNotifier(Notifier):
    """Hands deliveries to rq workers on Redis."""

    def send_rfq(self, supplier_id: str, rfq_document: str,
                 rfq_id: Optional[str] = None, email: Optional[str] = None) -> str:
        from procureflow.workers.jobs import enqueue_rfq_delivery

        try:
            job = enqueue_rfq_delivery(supplier_id, rfq_id, rfq_document, email)
        except RedisError as e:
            raise UpstreamError(f"Could not queue RFQ for {supplier_id}: {e}") from e
        return f"job:{job.id}"

    def notify(self, workspace_id: str, message: str) -> None:
        from procureflow.workers.jobs import enqueue_notification

        try:
            enqueue_notification(workspace_id, message)
        except RedisError as e:
            logger.warning(f"Dropped notification for {workspace_id}: {e}")


class WebhookNotifier(Notifier):
    """POSTs deliveries and progress messages to NOTIFY_WEBHOOK_URL."""

    def __init__(self, url: Optional[str] = None, timeout: Optional[float] = None):
        self.url = url or settings.NOTIFY_WEBHOOK_URL
        self.timeout = timeout or settings.UPSTREAM_TIMEOUT_SECONDS
        if not self.url:
            raise ValueError("NOTIFY_WEBHOOK_URL is required for the webhook notifier")

    def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        with httpx.Client(timeout=self.timeout) as client:
            response = client.post(self.url, json=payload)
            response.raise_for_status()
            return response

    def send_rfq(self, supplier_id: str, rfq_document: str,
                 rfq_id: Optional[str] = None, email: Optional[str] = None) -> str:
        try:
            self._post({
                "type": "rfq",
                "supplierId": supplier_id,
                "rfqId": rfq_id,
                "email": email,
                "document": rfq_document,
            })
        except httpx.TimeoutException as e:
            raise UpstreamTimeout(f"RFQ webhook timed out for {supplier_id}") from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"RFQ webhook failed for {supplier_id}: {e}") from e
        return f"webhook:{rfq_id}:{supplier_id}"

    def notify(self, workspace_id: str, message: str) -> None:
        try:
            self._post({"type": "notification", "workspaceId": workspace_id, "message": message})
        except httpx.HTTPError as e:
            logger.warning(f"Notification webhook failed for {workspace_id}: {e}")


def get_notifier() -> Notifier:
    if settings.NOTIFIER == "queue":
        return QueueNotifier()
    if settings.NOTIFIER == "webhook":
        return WebhookNotifier()
    return LogNotifier()
