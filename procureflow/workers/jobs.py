"""
Background job definitions.
"""
from typing import Optional

import httpx
from redis import Redis
from rq import Queue

from procureflow.core.config import settings
from procureflow.core.logging import get_logger

logger = get_logger(__name__)


def get_queue(name: str = "default") -> Queue:
    """Get RQ queue."""
    redis_conn = Redis.from_url(settings.REDIS_URL)
    return Queue(name, connection=redis_conn)


# ============= JOB FUNCTIONS =============

def send_rfq_job(supplier_id: str, rfq_id: Optional[str], document: str, email: Optional[str] = None):
    """Background job to deliver an RFQ document to a supplier."""
    logger.info(f"Delivering RFQ {rfq_id} to {supplier_id}", extra={"supplier_id": supplier_id})

    if settings.NOTIFY_WEBHOOK_URL:
        response = httpx.post(
            settings.NOTIFY_WEBHOOK_URL,
            json={"type": "rfq", "supplierId": supplier_id, "rfqId": rfq_id, "email": email, "document": document},
            timeout=settings.UPSTREAM_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
        return {"supplier_id": supplier_id, "rfq_id": rfq_id, "status": "sent"}

    # No mail or webhook integration configured: record the hand-off only
    logger.info(f"RFQ {rfq_id} for {supplier_id} marked as sent (delivery integration pending)")
    return {"supplier_id": supplier_id, "rfq_id": rfq_id, "status": "logged"}


def notify_job(workspace_id: str, message: str):
    """Background job to forward a workflow progress message to the UI."""
    logger.info(message, extra={"workspace_id": workspace_id})

    if settings.NOTIFY_WEBHOOK_URL:
        try:
            httpx.post(
                settings.NOTIFY_WEBHOOK_URL,
                json={"type": "notification", "workspaceId": workspace_id, "message": message},
                timeout=settings.UPSTREAM_TIMEOUT_SECONDS,
            ).raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Notification webhook failed for {workspace_id}: {e}")


# ============= QUEUE HELPERS =============

def enqueue_rfq_delivery(supplier_id: str, rfq_id: Optional[str], document: str, email: Optional[str] = None):
    """Queue RFQ delivery."""
    queue = get_queue("high")
    return queue.enqueue(send_rfq_job, supplier_id, rfq_id, document, email)


def enqueue_notification(workspace_id: str, message: str):
    """Queue UI notification."""
    queue = get_queue("low")
    return queue.enqueue(notify_job, workspace_id, message)
