# app/schemas/queue_schemas.py
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from app.schemas.pricing_schemas import LineItem, PriceBreakdown
from app.utils.clock import utcnow


class QueueStatus(str, Enum):
    queued = "queued"
    failed = "failed"


class QueuedOrder(BaseModel):
    # optional on purpose: entries loaded from disk may be malformed and the
    # synchronizer has to be able to see (and discard) them
    idempotency_key: Optional[str] = None
    items: List[LineItem] = []
    computed_totals: Optional[PriceBreakdown] = None
    payload: Dict[str, Any] = {}

    status: QueueStatus = QueueStatus.queued
    failure_reason: Optional[str] = None

    created_at: datetime = Field(default_factory=utcnow)
    queued_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None

    def to_order_payload(self) -> Dict[str, Any]:
        """Body sent to the remote order-creation endpoint."""
        body = dict(self.payload)
        body["idempotency_key"] = self.idempotency_key
        body["items"] = [item.model_dump(mode="json") for item in self.items]
        if self.computed_totals is not None:
            body["computed_totals"] = self.computed_totals.model_dump(mode="json")
        return body


class QueueStats(BaseModel):
    queued: int
    failed: int
    processed: int
    total: int


class SyncResult(BaseModel):
    success: bool
    created: Optional[bool] = None
    skipped: bool = False
    error: Optional[str] = None


class SyncSummary(BaseModel):
    synced: int = 0
    failed: int = 0
    skipped: int = 0
