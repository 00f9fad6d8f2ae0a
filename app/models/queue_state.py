from datetime import datetime
from typing import Optional

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON

from app.utils.clock import utcnow


class OrderQueueState(SQLModel, table=True):
    """Single-row snapshot of the local order queue (id is always 1)."""
    __tablename__ = "order_queue_state"

    id: Optional[int] = Field(default=1, primary_key=True)

    queued_orders: list = Field(default_factory=list, sa_column=Column(JSON))
    failed_orders: list = Field(default_factory=list, sa_column=Column(JSON))
    processed_orders: list = Field(default_factory=list, sa_column=Column(JSON))

    updated_at: datetime = Field(default_factory=utcnow)
