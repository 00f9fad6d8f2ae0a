from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON
from typing import Optional
from datetime import datetime

from app.constants.order_status import DEFAULT_ORDER_NUMBER_FORMAT
from app.utils.clock import utcnow


class OrganizationSettings(SQLModel, table=True):
    __tablename__ = "organization_settings"

    id: Optional[int] = Field(default=None, primary_key=True)
    organization_id: int = Field(index=True, unique=True)

    sync_mode: str = Field(default="auto")   # auto | manual
    order_number_format: str = Field(default=DEFAULT_ORDER_NUMBER_FORMAT)

    # list of tax rule dicts: id, name, rate, type, enabled
    taxes: list = Field(default_factory=list, sa_column=Column(JSON))

    updated_at: datetime = Field(default_factory=utcnow)
