from sqlmodel import SQLModel, Field, UniqueConstraint
from typing import Optional


class Counter(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("organization_id", "name"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    organization_id: int = Field(index=True)
    name: str               # e.g. "orderNumber"
    seq: int = Field(default=0)
