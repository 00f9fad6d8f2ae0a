from fastapi import APIRouter, Depends, Header, HTTPException
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from sqlmodel import Session, select
from typing import Optional

from app.config import settings
from app.database import get_session
from app.models.order import Order
from app.schemas.orders_schemas import OrderCreate, OrderStatusUpdate
from app.services.order_service import (
    InvalidStatusTransition,
    create_order,
    format_order,
    update_order_status,
)

router = APIRouter()


def get_organization_id(x_organization_id: Optional[int] = Header(None)) -> int:
    return x_organization_id or settings.ORGANIZATION_ID


@router.post("/create")
def create_order_route(
    data: OrderCreate,
    session: Session = Depends(get_session),
    organization_id: int = Depends(get_organization_id),
):
    order, created = create_order(session, organization_id, data)

    # a repeated idempotency key is a success, reported with created=False
    return JSONResponse(
        status_code=201 if created else 200,
        content=jsonable_encoder({
            "message": "Order created" if created else "Order already exists",
            "created": created,
            "order": format_order(order),
        }),
    )


@router.put("/{order_id}/status")
def update_status_route(
    order_id: int,
    data: OrderStatusUpdate,
    session: Session = Depends(get_session),
    organization_id: int = Depends(get_organization_id),
):
    order = session.exec(
        select(Order)
        .where(Order.id == order_id)
        .where(Order.organization_id == organization_id)
    ).first()

    if not order:
        raise HTTPException(status_code=404, detail="Order not found")

    try:
        order = update_order_status(session, order, data.status)
    except InvalidStatusTransition as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "message": "Order status updated",
        "order": format_order(order),
    }
