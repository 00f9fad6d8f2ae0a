# app/services/order_service.py
import logging
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.constants.order_status import ALLOWED_TRANSITIONS, SYNC_MODES
from app.models.counter import Counter
from app.models.order import Order
from app.models.organization_settings import OrganizationSettings
from app.schemas.orders_schemas import OrderCreate
from app.services.pricing_service import cart_totals
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)

ORDER_NUMBER_COUNTER = "orderNumber"


class InvalidStatusTransition(Exception):
    def __init__(self, current: str, requested: str):
        super().__init__(f"Cannot move order from '{current}' to '{requested}'")
        self.current = current
        self.requested = requested


def get_organization_settings(session: Session, organization_id: int) -> OrganizationSettings:
    settings = session.exec(
        select(OrganizationSettings).where(OrganizationSettings.organization_id == organization_id)
    ).first()

    if not settings:
        settings = OrganizationSettings(organization_id=organization_id)
        session.add(settings)
        session.commit()
        session.refresh(settings)

    return settings


def get_sync_mode(session: Session, organization_id: int, default: str = "auto") -> str:
    """Organization sync mode, falling back to `default` when no settings row exists."""
    org_settings = session.exec(
        select(OrganizationSettings).where(OrganizationSettings.organization_id == organization_id)
    ).first()

    mode = org_settings.sync_mode if org_settings else default
    if mode not in SYNC_MODES:
        raise ValueError(f"sync_mode must be one of {SYNC_MODES}, got {mode!r}")
    return mode


def next_sequence(session: Session, organization_id: int, name: str) -> int:
    counter = session.exec(
        select(Counter)
        .where(Counter.organization_id == organization_id)
        .where(Counter.name == name)
        .with_for_update()
    ).first()

    if not counter:
        counter = Counter(organization_id=organization_id, name=name, seq=0)

    counter.seq += 1
    session.add(counter)
    session.flush()
    return counter.seq


def find_by_idempotency_key(
    session: Session, organization_id: int, idempotency_key: Optional[str]
) -> Optional[Order]:
    # keys are only unique within one organization
    if not idempotency_key:
        return None
    return session.exec(
        select(Order)
        .where(Order.organization_id == organization_id)
        .where(Order.idempotency_key == idempotency_key)
    ).first()


def create_order(session: Session, organization_id: int, data: OrderCreate) -> Tuple[Order, bool]:
    """
    Idempotent order creation.

    Returns (order, created). A known idempotency key returns the order that
    already exists with created=False, never a second order.
    """

    # ✅ CHECK IF ORDER ALREADY EXISTS (retried submission)
    existing = find_by_idempotency_key(session, organization_id, data.idempotency_key)
    if existing:
        logger.info(f"Duplicate submission for key {data.idempotency_key}, order {existing.order_number}")
        return existing, False

    org_settings = get_organization_settings(session, organization_id)

    # server prices are authoritative
    breakdown = cart_totals(data.items, org_settings.taxes, data.cart_discount_percent)

    sequence = next_sequence(session, organization_id, ORDER_NUMBER_COUNTER)
    order_number = org_settings.order_number_format.replace("{seq}", str(sequence))

    order = Order(
        organization_id=organization_id,
        order_number=order_number,
        idempotency_key=data.idempotency_key,
        customer_name=data.customer_name,
        payment_method=data.payment_method,
        delivery_type=data.delivery_type,
        source=data.source,
        notes=data.notes,
        items=[item.model_dump(mode="json") for item in data.items],
        tax=[line.model_dump(mode="json") for line in breakdown.tax_breakdown],
        subtotal=float(breakdown.subtotal),
        discount=float(breakdown.cart_discount_amount),
        tax_total=float(breakdown.tax_amount),
        total=float(breakdown.total),
        status="pending",
    )
    session.add(order)

    try:
        session.commit()
    except IntegrityError:
        # two submissions with the same key raced past the lookup
        session.rollback()
        existing = find_by_idempotency_key(session, organization_id, data.idempotency_key)
        if existing:
            return existing, False
        raise

    session.refresh(order)
    logger.info(f"✅ Created order {order.order_number} (org {organization_id})")
    return order, True


def update_order_status(session: Session, order: Order, new_status: str) -> Order:
    current = order.status

    if new_status not in ALLOWED_TRANSITIONS.get(current, []):
        raise InvalidStatusTransition(current, new_status)

    order.status = new_status
    order.updated_at = utcnow()

    # 🔒 Atomic state change
    if new_status == "paid":
        order.is_paid = True

    session.add(order)
    session.commit()
    session.refresh(order)
    return order


def format_order(order: Order) -> dict:
    return {
        "id": order.id,
        "organization_id": order.organization_id,
        "order_number": order.order_number,
        "idempotency_key": order.idempotency_key,
        "customer_name": order.customer_name,
        "payment_method": order.payment_method,
        "delivery_type": order.delivery_type,
        "items": order.items,
        "tax": order.tax,
        "subtotal": order.subtotal,
        "discount": order.discount,
        "tax_total": order.tax_total,
        "total": order.total,
        "status": order.status,
        "is_paid": order.is_paid,
        "notes": order.notes,
        "source": order.source,
        "created_at": order.created_at,
        "updated_at": order.updated_at,
    }
