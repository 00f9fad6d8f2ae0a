ORDER_STATUSES = [
    "pending",
    "preparing",
    "ready",
    "served",
    "paid",
    "cancelled",
    "refund",
    "partial refund",
]

ALLOWED_TRANSITIONS = {
    "pending": ["preparing", "cancelled"],
    "preparing": ["ready", "cancelled"],
    "ready": ["served", "cancelled"],
    "served": ["paid", "cancelled"],
    "paid": [],
    "cancelled": [],
    "refund": [],
    "partial refund": []
}

PAYMENT_METHODS = ["cash", "card", "wallet"]

DELIVERY_TYPES = ["dine-in", "takeaway", "delivery"]

SYNC_MODES = ["auto", "manual"]

DEFAULT_CUSTOMER_NAME = "Walk-in Customer"
DEFAULT_ORDER_NUMBER_FORMAT = "ORD-{seq}"
