import logging

from app.notifications.rules import NOTIFICATION_RULES
from app.notifications.channels import Channel, Severity
from app.notifications.events import SyncEvent

logger = logging.getLogger(__name__)


def dispatch_sync_event(
    *,
    event: SyncEvent,
    sink,
    key: str | None = None,
    extra: dict | None = None,
):
    """
    Central notification dispatcher for queue sync outcomes.

    Handles:
    - toast (keyed by idempotency key when one is given)
    - log line
    """

    rules = NOTIFICATION_RULES.get(event, {})
    extra = extra or {}

    message = rules.get("message", "").format(**extra)
    severity = rules.get("severity", Severity.INFO)
    description = extra.get("description")

    # -------------------------
    # LOG
    # -------------------------
    if rules.get(Channel.LOG):
        level = logging.ERROR if severity == Severity.ERROR else logging.INFO
        logger.log(level, f"[{event.value}] {message} key={key} {description or ''}".rstrip())

    # -------------------------
    # TOAST
    # -------------------------
    if rules.get(Channel.TOAST) and sink is not None:
        return sink.show(severity, message, id=key, description=description)

    return None
