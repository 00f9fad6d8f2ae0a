from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional
from uuid import uuid4

from app.notifications.channels import Severity
from app.utils.clock import utcnow


@dataclass
class Toast:
    id: str
    severity: Severity
    message: str
    description: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)


class ToastSink:
    """
    In-process toast feed.

    A toast with an id that is already showing replaces it instead of
    stacking, so repeated attempts for the same order update one toast.
    """

    def __init__(self):
        self.toasts: List[Toast] = []
        self.history: List[Toast] = []

    def show(self, severity: Severity, message: str, *, id: Optional[str] = None, description: Optional[str] = None) -> Toast:
        toast = Toast(
            id=id or str(uuid4()),
            severity=severity,
            message=message,
            description=description,
        )
        self.toasts = [t for t in self.toasts if t.id != toast.id]
        self.toasts.append(toast)
        self.history.append(toast)
        return toast

    def success(self, message: str, **kwargs) -> Toast:
        return self.show(Severity.SUCCESS, message, **kwargs)

    def error(self, message: str, **kwargs) -> Toast:
        return self.show(Severity.ERROR, message, **kwargs)

    def dismiss(self, id: str) -> None:
        self.toasts = [t for t in self.toasts if t.id != id]

    def clear(self) -> None:
        self.toasts = []
