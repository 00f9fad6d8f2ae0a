from .events import SyncEvent
from .dispatcher import dispatch_sync_event
from .toasts import Toast, ToastSink

__all__ = [
    "SyncEvent",
    "dispatch_sync_event",
    "Toast",
    "ToastSink",
]
