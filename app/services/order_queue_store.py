# app/services/order_queue_store.py
"""
Local durable queue of orders that have not been confirmed by the server.

The store keeps three lists in memory (queued, failed, processed keys) and
writes a snapshot through a QueueStorage adapter after every mutation.
All operations are synchronous.
"""

import json
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from pydantic import ValidationError
from sqlmodel import Session

from app.models.queue_state import OrderQueueState
from app.schemas.queue_schemas import QueuedOrder, QueueStats, QueueStatus
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)


# -------------------------
# PERSISTENCE ADAPTERS
# -------------------------

class QueueStorage:
    """read / write / clear of the whole queue snapshot."""

    def read(self) -> Optional[dict]:
        raise NotImplementedError

    def write(self, state: dict) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


class MemoryQueueStorage(QueueStorage):
    def __init__(self, state: Optional[dict] = None):
        self.state = state

    def read(self):
        return self.state

    def write(self, state):
        self.state = state

    def clear(self):
        self.state = None


class JsonFileQueueStorage(QueueStorage):
    def __init__(self, path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def read(self):
        if not self.path.exists():
            return None
        try:
            text = self.path.read_text(encoding="utf-8").strip()
            if text == "":
                return None
            data = json.loads(text)
        except (UnicodeDecodeError, json.JSONDecodeError):
            data = None

        if not isinstance(data, dict):
            backup = self._quarantine()
            logger.warning(f"Order queue file {self.path} is corrupted, moved to {backup}, starting empty")
            return None
        return data

    def write(self, state):
        # the target is only ever replaced by a complete file
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(state, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def _quarantine(self) -> Path:
        backup = self.path.with_name(f"{self.path.name}.corrupt")
        if backup.exists():
            backup = self.path.with_name(f"{self.path.name}.{int(time.time())}.corrupt")
        os.replace(self.path, backup)
        return backup

    def clear(self):
        if self.path.exists():
            self.path.unlink()


class DatabaseQueueStorage(QueueStorage):
    """Stores the snapshot in the single OrderQueueState row."""

    def __init__(self, engine):
        self.engine = engine

    def read(self):
        with Session(self.engine) as session:
            row = session.get(OrderQueueState, 1)
            if not row:
                return None
            return {
                "queued_orders": list(row.queued_orders or []),
                "failed_orders": list(row.failed_orders or []),
                "processed_orders": list(row.processed_orders or []),
            }

    def write(self, state):
        with Session(self.engine) as session:
            row = session.get(OrderQueueState, 1)
            if not row:
                row = OrderQueueState(id=1)
                session.add(row)

            row.queued_orders = state["queued_orders"]
            row.failed_orders = state["failed_orders"]
            row.processed_orders = state["processed_orders"]
            row.updated_at = utcnow()
            session.commit()

    def clear(self):
        with Session(self.engine) as session:
            row = session.get(OrderQueueState, 1)
            if row:
                session.delete(row)
                session.commit()


# -------------------------
# STORE
# -------------------------

def _load_orders(raw_orders) -> List[QueuedOrder]:
    orders = []
    for raw in raw_orders or []:
        try:
            orders.append(QueuedOrder.model_validate(raw))
        except ValidationError as e:
            logger.warning(f"Skipping unreadable queued order: {e}")
    return orders


class OrderQueueStore:
    def __init__(self, storage: Optional[QueueStorage] = None):
        self.storage = storage or MemoryQueueStorage()

        state = self.storage.read() or {}
        self.queued_orders: List[QueuedOrder] = _load_orders(state.get("queued_orders"))
        self.failed_orders: List[QueuedOrder] = _load_orders(state.get("failed_orders"))
        self.processed_orders: List[str] = list(
            dict.fromkeys(state.get("processed_orders") or [])
        )
        # membership index over processed_orders
        self._processed_keys = set(self.processed_orders)

    # ---------- internals ----------

    def _persist(self):
        self.storage.write({
            "queued_orders": [o.model_dump(mode="json") for o in self.queued_orders],
            "failed_orders": [o.model_dump(mode="json") for o in self.failed_orders],
            "processed_orders": list(self.processed_orders),
        })

    @staticmethod
    def _exists(orders: List[QueuedOrder], idempotency_key: str) -> bool:
        return any(o.idempotency_key == idempotency_key for o in orders)

    def _mark_processed(self, keys: Iterable[str]):
        for key in keys:
            if key and key not in self._processed_keys:
                self._processed_keys.add(key)
                self.processed_orders.append(key)

    # ---------- queue ----------

    def add_order(self, order: QueuedOrder) -> None:
        if not order.idempotency_key:
            raise ValueError("Order must have an idempotency_key")

        if self._exists(self.queued_orders, order.idempotency_key):
            return

        self.queued_orders.append(
            order.model_copy(update={
                "status": QueueStatus.queued,
                "queued_at": utcnow(),
            })
        )
        self._persist()

    def add_multiple_orders(self, orders: Iterable[QueuedOrder]) -> None:
        added = False
        for order in orders or []:
            if not order.idempotency_key or self._exists(self.queued_orders, order.idempotency_key):
                continue
            self.queued_orders.append(
                order.model_copy(update={
                    "status": QueueStatus.queued,
                    "queued_at": utcnow(),
                })
            )
            added = True
        if added:
            self._persist()

    def remove_order(self, idempotency_key: str) -> None:
        if not idempotency_key:
            return
        if not self._exists(self.queued_orders, idempotency_key):
            return

        self.queued_orders = [
            o for o in self.queued_orders if o.idempotency_key != idempotency_key
        ]
        self._mark_processed([idempotency_key])
        self._persist()

    def remove_multiple_orders(self, idempotency_keys: Iterable[str]) -> None:
        keys = set(idempotency_keys or [])
        if not keys:
            return
        self.queued_orders = [
            o for o in self.queued_orders if o.idempotency_key not in keys
        ]
        self._mark_processed(sorted(keys))
        self._persist()

    # ---------- failed ----------

    def add_failed_order(self, order: QueuedOrder, error: str) -> None:
        """Move an order to the failed list, recording why."""
        if not order.idempotency_key:
            raise ValueError("Failed order must have an idempotency_key")

        key = order.idempotency_key
        self.queued_orders = [o for o in self.queued_orders if o.idempotency_key != key]

        now = utcnow()
        for index, existing in enumerate(self.failed_orders):
            if existing.idempotency_key == key:
                self.failed_orders[index] = existing.model_copy(update={
                    "failure_reason": error,
                    "failed_at": now,
                })
                break
        else:
            self.failed_orders.append(
                order.model_copy(update={
                    "status": QueueStatus.failed,
                    "failure_reason": error,
                    "failed_at": now,
                })
            )
        self._persist()

    def remove_failed_order(self, idempotency_key: str) -> None:
        if not idempotency_key:
            return
        if not self._exists(self.failed_orders, idempotency_key):
            return

        self.failed_orders = [
            o for o in self.failed_orders if o.idempotency_key != idempotency_key
        ]
        self._mark_processed([idempotency_key])
        self._persist()

    def retry_failed_order(self, idempotency_key: str) -> None:
        failed = next(
            (o for o in self.failed_orders if o.idempotency_key == idempotency_key),
            None,
        )
        if not failed:
            return

        self.failed_orders = [
            o for o in self.failed_orders if o.idempotency_key != idempotency_key
        ]
        self.queued_orders.append(
            failed.model_copy(update={
                "status": QueueStatus.queued,
                "failure_reason": None,
                "failed_at": None,
                "queued_at": utcnow(),
            })
        )
        self._persist()

    def drop_order(self, order: QueuedOrder) -> None:
        """Discard an entry that can never be synced. Not marked processed."""
        before = len(self.queued_orders) + len(self.failed_orders)
        self.queued_orders = [o for o in self.queued_orders if o != order]
        self.failed_orders = [o for o in self.failed_orders if o != order]
        if len(self.queued_orders) + len(self.failed_orders) != before:
            self._persist()

    # ---------- clearing ----------

    def clear_queue(self) -> None:
        self.queued_orders = []
        self._persist()

    def clear_failed_orders(self) -> None:
        self.failed_orders = []
        self._persist()

    def clear_processed_orders(self) -> None:
        self.processed_orders = []
        self._processed_keys = set()
        self._persist()

    def clear_all_orders(self) -> None:
        self.queued_orders = []
        self.failed_orders = []
        self.processed_orders = []
        self._processed_keys = set()
        self.storage.clear()

    # ---------- queries ----------

    def get_queued_orders(self) -> List[QueuedOrder]:
        return list(self.queued_orders)

    def get_failed_orders(self) -> List[QueuedOrder]:
        return list(self.failed_orders)

    def get_processed_orders(self) -> List[str]:
        return list(self.processed_orders)

    def get_total_pending_orders(self) -> int:
        return len(self.queued_orders) + len(self.failed_orders)

    def is_order_processed(self, idempotency_key: str) -> bool:
        return idempotency_key in self._processed_keys

    def is_order_queued(self, idempotency_key: str) -> bool:
        return self._exists(self.queued_orders, idempotency_key)

    def is_order_failed(self, idempotency_key: str) -> bool:
        return self._exists(self.failed_orders, idempotency_key)

    def get_order_status(self, idempotency_key: str) -> str:
        if self.is_order_processed(idempotency_key):
            return "processed"
        if self.is_order_queued(idempotency_key):
            return "queued"
        if self.is_order_failed(idempotency_key):
            return "failed"
        return "not_found"

    def get_queue_stats(self) -> QueueStats:
        return QueueStats(
            queued=len(self.queued_orders),
            failed=len(self.failed_orders),
            processed=len(self.processed_orders),
            total=len(self.queued_orders) + len(self.failed_orders) + len(self.processed_orders),
        )


def build_queue_storage(backend: str, *, engine=None, path=None) -> QueueStorage:
    if backend == "memory":
        return MemoryQueueStorage()
    if backend == "file":
        return JsonFileQueueStorage(path)
    if backend == "database":
        return DatabaseQueueStorage(engine)
    raise ValueError(f"Unknown queue storage backend: {backend}")
