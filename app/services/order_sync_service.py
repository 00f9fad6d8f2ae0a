# app/services/order_sync_service.py
"""
Offline order queue synchronizer.

Replays orders held in the local queue against the remote order API.
Runs on one asyncio event loop: the `syncing` flag is checked and set
before the first await, which is the only guard against overlapping
passes. Orders inside a pass are sent one at a time.

Per order:
  queued -> success              -> removed
         -> duplicate key        -> removed (reported as already synced)
         -> network error        -> retried, up to MAX_RETRIES more times
         -> anything else        -> failed (kept for manual retry)
Entries with no idempotency key or no items are dropped without a toast.
"""

import asyncio
import inspect
import logging
import time
from typing import Callable, Optional

from app.constants.order_status import SYNC_MODES
from app.notifications import SyncEvent, dispatch_sync_event
from app.schemas.queue_schemas import QueuedOrder, SyncResult, SyncSummary
from app.services.network_status import ONLINE
from app.services.order_api_client import SyncErrorKind, classify_error, error_message

logger = logging.getLogger(__name__)

# seconds
SYNC_DEBOUNCE_TIME = 2.0
TRIGGER_COOLDOWN_TIME = 3.0
RETRY_DELAY = 1.0
NETWORK_STABILITY_DELAY = 1.0

MAX_RETRIES = 2


def is_valid_order(order: QueuedOrder) -> bool:
    return bool(order.idempotency_key) and len(order.items) > 0


class OrderQueueSynchronizer:
    def __init__(
        self,
        store,
        order_api,
        *,
        network=None,
        notifier=None,
        sync_mode: str = "auto",
        clock: Callable[[], float] = time.monotonic,
        sleep=asyncio.sleep,
    ):
        self.store = store
        self.order_api = order_api
        self.network = network
        self.notifier = notifier
        if sync_mode not in SYNC_MODES:
            raise ValueError(f"sync_mode must be one of {SYNC_MODES}, got {sync_mode!r}")
        self.sync_mode = sync_mode
        self.clock = clock
        self.sleep = sleep

        self.syncing = False
        self.last_sync_time: Optional[float] = None
        self.last_trigger_time: Optional[float] = None

        self._in_flight = set()
        self._pending_trigger: Optional[asyncio.Task] = None
        self._waiting_for_stability = False
        self._unsubscribe = None

    # -------------------------
    # OUTCOMES
    # -------------------------

    def _cleanup_order(self, idempotency_key: str):
        self.store.remove_order(idempotency_key)
        self.store.remove_failed_order(idempotency_key)

    def _handle_sync_success(self, order: QueuedOrder, created: bool, batch_size: int):
        self._cleanup_order(order.idempotency_key)

        # batches get one summary toast at the end of the pass instead
        if batch_size <= 1:
            dispatch_sync_event(
                event=SyncEvent.ORDER_SYNCED if created else SyncEvent.ORDER_ALREADY_SYNCED,
                sink=self.notifier,
                key=order.idempotency_key,
            )

    def _handle_sync_error(self, order: QueuedOrder, error):
        message = error_message(error)
        self.store.add_failed_order(order, message)
        dispatch_sync_event(
            event=SyncEvent.ORDER_SYNC_FAILED,
            sink=self.notifier,
            key=order.idempotency_key,
            extra={"description": message},
        )

    # -------------------------
    # SINGLE ORDER
    # -------------------------

    async def _create_order(self, order: QueuedOrder):
        create = self.order_api.create_order
        payload = order.to_order_payload()
        if inspect.iscoroutinefunction(create):
            return await create(payload)
        return await asyncio.to_thread(create, payload)

    async def process_order_with_retry(self, order: QueuedOrder, batch_size: int = 1) -> SyncResult:
        if not is_valid_order(order):
            logger.warning(f"Dropping malformed queued order: key={order.idempotency_key!r}")
            self.store.drop_order(order)
            return SyncResult(success=False, skipped=True)

        key = order.idempotency_key
        self._in_flight.add(key)
        try:
            for attempt in range(MAX_RETRIES + 1):
                try:
                    response = await self._create_order(order)
                except Exception as error:
                    kind = classify_error(error)

                    if kind == SyncErrorKind.duplicate:
                        self._handle_sync_success(order, False, batch_size)
                        return SyncResult(success=True, created=False)

                    if attempt < MAX_RETRIES and kind == SyncErrorKind.network:
                        logger.warning(f"Attempt {attempt + 1} for order {key} failed: {error_message(error)}")
                        await self.sleep(RETRY_DELAY * (attempt + 1))
                        continue

                    self._handle_sync_error(order, error)
                    return SyncResult(success=False, error=error_message(error))

                created = (response or {}).get("created")
                created = True if created is None else bool(created)
                self._handle_sync_success(order, created, batch_size)
                return SyncResult(success=True, created=created)
        finally:
            self._in_flight.discard(key)

    async def sync_single_order(self, idempotency_key: str) -> Optional[SyncResult]:
        """Manual retry for one queued or failed order."""
        if idempotency_key in self._in_flight:
            return None

        orders = self.store.get_queued_orders() + self.store.get_failed_orders()
        order = next((o for o in orders if o.idempotency_key == idempotency_key), None)
        if order is None:
            return None

        return await self.process_order_with_retry(order)

    # -------------------------
    # FULL PASS
    # -------------------------

    async def sync_queued_orders(self) -> Optional[SyncSummary]:
        """
        Drain queued and failed orders once.

        Returns None when skipped because a pass is running or the last one
        started less than SYNC_DEBOUNCE_TIME ago.
        """
        if self.syncing:
            return None

        now = self.clock()
        if self.last_sync_time is not None and now - self.last_sync_time < SYNC_DEBOUNCE_TIME:
            return None

        self.syncing = True
        self.last_sync_time = now

        summary = SyncSummary()
        try:
            all_orders = self.store.get_queued_orders() + self.store.get_failed_orders()
            if not all_orders:
                return summary

            candidates = []
            processed_keys = set()
            for order in all_orders:
                if not is_valid_order(order):
                    await self.process_order_with_retry(order)
                    summary.skipped += 1
                    continue
                if order.idempotency_key in processed_keys:
                    continue
                processed_keys.add(order.idempotency_key)
                candidates.append(order)

            batch_size = len(candidates)
            logger.info(f"Syncing {batch_size} queued orders")

            for order in candidates:
                key = order.idempotency_key
                if key in self._in_flight:
                    continue
                if self.store.is_order_processed(key):
                    # confirmed by another path while this pass was running
                    self._cleanup_order(key)
                    continue

                result = await self.process_order_with_retry(order, batch_size=batch_size)
                if result.success:
                    summary.synced += 1
                elif not result.skipped:
                    summary.failed += 1

            if batch_size > 1:
                if summary.failed == 0 and summary.synced > 0:
                    dispatch_sync_event(
                        event=SyncEvent.BATCH_SYNCED,
                        sink=self.notifier,
                        extra={"synced": summary.synced},
                    )
                elif summary.synced > 0:
                    dispatch_sync_event(
                        event=SyncEvent.BATCH_PARTIALLY_SYNCED,
                        sink=self.notifier,
                        extra={"synced": summary.synced, "failed": summary.failed},
                    )

            return summary

        except Exception:
            logger.exception("Order queue sync pass failed")
            dispatch_sync_event(event=SyncEvent.SYNC_PASS_ERROR, sink=self.notifier)
            return summary

        finally:
            self.syncing = False

    # -------------------------
    # AUTOMATIC TRIGGERS
    # -------------------------

    def should_trigger_sync(self) -> bool:
        pending = self._pending_trigger
        if pending is not None and not pending.done():
            return False

        now = self.clock()
        if self.last_trigger_time is not None and now - self.last_trigger_time < TRIGGER_COOLDOWN_TIME:
            return False
        if self.syncing:
            return False
        return self.store.get_total_pending_orders() > 0

    def trigger_sync(self) -> bool:
        """Schedule a pass after NETWORK_STABILITY_DELAY. Needs a running loop."""
        if self.sync_mode != "auto":
            return False
        if not self.should_trigger_sync():
            return False

        loop = asyncio.get_running_loop()
        self.last_trigger_time = self.clock()
        self._waiting_for_stability = True
        self._pending_trigger = loop.create_task(self._delayed_sync())
        return True

    async def _delayed_sync(self):
        try:
            await self.sleep(NETWORK_STABILITY_DELAY)
        finally:
            self._waiting_for_stability = False
        await self.sync_queued_orders()

    def handle_network_change(self, transition: str):
        if transition == ONLINE:
            self.trigger_sync()

    def start(self):
        """Subscribe to network changes and sync right away if online."""
        if self.sync_mode != "auto":
            return

        if self.network is not None:
            self._unsubscribe = self.network.subscribe(self.handle_network_change)

        if self.network is None or self.network.is_online:
            self.trigger_sync()

    def stop(self):
        """
        Stop reacting to network changes. A pass that is already sending an
        order is left to finish; only a trigger still waiting is cancelled.
        """
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

        task = self._pending_trigger
        if task is not None and not task.done() and self._waiting_for_stability:
            task.cancel()
        self._pending_trigger = None

        self.syncing = False
