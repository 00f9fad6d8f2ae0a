from enum import Enum


class SyncEvent(str, Enum):
    ORDER_SYNCED = "order_synced"
    ORDER_ALREADY_SYNCED = "order_already_synced"
    ORDER_SYNC_FAILED = "order_sync_failed"

    BATCH_SYNCED = "batch_synced"
    BATCH_PARTIALLY_SYNCED = "batch_partially_synced"
    SYNC_PASS_ERROR = "sync_pass_error"
