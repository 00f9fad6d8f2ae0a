from app.notifications.events import SyncEvent
from app.notifications.channels import Channel, Severity


NOTIFICATION_RULES = {

    SyncEvent.ORDER_SYNCED: {
        "severity": Severity.SUCCESS,
        "message": "Order synced!",
        Channel.TOAST: True,
        Channel.LOG: True,
    },

    SyncEvent.ORDER_ALREADY_SYNCED: {
        "severity": Severity.SUCCESS,
        "message": "Order already synced.",
        Channel.TOAST: True,
        Channel.LOG: True,
    },

    SyncEvent.ORDER_SYNC_FAILED: {
        "severity": Severity.ERROR,
        "message": "Failed to sync order.",
        Channel.TOAST: True,
        Channel.LOG: True,
    },

    SyncEvent.BATCH_SYNCED: {
        "severity": Severity.SUCCESS,
        "message": "Successfully synced {synced} orders!",
        Channel.TOAST: True,
        Channel.LOG: True,
    },

    SyncEvent.BATCH_PARTIALLY_SYNCED: {
        "severity": Severity.SUCCESS,
        "message": "Synced {synced} orders, {failed} failed.",
        Channel.TOAST: True,
        Channel.LOG: True,
    },

    SyncEvent.SYNC_PASS_ERROR: {
        "severity": Severity.ERROR,
        "message": "Sync process encountered an error",
        Channel.TOAST: True,
        Channel.LOG: True,
    },

}
