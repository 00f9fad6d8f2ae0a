import asyncio
import logging

from sqlmodel import Session

from app.config import settings
from app.database import engine, create_db_and_tables
from app.notifications import ToastSink
from app.services.network_status import NetworkMonitor
from app.services.order_api_client import OrderApiClient
from app.services.order_queue_store import OrderQueueStore, build_queue_storage
from app.services.order_service import get_sync_mode
from app.services.order_sync_service import OrderQueueSynchronizer

logger = logging.getLogger(__name__)


def resolve_sync_mode(bind=None) -> str:
    """Organization sync mode from the local database, else SYNC_MODE from the environment."""
    if settings.QUEUE_STORAGE != "database":
        return settings.SYNC_MODE

    with Session(bind or engine) as session:
        return get_sync_mode(session, settings.ORGANIZATION_ID, default=settings.SYNC_MODE)


def build_synchronizer(notifier=None, network=None, order_api=None) -> OrderQueueSynchronizer:
    storage = build_queue_storage(
        settings.QUEUE_STORAGE,
        engine=engine,
        path=settings.QUEUE_FILE_PATH,
    )
    return OrderQueueSynchronizer(
        OrderQueueStore(storage),
        order_api or OrderApiClient(),
        network=network,
        notifier=notifier or ToastSink(),
        sync_mode=resolve_sync_mode(),
    )


def run_queue_sync():
    """One sync pass, for cron or a scheduler. Runs in manual mode too."""
    if settings.QUEUE_STORAGE == "database":
        create_db_and_tables()

    synchronizer = build_synchronizer()
    summary = asyncio.run(synchronizer.sync_queued_orders())

    if summary is None:
        logger.info("Queue sync skipped")
        return None

    print(f"Synced {summary.synced} orders, {summary.failed} failed, {summary.skipped} dropped")
    return summary


async def run_synchronizer(synchronizer: OrderQueueSynchronizer, monitor: NetworkMonitor):
    """Poll connectivity until the monitor is stopped; auto mode syncs on every reconnect."""
    synchronizer.start()
    try:
        await monitor.run()
    finally:
        synchronizer.stop()
        monitor.stop()


def run_queue_sync_daemon():
    """Long-running terminal process: health polling plus automatic sync triggers."""
    if settings.QUEUE_STORAGE == "database":
        create_db_and_tables()

    order_api = OrderApiClient()
    # offline until the first health check says otherwise, so reaching the
    # API is always an online transition
    monitor = NetworkMonitor(probe=order_api.ping, is_online=False)
    synchronizer = build_synchronizer(network=monitor, order_api=order_api)

    logger.info(f"Queue sync daemon started (mode={synchronizer.sync_mode}, api={order_api.base_url})")
    try:
        asyncio.run(run_synchronizer(synchronizer, monitor))
    except KeyboardInterrupt:
        logger.info("Queue sync daemon stopped")
