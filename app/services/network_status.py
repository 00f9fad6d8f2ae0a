# app/services/network_status.py
import asyncio
import logging
from typing import Callable, Optional, Set

logger = logging.getLogger(__name__)

HEALTH_CHECK_INTERVAL = 10.0   # seconds

ONLINE = "online"
OFFLINE = "offline"


class NetworkMonitor:
    """
    Tracks whether the order API is reachable.

    Listeners are called with "online" or "offline", only when the state
    actually changes. `run()` polls the health endpoint through `probe`
    (any zero-argument callable returning bool, e.g. OrderApiClient.ping).
    """

    def __init__(self, probe: Optional[Callable[[], bool]] = None, is_online: bool = True,
                 interval: float = HEALTH_CHECK_INTERVAL):
        self.probe = probe
        self.is_online = is_online
        self.interval = interval
        self._listeners: Set[Callable[[str], None]] = set()
        self._running = False

    def subscribe(self, listener: Callable[[str], None]) -> Callable[[], None]:
        self._listeners.add(listener)

        def unsubscribe():
            self._listeners.discard(listener)

        return unsubscribe

    def set_online(self, online: bool) -> None:
        if online == self.is_online:
            return

        self.is_online = online
        transition = ONLINE if online else OFFLINE
        logger.info(f"Network went {transition}")

        for listener in list(self._listeners):
            try:
                listener(transition)
            except Exception:
                logger.exception("Network status listener failed")

    async def check_connectivity(self) -> bool:
        if self.probe is None:
            return self.is_online

        try:
            reachable = bool(await asyncio.to_thread(self.probe))
        except Exception as e:
            logger.warning(f"Health check failed: {e}")
            reachable = False

        self.set_online(reachable)
        return reachable

    async def run(self) -> None:
        self._running = True
        while self._running:
            await self.check_connectivity()
            await asyncio.sleep(self.interval)

    def stop(self) -> None:
        self._running = False
