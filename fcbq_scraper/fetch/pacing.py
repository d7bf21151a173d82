"""Fixed pauses between sequential requests."""
import asyncio
import logging

logger = logging.getLogger(__name__)


class Pacer:
    """Awaits a fixed delay between two units of work.

    Relays and the stats API are shared, rate-sensitive services, so every
    step of a run goes through one of these instead of calling asyncio.sleep
    directly. Tests swap in a subclass that records the waits.
    """

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self.total_waited = 0.0

    async def wait(self, seconds: float, reason: str = "") -> None:
        """Sleep for `seconds` unless pacing is disabled."""
        if not self.enabled or seconds <= 0:
            return
        logger.debug(f"Pacing {seconds:.2f}s ({reason or 'unspecified'})")
        await asyncio.sleep(seconds)
        self.total_waited += seconds
