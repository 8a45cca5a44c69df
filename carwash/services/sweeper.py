import asyncio

from carwash.core.logger import logger
from carwash.services.booking_service import BookingService


async def auto_confirm_loop(service: BookingService, stop_event: asyncio.Event, interval: float = 60.0):
    """Run the auto-confirm sweep every `interval` seconds until `stop_event` is set."""
    logger.info(f"⏰ Auto-confirm loop started (every {interval}s)")
    while not stop_event.is_set():
        try:
            await service.auto_confirm_sweep()
        except Exception as e:
            logger.error(f"❌ Auto-confirm sweep failed: {e}")
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval)
        except asyncio.TimeoutError:
            continue
    logger.info("🛑 Auto-confirm loop stopped")
