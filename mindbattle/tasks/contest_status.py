"""Background task advancing contests through Upcoming -> Live -> Finished."""
import asyncio
import logging

from mindbattle.config import get_settings
from mindbattle.database import AsyncSessionLocal
from mindbattle.services.contest_status_service import ContestStatusService

logger = logging.getLogger(__name__)

# Track if a sweep is running to prevent overlapping executions
_sweep_running = False


async def run_status_sweep() -> list[str]:
    """Run one contest status sweep in its own session.

    Errors are logged and swallowed so the scheduler keeps running; the next
    tick recomputes from the latest stored state.
    """
    global _sweep_running

    if _sweep_running:
        logger.debug("Contest status sweep already running, skipping")
        return []

    _sweep_running = True
    try:
        async with AsyncSessionLocal() as db:
            changed = await ContestStatusService(db).run_sweep()
        if changed:
            logger.info(f"Contest status sweep advanced {len(changed)} contests: {', '.join(changed)}")
        return changed
    except Exception as e:
        logger.error(f"Error during contest status sweep: {e}", exc_info=True)
        return []
    finally:
        _sweep_running = False


async def contest_status_cycle() -> None:
    """Sweep contest statuses on the configured interval until cancelled."""
    settings = get_settings()

    startup_delay = settings.status_sweep_startup_delay_seconds
    logger.info(f"Contest status cycle starting in {startup_delay}s")
    await asyncio.sleep(startup_delay)

    interval = settings.status_sweep_interval_seconds
    logger.info(f"Contest status cycle starting main loop (interval: {interval}s)")

    while True:
        await run_status_sweep()
        await asyncio.sleep(interval)
