"""Background sweep of expired CSRF pairs and rate-limit windows."""

import asyncio
import logging
from collections.abc import Callable, Mapping

logger = logging.getLogger(__name__)

Sweeper = Callable[[], int]


def sweep_once(sweepers: Mapping[str, Sweeper]) -> dict[str, int]:
    """Run every sweeper; one failing store does not stop the others."""
    removed: dict[str, int] = {}
    for name, sweep in sweepers.items():
        try:
            removed[name] = sweep()
        except Exception as e:
            logger.warning(f"Expiry sweep of {name} failed: {e}", extra={"reason": str(e)})
    return removed


async def expiry_sweep_loop(sweepers: Mapping[str, Sweeper], interval_seconds: float = 60) -> None:
    """Sweep every ``interval_seconds`` until cancelled."""
    while True:
        try:
            await asyncio.sleep(interval_seconds)
        except asyncio.CancelledError:
            break
        removed = {name: count for name, count in sweep_once(sweepers).items() if count}
        if removed:
            logger.debug(f"Expiry sweep removed {removed}")
