"""
Periodic horizon extension for recurring reception templates.

Re-runs every active template so the generated slots keep covering
`months_ahead` months from today. Generation is idempotent, so a run that
finds nothing new only logs zero counts.

Runs as an asyncio task in the API lifespan.
Uses the synchronous generator via asyncio.to_thread.
"""

import asyncio
import logging

from ..database import SessionLocal
from ..redis_client import redis_client
from .slots.generator import generate_all_active

logger = logging.getLogger(__name__)


async def horizon_extender_loop(interval_seconds: int) -> None:
    """Extend the generation horizon every `interval_seconds`."""
    logger.info(f"horizon_extender_loop started (interval={interval_seconds}s)")

    try:
        while True:
            try:
                await asyncio.to_thread(extend_horizon)
            except asyncio.CancelledError:
                logger.info("horizon_extender_loop cancelled")
                raise
            except Exception:
                logger.exception("horizon_extender_loop error")

            await asyncio.sleep(interval_seconds)
    except asyncio.CancelledError:
        pass


def extend_horizon() -> int:
    """Run generation for all active templates (synchronous). Returns slots created."""
    db = SessionLocal()
    try:
        results = generate_all_active(db, redis=redis_client)
    finally:
        db.close()

    created = sum(r.created for r in results)
    logger.info(f"Horizon extended: templates={len(results)} slots_created={created}")
    return created
