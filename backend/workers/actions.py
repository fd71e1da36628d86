"""
Action Workers — scheduled recommendation generation.

Runs the same generation pipeline as POST /api/v1/actions/generate so new
discrepancies get actions without anyone pressing the button. Safe to
overlap with API-triggered runs: duplicate pairs are skipped.
"""

import asyncio

import structlog

from workers.celery_app import celery_app

logger = structlog.get_logger()


async def run_generation(database_url: str, zone: str | None = None) -> dict[str, int]:
    from actions.engine import GenerationScope, generate_actions
    from db.session import build_engine, session_factory

    engine = build_engine(database_url)
    try:
        async_session = session_factory(engine)
        async with async_session() as db:
            result = await generate_actions(db, GenerationScope(zone=zone))
            return {
                "generated": result.generated_count,
                "skipped": result.skipped_count,
                "failed": result.failed_count,
                "discrepancies": result.discrepancy_count,
            }
    finally:
        await engine.dispose()


@celery_app.task(
    name="workers.actions.generate_recommendations",
    bind=True,
    max_retries=1,
    default_retry_delay=30,
)
def generate_recommendations(self, zone: str | None = None):
    """Generate action recommendations for all open discrepancies (optionally one zone)."""
    from core.config import get_settings

    run_id = self.request.id or "manual"
    logger.info("actions.worker.started", run_id=run_id, zone=zone)

    try:
        result = asyncio.run(run_generation(get_settings().database_url, zone=zone))
    except Exception as exc:
        logger.error("actions.worker.failed", run_id=run_id, error=str(exc))
        raise

    logger.info("actions.worker.completed", run_id=run_id, **result)
    return result
