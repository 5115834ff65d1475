"""ARQ worker for the no-show reconciliation sweep."""

from arq import cron
from libs.common.arq_config import get_redis_settings
from libs.common.config import get_settings
from libs.common.logging import get_logger

logger = get_logger(__name__)


def sweep_minutes(interval: int) -> set[int]:
    """Minutes of the hour the sweep fires at, e.g. 15 -> {0, 15, 30, 45}."""
    if interval <= 0 or interval > 60:
        raise ValueError("RECONCILE_INTERVAL_MINUTES must be between 1 and 60")
    if 60 % interval:
        raise ValueError("RECONCILE_INTERVAL_MINUTES must divide 60 evenly")
    return set(range(0, 60, interval))


async def task_mark_absent_registrations(ctx: dict):
    from services.booking_service.tasks import run_reconciliation_sweep

    logger.info("Running: mark_absent_registrations")
    result = await run_reconciliation_sweep()
    return {"scanned": result.scanned, "marked": result.marked}


class WorkerSettings:
    redis_settings = get_redis_settings()

    functions = [
        task_mark_absent_registrations,
    ]

    cron_jobs = [
        cron(
            task_mark_absent_registrations,
            minute=sweep_minutes(get_settings().RECONCILE_INTERVAL_MINUTES),
            run_at_startup=True,
        ),
    ]
