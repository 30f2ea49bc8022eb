"""
ARQ Worker Configuration

Runs the object event handler and the retry queue drain as arq jobs.
The worker plays the part of the invocation runtime: it retries failed
object events, moves events that keep failing to the retry queue, and
re-triggers the drain chain on a schedule.

Run with:
    arq index_sync.worker.WorkerSettings
"""

import asyncio
import json
import logging
from typing import Any, Optional

from arq import Retry, cron
from arq.connections import RedisSettings

from .config import settings
from .schemas.envelope import DrainOutcome, InvocationContext
from .services import drain_loop
from .services.event_router import EventRouter
from .services.index_writer import build_index_writer
from .services.invocation import ArqInvoker
from .services.object_store import ObjectStoreService
from .services.retry_queue import RetryQueue
from .services.trigger_handler import handle_object_event

logger = logging.getLogger(__name__)

OBJECT_EVENT_FUNCTION = "process_object_event"
DRAIN_FUNCTION = "drain_retry_queue"


# Parse Redis URL into components for ARQ
# Format: redis://host:port/db or redis://:password@host:port/db
def parse_redis_url(url: str) -> RedisSettings:
    """Parse Redis URL into ARQ RedisSettings."""
    from urllib.parse import urlparse

    parsed = urlparse(url)
    return RedisSettings(
        host=parsed.hostname or "localhost",
        port=parsed.port or 6379,
        password=parsed.password,
        database=int(parsed.path.lstrip("/") or 0),
    )


# =============================================================================
# Jobs
# =============================================================================

async def process_object_event(ctx: dict[str, Any], event: dict[str, Any]) -> None:
    """
    Handle one object store notification.

    Failures are retried with a linear backoff. On the last try the event is
    sent verbatim to the retry queue and the failure is re-raised.

    A cancelled job (arq's job_timeout or worker shutdown) is not retried by
    arq, so the event is sent to the retry queue on any try before the
    cancellation propagates.
    """
    job_try = ctx.get("job_try", 1)
    try:
        await handle_object_event(event, ctx["event_router"])
    except asyncio.CancelledError:
        message_id = await ctx["retry_queue"].send(json.dumps(event))
        logger.error(f"Object event cancelled on try {job_try}, queued for retry as {message_id}")
        raise
    except Exception as e:
        if job_try < settings.trigger_max_tries:
            logger.warning(f"Object event failed on try {job_try}, retrying: {e}")
            raise Retry(defer=job_try * settings.trigger_retry_delay_seconds) from e

        message_id = await ctx["retry_queue"].send(json.dumps(event))
        logger.error(
            f"Object event failed after {job_try} tries, queued for retry as {message_id}: {e}",
            exc_info=True,
        )
        raise


async def drain_retry_queue(ctx: dict[str, Any], payload: Optional[Any] = None) -> str:
    """
    Process one retry queue envelope and re-chain while hops succeed.

    Returns:
        The hop outcome ("empty", "failed" or "processed")
    """
    invocation = InvocationContext(
        function_name=DRAIN_FUNCTION,
        function_version=settings.arq_queue_name,
    )
    outcome: DrainOutcome = await drain_loop.drain_retry_queue(
        ctx["retry_queue"],
        ctx["event_router"],
        ArqInvoker(ctx["redis"]),
        invocation,
        payload,
        visibility_hold=settings.retry_visibility_hold_seconds,
    )
    return outcome.value


# =============================================================================
# Startup/Shutdown Hooks
# =============================================================================

async def startup(ctx: dict[str, Any]) -> None:
    """Create the object store, search and retry queue clients."""
    logging.basicConfig(level=settings.log_level)
    logger.info("ARQ worker starting up...")
    if settings.minio_worst_case_seconds >= settings.arq_job_timeout:
        logger.warning(
            f"Object reads can take up to {settings.minio_worst_case_seconds}s, "
            f"at or above the {settings.arq_job_timeout}s job timeout"
        )

    retry_queue = RetryQueue()
    await retry_queue.connect()

    index_writer = build_index_writer()
    ctx["retry_queue"] = retry_queue
    ctx["index_writer"] = index_writer
    ctx["event_router"] = EventRouter(ObjectStoreService(), index_writer)
    logger.info("Worker clients ready")


async def shutdown(ctx: dict[str, Any]) -> None:
    """Close clients when the worker stops."""
    logger.info("ARQ worker shutting down...")

    if "index_writer" in ctx:
        await ctx["index_writer"].close()
    if "retry_queue" in ctx:
        await ctx["retry_queue"].disconnect()
    logger.info("Worker clients closed")


# =============================================================================
# Schedule Parsing
# =============================================================================

def parse_schedule_set(value: str) -> set[int]:
    """
    Parse a comma-separated string of integers into a set.

    Examples:
        "0,30" -> {0, 30}
        "0,15,30,45" -> {0, 15, 30, 45}
    """
    return {int(x.strip()) for x in value.split(",") if x.strip()}


def build_cron_jobs() -> list:
    """Build the drain re-trigger cron job, if configured."""
    minutes = parse_schedule_set(settings.drain_cron_minutes)
    if not minutes:
        return []
    return [cron(drain_retry_queue, minute=minutes, second=0)]


# =============================================================================
# Worker Settings
# =============================================================================

class WorkerSettings:
    """ARQ worker configuration."""

    # Redis connection
    redis_settings = parse_redis_url(settings.redis_url)
    queue_name = settings.arq_queue_name

    # Job functions that can be called via arq.enqueue_job()
    functions = [
        process_object_event,
        drain_retry_queue,
    ]

    # DRAIN_CRON_MINUTES: comma-separated minutes (empty disables the cron)
    cron_jobs = build_cron_jobs()

    # Lifecycle hooks
    on_startup = startup
    on_shutdown = shutdown

    # Worker behavior
    max_jobs = 10
    # One spare try: a job lost on its last try re-enters the function and is
    # dead-lettered there instead of being failed by arq unseen
    max_tries = settings.trigger_max_tries + 1
    job_timeout = settings.arq_job_timeout
    keep_result = 3600

    # Health check
    health_check_interval = 30
