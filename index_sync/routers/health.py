"""Health check endpoint."""

import logging

from fastapi import APIRouter, Depends

from ..dependencies import get_index_writer, get_retry_queue
from ..schemas.ingress import HealthResponse
from ..services.index_writer import IndexWriter, check_search_health
from ..services.retry_queue import RetryQueue

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(
    writer: IndexWriter = Depends(get_index_writer),
    queue: RetryQueue = Depends(get_retry_queue),
) -> HealthResponse:
    """Report search cluster, Redis and retry queue status."""
    search = await check_search_health(writer)

    depth = None
    try:
        depth = await queue.depth()
        redis_status = "healthy"
    except Exception as e:
        logger.warning("Redis health check failed: %s", e)
        redis_status = "degraded"

    healthy = redis_status == "healthy" and all(v == "healthy" for v in search.values())
    return HealthResponse(
        status="healthy" if healthy else "degraded",
        search=search,
        redis=redis_status,
        retry_queue_depth=depth,
    )
