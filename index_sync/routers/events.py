"""Object store notification ingress and drain trigger endpoints.

Bucket notifications (MinIO webhook target or S3 relay) are accepted here
and handed to the worker as one job per record, so a bad record cannot
block the others.
"""

import hmac
import logging
from typing import Any, Optional

from arq.connections import ArqRedis
from fastapi import APIRouter, Body, Depends, Header, HTTPException, status

from ..config import settings
from ..dependencies import get_arq_pool
from ..schemas.ingress import EnqueuedJobs
from ..worker import DRAIN_FUNCTION, OBJECT_EVENT_FUNCTION

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Events"])


def verify_webhook_token(authorization: Optional[str] = Header(None)) -> None:
    """Check the shared webhook token, if one is configured."""
    expected = settings.webhook_auth_token
    if not expected:
        return

    supplied = authorization or ""
    if supplied.startswith("Bearer "):
        supplied = supplied[len("Bearer "):]
    if not hmac.compare_digest(supplied, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid webhook token",
        )


@router.post(
    "/events/object-store",
    response_model=EnqueuedJobs,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Receive object store notifications",
    dependencies=[Depends(verify_webhook_token)],
)
async def receive_object_events(
    event: dict[str, Any] = Body(...),
    pool: ArqRedis = Depends(get_arq_pool),
) -> EnqueuedJobs:
    """
    Enqueue one processing job per notification record.

    Each job receives an S3-style payload with exactly one record.
    """
    records = event.get("Records")
    if not isinstance(records, list) or not records:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Notification has no Records",
        )

    job_ids = []
    for record in records:
        job = await pool.enqueue_job(
            OBJECT_EVENT_FUNCTION,
            {"Records": [record]},
            _queue_name=settings.arq_queue_name,
        )
        if job is not None:
            job_ids.append(job.job_id)

    logger.info(f"Enqueued {len(job_ids)} object event jobs")
    return EnqueuedJobs(job_ids=job_ids)


@router.post(
    "/drain",
    response_model=EnqueuedJobs,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Start draining the retry queue",
    dependencies=[Depends(verify_webhook_token)],
)
async def trigger_drain(pool: ArqRedis = Depends(get_arq_pool)) -> EnqueuedJobs:
    """Start a new drain chain. It continues on its own while hops succeed."""
    job = await pool.enqueue_job(DRAIN_FUNCTION, None, _queue_name=settings.arq_queue_name)
    return EnqueuedJobs(job_ids=[job.job_id] if job is not None else [])
