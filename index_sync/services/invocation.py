"""Asynchronous job invocation through the arq queue."""

import logging
from typing import Any, Optional

from arq.connections import ArqRedis

logger = logging.getLogger(__name__)


class ArqInvoker:
    """
    Invokes worker functions asynchronously by enqueueing arq jobs.

    The function version selects the arq queue, so a job re-chains onto the
    same worker deployment it is running in.
    """

    def __init__(self, pool: ArqRedis):
        self.pool = pool

    async def invoke_async(
        self,
        function_name: str,
        version: str,
        payload: Optional[Any] = None,
    ) -> Optional[str]:
        """
        Fire-and-forget invocation.

        Returns:
            The enqueued job id, or None if arq rejected a duplicate job
        """
        job = await self.pool.enqueue_job(function_name, payload, _queue_name=version)
        if job is None:
            logger.warning("Invocation of %s on %s was not enqueued", function_name, version)
            return None
        logger.debug("Invoked %s on %s as job %s", function_name, version, job.job_id)
        return job.job_id
