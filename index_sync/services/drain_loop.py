"""Draining of the retry queue, one envelope per hop.

A drain hop fetches at most one envelope, re-runs its event through the
router and acknowledges it. Only a hop that processed an envelope asks the
runtime to start the next hop, so the chain stops on an empty queue and on
the first failure. A failed envelope stays on the queue and becomes visible
again after its hold expires, for the next externally triggered chain.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from ..schemas.envelope import DrainOutcome, InvocationContext
from .event_router import EventRouter
from .retry_queue import RetryQueue

logger = logging.getLogger(__name__)


class Invoker(Protocol):
    async def invoke_async(
        self, function_name: str, version: str, payload: Optional[Any] = None
    ) -> Optional[str]: ...


@dataclass
class DrainReport:
    """Result of a bounded local drain."""

    hops: int
    outcome: Optional[DrainOutcome]


async def drain_step(
    queue: RetryQueue,
    router: EventRouter,
    visibility_hold: int,
) -> DrainOutcome:
    """
    Process at most one envelope from the retry queue.

    Never raises: every failure is logged and reported as FAILED, leaving the
    envelope on the queue.
    """
    envelope = None
    try:
        envelope = await queue.receive_one(visibility_hold)
        if envelope is None:
            logger.info("Retry queue %s is empty", queue.name)
            return DrainOutcome.EMPTY

        logger.info(
            "Retrying message %s (delivery %d)",
            envelope.message_id, envelope.receive_count,
        )
        await router.process_event(envelope.decode_event())
        await queue.delete_by_receipt(envelope.receipt_handle)
    except Exception as e:
        message_id = envelope.message_id if envelope else None
        logger.error(f"Drain hop failed for message {message_id}: {e}", exc_info=True)
        return DrainOutcome.FAILED

    return DrainOutcome.PROCESSED


async def drain_retry_queue(
    queue: RetryQueue,
    router: EventRouter,
    invoker: Invoker,
    invocation: InvocationContext,
    payload: Optional[Any] = None,
    visibility_hold: int = 10,
) -> DrainOutcome:
    """
    Run one drain hop and re-chain on success.

    The next hop is invoked with the same function identity and payload and
    is not awaited beyond being enqueued.
    """
    outcome = await drain_step(queue, router, visibility_hold)
    if outcome is not DrainOutcome.PROCESSED:
        logger.info("Drain chain stopping: %s", outcome.value)
        return outcome

    await invoker.invoke_async(
        invocation.function_name, invocation.function_version, payload
    )
    logger.info("Drain chain continues: invoked %s", invocation.function_name)
    return outcome


async def drain_bounded(
    queue: RetryQueue,
    router: EventRouter,
    max_hops: int,
    max_seconds: float,
    visibility_hold: int = 10,
) -> DrainReport:
    """
    Drain in a local loop, for use without a re-invoking job runtime.

    Stops on an empty queue, on the first failure, or when either cap is
    reached. Only hops that processed an envelope are counted.
    """
    deadline = time.monotonic() + max_seconds
    hops = 0
    outcome = None

    while hops < max_hops and time.monotonic() < deadline:
        outcome = await drain_step(queue, router, visibility_hold)
        if outcome is not DrainOutcome.PROCESSED:
            break
        hops += 1

    logger.info("Bounded drain finished after %d hops (%s)", hops, outcome)
    return DrainReport(hops=hops, outcome=outcome)
