"""
Drain the retry queue in a local loop, without the arq worker.

Stops on an empty queue, on the first failed envelope, or when the hop or
time cap is reached. A failed envelope stays queued and becomes visible
again after its hold expires.

Usage:
    python scripts/drain_retry_queue.py --max-hops 500 --max-seconds 120
"""

import argparse
import asyncio
import logging
import sys

sys.path.insert(0, ".")

from index_sync.config import settings
from index_sync.schemas.envelope import DrainOutcome
from index_sync.services.drain_loop import drain_bounded
from index_sync.services.event_router import EventRouter
from index_sync.services.index_writer import build_index_writer
from index_sync.services.object_store import ObjectStoreService
from index_sync.services.retry_queue import RetryQueue


async def run(max_hops: int, max_seconds: float) -> int:
    queue = RetryQueue()
    await queue.connect()
    writer = build_index_writer()
    try:
        router = EventRouter(ObjectStoreService(), writer)
        report = await drain_bounded(
            queue,
            router,
            max_hops=max_hops,
            max_seconds=max_seconds,
            visibility_hold=settings.retry_visibility_hold_seconds,
        )
        remaining = await queue.depth()
    finally:
        await writer.close()
        await queue.disconnect()

    print(f"Processed {report.hops} envelopes, last outcome: {report.outcome}")
    print(f"Messages remaining on {queue.name}: {remaining}")
    return 1 if report.outcome is DrainOutcome.FAILED else 0


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--max-hops", type=int, default=settings.drain_max_hops)
    parser.add_argument("--max-seconds", type=float, default=settings.drain_max_seconds)
    args = parser.parse_args()

    logging.basicConfig(level=settings.log_level)
    return asyncio.run(run(args.max_hops, args.max_seconds))


if __name__ == "__main__":
    sys.exit(main())
