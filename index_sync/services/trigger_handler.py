"""Entry point invoked once per object store notification."""

from typing import Any

from .event_router import EventRouter


async def handle_object_event(event: dict[str, Any], router: EventRouter) -> None:
    """
    Process one object store notification.

    Errors are not caught here. The job runtime owns retries and routes an
    event that keeps failing to the retry queue.
    """
    await router.process_event(event)
