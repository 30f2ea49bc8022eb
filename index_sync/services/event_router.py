"""Dispatch of object store notifications to the index writer."""

import asyncio
import logging
from typing import Any
from urllib.parse import unquote_plus

from ..schemas.notification import EventKind, Notification
from .codec import DocumentDecodeError, decode_document, split_storage_key
from .index_writer import IndexWriter
from .object_store import ObjectStoreService

logger = logging.getLogger(__name__)


class EventDecodeError(DocumentDecodeError):
    """Raised when a notification payload is malformed."""

    pass


def extract_notification(event: dict[str, Any]) -> Notification:
    """
    Extract the notification from an S3-style event payload.

    Only the first record is examined. Notifications are delivered one per
    invocation; batching is handled by the ingress, which splits records
    into separate jobs.

    Raises:
        EventDecodeError: If the payload has no usable first record
    """
    try:
        record = event["Records"][0]
        event_name = record["eventName"]
        bucket = record["s3"]["bucket"]["name"]
        raw_key = record["s3"]["object"]["key"]
    except (KeyError, IndexError, TypeError) as e:
        raise EventDecodeError(f"Malformed notification payload: missing {e}") from e

    # S3 and MinIO URL-encode object keys in notifications
    key = unquote_plus(raw_key)
    if not bucket or not key:
        raise EventDecodeError("Notification has an empty bucket or key")

    return Notification(
        event_kind=EventKind.from_event_name(event_name),
        event_name=event_name,
        bucket=bucket,
        key=key,
    )


class EventRouter:
    """Routes a notification to an upsert or a delete."""

    def __init__(self, object_store: ObjectStoreService, index_writer: IndexWriter):
        self.object_store = object_store
        self.index_writer = index_writer

    async def process_event(self, event: dict[str, Any]) -> None:
        """Process the single notification carried by an event payload."""
        await self.process_notification(extract_notification(event))

    async def process_notification(self, notification: Notification) -> None:
        if notification.event_kind is EventKind.CREATED:
            # Blocking client call
            raw = await asyncio.to_thread(
                self.object_store.get_object, notification.bucket, notification.key
            )
            document = decode_document(raw)
            await self.index_writer.upsert(document)
        elif notification.event_kind is EventKind.REMOVED:
            library_id, key = split_storage_key(notification.key)
            await self.index_writer.delete(library_id, key)
        else:
            logger.debug(
                "Ignoring %s event for %s/%s",
                notification.event_name, notification.bucket, notification.key,
            )
