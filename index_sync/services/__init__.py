"""Index synchronization services."""

from .codec import (
    DocumentDecodeError,
    decode_document,
    split_storage_key,
)
from .drain_loop import (
    DrainReport,
    drain_bounded,
    drain_retry_queue,
    drain_step,
)
from .event_router import (
    EventDecodeError,
    EventRouter,
    extract_notification,
)
from .index_writer import (
    IndexTarget,
    IndexWriteError,
    IndexWriter,
    build_index_writer,
    check_search_health,
)
from .invocation import ArqInvoker
from .object_store import (
    ObjectStoreError,
    ObjectStoreService,
    get_object_store_service,
    object_store_service,
)
from .retry_queue import (
    RetryQueue,
    RetryQueueError,
)
from .trigger_handler import handle_object_event
