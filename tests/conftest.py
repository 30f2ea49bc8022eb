"""Shared pytest fixtures and in-memory collaborators for index sync tests."""

import copy
import json
import os
import sys
from typing import Any, Optional
from urllib.parse import unquote
from uuid import uuid4

import pytest
from opensearchpy.exceptions import ConflictError, NotFoundError

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from index_sync.schemas.envelope import RetryEnvelope
from index_sync.services.event_router import EventRouter
from index_sync.services.index_writer import IndexTarget, IndexWriter
from index_sync.services.object_store import ObjectStoreError
from index_sync.services.retry_queue import RetryQueueError


# ============================================================================
# Search cluster fake
# ============================================================================


class FakeTransport:
    """
    In-memory document store speaking the subset of the REST API we use.

    PUT with version/version_type=external_gt is rejected with a 409 unless
    the version is strictly greater than the stored one. DELETE of a missing
    document raises a 404.
    """

    def __init__(self):
        self.docs: dict[tuple[str, str], dict[str, Any]] = {}
        self.calls: list[tuple[str, str, dict, Optional[dict]]] = []
        self.fail_with: Optional[Exception] = None

    async def perform_request(self, method, url, params=None, body=None):
        params = dict(params or {})
        self.calls.append((method, url, params, copy.deepcopy(body)))
        if self.fail_with is not None:
            raise self.fail_with

        _, index, doc_type, quoted_id = url.split("/")
        key = (index, unquote(quoted_id))

        if method == "PUT":
            stored = self.docs.get(key)
            version = params.get("version")
            if version is not None:
                assert params.get("version_type") == "external_gt"
                if stored is not None and int(version) <= stored["version"]:
                    raise ConflictError(
                        409,
                        "version_conflict_engine_exception",
                        {"error": {"type": "version_conflict_engine_exception"}},
                    )
                new_version = int(version)
            else:
                new_version = (stored["version"] + 1) if stored else 1
            self.docs[key] = {
                "version": new_version,
                "routing": params.get("routing"),
                "doc_type": doc_type,
                "body": copy.deepcopy(body),
            }
            return {"result": "updated" if stored else "created", "_version": new_version}

        if method == "DELETE":
            if key not in self.docs:
                raise NotFoundError(404, "not_found", {"result": "not_found"})
            del self.docs[key]
            return {"result": "deleted"}

        raise AssertionError(f"Unexpected method {method}")


class FakeSearchClient:
    """Stand-in for AsyncOpenSearch exposing transport, ping and close."""

    def __init__(self):
        self.transport = FakeTransport()
        self.healthy = True
        self.closed = False

    async def ping(self):
        return self.healthy

    async def close(self):
        self.closed = True

    def get(self, index: str, doc_id: str) -> Optional[dict]:
        return self.transport.docs.get((index, doc_id))


# ============================================================================
# Object store, retry queue and invoker fakes
# ============================================================================


class FakeObjectStore:
    """Dictionary-backed object store."""

    def __init__(self):
        self.objects: dict[tuple[str, str], bytes] = {}
        self.reads: list[tuple[str, str]] = []

    def put_json(self, bucket: str, key: str, data: dict) -> None:
        self.objects[(bucket, key)] = json.dumps(data).encode("utf-8")

    def get_object(self, bucket: str, object_name: str) -> bytes:
        self.reads.append((bucket, object_name))
        try:
            return self.objects[(bucket, object_name)]
        except KeyError:
            raise ObjectStoreError(f"{bucket}/{object_name} not found", not_found=True)


class FakeRetryQueue:
    """In-memory visibility-timeout queue with a manual clock."""

    name = "test-retry"

    def __init__(self):
        self.now = 0.0
        self.messages: dict[str, dict[str, Any]] = {}
        self.received: list[str] = []
        self.deleted: list[str] = []

    async def send(self, body: str) -> str:
        message_id = uuid4().hex
        self.messages[message_id] = {
            "body": body,
            "visible_at": self.now,
            "token": None,
            "count": 0,
        }
        return message_id

    async def receive_one(self, visibility_hold: int) -> Optional[RetryEnvelope]:
        for message_id, msg in self.messages.items():
            if msg["visible_at"] <= self.now:
                msg["visible_at"] = self.now + visibility_hold
                msg["token"] = uuid4().hex
                msg["count"] += 1
                self.received.append(message_id)
                return RetryEnvelope(
                    message_id=message_id,
                    body=msg["body"],
                    receipt_handle=f"{message_id}:{msg['token']}",
                    visible_at=msg["visible_at"],
                    receive_count=msg["count"],
                )
        return None

    async def delete_by_receipt(self, receipt_handle: str) -> None:
        message_id, _, token = receipt_handle.partition(":")
        msg = self.messages.get(message_id)
        if msg is None or msg["token"] != token:
            raise RetryQueueError(f"Receipt handle for message {message_id} is stale or unknown")
        del self.messages[message_id]
        self.deleted.append(message_id)

    async def depth(self) -> int:
        return len(self.messages)


class RecordingInvoker:
    """Records asynchronous invocations instead of running them."""

    def __init__(self):
        self.invocations: list[tuple[str, str, Any]] = []

    async def invoke_async(self, function_name, version, payload=None):
        self.invocations.append((function_name, version, payload))
        return f"job-{len(self.invocations)}"


# ============================================================================
# Helpers
# ============================================================================


BUCKET = "items"


def make_event(event_name: str, key: str, bucket: str = BUCKET, extra_records: int = 0) -> dict:
    """Build an S3-style notification payload."""
    record = {
        "eventName": event_name,
        "s3": {"bucket": {"name": bucket}, "object": {"key": key}},
    }
    records = [record]
    for i in range(extra_records):
        records.append({
            "eventName": event_name,
            "s3": {"bucket": {"name": bucket}, "object": {"key": f"{key}-{i}"}},
        })
    return {"Records": records}


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def current_client() -> FakeSearchClient:
    return FakeSearchClient()


@pytest.fixture
def legacy_client() -> FakeSearchClient:
    return FakeSearchClient()


@pytest.fixture
def index_writer(current_client, legacy_client) -> IndexWriter:
    """Writer over fake current (items/_doc) and legacy (items_old/item) clusters."""
    return IndexWriter(
        IndexTarget("current", current_client, "items", "_doc"),
        IndexTarget("legacy", legacy_client, "items_old", "item"),
    )


@pytest.fixture
def object_store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def event_router(object_store, index_writer) -> EventRouter:
    return EventRouter(object_store, index_writer)


@pytest.fixture
def retry_queue() -> FakeRetryQueue:
    return FakeRetryQueue()


@pytest.fixture
def invoker() -> RecordingInvoker:
    return RecordingInvoker()
