"""Pydantic schemas package."""

from .document import IndexedDocument, composite_id
from .envelope import DrainOutcome, InvocationContext, RetryEnvelope
from .ingress import EnqueuedJobs, HealthResponse
from .notification import EventKind, Notification

__all__ = [
    # Ingress schemas
    "EnqueuedJobs",
    "HealthResponse",
    # Document schemas
    "IndexedDocument",
    "composite_id",
    # Notification schemas
    "EventKind",
    "Notification",
    # Retry queue schemas
    "DrainOutcome",
    "InvocationContext",
    "RetryEnvelope",
]
