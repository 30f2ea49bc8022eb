"""Pydantic schemas for the retry queue and the drain chain."""

import json
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class RetryEnvelope(BaseModel):
    """A queued, at-least-once-delivered wrapper around one failed event."""

    message_id: str = Field(..., description="Queue-assigned message id")
    body: str = Field(..., description="The failed event, JSON-encoded verbatim")
    receipt_handle: str = Field(..., description="Handle valid for this delivery only")
    visible_at: float = Field(
        ..., description="Epoch seconds after which the message is redeliverable"
    )
    receive_count: int = Field(1, ge=1, description="Number of deliveries so far")

    def decode_event(self) -> dict[str, Any]:
        """Decode the wrapped event payload."""
        return json.loads(self.body)


class InvocationContext(BaseModel):
    """Identity of the running drain job, passed through when re-chaining."""

    function_name: str = Field(..., examples=["drain_retry_queue"])
    function_version: str = Field(..., examples=["arq:index-sync"])


class DrainOutcome(str, Enum):
    """Result of a single drain hop."""

    EMPTY = "empty"
    FAILED = "failed"
    PROCESSED = "processed"
