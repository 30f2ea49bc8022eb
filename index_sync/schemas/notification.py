"""Pydantic schemas for object store change notifications."""

from enum import Enum

from pydantic import BaseModel, Field


class EventKind(str, Enum):
    """Classification of an object store event."""

    CREATED = "created"
    REMOVED = "removed"
    OTHER = "other"

    @classmethod
    def from_event_name(cls, event_name: str) -> "EventKind":
        """
        Classify an S3-style event name.

        MinIO prefixes names with "s3:" ("s3:ObjectCreated:Put"), S3 does not
        ("ObjectCreated:Put"). Both forms are accepted.
        """
        name = event_name[3:] if event_name.startswith("s3:") else event_name
        if name.startswith("ObjectCreated"):
            return cls.CREATED
        if name.startswith("ObjectRemoved"):
            return cls.REMOVED
        return cls.OTHER


class Notification(BaseModel):
    """A single object store change event, addressed by bucket and key."""

    event_kind: EventKind = Field(..., description="Created/updated, removed, or other")
    event_name: str = Field(
        ...,
        description="Raw event name as delivered",
        examples=["ObjectCreated:Put", "s3:ObjectRemoved:Delete"],
    )
    bucket: str = Field(..., min_length=1, description="Object store bucket (container)")
    key: str = Field(
        ...,
        min_length=1,
        description="Object key, <libraryID>/<key>",
        examples=["5/ABCD1234"],
    )
