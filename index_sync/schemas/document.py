"""Pydantic schema for documents stored in the object store and indexed."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def composite_id(library_id: int, key: str) -> str:
    """Build the index document id shared by both clusters."""
    return f"{library_id}/{key}"


class IndexedDocument(BaseModel):
    """
    A stored object decoded into an indexable document.

    Only the addressing fields are typed; every other body field is kept
    verbatim and sent to the index unchanged.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    library_id: int = Field(..., alias="libraryID", description="Partition and routing key")
    key: str = Field(..., min_length=1, description="Object key within the library")
    version: int = Field(..., ge=0, description="Monotonic version assigned upstream")

    @property
    def composite_id(self) -> str:
        return composite_id(self.library_id, self.key)

    @property
    def routing(self) -> str:
        return str(self.library_id)

    def index_body(self) -> dict[str, Any]:
        """Body written to the indexes. The key is redundant with the id."""
        return self.model_dump(by_alias=True, exclude={"key"})
