"""Dual-cluster document indexing via OpenSearch.

Provides:
- Search client construction for the current and legacy clusters
- Version-gated upsert into the current index (external_gt)
- Unconditional upsert into the legacy index (last write wins)
- Deletion from both indexes
- Health check

The two clusters are written one after the other and are not a transaction.
The current index never regresses: a write whose version is not strictly
greater than the stored one is rejected by the cluster (HTTP 409) and treated
as success. The legacy index has no such gate, so under reordered delivery it
may hold an older body until the next write for the same document.
"""

import logging
from typing import Any, Optional
from urllib.parse import quote

from opensearchpy import AsyncOpenSearch
from opensearchpy.exceptions import ConflictError, NotFoundError, TransportError

from ..config import settings
from ..schemas.document import IndexedDocument, composite_id

logger = logging.getLogger(__name__)

VERSION_TYPE = "external_gt"


class IndexWriteError(Exception):
    """Raised when a write to either cluster fails."""

    def __init__(self, message: str, target: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.target = target
        self.status_code = status_code


# ---- Client Management ----

def build_search_client(
    url: str,
    username: str = "",
    password: str = "",
    verify_certs: bool = True,
) -> AsyncOpenSearch:
    """Create an async OpenSearch client for one cluster.

    Transport-level retries are disabled: a failed write fails the invocation
    and is retried by the job runtime or the retry queue instead.
    """
    http_auth = (username, password) if username else None
    return AsyncOpenSearch(
        hosts=[url],
        http_auth=http_auth,
        verify_certs=verify_certs,
        timeout=settings.search_timeout,
        max_retries=0,
        retry_on_timeout=False,
    )


class IndexTarget:
    """One logical index destination: a client plus index and type names."""

    def __init__(self, name: str, client: Any, index: str, doc_type: str = "_doc"):
        self.name = name
        self.client = client
        self.index = index
        self.doc_type = doc_type

    def _doc_path(self, doc_id: str) -> str:
        # Composite ids contain "/", which must not split the URL path
        return "/".join(
            quote(part, safe="") for part in ("", self.index, self.doc_type, doc_id)
        )

    async def put(
        self,
        doc_id: str,
        routing: str,
        body: dict,
        version: Optional[int] = None,
    ) -> dict:
        """Index a document. With a version, the write is gated by external_gt."""
        params = {"routing": routing}
        if version is not None:
            params["version"] = str(version)
            params["version_type"] = VERSION_TYPE
        return await self.client.transport.perform_request(
            "PUT", self._doc_path(doc_id), params=params, body=body
        )

    async def remove(self, doc_id: str, routing: str) -> dict:
        """Delete a document by id."""
        return await self.client.transport.perform_request(
            "DELETE", self._doc_path(doc_id), params={"routing": routing}
        )

    async def close(self) -> None:
        await self.client.close()

    def __repr__(self) -> str:
        return f"IndexTarget({self.name!r}, index={self.index!r}, doc_type={self.doc_type!r})"


def _write_error(target: IndexTarget, action: str, doc_id: str, exc: TransportError) -> IndexWriteError:
    status = exc.status_code if isinstance(exc.status_code, int) else None
    return IndexWriteError(
        f"Failed to {action} {doc_id} in {target.name} index: {str(exc)}",
        target=target.name,
        status_code=status,
    )


# ---- Index Writer ----

class IndexWriter:
    """Writes documents to the current and legacy indexes."""

    def __init__(
        self,
        current: IndexTarget,
        legacy: IndexTarget,
        ignore_missing_on_delete: bool = True,
    ):
        self.current = current
        self.legacy = legacy
        self.ignore_missing_on_delete = ignore_missing_on_delete

    async def upsert(self, document: IndexedDocument) -> None:
        """
        Write a document to both indexes.

        The current index write is version-gated; a version conflict means a
        newer or equal version is already stored and is not an error. Any
        other current-index failure aborts before the legacy write.

        Raises:
            IndexWriteError: If either write fails for a reason other than a
                version conflict on the current index
        """
        doc_id = document.composite_id
        routing = document.routing
        body = document.index_body()

        try:
            await self.current.put(doc_id, routing, body, version=document.version)
        except ConflictError:
            logger.debug(
                "Version conflict for %s (version %d) in current index, skipping",
                doc_id, document.version,
            )
        except TransportError as e:
            raise _write_error(self.current, "index", doc_id, e) from e

        try:
            await self.legacy.put(doc_id, routing, body)
        except TransportError as e:
            raise _write_error(self.legacy, "index", doc_id, e) from e

        logger.info("Indexed %s (version %d)", doc_id, document.version)

    async def delete(self, library_id: int, key: str) -> None:
        """
        Delete a document from both indexes.

        Raises:
            IndexWriteError: If either delete fails. A missing document is
                only an error when ignore_missing_on_delete is off.
        """
        doc_id = composite_id(library_id, key)
        routing = str(library_id)

        for target in (self.current, self.legacy):
            try:
                await target.remove(doc_id, routing)
            except NotFoundError as e:
                if not self.ignore_missing_on_delete:
                    raise _write_error(target, "delete", doc_id, e) from e
                logger.debug("%s not found in %s index, nothing to delete", doc_id, target.name)
            except TransportError as e:
                raise _write_error(target, "delete", doc_id, e) from e

        logger.info("Deleted %s", doc_id)

    async def close(self) -> None:
        await self.current.close()
        await self.legacy.close()


def build_index_writer() -> IndexWriter:
    """Build the writer for both clusters from settings."""
    current = IndexTarget(
        "current",
        build_search_client(
            settings.current_index_url,
            settings.current_index_username,
            settings.current_index_password,
            settings.search_verify_certs,
        ),
        settings.current_index_name,
        settings.current_index_doc_type,
    )
    legacy = IndexTarget(
        "legacy",
        build_search_client(
            settings.legacy_index_url,
            settings.legacy_index_username,
            settings.legacy_index_password,
            settings.search_verify_certs,
        ),
        settings.legacy_index_name,
        settings.legacy_index_doc_type,
    )
    return IndexWriter(current, legacy, ignore_missing_on_delete=settings.delete_ignore_missing)


# ---- Health Check ----

async def check_search_health(writer: IndexWriter) -> dict:
    """Ping both clusters. Returns only status per cluster, no error details."""
    result = {}
    for target in (writer.current, writer.legacy):
        try:
            healthy = await target.client.ping()
        except Exception as e:
            logger.warning("Search health check failed for %s: %s", target.name, e)
            healthy = False
        result[target.name] = "healthy" if healthy else "degraded"
    return result
