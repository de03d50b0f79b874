"""
Pinecone index adapter.

Exposes only what the ingestion and recommendation flow needs from the index:
its dimension, batched upserts, fetch-by-id and filtered similarity queries.
Store errors are translated into the package's error types here, so callers
never inspect Pinecone exceptions themselves.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from pinecone import Pinecone

from metrics_index.core.errors import PayloadTooLarge, StoreOperationError
from metrics_index.core.records import StorageEntry

logger = logging.getLogger(__name__)

# Pinecone rejects upsert requests above ~4MB (2MB on some plans). Depending on
# transport the error shows up as an HTTP 413 or as a gRPC/HTTP message.
# Each signature matches when all of its parts occur in the error text.
PAYLOAD_TOO_LARGE_SIGNATURES = (
    ("message length too large",),
    ("request entity too large",),
    ("request size", "exceeds the maximum"),
)


def is_payload_too_large(exc: BaseException) -> bool:
    """Return True when a store error means the request payload was oversize."""
    if isinstance(exc, PayloadTooLarge):
        return True
    if getattr(exc, "status", None) == 413:
        return True
    message = str(exc).lower()
    return any(all(part in message for part in sig) for sig in PAYLOAD_TOO_LARGE_SIGNATURES)


def get_pinecone_index(api_key: str, index_name: str):
    """Return a Pinecone Index handle for an existing index."""
    if not api_key:
        raise RuntimeError("PINECONE_API_KEY not set in environment")
    pc = Pinecone(api_key=api_key)
    return pc.Index(index_name)


class PineconeStore:
    def __init__(self, index, namespace: str = ""):
        self.index = index
        self.namespace = namespace or ""

    def describe_dimension(self) -> int:
        try:
            stats = self.index.describe_index_stats()
        except Exception as e:
            raise StoreOperationError(f"describe_index_stats failed: {e}") from e
        dimension = getattr(stats, "dimension", None)
        if dimension is None and isinstance(stats, dict):
            dimension = stats.get("dimension")
        if not dimension:
            raise StoreOperationError("Index stats did not report a dimension")
        return int(dimension)

    def upsert(self, batch: Sequence[StorageEntry]) -> int:
        vectors = [entry.to_vector() for entry in batch]
        try:
            self.index.upsert(vectors=vectors, namespace=self.namespace)
        except Exception as e:
            if is_payload_too_large(e):
                raise PayloadTooLarge(str(e)) from e
            raise StoreOperationError(str(e)) from e
        return len(vectors)

    def fetch_vector(self, record_id: str) -> Optional[List[float]]:
        try:
            resp = self.index.fetch(ids=[record_id], namespace=self.namespace)
        except Exception as e:
            raise StoreOperationError(f"fetch of '{record_id}' failed: {e}") from e
        vectors = getattr(resp, "vectors", None) or {}
        record = vectors.get(record_id)
        if record is None:
            return None
        values = getattr(record, "values", None)
        if values is None and isinstance(record, dict):
            values = record.get("values")
        return list(values) if values else None

    def query(
        self,
        vector: List[float],
        top_k: int,
        metadata_filter: Optional[Dict[str, Any]] = None,
    ) -> List[Any]:
        try:
            resp = self.index.query(
                vector=vector,
                top_k=top_k,
                namespace=self.namespace,
                filter=metadata_filter,
                include_metadata=True,
            )
        except Exception as e:
            raise StoreOperationError(f"query failed: {e}") from e
        return list(getattr(resp, "matches", []) or [])
