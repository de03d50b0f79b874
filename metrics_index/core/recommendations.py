"""
Metric recommendations: nearest neighbours of a stored metric.

The reference metric is looked up by the same id the upsert pipeline wrote,
and its stored vector is used as the query. Matches come back in Pinecone's
order (descending score) without any re-ranking.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from metrics_index.core.errors import ReferenceNotFound
from metrics_index.core.records import ensure_str, make_record_id
from metrics_index.core.vector_store import PineconeStore

DEFAULT_TOP_K = 5

logger = logging.getLogger(__name__)


def build_equality_filter(filters: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    """Build a Pinecone metadata filter of $eq clauses; empty values are ignored."""
    filt: Dict[str, Any] = {}
    for key, val in (filters or {}).items():
        if isinstance(val, str):
            val = val.strip()
        if val is None or not ensure_str(val):
            continue
        filt[key] = {"$eq": val}
    return filt or None


def get_recommendations(
    store: PineconeStore,
    metric_name: str,
    filters: Optional[Mapping[str, Any]] = None,
    top_k: int = DEFAULT_TOP_K,
) -> List[Any]:
    record_id = make_record_id(metric_name)
    vector = store.fetch_vector(record_id)
    if vector is None:
        raise ReferenceNotFound(metric_name, record_id)

    metadata_filter = build_equality_filter(filters)
    logger.debug("Querying neighbours of '%s' top_k=%s filter=%s", record_id, top_k, metadata_filter)
    return store.query(vector, top_k, metadata_filter)


def _field(match: Any, name: str) -> Any:
    if isinstance(match, dict):
        return match.get(name)
    return getattr(match, name, None)


def format_recommendation(match: Any) -> str:
    metadata = _field(match, "metadata") or {}
    score = _field(match, "score") or 0.0
    return f"- {metadata.get('name', _field(match, 'id'))} ({score:.2f}): {metadata.get('description', '')}"
