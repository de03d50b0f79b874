"""
Metric records: CSV rows in, Pinecone-ready vectors out.

CSV columns (header names as exported from the fields sheet):
  Name, Description, Category, Integration, Url, Selectable with (optional)

Vector format (example):
{
  "id": "cost-per-click",
  "values": [/* embedding, index dimension */],
  "metadata": {
    "name": "Cost Per Click",
    "category": "Cost",
    "integration": "facebook-ads",
    "description": "...",
    "url": "...",
    "selectableWith": ""
  }
}
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, NamedTuple

import pandas as pd

from metrics_index.core.embeddings import OpenAIEmbedder, generate_embedding

REQUIRED_COLUMNS = ["Name", "Description", "Category", "Integration", "Url"]
SELECTABLE_WITH_COLUMN = "Selectable with"


# -------------------- utilities --------------------

def ensure_str(x: Any) -> str:
    return "" if x is None else str(x)


def make_record_id(name: str) -> str:
    """Deterministic vector id: lowercase, each whitespace run becomes one hyphen."""
    return re.sub(r"\s+", "-", ensure_str(name).lower())


# -------------------- models --------------------

@dataclass(frozen=True)
class RawRecord:
    name: str
    description: str
    category: str
    integration: str
    url: str
    selectable_with: str = ""

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "RawRecord":
        return cls(
            name=ensure_str(row.get("Name")),
            description=ensure_str(row.get("Description")),
            category=ensure_str(row.get("Category")),
            integration=ensure_str(row.get("Integration")),
            url=ensure_str(row.get("Url")),
            selectable_with=ensure_str(row.get(SELECTABLE_WITH_COLUMN)),
        )


@dataclass(frozen=True)
class StorageEntry:
    id: str
    values: List[float]
    metadata: Dict[str, str] = field(default_factory=dict)

    def to_vector(self) -> Dict[str, Any]:
        return {"id": self.id, "values": self.values, "metadata": dict(self.metadata)}


class BuiltEntry(NamedTuple):
    entry: StorageEntry
    resized: bool


# -------------------- records builder --------------------

def build_embedding_text(record: RawRecord) -> str:
    return (
        f"{record.name}: {record.description} "
        f"Category: {record.category} Integration: {record.integration}"
    )


def build_metadata(record: RawRecord) -> Dict[str, str]:
    return {
        "name": record.name,
        "category": record.category,
        "integration": record.integration,
        "description": record.description,
        "url": record.url,
        "selectableWith": record.selectable_with or "",
    }


def build_storage_entry(record: RawRecord, embedder: OpenAIEmbedder, dimension: int) -> BuiltEntry:
    """Embed one record and wrap it as a vector of exactly `dimension` values.

    EmbeddingProviderError from the embedder propagates unchanged; this layer
    does not retry.
    """
    outcome = generate_embedding(embedder, build_embedding_text(record), dimension)
    entry = StorageEntry(
        id=make_record_id(record.name),
        values=outcome.values,
        metadata=build_metadata(record),
    )
    return BuiltEntry(entry, outcome.resized)


# -------------------- CSV loading --------------------

def load_csv_records(path: str) -> List[RawRecord]:
    """Read the metrics CSV into RawRecords. Blank lines are skipped."""
    df = pd.read_csv(path, dtype=str, keep_default_na=False, skip_blank_lines=True)
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"CSV file {path} is missing required columns: {', '.join(missing)}")
    return [RawRecord.from_row(row) for row in df.to_dict(orient="records")]
