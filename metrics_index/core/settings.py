"""
Runtime configuration, read from the environment.

ENV (set before running, or put them in a .env file):
  PINECONE_API_KEY=...
  OPENAI_API_KEY=...
  PINECONE_INDEX_NAME=fields                      # existing index to upsert into
  PINECONE_NAMESPACE=                             # empty = default namespace
  OPENAI_EMBEDDING_MODEL=text-embedding-ada-002
  FIELDS_CSV_PATH=./fields.csv
  UPSERT_BATCH_SIZE=50
  UPSERT_BATCH_DELAY_MS=500
  EMBED_MAX_WORKERS=8
  UPSERT_MAX_SPLIT_DEPTH=1
  UPSERT_MIN_SPLIT_SIZE=10
  LOG_LEVEL=INFO
  LOG_FILE=metrics_ingest.log                     # empty = console only
"""

import os
from dataclasses import dataclass
from typing import List, Mapping, Optional

from metrics_index.core.embeddings import DEFAULT_EMBEDDING_MODEL
from metrics_index.core.errors import ConfigurationError
from metrics_index.core.upserting import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_MAX_SPLIT_DEPTH,
    DEFAULT_MAX_WORKERS,
    DEFAULT_MIN_SPLIT_SIZE,
)

DEFAULT_INDEX_NAME = "fields"
DEFAULT_CSV_PATH = "./fields.csv"
DEFAULT_BATCH_DELAY_MS = 500


@dataclass(frozen=True)
class Settings:
    pinecone_api_key: str
    openai_api_key: str
    index_name: str = DEFAULT_INDEX_NAME
    namespace: str = ""
    embedding_model: str = DEFAULT_EMBEDDING_MODEL
    csv_path: str = DEFAULT_CSV_PATH
    batch_size: int = DEFAULT_BATCH_SIZE
    batch_delay_ms: int = DEFAULT_BATCH_DELAY_MS
    max_workers: int = DEFAULT_MAX_WORKERS
    max_split_depth: int = DEFAULT_MAX_SPLIT_DEPTH
    min_split_size: int = DEFAULT_MIN_SPLIT_SIZE

    @property
    def batch_delay(self) -> float:
        return self.batch_delay_ms / 1000.0


def _get_int(env: Mapping[str, str], key: str, default: int, minimum: int, errors: List[str]) -> int:
    raw = (env.get(key) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        errors.append(f"{key} must be an integer, got '{raw}'")
        return default
    if value < minimum:
        errors.append(f"{key} must be >= {minimum}, got {value}")
    return value


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from env (defaults to os.environ); all problems are reported together."""
    env = os.environ if env is None else env

    errors: List[str] = []
    missing = [key for key in ("PINECONE_API_KEY", "OPENAI_API_KEY") if not (env.get(key) or "").strip()]
    if missing:
        errors.append(
            "Missing required environment variables: " + ", ".join(missing)
            + ". Please set them in your .env file."
        )

    batch_size = _get_int(env, "UPSERT_BATCH_SIZE", DEFAULT_BATCH_SIZE, 1, errors)
    batch_delay_ms = _get_int(env, "UPSERT_BATCH_DELAY_MS", DEFAULT_BATCH_DELAY_MS, 0, errors)
    max_workers = _get_int(env, "EMBED_MAX_WORKERS", DEFAULT_MAX_WORKERS, 1, errors)
    max_split_depth = _get_int(env, "UPSERT_MAX_SPLIT_DEPTH", DEFAULT_MAX_SPLIT_DEPTH, 0, errors)
    min_split_size = _get_int(env, "UPSERT_MIN_SPLIT_SIZE", DEFAULT_MIN_SPLIT_SIZE, 1, errors)

    if errors:
        raise ConfigurationError("\n".join(errors))

    return Settings(
        pinecone_api_key=env["PINECONE_API_KEY"].strip(),
        openai_api_key=env["OPENAI_API_KEY"].strip(),
        index_name=env.get("PINECONE_INDEX_NAME") or DEFAULT_INDEX_NAME,
        namespace=env.get("PINECONE_NAMESPACE") or "",
        embedding_model=env.get("OPENAI_EMBEDDING_MODEL") or DEFAULT_EMBEDDING_MODEL,
        csv_path=env.get("FIELDS_CSV_PATH") or DEFAULT_CSV_PATH,
        batch_size=batch_size,
        batch_delay_ms=batch_delay_ms,
        max_workers=max_workers,
        max_split_depth=max_split_depth,
        min_split_size=min_split_size,
    )
