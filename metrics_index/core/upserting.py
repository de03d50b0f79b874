"""
Batch upsert of metric records into Pinecone.

What this module does:
- Reads the index dimension once, before building anything
- Embeds every record on a bounded thread pool, fitting vectors to the index
- Upserts in fixed-size batches, strictly in order, pausing between batches
- On a "payload too large" rejection, halves the batch and retries the halves
  (one level by default, configurable depth); anything still rejected is
  logged and reported as failed
- Any other store failure drops that batch and moves on

Ids are derived from metric names, so re-running over the same CSV overwrites
the same vectors.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, List, Sequence

from metrics_index.core.batching import chunks
from metrics_index.core.embeddings import OpenAIEmbedder
from metrics_index.core.errors import EmbeddingProviderError, PayloadTooLarge, StoreOperationError
from metrics_index.core.records import RawRecord, StorageEntry, build_storage_entry, make_record_id
from metrics_index.core.vector_store import PineconeStore

DEFAULT_BATCH_SIZE = 50
DEFAULT_BATCH_DELAY = 0.5  # seconds
DEFAULT_MAX_WORKERS = 8
DEFAULT_MAX_SPLIT_DEPTH = 1
DEFAULT_MIN_SPLIT_SIZE = 10

logger = logging.getLogger(__name__)


@dataclass
class UpsertResult:
    attempted: int = 0
    upserted: int = 0
    batches: int = 0
    resized: int = 0
    failed_ids: List[str] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return self.attempted - self.upserted


class UpsertPipeline:
    def __init__(
        self,
        store: PineconeStore,
        embedder: OpenAIEmbedder,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_delay: float = DEFAULT_BATCH_DELAY,
        max_workers: int = DEFAULT_MAX_WORKERS,
        max_split_depth: int = DEFAULT_MAX_SPLIT_DEPTH,
        min_split_size: int = DEFAULT_MIN_SPLIT_SIZE,
        strict_embeddings: bool = True,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        if max_workers <= 0:
            raise ValueError(f"max_workers must be positive, got {max_workers}")
        if max_split_depth < 0:
            raise ValueError(f"max_split_depth must be >= 0, got {max_split_depth}")
        self.store = store
        self.embedder = embedder
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.max_workers = max_workers
        self.max_split_depth = max_split_depth
        self.min_split_size = min_split_size
        self.strict_embeddings = strict_embeddings
        self.sleep = sleep

    def run(self, records: Sequence[RawRecord]) -> UpsertResult:
        dimension = self.store.describe_dimension()
        logger.info("Pinecone index has dimension: %s", dimension)

        result = UpsertResult(attempted=len(records))
        entries = self.build_entries(records, dimension, result)

        batches = chunks(entries, self.batch_size)
        result.batches = len(batches)
        logger.info("Splitting upsert into %s batches...", len(batches))

        for i, batch in enumerate(batches):
            label = f"batch {i + 1}/{len(batches)}"
            logger.info("Upserting %s (%s records)...", label, len(batch))
            result.upserted += self._submit(batch, label, 0, result)
            if i < len(batches) - 1 and self.batch_delay > 0:
                self.sleep(self.batch_delay)

        logger.info("Upsert completed: %s/%s records inserted", result.upserted, result.attempted)
        if result.failed:
            logger.warning("%s records were not inserted: %s", result.failed, result.failed_ids)
        return result

    def build_entries(self, records: Sequence[RawRecord], dimension: int, result: UpsertResult) -> List[StorageEntry]:
        logger.info("Generating embeddings for %s records (max_workers=%s)...", len(records), self.max_workers)
        entries: List[StorageEntry] = []
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = [pool.submit(build_storage_entry, r, self.embedder, dimension) for r in records]
            for record, future in zip(records, futures):
                try:
                    built = future.result()
                except EmbeddingProviderError as e:
                    if self.strict_embeddings:
                        for pending in futures:
                            pending.cancel()
                        raise
                    logger.error("Skipping record '%s': %s", record.name, e)
                    result.failed_ids.append(make_record_id(record.name))
                    continue
                if built.resized:
                    result.resized += 1
                entries.append(built.entry)
        return entries

    def _submit(self, batch: List[StorageEntry], label: str, depth: int, result: UpsertResult) -> int:
        try:
            delivered = self.store.upsert(batch)
        except PayloadTooLarge as e:
            logger.error("Error in %s: %s", label, e)
            if depth >= self.max_split_depth or len(batch) <= max(self.min_split_size, 1):
                logger.error("Failed to upsert %s (%s records), payload too large", label, len(batch))
                result.failed_ids.extend(entry.id for entry in batch)
                return 0
            logger.info("Batch too large, retrying %s with smaller chunks...", label)
            delivered = 0
            for j, piece in enumerate(chunks(batch, len(batch) // 2)):
                delivered += self._submit(piece, f"{label} part {j + 1}", depth + 1, result)
            return delivered
        except StoreOperationError as e:
            logger.error("Failed to upsert %s: %s. Continuing with next batch.", label, e)
            result.failed_ids.extend(entry.id for entry in batch)
            return 0
        logger.info("%s completed successfully, upserted %s records", label.capitalize(), delivered)
        return delivered
