"""
Pytest configuration and shared fixtures for the metrics index tests.

Provides in-memory stand-ins for the Pinecone index and the OpenAI client that
follow the SDK call shapes used by metrics_index.core, so the real adapters
run unchanged against them.
"""

import math
import threading
from types import SimpleNamespace
from typing import Dict, Iterable, List, Optional

import pytest

from metrics_index.core.embeddings import OpenAIEmbedder
from metrics_index.core.records import RawRecord
from metrics_index.core.vector_store import PineconeStore


class FakeIndex:
    """Pinecone Index stand-in.

    - max_batch: upserts with more vectors raise the gRPC "message length too large" error
    - fail_calls: 0-based upsert call numbers that raise a generic service error
    """

    def __init__(self, dimension: int = 1024, max_batch: Optional[int] = None, fail_calls: Iterable[int] = ()):
        self.dimension = dimension
        self.max_batch = max_batch
        self.fail_calls = set(fail_calls)
        self.vectors: Dict[str, dict] = {}
        self.upsert_calls: List[int] = []
        self.fetch_calls: List[List[str]] = []
        self.query_calls: List[dict] = []

    def describe_index_stats(self, **kwargs):
        return SimpleNamespace(dimension=self.dimension, total_vector_count=len(self.vectors))

    def upsert(self, vectors, namespace=""):
        call_no = len(self.upsert_calls)
        self.upsert_calls.append(len(vectors))
        if call_no in self.fail_calls:
            raise RuntimeError("(503) Service Unavailable")
        if self.max_batch is not None and len(vectors) > self.max_batch:
            raise RuntimeError(
                "StatusCode.RESOURCE_EXHAUSTED: grpc: received message length too large (4194305 vs. 4194304)"
            )
        for v in vectors:
            self.vectors[v["id"]] = dict(v)
        return SimpleNamespace(upserted_count=len(vectors))

    def fetch(self, ids, namespace=""):
        self.fetch_calls.append(list(ids))
        found = {
            i: SimpleNamespace(id=i, values=self.vectors[i]["values"], metadata=self.vectors[i]["metadata"])
            for i in ids if i in self.vectors
        }
        return SimpleNamespace(vectors=found, namespace=namespace)

    def query(self, vector, top_k, namespace="", filter=None, include_metadata=False):
        self.query_calls.append({"vector": vector, "top_k": top_k, "filter": filter})
        matches = []
        for v in self.vectors.values():
            if not _matches_filter(v["metadata"], filter):
                continue
            matches.append(SimpleNamespace(id=v["id"], score=_cosine(vector, v["values"]), metadata=v["metadata"]))
        matches.sort(key=lambda m: m.score, reverse=True)
        return SimpleNamespace(matches=matches[:top_k])


def _matches_filter(metadata: dict, flt: Optional[dict]) -> bool:
    for key, cond in (flt or {}).items():
        expected = cond.get("$eq") if isinstance(cond, dict) else cond
        if metadata.get(key) != expected:
            return False
    return True


def _cosine(a: List[float], b: List[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


class FakeOpenAI:
    """OpenAI client stand-in: client.embeddings.create(model=..., input=...)."""

    def __init__(self, native_dimension: int = 1536, fail_on: Iterable[str] = ()):
        self.native_dimension = native_dimension
        self.fail_on = list(fail_on)
        self.inputs: List[str] = []
        self._lock = threading.Lock()
        self.embeddings = SimpleNamespace(create=self._create)

    def _create(self, model, input):
        with self._lock:
            self.inputs.append(input)
        if any(marker in input for marker in self.fail_on):
            raise RuntimeError("Error code: 429 - rate limit exceeded")
        seed = sum(ord(c) for c in input)
        embedding = [((seed + i) % 13) / 13.0 for i in range(self.native_dimension)]
        return SimpleNamespace(data=[SimpleNamespace(embedding=embedding, index=0)], model=model)


def make_records(count: int) -> List[RawRecord]:
    return [
        RawRecord(
            name=f"Metric {i}",
            description=f"Description of metric {i}",
            category="Cost" if i % 2 else "Engagement",
            integration="facebook-ads" if i % 3 else "google-ads",
            url=f"https://example.com/metrics/{i}",
        )
        for i in range(count)
    ]


@pytest.fixture
def fake_index() -> FakeIndex:
    return FakeIndex(dimension=1024)


@pytest.fixture
def store(fake_index: FakeIndex) -> PineconeStore:
    return PineconeStore(fake_index)


@pytest.fixture
def fake_openai() -> FakeOpenAI:
    return FakeOpenAI(native_dimension=1536)


@pytest.fixture
def embedder(fake_openai: FakeOpenAI) -> OpenAIEmbedder:
    return OpenAIEmbedder(fake_openai, model="text-embedding-ada-002")


@pytest.fixture
def sleeps() -> List[float]:
    """Collects the delays a pipeline asked for instead of sleeping."""
    return []
