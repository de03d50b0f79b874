"""
OpenAI embedding adapter.

Wraps the OpenAI embeddings endpoint (one call per text) and fits each returned
vector to the dimension of the destination Pinecone index. Fitting is lossy:
truncating an embedding or padding it with zeros keeps similarity only
approximately meaningful, so every mismatch is logged.
"""

import logging
from typing import List, NamedTuple, Optional

from openai import OpenAI

from metrics_index.core.errors import EmbeddingProviderError

DEFAULT_EMBEDDING_MODEL = "text-embedding-ada-002"

logger = logging.getLogger(__name__)


class OpenAIEmbedder:
    def __init__(self, client: OpenAI, model: str = DEFAULT_EMBEDDING_MODEL):
        self.client = client
        self.model = model

    def embed(self, text: str) -> List[float]:
        try:
            resp = self.client.embeddings.create(model=self.model, input=text)
            return list(resp.data[0].embedding)
        except Exception as e:
            raise EmbeddingProviderError(
                f"Embedding request to model '{self.model}' failed: {e}"
            ) from e


def get_openai_client(api_key: Optional[str] = None) -> OpenAI:
    """Return an OpenAI client. If api_key is None, uses OPENAI_API_KEY from env."""
    if api_key:
        return OpenAI(api_key=api_key)
    return OpenAI()


class EmbeddingOutcome(NamedTuple):
    values: List[float]
    native_dimension: int

    @property
    def resized(self) -> bool:
        return len(self.values) != self.native_dimension


def resize_embedding(vector: List[float], dimension: int) -> List[float]:
    """Truncate to the first `dimension` components or right-pad with zeros."""
    if len(vector) > dimension:
        return list(vector[:dimension])
    if len(vector) < dimension:
        return list(vector) + [0.0] * (dimension - len(vector))
    return list(vector)


def generate_embedding(embedder: OpenAIEmbedder, text: str, dimension: int) -> EmbeddingOutcome:
    """Embed text and fit the result to the index dimension."""
    native = embedder.embed(text)
    if len(native) != dimension:
        logger.warning(
            "DimensionMismatch: embedding dimension (%s) doesn't match index dimension (%s); %s",
            len(native), dimension,
            "truncating" if len(native) > dimension else "padding with zeros",
        )
    return EmbeddingOutcome(resize_embedding(native, dimension), len(native))
