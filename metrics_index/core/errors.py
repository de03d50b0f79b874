"""
Error taxonomy for the metrics index ingestion and recommendation flow.

Record- and batch-level errors are caught by the upsert pipeline and reported
in its result; setup errors propagate to the entry point.

A dimension mismatch between an embedding and the index is not an exception:
embeddings.generate_embedding fixes the vector and logs a "DimensionMismatch"
warning, and the pipeline counts it in UpsertResult.resized.
"""


class MetricsIndexError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(MetricsIndexError):
    """Required environment configuration is missing or invalid."""


class EmbeddingProviderError(MetricsIndexError):
    """The embedding provider call failed for a single text."""


class StoreOperationError(MetricsIndexError):
    """A vector store call failed."""


class PayloadTooLarge(StoreOperationError):
    """An upsert request exceeded the store's transport size limit."""


class ReferenceNotFound(MetricsIndexError):
    """The reference metric of a recommendation query is not in the index."""

    def __init__(self, metric_name: str, record_id: str):
        super().__init__(f'Metric "{metric_name}" not found in the database (id={record_id})')
        self.metric_name = metric_name
        self.record_id = record_id
