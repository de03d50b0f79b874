#!/usr/bin/env python3
"""
Load the metrics CSV into Pinecone and run an example recommendation query.

What this script does:
- Reads metric rows (Name, Description, Category, Integration, Url, Selectable with)
- Embeds each row with OpenAI and fits it to the Pinecone index dimension
- Upserts in batches of 50 with a 500ms pause, splitting oversize batches
- Prints the metrics most similar to 'cpc' for the facebook-ads integration

Configuration comes from the environment (see metrics_index/core/settings.py);
the flags below override it for a single run.

Usage:
  python -m metrics_index.create_metrics_database
  python -m metrics_index.create_metrics_database --csv data/fields.csv --batch-size 25
"""

import argparse
import dataclasses
import logging
import os
import sys
from typing import List, Optional, Sequence

from dotenv import load_dotenv

from metrics_index.core.embeddings import OpenAIEmbedder, get_openai_client
from metrics_index.core.recommendations import DEFAULT_TOP_K, format_recommendation, get_recommendations
from metrics_index.core.records import load_csv_records
from metrics_index.core.settings import Settings, load_settings
from metrics_index.core.upserting import UpsertPipeline, UpsertResult
from metrics_index.core.vector_store import PineconeStore, get_pinecone_index

DEFAULT_QUERY_METRIC = "cpc"
DEFAULT_QUERY_INTEGRATION = "facebook-ads"

logger = logging.getLogger(__name__)


# -------------------- logging --------------------

def setup_logging(level: str = "INFO", log_file: str = "metrics_ingest.log") -> logging.Logger:
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )
    return logging.getLogger(__name__)


# -------------------- cli --------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Upsert metric definitions into Pinecone and query recommendations")
    parser.add_argument("--csv", help="Path to the metrics CSV (env FIELDS_CSV_PATH)")
    parser.add_argument("--index", help="Pinecone index name (env PINECONE_INDEX_NAME)")
    parser.add_argument("--namespace", help="Pinecone namespace (env PINECONE_NAMESPACE)")
    parser.add_argument("--batch-size", type=int, help="Records per upsert request (env UPSERT_BATCH_SIZE)")
    parser.add_argument("--batch-delay-ms", type=int, help="Pause between batches (env UPSERT_BATCH_DELAY_MS)")
    parser.add_argument("--max-workers", type=int, help="Concurrent embedding requests (env EMBED_MAX_WORKERS)")
    parser.add_argument("--max-split-depth", type=int, help="Halving levels for oversize batches (env UPSERT_MAX_SPLIT_DEPTH)")
    parser.add_argument(
        "--skip-failed-embeddings",
        action="store_true",
        help="Skip records whose embedding fails instead of aborting the run",
    )
    parser.add_argument("--query-metric", default=DEFAULT_QUERY_METRIC, help="Reference metric for the example query")
    parser.add_argument("--query-integration", default=DEFAULT_QUERY_INTEGRATION, help="Integration filter for the example query")
    parser.add_argument("--top-k", type=int, default=DEFAULT_TOP_K, help="Number of recommendations")
    parser.add_argument("--skip-query", action="store_true", help="Only upsert, no example query")
    return parser


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    overrides = {
        "csv_path": args.csv,
        "index_name": args.index,
        "namespace": args.namespace,
        "batch_size": args.batch_size,
        "batch_delay_ms": args.batch_delay_ms,
        "max_workers": args.max_workers,
        "max_split_depth": args.max_split_depth,
    }
    return dataclasses.replace(settings, **{k: v for k, v in overrides.items() if v is not None})


# -------------------- main --------------------

def create_metrics_database(settings: Settings, args: argparse.Namespace) -> UpsertResult:
    store = PineconeStore(get_pinecone_index(settings.pinecone_api_key, settings.index_name), settings.namespace)
    embedder = OpenAIEmbedder(get_openai_client(settings.openai_api_key), settings.embedding_model)

    logger.info("Loading CSV data from %s", settings.csv_path)
    metrics = load_csv_records(settings.csv_path)

    logger.info("Processing %s metrics in batches of %s...", len(metrics), settings.batch_size)
    pipeline = UpsertPipeline(
        store,
        embedder,
        batch_size=settings.batch_size,
        batch_delay=settings.batch_delay,
        max_workers=settings.max_workers,
        max_split_depth=settings.max_split_depth,
        min_split_size=settings.min_split_size,
        strict_embeddings=not args.skip_failed_embeddings,
    )
    result = pipeline.run(metrics)
    print(f"Upsert completed: {result.upserted}/{result.attempted} records inserted")

    if not args.skip_query:
        logger.info("Getting recommendations for '%s'...", args.query_metric)
        matches = get_recommendations(
            store,
            args.query_metric,
            {"integration": args.query_integration},
            top_k=args.top_k,
        )
        print("Recommended metrics:")
        for match in matches:
            print(format_recommendation(match))

    return result


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv(override=True)
    args = build_parser().parse_args(list(argv) if argv is not None else None)
    log_level = os.getenv("LOG_LEVEL", "INFO")
    log_file = os.getenv("LOG_FILE", "metrics_ingest.log")
    try:
        setup_logging(log_level, log_file)
    except OSError as e:
        setup_logging(log_level, log_file="")
        logger.error("Cannot open log file '%s': %s", log_file, e)
        return 1

    try:
        settings = apply_overrides(load_settings(), args)
        logger.info(
            "Config: index=%s namespace=%s model=%s batch_size=%s delay_ms=%s",
            settings.index_name, settings.namespace or "(default)", settings.embedding_model,
            settings.batch_size, settings.batch_delay_ms,
        )
        create_metrics_database(settings, args)
    except Exception as e:
        logger.error("Error in create_metrics_database: %s", e)
        logger.exception("Full traceback:")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
