"""Ingest a repository's issues into a JSON-lines file until Ctrl-C.

Usage:
    python scripts/ingest_issues.py <owner> <repository> [--output PATH] [--since ISO8601]

Examples:
    python scripts/ingest_issues.py octocat hello-world
    python scripts/ingest_issues.py octocat hello-world --lookback-days 30 --output issues.jsonl
    GITHUB_TOKEN=ghp_... python scripts/ingest_issues.py octocat hello-world --since 2024-01-01T00:00:00Z

Offsets are committed under --offsets-dir, so a second run resumes where the
first one stopped.
"""

import argparse
import asyncio
import sys

from issuestream.core.config import settings
from issuestream.core.datetime_utils import parse_iso
from issuestream.core.exceptions import ConfigurationError, OffsetCommitError
from issuestream.core.logging import LoggerConfigurator, logger
from issuestream.domains.offsets import FilesystemOffsetStore
from issuestream.domains.sinks import JsonLinesSink
from issuestream.platform.rate_limiters import stop_shared_rate_limiters
from issuestream.platform.sync.config import IngestConfig
from issuestream.platform.sync.factory import IngestionWorkerFactory


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Incremental GitHub issues ingestion")
    parser.add_argument("owner", help="Repository owner (user or organization)")
    parser.add_argument("repository", help="Repository name")
    parser.add_argument("--topic", default=None, help="Topic written into every event")
    parser.add_argument("--lookback-days", type=float, default=None, help="Initial lookback")
    parser.add_argument("--since", default=None, help="Explicit start instant (ISO 8601)")
    parser.add_argument("--batch-size", type=int, default=None, help="Issues per page (1-100)")
    parser.add_argument("--cooldown", type=float, default=None, help="Seconds between windows")
    parser.add_argument(
        "--poll-interval", type=float, default=0.0, help="Extra pause after each window"
    )
    parser.add_argument("--offsets-dir", default=settings.OFFSETS_DIR, help="Offset store root")
    parser.add_argument("--output", default="issues.jsonl", help="JSON-lines output file")
    parser.add_argument("--log-level", default=None, help="Overrides LOG_LEVEL")
    return parser.parse_args(argv)


async def ingest(args: argparse.Namespace) -> None:
    config = IngestConfig.load(
        owner=args.owner,
        repository=args.repository,
        topic=args.topic,
        lookback_days=args.lookback_days,
        since=parse_iso(args.since) if args.since else None,
        batch_size=args.batch_size,
        cooldown_seconds=args.cooldown,
    )
    worker = IngestionWorkerFactory.create_worker(config)
    sink = JsonLinesSink(args.output)
    offset_store = FilesystemOffsetStore(args.offsets_dir)

    try:
        await worker.run(sink, offset_store, poll_interval_seconds=args.poll_interval)
    except asyncio.CancelledError:
        worker.stop()
        raise
    finally:
        await sink.close()
        await worker.aclose()
        logger.info(f"Wrote {sink.published} event(s) to {args.output}")


def main(argv=None):
    args = parse_args(argv)
    LoggerConfigurator.configure_root(args.log_level)

    try:
        asyncio.run(ingest(args))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    except ConfigurationError as e:
        print(f"Configuration error: {e.message}", file=sys.stderr)
        sys.exit(2)
    except OffsetCommitError as e:
        print(f"Could not persist offsets: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        stop_shared_rate_limiters()


if __name__ == "__main__":
    main()
