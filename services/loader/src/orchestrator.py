"""Main load orchestrator."""
import logging
import sys
import zlib
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

from processing.errors import PipelineError

from .bulk_loader import BulkLoader
from .cassandra_writer import CassandraSink
from .config import LoaderConfig, get_config
from .kafka_publisher import KafkaSink

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


SINKS = {
    "cassandra": CassandraSink,
    "kafka": KafkaSink,
}


def create_sink(kind: str, config: LoaderConfig):
    """Build an unconnected sink of the given kind."""
    if kind not in SINKS:
        raise ValueError(f"Unknown sink: {kind}. Must be one of {list(SINKS)}")
    return SINKS[kind](config)


class LoadOrchestrator:
    """Connects a sink and loads one archive into it."""

    def __init__(self, config: Optional[LoaderConfig] = None):
        """Initialize orchestrator.

        Args:
            config: Loader configuration
        """
        self.config = config or get_config()
        self.loader = BulkLoader(self.config)

    def run(
        self,
        archive_path: Union[str, Path],
        sink_kind: str = "cassandra",
        consistency: Optional[str] = None,
    ) -> dict:
        """Load an archive end to end.

        Args:
            archive_path: Merged .csv.gz archive
            sink_kind: 'cassandra' or 'kafka'
            consistency: Consistency level override

        Returns:
            Dictionary with load statistics and status
        """
        logger.info(f"Starting load of {archive_path} into {sink_kind}")
        start_time = datetime.utcnow()

        try:
            with create_sink(sink_kind, self.config) as sink:
                summary = self.loader.load(archive_path, sink, consistency)

            end_time = datetime.utcnow()
            duration = (end_time - start_time).total_seconds()
            logger.info(f"Total time to load data: {duration:.0f} Seconds")

            return {
                **summary.to_dict(),
                "sink": sink_kind,
                "started_at": start_time.isoformat(),
                "completed_at": end_time.isoformat(),
                "status": "success",
            }

        except (PipelineError, OSError, EOFError, zlib.error, ValueError) as e:
            logger.error(f"Load failed: {e}", exc_info=True)
            end_time = datetime.utcnow()

            return {
                "archive_path": str(archive_path),
                "sink": sink_kind,
                "status": "failed",
                "error": str(e),
                "error_type": type(e).__name__,
                "started_at": start_time.isoformat(),
                "failed_at": end_time.isoformat(),
            }


def main(argv: Optional[List[str]] = None):
    """Main entry point for CLI"""
    import argparse
    import json

    parser = argparse.ArgumentParser(
        prog="isd-load",
        description="Load a merged ISD archive into Cassandra or Kafka"
    )
    parser.add_argument("archive_path", help="Merged .csv.gz archive")
    parser.add_argument(
        "--sink",
        default="cassandra",
        choices=sorted(SINKS),
        help="Destination (default: cassandra)"
    )
    parser.add_argument(
        "--consistency",
        default=None,
        help="Write consistency level (default: from config, QUORUM)"
    )
    parser.add_argument(
        "--on-malformed",
        default=None,
        choices=["abort", "skip"],
        help="Malformed record policy (default: from config, abort)"
    )
    parser.add_argument(
        "--max-in-flight",
        type=int,
        default=None,
        help="Maximum unacknowledged submissions"
    )

    args = parser.parse_args(argv)

    config = get_config()
    if args.on_malformed:
        config.on_malformed = args.on_malformed
    if args.max_in_flight:
        config.max_in_flight = args.max_in_flight

    results = LoadOrchestrator(config).run(
        args.archive_path,
        sink_kind=args.sink,
        consistency=args.consistency,
    )

    print(json.dumps(results, indent=2, default=str))

    if results["status"] == "success":
        sys.exit(0)
    else:
        sys.exit(1)


if __name__ == "__main__":
    main()
