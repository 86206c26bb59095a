#!/usr/bin/env python3
"""
Command-line driver of the PHOS photon-pair / hadron correlation analysis

Reads events from a flat ROOT tree, runs every event through the
EventPipeline and writes all booked histograms to a ROOT file.

Usage:
  phoscorr-run --input events.root [--tree events] [--output corr.root]
               [--config-dir path/to/config] [--max-events N] [--verbose]
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .modules.config import DEFAULT_CONFIG_DIR, AnalysisSettings
from .modules.event_source import UprootEventSource
from .modules.exceptions import AnalysisError
from .modules.pipeline import EventPipeline
from .utils.logging_config import setup_logging, suppress_warnings


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        description="PHOS photon-pair / hadron azimuthal correlations with event mixing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with the packaged default configuration
  phoscorr-run --input events.root

  # Custom configuration, first 1000 events only
  phoscorr-run --input events.root --config-dir my_config --max-events 1000
        """,
    )
    parser.add_argument(
        "--config-dir",
        default=str(DEFAULT_CONFIG_DIR),
        help="Directory with binning.toml, selection.toml and correlation.toml (default: packaged config)",
    )
    parser.add_argument("--input", required=True, help="Input ROOT file")
    parser.add_argument("--tree", default="events", help="Event tree name (default: events)")
    parser.add_argument(
        "--output",
        default="output/phos_correlations.root",
        help="Output ROOT file (default: output/phos_correlations.root)",
    )
    parser.add_argument("--max-events", type=int, default=None, help="Process at most this many events")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose output")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Main entry point with argument parsing"""
    args = parse_args(argv)
    logger = setup_logging(args.verbose)
    suppress_warnings("all" if args.verbose else "off")

    logger.info("=" * 70)
    logger.info("PHOS correlations")
    logger.info("=" * 70)
    logger.info(f"  Config: {args.config_dir}")
    logger.info(f"  Input: {args.input}:{args.tree}")
    logger.info(f"  Output: {args.output}")

    try:
        settings = AnalysisSettings.from_directory(args.config_dir)
        source = UprootEventSource(
            args.input,
            tree_name=args.tree,
            data_type=settings.tracks.data_type,
            estimator=settings.estimator,
            max_events=args.max_events,
        )
        pipeline = EventPipeline(settings)
        pipeline.run(source)
        pipeline.histograms.save(Path(args.output))
    except AnalysisError as e:
        logger.error(f"Analysis failed: {e}")
        return 1

    print(pipeline.summary().to_string(index=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
