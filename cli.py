#!/usr/bin/env python3
"""
Main CLI for Merchant Insights metric normalization.
Usage:
  python cli.py normalize RESPONSE.json [METRIC_ID ...]
  python cli.py yoy CURRENT.json PREVIOUS.json [METRIC_ID ...]
  python cli.py filters CONTEXT METRIC_ID [METRIC_ID ...]
"""

import sys
import json
import logging
from pathlib import Path
from typing import Any, List

# Add project root to path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from ingestion.config import settings
from ingestion.metric_filters import build_request_filters
from analysis.response_normalizer import normalize
from analysis.year_over_year import normalize_year_over_year

logger = logging.getLogger(__name__)

USAGE = """Usage:
  python cli.py normalize RESPONSE.json [METRIC_ID ...]
  python cli.py yoy CURRENT.json PREVIOUS.json [METRIC_ID ...]
  python cli.py filters CONTEXT METRIC_ID [METRIC_ID ...]

Examples:
  python cli.py normalize response.json total_revenue revenue_per_day
  python cli.py yoy current.json previous.json revenue_by_channel
  python cli.py filters demographics converted_customers_by_interest"""


class CLIError(Exception):
    """Raised for usage errors and unreadable input."""
    pass


def main(argv: List[str] = None) -> int:
    """Main CLI entry point."""
    argv = sys.argv[1:] if argv is None else argv

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.WARNING),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
        stream=sys.stderr,
    )

    if not argv:
        print(USAGE, file=sys.stderr)
        return 1

    command, args = argv[0], argv[1:]

    try:
        if command == 'normalize':
            output = run_normalize(args)
        elif command == 'yoy':
            output = run_yoy(args)
        elif command == 'filters':
            output = run_filters(args)
        else:
            raise CLIError(f"Unknown command: {command}\nAvailable commands: normalize, yoy, filters")
    except (CLIError, ValueError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    print(json.dumps(output, indent=2, ensure_ascii=False))
    return 0


def load_response(path: str) -> Any:
    """
    Read a raw analytics response from a JSON file.

    Raises:
        CLIError: If the file is missing or is not valid JSON
    """
    response_path = Path(path)
    if not response_path.exists():
        raise CLIError(f"Response file not found: {path}")

    try:
        with open(response_path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise CLIError(f"Invalid JSON in {path}: {e}")


def run_normalize(args: List[str]) -> dict:
    if len(args) < 1:
        raise CLIError(f"normalize needs a response file\n\n{USAGE}")

    response = load_response(args[0])
    metric_ids = args[1:] or None

    result = normalize(response, metric_ids)
    logger.info("Normalized %d metrics (%d errors)", len(result.metrics), len(result.errors))
    return result.to_dict()


def run_yoy(args: List[str]) -> dict:
    if len(args) < 2:
        raise CLIError(f"yoy needs a current and a previous response file\n\n{USAGE}")

    current = load_response(args[0])
    previous = load_response(args[1])
    metric_ids = args[2:] or None

    return normalize_year_over_year(current, previous, metric_ids).to_dict()


def run_filters(args: List[str]) -> dict:
    if len(args) < 2:
        raise CLIError(f"filters needs a context and at least one metric id\n\n{USAGE}")

    context, metric_ids = args[0], args[1:]
    filters = build_request_filters(metric_ids, context, settings.default_provider_id)

    return {
        'context': context,
        'metric_ids': metric_ids,
        'filters': filters,
    }


if __name__ == '__main__':
    sys.exit(main())
