"""
CLI entry point for summarizing an outcome log.

Usage:
    python -m sunny.outcomes.run_report --log logs/outcomes.jsonl --verbose
    python -m sunny.outcomes.run_report --log logs/outcomes.jsonl --report report.txt
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from sunny.outcomes.log_reader import load_outcome_log
from sunny.outcomes.metrics import MetricsCalculator

logger = logging.getLogger(__name__)


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(
        description="Summarize conversation outcomes from an outcome log."
    )
    parser.add_argument(
        "--log",
        type=str,
        required=True,
        help="Path to the NDJSON outcome log.",
    )
    parser.add_argument(
        "--report",
        type=str,
        default=None,
        help="Path to write the report (default: stdout).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging output.",
    )

    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    log_path = Path(args.log)
    if not log_path.exists():
        logger.error("Outcome log not found: %s", log_path)
        sys.exit(1)

    records = load_outcome_log(log_path)
    if not records:
        logger.error("No valid outcome records found in %s", log_path)
        sys.exit(1)

    calculator = MetricsCalculator()
    output = calculator.format_report(calculator.calculate(records))

    if args.report:
        report_path = Path(args.report)
        report_path.write_text(output, encoding="utf-8")
        logger.info("Report written to %s", report_path)
    else:
        sys.stdout.write(output + "\n")


if __name__ == "__main__":
    main()
