"""
Command Line Interface
======================
Analyze a controller log and write the annotated log.

Usage:
    python -m cruise_monitor run_log.csv
    python -m cruise_monitor run_log.csv --config monitor.yaml --html report.html
    python -m cruise_monitor run_log.csv --in-place

Exit codes:
    0  success
    1  input, configuration or degenerate-input failure
    2  analysis invariant violation
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config_validation import get_default_config, load_monitor_config
from .errors import AnalysisInvariantViolation, MonitorError
from .export import export_summary_json, write_annotated_log
from .loader import load_controller_log
from .pipeline import ControllerMonitor
from .qc_checks import assert_qc_passed, run_qc_checks
from .reporting import format_monitor_report, generate_html_report, save_report
from .traceability import create_traceability_record

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_INPUT_ERROR = 1
EXIT_INVARIANT_VIOLATION = 2


def default_output_path(log_path: Path) -> Path:
    """run.csv -> run_annotated.csv"""
    return log_path.with_name(f"{log_path.stem}_annotated{log_path.suffix or '.csv'}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cruise-monitor",
        description="Detect rise time, settling time and raw error faults in a cruise control log",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m cruise_monitor run_log.csv
  python -m cruise_monitor run_log.csv --config monitor.yaml --json summary.json
  python -m cruise_monitor run_log.csv --in-place --summary-only
        """,
    )

    parser.add_argument('log', type=Path, help='Controller log CSV')
    parser.add_argument(
        '--config', type=Path, default=None,
        help='Monitor configuration (JSON or YAML)',
    )
    output = parser.add_mutually_exclusive_group()
    output.add_argument(
        '--output', type=Path, default=None,
        help='Annotated log path (default: <log>_annotated.csv)',
    )
    output.add_argument(
        '--in-place', action='store_true',
        help='Overwrite the input log with the annotated log',
    )
    parser.add_argument('--json', type=Path, default=None, help='Write a JSON summary')
    parser.add_argument('--html', type=Path, default=None, help='Write an HTML report')
    parser.add_argument(
        '--summary-only', action='store_true',
        help='Print only the constants and fault summary',
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point. Returns the process exit code."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_monitor_config(args.config) if args.config else get_default_config()
        series = load_controller_log(args.log, expected_samples=config.sample_count)

        qc_report = run_qc_checks(series, config)
        for warning in qc_report.warnings:
            logger.warning(str(warning))
        assert_qc_passed(qc_report)

        result = ControllerMonitor(config).run(series)
    except AnalysisInvariantViolation as e:
        print(f"error: analysis invariant violated: {e}", file=sys.stderr)
        return EXIT_INVARIANT_VIOLATION
    except MonitorError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_INPUT_ERROR

    print(format_monitor_report(result, details=not args.summary_only))

    # Hash the source before an in-place write replaces it
    traceability = None
    if args.json or args.html:
        traceability = create_traceability_record(config, source_path=args.log)

    output_path = args.log if args.in_place else (args.output or default_output_path(args.log))
    try:
        write_annotated_log(result, output_path)
        if args.json:
            export_summary_json(result, args.json, traceability=traceability)
        if args.html:
            save_report(generate_html_report(result, traceability=traceability), args.html)
    except OSError as e:
        print(f"error: could not write output: {e}", file=sys.stderr)
        return EXIT_INPUT_ERROR

    print(f"Annotated log written to {output_path}")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
