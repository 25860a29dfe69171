"""
Command-line event analysis of a water-level file.

Reads a tab-delimited timestamp/level file, runs the event analysis and
optionally writes the event table (CSV) and the full workbook (xlsx).
"""
from __future__ import annotations

import argparse
import json
import logging
import logging.config
import os
import sys
from pathlib import Path

from pydantic import ValidationError

from tidewatch.event_analysis import AnalysisConfig, run_analysis
from tidewatch.obs_io import (
    build_event_table,
    export_workbook,
    read_water_level_file,
    write_event_table_csv,
)

DEFAULT_LOG_CONFIG = (
    Path(__file__).parent.parent.parent / 'conf/logging.conf'
).resolve()


def setup_logger(log_config_file: str | os.PathLike | None = None) -> logging.Logger:
    """Configure logging from an ini file, or fall back to basicConfig."""
    log_config_file = Path(log_config_file or DEFAULT_LOG_CONFIG)
    if log_config_file.is_file():
        logging.config.fileConfig(log_config_file, disable_existing_loggers=False)
        logger = logging.getLogger('root')
        logger.info('Using log config %s', log_config_file)
    else:
        logging.basicConfig(
            level=logging.INFO,
            format='%(asctime)s %(levelname)s %(name)s: %(message)s',
        )
        logger = logging.getLogger('root')
    return logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='tidewatch-analyze',
        description='Detect tidal, surge, wave and data-quality events in a '
                    'water-level record',
    )
    parser.add_argument('input', type=Path, help='Timestamp/level text file')
    parser.add_argument(
        '--delimiter', default='\t', help='Column separator (default: tab)',
    )
    parser.add_argument(
        '--config', type=Path, default=None,
        help='JSON file with AnalysisConfig fields; command-line options '
             'override it',
    )
    parser.add_argument(
        '--method', choices=['harmonic', 'lowpass'], default=None,
        help='Tide removal method',
    )
    parser.add_argument(
        '--extreme-threshold', type=float, default=None,
        help='Deviation from mean (m) flagged as an extreme level',
    )
    parser.add_argument(
        '--confidence', choices=['Low', 'Medium', 'High'], default=None,
        help='Lowest confidence grade to report',
    )
    parser.add_argument('--start', default=None, help='Analysis window start (ISO)')
    parser.add_argument('--end', default=None, help='Analysis window end (ISO)')
    parser.add_argument(
        '--report-gaps', action='store_true', default=None,
        help='Report interpolated stretches as Gap events',
    )
    parser.add_argument('--csv-out', type=Path, default=None, help='Event table CSV')
    parser.add_argument('--xlsx-out', type=Path, default=None, help='Analysis workbook')
    parser.add_argument(
        '--log-config', type=Path, default=None,
        help='logging.conf file (default: conf/logging.conf)',
    )
    return parser


def load_config(args: argparse.Namespace) -> AnalysisConfig:
    """Merge the optional JSON config file with command-line overrides."""
    values: dict = {}
    if args.config is not None:
        with open(args.config, encoding='utf-8') as f:
            values.update(json.load(f))
    overrides = {
        'tide_removal_method': args.method,
        'extreme_threshold': args.extreme_threshold,
        'confidence_threshold': args.confidence,
        'start_time': args.start,
        'end_time': args.end,
        'report_gaps': args.report_gaps,
    }
    # Options left unset on the command line keep the file's values
    values.update({k: v for k, v in overrides.items() if v is not None})
    return AnalysisConfig.from_mapping(values)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logger = setup_logger(args.log_config)

    try:
        config = load_config(args)
        loaded = read_water_level_file(args.input, delimiter=args.delimiter, logger=logger)
    except (OSError, ValueError, ValidationError) as e:
        logger.error('Cannot start analysis: %s', e)
        return 1

    for message in loaded.errors:
        logger.warning('%s: %s', loaded.filename, message)
    if not loaded.is_valid:
        logger.warning('%s contains invalid rows; they were skipped.', loaded.filename)

    try:
        result = run_analysis(loaded.samples, config, logger=logger)
    except ValueError as e:
        logger.error('Analysis failed: %s', e)
        return 1

    counts: dict[str, int] = {}
    for event in result.events:
        counts[event.type.value] = counts.get(event.type.value, 0) + 1
    for kind, count in counts.items():
        logger.info('%-18s %d', kind, count)

    if args.csv_out is not None:
        write_event_table_csv(
            build_event_table(result.events), args.csv_out,
            source=loaded.filename,
            metadata={
                'Method': config.tide_removal_method.value,
                'Confidence Threshold': config.confidence_threshold.value,
            },
            logger=logger,
        )
    if args.xlsx_out is not None:
        export_workbook(result, args.xlsx_out, filename=loaded.filename, logger=logger)
    return 0


if __name__ == '__main__':
    sys.exit(main())
