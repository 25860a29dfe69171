"""
Tabular export of analysis results.

Builds pandas tables from an :class:`~tidewatch.event_analysis.AnalysisResult`
and writes them either as a CSV event table with a ``#`` metadata header
or as a four-sheet Excel workbook (event timeline, time series, summary,
per-event properties).
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

import numpy as np
import pandas as pd

from tidewatch.event_analysis.engine import AnalysisResult
from tidewatch.event_analysis.models import (
    Confidence,
    Decomposition,
    Event,
    EventType,
)

logger = logging.getLogger(__name__)

_EVENT_BASE_COLUMNS = [
    'Event ID', 'Type', 'Label', 'Start Time', 'End Time', 'Confidence',
    'Explanation',
]


def _iso(value: datetime | None) -> str:
    return value.isoformat() if value is not None else ''


def _utc_now() -> str:
    return datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')


def build_event_table(events: Iterable[Event]) -> pd.DataFrame:
    """One row per event, properties serialized as a JSON object."""
    rows = [{
        'Event ID': e.id,
        'Type': e.type.value,
        'Label': e.label,
        'Start Time': _iso(e.start_time),
        'End Time': _iso(e.end_time),
        'Peak Time': _iso(e.peak),
        'Confidence': e.confidence.value,
        'Amplitude (m)': e.amplitude if e.amplitude is not None else np.nan,
        'Period (min)': e.period if e.period is not None else np.nan,
        'Explanation': e.explanation,
        'Properties': json.dumps(dict(e.properties)),
    } for e in events]
    return pd.DataFrame(rows, columns=[
        'Event ID', 'Type', 'Label', 'Start Time', 'End Time', 'Peak Time',
        'Confidence', 'Amplitude (m)', 'Period (min)', 'Explanation',
        'Properties',
    ])


def build_series_table(decomposition: Decomposition) -> pd.DataFrame:
    """The four aligned series side by side, one row per sample."""
    original = decomposition.original
    source = pd.Series(original.original_index, dtype=object)
    source[original.original_index < 0] = 'Interpolated'
    return pd.DataFrame({
        'Timestamp': pd.DatetimeIndex(original.time).strftime('%Y-%m-%dT%H:%M:%S'),
        'Original Sea Level (m)': original.level,
        'Detrended (m)': decomposition.detrended.level,
        'Tidal Component (m)': decomposition.tidal.level,
        'Residuals (m)': decomposition.residual.level,
        'Original Index': source.to_numpy(),
    })


def build_summary_table(
    decomposition: Decomposition,
    events: Iterable[Event],
    filename: str = '',
) -> pd.DataFrame:
    """Parameter/value rows summarizing the analysed period and events."""
    events = list(events)
    original = decomposition.original
    if len(original):
        period = (
            f"{_iso(original.timestamp(0))} to "
            f"{_iso(original.timestamp(len(original) - 1))}"
        )
    else:
        period = ''

    summary: dict[str, Any] = {
        'Analysis Summary': '',
        'Original File': filename,
        'Data Points': len(original),
        'Interpolated Points': int(np.sum(original.original_index < 0)),
        'Analysis Period': period,
        'Total Events Detected': len(events),
    }
    for grade in (Confidence.HIGH, Confidence.MEDIUM, Confidence.LOW):
        summary[f"{grade.value} Confidence Events"] = sum(
            1 for e in events if e.confidence is grade
        )
    summary['Event Types'] = ''
    for kind in EventType:
        count = sum(1 for e in events if e.type is kind)
        if count:
            summary[f"{kind.value} Events"] = count
    summary['Export Timestamp'] = _utc_now()

    return pd.DataFrame(
        {'Parameter': list(summary), 'Value': list(summary.values())}
    )


def build_event_details_table(events: Iterable[Event]) -> pd.DataFrame:
    """Base event columns plus one column per property name."""
    rows = []
    for e in events:
        row = {
            'Event ID': e.id,
            'Type': e.type.value,
            'Label': e.label,
            'Start Time': _iso(e.start_time),
            'End Time': _iso(e.end_time),
            'Confidence': e.confidence.value,
            'Explanation': e.explanation,
        }
        row.update(dict(e.properties))
        rows.append(row)
    table = pd.DataFrame(rows)
    if table.empty:
        table = pd.DataFrame(columns=_EVENT_BASE_COLUMNS)
    return table


def write_event_table_csv(
    table: pd.DataFrame,
    output_path: str | Path,
    source: str = '',
    metadata: dict[str, Any] | None = None,
    logger: logging.Logger | None = None,
) -> None:
    """
    Write an event table to CSV with a metadata header.

    Parameters
    ----------
    table : pd.DataFrame
        Table produced by :func:`build_event_table`.
    output_path : str or Path
        Destination file path; parent directories are created.
    source : str, optional
        Source file name (written in the header).
    metadata : dict, optional
        Extra key/value pairs to include in the header.
    logger : logging.Logger, optional
        Logger instance.
    """
    _log = logger or logging.getLogger(__name__)

    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    header_lines = []
    if source:
        header_lines.append(f"# Source: {source}")
    header_lines.append(f"# Generated: {_utc_now()}")
    if metadata:
        for key, value in metadata.items():
            header_lines.append(f"# {key}: {value}")

    with open(path, 'w', newline='') as f:
        for line in header_lines:
            f.write(line + '\n')
        table.to_csv(f, index=False)

    _log.info('Event table (%d rows) written to %s.', len(table), path)


def export_workbook(
    result: AnalysisResult,
    output_path: str | Path,
    filename: str = '',
    logger: logging.Logger | None = None,
) -> Path:
    """
    Write the full analysis to an Excel workbook.

    Sheets: ``Event Timeline``, ``Time Series Data``, ``Analysis Summary``
    and ``Event Details``.

    Parameters
    ----------
    result : AnalysisResult
        Output of :func:`~tidewatch.event_analysis.run_analysis`.
    output_path : str or Path
        Destination ``.xlsx`` path; parent directories are created.
    filename : str, optional
        Name of the analysed source file, recorded in the summary.
    logger : logging.Logger, optional
        Logger instance.

    Returns
    -------
    Path
        The written workbook path.
    """
    _log = logger or logging.getLogger(__name__)

    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    sheets = {
        'Event Timeline': build_event_table(result.events),
        'Time Series Data': build_series_table(result.decomposition),
        'Analysis Summary': build_summary_table(
            result.decomposition, result.events, filename,
        ),
        'Event Details': build_event_details_table(result.events),
    }
    with pd.ExcelWriter(path, engine='openpyxl') as writer:
        for name, table in sheets.items():
            table.to_excel(writer, sheet_name=name, index=False)

    _log.info('Analysis workbook written to %s.', path)
    return path
