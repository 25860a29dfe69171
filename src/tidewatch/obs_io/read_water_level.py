"""
Read water-level observations from delimited text files.

The expected layout is one measurement per line with no header: a
timestamp in the first column and the water level in metres in the
second.  Columns are tab-separated by default.  Problem rows are skipped
and reported in :attr:`LoadedFile.errors` instead of aborting the read,
so a mostly-good file still yields a usable record.
"""
from __future__ import annotations

import logging
import re
from datetime import date, datetime
from pathlib import Path

import pandas as pd
from pydantic import BaseModel, ConfigDict

from tidewatch.event_analysis.models import Sample

logger = logging.getLogger(__name__)

MIN_RECOMMENDED_POINTS = 10

_DATETIME_MINUTES = re.compile(r'^\d{4}-\d{2}-\d{2} \d{2}:\d{2}$')
_DATETIME_SECONDS = re.compile(r'^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$')
_TIME_ONLY = re.compile(r'^\d{2}:\d{2}$')
_ISO_8601 = re.compile(r'^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}')
_LEADING_NUMBER = re.compile(r'^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)')


class LoadedFile(BaseModel):
    """Samples parsed from one file, with row-level problems."""

    model_config = ConfigDict(frozen=True)

    filename: str
    samples: tuple[Sample, ...]
    errors: tuple[str, ...] = ()

    @property
    def is_valid(self) -> bool:
        """True when every reported problem is only a warning."""
        return all(e.startswith('Warning') for e in self.errors)


def parse_timestamp(text: str, today: date | None = None) -> datetime | None:
    """
    Parse one timestamp field.

    Accepted forms are ``YYYY-MM-DD HH:MM``, ``YYYY-MM-DD HH:MM:SS``,
    ISO 8601 ``YYYY-MM-DDTHH:MM...`` (offsets are converted to naive UTC),
    and a bare ``HH:MM``, which is placed on *today* (default: the current
    date).

    Returns
    -------
    datetime or None
        ``None`` if the text matches no accepted form or is not a valid
        date.
    """
    text = text.strip()
    if _DATETIME_MINUTES.match(text):
        fmt = '%Y-%m-%d %H:%M'
    elif _DATETIME_SECONDS.match(text):
        fmt = '%Y-%m-%d %H:%M:%S'
    elif _TIME_ONLY.match(text):
        day = today or date.today()
        text = f"{day.isoformat()} {text}"
        fmt = '%Y-%m-%d %H:%M'
    elif _ISO_8601.match(text):
        fmt = None
    else:
        return None

    ts = pd.to_datetime(text, format=fmt, errors='coerce')
    if pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_convert('UTC').tz_localize(None)
    return ts.to_pydatetime()


def read_water_level_file(
    path: str | Path,
    delimiter: str = '\t',
    today: date | None = None,
    logger: logging.Logger | None = None,
) -> LoadedFile:
    """
    Read a two-column timestamp/level file into samples.

    Parameters
    ----------
    path : str or Path
        File to read.
    delimiter : str, optional
        Column separator (default tab).
    today : date, optional
        Date used for ``HH:MM`` timestamps (default: the current date).
    logger : logging.Logger, optional
        Logger instance for diagnostic messages.

    Returns
    -------
    LoadedFile
        Samples sorted by time, each with its 0-based source row as
        ``original_index``.  A level field is read up to its first
        non-numeric character (``"1.25 m"`` is 1.25).  Rows with fewer than
        two columns are skipped silently; rows with an unreadable
        timestamp or level are skipped and reported.  Fewer than 10 valid
        rows adds a warning.

    Raises
    ------
    ValueError
        If the file is empty, its first row has fewer than two columns,
        or no row yields a valid sample.
    """
    _log = logger or logging.getLogger(__name__)
    path = Path(path)

    with open(path, encoding='utf-8') as f:
        lines = [line.rstrip('\r\n') for line in f if line.strip()]

    if not lines:
        raise ValueError('File is empty')

    text = pd.Series(lines, dtype=object)
    n_columns = text.str.count(re.escape(delimiter)) + 1
    if n_columns.iloc[0] < 2:
        raise ValueError(
            'File must contain at least 2 columns (timestamp and sea level)'
        )

    fields = text.str.split(delimiter, n=2, expand=True)
    raw_time = fields[0].fillna('').str.strip()
    raw_level = fields[1]
    # Leading number only, so "1.25 m" reads as 1.25
    levels = pd.to_numeric(
        raw_level.str.extract(_LEADING_NUMBER, expand=False), errors='coerce',
    )

    samples: list[Sample] = []
    errors: list[str] = []
    for row, (time_text, level_text) in enumerate(zip(raw_time, raw_level)):
        if n_columns.iloc[row] < 2:
            continue

        timestamp = parse_timestamp(time_text, today=today)
        if timestamp is None:
            errors.append(f'Row {row + 1}: Invalid timestamp format "{time_text}"')
            continue

        level = levels.iloc[row]
        if pd.isna(level) or level in (float('inf'), float('-inf')):
            errors.append(
                f'Row {row + 1}: Invalid sea level value "{level_text.strip()}"'
            )
            continue

        samples.append(
            Sample(timestamp=timestamp, level=float(level), original_index=row)
        )

    if not samples:
        raise ValueError('No valid data points found in file')

    if len(samples) < MIN_RECOMMENDED_POINTS:
        errors.append(
            'Warning: File contains very few data points, analysis may be '
            'limited'
        )

    samples.sort(key=lambda s: s.timestamp)
    _log.info(
        'Read %d samples from %s (%d rows rejected).',
        len(samples), path.name,
        sum(1 for e in errors if not e.startswith('Warning')),
    )
    return LoadedFile(
        filename=path.name,
        samples=tuple(samples),
        errors=tuple(errors),
    )
