"""
Data preprocessing: time-window selection, despiking and gap filling.

Turns a raw, roughly one-minute water-level record into the quasi-regular
series every later stage works on.  The order is fixed: restrict to the
requested window, remove single-sample noise with a short moving median,
then bridge gaps by linear interpolation onto the one-minute grid.
"""
from __future__ import annotations

import logging
from datetime import datetime

import numpy as np
import pandas as pd

from .models import LevelSeries

logger = logging.getLogger(__name__)

EXPECTED_INTERVAL = np.timedelta64(60_000, 'ms')
"""Nominal sampling interval of the input record (one minute)."""

MEDIAN_WINDOW = 5


def _as_datetime64(value: datetime) -> np.datetime64:
    ts = pd.Timestamp(value)
    if ts.tzinfo is not None:
        ts = ts.tz_convert('UTC').tz_localize(None)
    return ts.to_datetime64().astype('datetime64[ns]')


def filter_time_range(
    series: LevelSeries,
    start_time: datetime | None = None,
    end_time: datetime | None = None,
    logger: logging.Logger | None = None,
) -> LevelSeries:
    """
    Restrict a series to the inclusive window ``[start_time, end_time]``.

    Parameters
    ----------
    series : LevelSeries
        Time-ordered input series.
    start_time, end_time : datetime, optional
        Window bounds.  A missing bound leaves that side unbounded.
    logger : logging.Logger, optional
        Logger instance for diagnostic messages.

    Returns
    -------
    LevelSeries
        The order-preserving subsequence inside the window.
    """
    _log = logger or logging.getLogger(__name__)

    if start_time is None and end_time is None:
        return series

    keep = np.ones(len(series), dtype=bool)
    if start_time is not None:
        keep &= series.time >= _as_datetime64(start_time)
    if end_time is not None:
        keep &= series.time <= _as_datetime64(end_time)

    _log.info(
        'Time-range filter kept %d of %d samples (%s to %s).',
        int(keep.sum()), len(series), start_time, end_time,
    )
    return series.take(keep)


def median_smooth(
    series: LevelSeries,
    window: int = MEDIAN_WINDOW,
    logger: logging.Logger | None = None,
) -> LevelSeries:
    """
    Centered moving-median despiking filter.

    The window is clipped to the available neighbours at both ends of the
    series.  When a clipped window holds an even number of values the
    upper of the two middle values is used, so every output level is one
    of the input levels.

    Parameters
    ----------
    series : LevelSeries
        Time-ordered input series.
    window : int, optional
        Window length in samples (default 5).
    logger : logging.Logger, optional
        Logger instance for diagnostic messages.

    Returns
    -------
    LevelSeries
        Series with smoothed levels; timestamps and source indices are
        unchanged.
    """
    _log = logger or logging.getLogger(__name__)

    if len(series) == 0:
        return series

    smoothed = (
        pd.Series(series.level)
        .rolling(window=window, center=True, min_periods=1)
        .apply(lambda w: np.sort(w)[len(w) // 2], raw=True)
        .to_numpy()
    )

    n_changed = int(np.sum(smoothed != series.level))
    _log.info(
        'Median smoothing (window=%d): %d of %d levels changed.',
        window, n_changed, len(series),
    )
    return series.with_level(smoothed)


def fill_gaps(
    series: LevelSeries,
    interval: np.timedelta64 = EXPECTED_INTERVAL,
    logger: logging.Logger | None = None,
) -> LevelSeries:
    """
    Bridge sampling gaps with linearly interpolated samples.

    Any pair of consecutive samples further apart than twice *interval*
    receives ``floor(delta / interval) - 1`` new samples spaced *interval*
    apart after the earlier sample.  Their levels are interpolated
    linearly between the bounding samples and their ``original_index`` is
    -1.  Spacings up to twice the interval are left alone.

    Parameters
    ----------
    series : LevelSeries
        Time-ordered input series.
    interval : np.timedelta64, optional
        Expected sampling interval (default one minute).
    logger : logging.Logger, optional
        Logger instance for diagnostic messages.

    Returns
    -------
    LevelSeries
        A new, still time-ordered series at least as long as the input.
    """
    _log = logger or logging.getLogger(__name__)

    if len(series) < 2:
        return series

    interval = pd.Timedelta(interval).to_timedelta64()
    deltas = np.diff(series.time)

    times: list[np.ndarray] = []
    levels: list[np.ndarray] = []
    indices: list[np.ndarray] = []
    n_gaps = 0
    seg_start = 0

    for i in np.flatnonzero(deltas > 2 * interval):
        # Copy the run of real samples up to and including the gap start
        times.append(series.time[seg_start:i + 1])
        levels.append(series.level[seg_start:i + 1])
        indices.append(series.original_index[seg_start:i + 1])
        seg_start = i + 1

        steps = int(deltas[i] // interval) - 1
        j = np.arange(1, steps + 1)
        lo, hi = series.level[i], series.level[i + 1]
        times.append(series.time[i] + j * interval)
        levels.append(lo + (hi - lo) * j / (steps + 1))
        indices.append(np.full(steps, -1, dtype=np.int64))
        n_gaps += 1

    times.append(series.time[seg_start:])
    levels.append(series.level[seg_start:])
    indices.append(series.original_index[seg_start:])

    filled = LevelSeries(
        time=np.concatenate(times),
        level=np.concatenate(levels),
        original_index=np.concatenate(indices),
    )
    _log.info(
        'Filled %d gaps with %d interpolated samples (%d -> %d points).',
        n_gaps, len(filled) - len(series), len(series), len(filled),
    )
    return filled
