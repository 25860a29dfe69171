"""
Data-quality artifacts: spikes, flatlines and interpolated gaps.
"""
from __future__ import annotations

import logging

import numpy as np

from .extremes import contiguous_runs
from .models import (
    MIN_SAMPLES,
    Confidence,
    Event,
    EventType,
    LevelSeries,
    require_samples,
)

logger = logging.getLogger(__name__)

SPIKE_THRESHOLD = 0.5
FLATLINE_TOLERANCE = 0.001
FLATLINE_MIN_DURATION = 30


def detect_spikes(
    series: LevelSeries,
    threshold: float = SPIKE_THRESHOLD,
) -> list[Event]:
    """One High-confidence ``Spike`` per jump larger than *threshold* (m)."""
    levels = series.level
    change = np.abs(np.diff(levels))

    events: list[Event] = []
    for k in np.flatnonzero(change > threshold):
        i = int(k) + 1
        magnitude = float(change[k])
        events.append(Event(
            id=f"spike-{i}",
            type=EventType.SPIKE,
            label=f"Data Spike ({magnitude:.3f} m jump)",
            start_time=series.timestamp(i),
            confidence=Confidence.HIGH,
            amplitude=magnitude,
            explanation=(
                f"Sudden level change of {magnitude:.3f} m detected between "
                f"consecutive measurements"
            ),
            properties=(
                ('magnitude', magnitude),
                ('previous_level', float(levels[i - 1])),
                ('current_level', float(levels[i])),
            ),
        ))
    return events


def detect_flatlines(
    series: LevelSeries,
    tolerance: float = FLATLINE_TOLERANCE,
    min_duration: int = FLATLINE_MIN_DURATION,
) -> list[Event]:
    """
    Runs of near-constant level lasting at least *min_duration* samples.

    Consecutive samples whose levels differ by at most *tolerance* extend
    the run.  A run still in progress at the end of the series is not
    reported.
    """
    levels = series.level
    flat = np.abs(np.diff(levels)) <= tolerance

    events: list[Event] = []
    # Run of flat steps [a, b) covers samples a .. b
    for a, b in contiguous_runs(flat):
        duration = b + 1 - a
        if b == len(flat) or duration < min_duration:
            continue
        value = float(levels[a])
        events.append(Event(
            id=f"flatline-{a}",
            type=EventType.FLATLINE,
            label=f"Data Flatline ({duration} min at {value:.3f} m)",
            start_time=series.timestamp(a),
            end_time=series.timestamp(b),
            confidence=Confidence.HIGH,
            explanation=(
                f"Constant value {value:.4f} m maintained for {duration} "
                f"minutes"
            ),
            properties=(
                ('constant_value', value),
                ('duration_minutes', float(duration)),
            ),
        ))
    return events


def detect_data_artifacts(
    series: LevelSeries,
    logger: logging.Logger | None = None,
) -> list[Event]:
    """
    Spike and flatline detection on the gap-filled observations.

    Parameters
    ----------
    series : LevelSeries
        Gap-filled observed series (before detrending).
    logger : logging.Logger, optional
        Logger instance for diagnostic messages.

    Returns
    -------
    list of Event
        All spike events followed by all flatline events.

    Raises
    ------
    InsufficientDataError
        If *series* has fewer than 3 samples.
    """
    _log = logger or logging.getLogger(__name__)
    require_samples(len(series), MIN_SAMPLES, 'Data-artifact detection')

    spikes = detect_spikes(series)
    flatlines = detect_flatlines(series)
    _log.info(
        'Data artifacts: %d spikes, %d flatlines.', len(spikes), len(flatlines),
    )
    return spikes + flatlines


def detect_gaps(
    series: LevelSeries,
    logger: logging.Logger | None = None,
) -> list[Event]:
    """
    Report each stretch of interpolated samples as a ``Gap`` event.

    Parameters
    ----------
    series : LevelSeries
        Gap-filled series; interpolated samples carry ``original_index``
        of -1.
    logger : logging.Logger, optional
        Logger instance for diagnostic messages.

    Returns
    -------
    list of Event
        One High-confidence event per run of interpolated samples.

    Raises
    ------
    InsufficientDataError
        If *series* has fewer than 3 samples.
    """
    _log = logger or logging.getLogger(__name__)
    require_samples(len(series), MIN_SAMPLES, 'Gap detection')

    events: list[Event] = []
    for start, stop in contiguous_runs(series.original_index < 0):
        missing = stop - start
        events.append(Event(
            id=f"gap-{start}",
            type=EventType.GAP,
            label=f"Data Gap ({missing} min interpolated)",
            start_time=series.timestamp(start),
            end_time=series.timestamp(stop - 1),
            confidence=Confidence.HIGH,
            explanation=(
                f"{missing} missing samples filled by linear interpolation "
                f"between {float(series.level[max(start - 1, 0)]):.3f} m and "
                f"{float(series.level[min(stop, len(series) - 1)]):.3f} m"
            ),
            properties=(
                ('missing_samples', float(missing)),
                ('duration_minutes', float(missing)),
            ),
        ))

    _log.info('Gaps: %d interpolated stretches.', len(events))
    return events
