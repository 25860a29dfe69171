"""
Tidal-phase and extreme-level detection.

Tidal phases (high/low water, rising/falling tide) are read off the slope
of the tidal component; extreme levels are picked from the gap-filled
observations using both the 1st/99th percentiles of the record and an
absolute deviation from its mean.
"""
from __future__ import annotations

import logging

import numpy as np

from .models import (
    MIN_SAMPLES,
    Confidence,
    Event,
    EventType,
    LevelSeries,
    require_samples,
)

logger = logging.getLogger(__name__)

TIDE_SLOPE_THRESHOLD = 0.02
"""Level change per sample (m) that counts as a rising or falling tide."""


def contiguous_runs(mask: np.ndarray) -> list[tuple[int, int]]:
    """
    Find contiguous runs of ``True`` in a boolean array.

    Returns
    -------
    list of (int, int)
        ``(start, stop)`` pairs with *stop* exclusive, in order.  A run
        that reaches the end of *mask* has ``stop == len(mask)``.
    """
    mask = np.asarray(mask, dtype=bool)
    if not np.any(mask):
        return []

    # Detect edges of True regions
    diff = np.diff(mask.astype(int))
    starts = np.where(diff == 1)[0] + 1
    stops = np.where(diff == -1)[0] + 1

    if mask[0]:
        starts = np.concatenate(([0], starts))
    if mask[-1]:
        stops = np.concatenate((stops, [len(mask)]))

    return [(int(s), int(e)) for s, e in zip(starts, stops)]


def detect_tidal_phases(
    tidal: LevelSeries,
    threshold: float = TIDE_SLOPE_THRESHOLD,
    logger: logging.Logger | None = None,
) -> list[Event]:
    """
    Detect high/low water and rising/falling phases of the tide.

    A 3-point window slides along the tidal component.  With
    ``prev = h[i] - h[i-1]`` and ``next = h[i+1] - h[i]``:

    * ``prev > thr`` and ``next < -thr`` is a High Tide at ``i``;
    * ``prev < -thr`` and ``next > thr`` is a Low Tide at ``i``;
    * ``|prev| > thr`` is a Rising or Falling Tide spanning ``i-1 .. i``,
      High confidence above ``2 * thr`` and Medium otherwise.

    The checks are independent, so a peak also yields a Rising Tide event.

    Parameters
    ----------
    tidal : LevelSeries
        Tidal component.
    threshold : float, optional
        Slope threshold in metres per sample (default 0.02).
    logger : logging.Logger, optional
        Logger instance for diagnostic messages.

    Returns
    -------
    list of Event
        Events in index order.

    Raises
    ------
    InsufficientDataError
        If *tidal* has fewer than 3 samples.
    """
    _log = logger or logging.getLogger(__name__)
    require_samples(len(tidal), MIN_SAMPLES, 'Tidal-phase detection')

    h = tidal.level
    slopes = np.diff(h)
    prev_slope = slopes[:-1]
    next_slope = slopes[1:]

    is_peak = (prev_slope > threshold) & (next_slope < -threshold)
    is_trough = (prev_slope < -threshold) & (next_slope > threshold)
    is_phase = np.abs(prev_slope) > threshold

    events: list[Event] = []
    for k in np.flatnonzero(is_peak | is_trough | is_phase):
        i = int(k) + 1
        s_in, s_out = float(prev_slope[k]), float(next_slope[k])
        level = float(h[i])

        if is_peak[k] or is_trough[k]:
            kind = EventType.HIGH_TIDE if is_peak[k] else EventType.LOW_TIDE
            feature = 'Peak' if is_peak[k] else 'Trough'
            events.append(Event(
                id=f"{'high' if is_peak[k] else 'low'}-tide-{i}",
                type=kind,
                label=f"{kind.value} ({level:.3f} m)",
                start_time=tidal.timestamp(i),
                confidence=Confidence.HIGH,
                amplitude=level,
                explanation=(
                    f"{feature} detected with incoming slope {s_in:.3f} m/min "
                    f"and outgoing slope {s_out:.3f} m/min"
                ),
                properties=(
                    ('level', level), ('slope_in', s_in), ('slope_out', s_out),
                ),
            ))

        if is_phase[k]:
            kind = EventType.RISING_TIDE if s_in > 0 else EventType.FALLING_TIDE
            confidence = (
                Confidence.HIGH if abs(s_in) > 2 * threshold
                else Confidence.MEDIUM
            )
            events.append(Event(
                id=f"{kind.value.lower().replace(' ', '-')}-{i}",
                type=kind,
                label=f"{kind.value} ({abs(s_in):.3f} m/min)",
                start_time=tidal.timestamp(i - 1),
                end_time=tidal.timestamp(i),
                confidence=confidence,
                explanation=(
                    f"Tidal {kind.value.lower()} detected with slope "
                    f"{s_in:.4f} m/min"
                ),
                properties=(('slope', s_in),),
            ))

    _log.info(
        'Tidal phases: %d HW, %d LW, %d rising/falling segments.',
        int(is_peak.sum()), int(is_trough.sum()), int(is_phase.sum()),
    )
    return events


def detect_extreme_levels(
    series: LevelSeries,
    threshold: float,
    logger: logging.Logger | None = None,
) -> list[Event]:
    """
    Flag samples at the tails of the level distribution.

    A sample is extreme when it is at or below the 1st percentile, at or
    above the 99th percentile, or further than *threshold* from the mean.
    Percentiles are order statistics: ``sorted[floor(0.01 N)]`` and
    ``sorted[floor(0.99 N)]``.

    Parameters
    ----------
    series : LevelSeries
        Gap-filled observed series.
    threshold : float
        Absolute deviation from the mean (m) that is always extreme.
        Confidence is High when the deviation exceeds ``1.5 * threshold``.
    logger : logging.Logger, optional
        Logger instance for diagnostic messages.

    Returns
    -------
    list of Event
        One ``Extreme Level`` event per qualifying sample, in time order.

    Raises
    ------
    InsufficientDataError
        If *series* has fewer than 3 samples.
    """
    _log = logger or logging.getLogger(__name__)
    require_samples(len(series), MIN_SAMPLES, 'Extreme-level detection')

    levels = series.level
    n = len(levels)
    mean_level = float(np.mean(levels))
    ordered = np.sort(levels)
    p1 = ordered[int(np.floor(n * 0.01))]
    p99 = ordered[int(np.floor(n * 0.99))]

    deviation = levels - mean_level
    extreme = (levels <= p1) | (levels >= p99) | (np.abs(deviation) > threshold)

    events: list[Event] = []
    for i in np.flatnonzero(extreme):
        level = float(levels[i])
        dev = float(deviation[i])
        side = 'High' if level > mean_level else 'Low'
        confidence = (
            Confidence.HIGH if abs(dev) > threshold * 1.5 else Confidence.MEDIUM
        )
        if level <= p1:
            percentile = 1.0
        elif level >= p99:
            percentile = 99.0
        else:
            percentile = 0.0

        events.append(Event(
            id=f"extreme-{i}",
            type=EventType.EXTREME_LEVEL,
            label=f"Extreme {side} Level ({level:.3f} m)",
            start_time=series.timestamp(int(i)),
            confidence=confidence,
            amplitude=abs(dev),
            explanation=(
                f"Level {level:.3f} m exceeds {confidence.value.lower()} "
                f"threshold ({threshold} m from mean)"
            ),
            properties=(
                ('level', level),
                ('deviation_from_mean', dev),
                ('percentile', percentile),
            ),
        ))

    _log.info(
        'Extreme levels: %d samples flagged (p1=%.3f, p99=%.3f, mean=%.3f).',
        len(events), p1, p99, mean_level,
    )
    return events
