"""
Simplified harmonic tide fit.

Models the tide as::

    h(t) = mean + sum{ A_k * cos(w_k * t) }

over the constituents in :data:`~.constituents.FIT_CONSTITUENTS`, with
``t`` in hours since the Unix epoch.  Each amplitude ``A_k`` is estimated
on its own by projecting the record onto ``cos(w_k t)`` and ``sin(w_k t)``.
Constituents are not fitted jointly, so close periods (M2/S2, K1/O1) leak
into each other; this is an accepted approximation, not a least-squares
harmonic analysis.
"""
from __future__ import annotations

import logging

import numpy as np

from .constituents import FIT_CONSTITUENTS, angular_frequency
from .models import LevelSeries

logger = logging.getLogger(__name__)

_NS_PER_HOUR = 3.6e12


def epoch_hours(time: np.ndarray) -> np.ndarray:
    """Convert ``datetime64`` timestamps to float hours since the epoch."""
    time = np.asarray(time, dtype='datetime64[ns]')
    return time.astype(np.int64) / _NS_PER_HOUR


def estimate_amplitude(
    values: np.ndarray,
    hours: np.ndarray,
    omega: float,
) -> float:
    """
    Quadrature-projection amplitude of one frequency.

    Parameters
    ----------
    values : np.ndarray
        Water levels.
    hours : np.ndarray
        Sample times in hours (same length as *values*).
    omega : float
        Angular frequency in radians per hour.

    Returns
    -------
    float
        ``sqrt(C**2 + S**2) / (N / 2)`` where ``C = sum(v cos wt)`` and
        ``S = sum(v sin wt)``.

    Raises
    ------
    ValueError
        If *values* and *hours* differ in length or are empty.
    """
    values = np.asarray(values, dtype=float)
    hours = np.asarray(hours, dtype=float)
    if len(values) != len(hours):
        raise ValueError(
            f"values ({len(values)}) and hours ({len(hours)}) must have the "
            f"same length."
        )
    if len(values) == 0:
        raise ValueError('At least one data point is required.')

    phase = omega * hours
    sum_cos = np.sum(values * np.cos(phase))
    sum_sin = np.sum(values * np.sin(phase))
    return float(np.hypot(sum_cos, sum_sin) / (len(values) / 2.0))


def harmonic_tidal_fit(
    series: LevelSeries,
    constit: list[str] | None = None,
    logger: logging.Logger | None = None,
) -> LevelSeries:
    """
    Estimate the tidal signal with the simplified harmonic model.

    Parameters
    ----------
    series : LevelSeries
        Gap-filled water-level series.
    constit : list of str, optional
        Constituents to include.  Defaults to :data:`FIT_CONSTITUENTS`.
    logger : logging.Logger, optional
        Logger instance for diagnostic messages.

    Returns
    -------
    LevelSeries
        Tidal estimate aligned sample-for-sample with *series*.
    """
    _log = logger or logging.getLogger(__name__)

    if len(series) == 0:
        return series
    if constit is None:
        constit = FIT_CONSTITUENTS

    hours = epoch_hours(series.time)
    mean_level = float(np.mean(series.level))
    tidal = np.full(len(series), mean_level)

    for name in constit:
        omega = angular_frequency(name)
        amplitude = estimate_amplitude(series.level, hours, omega)
        tidal += amplitude * np.cos(omega * hours)
        _log.debug('Constituent %s: amplitude %.4f m.', name, amplitude)

    _log.info(
        'Harmonic tide fit: mean=%.4f m, %d constituents over %d samples.',
        mean_level, len(constit), len(series),
    )
    return series.with_level(tidal)
