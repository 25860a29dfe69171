"""
Direct correlation spectrum and the windowed statistics built on it.

The spectrum is not an FFT.  For each of ``ceil(N/2)`` frequency bins
``f_k = k / N`` cycles per minute (so that the last bin sits just below
the 0.5 cyc/min Nyquist limit of one-minute data) it computes::

    P(f) = | sum_j v_j * (cos(2 pi f j) + sin(2 pi f j)) | / N

which is O(N**2).  The sum is evaluated with numpy over blocks of
frequency bins to bound memory.
"""
from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from .models import LevelSeries, SpectralEstimate, require_samples

logger = logging.getLogger(__name__)

NYQUIST_FREQUENCY = 0.5
"""Nyquist frequency (cycles/minute) of the nominal 1-minute sampling."""

_BLOCK_SIZE = 256


def _correlation(values: np.ndarray, frequencies: np.ndarray) -> np.ndarray:
    """``|sum_j v_j (cos + sin)(2 pi f j)| / N`` for each frequency."""
    n = len(values)
    j = np.arange(n)
    out = np.empty(len(frequencies))
    for start in range(0, len(frequencies), _BLOCK_SIZE):
        block = frequencies[start:start + _BLOCK_SIZE]
        phase = 2.0 * np.pi * np.outer(block, j)
        out[start:start + len(block)] = np.abs(
            (np.cos(phase) + np.sin(phase)) @ values
        ) / n
    return out


def compute_spectrum(
    series: LevelSeries | np.ndarray,
    logger: logging.Logger | None = None,
) -> SpectralEstimate:
    """
    Coarse power spectrum of a series.

    Parameters
    ----------
    series : LevelSeries or np.ndarray
        Series (or raw levels) sampled at the nominal one-minute interval.
    logger : logging.Logger, optional
        Logger instance for diagnostic messages.

    Returns
    -------
    SpectralEstimate
        Bin frequencies, powers, and the dominant non-zero frequency and
        its period in minutes.  If no bin above zero frequency carries
        power the dominant frequency and period are both 0.

    Raises
    ------
    InsufficientDataError
        If the series has fewer than 2 samples.
    """
    _log = logger or logging.getLogger(__name__)

    values = np.asarray(
        series.level if isinstance(series, LevelSeries) else series,
        dtype=float,
    )
    n = len(values)
    require_samples(n, 2, 'Spectral analysis')

    frequencies = np.arange((n + 1) // 2) * (NYQUIST_FREQUENCY / (n / 2.0))
    powers = _correlation(values, frequencies)

    dominant_frequency = 0.0
    if len(powers) > 1 and np.max(powers[1:]) > 0:
        k = 1 + int(np.argmax(powers[1:]))
        dominant_frequency = float(frequencies[k])
    dominant_period = 1.0 / dominant_frequency if dominant_frequency > 0 else 0.0

    _log.debug(
        'Spectrum: %d bins, dominant %.4f cyc/min (%.1f min).',
        len(frequencies), dominant_frequency, dominant_period,
    )
    return SpectralEstimate(
        frequencies=frequencies,
        powers=powers,
        dominant_frequency=dominant_frequency,
        dominant_period=dominant_period,
    )


def window_energy(values: np.ndarray, frequency: float) -> float:
    """
    Correlation energy of *values* at a single frequency.

    The phase restarts at zero at the first sample of *values*, so a
    window and the whole series are compared on the same footing.
    """
    values = np.asarray(values, dtype=float)
    if len(values) == 0:
        return 0.0
    return float(_correlation(values, np.array([frequency]))[0])


def spectral_threshold(powers: np.ndarray) -> float:
    """``mean + std`` (population) of the spectral powers."""
    powers = np.asarray(powers, dtype=float)
    return float(np.mean(powers) + np.std(powers))


def moving_variance(values: np.ndarray, window: int) -> np.ndarray:
    """
    Population variance over each window ``[i, i + window)``.

    Windows start at ``i = 0 .. N - window - 1``; the final full window is
    not included, so the result has ``N - window`` entries (empty when the
    series is no longer than *window*).
    """
    values = np.asarray(values, dtype=float)
    n_windows = len(values) - window
    if n_windows <= 0:
        return np.empty(0)
    rolled = pd.Series(values).rolling(window=window).var(ddof=0).to_numpy()
    return rolled[window - 1:window - 1 + n_windows]


def variance_threshold(variance: np.ndarray) -> float:
    """Two-sigma threshold ``mean + 2 * std`` of a variance series."""
    variance = np.asarray(variance, dtype=float)
    return float(np.mean(variance) + 2.0 * np.std(variance))
