"""
Separation of tidal and non-tidal components.

Provides the moving-average low-pass tide estimate, the dispatcher that
selects between it and the harmonic fit, and the residual computation
that turns an observed series and a tide estimate into the non-tidal
signal used by the surge and wave detectors.
"""
from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from .harmonic_analysis import harmonic_tidal_fit
from .models import LevelSeries, TideRemovalMethod

logger = logging.getLogger(__name__)

LOWPASS_HALF_WINDOW = 4 * 60
"""Half-width of the low-pass window in samples (4 hours of 1-min data)."""


def lowpass_tidal_filter(
    series: LevelSeries,
    half_window: int = LOWPASS_HALF_WINDOW,
    logger: logging.Logger | None = None,
) -> LevelSeries:
    """
    Symmetric moving-average estimate of the slow tidal trend.

    Each output level is the mean of the samples within *half_window*
    positions on either side, with the window clipped at the series
    boundaries.

    Parameters
    ----------
    series : LevelSeries
        Gap-filled water-level series.
    half_window : int, optional
        Samples on each side of the centre (default 240).
    logger : logging.Logger, optional
        Logger instance for diagnostic messages.

    Returns
    -------
    LevelSeries
        Smoothed series, same length as *series*.
    """
    _log = logger or logging.getLogger(__name__)

    if len(series) == 0:
        return series

    smoothed = (
        pd.Series(series.level)
        .rolling(window=2 * half_window + 1, center=True, min_periods=1)
        .mean()
        .to_numpy()
    )
    _log.info(
        'Low-pass tide filter: half-window=%d samples over %d samples.',
        half_window, len(series),
    )
    return series.with_level(smoothed)


def extract_tidal_component(
    series: LevelSeries,
    method: TideRemovalMethod | str = TideRemovalMethod.LOWPASS,
    logger: logging.Logger | None = None,
) -> LevelSeries:
    """
    Estimate the tidal component with the selected strategy.

    Parameters
    ----------
    series : LevelSeries
        Gap-filled water-level series.
    method : TideRemovalMethod or str, optional
        ``"harmonic"`` or ``"lowpass"`` (default).
    logger : logging.Logger, optional
        Logger instance for diagnostic messages.

    Returns
    -------
    LevelSeries
        Tidal estimate aligned with *series*.

    Raises
    ------
    ValueError
        If *method* is not a known tide removal method.
    """
    method = TideRemovalMethod(method)
    if method is TideRemovalMethod.HARMONIC:
        return harmonic_tidal_fit(series, logger=logger)
    return lowpass_tidal_filter(series, logger=logger)


def compute_residual(
    original: LevelSeries,
    tidal: LevelSeries,
    logger: logging.Logger | None = None,
) -> LevelSeries:
    """
    Subtract the tidal estimate from the observed series.

    Serves both as the detrending step and as the residual calculation.
    A tidal value that is missing (NaN) is treated as zero.

    Parameters
    ----------
    original : LevelSeries
        Observed (gap-filled) series.
    tidal : LevelSeries
        Tidal estimate, same length as *original*.
    logger : logging.Logger, optional
        Logger instance for diagnostic messages.

    Returns
    -------
    LevelSeries
        ``original - tidal`` with the timestamps of *original*.

    Raises
    ------
    ValueError
        If *original* and *tidal* have different lengths.
    """
    _log = logger or logging.getLogger(__name__)

    if len(original) != len(tidal):
        raise ValueError(
            f"original ({len(original)}) and tidal ({len(tidal)}) must have "
            f"the same length."
        )

    residual = original.level - np.nan_to_num(tidal.level, nan=0.0)
    if len(residual):
        _log.info(
            'Non-tidal residual: mean=%.4f, std=%.4f.',
            np.mean(residual), np.std(residual),
        )
    return original.with_level(residual)
