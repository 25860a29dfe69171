"""
Spectral detectors for short-period oscillations in the residual.

* Seiche: harbor resonance with 5–30 minute period, localized in time by
  sliding-window energy at the resonant frequency.
* Infragravity: broadband energy at periods above two minutes.
* Aliased activity: energy piled up near the Nyquist frequency together
  with bursts of high short-window variance, which suggests wave energy
  faster than the one-minute sampling can resolve.

All three work from :func:`~.spectral.compute_spectrum` of the residual.
"""
from __future__ import annotations

import logging
from datetime import datetime

import numpy as np

from .models import (
    MIN_SAMPLES,
    Confidence,
    Event,
    EventType,
    LevelSeries,
    require_samples,
)
from .spectral import (
    NYQUIST_FREQUENCY,
    compute_spectrum,
    moving_variance,
    spectral_threshold,
    variance_threshold,
    window_energy,
)

logger = logging.getLogger(__name__)

SEICHE_MIN_FREQUENCY = 1.0 / 30.0
"""Lowest seiche frequency (cyc/min), i.e. a 30-minute period."""

SEICHE_MAX_FREQUENCY = 1.0 / 5.0
"""Highest seiche frequency (cyc/min), i.e. a 5-minute period."""

INFRAGRAVITY_MAX_FREQUENCY = 0.5
"""Upper edge of the infragravity band (cyc/min), a 2-minute period."""

ALIAS_VARIANCE_WINDOW = 10


def find_energy_bursts(
    residual: LevelSeries,
    frequency: float,
    period: float,
) -> list[tuple[datetime, datetime]]:
    """
    Time windows with elevated energy at one frequency.

    Windows of ``max(10, floor(2 * period))`` samples advance by half a
    window.  A window qualifies when its energy at *frequency* exceeds
    half the whole-series energy at that frequency.

    Returns
    -------
    list of (datetime, datetime)
        First and last timestamp of every qualifying window.
    """
    values = residual.level
    n = len(values)
    size = max(10, int(np.floor(period * 2)))
    stride = max(1, size // 2)
    cutoff = window_energy(values, frequency) * 0.5

    bursts = []
    for i in range(0, n - size, stride):
        if window_energy(values[i:i + size], frequency) > cutoff:
            bursts.append((residual.timestamp(i), residual.timestamp(i + size - 1)))
    return bursts


def detect_seiches(
    residual: LevelSeries,
    logger: logging.Logger | None = None,
) -> list[Event]:
    """
    Detect harbor resonances in the 5–30 minute band.

    Every spectral bin in ``[1/30, 1/5]`` cyc/min whose power exceeds twice
    ``mean + std`` of the whole spectrum is a candidate.  Each candidate
    yields one ``Seiche`` event per energy burst found by
    :func:`find_energy_bursts`; confidence is High when the bin power
    exceeds 1.5 times the threshold.

    Parameters
    ----------
    residual : LevelSeries
        Non-tidal residual.
    logger : logging.Logger, optional
        Logger instance for diagnostic messages.

    Returns
    -------
    list of Event
        Events grouped by candidate frequency, ascending.

    Raises
    ------
    InsufficientDataError
        If *residual* has fewer than 3 samples.
    """
    _log = logger or logging.getLogger(__name__)
    require_samples(len(residual), MIN_SAMPLES, 'Seiche detection')

    spectrum = compute_spectrum(residual, logger=_log)
    threshold = spectral_threshold(spectrum.powers) * 2

    in_band = (
        (spectrum.frequencies >= SEICHE_MIN_FREQUENCY)
        & (spectrum.frequencies <= SEICHE_MAX_FREQUENCY)
    )
    candidates = np.flatnonzero(in_band & (spectrum.powers > threshold))

    events: list[Event] = []
    for k in candidates:
        freq = float(spectrum.frequencies[k])
        power = float(spectrum.powers[k])
        period = 1.0 / freq
        confidence = (
            Confidence.HIGH if power > threshold * 1.5 else Confidence.MEDIUM
        )
        bursts = find_energy_bursts(residual, freq, period)
        _log.debug(
            'Seiche candidate %.4f cyc/min (%.1f min): power %.4g, %d bursts.',
            freq, period, power, len(bursts),
        )

        for index, (start, end) in enumerate(bursts):
            events.append(Event(
                id=f"seiche-{freq:.4f}-{index}",
                type=EventType.SEICHE,
                label=f"Seiche Oscillation ({period:.1f} min period)",
                start_time=start,
                end_time=end,
                confidence=confidence,
                period=period,
                explanation=(
                    f"Seiche detected with dominant period {period:.1f} "
                    f"minutes and spectral energy peak at {freq:.4f} cyc/min"
                ),
                properties=(
                    ('frequency', freq),
                    ('spectral_power', power),
                    ('estimated_period', period),
                ),
            ))

    _log.info(
        'Seiches: %d candidate frequencies, %d events.',
        len(candidates), len(events),
    )
    return events


def detect_infragravity_waves(
    residual: LevelSeries,
    logger: logging.Logger | None = None,
) -> list[Event]:
    """
    Detect broadband infragravity activity.

    Sums the power of every bin in ``(0, 0.5]`` cyc/min.  If that total
    exceeds ``mean + std`` of the spectrum a single event spanning the
    whole residual is emitted, High confidence above twice the threshold.

    Parameters
    ----------
    residual : LevelSeries
        Non-tidal residual.
    logger : logging.Logger, optional
        Logger instance for diagnostic messages.

    Returns
    -------
    list of Event
        Zero or one ``Infragravity`` event.

    Raises
    ------
    InsufficientDataError
        If *residual* has fewer than 3 samples.
    """
    _log = logger or logging.getLogger(__name__)
    require_samples(len(residual), MIN_SAMPLES, 'Infragravity detection')

    spectrum = compute_spectrum(residual, logger=_log)
    freqs, powers = spectrum.frequencies, spectrum.powers

    band = (freqs > 0) & (freqs <= INFRAGRAVITY_MAX_FREQUENCY)
    total_energy = float(np.sum(powers[band]))
    threshold = spectral_threshold(powers)

    if not np.any(band) or total_energy <= threshold:
        _log.info(
            'Infragravity: band energy %.4g below threshold %.4g.',
            total_energy, threshold,
        )
        return []

    band_idx = np.flatnonzero(band)
    dominant_freq = float(freqs[band_idx[np.argmax(powers[band_idx])]])
    dominant_period = 1.0 / dominant_freq
    confidence = (
        Confidence.HIGH if total_energy > threshold * 2 else Confidence.MEDIUM
    )

    _log.info(
        'Infragravity: band energy %.4g, dominant period %.1f min.',
        total_energy, dominant_period,
    )
    return [Event(
        id='infragravity-waves',
        type=EventType.INFRAGRAVITY,
        label=(
            f"Infragravity Activity ({dominant_period:.1f} min dominant "
            f"period)"
        ),
        start_time=residual.timestamp(0),
        end_time=residual.timestamp(len(residual) - 1),
        confidence=confidence,
        period=dominant_period,
        explanation=(
            f"Infragravity wave activity detected with dominant period "
            f"{dominant_period:.1f} minutes and total band energy "
            f"{total_energy:.2f}"
        ),
        properties=(
            ('total_energy', total_energy),
            ('dominant_frequency', dominant_freq),
            ('band_max_freq', INFRAGRAVITY_MAX_FREQUENCY),
        ),
    )]


def detect_aliased_activity(
    residual: LevelSeries,
    window: int = ALIAS_VARIANCE_WINDOW,
    logger: logging.Logger | None = None,
) -> list[Event]:
    """
    Flag probable aliasing of sub-sampling-rate wave energy.

    The test applies only when the power of the first bin at or above
    ``0.9 * Nyquist`` exceeds three times the mean spectral power.  Then
    every moving-variance window above ``mean + 2 * std`` of the variance
    series becomes a Low-confidence ``Aliased Activity`` event.

    Parameters
    ----------
    residual : LevelSeries
        Non-tidal residual.
    window : int, optional
        Moving-variance window in samples (default 10).
    logger : logging.Logger, optional
        Logger instance for diagnostic messages.

    Returns
    -------
    list of Event
        Events in window order.

    Raises
    ------
    InsufficientDataError
        If *residual* has fewer than 3 samples.
    """
    _log = logger or logging.getLogger(__name__)
    require_samples(len(residual), MIN_SAMPLES, 'Aliased-activity detection')

    n = len(residual)
    variance = moving_variance(residual.level, window)
    spectrum = compute_spectrum(residual, logger=_log)

    near_nyquist = np.flatnonzero(
        spectrum.frequencies >= NYQUIST_FREQUENCY * 0.9
    )
    if len(near_nyquist) == 0 or len(variance) == 0:
        _log.info('Aliased activity: series too short to assess.')
        return []

    nyquist_power = float(spectrum.powers[near_nyquist[0]])
    mean_power = float(np.mean(spectrum.powers))
    if not nyquist_power > mean_power * 3:
        _log.info(
            'Aliased activity: Nyquist power %.4g not above 3x mean %.4g.',
            nyquist_power, mean_power,
        )
        return []

    cutoff = variance_threshold(variance)
    events: list[Event] = []
    for index, i in enumerate(np.flatnonzero(variance > cutoff)):
        var = float(variance[i])
        events.append(Event(
            id=f"aliased-{index}",
            type=EventType.ALIASED_ACTIVITY,
            label=f"Probable Aliased Waves ({var:.6f} variance)",
            start_time=residual.timestamp(int(i)),
            end_time=residual.timestamp(min(int(i) + window, n - 1)),
            confidence=Confidence.LOW,
            explanation=(
                f"High variance ({var:.6f}) and energy near Nyquist "
                f"frequency ({NYQUIST_FREQUENCY} cyc/min) suggest aliased "
                f"short-period waves"
            ),
            properties=(
                ('variance', var),
                ('nyquist_power', nyquist_power),
                ('mean_power', mean_power),
                ('power_ratio', nyquist_power / mean_power),
            ),
        ))

    _log.info(
        'Aliased activity: Nyquist/mean power %.2f, %d high-variance windows.',
        nyquist_power / mean_power, len(events),
    )
    return events
