"""
End-to-end event analysis of a water-level record.

Runs the fixed pipeline::

    range filter -> median smoother -> gap filler -> tide estimate
      -> residual -> detectors -> confidence filter

and returns the decomposition together with the retained events in
detection order.  Every stage is a plain function; the detectors share
the same frozen :class:`~.models.Decomposition` and do not depend on each
other.
"""
from __future__ import annotations

import logging
from typing import Iterable

from pydantic import BaseModel, ConfigDict

from .extremes import detect_extreme_levels, detect_tidal_phases
from .filtering import compute_residual, extract_tidal_component
from .models import (
    MIN_SAMPLES,
    AnalysisConfig,
    Confidence,
    Decomposition,
    Event,
    LevelSeries,
    Sample,
    require_samples,
)
from .oscillations import (
    detect_aliased_activity,
    detect_infragravity_waves,
    detect_seiches,
)
from .preprocessing import fill_gaps, filter_time_range, median_smooth
from .quality import detect_data_artifacts, detect_gaps
from .surge import detect_storm_surges

logger = logging.getLogger(__name__)


class AnalysisResult(BaseModel):
    """Decomposition of the analysed record and its retained events."""

    model_config = ConfigDict(frozen=True)

    decomposition: Decomposition
    events: tuple[Event, ...]


def filter_by_confidence(
    events: Iterable[Event],
    threshold: Confidence | str,
) -> list[Event]:
    """Keep events graded at or above *threshold*, preserving order."""
    threshold = Confidence(threshold)
    return [e for e in events if e.confidence.rank >= threshold.rank]


def decompose(
    series: LevelSeries,
    config: AnalysisConfig,
    logger: logging.Logger | None = None,
) -> Decomposition:
    """
    Preprocess a sorted series and split it into tidal and residual parts.

    Parameters
    ----------
    series : LevelSeries
        Time-ordered raw series.
    config : AnalysisConfig
        Analysis options (time window and tide removal method).
    logger : logging.Logger, optional
        Logger instance for diagnostic messages.

    Returns
    -------
    Decomposition
        Gap-filled original with its detrended, residual and tidal series.

    Raises
    ------
    InsufficientDataError
        If fewer than 3 samples fall inside the configured time window.
    """
    _log = logger or logging.getLogger(__name__)

    windowed = filter_time_range(
        series, config.start_time, config.end_time, logger=_log,
    )
    require_samples(len(windowed), MIN_SAMPLES, 'Event analysis')

    smoothed = median_smooth(windowed, logger=_log)
    original = fill_gaps(smoothed, logger=_log)

    tidal = extract_tidal_component(
        original, config.tide_removal_method, logger=_log,
    )
    detrended = compute_residual(original, tidal, logger=_log)
    residual = compute_residual(original, tidal, logger=_log)

    return Decomposition(
        original=original,
        detrended=detrended,
        residual=residual,
        tidal=tidal,
    )


def detect_events(
    decomposition: Decomposition,
    config: AnalysisConfig,
    logger: logging.Logger | None = None,
) -> list[Event]:
    """Run every detector over the decomposition, in detection order."""
    _log = logger or logging.getLogger(__name__)

    original = decomposition.original
    residual = decomposition.residual

    events: list[Event] = []
    events.extend(detect_tidal_phases(decomposition.tidal, logger=_log))
    events.extend(detect_storm_surges(residual, logger=_log))
    events.extend(detect_seiches(residual, logger=_log))
    events.extend(detect_infragravity_waves(residual, logger=_log))
    events.extend(detect_data_artifacts(original, logger=_log))
    if config.report_gaps:
        events.extend(detect_gaps(original, logger=_log))
    events.extend(
        detect_extreme_levels(original, config.extreme_threshold, logger=_log)
    )
    events.extend(detect_aliased_activity(residual, logger=_log))
    return events


def run_analysis(
    samples: Iterable[Sample] | LevelSeries,
    config: AnalysisConfig | None = None,
    logger: logging.Logger | None = None,
) -> AnalysisResult:
    """
    Analyse a water-level record.

    Parameters
    ----------
    samples : iterable of Sample, or LevelSeries
        Measurements in any order; they are sorted by timestamp first.
    config : AnalysisConfig, optional
        Analysis options.  Defaults to :class:`AnalysisConfig` defaults.
    logger : logging.Logger, optional
        Logger instance for diagnostic messages.

    Returns
    -------
    AnalysisResult
        The decomposition and the events at or above
        ``config.confidence_threshold``, in detection order.

    Raises
    ------
    InsufficientDataError
        If fewer than 3 samples fall inside the configured time window.
    """
    _log = logger or logging.getLogger(__name__)
    if config is None:
        config = AnalysisConfig()

    if isinstance(samples, LevelSeries):
        series = samples.sort_by_time()
    else:
        series = LevelSeries.from_samples(samples)

    _log.info(
        'Starting event analysis of %d samples (method=%s, min confidence=%s).',
        len(series), config.tide_removal_method.value,
        config.confidence_threshold.value,
    )

    decomposition = decompose(series, config, logger=_log)
    detected = detect_events(decomposition, config, logger=_log)
    kept = filter_by_confidence(detected, config.confidence_threshold)

    _log.info(
        'Event analysis complete: %d of %d events at or above %s confidence.',
        len(kept), len(detected), config.confidence_threshold.value,
    )
    return AnalysisResult(decomposition=decomposition, events=tuple(kept))


class AnalysisEngine:
    """
    Holds a sorted record and a configuration for repeated analysis.

    Parameters
    ----------
    samples : iterable of Sample
        Measurements in any order.
    config : AnalysisConfig
        Analysis options.
    """

    def __init__(
        self,
        samples: Iterable[Sample],
        config: AnalysisConfig,
        logger: logging.Logger | None = None,
    ):
        self.series = LevelSeries.from_samples(samples)
        self.config = config
        self._log = logger or logging.getLogger(__name__)

    def run(self) -> AnalysisResult:
        return run_analysis(self.series, self.config, logger=self._log)
