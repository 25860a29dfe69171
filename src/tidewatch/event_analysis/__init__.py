"""
Event Analysis Subpackage

Provides functionality for:
- Preprocessing (time-window filter, median despiking, gap filling)
- Tidal separation (simplified harmonic fit, low-pass moving average)
- Non-tidal residual computation
- Direct correlation spectrum of the residual
- Event detection (tidal phases, storm surges, seiches, infragravity
  waves, data artifacts, extreme levels, aliased activity)
- Confidence filtering and the end-to-end analysis pipeline
"""

from tidewatch.event_analysis.constituents import (
    CONSTITUENT_PERIODS_HOURS,
    FIT_CONSTITUENTS,
    angular_frequency,
)
from tidewatch.event_analysis.engine import (
    AnalysisEngine,
    AnalysisResult,
    decompose,
    detect_events,
    filter_by_confidence,
    run_analysis,
)
from tidewatch.event_analysis.extremes import (
    detect_extreme_levels,
    detect_tidal_phases,
)
from tidewatch.event_analysis.filtering import (
    compute_residual,
    extract_tidal_component,
    lowpass_tidal_filter,
)
from tidewatch.event_analysis.harmonic_analysis import (
    estimate_amplitude,
    harmonic_tidal_fit,
)
from tidewatch.event_analysis.models import (
    AnalysisConfig,
    Confidence,
    Decomposition,
    Event,
    EventType,
    InsufficientDataError,
    LevelSeries,
    Sample,
    SpectralEstimate,
    TideRemovalMethod,
)
from tidewatch.event_analysis.oscillations import (
    detect_aliased_activity,
    detect_infragravity_waves,
    detect_seiches,
)
from tidewatch.event_analysis.preprocessing import (
    fill_gaps,
    filter_time_range,
    median_smooth,
)
from tidewatch.event_analysis.quality import detect_data_artifacts, detect_gaps
from tidewatch.event_analysis.spectral import compute_spectrum
from tidewatch.event_analysis.surge import detect_storm_surges

__all__ = [
    # Records
    'AnalysisConfig',
    'Confidence',
    'Decomposition',
    'Event',
    'EventType',
    'InsufficientDataError',
    'LevelSeries',
    'Sample',
    'SpectralEstimate',
    'TideRemovalMethod',
    # Constituents
    'CONSTITUENT_PERIODS_HOURS',
    'FIT_CONSTITUENTS',
    'angular_frequency',
    # Preprocessing
    'filter_time_range',
    'median_smooth',
    'fill_gaps',
    # Tidal separation
    'estimate_amplitude',
    'harmonic_tidal_fit',
    'lowpass_tidal_filter',
    'extract_tidal_component',
    'compute_residual',
    # Spectrum
    'compute_spectrum',
    # Detectors
    'detect_tidal_phases',
    'detect_storm_surges',
    'detect_seiches',
    'detect_infragravity_waves',
    'detect_data_artifacts',
    'detect_gaps',
    'detect_extreme_levels',
    'detect_aliased_activity',
    # Pipeline
    'decompose',
    'detect_events',
    'filter_by_confidence',
    'run_analysis',
    'AnalysisEngine',
    'AnalysisResult',
]
