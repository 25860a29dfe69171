"""
Record types shared by every stage of the event analysis pipeline.

Samples, series, events and the analysis configuration are immutable
pydantic models.  A :class:`LevelSeries` keeps its data column-wise in
read-only numpy arrays so that the numerical stages can work on whole
arrays; :meth:`LevelSeries.samples` materializes :class:`Sample` records
when a caller needs them one at a time.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Iterable

import numpy as np
import pandas as pd
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

MIN_SAMPLES = 3
"""Fewest samples any detector (and the engine) will accept."""


class InsufficientDataError(ValueError):
    """Raised when a series is too short for the requested operation."""


def require_samples(n: int, minimum: int, what: str) -> None:
    """Raise :class:`InsufficientDataError` if *n* < *minimum*."""
    if n < minimum:
        raise InsufficientDataError(
            f"{what} requires at least {minimum} samples, got {n}."
        )


def as_datetime(value: np.datetime64) -> datetime:
    """Convert a ``datetime64`` element to a naive :class:`datetime`."""
    return pd.Timestamp(value).to_pydatetime()


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class EventType(str, Enum):
    RISING_TIDE = 'Rising Tide'
    FALLING_TIDE = 'Falling Tide'
    HIGH_TIDE = 'High Tide'
    LOW_TIDE = 'Low Tide'
    STORM_SURGE = 'Storm Surge'
    SEICHE = 'Seiche'
    INFRAGRAVITY = 'Infragravity'
    SPIKE = 'Spike'
    FLATLINE = 'Flatline'
    GAP = 'Gap'
    EXTREME_LEVEL = 'Extreme Level'
    ALIASED_ACTIVITY = 'Aliased Activity'


class Confidence(str, Enum):
    LOW = 'Low'
    MEDIUM = 'Medium'
    HIGH = 'High'

    @property
    def rank(self) -> int:
        """Ordinal used for threshold comparisons (Low=0, Medium=1, High=2)."""
        return _CONFIDENCE_RANK[self]


_CONFIDENCE_RANK = {
    Confidence.LOW: 0,
    Confidence.MEDIUM: 1,
    Confidence.HIGH: 2,
}


class TideRemovalMethod(str, Enum):
    HARMONIC = 'harmonic'
    LOWPASS = 'lowpass'


# ---------------------------------------------------------------------------
# Samples and series
# ---------------------------------------------------------------------------

class Sample(BaseModel):
    """
    A single water-level measurement.

    Attributes:
        timestamp: Measurement time (naive, UTC assumed)
        level: Water level in metres
        original_index: Row in the source data, or -1 if interpolated
    """

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    level: float = Field(allow_inf_nan=False)
    original_index: int = -1

    @property
    def is_interpolated(self) -> bool:
        return self.original_index < 0


class LevelSeries(BaseModel):
    """
    A time-ordered water-level series held as parallel read-only arrays.

    Attributes:
        time: Timestamps as ``datetime64[ns]``
        level: Water levels in metres
        original_index: Source row per sample, -1 for interpolated samples
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    time: np.ndarray
    level: np.ndarray
    original_index: np.ndarray

    @field_validator('time', mode='before')
    @classmethod
    def _coerce_time(cls, value):
        index = pd.DatetimeIndex(value)
        if index.tz is not None:
            index = index.tz_convert('UTC').tz_localize(None)
        arr = np.array(index.values, dtype='datetime64[ns]')
        arr.setflags(write=False)
        return arr

    @field_validator('level', mode='before')
    @classmethod
    def _coerce_level(cls, value):
        arr = np.array(value, dtype=float).reshape(-1)
        arr.setflags(write=False)
        return arr

    @field_validator('original_index', mode='before')
    @classmethod
    def _coerce_index(cls, value):
        arr = np.array(value, dtype=np.int64).reshape(-1)
        arr.setflags(write=False)
        return arr

    @model_validator(mode='after')
    def _check_lengths(self):
        if not (len(self.time) == len(self.level) == len(self.original_index)):
            raise ValueError(
                f"time ({len(self.time)}), level ({len(self.level)}), and "
                f"original_index ({len(self.original_index)}) must have the "
                f"same length."
            )
        return self

    def __len__(self) -> int:
        return len(self.level)

    @classmethod
    def from_samples(cls, samples: Iterable[Sample]) -> LevelSeries:
        """Build a series from samples, stably sorted by timestamp."""
        ordered = sorted(samples, key=lambda s: s.timestamp)
        return cls(
            time=[s.timestamp for s in ordered],
            level=[s.level for s in ordered],
            original_index=[s.original_index for s in ordered],
        )

    @classmethod
    def empty(cls) -> LevelSeries:
        return cls(time=[], level=[], original_index=[])

    def with_level(self, level: np.ndarray) -> LevelSeries:
        """Return a new series sharing time/index with replaced levels."""
        return LevelSeries(
            time=self.time,
            level=level,
            original_index=self.original_index,
        )

    def take(self, mask: np.ndarray) -> LevelSeries:
        """Return the subsequence selected by a boolean mask or index array."""
        return LevelSeries(
            time=self.time[mask],
            level=self.level[mask],
            original_index=self.original_index[mask],
        )

    def sort_by_time(self) -> LevelSeries:
        """Return the series stably sorted by timestamp (self if already sorted)."""
        if len(self) < 2 or not np.any(np.diff(self.time) < np.timedelta64(0, 'ns')):
            return self
        return self.take(np.argsort(self.time, kind='stable'))

    def timestamp(self, i: int) -> datetime:
        return as_datetime(self.time[i])

    def samples(self) -> list[Sample]:
        return [
            Sample(timestamp=as_datetime(t), level=float(v), original_index=int(k))
            for t, v, k in zip(self.time, self.level, self.original_index)
        ]

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({
            'DateTime': pd.DatetimeIndex(self.time),
            'Level': self.level,
            'OriginalIndex': self.original_index,
        })


class Decomposition(BaseModel):
    """
    Gap-filled series and its tidal / non-tidal components.

    All four series have the same length and are aligned by index.
    ``detrended`` and ``residual`` hold the same values.
    """

    model_config = ConfigDict(frozen=True)

    original: LevelSeries
    detrended: LevelSeries
    residual: LevelSeries
    tidal: LevelSeries

    @model_validator(mode='after')
    def _check_alignment(self):
        n = len(self.original)
        for name in ('detrended', 'residual', 'tidal'):
            other = getattr(self, name)
            if len(other) != n:
                raise ValueError(
                    f"original ({n}) and {name} ({len(other)}) must have the "
                    f"same length."
                )
            if not np.array_equal(other.time, self.original.time):
                raise ValueError(f"{name} is not time-aligned with original.")
        return self

    def __len__(self) -> int:
        return len(self.original)


class SpectralEstimate(BaseModel):
    """
    Coarse one-sided power estimate of a series.

    Attributes:
        frequencies: Bin frequencies in cycles/minute, ``[0, 0.5)``
        powers: Power per bin
        dominant_frequency: Highest-power bin excluding zero frequency
        dominant_period: ``1 / dominant_frequency`` in minutes (0 if none)
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    frequencies: np.ndarray
    powers: np.ndarray
    dominant_frequency: float
    dominant_period: float


# ---------------------------------------------------------------------------
# Events and configuration
# ---------------------------------------------------------------------------

class Event(BaseModel):
    """
    A labeled occurrence found by one of the detectors.

    ``properties`` is an ordered tuple of ``(name, value)`` pairs with
    numeric values only.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    type: EventType
    label: str
    start_time: datetime
    end_time: datetime | None = None
    peak: datetime | None = None
    confidence: Confidence
    amplitude: float | None = None
    period: float | None = None
    explanation: str
    properties: tuple[tuple[str, float], ...] = ()

    def get_property(self, name: str, default: float | None = None) -> float | None:
        for key, value in self.properties:
            if key == name:
                return value
        return default

    @property
    def property_names(self) -> list[str]:
        return [key for key, _ in self.properties]


class AnalysisConfig(BaseModel):
    """
    User-selected analysis options.

    Attributes:
        tide_removal_method: ``harmonic`` fit or ``lowpass`` moving average
        extreme_threshold: Deviation from the mean (m) flagged as extreme
        confidence_threshold: Lowest confidence grade kept in the output
        start_time: Optional inclusive start of the analysis window
        end_time: Optional inclusive end of the analysis window
        report_gaps: Emit ``Gap`` events for interpolated stretches
    """

    model_config = ConfigDict(frozen=True)

    tide_removal_method: TideRemovalMethod = TideRemovalMethod.LOWPASS
    extreme_threshold: float = Field(default=0.3, ge=0.0, allow_inf_nan=False)
    confidence_threshold: Confidence = Confidence.MEDIUM
    start_time: datetime | None = None
    end_time: datetime | None = None
    report_gaps: bool = False

    @model_validator(mode='after')
    def _check_window(self):
        if (
            self.start_time is not None
            and self.end_time is not None
            and self.start_time > self.end_time
        ):
            raise ValueError('start_time cannot be after end_time!')
        return self

    @classmethod
    def from_mapping(cls, values: dict) -> AnalysisConfig:
        """Build a config from a plain mapping, ignoring ``None`` entries."""
        return cls(**{k: v for k, v in values.items() if v is not None})
