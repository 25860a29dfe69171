"""
Tidal constituents used by the simplified harmonic tide fit.

Only the four dominant astronomical constituents are modelled: two
semidiurnal (M2, S2) and two diurnal (K1, O1).  Periods are rounded to
two decimals, matching the precision of the fit itself.
"""
from __future__ import annotations

import numpy as np

CONSTITUENT_PERIODS_HOURS: dict[str, float] = {
    'M2': 12.42,   # principal lunar semidiurnal
    'S2': 12.00,   # principal solar semidiurnal
    'K1': 23.93,   # lunisolar diurnal
    'O1': 25.82,   # principal lunar diurnal
}
"""Periods (hours) of the constituents in the harmonic tide fit."""

FIT_CONSTITUENTS: list[str] = list(CONSTITUENT_PERIODS_HOURS)
"""Constituent names in fitting order."""


def angular_frequency(name: str) -> float:
    """
    Angular frequency of a constituent in radians per hour.

    Parameters
    ----------
    name : str
        Constituent name (case-insensitive), e.g. ``"M2"``.

    Returns
    -------
    float
        ``2π / period``.

    Raises
    ------
    KeyError
        If *name* is not one of :data:`FIT_CONSTITUENTS`.
    """
    period = CONSTITUENT_PERIODS_HOURS[name.strip().upper()]
    return 2.0 * np.pi / period
