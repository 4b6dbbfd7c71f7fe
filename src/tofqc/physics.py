"""Timing constants and per-track derived quantities.

All times are in picoseconds and lengths in centimetres. Bunch-crossing (BC)
arithmetic follows the LHC filling scheme: 3564 BC slots per orbit, one slot
every ten RF periods.
"""

from __future__ import annotations

import math

from .models import ReferenceHit, Track

LHC_RF_FREQUENCY_HZ = 400.789e6
LHC_MAX_BUNCHES = 3564
BC_TIME_PS = 10.0 / LHC_RF_FREQUENCY_HZ * 1e12
BC_TIME_PS_INV = 1.0 / BC_TIME_PS

# Inverse speed of light in ps/cm.
CINV_PS_PER_CM = 33.35641

GROUP_ADJACENCY_PS = 100e3
MATCH_WINDOW_BC = 8
MATCH_WINDOW_PS = MATCH_WINDOW_BC * BC_TIME_PS
# Shift applied before truncating an event time to its BC number.
BC_ROUNDING_OFFSET_PS = 5000.0


def reference_hit_time(hit: ReferenceHit, first_orbit: int = 0) -> float:
    """Absolute time of a reference hit relative to the batch's first orbit."""
    orbit = hit.orbit - first_orbit
    return (orbit * LHC_MAX_BUNCHES + hit.bc) * BC_TIME_PS


def event_time_bc(event_time: float) -> tuple[int, float]:
    """Split an event time into (BC number, time with respect to that BC).

    The BC number is truncated after adding `BC_ROUNDING_OFFSET_PS`, so times
    down to -5 ns are attributed to BC 0 with a negative residual.
    """
    n_bc = int((event_time + BC_ROUNDING_OFFSET_PS) * BC_TIME_PS_INV)
    return n_bc, event_time - n_bc * BC_TIME_PS


def bc_in_orbit(n_bc: int) -> int:
    return n_bc % LHC_MAX_BUNCHES


def time_residual(track: Track, event_time: float, hypothesis: int) -> float:
    """Measured minus expected time of flight for one hypothesis."""
    return track.time - event_time - track.expected_time(hypothesis)


def track_beta(track: Track, event_time: float) -> float:
    """Velocity in units of c from path length and time of flight.

    A zero time of flight yields `inf`; no range check is applied.
    """
    tof = track.time - event_time
    if tof == 0.0:
        return math.inf
    return track.length / tof * CINV_PS_PER_CM


def track_mass(p: float, beta: float) -> float:
    """Mass from momentum and velocity, `p / beta * sqrt(|1 - beta^2|)`.

    Velocities above 1 are not rejected: the absolute value keeps the result
    real. A zero velocity (zero path length) gives `inf`, an infinite velocity
    (zero time of flight) gives NaN.
    """
    if beta == 0.0:
        return math.inf
    if math.isinf(beta):
        return math.nan
    return p / beta * math.sqrt(abs(1.0 - beta * beta))
