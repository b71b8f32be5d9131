"""
Interpolation engine for tide series.

Reference stations publish dense 6-minute predictions, which are smooth
enough for piecewise-linear interpolation. Subordinate stations publish only
high/low extremes (about four a day), so the curve between them is rebuilt
with a natural cubic spline over minutes since the first extreme.

The harmonic model at the bottom is a best-effort fallback used only when no
predicted series is available. It is not a validated astronomical model.
"""
import math
from bisect import bisect_left
from typing import List, Sequence

import numpy as np
from scipy.interpolate import CubicSpline

from features.common.exceptions.tide_exceptions import NoDataError, OutOfRangeError
from features.stations.models.station_types import HarmonicConstants, HarmonicConstituent
from features.tides.models.tide_types import TideExtreme, TidePrediction, TideState

MILLIS_PER_MINUTE = 60_000
MILLIS_PER_HOUR = 3_600_000

# Placeholder constituents for stations without fitted constants. Amplitudes
# are illustrative only.
DEFAULT_HARMONIC_CONSTANTS = HarmonicConstants(
    station_id="DEFAULT",
    mean_sea_level=3.0,
    constituents=[
        HarmonicConstituent(name="M2", speed=28.9841042, amplitude=2.0, phase=0.0),
        HarmonicConstituent(name="S2", speed=30.0, amplitude=0.5, phase=0.0),
        HarmonicConstituent(name="N2", speed=28.4397295, amplitude=0.4, phase=0.0),
        HarmonicConstituent(name="K1", speed=15.0410686, amplitude=0.6, phase=0.0),
        HarmonicConstituent(name="O1", speed=13.9430356, amplitude=0.4, phase=0.0),
    ]
)

def interpolate_dense(series: Sequence[TidePrediction], timestamp: int) -> float:
    """Linearly interpolate a sorted prediction series at ``timestamp``.

    Raises:
        OutOfRangeError: if ``timestamp`` is outside the covered range.
    """
    times = [p.timestamp for p in series]
    i = bisect_left(times, timestamp)

    if i < len(times) and times[i] == timestamp:
        return series[i].height

    if i == 0 or i == len(times):
        raise OutOfRangeError(f"No predictions available for the requested time {timestamp}")

    before, after = series[i - 1], series[i]
    ratio = (timestamp - before.timestamp) / (after.timestamp - before.timestamp)
    return before.height + (after.height - before.height) * ratio

def _unique_knots(series: Sequence[TideExtreme]) -> List[TideExtreme]:
    """Sort extremes and drop duplicate timestamps, keeping the last seen."""
    by_time = {e.timestamp: e for e in series}
    return [by_time[t] for t in sorted(by_time)]

def interpolate_extremes(series: Sequence[TideExtreme], timestamp: int) -> float:
    """Evaluate a natural cubic spline through the extremes at ``timestamp``.

    Times before the first or after the last extreme are clamped to the
    boundary height.

    Raises:
        NoDataError: if ``series`` is empty.
    """
    if not series:
        raise NoDataError("No extremes available for interpolation")

    knots = _unique_knots(series)
    base_time = knots[0].timestamp
    minutes = np.array([(e.timestamp - base_time) / MILLIS_PER_MINUTE for e in knots])
    heights = np.array([e.height for e in knots])
    query = (timestamp - base_time) / MILLIS_PER_MINUTE

    if query <= minutes[0]:
        return float(heights[0])
    if query >= minutes[-1]:
        return float(heights[-1])

    if len(knots) == 2:
        # A natural spline through two points is the straight line
        return float(np.interp(query, minutes, heights))

    spline = CubicSpline(minutes, heights, bc_type="natural")
    return float(spline(query))

def classify(
    current_height: float,
    previous_height: float,
    threshold: float = 0.1,
    high_threshold: float = 6.0
) -> TideState:
    """Classify the tide from the current height and the height one step earlier."""
    if current_height > previous_height + threshold:
        return TideState.RISING
    if current_height < previous_height - threshold:
        return TideState.FALLING
    if current_height > high_threshold:
        return TideState.HIGH
    return TideState.LOW

def harmonic_height(constants: HarmonicConstants, timestamp: int) -> float:
    """Water level from harmonic constants.

    height = MSL + sum(A * cos(speed * hours + phase)), with speed in degrees
    per hour and phase in degrees; ``hours`` is measured from the Unix epoch.
    """
    hours = timestamp / MILLIS_PER_HOUR
    height = constants.mean_sea_level
    for c in constants.constituents:
        height += c.amplitude * math.cos(math.radians(c.speed * hours + c.phase))
    return height
