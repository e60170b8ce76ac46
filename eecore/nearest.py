"""
Nearest standard value lookup.

Distance between magnitudes is measured on a log scale,
|log10(a) - log10(b)|, so that a 10% miss counts the same at 10Ω as at 10MΩ.
"""

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from eecore.catalog import ValueCatalog, get_standard_values
from eecore.series import ToleranceClass


@dataclass(frozen=True)
class NearbyValue:
    """A standard value near a target, with its deviation and loading current."""
    value: float
    error_pct: float
    current: Optional[float] = None


def _check_target(target: float) -> None:
    if not math.isfinite(target) or target <= 0:
        raise ValueError(f"Target must be a positive finite number, got {target}")


def log_distance(a: float, b: float) -> float:
    """Absolute decade distance between two positive magnitudes."""
    return abs(math.log10(a) - math.log10(b))


def nearest_index(catalog: Union[np.ndarray, Sequence[float]], target: float) -> Optional[int]:
    """
    Index of the catalog entry closest to `target` on a log scale.

    Args:
        catalog: Ascending sequence of positive values
        target: Value to resolve (must be positive)

    Returns:
        Index into `catalog`, or None if the catalog is empty.
        When two entries are equally close the smaller one wins.
    """
    _check_target(target)
    values = np.asarray(catalog, dtype=float)
    if values.size == 0:
        return None

    # values[pos - 1] < target <= values[pos]
    pos = int(np.searchsorted(values, target, side='left'))
    if pos == 0:
        return 0
    if pos == values.size:
        return values.size - 1

    below, above = pos - 1, pos
    d_below = log_distance(float(values[below]), target)
    d_above = log_distance(float(values[above]), target)
    return above if d_above < d_below else below


def nearest_value(catalog: Union[np.ndarray, Sequence[float]], target: float) -> Optional[float]:
    """Catalog entry closest to `target` on a log scale, or None for an empty catalog."""
    index = nearest_index(catalog, target)
    if index is None:
        return None
    return float(catalog[index])


def snap_to_standard(
    value: float,
    tolerance: Union[ToleranceClass, str, float] = ToleranceClass.COARSE,
    catalog: Optional[ValueCatalog] = None,
) -> Tuple[float, float]:
    """
    Snap a value to the nearest standard value of a tolerance class.

    Args:
        value: The target value (Ohms, Farads, Henries; the catalog is unitless)
        tolerance: Tolerance class selecting the E-series
        catalog: Catalog cache to draw from (default: shared cache)

    Returns:
        Tuple of (snapped_value, error_percentage).
        error_percentage is signed: positive means the snapped value is higher.
    """
    values = get_standard_values(tolerance, catalog)
    snapped = nearest_value(values, value)
    if snapped is None:
        raise ValueError("Standard value catalog is empty")
    error_pct = (snapped - value) / value * 100
    return snapped, error_pct


def standard_values_near(
    target: float,
    tolerance: Union[ToleranceClass, str, float] = ToleranceClass.COARSE,
    count: int = 5,
    voltage: Optional[float] = None,
    catalog: Optional[ValueCatalog] = None,
) -> List[NearbyValue]:
    """
    Standard values surrounding a target, nearest entry in the middle.

    Returns up to `count` entries on each side of the nearest standard value,
    ascending. When a non-zero `voltage` is given, each entry also carries
    the current that value would draw across it (A), as a magnitude.
    """
    if count < 0:
        raise ValueError(f"count must be non-negative, got {count}")
    values = get_standard_values(tolerance, catalog)
    index = nearest_index(values, target)
    if index is None:
        return []

    start = max(0, index - count)
    end = min(values.size - 1, index + count)

    nearby = []
    for value in values[start:end + 1]:
        value = float(value)
        current = abs(voltage) / value if voltage else None
        nearby.append(NearbyValue(
            value=value,
            error_pct=(value - target) / target * 100,
            current=current,
        ))
    return nearby
