"""
Standard resistor pairs for voltage dividers.

Given an ideal Rtop/Rbot design and its voltages, search the standard values
around the ideal top resistor, pick the best-fitting bottom resistor for
each, and report how far each pair lands from the ideal ratio, midpoint
voltage and loading current.

Divider relation:
    Vmid = Vbot + Rbot / (Rtop + Rbot) · (Vtop - Vbot)
"""

import logging
import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional, Union

from eecore.catalog import ValueCatalog, get_standard_values
from eecore.nearest import log_distance, nearest_index, nearest_value
from eecore.series import ToleranceClass

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SIZE = 10

# Absolute floor for "is this zero" checks on voltages
EPSILON = 1e-9


class SortKey(str, Enum):
    RATIO = "ratio"
    CURRENT = "current"
    TOP = "top"


@dataclass(frozen=True)
class CandidatePair:
    """One standard-value realisation of a divider and its errors vs. the ideal design."""
    rtop: float
    rbot: float
    ratio: float
    ratio_error_pct: float
    vmid: float
    vmid_error_pct: Optional[float]
    current: float
    current_error_pct: float
    total_resistance: float
    sum_error_pct: float
    closest_top: bool = False
    closest_bottom: bool = False


def divider_vmid(vtop: float, vbot: float, rtop: float, rbot: float) -> float:
    """Midpoint voltage of an unloaded divider."""
    return vbot + (rbot / (rtop + rbot)) * (vtop - vbot)


def divider_current(vtop: float, vbot: float, rtop: float, rbot: float) -> float:
    """Current through the divider string (A)."""
    return abs((vtop - vbot) / (rtop + rbot))


def percent_error(actual: float, expected: float) -> float:
    """Signed deviation of `actual` from `expected` in percent. `expected` must be non-zero."""
    return (actual - expected) / expected * 100


def _inputs_valid(rtop, rbot, vtop, vmid, vbot, window_size) -> bool:
    values = (rtop, rbot, vtop, vmid, vbot)
    if not all(isinstance(v, (int, float)) and math.isfinite(v) for v in values):
        logger.warning(f"Divider inputs must be finite numbers: {values}")
        return False
    if rtop <= 0 or rbot <= 0:
        logger.warning(f"Resistances must be positive (rtop={rtop}, rbot={rbot})")
        return False
    if not (vtop > vmid > vbot):
        logger.warning(f"Voltage relationships must be Vtop > Vmid > Vbot (got {vtop}, {vmid}, {vbot})")
        return False
    if window_size < 0:
        logger.warning(f"Window size must be non-negative, got {window_size}")
        return False
    return True


def find_pairs(
    rtop: float,
    rbot: float,
    vtop: float,
    vmid: float,
    vbot: float = 0.0,
    tolerance: Union[ToleranceClass, str, float] = ToleranceClass.COARSE,
    window_size: int = DEFAULT_WINDOW_SIZE,
    max_ratio_error: Optional[float] = None,
    limit: Optional[int] = None,
    sort_by: Union[SortKey, str] = SortKey.RATIO,
    catalog: Optional[ValueCatalog] = None,
) -> List[CandidatePair]:
    """
    Find standard resistor pairs approximating an ideal divider.

    The top resistor ranges over `window_size` standard values either side
    of the one nearest the ideal Rtop. For each top value the bottom value
    is the standard value nearest to top / ideal_ratio, so the bottom is
    chosen to fit the ratio rather than snapped independently.

    Args:
        rtop: Ideal top resistor (Ohms)
        rbot: Ideal bottom resistor (Ohms)
        vtop: Top rail voltage
        vmid: Ideal midpoint voltage
        vbot: Bottom rail voltage
        tolerance: Tolerance class selecting the E-series
        window_size: Catalog entries to try on each side of the nearest top value
        max_ratio_error: Drop pairs whose |ratio error| (percent) exceeds this
        limit: Keep at most this many pairs after ranking
        sort_by: Ranking applied before `limit` (see `rank_pairs`)
        catalog: Catalog cache to draw from (default: shared cache)

    Returns:
        Pairs ranked by `sort_by` (|ratio error| ascending by default), with
        the closest flags set within the returned list. Empty if the inputs are
        invalid (non-positive resistors, or not Vtop > Vmid > Vbot).
    """
    if not _inputs_valid(rtop, rbot, vtop, vmid, vbot, window_size):
        return []

    tol = ToleranceClass.parse(tolerance)
    values = get_standard_values(tol, catalog)
    center = nearest_index(values, rtop)
    if center is None:
        return []

    ideal_ratio = rtop / rbot
    ideal_sum = rtop + rbot
    ideal_current = divider_current(vtop, vbot, rtop, rbot)

    start = max(0, center - window_size)
    end = min(len(values) - 1, center + window_size)

    pairs = []
    for top in values[start:end + 1]:
        top = float(top)
        bottom = nearest_value(values, top / ideal_ratio)
        if bottom is None or top <= 0 or bottom <= 0:
            continue

        ratio = top / bottom
        ratio_error = percent_error(ratio, ideal_ratio)
        if max_ratio_error is not None and abs(ratio_error) > max_ratio_error:
            continue

        result_vmid = divider_vmid(vtop, vbot, top, bottom)
        current = divider_current(vtop, vbot, top, bottom)
        total = top + bottom
        pairs.append(CandidatePair(
            rtop=top,
            rbot=bottom,
            ratio=ratio,
            ratio_error_pct=ratio_error,
            vmid=result_vmid,
            vmid_error_pct=None if abs(vmid) < EPSILON else percent_error(result_vmid, vmid),
            current=current,
            current_error_pct=percent_error(current, ideal_current),
            total_resistance=total,
            sum_error_pct=percent_error(total, ideal_sum),
        ))

    pairs = rank_pairs(pairs, sort_by)
    if limit is not None:
        pairs = pairs[:max(0, limit)]

    logger.debug(
        f"Divider {rtop:g}/{rbot:g} ({tol.series_name}, window {window_size}): "
        f"{len(pairs)} candidate pairs"
    )
    return flag_closest(pairs, rtop, rbot)


def flag_closest(pairs: List[CandidatePair], rtop: float, rbot: float) -> List[CandidatePair]:
    """Mark the pair nearest the ideal top value and the pairs using the bottom value nearest the ideal bottom."""
    if not pairs:
        return pairs

    best_top = min(range(len(pairs)), key=lambda i: log_distance(pairs[i].rtop, rtop))
    bottoms = sorted({p.rbot for p in pairs})
    best_bottom = min(bottoms, key=lambda b: log_distance(b, rbot))

    return [
        replace(p, closest_top=(i == best_top), closest_bottom=(p.rbot == best_bottom))
        for i, p in enumerate(pairs)
    ]


def rank_pairs(
    pairs: List[CandidatePair],
    sort_by: Union[SortKey, str] = SortKey.RATIO,
) -> List[CandidatePair]:
    """
    Re-rank an existing candidate list. Sorting is stable.

    sort_by: 'ratio' (|ratio error|), 'current' (|current error|) or
    'top' (top resistor value). Unknown keys rank by ratio error.
    """
    try:
        key = SortKey(sort_by)
    except ValueError:
        logger.warning(f"Unknown sort key {sort_by!r}, ranking by ratio error")
        key = SortKey.RATIO

    if key == SortKey.CURRENT:
        return sorted(pairs, key=lambda p: abs(p.current_error_pct))
    if key == SortKey.TOP:
        return sorted(pairs, key=lambda p: p.rtop)
    return sorted(pairs, key=lambda p: abs(p.ratio_error_pct))
