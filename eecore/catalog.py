"""
Standard value catalogs.

A catalog is every base significand of a tolerance class scaled across a
fixed span of decades, rounded, deduplicated and sorted ascending. Catalogs
are built lazily and kept for the life of the owning ValueCatalog.
"""

import logging
import threading
from typing import Dict, List, Optional, Union

import numpy as np

from eecore.series import ToleranceClass

logger = logging.getLogger(__name__)

# Default span: 0.1 to 9.88e7 of the base unit
MIN_EXPONENT = -1
MAX_EXPONENT = 7

# Significant digits kept before deduplication
ROUNDING_PRECISION = 9


def _round_significant(values: np.ndarray, digits: int) -> np.ndarray:
    """Round each positive value to `digits` significant figures."""
    exponents = np.floor(np.log10(values))
    scale = 10.0 ** (digits - 1 - exponents)
    return np.round(values * scale) / scale


def build_catalog(
    base_values: List[float],
    min_exponent: int = MIN_EXPONENT,
    max_exponent: int = MAX_EXPONENT,
    precision: int = ROUNDING_PRECISION,
) -> np.ndarray:
    """
    Scale base significands across decades into a sorted, read-only array.

    Args:
        base_values: Significands in [1.0, 10.0)
        min_exponent: Lowest decade exponent (inclusive)
        max_exponent: Highest decade exponent (inclusive)
        precision: Significant digits kept before removing duplicates

    Returns:
        Strictly increasing float64 array with the write flag cleared.
    """
    if max_exponent < min_exponent:
        raise ValueError(f"Empty decade span: {min_exponent}..{max_exponent}")
    bases = np.asarray(base_values, dtype=float)
    if bases.size == 0 or np.any(bases <= 0):
        raise ValueError("Base values must be a non-empty list of positive numbers")

    decades = 10.0 ** np.arange(min_exponent, max_exponent + 1, dtype=float)
    scaled = np.outer(decades, bases).ravel()
    values = np.unique(_round_significant(scaled, precision))
    values.flags.writeable = False
    return values


class ValueCatalog:
    """
    Per-tolerance-class cache of standard value catalogs.

    The first request for a class generates its catalog; later requests
    return the same read-only array. Generation is idempotent, and the lock
    only keeps two threads from building the same class at once.
    """

    def __init__(
        self,
        min_exponent: int = MIN_EXPONENT,
        max_exponent: int = MAX_EXPONENT,
        precision: int = ROUNDING_PRECISION,
    ):
        if max_exponent < min_exponent:
            raise ValueError(f"Empty decade span: {min_exponent}..{max_exponent}")
        self.min_exponent = min_exponent
        self.max_exponent = max_exponent
        self.precision = precision
        self._cache: Dict[ToleranceClass, np.ndarray] = {}
        self._lock = threading.Lock()

    def generate(self, tolerance: Union[ToleranceClass, str, float, None] = ToleranceClass.COARSE) -> np.ndarray:
        """Return the catalog for a tolerance class, building it on first use."""
        tol = ToleranceClass.parse(tolerance)
        values = self._cache.get(tol)
        if values is not None:
            return values

        with self._lock:
            values = self._cache.get(tol)
            if values is None:
                values = build_catalog(
                    tol.base_values, self.min_exponent, self.max_exponent, self.precision
                )
                self._cache[tol] = values
                logger.debug(
                    f"Built {tol.series_name} catalog: {values.size} values "
                    f"({values[0]:g} to {values[-1]:g})"
                )
        return values

    def warm(self) -> None:
        """Build every tolerance class up front."""
        for tol in ToleranceClass:
            self.generate(tol)

    def cached_classes(self) -> List[ToleranceClass]:
        return [tol for tol in ToleranceClass if tol in self._cache]

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()


default_catalog = ValueCatalog()


def get_standard_values(
    tolerance: Union[ToleranceClass, str, float, None] = ToleranceClass.COARSE,
    catalog: Optional[ValueCatalog] = None,
) -> np.ndarray:
    """Standard values for a tolerance class from `catalog` (default: shared cache)."""
    return (catalog or default_catalog).generate(tolerance)
