"""Pydantic models for eecore API requests and responses."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from eecore.divider import SortKey
from eecore.solver import SolverStatus, SolverVariant
from eecore.wafer import WaferUnknown


# --- Enums ---

class IBBUnknown(str, Enum):
    VIN = "vin"
    VOUT = "vout"
    VIN_IOUT = "vin_iout"


# --- Standard values ---

class StandardValuesResponse(BaseModel):
    tolerance: str = Field(..., description="Tolerance class in percent (5, 1, 0.1)")
    series: str = Field(..., description="E-series name")
    count: int
    values: List[float]


class NearestRequest(BaseModel):
    target: float = Field(..., gt=0, description="Ideal value (Ohms, Farads, Henries)")
    tolerance: str = Field("5", description="Tolerance class in percent (5, 1, 0.1)")
    count: int = Field(5, ge=0, le=50, description="Neighbours to list on each side")
    voltage: Optional[float] = Field(None, description="Voltage across the part, for loading current (V)")


class NearbyValueInfo(BaseModel):
    value: float
    error_pct: float
    current: Optional[float] = None


class NearestResponse(BaseModel):
    tolerance: str
    series: str
    nearest: float
    error_pct: float
    nearby: List[NearbyValueInfo] = []


# --- Divider ---

class DividerRequest(BaseModel):
    rtop: float = Field(..., gt=0, description="Ideal top resistor (Ohms)")
    rbot: float = Field(..., gt=0, description="Ideal bottom resistor (Ohms)")
    vtop: float = Field(..., description="Top rail voltage (V)")
    vmid: float = Field(..., description="Target midpoint voltage (V)")
    vbot: float = Field(0.0, description="Bottom rail voltage (V)")
    tolerance: str = Field("5", description="Tolerance class in percent (5, 1, 0.1)")
    window_size: int = Field(10, ge=0, le=100, description="Top values searched on each side")
    sort_by: SortKey = Field(SortKey.RATIO, description="Ranking: ratio, current or top")
    limit: Optional[int] = Field(None, ge=1, description="Maximum number of pairs returned")
    within_tolerance_limit: bool = Field(
        False, description="Drop pairs whose ratio error exceeds the tolerance class limit",
    )


class DividerPair(BaseModel):
    rtop: float
    rbot: float
    ratio: float
    ratio_error_pct: float
    vmid: float
    vmid_error_pct: Optional[float] = None
    current: float
    current_error_pct: float
    total_resistance: float
    sum_error_pct: float
    closest_top: bool = False
    closest_bottom: bool = False


class DividerResponse(BaseModel):
    tolerance: str
    series: str
    ideal_ratio: float
    max_ratio_error: Optional[float] = None
    pairs: List[DividerPair]


# --- Converters ---

class IBBSolveRequest(BaseModel):
    """Inverting buck-boost. Supply the known voltage for the chosen unknown."""
    solve_for: IBBUnknown = Field(IBBUnknown.VIN, description="Quantity to solve for")
    vin: Optional[float] = Field(None, gt=0, description="Input voltage (V), needed for solve_for=vout")
    vout: Optional[float] = Field(None, gt=0, description="Output voltage magnitude (V)")
    il_avg: float = Field(..., gt=0, description="Average inductor current (A)")
    iout: Optional[float] = Field(None, gt=0, description="Output current (A), not used for vin_iout")
    ripple: float = Field(..., gt=0, description="Peak-to-peak inductor ripple (A)")
    inductance: float = Field(..., gt=0, description="Inductance (H)")
    fsw: float = Field(..., gt=0, description="Switching frequency (Hz)")
    max_iterations: int = Field(10, ge=1, le=1000)
    tolerance: float = Field(1e-3, gt=0)


class BuckVoutRequest(BaseModel):
    vin: float = Field(..., gt=0, description="Input voltage (V)")
    ripple: float = Field(..., gt=0, description="Peak-to-peak inductor ripple (A)")
    inductance: float = Field(..., gt=0, description="Inductance (H)")
    fsw: float = Field(..., gt=0, description="Switching frequency (Hz)")
    vdsh: float = Field(0.0, ge=0, description="High-side switch drop (V)")
    vdsl: float = Field(0.0, ge=0, description="Low-side switch drop (V)")
    max_iterations: int = Field(10, ge=1, le=1000)
    tolerance: float = Field(1e-3, gt=0)


class BoostVinRequest(BaseModel):
    vout: float = Field(..., gt=0, description="Output voltage (V)")
    ripple: float = Field(..., gt=0, description="Peak-to-peak inductor ripple (A)")
    inductance: float = Field(..., gt=0, description="Inductance (H)")
    fsw: float = Field(..., gt=0, description="Switching frequency (Hz)")
    vdsl: float = Field(0.0, ge=0, description="Low-side switch drop (V)")
    max_iterations: int = Field(10, ge=1, le=1000)
    tolerance: float = Field(1e-3, gt=0)


# --- Wafer ---

class WaferSolveRequest(BaseModel):
    """Give the target GDPW and every wafer parameter except `solve_for`."""
    solve_for: WaferUnknown = Field(..., description="Parameter to solve for")
    target_gdpw: float = Field(..., gt=0, description="Target gross die per wafer")
    wafer_size: Optional[float] = Field(None, gt=0, description="Wafer diameter (mm)")
    edge_keepout: Optional[float] = Field(None, ge=0, description="Edge keepout (mm)")
    die_x: Optional[float] = Field(None, gt=0, description="Die size X (mm)")
    die_y: Optional[float] = Field(None, gt=0, description="Die size Y (mm)")
    saw_street: Optional[float] = Field(None, ge=0, description="Saw street width (µm)")
    aspect_ratio: float = Field(1.0, gt=0, description="Die X / Y, seeds the die-size guess")
    max_iterations: int = Field(100, ge=1, le=1000)
    tolerance: float = Field(0.01, gt=0)


class SolveResponse(BaseModel):
    converged: bool
    status: SolverStatus
    variant: SolverVariant
    solution: dict = Field(default_factory=dict, description="Solved quantities by name")
    iterations: int
    resets: int = 0
    residuals: List[Optional[float]] = []
    last_iterate: Optional[List[Optional[float]]] = None
    message: str = ""
