# File: ies_batch/scaling.py
"""Proportional re-scaling of measured photometry.

Each operation takes a Document (or its PhotometricData) and returns a
ScaleResult holding a new snapshot plus the factor applied. Outputs are rounded
half-up at the third decimal so repeated edits never accumulate float drift;
the multiplication itself uses the exact ratio.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Union

import numpy as np

from .errors import InvalidScaleTarget
from .model import CalculatedProperties, Document, PhotometricData, round3
from .units import convert_length, unit_name, units_type_for

logger = logging.getLogger(__name__)

DIMENSIONS = ("length", "width", "height")

Scalable = Union[Document, PhotometricData]


@dataclass(frozen=True)
class ScaleResult:
    document: Scalable
    scaling_factor: float


# ===================== Helpers =====================
def round3_array(a: np.ndarray) -> np.ndarray:
    return np.floor(np.asarray(a, dtype=float) * 1000.0 + 0.5) / 1000.0

def photometric_of(d: Scalable) -> PhotometricData:
    return d.photometric if isinstance(d, Document) else d

def rewrap(d: Scalable, p: PhotometricData) -> Scalable:
    return d.with_photometric(p) if isinstance(d, Document) else p

def _require_positive(operation: str, value: float, what: str = "target") -> float:
    v = float(value)
    if not math.isfinite(v) or v <= 0:
        raise InvalidScaleTarget(operation, value, f"{what} must be a finite number > 0")
    return v

def _scaled_candela(p: PhotometricData, factor: float):
    I = round3_array(np.asarray(p.candela, dtype=float) * factor)
    return I.tolist()

def _scale_output(p: PhotometricData, factor: float, **changes) -> PhotometricData:
    """Scale lumens-per-lamp and candela by `factor`, then apply field `changes`."""
    fields = dict(
        lumens_per_lamp=round3(p.lumens_per_lamp * factor),
        candela=_scaled_candela(p, factor),
    )
    fields.update(changes)
    return p.updated(**fields)

# ===================== Scaling operations =====================
def scale_by_cct(d: Scalable, multiplier: float) -> ScaleResult:
    """CCT variant: lumens and candela follow the multiplier, wattage is untouched."""
    m = _require_positive("scale_by_cct", multiplier, "multiplier")
    p = photometric_of(d)
    out = _scale_output(p, m)
    logger.debug("scale_by_cct factor=%.3f", m)
    return ScaleResult(rewrap(d, out), round3(m))

def scale_by_wattage(d: Scalable, new_watts: float) -> ScaleResult:
    """Constant efficacy: lumens and candela scale with the wattage ratio."""
    w = _require_positive("scale_by_wattage", new_watts)
    p = photometric_of(d)
    cur = _require_positive("scale_by_wattage", p.input_watts, "current wattage")
    factor = w / cur
    out = _scale_output(p, factor, input_watts=round3(w))
    logger.debug("scale_by_wattage %.3f W -> %.3f W factor=%.3f", cur, w, factor)
    return ScaleResult(rewrap(d, out), round3(factor))

def scale_by_lumens(d: Scalable, new_total_lumens: float, adjust_wattage: bool = False) -> ScaleResult:
    """Set total lumens; wattage follows only when `adjust_wattage` (otherwise efficacy changes)."""
    target = _require_positive("scale_by_lumens", new_total_lumens)
    p = photometric_of(d)
    cur = _require_positive("scale_by_lumens", p.total_lumens, "current total lumens")
    lamps = _require_positive("scale_by_lumens", p.lamp_count, "lamp count")
    factor = target / cur
    changes = dict(
        lumens_per_lamp=round3(target / lamps),
        candela=_scaled_candela(p, factor),
    )
    if adjust_wattage:
        changes["input_watts"] = round3(p.input_watts * factor)
    out = p.updated(**changes)
    logger.debug("scale_by_lumens %.3f lm -> %.3f lm factor=%.3f adjust_wattage=%s",
                 cur, target, factor, adjust_wattage)
    return ScaleResult(rewrap(d, out), round3(factor))

def scale_by_dimension(d: Scalable, new_value: float, dimension: str) -> ScaleResult:
    """Linear-fixture scaling: wattage, lumens and candela follow the dimension ratio.

    `new_value` is in the document's native unit. Only the named dimension changes.
    """
    if dimension not in DIMENSIONS:
        raise ValueError(f"dimension must be one of {DIMENSIONS}, got {dimension!r}")
    v = _require_positive("scale_by_dimension", new_value)
    p = photometric_of(d)
    cur = _require_positive("scale_by_dimension", p.dimension(dimension), f"current {dimension}")
    factor = v / cur
    if not is_linear_fixture(p):
        logger.warning("scale_by_dimension: fixture is not linear (L=%.3f W=%.3f H=%.3f); "
                       "scaling %s anyway", p.length, p.width, p.height, dimension)
    changes = {"input_watts": round3(p.input_watts * factor), dimension: round3(v)}
    out = _scale_output(p, factor, **changes)
    logger.debug("scale_by_dimension %s %.3f -> %.3f factor=%.3f", dimension, cur, v, factor)
    return ScaleResult(rewrap(d, out), round3(factor))

def swap_dimensions(d: Scalable) -> Scalable:
    """Exchange length and width. Orientation change only, no rescaling."""
    p = photometric_of(d)
    return rewrap(d, p.updated(length=p.width, width=p.length))

def convert_units(d: Scalable, to_unit: str) -> Scalable:
    """Relabel dimensions into meters or feet without touching photometry."""
    p = photometric_of(d)
    src = unit_name(p.units_type)
    target_type = units_type_for(to_unit)
    if unit_name(target_type) == src:
        return d
    dst = unit_name(target_type)
    out = p.updated(
        units_type=target_type,
        length=round3(convert_length(p.length, src, dst)),
        width=round3(convert_length(p.width, src, dst)),
        height=round3(convert_length(p.height, src, dst)),
    )
    return rewrap(d, out)

def is_linear_fixture(d: Scalable) -> bool:
    """Advisory only: length exceeds both width and height by more than 5x."""
    p = photometric_of(d)

    def _ratio(other: float) -> float:
        # zero-thickness openings are common (flat emitters)
        return p.length / other if other > 0 else (math.inf if p.length > 0 else 0.0)

    return _ratio(p.width) > 5 and _ratio(p.height) > 5

# ===================== Derived properties =====================
def _spread_angle(I: np.ndarray, V: np.ndarray, peak: float, fraction: float) -> float:
    if I.size == 0:
        return 180.0
    threshold = peak * fraction
    hits = np.nonzero(I[0, :] <= threshold)[0]
    if hits.size == 0:
        return 180.0
    return float(V[hits[0]]) * 2.0

def _symmetry(I: np.ndarray) -> str:
    if I.shape[0] <= 1:
        return "rotational"
    ref = I[0:1, :]
    diff = np.abs(I[1:, :] - ref)
    with np.errstate(divide="ignore", invalid="ignore"):
        rel = np.where(ref == 0, np.where(diff == 0, 0.0, np.inf), diff / np.abs(ref))
    return "symmetric" if bool(np.all(rel <= 0.1)) else "asymmetric"

def calculate_properties(d: Scalable) -> CalculatedProperties:
    p = photometric_of(d)
    I = np.asarray(p.candela, dtype=float)
    V = np.asarray(p.vertical_angles, dtype=float)

    peak = float(I.max()) if I.size else 0.0
    efficacy = round(p.total_lumens / p.input_watts, 2) if p.input_watts > 0 else 0.0
    nominal = p.lumens_per_lamp * p.lamp_count
    lor = float(round(p.total_lumens / nominal * 100.0)) if nominal != 0 else 100.0

    return CalculatedProperties(
        peak_intensity=round(peak, 2),
        efficacy=efficacy,
        beam_angle=_spread_angle(I, V, peak, 0.5),
        field_angle=_spread_angle(I, V, peak, 0.1),
        lor=lor,
        symmetry=_symmetry(I),
        center_beam_intensity=float(I[0, 0]) if I.size else 0.0,
    )


__all__ = [
    "ScaleResult",
    "DIMENSIONS",
    "scale_by_cct",
    "scale_by_wattage",
    "scale_by_lumens",
    "scale_by_dimension",
    "swap_dimensions",
    "convert_units",
    "is_linear_fixture",
    "calculate_properties",
    "round3_array",
]
