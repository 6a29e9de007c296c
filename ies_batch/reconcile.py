# File: ies_batch/reconcile.py
"""Turn a partial edit into a consistent new snapshot.

Every edit surface (single cell, bulk column, CSV import, auto-adjust toggle)
goes through `reconcile`, so the same logical intent always lands on the same
document. The order is fixed: metadata, rename, dimensions, wattage, lumens,
CCT multiplier.
"""
from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Tuple

from .csv_io import CSVRow, ensure_ies_suffix, to_row
from .model import BatchRecord, Metadata, ProposedUpdate, round3
from .scaling import (
    DIMENSIONS, Scalable, photometric_of, rewrap,
    scale_by_cct, scale_by_dimension, scale_by_lumens, scale_by_wattage,
)
from .settings import CCT_MULTIPLIER_TOLERANCE, DIMENSION_TOLERANCE, LUMENS_TOLERANCE, WATTAGE_TOLERANCE
from .units import to_native

logger = logging.getLogger(__name__)

_NUMERIC_METADATA = {"color_temperature", "color_rendering_index"}
_REQUIRED_TEXT = {"format", "manufacturer", "lamp_catalog_number"}


# ===================== Wattage / lumens =====================
def apply_update(
    current: Scalable,
    baseline_wattage: float,
    baseline_lumens: float,
    proposed_wattage: Optional[float] = None,
    proposed_lumens: Optional[float] = None,
    auto_adjust_wattage: bool = False,
) -> Scalable:
    """Canonical wattage/lumens policy.

    1. wattage differs from baseline by more than 0.01 -> scale_by_wattage (lumens follow)
    2. lumens differ from baseline by more than 0.1 -> scale_by_lumens on the
       wattage-updated data, adjusting wattage only if `auto_adjust_wattage`
    3. otherwise `current` is returned as-is
    """
    out = current
    if proposed_wattage is not None and abs(proposed_wattage - baseline_wattage) > WATTAGE_TOLERANCE:
        out = scale_by_wattage(out, proposed_wattage).document
    else:
        logger.debug("wattage unchanged (proposed=%s baseline=%.3f)", proposed_wattage, baseline_wattage)

    if proposed_lumens is not None and abs(proposed_lumens - baseline_lumens) > LUMENS_TOLERANCE:
        out = scale_by_lumens(out, proposed_lumens, auto_adjust_wattage).document
    else:
        logger.debug("lumens unchanged (proposed=%s baseline=%.3f)", proposed_lumens, baseline_lumens)
    return out


# ===================== Dimensions =====================
def apply_dimensions(
    current: Scalable,
    length: Optional[float] = None,
    width: Optional[float] = None,
    height: Optional[float] = None,
    unit: Optional[str] = None,
) -> Scalable:
    """Scale by the first changed dimension (length, width, height); write the rest literally.

    Values are converted from `unit` into the native unit first; `unit` None
    means they already are native. Changes are measured against the current
    values, not the baseline.
    """
    p = photometric_of(current)
    proposed = {"length": length, "width": width, "height": height}
    native = {
        k: round3(to_native(v, unit, p.units_type) if unit else v)
        for k, v in proposed.items() if v is not None
    }
    if not native:
        return current

    out = current
    scaled: Optional[str] = None
    for dim in DIMENSIONS:
        if dim in native and abs(native[dim] - p.dimension(dim)) > DIMENSION_TOLERANCE:
            out = scale_by_dimension(out, native[dim], dim).document
            scaled = dim
            break

    literal = {k: v for k, v in native.items() if k != scaled}
    if literal:
        out = rewrap(out, photometric_of(out).updated(**literal))
    return out


# ===================== Metadata =====================
def _coerce_metadata(name: str, value: Any) -> Any:
    if name in _NUMERIC_METADATA:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        return float(str(value).strip().rstrip("Kk"))
    if name in _REQUIRED_TEXT:
        return "" if value is None else str(value)
    return None if value is None else str(value)

def merge_metadata(metadata: Metadata, updates: Mapping[str, Any]) -> Metadata:
    """Overwrite every field present in `updates`, including explicit empty strings.

    Fields missing from `updates` are untouched. Clearing a field that is
    already absent keeps it absent.
    """
    known = set(Metadata.field_names())
    changes = {}
    for name, value in updates.items():
        if name not in known:
            raise ValueError(f"unknown metadata field {name!r}")
        new = _coerce_metadata(name, value)
        # full rows (exported templates, rederive) carry "" for every absent keyword;
        # keep those absent so a round trip does not add empty tags
        if new == "" and getattr(metadata, name) is None:
            continue
        changes[name] = new
    return metadata.updated(**changes) if changes else metadata


# ===================== Whole-record reconciliation =====================
def reconcile(
    record: BatchRecord,
    update: ProposedUpdate,
    auto_adjust_wattage: bool = False,
) -> Tuple[BatchRecord, CSVRow]:
    """Apply `update` to `record` and return the new record plus its refreshed row.

    Raises InvalidScaleTarget without touching `record` if any scaling step is
    rejected.
    """
    doc = record.document
    if update.metadata:
        doc = doc.with_metadata(merge_metadata(doc.metadata, update.metadata))
    if update.new_file_name:
        doc = doc.renamed(ensure_ies_suffix(update.new_file_name))

    doc = apply_dimensions(doc, update.length, update.width, update.height, update.unit)
    doc = apply_update(
        doc,
        record.baseline.wattage,
        record.baseline.lumens,
        update.wattage,
        update.lumens,
        auto_adjust_wattage,
    )
    m = update.cct_multiplier
    if m is not None and abs(m - 1.0) > CCT_MULTIPLIER_TOLERANCE:
        doc = scale_by_cct(doc, m).document

    new_record = record.with_document(doc)
    return new_record, to_row(new_record)


__all__ = ["apply_update", "apply_dimensions", "merge_metadata", "reconcile"]
