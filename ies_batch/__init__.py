# File: ies_batch/__init__.py
"""Batch editing of IES LM-63 photometric files with consistent re-scaling."""
from __future__ import annotations

from .batch import BatchSession, BatchSummary, CCTVariant, cct_variants, export_text, output_file_name
from .codec import generate, parse, parse_input
from .csv_io import from_rows, parse_csv_updates, read_csv, rows_to_csv, to_row
from .errors import InvalidScaleTarget, ParseError, ValidationError
from .model import Baseline, BatchRecord, CalculatedProperties, Document, Metadata, PhotometricData, ProposedUpdate
from .reconcile import apply_dimensions, apply_update, merge_metadata, reconcile
from .scaling import (
    calculate_properties,
    convert_units,
    is_linear_fixture,
    scale_by_cct,
    scale_by_dimension,
    scale_by_lumens,
    scale_by_wattage,
    swap_dimensions,
)
from .settings import BatchSettings, ExportSettings

__VERSION__ = "2.0.0"

__all__ = [
    "BatchSession", "BatchSummary", "CCTVariant", "cct_variants", "export_text", "output_file_name",
    "parse", "parse_input", "generate",
    "to_row", "read_csv", "from_rows", "parse_csv_updates", "rows_to_csv",
    "ParseError", "ValidationError", "InvalidScaleTarget",
    "Metadata", "PhotometricData", "CalculatedProperties", "Document", "Baseline", "BatchRecord",
    "ProposedUpdate",
    "apply_update", "apply_dimensions", "merge_metadata", "reconcile",
    "scale_by_cct", "scale_by_wattage", "scale_by_lumens", "scale_by_dimension",
    "swap_dimensions", "convert_units", "is_linear_fixture", "calculate_properties",
    "BatchSettings", "ExportSettings",
]
