# File: ies_batch/batch.py
"""Batch of loaded IES documents and the edit surfaces that drive it.

Records are keyed by the file name they were loaded under; a CSV
`update_file_name` renames the document but never the key, so later rows still
match by the original name.
"""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

import pandas as pd

from .codec import generate, parse, parse_input
from .csv_io import CSVRow, ensure_ies_suffix, parse_csv_updates, row_to_update, rows_frame, to_row
from .errors import InvalidScaleTarget, ParseError, ValidationError
from .model import BatchRecord, Document, ProposedUpdate
from .reconcile import reconcile
from .scaling import DIMENSIONS, convert_units, scale_by_cct
from .settings import SUMMARY_SAMPLE_SIZE, BatchSettings, ExportSettings
from .units import unit_name

logger = logging.getLogger(__name__)

_ies_ext = re.compile(r"\.ies$", re.IGNORECASE)


# ===================== Summary =====================
@dataclass
class BatchSummary:
    """Outcome of a batch operation: how many files were attempted and which failed."""
    total: int = 0
    failed: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def succeeded(self) -> int:
        return self.total - len(self.failed)

    def add_failure(self, file_name: str, reason: str) -> None:
        self.failed.append((file_name, reason))

    def message(self) -> str:
        if not self.failed:
            return f"{self.total} file(s) processed"
        sample = ", ".join(name for name, _ in self.failed[:SUMMARY_SAMPLE_SIZE])
        more = len(self.failed) - SUMMARY_SAMPLE_SIZE
        if more > 0:
            sample += f" and {more} more"
        return f"{len(self.failed)} of {self.total} file(s) failed: {sample}"


# ===================== Naming =====================
def _safe_name(s: str) -> str:
    s = s or ""
    return "".join(ch for ch in s if ch.isalnum() or ch in ("-", "_", ".")).strip("._") or "Unknown"

def _stem(name: str) -> str:
    return _ies_ext.sub("", name or "")

def unique_file_name(name: str, used: Set[str]) -> str:
    """Insert `_N` before the extension until `name` is unused (case-insensitive). Adds to `used`."""
    candidate = name
    stem, ext = _stem(name), (name[len(_stem(name)):] or ".ies")
    n = 1
    while candidate.lower() in used:
        candidate = f"{stem}_{n}{ext}"
        n += 1
    used.add(candidate.lower())
    return candidate

def output_file_name(record: BatchRecord, settings: Optional[ExportSettings] = None) -> str:
    """Original (possibly CSV-renamed) name, or catalog-derived name plus suffix."""
    settings = settings or ExportSettings()
    if settings.use_original_filename:
        return ensure_ies_suffix(record.file_name)
    md = record.document.metadata
    catalog = (md.luminaire_catalog_number or "").strip() or (md.lamp_catalog_number or "").strip()
    stem = _safe_name(catalog) if catalog else _stem(record.file_name)
    return f"{stem}{settings.suffix}.ies"

def export_text(doc: Document) -> str:
    """IES text for download; a luminaire catalog number doubles as the [LUMINAIRE] description."""
    lumcat = (doc.metadata.luminaire_catalog_number or "").strip()
    if lumcat:
        doc = doc.with_metadata(doc.metadata.updated(luminaire_description=lumcat))
    return generate(doc)


# ===================== CCT variants =====================
@dataclass(frozen=True)
class CCTVariant:
    cct: float
    multiplier: float = 1.0
    luminaire_catalog_number: Optional[str] = None
    lamp_catalog_number: Optional[str] = None
    file_name: Optional[str] = None

def cct_variants(doc: Document, variants: Iterable[CCTVariant], base_name: Optional[str] = None) -> List[Document]:
    """One scaled copy of `doc` per variant, each with a unique file name."""
    base = _stem(base_name or doc.file_name) or "variant"
    used: Set[str] = set()
    out: List[Document] = []
    for v in variants:
        d = scale_by_cct(doc, v.multiplier).document if abs(v.multiplier - 1.0) > 1e-9 else doc
        md = d.metadata.updated(
            color_temperature=float(v.cct),
            luminaire_catalog_number=v.luminaire_catalog_number or d.metadata.luminaire_catalog_number,
            lamp_catalog_number=v.lamp_catalog_number or d.metadata.lamp_catalog_number,
        )
        if v.file_name:
            name = ensure_ies_suffix(v.file_name)
        elif v.luminaire_catalog_number:
            name = ensure_ies_suffix(_safe_name(v.luminaire_catalog_number))
        else:
            name = f"{base}_{v.cct:g}.ies"
        out.append(d.with_metadata(md).renamed(unique_file_name(name, used)))
    return out


# ===================== Session =====================
class BatchSession:
    """Ordered collection of BatchRecords plus the edit surfaces that reconcile them."""

    def __init__(self, settings: Optional[BatchSettings] = None):
        self.settings = settings or BatchSettings()
        self.auto_adjust_wattage = self.settings.auto_adjust_wattage
        self._records: Dict[str, BatchRecord] = {}

    # ---- loading ----
    def _add(self, doc: Document) -> None:
        if doc.file_name in self._records:
            logger.warning("%s loaded twice; keeping the later copy", doc.file_name)
        self._records[doc.file_name] = BatchRecord.load(doc)

    def load_texts(self, items: Iterable[Tuple[str, str]]) -> BatchSummary:
        summary = BatchSummary()
        for name, text in items:
            summary.total += 1
            try:
                self._add(parse(text, file_name=name))
            except ParseError as e:
                logger.warning("skipping %s: %s", name, e)
                summary.add_failure(name, str(e))
        logger.info("loaded %d of %d file(s)", summary.succeeded, summary.total)
        return summary

    def load_paths(self, paths: Iterable[str]) -> BatchSummary:
        summary = BatchSummary()
        for path in paths:
            summary.total += 1
            name = os.path.basename(path)
            try:
                self._add(parse_input(path))
            except (ParseError, OSError) as e:
                logger.warning("skipping %s: %s", name, e)
                summary.add_failure(name, str(e))
        logger.info("loaded %d of %d file(s)", summary.succeeded, summary.total)
        return summary

    def clear(self) -> None:
        self._records.clear()

    # ---- access ----
    def __len__(self) -> int:
        return len(self._records)

    @property
    def records(self) -> List[BatchRecord]:
        return list(self._records.values())

    def known_names(self) -> Set[str]:
        names = set(self._records)
        names.update(r.file_name for r in self._records.values())
        return names

    def _key(self, name: str) -> str:
        if name in self._records:
            return name
        for key, rec in self._records.items():
            if rec.file_name == name:
                return key
        raise KeyError(name)

    def get(self, name: str) -> BatchRecord:
        """Look up by load-time name, falling back to the current (renamed) name."""
        return self._records[self._key(name)]

    def rows(self) -> List[CSVRow]:
        return [to_row(r) for r in self._records.values()]

    def frame(self) -> pd.DataFrame:
        return rows_frame(self.rows())

    # ---- edit surfaces ----
    def _flag(self, auto_adjust_wattage: Optional[bool]) -> bool:
        return self.auto_adjust_wattage if auto_adjust_wattage is None else bool(auto_adjust_wattage)

    def apply(self, name: str, update: ProposedUpdate, auto_adjust_wattage: Optional[bool] = None) -> CSVRow:
        """Reconcile one record. InvalidScaleTarget propagates and the record is kept as it was."""
        key = self._key(name)
        record, row = reconcile(self._records[key], update, self._flag(auto_adjust_wattage))
        self._records[key] = record
        return row

    def _apply_many(self, updates: Sequence[Tuple[str, ProposedUpdate]], flag: bool) -> BatchSummary:
        summary = BatchSummary()
        for key, update in updates:
            summary.total += 1
            try:
                self._records[key], _ = reconcile(self._records[key], update, flag)
            except InvalidScaleTarget as e:
                logger.warning("%s left unchanged: %s", self._records[key].file_name, e)
                summary.add_failure(self._records[key].file_name, str(e))
        return summary

    def _cell_update(self, record: BatchRecord, field_name: str, value: str) -> ProposedUpdate:
        if field_name == "filename":
            field_name = "update_file_name"
        row = {"filename": record.file_name, field_name: value}
        if field_name in DIMENSIONS:
            row["unit"] = unit_name(record.document.photometric.units_type)
        update, errors = row_to_update(row, label=record.file_name)
        if errors:
            raise ValidationError(errors)
        return update

    def update_cell(self, name: str, field_name: str, value: str,
                    auto_adjust_wattage: Optional[bool] = None) -> CSVRow:
        """Single-cell edit, routed through the same validation and reconciliation as a CSV row."""
        key = self._key(name)
        record = self._records[key]
        if field_name == "unit":
            doc = convert_units(record.document, value)
            self._records[key] = record.with_document(doc)
            return to_row(self._records[key])
        return self.apply(key, self._cell_update(record, field_name, value), auto_adjust_wattage)

    def bulk_edit(self, field_name: str, value: str, file_names: Optional[Iterable[str]] = None,
                  auto_adjust_wattage: Optional[bool] = None) -> BatchSummary:
        """Set one column to `value` on many records (all when `file_names` is None)."""
        keys = [self._key(n) for n in file_names] if file_names is not None else list(self._records)
        if field_name == "unit":
            for k in keys:
                self.update_cell(k, "unit", value)
            return BatchSummary(total=len(keys))
        updates = [(k, self._cell_update(self._records[k], field_name, value)) for k in keys]
        return self._apply_many(updates, self._flag(auto_adjust_wattage))

    def import_csv(self, text: str, auto_adjust_wattage: Optional[bool] = None) -> BatchSummary:
        """Apply a CSV batch. Validation is all-or-nothing (ValidationError, nothing applied)."""
        updates = parse_csv_updates(text, self.known_names())
        summary = self._apply_many([(self._key(n), u) for n, u in updates.items()],
                                   self._flag(auto_adjust_wattage))
        logger.info("CSV import: %s", summary.message())
        return summary

    def rederive(self, auto_adjust_wattage: bool) -> BatchSummary:
        """Rebuild every record from its load-time source using its current row and the new flag."""
        self.auto_adjust_wattage = bool(auto_adjust_wattage)
        summary = BatchSummary()
        for key, record in list(self._records.items()):
            summary.total += 1
            row = to_row(record)
            row.pop("update_file_name", None)
            update, _ = row_to_update(row, label=record.file_name)
            # photometric targets come from the snapshot itself, not the formatted row
            p = record.document.photometric
            update = replace(
                update,
                wattage=p.input_watts,
                lumens=p.total_lumens,
                length=p.length,
                width=p.width,
                height=p.height,
                unit=unit_name(p.units_type),
            )
            try:
                rebuilt, _ = reconcile(record.reset(), update, self.auto_adjust_wattage)
                self._records[key] = rebuilt.with_document(convert_units(rebuilt.document, unit_name(p.units_type)))
            except InvalidScaleTarget as e:
                logger.warning("%s left unchanged: %s", record.file_name, e)
                summary.add_failure(record.file_name, str(e))
        return summary

    # ---- export ----
    def export(self, settings: Optional[ExportSettings] = None) -> Dict[str, str]:
        """Output file name -> IES text, names made unique within the export."""
        settings = settings or self.settings.export
        used: Set[str] = set()
        out: Dict[str, str] = {}
        for record in self._records.values():
            name = unique_file_name(output_file_name(record, settings), used)
            out[name] = export_text(record.document)
        return out

    def write_exports(self, directory: str, settings: Optional[ExportSettings] = None) -> List[str]:
        os.makedirs(directory, exist_ok=True)
        written: List[str] = []
        for name, text in self.export(settings).items():
            path = os.path.join(directory, name)
            with open(path, "w", encoding="latin-1", errors="replace", newline="\n") as f:
                f.write(text)
            written.append(path)
        return written


__all__ = [
    "BatchSession",
    "BatchSummary",
    "CCTVariant",
    "cct_variants",
    "export_text",
    "output_file_name",
    "unique_file_name",
]
