# File: ies_batch/model.py
"""Immutable snapshots for one IES document and its batch bookkeeping.

Every edit produces a new snapshot via `dataclasses.replace`; nothing here is
mutated in place. Candela values are stored as a tuple of horizontal slices,
each a tuple of vertical samples: `candela[h][v]`.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field, fields, replace
from typing import Any, Mapping, Optional, Sequence, Tuple

DEFAULT_FORMAT = "IESNA:LM-63-2002"

NEAR_FIELD_TYPES = ("none", "point", "linear", "area")

Matrix = Tuple[Tuple[float, ...], ...]


def round3(x: float) -> float:
    """Round half up at the third decimal."""
    return math.floor(float(x) * 1000.0 + 0.5) / 1000.0


def _as_matrix(rows: Sequence[Sequence[float]]) -> Matrix:
    return tuple(tuple(float(v) for v in row) for row in rows)


# ===================== Metadata =====================
@dataclass(frozen=True)
class Metadata:
    """Descriptive keyword fields. None means "absent from the file"; "" means present but empty."""
    format: str = DEFAULT_FORMAT
    manufacturer: str = ""
    lamp_catalog_number: str = ""
    test: Optional[str] = None
    test_lab: Optional[str] = None
    test_date: Optional[str] = None
    issue_date: Optional[str] = None
    lamp_position: Optional[str] = None
    other: Optional[str] = None
    near_field: Optional[str] = None
    luminaire_description: Optional[str] = None
    luminaire_catalog_number: Optional[str] = None
    ballast_catalog_number: Optional[str] = None
    ballast_description: Optional[str] = None
    color_temperature: Optional[float] = None
    color_rendering_index: Optional[float] = None

    @classmethod
    def field_names(cls) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    def updated(self, **changes: Any) -> "Metadata":
        return replace(self, **changes)


# ===================== Photometric data =====================
@dataclass(frozen=True)
class PhotometricData:
    lamp_count: int
    lumens_per_lamp: float
    multiplier: float
    photometric_type: int
    units_type: int
    width: float
    length: float
    height: float
    ballast_factor: float
    ballast_lamp_factor: float
    input_watts: float
    vertical_angles: Tuple[float, ...]
    horizontal_angles: Tuple[float, ...]
    candela: Matrix
    tilt: str = "NONE"

    def __post_init__(self) -> None:
        object.__setattr__(self, "vertical_angles", tuple(float(a) for a in self.vertical_angles))
        object.__setattr__(self, "horizontal_angles", tuple(float(a) for a in self.horizontal_angles))
        object.__setattr__(self, "candela", _as_matrix(self.candela))
        nV = len(self.vertical_angles); nH = len(self.horizontal_angles)
        if len(self.candela) != nH or any(len(row) != nV for row in self.candela):
            shape = (len(self.candela), sorted({len(r) for r in self.candela}))
            raise ValueError(f"candela matrix shape {shape} does not match [{nH}][{nV}]")

    @property
    def total_lumens(self) -> float:
        return round3(self.lumens_per_lamp * self.lamp_count)

    @property
    def vertical_count(self) -> int:
        return len(self.vertical_angles)

    @property
    def horizontal_count(self) -> int:
        return len(self.horizontal_angles)

    def dimension(self, name: str) -> float:
        if name not in ("length", "width", "height"):
            raise KeyError(name)
        return float(getattr(self, name))

    def updated(self, **changes: Any) -> "PhotometricData":
        return replace(self, **changes)


@dataclass(frozen=True)
class CalculatedProperties:
    peak_intensity: float
    efficacy: float
    beam_angle: float
    field_angle: float
    lor: float
    symmetry: str
    center_beam_intensity: float


# ===================== Document =====================
@dataclass(frozen=True)
class Document:
    metadata: Metadata
    photometric: PhotometricData
    file_name: str = ""
    file_size: int = 0

    def with_photometric(self, photometric: PhotometricData) -> "Document":
        return replace(self, photometric=photometric)

    def with_metadata(self, metadata: Metadata) -> "Document":
        return replace(self, metadata=metadata)

    def renamed(self, file_name: str) -> "Document":
        return replace(self, file_name=file_name)


# ===================== Batch bookkeeping =====================
@dataclass(frozen=True)
class Baseline:
    """Values captured once at load time; every "did this change" check compares against these."""
    wattage: float
    lumens: float
    length: float
    width: float
    height: float
    units_type: int

    @classmethod
    def capture(cls, doc: Document) -> "Baseline":
        p = doc.photometric
        return cls(
            wattage=p.input_watts,
            lumens=p.total_lumens,
            length=p.length,
            width=p.width,
            height=p.height,
            units_type=p.units_type,
        )


@dataclass(frozen=True)
class BatchRecord:
    document: Document
    baseline: Baseline
    source: Document
    original_file_name: str = field(default="")

    @classmethod
    def load(cls, doc: Document) -> "BatchRecord":
        return cls(document=doc, baseline=Baseline.capture(doc), source=doc,
                   original_file_name=doc.file_name)

    @property
    def file_name(self) -> str:
        return self.document.file_name

    def with_document(self, doc: Document) -> "BatchRecord":
        return replace(self, document=doc)

    def reset(self) -> "BatchRecord":
        """Back to the load-time snapshot, keeping the current (possibly renamed) file name."""
        return replace(self, document=self.source.renamed(self.document.file_name))


@dataclass(frozen=True)
class ProposedUpdate:
    """A partial edit from any surface (CSV row, cell edit, bulk column edit).

    `metadata` holds only the fields the edit mentions; an empty string there
    clears the field, a missing key leaves it alone. `unit` None means the
    dimensions are already in the document's native unit.
    """
    metadata: Mapping[str, Any] = field(default_factory=dict)
    wattage: Optional[float] = None
    lumens: Optional[float] = None
    length: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None
    unit: Optional[str] = None
    cct_multiplier: Optional[float] = None
    new_file_name: Optional[str] = None

    def is_empty(self) -> bool:
        return not self.metadata and all(
            getattr(self, k) is None
            for k in ("wattage", "lumens", "length", "width", "height", "cct_multiplier", "new_file_name")
        )
