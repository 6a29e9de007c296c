# File: ies_batch/codec.py
"""IES LM-63 text <-> Document.

Keyword lines are read through a tag table until the TILT line. After TILT the
numeric block is a 10-field header line, a 3-field ballast/wattage line, then
whitespace-wrapped vertical angles, horizontal angles and candela rows; those
last three are consumed as one token stream because real files wrap them freely.
"""
from __future__ import annotations

import logging
import os
import re
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from .errors import ParseError
from .model import DEFAULT_FORMAT, Document, Metadata, PhotometricData, round3

logger = logging.getLogger(__name__)

# ===================== Small utils =====================
def _compact_num(val: Any, places: int = 3) -> str:
    """Compact numeric for IES output (keeps ints tidy, trims trailing zeros)."""
    try:
        x = float(val)
        s = f"{x:.{places}f}".rstrip("0").rstrip(".")
        return s if s and s != "-0" else "0"
    except (TypeError, ValueError):
        return str(val)

def _fmt3(val: float) -> str:
    return _compact_num(round3(val), 3)

def _fmt_row(nums) -> str:
    return " ".join(_fmt3(x) for x in nums)

def _text(v: str) -> str:
    return v

def _first_token(v: str) -> str:
    parts = v.split()
    return parts[0] if parts else ""

def _number(v: str) -> Optional[float]:
    v = v.strip().rstrip("Kk").strip()
    try:
        return float(v)
    except ValueError:
        logger.debug("ignoring non-numeric keyword value %r", v)
        return None

# ===================== Keyword table =====================
# tag -> (Metadata field, converter)
KEYWORD_TABLE: Dict[str, Tuple[str, Callable[[str], Any]]] = {
    "TEST":               ("test", _text),
    "TESTLAB":            ("test_lab", _text),
    "TESTDATE":           ("test_date", _text),
    "ISSUEDATE":          ("issue_date", _text),
    "LAMPPOSITION":       ("lamp_position", _text),
    "OTHER":              ("other", _text),
    "NEARFIELD":          ("near_field", _first_token),
    "MANUFAC":            ("manufacturer", _text),
    "LUMINAIRE":          ("luminaire_description", _text),
    "LAMPCAT":            ("lamp_catalog_number", _text),
    "LUMCAT":             ("luminaire_catalog_number", _text),
    "BALLASTCAT":         ("ballast_catalog_number", _text),
    "BALLAST":            ("ballast_description", _text),
    "_COLOR_TEMPERATURE": ("color_temperature", _number),
    "COLOR_TEMPERATURE":  ("color_temperature", _number),
    "_CRI":               ("color_rendering_index", _number),
    "CRI":                ("color_rendering_index", _number),
}

# Emission order for generate(); NEARFIELD and the numeric tags are handled separately.
EMIT_ORDER: List[Tuple[str, str]] = [
    ("TEST", "test"),
    ("TESTLAB", "test_lab"),
    ("TESTDATE", "test_date"),
    ("ISSUEDATE", "issue_date"),
    ("LAMPPOSITION", "lamp_position"),
    ("OTHER", "other"),
    ("NEARFIELD", "near_field"),
    ("MANUFAC", "manufacturer"),
    ("LUMINAIRE", "luminaire_description"),
    ("LAMPCAT", "lamp_catalog_number"),
    ("LUMCAT", "luminaire_catalog_number"),
    ("BALLASTCAT", "ballast_catalog_number"),
    ("BALLAST", "ballast_description"),
]

_kw_pat = re.compile(r"^\[([^\]]+)\]\s*(.*?)\s*$")

# ===================== Parse =====================
def _numbers(line: str, line_no: int, what: str, count: int) -> List[float]:
    toks = line.split()
    if len(toks) < count:
        raise ParseError(f"{what} needs {count} values, found {len(toks)}", line_no)
    out: List[float] = []
    for t in toks[:count]:
        try:
            out.append(float(t))
        except ValueError:
            raise ParseError(f"non-numeric value {t!r} in {what}", line_no) from None
    return out

def _next_content_line(lines: List[str], i: int, what: str) -> int:
    while i < len(lines) and not lines[i]:
        i += 1
    if i >= len(lines):
        raise ParseError(f"missing {what} line", len(lines))
    return i

def _token_stream(lines: List[str], start: int) -> Iterator[Tuple[str, int]]:
    for i in range(start, len(lines)):
        for tok in lines[i].split():
            yield tok, i + 1

def _take(stream: Iterator[Tuple[str, int]], n: int, what: str, last_line: int) -> List[float]:
    out: List[float] = []
    for tok, line_no in stream:
        try:
            out.append(float(tok))
        except ValueError:
            raise ParseError(f"non-numeric value {tok!r} in {what}", line_no) from None
        if len(out) == n:
            return out
    raise ParseError(f"expected {n} {what}, input ended after {len(out)}", last_line)

def _parse_keywords(lines: List[str]) -> Tuple[Dict[str, Any], int]:
    """Return (metadata fields, index of the TILT line)."""
    values: Dict[str, Any] = {}
    i = 0
    while i < len(lines) and not lines[i]:
        i += 1
    if i < len(lines) and not lines[i].startswith("[") and not lines[i].upper().startswith("TILT"):
        values["format"] = lines[i]
        i += 1
    while i < len(lines):
        line = lines[i]
        if line.upper().startswith("TILT"):
            return values, i
        m = _kw_pat.match(line)
        if m:
            entry = KEYWORD_TABLE.get(m.group(1).strip().upper())
            if entry is not None:
                name, conv = entry
                values[name] = conv(m.group(2))
        i += 1
    raise ParseError("TILT line not found", len(lines))

def parse(text: str, file_name: str = "", file_size: Optional[int] = None) -> Document:
    lines = [ln.strip() for ln in text.splitlines()]
    if file_size is None:
        file_size = len(text.encode("latin-1", errors="replace"))

    md_values, tilt_idx = _parse_keywords(lines)
    tilt_line = lines[tilt_idx]
    tilt = tilt_line.split("=", 1)[1].strip() if "=" in tilt_line else "NONE"
    if tilt.upper() == "INCLUDE":
        raise ParseError("TILT=INCLUDE tables are not supported", tilt_idx + 1)
    if tilt.upper() != "NONE":
        logger.warning("%s: TILT=%s references an external table; ignoring it", file_name or "<text>", tilt)

    i = _next_content_line(lines, tilt_idx + 1, "photometric header")
    g = _numbers(lines[i], i + 1, "photometric header", 10)
    nV, nH = int(g[3]), int(g[4])
    if nV <= 0 or nH <= 0:
        raise ParseError(f"invalid angle counts (vertical={nV}, horizontal={nH})", i + 1)

    i = _next_content_line(lines, i + 1, "ballast/wattage")
    b = _numbers(lines[i], i + 1, "ballast/wattage line", 3)

    stream = _token_stream(lines, i + 1)
    last = len(lines)
    V = _take(stream, nV, "vertical angles", last)
    H = _take(stream, nH, "horizontal angles", last)
    I = [_take(stream, nV, f"candela values for horizontal angle {H[h]:g}", last) for h in range(nH)]

    photometric = PhotometricData(
        lamp_count=int(g[0]),
        lumens_per_lamp=g[1],
        multiplier=g[2],
        photometric_type=int(g[5]),
        units_type=int(g[6]),
        width=g[7],
        length=g[8],
        height=g[9],
        ballast_factor=b[0],
        ballast_lamp_factor=b[1],
        input_watts=b[2],
        vertical_angles=V,
        horizontal_angles=H,
        candela=I,
        tilt=tilt.upper() if tilt.upper() == "NONE" else tilt,
    )
    md_values.setdefault("format", DEFAULT_FORMAT)
    md_values.setdefault("manufacturer", "")
    md_values.setdefault("lamp_catalog_number", "")
    return Document(metadata=Metadata(**md_values), photometric=photometric,
                    file_name=file_name, file_size=int(file_size))

def parse_input(path_or_bytes: Any, file_name: Optional[str] = None) -> Document:
    """Parse from a filesystem path, raw bytes, or a file-like object (Latin-1)."""
    if isinstance(path_or_bytes, (str, os.PathLike)):
        with open(path_or_bytes, "rb") as f:
            payload = f.read()
        name = file_name or os.path.basename(os.fspath(path_or_bytes))
    else:
        payload = path_or_bytes.read() if hasattr(path_or_bytes, "read") else path_or_bytes
        name = file_name or os.path.basename(str(getattr(path_or_bytes, "name", "") or ""))
    if isinstance(payload, (bytes, bytearray)):
        txt = payload.decode("latin-1", errors="replace"); size = len(payload)
    else:
        txt = str(payload); size = None
    return parse(txt, file_name=name, file_size=size)

# ===================== Generate =====================
def generate(doc: Document) -> str:
    md = doc.metadata
    p = doc.photometric

    lines: List[str] = [md.format or DEFAULT_FORMAT]
    for tag, name in EMIT_ORDER:
        val = getattr(md, name)
        if tag == "NEARFIELD":
            if val:
                lines.append(f"[NEARFIELD] {val} {_fmt3(p.length)} {_fmt3(p.width)} {_fmt3(p.height)}")
            continue
        if val is None:
            continue
        lines.append(f"[{tag}] {val}".rstrip())
    if md.color_temperature is not None:
        lines.append(f"[_COLOR_TEMPERATURE] {_compact_num(md.color_temperature, 3)}K")
    if md.color_rendering_index is not None:
        lines.append(f"[_CRI] {_compact_num(md.color_rendering_index, 3)}")

    lines.append(f"TILT={p.tilt or 'NONE'}")
    lines.append(" ".join([
        str(int(p.lamp_count)),
        _fmt3(p.lumens_per_lamp),
        _compact_num(p.multiplier, 6),
        str(p.vertical_count),
        str(p.horizontal_count),
        str(int(p.photometric_type)),
        str(int(p.units_type)),
        _fmt3(p.width),
        _fmt3(p.length),
        _fmt3(p.height),
    ]))
    lines.append(" ".join([_fmt3(p.ballast_factor), _fmt3(p.ballast_lamp_factor), _fmt3(p.input_watts)]))
    lines.append(_fmt_row(p.vertical_angles))
    lines.append(_fmt_row(p.horizontal_angles))
    for row in p.candela:
        lines.append(_fmt_row(row))
    return "\n".join(lines) + "\n"


__all__ = ["parse", "parse_input", "generate", "KEYWORD_TABLE", "EMIT_ORDER"]
