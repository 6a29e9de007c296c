"""Shared fixtures: a small linear luminaire file and a photometric factory."""

import pytest

from ies_batch.codec import parse
from ies_batch.model import Document, Metadata, PhotometricData

# Angles and candela deliberately wrap across lines the way real files do.
SAMPLE_IES = """IESNA:LM-63-2002
[TEST] T-100
[TESTLAB] Lab A
[ISSUEDATE] 01/20/2024
[MANUFAC] Acme
[LUMCAT] LIN-1000
[LAMPCAT] LED-1
[OTHER] factory build
[NEARFIELD] linear 1 0.05 0.01
[_COLOR_TEMPERATURE] 4000K
[_CRI] 90
[UNKNOWNTAG] ignored
TILT=NONE
1 1000 1 5 3 1 2 0.05 1.0 0.01
1 1 10
0 22.5 45
67.5 90
0 45 90
400 380 300 150 0
410 370 290
140 0
400 380 300 150 0
"""


@pytest.fixture
def sample_text() -> str:
    return SAMPLE_IES


@pytest.fixture
def sample_doc() -> Document:
    return parse(SAMPLE_IES, file_name="sample.ies")


@pytest.fixture
def make_photometric():
    """Factory for a 1 m x 0.05 m x 0.01 m, 10 W, 1000 lm single-slice fixture."""

    def _make(**overrides) -> PhotometricData:
        fields = dict(
            lamp_count=1,
            lumens_per_lamp=1000.0,
            multiplier=1.0,
            photometric_type=1,
            units_type=2,
            width=0.05,
            length=1.0,
            height=0.01,
            ballast_factor=1.0,
            ballast_lamp_factor=1.0,
            input_watts=10.0,
            vertical_angles=(0.0, 45.0, 90.0),
            horizontal_angles=(0.0,),
            candela=((100.0, 50.0, 10.0),),
        )
        fields.update(overrides)
        return PhotometricData(**fields)

    return _make


@pytest.fixture
def make_document(make_photometric):
    def _make(file_name: str = "fixture.ies", metadata: Metadata = None, **overrides) -> Document:
        md = metadata or Metadata(manufacturer="Acme", lamp_catalog_number="LED-1")
        return Document(metadata=md, photometric=make_photometric(**overrides), file_name=file_name)

    return _make
