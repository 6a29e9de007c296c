"""Proportional scaling and derived photometric properties."""

import logging
import math

import pytest

from ies_batch.errors import InvalidScaleTarget
from ies_batch.model import Document
from ies_batch.scaling import (
    calculate_properties,
    convert_units,
    is_linear_fixture,
    scale_by_cct,
    scale_by_dimension,
    scale_by_lumens,
    scale_by_wattage,
    swap_dimensions,
)


def _efficacy(p):
    return p.total_lumens / p.input_watts


# -----------------------------------------------------------------------
# Scaling
# -----------------------------------------------------------------------

class TestScaleByDimension:

    def test_doubling_length_doubles_output(self, make_photometric):
        res = scale_by_dimension(make_photometric(), 2.0, "length")
        p = res.document
        assert res.scaling_factor == 2.0
        assert p.length == 2.0
        assert p.input_watts == 20.0
        assert p.total_lumens == 2000.0
        assert p.candela == ((200.0, 100.0, 20.0),)

    def test_only_named_dimension_changes(self, make_photometric):
        p = scale_by_dimension(make_photometric(), 2.0, "length").document
        assert p.width == 0.05
        assert p.height == 0.01

    def test_efficacy_unchanged(self, make_photometric):
        before = make_photometric()
        after = scale_by_dimension(before, 1.2, "length").document
        assert _efficacy(after) == pytest.approx(_efficacy(before), rel=1e-3)

    def test_document_in_document_out(self, make_document):
        doc = make_document(file_name="keep.ies")
        out = scale_by_dimension(doc, 0.5, "length").document
        assert isinstance(out, Document)
        assert out.file_name == "keep.ies"
        assert out.metadata == doc.metadata
        # source snapshot untouched
        assert doc.photometric.length == 1.0

    def test_unknown_dimension(self, make_photometric):
        with pytest.raises(ValueError):
            scale_by_dimension(make_photometric(), 2.0, "depth")

    def test_non_linear_fixture_warns(self, make_photometric, caplog):
        with caplog.at_level(logging.WARNING, logger="ies_batch.scaling"):
            scale_by_dimension(make_photometric(width=0.5), 2.0, "length")
        assert "not linear" in caplog.text


class TestScaleByWattage:

    def test_constant_efficacy(self, make_photometric):
        res = scale_by_wattage(make_photometric(), 13.0)
        p = res.document
        assert p.input_watts == 13.0
        assert p.total_lumens == 1300.0
        assert _efficacy(p) == pytest.approx(100.0)
        assert p.candela[0][0] == pytest.approx(130.0)
        assert res.scaling_factor == 1.3

    def test_outputs_rounded_to_three_places(self, make_photometric):
        p = scale_by_wattage(make_photometric(input_watts=3.0), 1.0).document
        assert p.lumens_per_lamp == 333.333
        assert p.candela == ((33.333, 16.667, 3.333),)

    def test_dimensions_untouched(self, make_photometric):
        p = scale_by_wattage(make_photometric(), 20.0).document
        assert (p.length, p.width, p.height) == (1.0, 0.05, 0.01)


class TestScaleByLumens:

    def test_wattage_kept_by_default(self, make_photometric):
        p = scale_by_lumens(make_photometric(), 2000.0).document
        assert p.input_watts == 10.0
        assert p.total_lumens == 2000.0
        assert p.candela == ((200.0, 100.0, 20.0),)

    def test_wattage_follows_when_adjusting(self, make_photometric):
        p = scale_by_lumens(make_photometric(), 2000.0, adjust_wattage=True).document
        assert p.input_watts == 20.0
        assert _efficacy(p) == pytest.approx(100.0)

    def test_lumens_split_across_lamps(self, make_photometric):
        p = scale_by_lumens(make_photometric(lamp_count=2, lumens_per_lamp=500.0), 1500.0).document
        assert p.lumens_per_lamp == 750.0
        assert p.total_lumens == 1500.0


class TestScaleByCct:

    def test_multiplier_scales_output_not_wattage(self, make_photometric):
        res = scale_by_cct(make_photometric(), 0.9)
        p = res.document
        assert p.total_lumens == 900.0
        assert p.input_watts == 10.0
        assert p.candela == ((90.0, 45.0, 9.0),)
        assert res.scaling_factor == 0.9


class TestInvalidTargets:

    @pytest.mark.parametrize("target", [0.0, -5.0, math.nan, math.inf])
    def test_rejected_targets(self, make_photometric, target):
        with pytest.raises(InvalidScaleTarget):
            scale_by_wattage(make_photometric(), target)
        with pytest.raises(InvalidScaleTarget):
            scale_by_lumens(make_photometric(), target)
        with pytest.raises(InvalidScaleTarget):
            scale_by_dimension(make_photometric(), target, "length")
        with pytest.raises(InvalidScaleTarget):
            scale_by_cct(make_photometric(), target)

    def test_zero_current_wattage(self, make_photometric):
        with pytest.raises(InvalidScaleTarget, match="current wattage"):
            scale_by_wattage(make_photometric(input_watts=0.0), 20.0)

    def test_zero_current_dimension(self, make_photometric):
        with pytest.raises(InvalidScaleTarget):
            scale_by_dimension(make_photometric(height=0.0), 0.02, "height")


# -----------------------------------------------------------------------
# Geometry helpers
# -----------------------------------------------------------------------

class TestGeometry:

    def test_swap_dimensions(self, make_photometric):
        before = make_photometric()
        after = swap_dimensions(before)
        assert (after.length, after.width) == (0.05, 1.0)
        assert after.candela == before.candela
        assert after.input_watts == before.input_watts

    def test_convert_to_feet(self, make_photometric):
        p = convert_units(make_photometric(), "feet")
        assert p.units_type == 1
        assert (p.length, p.width, p.height) == (3.281, 0.164, 0.033)
        assert p.candela == make_photometric().candela

    def test_convert_to_same_unit_is_noop(self, make_photometric):
        p = make_photometric()
        assert convert_units(p, "m") is p

    def test_linear_fixture(self, make_photometric):
        assert is_linear_fixture(make_photometric())
        assert not is_linear_fixture(make_photometric(width=0.5))
        assert is_linear_fixture(make_photometric(height=0.0))
        assert not is_linear_fixture(make_photometric(length=0.0, width=0.0, height=0.0))


# -----------------------------------------------------------------------
# Derived properties
# -----------------------------------------------------------------------

class TestCalculatedProperties:

    def test_sample_file(self, sample_doc):
        props = calculate_properties(sample_doc)
        assert props.peak_intensity == 410.0
        assert props.efficacy == 100.0
        assert props.beam_angle == 135.0
        assert props.field_angle == 180.0
        assert props.lor == 100.0
        assert props.symmetry == "symmetric"
        assert props.center_beam_intensity == 400.0

    def test_single_slice_is_rotational(self, make_photometric):
        props = calculate_properties(make_photometric())
        assert props.symmetry == "rotational"
        assert props.beam_angle == 90.0
        assert props.field_angle == 180.0

    def test_asymmetric(self, make_photometric):
        p = make_photometric(horizontal_angles=(0.0, 90.0),
                             candela=((100.0, 50.0, 10.0), (50.0, 50.0, 10.0)))
        assert calculate_properties(p).symmetry == "asymmetric"

    def test_zero_reference_matches_only_zero(self, make_photometric):
        same = make_photometric(horizontal_angles=(0.0, 90.0),
                                candela=((100.0, 0.0, 0.0), (100.0, 0.0, 0.0)))
        differs = make_photometric(horizontal_angles=(0.0, 90.0),
                                   candela=((100.0, 0.0, 0.0), (100.0, 0.0, 5.0)))
        assert calculate_properties(same).symmetry == "symmetric"
        assert calculate_properties(differs).symmetry == "asymmetric"

    def test_zero_wattage_efficacy(self, make_photometric):
        assert calculate_properties(make_photometric(input_watts=0.0)).efficacy == 0.0
