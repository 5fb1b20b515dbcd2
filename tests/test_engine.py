"""Tests for tint_engine: batch conversions on NumPy arrays."""

import warnings

import numpy as np
import pytest

import tint_engine
from tint_colorspaces import Lab, Rgb, Xyz
from tint_engine import ColorSpaceEngine, set_strict_ieee

COMPILED = [np.dtype(np.float32), np.dtype(np.float64)]
TOL = {np.dtype(np.float32): 1e-4, np.dtype(np.float64): 1e-9}


@pytest.fixture
def strict_mode():
    set_strict_ieee(True)
    try:
        yield
    finally:
        set_strict_ieee(False)


@pytest.fixture(scope="module")
def sample_rgb():
    rng = np.random.default_rng(1234)
    return rng.integers(0, 256, size=(500, 3), dtype=np.uint8)


# ---------------------------------------------------------------------------
# Shape handling & validation
# ---------------------------------------------------------------------------
class TestShapes:
    def test_single_pixel_keeps_shape(self):
        xyz = ColorSpaceEngine.rgb_to_xyz(np.array([50, 50, 50], dtype=np.uint8))
        assert xyz.shape == (3,)
        rgb = ColorSpaceEngine.xyz_to_rgb(xyz)
        assert rgb.shape == (3,)
        assert rgb.dtype == np.uint8

    def test_batch_keeps_shape(self, sample_rgb):
        lab = ColorSpaceEngine.rgb_to_lab(sample_rgb)
        assert lab.shape == sample_rgb.shape
        assert ColorSpaceEngine.lab_to_rgb(lab).shape == sample_rgb.shape

    def test_lists_accepted(self):
        xyz = ColorSpaceEngine.rgb_to_xyz([[50, 50, 50], [43, 21, 8]])
        assert xyz.shape == (2, 3)

    def test_empty_batch(self):
        out = ColorSpaceEngine.rgb_to_lab(np.empty((0, 3), dtype=np.uint8))
        assert out.shape == (0, 3)

    @pytest.mark.parametrize("shape", [(4,), (2, 4), (2, 2, 3)])
    def test_bad_shape_rejected(self, shape):
        with pytest.raises(ValueError):
            ColorSpaceEngine.xyz_to_lab(np.zeros(shape))

    def test_float_rgb_rejected(self):
        with pytest.raises(ValueError):
            ColorSpaceEngine.rgb_to_xyz(np.array([0.5, 0.5, 0.5]))

    @pytest.mark.parametrize("rgb", [[256, 0, 0], [0, -1, 0]])
    def test_out_of_range_rgb_rejected(self, rgb):
        with pytest.raises(ValueError):
            ColorSpaceEngine.rgb_to_lab(np.array(rgb, dtype=np.int64))

    def test_wide_integer_rgb_accepted(self):
        out = ColorSpaceEngine.rgb_to_xyz(np.array([[50, 50, 50]], dtype=np.int64))
        np.testing.assert_allclose(out[0], (3.0317, 3.1896, 3.4735), atol=2e-4)


# ---------------------------------------------------------------------------
# Reference vectors
# ---------------------------------------------------------------------------
class TestReferenceVectors:
    @pytest.mark.parametrize("dtype", COMPILED)
    def test_vectors(self, dtype):
        xyz = ColorSpaceEngine.rgb_to_xyz(
            np.array([[50, 50, 50], [43, 21, 8]], dtype=np.uint8), dtype=dtype
        )
        assert xyz.dtype == dtype
        np.testing.assert_allclose(
            xyz, [[3.0317, 3.1896, 3.4735], [1.3083, 1.0675, 0.3668]], atol=2e-4
        )

        ref_xyz = np.array([33.1137, 15.9971, 50.0577], dtype=dtype)
        assert tuple(ColorSpaceEngine.xyz_to_rgb(ref_xyz)) == (200, 0, 190)
        lab = ColorSpaceEngine.xyz_to_lab(ref_xyz)
        assert lab.dtype == dtype
        np.testing.assert_allclose(lab, (46.9706, 80.3996, -45.7895), atol=5e-4)

        ref_lab = np.array([46.9706, 80.3996, -45.7895], dtype=dtype)
        assert tuple(ColorSpaceEngine.lab_to_rgb(ref_lab)) == (200, 0, 190)

        lab = ColorSpaceEngine.rgb_to_lab(np.array([39, 17, 4], dtype=np.uint8), dtype=dtype)
        np.testing.assert_allclose(lab, (7.5967, 9.9671, 9.9314), atol=5e-4)


# ---------------------------------------------------------------------------
# Batch vs scalar agreement
# ---------------------------------------------------------------------------
class TestMatchesScalar:
    @pytest.mark.parametrize("dtype", COMPILED)
    def test_rgb_to_xyz_and_lab(self, dtype, sample_rgb):
        xyz = ColorSpaceEngine.rgb_to_xyz(sample_rgb, dtype=dtype)
        lab = ColorSpaceEngine.rgb_to_lab(sample_rgb, dtype=dtype)
        pixels = [Rgb(*px) for px in sample_rgb.tolist()]
        xyz_ref = np.array([p.to_xyz(dtype).as_tuple() for p in pixels], dtype=np.float64)
        lab_ref = np.array([p.to_lab(dtype).as_tuple() for p in pixels], dtype=np.float64)
        np.testing.assert_allclose(xyz, xyz_ref, rtol=TOL[dtype], atol=TOL[dtype])
        np.testing.assert_allclose(lab, lab_ref, rtol=TOL[dtype], atol=TOL[dtype])

    @pytest.mark.parametrize("dtype", COMPILED)
    def test_lab_to_xyz(self, dtype):
        rng = np.random.default_rng(7)
        lab = np.column_stack([
            rng.uniform(0, 100, 300), rng.uniform(-128, 128, 300), rng.uniform(-128, 128, 300)
        ]).astype(dtype)
        xyz = ColorSpaceEngine.lab_to_xyz(lab)
        assert xyz.dtype == dtype
        xyz_ref = np.array([Lab(*px).to_xyz().as_tuple() for px in lab], dtype=np.float64)
        np.testing.assert_allclose(xyz, xyz_ref, rtol=TOL[dtype], atol=TOL[dtype])

    def test_xyz_to_rgb_identical(self):
        rng = np.random.default_rng(99)
        xyz = rng.uniform(-20, 120, size=(1000, 3))
        rgb = ColorSpaceEngine.xyz_to_rgb(xyz)
        rgb_ref = np.array([Xyz(*px).to_rgb().as_tuple() for px in xyz], dtype=np.uint8)
        # Allow a rounding tie to land either way, never by more than one step.
        assert np.max(np.abs(rgb.astype(int) - rgb_ref.astype(int))) <= 1
        assert np.mean(rgb == rgb_ref) > 0.999


# ---------------------------------------------------------------------------
# Invariants
# ---------------------------------------------------------------------------
class TestInvariants:
    @pytest.mark.parametrize("dtype", COMPILED)
    def test_round_trip_all_colours(self, dtype):
        gb = np.stack(
            np.meshgrid(np.arange(256), np.arange(256), indexing="ij"), axis=-1
        ).reshape(-1, 2)
        rgb = np.empty((gb.shape[0], 3), dtype=np.uint8)
        rgb[:, 1:] = gb
        for r in range(256):
            rgb[:, 0] = r
            back = ColorSpaceEngine.lab_to_rgb(ColorSpaceEngine.rgb_to_lab(rgb, dtype=dtype))
            bad = np.flatnonzero(np.any(back != rgb, axis=1))
            assert bad.size == 0, f"r={r}: {rgb[bad[:5]]} -> {back[bad[:5]]}"

    def test_lightness_never_negative(self):
        rng = np.random.default_rng(3)
        xyz = rng.uniform(-5, 5, size=(2000, 3))
        assert np.all(ColorSpaceEngine.xyz_to_lab(xyz)[:, 0] >= 0.0)

    def test_out_of_gamut_saturates(self):
        xyz = np.array([[200.0, -50.0, 300.0], [-100.0, -100.0, -100.0]])
        np.testing.assert_array_equal(
            ColorSpaceEngine.xyz_to_rgb(xyz), [[255, 0, 255], [0, 0, 0]]
        )

    def test_integer_xyz_promoted(self):
        lab = ColorSpaceEngine.xyz_to_lab(np.array([0, 0, 0]))
        assert lab.dtype == np.dtype(np.float64)
        np.testing.assert_allclose(lab, (0.0, 0.0, 0.0), atol=1e-12)


# ---------------------------------------------------------------------------
# Configuration & precision fallback
# ---------------------------------------------------------------------------
class TestStrictMode:
    def test_toggle(self, strict_mode):
        assert tint_engine._STRICT_IEEE is True

    def test_strict_matches_fast(self, sample_rgb):
        fast = ColorSpaceEngine.rgb_to_lab(sample_rgb)
        set_strict_ieee(True)
        try:
            strict = ColorSpaceEngine.rgb_to_lab(sample_rgb)
            back = ColorSpaceEngine.lab_to_rgb(strict)
        finally:
            set_strict_ieee(False)
        np.testing.assert_allclose(fast, strict, rtol=1e-10, atol=1e-10)
        np.testing.assert_array_equal(back, sample_rgb)


class TestExtendedPrecision:
    def test_longdouble_falls_back_with_warning(self):
        rgb = np.array([[39, 17, 4], [200, 0, 190]], dtype=np.uint8)
        with pytest.warns(RuntimeWarning, match="scalar reference path"):
            lab = ColorSpaceEngine.rgb_to_lab(rgb, dtype=np.longdouble)
        assert lab.dtype == np.dtype(np.longdouble)
        expected = [Rgb(*px).to_lab(np.longdouble).as_tuple() for px in rgb.tolist()]
        np.testing.assert_array_equal(lab, np.array(expected, dtype=np.longdouble))

        with pytest.warns(RuntimeWarning):
            back = ColorSpaceEngine.lab_to_rgb(lab)
        np.testing.assert_array_equal(back, rgb)

    def test_compiled_precisions_do_not_warn(self, sample_rgb):
        with warnings.catch_warnings():
            warnings.simplefilter("error", RuntimeWarning)
            for dtype in COMPILED:
                ColorSpaceEngine.lab_to_rgb(ColorSpaceEngine.rgb_to_lab(sample_rgb, dtype=dtype))
