# -*- coding: utf-8 -*-
"""
Tint: Reversible pixel colour transforms
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Batch Colour Engine
===================
Array counterpart of ``tint_colorspaces`` for image-processing callers.
Every transform accepts a single pixel ``(3,)`` or a batch ``(N, 3)`` and
returns the same leading shape.

- RGB arrays are 8-bit channel values (any integer dtype within 0..255);
  RGB results are ``uint8``.
- XYZ and Lab arrays are floating point.  ``float32`` and ``float64``
  batches run on Numba-compiled pivot kernels; ``longdouble`` batches go
  through the scalar reference path pixel by pixel.

Results agree element-wise with the scalar conversions, including the
saturating quantisation of ``xyz_to_rgb``.

Kernel modes:
    ``set_strict_ieee(True)`` swaps the pivot kernels to ``fastmath=False``
    variants (strict IEEE 754: inf/NaN propagation, no reassociation).
"""

import functools
import time
import warnings
import numpy as np
import numpy.typing as npt
from numba import njit
from typing import Final, TypeAlias, Callable, Any

from tint_colorspaces import (
    Lab,
    Rgb,
    Xyz,
    lab_to_xyz,
    rgb_to_xyz,
    xyz_to_lab,
    xyz_to_rgb,
)
from tint_precision import (
    DTypeLike,
    GAMMA_DECODE_THRESHOLD,
    GAMMA_ENCODE_THRESHOLD,
    GAMMA_EXPONENT,
    GAMMA_OFFSET,
    GAMMA_SCALE,
    LAB_EPSILON,
    LAB_KAPPA,
    LAB_KAPPA_AB,
    LINEAR_SLOPE,
    PivotConstants,
    constants,
    precision_of,
    resolve_precision,
)

__all__ = [
    # --- Type Aliases ---
    "ArrayFloat",
    "ArrayU8",

    # --- Configuration ---
    "set_strict_ieee",

    # --- Decorators ---
    "handle_shapes",

    # --- Classes ---
    "ColorSpaceEngine",
]

# --- Type Aliases ---
ArrayFloat: TypeAlias = npt.NDArray[np.floating]
ArrayU8: TypeAlias = npt.NDArray[np.uint8]

# --- Kernel constants (binary64, frozen into the compiled code) ---
_GAMMA_INV_EXPONENT: Final[float] = 1.0 / GAMMA_EXPONENT
_LAB_OFFSET_RATIO: Final[float] = 16.0 / 116.0
_LAB_L_THRESHOLD: Final[float] = LAB_EPSILON * LAB_KAPPA
_ONE_THIRD: Final[float] = 1.0 / 3.0

# Precisions the compiled kernels handle natively.
_COMPILED_PRECISIONS: Final[tuple] = (np.dtype(np.float32), np.dtype(np.float64))


# --- Runtime Configuration ---
# When True, batch conversions use the fastmath=False kernels.
#
# Toggle at runtime via:
#     import tint_engine as te
#     te.set_strict_ieee(True)   # enable strict mode
#     te.set_strict_ieee(False)  # back to fast mode (default)
_STRICT_IEEE: bool = False

def set_strict_ieee(enabled: bool = True) -> None:
    """
    Toggle between fast (default) and strict IEEE 754 Numba kernels.

    Only the batch engine is affected; the scalar API in
    ``tint_colorspaces`` always evaluates with plain NumPy arithmetic.

    Args:
        enabled: If True, use strict IEEE mode.
    """
    global _STRICT_IEEE
    _STRICT_IEEE = bool(enabled)


# =============================================================================
# 1. ROBUST DECORATORS
# =============================================================================

def handle_shapes(func: Callable[..., np.ndarray]) -> Callable[..., np.ndarray]:
    """
    Decorator to normalise inputs to (N, 3) and safeguard shape.

    Args:
        func: The function to decorate.

    Returns:
        The wrapped function with shape handling.
        - If input is (3,), returns (3,)
        - If input is (N, 3), returns (N, 3)
    """
    @functools.wraps(func)
    def wrapper(arr: Any, *args: Any, **kwargs: Any) -> np.ndarray:
        arr = np.asarray(arr)
        arr_in = np.ascontiguousarray(np.atleast_2d(arr))

        if arr_in.ndim != 2 or arr_in.shape[-1] != 3:
            raise ValueError(f"Expected shape (3,) or (N, 3), got {arr.shape}")

        res = func(arr_in, *args, **kwargs)

        if arr.ndim == 1:
            return res[0]
        return res
    return wrapper


def _validate_rgb(rgb_array: np.ndarray) -> np.ndarray:
    """Check an (N, 3) array holds 8-bit channel values; returns it as uint8."""
    if rgb_array.dtype.kind not in "iu":
        raise ValueError(
            f"RGB arrays must have an integer dtype, got {rgb_array.dtype}."
        )
    if rgb_array.size and (rgb_array.min() < 0 or rgb_array.max() > 255):
        raise ValueError(
            f"RGB values out of range 0..255 "
            f"(min {rgb_array.min()}, max {rgb_array.max()})."
        )
    return rgb_array.astype(np.uint8, copy=False)


def _as_float(arr: np.ndarray) -> np.ndarray:
    """Keep supported floating precisions, promote everything else to the default."""
    return arr.astype(precision_of(arr), copy=False)


def _extended_fallback(dtype: np.dtype) -> bool:
    """True when *dtype* cannot run on the compiled kernels."""
    if dtype in _COMPILED_PRECISIONS:
        return False
    warnings.warn(
        f"Numba kernels compile to float32/float64 only; {dtype} batches run "
        "through the scalar reference path.",
        RuntimeWarning,
        stacklevel=5,
    )
    return True


# =============================================================================
# 2. LOW-LEVEL MATH KERNELS (Numba Optimized)
# =============================================================================
# Kernels operate on flat contiguous 1-D arrays; callers reshape.
# NOTE: fastmath=True allows reassociation and relaxed IEEE compliance.

@njit(cache=True, fastmath=True)
def _fast_gamma_decode(srgb: np.ndarray) -> np.ndarray:
    """sRGB EOTF (IEC 61966-2-1)."""
    out = np.empty_like(srgb)
    for i in range(srgb.shape[0]):
        v = srgb[i]
        if v > GAMMA_DECODE_THRESHOLD:
            out[i] = ((v + GAMMA_OFFSET) / GAMMA_SCALE) ** GAMMA_EXPONENT
        else:
            out[i] = v / LINEAR_SLOPE
    return out

@njit(cache=True, fastmath=True)
def _fast_gamma_encode(linear: np.ndarray) -> np.ndarray:
    """sRGB OETF (IEC 61966-2-1)."""
    out = np.empty_like(linear)
    for i in range(linear.shape[0]):
        v = linear[i]
        if v > GAMMA_ENCODE_THRESHOLD:
            out[i] = GAMMA_SCALE * v ** _GAMMA_INV_EXPONENT - GAMMA_OFFSET
        else:
            out[i] = v * LINEAR_SLOPE
    return out

@njit(cache=True, fastmath=True)
def _fast_lab_forward(t: np.ndarray) -> np.ndarray:
    """Lab f(t) with the linear toe below epsilon."""
    out = np.empty_like(t)
    for i in range(t.shape[0]):
        v = t[i]
        if v > LAB_EPSILON:
            out[i] = v ** _ONE_THIRD
        else:
            out[i] = (LAB_KAPPA * v + 16.0) / 116.0
    return out

@njit(cache=True, fastmath=True)
def _fast_lab_inverse(t: np.ndarray) -> np.ndarray:
    """Lab f_inv(t) for the a*/b* driven components (tests the cube)."""
    out = np.empty_like(t)
    for i in range(t.shape[0]):
        v = t[i]
        v3 = v * v * v
        if v3 > LAB_EPSILON:
            out[i] = v3
        else:
            out[i] = (v - _LAB_OFFSET_RATIO) / LAB_KAPPA_AB
    return out

@njit(cache=True, fastmath=True)
def _fast_lab_inverse_from_l(l: np.ndarray, fy: np.ndarray) -> np.ndarray:
    """Lab f_inv for Y, driven by L* directly."""
    out = np.empty_like(fy)
    for i in range(fy.shape[0]):
        if l[i] > _LAB_L_THRESHOLD:
            out[i] = fy[i] * fy[i] * fy[i]
        else:
            out[i] = l[i] / LAB_KAPPA
    return out


# --- Strict IEEE 754 kernel variants (fastmath=False) ---

@njit(cache=True, fastmath=False)
def _strict_gamma_decode(srgb: np.ndarray) -> np.ndarray:
    """sRGB EOTF, strict IEEE 754 variant."""
    out = np.empty_like(srgb)
    for i in range(srgb.shape[0]):
        v = srgb[i]
        if v > GAMMA_DECODE_THRESHOLD:
            out[i] = ((v + GAMMA_OFFSET) / GAMMA_SCALE) ** GAMMA_EXPONENT
        else:
            out[i] = v / LINEAR_SLOPE
    return out

@njit(cache=True, fastmath=False)
def _strict_gamma_encode(linear: np.ndarray) -> np.ndarray:
    """sRGB OETF, strict IEEE 754 variant."""
    out = np.empty_like(linear)
    for i in range(linear.shape[0]):
        v = linear[i]
        if v > GAMMA_ENCODE_THRESHOLD:
            out[i] = GAMMA_SCALE * v ** _GAMMA_INV_EXPONENT - GAMMA_OFFSET
        else:
            out[i] = v * LINEAR_SLOPE
    return out

@njit(cache=True, fastmath=False)
def _strict_lab_forward(t: np.ndarray) -> np.ndarray:
    """Lab f(t), strict IEEE 754 variant."""
    out = np.empty_like(t)
    for i in range(t.shape[0]):
        v = t[i]
        if v > LAB_EPSILON:
            out[i] = v ** _ONE_THIRD
        else:
            out[i] = (LAB_KAPPA * v + 16.0) / 116.0
    return out

@njit(cache=True, fastmath=False)
def _strict_lab_inverse(t: np.ndarray) -> np.ndarray:
    """Lab f_inv(t), strict IEEE 754 variant."""
    out = np.empty_like(t)
    for i in range(t.shape[0]):
        v = t[i]
        v3 = v * v * v
        if v3 > LAB_EPSILON:
            out[i] = v3
        else:
            out[i] = (v - _LAB_OFFSET_RATIO) / LAB_KAPPA_AB
    return out

@njit(cache=True, fastmath=False)
def _strict_lab_inverse_from_l(l: np.ndarray, fy: np.ndarray) -> np.ndarray:
    """Lab f_inv for Y, strict IEEE 754 variant."""
    out = np.empty_like(fy)
    for i in range(fy.shape[0]):
        if l[i] > _LAB_L_THRESHOLD:
            out[i] = fy[i] * fy[i] * fy[i]
        else:
            out[i] = l[i] / LAB_KAPPA
    return out


# --- Kernel dispatchers ---
# Check the global _STRICT_IEEE flag, flatten, run, restore the shape.

def _flat(arr: np.ndarray) -> np.ndarray:
    return np.ascontiguousarray(arr).reshape(-1)

def _gamma_decode(srgb: np.ndarray) -> np.ndarray:
    kernel = _strict_gamma_decode if _STRICT_IEEE else _fast_gamma_decode
    return kernel(_flat(srgb)).reshape(srgb.shape)

def _gamma_encode(linear: np.ndarray) -> np.ndarray:
    kernel = _strict_gamma_encode if _STRICT_IEEE else _fast_gamma_encode
    return kernel(_flat(linear)).reshape(linear.shape)

def _lab_forward(t: np.ndarray) -> np.ndarray:
    kernel = _strict_lab_forward if _STRICT_IEEE else _fast_lab_forward
    return kernel(_flat(t)).reshape(t.shape)

def _lab_inverse(t: np.ndarray) -> np.ndarray:
    kernel = _strict_lab_inverse if _STRICT_IEEE else _fast_lab_inverse
    return kernel(_flat(t)).reshape(t.shape)

def _lab_inverse_from_l(l: np.ndarray, fy: np.ndarray) -> np.ndarray:
    kernel = _strict_lab_inverse_from_l if _STRICT_IEEE else _fast_lab_inverse_from_l
    return kernel(_flat(l), _flat(fy)).reshape(fy.shape)


def _apply_matrix(arr: np.ndarray, m: tuple) -> np.ndarray:
    """Row-vector 3x3 transform, term order matching the scalar path."""
    c0, c1, c2 = arr[:, 0], arr[:, 1], arr[:, 2]
    out = np.empty_like(arr)
    out[:, 0] = c0 * m[0][0] + c1 * m[0][1] + c2 * m[0][2]
    out[:, 1] = c0 * m[1][0] + c1 * m[1][1] + c2 * m[1][2]
    out[:, 2] = c0 * m[2][0] + c1 * m[2][1] + c2 * m[2][2]
    return out


def _quantize_u8(scaled: np.ndarray, k: PivotConstants) -> ArrayU8:
    """Saturate to [0, 255] and round to the nearest integer."""
    return np.rint(np.clip(scaled, k.zero, k.max_u8)).astype(np.uint8)


# =============================================================================
# 3. COLOR SPACE ENGINE
# =============================================================================

class ColorSpaceEngine:
    """Static utility class for batch RGB / XYZ / Lab transformations.

    Core transforms provide both a public ``@handle_shapes`` decorated API
    and an internal ``_raw`` fast-path that assumes a validated (N, 3)
    array.  Composite pipelines chain the ``_raw`` variants so the shape is
    checked once.
    """

    # =====================================================================
    #  Internal _raw fast-path methods  (assume validated (N, 3) input)
    # =====================================================================

    @staticmethod
    def _rgb_to_xyz_raw(rgb_array: np.ndarray, dtype: np.dtype) -> ArrayFloat:
        """Raw RGB -> XYZ.  *rgb_array* must be (N, 3) uint8."""
        if _extended_fallback(dtype):
            return np.array(
                [rgb_to_xyz(Rgb(*px), dtype).as_tuple() for px in rgb_array.tolist()],
                dtype=dtype,
            ).reshape(-1, 3)

        k = constants(dtype)
        linear = _gamma_decode(rgb_array.astype(dtype) / k.max_u8) * k.hundred
        return _apply_matrix(linear, k.srgb_to_xyz)

    @staticmethod
    def _xyz_to_rgb_raw(xyz_array: np.ndarray) -> ArrayU8:
        """Raw XYZ -> RGB.  *xyz_array* must be (N, 3) floating."""
        dtype = xyz_array.dtype
        if _extended_fallback(dtype):
            return np.array(
                [xyz_to_rgb(Xyz(*px)).as_tuple() for px in xyz_array],
                dtype=np.uint8,
            ).reshape(-1, 3)

        k = constants(dtype)
        linear = _apply_matrix(xyz_array / k.hundred, k.xyz_to_srgb)
        return _quantize_u8(_gamma_encode(linear) * k.max_u8, k)

    @staticmethod
    def _xyz_to_lab_raw(xyz_array: np.ndarray) -> ArrayFloat:
        """Raw XYZ -> Lab.  *xyz_array* must be (N, 3) floating."""
        dtype = xyz_array.dtype
        if _extended_fallback(dtype):
            return np.array(
                [xyz_to_lab(Xyz(*px)).as_tuple() for px in xyz_array],
                dtype=dtype,
            ).reshape(-1, 3)

        k = constants(dtype)
        f = _lab_forward(xyz_array / np.array(k.white, dtype=dtype))

        out = np.empty_like(xyz_array)
        out[:, 0] = np.maximum(k.lab_scale * f[:, 1] - k.lab_offset, k.zero)
        out[:, 1] = k.lab_a_scale * (f[:, 0] - f[:, 1])
        out[:, 2] = k.lab_b_scale * (f[:, 1] - f[:, 2])
        return out

    @staticmethod
    def _lab_to_xyz_raw(lab_array: np.ndarray) -> ArrayFloat:
        """Raw Lab -> XYZ.  *lab_array* must be (N, 3) floating."""
        dtype = lab_array.dtype
        if _extended_fallback(dtype):
            return np.array(
                [lab_to_xyz(Lab(*px)).as_tuple() for px in lab_array],
                dtype=dtype,
            ).reshape(-1, 3)

        k = constants(dtype)
        L, a, b = lab_array[:, 0], lab_array[:, 1], lab_array[:, 2]

        fy = (L + k.lab_offset) / k.lab_scale
        fx = a / k.lab_a_scale + fy
        fz = fy - b / k.lab_b_scale

        wx, wy, wz = k.white
        xyz = np.empty_like(lab_array)
        xyz[:, 0] = wx * _lab_inverse(fx)
        xyz[:, 1] = wy * _lab_inverse_from_l(L, fy)
        xyz[:, 2] = wz * _lab_inverse(fz)
        return xyz

    # =====================================================================
    #  Public API  (shape-safe wrappers)
    # =====================================================================

    @staticmethod
    @handle_shapes
    def rgb_to_xyz(rgb_array: np.ndarray, dtype: DTypeLike = None) -> ArrayFloat:
        """
        Converts 8-bit sRGB to XYZ (D65, Y = 100 white).

        Args:
            rgb_array: Channel values 0..255, shape (N, 3) or (3,).
            dtype: Output precision (default float64).

        Returns:
            XYZ coordinates in the requested precision.

        Raises:
            ValueError: If the array is not integer typed or leaves 0..255.
        """
        return ColorSpaceEngine._rgb_to_xyz_raw(
            _validate_rgb(rgb_array), resolve_precision(dtype)
        )

    @staticmethod
    @handle_shapes
    def xyz_to_rgb(xyz_array: np.ndarray) -> ArrayU8:
        """
        Converts XYZ (D65) to 8-bit sRGB.

        Out-of-gamut values saturate at 0 and 255 after gamma encoding.

        Returns:
            ``uint8`` array, shape (N, 3) or (3,).
        """
        return ColorSpaceEngine._xyz_to_rgb_raw(_as_float(xyz_array))

    @staticmethod
    @handle_shapes
    def xyz_to_lab(xyz_array: np.ndarray) -> ArrayFloat:
        """
        Converts XYZ to CIELAB against D65.  L* is floored at 0.

        Args:
            xyz_array: Input XYZ data, shape (N, 3) or (3,).

        Returns:
            Lab coordinates, same precision as the input.
        """
        return ColorSpaceEngine._xyz_to_lab_raw(_as_float(xyz_array))

    @staticmethod
    @handle_shapes
    def lab_to_xyz(lab_array: np.ndarray) -> ArrayFloat:
        """
        Converts CIELAB to XYZ against D65.

        Args:
            lab_array: Input Lab data, shape (N, 3) or (3,).

        Returns:
            XYZ coordinates, same precision as the input.
        """
        return ColorSpaceEngine._lab_to_xyz_raw(_as_float(lab_array))

    # --- Composites (always through XYZ) ---

    @staticmethod
    @handle_shapes
    def rgb_to_lab(rgb_array: np.ndarray, dtype: DTypeLike = None) -> ArrayFloat:
        """Direct conversion sRGB -> CIELAB."""
        xyz = ColorSpaceEngine._rgb_to_xyz_raw(
            _validate_rgb(rgb_array), resolve_precision(dtype)
        )
        return ColorSpaceEngine._xyz_to_lab_raw(xyz)

    @staticmethod
    @handle_shapes
    def lab_to_rgb(lab_array: np.ndarray) -> ArrayU8:
        """Direct conversion CIELAB -> sRGB."""
        xyz = ColorSpaceEngine._lab_to_xyz_raw(_as_float(lab_array))
        return ColorSpaceEngine._xyz_to_rgb_raw(xyz)


# =============================================================================
# 4. DIAGNOSTICS
# =============================================================================

if __name__ == "__main__":
    print("--- Tint Batch Engine Diagnostics ---")

    # 1. Reference vectors
    print("1. Testing reference vectors...")
    xyz_ref = np.array([33.1137, 15.9971, 50.0577])
    rgb_out = ColorSpaceEngine.xyz_to_rgb(xyz_ref)
    lab_out = ColorSpaceEngine.xyz_to_lab(xyz_ref)
    print(f"   XYZ -> RGB: {rgb_out} "
          f"{'[PASS]' if tuple(rgb_out) == (200, 0, 190) else '[FAIL]'}")
    print(f"   XYZ -> Lab: {lab_out} "
          f"{'[PASS]' if np.allclose(lab_out, [46.9706, 80.3996, -45.7895], atol=1e-3) else '[FAIL]'}")

    # 2. Exhaustive round trip, one red slice at a time
    print("2. Testing RGB -> Lab -> RGB over all 16.7M colours...")
    gb = np.stack(np.meshgrid(np.arange(256), np.arange(256), indexing="ij"), axis=-1).reshape(-1, 2)
    rgb_slice = np.empty((gb.shape[0], 3), dtype=np.uint8)
    rgb_slice[:, 1:] = gb
    mismatches = 0
    t0 = time.perf_counter()
    for r in range(256):
        rgb_slice[:, 0] = r
        back = ColorSpaceEngine.lab_to_rgb(ColorSpaceEngine.rgb_to_lab(rgb_slice))
        mismatches += int(np.count_nonzero(np.any(back != rgb_slice, axis=1)))
    t1 = time.perf_counter()
    print(f"   Mismatches: {mismatches} {'[PASS]' if mismatches == 0 else '[FAIL]'} "
          f"({(t1 - t0):.2f} s)")

    # 3. Batch vs scalar agreement
    print("3. Testing batch vs scalar agreement...")
    rng = np.random.default_rng(0)
    sample = rng.integers(0, 256, size=(1000, 3), dtype=np.uint8)
    lab_batch = ColorSpaceEngine.rgb_to_lab(sample)
    lab_scalar = np.array([Rgb(*px).to_lab().as_tuple() for px in sample.tolist()])
    err = np.max(np.abs(lab_batch - lab_scalar))
    print(f"   Max Error (batch vs scalar): {err:.2e} {'[PASS]' if err < 1e-10 else '[FAIL]'}")

    # 4. Strict IEEE mode
    print("4. Testing Strict IEEE mode...")
    set_strict_ieee(True)
    lab_strict = ColorSpaceEngine.rgb_to_lab(sample)
    set_strict_ieee(False)
    ieee_diff = np.max(np.abs(lab_batch - lab_strict))
    print(f"   Max diff (fast vs strict): {ieee_diff:.2e}")

    # 5. Benchmark
    print("5. Benchmarking RGB -> Lab (1M pixels)...")
    big = rng.integers(0, 256, size=(1_000_000, 3), dtype=np.uint8)
    t0 = time.perf_counter()
    _ = ColorSpaceEngine.rgb_to_lab(big)
    t1 = time.perf_counter()
    print(f"   Processed {big.shape[0]:,} pixels in {(t1 - t0) * 1000:.2f} ms")
