# -*- coding: utf-8 -*-
"""
Tint: Reversible pixel colour transforms
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Numeric Precision Layer
=======================
Every formula in Tint is written once against NumPy floating scalars and
instantiated for whichever precision the caller selects:

- ``float32``    single precision
- ``float64``    standard precision (default)
- ``longdouble`` extended precision (80-bit on x86, platform dependent)

Constants are stored as decimal literals and converted into the working
precision with ``dtype.type("<literal>")``.  That conversion is total and
keeps every digit the precision can hold, so extended precision is never
polluted by a detour through a binary64 Python float.

Precision is a per-call argument.  There is no process-wide precision
switch.
"""

from __future__ import annotations

import functools
from typing import Any, Final, NamedTuple, Tuple, TypeAlias, Union

import numpy as np

__all__ = [
    # --- Type Aliases ---
    "DTypeLike",
    "Scalar",

    # --- Precision ---
    "SUPPORTED_PRECISIONS",
    "DEFAULT_PRECISION",
    "resolve_precision",
    "precision_of",
    "common_precision",
    "literal",

    # --- Constants ---
    "PivotConstants",
    "constants",
    "GAMMA_DECODE_THRESHOLD",
    "GAMMA_ENCODE_THRESHOLD",
    "GAMMA_OFFSET",
    "GAMMA_SCALE",
    "GAMMA_EXPONENT",
    "LINEAR_SLOPE",
    "LAB_EPSILON",
    "LAB_KAPPA",
    "LAB_KAPPA_AB",
    "REF_WHITE_D65",
    "M_SRGB_TO_XYZ",
    "M_XYZ_TO_SRGB",
]

# --- Type Aliases ---
DTypeLike: TypeAlias = Union[None, str, type, np.dtype]
Scalar: TypeAlias = np.floating
Row: TypeAlias = Tuple[Scalar, Scalar, Scalar]

# --- Supported Precisions ---
SUPPORTED_PRECISIONS: Final[Tuple[np.dtype, ...]] = (
    np.dtype(np.float32),
    np.dtype(np.float64),
    np.dtype(np.longdouble),
)
DEFAULT_PRECISION: Final[np.dtype] = np.dtype(np.float64)

# --- Decimal Literals ---
# Single source for every constant used by the pivots and converters.
# sRGB transfer function (IEC 61966-2-1)
_GAMMA_DECODE_THRESHOLD: Final[str] = "0.04045"
_GAMMA_ENCODE_THRESHOLD: Final[str] = "0.0031308"
_GAMMA_OFFSET: Final[str] = "0.055"
_GAMMA_SCALE: Final[str] = "1.055"
_GAMMA_EXPONENT: Final[str] = "2.4"
_LINEAR_SLOPE: Final[str] = "12.92"

# CIE 1976 L*a*b*.  Two kappas are in use: 903.3 for the L* driven terms and
# 7.787 (= 903.3 / 116) for the a*/b* driven inverse.  Reference tables are
# computed with exactly these values.
_LAB_EPSILON: Final[str] = "0.008856"
_LAB_KAPPA: Final[str] = "903.3"
_LAB_KAPPA_AB: Final[str] = "7.787"

# D65 white, 2 degree observer, Y = 100
_REF_WHITE_D65: Final[Tuple[str, str, str]] = ("95.047", "100.000", "108.883")

# sRGB primaries (D65), four decimal places
_M_SRGB_TO_XYZ: Final[Tuple[Tuple[str, str, str], ...]] = (
    ("0.4124", "0.3576", "0.1805"),
    ("0.2126", "0.7152", "0.0722"),
    ("0.0193", "0.1192", "0.9505"),
)
_M_XYZ_TO_SRGB: Final[Tuple[Tuple[str, str, str], ...]] = (
    ( "3.2406", "-1.5372", "-0.4986"),
    ("-0.9689",  "1.8758",  "0.0415"),
    ( "0.0557", "-0.2040",  "1.0570"),
)

# Binary64 mirrors for the compiled batch kernels.
GAMMA_DECODE_THRESHOLD: Final[float] = float(_GAMMA_DECODE_THRESHOLD)
GAMMA_ENCODE_THRESHOLD: Final[float] = float(_GAMMA_ENCODE_THRESHOLD)
GAMMA_OFFSET: Final[float] = float(_GAMMA_OFFSET)
GAMMA_SCALE: Final[float] = float(_GAMMA_SCALE)
GAMMA_EXPONENT: Final[float] = float(_GAMMA_EXPONENT)
LINEAR_SLOPE: Final[float] = float(_LINEAR_SLOPE)
LAB_EPSILON: Final[float] = float(_LAB_EPSILON)
LAB_KAPPA: Final[float] = float(_LAB_KAPPA)
LAB_KAPPA_AB: Final[float] = float(_LAB_KAPPA_AB)
REF_WHITE_D65: Final[Tuple[float, ...]] = tuple(float(v) for v in _REF_WHITE_D65)
M_SRGB_TO_XYZ: Final[Tuple[Tuple[float, ...], ...]] = tuple(
    tuple(float(v) for v in row) for row in _M_SRGB_TO_XYZ
)
M_XYZ_TO_SRGB: Final[Tuple[Tuple[float, ...], ...]] = tuple(
    tuple(float(v) for v in row) for row in _M_XYZ_TO_SRGB
)


# =============================================================================
# 1. PRECISION RESOLUTION
# =============================================================================

def resolve_precision(dtype: DTypeLike = None) -> np.dtype:
    """
    Normalise a precision specifier into one of ``SUPPORTED_PRECISIONS``.

    Args:
        dtype: ``None`` (default precision), a NumPy scalar type, a
               ``np.dtype`` or a dtype name such as ``"float32"``.

    Returns:
        The resolved ``np.dtype``.

    Raises:
        TypeError: If the specifier is not a supported floating precision.
    """
    if dtype is None:
        return DEFAULT_PRECISION
    try:
        resolved = np.dtype(dtype)
    except TypeError as exc:
        raise TypeError(f"Cannot interpret {dtype!r} as a floating precision.") from exc

    if resolved not in SUPPORTED_PRECISIONS:
        raise TypeError(
            f"Unsupported precision {resolved}. "
            "Expected one of float32, float64 or longdouble."
        )
    return resolved


def precision_of(value: Any) -> np.dtype:
    """
    Precision carried by *value*.

    NumPy floating scalars and arrays keep their own precision when it is
    supported.  Python numbers, integers and anything else map to the
    default precision.
    """
    dtype = getattr(value, "dtype", None)
    if dtype is not None and dtype in SUPPORTED_PRECISIONS:
        return np.dtype(dtype)
    return DEFAULT_PRECISION


def common_precision(*values: Any) -> np.dtype:
    """Widest supported precision among *values*."""
    result = precision_of(values[0]) if values else DEFAULT_PRECISION
    for value in values[1:]:
        result = np.promote_types(result, precision_of(value))
    return resolve_precision(result)


def literal(text: Union[str, float, int], dtype: DTypeLike = None) -> Scalar:
    """Convert a decimal literal (or plain number) into a scalar of *dtype*."""
    return resolve_precision(dtype).type(text)


# =============================================================================
# 2. PER-PRECISION CONSTANT TABLE
# =============================================================================

class PivotConstants(NamedTuple):
    """Every constant of the conversion pipeline, typed for one precision."""
    dtype: np.dtype

    zero: Scalar
    one: Scalar
    hundred: Scalar
    max_u8: Scalar

    # sRGB transfer function
    gamma_decode_threshold: Scalar
    gamma_encode_threshold: Scalar
    gamma_offset: Scalar
    gamma_scale: Scalar
    gamma_exponent: Scalar
    gamma_inv_exponent: Scalar
    linear_slope: Scalar

    # CIE L*a*b*
    lab_epsilon: Scalar
    lab_kappa: Scalar
    lab_kappa_ab: Scalar
    lab_l_threshold: Scalar
    lab_offset: Scalar
    lab_scale: Scalar
    lab_offset_ratio: Scalar
    lab_a_scale: Scalar
    lab_b_scale: Scalar

    white: Row
    srgb_to_xyz: Tuple[Row, Row, Row]
    xyz_to_srgb: Tuple[Row, Row, Row]

    def cast(self, value: Union[str, float, int, np.number]) -> Scalar:
        """Bring *value* into this precision."""
        return self.dtype.type(value)


@functools.lru_cache(maxsize=8)
def _build_constants(dtype: np.dtype) -> PivotConstants:
    """Cached worker, keyed on the resolved dtype."""
    t = dtype.type

    def row(values: Tuple[str, str, str]) -> Row:
        return (t(values[0]), t(values[1]), t(values[2]))

    one = t("1")
    lab_epsilon = t(_LAB_EPSILON)
    lab_kappa = t(_LAB_KAPPA)
    lab_offset = t("16")
    lab_scale = t("116")

    return PivotConstants(
        dtype=dtype,
        zero=t("0"),
        one=one,
        hundred=t("100"),
        max_u8=t("255"),
        gamma_decode_threshold=t(_GAMMA_DECODE_THRESHOLD),
        gamma_encode_threshold=t(_GAMMA_ENCODE_THRESHOLD),
        gamma_offset=t(_GAMMA_OFFSET),
        gamma_scale=t(_GAMMA_SCALE),
        gamma_exponent=t(_GAMMA_EXPONENT),
        gamma_inv_exponent=one / t(_GAMMA_EXPONENT),
        linear_slope=t(_LINEAR_SLOPE),
        lab_epsilon=lab_epsilon,
        lab_kappa=lab_kappa,
        lab_kappa_ab=t(_LAB_KAPPA_AB),
        lab_l_threshold=lab_epsilon * lab_kappa,
        lab_offset=lab_offset,
        lab_scale=lab_scale,
        lab_offset_ratio=lab_offset / lab_scale,
        lab_a_scale=t("500"),
        lab_b_scale=t("200"),
        white=row(_REF_WHITE_D65),
        srgb_to_xyz=(row(_M_SRGB_TO_XYZ[0]), row(_M_SRGB_TO_XYZ[1]), row(_M_SRGB_TO_XYZ[2])),
        xyz_to_srgb=(row(_M_XYZ_TO_SRGB[0]), row(_M_XYZ_TO_SRGB[1]), row(_M_XYZ_TO_SRGB[2])),
    )


def constants(dtype: DTypeLike = None) -> PivotConstants:
    """
    Constant table for a precision.

    Built once per precision and cached; the returned tuple is immutable
    and safe to share between threads.
    """
    return _build_constants(resolve_precision(dtype))
