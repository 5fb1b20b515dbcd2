# -*- coding: utf-8 -*-
"""
Tint: Reversible pixel colour transforms
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Colour Values & Conversions
===========================
Three immutable value types and the pairwise conversions between them:

    Rgb  <->  Xyz  <->  Lab

- ``Rgb``: three 8-bit sRGB channels (gamma encoded, 0..255).
- ``Xyz``: CIE 1931 tristimulus, D65, 2 degree observer, Y = 100 for white.
- ``Lab``: CIE 1976 L*a*b* relative to D65.

``Rgb <-> Lab`` is always composed through ``Xyz``; there is no fused
matrix, so precision and clamping behave exactly as in the two-step path.

Precision:
    ``Xyz`` and ``Lab`` hold NumPy floating scalars.  Converting from ``Rgb``
    takes a ``dtype`` argument (default ``float64``); every other conversion
    runs in the precision of its input value.

Quantisation:
    ``xyz_to_rgb`` gamma encodes, scales to 255, clamps to [0, 255] and
    rounds to the nearest integer.  The clamp is the only lossy step of the
    pipeline, so ``Rgb -> Lab -> Rgb`` is exact for every 8-bit colour.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Sequence, Tuple, Union

import numpy as np

from tint_pivots import (
    _gamma_decode,
    _gamma_encode,
    _lab_forward,
    _lab_inverse,
    _lab_inverse_from_l,
)
from tint_precision import (
    DTypeLike,
    PivotConstants,
    Scalar,
    common_precision,
    constants,
    resolve_precision,
)

__all__ = [
    # --- Value Types ---
    "Rgb",
    "Xyz",
    "Lab",

    # --- Conversions ---
    "rgb_to_xyz",
    "xyz_to_rgb",
    "xyz_to_lab",
    "lab_to_xyz",
    "rgb_to_lab",
    "lab_to_rgb",
]

Component = Union[float, int, str, np.number]


def _coerce(values: Sequence[Component], dtype: DTypeLike) -> Tuple[Scalar, ...]:
    """Cast components into one precision (explicit, or the widest present)."""
    target = common_precision(*values) if dtype is None else resolve_precision(dtype)
    return tuple(target.type(v) for v in values)


# =============================================================================
# 1. VALUE TYPES
# =============================================================================

@dataclass(slots=True, frozen=True, order=True)
class Rgb:
    """Gamma-encoded sRGB colour, three unsigned 8-bit channels."""
    r: int = 0
    g: int = 0
    b: int = 0

    def __post_init__(self) -> None:
        for name in ("r", "g", "b"):
            value = getattr(self, name)
            if isinstance(value, (bool, np.bool_)) or not isinstance(value, (int, np.integer)):
                raise TypeError(
                    f"Rgb channel '{name}' must be an integer, got {type(value).__name__}."
                )
            if not 0 <= value <= 255:
                raise ValueError(f"Rgb channel '{name}' out of range 0..255: {value}")
            object.__setattr__(self, name, int(value))

    def __iter__(self) -> Iterator[int]:
        yield self.r
        yield self.g
        yield self.b

    def as_tuple(self) -> Tuple[int, int, int]:
        return (self.r, self.g, self.b)

    def to_array(self) -> np.ndarray:
        return np.array(self.as_tuple(), dtype=np.uint8)

    @classmethod
    def from_array(cls, arr: Union[np.ndarray, Sequence[int]]) -> Rgb:
        r, g, b = np.asarray(arr).reshape(3).tolist()
        return cls(r, g, b)

    # --- Conversions ---
    @classmethod
    def from_xyz(cls, xyz: Xyz) -> Rgb:
        return xyz_to_rgb(xyz)

    @classmethod
    def from_lab(cls, lab: Lab) -> Rgb:
        return lab_to_rgb(lab)

    def to_xyz(self, dtype: DTypeLike = None) -> Xyz:
        return rgb_to_xyz(self, dtype)

    def to_lab(self, dtype: DTypeLike = None) -> Lab:
        return rgb_to_lab(self, dtype)


@dataclass(slots=True, frozen=True)
class Xyz:
    """
    CIE 1931 XYZ tristimulus value (D65, 2 degree observer, Y = 100 white).

    Components are NumPy floating scalars sharing one precision.  Plain
    Python numbers are promoted to the default precision on construction.
    """
    x: Scalar = np.float64(0.0)
    y: Scalar = np.float64(0.0)
    z: Scalar = np.float64(0.0)

    def __post_init__(self) -> None:
        x, y, z = _coerce((self.x, self.y, self.z), None)
        object.__setattr__(self, "x", x)
        object.__setattr__(self, "y", y)
        object.__setattr__(self, "z", z)

    @classmethod
    def new(cls, x: Component, y: Component, z: Component, dtype: DTypeLike = None) -> Xyz:
        """Build from literal components in the requested precision.

        Decimal strings keep every digit the precision can hold, e.g.
        ``Xyz.new("33.1137", "15.9971", "50.0577", dtype=np.longdouble)``.
        """
        return cls(*_coerce((x, y, z), dtype))

    @property
    def dtype(self) -> np.dtype:
        return self.x.dtype

    def __iter__(self) -> Iterator[Scalar]:
        yield self.x
        yield self.y
        yield self.z

    def as_tuple(self) -> Tuple[Scalar, Scalar, Scalar]:
        return (self.x, self.y, self.z)

    def to_array(self) -> np.ndarray:
        return np.array(self.as_tuple(), dtype=self.dtype)

    @classmethod
    def from_array(cls, arr: Union[np.ndarray, Sequence[float]]) -> Xyz:
        x, y, z = np.asarray(arr).reshape(3)
        return cls(x, y, z)

    # --- Conversions ---
    @classmethod
    def from_rgb(cls, rgb: Rgb, dtype: DTypeLike = None) -> Xyz:
        return rgb_to_xyz(rgb, dtype)

    @classmethod
    def from_lab(cls, lab: Lab) -> Xyz:
        return lab_to_xyz(lab)

    def to_rgb(self) -> Rgb:
        return xyz_to_rgb(self)

    def to_lab(self) -> Lab:
        return xyz_to_lab(self)


@dataclass(slots=True, frozen=True)
class Lab:
    """
    CIE 1976 L*a*b* value relative to D65.

    L* lies in [0, 100] when derived from XYZ; a* and b* are unbounded,
    typically within +-128.
    """
    l: Scalar = np.float64(0.0)
    a: Scalar = np.float64(0.0)
    b: Scalar = np.float64(0.0)

    def __post_init__(self) -> None:
        l, a, b = _coerce((self.l, self.a, self.b), None)
        object.__setattr__(self, "l", l)
        object.__setattr__(self, "a", a)
        object.__setattr__(self, "b", b)

    @classmethod
    def new(cls, l: Component, a: Component, b: Component, dtype: DTypeLike = None) -> Lab:
        """Build from literal components in the requested precision."""
        return cls(*_coerce((l, a, b), dtype))

    @property
    def dtype(self) -> np.dtype:
        return self.l.dtype

    def __iter__(self) -> Iterator[Scalar]:
        yield self.l
        yield self.a
        yield self.b

    def as_tuple(self) -> Tuple[Scalar, Scalar, Scalar]:
        return (self.l, self.a, self.b)

    def to_array(self) -> np.ndarray:
        return np.array(self.as_tuple(), dtype=self.dtype)

    @classmethod
    def from_array(cls, arr: Union[np.ndarray, Sequence[float]]) -> Lab:
        l, a, b = np.asarray(arr).reshape(3)
        return cls(l, a, b)

    # --- Conversions ---
    @classmethod
    def from_rgb(cls, rgb: Rgb, dtype: DTypeLike = None) -> Lab:
        return rgb_to_lab(rgb, dtype)

    @classmethod
    def from_xyz(cls, xyz: Xyz) -> Lab:
        return xyz_to_lab(xyz)

    def to_rgb(self) -> Rgb:
        return lab_to_rgb(self)

    def to_xyz(self) -> Xyz:
        return lab_to_xyz(self)


# =============================================================================
# 2. RGB <-> XYZ
# =============================================================================

def _quantize_u8(v: Scalar, k: PivotConstants) -> int:
    """Scaled channel to 0..255, saturating on both ends."""
    v = min(max(v, k.zero), k.max_u8)
    return int(np.rint(v))


def rgb_to_xyz(rgb: Rgb, dtype: DTypeLike = None) -> Xyz:
    """
    sRGB to CIE XYZ (Observer = 2 deg, Illuminant = D65).

    Each channel is normalised to [0, 1], linearised, scaled by 100 and
    pushed through the sRGB primaries matrix.

    Args:
        rgb: Source colour.
        dtype: Precision of the returned ``Xyz`` (default ``float64``).
    """
    k = constants(dtype)
    r = _gamma_decode(k.cast(rgb.r) / k.max_u8, k) * k.hundred
    g = _gamma_decode(k.cast(rgb.g) / k.max_u8, k) * k.hundred
    b = _gamma_decode(k.cast(rgb.b) / k.max_u8, k) * k.hundred

    m = k.srgb_to_xyz
    return Xyz(
        r * m[0][0] + g * m[0][1] + b * m[0][2],
        r * m[1][0] + g * m[1][1] + b * m[1][2],
        r * m[2][0] + g * m[2][1] + b * m[2][2],
    )


def xyz_to_rgb(xyz: Xyz) -> Rgb:
    """
    CIE XYZ (D65) to 8-bit sRGB.

    Out-of-gamut values saturate at 0 and 255 after gamma encoding; this is
    a silent projection, never an error.
    """
    k = constants(xyz.dtype)
    x = xyz.x / k.hundred
    y = xyz.y / k.hundred
    z = xyz.z / k.hundred

    m = k.xyz_to_srgb
    r = x * m[0][0] + y * m[0][1] + z * m[0][2]
    g = x * m[1][0] + y * m[1][1] + z * m[1][2]
    b = x * m[2][0] + y * m[2][1] + z * m[2][2]

    return Rgb(
        _quantize_u8(_gamma_encode(r, k) * k.max_u8, k),
        _quantize_u8(_gamma_encode(g, k) * k.max_u8, k),
        _quantize_u8(_gamma_encode(b, k) * k.max_u8, k),
    )


# =============================================================================
# 3. XYZ <-> LAB
# =============================================================================

def xyz_to_lab(xyz: Xyz) -> Lab:
    """
    CIE XYZ to CIELAB against the D65 white (95.047, 100.000, 108.883).

    L* is floored at 0 so numerical noise near black never yields a
    negative lightness.
    """
    k = constants(xyz.dtype)
    wx, wy, wz = k.white
    fx = _lab_forward(xyz.x / wx, k)
    fy = _lab_forward(xyz.y / wy, k)
    fz = _lab_forward(xyz.z / wz, k)

    return Lab(
        max(k.lab_scale * fy - k.lab_offset, k.zero),
        k.lab_a_scale * (fx - fy),
        k.lab_b_scale * (fy - fz),
    )


def lab_to_xyz(lab: Lab) -> Xyz:
    """CIELAB to CIE XYZ against the D65 white."""
    k = constants(lab.dtype)
    fy = (lab.l + k.lab_offset) / k.lab_scale
    fx = lab.a / k.lab_a_scale + fy
    fz = fy - lab.b / k.lab_b_scale

    wx, wy, wz = k.white
    return Xyz(
        wx * _lab_inverse(fx, fx * fx * fx, k),
        wy * _lab_inverse_from_l(lab.l, fy, k),
        wz * _lab_inverse(fz, fz * fz * fz, k),
    )


# =============================================================================
# 4. COMPOSITES
# =============================================================================

def rgb_to_lab(rgb: Rgb, dtype: DTypeLike = None) -> Lab:
    """sRGB to CIELAB, routed through XYZ."""
    return xyz_to_lab(rgb_to_xyz(rgb, dtype))


def lab_to_rgb(lab: Lab) -> Rgb:
    """CIELAB to sRGB, routed through XYZ."""
    return xyz_to_rgb(lab_to_xyz(lab))
