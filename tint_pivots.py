# -*- coding: utf-8 -*-
"""
Tint: Reversible pixel colour transforms
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Pivot Functions
===============
Piecewise nonlinear scalar curves behind the sRGB transfer function and the
CIE 1976 L*a*b* remap.  Each curve has a linear branch near zero and a power
branch above a threshold.  The branch is always selected by testing the
*input* of the nonlinearity, never its output, which keeps the curves
stable around black.

All functions are pure and total: negative inputs fall through to the
linear branch and never reach a fractional power.

Precision follows the input (``np.float32``, ``np.float64`` or
``np.longdouble`` scalar) unless ``dtype`` is given explicitly.  Python
floats are computed in the default precision.

References:
    - IEC 61966-2-1:1999 (sRGB Standard)
    - CIE 15:2004 "Colorimetry"
"""

from __future__ import annotations

import numpy as np

from tint_precision import (
    DTypeLike,
    PivotConstants,
    Scalar,
    constants,
    precision_of,
)

__all__ = [
    "gamma_decode",
    "gamma_encode",
    "lab_forward",
    "lab_inverse",
    "lab_inverse_from_l",
]


# =============================================================================
# 1. PRECISION-BOUND KERNELS
# =============================================================================
# These take the constant table directly so that the converters resolve the
# precision once per conversion instead of once per channel.

def _gamma_decode(c: Scalar, k: PivotConstants) -> Scalar:
    """sRGB EOTF: gamma-encoded [0, 1] -> linear light."""
    if c > k.gamma_decode_threshold:
        return ((c + k.gamma_offset) / k.gamma_scale) ** k.gamma_exponent
    return c / k.linear_slope


def _gamma_encode(c: Scalar, k: PivotConstants) -> Scalar:
    """sRGB OETF: linear light -> gamma-encoded [0, 1]."""
    if c > k.gamma_encode_threshold:
        return k.gamma_scale * c ** k.gamma_inv_exponent - k.gamma_offset
    return c * k.linear_slope


def _lab_forward(n: Scalar, k: PivotConstants) -> Scalar:
    """f(t) for CIELAB on a white-normalised XYZ component."""
    if n > k.lab_epsilon:
        return np.cbrt(n)
    return (k.lab_kappa * n + k.lab_offset) / k.lab_scale


def _lab_inverse(n: Scalar, n3: Scalar, k: PivotConstants) -> Scalar:
    """f^-1(t) for the a*/b* driven components; tests the cube against epsilon."""
    if n3 > k.lab_epsilon:
        return n3
    return (n - k.lab_offset_ratio) / k.lab_kappa_ab


def _lab_inverse_from_l(l: Scalar, y: Scalar, k: PivotConstants) -> Scalar:
    """f^-1(t) for the Y component; tests L* directly."""
    if l > k.lab_l_threshold:
        return y * y * y
    return l / k.lab_kappa


# =============================================================================
# 2. PUBLIC API
# =============================================================================

def gamma_decode(c: float, dtype: DTypeLike = None) -> Scalar:
    """
    Gamma-encoded sRGB channel to linear light.

    ``c > 0.04045 ? ((c + 0.055) / 1.055) ** 2.4 : c / 12.92``

    Args:
        c: Normalised channel value, nominally [0, 1] (8-bit value / 255).
        dtype: Working precision; inferred from *c* when omitted.

    Returns:
        Linear light value in the working precision.
    """
    k = constants(precision_of(c) if dtype is None else dtype)
    return _gamma_decode(k.cast(c), k)


def gamma_encode(c: float, dtype: DTypeLike = None) -> Scalar:
    """
    Linear light to gamma-encoded sRGB channel.

    ``c > 0.0031308 ? 1.055 * c ** (1 / 2.4) - 0.055 : c * 12.92``

    Args:
        c: Linear light value, nominally [0, 1].  Out-of-range values are
           passed through unclamped.
        dtype: Working precision; inferred from *c* when omitted.
    """
    k = constants(precision_of(c) if dtype is None else dtype)
    return _gamma_encode(k.cast(c), k)


def lab_forward(n: float, dtype: DTypeLike = None) -> Scalar:
    """
    White-normalised XYZ component to the Lab domain.

    ``n > 0.008856 ? cbrt(n) : (903.3 * n + 16) / 116``
    """
    k = constants(precision_of(n) if dtype is None else dtype)
    return _lab_forward(k.cast(n), k)


def lab_inverse(n: float, n3: float, dtype: DTypeLike = None) -> Scalar:
    """
    Lab-domain intermediate back to a white-normalised XYZ component.

    ``n3 > 0.008856 ? n3 : (n - 16 / 116) / 7.787``

    Used for the X and Z components (driven by a* and b*).  The caller
    supplies the cube so the threshold test runs on the same value that is
    returned on the power branch.
    """
    k = constants(precision_of(n) if dtype is None else dtype)
    return _lab_inverse(k.cast(n), k.cast(n3), k)


def lab_inverse_from_l(l: float, y: float, dtype: DTypeLike = None) -> Scalar:
    """
    Inverse for the Y component, driven by L* directly.

    ``l > 0.008856 * 903.3 ? y ** 3 : l / 903.3``

    Args:
        l: The L* value.
        y: The Lab-domain intermediate ``(L* + 16) / 116``.
        dtype: Working precision; inferred from *l* when omitted.
    """
    k = constants(precision_of(l) if dtype is None else dtype)
    return _lab_inverse_from_l(k.cast(l), k.cast(y), k)
