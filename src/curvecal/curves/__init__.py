"""
Curves package - curve representation and definition.

Provides:
- Curve: immutable interpolated curve with parameter sensitivities
- CurveDefinition / CurveGroupDefinition: declarative calibration setup
- Interpolators with node sensitivities
"""

from .curve import Curve, CurveValueType
from .definitions import CurveDefinition, CurveGroupDefinition, CurveGroupEntry
from .interpolation import (
    Interpolator,
    LinearInterpolator,
    CubicSplineInterpolator,
    LogLinearInterpolator,
    create_interpolator,
)

__all__ = [
    "Curve",
    "CurveValueType",
    "CurveDefinition",
    "CurveGroupDefinition",
    "CurveGroupEntry",
    "Interpolator",
    "LinearInterpolator",
    "CubicSplineInterpolator",
    "LogLinearInterpolator",
    "create_interpolator",
]
