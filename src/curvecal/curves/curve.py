"""
Immutable curve representation.

The Curve class provides:
- Discount factor P(0,t) and its sensitivity to the curve parameters
- Zero rate z(t) and its sensitivity to the curve parameters
- Simple forward rate f(t1, t2)

A curve is an ordered parameter vector (one value per calibration node)
interpolated over node times measured in year fractions from the valuation
date. The parameters are either continuously compounded zero rates or
discount factors. Discount-factor curves carry an implicit (0, 1.0) anchor
that is not a parameter.

Curves never change after construction: with_parameters and with_jacobian
return new curves.
"""

from datetime import date
from enum import Enum
from typing import TYPE_CHECKING, Optional, Sequence, Tuple, Union
import numpy as np
import pandas as pd

from ..conventions import DayCount, year_fraction
from .interpolation import Interpolator, create_interpolator

if TYPE_CHECKING:
    from ..calibration.jacobian import JacobianCalibrationMatrix


class CurveValueType(Enum):
    """Quantity stored in the curve parameters."""
    ZERO_RATE = "ZeroRate"                # Continuously compounded
    DISCOUNT_FACTOR = "DiscountFactor"


class Curve:
    """
    Interpolated curve over a fixed set of node times.
    
    Attributes:
        name: Unique curve name
        valuation_date: Date of time 0
        node_times: Year fractions of the nodes, strictly increasing and positive
        parameters: Read-only parameter vector, one value per node
        value_type: Whether parameters are zero rates or discount factors
        day_count: Day count converting dates to curve time
        interpolation_method: Name of interpolation method
        node_labels: Market-data identifier of the node behind each parameter
        jacobian: Calibration Jacobian attached after calibration, else None
    
    Conventions:
        - Zero rates are continuously compounded
        - Discount factor at t<=0 is 1.0
    """
    
    def __init__(
        self,
        name: str,
        valuation_date: date,
        node_times: Sequence[float],
        parameters: Sequence[float],
        value_type: CurveValueType = CurveValueType.ZERO_RATE,
        day_count: DayCount = DayCount.ACT_365,
        interpolation_method: str = "linear",
        node_labels: Optional[Sequence[str]] = None,
        jacobian: Optional["JacobianCalibrationMatrix"] = None
    ):
        times = np.array(node_times, dtype=np.float64)
        params = np.array(parameters, dtype=np.float64)
        if times.ndim != 1 or len(times) == 0:
            raise ValueError(f"Curve {name} needs at least one node")
        if len(times) != len(params):
            raise ValueError(
                f"Curve {name} has {len(times)} node times but {len(params)} parameters"
            )
        if times[0] <= 0 or np.any(np.diff(times) <= 0):
            raise ValueError(f"Curve {name} node times must be positive and strictly increasing")
        if node_labels is None:
            node_labels = [f"{name}[{i}]" for i in range(len(times))]
        if len(node_labels) != len(times):
            raise ValueError(f"Curve {name} needs one label per node")
        if jacobian is not None and jacobian.matrix.shape[0] != len(params):
            raise ValueError(
                f"Jacobian for curve {name} has {jacobian.matrix.shape[0]} rows, expected {len(params)}"
            )
        
        times.setflags(write=False)
        params.setflags(write=False)
        self._name = name
        self._valuation_date = valuation_date
        self._node_times = times
        self._parameters = params
        self._value_type = value_type
        self._day_count = day_count
        self._interpolation_method = interpolation_method
        self._node_labels = tuple(node_labels)
        self._jacobian = jacobian
        self._interpolator = self._build_interpolator()
    
    def _build_interpolator(self) -> Interpolator:
        interpolator = create_interpolator(self._interpolation_method)
        if self._value_type == CurveValueType.DISCOUNT_FACTOR:
            interpolator.fit(
                np.concatenate(([0.0], self._node_times)),
                np.concatenate(([1.0], self._parameters))
            )
        else:
            interpolator.fit(self._node_times, self._parameters)
        return interpolator
    
    @property
    def name(self) -> str:
        return self._name
    
    @property
    def valuation_date(self) -> date:
        return self._valuation_date
    
    @property
    def node_times(self) -> np.ndarray:
        return self._node_times
    
    @property
    def parameters(self) -> np.ndarray:
        return self._parameters
    
    @property
    def value_type(self) -> CurveValueType:
        return self._value_type
    
    @property
    def day_count(self) -> DayCount:
        return self._day_count
    
    @property
    def interpolation_method(self) -> str:
        return self._interpolation_method
    
    @property
    def node_labels(self) -> Tuple[str, ...]:
        return self._node_labels
    
    @property
    def jacobian(self) -> Optional["JacobianCalibrationMatrix"]:
        return self._jacobian
    
    @property
    def parameter_count(self) -> int:
        return len(self._parameters)
    
    def year_fraction(self, t: Union[float, date]) -> float:
        """Curve time of a date (year fractions pass through unchanged)."""
        if isinstance(t, date):
            return year_fraction(self._valuation_date, t, self._day_count)
        return float(t)
    
    def discount_factor(self, t: Union[float, date]) -> float:
        """
        Get discount factor P(0,t).
        
        Args:
            t: Year fraction or date
            
        Returns:
            Discount factor
        """
        t = self.year_fraction(t)
        if t <= 0:
            return 1.0
        if self._value_type == CurveValueType.DISCOUNT_FACTOR:
            return self._interpolator.interpolate(t)
        return float(np.exp(-self._interpolator.interpolate(t) * t))
    
    def discount_factor_sensitivity(self, t: Union[float, date]) -> np.ndarray:
        """
        Gradient of P(0,t) with respect to the curve parameters.
        
        Args:
            t: Year fraction or date
            
        Returns:
            Array of length parameter_count
        """
        t = self.year_fraction(t)
        if t <= 0:
            return np.zeros(self.parameter_count)
        if self._value_type == CurveValueType.DISCOUNT_FACTOR:
            # Drop the anchor node
            return self._interpolator.node_sensitivity(t)[1:]
        return -t * self.discount_factor(t) * self._interpolator.node_sensitivity(t)
    
    def zero_rate(self, t: Union[float, date]) -> float:
        """Continuously compounded zero rate z(t); the first node rate for t<=0."""
        t = self.year_fraction(t)
        if self._value_type == CurveValueType.ZERO_RATE:
            return self._interpolator.interpolate(max(t, 0.0))
        if t <= 0:
            t = float(self._node_times[0])
        return -np.log(self.discount_factor(t)) / t
    
    def zero_rate_sensitivity(self, t: Union[float, date]) -> np.ndarray:
        """Gradient of z(t) with respect to the curve parameters."""
        t = self.year_fraction(t)
        if self._value_type == CurveValueType.ZERO_RATE:
            return self._interpolator.node_sensitivity(max(t, 0.0))
        if t <= 0:
            t = float(self._node_times[0])
        return -self.discount_factor_sensitivity(t) / (self.discount_factor(t) * t)
    
    def forward_rate(self, t1: Union[float, date], t2: Union[float, date]) -> float:
        """
        Simple forward rate between t1 and t2 in curve time.
        
        Args:
            t1: Start time (year fraction or date)
            t2: End time (year fraction or date)
        """
        t1 = self.year_fraction(t1)
        t2 = self.year_fraction(t2)
        if t2 <= t1:
            raise ValueError("t2 must be greater than t1")
        return (self.discount_factor(t1) / self.discount_factor(t2) - 1) / (t2 - t1)
    
    def with_parameters(self, parameters: Sequence[float]) -> "Curve":
        """
        New curve with the same definition and different parameters.
        
        Calibration metadata does not carry over to the new curve.
        """
        return Curve(
            name=self._name,
            valuation_date=self._valuation_date,
            node_times=self._node_times,
            parameters=parameters,
            value_type=self._value_type,
            day_count=self._day_count,
            interpolation_method=self._interpolation_method,
            node_labels=self._node_labels,
        )
    
    def with_jacobian(self, jacobian: Optional["JacobianCalibrationMatrix"]) -> "Curve":
        """New curve with the same parameters and the given calibration Jacobian."""
        return Curve(
            name=self._name,
            valuation_date=self._valuation_date,
            node_times=self._node_times,
            parameters=self._parameters,
            value_type=self._value_type,
            day_count=self._day_count,
            interpolation_method=self._interpolation_method,
            node_labels=self._node_labels,
            jacobian=jacobian,
        )
    
    def to_frame(self) -> pd.DataFrame:
        """Node table: label, time, parameter, zero rate and discount factor."""
        return pd.DataFrame({
            "label": list(self._node_labels),
            "time": self._node_times,
            "parameter": self._parameters,
            "zero_rate": [self.zero_rate(t) for t in self._node_times],
            "discount_factor": [self.discount_factor(t) for t in self._node_times],
        })
    
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Curve):
            return NotImplemented
        return (
            self._name == other._name
            and self._valuation_date == other._valuation_date
            and self._value_type == other._value_type
            and self._day_count == other._day_count
            and self._interpolation_method == other._interpolation_method
            and self._node_labels == other._node_labels
            and np.array_equal(self._node_times, other._node_times)
            and np.array_equal(self._parameters, other._parameters)
            and self._jacobian == other._jacobian
        )
    
    __hash__ = None
    
    def __repr__(self) -> str:
        return (
            f"Curve(name={self._name!r}, value_type={self._value_type.name}, "
            f"nodes={self.parameter_count}, calibrated={self._jacobian is not None})"
        )


__all__ = ["Curve", "CurveValueType"]
