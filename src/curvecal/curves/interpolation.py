"""
Interpolation methods for calibrated curves.

Provides:
- LinearInterpolator: Linear interpolation with flat extrapolation
- CubicSplineInterpolator: Natural cubic spline with flat extrapolation
- LogLinearInterpolator: Linear interpolation of log values (discount factors)

Every interpolator is linear (or log-linear) in its node values, so besides
the interpolated value it exposes node_sensitivity(t): the gradient of the
interpolated value with respect to each node value. Curves use this gradient
to produce analytic parameter sensitivities for calibration.
"""

from abc import ABC, abstractmethod
from typing import Optional, Tuple
import numpy as np


class Interpolator(ABC):
    """Abstract base class for curve interpolation."""
    
    def __init__(self):
        self.times: Optional[np.ndarray] = None
        self.values: Optional[np.ndarray] = None
    
    @abstractmethod
    def fit(self, times: np.ndarray, values: np.ndarray) -> None:
        """
        Fit the interpolator to data points.
        
        Args:
            times: Array of year fractions (must be strictly increasing)
            values: Array of node values
        """
    
    @abstractmethod
    def interpolate(self, t: float) -> float:
        """Interpolated value at year fraction t."""
    
    @abstractmethod
    def node_sensitivity(self, t: float) -> np.ndarray:
        """Derivative of the interpolated value at t with respect to each node value."""
    
    def __call__(self, t: float) -> float:
        """Convenience method to call interpolate."""
        return self.interpolate(t)
    
    def _validate(self, times: np.ndarray, values: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        times = np.asarray(times, dtype=np.float64)
        values = np.asarray(values, dtype=np.float64)
        if len(times) != len(values):
            raise ValueError("Times and values must have same length")
        if len(times) == 0:
            raise ValueError("Need at least 1 point for interpolation")
        if np.any(np.diff(times) <= 0):
            raise ValueError("Times must be strictly increasing")
        return times, values
    
    def _bracket(self, t: float) -> Tuple[int, float]:
        """Index of the interval containing t and the linear weight within it."""
        if self.times is None:
            raise RuntimeError("Interpolator not fitted")
        idx = int(np.searchsorted(self.times, t, side='right')) - 1
        idx = max(0, min(idx, len(self.times) - 2))
        t0, t1 = self.times[idx], self.times[idx + 1]
        return idx, (t - t0) / (t1 - t0)


class LinearInterpolator(Interpolator):
    """
    Linear interpolation.
    
    Simple linear interpolation between knot points.
    Extrapolates flat beyond boundaries.
    """
    
    def fit(self, times: np.ndarray, values: np.ndarray) -> None:
        """Fit linear interpolator."""
        self.times, self.values = self._validate(times, values)
    
    def interpolate(self, t: float) -> float:
        """Linear interpolation with flat extrapolation."""
        return float(self.node_sensitivity(t) @ self.values)
    
    def node_sensitivity(self, t: float) -> np.ndarray:
        """Interpolation weights: at most two non-zero entries."""
        if self.times is None:
            raise RuntimeError("Interpolator not fitted")
        
        weights = np.zeros(len(self.times))
        if t <= self.times[0]:
            weights[0] = 1.0
        elif t >= self.times[-1]:
            weights[-1] = 1.0
        else:
            idx, w = self._bracket(t)
            weights[idx] = 1.0 - w
            weights[idx + 1] = w
        return weights


class CubicSplineInterpolator(Interpolator):
    """
    Cubic spline interpolation.
    
    Uses natural cubic splines (second derivative = 0 at boundaries).
    The spline is linear in the node values, so the spline through each unit
    vector is fitted once and reused for node sensitivities.
    """
    
    def __init__(self):
        super().__init__()
        self.coefficients: Optional[np.ndarray] = None  # Shape: (n-1, 4) for [a, b, c, d]
        self._basis: Optional[np.ndarray] = None        # Shape: (n-1, 4, n)
    
    def fit(self, times: np.ndarray, values: np.ndarray) -> None:
        """
        Fit natural cubic spline.
        
        Solves tridiagonal system for second derivatives,
        then computes polynomial coefficients for each interval.
        """
        self.times, self.values = self._validate(times, values)
        n = len(self.times)
        if n == 1:
            self.coefficients = None
            self._basis = None
            return
        
        self._basis = self._spline_coefficients(self.times, np.eye(n))
        self.coefficients = self._basis @ self.values
    
    @staticmethod
    def _spline_coefficients(times: np.ndarray, values: np.ndarray) -> np.ndarray:
        """
        Natural spline coefficients for one or more value columns.
        
        S_i(x) = a_i + b_i*(x-x_i) + c_i*(x-x_i)^2 + d_i*(x-x_i)^3
        
        Args:
            times: Knot times, shape (n,)
            values: Knot values, shape (n, k)
            
        Returns:
            Array of shape (n-1, 4, k)
        """
        n = len(times)
        h = np.diff(times)[:, None]
        
        # Natural spline: M[0] = M[n-1] = 0
        A = np.zeros((n, n))
        b = np.zeros_like(values)
        A[0, 0] = 1.0
        A[n-1, n-1] = 1.0
        for i in range(1, n-1):
            A[i, i-1] = h[i-1, 0]
            A[i, i] = 2 * (h[i-1, 0] + h[i, 0])
            A[i, i+1] = h[i, 0]
            b[i] = 6 * ((values[i+1] - values[i]) / h[i, 0] -
                        (values[i] - values[i-1]) / h[i-1, 0])
        
        M = np.linalg.solve(A, b)
        
        coefficients = np.empty((n-1, 4, values.shape[1]))
        coefficients[:, 0] = values[:-1]
        coefficients[:, 1] = (values[1:] - values[:-1]) / h - h * (M[1:] + 2*M[:-1]) / 6
        coefficients[:, 2] = M[:-1] / 2
        coefficients[:, 3] = (M[1:] - M[:-1]) / (6 * h)
        return coefficients
    
    def interpolate(self, t: float) -> float:
        """Evaluate cubic spline at point t."""
        if self.times is None:
            raise RuntimeError("Interpolator not fitted")
        
        # Flat extrapolation
        if len(self.times) == 1 or t <= self.times[0]:
            return float(self.values[0])
        if t >= self.times[-1]:
            return float(self.values[-1])
        
        idx, _ = self._bracket(t)
        dx = t - self.times[idx]
        a, b, c, d = self.coefficients[idx]
        return float(a + b*dx + c*dx**2 + d*dx**3)
    
    def node_sensitivity(self, t: float) -> np.ndarray:
        """Value of each unit-vector spline at t."""
        if self.times is None:
            raise RuntimeError("Interpolator not fitted")
        
        n = len(self.times)
        weights = np.zeros(n)
        if n == 1 or t <= self.times[0]:
            weights[0] = 1.0
            return weights
        if t >= self.times[-1]:
            weights[-1] = 1.0
            return weights
        
        idx, _ = self._bracket(t)
        dx = t - self.times[idx]
        return np.array([1.0, dx, dx**2, dx**3]) @ self._basis[idx]


class LogLinearInterpolator(Interpolator):
    """
    Log-linear interpolation on discount factors.
    
    Interpolates linearly in log space, which corresponds to piecewise
    constant forward rates. Extrapolates flat on the left and linearly in
    log space on the right.
    """
    
    def __init__(self):
        super().__init__()
        self.log_values: Optional[np.ndarray] = None
    
    def fit(self, times: np.ndarray, values: np.ndarray) -> None:
        """
        Fit log-linear interpolator.
        
        Args:
            times: Year fractions
            values: Positive node values (discount factors, not log!)
        """
        times, values = self._validate(times, values)
        if np.any(values <= 0):
            raise ValueError("Log-linear interpolation requires positive values")
        self.times, self.values = times, values
        self.log_values = np.log(values)
    
    def _log_weights(self, t: float) -> np.ndarray:
        """Weights of the log values in the interpolated log value."""
        n = len(self.times)
        weights = np.zeros(n)
        if n == 1 or t <= self.times[0]:
            weights[0] = 1.0
        elif t >= self.times[-1]:
            # Linear extrapolation in log space
            s = (t - self.times[-1]) / (self.times[-1] - self.times[-2])
            weights[-1] = 1.0 + s
            weights[-2] = -s
        else:
            idx, w = self._bracket(t)
            weights[idx] = 1.0 - w
            weights[idx + 1] = w
        return weights
    
    def interpolate(self, t: float) -> float:
        """Interpolated value (exponential of the interpolated log value)."""
        if self.times is None:
            raise RuntimeError("Interpolator not fitted")
        return float(np.exp(self._log_weights(t) @ self.log_values))
    
    def node_sensitivity(self, t: float) -> np.ndarray:
        if self.times is None:
            raise RuntimeError("Interpolator not fitted")
        return self.interpolate(t) * self._log_weights(t) / self.values


def create_interpolator(method: str) -> Interpolator:
    """
    Factory function to create an interpolator by name.
    
    Args:
        method: One of "linear", "cubic_spline", "log_linear"
        
    Returns:
        Interpolator instance
    """
    method = method.lower().replace("-", "_").replace(" ", "_")
    
    if method in ("linear", "lin"):
        return LinearInterpolator()
    elif method in ("cubic_spline", "cubic", "spline"):
        return CubicSplineInterpolator()
    elif method in ("log_linear", "loglinear"):
        return LogLinearInterpolator()
    else:
        raise ValueError(f"Unknown interpolation method: {method}")


__all__ = [
    "Interpolator",
    "LinearInterpolator",
    "CubicSplineInterpolator",
    "LogLinearInterpolator",
    "create_interpolator",
]
