"""
Parameter bundle: the curves of one group as a single parameter vector.

The bundle order is curve order within the group, then node order within
each curve. The same order indexes the columns of the group Jacobian and
the rows of the calibration Jacobians attached to the curves.
"""

from typing import Dict, Sequence, Tuple

import numpy as np

from ..curves.curve import Curve
from ..errors import CalibrationConfigError
from ..parameter_sensitivity import CurveSensitivities


class ParameterBundle:
    """
    Flattens and unflattens a fixed, ordered set of curves.
    
    Attributes:
        curves: Template curves, in bundle order
        names: Curve names, in bundle order
        sizes: Parameter count of each curve
        offsets: Start index of each curve in the flat vector
    """
    
    def __init__(self, curves: Sequence[Curve]):
        self.curves: Tuple[Curve, ...] = tuple(curves)
        self.names: Tuple[str, ...] = tuple(curve.name for curve in self.curves)
        if len(set(self.names)) != len(self.names):
            duplicates = sorted({n for n in self.names if self.names.count(n) > 1})
            raise CalibrationConfigError(f"Duplicate curve names in bundle: {', '.join(duplicates)}")
        self.sizes: Tuple[int, ...] = tuple(curve.parameter_count for curve in self.curves)
        offsets = []
        position = 0
        for size in self.sizes:
            offsets.append(position)
            position += size
        self.offsets: Tuple[int, ...] = tuple(offsets)
    
    def __len__(self) -> int:
        return sum(self.sizes)
    
    def slice_of(self, name: str) -> slice:
        """Position of one curve's parameters in the flat vector."""
        try:
            i = self.names.index(name)
        except ValueError:
            raise KeyError(f"Curve {name} is not part of the bundle") from None
        return slice(self.offsets[i], self.offsets[i] + self.sizes[i])
    
    def flatten(self, curves: Sequence[Curve] = None) -> np.ndarray:
        """Concatenated parameters of the given curves (the template curves by default)."""
        curves = self.curves if curves is None else tuple(curves)
        if tuple(c.name for c in curves) != self.names:
            raise CalibrationConfigError(
                f"Curves {[c.name for c in curves]} do not match bundle {list(self.names)}"
            )
        if not curves:
            return np.zeros(0)
        return np.concatenate([curve.parameters for curve in curves])
    
    def unflatten(self, vector: np.ndarray) -> Tuple[Curve, ...]:
        """
        Curves carrying the parameters in the vector.
        
        A curve whose slice equals its current parameters is returned as is.
        
        Raises:
            CalibrationConfigError: If the vector length differs from the bundle size
        """
        vector = np.asarray(vector, dtype=np.float64)
        if vector.ndim != 1 or len(vector) != len(self):
            raise CalibrationConfigError(
                f"Parameter vector has length {vector.size}, bundle {list(self.names)} "
                f"expects {len(self)}"
            )
        result = []
        for curve, offset, size in zip(self.curves, self.offsets, self.sizes):
            values = vector[offset:offset + size]
            if np.array_equal(values, curve.parameters):
                result.append(curve)
            else:
                result.append(curve.with_parameters(values))
        return tuple(result)
    
    def split(self, vector: np.ndarray) -> Dict[str, np.ndarray]:
        """Per-curve views of a flat vector."""
        return {
            name: vector[offset:offset + size]
            for name, offset, size in zip(self.names, self.offsets, self.sizes)
        }
    
    def gather(self, sensitivities: CurveSensitivities) -> np.ndarray:
        """Flat gradient over the bundle; curves absent from the sensitivities contribute zeros."""
        if not self.curves:
            return np.zeros(0)
        return np.concatenate([
            sensitivities.get(name, size) for name, size in zip(self.names, self.sizes)
        ])


def flatten_curves(curves: Sequence[Curve]) -> np.ndarray:
    """Concatenate the parameters of curves in order."""
    return ParameterBundle(curves).flatten()


def unflatten_curves(vector: np.ndarray, curves: Sequence[Curve]) -> Tuple[Curve, ...]:
    """Inverse of flatten_curves for the same curve templates."""
    return ParameterBundle(curves).unflatten(vector)


__all__ = ["ParameterBundle", "flatten_curves", "unflatten_curves"]
