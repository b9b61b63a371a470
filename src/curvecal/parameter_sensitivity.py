"""
Curve parameter sensitivities.

A CurveSensitivities object holds the gradient of a single valuation (a
present value, a par spread, a zero rate) with respect to the parameters of
each curve it touched, keyed by curve name. Pricers produce it, calibration
assembles residual Jacobians from it, and the market-quote propagator maps it
onto market quotes.
"""

from typing import Dict, Iterator, Mapping, Optional, Tuple

import numpy as np
import pandas as pd


class CurveSensitivities:
    """
    Immutable mapping from curve name to a parameter sensitivity vector.
    
    Example:
        >>> sens = CurveSensitivities.of("USD-DSC", np.array([0.0, -1.2]))
        >>> total = sens.combined(other).scaled(1e6)
    """
    
    __slots__ = ("_sensitivities",)
    
    def __init__(self, sensitivities: Optional[Mapping[str, np.ndarray]] = None):
        arrays = {}
        for name, values in (sensitivities or {}).items():
            array = np.array(values, dtype=np.float64)
            array.setflags(write=False)
            arrays[name] = array
        self._sensitivities: Dict[str, np.ndarray] = arrays
    
    @classmethod
    def empty(cls) -> "CurveSensitivities":
        return cls()
    
    @classmethod
    def of(cls, curve_name: str, sensitivity: np.ndarray) -> "CurveSensitivities":
        """Sensitivity to a single curve."""
        return cls({curve_name: sensitivity})
    
    @property
    def curve_names(self) -> Tuple[str, ...]:
        return tuple(self._sensitivities)
    
    def get(self, curve_name: str, size: Optional[int] = None) -> np.ndarray:
        """
        Sensitivity vector for one curve.
        
        Args:
            curve_name: Curve to look up
            size: When given, a zero vector of this length is returned for
                curves that are absent
        """
        if curve_name in self._sensitivities:
            return self._sensitivities[curve_name]
        if size is None:
            raise KeyError(f"No sensitivity to curve {curve_name}")
        return np.zeros(size)
    
    def items(self) -> Iterator[Tuple[str, np.ndarray]]:
        return iter(self._sensitivities.items())
    
    def combined(self, other: "CurveSensitivities") -> "CurveSensitivities":
        """Sum of two sensitivities; vectors for the same curve are added."""
        merged = dict(self._sensitivities)
        for name, values in other.items():
            if name in merged:
                if len(merged[name]) != len(values):
                    raise ValueError(f"Sensitivity length mismatch for curve {name}")
                merged[name] = merged[name] + values
            else:
                merged[name] = values
        return CurveSensitivities(merged)
    
    def scaled(self, factor: float) -> "CurveSensitivities":
        return CurveSensitivities({name: factor * values for name, values in self.items()})
    
    def total(self) -> float:
        """Sum of all entries across all curves."""
        return float(sum(values.sum() for values in self._sensitivities.values()))
    
    def to_frame(self) -> pd.DataFrame:
        """Long-format table with one row per curve parameter."""
        rows = [
            {"curve": name, "parameter": i, "sensitivity": float(value)}
            for name, values in self.items()
            for i, value in enumerate(values)
        ]
        return pd.DataFrame(rows, columns=["curve", "parameter", "sensitivity"])
    
    def __add__(self, other: "CurveSensitivities") -> "CurveSensitivities":
        return self.combined(other)
    
    def __mul__(self, factor: float) -> "CurveSensitivities":
        return self.scaled(factor)
    
    __rmul__ = __mul__
    
    def __contains__(self, curve_name: object) -> bool:
        return curve_name in self._sensitivities
    
    def __len__(self) -> int:
        return len(self._sensitivities)
    
    def __repr__(self) -> str:
        inner = ", ".join(f"{name}: {len(values)}" for name, values in self.items())
        return f"CurveSensitivities({inner})"


__all__ = ["CurveSensitivities"]
