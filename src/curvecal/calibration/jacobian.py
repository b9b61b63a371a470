"""
Calibration Jacobian store.

After a group converges, the implicit function theorem gives the sensitivity
of the group parameters x to the market quotes q:

    r(x*(q), q) = 0   =>   dx*/dq = -(dr/dx)^-1 * dr/dq

Quotes of the group's own nodes enter through the diagonal dr_i/dq_i.
Quotes of earlier groups enter through the fixed curves they calibrated:
with P = dr/dx_prior and each prior curve's own stored dx_prior/dq,

    dx*/dq_prior = -(dr/dx)^-1 * P * dx_prior/dq

The result is split by curve and attached to each calibrated curve as a
JacobianCalibrationMatrix: rows are the curve parameters, columns are the
market quotes listed by its block order. It is computed once, when the
group is calibrated.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import scipy.linalg

from ..curves.curve import Curve
from .bundle import ParameterBundle


@dataclass(frozen=True)
class CurveQuoteBlock:
    """The market quotes of one calibrated curve, in node order."""
    curve_name: str
    quote_ids: Tuple[str, ...]
    
    @property
    def size(self) -> int:
        return len(self.quote_ids)


@dataclass(frozen=True, eq=False)
class JacobianCalibrationMatrix:
    """
    Immutable d(curve parameters)/d(market quotes).
    
    Attributes:
        order: Quote blocks describing the columns
        matrix: Array of shape (parameter count, total quotes in order)
    """
    order: Tuple[CurveQuoteBlock, ...]
    matrix: np.ndarray
    
    def __post_init__(self):
        matrix = np.array(self.matrix, dtype=np.float64)
        if matrix.ndim != 2 or matrix.shape[1] != sum(block.size for block in self.order):
            raise ValueError(
                f"Jacobian shape {matrix.shape} does not match quote order of "
                f"{sum(block.size for block in self.order)} columns"
            )
        matrix.setflags(write=False)
        object.__setattr__(self, "order", tuple(self.order))
        object.__setattr__(self, "matrix", matrix)
    
    @property
    def curve_names(self) -> Tuple[str, ...]:
        return tuple(block.curve_name for block in self.order)
    
    @property
    def quote_ids(self) -> Tuple[str, ...]:
        return tuple(q for block in self.order for q in block.quote_ids)
    
    def block_slice(self, curve_name: str) -> slice:
        start = 0
        for block in self.order:
            if block.curve_name == curve_name:
                return slice(start, start + block.size)
            start += block.size
        raise KeyError(f"Curve {curve_name} is not in the Jacobian order")
    
    def split(self, vector: np.ndarray) -> List[Tuple[CurveQuoteBlock, np.ndarray]]:
        """Cut a vector over the columns into one piece per block."""
        pieces = []
        start = 0
        for block in self.order:
            pieces.append((block, vector[start:start + block.size]))
            start += block.size
        return pieces
    
    def embedded(self, order: Sequence[CurveQuoteBlock]) -> np.ndarray:
        """The matrix with its columns placed in a larger block order (zeros elsewhere)."""
        target = _block_starts(order)
        total = sum(block.size for block in order)
        result = np.zeros((self.matrix.shape[0], total))
        source = 0
        for block in self.order:
            start = target[block.curve_name]
            result[:, start:start + block.size] = self.matrix[:, source:source + block.size]
            source += block.size
        return result
    
    def to_frame(self, row_labels: Optional[Sequence[str]] = None) -> pd.DataFrame:
        """Table with one row per curve parameter and (curve, quote) columns."""
        columns = pd.MultiIndex.from_tuples(
            [(block.curve_name, q) for block in self.order for q in block.quote_ids],
            names=["curve", "quote"],
        )
        return pd.DataFrame(self.matrix, index=row_labels, columns=columns)
    
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, JacobianCalibrationMatrix):
            return NotImplemented
        return self.order == other.order and np.array_equal(self.matrix, other.matrix)
    
    __hash__ = None


def _block_starts(order: Sequence[CurveQuoteBlock]) -> Dict[str, int]:
    starts = {}
    position = 0
    for block in order:
        starts[block.curve_name] = position
        position += block.size
    return starts


def merge_orders(jacobians: Sequence[JacobianCalibrationMatrix]) -> Tuple[CurveQuoteBlock, ...]:
    """
    Union of the block orders of several Jacobians, first occurrence first.
    
    Raises:
        ValueError: If the same curve appears with different quotes
    """
    merged: Dict[str, CurveQuoteBlock] = {}
    for jacobian in jacobians:
        for block in jacobian.order:
            existing = merged.get(block.curve_name)
            if existing is None:
                merged[block.curve_name] = block
            elif existing != block:
                raise ValueError(f"Inconsistent quotes for curve {block.curve_name}")
    return tuple(merged.values())


def calibration_jacobians(
    bundle: ParameterBundle,
    residual_jacobian: np.ndarray,
    quote_derivatives: np.ndarray,
    prior_curves: Sequence[Curve] = (),
    prior_jacobian: Optional[np.ndarray] = None
) -> Dict[str, JacobianCalibrationMatrix]:
    """
    Per-curve calibration Jacobians of a converged group.
    
    Args:
        bundle: Bundle of the group curves (its curves supply the quote labels)
        residual_jacobian: dr/dx at the solution, square
        quote_derivatives: dr_i/dq_i at the solution
        prior_curves: Fixed curves the residuals depend on, each with a stored Jacobian
        prior_jacobian: dr/dx_prior over ParameterBundle(prior_curves)
        
    Returns:
        JacobianCalibrationMatrix by curve name
    """
    own_order = tuple(CurveQuoteBlock(curve.name, curve.node_labels) for curve in bundle.curves)
    lu = scipy.linalg.lu_factor(residual_jacobian)
    full = -scipy.linalg.lu_solve(lu, np.diag(quote_derivatives))
    order = own_order
    
    if prior_curves:
        prior_order = merge_orders([curve.jacobian for curve in prior_curves])
        chained = np.vstack([curve.jacobian.embedded(prior_order) for curve in prior_curves])
        prior_part = -scipy.linalg.lu_solve(lu, prior_jacobian @ chained)
        full = np.hstack([full, prior_part])
        order = own_order + prior_order
    
    return {
        name: JacobianCalibrationMatrix(order, full[bundle.slice_of(name)])
        for name in bundle.names
    }


__all__ = [
    "CurveQuoteBlock",
    "JacobianCalibrationMatrix",
    "merge_orders",
    "calibration_jacobians",
]
