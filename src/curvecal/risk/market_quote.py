"""
Market-quote sensitivities.

Re-expresses a curve-parameter sensitivity dV/dx as a sensitivity to the
market quotes the curves were calibrated to, using the calibration Jacobian
stored on each curve:

    dV/dq = sum over curves c of  dV/dx_c * dx_c/dq

No recalibration is needed. Because each stored Jacobian already includes the
chain through earlier groups, one product per curve covers the whole
dependency chain.
"""

from collections.abc import Mapping
from typing import Dict, Iterator

import logging

import numpy as np
import pandas as pd

from ..market_state import RatesProvider
from ..parameter_sensitivity import CurveSensitivities

logger = logging.getLogger(__name__)


class MarketQuoteSensitivities(Mapping):
    """
    Sensitivity by market-data identifier.
    
    Behaves as a read-only mapping from quote id to sensitivity. Values are
    also kept per calibrated curve that owns the quote.
    
    Attributes:
        by_curve: Series of sensitivities by quote id, for each curve owning quotes
    """
    
    def __init__(self, by_curve: Dict[str, pd.Series]):
        self.by_curve: Dict[str, pd.Series] = dict(by_curve)
        totals: Dict[str, float] = {}
        for series in self.by_curve.values():
            for quote_id, value in series.items():
                totals[quote_id] = totals.get(quote_id, 0.0) + float(value)
        self._totals = totals
    
    def __getitem__(self, quote_id: str) -> float:
        return self._totals[quote_id]
    
    def __iter__(self) -> Iterator[str]:
        return iter(self._totals)
    
    def __len__(self) -> int:
        return len(self._totals)
    
    def as_dict(self) -> Dict[str, float]:
        return dict(self._totals)
    
    def to_series(self) -> pd.Series:
        return pd.Series(self._totals, dtype="float64", name="sensitivity")
    
    def total(self) -> float:
        return float(sum(self._totals.values()))
    
    def scaled(self, factor: float) -> "MarketQuoteSensitivities":
        return MarketQuoteSensitivities({
            name: series * factor for name, series in self.by_curve.items()
        })
    
    def __repr__(self) -> str:
        return f"MarketQuoteSensitivities({len(self)} quotes, total={self.total():.6g})"


class MarketQuoteSensitivityCalculator:
    """Maps curve-parameter sensitivities onto calibration market quotes."""
    
    def sensitivity(
        self,
        parameter_sensitivities: CurveSensitivities,
        provider: RatesProvider
    ) -> MarketQuoteSensitivities:
        """
        Market-quote sensitivity of a valuation.
        
        Args:
            parameter_sensitivities: dV/dx by curve name, e.g. from a pricer
            provider: Provider holding the calibrated curves
            
        Returns:
            MarketQuoteSensitivities with one entry per quote reached
        """
        accumulated: Dict[str, np.ndarray] = {}
        quote_ids: Dict[str, tuple] = {}
        for curve_name, values in parameter_sensitivities.items():
            curve = provider.curve(curve_name)
            jacobian = curve.jacobian
            if jacobian is None:
                logger.warning(
                    "Curve %s has no calibration Jacobian; its sensitivity is not mapped to quotes",
                    curve_name
                )
                continue
            if len(values) != jacobian.matrix.shape[0]:
                raise ValueError(
                    f"Sensitivity to {curve_name} has {len(values)} entries, "
                    f"curve has {jacobian.matrix.shape[0]} parameters"
                )
            for block, piece in jacobian.split(values @ jacobian.matrix):
                if block.curve_name in accumulated:
                    accumulated[block.curve_name] = accumulated[block.curve_name] + piece
                else:
                    accumulated[block.curve_name] = piece
                    quote_ids[block.curve_name] = block.quote_ids
        
        return MarketQuoteSensitivities({
            name: pd.Series(values, index=list(quote_ids[name]), dtype="float64")
            for name, values in accumulated.items()
        })


def market_quote_sensitivity(
    parameter_sensitivities: CurveSensitivities,
    provider: RatesProvider
) -> MarketQuoteSensitivities:
    """Convenience wrapper around MarketQuoteSensitivityCalculator."""
    return MarketQuoteSensitivityCalculator().sensitivity(parameter_sensitivities, provider)


__all__ = [
    "MarketQuoteSensitivities",
    "MarketQuoteSensitivityCalculator",
    "market_quote_sensitivity",
]
