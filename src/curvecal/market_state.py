"""
Rates provider: the immutable market state that pricers read from.

A RatesProvider associates
- curve names with curves
- currencies with the name of their discount curve
- rate indices with the name of their forward curve
- currency pairs with FX rates
- rate indices with historical fixings

Snapshots are never mutated. with_curves swaps curves by name and shares
every unchanged curve and mapping with the original, so the calibration
loop can build a fresh provider per iteration cheaply. combined_with merges
the curves of another provider and rejects duplicate names.
"""

from dataclasses import dataclass, field, replace
from datetime import date
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Tuple

import numpy as np
import pandas as pd

from .conventions import RateIndex, year_fraction
from .curves.curve import Curve
from .errors import CalibrationConfigError, MissingCurveError, MissingMarketDataError
from .market_data import lookup_fx_rate, merge_fx_rates
from .parameter_sensitivity import CurveSensitivities


@dataclass(frozen=True, eq=False)
class RatesProvider:
    """
    Immutable snapshot of calibrated curves and related market data.
    
    Attributes:
        valuation_date: Valuation date shared by all curves
        curves: Curves keyed by name
        discount_curve_names: Discount curve name by currency
        index_curve_names: Forward curve name by index name
        fx_rates: FX rates keyed by (base, counter)
        fixings: Historical fixings by index name
    """
    valuation_date: date
    curves: Mapping[str, Curve] = field(default_factory=dict)
    discount_curve_names: Mapping[str, str] = field(default_factory=dict)
    index_curve_names: Mapping[str, str] = field(default_factory=dict)
    fx_rates: Mapping[Tuple[str, str], float] = field(default_factory=dict)
    fixings: Mapping[str, pd.Series] = field(default_factory=dict)
    
    def __post_init__(self):
        for name in ("curves", "discount_curve_names", "index_curve_names", "fx_rates", "fixings"):
            value = getattr(self, name)
            if not isinstance(value, MappingProxyType):
                object.__setattr__(self, name, MappingProxyType(dict(value)))
        for curve_name in self.discount_curve_names.values():
            self.curve(curve_name)
        for curve_name in self.index_curve_names.values():
            self.curve(curve_name)
    
    # -- curve lookup --------------------------------------------------------
    
    @property
    def curve_names(self) -> Tuple[str, ...]:
        return tuple(self.curves)
    
    def curve(self, name: str) -> Curve:
        try:
            return self.curves[name]
        except KeyError:
            raise MissingCurveError(f"Curve not found: {name}") from None
    
    def discount_curve(self, currency: str) -> Curve:
        if currency not in self.discount_curve_names:
            raise MissingCurveError(f"No discount curve for currency {currency}")
        return self.curves[self.discount_curve_names[currency]]
    
    def index_curve(self, index: RateIndex) -> Curve:
        key = str(index)
        if key not in self.index_curve_names:
            raise MissingCurveError(f"No forward curve for index {key}")
        return self.curves[self.index_curve_names[key]]
    
    def has_discount_curve(self, currency: str) -> bool:
        return currency in self.discount_curve_names
    
    def has_index_curve(self, index: RateIndex) -> bool:
        return str(index) in self.index_curve_names
    
    # -- market quantities ---------------------------------------------------
    
    def discount_factor(self, currency: str, d: date) -> float:
        return self.discount_curve(currency).discount_factor(d)
    
    def discount_factor_sensitivity(self, currency: str, d: date) -> CurveSensitivities:
        curve = self.discount_curve(currency)
        return CurveSensitivities.of(curve.name, curve.discount_factor_sensitivity(d))
    
    def fx_rate(self, base: str, counter: str) -> float:
        return lookup_fx_rate(self.fx_rates, base, counter)
    
    def fixing(self, index: RateIndex, fixing_date: date) -> float:
        """
        Historical fixing of an index.
        
        Raises:
            MissingMarketDataError: If no fixing is recorded for the date
        """
        series = self.fixings.get(str(index))
        if series is not None:
            value = series.get(pd.Timestamp(fixing_date))
            if value is not None and not np.isnan(value):
                return float(value)
        raise MissingMarketDataError(f"No fixing for {index} on {fixing_date}")
    
    def forward_rate(self, index: RateIndex, start: date, end: date) -> float:
        """
        Simple rate of an index over [start, end].
        
        Periods that started before the valuation date use the historical
        fixing on the start date.
        """
        if start < self.valuation_date:
            return self.fixing(index, start)
        curve = self.index_curve(index)
        accrual = year_fraction(start, end, index.day_count)
        return (curve.discount_factor(start) / curve.discount_factor(end) - 1.0) / accrual
    
    def forward_rate_sensitivity(self, index: RateIndex, start: date, end: date) -> CurveSensitivities:
        """Gradient of forward_rate with respect to the forward curve parameters."""
        if start < self.valuation_date:
            return CurveSensitivities.empty()
        curve = self.index_curve(index)
        accrual = year_fraction(start, end, index.day_count)
        df_start = curve.discount_factor(start)
        df_end = curve.discount_factor(end)
        d_start = curve.discount_factor_sensitivity(start)
        d_end = curve.discount_factor_sensitivity(end)
        gradient = (d_start / df_end - df_start * d_end / df_end**2) / accrual
        return CurveSensitivities.of(curve.name, gradient)
    
    # -- snapshots -----------------------------------------------------------
    
    @classmethod
    def empty(
        cls,
        valuation_date: date,
        fx_rates: Optional[Mapping[Tuple[str, str], float]] = None,
        fixings: Optional[Mapping[str, pd.Series]] = None
    ) -> "RatesProvider":
        return cls(valuation_date, fx_rates=fx_rates or {}, fixings=fixings or {})
    
    def with_curves(self, curves: Iterable[Curve]) -> "RatesProvider":
        """
        New provider with curves replaced by name.
        
        Every curve must already be present; all other curves are shared.
        """
        updated: Dict[str, Curve] = dict(self.curves)
        for curve in curves:
            if curve.name not in updated:
                raise MissingCurveError(f"Cannot replace unknown curve {curve.name}")
            updated[curve.name] = curve
        return replace(self, curves=MappingProxyType(updated))
    
    def with_market_data(
        self,
        fx_rates: Mapping[Tuple[str, str], float],
        fixings: Mapping[str, pd.Series]
    ) -> "RatesProvider":
        """New provider with extra FX rates and fixings (new values win)."""
        merged_fx = merge_fx_rates(self.fx_rates, fx_rates)
        merged_fixings = {**self.fixings, **fixings}
        return replace(self, fx_rates=merged_fx, fixings=merged_fixings)
    
    def combined_with(self, other: "RatesProvider") -> "RatesProvider":
        """
        Merge another provider into this one.
        
        Raises:
            CalibrationConfigError: On differing valuation dates, duplicate curve
                names, or a currency or index mapped by both providers
        """
        if other.valuation_date != self.valuation_date:
            raise CalibrationConfigError(
                f"Valuation date mismatch: {self.valuation_date} vs {other.valuation_date}"
            )
        duplicates = sorted(set(self.curves) & set(other.curves))
        if duplicates:
            raise CalibrationConfigError(f"Duplicate curve names: {', '.join(duplicates)}")
        for label, mine, theirs in (
            ("Currency", self.discount_curve_names, other.discount_curve_names),
            ("Index", self.index_curve_names, other.index_curve_names),
        ):
            clashes = sorted(set(mine) & set(theirs))
            if clashes:
                raise CalibrationConfigError(
                    f"{label} {clashes[0]} already mapped to curve {mine[clashes[0]]}"
                )
        return RatesProvider(
            valuation_date=self.valuation_date,
            curves={**self.curves, **other.curves},
            discount_curve_names={**self.discount_curve_names, **other.discount_curve_names},
            index_curve_names={**self.index_curve_names, **other.index_curve_names},
            fx_rates=merge_fx_rates(self.fx_rates, other.fx_rates),
            fixings={**self.fixings, **other.fixings},
        )
    
    def __repr__(self) -> str:
        return f"RatesProvider(valuation_date={self.valuation_date}, curves={list(self.curves)})"


__all__ = ["RatesProvider"]
