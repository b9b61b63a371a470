"""
Market data snapshot for a calibration run.

Holds, for one valuation date:
- Market quotes keyed by identifier (rates, spreads, forward points, prices)
- FX rates keyed by (base, counter) currency pair
- Historical fixings per rate index as pandas Series indexed by date

The snapshot is never mutated; with_quote and with_shifted_quote return new
snapshots, which is how bump-and-recalibrate scenarios are built.
"""

from dataclasses import dataclass, field
from datetime import date
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple, Union

import pandas as pd

from .errors import MissingMarketDataError


FixingSeries = Union[pd.Series, Mapping[date, float]]


def to_fixing_series(fixings: FixingSeries) -> pd.Series:
    """Normalise fixings to a float Series with a sorted DatetimeIndex."""
    series = pd.Series(fixings, dtype="float64")
    series.index = pd.to_datetime(series.index)
    return series.sort_index()


@dataclass(frozen=True, eq=False)
class MarketData:
    """
    Immutable market data snapshot.
    
    Attributes:
        valuation_date: Date the quotes apply to
        quotes: Quote value by market-data identifier
        fx_rates: Units of counter currency per unit of base, keyed (base, counter)
        fixings: Historical fixings by index name
    """
    valuation_date: date
    quotes: Mapping[str, float]
    fx_rates: Mapping[Tuple[str, str], float] = field(default_factory=dict)
    fixings: Mapping[str, FixingSeries] = field(default_factory=dict)
    
    def __post_init__(self):
        object.__setattr__(self, "quotes", MappingProxyType(
            {key: float(value) for key, value in self.quotes.items()}
        ))
        object.__setattr__(self, "fx_rates", MappingProxyType(dict(self.fx_rates)))
        object.__setattr__(self, "fixings", MappingProxyType(
            {str(index): to_fixing_series(series) for index, series in self.fixings.items()}
        ))
    
    def quote(self, quote_id: str) -> float:
        """
        Market quote for an identifier.
        
        Raises:
            MissingMarketDataError: If the identifier has no quote
        """
        try:
            return self.quotes[quote_id]
        except KeyError:
            raise MissingMarketDataError(
                f"No market quote for {quote_id} on {self.valuation_date}"
            ) from None
    
    def fx_rate(self, base: str, counter: str) -> float:
        """Units of counter currency per unit of base currency."""
        return lookup_fx_rate(self.fx_rates, base, counter)
    
    def with_quote(self, quote_id: str, value: float) -> "MarketData":
        """New snapshot with one quote replaced."""
        quotes: Dict[str, float] = dict(self.quotes)
        quotes[quote_id] = value
        return MarketData(self.valuation_date, quotes, self.fx_rates, self.fixings)
    
    def with_shifted_quote(self, quote_id: str, shift: float) -> "MarketData":
        """New snapshot with one quote shifted by an additive amount."""
        return self.with_quote(quote_id, self.quote(quote_id) + shift)
    
    def __contains__(self, quote_id: object) -> bool:
        return quote_id in self.quotes


def lookup_fx_rate(
    fx_rates: Mapping[Tuple[str, str], float],
    base: str,
    counter: str
) -> float:
    """
    FX rate lookup allowing identity and inverse pairs.
    
    Raises:
        MissingMarketDataError: If neither the pair nor its inverse is known
    """
    if base == counter:
        return 1.0
    if (base, counter) in fx_rates:
        return fx_rates[(base, counter)]
    if (counter, base) in fx_rates:
        return 1.0 / fx_rates[(counter, base)]
    raise MissingMarketDataError(f"No FX rate for {base}/{counter}")


def merge_fx_rates(
    *sources: Optional[Mapping[Tuple[str, str], float]]
) -> Dict[Tuple[str, str], float]:
    """Merge FX rate mappings; later sources override earlier ones."""
    merged: Dict[Tuple[str, str], float] = {}
    for source in sources:
        if source:
            merged.update(source)
    return merged


__all__ = [
    "MarketData",
    "lookup_fx_rate",
    "merge_fx_rates",
    "to_fixing_series",
]
