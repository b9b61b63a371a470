"""
Risk package - sensitivities of valuations to calibration market quotes.

Provides:
- MarketQuoteSensitivityCalculator: analytic market-quote sensitivity via the stored calibration Jacobians
- QuoteBumpEngine: bump-and-recalibrate finite-difference reference
"""

from .market_quote import (
    MarketQuoteSensitivities,
    MarketQuoteSensitivityCalculator,
    market_quote_sensitivity,
)
from .bumping import QuoteBumpEngine, QuoteBumpResult

__all__ = [
    "MarketQuoteSensitivities",
    "MarketQuoteSensitivityCalculator",
    "market_quote_sensitivity",
    "QuoteBumpEngine",
    "QuoteBumpResult",
]
