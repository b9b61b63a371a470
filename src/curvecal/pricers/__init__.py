"""
Pricers package - valuation of resolved trades against a rates provider.

Provides:
- DiscountingSwapPricer: PV, PVBP, par spread and their curve sensitivities for swaps
- IborFuturePricer: price, PV, par spread and their curve sensitivities for futures
"""

from .swaps import DiscountingSwapPricer
from .futures import IborFuturePricer

__all__ = [
    "DiscountingSwapPricer",
    "IborFuturePricer",
]
