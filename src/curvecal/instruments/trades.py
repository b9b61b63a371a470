"""
Resolved trades consumed by the pricers and the calibration measures.

A resolved trade is fully determined: dates, accruals and amounts are fixed,
only curve-dependent quantities (discount factors, forward rates) remain.
Every cashflow records quote_weight, the derivative of its amount with
respect to the market quote the trade was resolved from. Pricers use it for
PVBP and par spread.

Trade types:
- ResolvedSwapTrade: one or more legs of fixed and floating payments, which
  covers deposits, FRAs, fixed/float and basis swaps, FX swaps and
  cross-currency swaps
- ResolvedIborFutureTrade: margined Ibor future, priced as 1 - forward
- CurveZeroRateTrade: direct zero-rate constraint on a discount curve
"""

from dataclasses import dataclass
from datetime import date
from typing import FrozenSet, Optional, Tuple, Union

from ..conventions import IborIndex, RateIndex


@dataclass(frozen=True)
class FixedPayment:
    """Known amount paid on a date (positive = received)."""
    payment_date: date
    amount: float
    quote_weight: float = 0.0


@dataclass(frozen=True)
class FloatingPayment:
    """
    Floating coupon: notional * accrual * (index rate + spread).
    
    Attributes:
        payment_date: Payment date
        index: Rate index observed over the fixing period
        fixing_start: Start of the fixing period (also the fixing date)
        fixing_end: End of the fixing period
        accrual: Accrual year fraction of the coupon
        notional: Signed notional (positive = received)
        spread: Spread added to the index rate
        quote_weight: Derivative of the amount with respect to the quote
    """
    payment_date: date
    index: RateIndex
    fixing_start: date
    fixing_end: date
    accrual: float
    notional: float
    spread: float = 0.0
    quote_weight: float = 0.0


Payment = Union[FixedPayment, FloatingPayment]


@dataclass(frozen=True)
class ResolvedSwapLeg:
    """Payments in a single currency."""
    currency: str
    payments: Tuple[Payment, ...]
    
    def indices(self) -> FrozenSet[RateIndex]:
        return frozenset(p.index for p in self.payments if isinstance(p, FloatingPayment))


@dataclass(frozen=True)
class ResolvedSwapTrade:
    """
    Multi-leg swap.
    
    Attributes:
        legs: Swap legs, possibly in different currencies
        quote_currency: Currency in which present value is reported
    """
    legs: Tuple[ResolvedSwapLeg, ...]
    quote_currency: Optional[str] = None
    
    def __post_init__(self):
        if not self.legs:
            raise ValueError("A swap needs at least one leg")
        if self.quote_currency is None:
            object.__setattr__(self, "quote_currency", self.legs[0].currency)
    
    def currencies(self) -> FrozenSet[str]:
        return frozenset(leg.currency for leg in self.legs)
    
    def indices(self) -> FrozenSet[RateIndex]:
        result = frozenset()
        for leg in self.legs:
            result = result | leg.indices()
        return result


@dataclass(frozen=True)
class ResolvedIborFutureTrade:
    """
    Ibor future on a single fixing period.
    
    Attributes:
        index: Underlying Ibor index
        fixing_start: Start of the underlying deposit period
        fixing_end: End of the underlying deposit period
        accrual: Accrual of the underlying deposit
        notional: Contract notional
        reference_price: Price the trade was struck at (the market quote)
    """
    index: IborIndex
    fixing_start: date
    fixing_end: date
    accrual: float
    notional: float
    reference_price: float
    
    def currencies(self) -> FrozenSet[str]:
        # Futures are margined daily, so no discounting is involved
        return frozenset()
    
    def indices(self) -> FrozenSet[RateIndex]:
        return frozenset([self.index])


@dataclass(frozen=True)
class CurveZeroRateTrade:
    """Constraint that the discount curve of a currency has a given zero rate at maturity."""
    currency: str
    maturity: date
    rate: float
    
    def currencies(self) -> FrozenSet[str]:
        return frozenset([self.currency])
    
    def indices(self) -> FrozenSet[RateIndex]:
        return frozenset()


ResolvedTrade = Union[ResolvedSwapTrade, ResolvedIborFutureTrade, CurveZeroRateTrade]


__all__ = [
    "FixedPayment",
    "FloatingPayment",
    "Payment",
    "ResolvedSwapLeg",
    "ResolvedSwapTrade",
    "ResolvedIborFutureTrade",
    "CurveZeroRateTrade",
    "ResolvedTrade",
]
