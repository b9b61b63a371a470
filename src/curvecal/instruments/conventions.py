"""
Trade conventions: templates that turn dates, notional and a quote into a
resolved trade.

Provides:
- FixedOvernightSwapConvention: fixed vs compounded overnight (OIS)
- FixedIborSwapConvention: fixed vs Ibor (vanilla IRS)
- IborIborSwapConvention: Ibor + spread vs Ibor of another tenor (basis swap)
- FxSwapConvention: near and far exchange of two currencies (forward points)
- XCcyIborIborSwapConvention: cross-currency basis swap with notional exchange

Sign convention: a positive notional receives the fixed rate, the spread or
the base currency far amount.
"""

from dataclasses import dataclass
from datetime import date
from typing import List

from ..conventions import (
    BusinessDayConvention,
    DayCount,
    IborIndex,
    OvernightIndex,
    RateIndex,
    EUR_EURIBOR_3M,
    USD_FED_FUND,
    USD_LIBOR_3M,
    USD_LIBOR_6M,
)
from ..dates import DateUtils, generate_accrual_schedule
from .trades import FixedPayment, FloatingPayment, ResolvedSwapLeg, ResolvedSwapTrade


def index_frequency(index: IborIndex) -> int:
    """Payments per year implied by an Ibor index tenor."""
    years = DateUtils.tenor_to_years(index.tenor)
    return max(1, int(round(1.0 / years)))


def fixed_leg(
    currency: str,
    start: date,
    end: date,
    frequency: int,
    day_count: DayCount,
    notional: float,
    rate: float,
    convention: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING
) -> ResolvedSwapLeg:
    """Fixed coupon leg quoted on its rate."""
    schedule = generate_accrual_schedule(start, end, frequency, day_count, convention)
    payments = [
        FixedPayment(pay, notional * rate * yf, quote_weight=notional * yf)
        for pay, yf in zip(schedule.payment_dates, schedule.year_fractions)
    ]
    return ResolvedSwapLeg(currency, tuple(payments))


def floating_leg(
    index: RateIndex,
    start: date,
    end: date,
    frequency: int,
    notional: float,
    spread: float = 0.0,
    quoted_spread: bool = False,
    convention: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING
) -> List[FloatingPayment]:
    """
    Floating coupons over a schedule; each fixing period matches its accrual period.
    
    Args:
        quoted_spread: When True the spread is the market quote, so each coupon
            carries a quote weight of notional * accrual
    """
    schedule = generate_accrual_schedule(start, end, frequency, index.day_count, convention)
    payments = []
    for pay, acc_start, acc_end, yf in zip(
        schedule.payment_dates, schedule.accrual_starts,
        schedule.accrual_ends, schedule.year_fractions
    ):
        payments.append(FloatingPayment(
            payment_date=pay,
            index=index,
            fixing_start=acc_start,
            fixing_end=acc_end,
            accrual=yf,
            notional=notional,
            spread=spread,
            quote_weight=notional * yf if quoted_spread else 0.0,
        ))
    return payments


@dataclass(frozen=True)
class FixedOvernightSwapConvention:
    """Fixed leg against a compounded overnight leg, same payment dates."""
    name: str
    index: OvernightIndex
    fixed_day_count: DayCount = DayCount.ACT_360
    payment_frequency: int = 1
    spot_days: int = 2
    business_day: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING
    
    def create_trade(self, start: date, end: date, notional: float, fixed_rate: float) -> ResolvedSwapTrade:
        fixed = fixed_leg(
            self.index.currency, start, end, self.payment_frequency,
            self.fixed_day_count, notional, fixed_rate, self.business_day
        )
        floating = floating_leg(
            self.index, start, end, self.payment_frequency, -notional,
            convention=self.business_day
        )
        return ResolvedSwapTrade((fixed, ResolvedSwapLeg(self.index.currency, tuple(floating))))


@dataclass(frozen=True)
class FixedIborSwapConvention:
    """Fixed leg against an Ibor leg paying at the index tenor."""
    name: str
    index: IborIndex
    fixed_day_count: DayCount = DayCount.THIRTY_360
    fixed_frequency: int = 2
    spot_days: int = 2
    business_day: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING
    
    def create_trade(self, start: date, end: date, notional: float, fixed_rate: float) -> ResolvedSwapTrade:
        fixed = fixed_leg(
            self.index.currency, start, end, self.fixed_frequency,
            self.fixed_day_count, notional, fixed_rate, self.business_day
        )
        floating = floating_leg(
            self.index, start, end, index_frequency(self.index), -notional,
            convention=self.business_day
        )
        return ResolvedSwapTrade((fixed, ResolvedSwapLeg(self.index.currency, tuple(floating))))


@dataclass(frozen=True)
class IborIborSwapConvention:
    """Basis swap: spread_index + spread against flat_index, same currency."""
    name: str
    spread_index: IborIndex
    flat_index: IborIndex
    spot_days: int = 2
    business_day: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING
    
    def create_trade(self, start: date, end: date, notional: float, spread: float) -> ResolvedSwapTrade:
        spread_leg = floating_leg(
            self.spread_index, start, end, index_frequency(self.spread_index),
            notional, spread, quoted_spread=True, convention=self.business_day
        )
        flat_leg = floating_leg(
            self.flat_index, start, end, index_frequency(self.flat_index),
            -notional, convention=self.business_day
        )
        currency = self.spread_index.currency
        return ResolvedSwapTrade((
            ResolvedSwapLeg(currency, tuple(spread_leg)),
            ResolvedSwapLeg(currency, tuple(flat_leg)),
        ))


@dataclass(frozen=True)
class FxSwapConvention:
    """
    FX swap quoted in forward points.
    
    The base currency notional is received on the near date and paid on the
    far date; the counter currency amounts are spot * notional and
    (spot + points) * notional in the opposite direction.
    """
    name: str
    base_currency: str
    counter_currency: str
    spot_days: int = 2
    business_day: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING
    
    def create_trade(
        self,
        near_date: date,
        far_date: date,
        notional: float,
        spot_rate: float,
        forward_points: float
    ) -> ResolvedSwapTrade:
        base = ResolvedSwapLeg(self.base_currency, (
            FixedPayment(near_date, notional),
            FixedPayment(far_date, -notional),
        ))
        counter = ResolvedSwapLeg(self.counter_currency, (
            FixedPayment(near_date, -notional * spot_rate),
            FixedPayment(far_date, notional * (spot_rate + forward_points), quote_weight=notional),
        ))
        return ResolvedSwapTrade((base, counter), quote_currency=self.counter_currency)


@dataclass(frozen=True)
class XCcyIborIborSwapConvention:
    """
    Cross-currency basis swap with initial and final notional exchange.
    
    The spread leg is in the spread index currency with the given notional;
    the flat leg notional is converted at the FX rate on the trade date.
    """
    name: str
    spread_index: IborIndex
    flat_index: IborIndex
    spot_days: int = 2
    business_day: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING
    
    def create_trade(
        self,
        start: date,
        end: date,
        notional: float,
        fx_rate: float,
        spread: float
    ) -> ResolvedSwapTrade:
        spread_ccy = self.spread_index.currency
        flat_ccy = self.flat_index.currency
        flat_notional = notional * fx_rate
        
        spread_coupons = floating_leg(
            self.spread_index, start, end, index_frequency(self.spread_index),
            notional, spread, quoted_spread=True, convention=self.business_day
        )
        flat_coupons = floating_leg(
            self.flat_index, start, end, index_frequency(self.flat_index),
            -flat_notional, convention=self.business_day
        )
        spread_end = spread_coupons[-1].payment_date
        flat_end = flat_coupons[-1].payment_date
        spread_leg = ResolvedSwapLeg(
            spread_ccy,
            (FixedPayment(start, -notional),) + tuple(spread_coupons) + (FixedPayment(spread_end, notional),)
        )
        flat_leg = ResolvedSwapLeg(
            flat_ccy,
            (FixedPayment(start, flat_notional),) + tuple(flat_coupons) + (FixedPayment(flat_end, -flat_notional),)
        )
        return ResolvedSwapTrade((spread_leg, flat_leg), quote_currency=flat_ccy)


# Standard conventions
USD_FIXED_1Y_FED_FUND_OIS = FixedOvernightSwapConvention("USD-FIXED-1Y-FED-FUND-OIS", USD_FED_FUND)
USD_FIXED_6M_LIBOR_3M = FixedIborSwapConvention("USD-FIXED-6M-LIBOR-3M", USD_LIBOR_3M)
USD_LIBOR_3M_LIBOR_6M = IborIborSwapConvention("USD-LIBOR-3M-LIBOR-6M", USD_LIBOR_3M, USD_LIBOR_6M)
EUR_FIXED_1Y_EURIBOR_3M = FixedIborSwapConvention(
    "EUR-FIXED-1Y-EURIBOR-3M", EUR_EURIBOR_3M, fixed_day_count=DayCount.THIRTY_360, fixed_frequency=1
)
EUR_USD_FX_SWAP = FxSwapConvention("EUR/USD", "EUR", "USD")
EUR_EURIBOR_3M_USD_LIBOR_3M = XCcyIborIborSwapConvention(
    "EUR-EURIBOR-3M-USD-LIBOR-3M", EUR_EURIBOR_3M, USD_LIBOR_3M
)


__all__ = [
    "FixedOvernightSwapConvention",
    "FixedIborSwapConvention",
    "IborIborSwapConvention",
    "FxSwapConvention",
    "XCcyIborIborSwapConvention",
    "fixed_leg",
    "floating_leg",
    "index_frequency",
    "USD_FIXED_1Y_FED_FUND_OIS",
    "USD_FIXED_6M_LIBOR_3M",
    "USD_LIBOR_3M_LIBOR_6M",
    "EUR_FIXED_1Y_EURIBOR_3M",
    "EUR_USD_FX_SWAP",
    "EUR_EURIBOR_3M_USD_LIBOR_3M",
]
