"""
Calibration nodes.

A node pairs an instrument template with a market-data identifier. Bound to a
market data snapshot it produces a resolved trade, the date that places the
node on its curve, and an initial guess for the curve parameter.

Supported nodes:
- TermDepositNode: money market deposit
- IborFixingDepositNode: deposit matching an Ibor fixing period
- FraNode: forward rate agreement
- IborFutureNode: Ibor future quoted in price
- FixedOvernightSwapNode, FixedIborSwapNode, IborIborSwapNode: single-currency swaps
- FxSwapNode: FX swap quoted in forward points
- XCcyIborIborSwapNode: cross-currency basis swap quoted in spread
- ZeroRateNode: direct zero rate
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..conventions import (
    BusinessDayConvention,
    DayCount,
    IborIndex,
    adjust_business_day,
    year_fraction,
)
from ..dates import DateUtils
from ..market_data import MarketData
from .conventions import (
    FixedIborSwapConvention,
    FixedOvernightSwapConvention,
    FxSwapConvention,
    IborIborSwapConvention,
    XCcyIborIborSwapConvention,
)
from .trades import (
    CurveZeroRateTrade,
    FixedPayment,
    FloatingPayment,
    ResolvedIborFutureTrade,
    ResolvedSwapLeg,
    ResolvedSwapTrade,
    ResolvedTrade,
)


MF = BusinessDayConvention.MODIFIED_FOLLOWING


def _spot_date(valuation_date: date, spot_days: int) -> date:
    return DateUtils.add_tenor(valuation_date, f"{spot_days}D")


def _term_end(start: date, tenor: str) -> date:
    return adjust_business_day(DateUtils.add_tenor(start, tenor), MF)


@dataclass(frozen=True)
class CalibrationNode(ABC):
    """
    Abstract calibration node.
    
    Attributes:
        quote_id: Market-data identifier of the node quote
    """
    quote_id: str
    
    @abstractmethod
    def node_date(self, valuation_date: date) -> date:
        """Date at which the node sits on its curve."""
    
    @abstractmethod
    def resolved_trade(self, notional: float, market_data: MarketData) -> ResolvedTrade:
        """Trade implied by the node and its market quote."""
    
    def initial_guess(self, market_data: MarketData) -> Optional[float]:
        """
        Initial zero rate for the curve parameter of this node.
        
        Rate-quoted nodes start from their quote; spread and points quoted
        nodes return None so the previous guess is carried forward.
        """
        return market_data.quote(self.quote_id)
    
    @property
    def label(self) -> str:
        return self.quote_id


@dataclass(frozen=True)
class TermDepositNode(CalibrationNode):
    """Deposit of the notional at the start date, repaid with simple interest at the end."""
    currency: str = "USD"
    tenor: str = "1D"
    spot_days: int = 0
    day_count: DayCount = DayCount.ACT_360
    
    def _dates(self, valuation_date: date):
        start = _spot_date(valuation_date, self.spot_days)
        return start, _term_end(start, self.tenor)
    
    def node_date(self, valuation_date: date) -> date:
        return self._dates(valuation_date)[1]
    
    def resolved_trade(self, notional: float, market_data: MarketData) -> ResolvedSwapTrade:
        rate = market_data.quote(self.quote_id)
        start, end = self._dates(market_data.valuation_date)
        yf = year_fraction(start, end, self.day_count)
        leg = ResolvedSwapLeg(self.currency, (
            FixedPayment(start, -notional),
            FixedPayment(end, notional * (1.0 + rate * yf), quote_weight=notional * yf),
        ))
        return ResolvedSwapTrade((leg,))


def _fixing_trade(
    index: IborIndex,
    start: date,
    end: date,
    notional: float,
    rate: float
) -> ResolvedSwapTrade:
    """Receive the index over [start, end] against a fixed rate, paid at end."""
    yf = year_fraction(start, end, index.day_count)
    leg = ResolvedSwapLeg(index.currency, (
        FloatingPayment(end, index, start, end, yf, notional),
        FixedPayment(end, -notional * rate * yf, quote_weight=-notional * yf),
    ))
    return ResolvedSwapTrade((leg,))


@dataclass(frozen=True)
class IborFixingDepositNode(CalibrationNode):
    """Deposit covering the Ibor fixing period that starts on the valuation date."""
    index: IborIndex = None
    
    def node_date(self, valuation_date: date) -> date:
        return _term_end(valuation_date, self.index.tenor)
    
    def resolved_trade(self, notional: float, market_data: MarketData) -> ResolvedSwapTrade:
        start = market_data.valuation_date
        return _fixing_trade(
            self.index, start, self.node_date(start), notional, market_data.quote(self.quote_id)
        )


@dataclass(frozen=True)
class FraNode(CalibrationNode):
    """FRA on an Ibor index starting period_to_start after spot."""
    index: IborIndex = None
    period_to_start: str = "3M"
    spot_days: int = 2
    
    def _dates(self, valuation_date: date):
        start = _term_end(_spot_date(valuation_date, self.spot_days), self.period_to_start)
        return start, _term_end(start, self.index.tenor)
    
    def node_date(self, valuation_date: date) -> date:
        return self._dates(valuation_date)[1]
    
    def resolved_trade(self, notional: float, market_data: MarketData) -> ResolvedSwapTrade:
        start, end = self._dates(market_data.valuation_date)
        return _fixing_trade(self.index, start, end, notional, market_data.quote(self.quote_id))


@dataclass(frozen=True)
class IborFutureNode(CalibrationNode):
    """Ibor future whose deposit period starts period_to_start after valuation."""
    index: IborIndex = None
    period_to_start: str = "3M"
    
    def _dates(self, valuation_date: date):
        start = _term_end(valuation_date, self.period_to_start)
        return start, _term_end(start, self.index.tenor)
    
    def node_date(self, valuation_date: date) -> date:
        return self._dates(valuation_date)[1]
    
    def resolved_trade(self, notional: float, market_data: MarketData) -> ResolvedIborFutureTrade:
        start, end = self._dates(market_data.valuation_date)
        return ResolvedIborFutureTrade(
            index=self.index,
            fixing_start=start,
            fixing_end=end,
            accrual=year_fraction(start, end, self.index.day_count),
            notional=notional,
            reference_price=market_data.quote(self.quote_id),
        )
    
    def initial_guess(self, market_data: MarketData) -> Optional[float]:
        return 1.0 - market_data.quote(self.quote_id)


@dataclass(frozen=True)
class _SwapNode(CalibrationNode):
    """Shared date logic for swap nodes: spot, optional forward start, then tenor."""
    tenor: str = "1Y"
    period_to_start: str = "0M"
    
    def _spot_days(self) -> int:
        return self.convention.spot_days
    
    def _dates(self, valuation_date: date):
        spot = _spot_date(valuation_date, self._spot_days())
        start = adjust_business_day(DateUtils.add_tenor(spot, self.period_to_start), MF)
        return start, DateUtils.add_tenor(start, self.tenor)
    
    def node_date(self, valuation_date: date) -> date:
        return adjust_business_day(self._dates(valuation_date)[1], MF)


@dataclass(frozen=True)
class FixedOvernightSwapNode(_SwapNode):
    """OIS quoted on its fixed rate."""
    convention: FixedOvernightSwapConvention = None
    
    def resolved_trade(self, notional: float, market_data: MarketData) -> ResolvedSwapTrade:
        start, end = self._dates(market_data.valuation_date)
        return self.convention.create_trade(start, end, notional, market_data.quote(self.quote_id))


@dataclass(frozen=True)
class FixedIborSwapNode(_SwapNode):
    """Fixed vs Ibor swap quoted on its fixed rate."""
    convention: FixedIborSwapConvention = None
    
    def resolved_trade(self, notional: float, market_data: MarketData) -> ResolvedSwapTrade:
        start, end = self._dates(market_data.valuation_date)
        return self.convention.create_trade(start, end, notional, market_data.quote(self.quote_id))


@dataclass(frozen=True)
class IborIborSwapNode(_SwapNode):
    """Basis swap quoted on the spread over the spread index."""
    convention: IborIborSwapConvention = None
    
    def resolved_trade(self, notional: float, market_data: MarketData) -> ResolvedSwapTrade:
        start, end = self._dates(market_data.valuation_date)
        return self.convention.create_trade(start, end, notional, market_data.quote(self.quote_id))
    
    def initial_guess(self, market_data: MarketData) -> Optional[float]:
        return None


@dataclass(frozen=True)
class FxSwapNode(CalibrationNode):
    """FX swap from spot to spot + tenor, quoted in forward points."""
    convention: FxSwapConvention = None
    tenor: str = "3M"
    
    def _dates(self, valuation_date: date):
        near = _spot_date(valuation_date, self.convention.spot_days)
        return near, _term_end(near, self.tenor)
    
    def node_date(self, valuation_date: date) -> date:
        return self._dates(valuation_date)[1]
    
    def resolved_trade(self, notional: float, market_data: MarketData) -> ResolvedSwapTrade:
        near, far = self._dates(market_data.valuation_date)
        spot = market_data.fx_rate(self.convention.base_currency, self.convention.counter_currency)
        return self.convention.create_trade(
            near, far, notional, spot, market_data.quote(self.quote_id)
        )
    
    def initial_guess(self, market_data: MarketData) -> Optional[float]:
        return None


@dataclass(frozen=True)
class XCcyIborIborSwapNode(_SwapNode):
    """Cross-currency basis swap quoted on the spread over the spread index."""
    convention: XCcyIborIborSwapConvention = None
    
    def resolved_trade(self, notional: float, market_data: MarketData) -> ResolvedSwapTrade:
        start, end = self._dates(market_data.valuation_date)
        fx = market_data.fx_rate(
            self.convention.spread_index.currency, self.convention.flat_index.currency
        )
        return self.convention.create_trade(
            start, end, notional, fx, market_data.quote(self.quote_id)
        )
    
    def initial_guess(self, market_data: MarketData) -> Optional[float]:
        return None


@dataclass(frozen=True)
class ZeroRateNode(CalibrationNode):
    """Continuously compounded zero rate of a discount curve at valuation + tenor."""
    currency: str = "USD"
    tenor: str = "1Y"
    
    def node_date(self, valuation_date: date) -> date:
        return DateUtils.add_tenor(valuation_date, self.tenor)
    
    def resolved_trade(self, notional: float, market_data: MarketData) -> CurveZeroRateTrade:
        return CurveZeroRateTrade(
            self.currency,
            self.node_date(market_data.valuation_date),
            market_data.quote(self.quote_id),
        )


__all__ = [
    "CalibrationNode",
    "TermDepositNode",
    "IborFixingDepositNode",
    "FraNode",
    "IborFutureNode",
    "FixedOvernightSwapNode",
    "FixedIborSwapNode",
    "IborIborSwapNode",
    "FxSwapNode",
    "XCcyIborIborSwapNode",
    "ZeroRateNode",
]
