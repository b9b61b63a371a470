"""
Ibor futures pricing.

Futures are margined daily, so no discounting is applied:
    Price = 1 - F(start, end)
    PV    = (Price - reference price) * notional * accrual

No convexity adjustment is applied.
"""

from ..instruments.trades import ResolvedIborFutureTrade
from ..market_state import RatesProvider
from ..parameter_sensitivity import CurveSensitivities


class IborFuturePricer:
    """Stateless Ibor future pricer."""
    
    def price(self, trade: ResolvedIborFutureTrade, provider: RatesProvider) -> float:
        return 1.0 - provider.forward_rate(trade.index, trade.fixing_start, trade.fixing_end)
    
    def price_sensitivity(self, trade: ResolvedIborFutureTrade, provider: RatesProvider) -> CurveSensitivities:
        return provider.forward_rate_sensitivity(
            trade.index, trade.fixing_start, trade.fixing_end
        ).scaled(-1.0)
    
    def present_value(self, trade: ResolvedIborFutureTrade, provider: RatesProvider) -> float:
        return (self.price(trade, provider) - trade.reference_price) * trade.notional * trade.accrual
    
    def present_value_sensitivity(
        self,
        trade: ResolvedIborFutureTrade,
        provider: RatesProvider
    ) -> CurveSensitivities:
        return self.price_sensitivity(trade, provider).scaled(trade.notional * trade.accrual)
    
    def par_spread(self, trade: ResolvedIborFutureTrade, provider: RatesProvider) -> float:
        """Shift of the reference price that makes the present value zero."""
        return self.price(trade, provider) - trade.reference_price
    
    def par_spread_sensitivity(
        self,
        trade: ResolvedIborFutureTrade,
        provider: RatesProvider
    ) -> CurveSensitivities:
        return self.price_sensitivity(trade, provider)


__all__ = ["IborFuturePricer"]
