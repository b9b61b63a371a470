"""
Discounting pricer for resolved swap trades.

Every payment is discounted on the discount curve of its leg currency and
converted to the trade quote currency at the provider FX rate. Floating
amounts are projected from the forward curve of their index, or taken from
the historical fixing when the period started before the valuation date.

Pricing formulas:
    PV    = sum_legs fx(leg) * sum_i amount_i * DF(T_i)
    PVBP  = sum_legs fx(leg) * sum_i quote_weight_i * DF(T_i)
    par   = -PV / PVBP

PVBP is the change in PV per unit change of the market quote, so the par
spread is the shift of the quote that sets the PV to zero. All three values
have analytic gradients with respect to the curve parameters.
"""

from typing import Optional

import pandas as pd

from ..instruments.trades import FixedPayment, FloatingPayment, Payment, ResolvedSwapTrade
from ..market_state import RatesProvider
from ..parameter_sensitivity import CurveSensitivities


class DiscountingSwapPricer:
    """
    Stateless swap pricer.
    
    Example:
        >>> pricer = DiscountingSwapPricer()
        >>> pv = pricer.present_value(trade, provider)
        >>> sens = pricer.present_value_sensitivity(trade, provider)
    """
    
    def payment_amount(self, payment: Payment, provider: RatesProvider) -> float:
        """Cash amount of a payment (projected for floating coupons)."""
        if isinstance(payment, FixedPayment):
            return payment.amount
        rate = provider.forward_rate(payment.index, payment.fixing_start, payment.fixing_end)
        return payment.notional * payment.accrual * (rate + payment.spread)
    
    def present_value(
        self,
        trade: ResolvedSwapTrade,
        provider: RatesProvider,
        currency: Optional[str] = None
    ) -> float:
        """
        Present value in the reporting currency.
        
        Args:
            trade: Resolved swap
            provider: Rates provider
            currency: Reporting currency (defaults to the trade quote currency)
        """
        currency = currency or trade.quote_currency
        pv = 0.0
        for leg in trade.legs:
            fx = provider.fx_rate(leg.currency, currency)
            leg_pv = sum(
                self.payment_amount(p, provider) * provider.discount_factor(leg.currency, p.payment_date)
                for p in _live(leg.payments, provider)
            )
            pv += fx * leg_pv
        return pv
    
    def present_value_sensitivity(
        self,
        trade: ResolvedSwapTrade,
        provider: RatesProvider,
        currency: Optional[str] = None
    ) -> CurveSensitivities:
        """Gradient of present_value with respect to all curve parameters."""
        currency = currency or trade.quote_currency
        total = CurveSensitivities.empty()
        for leg in trade.legs:
            fx = provider.fx_rate(leg.currency, currency)
            for p in _live(leg.payments, provider):
                df = provider.discount_factor(leg.currency, p.payment_date)
                amount = self.payment_amount(p, provider)
                sens = provider.discount_factor_sensitivity(leg.currency, p.payment_date).scaled(fx * amount)
                if isinstance(p, FloatingPayment):
                    forward_sens = provider.forward_rate_sensitivity(
                        p.index, p.fixing_start, p.fixing_end
                    )
                    sens = sens.combined(forward_sens.scaled(fx * df * p.notional * p.accrual))
                total = total.combined(sens)
        return total
    
    def pvbp(
        self,
        trade: ResolvedSwapTrade,
        provider: RatesProvider,
        currency: Optional[str] = None
    ) -> float:
        """Change in present value for a unit change of the quote."""
        currency = currency or trade.quote_currency
        pvbp = 0.0
        for leg in trade.legs:
            fx = provider.fx_rate(leg.currency, currency)
            pvbp += fx * sum(
                p.quote_weight * provider.discount_factor(leg.currency, p.payment_date)
                for p in _live(leg.payments, provider) if p.quote_weight != 0.0
            )
        return pvbp
    
    def pvbp_sensitivity(
        self,
        trade: ResolvedSwapTrade,
        provider: RatesProvider,
        currency: Optional[str] = None
    ) -> CurveSensitivities:
        currency = currency or trade.quote_currency
        total = CurveSensitivities.empty()
        for leg in trade.legs:
            fx = provider.fx_rate(leg.currency, currency)
            for p in _live(leg.payments, provider):
                if p.quote_weight != 0.0:
                    total = total.combined(
                        provider.discount_factor_sensitivity(leg.currency, p.payment_date)
                        .scaled(fx * p.quote_weight)
                    )
        return total
    
    def par_spread(self, trade: ResolvedSwapTrade, provider: RatesProvider) -> float:
        """
        Shift of the quote that makes the present value zero.
        
        Raises:
            ValueError: If the trade has no quote-dependent cashflows
        """
        pvbp = self.pvbp(trade, provider)
        if pvbp == 0.0:
            raise ValueError("Par spread undefined: trade has zero PVBP")
        return -self.present_value(trade, provider) / pvbp
    
    def par_spread_sensitivity(self, trade: ResolvedSwapTrade, provider: RatesProvider) -> CurveSensitivities:
        """Quotient rule on -PV / PVBP."""
        pv = self.present_value(trade, provider)
        pvbp = self.pvbp(trade, provider)
        if pvbp == 0.0:
            raise ValueError("Par spread undefined: trade has zero PVBP")
        d_pv = self.present_value_sensitivity(trade, provider)
        d_pvbp = self.pvbp_sensitivity(trade, provider)
        return d_pv.scaled(-1.0 / pvbp).combined(d_pvbp.scaled(pv / pvbp**2))
    
    def cashflows(self, trade: ResolvedSwapTrade, provider: RatesProvider) -> pd.DataFrame:
        """
        Cashflow table of all legs.
        
        Returns:
            DataFrame with leg, currency, payment_date, type, amount,
            discount_factor and present_value (in the leg currency)
        """
        rows = []
        for leg_number, leg in enumerate(trade.legs):
            for p in _live(leg.payments, provider):
                amount = self.payment_amount(p, provider)
                df = provider.discount_factor(leg.currency, p.payment_date)
                rows.append({
                    "leg": leg_number,
                    "currency": leg.currency,
                    "payment_date": p.payment_date,
                    "type": "FLOAT" if isinstance(p, FloatingPayment) else "FIXED",
                    "amount": amount,
                    "discount_factor": df,
                    "present_value": amount * df,
                })
        return pd.DataFrame(rows)


def _live(payments, provider: RatesProvider):
    """Payments on or after the valuation date."""
    return [p for p in payments if p.payment_date >= provider.valuation_date]


__all__ = ["DiscountingSwapPricer"]
