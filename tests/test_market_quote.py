"""
Unit tests for market-quote sensitivities.

Analytic sensitivities from the calibration Jacobians are checked against
bump-and-recalibrate finite differences with a 1e-6 quote shift.
"""

import logging

import numpy as np
import pandas as pd
import pytest

from curvecal.curves import Curve
from curvecal.dates import DateUtils
from curvecal.instruments import EUR_EURIBOR_3M_USD_LIBOR_3M, USD_LIBOR_3M_LIBOR_6M
from curvecal.market_state import RatesProvider
from curvecal.parameter_sensitivity import CurveSensitivities
from curvecal.pricers import DiscountingSwapPricer
from curvecal.risk import (
    MarketQuoteSensitivities,
    MarketQuoteSensitivityCalculator,
    QuoteBumpEngine,
    market_quote_sensitivity,
)

from conftest import (
    DSCON_QUOTES,
    EUR_QUOTES,
    EUR_USD_SPOT,
    LIBOR3M_QUOTES,
    LIBOR6M_QUOTES,
    VALUATION_DATE,
    dscon_group,
    eur_group,
    forward_start_ois,
    irs_3m,
    libor3m_group,
    libor6m_group,
)


FD_SHIFT = 1e-6


@pytest.fixture
def pricer():
    return DiscountingSwapPricer()


def analytic_sensitivity(pricer, trade, provider):
    return MarketQuoteSensitivityCalculator().sensitivity(
        pricer.present_value_sensitivity(trade, provider), provider
    )


def bumped_sensitivity(calibrator, groups, market_data, pricer, trade, quote_ids):
    engine = QuoteBumpEngine(lambda md: calibrator.calibrate(groups, md), market_data, FD_SHIFT)
    return engine.sensitivities(lambda p: pricer.present_value(trade, p), quote_ids)


class TestSingleCurve:
    """Tests on the 9-node USD-DSCON curve."""

    def test_forward_swap_against_finite_difference(
        self, calibrator, usd_market_data, dscon_provider, pricer
    ):
        """Test a 6M forward 7Y OIS on 1e8 notional agrees with bumping within 2e2."""
        trade = forward_start_ois(1e8)
        analytic = analytic_sensitivity(pricer, trade, dscon_provider)
        bumped = bumped_sensitivity(
            calibrator, dscon_group(), usd_market_data, pricer, trade, list(DSCON_QUOTES)
        )

        assert set(analytic) == set(DSCON_QUOTES)
        for quote_id in DSCON_QUOTES:
            assert abs(analytic[quote_id] - bumped[quote_id]) < 2e2, quote_id

    def test_forward_swap_sensitivity_profile(self, dscon_provider, pricer):
        """Test the swap is mainly exposed to the quotes bracketing its dates."""
        trade = forward_start_ois(1e8)
        sens = analytic_sensitivity(pricer, trade, dscon_provider)

        # Receive fixed: rates up, value down; the 7Y quote dominates
        largest = max(sens, key=lambda q: abs(sens[q]))
        assert largest == "USD-OIS-7Y"
        assert sens["USD-OIS-7Y"] < 0
        assert abs(sens["USD-DEP-1M"]) < 1e-2 * abs(sens["USD-OIS-7Y"])

    def test_node_trade_has_unit_exposure(self, dscon_provider, usd_market_data, pricer):
        """Test a node trade is only sensitive to its own quote."""
        node = dscon_group().curve_definitions[0].nodes[5]
        trade = node.resolved_trade(1e6, usd_market_data)
        sens = analytic_sensitivity(pricer, trade, dscon_provider)

        pvbp = pricer.pvbp(trade, dscon_provider)
        for quote_id, value in sens.items():
            expected = -pvbp if quote_id == node.quote_id else 0.0
            assert abs(value - expected) < 1e-6 * abs(pvbp), quote_id


class TestMultiCurve:
    """Tests across sequential groups."""

    def test_irs_against_finite_difference(self, calibrator, usd_market_data, usd_provider, pricer):
        """Test a 7Y LIBOR 3M swap agrees with bumping OIS and LIBOR quotes."""
        trade = irs_3m("7Y", 1e8)
        quote_ids = ["USD-OIS-5Y", "USD-OIS-7Y", "USD-IRS3M-5Y", "USD-IRS3M-10Y", "USD-FRA-3x6"]
        analytic = analytic_sensitivity(pricer, trade, usd_provider)
        bumped = bumped_sensitivity(
            calibrator, [dscon_group(), libor3m_group()], usd_market_data, pricer, trade, quote_ids
        )

        for quote_id in quote_ids:
            assert abs(analytic[quote_id] - bumped[quote_id]) < 2e2, quote_id

    def test_sensitivity_covers_both_groups(self, usd_provider, pricer):
        """Test the LIBOR swap reaches quotes of both groups."""
        sens = analytic_sensitivity(pricer, irs_3m("7Y", 1e8), usd_provider)

        assert set(sens) == set(DSCON_QUOTES) | set(LIBOR3M_QUOTES)
        assert set(sens.by_curve) == {"USD-DSCON", "USD-LIBOR3M"}

    def test_staged_equals_joint(self, calibrator, usd_market_data, usd_provider, pricer):
        """Test sequential and joint calibration give the same quote sensitivities."""
        trade = irs_3m("7Y", 1e8)
        joint = calibrator.calibrate(dscon_group().combined_with(libor3m_group()), usd_market_data)

        staged_sens = analytic_sensitivity(pricer, trade, usd_provider).to_series()
        joint_sens = analytic_sensitivity(pricer, trade, joint).to_series()
        joint_sens = joint_sens.reindex(staged_sens.index)

        np.testing.assert_allclose(joint_sens.values, staged_sens.values, rtol=1e-6, atol=1e-2)

    def test_three_group_chain_against_finite_difference(self, calibrator, usd_market_data, pricer):
        """Test a basis swap priced off three chained groups agrees with bumping."""
        groups = [dscon_group(), libor3m_group(), libor6m_group()]
        provider = calibrator.calibrate(groups, usd_market_data)
        start = DateUtils.add_tenor(VALUATION_DATE, "2D")
        trade = USD_LIBOR_3M_LIBOR_6M.create_trade(start, DateUtils.add_tenor(start, "7Y"), 1e8, 0.0013)

        quote_ids = ["USD-OIS-7Y", "USD-IRS3M-5Y", "USD-BASIS-5Y", "USD-BASIS-10Y"]
        analytic = analytic_sensitivity(pricer, trade, provider)
        bumped = bumped_sensitivity(calibrator, groups, usd_market_data, pricer, trade, quote_ids)

        assert set(LIBOR6M_QUOTES) <= set(analytic)
        for quote_id in quote_ids:
            assert abs(analytic[quote_id] - bumped[quote_id]) < 2e2, quote_id

    def test_cross_currency_chain_against_finite_difference(self, calibrator, eur_usd_market_data, pricer):
        """Test a EUR/USD basis swap priced in USD agrees with bumping EUR and USD quotes."""
        groups = [dscon_group(), libor3m_group(), eur_group()]
        provider = calibrator.calibrate(groups, eur_usd_market_data)
        start = DateUtils.add_tenor(VALUATION_DATE, "2D")
        trade = EUR_EURIBOR_3M_USD_LIBOR_3M.create_trade(
            start, DateUtils.add_tenor(start, "3Y"), 1e8, EUR_USD_SPOT, -0.0015
        )

        quote_ids = [
            "EUR-FXSWAP-1Y", "EUR-XCCY-2Y", "EUR-XCCY-3Y", "EUR-IRS3M-3Y", "USD-OIS-3Y", "USD-IRS3M-2Y",
        ]
        analytic = analytic_sensitivity(pricer, trade, provider)
        bumped = bumped_sensitivity(calibrator, groups, eur_usd_market_data, pricer, trade, quote_ids)

        assert set(EUR_QUOTES) <= set(analytic)
        assert set(analytic.by_curve) == {"EUR-DSC", "EUR-EURIBOR3M", "USD-DSCON", "USD-LIBOR3M"}
        for quote_id in quote_ids:
            assert abs(analytic[quote_id] - bumped[quote_id]) < 2e2, quote_id

class TestCalculator:
    """Tests for the calculator and result container."""

    def test_wrapper_matches_calculator(self, dscon_provider, pricer):
        """Test the convenience function matches the calculator."""
        param_sens = pricer.present_value_sensitivity(forward_start_ois(1e6), dscon_provider)

        direct = MarketQuoteSensitivityCalculator().sensitivity(param_sens, dscon_provider)
        wrapped = market_quote_sensitivity(param_sens, dscon_provider)

        assert direct.as_dict() == wrapped.as_dict()

    def test_linear_in_sensitivity(self, dscon_provider, pricer):
        """Test doubling the parameter sensitivity doubles the quote sensitivity."""
        param_sens = pricer.present_value_sensitivity(forward_start_ois(1e6), dscon_provider)

        single = market_quote_sensitivity(param_sens, dscon_provider)
        double = market_quote_sensitivity(param_sens.scaled(2.0), dscon_provider)

        for quote_id in single:
            assert double[quote_id] == pytest.approx(2.0 * single[quote_id])

    def test_scaled(self, dscon_provider, pricer):
        """Test scaling the result."""
        param_sens = pricer.present_value_sensitivity(forward_start_ois(1e6), dscon_provider)
        sens = market_quote_sensitivity(param_sens, dscon_provider)

        assert sens.scaled(1e-4).total() == pytest.approx(sens.total() * 1e-4)

    def test_mapping_interface(self, dscon_provider, pricer):
        """Test the result behaves as a read-only mapping of quote id to float."""
        param_sens = pricer.present_value_sensitivity(forward_start_ois(1e6), dscon_provider)
        sens = market_quote_sensitivity(param_sens, dscon_provider)

        assert isinstance(sens, MarketQuoteSensitivities)
        assert len(sens) == 9
        assert "USD-OIS-7Y" in sens
        assert isinstance(sens.to_series(), pd.Series)
        with pytest.raises(KeyError):
            sens["NOT-A-QUOTE"]

    def test_empty_sensitivity(self, dscon_provider):
        """Test an empty parameter sensitivity maps to no quotes."""
        sens = market_quote_sensitivity(CurveSensitivities.empty(), dscon_provider)

        assert len(sens) == 0
        assert sens.total() == 0.0

    def test_curve_without_jacobian_warns(self, caplog):
        """Test a curve without calibration metadata is skipped with a warning."""
        curve = Curve("USD-EXT", VALUATION_DATE, [1.0, 5.0], [0.04, 0.05])
        provider = RatesProvider(VALUATION_DATE, {"USD-EXT": curve}, {"USD": "USD-EXT"})
        param_sens = CurveSensitivities.of("USD-EXT", np.array([1.0, 2.0]))

        with caplog.at_level(logging.WARNING, logger="curvecal.risk.market_quote"):
            sens = market_quote_sensitivity(param_sens, provider)

        assert len(sens) == 0
        assert any("USD-EXT" in record.getMessage() for record in caplog.records)

    def test_length_mismatch(self, dscon_provider):
        """Test a sensitivity of the wrong length is rejected."""
        param_sens = CurveSensitivities.of("USD-DSCON", np.ones(3))

        with pytest.raises(ValueError, match="USD-DSCON"):
            market_quote_sensitivity(param_sens, dscon_provider)
