"""
Unit tests for curve group calibration.
"""

from datetime import date

import numpy as np
import pandas as pd
import pytest

from curvecal.calibration import (
    CalibrationMeasures,
    CalibratorConfig,
    CurveCalibrator,
    MeasureKind,
    NewtonRaphsonSolver,
)
from curvecal.conventions import USD_LIBOR_3M
from curvecal.curves import CurveDefinition, CurveGroupDefinition, CurveValueType
from curvecal.errors import (
    CalibrationConfigError,
    CalibrationFailedError,
    MissingCurveError,
    MissingMarketDataError,
)
from curvecal.instruments import (
    IborFutureNode,
    ResolvedIborFutureTrade,
    ZeroRateNode,
)
from curvecal.market_data import MarketData
from curvecal.market_state import RatesProvider
from curvecal.pricers import DiscountingSwapPricer, IborFuturePricer

from conftest import (
    DSCON_QUOTES,
    EUR_QUOTES,
    LIBOR3M_QUOTES,
    TIGHT_CONFIG,
    VALUATION_DATE,
    dscon_group,
    eur_group,
    libor3m_group,
    libor6m_group,
)


def node_present_values(group, market_data, provider, notional=1.0):
    """PV of every node trade of a group in its quote currency."""
    pricer = DiscountingSwapPricer()
    values = {}
    for definition in group.curve_definitions:
        for node in definition.nodes:
            trade = node.resolved_trade(notional, market_data)
            values[node.quote_id] = pricer.present_value(trade, provider)
    return pd.Series(values)


class TestSingleCurveCalibration:
    """Tests for the 9-node USD-DSCON curve."""

    def test_nodes_reprice(self, dscon_provider, usd_market_data):
        """Test every node trade prices to zero on the calibrated curve."""
        pvs = node_present_values(dscon_group(), usd_market_data, dscon_provider)

        assert list(pvs.index) == list(DSCON_QUOTES)
        assert pvs.abs().max() < 1e-6

    def test_nodes_reprice_at_large_notional(self, dscon_provider, usd_market_data):
        """Test node trades reprice to within a cent on a 1mm notional."""
        pvs = node_present_values(dscon_group(), usd_market_data, dscon_provider, notional=1e6)

        assert pvs.abs().max() < 1e-2

    def test_curve_layout(self, dscon_provider):
        """Test the calibrated curve has one parameter per node, labelled by quote."""
        curve = dscon_provider.curve("USD-DSCON")

        assert curve.parameter_count == 9
        assert curve.node_labels == tuple(DSCON_QUOTES)
        assert curve.value_type == CurveValueType.ZERO_RATE
        assert np.all(np.diff(curve.node_times) > 0)

    def test_zero_rates_are_plausible(self, dscon_provider):
        """Test calibrated zero rates lie near the quoted rates."""
        curve = dscon_provider.curve("USD-DSCON")

        for (_, quote), rate in zip(DSCON_QUOTES.values(), curve.parameters):
            assert abs(rate - quote) < 0.005

    def test_curve_mapping(self, dscon_provider):
        """Test the curve discounts USD and projects the Fed Funds index."""
        assert dscon_provider.discount_curve("USD").name == "USD-DSCON"
        assert dscon_provider.index_curve("USD-FED-FUND").name == "USD-DSCON"

    def test_calibration_is_idempotent(self, calibrator, usd_market_data, dscon_provider):
        """Test calibrating the same inputs twice gives identical curves."""
        again = calibrator.calibrate(dscon_group(), usd_market_data)

        assert again.curve("USD-DSCON") == dscon_provider.curve("USD-DSCON")

    def test_default_config_converges(self, usd_market_data, dscon_provider):
        """Test default tolerances agree with tight tolerances."""
        provider = CurveCalibrator().calibrate(dscon_group(), usd_market_data)

        np.testing.assert_allclose(
            provider.curve("USD-DSCON").parameters,
            dscon_provider.curve("USD-DSCON").parameters,
            atol=1e-8,
        )

    def test_jacobian_attached(self, dscon_provider):
        """Test the calibrated curve carries a square Jacobian over its own quotes."""
        jacobian = dscon_provider.curve("USD-DSCON").jacobian

        assert jacobian is not None
        assert jacobian.curve_names == ("USD-DSCON",)
        assert jacobian.quote_ids == tuple(DSCON_QUOTES)
        assert jacobian.matrix.shape == (9, 9)

    def test_jacobian_is_read_only(self, dscon_provider):
        """Test the stored Jacobian cannot be modified in place."""
        jacobian = dscon_provider.curve("USD-DSCON").jacobian

        with pytest.raises(ValueError):
            jacobian.matrix[0, 0] = 1.0

    def test_short_end_depends_only_on_short_quotes(self, dscon_provider):
        """Test the first node only moves with the first deposit quote."""
        matrix = dscon_provider.curve("USD-DSCON").jacobian.matrix

        assert abs(matrix[0, 0]) > 0.5
        np.testing.assert_allclose(matrix[0, 1:], 0.0, atol=1e-12)

    def test_present_value_measure(self, usd_market_data, dscon_provider):
        """Test calibrating to present value gives the same curve as par spread."""
        calibrator = CurveCalibrator(TIGHT_CONFIG, CalibrationMeasures.present_value())
        provider = calibrator.calibrate(dscon_group(), usd_market_data)

        np.testing.assert_allclose(
            provider.curve("USD-DSCON").parameters,
            dscon_provider.curve("USD-DSCON").parameters,
            atol=1e-10,
        )

    def test_present_value_measure_same_quote_jacobian(self, usd_market_data, dscon_provider):
        """Test the quote Jacobian does not depend on the calibration measure."""
        calibrator = CurveCalibrator(TIGHT_CONFIG, CalibrationMeasures.present_value())
        provider = calibrator.calibrate(dscon_group(), usd_market_data)

        np.testing.assert_allclose(
            provider.curve("USD-DSCON").jacobian.matrix,
            dscon_provider.curve("USD-DSCON").jacobian.matrix,
            atol=1e-7,
        )


class TestDiagnostics:
    """Tests for calibration diagnostics."""

    def test_group_diagnostics(self, calibrator, usd_market_data):
        """Test per-group residuals, iterations and Jacobian are reported."""
        result = calibrator.calibrate_with_diagnostics(
            [dscon_group(), libor3m_group()], usd_market_data
        )
        dscon = result.group("USD-DSCON-GROUP")

        assert dscon.curve_names == ("USD-DSCON",)
        assert dscon.iterations >= 1
        assert list(dscon.residuals.index) == list(DSCON_QUOTES)
        assert dscon.max_residual < 1e-12
        assert dscon.jacobian.shape == (9, 9)

    def test_diagnostics_frame(self, calibrator, usd_market_data):
        """Test the diagnostics frame has one row per group."""
        result = calibrator.calibrate_with_diagnostics(
            [dscon_group(), libor3m_group()], usd_market_data
        )
        frame = result.to_frame()

        assert list(frame["group"]) == ["USD-DSCON-GROUP", "USD-LIBOR3M-GROUP"]
        assert list(frame["nodes"]) == [9, 6]
        assert set(frame.columns) == {"group", "curves", "nodes", "iterations", "max_residual"}

    def test_unknown_group(self, calibrator, usd_market_data):
        """Test asking for an unknown group raises KeyError."""
        result = calibrator.calibrate_with_diagnostics(dscon_group(), usd_market_data)

        with pytest.raises(KeyError):
            result.group("NOT-A-GROUP")

    def test_group_logged_at_info(self, calibrator, usd_market_data, caplog):
        """Test a calibrated group is logged at INFO."""
        with caplog.at_level("INFO", logger="curvecal.calibration.calibrator"):
            calibrator.calibrate(dscon_group(), usd_market_data)

        assert any("USD-DSCON-GROUP" in record.getMessage() for record in caplog.records)


class TestSequentialGroups:
    """Tests for calibrating groups in sequence."""

    def test_forward_curve_reprices(self, usd_provider, usd_market_data):
        """Test LIBOR 3M node trades price to zero with OIS discounting."""
        pvs = node_present_values(libor3m_group(), usd_market_data, usd_provider)

        assert pvs.abs().max() < 1e-6

    def test_earlier_group_unchanged(self, usd_provider, dscon_provider):
        """Test a later group does not move the curves of an earlier group."""
        assert usd_provider.curve("USD-DSCON") == dscon_provider.curve("USD-DSCON")

    def test_known_data_matches_sequence(self, calibrator, usd_market_data, dscon_provider, usd_provider):
        """Test known data gives the same result as calibrating the earlier group in sequence."""
        provider = calibrator.calibrate(libor3m_group(), usd_market_data, known_data=dscon_provider)

        np.testing.assert_allclose(
            provider.curve("USD-LIBOR3M").parameters,
            usd_provider.curve("USD-LIBOR3M").parameters,
            atol=1e-14,
        )

    def test_known_curves_are_shared(self, calibrator, usd_market_data, dscon_provider):
        """Test known curves are carried into the result without copying."""
        provider = calibrator.calibrate(libor3m_group(), usd_market_data, known_data=dscon_provider)

        assert provider.curve("USD-DSCON") is dscon_provider.curve("USD-DSCON")

    def test_known_data_not_modified(self, calibrator, usd_market_data, dscon_provider):
        """Test the known data provider is left as it was."""
        calibrator.calibrate(libor3m_group(), usd_market_data, known_data=dscon_provider)

        assert dscon_provider.curve_names == ("USD-DSCON",)

    def test_forward_curve_jacobian_chains_to_discount_quotes(self, usd_provider):
        """Test the LIBOR curve Jacobian covers its own quotes then the OIS quotes."""
        jacobian = usd_provider.curve("USD-LIBOR3M").jacobian

        assert jacobian.curve_names == ("USD-LIBOR3M", "USD-DSCON")
        assert jacobian.quote_ids == tuple(LIBOR3M_QUOTES) + tuple(DSCON_QUOTES)
        assert jacobian.matrix.shape == (6, 15)

    def test_staged_and_joint_curves_agree(self, calibrator, usd_market_data, usd_provider):
        """Test one joint group reproduces the curves of two sequential groups."""
        joint = calibrator.calibrate(dscon_group().combined_with(libor3m_group()), usd_market_data)

        for name in ("USD-DSCON", "USD-LIBOR3M"):
            np.testing.assert_allclose(
                joint.curve(name).parameters, usd_provider.curve(name).parameters, atol=1e-10
            )

    def test_staged_and_joint_jacobians_agree(self, calibrator, usd_market_data, usd_provider):
        """Test the joint and staged calibration Jacobians agree quote by quote."""
        joint = calibrator.calibrate(dscon_group().combined_with(libor3m_group()), usd_market_data)

        staged_frame = usd_provider.curve("USD-LIBOR3M").jacobian.to_frame()
        joint_frame = joint.curve("USD-LIBOR3M").jacobian.to_frame()
        staged_frame.columns = staged_frame.columns.get_level_values(-1)
        joint_frame.columns = joint_frame.columns.get_level_values(-1)

        np.testing.assert_allclose(
            joint_frame[staged_frame.columns].values, staged_frame.values, atol=1e-8
        )

    def test_three_group_chain(self, calibrator, usd_market_data):
        """Test a basis-swap group on top of OIS and LIBOR 3M reprices."""
        groups = [dscon_group(), libor3m_group(), libor6m_group()]
        provider = calibrator.calibrate(groups, usd_market_data)

        pvs = node_present_values(libor6m_group(), usd_market_data, provider)
        assert pvs.abs().max() < 1e-6
        curve_names = provider.curve("USD-LIBOR6M").jacobian.curve_names
        assert curve_names[0] == "USD-LIBOR6M"
        assert set(curve_names[1:]) == {"USD-DSCON", "USD-LIBOR3M"}


class TestCrossCurrency:
    """Tests for EUR curves calibrated from FX swaps and cross-currency swaps."""

    @pytest.fixture
    def eur_provider(self, calibrator, eur_usd_market_data, usd_provider):
        """EUR group calibrated on top of the USD curves."""
        return calibrator.calibrate(eur_group(), eur_usd_market_data, known_data=usd_provider)

    def test_eur_nodes_reprice(self, eur_provider, eur_usd_market_data):
        """Test FX swap, cross-currency and EUR swap nodes all price to zero."""
        pvs = node_present_values(eur_group(), eur_usd_market_data, eur_provider)

        assert list(pvs.index) == list(EUR_QUOTES)
        assert pvs.abs().max() < 1e-6

    def test_eur_discount_curve(self, eur_provider):
        """Test the EUR discount curve holds decreasing discount factors."""
        curve = eur_provider.discount_curve("EUR")

        assert curve.name == "EUR-DSC"
        assert curve.value_type == CurveValueType.DISCOUNT_FACTOR
        assert np.all(np.diff(curve.parameters) < 0)
        assert np.all((curve.parameters > 0.8) & (curve.parameters < 1.0))

    def test_eur_discounts_less_than_usd(self, eur_provider):
        """Test positive forward points imply higher EUR than USD discount factors."""
        maturity = date(2016, 7, 25)

        assert eur_provider.discount_factor("EUR", maturity) > eur_provider.discount_factor("USD", maturity)

    def test_eur_jacobian_reaches_usd_quotes(self, eur_provider):
        """Test the EUR discount Jacobian chains through both USD groups."""
        jacobian = eur_provider.curve("EUR-DSC").jacobian

        assert jacobian.curve_names[:2] == ("EUR-DSC", "EUR-EURIBOR3M")
        assert set(jacobian.curve_names[2:]) == {"USD-DSCON", "USD-LIBOR3M"}

    def test_missing_fx_rate(self, calibrator, usd_market_data, usd_provider):
        """Test a missing spot rate is reported as missing market data."""
        quotes = dict(usd_market_data.quotes)
        quotes.update(EUR_QUOTES)
        market_data = MarketData(VALUATION_DATE, quotes)

        with pytest.raises(MissingMarketDataError, match="EUR"):
            calibrator.calibrate(eur_group(), market_data, known_data=usd_provider)


class TestOtherNodeTypes:
    """Tests for futures and zero-rate nodes."""

    def test_futures_curve(self, calibrator):
        """Test a forward curve from futures prices reproduces the futures."""
        quotes = {"FUT-1": 0.9550, "FUT-2": 0.9540, "FUT-3": 0.9525, "FUT-4": 0.9510}
        nodes = [
            IborFutureNode(quote_id, index=USD_LIBOR_3M, period_to_start=start)
            for quote_id, start in zip(quotes, ("3M", "6M", "9M", "12M"))
        ]
        group = CurveGroupDefinition("FUTURES").add_forward_curve(
            CurveDefinition("USD-LIBOR3M-FUT", nodes), USD_LIBOR_3M
        )
        market_data = MarketData(VALUATION_DATE, quotes)
        provider = calibrator.calibrate(group, market_data)

        pricer = IborFuturePricer()
        for node in nodes:
            trade = node.resolved_trade(1.0, market_data)
            assert isinstance(trade, ResolvedIborFutureTrade)
            assert abs(pricer.price(trade, provider) - quotes[node.quote_id]) < 1e-12

    def test_zero_rate_curve(self, calibrator):
        """Test zero-rate nodes calibrate to parameters equal to the quotes."""
        quotes = {"Z-1Y": 0.03, "Z-2Y": 0.035, "Z-5Y": 0.04}
        nodes = [ZeroRateNode(q, currency="USD", tenor=q[2:]) for q in quotes]
        group = CurveGroupDefinition("ZEROS").add_discount_curve(CurveDefinition("USD-ZERO", nodes), "USD")
        provider = calibrator.calibrate(group, MarketData(VALUATION_DATE, quotes))

        np.testing.assert_allclose(provider.curve("USD-ZERO").parameters, list(quotes.values()), atol=1e-14)
        np.testing.assert_allclose(provider.curve("USD-ZERO").jacobian.matrix, np.eye(3), atol=1e-8)

    def test_measure_override(self, calibrator):
        """Test a per trade type override selects the present value measure for futures."""
        measures = CalibrationMeasures(
            MeasureKind.PAR_SPREAD, {ResolvedIborFutureTrade: MeasureKind.PRESENT_VALUE}
        )
        quotes = {"FUT-1": 0.9550, "FUT-2": 0.9540}
        nodes = [
            IborFutureNode("FUT-1", index=USD_LIBOR_3M, period_to_start="3M"),
            IborFutureNode("FUT-2", index=USD_LIBOR_3M, period_to_start="6M"),
        ]
        group = CurveGroupDefinition("FUTURES").add_forward_curve(
            CurveDefinition("USD-LIBOR3M-FUT", nodes), USD_LIBOR_3M
        )
        provider = CurveCalibrator(TIGHT_CONFIG, measures).calibrate(group, MarketData(VALUATION_DATE, quotes))

        trade = nodes[0].resolved_trade(1.0, MarketData(VALUATION_DATE, quotes))
        assert abs(IborFuturePricer().present_value(trade, provider)) < 1e-12

    def test_unsupported_measure(self, calibrator):
        """Test a measure kind with no entry for the trade type is a configuration error."""
        calibrator = CurveCalibrator(TIGHT_CONFIG, CalibrationMeasures(MeasureKind.ZERO_RATE))

        with pytest.raises(CalibrationConfigError, match="ZERO_RATE"):
            calibrator.calibrate(dscon_group(), MarketData(VALUATION_DATE, {
                quote_id: rate for quote_id, (_, rate) in DSCON_QUOTES.items()
            }))


class TestCalibrationErrors:
    """Tests for configuration, market data and numerical failures."""

    @pytest.fixture
    def no_newton(self, monkeypatch):
        """Fail the test if the root finder is ever invoked."""
        def solve(*args, **kwargs):
            raise AssertionError("Newton solver must not run")
        monkeypatch.setattr(NewtonRaphsonSolver, "solve", solve)

    def test_missing_discount_curve(self, calibrator, usd_market_data, no_newton):
        """Test a forward group without a USD discount curve fails before iterating."""
        with pytest.raises(MissingCurveError, match="USD"):
            calibrator.calibrate(libor3m_group(), usd_market_data)

    def test_missing_forward_curve(self, calibrator, usd_market_data, dscon_provider, no_newton):
        """Test basis swaps without a LIBOR 3M curve fail before iterating."""
        with pytest.raises(MissingCurveError, match="USD-LIBOR-3M"):
            calibrator.calibrate(libor6m_group(), usd_market_data, known_data=dscon_provider)

    def test_missing_curve_is_config_error(self, calibrator, usd_market_data, no_newton):
        """Test a missing curve is reported through the configuration error family."""
        with pytest.raises(CalibrationConfigError):
            calibrator.calibrate(libor3m_group(), usd_market_data)

    def test_missing_quote(self, calibrator, usd_market_data, no_newton):
        """Test a node without a quote fails before iterating."""
        quotes = dict(usd_market_data.quotes)
        del quotes["USD-OIS-10Y"]

        with pytest.raises(MissingMarketDataError, match="USD-OIS-10Y") as err:
            calibrator.calibrate(dscon_group(), MarketData(VALUATION_DATE, quotes))

        assert "USD-DSCON-GROUP" in str(err.value)
        assert "curve USD-DSCON" in str(err.value)

    def test_duplicate_curve_across_groups(self, calibrator, usd_market_data):
        """Test re-declaring a calibrated curve in a later group is a configuration error."""
        with pytest.raises(CalibrationConfigError, match="USD-DSCON"):
            calibrator.calibrate([dscon_group(), dscon_group()], usd_market_data)

    def test_known_data_date_mismatch(self, calibrator, usd_market_data):
        """Test known data at another valuation date is rejected."""
        known = RatesProvider.empty(date(2015, 7, 20))

        with pytest.raises(CalibrationConfigError, match="valuation date"):
            calibrator.calibrate(dscon_group(), usd_market_data, known_data=known)

    def test_iteration_limit(self, usd_market_data):
        """Test an exhausted iteration budget raises CalibrationFailedError."""
        config = CalibratorConfig(absolute_tolerance=1e-14, relative_tolerance=1e-14, max_iterations=1)

        with pytest.raises(CalibrationFailedError) as info:
            CurveCalibrator(config).calibrate(dscon_group(), usd_market_data)

        assert info.value.group == "USD-DSCON-GROUP"
        assert info.value.reason == "IterationLimit"
        assert info.value.iterations == 1
        assert info.value.max_residual > 0


class TestCalibratorConfig:
    """Tests for calibrator settings."""

    def test_defaults(self):
        """Test the default settings."""
        config = CalibratorConfig()

        assert config.absolute_tolerance == 1e-9
        assert config.relative_tolerance == 1e-9
        assert config.max_iterations == 100

    def test_from_dict(self):
        """Test building settings from a plain mapping."""
        config = CalibratorConfig.from_dict({"absolute_tolerance": 1e-12, "max_iterations": 20})

        assert config.absolute_tolerance == 1e-12
        assert config.max_iterations == 20
        assert config.relative_tolerance == 1e-9

    def test_from_dict_unknown_key(self):
        """Test unknown settings are rejected."""
        with pytest.raises(CalibrationConfigError, match="tolerance"):
            CalibratorConfig.from_dict({"tolerance": 1e-9})

    def test_invalid_values(self):
        """Test invalid settings raise CalibrationConfigError."""
        with pytest.raises(CalibrationConfigError):
            CalibratorConfig(max_iterations=0)
        with pytest.raises(CalibrationConfigError):
            CalibratorConfig(absolute_tolerance=-1.0)
        with pytest.raises(CalibrationConfigError, match="max_damping_steps"):
            CalibratorConfig(max_damping_steps=-1)
        with pytest.raises(CalibrationConfigError, match="max_condition_number"):
            CalibratorConfig(max_condition_number=0.5)

    def test_of(self):
        """Test the shorthand constructor."""
        calibrator = CurveCalibrator.of(1e-10, 1e-11, 50)

        assert calibrator.config.absolute_tolerance == 1e-10
        assert calibrator.config.relative_tolerance == 1e-11
        assert calibrator.config.max_iterations == 50
        assert calibrator.measures.kind == MeasureKind.PAR_SPREAD

    def test_solver_settings(self):
        """Test the config builds a solver with the same settings."""
        solver = CalibratorConfig(max_damping_steps=3, max_condition_number=1e10).solver()

        assert solver.max_damping_steps == 3
        assert solver.max_condition_number == 1e10
