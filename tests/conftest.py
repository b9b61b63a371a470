"""
Shared market data and curve group fixtures for the calibration tests.
"""

from datetime import date

import pytest

from curvecal.calibration import CalibratorConfig, CurveCalibrator
from curvecal.conventions import (
    BusinessDayConvention,
    USD_FED_FUND,
    USD_LIBOR_3M,
    USD_LIBOR_6M,
    EUR_EURIBOR_3M,
    adjust_business_day,
)
from curvecal.curves import CurveDefinition, CurveGroupDefinition, CurveValueType
from curvecal.dates import DateUtils
from curvecal.instruments import (
    EUR_EURIBOR_3M_USD_LIBOR_3M,
    EUR_FIXED_1Y_EURIBOR_3M,
    EUR_USD_FX_SWAP,
    USD_FIXED_1Y_FED_FUND_OIS,
    USD_FIXED_6M_LIBOR_3M,
    USD_LIBOR_3M_LIBOR_6M,
    FixedIborSwapNode,
    FixedOvernightSwapNode,
    FraNode,
    FxSwapNode,
    IborFixingDepositNode,
    IborIborSwapNode,
    TermDepositNode,
    XCcyIborIborSwapNode,
)
from curvecal.market_data import MarketData


VALUATION_DATE = date(2015, 7, 21)

DSCON_QUOTES = {
    "USD-DEP-1M": ("1M", 0.042),
    "USD-DEP-3M": ("3M", 0.043),
    "USD-DEP-6M": ("6M", 0.045),
    "USD-OIS-1Y": ("1Y", 0.047),
    "USD-OIS-2Y": ("2Y", 0.050),
    "USD-OIS-3Y": ("3Y", 0.053),
    "USD-OIS-5Y": ("5Y", 0.056),
    "USD-OIS-7Y": ("7Y", 0.058),
    "USD-OIS-10Y": ("10Y", 0.060),
}

LIBOR3M_QUOTES = {
    "USD-LIBOR-3M-FIX": 0.0440,
    "USD-FRA-3x6": 0.0455,
    "USD-FRA-6x9": 0.0470,
    "USD-IRS3M-2Y": 0.0525,
    "USD-IRS3M-5Y": 0.0585,
    "USD-IRS3M-10Y": 0.0625,
}

LIBOR6M_QUOTES = {
    "USD-LIBOR-6M-FIX": 0.0465,
    "USD-BASIS-2Y": 0.0010,
    "USD-BASIS-5Y": 0.0012,
    "USD-BASIS-10Y": 0.0014,
}

EUR_QUOTES = {
    "EUR-FXSWAP-6M": 0.0083,
    "EUR-FXSWAP-1Y": 0.0166,
    "EUR-XCCY-2Y": -0.0020,
    "EUR-XCCY-3Y": -0.0022,
    "EUR-EURIBOR-3M-FIX": 0.0280,
    "EUR-IRS3M-1Y": 0.0290,
    "EUR-IRS3M-2Y": 0.0310,
    "EUR-IRS3M-3Y": 0.0330,
}

EUR_USD_SPOT = 1.10

# Tolerances tight enough for finite-difference comparisons
TIGHT_CONFIG = CalibratorConfig(absolute_tolerance=1e-14, relative_tolerance=1e-12)


def dscon_group() -> CurveGroupDefinition:
    nodes = []
    for quote_id, (tenor, _) in DSCON_QUOTES.items():
        if quote_id.startswith("USD-DEP"):
            nodes.append(TermDepositNode(quote_id, currency="USD", tenor=tenor))
        else:
            nodes.append(
                FixedOvernightSwapNode(quote_id, tenor=tenor, convention=USD_FIXED_1Y_FED_FUND_OIS)
            )
    return CurveGroupDefinition("USD-DSCON-GROUP").add_curve(
        CurveDefinition("USD-DSCON", nodes),
        discount_currencies=["USD"],
        indices=[USD_FED_FUND],
    )


def libor3m_group() -> CurveGroupDefinition:
    nodes = [
        IborFixingDepositNode("USD-LIBOR-3M-FIX", index=USD_LIBOR_3M),
        FraNode("USD-FRA-3x6", index=USD_LIBOR_3M, period_to_start="3M"),
        FraNode("USD-FRA-6x9", index=USD_LIBOR_3M, period_to_start="6M"),
        FixedIborSwapNode("USD-IRS3M-2Y", tenor="2Y", convention=USD_FIXED_6M_LIBOR_3M),
        FixedIborSwapNode("USD-IRS3M-5Y", tenor="5Y", convention=USD_FIXED_6M_LIBOR_3M),
        FixedIborSwapNode("USD-IRS3M-10Y", tenor="10Y", convention=USD_FIXED_6M_LIBOR_3M),
    ]
    return CurveGroupDefinition("USD-LIBOR3M-GROUP").add_forward_curve(
        CurveDefinition("USD-LIBOR3M", nodes), USD_LIBOR_3M
    )


def libor6m_group() -> CurveGroupDefinition:
    nodes = [
        IborFixingDepositNode("USD-LIBOR-6M-FIX", index=USD_LIBOR_6M),
        IborIborSwapNode("USD-BASIS-2Y", tenor="2Y", convention=USD_LIBOR_3M_LIBOR_6M),
        IborIborSwapNode("USD-BASIS-5Y", tenor="5Y", convention=USD_LIBOR_3M_LIBOR_6M),
        IborIborSwapNode("USD-BASIS-10Y", tenor="10Y", convention=USD_LIBOR_3M_LIBOR_6M),
    ]
    return CurveGroupDefinition("USD-LIBOR6M-GROUP").add_forward_curve(
        CurveDefinition("USD-LIBOR6M", nodes), USD_LIBOR_6M
    )


def eur_group() -> CurveGroupDefinition:
    discount_nodes = [
        FxSwapNode("EUR-FXSWAP-6M", convention=EUR_USD_FX_SWAP, tenor="6M"),
        FxSwapNode("EUR-FXSWAP-1Y", convention=EUR_USD_FX_SWAP, tenor="1Y"),
        XCcyIborIborSwapNode("EUR-XCCY-2Y", tenor="2Y", convention=EUR_EURIBOR_3M_USD_LIBOR_3M),
        XCcyIborIborSwapNode("EUR-XCCY-3Y", tenor="3Y", convention=EUR_EURIBOR_3M_USD_LIBOR_3M),
    ]
    forward_nodes = [
        IborFixingDepositNode("EUR-EURIBOR-3M-FIX", index=EUR_EURIBOR_3M),
        FixedIborSwapNode("EUR-IRS3M-1Y", tenor="1Y", convention=EUR_FIXED_1Y_EURIBOR_3M),
        FixedIborSwapNode("EUR-IRS3M-2Y", tenor="2Y", convention=EUR_FIXED_1Y_EURIBOR_3M),
        FixedIborSwapNode("EUR-IRS3M-3Y", tenor="3Y", convention=EUR_FIXED_1Y_EURIBOR_3M),
    ]
    return (
        CurveGroupDefinition("EUR-GROUP")
        .add_discount_curve(
            CurveDefinition(
                "EUR-DSC",
                discount_nodes,
                value_type=CurveValueType.DISCOUNT_FACTOR,
                interpolation_method="log_linear",
            ),
            "EUR",
        )
        .add_forward_curve(CurveDefinition("EUR-EURIBOR3M", forward_nodes), EUR_EURIBOR_3M)
    )


def forward_start_ois(notional: float = 1e8, rate: float = 0.05):
    """7Y OIS starting 6M after spot, receiving fixed."""
    spot = DateUtils.add_tenor(VALUATION_DATE, "2D")
    start = adjust_business_day(
        DateUtils.add_tenor(spot, "6M"), BusinessDayConvention.MODIFIED_FOLLOWING
    )
    end = DateUtils.add_tenor(start, "7Y")
    return USD_FIXED_1Y_FED_FUND_OIS.create_trade(start, end, notional, rate)


def irs_3m(tenor: str = "7Y", notional: float = 1e8, rate: float = 0.058):
    """Spot starting fixed vs LIBOR 3M swap."""
    start = DateUtils.add_tenor(VALUATION_DATE, "2D")
    return USD_FIXED_6M_LIBOR_3M.create_trade(start, DateUtils.add_tenor(start, tenor), notional, rate)


@pytest.fixture
def valuation_date():
    return VALUATION_DATE


@pytest.fixture
def usd_market_data():
    """USD deposits, OIS, FRAs, IRS and basis swaps."""
    quotes = {quote_id: rate for quote_id, (_, rate) in DSCON_QUOTES.items()}
    quotes.update(LIBOR3M_QUOTES)
    quotes.update(LIBOR6M_QUOTES)
    return MarketData(VALUATION_DATE, quotes)


@pytest.fixture
def eur_usd_market_data(usd_market_data):
    """USD quotes plus EUR quotes and the EUR/USD spot rate."""
    quotes = dict(usd_market_data.quotes)
    quotes.update(EUR_QUOTES)
    return MarketData(VALUATION_DATE, quotes, fx_rates={("EUR", "USD"): EUR_USD_SPOT})


@pytest.fixture
def calibrator():
    return CurveCalibrator(TIGHT_CONFIG)


@pytest.fixture
def dscon_provider(calibrator, usd_market_data):
    """Provider with the calibrated 9-node USD-DSCON curve."""
    return calibrator.calibrate(dscon_group(), usd_market_data)


@pytest.fixture
def usd_provider(calibrator, usd_market_data):
    """Provider with USD-DSCON and USD-LIBOR3M calibrated in two groups."""
    return calibrator.calibrate([dscon_group(), libor3m_group()], usd_market_data)
