#!/usr/bin/env python3
"""
Curve calibration demo.

Demonstrates:
1. Building market data (deposits, OIS, FRAs, IRS)
2. Defining an OIS discounting group and a LIBOR 3M forward group
3. Calibrating the groups in sequence with diagnostics
4. Pricing a forward starting swap on the calibrated curves
5. Market-quote sensitivities from the calibration Jacobians
6. Cross-check against bump-and-recalibrate

Usage:
    python scripts/run_calibration_demo.py
    python scripts/run_calibration_demo.py --output-dir output
"""

import sys
import argparse
import logging
from datetime import date
from pathlib import Path

import pandas as pd

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from curvecal import (
    CalibratorConfig,
    CurveCalibrator,
    CurveDefinition,
    CurveGroupDefinition,
    DiscountingSwapPricer,
    MarketData,
    MarketQuoteSensitivityCalculator,
    QuoteBumpEngine,
)
from curvecal.conventions import USD_FED_FUND, USD_LIBOR_3M, BusinessDayConvention, adjust_business_day
from curvecal.dates import DateUtils
from curvecal.instruments import (
    FixedIborSwapNode,
    FixedOvernightSwapNode,
    FraNode,
    IborFixingDepositNode,
    TermDepositNode,
    USD_FIXED_1Y_FED_FUND_OIS,
    USD_FIXED_6M_LIBOR_3M,
)


VALUATION_DATE = date(2015, 7, 21)

OIS_QUOTES = {
    "USD-DEP-1M": ("1M", 0.0420),
    "USD-DEP-3M": ("3M", 0.0430),
    "USD-DEP-6M": ("6M", 0.0450),
    "USD-OIS-1Y": ("1Y", 0.0470),
    "USD-OIS-2Y": ("2Y", 0.0500),
    "USD-OIS-3Y": ("3Y", 0.0530),
    "USD-OIS-5Y": ("5Y", 0.0560),
    "USD-OIS-7Y": ("7Y", 0.0580),
    "USD-OIS-10Y": ("10Y", 0.0600),
}

LIBOR_QUOTES = {
    "USD-LIBOR-3M-FIX": 0.0440,
    "USD-FRA-3x6": 0.0455,
    "USD-FRA-6x9": 0.0470,
    "USD-IRS3M-2Y": 0.0525,
    "USD-IRS3M-5Y": 0.0585,
    "USD-IRS3M-10Y": 0.0625,
}


def build_market_data() -> MarketData:
    """Build the demo market data snapshot."""
    print("\n" + "=" * 60)
    print("1. MARKET DATA")
    print("=" * 60)

    quotes = {quote_id: rate for quote_id, (_, rate) in OIS_QUOTES.items()}
    quotes.update(LIBOR_QUOTES)
    market_data = MarketData(VALUATION_DATE, quotes)

    print(f"\nValuation date: {VALUATION_DATE}")
    print(f"Quotes: {len(market_data.quotes)}")
    for quote_id, value in market_data.quotes.items():
        print(f"  {quote_id:<20} {value * 100:>8.4f}%")
    return market_data


def build_groups():
    """Define the OIS discounting group and the LIBOR 3M group."""
    print("\n" + "=" * 60)
    print("2. CURVE GROUPS")
    print("=" * 60)

    ois_nodes = []
    for quote_id, (tenor, _) in OIS_QUOTES.items():
        if quote_id.startswith("USD-DEP"):
            ois_nodes.append(TermDepositNode(quote_id, currency="USD", tenor=tenor))
        else:
            ois_nodes.append(
                FixedOvernightSwapNode(quote_id, tenor=tenor, convention=USD_FIXED_1Y_FED_FUND_OIS)
            )
    ois_group = CurveGroupDefinition("USD-OIS").add_curve(
        CurveDefinition("USD-DSCON", ois_nodes),
        discount_currencies=["USD"],
        indices=[USD_FED_FUND],
    )

    libor_nodes = [
        IborFixingDepositNode("USD-LIBOR-3M-FIX", index=USD_LIBOR_3M),
        FraNode("USD-FRA-3x6", index=USD_LIBOR_3M, period_to_start="3M"),
        FraNode("USD-FRA-6x9", index=USD_LIBOR_3M, period_to_start="6M"),
        FixedIborSwapNode("USD-IRS3M-2Y", tenor="2Y", convention=USD_FIXED_6M_LIBOR_3M),
        FixedIborSwapNode("USD-IRS3M-5Y", tenor="5Y", convention=USD_FIXED_6M_LIBOR_3M),
        FixedIborSwapNode("USD-IRS3M-10Y", tenor="10Y", convention=USD_FIXED_6M_LIBOR_3M),
    ]
    libor_group = CurveGroupDefinition("USD-LIBOR").add_forward_curve(
        CurveDefinition("USD-LIBOR3M", libor_nodes), USD_LIBOR_3M
    )

    for group in (ois_group, libor_group):
        print(f"\n{group.name}: {', '.join(group.curve_names)} ({group.total_node_count} nodes)")
    return [ois_group, libor_group]


def calibrate(calibrator, groups, market_data):
    """Calibrate the groups and print diagnostics."""
    print("\n" + "=" * 60)
    print("3. CALIBRATION")
    print("=" * 60)

    result = calibrator.calibrate_with_diagnostics(groups, market_data)
    print("\nGroup diagnostics:")
    print(result.to_frame().to_string(index=False))

    for name in result.provider.curve_names:
        print(f"\n{name}:")
        print(result.provider.curve(name).to_frame().to_string(index=False))
    return result


def price_forward_swap(provider):
    """Price a 6M forward starting 7Y OIS."""
    print("\n" + "=" * 60)
    print("4. FORWARD STARTING SWAP")
    print("=" * 60)

    spot = DateUtils.add_tenor(VALUATION_DATE, "2D")
    start = adjust_business_day(
        DateUtils.add_tenor(spot, "6M"), BusinessDayConvention.MODIFIED_FOLLOWING
    )
    end = DateUtils.add_tenor(start, "7Y")
    trade = USD_FIXED_1Y_FED_FUND_OIS.create_trade(start, end, 1e8, 0.05)

    pricer = DiscountingSwapPricer()
    pv = pricer.present_value(trade, provider)
    par = pricer.par_spread(trade, provider)
    print(f"\nStart: {start}  End: {end}  Notional: 100,000,000")
    print(f"PV:         ${pv:>16,.2f}")
    print(f"Par spread: {par * 1e4:>10.4f} bp")
    return trade


def quote_sensitivities(trade, provider, calibrator, groups, market_data):
    """Market-quote sensitivities and a bump-and-recalibrate cross-check."""
    print("\n" + "=" * 60)
    print("5. MARKET-QUOTE SENSITIVITIES")
    print("=" * 60)

    pricer = DiscountingSwapPricer()
    parameter_sens = pricer.present_value_sensitivity(trade, provider)
    analytic = MarketQuoteSensitivityCalculator().sensitivity(parameter_sens, provider)

    engine = QuoteBumpEngine(lambda md: calibrator.calibrate(groups, md), market_data)
    bumped = engine.sensitivities(
        lambda p: pricer.present_value(trade, p), quote_ids=list(analytic)
    )

    table = pd.DataFrame({
        "analytic": analytic.to_series(),
        "bumped": bumped,
    })
    table["difference"] = table["analytic"] - table["bumped"]
    # Per basis point of quote
    print("\nPV01 by quote:")
    print((table * 1e-4).to_string(float_format=lambda v: f"{v:,.2f}"))
    print(f"\nLargest difference: {table['difference'].abs().max():.4g}")
    return table


def main():
    """Run the calibration demo."""
    parser = argparse.ArgumentParser(description="Curve calibration demo")
    parser.add_argument("--output-dir", type=str, default=None, help="Write CSV output here")
    parser.add_argument("--verbose", action="store_true", help="Log solver iterations")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    print("=" * 60)
    print("MULTI-CURVE CALIBRATION DEMO")
    print("=" * 60)

    market_data = build_market_data()
    groups = build_groups()
    calibrator = CurveCalibrator(CalibratorConfig(absolute_tolerance=1e-14, relative_tolerance=1e-12))
    result = calibrate(calibrator, groups, market_data)
    trade = price_forward_swap(result.provider)
    table = quote_sensitivities(trade, result.provider, calibrator, groups, market_data)

    if args.output_dir:
        output_dir = Path(args.output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        result.to_frame().to_csv(output_dir / "calibration_diagnostics.csv", index=False)
        for name in result.provider.curve_names:
            result.provider.curve(name).to_frame().to_csv(output_dir / f"{name}.csv", index=False)
        table.to_csv(output_dir / "market_quote_sensitivities.csv")
        print(f"\nOutput written to {output_dir}")

    print("\n" + "=" * 60)
    print("DEMO COMPLETE")
    print("=" * 60)


if __name__ == "__main__":
    main()
