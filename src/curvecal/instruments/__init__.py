"""
Instruments package - calibration nodes, trade conventions and resolved trades.
"""

from .trades import (
    CurveZeroRateTrade,
    FixedPayment,
    FloatingPayment,
    ResolvedIborFutureTrade,
    ResolvedSwapLeg,
    ResolvedSwapTrade,
)
from .conventions import (
    FixedIborSwapConvention,
    FixedOvernightSwapConvention,
    FxSwapConvention,
    IborIborSwapConvention,
    XCcyIborIborSwapConvention,
    EUR_EURIBOR_3M_USD_LIBOR_3M,
    EUR_FIXED_1Y_EURIBOR_3M,
    EUR_USD_FX_SWAP,
    USD_FIXED_1Y_FED_FUND_OIS,
    USD_FIXED_6M_LIBOR_3M,
    USD_LIBOR_3M_LIBOR_6M,
)
from .nodes import (
    CalibrationNode,
    FixedIborSwapNode,
    FixedOvernightSwapNode,
    FraNode,
    FxSwapNode,
    IborFixingDepositNode,
    IborFutureNode,
    IborIborSwapNode,
    TermDepositNode,
    XCcyIborIborSwapNode,
    ZeroRateNode,
)

__all__ = [
    "CurveZeroRateTrade",
    "FixedPayment",
    "FloatingPayment",
    "ResolvedIborFutureTrade",
    "ResolvedSwapLeg",
    "ResolvedSwapTrade",
    "FixedIborSwapConvention",
    "FixedOvernightSwapConvention",
    "FxSwapConvention",
    "IborIborSwapConvention",
    "XCcyIborIborSwapConvention",
    "EUR_EURIBOR_3M_USD_LIBOR_3M",
    "EUR_FIXED_1Y_EURIBOR_3M",
    "EUR_USD_FX_SWAP",
    "USD_FIXED_1Y_FED_FUND_OIS",
    "USD_FIXED_6M_LIBOR_3M",
    "USD_LIBOR_3M_LIBOR_6M",
    "CalibrationNode",
    "FixedIborSwapNode",
    "FixedOvernightSwapNode",
    "FraNode",
    "FxSwapNode",
    "IborFixingDepositNode",
    "IborFutureNode",
    "IborIborSwapNode",
    "TermDepositNode",
    "XCcyIborIborSwapNode",
    "ZeroRateNode",
]
