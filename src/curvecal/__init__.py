"""
CurveCal: Multi-Curve Calibration & Market-Quote Risk Library

A modular library for:
- Calibrating discount and forward curves jointly to market quotes
  (deposits, FRAs, futures, OIS, IRS, basis swaps, FX swaps, cross-currency swaps)
- Chaining curve groups, with earlier groups as fixed inputs of later ones
- Pricing linear rates trades against the calibrated curves
- Market-quote sensitivities via the implicit function theorem, without recalibration
"""

import logging

__version__ = "0.1.0"

# Core modules
from .conventions import DayCount, BusinessDayConvention, IborIndex, OvernightIndex, year_fraction
from .dates import DateUtils, ScheduleInfo
from .errors import (
    CalibrationError,
    CalibrationConfigError,
    CalibrationFailedError,
    MissingCurveError,
    MissingMarketDataError,
)
from .market_data import MarketData
from .market_state import RatesProvider
from .parameter_sensitivity import CurveSensitivities

# Curves
from .curves import (
    Curve,
    CurveValueType,
    CurveDefinition,
    CurveGroupDefinition,
)

# Pricers
from .pricers import DiscountingSwapPricer, IborFuturePricer

# Calibration
from .calibration import (
    CalibrationMeasures,
    CalibratorConfig,
    CurveCalibrator,
    MeasureKind,
    NewtonRaphsonSolver,
    ParameterBundle,
)

# Risk
from .risk import MarketQuoteSensitivityCalculator, MarketQuoteSensitivities, QuoteBumpEngine

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "__version__",
    "DayCount",
    "BusinessDayConvention",
    "IborIndex",
    "OvernightIndex",
    "year_fraction",
    "DateUtils",
    "ScheduleInfo",
    "CalibrationError",
    "CalibrationConfigError",
    "CalibrationFailedError",
    "MissingCurveError",
    "MissingMarketDataError",
    "MarketData",
    "RatesProvider",
    "CurveSensitivities",
    "Curve",
    "CurveValueType",
    "CurveDefinition",
    "CurveGroupDefinition",
    "DiscountingSwapPricer",
    "IborFuturePricer",
    "CalibrationMeasures",
    "CalibratorConfig",
    "CurveCalibrator",
    "MeasureKind",
    "NewtonRaphsonSolver",
    "ParameterBundle",
    "MarketQuoteSensitivityCalculator",
    "MarketQuoteSensitivities",
    "QuoteBumpEngine",
]
