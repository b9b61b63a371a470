"""
Calibration measures.

A measure turns a resolved trade into the residual the root finder drives to
zero, together with the analytic gradient of that residual with respect to
the curve parameters:
- PAR_SPREAD: shift of the market quote that reprices the trade to zero PV
- PRESENT_VALUE: present value of the trade at its market quote
- ZERO_RATE: model zero rate minus quoted zero rate

Measures are looked up in a table keyed by (measure kind, trade type). A
CalibrationMeasures object selects the kind per trade type and is passed
explicitly to the calibrator.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Callable, Dict, Mapping, NamedTuple, Tuple

from ..errors import CalibrationConfigError
from ..instruments.trades import (
    CurveZeroRateTrade,
    ResolvedIborFutureTrade,
    ResolvedSwapTrade,
    ResolvedTrade,
)
from ..market_state import RatesProvider
from ..parameter_sensitivity import CurveSensitivities
from ..pricers import DiscountingSwapPricer, IborFuturePricer


class MeasureKind(Enum):
    """Residual definition used for calibration."""
    PAR_SPREAD = "ParSpread"
    PRESENT_VALUE = "PresentValue"
    ZERO_RATE = "ZeroRate"


class Measure(NamedTuple):
    """Value function and its curve-parameter gradient."""
    value: Callable[[ResolvedTrade, RatesProvider], float]
    sensitivity: Callable[[ResolvedTrade, RatesProvider], CurveSensitivities]


def _zero_rate_value(trade: CurveZeroRateTrade, provider: RatesProvider) -> float:
    return provider.discount_curve(trade.currency).zero_rate(trade.maturity) - trade.rate


def _zero_rate_sensitivity(trade: CurveZeroRateTrade, provider: RatesProvider) -> CurveSensitivities:
    curve = provider.discount_curve(trade.currency)
    return CurveSensitivities.of(curve.name, curve.zero_rate_sensitivity(trade.maturity))


_SWAP_PRICER = DiscountingSwapPricer()
_FUTURE_PRICER = IborFuturePricer()
_ZERO_RATE = Measure(_zero_rate_value, _zero_rate_sensitivity)

MEASURE_TABLE: Mapping[Tuple[MeasureKind, type], Measure] = MappingProxyType({
    (MeasureKind.PAR_SPREAD, ResolvedSwapTrade): Measure(
        _SWAP_PRICER.par_spread, _SWAP_PRICER.par_spread_sensitivity
    ),
    (MeasureKind.PAR_SPREAD, ResolvedIborFutureTrade): Measure(
        _FUTURE_PRICER.par_spread, _FUTURE_PRICER.par_spread_sensitivity
    ),
    (MeasureKind.PRESENT_VALUE, ResolvedSwapTrade): Measure(
        _SWAP_PRICER.present_value, _SWAP_PRICER.present_value_sensitivity
    ),
    (MeasureKind.PRESENT_VALUE, ResolvedIborFutureTrade): Measure(
        _FUTURE_PRICER.present_value, _FUTURE_PRICER.present_value_sensitivity
    ),
    # A zero rate node is its own par spread and present value
    (MeasureKind.PAR_SPREAD, CurveZeroRateTrade): _ZERO_RATE,
    (MeasureKind.PRESENT_VALUE, CurveZeroRateTrade): _ZERO_RATE,
    (MeasureKind.ZERO_RATE, CurveZeroRateTrade): _ZERO_RATE,
})


@dataclass(frozen=True)
class CalibrationMeasures:
    """
    Choice of measure per trade type.
    
    Attributes:
        kind: Measure kind used for trade types without an override
        overrides: Measure kind by trade type
    
    Example:
        >>> measures = CalibrationMeasures(MeasureKind.PAR_SPREAD,
        ...                                {ResolvedIborFutureTrade: MeasureKind.PRESENT_VALUE})
    """
    kind: MeasureKind = MeasureKind.PAR_SPREAD
    overrides: Mapping[type, MeasureKind] = field(default_factory=dict)
    
    def __post_init__(self):
        object.__setattr__(self, "overrides", MappingProxyType(dict(self.overrides)))
    
    @classmethod
    def par_spread(cls) -> "CalibrationMeasures":
        return cls(MeasureKind.PAR_SPREAD)
    
    @classmethod
    def present_value(cls) -> "CalibrationMeasures":
        return cls(MeasureKind.PRESENT_VALUE)
    
    def kind_for(self, trade: ResolvedTrade) -> MeasureKind:
        return self.overrides.get(type(trade), self.kind)
    
    def measure_for(self, trade: ResolvedTrade) -> Measure:
        """
        Raises:
            CalibrationConfigError: If no measure of the selected kind exists for the trade type
        """
        kind = self.kind_for(trade)
        try:
            return MEASURE_TABLE[(kind, type(trade))]
        except KeyError:
            raise CalibrationConfigError(
                f"Measure {kind.name} is not supported for {type(trade).__name__}"
            ) from None
    
    def value(self, trade: ResolvedTrade, provider: RatesProvider) -> float:
        return self.measure_for(trade).value(trade, provider)
    
    def sensitivity(self, trade: ResolvedTrade, provider: RatesProvider) -> CurveSensitivities:
        return self.measure_for(trade).sensitivity(trade, provider)


__all__ = [
    "MeasureKind",
    "Measure",
    "MEASURE_TABLE",
    "CalibrationMeasures",
]
