"""
Residual function of a curve group.

Given a candidate parameter vector for the group, the residual function
unflattens it into curves, swaps them into the base provider (earlier groups
and known data stay fixed) and evaluates the calibration measure of every
node trade. A fresh provider is built on every call; nothing is mutated.

The Jacobian row of node i is the measure gradient of trade i gathered over
the bundle parameters. The same gradient gathered over the parameters of
earlier curves gives the cross-group block used by the chain rule.
"""

from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

from ..errors import CalibrationConfigError
from ..instruments.nodes import CalibrationNode
from ..instruments.trades import ResolvedTrade
from ..market_data import MarketData
from ..market_state import RatesProvider
from .bundle import ParameterBundle
from .measures import CalibrationMeasures


@dataclass(frozen=True)
class CalibrationTarget:
    """A calibration node, the curve it belongs to and its resolved trade."""
    curve_name: str
    node: CalibrationNode
    trade: ResolvedTrade
    
    @property
    def quote_id(self) -> str:
        return self.node.quote_id


class CalibrationResiduals:
    """
    Vector-valued residual function r(x) of one curve group.
    
    Args:
        targets: One target per bundle parameter, in bundle order
        bundle: Parameter bundle of the group curves
        base_provider: Provider containing the group curves (at any parameters)
            together with all fixed curves
        measures: Measure selection
    """
    
    def __init__(
        self,
        targets: Sequence[CalibrationTarget],
        bundle: ParameterBundle,
        base_provider: RatesProvider,
        measures: CalibrationMeasures
    ):
        self.targets = tuple(targets)
        if len(self.targets) != len(bundle):
            raise CalibrationConfigError(
                f"{len(self.targets)} calibration nodes for {len(bundle)} curve parameters"
            )
        self.bundle = bundle
        self.base_provider = base_provider
        self.measures = measures
    
    def provider_for(self, x: np.ndarray) -> RatesProvider:
        """Provider with the group curves set to the parameters in x."""
        return self.base_provider.with_curves(self.bundle.unflatten(x))
    
    def residuals(self, provider: RatesProvider) -> np.ndarray:
        return np.array([
            self.measures.value(target.trade, provider) for target in self.targets
        ], dtype=np.float64)
    
    def jacobian_at(self, provider: RatesProvider) -> np.ndarray:
        """d(residual)/d(bundle parameters), one row per node."""
        n = len(self.targets)
        jacobian = np.zeros((n, len(self.bundle)))
        for i, target in enumerate(self.targets):
            jacobian[i] = self.bundle.gather(self.measures.sensitivity(target.trade, provider))
        return jacobian
    
    def prior_jacobian(self, provider: RatesProvider, prior: ParameterBundle) -> np.ndarray:
        """d(residual)/d(parameters of fixed curves from earlier groups)."""
        jacobian = np.zeros((len(self.targets), len(prior)))
        for i, target in enumerate(self.targets):
            jacobian[i] = prior.gather(self.measures.sensitivity(target.trade, provider))
        return jacobian
    
    def sensitivity_curve_names(self, provider: RatesProvider) -> Tuple[str, ...]:
        """Curves that any node measure is sensitive to, in first-seen order."""
        names = []
        for target in self.targets:
            for name, _ in self.measures.sensitivity(target.trade, provider).items():
                if name not in names:
                    names.append(name)
        return tuple(names)
    
    def __call__(self, x: np.ndarray) -> np.ndarray:
        return self.residuals(self.provider_for(x))
    
    def jacobian(self, x: np.ndarray) -> np.ndarray:
        return self.jacobian_at(self.provider_for(x))
    
    def evaluate(self, x: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Residuals and Jacobian from a single provider."""
        provider = self.provider_for(x)
        return self.residuals(provider), self.jacobian_at(provider)


def quote_derivatives(
    targets: Sequence[CalibrationTarget],
    market_data: MarketData,
    provider: RatesProvider,
    measures: CalibrationMeasures,
    notional: float = 1.0,
    shift: float = 1e-4
) -> np.ndarray:
    """
    d(residual_i)/d(quote_i) at fixed curves.
    
    Each node trade is re-resolved with its quote shifted up and down and the
    measure differenced centrally. The instruments are linear in their quote,
    so the difference is exact up to rounding.
    """
    derivatives = np.zeros(len(targets))
    for i, target in enumerate(targets):
        up = target.node.resolved_trade(notional, market_data.with_shifted_quote(target.quote_id, shift))
        down = target.node.resolved_trade(notional, market_data.with_shifted_quote(target.quote_id, -shift))
        derivatives[i] = (measures.value(up, provider) - measures.value(down, provider)) / (2 * shift)
    return derivatives


__all__ = [
    "CalibrationTarget",
    "CalibrationResiduals",
    "quote_derivatives",
]
