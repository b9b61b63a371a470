"""
Curve calibrator: sequential calibration of curve groups.

For each group, in the order given:
1. Build the initial curves from the node guesses and merge them with the
   provider accumulated so far (known data plus earlier groups)
2. Resolve every node trade against the market data and check that every
   curve, FX rate and quote it needs is available, before any iteration
3. Solve the group residuals for the group parameters with Newton
4. Attach the calibration Jacobian to each curve and carry the provider on

Earlier groups are fixed inputs of later ones. Dependencies between groups
are not analysed: a node that needs a curve from a later group fails the
availability check.

Example:
    >>> calibrator = CurveCalibrator.of(1e-9, 1e-9, 100)
    >>> provider = calibrator.calibrate([ois_group, libor_group], market_data)
"""

from dataclasses import dataclass, fields
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import logging

import numpy as np
import pandas as pd

from ..curves.definitions import CurveGroupDefinition
from ..errors import (
    CalibrationConfigError,
    CalibrationFailedError,
    MissingCurveError,
    MissingMarketDataError,
)
from ..instruments.trades import ResolvedSwapTrade
from ..market_data import MarketData
from ..market_state import RatesProvider
from .bundle import ParameterBundle
from .jacobian import JacobianCalibrationMatrix, calibration_jacobians
from .measures import CalibrationMeasures
from .residuals import CalibrationResiduals, CalibrationTarget, quote_derivatives
from .solver import Converged, NewtonRaphsonSolver

logger = logging.getLogger(__name__)

# Calibration trades are resolved with unit notional
CALIBRATION_NOTIONAL = 1.0


@dataclass(frozen=True)
class CalibratorConfig:
    """
    Calibrator settings.
    
    Attributes:
        absolute_tolerance: Root finder threshold on the largest residual
        relative_tolerance: Root finder threshold on the relative step size
        max_iterations: Newton iteration cap per group
        max_damping_steps: Step halvings allowed per iteration
        max_condition_number: Jacobian condition number treated as singular
        quote_shift: Quote shift for the residual-to-quote derivatives
    """
    absolute_tolerance: float = 1e-9
    relative_tolerance: float = 1e-9
    max_iterations: int = 100
    max_damping_steps: int = 8
    max_condition_number: float = 1e14
    quote_shift: float = 1e-4
    
    def __post_init__(self):
        if self.absolute_tolerance <= 0 or self.relative_tolerance < 0:
            raise CalibrationConfigError("Tolerances must be positive")
        if self.max_iterations < 1:
            raise CalibrationConfigError("max_iterations must be at least 1")
        if self.max_damping_steps < 0:
            raise CalibrationConfigError("max_damping_steps must not be negative")
        if not self.max_condition_number > 1:
            raise CalibrationConfigError("max_condition_number must be greater than 1")
        if self.quote_shift <= 0:
            raise CalibrationConfigError("quote_shift must be positive")
    
    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> "CalibratorConfig":
        """
        Build a config from a plain mapping (e.g. parsed YAML or JSON).
        
        Raises:
            CalibrationConfigError: On unknown keys
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise CalibrationConfigError(f"Unknown calibrator settings: {', '.join(unknown)}")
        return cls(**values)
    
    def solver(self) -> NewtonRaphsonSolver:
        return NewtonRaphsonSolver(
            absolute_tolerance=self.absolute_tolerance,
            relative_tolerance=self.relative_tolerance,
            max_iterations=self.max_iterations,
            max_damping_steps=self.max_damping_steps,
            max_condition_number=self.max_condition_number,
        )


@dataclass(frozen=True)
class GroupCalibrationResult:
    """
    Diagnostics of one calibrated group.
    
    Attributes:
        group_name: Name of the group
        curve_names: Curves calibrated in the group
        iterations: Newton iterations used
        residuals: Final residual by quote identifier
        jacobian: d(residual)/d(group parameters) at the solution
    """
    group_name: str
    curve_names: Tuple[str, ...]
    iterations: int
    residuals: pd.Series
    jacobian: np.ndarray
    
    @property
    def max_residual(self) -> float:
        return float(self.residuals.abs().max()) if len(self.residuals) else 0.0


@dataclass(frozen=True)
class CalibrationResult:
    """Calibrated provider together with per-group diagnostics."""
    provider: RatesProvider
    groups: Tuple[GroupCalibrationResult, ...]
    
    def group(self, name: str) -> GroupCalibrationResult:
        for result in self.groups:
            if result.group_name == name:
                return result
        raise KeyError(f"No calibration result for group {name}")
    
    def to_frame(self) -> pd.DataFrame:
        """One row per group: curves, node count, iterations and largest residual."""
        return pd.DataFrame([
            {
                "group": g.group_name,
                "curves": ", ".join(g.curve_names),
                "nodes": len(g.residuals),
                "iterations": g.iterations,
                "max_residual": g.max_residual,
            }
            for g in self.groups
        ])


class CurveCalibrator:
    """
    Calibrates curve groups to market quotes.
    
    Attributes:
        config: Solver and sensitivity settings
        measures: Calibration measure selection
    """
    
    def __init__(
        self,
        config: Optional[CalibratorConfig] = None,
        measures: Optional[CalibrationMeasures] = None
    ):
        self.config = config or CalibratorConfig()
        self.measures = measures or CalibrationMeasures.par_spread()
    
    @classmethod
    def of(
        cls,
        absolute_tolerance: float,
        relative_tolerance: float,
        max_iterations: int,
        measures: Optional[CalibrationMeasures] = None
    ) -> "CurveCalibrator":
        config = CalibratorConfig(
            absolute_tolerance=absolute_tolerance,
            relative_tolerance=relative_tolerance,
            max_iterations=max_iterations,
        )
        return cls(config, measures)
    
    def calibrate(
        self,
        groups: Union[CurveGroupDefinition, Sequence[CurveGroupDefinition]],
        market_data: MarketData,
        known_data: Optional[RatesProvider] = None
    ) -> RatesProvider:
        """
        Calibrate groups in order and return the combined provider.
        
        Args:
            groups: One group or an ordered sequence of groups
            market_data: Quotes, FX rates and fixings
            known_data: Previously calibrated or external curves used as fixed inputs
            
        Returns:
            Provider with the known data and every calibrated curve
            
        Raises:
            CalibrationConfigError: Missing curve, duplicate curve, inconsistent input
            MissingMarketDataError: Missing quote or FX rate
            CalibrationFailedError: A group did not converge
        """
        return self.calibrate_with_diagnostics(groups, market_data, known_data).provider
    
    def calibrate_with_diagnostics(
        self,
        groups: Union[CurveGroupDefinition, Sequence[CurveGroupDefinition]],
        market_data: MarketData,
        known_data: Optional[RatesProvider] = None
    ) -> CalibrationResult:
        """Same as calibrate, also returning per-group diagnostics."""
        if isinstance(groups, CurveGroupDefinition):
            groups = [groups]
        valuation_date = market_data.valuation_date
        if known_data is not None and known_data.valuation_date != valuation_date:
            raise CalibrationConfigError(
                f"Known data valuation date {known_data.valuation_date} differs "
                f"from market data {valuation_date}"
            )
        
        provider = known_data or RatesProvider.empty(valuation_date)
        provider = provider.with_market_data(market_data.fx_rates, market_data.fixings)
        
        results: List[GroupCalibrationResult] = []
        for group in groups:
            provider, result = self._calibrate_group(group, market_data, provider)
            results.append(result)
        return CalibrationResult(provider, tuple(results))
    
    def _calibrate_group(
        self,
        group: CurveGroupDefinition,
        market_data: MarketData,
        provider: RatesProvider
    ) -> Tuple[RatesProvider, GroupCalibrationResult]:
        valuation_date = market_data.valuation_date
        targets = self._resolve_targets(group, market_data)
        initial_curves = [
            definition.initial_curve(valuation_date, market_data)
            for definition in group.curve_definitions
        ]
        group_provider = RatesProvider(
            valuation_date,
            curves={curve.name: curve for curve in initial_curves},
            discount_curve_names=group.discount_curve_names(),
            index_curve_names=group.index_curve_names(),
        )
        try:
            base = provider.combined_with(group_provider)
        except CalibrationConfigError as err:
            raise CalibrationConfigError(f"Group {group.name}: {err}") from err
        
        self._check_requirements(group, targets, base)
        
        bundle = ParameterBundle(initial_curves)
        residuals = CalibrationResiduals(targets, bundle, base, self.measures)
        result = self.config.solver().solve(
            residuals.evaluate, bundle.flatten(), residual=residuals, name=group.name
        )
        if not isinstance(result, Converged):
            raise CalibrationFailedError(
                f"Calibration of group {group.name} failed: {result.message}",
                group=group.name,
                reason=result.reason.value,
                iterations=result.iterations,
                max_residual=result.max_residual,
            )
        
        calibrated = base.with_curves(bundle.unflatten(result.parameters))
        if len(bundle):
            jacobians = self._jacobians(targets, bundle, residuals, result, market_data, calibrated)
            calibrated = calibrated.with_curves(
                calibrated.curve(name).with_jacobian(jacobians[name]) for name in bundle.names
            )
        
        logger.info(
            "Calibrated group %s (%s) in %d iterations, max residual %.2e",
            group.name, ", ".join(bundle.names), result.iterations, result.max_residual
        )
        diagnostics = GroupCalibrationResult(
            group_name=group.name,
            curve_names=bundle.names,
            iterations=result.iterations,
            residuals=pd.Series(result.residuals, index=[t.quote_id for t in targets], dtype="float64"),
            jacobian=result.jacobian,
        )
        return calibrated, diagnostics
    
    def _resolve_targets(
        self,
        group: CurveGroupDefinition,
        market_data: MarketData
    ) -> List[CalibrationTarget]:
        targets = []
        for definition in group.curve_definitions:
            for node in definition.nodes:
                try:
                    trade = node.resolved_trade(CALIBRATION_NOTIONAL, market_data)
                except MissingMarketDataError as err:
                    raise MissingMarketDataError(
                        f"Group {group.name}, curve {definition.name}, node {node.label}: {err}"
                    ) from err
                targets.append(CalibrationTarget(definition.name, node, trade))
        return targets
    
    def _check_requirements(
        self,
        group: CurveGroupDefinition,
        targets: Sequence[CalibrationTarget],
        provider: RatesProvider
    ) -> None:
        """
        Fail before iterating if a node needs a curve or FX rate that is not available.
        
        Raises:
            MissingCurveError: If a discount or forward curve is missing
            MissingMarketDataError: If an FX rate is missing
        """
        for target in targets:
            context = f"Group {group.name}, curve {target.curve_name}, node {target.quote_id}"
            trade = target.trade
            for currency in sorted(trade.currencies()):
                if not provider.has_discount_curve(currency):
                    raise MissingCurveError(
                        f"{context}: no discount curve for {currency} is available"
                    )
            for index in sorted(trade.indices(), key=str):
                if not provider.has_index_curve(index):
                    raise MissingCurveError(f"{context}: no forward curve for {index} is available")
            self.measures.measure_for(trade)
            if isinstance(trade, ResolvedSwapTrade):
                for currency in trade.currencies():
                    try:
                        provider.fx_rate(currency, trade.quote_currency)
                    except MissingMarketDataError as err:
                        raise MissingMarketDataError(f"{context}: {err}") from err
    
    def _jacobians(
        self,
        targets: Sequence[CalibrationTarget],
        bundle: ParameterBundle,
        residuals: CalibrationResiduals,
        result: Converged,
        market_data: MarketData,
        provider: RatesProvider
    ) -> Dict[str, JacobianCalibrationMatrix]:
        dq = quote_derivatives(
            targets, market_data, provider, self.measures,
            CALIBRATION_NOTIONAL, self.config.quote_shift
        )
        prior_curves = []
        for name in residuals.sensitivity_curve_names(provider):
            if name in bundle.names:
                continue
            curve = provider.curve(name)
            if curve.jacobian is None:
                logger.debug("Curve %s has no calibration Jacobian; treated as fixed", name)
                continue
            prior_curves.append(curve)
        
        prior_jacobian = None
        if prior_curves:
            prior_jacobian = residuals.prior_jacobian(provider, ParameterBundle(prior_curves))
        return calibration_jacobians(bundle, result.jacobian, dq, prior_curves, prior_jacobian)


__all__ = [
    "CALIBRATION_NOTIONAL",
    "CalibratorConfig",
    "GroupCalibrationResult",
    "CalibrationResult",
    "CurveCalibrator",
]
