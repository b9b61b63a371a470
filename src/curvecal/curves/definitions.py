"""
Declarative curve and curve group definitions.

A CurveDefinition lists the calibration nodes of one curve; the node order
fixes the order of the curve parameters. A CurveGroupDefinition lists the
curves calibrated jointly and, for each, the currencies it discounts and the
indices it projects.

Definitions are immutable; the add_* builders return new groups.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, FrozenSet, Iterable, Optional, Sequence, Tuple, Union

import numpy as np

from ..conventions import DayCount, RateIndex, year_fraction
from ..errors import CalibrationConfigError
from ..instruments.nodes import CalibrationNode
from ..market_data import MarketData
from .curve import Curve, CurveValueType


@dataclass(frozen=True)
class CurveDefinition:
    """
    Definition of a curve to calibrate.
    
    Attributes:
        name: Unique curve name
        nodes: Calibration nodes, one per curve parameter
        value_type: Zero rates or discount factors
        day_count: Day count for curve time
        interpolation_method: "linear", "cubic_spline" or "log_linear"
    """
    name: str
    nodes: Tuple[CalibrationNode, ...]
    value_type: CurveValueType = CurveValueType.ZERO_RATE
    day_count: DayCount = DayCount.ACT_365
    interpolation_method: str = "linear"
    
    def __post_init__(self):
        object.__setattr__(self, "nodes", tuple(self.nodes))
        if not self.nodes:
            raise CalibrationConfigError(f"Curve {self.name} has no calibration nodes")
        if (self.interpolation_method.lower().replace("-", "_") in ("log_linear", "loglinear")
                and self.value_type != CurveValueType.DISCOUNT_FACTOR):
            raise CalibrationConfigError(
                f"Curve {self.name}: log-linear interpolation requires discount factor values"
            )
    
    @property
    def parameter_count(self) -> int:
        return len(self.nodes)
    
    @property
    def node_labels(self) -> Tuple[str, ...]:
        return tuple(node.label for node in self.nodes)
    
    def node_times(self, valuation_date: date) -> np.ndarray:
        """
        Curve times of the nodes.
        
        Raises:
            CalibrationConfigError: If node dates are not strictly increasing
        """
        times = []
        previous: Optional[CalibrationNode] = None
        for node in self.nodes:
            t = year_fraction(valuation_date, node.node_date(valuation_date), self.day_count)
            if times and t <= times[-1]:
                raise CalibrationConfigError(
                    f"Curve {self.name}: node {node.label} is not after node {previous.label}"
                )
            if t <= 0:
                raise CalibrationConfigError(
                    f"Curve {self.name}: node {node.label} is not after the valuation date"
                )
            times.append(t)
            previous = node
        return np.array(times)
    
    def initial_curve(self, valuation_date: date, market_data: MarketData) -> Curve:
        """
        Curve holding the starting point of the root finder.
        
        Nodes without a rate guess carry the previous node's guess forward,
        starting from zero.
        """
        times = self.node_times(valuation_date)
        guesses = []
        current = 0.0
        for node in self.nodes:
            guess = node.initial_guess(market_data)
            if guess is not None:
                current = guess
            guesses.append(current)
        rates = np.array(guesses)
        if self.value_type == CurveValueType.DISCOUNT_FACTOR:
            parameters = np.exp(-rates * times)
        else:
            parameters = rates
        return Curve(
            name=self.name,
            valuation_date=valuation_date,
            node_times=times,
            parameters=parameters,
            value_type=self.value_type,
            day_count=self.day_count,
            interpolation_method=self.interpolation_method,
            node_labels=self.node_labels,
        )


def _keys(values: Iterable[Union[str, RateIndex]]) -> FrozenSet[str]:
    return frozenset(str(value) for value in values)


@dataclass(frozen=True)
class CurveGroupEntry:
    """A curve definition and the currencies and indices it is used for."""
    curve: CurveDefinition
    discount_currencies: FrozenSet[str] = frozenset()
    indices: FrozenSet[str] = frozenset()
    
    def __post_init__(self):
        object.__setattr__(self, "discount_currencies", _keys(self.discount_currencies))
        object.__setattr__(self, "indices", _keys(self.indices))


@dataclass(frozen=True)
class CurveGroupDefinition:
    """
    Curves calibrated together in one root-finding problem.
    
    Raises:
        CalibrationConfigError: On duplicate curve names, or a currency or
            index claimed by two curves
    """
    name: str
    entries: Tuple[CurveGroupEntry, ...] = field(default_factory=tuple)
    
    def __post_init__(self):
        object.__setattr__(self, "entries", tuple(self.entries))
        seen_curves = set()
        seen_currencies: Dict[str, str] = {}
        seen_indices: Dict[str, str] = {}
        for entry in self.entries:
            name = entry.curve.name
            if name in seen_curves:
                raise CalibrationConfigError(f"Group {self.name}: duplicate curve name {name}")
            seen_curves.add(name)
            for ccy in entry.discount_currencies:
                if ccy in seen_currencies:
                    raise CalibrationConfigError(
                        f"Group {self.name}: currency {ccy} discounted by both "
                        f"{seen_currencies[ccy]} and {name}"
                    )
                seen_currencies[ccy] = name
            for index in entry.indices:
                if index in seen_indices:
                    raise CalibrationConfigError(
                        f"Group {self.name}: index {index} projected by both "
                        f"{seen_indices[index]} and {name}"
                    )
                seen_indices[index] = name
    
    def add_curve(
        self,
        curve: CurveDefinition,
        discount_currencies: Sequence[str] = (),
        indices: Sequence[Union[str, RateIndex]] = ()
    ) -> "CurveGroupDefinition":
        """New group with an extra curve."""
        entry = CurveGroupEntry(curve, frozenset(discount_currencies), frozenset(indices))
        return CurveGroupDefinition(self.name, self.entries + (entry,))
    
    def add_discount_curve(self, curve: CurveDefinition, *currencies: str) -> "CurveGroupDefinition":
        return self.add_curve(curve, discount_currencies=currencies)
    
    def add_forward_curve(self, curve: CurveDefinition, *indices: Union[str, RateIndex]) -> "CurveGroupDefinition":
        return self.add_curve(curve, indices=indices)
    
    def combined_with(self, other: "CurveGroupDefinition", name: Optional[str] = None) -> "CurveGroupDefinition":
        """Single group holding the curves of both groups (joint calibration)."""
        return CurveGroupDefinition(name or f"{self.name}+{other.name}", self.entries + other.entries)
    
    @property
    def curve_definitions(self) -> Tuple[CurveDefinition, ...]:
        return tuple(entry.curve for entry in self.entries)
    
    @property
    def curve_names(self) -> Tuple[str, ...]:
        return tuple(entry.curve.name for entry in self.entries)
    
    @property
    def total_node_count(self) -> int:
        return sum(entry.curve.parameter_count for entry in self.entries)
    
    def discount_curve_names(self) -> Dict[str, str]:
        return {ccy: entry.curve.name for entry in self.entries for ccy in entry.discount_currencies}
    
    def index_curve_names(self) -> Dict[str, str]:
        return {index: entry.curve.name for entry in self.entries for index in entry.indices}


__all__ = [
    "CurveDefinition",
    "CurveGroupEntry",
    "CurveGroupDefinition",
]
