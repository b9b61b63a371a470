"""
Damped multivariate Newton root finder.

Each iteration solves J * delta = -r with a dense LU solve and accepts the
step, halving it while the largest absolute residual does not decrease (up
to max_damping_steps halvings). The iteration stops when
    max |r_i| < absolute_tolerance    or    ||delta|| <= relative_tolerance * ||x||

The solver never raises for numerical trouble. It returns either Converged
or Failed, and the caller decides how to surface a failure. The residuals
and the Jacobian are always evaluated at the returned parameters, including
when the starting point already satisfies the tolerance.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple, Union

import logging

import numpy as np
import scipy.linalg

logger = logging.getLogger(__name__)

Evaluate = Callable[[np.ndarray], Tuple[np.ndarray, np.ndarray]]
Residual = Callable[[np.ndarray], np.ndarray]


class SolverState(Enum):
    """Terminal state of a root-finding run."""
    CONVERGED = "Converged"
    FAILED = "Failed"


class FailureReason(Enum):
    ITERATION_LIMIT = "IterationLimit"
    SINGULAR_JACOBIAN = "SingularJacobian"
    NON_FINITE = "NonFinite"


@dataclass(frozen=True)
class Converged:
    """
    Successful solve.
    
    Attributes:
        parameters: Solution vector
        residuals: Residuals at the solution
        jacobian: d(residual)/d(parameter) at the solution
        iterations: Number of Newton steps taken
    """
    parameters: np.ndarray
    residuals: np.ndarray
    jacobian: np.ndarray
    iterations: int
    
    state = SolverState.CONVERGED
    
    @property
    def converged(self) -> bool:
        return True
    
    @property
    def max_residual(self) -> float:
        return float(np.max(np.abs(self.residuals))) if self.residuals.size else 0.0


@dataclass(frozen=True)
class Failed:
    """
    Unsuccessful solve.
    
    Attributes:
        reason: Why the solve stopped
        message: Human-readable description
        parameters: Last iterate
        residuals: Residuals at the last iterate
        iterations: Number of Newton steps taken
    """
    reason: FailureReason
    message: str
    parameters: np.ndarray
    residuals: np.ndarray
    iterations: int
    
    state = SolverState.FAILED
    
    @property
    def converged(self) -> bool:
        return False
    
    @property
    def max_residual(self) -> float:
        if not self.residuals.size:
            return 0.0
        return float(np.max(np.abs(self.residuals)))


ConvergenceResult = Union[Converged, Failed]


class NewtonRaphsonSolver:
    """
    Newton solver for square systems r(x) = 0.
    
    Attributes:
        absolute_tolerance: Convergence threshold on max |r_i|
        relative_tolerance: Convergence threshold on ||delta|| / ||x||
        max_iterations: Maximum number of Newton steps
        max_damping_steps: Maximum step halvings per iteration
        max_condition_number: Jacobians above this condition number count as singular
    """
    
    def __init__(
        self,
        absolute_tolerance: float = 1e-9,
        relative_tolerance: float = 1e-9,
        max_iterations: int = 100,
        max_damping_steps: int = 8,
        max_condition_number: float = 1e14
    ):
        if absolute_tolerance <= 0 or relative_tolerance < 0:
            raise ValueError("Tolerances must be positive")
        if max_iterations < 0 or max_damping_steps < 0:
            raise ValueError("Iteration limits must be non-negative")
        self.absolute_tolerance = absolute_tolerance
        self.relative_tolerance = relative_tolerance
        self.max_iterations = max_iterations
        self.max_damping_steps = max_damping_steps
        self.max_condition_number = max_condition_number
    
    def solve(
        self,
        evaluate: Evaluate,
        x0: np.ndarray,
        residual: Optional[Residual] = None,
        name: str = ""
    ) -> ConvergenceResult:
        """
        Solve r(x) = 0 from x0.
        
        Args:
            evaluate: Returns (residuals, jacobian) at x
            x0: Starting point
            residual: Residuals only, used for damping trials (defaults to evaluate)
            name: Label used in log messages
            
        Returns:
            Converged or Failed
        """
        x = np.array(x0, dtype=np.float64)
        if x.size == 0:
            return Converged(x, np.zeros(0), np.zeros((0, 0)), 0)
        
        if residual is None:
            residual = lambda point: evaluate(point)[0]
        
        r, jacobian = evaluate(x)
        iterations = 0
        
        while True:
            if not np.all(np.isfinite(r)):
                return self._fail(FailureReason.NON_FINITE, "Residuals are not finite", x, r, iterations, name)
            max_residual = float(np.max(np.abs(r)))
            if max_residual < self.absolute_tolerance:
                return self._converge(x, r, jacobian, iterations, name)
            if iterations >= self.max_iterations:
                return self._fail(
                    FailureReason.ITERATION_LIMIT,
                    f"No convergence after {iterations} iterations (max residual {max_residual:.3e})",
                    x, r, iterations, name
                )
            
            delta = self._newton_step(jacobian, r)
            if delta is None:
                return self._fail(
                    FailureReason.SINGULAR_JACOBIAN,
                    f"Jacobian is singular or ill-conditioned at iteration {iterations}",
                    x, r, iterations, name
                )
            iterations += 1
            
            step = 1.0
            damping = 0
            trial_residual = residual(x + delta)
            while damping < self.max_damping_steps and not (
                np.all(np.isfinite(trial_residual))
                and np.max(np.abs(trial_residual)) < max_residual
            ):
                step *= 0.5
                damping += 1
                trial_residual = residual(x + step * delta)
            
            x = x + step * delta
            r, jacobian = evaluate(x)
            step_norm = float(np.linalg.norm(step * delta))
            logger.debug(
                "%s iteration %d: max residual %.3e, step norm %.3e, damping %d",
                name, iterations, float(np.max(np.abs(r))), step_norm, damping
            )
            
            if np.all(np.isfinite(r)) and step_norm <= self.relative_tolerance * float(np.linalg.norm(x)):
                return self._converge(x, r, jacobian, iterations, name)
    
    def _newton_step(self, jacobian: np.ndarray, r: np.ndarray) -> Optional[np.ndarray]:
        """Solution of J * delta = -r, or None when J cannot be inverted reliably."""
        if not np.all(np.isfinite(jacobian)):
            return None
        condition = np.linalg.cond(jacobian)
        if not np.isfinite(condition) or condition > self.max_condition_number:
            return None
        try:
            return scipy.linalg.solve(jacobian, -r)
        except scipy.linalg.LinAlgError:
            return None
    
    def _converge(self, x, r, jacobian, iterations, name) -> Converged:
        logger.debug("%s converged after %d iterations", name, iterations)
        return Converged(x, r, jacobian, iterations)
    
    def _fail(self, reason, message, x, r, iterations, name) -> Failed:
        logger.debug("%s failed: %s", name, message)
        return Failed(reason, message, x, r, iterations)


__all__ = [
    "SolverState",
    "FailureReason",
    "Converged",
    "Failed",
    "ConvergenceResult",
    "NewtonRaphsonSolver",
]
