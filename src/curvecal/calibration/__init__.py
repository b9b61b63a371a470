"""
Calibration package - joint calibration of curve groups to market quotes.

Provides:
- ParameterBundle: flatten/unflatten the curves of a group
- CalibrationMeasures: residual definition per trade type (par spread, PV, zero rate)
- CalibrationResiduals: residual vector and Jacobian of a group
- NewtonRaphsonSolver: damped Newton returning Converged or Failed
- JacobianCalibrationMatrix: d(curve parameters)/d(market quotes) stored on curves
- CurveCalibrator: sequential group orchestration
"""

from .bundle import ParameterBundle, flatten_curves, unflatten_curves
from .measures import MEASURE_TABLE, CalibrationMeasures, Measure, MeasureKind
from .residuals import CalibrationResiduals, CalibrationTarget, quote_derivatives
from .solver import (
    Converged,
    ConvergenceResult,
    Failed,
    FailureReason,
    NewtonRaphsonSolver,
    SolverState,
)
from .jacobian import (
    CurveQuoteBlock,
    JacobianCalibrationMatrix,
    calibration_jacobians,
    merge_orders,
)
from .calibrator import (
    CALIBRATION_NOTIONAL,
    CalibrationResult,
    CalibratorConfig,
    CurveCalibrator,
    GroupCalibrationResult,
)

__all__ = [
    "ParameterBundle",
    "flatten_curves",
    "unflatten_curves",
    "MEASURE_TABLE",
    "CalibrationMeasures",
    "Measure",
    "MeasureKind",
    "CalibrationResiduals",
    "CalibrationTarget",
    "quote_derivatives",
    "Converged",
    "ConvergenceResult",
    "Failed",
    "FailureReason",
    "NewtonRaphsonSolver",
    "SolverState",
    "CurveQuoteBlock",
    "JacobianCalibrationMatrix",
    "calibration_jacobians",
    "merge_orders",
    "CALIBRATION_NOTIONAL",
    "CalibrationResult",
    "CalibratorConfig",
    "CurveCalibrator",
    "GroupCalibrationResult",
]
