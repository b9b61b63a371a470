"""
Exception hierarchy for curve calibration.

Three families of failure are surfaced to the caller of a calibration run:
- CalibrationConfigError: the input definitions are inconsistent (missing curve,
  duplicate curve name, parameter vector of the wrong length, unsupported measure)
- MissingMarketDataError: a quote, FX rate or fixing is absent from the market data
- CalibrationFailedError: the root finder did not converge for a curve group

None of them is retried internally.
"""

from typing import Optional


class CalibrationError(Exception):
    """Base class for all calibration errors."""


class CalibrationConfigError(CalibrationError, ValueError):
    """Curve group or calibration input is inconsistent."""


class MissingCurveError(CalibrationConfigError, LookupError):
    """A curve required by a trade is not available."""


class MissingMarketDataError(CalibrationError, LookupError):
    """A market quote, FX rate or historical fixing is not available."""


class CalibrationFailedError(CalibrationError, RuntimeError):
    """
    Root finding failed for a curve group.
    
    Attributes:
        group: Name of the curve group that failed
        reason: Short machine-readable failure reason
        iterations: Number of Newton iterations performed
        max_residual: Largest absolute residual at the last iterate
    """
    
    def __init__(
        self,
        message: str,
        group: str = "",
        reason: str = "",
        iterations: int = 0,
        max_residual: Optional[float] = None
    ):
        super().__init__(message)
        self.group = group
        self.reason = reason
        self.iterations = iterations
        self.max_residual = max_residual


__all__ = [
    "CalibrationError",
    "CalibrationConfigError",
    "MissingCurveError",
    "MissingMarketDataError",
    "CalibrationFailedError",
]
