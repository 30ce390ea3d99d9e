"""
Error types raised by the simulator core.
"""

import numpy as np


class ConfigurationError(ValueError):
    """Invalid or unrecognised configuration, raised before a run starts."""


class TrimNotFound(RuntimeError):
    """
    The equilibrium solver failed to converge.

    Recoverable by the caller (retry with another seed), fatal to the run
    if left unhandled.
    """

    def __init__(self, message: str, x=None, residuals=None):
        super().__init__(message)
        self.x = None if x is None else np.asarray(x, dtype=np.float64)
        self.residuals = None if residuals is None else np.asarray(residuals, dtype=np.float64)
