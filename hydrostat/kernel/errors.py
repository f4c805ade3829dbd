# hydrostat/kernel/errors.py
"""Exception hierarchy shared by the kernel, the constraints and the dynamics."""


class HydrostatError(Exception):
    """Base class for every error raised by hydrostat."""
    pass


class ConfigurationError(HydrostatError, ValueError):
    """Raised before simulation starts: mismatched array lengths, bad settings,
    a constraint used before it was initialized."""
    pass


class ValidationError(HydrostatError, ValueError):
    """Raised while building a model: out-of-range vertex indices, faces with
    inconsistent vertex counts, malformed arrays."""
    pass


class AssemblyError(ValidationError):
    """Raised when a constraint output is internally inconsistent."""
    pass


class NumericalError(HydrostatError, RuntimeError):
    """Raised when a step cannot be computed (singular system, failed eigensolve)."""
    pass


class SingularMatrixError(NumericalError):
    """Raised when Gaussian elimination meets a pivot below tolerance."""
    pass
