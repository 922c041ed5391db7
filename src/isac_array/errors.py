"""
Error taxonomy for the array engine

Two families always surface to the caller:
- ConfigurationError: invalid element count, spacing, source count or parameters
- NumericalError: singular matrices, failed eigensolves, non-finite data

Resolution limits (too few spectral peaks) and optimizer non-convergence are
not exceptions; they are reported through flags on otherwise valid results.
"""


class ArrayEngineError(Exception):
    """Base class for all engine errors"""


class ConfigurationError(ArrayEngineError, ValueError):
    """Invalid array, source or run configuration"""


class InvalidArrayConfig(ConfigurationError):
    """Element count or element spacing is not usable"""


class InvalidSourceCount(ConfigurationError):
    """Source count K outside (0, M)"""


class NumericalError(ArrayEngineError, ArithmeticError):
    """A linear-algebra step could not produce a meaningful result"""


class SingularCovariance(NumericalError):
    """Covariance matrix cannot be inverted; regularise before retrying"""


class DecompositionFailed(NumericalError):
    """Eigen/singular value decomposition did not converge"""
