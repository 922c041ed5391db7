"""
ISAC Array Engine

Direction-of-arrival estimation and beamforming for uniform linear arrays
in integrated sensing and communication testbeds:
- Subspace DOA estimation (MUSIC, ESPRIT, TLS-ESPRIT)
- MDL / AIC source-count estimation
- Closed-form beamformers (conjugate, multi-target, MVDR) and phase quantization
- Adaptive beamforming weight optimization with beam pattern analysis
- Monte Carlo performance evaluation with seedable randomness

References:
- R. Schmidt, "Multiple emitter location and signal parameter estimation"
- R. Roy and T. Kailath, "ESPRIT - Estimation of Signal Parameters via
  Rotational Invariance Techniques"
- M. Wax and T. Kailath, "Detection of signals by information theoretic criteria"
"""

__version__ = "0.1.0"

from .errors import (
    ArrayEngineError,
    ConfigurationError,
    InvalidArrayConfig,
    InvalidSourceCount,
    NumericalError,
    SingularCovariance,
    DecompositionFailed,
)
from .geometry import ArrayGeometry, steering_vector, angle_grid, grid_resolution
from .covariance import sample_covariance, diagonal_loading, effective_rank
from .subspace import EigenDecomposition, decompose, estimate_num_sources
from .estimator import DOAEstimator, DOAConfig, EstimationMethod, AngleEstimate
from .music import MUSICEstimator, find_spectrum_peaks
from .esprit import ESPRITEstimator, TLSESPRITEstimator
from .evaluation import (
    SignalGenerator,
    MonteCarloResult,
    compute_rmse,
    estimate_with_performance,
    monte_carlo_simulation,
    compare_estimators,
)
from .weights import WeightSynthesizer, normalize, array_response
from .pattern import PatternAnalysis, compute_beam_pattern, analyze_beam_pattern, analyze_weights
from .optimizer import (
    AdaptiveOptimizer,
    OptimizerConfig,
    BeamformingParams,
    BeamformingResult,
    RunState,
)
from .engine import ArrayEngine, create_engine, create_estimator

__all__ = [
    # Errors
    "ArrayEngineError",
    "ConfigurationError",
    "InvalidArrayConfig",
    "InvalidSourceCount",
    "NumericalError",
    "SingularCovariance",
    "DecompositionFailed",
    # Array model
    "ArrayGeometry",
    "steering_vector",
    "angle_grid",
    "grid_resolution",
    # Covariance and subspaces
    "sample_covariance",
    "diagonal_loading",
    "effective_rank",
    "EigenDecomposition",
    "decompose",
    "estimate_num_sources",
    # DOA estimation (MUSIC/ESPRIT)
    "DOAEstimator",
    "DOAConfig",
    "EstimationMethod",
    "AngleEstimate",
    "MUSICEstimator",
    "find_spectrum_peaks",
    "ESPRITEstimator",
    "TLSESPRITEstimator",
    # Performance evaluation
    "SignalGenerator",
    "MonteCarloResult",
    "compute_rmse",
    "estimate_with_performance",
    "monte_carlo_simulation",
    "compare_estimators",
    # Beamforming
    "WeightSynthesizer",
    "normalize",
    "array_response",
    "PatternAnalysis",
    "compute_beam_pattern",
    "analyze_beam_pattern",
    "analyze_weights",
    "AdaptiveOptimizer",
    "OptimizerConfig",
    "BeamformingParams",
    "BeamformingResult",
    "RunState",
    # Engine
    "ArrayEngine",
    "create_engine",
    "create_estimator",
]
