"""
Array Processing Engine

Single entry point for DOA estimation and beamforming optimization on one
uniform linear array:

- run_doa: snapshots -> estimated angles (+ MUSIC spectrum, RMSE vs. truth)
- run_beamforming: request -> optimized weights + beam pattern analysis

Estimators are chosen through the EstimationMethod registry. Results are
plain dicts with complex weights as [real, imag] pairs.
"""

import time
import numpy as np
from typing import Optional, Dict, Any, Sequence, Union, Type
import logging

from .geometry import ArrayGeometry
from .estimator import DOAEstimator, DOAConfig, EstimationMethod
from .music import MUSICEstimator
from .esprit import ESPRITEstimator, TLSESPRITEstimator
from .evaluation import compute_rmse
from .optimizer import AdaptiveOptimizer, OptimizerConfig, BeamformingParams
from .errors import ArrayEngineError, ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_NUM_ELEMENTS = 8


ESTIMATORS: Dict[EstimationMethod, Type[DOAEstimator]] = {
    EstimationMethod.MUSIC: MUSICEstimator,
    EstimationMethod.ESPRIT: ESPRITEstimator,
    EstimationMethod.TLS_ESPRIT: TLSESPRITEstimator,
}


def create_estimator(
    geometry: ArrayGeometry,
    config: Optional[DOAConfig] = None,
    method: Optional[Union[EstimationMethod, str]] = None,
) -> DOAEstimator:
    """
    Build the estimator registered for a method

    Args:
        geometry: Array geometry
        config: DOA configuration (defaults to DOAConfig())
        method: Overrides config.method when given
    """
    config = config or DOAConfig()
    if method is None:
        method = config.method
    elif not isinstance(method, EstimationMethod):
        try:
            method = EstimationMethod(str(method).lower())
        except ValueError as e:
            raise ConfigurationError(f"Unknown estimation method: {method}") from e

    estimator_cls = ESTIMATORS[method]
    if estimator_cls is MUSICEstimator:
        return MUSICEstimator(
            geometry,
            num_sources=config.num_sources,
            num_points=config.num_grid_points,
            floor=config.spectrum_floor,
            sentinel=config.spectrum_sentinel,
            forward_backward=config.forward_backward,
        )
    return estimator_cls(
        geometry,
        num_sources=config.num_sources,
        forward_backward=config.forward_backward,
    )


class ArrayEngine:
    """
    DOA estimation and beamforming facade

    Holds immutable configuration plus a statistics counter; every call is
    otherwise independent. The counters are best-effort: concurrent calls
    update them without a lock, so totals may undercount under contention.
    Numerical results never depend on them.
    """

    def __init__(
        self,
        geometry: Optional[ArrayGeometry] = None,
        doa_config: Optional[DOAConfig] = None,
        optimizer_config: Optional[OptimizerConfig] = None,
    ):
        self.geometry = geometry or ArrayGeometry(DEFAULT_NUM_ELEMENTS)
        self.doa_config = doa_config or DOAConfig()
        self.optimizer = AdaptiveOptimizer(optimizer_config)

        # Default estimator validates K against M up front
        self.estimator = create_estimator(self.geometry, self.doa_config)

        self.stats = {
            "doa_requests": 0,
            "beamforming_requests": 0,
            "degenerate_results": 0,
            "resolution_limited_results": 0,
            "non_converged_runs": 0,
            "errors": 0,
            "method_counts": {method.value: 0 for method in EstimationMethod},
            "start_time": time.time(),
        }

        logger.info(
            f"ArrayEngine initialized: M={self.geometry.num_elements}, "
            f"d={self.geometry.element_spacing}, K={self.doa_config.num_sources}, "
            f"method={self.doa_config.method.value}"
        )

    # ===== DOA Estimation =====

    def run_doa(
        self,
        snapshots: np.ndarray,
        method: Optional[Union[EstimationMethod, str]] = None,
        true_angles: Optional[Sequence[float]] = None,
    ) -> Dict[str, Any]:
        """
        Estimate directions of arrival

        Args:
            snapshots: Received signal matrix (num_elements, num_snapshots)
            method: Estimation method (defaults to the configured one)
            true_angles: Ground truth in radians; adds "rmse" to the result

        Returns:
            Dict with method, estimated_angles, degenerate, resolution_limited,
            and spectrum (MUSIC) / rmse when available
        """
        self.stats["doa_requests"] += 1
        try:
            estimator = self.estimator if method is None else create_estimator(
                self.geometry, self.doa_config, method
            )
            estimate = estimator.estimate(snapshots)
        except ArrayEngineError as e:
            self.stats["errors"] += 1
            logger.error(f"DOA estimation failed: {e}")
            raise

        if true_angles is not None and not estimate.degenerate:
            estimate.rmse = compute_rmse(estimate.angles_rad, true_angles)

        self.stats["method_counts"][self._method_key(estimator)] += 1
        if estimate.degenerate:
            self.stats["degenerate_results"] += 1
        if estimate.resolution_limited:
            self.stats["resolution_limited_results"] += 1

        logger.info(
            f"DOA ({estimate.method}): {np.round(estimate.angles_deg, 2).tolist()} deg"
        )
        return estimate.to_dict()

    @staticmethod
    def _method_key(estimator: DOAEstimator) -> str:
        for method, estimator_cls in ESTIMATORS.items():
            if type(estimator) is estimator_cls:
                return method.value
        return estimator.name

    # ===== Beamforming =====

    def run_beamforming(self, params: Union[BeamformingParams, Dict[str, Any]]) -> Dict[str, Any]:
        """
        Optimize beamforming weights

        Args:
            params: BeamformingParams or an equivalent dict

        Returns:
            Dict with weights ([real, imag] pairs), beam_pattern,
            main_lobe_direction, main_lobe_width, side_lobe_level,
            iterations, converged
        """
        self.stats["beamforming_requests"] += 1
        try:
            if isinstance(params, dict):
                params = BeamformingParams(**params)
            result = self.optimizer.optimize(params)
        except (ArrayEngineError, TypeError) as e:
            self.stats["errors"] += 1
            logger.error(f"Beamforming optimization failed: {e}")
            raise

        if not result.converged:
            self.stats["non_converged_runs"] += 1

        return result.to_dict()

    # ===== Statistics =====

    def get_statistics(self) -> Dict[str, Any]:
        """Get engine statistics"""
        uptime = time.time() - self.stats["start_time"]
        return {
            **self.stats,
            "method_counts": dict(self.stats["method_counts"]),
            "uptime_seconds": uptime,
            "num_elements": self.geometry.num_elements,
            "num_sources": self.doa_config.num_sources,
            "default_method": self.doa_config.method.value,
        }


def create_engine(config: Optional[Dict] = None) -> ArrayEngine:
    """Create an ArrayEngine from a nested configuration dict"""
    array_config = {"num_elements": DEFAULT_NUM_ELEMENTS, **(config.get("array", {}) if config else {})}
    geometry = ArrayGeometry(**array_config)
    doa_config = DOAConfig(**(config.get("doa", {}) if config else {}))
    optimizer_config = OptimizerConfig(**(config.get("optimizer", {}) if config else {}))

    return ArrayEngine(
        geometry=geometry,
        doa_config=doa_config,
        optimizer_config=optimizer_config,
    )
