"""
Adaptive Beamforming Optimizer

Diminishing-step projected gradient ascent on the unit-power sphere:

    J(w) = |a_t^T w|^2 - lambda * sum_i |a_i^T w|^2
    w <- w + (mu / (k + 1)) * dJ/dw*,   w <- w / ||w||

starting from conjugate beamforming toward the target. The run converges
once the target response |a_t^T w| reaches the caller's threshold; running
out of iterations is a valid partial result flagged converged=False.

Run state machine: INITIAL -> ITERATING -> {CONVERGED | MAX_ITERATIONS}
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any
from enum import Enum
import logging

from .geometry import ArrayGeometry, DEFAULT_GRID_POINTS
from .weights import WeightSynthesizer, normalize, array_response
from .pattern import PatternAnalysis, analyze_weights
from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class RunState(Enum):
    """Optimization run state"""
    INITIAL = "initial"
    ITERATING = "iterating"
    CONVERGED = "converged"
    MAX_ITERATIONS = "max_iterations"


@dataclass
class OptimizerConfig:
    """Adaptive optimizer configuration"""
    max_iterations: int = 100             # Default when params leave it unset
    snr_threshold: float = 0.9            # Target response magnitude to reach
    step_size: float = 0.1                # mu; iteration k uses mu / (k + 1)
    interference_penalty: float = 0.0     # lambda
    overlap_warning: float = 0.9          # Normalized target/interference correlation
    num_pattern_points: int = DEFAULT_GRID_POINTS


@dataclass
class BeamformingParams:
    """Per-call beamforming request"""
    element_count: int
    target_direction: float               # radians
    interference_angles: List[float] = field(default_factory=list)
    snr_threshold: Optional[float] = None
    max_iterations: Optional[int] = None
    element_spacing: float = 0.5
    initial_weights: Optional[np.ndarray] = None

    @property
    def geometry(self) -> ArrayGeometry:
        return ArrayGeometry(self.element_count, self.element_spacing)


@dataclass
class OptimizationRun:
    """Transient per-call optimizer state"""
    weights: np.ndarray
    best_weights: np.ndarray
    best_objective: float
    iteration: int = 0
    state: RunState = RunState.INITIAL
    response_history: List[float] = field(default_factory=list)

    @property
    def converged(self) -> bool:
        return self.state == RunState.CONVERGED


@dataclass
class BeamformingResult:
    """Beamforming optimization result"""
    weights: np.ndarray
    analysis: PatternAnalysis
    iterations: int
    converged: bool
    target_response: float
    response_history: List[float] = field(default_factory=list)
    overlapping_interference: List[float] = field(default_factory=list)

    @property
    def beam_pattern(self) -> np.ndarray:
        return self.analysis.pattern

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary; complex weights become [real, imag] pairs"""
        return {
            "weights": [[float(w.real), float(w.imag)] for w in self.weights],
            **self.analysis.to_dict(),
            "iterations": self.iterations,
            "converged": self.converged,
            "target_response": self.target_response,
        }


class AdaptiveOptimizer:
    """Iterative beamforming weight refinement"""

    def __init__(self, config: Optional[OptimizerConfig] = None):
        self.config = config or OptimizerConfig()
        if self.config.step_size <= 0:
            raise ConfigurationError(f"step_size must be positive, got {self.config.step_size}")
        if self.config.interference_penalty < 0:
            raise ConfigurationError(
                f"interference_penalty must be non-negative, got {self.config.interference_penalty}"
            )

    def optimize(self, params: BeamformingParams) -> BeamformingResult:
        """
        Optimize beamforming weights toward params.target_direction

        Args:
            params: Beamforming request

        Returns:
            BeamformingResult; converged=False when max_iterations ran out
        """
        geometry = params.geometry
        max_iterations = self.config.max_iterations if params.max_iterations is None else params.max_iterations
        threshold = self.config.snr_threshold if params.snr_threshold is None else params.snr_threshold
        if max_iterations < 0:
            raise ConfigurationError(f"max_iterations must be >= 0, got {max_iterations}")

        logger.info(
            f"Starting beamforming optimization: M={geometry.num_elements}, "
            f"target={np.degrees(params.target_direction):.2f} deg, "
            f"{len(params.interference_angles)} interferer(s)"
        )

        target_sv = geometry.steering_vector(params.target_direction)
        interference_svs = geometry.steering_matrix(params.interference_angles)
        overlapping = self._check_overlap(geometry, target_sv, params.interference_angles)

        run = self._initialize_run(geometry, params, target_sv, interference_svs)
        run.state = RunState.ITERATING

        for k in range(max_iterations):
            run.iteration = k + 1

            gradient = self._gradient(run.weights, target_sv, interference_svs)
            run.weights = normalize(run.weights + (self.config.step_size / (k + 1)) * gradient)

            objective = self._objective(run.weights, target_sv, interference_svs)
            if objective > run.best_objective:
                run.best_objective = objective
                run.best_weights = run.weights.copy()

            response = abs(array_response(run.weights, target_sv))
            run.response_history.append(response)

            if response >= threshold:
                run.state = RunState.CONVERGED
                break

        if run.state == RunState.CONVERGED:
            final_weights = run.weights
        else:
            run.state = RunState.MAX_ITERATIONS
            final_weights = run.best_weights

        analysis = analyze_weights(final_weights, geometry, self.config.num_pattern_points)
        target_response = abs(array_response(final_weights, target_sv))

        logger.info(
            f"Beamforming optimization completed: iterations={run.iteration}, "
            f"converged={run.converged}, "
            f"main_lobe={np.degrees(analysis.main_lobe_direction):.2f} deg, "
            f"sll={analysis.side_lobe_level_db:.2f} dB"
        )

        return BeamformingResult(
            weights=final_weights,
            analysis=analysis,
            iterations=run.iteration,
            converged=run.converged,
            target_response=float(target_response),
            response_history=run.response_history,
            overlapping_interference=overlapping,
        )

    def _initialize_run(self, geometry, params, target_sv, interference_svs) -> OptimizationRun:
        if params.initial_weights is not None:
            weights = np.array(params.initial_weights, dtype=complex).reshape(-1)
            if len(weights) != geometry.num_elements:
                raise ConfigurationError(
                    f"initial_weights has {len(weights)} entries for {geometry.num_elements} elements"
                )
            weights = normalize(weights)
        else:
            weights = WeightSynthesizer(geometry).conjugate_beamforming(params.target_direction)

        return OptimizationRun(
            weights=weights,
            best_weights=weights.copy(),
            best_objective=self._objective(weights, target_sv, interference_svs),
        )

    def _objective(self, weights, target_sv, interference_svs) -> float:
        value = abs(np.sum(weights * target_sv)) ** 2
        if interference_svs.shape[1] and self.config.interference_penalty:
            value -= self.config.interference_penalty * np.sum(np.abs(weights @ interference_svs) ** 2)
        return float(value)

    def _gradient(self, weights, target_sv, interference_svs) -> np.ndarray:
        """Wirtinger gradient dJ/dw* of the objective"""
        gradient = np.conj(target_sv) * np.sum(weights * target_sv)
        if interference_svs.shape[1] and self.config.interference_penalty:
            responses = weights @ interference_svs
            gradient = gradient - self.config.interference_penalty * (np.conj(interference_svs) @ responses)
        return gradient

    def _check_overlap(self, geometry, target_sv, interference_angles) -> List[float]:
        """Interference directions whose steering vectors nearly match the target's"""
        overlapping = []
        M = geometry.num_elements
        for angle in interference_angles:
            correlation = abs(np.vdot(target_sv, geometry.steering_vector(angle))) / M
            if correlation > self.config.overlap_warning:
                logger.warning(
                    f"Interference at {np.degrees(angle):.2f} deg is nearly indistinguishable "
                    f"from the target (correlation {correlation:.3f})"
                )
                overlapping.append(float(angle))
        return overlapping
