"""
Unit tests for the adaptive beamforming optimizer.

Tests:
- Convergence from conjugate initialization
- Monotone target response from arbitrary starting weights
- Non-convergence reporting and best-weights fallback
- Interference penalty and overlap detection
- Result serialization
"""

import pytest
import numpy as np
import logging
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from isac_array.geometry import ArrayGeometry
from isac_array.weights import WeightSynthesizer, array_response
from isac_array.optimizer import (
    AdaptiveOptimizer,
    OptimizerConfig,
    BeamformingParams,
    BeamformingResult,
    RunState,
    OptimizationRun,
)
from isac_array.errors import ConfigurationError, NumericalError, InvalidArrayConfig


def random_weights(num_elements: int, seed: int) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return rng.standard_normal(num_elements) + 1j * rng.standard_normal(num_elements)


class TestOptimizerConfig:
    """Test optimizer configuration."""

    def test_defaults(self):
        """Default configuration values."""
        config = OptimizerConfig()

        assert config.max_iterations == 100
        assert config.snr_threshold == 0.9
        assert config.interference_penalty == 0.0
        assert config.num_pattern_points == 360

    @pytest.mark.parametrize("field,value", [
        ("step_size", 0.0),
        ("step_size", -0.1),
        ("interference_penalty", -1.0),
    ])
    def test_invalid_config(self, field, value):
        """Invalid step sizes and penalties are rejected."""
        with pytest.raises(ConfigurationError):
            AdaptiveOptimizer(OptimizerConfig(**{field: value}))

    def test_params_geometry(self):
        """Params describe their own array."""
        params = BeamformingParams(element_count=12, target_direction=0.1, element_spacing=0.4)

        assert params.geometry == ArrayGeometry(12, 0.4)

    def test_params_invalid_array(self, optimizer):
        """Element count is validated through the geometry."""
        with pytest.raises(InvalidArrayConfig):
            optimizer.optimize(BeamformingParams(element_count=0, target_direction=0.0))


class TestOptimizationRun:
    """Test run state tracking."""

    def test_initial_state(self):
        """Runs start in INITIAL and are not converged."""
        w = np.ones(4, dtype=complex) / 2
        run = OptimizationRun(weights=w, best_weights=w.copy(), best_objective=0.0)

        assert run.state == RunState.INITIAL
        assert run.iteration == 0
        assert not run.converged
        assert run.response_history == []


class TestConvergence:
    """Test convergence behaviour."""

    def test_conjugate_start_converges_immediately(self, optimizer):
        """Conjugate initialization already meets the default threshold."""
        result = optimizer.optimize(BeamformingParams(element_count=8, target_direction=0.3))

        assert result.converged
        assert result.iterations == 1
        assert result.target_response == pytest.approx(np.sqrt(8), rel=1e-9)
        assert np.linalg.norm(result.weights) == pytest.approx(1.0)

    def test_main_lobe_at_target(self, optimizer):
        """The optimized beam points at the target."""
        target = np.radians(20.0)
        result = optimizer.optimize(BeamformingParams(element_count=16, target_direction=target))

        assert abs(result.analysis.main_lobe_direction - target) <= np.pi / 360

    def test_unreachable_threshold(self, optimizer):
        """A threshold above sqrt(M) runs out of iterations."""
        params = BeamformingParams(
            element_count=8,
            target_direction=0.0,
            snr_threshold=10.0,
            max_iterations=5,
        )
        result = optimizer.optimize(params)

        assert not result.converged
        assert result.iterations == 5
        assert len(result.response_history) == 5
        assert result.to_dict()["converged"] is False

    def test_zero_iterations(self, optimizer):
        """max_iterations=0 returns the initial weights unconverged."""
        params = BeamformingParams(element_count=8, target_direction=0.2, max_iterations=0)
        result = optimizer.optimize(params)

        assert not result.converged
        assert result.iterations == 0
        np.testing.assert_allclose(
            result.weights, WeightSynthesizer(ArrayGeometry(8)).conjugate_beamforming(0.2)
        )

    def test_negative_iterations(self, optimizer):
        """max_iterations must be non-negative."""
        with pytest.raises(ConfigurationError):
            optimizer.optimize(BeamformingParams(element_count=8, target_direction=0.0, max_iterations=-1))


class TestMonotoneResponse:
    """Test target response progression."""

    @pytest.mark.parametrize("seed", [0, 1, 2, 3])
    def test_response_non_decreasing(self, optimizer, seed):
        """Target response never drops from one iteration to the next."""
        initial = random_weights(16, seed)
        target = np.radians(15.0)
        params = BeamformingParams(
            element_count=16,
            target_direction=target,
            snr_threshold=100.0,
            max_iterations=40,
            initial_weights=initial,
        )
        initial_response = abs(array_response(
            initial / np.linalg.norm(initial), ArrayGeometry(16).steering_vector(target)
        ))

        result = optimizer.optimize(params)
        history = np.array(result.response_history)

        assert history[0] >= initial_response - 1e-12
        assert np.all(np.diff(history) >= -1e-12)

    def test_random_start_reaches_threshold(self, optimizer):
        """Random weights climb to a reachable threshold."""
        params = BeamformingParams(
            element_count=16,
            target_direction=-0.4,
            snr_threshold=3.5,
            max_iterations=200,
            initial_weights=random_weights(16, 9),
        )
        result = optimizer.optimize(params)

        assert result.converged
        assert result.target_response >= 3.5

    def test_caller_weights_not_mutated(self, optimizer):
        """initial_weights are copied, not updated in place."""
        initial = random_weights(8, 4)
        original = initial.copy()

        optimizer.optimize(BeamformingParams(
            element_count=8, target_direction=0.0, initial_weights=initial, snr_threshold=100.0,
            max_iterations=10,
        ))

        np.testing.assert_array_equal(initial, original)

    def test_initial_weights_length(self, optimizer):
        """initial_weights must match the element count."""
        with pytest.raises(ConfigurationError):
            optimizer.optimize(BeamformingParams(
                element_count=8, target_direction=0.0, initial_weights=np.ones(4)
            ))

    def test_zero_initial_weights(self, optimizer):
        """All-zero starting weights cannot be normalized."""
        with pytest.raises(NumericalError):
            optimizer.optimize(BeamformingParams(
                element_count=8, target_direction=0.0, initial_weights=np.zeros(8)
            ))


class TestInterference:
    """Test interference handling."""

    def test_penalty_reduces_interference(self):
        """A positive penalty lowers the response toward the interferer."""
        geometry = ArrayGeometry(16)
        interferer = np.radians(12.0)
        optimizer = AdaptiveOptimizer(OptimizerConfig(interference_penalty=0.5))
        params = BeamformingParams(
            element_count=16,
            target_direction=0.0,
            interference_angles=[interferer],
            snr_threshold=100.0,
            max_iterations=50,
        )

        result = optimizer.optimize(params)
        conjugate = WeightSynthesizer(geometry).conjugate_beamforming(0.0)
        a_i = geometry.steering_vector(interferer)

        assert abs(array_response(result.weights, a_i)) < abs(array_response(conjugate, a_i))

    def test_overlapping_interference_warns(self, optimizer, caplog):
        """Interference on top of the target is reported, not rejected."""
        params = BeamformingParams(
            element_count=8,
            target_direction=0.2,
            interference_angles=[0.2, -0.9],
        )

        with caplog.at_level(logging.WARNING, logger="isac_array.optimizer"):
            result = optimizer.optimize(params)

        assert result.overlapping_interference == [0.2]
        assert any("indistinguishable" in record.message for record in caplog.records)

    def test_separated_interference_not_flagged(self, optimizer):
        """Well separated interferers raise no overlap."""
        params = BeamformingParams(
            element_count=8,
            target_direction=0.0,
            interference_angles=[0.8],
        )

        assert optimizer.optimize(params).overlapping_interference == []


class TestBeamformingResult:
    """Test result serialization."""

    def test_to_dict_keys(self, optimizer):
        """Dict form carries weights as [real, imag] pairs plus pattern metrics."""
        result = optimizer.optimize(BeamformingParams(element_count=8, target_direction=0.0))
        data = result.to_dict()

        for key in [
            "weights",
            "beam_pattern",
            "main_lobe_direction",
            "main_lobe_width",
            "side_lobe_level",
            "iterations",
            "converged",
        ]:
            assert key in data
        assert len(data["weights"]) == 8
        assert all(len(pair) == 2 for pair in data["weights"])
        assert len(data["beam_pattern"]) == 360

    def test_weight_pairs_round_trip(self, optimizer):
        """[real, imag] pairs reproduce the complex weights."""
        result = optimizer.optimize(BeamformingParams(element_count=4, target_direction=0.5))
        pairs = np.array(result.to_dict()["weights"])

        np.testing.assert_allclose(pairs[:, 0] + 1j * pairs[:, 1], result.weights)
        assert isinstance(result, BeamformingResult)
        np.testing.assert_array_equal(result.beam_pattern, result.analysis.pattern)
