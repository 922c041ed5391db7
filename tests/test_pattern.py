"""
Unit tests for beam pattern computation and analysis.

Tests:
- Array factor values
- Main lobe direction and half-power width
- Side lobe level of uniform weighting
"""

import pytest
import numpy as np
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from isac_array.geometry import angle_grid, grid_resolution
from isac_array.weights import WeightSynthesizer
from isac_array.pattern import (
    array_factor,
    compute_beam_pattern,
    analyze_beam_pattern,
    analyze_weights,
)
from isac_array.errors import ConfigurationError


class TestArrayFactor:
    """Test array factor computation."""

    def test_conjugate_peak_value(self, small_array):
        """Unit-norm conjugate weights reach sqrt(M) at the target."""
        w = WeightSynthesizer(small_array).conjugate_beamforming(0.0)

        assert array_factor(w, small_array, [0.0])[0] == pytest.approx(np.sqrt(8))

    def test_default_grid(self, small_array):
        """Pattern is sampled on the 360-point grid."""
        w = WeightSynthesizer(small_array).conjugate_beamforming(0.0)
        grid, pattern = compute_beam_pattern(w, small_array)

        assert pattern.shape == (360,)
        np.testing.assert_allclose(grid, angle_grid())
        assert np.all(pattern >= 0)

    def test_weight_length_mismatch(self, small_array):
        """Weights must match the element count."""
        with pytest.raises(ConfigurationError):
            array_factor(np.ones(4), small_array, [0.0])


class TestPatternAnalysis:
    """Test main lobe and side lobe measurements."""

    @pytest.mark.parametrize("target_deg", [0.0, -25.0, 40.0])
    def test_main_lobe_direction(self, medium_array, target_deg):
        """Main lobe points at the steering direction."""
        w = WeightSynthesizer(medium_array).conjugate_beamforming(np.radians(target_deg))
        analysis = analyze_weights(w, medium_array)

        assert abs(analysis.main_lobe_direction - np.radians(target_deg)) <= grid_resolution()

    def test_large_array_broadside(self, large_array):
        """M=64 broadside beam: main lobe at 0 and side lobes at least 10 dB down."""
        w = WeightSynthesizer(large_array).conjugate_beamforming(0.0)
        analysis = analyze_weights(w, large_array)

        assert abs(analysis.main_lobe_direction) <= np.pi / 360
        assert analysis.side_lobe_level_db <= -10.0
        assert analysis.side_lobe_level <= analysis.peak_value / np.sqrt(10)

    def test_uniform_side_lobe_level(self, medium_array):
        """Uniform weighting gives the classic -13 dB first side lobe."""
        w = WeightSynthesizer(medium_array).conjugate_beamforming(0.0)
        analysis = analyze_weights(w, medium_array)

        assert analysis.side_lobe_level_db == pytest.approx(-13.0, abs=0.6)

    def test_beamwidth_shrinks_with_aperture(self, small_array, large_array):
        """Larger arrays form narrower beams."""
        narrow = analyze_weights(WeightSynthesizer(large_array).conjugate_beamforming(0.0), large_array)
        wide = analyze_weights(WeightSynthesizer(small_array).conjugate_beamforming(0.0), small_array)

        assert 0 < narrow.main_lobe_width < wide.main_lobe_width

    def test_half_power_width_of_uniform_array(self, medium_array):
        """Broadside 3 dB width is roughly 0.886 / (M d) radians."""
        w = WeightSynthesizer(medium_array).conjugate_beamforming(0.0)
        analysis = analyze_weights(w, medium_array)

        expected = 0.886 / (16 * 0.5)
        assert analysis.main_lobe_width == pytest.approx(expected, abs=4 * grid_resolution())

    def test_synthetic_pattern(self):
        """Hand-built pattern with one side lobe."""
        grid = np.linspace(-1.0, 1.0, 11)
        pattern = np.array([0.1, 0.3, 0.1, 0.0, 0.5, 1.0, 0.5, 0.0, 0.2, 0.0, 0.0])

        analysis = analyze_beam_pattern(pattern, grid)

        assert analysis.main_lobe_direction == pytest.approx(0.0)
        assert analysis.peak_value == 1.0
        assert analysis.main_lobe_width == pytest.approx(0.4)
        assert analysis.side_lobe_level == pytest.approx(0.3)

    def test_single_lobe_has_no_side_lobes(self):
        """A monotone lobe filling the grid reports zero side lobe level."""
        grid = np.linspace(-1.0, 1.0, 5)
        pattern = np.array([0.1, 0.5, 1.0, 0.5, 0.1])

        analysis = analyze_beam_pattern(pattern, grid)

        assert analysis.side_lobe_level == 0.0
        assert analysis.side_lobe_level_db == float("-inf")

    def test_mismatched_lengths(self):
        """Pattern and grid must align."""
        with pytest.raises(ConfigurationError):
            analyze_beam_pattern(np.ones(4), np.ones(5))

    def test_to_dict(self, small_array):
        """Dict form uses report keys."""
        w = WeightSynthesizer(small_array).conjugate_beamforming(0.0)
        result = analyze_weights(w, small_array).to_dict()

        assert set(result) == {
            "beam_pattern",
            "main_lobe_direction",
            "main_lobe_width",
            "side_lobe_level",
            "side_lobe_level_db",
        }
        assert len(result["beam_pattern"]) == 360
