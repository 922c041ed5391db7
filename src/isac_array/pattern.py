"""
Beam Pattern Computation and Analysis

Array factor magnitude |sum_n w_n a_n(theta)| on the standard 360-point grid,
plus main-lobe direction, half-power (3 dB) beamwidth and side-lobe level.
"""

import numpy as np
from dataclasses import dataclass
from typing import Sequence, Dict, Any, Tuple

from .geometry import ArrayGeometry, angle_grid, DEFAULT_GRID_POINTS
from .errors import ConfigurationError


@dataclass
class PatternAnalysis:
    """Beam pattern with derived lobe measurements"""
    pattern: np.ndarray                   # |AF| on angle_grid
    angle_grid: np.ndarray
    main_lobe_direction: float            # radians
    main_lobe_width: float                # half-power width, radians
    side_lobe_level: float                # linear magnitude
    peak_value: float

    @property
    def side_lobe_level_db(self) -> float:
        """Highest side lobe relative to the main-lobe peak"""
        if self.side_lobe_level <= 0 or self.peak_value <= 0:
            return float("-inf")
        return float(20 * np.log10(self.side_lobe_level / self.peak_value))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "beam_pattern": [float(p) for p in self.pattern],
            "main_lobe_direction": float(self.main_lobe_direction),
            "main_lobe_width": float(self.main_lobe_width),
            "side_lobe_level": float(self.side_lobe_level),
            "side_lobe_level_db": self.side_lobe_level_db,
        }


def array_factor(weights: np.ndarray, geometry: ArrayGeometry, angles: Sequence[float]) -> np.ndarray:
    """Array factor magnitude at arbitrary angles"""
    weights = np.asarray(weights, dtype=complex).reshape(-1)
    if len(weights) != geometry.num_elements:
        raise ConfigurationError(
            f"expected {geometry.num_elements} weights, got {len(weights)}"
        )
    A = geometry.steering_matrix(angles)
    return np.abs(weights @ A)


def compute_beam_pattern(
    weights: np.ndarray,
    geometry: ArrayGeometry,
    num_points: int = DEFAULT_GRID_POINTS,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Beam pattern over [-pi/2, pi/2)

    Returns:
        (angle_grid, pattern)
    """
    grid = angle_grid(num_points)
    return grid, array_factor(weights, geometry, grid)


def _half_power_edges(pattern: np.ndarray, peak_idx: int, threshold: float) -> Tuple[int, int]:
    """First index on each side of the peak that falls below threshold"""
    left_idx = peak_idx
    while left_idx > 0 and pattern[left_idx] >= threshold:
        left_idx -= 1

    right_idx = peak_idx
    while right_idx < len(pattern) - 1 and pattern[right_idx] >= threshold:
        right_idx += 1

    return left_idx, right_idx


def _main_lobe_nulls(pattern: np.ndarray, left_idx: int, right_idx: int) -> Tuple[int, int]:
    """Continue past the half-power edges while the pattern keeps falling"""
    while left_idx > 0 and pattern[left_idx - 1] < pattern[left_idx]:
        left_idx -= 1
    while right_idx < len(pattern) - 1 and pattern[right_idx + 1] < pattern[right_idx]:
        right_idx += 1
    return left_idx, right_idx


def analyze_beam_pattern(pattern: np.ndarray, grid: np.ndarray) -> PatternAnalysis:
    """
    Measure main lobe and side lobes of a sampled beam pattern

    - Main lobe direction: global peak (lowest index on ties)
    - Main lobe width: distance between the first samples below peak/sqrt(2)
      on either side of the peak
    - Side lobe level: largest magnitude outside the main lobe, which extends
      from the half-power edges down to the first nulls
    """
    pattern = np.asarray(pattern, dtype=float)
    grid = np.asarray(grid, dtype=float)
    if pattern.shape != grid.shape or pattern.size == 0:
        raise ConfigurationError("pattern and grid must be non-empty and the same length")

    step = (grid[-1] - grid[0]) / (len(grid) - 1) if len(grid) > 1 else 0.0

    peak_idx = int(np.argmax(pattern))
    peak_value = float(pattern[peak_idx])

    left_idx, right_idx = _half_power_edges(pattern, peak_idx, peak_value / np.sqrt(2))
    width = (right_idx - left_idx) * step

    null_left, null_right = _main_lobe_nulls(pattern, left_idx, right_idx)
    outside = np.ones(len(pattern), dtype=bool)
    outside[null_left:null_right + 1] = False
    side_lobe = float(pattern[outside].max()) if outside.any() else 0.0

    return PatternAnalysis(
        pattern=pattern,
        angle_grid=grid,
        main_lobe_direction=float(grid[peak_idx]),
        main_lobe_width=float(width),
        side_lobe_level=side_lobe,
        peak_value=peak_value,
    )


def analyze_weights(
    weights: np.ndarray,
    geometry: ArrayGeometry,
    num_points: int = DEFAULT_GRID_POINTS,
) -> PatternAnalysis:
    """Compute and analyze the beam pattern of a weight vector"""
    grid, pattern = compute_beam_pattern(weights, geometry, num_points)
    return analyze_beam_pattern(pattern, grid)
