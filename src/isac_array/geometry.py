"""
Uniform Linear Array Geometry and Array Manifold

The array manifold of an M-element ULA with spacing d (in wavelengths):

    a(theta) = [1, e^{j phi}, ..., e^{j (M-1) phi}]^T,   phi = 2 pi d sin(theta)

Steering vectors are recomputed on demand from the immutable geometry; they
are never cached on shared objects.
"""

import numpy as np
from dataclasses import dataclass
from typing import Sequence, Union

from .errors import InvalidArrayConfig

DEFAULT_GRID_POINTS = 360


@dataclass(frozen=True)
class ArrayGeometry:
    """Immutable ULA description"""
    num_elements: int                     # M
    element_spacing: float = 0.5          # d, wavelengths

    def __post_init__(self):
        if int(self.num_elements) != self.num_elements or self.num_elements <= 0:
            raise InvalidArrayConfig(
                f"num_elements must be a positive integer, got {self.num_elements}"
            )
        if not np.isfinite(self.element_spacing) or self.element_spacing <= 0:
            raise InvalidArrayConfig(
                f"element_spacing must be positive, got {self.element_spacing}"
            )

    @property
    def element_indices(self) -> np.ndarray:
        return np.arange(self.num_elements)

    def spatial_frequency(self, theta: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
        """Inter-element phase shift phi = 2 pi d sin(theta)"""
        return 2 * np.pi * self.element_spacing * np.sin(theta)

    def steering_vector(self, theta: float) -> np.ndarray:
        """
        Compute the array manifold vector for one direction

        Args:
            theta: Angle of arrival in radians, measured from broadside

        Returns:
            Complex vector of shape (num_elements,), unit-modulus entries
        """
        phi = self.spatial_frequency(theta)
        return np.exp(1j * phi * self.element_indices)

    def steering_matrix(self, thetas: Sequence[float]) -> np.ndarray:
        """Steering vectors for a set of angles, stacked as columns (M, G)"""
        thetas = np.asarray(thetas, dtype=float).reshape(-1)
        phi = self.spatial_frequency(thetas)
        return np.exp(1j * np.outer(self.element_indices, phi))


def steering_vector(geometry: ArrayGeometry, theta: float) -> np.ndarray:
    """Module-level shorthand for ArrayGeometry.steering_vector"""
    return geometry.steering_vector(theta)


def angle_grid(num_points: int = DEFAULT_GRID_POINTS) -> np.ndarray:
    """
    Uniform search grid over [-pi/2, pi/2)

    Point i sits at -pi/2 + i * pi / num_points, so the default grid has a
    resolution of pi/360 rad (half a degree).
    """
    if num_points <= 0:
        raise InvalidArrayConfig(f"num_points must be positive, got {num_points}")
    return -np.pi / 2 + np.arange(num_points) * np.pi / num_points


def grid_resolution(num_points: int = DEFAULT_GRID_POINTS) -> float:
    return np.pi / num_points
