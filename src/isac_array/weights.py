"""
Closed-Form Beamforming Weight Synthesis

Weights multiply the element signals directly (y = sum_n w_n x_n), so the
array response toward theta is r(theta) = sum_n w_n a_n(theta). Under this
convention the matched filter is w = conj(a(theta)).

Implements:
- Conjugate (matched-filter) beamforming toward one direction
- Multi-target superposition (exposed as zero_forcing)
- MVDR / Capon beamforming from a covariance matrix
- Phase extraction and finite-resolution phase quantization for phase shifters

References:
- J. Capon, "High-resolution frequency-wavenumber spectrum analysis"
"""

import numpy as np
from scipy import linalg
from typing import Sequence
import logging

from .geometry import ArrayGeometry
from .errors import ConfigurationError, NumericalError, SingularCovariance

logger = logging.getLogger(__name__)


def normalize(weights: np.ndarray, power: float = 1.0) -> np.ndarray:
    """Scale weights to the given total power (unit l2 norm by default)"""
    norm = np.linalg.norm(weights)
    if not np.isfinite(norm) or norm == 0:
        raise NumericalError("cannot normalize a zero or non-finite weight vector")
    return weights * np.sqrt(power) / norm


def array_response(weights: np.ndarray, steering: np.ndarray) -> complex:
    """r = sum_n w_n a_n"""
    return complex(np.sum(weights * steering))


class WeightSynthesizer:
    """Closed-form beamformers for a uniform linear array"""

    def __init__(self, geometry: ArrayGeometry, singular_rtol: float = 1e-12):
        self.geometry = geometry
        self.singular_rtol = singular_rtol

    @property
    def num_elements(self) -> int:
        return self.geometry.num_elements

    def conjugate_beamforming(self, target_angle: float) -> np.ndarray:
        """Matched filter toward one direction: w = conj(a(theta)) / ||a||"""
        return normalize(np.conj(self.geometry.steering_vector(target_angle)))

    def zero_forcing(self, target_angles: Sequence[float]) -> np.ndarray:
        """
        Spread energy across several target directions

        w is proportional to conj(sum_k a(theta_k)).
        """
        target_angles = np.asarray(target_angles, dtype=float).reshape(-1)
        if target_angles.size == 0:
            raise ConfigurationError("zero_forcing needs at least one target angle")

        combined = self.geometry.steering_matrix(target_angles).sum(axis=1)
        return normalize(np.conj(combined))

    def mvdr(self, covariance: np.ndarray, target_angle: float) -> np.ndarray:
        """
        Minimum Variance Distortionless Response weights

        w is proportional to conj(C^-1 a / (a^H C^-1 a)); the conjugate maps the
        classical y = w^H x form onto this module's y = sum w_n x_n convention.

        Raises:
            SingularCovariance: C is singular or numerically rank deficient.
                Regularise (e.g. covariance.diagonal_loading) before calling.
        """
        covariance = np.asarray(covariance, dtype=complex)
        M = self.num_elements
        if covariance.shape != (M, M):
            raise ConfigurationError(
                f"covariance must be {M}x{M}, got {covariance.shape}"
            )
        if not np.all(np.isfinite(covariance)):
            raise SingularCovariance("covariance contains NaN or Inf entries")

        singular_values = linalg.svdvals(covariance)
        if singular_values[0] == 0 or singular_values[-1] <= singular_values[0] * self.singular_rtol:
            raise SingularCovariance(
                f"covariance is singular (condition ~ "
                f"{singular_values[0] / max(singular_values[-1], 1e-300):.2e}); apply diagonal loading"
            )

        a = self.geometry.steering_vector(target_angle)
        try:
            c_inv_a = linalg.solve(covariance, a, assume_a="her")
        except linalg.LinAlgError as e:
            raise SingularCovariance(f"covariance inversion failed: {e}") from e

        denom = np.real(np.vdot(a, c_inv_a))
        if denom <= 0:
            raise SingularCovariance("a^H C^-1 a is not positive; covariance is not positive definite")

        return normalize(np.conj(c_inv_a / denom))

    @staticmethod
    def phase_extraction(weights: np.ndarray) -> np.ndarray:
        """Per-element phase wrapped into [0, 2 pi)"""
        phases = np.mod(np.angle(weights), 2 * np.pi)
        # mod can return exactly 2 pi for tiny negative angles
        phases[phases >= 2 * np.pi] = 0.0
        return phases

    @staticmethod
    def phase_quantization(phases: np.ndarray, bits: int) -> np.ndarray:
        """
        Round phases to the nearest of 2^bits levels spanning [0, 2 pi)

        bits=0 leaves a single level, so every phase collapses to 0.
        """
        if int(bits) != bits or bits < 0:
            raise ConfigurationError(f"bits must be a non-negative integer, got {bits}")

        step = 2 * np.pi / (2 ** int(bits))
        levels = np.round(np.asarray(phases, dtype=float) / step)
        quantized = np.mod(levels * step, 2 * np.pi)
        quantized[np.isclose(quantized, 2 * np.pi)] = 0.0
        return quantized

    def weights_from_phases(self, phases: np.ndarray) -> np.ndarray:
        """Unit-modulus phase-shifter weights, normalized to unit power"""
        phases = np.asarray(phases, dtype=float)
        if phases.shape != (self.num_elements,):
            raise ConfigurationError(
                f"expected {self.num_elements} phases, got shape {phases.shape}"
            )
        return normalize(np.exp(1j * phases))

    def quantized_weights(self, weights: np.ndarray, bits: int) -> np.ndarray:
        """Phase-only weights after quantizing each element's phase"""
        quantized = self.phase_quantization(self.phase_extraction(weights), bits)
        logger.debug(f"Quantized {len(quantized)} element phases to {bits} bits")
        return self.weights_from_phases(quantized)
