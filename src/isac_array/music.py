"""
MUSIC (Multiple Signal Classification) DOA Estimator

Builds the pseudo-spectrum

    P(theta) = 1 / (a(theta)^H Un Un^H a(theta))

from the noise subspace Un and peak-searches it on a uniform grid over
[-pi/2, pi/2). When fewer strict local maxima exist than requested sources
the missing slots are filled with evenly spaced fallback angles and the
result is flagged as resolution-limited.

References:
- R. Schmidt, "Multiple emitter location and signal parameter estimation"
"""

import numpy as np
from typing import Optional
import logging

from .geometry import ArrayGeometry, angle_grid, DEFAULT_GRID_POINTS
from .subspace import decompose, validate_source_count
from .estimator import DOAEstimator, AngleEstimate

logger = logging.getLogger(__name__)


PEAK_RTOL = 1e-9


def find_spectrum_peaks(spectrum: np.ndarray, num_peaks: int, rtol: float = PEAK_RTOL) -> np.ndarray:
    """
    Find the strongest strict local maxima of a 1D spectrum

    Only interior points that exceed both neighbours by more than
    rtol * max(spectrum) count, so rounding ripple on a flat spectrum
    is not reported as a peak. Peaks are ordered by descending value;
    equal values keep the lower grid index first.

    Returns:
        Grid indices of at most num_peaks peaks
    """
    spectrum = np.asarray(spectrum, dtype=float)
    if len(spectrum) < 3:
        return np.array([], dtype=int)

    margin = rtol * np.max(np.abs(spectrum))
    centre = spectrum[1:-1]
    is_peak = (centre > spectrum[:-2] + margin) & (centre > spectrum[2:] + margin)
    indices = np.nonzero(is_peak)[0] + 1

    order = np.lexsort((indices, -spectrum[indices]))
    return indices[order][:num_peaks]


def fallback_angles(num_sources: int) -> np.ndarray:
    """Evenly spaced placeholder angles used when the spectrum runs out of peaks"""
    return -np.pi / 4 + np.arange(num_sources) * np.pi / (2 * num_sources)


def spectrum_db(spectrum: np.ndarray) -> np.ndarray:
    """Pseudo-spectrum in dB relative to its maximum"""
    spectrum = np.asarray(spectrum, dtype=float)
    return 10 * np.log10(spectrum / (spectrum.max() + 1e-30) + 1e-30)


class MUSICEstimator(DOAEstimator):
    """
    MUSIC estimator for a uniform linear array

    The search grid has num_points samples over [-pi/2, pi/2) so the
    grid resolution is pi/num_points.
    """

    name = "MUSIC"

    def __init__(
        self,
        geometry: ArrayGeometry,
        num_sources: int = 1,
        num_points: int = DEFAULT_GRID_POINTS,
        floor: float = 1e-10,
        sentinel: float = 1e10,
        forward_backward: bool = False,
    ):
        super().__init__(geometry, num_sources, forward_backward)
        self.num_points = num_points
        self.floor = floor
        self.sentinel = sentinel
        self.search_grid = angle_grid(num_points)

        logger.info(
            f"MUSICEstimator initialized: M={geometry.num_elements}, "
            f"K={self.num_sources}, grid={num_points} points"
        )

    def compute_spectrum(
        self,
        covariance: np.ndarray,
        search_angles: Optional[np.ndarray] = None,
        num_sources: Optional[int] = None,
    ) -> np.ndarray:
        """
        Compute the MUSIC pseudo-spectrum

        Args:
            covariance: Hermitian covariance (M, M)
            search_angles: Angles in radians (defaults to the estimator grid)
            num_sources: Signal subspace dimension (defaults to the estimator's K)

        Returns:
            Pseudo-spectrum, one value per search angle
        """
        if search_angles is None:
            search_angles = self.search_grid
        covariance = self.check_covariance(covariance)
        K = self.num_sources if num_sources is None else num_sources
        validate_source_count(K, self.num_elements)

        decomposition = decompose(covariance, K)
        return self._spectrum_from_noise_subspace(decomposition.noise_subspace, search_angles)

    def _spectrum_from_noise_subspace(self, noise_subspace: np.ndarray, search_angles) -> np.ndarray:
        A = self.geometry.steering_matrix(search_angles)
        projected = noise_subspace.conj().T @ A
        denom = np.sum(np.abs(projected) ** 2, axis=0)

        spectrum = np.full(denom.shape, self.sentinel, dtype=float)
        usable = denom >= self.floor
        spectrum[usable] = 1.0 / denom[usable]
        return spectrum

    def estimate_from_covariance(self, covariance: np.ndarray) -> AngleEstimate:
        """Estimate DOAs from a precomputed covariance matrix"""
        K = self.num_sources
        decomposition = decompose(self.check_covariance(covariance), K)
        spectrum = self._spectrum_from_noise_subspace(decomposition.noise_subspace, self.search_grid)

        peaks = find_spectrum_peaks(spectrum, K)
        angles = np.empty(K)
        angles[:len(peaks)] = self.search_grid[peaks]

        resolution_limited = len(peaks) < K
        if resolution_limited:
            angles[len(peaks):] = fallback_angles(K)[len(peaks):]
            logger.warning(
                f"MUSIC resolution limit: {len(peaks)} peaks for {K} sources, "
                f"padded with fallback angles"
            )

        logger.debug(f"MUSIC estimate: {np.degrees(angles)} deg")

        return AngleEstimate(
            angles_rad=angles,
            method=self.name,
            spectrum=spectrum,
            eigenvalues=decomposition.eigenvalues,
            num_peaks_found=len(peaks),
            resolution_limited=resolution_limited,
        )

    def estimate(self, snapshots: np.ndarray) -> AngleEstimate:
        return self.estimate_from_covariance(self.covariance(snapshots))
