"""
ESPRIT and TLS-ESPRIT DOA Estimators

Exploits the shift invariance between the two maximally overlapping
(M-1)-element sub-arrays of a ULA. With Us the signal subspace,

    Us1 = Us[0:M-1, :],   Us2 = Us[1:M, :],   Us2 ~= Us1 Psi

and the eigenvalues of the K x K rotation operator Psi are e^{j 2 pi d sin(theta_k)}.

- ESPRIT solves for Psi by least squares, which attributes all error to Us2.
- TLS-ESPRIT fits [Us1 | Us2] jointly through its right singular vectors,
  accounting for error in both sub-arrays; more robust at low SNR.

A singular normal matrix (LS) or singular V22 block (TLS) yields a result
flagged degenerate with NaN angles instead of placeholder angles.

References:
- R. Roy and T. Kailath, "ESPRIT - Estimation of Signal Parameters via
  Rotational Invariance Techniques"
"""

import numpy as np
from scipy import linalg
from typing import Optional, Tuple
import logging

from .geometry import ArrayGeometry
from .subspace import decompose
from .estimator import DOAEstimator, AngleEstimate
from .errors import InvalidArrayConfig, DecompositionFailed

logger = logging.getLogger(__name__)


def split_subarrays(signal_subspace: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Overlapping sub-array blocks shifted by one element"""
    return signal_subspace[:-1, :], signal_subspace[1:, :]


class ESPRITEstimator(DOAEstimator):
    """
    Least-squares ESPRIT for a uniform linear array

    Angles are returned in eigenvalue order (unsorted); compute_rmse sorts
    both sides before pairing.
    """

    name = "ESPRIT"

    def __init__(
        self,
        geometry: ArrayGeometry,
        num_sources: int = 1,
        forward_backward: bool = False,
        singular_tol: float = 1e-10,
    ):
        if geometry.num_elements < 2:
            raise InvalidArrayConfig(
                f"{self.name} needs at least 2 elements for two sub-arrays, "
                f"got {geometry.num_elements}"
            )
        super().__init__(geometry, num_sources, forward_backward)
        self.singular_tol = singular_tol

        logger.info(
            f"{type(self).__name__} initialized: M={geometry.num_elements}, K={self.num_sources}"
        )

    def _is_singular(self, matrix: np.ndarray) -> bool:
        # Both candidate matrices are built from orthonormal bases, so their
        # singular values lie in [0, 1] and an absolute tolerance applies.
        if not np.all(np.isfinite(matrix)):
            return True
        singular_values = linalg.svdvals(matrix)
        return singular_values.size == 0 or singular_values[-1] <= self.singular_tol

    def rotation_operator(self, us1: np.ndarray, us2: np.ndarray) -> Optional[np.ndarray]:
        """
        Solve Us2 ~= Us1 Psi by least squares

        Psi = (Us1^H Us1)^-1 Us1^H Us2

        Returns:
            Psi (K, K), or None when Us1^H Us1 is not invertible
        """
        gram = us1.conj().T @ us1
        if self._is_singular(gram):
            return None
        try:
            return linalg.solve(gram, us1.conj().T @ us2, assume_a="her")
        except linalg.LinAlgError:
            return None

    def angles_from_rotation(self, psi: np.ndarray) -> np.ndarray:
        """theta_k = asin(clip(arg(lambda_k) / (2 pi d), -1, 1))"""
        try:
            eig_vals = linalg.eigvals(psi)
        except linalg.LinAlgError as e:
            raise DecompositionFailed(f"rotation operator eigensolve failed: {e}") from e

        sin_theta = np.angle(eig_vals) / (2 * np.pi * self.geometry.element_spacing)
        return np.arcsin(np.clip(sin_theta, -1, 1))

    def estimate_from_subspace(self, signal_subspace: np.ndarray) -> Tuple[np.ndarray, bool]:
        """
        Estimate angles from an (M, K) signal subspace

        Returns:
            (angles, degenerate); angles are NaN when degenerate
        """
        us1, us2 = split_subarrays(signal_subspace)
        psi = self.rotation_operator(us1, us2)

        if psi is None:
            logger.warning(f"{self.name}: rotation operator is singular, result flagged degenerate")
            return np.full(signal_subspace.shape[1], np.nan), True

        return self.angles_from_rotation(psi), False

    def estimate_from_covariance(self, covariance: np.ndarray) -> AngleEstimate:
        decomposition = decompose(self.check_covariance(covariance), self.num_sources)
        angles, degenerate = self.estimate_from_subspace(decomposition.signal_subspace)

        logger.debug(f"{self.name} estimate: {np.degrees(angles)} deg")

        return AngleEstimate(
            angles_rad=angles,
            method=self.name,
            eigenvalues=decomposition.eigenvalues,
            degenerate=degenerate,
        )

    def estimate(self, snapshots: np.ndarray) -> AngleEstimate:
        return self.estimate_from_covariance(self.covariance(snapshots))


class TLSESPRITEstimator(ESPRITEstimator):
    """
    Total-least-squares ESPRIT

    Stacks C = [Us1 | Us2] ((M-1) x 2K) and takes its right singular vectors
    V = [[V11, V12], [V21, V22]]; the columns belonging to the K smallest
    singular values span the joint null-space fit, giving Psi = -V12 V22^-1.
    """

    name = "TLS-ESPRIT"

    def rotation_operator(self, us1: np.ndarray, us2: np.ndarray) -> Optional[np.ndarray]:
        K = us1.shape[1]
        stacked = np.hstack([us1, us2])

        try:
            _, _, vh = linalg.svd(stacked, full_matrices=True)
        except linalg.LinAlgError as e:
            raise DecompositionFailed(f"TLS-ESPRIT SVD failed: {e}") from e

        V = vh.conj().T
        v12 = V[:K, K:]
        v22 = V[K:, K:]

        if self._is_singular(v22):
            return None
        try:
            return -v12 @ linalg.inv(v22)
        except linalg.LinAlgError:
            return None
