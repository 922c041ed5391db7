"""
Sample Covariance Estimation

C = (1/N) X X^H for an M x N snapshot matrix, re-symmetrised so that
C[i, j] == conj(C[j, i]) holds exactly despite rounding. Fewer snapshots than
elements yields a rank-deficient estimate; that is reported through
effective_rank() rather than treated as an error.
"""

import numpy as np
from scipy import linalg
import logging
from typing import Optional

from .errors import ConfigurationError, NumericalError

logger = logging.getLogger(__name__)


def as_snapshot_matrix(snapshots) -> np.ndarray:
    """Validate and return a complex (M, N) view of the input snapshots"""
    X = np.asarray(snapshots)
    if X.ndim == 1:
        X = X.reshape(-1, 1)
    if X.ndim != 2:
        raise ConfigurationError(f"snapshot matrix must be 2-D (M, N), got shape {X.shape}")
    if X.shape[0] == 0 or X.shape[1] == 0:
        raise ConfigurationError(f"snapshot matrix is empty: shape {X.shape}")
    if not np.all(np.isfinite(X)):
        raise NumericalError("snapshot matrix contains NaN or Inf samples")
    return X.astype(complex, copy=False)


def sample_covariance(snapshots, forward_backward: bool = False) -> np.ndarray:
    """
    Compute the Hermitian sample covariance matrix

    Args:
        snapshots: Received samples (num_elements, num_snapshots)
        forward_backward: Apply forward-backward averaging (C + J C* J) / 2

    Returns:
        Covariance matrix (num_elements, num_elements)
    """
    X = as_snapshot_matrix(snapshots)
    M, N = X.shape

    R = X @ X.conj().T / N
    R = (R + R.conj().T) / 2

    if forward_backward:
        J = np.fliplr(np.eye(M))
        R = (R + J @ R.conj() @ J) / 2

    if N < M:
        logger.debug(f"Rank-deficient covariance: {N} snapshots for {M} elements")

    return R


def effective_rank(covariance: np.ndarray, tol: Optional[float] = None) -> int:
    """Numerical rank of a covariance estimate from its eigenvalues"""
    eigenvalues = linalg.eigvalsh(covariance)
    largest = np.max(np.abs(eigenvalues)) if eigenvalues.size else 0.0
    if tol is None:
        tol = largest * covariance.shape[0] * np.finfo(float).eps
    return int(np.sum(eigenvalues > tol))


def diagonal_loading(covariance: np.ndarray, loading: float = 1e-3) -> np.ndarray:
    """
    Regularise a covariance matrix by adding a scaled identity

    The load is relative to the average element power, tr(C) / M, so the
    same factor works regardless of signal scale.
    """
    if loading < 0:
        raise ConfigurationError(f"loading must be non-negative, got {loading}")
    M = covariance.shape[0]
    level = np.real(np.trace(covariance)) / M
    if level <= 0:
        level = 1.0
    return covariance + loading * level * np.eye(M)


def is_hermitian(matrix: np.ndarray, atol: float = 1e-10) -> bool:
    return matrix.ndim == 2 and matrix.shape[0] == matrix.shape[1] and np.allclose(
        matrix, matrix.conj().T, atol=atol
    )
