"""
Signal / Noise Subspace Decomposition

Eigendecomposes a Hermitian covariance matrix with a dense LAPACK solver
(scipy.linalg.eigh), orders the eigenpairs by descending eigenvalue and
splits the eigenvectors into a K-dimensional signal subspace and an
(M-K)-dimensional noise subspace.

Also provides information-theoretic source-count detection (MDL / AIC)
for callers that do not know K in advance.

References:
- M. Wax and T. Kailath, "Detection of signals by information theoretic
  criteria"
"""

import numpy as np
from scipy import linalg
from dataclasses import dataclass
import logging

from .errors import InvalidSourceCount, DecompositionFailed, ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class EigenDecomposition:
    """Eigenpairs sorted by descending eigenvalue, split at num_sources"""
    eigenvalues: np.ndarray               # (M,) real, descending
    eigenvectors: np.ndarray              # (M, M) columns match eigenvalues
    num_sources: int                      # K

    @property
    def num_elements(self) -> int:
        return self.eigenvectors.shape[0]

    @property
    def signal_subspace(self) -> np.ndarray:
        """Top-K eigenvectors (M, K)"""
        return self.eigenvectors[:, :self.num_sources]

    @property
    def noise_subspace(self) -> np.ndarray:
        """Remaining M-K eigenvectors (M, M-K)"""
        return self.eigenvectors[:, self.num_sources:]

    @property
    def signal_eigenvalues(self) -> np.ndarray:
        return self.eigenvalues[:self.num_sources]

    @property
    def noise_eigenvalues(self) -> np.ndarray:
        return self.eigenvalues[self.num_sources:]

    def noise_projector(self) -> np.ndarray:
        """Un Un^H"""
        En = self.noise_subspace
        return En @ En.conj().T

    def snr_estimate_db(self) -> float:
        """Rough SNR from mean signal vs. mean noise eigenvalue"""
        noise_power = np.mean(self.noise_eigenvalues)
        signal_power = np.mean(self.signal_eigenvalues)
        return float(10 * np.log10(max(signal_power, 1e-20) / max(noise_power, 1e-20)))


def validate_source_count(num_sources: int, num_elements: int):
    if int(num_sources) != num_sources or not 0 < num_sources < num_elements:
        raise InvalidSourceCount(
            f"num_sources must satisfy 0 < K < M={num_elements}, got {num_sources}"
        )


def eigh_descending(matrix: np.ndarray):
    """
    Hermitian eigendecomposition with deterministic descending order

    Equal eigenvalues keep their original (ascending-solver) index order,
    so repeated runs on the same matrix yield the same basis.
    """
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise ConfigurationError(f"covariance must be square, got shape {matrix.shape}")
    if not np.all(np.isfinite(matrix)):
        raise DecompositionFailed("covariance contains NaN or Inf entries")

    try:
        eigenvalues, eigenvectors = linalg.eigh(matrix)
    except (linalg.LinAlgError, ValueError) as e:
        raise DecompositionFailed(f"Hermitian eigensolver failed: {e}") from e

    idx = np.argsort(-eigenvalues, kind="stable")
    return eigenvalues[idx], eigenvectors[:, idx]


def decompose(covariance: np.ndarray, num_sources: int) -> EigenDecomposition:
    """
    Split a covariance matrix into signal and noise subspaces

    Args:
        covariance: Hermitian covariance (M, M)
        num_sources: Signal subspace dimension K, 0 < K < M

    Returns:
        EigenDecomposition with eigenpairs sorted descending
    """
    M = covariance.shape[0]
    validate_source_count(num_sources, M)

    eigenvalues, eigenvectors = eigh_descending(covariance)

    logger.debug(
        f"Decomposed {M}x{M} covariance: K={num_sources}, "
        f"lambda_max={eigenvalues[0]:.3e}, lambda_min={eigenvalues[-1]:.3e}"
    )

    return EigenDecomposition(
        eigenvalues=eigenvalues,
        eigenvectors=eigenvectors,
        num_sources=int(num_sources),
    )


def estimate_num_sources(eigenvalues: np.ndarray, num_snapshots: int, criterion: str = "mdl") -> int:
    """
    Estimate the number of sources using MDL or AIC

    Args:
        eigenvalues: Covariance eigenvalues (any order)
        num_snapshots: Number of snapshots N used to form the covariance
        criterion: "mdl" or "aic"

    Returns:
        Estimated source count in [0, M-1]
    """
    if criterion not in ("mdl", "aic"):
        raise ConfigurationError(f"Unknown criterion: {criterion}. Use 'mdl' or 'aic'.")

    eigenvalues = np.sort(np.maximum(np.real(eigenvalues), 1e-12))[::-1]
    M = len(eigenvalues)
    N = num_snapshots

    criteria = []
    for k in range(M):
        noise_eigs = eigenvalues[k:]
        geo_mean = np.exp(np.mean(np.log(noise_eigs)))
        arith_mean = np.mean(noise_eigs)
        log_ratio = np.log(geo_mean / arith_mean)

        if criterion == "mdl":
            penalty = 0.5 * k * (2 * M - k) * np.log(N)
            criteria.append(-N * (M - k) * log_ratio + penalty)
        else:
            penalty = k * (2 * M - k)
            criteria.append(-2 * N * (M - k) * log_ratio + 2 * penalty)

    return int(np.argmin(criteria))
