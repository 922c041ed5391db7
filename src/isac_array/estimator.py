"""
Direction-of-Arrival Estimator Interface

Every DOA method (MUSIC, ESPRIT, TLS-ESPRIT) implements one capability:

    estimate(snapshots) -> AngleEstimate

so callers swap estimators by swapping objects, never by branching on a
method name.
"""

import numpy as np
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Dict, Any, Union
from enum import Enum
import logging

from .geometry import ArrayGeometry, DEFAULT_GRID_POINTS
from .covariance import as_snapshot_matrix, sample_covariance
from .subspace import validate_source_count
from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class EstimationMethod(Enum):
    """DOA estimation method"""
    MUSIC = "music"                       # Noise-subspace spectral search
    ESPRIT = "esprit"                     # Least-squares rotational invariance
    TLS_ESPRIT = "tls_esprit"             # Total-least-squares rotational invariance


@dataclass
class DOAConfig:
    """DOA estimation configuration"""
    num_sources: int = 1                  # K
    method: Union[EstimationMethod, str] = EstimationMethod.MUSIC

    # MUSIC search grid
    num_grid_points: int = DEFAULT_GRID_POINTS
    spectrum_floor: float = 1e-10         # Denominator floor
    spectrum_sentinel: float = 1e10       # Value used below the floor

    # Covariance
    forward_backward: bool = False

    def __post_init__(self):
        if not isinstance(self.method, EstimationMethod):
            try:
                self.method = EstimationMethod(str(self.method).lower())
            except ValueError as e:
                raise ConfigurationError(f"Unknown estimation method: {self.method}") from e


@dataclass
class AngleEstimate:
    """DOA estimation result"""
    angles_rad: np.ndarray                # (K,) estimated angles
    method: str

    # Optional detailed results
    spectrum: Optional[np.ndarray] = None # MUSIC pseudo-spectrum on the search grid
    eigenvalues: Optional[np.ndarray] = None
    num_peaks_found: int = 0
    resolution_limited: bool = False      # Fewer spectral peaks than sources
    degenerate: bool = False              # Rotation solve was singular
    rmse: Optional[float] = None          # Set when ground truth is known

    @property
    def num_sources(self) -> int:
        return len(self.angles_rad)

    @property
    def angles_deg(self) -> np.ndarray:
        return np.degrees(self.angles_rad)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to dictionary for JSON serialization

        Non-finite angles (degenerate results) become None so the dict
        stays valid strict JSON.
        """
        result = {
            "method": self.method,
            "estimated_angles": [float(a) if np.isfinite(a) else None for a in self.angles_rad],
            "degenerate": self.degenerate,
            "resolution_limited": self.resolution_limited,
        }
        if self.spectrum is not None:
            result["spectrum"] = [float(p) for p in self.spectrum]
        if self.rmse is not None:
            result["rmse"] = float(self.rmse)
        return result


class DOAEstimator(ABC):
    """
    Base class for subspace DOA estimators on a ULA

    Subclasses implement estimate(). Estimators hold only immutable
    configuration, so one instance may serve concurrent callers.
    """

    name = "DOA"

    def __init__(self, geometry: ArrayGeometry, num_sources: int = 1, forward_backward: bool = False):
        validate_source_count(num_sources, geometry.num_elements)
        self.geometry = geometry
        self.num_sources = int(num_sources)
        self.forward_backward = forward_backward

    @property
    def num_elements(self) -> int:
        return self.geometry.num_elements

    @abstractmethod
    def estimate(self, snapshots: np.ndarray) -> AngleEstimate:
        """
        Estimate directions of arrival from received snapshots

        Args:
            snapshots: Received signal matrix (num_elements, num_snapshots)

        Returns:
            AngleEstimate with num_sources angles
        """

    def covariance(self, snapshots: np.ndarray) -> np.ndarray:
        X = as_snapshot_matrix(snapshots)
        if X.shape[0] != self.num_elements:
            raise ConfigurationError(
                f"signal dimension mismatch: expected {self.num_elements} antennas, "
                f"got {X.shape[0]}"
            )
        return sample_covariance(X, forward_backward=self.forward_backward)

    def check_covariance(self, covariance: np.ndarray) -> np.ndarray:
        """Reject covariance matrices that do not describe this array"""
        C = np.asarray(covariance)
        M = self.num_elements
        if C.shape != (M, M):
            raise ConfigurationError(
                f"covariance dimension mismatch: expected {M}x{M}, got shape {C.shape}"
            )
        return C

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(M={self.num_elements}, "
            f"d={self.geometry.element_spacing}, K={self.num_sources})"
        )
