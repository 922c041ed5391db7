"""
Pytest configuration and shared fixtures for the array engine tests.

Provides:
- Array geometry and configuration fixtures
- Seeded snapshot generators for DOA scenarios
- Estimator, synthesizer and optimizer fixtures
"""

import pytest
import numpy as np
from typing import Sequence
import sys
import os

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from isac_array.geometry import ArrayGeometry
from isac_array.estimator import DOAConfig, EstimationMethod
from isac_array.music import MUSICEstimator
from isac_array.esprit import ESPRITEstimator, TLSESPRITEstimator
from isac_array.evaluation import SignalGenerator
from isac_array.weights import WeightSynthesizer
from isac_array.optimizer import AdaptiveOptimizer, OptimizerConfig
from isac_array.engine import ArrayEngine


# ==============================================================================
# Configuration Fixtures
# ==============================================================================

@pytest.fixture
def small_array() -> ArrayGeometry:
    """8-element half-wavelength ULA."""
    return ArrayGeometry(num_elements=8)


@pytest.fixture
def medium_array() -> ArrayGeometry:
    """16-element half-wavelength ULA."""
    return ArrayGeometry(num_elements=16)


@pytest.fixture
def large_array() -> ArrayGeometry:
    """64-element half-wavelength ULA."""
    return ArrayGeometry(num_elements=64)


@pytest.fixture
def three_source_config() -> DOAConfig:
    """Three-source ESPRIT configuration."""
    return DOAConfig(num_sources=3, method=EstimationMethod.ESPRIT)


@pytest.fixture
def default_optimizer_config() -> OptimizerConfig:
    """Default optimizer configuration."""
    return OptimizerConfig()


# ==============================================================================
# Component Fixtures
# ==============================================================================

@pytest.fixture
def music_estimator(small_array) -> MUSICEstimator:
    """Single-source MUSIC on the 8-element array."""
    return MUSICEstimator(small_array, num_sources=1)


@pytest.fixture
def esprit_estimator(medium_array) -> ESPRITEstimator:
    """Three-source ESPRIT on the 16-element array."""
    return ESPRITEstimator(medium_array, num_sources=3)


@pytest.fixture
def tls_esprit_estimator(medium_array) -> TLSESPRITEstimator:
    """Three-source TLS-ESPRIT on the 16-element array."""
    return TLSESPRITEstimator(medium_array, num_sources=3)


@pytest.fixture
def synthesizer(small_array) -> WeightSynthesizer:
    """Weight synthesizer for the 8-element array."""
    return WeightSynthesizer(small_array)


@pytest.fixture
def optimizer(default_optimizer_config) -> AdaptiveOptimizer:
    """Adaptive optimizer with default settings."""
    return AdaptiveOptimizer(default_optimizer_config)


@pytest.fixture
def engine(medium_array, three_source_config) -> ArrayEngine:
    """Engine on the 16-element array configured for three sources."""
    return ArrayEngine(medium_array, three_source_config)


# ==============================================================================
# Signal Generators
# ==============================================================================

class SnapshotFactory:
    """Build seeded snapshot matrices for DOA scenarios."""

    @staticmethod
    def generate(
        geometry: ArrayGeometry,
        angles_deg: Sequence[float],
        snr_db: float,
        num_snapshots: int = 256,
        seed: int = 42
    ) -> np.ndarray:
        """
        Generate snapshots from sources at the given directions.

        Args:
            geometry: Array geometry
            angles_deg: Source directions in degrees
            snr_db: Per-source SNR in dB (inf for noiseless)
            num_snapshots: Number of snapshots
            seed: Random seed

        Returns:
            Snapshot matrix (num_elements, num_snapshots)
        """
        generator = SignalGenerator(geometry, seed=seed)
        return generator.generate(np.radians(angles_deg), snr_db, num_snapshots)

    @staticmethod
    def single_element_energy(num_elements: int, num_snapshots: int = 64, seed: int = 0) -> np.ndarray:
        """
        Snapshots with energy only on the last element.

        The dominant eigenvector is e_M, so the first sub-array block of the
        signal subspace is identically zero.
        """
        rng = np.random.default_rng(seed)
        X = np.zeros((num_elements, num_snapshots), dtype=complex)
        X[-1] = rng.standard_normal(num_snapshots) + 1j * rng.standard_normal(num_snapshots)
        return X


@pytest.fixture
def snapshot_factory() -> SnapshotFactory:
    """Snapshot factory."""
    return SnapshotFactory()


@pytest.fixture
def seeded_generator(medium_array) -> SignalGenerator:
    """Seeded signal generator on the 16-element array."""
    return SignalGenerator(medium_array, seed=1234)


# ==============================================================================
# Pytest Configuration
# ==============================================================================

def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "performance: marks tests as performance benchmarks"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )


def pytest_collection_modifyitems(config, items):
    """Modify test collection based on markers."""
    if config.getoption("-m"):
        # If marker specified, use default behavior
        return

    # Add skip marker to slow tests by default
    skip_slow = pytest.mark.skip(reason="slow test - use -m slow to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)
