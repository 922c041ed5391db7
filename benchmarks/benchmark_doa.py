"""
Latency and accuracy benchmarks for the array engine

Sweeps:
- per-estimator latency as the array grows (MUSIC, ESPRIT, TLS-ESPRIT)
- angle RMSE against SNR, every estimator fed the same snapshots
- adaptive optimizer run time from random starting weights

Usage:
    python benchmarks/benchmark_doa.py
"""

import gc
import json
import statistics
import sys
import time
import tracemalloc
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from isac_array.geometry import ArrayGeometry
from isac_array.estimator import DOAConfig, EstimationMethod
from isac_array.engine import create_estimator
from isac_array.evaluation import SignalGenerator, compute_rmse
from isac_array.optimizer import AdaptiveOptimizer, BeamformingParams

SOURCE_ANGLES_DEG = [-30.0, 10.0, 45.0]
ELEMENT_COUNTS = [8, 16, 32, 64]
SNR_SWEEP_DB = [-5, 0, 5, 10, 15, 20, 25, 30]


def _timed(fn: Callable, *args) -> Tuple[Any, float]:
    """Call fn and return (result, elapsed milliseconds)"""
    t0 = time.perf_counter()
    out = fn(*args)
    return out, (time.perf_counter() - t0) * 1e3


def _rmse_deg(errors_rad: List[float]) -> Optional[float]:
    if not errors_rad:
        return None
    return float(np.degrees(np.sqrt(np.mean(np.square(errors_rad)))))


@dataclass
class EstimatorTiming:
    """Timings and errors gathered for one estimator on one array size"""
    label: str
    estimator: str
    num_elements: int
    timings_ms: List[float] = field(default_factory=list)
    errors_rad: List[float] = field(default_factory=list)   # degenerate trials skipped
    peak_alloc_mb: float = 0.0

    def latency_stats(self) -> Dict[str, float]:
        if not self.timings_ms:
            return {"median": 0.0, "p90": 0.0, "p99": 0.0, "avg": 0.0}
        p50, p90, p99 = np.percentile(self.timings_ms, [50, 90, 99])
        return {
            "median": round(float(p50), 4),
            "p90": round(float(p90), 4),
            "p99": round(float(p99), 4),
            "avg": round(statistics.fmean(self.timings_ms), 4),
        }

    @property
    def calls_per_second(self) -> float:
        elapsed_s = sum(self.timings_ms) / 1e3
        return len(self.timings_ms) / elapsed_s if elapsed_s > 0 else 0.0

    def as_record(self) -> Dict[str, Any]:
        rmse = _rmse_deg(self.errors_rad)
        return {
            "label": self.label,
            "estimator": self.estimator,
            "elements": self.num_elements,
            "trials": len(self.timings_ms),
            "latency_ms": self.latency_stats(),
            "calls_per_second": round(self.calls_per_second, 2),
            "angle_rmse_deg": None if rmse is None else round(rmse, 4),
            "peak_alloc_mb": round(self.peak_alloc_mb, 3),
        }

    def describe(self) -> str:
        stats = self.latency_stats()
        rmse = _rmse_deg(self.errors_rad)
        rmse_text = "n/a" if rmse is None else f"{rmse:.3f} deg"
        return (
            f"  M={self.num_elements:<3d} median {stats['median']:.3f} ms | "
            f"p99 {stats['p99']:.3f} ms | {self.calls_per_second:,.0f} calls/s | "
            f"rmse {rmse_text} | alloc {self.peak_alloc_mb:.2f} MB"
        )


class DOABenchmark:
    """Runs the benchmark sweeps and keeps their records"""

    def __init__(self, warmup: int = 20, trials: int = 100, num_snapshots: int = 256, seed: int = 0):
        self.warmup = warmup
        self.trials = trials
        self.num_snapshots = num_snapshots
        self.rng = np.random.default_rng(seed)
        self.records: List[EstimatorTiming] = []

    def _estimator(self, geometry: ArrayGeometry, method: EstimationMethod):
        return create_estimator(geometry, DOAConfig(num_sources=len(SOURCE_ANGLES_DEG), method=method))

    def latency_by_array_size(
        self,
        method: EstimationMethod,
        element_counts: List[int] = ELEMENT_COUNTS,
        snr_db: float = 20.0,
    ) -> List[EstimatorTiming]:
        """Time one estimator on growing arrays at a fixed SNR"""
        print(f"\n## {method.value} latency by array size")

        truth = np.radians(SOURCE_ANGLES_DEG)
        timings = []

        for num_elements in element_counts:
            geometry = ArrayGeometry(num_elements)
            estimator = self._estimator(geometry, method)
            generator = SignalGenerator(geometry, rng=self.rng)

            for _ in range(self.warmup):
                estimator.estimate(generator.generate(truth, snr_db, self.num_snapshots))

            record = EstimatorTiming(
                label=f"{method.value}-m{num_elements}",
                estimator=estimator.name,
                num_elements=num_elements,
            )

            gc.collect()
            tracemalloc.start()
            for _ in range(self.trials):
                X = generator.generate(truth, snr_db, self.num_snapshots)
                estimate, elapsed = _timed(estimator.estimate, X)
                record.timings_ms.append(elapsed)
                if not estimate.degenerate:
                    record.errors_rad.append(compute_rmse(estimate.angles_rad, truth))
            record.peak_alloc_mb = tracemalloc.get_traced_memory()[1] / 2 ** 20
            tracemalloc.stop()

            print(record.describe())
            timings.append(record)
            self.records.append(record)

        return timings

    def rmse_by_snr(self, snr_points: List[float] = SNR_SWEEP_DB, num_elements: int = 16) -> Dict[float, Dict[str, Optional[float]]]:
        """Angle RMSE per estimator, all estimators sharing each snapshot draw"""
        print(f"\n## angle RMSE by SNR (M={num_elements})")

        geometry = ArrayGeometry(num_elements)
        truth = np.radians(SOURCE_ANGLES_DEG)
        estimators = {m.value: self._estimator(geometry, m) for m in EstimationMethod}
        generator = SignalGenerator(geometry, rng=self.rng)

        table = {}
        for snr in snr_points:
            errors = {name: [] for name in estimators}
            for _ in range(self.trials):
                X = generator.generate(truth, snr, self.num_snapshots)
                for name, estimator in estimators.items():
                    estimate = estimator.estimate(X)
                    if not estimate.degenerate:
                        errors[name].append(compute_rmse(estimate.angles_rad, truth))

            row = {}
            for name, errs in errors.items():
                rmse = _rmse_deg(errs)
                row[name] = None if rmse is None else round(rmse, 4)
            table[float(snr)] = row

            cells = "  ".join(
                f"{name}={'n/a' if value is None else f'{value:.3f}'}" for name, value in row.items()
            )
            print(f"  {snr:+5.1f} dB  {cells}")

        return table

    def optimizer_runtime(self, element_counts: List[int] = ELEMENT_COUNTS, max_iterations: int = 100) -> Dict[int, Dict[str, float]]:
        """Adaptive optimizer run time from random starting weights"""
        print("\n## adaptive optimizer run time")

        optimizer = AdaptiveOptimizer()
        table = {}

        for num_elements in element_counts:
            run_ms = []
            steps = []
            for _ in range(self.trials):
                start = self.rng.standard_normal(num_elements) + 1j * self.rng.standard_normal(num_elements)
                params = BeamformingParams(
                    element_count=num_elements,
                    target_direction=float(self.rng.uniform(-np.pi / 3, np.pi / 3)),
                    snr_threshold=0.9 * np.sqrt(num_elements),
                    max_iterations=max_iterations,
                    initial_weights=start,
                )
                result, elapsed = _timed(optimizer.optimize, params)
                run_ms.append(elapsed)
                steps.append(result.iterations)

            table[num_elements] = {
                "avg_ms": round(statistics.fmean(run_ms), 4),
                "avg_iterations": round(statistics.fmean(steps), 2),
            }
            print(
                f"  M={num_elements:<3d} {table[num_elements]['avg_ms']:.3f} ms avg, "
                f"{table[num_elements]['avg_iterations']:.1f} iterations avg"
            )

        return table

    def report(self) -> Dict[str, Any]:
        return {
            "suite": "isac_array_doa",
            "generated_at": time.strftime("%Y-%m-%dT%H:%M:%S"),
            "latency": [record.as_record() for record in self.records],
        }


def run_benchmarks(output_path: Optional[str] = None) -> Dict[str, Any]:
    """Run every sweep; optionally write the JSON report to output_path"""
    print("# isac_array DOA / beamforming benchmarks")

    bench = DOABenchmark(warmup=10, trials=50)
    for method in EstimationMethod:
        bench.latency_by_array_size(method)

    report = bench.report()
    report["rmse_by_snr"] = bench.rmse_by_snr()
    report["optimizer"] = bench.optimizer_runtime()

    if output_path:
        Path(output_path).write_text(json.dumps(report, indent=2))
        print(f"\nreport written to {output_path}")

    return report


if __name__ == "__main__":
    results_dir = Path(__file__).resolve().parent / "results"
    results_dir.mkdir(exist_ok=True)
    run_benchmarks(str(results_dir / "doa_results.json"))
