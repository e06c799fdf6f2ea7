"""Utilities for comparing the data-parallel and task-parallel evaluators.

Both scheduling modes (and feature selection) must produce identical Top-K
results; only the runtime may differ. The helpers here run registered
scenarios through every variant, check that the outputs agree and time them,
so they can be reused from the test-suite and from experiment scripts that
persist A/B metrics to CSV files.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from time import perf_counter
from typing import Callable, Dict, Iterable, List, Sequence, Tuple
import logging

import numpy as np

from ._logging_utils import verbosity_to_level
from .config import SliceFinderConfig
from .datasets import make_model_error_dataset, make_planted_slice_dataset
from .finder import SliceFinderResult, find_slices

DatasetFactory = Callable[[], Tuple[np.ndarray, np.ndarray]]

VARIANTS: Dict[str, Dict[str, object]] = {
    "data_parallel": dict(task_parallel=False, select_features=False),
    "task_parallel": dict(task_parallel=True, select_features=False),
    "task_parallel_block4": dict(task_parallel=True, block_size=4, select_features=False),
    "data_parallel_selfeat": dict(task_parallel=False, select_features=True),
}


@dataclass(frozen=True)
class Scenario:
    """Descriptor for an evaluation-mode comparison scenario."""

    name: str
    factory: DatasetFactory
    config: SliceFinderConfig
    metadata: Dict[str, object] = field(default_factory=dict)

    def run(self, variant: str, *, verbosity: int = 0) -> SliceFinderResult:
        logger = logging.getLogger(__name__)
        level = verbosity_to_level(verbosity)
        logger.log(level, "Scenario.run: %s/%s inicio", self.name, variant)
        t0 = perf_counter()
        X, e = self.factory()
        try:
            return find_slices(X, e, self.config, **VARIANTS[variant])
        finally:
            logger.log(level, "Scenario.run: %s/%s fin en %.6fs", self.name, variant, perf_counter() - t0)


def _planted_small() -> Tuple[np.ndarray, np.ndarray]:
    X, e, _ = make_planted_slice_dataset(n_samples=600, random_state=3)
    return X, e


def _model_errors() -> Tuple[np.ndarray, np.ndarray]:
    X, e, _ = make_model_error_dataset(n_samples=800, n_features=4, n_bins=3, random_state=1)
    return X, e


SCENARIOS: Sequence[Scenario] = (
    Scenario(
        name="planted_slice",
        factory=_planted_small,
        config=SliceFinderConfig(k=5, min_support=10, alpha=0.9),
        metadata={"dataset": "planted", "rows": 600},
    ),
    Scenario(
        name="model_errors",
        factory=_model_errors,
        config=SliceFinderConfig(k=8, min_support=20, alpha=0.8),
        metadata={"dataset": "logreg_errors", "rows": 800},
    ),
)


def _max_score_diff(a: SliceFinderResult, b: SliceFinderResult) -> float:
    if a.top_k_stats.shape != b.top_k_stats.shape:
        return float("inf")
    if a.top_k_stats.shape[0] == 0:
        return 0.0
    return float(np.max(np.abs(a.top_k_stats[:, 0] - b.top_k_stats[:, 0])))


def _results_match(a: SliceFinderResult, b: SliceFinderResult) -> bool:
    return (
        a.top_k.shape == b.top_k.shape
        and np.array_equal(a.top_k, b.top_k)
        and np.allclose(a.top_k_stats, b.top_k_stats, equal_nan=True)
    )


def collect_mode_results(*, reference: str = "data_parallel") -> List[Dict[str, object]]:
    """Compare every variant against ``reference`` for all scenarios."""

    rows: List[Dict[str, object]] = []
    for scenario in SCENARIOS:
        base = scenario.run(reference)
        for variant in VARIANTS:
            if variant == reference:
                continue
            other = scenario.run(variant)
            rows.append(
                dict(
                    scenario=scenario.name,
                    reference=reference,
                    variant=variant,
                    reference_top_k=len(base),
                    variant_top_k=len(other),
                    max_score_diff=_max_score_diff(base, other),
                    values_match="yes" if _results_match(base, other) else "no",
                    **scenario.metadata,
                )
            )
    return rows


def benchmark_eval_modes(*, repeat: int = 1) -> List[Dict[str, float]]:
    """Measure the runtime of every variant on every scenario."""

    timings: List[Dict[str, float]] = []
    for scenario in SCENARIOS:
        for run_index in range(1, int(repeat) + 1):
            durations: Dict[str, float] = {}
            for variant in VARIANTS:
                start = perf_counter()
                scenario.run(variant)
                durations[variant] = perf_counter() - start
                timings.append(
                    dict(
                        scenario=scenario.name,
                        variant=variant,
                        run_index=float(run_index),
                        total_runtime_s=durations[variant],
                    )
                )
            base = durations["data_parallel"]
            timings.append(
                dict(
                    scenario=scenario.name,
                    variant="ratio_task_over_data",
                    run_index=float(run_index),
                    total_runtime_s=durations["task_parallel"] / base if base else float("nan"),
                )
            )
    return timings


def run_eval_mode_ab(*, repeat: int = 1) -> Dict[str, Iterable[Dict[str, object]]]:
    """Collect both agreement and timing results for the evaluation modes."""

    results = collect_mode_results()
    timings = benchmark_eval_modes(repeat=repeat)
    return {"results": results, "timings": timings}


RESULT_FIELDS: Tuple[str, ...] = (
    "scenario",
    "dataset",
    "rows",
    "reference",
    "variant",
    "reference_top_k",
    "variant_top_k",
    "max_score_diff",
    "values_match",
)
TIMING_FIELDS: Tuple[str, ...] = ("scenario", "variant", "run_index", "total_runtime_s")


def write_csv_rows(rows: Iterable[Dict[str, object]], path: str, fields: Sequence[str]) -> int:
    """Write *rows* under the fixed header *fields*; returns the row count.

    Every row must carry exactly the fields of the schema.
    """
    import csv
    from pathlib import Path

    rows_list = list(rows)
    if not rows_list:
        raise ValueError("No hay filas para escribir en el CSV")
    for row in rows_list:
        missing = [name for name in fields if name not in row]
        extra = sorted(set(row) - set(fields))
        if missing or extra:
            raise ValueError(f"Fila fuera de esquema: faltan {missing}, sobran {extra}")

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8", newline="") as fh:
        writer = csv.writer(fh)
        writer.writerow(fields)
        writer.writerows([[row[name] for name in fields] for row in rows_list])
    return len(rows_list)


def write_eval_mode_ab_csvs(
    *,
    repeat: int = 1,
    results_path: str,
    timings_path: str,
) -> Dict[str, Iterable[Dict[str, object]]]:
    """Run the comparison and persist both outputs as CSV files."""

    summary = run_eval_mode_ab(repeat=repeat)
    write_csv_rows(summary["results"], results_path, RESULT_FIELDS)
    write_csv_rows(summary["timings"], timings_path, TIMING_FIELDS)
    return summary
