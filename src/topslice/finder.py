"""Level-wise slice finder: drives encoding, joins, evaluation and Top-K upkeep."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from time import perf_counter
from typing import List, Optional

import numpy as np
import scipy.sparse as sp

from ._logging_utils import resolve_verbosity, verbosity_to_level
from .basic_slices import create_and_score_basic_slices
from .candidates import CandidateStats, get_paired_candidates
from .config import SliceFinderConfig
from .encoding import FeatureDomain, decode_slices, encode_features
from .errors import InvalidInputError
from .evaluation import evaluate_slices
from .topk import ERROR, SIZE, TopK, analyze_top_k, maintain_top_k


@dataclass(frozen=True)
class DebugRecord:
    """Per-level diagnostics collected when ``verbose`` is set."""

    level: int
    candidates_generated: int
    candidates_valid: int
    max_score: float
    min_score: float


@dataclass
class SliceFinderResult:
    """Decoded Top-K slices with their statistics.

    ``top_k[i, j]`` is the 1-based value selected for feature ``j`` by the
    ``i``-th slice, or 0 when the slice does not constrain that feature.
    ``top_k_stats`` rows are ``(score, total_error, max_error, size)``.
    """

    top_k: np.ndarray
    top_k_stats: np.ndarray
    top_k_slices: sp.csr_matrix
    domain: FeatureDomain
    avg_error: float
    n_records: int
    levels_evaluated: int
    config: SliceFinderConfig
    debug: List[DebugRecord] = field(default_factory=list)

    def __len__(self) -> int:
        return int(self.top_k.shape[0])

    def debug_table(self) -> np.ndarray:
        """Debug trace as a ``levels x 5`` float matrix."""
        if not self.debug:
            return np.zeros((0, 5))
        return np.array(
            [
                [d.level, d.candidates_generated, d.candidates_valid, d.max_score, d.min_score]
                for d in self.debug
            ],
            dtype=float,
        )


def _validate_errors(e, m: int) -> np.ndarray:
    if sp.issparse(e):
        e = e.toarray()
    e = np.asarray(e, dtype=float)
    if e.ndim == 2 and 1 in e.shape:
        e = e.reshape(-1)
    if e.ndim != 1:
        raise InvalidInputError("e debe ser un vector (m,) o una matriz (m, 1)")
    if e.shape[0] != m:
        raise InvalidInputError(f"e tiene {e.shape[0]} filas pero X tiene {m}")
    if not np.all(np.isfinite(e)):
        raise InvalidInputError("e contiene valores no finitos")
    if np.any(e < 0):
        raise InvalidInputError("e contiene errores negativos; se esperan valores >= 0")
    return e


def _empty_result(domain: FeatureDomain, m: int, avg_error: float, cfg: SliceFinderConfig, debug) -> SliceFinderResult:
    top_k = TopK.empty(domain.n_columns)
    return SliceFinderResult(
        top_k=np.zeros((0, domain.n_features), dtype=np.int64),
        top_k_stats=np.zeros((0, 4)),
        top_k_slices=top_k.slices,
        domain=domain,
        avg_error=avg_error,
        n_records=m,
        levels_evaluated=0,
        config=cfg,
        debug=list(debug),
    )


def find_slices(X, e, config: Optional[SliceFinderConfig] = None, **overrides) -> SliceFinderResult:
    """Find the top-K slices of ``X`` with high average error ``e``.

    Parameters
    ----------
    X:
        ``m x n`` integer-coded feature matrix (values ``>= 1``), dense or
        scipy sparse.
    e:
        Non-negative error per record, shape ``(m,)`` or ``(m, 1)``.
    config:
        Run parameters; keyword ``overrides`` replace individual fields
        (``k``, ``max_level``, ``min_support``, ``alpha``, ...).

    Returns
    -------
    SliceFinderResult
        Empty Top-K when nothing qualifies (no records, no error, or
        ``min_support`` above the record count).
    """
    cfg = (config or SliceFinderConfig()).with_overrides(**overrides).validate()
    verbosity = resolve_verbosity(cfg.verbosity, cfg.verbose)

    logger = logging.getLogger(__name__)
    level_log = verbosity_to_level(verbosity)
    t0 = perf_counter()

    X2, domain = encode_features(X, verbosity=verbosity)
    m, n = X2.shape[0], domain.n_features
    e = _validate_errors(e, m)
    debug: List[DebugRecord] = []

    logger.log(
        level_log,
        "find_slices inicio | m=%d n=%d n2=%d k=%d min_support=%d alpha=%.3f max_level=%d",
        m,
        n,
        domain.n_columns,
        cfg.k,
        cfg.min_support,
        cfg.alpha,
        cfg.max_level,
    )
    if m == 0 or n == 0:
        logger.log(level_log, "find_slices: entrada vacía, top-k vacío")
        return _empty_result(domain, m, 0.0, cfg, debug)

    avg_error = float(e.sum() / m)

    S, R, selected = create_and_score_basic_slices(
        X2, e, avg_error, cfg.min_support, cfg.alpha, verbosity=verbosity
    )
    top_k = maintain_top_k(S, R, TopK.empty(domain.n_columns), cfg.k, cfg.min_support, verbosity=verbosity)
    if cfg.verbose:
        max_sc, min_sc = analyze_top_k(top_k)
        valid = int(((R[:, ERROR] > 0) & (R[:, SIZE] >= cfg.min_support)).sum())
        debug.append(DebugRecord(1, domain.n_columns, valid, max_sc, min_sc))

    max_level = n if cfg.max_level <= 0 else min(int(cfg.max_level), n)
    columns = selected if cfg.select_features else None
    level = 1
    while S.shape[0] > 0 and S.nnz > 0 and level < max_level:
        level += 1
        join_stats = CandidateStats()
        S = get_paired_candidates(
            S,
            R,
            top_k,
            cfg.k,
            level,
            avg_error,
            cfg.min_support,
            cfg.alpha,
            m,
            domain,
            stats=join_stats,
            verbosity=verbosity,
        )
        R = evaluate_slices(
            X2,
            e,
            avg_error,
            S,
            level,
            cfg.alpha,
            task_parallel=cfg.task_parallel,
            block_size=cfg.block_size,
            n_jobs=cfg.n_jobs,
            columns=columns,
            verbosity=verbosity,
        )
        top_k = maintain_top_k(S, R, top_k, cfg.k, cfg.min_support, verbosity=verbosity)

        if cfg.verbose:
            max_sc, min_sc = analyze_top_k(top_k)
            valid = int(((R[:, ERROR] > 0) & (R[:, SIZE] >= cfg.min_support)).sum())
            debug.append(DebugRecord(level, int(S.shape[0]), valid, max_sc, min_sc))
            logger.log(
                level_log,
                " -- nivel %d: válidos tras evaluar %d/%d | top-k count=%d max=%.6f min=%.6f",
                level,
                valid,
                S.shape[0],
                len(top_k),
                max_sc,
                min_sc,
            )

    result = SliceFinderResult(
        top_k=decode_slices(top_k.slices, domain),
        top_k_stats=top_k.stats.copy(),
        top_k_slices=top_k.slices,
        domain=domain,
        avg_error=avg_error,
        n_records=m,
        levels_evaluated=level,
        config=cfg,
        debug=debug,
    )
    logger.log(
        level_log,
        "find_slices completado | niveles=%d top-k=%d tiempo=%.6f s",
        level,
        len(result),
        perf_counter() - t0,
    )
    return result


class SliceFinder:
    """Estimator-style wrapper around :func:`find_slices`.

    Examples
    --------
    >>> finder = SliceFinder(SliceFinderConfig(k=3, min_support=10)).fit(X, e)  # doctest: +SKIP
    >>> finder.top_k_, finder.top_k_stats_  # doctest: +SKIP
    """

    def __init__(self, config: Optional[SliceFinderConfig] = None, **overrides) -> None:
        self.config = (config or SliceFinderConfig()).with_overrides(**overrides).validate()
        self.result_: Optional[SliceFinderResult] = None

    def fit(self, X, e) -> "SliceFinder":
        self.result_ = find_slices(X, e, self.config)
        return self

    def _require_fit(self) -> SliceFinderResult:
        if self.result_ is None:
            raise RuntimeError("SliceFinder no ha sido ajustado; llama a fit(X, e) primero")
        return self.result_

    @property
    def top_k_(self) -> np.ndarray:
        return self._require_fit().top_k

    @property
    def top_k_stats_(self) -> np.ndarray:
        return self._require_fit().top_k_stats

    @property
    def debug_(self) -> List[DebugRecord]:
        return self._require_fit().debug

    @property
    def domain_(self) -> FeatureDomain:
        return self._require_fit().domain
