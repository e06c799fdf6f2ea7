"""Candidate generation for level ``L`` from the surviving slices of ``L - 1``.

Pipeline (one call per level):

1. Parent filter: slices below ``min_support`` or without error are no longer
   join parents.
2. Pairing: unordered pairs of parents sharing exactly ``L - 2`` predicates.
3. Union of each pair; unions with two predicates on one feature are dropped.
4. Bounds: size, error and max error of a child are bounded by the minimum
   of its parents' values.
5. Deduplication: identical unions are grouped (recoded ids over the sorted
   column tuple) and keep the minimum of their bounds.
6. Missing parents: a level-``L`` slice has exactly ``L`` sub-slices of level
   ``L - 1``; groups with fewer distinct contributing parents are dropped.
7. Size and score pruning against ``min_support`` and the current Top-K:
   a candidate survives only if its score bound strictly beats the K-th
   score (any finite bound while the list is not full).
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from time import perf_counter
from typing import Optional

import numpy as np
import scipy.sparse as sp

from ._logging_utils import verbosity_to_level
from ._sparse_utils import rows_from_column_sets, select_rows
from .encoding import FeatureDomain
from .scoring import score_upper_bound
from .topk import ERROR, MAX_ERROR, SIZE, TopK


@dataclass
class CandidateStats:
    """Bookkeeping of one join step (used for logging and the debug trace)."""

    parents: int = 0
    pairs: int = 0
    valid_pairs: int = 0
    groups: int = 0
    pruned_parents: int = 0
    pruned_size: int = 0
    pruned_score: int = 0
    candidates: int = 0


def feature_map(domain: FeatureDomain) -> sp.csr_matrix:
    """``n2 x n`` 0/1 matrix assigning every one-hot column to its feature."""
    n2, n = domain.n_columns, domain.n_features
    return sp.csr_matrix(
        (np.ones(n2), (np.arange(n2), domain.feature_index())),
        shape=(n2, n),
    )


def join_compatible_pairs(S, level: int):
    """Row index pairs ``(i < j)`` of slices sharing exactly ``level - 2`` columns."""
    S = sp.csr_matrix(S)
    if S.shape[0] < 2:
        empty = np.zeros(0, dtype=np.int64)
        return empty, empty
    shared = (S @ S.T).toarray()
    compatible = np.triu(shared == (level - 2), k=1)
    rix, cix = np.nonzero(compatible)
    return rix.astype(np.int64), cix.astype(np.int64)


def one_predicate_per_feature(P, fmap: sp.csr_matrix) -> np.ndarray:
    """Rows of ``P`` with at most one set column inside every feature range."""
    P = sp.csr_matrix(P)
    if P.shape[0] == 0:
        return np.zeros(0, dtype=bool)
    per_feature = (P @ fmap).toarray()
    return per_feature.max(axis=1) <= 1


def get_paired_candidates(
    S,
    R: np.ndarray,
    top_k: TopK,
    k: int,
    level: int,
    avg_error: float,
    min_support: int,
    alpha: float,
    m: int,
    domain: FeatureDomain,
    *,
    return_bounds: bool = False,
    stats: Optional[CandidateStats] = None,
    verbosity: int = 0,
):
    """Generate the deduplicated, pruned level-``level`` candidates.

    Parameters
    ----------
    S, R:
        Slices of level ``level - 1`` and their ``(score, error, max_error,
        size)`` statistics.
    top_k:
        Current Top-K list; its K-th score is the pruning threshold once the
        list is full.
    return_bounds:
        Also return the ``(size, error, max_error)`` upper bounds of every
        surviving candidate, aligned with the returned rows.

    Returns
    -------
    scipy.sparse.csr_matrix or (csr_matrix, np.ndarray)
        Candidate slice rows, each with exactly ``level`` set columns.
    """
    logger = logging.getLogger(__name__)
    log_level = verbosity_to_level(verbosity)
    t0 = perf_counter()
    stats = stats if stats is not None else CandidateStats()

    n2 = domain.n_columns
    empty = sp.csr_matrix((0, n2), dtype=np.float64)
    empty_bounds = np.zeros((0, 3))

    def _result(P, bounds):
        return (P, bounds) if return_bounds else P

    S = sp.csr_matrix(S)
    R = np.asarray(R, dtype=float).reshape(-1, 4)

    # 1. parents that can still be joined
    alive = (R[:, SIZE] >= min_support) & (R[:, ERROR] > 0)
    S = select_rows(S, alive)
    R = R[alive]
    stats.parents = int(S.shape[0])

    # 2. join-compatible pairs
    rix, cix = join_compatible_pairs(S, level)
    stats.pairs = int(rix.size)
    if rix.size == 0:
        logger.log(log_level, "candidatos nivel %d: sin pares compatibles", level)
        return _result(empty, empty_bounds)

    # 3. unions and one-predicate-per-feature validity
    P = sp.csr_matrix(S[rix] + S[cix])
    P.data[:] = 1.0
    valid = one_predicate_per_feature(P, feature_map(domain))
    P = select_rows(P, valid)
    rix, cix = rix[valid], cix[valid]
    stats.valid_pairs = int(rix.size)
    if rix.size == 0:
        logger.log(log_level, "candidatos nivel %d: todos los pares en conflicto", level)
        return _result(empty, empty_bounds)

    # 4. propagated bounds
    bounds = np.minimum(R[rix][:, [SIZE, ERROR, MAX_ERROR]], R[cix][:, [SIZE, ERROR, MAX_ERROR]])

    # 5. dedup by canonical column tuple
    P.sort_indices()
    cols = P.indices.reshape(-1, level)
    uniq, inv = np.unique(cols, axis=0, return_inverse=True)
    inv = np.asarray(inv).reshape(-1)
    n_groups = uniq.shape[0]
    stats.groups = int(n_groups)

    ub = np.full((n_groups, 3), np.inf)
    for j in range(3):
        np.minimum.at(ub[:, j], inv, bounds[:, j])

    # 6. missing parents: distinct parents per group must equal the level
    n_parents = S.shape[0]
    contributions = np.unique(
        np.concatenate([inv * n_parents + rix, inv * n_parents + cix])
    )
    parent_counts = np.bincount(contributions // n_parents, minlength=n_groups)
    f_parents = parent_counts == level

    # 7. size and score pruning
    f_size = ub[:, 0] >= min_support
    threshold = top_k.threshold(k)
    ub_scores = score_upper_bound(ub[:, 0], ub[:, 1], ub[:, 2], avg_error, min_support, alpha, m)
    f_score = ub_scores > threshold

    stats.pruned_parents = int((~f_parents).sum())
    stats.pruned_size = int((f_parents & ~f_size).sum())
    stats.pruned_score = int((f_parents & f_size & ~f_score).sum())

    keep = f_parents & f_size & f_score
    out = rows_from_column_sets(uniq[keep], n2)
    stats.candidates = int(out.shape[0])

    logger.log(
        log_level,
        "candidatos nivel %d: padres=%d pares=%d válidos=%d grupos=%d "
        "poda[padres=%d tamaño=%d score=%d] -> %d en %.6fs",
        level,
        stats.parents,
        stats.pairs,
        stats.valid_pairs,
        stats.groups,
        stats.pruned_parents,
        stats.pruned_size,
        stats.pruned_score,
        stats.candidates,
        perf_counter() - t0,
    )
    return _result(out, ub[keep])
