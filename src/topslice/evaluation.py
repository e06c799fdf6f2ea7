"""Exact statistics of candidate slices.

A record matches a level-``L`` slice iff its indicator row, restricted to the
slice's columns, sums to ``L``. The whole batch is one sparse product
``X2 @ S.T`` (data-parallel mode) or a sequence of fixed-size blocks run on a
thread pool (task-parallel mode, ``joblib`` with the threading backend). Each
block owns a disjoint row range of the output, so both modes return the same
statistics for any block size.
"""

from __future__ import annotations

import logging
from time import perf_counter
from typing import Optional

import numpy as np
import scipy.sparse as sp
from joblib import Parallel, delayed

from ._logging_utils import verbosity_to_level
from ._sparse_utils import column_statistics
from .encoding import match_indicator
from .scoring import score


def _evaluate_block(X2: sp.csr_matrix, e: np.ndarray, avg_error: float, S_block, level: int, alpha: float) -> np.ndarray:
    m = X2.shape[0]
    I = match_indicator(X2 @ sp.csr_matrix(S_block).T, np.full(S_block.shape[0], level))
    ss, se, sm = column_statistics(I, e)
    sc = score(ss, se, avg_error, alpha, m)
    return np.column_stack([sc, se, sm, ss])


def evaluate_slices(
    X2,
    e: np.ndarray,
    avg_error: float,
    S,
    level: int,
    alpha: float,
    *,
    task_parallel: bool = False,
    block_size: int = 16,
    n_jobs: int = -1,
    columns: Optional[np.ndarray] = None,
    verbosity: int = 0,
) -> np.ndarray:
    """Evaluate a batch of slices against the indicator matrix.

    Parameters
    ----------
    X2:
        ``m x n2`` indicator matrix.
    e:
        Error vector of length ``m``.
    S:
        ``k x n2`` candidate slices of level ``level``.
    columns:
        Optional boolean mask over the ``n2`` columns; when given, both ``X2``
        and ``S`` are restricted to it before the product. Every set column of
        ``S`` must be inside the mask.

    Returns
    -------
    np.ndarray
        ``k x 4`` statistics ``(score, total_error, max_error, size)``.
    """
    logger = logging.getLogger(__name__)
    log_level = verbosity_to_level(verbosity)
    t0 = perf_counter()

    X2 = sp.csr_matrix(X2)
    S = sp.csr_matrix(S)
    e = np.asarray(e, dtype=float).reshape(-1)
    k = S.shape[0]
    if k == 0:
        return np.zeros((0, 4))

    if columns is not None:
        idx = np.flatnonzero(np.asarray(columns, dtype=bool))
        X2 = sp.csr_matrix(X2[:, idx])
        S = sp.csr_matrix(S[:, idx])

    if not task_parallel:
        R = _evaluate_block(X2, e, avg_error, S, level, alpha)
    else:
        R = np.zeros((k, 4))
        starts = list(range(0, k, int(block_size)))

        def _work(beg: int) -> None:
            end = min(beg + int(block_size), k)
            R[beg:end] = _evaluate_block(X2, e, avg_error, S[beg:end], level, alpha)

        Parallel(n_jobs=n_jobs, backend="threading", require="sharedmem")(
            delayed(_work)(beg) for beg in starts
        )

    logger.log(
        log_level,
        "evaluate_slices: nivel=%d candidatos=%d modo=%s en %.6fs",
        level,
        k,
        "task" if task_parallel else "data",
        perf_counter() - t0,
    )
    return R
