"""Shared sparse-matrix helpers used across topslice modules."""

from __future__ import annotations

from typing import Tuple

import numpy as np
import scipy.sparse as sp


def column_statistics(I, e: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Per-column count, error sum and maximum error of a 0/1 matrix.

    ``I`` is ``m x k`` with ones marking the records of each column; ``e`` is
    the length-``m`` error vector. The maximum is taken over the marked
    records only, so empty columns report ``0``.
    """
    I = sp.csc_matrix(I)
    I.sum_duplicates()
    I.eliminate_zeros()
    k = I.shape[1]
    counts = np.diff(I.indptr).astype(float)
    errors = np.zeros(k, dtype=float)
    max_errors = np.zeros(k, dtype=float)
    nonempty = counts > 0
    if nonempty.any():
        picked = e[I.indices]
        starts = I.indptr[:-1][nonempty]
        errors[nonempty] = np.add.reduceat(picked, starts)
        max_errors[nonempty] = np.maximum.reduceat(picked, starts)
    return counts, errors, max_errors


def select_rows(S, mask) -> sp.csr_matrix:
    """Row subset of a sparse matrix given a boolean mask."""
    S = sp.csr_matrix(S)
    return S[np.flatnonzero(np.asarray(mask, dtype=bool))]


def row_keys(S) -> list:
    """Hashable identity of every row: the tuple of its set columns."""
    S = sp.csr_matrix(S)
    S.sum_duplicates()
    S.sort_indices()
    keys = []
    for i in range(S.shape[0]):
        beg, end = S.indptr[i], S.indptr[i + 1]
        cols = S.indices[beg:end][S.data[beg:end] != 0]
        keys.append(tuple(int(c) for c in cols))
    return keys


def rows_from_column_sets(cols: np.ndarray, n_columns: int) -> sp.csr_matrix:
    """Build ``k x n_columns`` 0/1 rows from a ``k x L`` array of column indices."""
    cols = np.asarray(cols, dtype=np.int64)
    k = cols.shape[0]
    if k == 0:
        return sp.csr_matrix((0, n_columns), dtype=np.float64)
    L = cols.shape[1]
    if L == 0:
        return sp.csr_matrix((k, n_columns), dtype=np.float64)
    indptr = np.arange(0, k * L + 1, L)
    data = np.ones(k * L, dtype=np.float64)
    out = sp.csr_matrix((data, cols.reshape(-1), indptr), shape=(k, n_columns))
    out.sort_indices()
    return out
