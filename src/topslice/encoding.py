"""One-hot encoding of integer-coded feature matrices and slice decoding.

A feature matrix ``X`` (``m x n``, values in ``1..fdom[j]``) is encoded into a
sparse ``m x n2`` indicator matrix where feature ``j`` owns the column range
``[offset_begin[j], offset_end[j])``. Slices live in the same column space:
a slice is a sparse row with at most one set column per feature range.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from time import perf_counter
from typing import Tuple

import numpy as np
import scipy.sparse as sp
from sklearn.preprocessing import OneHotEncoder

from ._logging_utils import verbosity_to_level
from .errors import InvalidInputError


@dataclass(frozen=True)
class FeatureDomain:
    """Domain sizes and one-hot column ranges of the original features."""

    fdom: np.ndarray
    offset_begin: np.ndarray
    offset_end: np.ndarray

    @classmethod
    def from_domain_sizes(cls, fdom) -> "FeatureDomain":
        fdom = np.asarray(fdom, dtype=np.int64).reshape(-1)
        offset_end = np.cumsum(fdom)
        offset_begin = offset_end - fdom
        return cls(fdom=fdom, offset_begin=offset_begin, offset_end=offset_end)

    @property
    def n_features(self) -> int:
        return int(self.fdom.size)

    @property
    def n_columns(self) -> int:
        return int(self.fdom.sum())

    def feature_index(self) -> np.ndarray:
        """Owning feature of every one-hot column, shape ``(n2,)``."""
        return np.repeat(np.arange(self.n_features), self.fdom)

    def column_of(self, feature: int, value: int) -> int:
        """One-hot column of the predicate ``feature == value`` (1-based value)."""
        if not 1 <= int(value) <= int(self.fdom[feature]):
            raise InvalidInputError(
                f"valor {value} fuera del dominio 1..{int(self.fdom[feature])} de la variable {feature}"
            )
        return int(self.offset_begin[feature] + int(value) - 1)


def _as_dense_codes(X) -> np.ndarray:
    if sp.issparse(X):
        X = X.toarray()
    X = np.asarray(X)
    if X.ndim != 2:
        raise InvalidInputError("X debe ser 2D: (m, n)")
    if X.size == 0:
        return X.astype(np.int64)
    if not np.issubdtype(X.dtype, np.number):
        raise InvalidInputError("X debe contener códigos enteros")
    Xf = X.astype(float)
    if not np.all(np.isfinite(Xf)):
        raise InvalidInputError("X contiene valores no finitos")
    if not np.all(Xf == np.round(Xf)):
        raise InvalidInputError("X debe contener códigos enteros (1..dominio)")
    if np.any(Xf <= 0):
        raise InvalidInputError("X contiene códigos <= 0; los valores deben empezar en 1")
    return Xf.astype(np.int64)


def encode_features(X, *, verbosity: int = 0) -> Tuple[sp.csr_matrix, FeatureDomain]:
    """Encode ``X`` into a sparse one-hot indicator matrix.

    Domain sizes are taken as the column maxima, so every value in
    ``1..fdom[j]`` owns a column even if it never occurs. Singleton domains
    (constant columns equal to 1) are allowed and produce a single column.

    Returns
    -------
    Tuple[scipy.sparse.csr_matrix, FeatureDomain]
        Indicator matrix ``X2`` (``m x n2``, float64 ones) and the domain.
    """
    logger = logging.getLogger(__name__)
    level = verbosity_to_level(verbosity)
    t0 = perf_counter()

    codes = _as_dense_codes(X)
    m, n = codes.shape
    if m == 0 or n == 0:
        domain = FeatureDomain.from_domain_sizes(np.zeros(n, dtype=np.int64))
        return sp.csr_matrix((m, 0), dtype=np.float64), domain

    fdom = codes.max(axis=0)
    domain = FeatureDomain.from_domain_sizes(fdom)
    encoder = OneHotEncoder(
        categories=[np.arange(1, int(d) + 1) for d in fdom],
        sparse_output=True,
        dtype=np.float64,
    )
    X2 = sp.csr_matrix(encoder.fit_transform(codes))
    logger.log(
        level,
        "encode_features: m=%d n=%d n2=%d en %.6fs",
        m,
        n,
        domain.n_columns,
        perf_counter() - t0,
    )
    return X2, domain


def decode_slices(S, domain: FeatureDomain) -> np.ndarray:
    """Map slice rows back to ``(k, n)`` value tables (0 = unconstrained)."""
    S = sp.csr_matrix(S)
    out = np.zeros((S.shape[0], domain.n_features), dtype=np.int64)
    if S.nnz == 0:
        return out
    coo = S.tocoo()
    keep = coo.data != 0
    rows, cols = coo.row[keep], coo.col[keep]
    feats = domain.feature_index()[cols]
    out[rows, feats] = cols - domain.offset_begin[feats] + 1
    return out


def encode_slices(T, domain: FeatureDomain) -> sp.csr_matrix:
    """Inverse of :func:`decode_slices`: value tables to sparse slice rows."""
    T = np.asarray(T, dtype=np.int64)
    if T.ndim == 1:
        T = T[None, :]
    if T.shape[1] != domain.n_features:
        raise InvalidInputError(
            f"se esperaban {domain.n_features} columnas, recibido {T.shape[1]}"
        )
    if np.any(T < 0) or np.any(T > domain.fdom[None, :]):
        raise InvalidInputError("valores de slice fuera del dominio de las variables")
    rows, feats = np.nonzero(T)
    cols = domain.offset_begin[feats] + T[rows, feats] - 1
    data = np.ones(rows.size, dtype=np.float64)
    return sp.csr_matrix((data, (rows, cols)), shape=(T.shape[0], domain.n_columns))


def match_indicator(XS, levels: np.ndarray) -> sp.csc_matrix:
    """Keep the entries of ``X2 @ S.T`` whose count equals the slice level.

    Columns of level 0 (empty slices) match every record.
    """
    XS = sp.csc_matrix(XS)
    XS.sum_duplicates()
    m, k = XS.shape
    levels = np.asarray(levels).reshape(-1)
    col_of_entry = np.repeat(np.arange(k), np.diff(XS.indptr))
    XS.data = (XS.data == levels[col_of_entry]).astype(np.float64)
    XS.eliminate_zeros()
    empty = levels == 0
    if empty.any():
        full = sp.csc_matrix(np.ones((m, 1))) @ sp.csc_matrix(empty.astype(np.float64)[None, :])
        XS = sp.csc_matrix(XS + full)
    return XS


def slice_matches(X2, S) -> sp.csc_matrix:
    """Record-level match indicator (``m x k``) of a batch of slices."""
    S = sp.csr_matrix(S)
    levels = np.asarray((S != 0).sum(axis=1)).reshape(-1)
    if S.shape[0] == 0:
        return sp.csc_matrix((X2.shape[0], 0))
    return match_indicator(sp.csr_matrix(X2) @ S.T, levels)
