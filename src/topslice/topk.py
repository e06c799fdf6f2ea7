"""Bounded best-score list of evaluated slices."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Tuple

import numpy as np
import scipy.sparse as sp

from ._logging_utils import verbosity_to_level
from ._sparse_utils import row_keys

# columns of the statistics matrix
SCORE, ERROR, MAX_ERROR, SIZE = 0, 1, 2, 3


@dataclass
class TopK:
    """Top-K slices (sparse rows) and their aligned statistics."""

    slices: sp.csr_matrix
    stats: np.ndarray

    @classmethod
    def empty(cls, n_columns: int) -> "TopK":
        return cls(slices=sp.csr_matrix((0, n_columns), dtype=np.float64), stats=np.zeros((0, 4)))

    def __len__(self) -> int:
        return int(self.stats.shape[0])

    @property
    def scores(self) -> np.ndarray:
        return self.stats[:, SCORE]

    def threshold(self, k: int) -> float:
        """Score a candidate must strictly exceed to enter a full list."""
        if len(self) >= int(k):
            return float(self.stats[int(k) - 1, SCORE])
        return -np.inf


def analyze_top_k(top_k: TopK) -> Tuple[float, float]:
    """Return ``(max_score, min_score)`` of the list, ``(0, 0)`` when empty."""
    if len(top_k) == 0:
        return 0.0, 0.0
    return float(top_k.scores.max()), float(top_k.scores.min())


def maintain_top_k(
    S,
    R: np.ndarray,
    top_k: TopK,
    k: int,
    min_support: int,
    *,
    verbosity: int = 0,
) -> TopK:
    """Merge evaluated slices into the Top-K list.

    Slices below ``min_support`` or of size zero are dropped. Existing Top-K
    entries come before the new ones, duplicates keep their first occurrence
    and the stable sort keeps that order among equal scores.
    """
    logger = logging.getLogger(__name__)
    level = verbosity_to_level(verbosity)

    S = sp.csr_matrix(S)
    R = np.asarray(R, dtype=float).reshape(-1, 4)
    keep = (R[:, SIZE] >= min_support) & (R[:, SIZE] > 0) & np.isfinite(R[:, SCORE])
    if not keep.any():
        logger.log(level, "maintain_top_k: sin slices válidos, top-k sin cambios (%d)", len(top_k))
        return top_k

    idx = np.flatnonzero(keep)
    slices = sp.vstack([top_k.slices, S[idx]], format="csr")
    stats = np.vstack([top_k.stats, R[idx]])

    seen = set()
    unique_rows = []
    for i, key in enumerate(row_keys(slices)):
        if key in seen:
            continue
        seen.add(key)
        unique_rows.append(i)
    unique_rows = np.asarray(unique_rows, dtype=np.int64)

    order = np.argsort(-stats[unique_rows, SCORE], kind="stable")[: int(k)]
    chosen = unique_rows[order]
    out = TopK(slices=sp.csr_matrix(slices[chosen]), stats=stats[chosen])
    logger.log(
        level,
        "maintain_top_k: %d candidatos válidos, top-k=%d",
        idx.size,
        len(out),
    )
    return out
