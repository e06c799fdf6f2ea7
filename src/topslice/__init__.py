"""topslice: búsqueda de slices grandes con error alto en datos categóricos."""
from .basic_slices import create_and_score_basic_slices
from .candidates import CandidateStats, get_paired_candidates
from .config import SliceFinderConfig
from .datasets import make_model_error_dataset, make_planted_slice_dataset
from .encoding import (
    FeatureDomain,
    decode_slices,
    encode_features,
    encode_slices,
    slice_matches,
)
from .errors import ConfigurationError, InvalidInputError
from .evaluation import evaluate_slices
from .finder import DebugRecord, SliceFinder, SliceFinderResult, find_slices
from .reporting import (
    describe_slices_metrics,
    describe_slices_report,
    plot_slices,
    plot_slices_interactive,
    slices_to_frame,
)
from .scoring import score, score_upper_bound
from .topk import ERROR, MAX_ERROR, SCORE, SIZE, TopK, analyze_top_k, maintain_top_k
from . import eval_ab

__all__ = [
    "CandidateStats",
    "ConfigurationError",
    "DebugRecord",
    "ERROR",
    "FeatureDomain",
    "InvalidInputError",
    "MAX_ERROR",
    "SCORE",
    "SIZE",
    "SliceFinder",
    "SliceFinderConfig",
    "SliceFinderResult",
    "TopK",
    "analyze_top_k",
    "create_and_score_basic_slices",
    "decode_slices",
    "describe_slices_metrics",
    "describe_slices_report",
    "encode_features",
    "encode_slices",
    "eval_ab",
    "evaluate_slices",
    "find_slices",
    "get_paired_candidates",
    "maintain_top_k",
    "make_model_error_dataset",
    "make_planted_slice_dataset",
    "plot_slices",
    "plot_slices_interactive",
    "score",
    "score_upper_bound",
    "slice_matches",
    "slices_to_frame",
]
