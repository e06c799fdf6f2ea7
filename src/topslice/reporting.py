"""Readable reports and plots for :class:`~topslice.finder.SliceFinderResult`."""

from __future__ import annotations

import logging
import math
from time import perf_counter
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from ._logging_utils import verbosity_to_level
from .finder import SliceFinderResult
from .topk import ERROR, MAX_ERROR, SCORE, SIZE


def _feat_label(j: int, feature_names: Optional[Sequence[str]]) -> str:
    if feature_names and 0 <= j < len(feature_names):
        return str(feature_names[j])
    return f"x{j}"


def _value_label(j: int, value: int, value_labels: Optional[Mapping[int, Sequence[Any]]]) -> str:
    if value_labels and j in value_labels:
        labels = value_labels[j]
        if 1 <= value <= len(labels):
            return str(labels[value - 1])
    return str(int(value))


def _fmt_float(value: float, nd: int = 4) -> str:
    if value is None or math.isnan(value):
        return "nan"
    if math.isinf(value):
        return "-inf" if value < 0 else "inf"
    return f"{value:.{nd}f}"


def slice_predicates(
    row: np.ndarray,
    *,
    feature_names: Optional[Sequence[str]] = None,
    value_labels: Optional[Mapping[int, Sequence[Any]]] = None,
) -> List[str]:
    """``["feature = value", ...]`` for the constrained features of a decoded row."""
    return [
        f"{_feat_label(j, feature_names)} = {_value_label(j, int(v), value_labels)}"
        for j, v in enumerate(np.asarray(row).reshape(-1))
        if int(v) != 0
    ]


def describe_slices_metrics(
    result: SliceFinderResult,
    *,
    feature_names: Optional[Sequence[str]] = None,
    value_labels: Optional[Mapping[int, Sequence[Any]]] = None,
) -> List[Dict[str, Any]]:
    """One dictionary per Top-K slice, in rank order.

    Each entry carries the rule text, its predicates, the level and the raw
    statistics together with derived ratios against the dataset average
    (handy for CSV dumps and programmatic inspection).
    """
    entries: List[Dict[str, Any]] = []
    m = max(int(result.n_records), 1)
    for rank, (row, stats) in enumerate(zip(result.top_k, result.top_k_stats), 1):
        pieces = slice_predicates(row, feature_names=feature_names, value_labels=value_labels)
        size = float(stats[SIZE])
        avg = float(stats[ERROR] / size) if size > 0 else float("nan")
        entries.append(
            dict(
                rank=rank,
                rule_text=" AND ".join(pieces) if pieces else "(todos los registros)",
                rule_pieces=pieces,
                level=len(pieces),
                score=float(stats[SCORE]),
                total_error=float(stats[ERROR]),
                max_error=float(stats[MAX_ERROR]),
                size=int(size),
                support_frac=size / m,
                avg_error=avg,
                error_lift=(avg / result.avg_error) if result.avg_error > 0 else float("nan"),
            )
        )
    return entries


def describe_slices_report(
    result: SliceFinderResult,
    *,
    feature_names: Optional[Sequence[str]] = None,
    value_labels: Optional[Mapping[int, Sequence[Any]]] = None,
    include_debug: bool = True,
    verbosity: int = 0,
) -> str:
    """Generate a textual report of the Top-K slices."""
    logger = logging.getLogger(__name__)
    level = verbosity_to_level(verbosity)
    t0 = perf_counter()

    entries = describe_slices_metrics(result, feature_names=feature_names, value_labels=value_labels)
    lines: List[str] = [
        "====== TOP-K SLICES ======",
        (
            f"Registros: {result.n_records} | error medio: {_fmt_float(result.avg_error)} | "
            f"niveles evaluados: {result.levels_evaluated}"
        ),
    ]
    if not entries:
        lines.append("No se encontraron slices que cumplan min_support.")
    for entry in entries:
        lines.append(
            "#{rank} [nivel {level}] {rule} | score={score} size={size} ({frac:.1%}) "
            "error={err} avg={avg} max={mx} lift={lift}".format(
                rank=entry["rank"],
                level=entry["level"],
                rule=entry["rule_text"],
                score=_fmt_float(entry["score"]),
                size=entry["size"],
                frac=entry["support_frac"],
                err=_fmt_float(entry["total_error"]),
                avg=_fmt_float(entry["avg_error"]),
                mx=_fmt_float(entry["max_error"]),
                lift=_fmt_float(entry["error_lift"], 2),
            )
        )
    if include_debug and result.debug:
        lines.append("------ traza por nivel ------")
        for rec in result.debug:
            lines.append(
                f"nivel {rec.level}: generados={rec.candidates_generated} "
                f"válidos={rec.candidates_valid} max={_fmt_float(rec.max_score)} "
                f"min={_fmt_float(rec.min_score)}"
            )
    logger.log(level, "describe_slices_report: %d slices en %.6fs", len(entries), perf_counter() - t0)
    return "\n".join(lines)


def plot_slices(
    result: SliceFinderResult,
    *,
    feature_names: Optional[Sequence[str]] = None,
    cmap: str = "viridis",
    figsize: Tuple[float, float] = (8.0, 6.0),
    annotate: bool = True,
    ax=None,
):
    """Scatter of slice size vs. average slice error, colored by level.

    The dashed line marks the dataset average error.

    Returns
    -------
    matplotlib.axes.Axes
    """
    import matplotlib.pyplot as plt

    entries = describe_slices_metrics(result, feature_names=feature_names)
    if not entries:
        raise ValueError("No hay slices para graficar.")

    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)
    else:
        fig = ax.figure

    xs = [e["size"] for e in entries]
    ys = [e["avg_error"] for e in entries]
    levels = [e["level"] for e in entries]
    scatter = ax.scatter(xs, ys, c=levels, cmap=cmap, s=60, alpha=0.8, edgecolors="k", linewidths=0.5)
    ax.axhline(result.avg_error, linestyle="--", color="gray", linewidth=1.0, label="error medio")
    if annotate:
        for e in entries:
            ax.annotate(f"#{e['rank']}", (e["size"], e["avg_error"]), textcoords="offset points", xytext=(4, 4))

    cbar = fig.colorbar(scatter, ax=ax)
    cbar.set_label("Nivel (predicados)")
    ax.set_xlabel("size")
    ax.set_ylabel("error medio del slice")
    ax.set_title("Top-K slices")
    ax.grid(True, linestyle="--", alpha=0.3)
    ax.legend()
    return ax


def slices_to_frame(
    result: SliceFinderResult,
    *,
    feature_names: Optional[Sequence[str]] = None,
    value_labels: Optional[Mapping[int, Sequence[Any]]] = None,
):
    """:func:`describe_slices_metrics` as a :class:`pandas.DataFrame`.

    One column per original feature holds the selected value (0 when the
    slice does not constrain it), followed by the metric columns.
    """
    import pandas as pd

    entries = describe_slices_metrics(result, feature_names=feature_names, value_labels=value_labels)
    names = [_feat_label(j, feature_names) for j in range(result.domain.n_features)]
    values = pd.DataFrame(np.asarray(result.top_k, dtype=np.int64), columns=names)
    metrics = pd.DataFrame(
        [{k: v for k, v in entry.items() if k != "rule_pieces"} for entry in entries],
        columns=[
            "rank",
            "rule_text",
            "level",
            "score",
            "total_error",
            "max_error",
            "size",
            "support_frac",
            "avg_error",
            "error_lift",
        ],
    )
    return pd.concat([metrics, values], axis=1)


def plot_slices_interactive(
    result: SliceFinderResult,
    *,
    feature_names: Optional[Sequence[str]] = None,
    value_labels: Optional[Mapping[int, Sequence[Any]]] = None,
    title: str = "Top-K slices",
    renderer: Optional[str] = None,
    show: bool = False,
):
    """Plotly version of :func:`plot_slices` with the rule text on hover.

    Returns
    -------
    plotly.graph_objects.Figure
    """
    import plotly.graph_objects as go
    import plotly.io as pio

    if renderer:
        pio.renderers.default = renderer

    entries = describe_slices_metrics(result, feature_names=feature_names, value_labels=value_labels)
    if not entries:
        raise ValueError("No hay slices para graficar.")

    hover = [
        f"#{e['rank']} {e['rule_text']}<br>score={_fmt_float(e['score'])}<br>"
        f"size={e['size']} error={_fmt_float(e['total_error'])}"
        for e in entries
    ]
    fig = go.Figure(
        go.Scatter(
            x=[e["size"] for e in entries],
            y=[e["avg_error"] for e in entries],
            mode="markers+text",
            text=[f"#{e['rank']}" for e in entries],
            textposition="top right",
            hovertext=hover,
            hoverinfo="text",
            marker=dict(
                size=12,
                color=[e["level"] for e in entries],
                colorscale="Viridis",
                colorbar=dict(title="Nivel"),
                line=dict(width=0.5, color="black"),
            ),
            name="slices",
        )
    )
    fig.add_hline(y=result.avg_error, line_dash="dash", line_color="gray", annotation_text="error medio")
    fig.update_layout(title=title, xaxis_title="size", yaxis_title="error medio del slice")
    if show:
        fig.show()
    return fig
