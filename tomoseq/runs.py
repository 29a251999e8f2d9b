"""Above-threshold run detection for ordered section vectors.

A run is a maximal contiguous block of sections whose values strictly exceed
the threshold. Runs shorter than ``min_length`` are discarded. The run
statistic is the summed excess ``sum(x - threshold)`` over the run, so it
rewards both height and width; a vector without a qualifying run scores 0.
"""

from __future__ import annotations

import numpy as np

from tomoseq.core.types import Run
from tomoseq.errors import InvalidInputError, InvalidParameterError


def _validate_params(threshold: float, min_length: int) -> tuple[float, int]:
    thr = float(threshold)
    if not np.isfinite(thr):
        raise InvalidParameterError("threshold must be finite.", stage="detect")
    if int(min_length) != min_length or int(min_length) < 1:
        raise InvalidParameterError(
            f"min_length must be a positive integer, got {min_length!r}.",
            stage="detect",
        )
    return thr, int(min_length)


def _as_row(values: np.ndarray, gene: str | None) -> np.ndarray:
    arr = np.asarray(values, dtype=float).ravel()
    if arr.size == 0:
        raise InvalidInputError("expression vector is empty.", stage="detect", entity=gene)
    if not np.isfinite(arr).any():
        raise InvalidInputError(
            "expression vector has no finite values.", stage="detect", entity=gene
        )
    if not np.isfinite(arr).all():
        raise InvalidInputError(
            "expression vector contains NaN/inf.", stage="detect", entity=gene
        )
    return arr


def _run_bounds(mask: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Row ids, 0-based starts and exclusive ends of True blocks in a 2D mask."""
    n_rows = mask.shape[0]
    pad = np.zeros((n_rows, 1), dtype=np.int8)
    edges = np.diff(np.hstack([pad, mask.astype(np.int8), pad]), axis=1)
    rows, starts = np.nonzero(edges == 1)
    _, ends = np.nonzero(edges == -1)
    return rows, starts, ends


def best_run_statistics(values: np.ndarray, threshold: float, min_length: int) -> np.ndarray:
    """Best run statistic for every row of a 2D array of ordered vectors.

    Rows must already be finite; this is the inner loop of the permutation
    null and does not re-validate.
    """
    thr, min_len = _validate_params(threshold, min_length)
    arr = np.atleast_2d(np.asarray(values, dtype=float))
    n_rows, n_cols = arr.shape
    best = np.zeros(n_rows, dtype=float)
    if min_len > n_cols:
        return best

    mask = arr > thr
    rows, starts, ends = _run_bounds(mask)
    keep = (ends - starts) >= min_len
    if not np.any(keep):
        return best
    rows, starts, ends = rows[keep], starts[keep], ends[keep]

    excess = np.where(mask, arr - thr, 0.0)
    cum = np.hstack([np.zeros((n_rows, 1), dtype=float), np.cumsum(excess, axis=1)])
    stats = cum[rows, ends] - cum[rows, starts]
    np.maximum.at(best, rows, stats)
    return best


def find_runs(
    values: np.ndarray,
    threshold: float,
    min_length: int,
    *,
    gene: str | None = None,
) -> list[Run]:
    """Find all qualifying runs of one gene's ordered vector.

    Args:
        values: Expression vector ordered by section.
        threshold: Values must be strictly greater than this.
        min_length: Minimum number of sections in a run.
        gene: Optional gene label used in error messages.

    Returns:
        Runs in positional order with 1-based inclusive ``start``/``end``.
        Empty when no run qualifies (including ``min_length`` longer than
        the vector).

    Raises:
        InvalidInputError: If the vector is empty or not entirely finite.
        InvalidParameterError: If ``threshold`` or ``min_length`` is invalid.
    """
    thr, min_len = _validate_params(threshold, min_length)
    arr = _as_row(values, gene)
    if min_len > arr.size:
        return []

    mask = arr > thr
    _, starts, ends = _run_bounds(mask[np.newaxis, :])
    runs: list[Run] = []
    for s, e in zip(starts.tolist(), ends.tolist()):
        if e - s < min_len:
            continue
        block = arr[s:e]
        # argmax returns the first index among ties
        center = s + int(np.argmax(block))
        runs.append(
            Run(
                start=s + 1,
                end=e,
                center=center + 1,
                statistic=float(np.sum(block - thr)),
            )
        )
    return runs


def best_run(
    values: np.ndarray,
    threshold: float,
    min_length: int,
    *,
    gene: str | None = None,
) -> Run | None:
    """Run with the largest statistic (earliest on ties), or None."""
    runs = find_runs(values, threshold, min_length, gene=gene)
    if not runs:
        return None
    best = runs[0]
    for run in runs[1:]:
        if run.statistic > best.statistic:
            best = run
    return best
