"""Multiple-testing correction for per-gene permutation p-values."""

from __future__ import annotations

import numpy as np

from tomoseq.core.types import ADJUST_METHODS
from tomoseq.errors import InvalidInputError, InvalidParameterError


def _as_pvalues(pvals) -> np.ndarray:
    arr = np.asarray(pvals, dtype=float).ravel()
    if not np.isfinite(arr).all():
        raise InvalidInputError("p-values must be finite.", stage="adjust")
    if np.any((arr < 0.0) | (arr > 1.0)):
        raise InvalidInputError("p-values must be in [0, 1].", stage="adjust")
    return arr


def bh_fdr(pvals) -> np.ndarray:
    """Benjamini-Hochberg step-up adjusted p-values, in input order."""
    p = _as_pvalues(pvals)
    m = int(p.size)
    if m == 0:
        return np.zeros(0, dtype=float)
    order = np.argsort(p, kind="mergesort")
    ranked = p[order]
    ranks = np.arange(1, m + 1, dtype=float)
    adj = ranked * (float(m) / ranks)
    adj = np.minimum.accumulate(adj[::-1])[::-1]
    adj = np.clip(adj, 0.0, 1.0)
    q = np.empty_like(adj)
    q[order] = adj
    return q


def bonferroni(pvals) -> np.ndarray:
    p = _as_pvalues(pvals)
    return np.clip(p * float(p.size), 0.0, 1.0)


def adjust_pvalues(pvals, method: str = "BH") -> np.ndarray:
    """Adjust p-values for multiple comparisons.

    Args:
        pvals: Sequence of p-values in [0, 1]; may be empty.
        method: ``"BH"`` (default), ``"bonferroni"`` or ``"none"``.

    Returns:
        Adjusted p-values with the same order and length as ``pvals``.
    """
    if method == "BH":
        return bh_fdr(pvals)
    if method == "bonferroni":
        return bonferroni(pvals)
    if method == "none":
        return _as_pvalues(pvals).copy()
    raise InvalidParameterError(
        f"method must be one of {ADJUST_METHODS}, got '{method}'.", stage="adjust"
    )
