"""Library-size normalization of raw tomo-seq counts."""

from __future__ import annotations

import numpy as np
import pandas as pd

from tomoseq.core.types import NORMALIZE_METHODS
from tomoseq.core.utils import as_gene_frame
from tomoseq.errors import DegenerateInputError, InvalidInputError, InvalidParameterError

CPM_SCALE = 1e6


def library_sizes(counts) -> pd.Series:
    """Column sums (total counts per section), indexed by section."""
    frame = as_gene_frame(counts, stage="normalize")
    return frame.sum(axis=0)


def normalize(counts, method: str = "median") -> pd.DataFrame:
    """Rescale every section to a common library size.

    Args:
        counts: Raw gene x section count matrix.
        method: ``"median"`` scales each section to the median library size,
            ``"cpm"`` to one million counts.

    Returns:
        Normalized matrix with the same shape and labels as the input.

    Raises:
        InvalidParameterError: If ``method`` is unknown.
        InvalidInputError: If counts are non-finite or negative.
        DegenerateInputError: If any section has a zero library size.
    """
    if method not in NORMALIZE_METHODS:
        raise InvalidParameterError(
            f"method must be one of {NORMALIZE_METHODS}, got '{method}'.",
            stage="normalize",
        )
    frame = as_gene_frame(counts, stage="normalize")
    values = frame.to_numpy(dtype=float)
    if not np.isfinite(values).all():
        bad = frame.columns[~np.isfinite(values).all(axis=0)].tolist()
        raise InvalidInputError(
            "counts must be finite.", stage="normalize", entity=str(bad[0])
        )
    if np.any(values < 0.0):
        bad = frame.columns[(values < 0.0).any(axis=0)].tolist()
        raise InvalidInputError(
            "counts must be non-negative.", stage="normalize", entity=str(bad[0])
        )

    lib = values.sum(axis=0)
    zero = lib <= 0.0
    if np.any(zero):
        bad = frame.columns[zero].tolist()
        raise DegenerateInputError(
            f"cannot normalize sections with zero total counts ({len(bad)} section(s)).",
            stage="normalize",
            entity=str(bad[0]),
        )

    target = float(np.median(lib)) if method == "median" else CPM_SCALE
    out = values * (target / lib)[np.newaxis, :]
    return pd.DataFrame(out, index=frame.index.copy(), columns=frame.columns.copy())
