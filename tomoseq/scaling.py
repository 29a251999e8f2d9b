"""Per-gene Z-score scaling across sections."""

from __future__ import annotations

import logging

import numpy as np
import pandas as pd
from scipy.stats import zscore

from tomoseq.core.utils import as_gene_frame
from tomoseq.errors import DegenerateInputError, InvalidInputError

LOGGER = logging.getLogger(__name__)


def scale(
    normalized,
    *,
    return_excluded: bool = False,
    logger: logging.Logger | None = None,
) -> pd.DataFrame | tuple[pd.DataFrame, list[str]]:
    """Z-score each gene row using its mean and sample standard deviation.

    Constant rows have no defined Z-score; they are dropped from the output
    and logged rather than failing the whole matrix.

    Args:
        normalized: Gene x section matrix (normally the Normalizer output).
        return_excluded: Also return the names of dropped genes.
        logger: Logger for exclusion messages (module logger by default).

    Returns:
        Scaled matrix with the retained genes in input order, or a
        ``(scaled, excluded)`` tuple when ``return_excluded`` is set.
    """
    log = logger or LOGGER
    frame = as_gene_frame(normalized, stage="scale")
    if frame.shape[1] < 2:
        raise DegenerateInputError(
            "at least two sections are required to compute a standard deviation.",
            stage="scale",
        )
    values = frame.to_numpy(dtype=float)
    finite_rows = np.isfinite(values).all(axis=1)
    if not finite_rows.all():
        bad = frame.index[~finite_rows].tolist()
        raise InvalidInputError(
            "normalized values must be finite.", stage="scale", entity=str(bad[0])
        )

    sd = values.std(axis=1, ddof=1)
    keep = sd > 0.0
    excluded = [str(g) for g in frame.index[~keep]]
    if excluded:
        log.warning(
            "Scaling excluded %d zero-variance gene(s): %s%s",
            len(excluded),
            ", ".join(excluded[:10]),
            " ..." if len(excluded) > 10 else "",
        )
    if not np.any(keep):
        raise DegenerateInputError(
            "every gene has zero variance across sections.", stage="scale"
        )

    scaled = zscore(values[keep], axis=1, ddof=1)
    out = pd.DataFrame(
        scaled, index=frame.index[keep].copy(), columns=frame.columns.copy()
    )
    if return_excluded:
        return out, excluded
    return out
