"""AnnData container for tomo-seq expression matrices.

Sections are observations (``obs``, in spatial order) and genes are variables
(``var``). The named matrix variants live in ``adata.layers`` under
``"count"``, ``"normalized"`` and ``"scaled"``; ``get_matrix`` returns any of
them in the gene x section orientation used by the analysis functions.
"""

from __future__ import annotations

import logging
from typing import Sequence

import anndata as ad
import numpy as np
import pandas as pd
import scipy.sparse as sp

from tomoseq.core.types import TomoConfig
from tomoseq.core.utils import as_gene_frame
from tomoseq.errors import InvalidInputError
from tomoseq.normalization import normalize
from tomoseq.scaling import scale

LOGGER = logging.getLogger(__name__)


def _label_frame(
    counts,
    genes: Sequence[str] | None,
    sections: Sequence[str] | None,
) -> pd.DataFrame:
    frame = as_gene_frame(counts, stage="container")
    if genes is not None:
        if len(genes) != frame.shape[0]:
            raise InvalidInputError(
                f"got {len(genes)} gene labels for {frame.shape[0]} rows.",
                stage="container",
            )
        frame.index = pd.Index([str(g) for g in genes])
    if sections is not None:
        if len(sections) != frame.shape[1]:
            raise InvalidInputError(
                f"got {len(sections)} section labels for {frame.shape[1]} columns.",
                stage="container",
            )
        frame.columns = pd.Index([str(s) for s in sections])
    frame.index = frame.index.astype(str)
    frame.columns = frame.columns.astype(str)
    # re-check after str conversion (e.g. 1 and "1")
    return as_gene_frame(frame, stage="container")


def create_tomo(
    counts,
    *,
    genes: Sequence[str] | None = None,
    sections: Sequence[str] | None = None,
    config: TomoConfig | None = None,
    logger: logging.Logger | None = None,
) -> ad.AnnData:
    """Build an AnnData container from a gene x section count matrix.

    Args:
        counts: Raw counts as a ``DataFrame`` (genes as rows, sections as
            columns, in spatial order), a dense array or a sparse matrix.
        genes: Gene labels overriding the row labels.
        sections: Section labels overriding the column labels.
        config: Normalization/scaling options.
        logger: Logger for scaling exclusions.

    Returns:
        AnnData with layers ``count`` and, when enabled, ``normalized`` and
        ``scaled``. Genes dropped by scaling are all-NaN in ``scaled`` and
        flagged in ``var["scaled_excluded"]``.
    """
    cfg = (config or TomoConfig()).validate()
    frame = _label_frame(counts, genes, sections)

    values = frame.to_numpy(dtype=float)
    if not np.isfinite(values).all():
        raise InvalidInputError("counts must be finite.", stage="container")
    if np.any(values < 0.0):
        raise InvalidInputError("counts must be non-negative.", stage="container")

    obs = pd.DataFrame(
        {
            "section": frame.columns.to_list(),
            "position": np.arange(1, frame.shape[1] + 1, dtype=int),
            "library_size": values.sum(axis=0),
        },
        index=frame.columns.copy(),
    )
    var = pd.DataFrame({"gene": frame.index.to_list()}, index=frame.index.copy())
    adata = ad.AnnData(X=values.T.copy(), obs=obs, var=var)
    adata.layers["count"] = values.T.copy()

    if cfg.normalize:
        normalized = normalize(frame, method=cfg.normalize_method)
        adata.layers["normalized"] = normalized.to_numpy(dtype=float).T
        if cfg.scale:
            scaled, excluded = scale(normalized, return_excluded=True, logger=logger or LOGGER)
            full = scaled.reindex(index=frame.index)
            adata.layers["scaled"] = full.to_numpy(dtype=float).T
            adata.var["scaled_excluded"] = adata.var_names.isin(excluded)

    adata.uns["tomoseq"] = {
        "normalize": bool(cfg.normalize),
        "normalize_method": str(cfg.normalize_method),
        "scale": bool(cfg.scale),
    }
    return adata


def get_matrix(adata: ad.AnnData, name: str = "scaled") -> pd.DataFrame:
    """Return a named matrix variant as a gene x section ``DataFrame``."""
    if name not in adata.layers:
        raise KeyError(f"Layer '{name}' not found in adata.layers.")
    mat = adata.layers[name]
    values = mat.toarray() if sp.issparse(mat) else np.asarray(mat)
    return pd.DataFrame(
        values.T.astype(float),
        index=pd.Index(adata.var_names, name="gene"),
        columns=pd.Index(adata.obs_names, name="section"),
    )


def section_labels(adata: ad.AnnData) -> list[str]:
    return [str(s) for s in adata.obs_names]
