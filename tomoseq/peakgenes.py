"""Peak-gene scan: run detection, permutation testing and FDR adjustment.

Genes are independent units of work. Each gene gets its own random stream
derived from ``PeakConfig.seed`` and the gene name, so p-values do not depend
on worker scheduling or on which other genes are scanned. Per-gene failures
are recorded in the ``skipped`` table and never abort the batch.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any

import anndata as ad
import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from tomoseq.core.types import (
    PEAK_TABLE_COLUMNS,
    SKIPPED_TABLE_COLUMNS,
    PeakCandidate,
    PeakConfig,
    PeakScanResult,
)
from tomoseq.core.utils import as_gene_frame, rng_for_gene
from tomoseq.errors import DegenerateInputError, InvalidInputError
from tomoseq.matrix import get_matrix
from tomoseq.runs import best_run
from tomoseq.stats.multitest import adjust_pvalues
from tomoseq.stats.permutation import permutation_pvalue

LOGGER = logging.getLogger(__name__)


def _skip(gene: str, stage: str, reason: str) -> dict[str, Any]:
    return {"gene": gene, "candidate": None, "skip": (stage, reason)}


def analyze_gene(gene: str, values: np.ndarray, config: PeakConfig) -> dict[str, Any]:
    """Detect the best run of one gene and test it by permutation.

    Returns a dict with ``candidate`` (``PeakCandidate`` with ``p_value`` set,
    or None when no run qualifies) and ``skip`` (``(stage, reason)`` when the
    gene could not be analysed).
    """
    try:
        run = best_run(values, config.threshold, config.min_length, gene=gene)
    except (InvalidInputError, DegenerateInputError) as exc:
        return _skip(gene, "detect", exc.reason)
    if run is None:
        return {"gene": gene, "candidate": None, "skip": None}

    try:
        p_value = permutation_pvalue(
            values,
            run.statistic,
            config.threshold,
            config.min_length,
            config.n_perm,
            rng_for_gene(config.seed, gene),
            batch_size=config.batch_size,
            gene=gene,
        )
    except (InvalidInputError, DegenerateInputError) as exc:
        return _skip(gene, "permute", exc.reason)

    candidate = replace(PeakCandidate.from_run(gene, run), p_value=p_value)
    return {"gene": gene, "candidate": candidate, "skip": None}


def _resolve_frame(data: ad.AnnData | pd.DataFrame, config: PeakConfig) -> tuple[pd.DataFrame, list[str]]:
    if isinstance(data, ad.AnnData):
        frame = get_matrix(data, config.matrix)
        excluded: list[str] = []
        if config.matrix == "scaled" and "scaled_excluded" in data.var.columns:
            flags = data.var["scaled_excluded"].to_numpy(dtype=bool)
            excluded = [str(g) for g in data.var_names[flags]]
        return frame, excluded
    frame = as_gene_frame(data, stage="detect")
    frame.index = frame.index.astype(str)
    # labels like 1 and "1" only collide after the cast
    return as_gene_frame(frame, stage="detect"), []


def _run_genes(
    genes: list[str],
    values: np.ndarray,
    config: PeakConfig,
) -> list[dict[str, Any]]:
    if config.n_jobs == 1 or len(genes) <= 1:
        return [analyze_gene(g, values[i], config) for i, g in enumerate(genes)]
    return Parallel(n_jobs=int(config.n_jobs), backend="loky")(
        delayed(analyze_gene)(g, values[i], config) for i, g in enumerate(genes)
    )


def _empty_table() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "gene": pd.Series(dtype=str),
            "start": pd.Series(dtype=int),
            "end": pd.Series(dtype=int),
            "center": pd.Series(dtype=int),
            "p_value": pd.Series(dtype=float),
            "adjusted_p_value": pd.Series(dtype=float),
        }
    )


def scan_peak_genes(
    data: ad.AnnData | pd.DataFrame,
    config: PeakConfig | None = None,
    *,
    logger: logging.Logger | None = None,
) -> PeakScanResult:
    """Scan every gene for a significant above-threshold run.

    Args:
        data: AnnData built by ``create_tomo`` (the layer named by
            ``config.matrix`` is scanned) or a gene x section ``DataFrame``
            holding the values to scan.
        config: Detection/permutation parameters.
        logger: Logger for progress and skipped genes.

    Returns:
        ``PeakScanResult`` whose ``table`` has one row per gene with a
        qualifying run (its best run), in input gene order, and whose
        ``skipped`` table lists genes that could not be analysed.
    """
    cfg = (config or PeakConfig()).validate()
    log = logger or LOGGER
    frame, excluded = _resolve_frame(data, cfg)

    skipped_rows = [
        {"gene": g, "stage": "scale", "reason": "zero variance across sections"}
        for g in excluded
    ]
    excluded_set = set(excluded)
    genes = [str(g) for g in frame.index if str(g) not in excluded_set]
    values = frame.loc[genes].to_numpy(dtype=float) if genes else np.zeros((0, frame.shape[1]))

    log.info(
        "Scanning %d gene(s) x %d section(s): threshold=%s min_length=%d n_perm=%d seed=%s n_jobs=%d",
        len(genes),
        frame.shape[1],
        cfg.threshold,
        cfg.min_length,
        cfg.n_perm,
        cfg.seed,
        cfg.n_jobs,
    )
    results = _run_genes(genes, values, cfg)

    candidates: list[PeakCandidate] = []
    for res in results:
        if res["skip"] is not None:
            stage, reason = res["skip"]
            log.warning("Gene skipped: gene=%s stage=%s reason=%s", res["gene"], stage, reason)
            skipped_rows.append({"gene": res["gene"], "stage": stage, "reason": reason})
        elif res["candidate"] is not None:
            candidates.append(res["candidate"])

    if candidates:
        adjusted = adjust_pvalues([c.p_value for c in candidates], cfg.adjust_method)
        candidates = [
            replace(c, adjusted_p_value=float(q)) for c, q in zip(candidates, adjusted)
        ]
        table = pd.DataFrame(
            [{col: getattr(c, col) for col in PEAK_TABLE_COLUMNS} for c in candidates],
            columns=list(PEAK_TABLE_COLUMNS),
        )
    else:
        table = _empty_table()

    skipped = pd.DataFrame(skipped_rows, columns=list(SKIPPED_TABLE_COLUMNS))
    n_tested = len(genes) - sum(1 for r in results if r["skip"] is not None)
    log.info(
        "Peak scan done: %d candidate gene(s), %d skipped, %d tested.",
        len(candidates),
        len(skipped),
        n_tested,
    )
    return PeakScanResult(table=table, skipped=skipped, n_genes_tested=n_tested, config=cfg)


def find_peak_genes(
    data: ad.AnnData | pd.DataFrame,
    config: PeakConfig | None = None,
    *,
    logger: logging.Logger | None = None,
) -> pd.DataFrame:
    """Peak-gene table (``gene``, ``start``, ``end``, ``center``, ``p_value``, ``adjusted_p_value``)."""
    return scan_peak_genes(data, config, logger=logger).table
