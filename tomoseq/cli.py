"""Command-line interface for tomo-seq peak-gene scans."""

from __future__ import annotations

import argparse
import platform
from dataclasses import replace
from pathlib import Path
from typing import Iterable

import numpy as np
import pandas as pd

from tomoseq._version import __version__
from tomoseq.config import check_matrix_available, load_run_config
from tomoseq.core.types import ADJUST_METHODS, MATRIX_NAMES, NORMALIZE_METHODS, PeakConfig, TomoConfig
from tomoseq.io import prepare_outdir, read_count_table, read_h5ad_counts, setup_run_logger, write_json
from tomoseq.matrix import create_tomo
from tomoseq.peakgenes import scan_peak_genes


def _read_counts(path: str) -> pd.DataFrame:
    if Path(path).suffix.lower() == ".h5ad":
        return read_h5ad_counts(path)
    return read_count_table(path)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Find tomo-seq peak genes")
    parser.add_argument("--counts", required=True, help="Count table (.csv/.tsv) or .h5ad")
    parser.add_argument("--outdir", default="tomoseq_out", help="Output directory")
    parser.add_argument("--config", default=None, help="JSON config with 'tomo'/'peaks' sections")
    parser.add_argument("--threshold", type=float, default=None, help="Run threshold")
    parser.add_argument("--min-length", type=int, default=None, help="Minimum run length")
    parser.add_argument("--n-perm", type=int, default=None, help="Number of permutations")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--matrix", choices=MATRIX_NAMES, default=None, help="Matrix to scan")
    parser.add_argument("--adjust", choices=ADJUST_METHODS, default=None, help="P-value adjustment")
    parser.add_argument("--normalize-method", choices=NORMALIZE_METHODS, default=None)
    parser.add_argument("--n-jobs", type=int, default=None, help="Parallel workers")
    return parser


def _merge_args(args: argparse.Namespace) -> tuple[TomoConfig, PeakConfig]:
    if args.config is not None:
        tomo_cfg, peak_cfg = load_run_config(args.config)
    else:
        tomo_cfg, peak_cfg = TomoConfig(), PeakConfig()

    peak_overrides = {
        "threshold": args.threshold,
        "min_length": args.min_length,
        "n_perm": args.n_perm,
        "seed": args.seed,
        "matrix": args.matrix,
        "adjust_method": args.adjust,
        "n_jobs": args.n_jobs,
    }
    peak_cfg = replace(peak_cfg, **{k: v for k, v in peak_overrides.items() if v is not None})
    if args.normalize_method is not None:
        tomo_cfg = replace(tomo_cfg, normalize_method=args.normalize_method)
    tomo_cfg, peak_cfg = tomo_cfg.validate(), peak_cfg.validate()
    check_matrix_available(tomo_cfg, peak_cfg)
    return tomo_cfg, peak_cfg


def find_peaks_main(argv: Iterable[str] | None = None) -> int:
    """Run a peak-gene scan and write result tables.

    Args:
        argv: Command-line arguments (if None, uses sys.argv).

    Returns:
        Exit code (0 for success).
    """
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    outdir = prepare_outdir(args.outdir)
    logger = setup_run_logger(outdir)

    tomo_cfg, peak_cfg = _merge_args(args)
    counts = _read_counts(args.counts)
    logger.info("Loaded counts: %d gene(s) x %d section(s) from %s", *counts.shape, args.counts)

    adata = create_tomo(counts, config=tomo_cfg, logger=logger)
    result = scan_peak_genes(adata, peak_cfg, logger=logger)

    table_path = outdir / "peak_genes.csv"
    skipped_path = outdir / "skipped_genes.csv"
    result.table.to_csv(table_path, index=False)
    result.skipped.to_csv(skipped_path, index=False)
    write_json(
        outdir / "run_metadata.json",
        {
            "tomoseq_version": __version__,
            "python": platform.python_version(),
            "numpy": np.__version__,
            "pandas": pd.__version__,
            "counts_path": str(args.counts),
            "n_genes": counts.shape[0],
            "n_sections": counts.shape[1],
            "n_genes_tested": result.n_genes_tested,
            "n_candidates": int(result.table.shape[0]),
            "n_skipped": int(result.skipped.shape[0]),
            "tomo_config": tomo_cfg,
            "peak_config": peak_cfg,
        },
    )
    logger.info("Wrote %s and %s", table_path, skipped_path)
    return 0


if __name__ == "__main__":
    raise SystemExit(find_peaks_main())
