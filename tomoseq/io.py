"""File I/O and logging helpers for tomoseq command-line runs."""

from __future__ import annotations

import dataclasses
import json
import logging
from pathlib import Path
from typing import Any

import anndata as ad
import numpy as np
import pandas as pd
import scipy.sparse as sp

from tomoseq.errors import InvalidInputError

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_FILE = Path("logs") / "tomoseq.log"


def prepare_outdir(outdir: str | Path) -> Path:
    """Create ``outdir`` and its ``logs/`` subdirectory."""
    root = Path(outdir)
    (root / LOG_FILE).parent.mkdir(parents=True, exist_ok=True)
    return root


def _json_default(obj: Any) -> Any:
    if isinstance(obj, np.generic):
        return obj.item()
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, Path):
        return str(obj)
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    raise TypeError(f"{type(obj).__name__} is not JSON serializable")


def write_json(path: str | Path, payload: dict[str, Any]) -> Path:
    """Write run metadata; numpy scalars, paths and config dataclasses are converted."""
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(
        json.dumps(payload, indent=2, sort_keys=True, default=_json_default) + "\n",
        encoding="utf-8",
    )
    return out


def setup_run_logger(outdir: str | Path, level: int = logging.INFO) -> logging.Logger:
    """Attach a run log (``<outdir>/logs/tomoseq.log``) and stderr output to the ``tomoseq`` logger.

    Handlers from an earlier run in the same process are closed first, so
    repeated runs never write to a stale log file.
    """
    log_path = prepare_outdir(outdir) / LOG_FILE
    logger = logging.getLogger("tomoseq")
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    formatter = logging.Formatter(LOG_FORMAT)
    for handler in (
        logging.FileHandler(log_path, mode="w", encoding="utf-8"),
        logging.StreamHandler(),
    ):
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger


def read_count_table(path: str | Path) -> pd.DataFrame:
    """Read a gene x section count table (first column holds gene ids).

    ``.tsv``/``.txt`` files are tab separated, everything else is CSV.
    Column order is kept as the section order.
    """
    table_path = Path(path)
    if not table_path.exists():
        raise FileNotFoundError(f"Input file '{table_path}' not found.")
    sep = "\t" if table_path.suffix.lower() in {".tsv", ".txt"} else ","
    frame = pd.read_csv(table_path, sep=sep, index_col=0)
    if frame.empty:
        raise InvalidInputError(f"count table '{table_path}' is empty.", stage="container")
    frame.index = frame.index.astype(str)
    frame.columns = frame.columns.astype(str)
    return frame


def read_h5ad_counts(path: str | Path, layer: str = "count") -> pd.DataFrame:
    """Read counts from an ``.h5ad`` (sections as obs) as a gene x section frame."""
    h5_path = Path(path)
    if not h5_path.exists():
        raise FileNotFoundError(f"Input file '{h5_path}' not found.")
    adata = ad.read_h5ad(h5_path)
    mat = adata.layers[layer] if layer in adata.layers else adata.X
    if sp.issparse(mat):
        mat = mat.toarray()
    return pd.DataFrame(
        mat.T,
        index=pd.Index(adata.var_names.astype(str)),
        columns=pd.Index(adata.obs_names.astype(str)),
    )
