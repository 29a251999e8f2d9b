"""Small pure helpers for core computations."""

from __future__ import annotations

import hashlib

import numpy as np
import pandas as pd
import scipy.sparse as sp

from tomoseq.errors import InvalidInputError


def finite_1d(
    name: str,
    values: np.ndarray,
    *,
    stage: str | None = None,
    entity: str | None = None,
) -> np.ndarray:
    arr = np.asarray(values, dtype=float).ravel()
    if arr.size == 0:
        raise InvalidInputError(f"{name} must be non-empty.", stage=stage, entity=entity)
    if not np.isfinite(arr).all():
        raise InvalidInputError(f"{name} must be finite.", stage=stage, entity=entity)
    return arr


def stable_seed(master_seed: int, *tokens: object) -> int:
    """Derive a stable uint32 seed from a master seed and string tokens.

    Python's salted ``hash`` is avoided so that seeds agree across processes.
    """
    parts = [str(int(master_seed))] + [str(tok) for tok in tokens]
    payload = "|".join(parts).encode("utf-8")
    digest = hashlib.sha256(payload).digest()
    offset = int.from_bytes(digest[:8], "big")
    return int((int(master_seed) + offset) % (2**32))


def rng_for_gene(seed: int | None, gene: str) -> np.random.Generator:
    """Independent generator per gene; unseeded when ``seed`` is None."""
    if seed is None:
        return np.random.default_rng()
    return np.random.default_rng(stable_seed(int(seed), gene))


def as_gene_frame(matrix, *, stage: str | None = None) -> pd.DataFrame:
    """Coerce a gene x section matrix to a float ``DataFrame``.

    Accepts a ``DataFrame``, a dense array or a ``scipy.sparse`` matrix.
    Row/column labels of a ``DataFrame`` are kept; arrays get integer labels.
    """
    if isinstance(matrix, pd.DataFrame):
        frame = matrix
    else:
        values = matrix.toarray() if sp.issparse(matrix) else np.asarray(matrix)
        if values.ndim != 2:
            raise InvalidInputError(
                f"matrix must be 2D (genes x sections), got shape {values.shape}.",
                stage=stage,
            )
        frame = pd.DataFrame(values)

    if frame.shape[0] == 0 or frame.shape[1] == 0:
        raise InvalidInputError(
            f"matrix must be non-empty, got shape {frame.shape}.", stage=stage
        )
    if not frame.index.is_unique:
        dup = frame.index[frame.index.duplicated()].unique().tolist()
        raise InvalidInputError(
            f"gene labels must be unique (duplicates: {dup[:5]}).", stage=stage
        )
    if not frame.columns.is_unique:
        dup = frame.columns[frame.columns.duplicated()].unique().tolist()
        raise InvalidInputError(
            f"section labels must be unique (duplicates: {dup[:5]}).", stage=stage
        )
    try:
        frame = frame.astype(float)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"matrix must be numeric: {exc}", stage=stage) from exc
    return frame
