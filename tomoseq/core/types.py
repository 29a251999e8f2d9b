"""Typed configuration and result containers for tomo-seq core operations."""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass, field

import pandas as pd

from tomoseq.errors import InvalidParameterError

NORMALIZE_METHODS: tuple[str, ...] = ("median", "cpm")
MATRIX_NAMES: tuple[str, ...] = ("count", "normalized", "scaled")
ADJUST_METHODS: tuple[str, ...] = ("BH", "bonferroni", "none")

PEAK_TABLE_COLUMNS: tuple[str, ...] = (
    "gene",
    "start",
    "end",
    "center",
    "p_value",
    "adjusted_p_value",
)
SKIPPED_TABLE_COLUMNS: tuple[str, ...] = ("gene", "stage", "reason")


def _as_number(name: str, value) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidParameterError(f"{name} must be a number, got {value!r}.")
    return float(value)


def _as_int(name: str, value) -> int:
    number = _as_number(name, value)
    if not math.isfinite(number) or int(number) != number:
        raise InvalidParameterError(f"{name} must be an integer, got {value!r}.")
    return int(number)


@dataclass(frozen=True)
class TomoConfig:
    """Container construction options."""

    normalize: bool = True
    normalize_method: str = "median"
    scale: bool = True

    def validate(self) -> "TomoConfig":
        for name in ("normalize", "scale"):
            if not isinstance(getattr(self, name), bool):
                raise InvalidParameterError(
                    f"{name} must be true or false, got {getattr(self, name)!r}.",
                    stage="container",
                )
        if self.normalize_method not in NORMALIZE_METHODS:
            raise InvalidParameterError(
                f"normalize_method must be one of {NORMALIZE_METHODS}, got '{self.normalize_method}'.",
                stage="container",
            )
        if self.scale and not self.normalize:
            raise InvalidParameterError(
                "scale=True requires normalize=True.", stage="container"
            )
        return self


@dataclass(frozen=True)
class PeakConfig:
    """Peak-gene detection and permutation-test configuration."""

    threshold: float = 1.0
    min_length: int = 4
    n_perm: int = 100000
    seed: int | None = None
    matrix: str = "scaled"
    adjust_method: str = "BH"
    n_jobs: int = 1
    batch_size: int = 10000

    def validate(self) -> "PeakConfig":
        threshold = _as_number("threshold", self.threshold)
        if not math.isfinite(threshold):
            raise InvalidParameterError("threshold must be finite.")
        for name in ("min_length", "n_perm", "batch_size"):
            if _as_int(name, getattr(self, name)) < 1:
                raise InvalidParameterError(
                    f"{name} must be a positive integer, got {getattr(self, name)!r}."
                )
        n_jobs = _as_int("n_jobs", self.n_jobs)
        # -1 is joblib's "all cores"
        if n_jobs < 1 and n_jobs != -1:
            raise InvalidParameterError(
                f"n_jobs must be a positive integer or -1, got {self.n_jobs!r}."
            )
        if self.seed is not None and _as_int("seed", self.seed) < 0:
            raise InvalidParameterError("seed must be a non-negative integer.")
        if self.matrix not in MATRIX_NAMES:
            raise InvalidParameterError(
                f"matrix must be one of {MATRIX_NAMES}, got '{self.matrix}'."
            )
        if self.adjust_method not in ADJUST_METHODS:
            raise InvalidParameterError(
                f"adjust_method must be one of {ADJUST_METHODS}, got '{self.adjust_method}'."
            )
        return self


@dataclass(frozen=True)
class Run:
    """One maximal above-threshold run.

    - `start`/`end`: 1-based inclusive section indices.
    - `center`: section index of the run maximum (lowest index on ties).
    - `statistic`: sum of (value - threshold) over the run.
    """

    start: int
    end: int
    center: int
    statistic: float

    @property
    def length(self) -> int:
        return int(self.end - self.start + 1)


@dataclass(frozen=True)
class PeakCandidate:
    """A gene's best run, decorated with p-values once tested."""

    gene: str
    start: int
    end: int
    center: int
    statistic: float
    p_value: float | None = None
    adjusted_p_value: float | None = None

    @classmethod
    def from_run(cls, gene: str, run: Run) -> "PeakCandidate":
        return cls(
            gene=str(gene),
            start=int(run.start),
            end=int(run.end),
            center=int(run.center),
            statistic=float(run.statistic),
        )


@dataclass(frozen=True)
class PeakScanResult:
    """Output of `scan_peak_genes`."""

    table: pd.DataFrame
    skipped: pd.DataFrame
    n_genes_tested: int
    config: PeakConfig = field(default_factory=PeakConfig)
