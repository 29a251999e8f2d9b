"""Core types and helpers."""

from tomoseq.core.types import (
    PeakCandidate,
    PeakConfig,
    PeakScanResult,
    Run,
    TomoConfig,
)
from tomoseq.core.utils import as_gene_frame, finite_1d, rng_for_gene, stable_seed

__all__ = [
    "PeakConfig",
    "TomoConfig",
    "Run",
    "PeakCandidate",
    "PeakScanResult",
    "as_gene_frame",
    "finite_1d",
    "rng_for_gene",
    "stable_seed",
]
