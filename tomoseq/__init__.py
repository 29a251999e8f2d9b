"""tomoseq public API."""

from tomoseq._version import __version__
from tomoseq.core.types import PeakConfig, Run, TomoConfig
from tomoseq.errors import (
    DegenerateInputError,
    InvalidInputError,
    InvalidParameterError,
    TomoseqError,
)
from tomoseq.matrix import create_tomo, get_matrix, section_labels
from tomoseq.normalization import library_sizes, normalize
from tomoseq.peakgenes import find_peak_genes, scan_peak_genes
from tomoseq.runs import best_run, find_runs
from tomoseq.scaling import scale
from tomoseq.stats.multitest import adjust_pvalues, bh_fdr
from tomoseq.stats.permutation import permutation_pvalue

__all__ = [
    "__version__",
    "PeakConfig",
    "TomoConfig",
    "Run",
    "TomoseqError",
    "InvalidInputError",
    "DegenerateInputError",
    "InvalidParameterError",
    "create_tomo",
    "get_matrix",
    "section_labels",
    "library_sizes",
    "normalize",
    "scale",
    "find_runs",
    "best_run",
    "permutation_pvalue",
    "adjust_pvalues",
    "bh_fdr",
    "scan_peak_genes",
    "find_peak_genes",
]
