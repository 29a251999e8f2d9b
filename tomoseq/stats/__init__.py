"""Statistical utilities for tomo-seq peak genes."""

from tomoseq.stats.multitest import adjust_pvalues, bh_fdr, bonferroni
from tomoseq.stats.permutation import (
    permutation_null,
    permutation_pvalue,
    plus_one_pvalue,
)

__all__ = [
    "adjust_pvalues",
    "bh_fdr",
    "bonferroni",
    "permutation_null",
    "permutation_pvalue",
    "plus_one_pvalue",
]
