"""Legacy wrapper for the tomoseq peak-gene CLI."""

from __future__ import annotations

import warnings

from tomoseq.cli import find_peaks_main

if __name__ == "__main__":
    warnings.warn(
        "scripts/find_peak_genes.py is deprecated; use the canonical 'tomoseq-peaks' entrypoint.",
        DeprecationWarning,
        stacklevel=1,
    )
    raise SystemExit(find_peaks_main())
