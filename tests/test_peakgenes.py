import logging
from dataclasses import replace

import numpy as np
import pandas as pd
import pytest

from tomoseq.core.types import PEAK_TABLE_COLUMNS, PeakConfig
from tomoseq.errors import InvalidInputError, InvalidParameterError
from tomoseq.matrix import create_tomo, get_matrix
from tomoseq.peakgenes import analyze_gene, find_peak_genes, scan_peak_genes

SECTIONS = [f"s{i}" for i in range(1, 11)]


def _scenario_counts() -> pd.DataFrame:
    # noise rows sum to 8 in every section
    rows = {
        "G1": [1, 1, 50, 52, 49, 51, 1, 1, 1, 1],
        "G2": [1, 2, 3, 2, 1, 2, 3, 2, 1, 2],
        "G3": [3, 2, 1, 2, 3, 2, 1, 2, 3, 2],
        "G4": [2, 1, 2, 3, 2, 1, 2, 3, 2, 1],
        "G5": [2, 3, 2, 1, 2, 3, 2, 1, 2, 3],
    }
    return pd.DataFrame.from_dict(rows, orient="index", columns=SECTIONS)


def test_end_to_end_peak_gene_detected():
    adata = create_tomo(_scenario_counts())
    table = find_peak_genes(
        adata, PeakConfig(threshold=1.0, min_length=3, n_perm=1000, seed=42)
    )
    assert list(table.columns) == list(PEAK_TABLE_COLUMNS)
    assert table["gene"].tolist() == ["G1"]
    row = table.iloc[0]
    assert (int(row["start"]), int(row["end"])) == (3, 6)
    assert int(row["center"]) == 4
    assert 0.0 < row["p_value"] <= 1.0
    assert row["adjusted_p_value"] >= row["p_value"]
    assert row["adjusted_p_value"] < 0.05


def test_same_seed_same_pvalues():
    adata = create_tomo(_scenario_counts())
    cfg = PeakConfig(threshold=0.5, min_length=2, n_perm=400, seed=7)
    a = find_peak_genes(adata, cfg)
    b = find_peak_genes(adata, cfg)
    pd.testing.assert_frame_equal(a, b)


def test_gene_pvalue_independent_of_other_genes():
    scaled = get_matrix(create_tomo(_scenario_counts()), "scaled")
    cfg = PeakConfig(threshold=1.0, min_length=3, n_perm=300, seed=3)
    full = find_peak_genes(scaled, cfg)
    alone = find_peak_genes(scaled.loc[["G1"]], cfg)
    assert full.loc[full["gene"] == "G1", "p_value"].iloc[0] == alone["p_value"].iloc[0]


def test_parallel_matches_serial():
    scaled = get_matrix(create_tomo(_scenario_counts()), "scaled")
    cfg = PeakConfig(threshold=0.5, min_length=2, n_perm=200, seed=11)
    serial = find_peak_genes(scaled, cfg)
    parallel = find_peak_genes(scaled, replace(cfg, n_jobs=2))
    pd.testing.assert_frame_equal(serial, parallel)


def test_bad_gene_skipped_without_aborting(caplog):
    caplog.set_level(logging.WARNING)
    scaled = get_matrix(create_tomo(_scenario_counts()), "scaled").copy()
    scaled.loc["G3", "s2"] = np.nan
    result = scan_peak_genes(scaled, PeakConfig(threshold=1.0, min_length=3, n_perm=200, seed=1))
    assert result.table["gene"].tolist() == ["G1"]
    assert result.skipped["gene"].tolist() == ["G3"]
    assert result.skipped["stage"].tolist() == ["detect"]
    assert result.n_genes_tested == 4
    assert "Gene skipped" in caplog.text
    assert "G3" in caplog.text


def test_zero_variance_gene_reported_as_scaling_skip():
    counts = _scenario_counts()
    counts.loc["G6"] = 0
    result = scan_peak_genes(
        create_tomo(counts), PeakConfig(threshold=1.0, min_length=3, n_perm=100, seed=0)
    )
    assert result.skipped.to_dict("records") == [
        {"gene": "G6", "stage": "scale", "reason": "zero variance across sections"}
    ]
    assert "G6" not in result.table["gene"].tolist()


def test_no_candidates_gives_empty_table():
    scaled = get_matrix(create_tomo(_scenario_counts()), "scaled")
    table = find_peak_genes(scaled, PeakConfig(threshold=10.0, min_length=3, n_perm=10, seed=0))
    assert table.empty
    assert list(table.columns) == list(PEAK_TABLE_COLUMNS)


def test_analyze_gene_without_run():
    out = analyze_gene("g", np.zeros(6), PeakConfig(n_perm=10, seed=0))
    assert out["candidate"] is None
    assert out["skip"] is None


@pytest.mark.parametrize(
    "kwargs",
    [{"n_perm": 0}, {"min_length": 0}, {"matrix": "raw"}, {"adjust_method": "holm"}],
)
def test_invalid_config_rejected(kwargs):
    with pytest.raises(InvalidParameterError):
        find_peak_genes(pd.DataFrame(np.eye(4)), PeakConfig(**kwargs))


def test_gene_labels_colliding_as_strings_rejected():
    values = np.array([[0.0, 2.0, 2.0, 0.0], [1.0, 0.0, 0.0, 1.0]])
    frame = pd.DataFrame(values, index=[1, "1"])
    with pytest.raises(InvalidInputError, match="unique"):
        scan_peak_genes(frame, PeakConfig(min_length=1, n_perm=10, seed=0))
