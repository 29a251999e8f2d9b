import numpy as np
import pandas as pd
import pytest
import scipy.sparse as sp

from tomoseq.core.types import TomoConfig
from tomoseq.errors import InvalidInputError, InvalidParameterError
from tomoseq.matrix import create_tomo, get_matrix, section_labels


def _counts() -> pd.DataFrame:
    return pd.DataFrame(
        [[1, 4, 9, 2], [3, 3, 1, 5], [0, 0, 0, 0], [2, 8, 2, 1]],
        index=["gA", "gB", "gZero", "gC"],
        columns=["sec1", "sec2", "sec3", "sec4"],
    )


def test_layers_and_orientation():
    adata = create_tomo(_counts())
    assert set(adata.layers.keys()) == {"count", "normalized", "scaled"}
    assert adata.shape == (4, 4)
    assert section_labels(adata) == ["sec1", "sec2", "sec3", "sec4"]
    assert adata.obs["position"].tolist() == [1, 2, 3, 4]

    count = get_matrix(adata, "count")
    assert count.index.tolist() == ["gA", "gB", "gZero", "gC"]
    assert count.columns.tolist() == ["sec1", "sec2", "sec3", "sec4"]
    np.testing.assert_allclose(count.to_numpy(), _counts().to_numpy())


def test_zero_variance_gene_flagged_and_nan_in_scaled():
    adata = create_tomo(_counts())
    assert adata.var["scaled_excluded"].tolist() == [False, False, True, False]
    scaled = get_matrix(adata, "scaled")
    assert scaled.loc["gZero"].isna().all()
    kept = scaled.drop(index="gZero").to_numpy()
    np.testing.assert_allclose(kept.mean(axis=1), 0.0, atol=1e-12)


def test_normalized_layer_matches_library_sizes():
    adata = create_tomo(_counts(), config=TomoConfig(normalize_method="cpm"))
    normalized = get_matrix(adata, "normalized")
    np.testing.assert_allclose(normalized.sum(axis=0).to_numpy(), np.full(4, 1e6))
    np.testing.assert_allclose(adata.obs["library_size"].to_numpy(), [6, 15, 12, 8])


def test_sparse_input_with_labels():
    mat = sp.csr_matrix(np.array([[1.0, 0.0, 3.0], [2.0, 5.0, 1.0]]))
    adata = create_tomo(mat, genes=["x", "y"], sections=["a", "b", "c"])
    assert list(adata.var_names) == ["x", "y"]
    assert section_labels(adata) == ["a", "b", "c"]


def test_counts_only_when_normalization_disabled():
    adata = create_tomo(_counts(), config=TomoConfig(normalize=False, scale=False))
    assert set(adata.layers.keys()) == {"count"}
    with pytest.raises(KeyError, match="scaled"):
        get_matrix(adata, "scaled")


def test_scale_without_normalize_rejected():
    with pytest.raises(InvalidParameterError):
        create_tomo(_counts(), config=TomoConfig(normalize=False, scale=True))


def test_label_length_mismatch_rejected():
    with pytest.raises(InvalidInputError, match="section labels"):
        create_tomo(np.ones((2, 3)), sections=["a", "b"])


def test_duplicate_genes_rejected():
    counts = _counts()
    counts.index = ["gA", "gA", "gZero", "gC"]
    with pytest.raises(InvalidInputError, match="unique"):
        create_tomo(counts)


def test_negative_counts_rejected():
    counts = _counts()
    counts.iloc[0, 0] = -2
    with pytest.raises(InvalidInputError, match="non-negative"):
        create_tomo(counts)
