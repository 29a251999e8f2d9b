import numpy as np
import pytest

from tomoseq.errors import InvalidInputError, InvalidParameterError
from tomoseq.runs import best_run
from tomoseq.stats.permutation import (
    permutation_null,
    permutation_pvalue,
    plus_one_pvalue,
)


def _peaked() -> np.ndarray:
    x = np.zeros(20, dtype=float)
    x[6:12] = 3.0
    return x


def test_pvalue_bounds_and_never_zero():
    x = _peaked()
    stat = best_run(x, 1.0, 3).statistic
    n_perm = 250
    p = permutation_pvalue(x, stat, 1.0, 3, n_perm, rng_seed=5)
    assert 0.0 < p <= 1.0
    assert p >= 1.0 / (n_perm + 1) - 1e-15


def test_unreachable_statistic_gives_minimum_pvalue():
    p = permutation_pvalue(_peaked(), 1e9, 1.0, 3, 99, rng_seed=0)
    assert p == pytest.approx(1.0 / 100.0)


def test_zero_statistic_gives_pvalue_one():
    p = permutation_pvalue(np.zeros(8), 0.0, 1.0, 2, 40, rng_seed=0)
    assert p == 1.0


def test_same_seed_is_bit_identical():
    rng = np.random.default_rng(9)
    x = rng.normal(size=30)
    a = permutation_null(x, 1.5, 0.5, 2, 500, rng_seed=123, batch_size=64)
    b = permutation_null(x, 1.5, 0.5, 2, 500, rng_seed=123, batch_size=64)
    assert np.array_equal(a["null_stat"], b["null_stat"])
    assert a["p_value"] == b["p_value"]


def test_different_seed_changes_null():
    rng = np.random.default_rng(9)
    x = rng.normal(size=30)
    a = permutation_null(x, 1.5, 0.5, 2, 300, rng_seed=1)
    b = permutation_null(x, 1.5, 0.5, 2, 300, rng_seed=2)
    assert not np.array_equal(a["null_stat"], b["null_stat"])


def test_null_shape_and_batching():
    out = permutation_null(_peaked(), 2.0, 1.0, 3, 1003, rng_seed=4, batch_size=100)
    assert out["null_stat"].shape == (1003,)
    assert out["n_perm_used"] == 1003
    assert np.all(out["null_stat"] >= 0.0)


def test_generator_accepted():
    p = permutation_pvalue(_peaked(), 6.0, 1.0, 3, 50, rng_seed=np.random.default_rng(0))
    assert 0.0 < p <= 1.0


def test_permuted_copy_of_observed_run_counts_as_tie():
    # null statistics differing from the observed one only by rounding are ties
    x = np.array([0.1, 0.7, 0.2, 0.0, 0.0])
    stat = best_run(x, 0.05, 3).statistic
    null = np.array([stat * (1 - 1e-14), stat / 2])
    assert plus_one_pvalue(null, stat) == pytest.approx(2.0 / 3.0)


@pytest.mark.parametrize("n_perm", [0, -5])
def test_non_positive_permutations_rejected(n_perm):
    with pytest.raises(InvalidParameterError):
        permutation_pvalue(_peaked(), 1.0, 1.0, 3, n_perm)


def test_non_finite_vector_rejected():
    with pytest.raises(InvalidInputError):
        permutation_pvalue(np.array([1.0, np.inf]), 1.0, 0.0, 1, 10)
