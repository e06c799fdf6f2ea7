import math
import warnings

import pytest

np = pytest.importorskip("numpy")

from topslice import score, score_upper_bound


def test_score_matches_formula():
    # 0.5 * ((5/10) / 0.25 - 1) - 0.5 * (100/10 - 1)
    assert score(10, 5.0, 0.25, 0.5, 100) == pytest.approx(-4.0)
    # full dataset slice with average error scores 0
    assert score(100, 25.0, 0.25, 0.5, 100) == pytest.approx(0.0)


def test_score_size_zero_is_minus_inf_without_warnings():
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        assert score(0, 0.0, 0.25, 0.5, 100) == -math.inf
        out = score(np.array([0.0, 10.0]), np.array([0.0, 5.0]), 0.25, 0.5, 100)
    assert out[0] == -np.inf
    assert out[1] == pytest.approx(-4.0)


def test_score_vectorized_returns_array():
    sizes = np.array([10.0, 20.0, 50.0])
    errors = np.array([5.0, 5.0, 5.0])
    out = score(sizes, errors, 0.1, 0.7, 100)
    assert isinstance(out, np.ndarray)
    assert out.shape == (3,)
    assert out[0] > out[1] > out[2]


def test_scoring_is_pure():
    args = (np.array([12.0, 40.0]), np.array([6.0, 3.0]), np.array([1.0, 0.5]), 0.2, 5, 0.8, 200)
    first = score_upper_bound(*args)
    second = score_upper_bound(*args)
    np.testing.assert_array_equal(first, second)
    assert score(12, 6.0, 0.2, 0.8, 200) == score(12, 6.0, 0.2, 0.8, 200)


def test_upper_bound_scalar_and_zero_size():
    ub = score_upper_bound(20, 10.0, 1.0, 0.25, 5, 0.9, 40)
    assert isinstance(ub, float)
    # best trial support is where max_error saturates total_error: s=10, err=10
    assert ub == pytest.approx(0.9 * (1.0 / 0.25 - 1.0) - 0.1 * (40 / 10 - 1.0))
    assert score_upper_bound(0, 0.0, 0.0, 0.25, 5, 0.9, 40) == -math.inf


def test_upper_bound_dominates_any_achievable_score():
    rng = np.random.default_rng(7)
    m = 500
    for _ in range(300):
        min_support = int(rng.integers(1, 30))
        size = int(rng.integers(min_support, 200))
        max_error = float(rng.uniform(0.01, 2.0))
        total_error = float(rng.uniform(0.0, size * max_error))
        avg_error = float(rng.uniform(0.05, 1.0))
        alpha = float(rng.uniform(0.0, 1.0))

        ub = score_upper_bound(size, total_error, max_error, avg_error, min_support, alpha, m)
        supports = np.arange(min_support, size + 1, dtype=float)
        best_errors = np.minimum(supports * max_error, total_error)
        exact = score(supports, best_errors, avg_error, alpha, m)
        assert ub >= exact.max() - 1e-9

        # random concrete slices inside the bounds never beat the bound either
        s = float(rng.integers(min_support, size + 1))
        err = float(rng.uniform(0.0, min(s * max_error, total_error)))
        assert ub >= score(s, err, avg_error, alpha, m) - 1e-9


def test_upper_bound_is_tight_at_full_size():
    # error saturated at full size: bound equals the score of the parent itself
    ub = score_upper_bound(50, 25.0, 0.5, 0.5, 10, 0.5, 100)
    assert ub == pytest.approx(score(50, 25.0, 0.5, 0.5, 100))
