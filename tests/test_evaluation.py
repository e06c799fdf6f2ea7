import pytest

np = pytest.importorskip("numpy")
pytest.importorskip("joblib")

from topslice import encode_features, encode_slices, evaluate_slices, score


@pytest.fixture(scope="module")
def data():
    rng = np.random.default_rng(5)
    m = 300
    X = np.column_stack([rng.integers(1, 4, m), rng.integers(1, 3, m), rng.integers(1, 5, m)])
    e = rng.exponential(0.3, size=m)
    X2, domain = encode_features(X)
    T = np.array(
        [[a, b, 0] for a in range(1, 4) for b in range(1, 3)]
        + [[a, 0, c] for a in range(1, 4) for c in range(1, 5)]
    )
    S = encode_slices(T, domain)
    return dict(X=X, e=e, X2=X2, domain=domain, T=T, S=S, avg=float(e.mean()))


def _brute_force(X, e, T, avg, alpha):
    rows = []
    for t in T:
        mask = np.all((t == 0) | (X == t), axis=1)
        size = int(mask.sum())
        err = float(e[mask].sum())
        mx = float(e[mask].max()) if size else 0.0
        rows.append([score(size, err, avg, alpha, X.shape[0]), err, mx, size])
    return np.array(rows)


def test_exact_statistics_match_brute_force(data):
    R = evaluate_slices(data["X2"], data["e"], data["avg"], data["S"], 2, 0.6)
    expected = _brute_force(data["X"], data["e"], data["T"], data["avg"], 0.6)
    np.testing.assert_allclose(R, expected)


@pytest.mark.parametrize("block_size", [1, 3, 16, 1000])
def test_task_parallel_matches_data_parallel(data, block_size):
    args = (data["X2"], data["e"], data["avg"], data["S"], 2, 0.6)
    bulk = evaluate_slices(*args)
    blocks = evaluate_slices(*args, task_parallel=True, block_size=block_size, n_jobs=2)
    np.testing.assert_array_equal(bulk, blocks)


def test_column_selection_does_not_change_results(data):
    columns = np.asarray(data["S"].sum(axis=0)).ravel() > 0
    args = (data["X2"], data["e"], data["avg"], data["S"], 2, 0.6)
    np.testing.assert_allclose(evaluate_slices(*args), evaluate_slices(*args, columns=columns))


def test_empty_batch_and_empty_slices(data):
    empty = data["S"][:0]
    assert evaluate_slices(data["X2"], data["e"], data["avg"], empty, 2, 0.5).shape == (0, 4)

    # no record has x0 = 2 and x1 = 1
    X = np.array([[1, 1], [2, 2], [1, 2]])
    e = np.array([1.0, 0.0, 2.0])
    X2, domain = encode_features(X)
    S = encode_slices(np.array([[2, 1]]), domain)
    R = evaluate_slices(X2, e, 1.0, S, 2, 0.5)
    assert R[0, 3] == 0
    assert R[0, 0] == -np.inf
    assert R[0, 1] == 0.0 and R[0, 2] == 0.0


def test_max_error_ignores_non_matching_records():
    X = np.array([[1], [1], [2]])
    e = np.array([-1.0, -3.0, 5.0])
    X2, domain = encode_features(X)
    S = encode_slices(np.array([[1]]), domain)
    R = evaluate_slices(X2, e, 1.0 / 3.0, S, 1, 0.5)
    assert R[0, 2] == -1.0
    assert R[0, 1] == -4.0
