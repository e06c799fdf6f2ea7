import pytest

np = pytest.importorskip("numpy")
sp = pytest.importorskip("scipy.sparse")

from topslice import (
    FeatureDomain,
    InvalidInputError,
    decode_slices,
    encode_features,
    encode_slices,
    slice_matches,
)


@pytest.fixture(scope="module")
def small():
    X = np.array(
        [
            [1, 2],
            [2, 1],
            [1, 3],
            [2, 3],
        ]
    )
    X2, domain = encode_features(X)
    return dict(X=X, X2=X2, domain=domain)


def test_domain_offsets_are_prefix_sums(small):
    domain = small["domain"]
    np.testing.assert_array_equal(domain.fdom, [2, 3])
    np.testing.assert_array_equal(domain.offset_begin, [0, 2])
    np.testing.assert_array_equal(domain.offset_end, [2, 5])
    assert domain.n_columns == 5
    np.testing.assert_array_equal(domain.feature_index(), [0, 0, 1, 1, 1])


def test_indicator_rows_have_one_bit_per_feature(small):
    X2 = small["X2"]
    assert sp.issparse(X2)
    assert X2.shape == (4, 5)
    np.testing.assert_array_equal(np.asarray(X2.sum(axis=1)).ravel(), [2, 2, 2, 2])
    dense = X2.toarray()
    np.testing.assert_array_equal(np.flatnonzero(dense[0]), [0, 3])
    np.testing.assert_array_equal(np.flatnonzero(dense[1]), [1, 2])


def test_unused_values_still_own_a_column():
    X = np.array([[1], [3]])
    X2, domain = encode_features(X)
    assert domain.n_columns == 3
    np.testing.assert_array_equal(np.asarray(X2.sum(axis=0)).ravel(), [1, 0, 1])


def test_singleton_domain_is_allowed():
    X = np.array([[1, 1], [1, 2], [1, 2]])
    X2, domain = encode_features(X)
    np.testing.assert_array_equal(domain.fdom, [1, 2])
    np.testing.assert_array_equal(np.asarray(X2.sum(axis=0)).ravel(), [3, 1, 2])


@pytest.mark.parametrize(
    "X",
    [
        np.array([[1, 0], [2, 1]]),
        np.array([[1, -2]]),
        np.array([[1.5, 1.0]]),
        np.array([1, 2, 3]),
        np.array([[1.0, np.nan]]),
    ],
)
def test_invalid_codes_raise(X):
    with pytest.raises(InvalidInputError):
        encode_features(X)


def test_sparse_input_is_accepted(small):
    X2_sparse, domain = encode_features(sp.csr_matrix(small["X"]))
    np.testing.assert_array_equal(X2_sparse.toarray(), small["X2"].toarray())
    np.testing.assert_array_equal(domain.fdom, small["domain"].fdom)


def test_empty_matrix_yields_empty_indicator():
    X2, domain = encode_features(np.zeros((0, 3)))
    assert X2.shape[0] == 0
    assert domain.n_features == 3
    assert domain.n_columns == 0


def test_decode_encode_roundtrip(small):
    domain = small["domain"]
    T = np.array([[0, 3], [2, 0], [1, 1], [0, 0]])
    S = encode_slices(T, domain)
    assert S.shape == (4, 5)
    np.testing.assert_array_equal(decode_slices(S, domain), T)


def test_encode_slices_rejects_out_of_domain(small):
    with pytest.raises(InvalidInputError):
        encode_slices(np.array([[3, 1]]), small["domain"])
    with pytest.raises(InvalidInputError):
        encode_slices(np.array([[1, 1, 1]]), small["domain"])


def test_column_of(small):
    domain = small["domain"]
    assert domain.column_of(1, 3) == 4
    with pytest.raises(InvalidInputError):
        domain.column_of(0, 3)


def test_slice_matches_selects_conjunction(small):
    X, X2, domain = small["X"], small["X2"], small["domain"]
    T = np.array([[1, 0], [2, 3], [0, 0]])
    I = slice_matches(X2, encode_slices(T, domain)).toarray().astype(bool)
    assert I.shape == (4, 3)
    np.testing.assert_array_equal(I[:, 0], X[:, 0] == 1)
    np.testing.assert_array_equal(I[:, 1], (X[:, 0] == 2) & (X[:, 1] == 3))
    # a slice without predicates matches every record
    assert I[:, 2].all()


def test_from_domain_sizes():
    domain = FeatureDomain.from_domain_sizes([3, 1, 2])
    np.testing.assert_array_equal(domain.offset_begin, [0, 3, 4])
    np.testing.assert_array_equal(domain.offset_end, [3, 4, 6])
