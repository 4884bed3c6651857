"""Unit tests for core.numerics_engine, cross-checked against scipy and scikit-learn."""

import math

import numpy as np
import pytest
from scipy import stats
from sklearn.decomposition import PCA

from core import numerics_engine as num

RANDOM_SEED = 42

# ─────────────────────────────────────────────────────────────────────────────
# Tests for descriptives and correlation
# ─────────────────────────────────────────────────────────────────────────────


class TestDescriptives:
    def test_sample_sd_uses_n_minus_one(self):
        assert num.sample_sd([2, 4, 4, 4, 5, 5, 7, 9]) == pytest.approx(2.13809, abs=1e-5)

    def test_sd_of_single_value_is_nan(self):
        assert math.isnan(num.sample_sd([3.0]))
        assert math.isnan(num.sample_variance([3.0]))

    def test_skewness_matches_adjusted_estimator(self):
        values = [1.0, 2.0, 2.5, 4.0, 9.0]
        assert num.skewness(values) == pytest.approx(stats.skew(values, bias=False))

    def test_skewness_undefined_for_constant_or_tiny_samples(self):
        assert math.isnan(num.skewness([1.0, 1.0, 1.0]))
        assert math.isnan(num.skewness([1.0, 2.0]))


class TestCorrelation:
    def test_pearson_matches_scipy(self):
        x = [1.0, 2.0, 3.5, 4.0, 6.0, 7.5]
        y = [2.0, 2.5, 3.0, 5.5, 5.0, 9.0]
        assert num.pearson_r(x, y) == pytest.approx(stats.pearsonr(x, y)[0])

    def test_pearson_zero_variance_is_nan(self):
        assert math.isnan(num.pearson_r([1, 2, 3], [5, 5, 5]))

    def test_mid_ranks_average_ties(self):
        assert num.mid_ranks([10, 20, 20, 30]).tolist() == [1.0, 2.5, 2.5, 4.0]

    def test_spearman_matches_scipy(self):
        x = [3, 1, 4, 1, 5, 9, 2, 6]
        y = [2, 7, 1, 8, 2, 8, 1, 8]
        assert num.spearman_rho(x, y) == pytest.approx(stats.spearmanr(x, y)[0])

    def test_perfect_correlation_gives_infinite_t(self):
        assert num.correlation_t(1.0, 10) == math.inf
        assert num.correlation_t(-1.0, 10) == -math.inf


# ─────────────────────────────────────────────────────────────────────────────
# Tests for probability approximations
# ─────────────────────────────────────────────────────────────────────────────


class TestProbabilityApproximations:
    def test_t_to_p_is_normal_for_large_df(self):
        assert num.t_to_p(1.959964, 100) == pytest.approx(0.05, abs=1e-4)

    def test_t_to_p_is_more_conservative_for_small_df(self):
        assert num.t_to_p(2.0, 5) > num.t_to_p(2.0, 100)

    @pytest.mark.parametrize("t,expected", [(math.inf, 0.0), (-math.inf, 0.0), (math.nan, 1.0), (0.0, 1.0)])
    def test_t_to_p_limits(self, t, expected):
        assert num.t_to_p(t, 10) == expected

    def test_t_to_p_is_symmetric(self):
        assert num.t_to_p(-2.3, 12) == num.t_to_p(2.3, 12)

    def test_f_to_p_limits(self):
        assert num.f_to_p(0.0, 2, 10) == 1.0
        assert num.f_to_p(5.0, 2, 1) == 1.0
        assert num.f_to_p(200.0, 2, 20) < 0.001

    def test_chi_square_to_p_tracks_exact_tail(self):
        # Wilson–Hilferty is within a few thousandths of the exact tail at moderate df
        for chi_sq, df in [(3.84, 1), (11.07, 5), (18.31, 10)]:
            assert num.chi_square_to_p(chi_sq, df) == pytest.approx(stats.chi2.sf(chi_sq, df), abs=0.01)

    def test_chi_square_to_p_zero_statistic(self):
        assert num.chi_square_to_p(0.0, 3) == 1.0

    def test_log_factorial(self):
        assert num.log_factorial(5) == pytest.approx(math.log(120))
        assert num.log_factorial(0) == pytest.approx(0.0)


# ─────────────────────────────────────────────────────────────────────────────
# Tests for linear algebra
# ─────────────────────────────────────────────────────────────────────────────


class TestSolveLinearSystem:
    def test_matches_numpy(self):
        a = np.array([[4.0, 1.0, 2.0], [1.0, 5.0, 3.0], [2.0, 3.0, 6.0]])
        b = np.array([1.0, 2.0, 3.0])
        assert num.solve_linear_system(a, b) == pytest.approx(np.linalg.solve(a, b))

    def test_needs_pivoting(self):
        a = np.array([[0.0, 1.0], [1.0, 0.0]])
        b = np.array([2.0, 3.0])
        assert num.solve_linear_system(a, b).tolist() == [3.0, 2.0]

    def test_inputs_are_not_modified(self):
        a = np.array([[2.0, 1.0], [1.0, 3.0]])
        b = np.array([1.0, 1.0])
        a_copy, b_copy = a.copy(), b.copy()
        num.solve_linear_system(a, b)
        assert np.array_equal(a, a_copy)
        assert np.array_equal(b, b_copy)

    def test_singular_raises(self):
        a = np.array([[1.0, 2.0], [2.0, 4.0]])
        with pytest.raises(np.linalg.LinAlgError):
            num.solve_linear_system(a, np.array([1.0, 2.0]))

    def test_inverse_diagonal_matches_numpy(self):
        a = np.array([[4.0, 1.0, 2.0], [1.0, 5.0, 3.0], [2.0, 3.0, 6.0]])
        assert num.inverse_diagonal(a) == pytest.approx(np.diag(np.linalg.inv(a)))

    def test_inverse_diagonal_of_singular_matrix_is_nan(self):
        diag = num.inverse_diagonal(np.array([[1.0, 1.0], [1.0, 1.0]]))
        assert np.isnan(diag).all()

    def test_weighted_cross_product(self):
        x = np.array([[1.0, 2.0], [1.0, 3.0], [1.0, 5.0]])
        w = np.array([0.5, 1.0, 2.0])
        assert num.cross_product(x, w) == pytest.approx(x.T @ np.diag(w) @ x)


class TestTopEigenpairs:
    @pytest.fixture
    def data(self):
        rng = np.random.default_rng(RANDOM_SEED)
        # well-separated variances so power iteration converges quickly
        return rng.normal(size=(200, 3)) * np.array([1.0, 3.0, 9.0])

    def test_eigenvalues_sum_to_trace(self, data):
        covariance = num.covariance_matrix(data)
        pairs = num.top_eigenpairs(covariance, 3)
        assert sum(value for value, _ in pairs) == pytest.approx(np.trace(covariance), abs=1e-6)

    def test_eigenvalues_non_increasing(self, data):
        values = [value for value, _ in num.top_eigenpairs(num.covariance_matrix(data), 3)]
        assert values == sorted(values, reverse=True)

    def test_matches_sklearn_explained_variance(self, data):
        values = [value for value, _ in num.top_eigenpairs(num.covariance_matrix(data), 3)]
        reference = PCA(n_components=3).fit(data).explained_variance_
        assert values == pytest.approx(reference.tolist(), rel=1e-6)

    def test_covariance_matches_numpy(self, data):
        assert num.covariance_matrix(data) == pytest.approx(np.cov(data, rowvar=False))

    def test_rank_one_matrix_second_eigenvalue_is_zero(self):
        pairs = num.top_eigenpairs(np.array([[3.5, 3.5], [3.5, 3.5]]), 2)
        assert pairs[0][0] == pytest.approx(7.0)
        assert pairs[1][0] == pytest.approx(0.0, abs=1e-9)

    def test_mirrored_columns_do_not_vanish_from_uniform_start(self):
        # the uniform start vector is an eigenvector with eigenvalue 0 here
        covariance = np.array([[2.5, -2.5], [-2.5, 2.5]])
        (first, vector), (second, _) = num.top_eigenpairs(covariance, 2)
        assert first == pytest.approx(5.0)
        assert second == pytest.approx(0.0, abs=1e-9)
        assert abs(vector[0]) == pytest.approx(abs(vector[1]))
        assert first + second == pytest.approx(np.trace(covariance))


# ─────────────────────────────────────────────────────────────────────────────
# Tests for test-specific primitives
# ─────────────────────────────────────────────────────────────────────────────


class TestGroupPrimitives:
    SAMPLES = [
        np.array([4.1, 5.0, 6.2, 5.5]),
        np.array([8.3, 9.1, 10.4, 9.9, 8.7]),
        np.array([14.0, 15.2, 16.8]),
    ]

    def test_one_way_f_matches_scipy(self):
        f, df1, df2 = num.one_way_f(self.SAMPLES)
        assert f == pytest.approx(stats.f_oneway(*self.SAMPLES).statistic)
        assert (df1, df2) == (2, 9)

    def test_one_way_f_nan_without_within_variance(self):
        f, _, _ = num.one_way_f([np.array([1.0, 1.0]), np.array([2.0, 2.0])])
        assert math.isnan(f)

    def test_levene_matches_scipy_median_centre(self):
        f, p = num.levene_test(self.SAMPLES)
        assert f == pytest.approx(stats.levene(*self.SAMPLES, center="median").statistic)
        assert 0.0 <= p <= 1.0

    def test_levene_too_few_observations(self):
        assert num.levene_test([np.array([1.0]), np.array([2.0])]) == (0.0, 1.0)

    def test_welch_matches_scipy_statistic(self):
        a, b = self.SAMPLES[0], self.SAMPLES[1]
        t, df, p = num.welch_t(a, b)
        assert t == pytest.approx(stats.ttest_ind(a, b, equal_var=False).statistic)
        assert df >= 1
        assert 0.0 <= p <= 1.0

    def test_pooled_and_welch_agree_for_equal_n_and_variance(self):
        a = np.array([1.0, 2.0, 3.0, 4.0, 5.0])
        b = np.array([3.0, 4.0, 5.0, 6.0, 7.0])
        pooled_var = (4 * num.sample_variance(a) + 4 * num.sample_variance(b)) / 8
        pooled_t = (a.mean() - b.mean()) / math.sqrt(pooled_var * (1 / 5 + 1 / 5))
        welch_t, welch_df, _ = num.welch_t(a, b)
        assert abs(pooled_t - welch_t) < 1e-6
        assert welch_df == 8

    @pytest.mark.parametrize("value,expected", [(8.5, 9), (2.5, 3), (8.49, 8), (1.0, 1), (0.5, 1)])
    def test_round_half_up(self, value, expected):
        assert num.round_half_up(value) == expected

    def test_tukey_q_crit(self):
        assert num.tukey_q_crit(3, 12) == pytest.approx(2.8 + 0.4 * math.log(3) + 2.5 / math.sqrt(12))
        assert num.tukey_q_crit(3, 1) == 4.0
        assert num.tukey_q_crit(10_000, 2) == 6.0


class TestFisherExact:
    @pytest.mark.parametrize(
        "table",
        [
            [[3, 1], [1, 3]],
            [[8, 2], [1, 5]],
            [[0, 5], [5, 0]],
            [[12, 5], [9, 7]],
        ],
    )
    def test_matches_scipy_two_sided(self, table):
        assert num.fisher_exact_p(np.array(table)) == pytest.approx(stats.fisher_exact(table)[1], rel=1e-6)

    def test_perfect_separation_is_tiny(self):
        assert num.fisher_exact_p(np.array([[10, 0], [0, 10]])) < 0.001
