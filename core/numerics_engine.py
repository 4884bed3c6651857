"""
FILE: core/numerics_engine.py
------------------------------
Numerical primitives shared by every test handler.
No pandas or pydantic dependencies — plain sequences and numpy arrays in,
floats and arrays out.

The linear solver and the eigen-solver are small explicit
routines with fixed iteration counts. Handlers only reach them through
solve_linear_system(), inverse_diagonal() and top_eigenpairs().

The p-value functions are approximations, not exact distribution
evaluations:
  - t → p    : normal for df >= 30, else a continuity-adjusted normal
  - F → p    : Wilson–Hilferty cube-root normal, keyed on df2 only
  - χ² → p   : Wilson–Hilferty cube-root normal, keyed on df
"""

import math
from typing import Sequence

import numpy as np
from scipy import special, stats

from constants.statistician import (
    FISHER_LOG_TOLERANCE,
    NORMAL_APPROX_MIN_DF,
    PIVOT_TOLERANCE,
    POWER_ITERATIONS,
    POWER_NORM_TOLERANCE,
    TUKEY_Q_BASE,
    TUKEY_Q_DF_WEIGHT,
    TUKEY_Q_FALLBACK,
    TUKEY_Q_K_WEIGHT,
    TUKEY_Q_MAX,
    TUKEY_Q_MIN,
    WELCH_SE_TOLERANCE,
)


# ─────────────────────────────────────────────
# DESCRIPTIVES
# ─────────────────────────────────────────────

def mean(values: Sequence[float]) -> float:
    return float(np.mean(values))


def sample_sd(values: Sequence[float]) -> float:
    """Standard deviation with the n-1 denominator. NaN when n < 2."""
    if len(values) < 2:
        return math.nan
    return float(np.std(values, ddof=1))


def sample_variance(values: Sequence[float]) -> float:
    if len(values) < 2:
        return math.nan
    return float(np.var(values, ddof=1))


def median(values: Sequence[float]) -> float:
    return float(np.median(values))


def skewness(values: Sequence[float]) -> float:
    """Adjusted Fisher–Pearson skewness. NaN for n < 3 or zero variance."""
    if len(values) < 3 or np.ptp(values) == 0:
        return math.nan
    return float(stats.skew(values, bias=False))


# ─────────────────────────────────────────────
# CORRELATION
# ─────────────────────────────────────────────

def pearson_r(x: Sequence[float], y: Sequence[float]) -> float:
    """Product-moment correlation. NaN if either variable has zero variance."""
    xa = np.asarray(x, dtype=float)
    ya = np.asarray(y, dtype=float)
    dx = xa - xa.mean()
    dy = ya - ya.mean()
    denom = math.sqrt(float(np.sum(dx * dx)) * float(np.sum(dy * dy)))
    if denom == 0:
        return math.nan
    r = float(np.sum(dx * dy)) / denom
    return max(-1.0, min(1.0, r))


def mid_ranks(values: Sequence[float]) -> np.ndarray:
    """1-based ranks, ties share the average rank."""
    return stats.rankdata(values, method="average")


def spearman_rho(x: Sequence[float], y: Sequence[float]) -> float:
    return pearson_r(mid_ranks(x), mid_ranks(y))


def correlation_t(r: float, n: int) -> float:
    """t = r·√((n−2)/(1−r²)); ±inf for a perfect correlation."""
    if abs(r) >= 1.0:
        return math.copysign(math.inf, r)
    return r * math.sqrt((n - 2) / (1 - r * r))


# ─────────────────────────────────────────────
# PROBABILITY APPROXIMATIONS
# ─────────────────────────────────────────────

def normal_upper_tail(z: float) -> float:
    """1 − Φ(z)."""
    return float(stats.norm.sf(z))


def t_to_p(t: float, df: float) -> float:
    """Approximate two-tailed p for a t statistic."""
    if math.isnan(t):
        return 1.0
    if math.isinf(t):
        return 0.0
    if df < 1:
        return 1.0
    abs_t = abs(t)
    if df >= NORMAL_APPROX_MIN_DF:
        z = abs_t
    else:
        z = abs_t * (1 - 1 / (4 * df)) / math.sqrt(1 + abs_t * abs_t / (2 * df))
    return min(1.0, 2 * normal_upper_tail(z))


def f_to_p(f: float, df1: float, df2: float) -> float:
    """Approximate upper-tail p for an F statistic (Wilson–Hilferty on df2)."""
    if f <= 0 or df2 < 2:
        return 1.0
    mu = 1 - 2 / (9 * df2)
    sigma = math.sqrt(2 / (9 * df2))
    z = (f ** (1 / 3) - mu) / sigma
    return normal_upper_tail(z)


def chi_square_to_p(chi_sq: float, df: int) -> float:
    """Approximate upper-tail p for a chi-square statistic (Wilson–Hilferty)."""
    if chi_sq <= 0 or df < 1:
        return 1.0
    mu = 1 - 2 / (9 * df)
    sigma = math.sqrt(2 / (9 * df))
    z = ((chi_sq / df) ** (1 / 3) - mu) / sigma
    return normal_upper_tail(z)


def log_factorial(n: int) -> float:
    return float(special.gammaln(n + 1))


# ─────────────────────────────────────────────
# LINEAR ALGEBRA
# ─────────────────────────────────────────────

def solve_linear_system(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """
    Solves A·x = b by Gauss–Jordan elimination with partial pivoting.
    A and b are not modified.
    Raises numpy.linalg.LinAlgError when a pivot falls below PIVOT_TOLERANCE.
    """
    m = np.array(a, dtype=float)
    x = np.array(b, dtype=float)
    p = m.shape[0]

    for k in range(p):
        pivot_row = k + int(np.argmax(np.abs(m[k:, k])))
        if abs(m[pivot_row, k]) < PIVOT_TOLERANCE:
            raise np.linalg.LinAlgError("Singular system: pivot below tolerance.")
        if pivot_row != k:
            m[[k, pivot_row]] = m[[pivot_row, k]]
            x[[k, pivot_row]] = x[[pivot_row, k]]

        d = m[k, k]
        m[k, k:] /= d
        x[k] /= d
        for i in range(p):
            if i == k:
                continue
            f = m[i, k]
            m[i, k:] -= f * m[k, k:]
            x[i] -= f * x[k]

    return x


def inverse_diagonal(a: np.ndarray) -> np.ndarray:
    """
    Diagonal of A⁻¹, one canonical basis solve per entry.
    Entries whose solve fails are NaN.
    """
    p = a.shape[0]
    diag = np.full(p, np.nan)
    for j in range(p):
        e = np.zeros(p)
        e[j] = 1.0
        try:
            diag[j] = solve_linear_system(a, e)[j]
        except np.linalg.LinAlgError:
            continue
    return diag


def cross_product(x: np.ndarray, weights: np.ndarray | None = None) -> np.ndarray:
    """Xᵗ·W·X for a diagonal weight vector (identity when weights is None)."""
    if weights is None:
        return x.T @ x
    return x.T @ (x * weights[:, None])


def covariance_matrix(data: np.ndarray) -> np.ndarray:
    """Sample covariance of the columns of `data` (n−1 denominator)."""
    n = data.shape[0]
    centered = data - data.mean(axis=0)
    return centered.T @ centered / (n - 1 if n > 1 else 1)


def top_eigenpairs(matrix: np.ndarray, n_components: int) -> list[tuple[float, np.ndarray]]:
    """
    Eigenpairs of a symmetric matrix by power iteration with deflation.

    Each component starts from the uniform unit vector, runs POWER_ITERATIONS
    steps (stopping early if the iterate norm drops below POWER_NORM_TOLERANCE),
    takes the Rayleigh quotient as its eigenvalue, then λ·vvᵗ is subtracted
    from the working matrix. Pairs are returned by decreasing eigenvalue.

    If the uniform vector is annihilated by a matrix that still has variance
    on its diagonal (e.g. two mirrored columns), the component restarts from
    the basis vector of the largest diagonal entry instead.
    """
    p = matrix.shape[0]
    work = np.array(matrix, dtype=float)
    pairs: list[tuple[float, np.ndarray]] = []

    for _ in range(min(n_components, p)):
        v = np.full(p, 1 / math.sqrt(p))
        diagonal = np.abs(np.diag(work))
        if np.linalg.norm(work @ v) < POWER_NORM_TOLERANCE and diagonal.max() > POWER_NORM_TOLERANCE:
            v = np.zeros(p)
            v[int(np.argmax(diagonal))] = 1.0
        for _ in range(POWER_ITERATIONS):
            w = work @ v
            norm = float(np.linalg.norm(w))
            if norm < POWER_NORM_TOLERANCE:
                break
            v = w / norm
        eigenvalue = float(v @ work @ v)
        pairs.append((eigenvalue, v.copy()))
        work -= eigenvalue * np.outer(v, v)

    return sorted(pairs, key=lambda pair: pair[0], reverse=True)


# ─────────────────────────────────────────────
# TEST-SPECIFIC PRIMITIVES
# ─────────────────────────────────────────────

def one_way_f(samples: list[np.ndarray]) -> tuple[float, int, int]:
    """(F, df1, df2) of a one-way ANOVA. F is NaN when the within-group variance is zero."""
    all_values = np.concatenate(samples)
    k, n = len(samples), len(all_values)
    grand = all_values.mean()
    ssb = sum(len(s) * (s.mean() - grand) ** 2 for s in samples)
    ssw = sum(float(np.sum((s - s.mean()) ** 2)) for s in samples)
    df1, df2 = k - 1, n - k
    if df1 < 1 or df2 < 1 or ssw <= 0:
        return math.nan, df1, df2
    return float((ssb / df1) / (ssw / df2)), df1, df2


def levene_test(samples: list[np.ndarray]) -> tuple[float, float]:
    """
    Levene's test on absolute deviations from each group's median
    (Brown–Forsythe variant). Returns (F, approximate p); (0, 1) when
    there are too few observations or no spread in the deviations.
    """
    deviations = [np.abs(s - np.median(s)) for s in samples]
    n = sum(len(d) for d in deviations)
    if n < len(samples) + 2:
        return 0.0, 1.0
    f, df1, df2 = one_way_f(deviations)
    if math.isnan(f):
        return 0.0, 1.0
    return f, f_to_p(f, df1, df2)


def round_half_up(value: float) -> int:
    """Nearest integer, halves rounded up (round() would round 8.5 to 8)."""
    return math.floor(value + 0.5)


def welch_t(sample1: np.ndarray, sample2: np.ndarray) -> tuple[float, int, float]:
    """Welch's t, Satterthwaite df (rounded, floor 1) and approximate p."""
    n1, n2 = len(sample1), len(sample2)
    a = sample_variance(sample1) / n1
    b = sample_variance(sample2) / n2
    se = math.sqrt(a + b)
    if se < WELCH_SE_TOLERANCE:
        return 0.0, n1 + n2 - 2, 1.0
    t = (float(np.mean(sample1)) - float(np.mean(sample2))) / se
    denom = a * a / (n1 - 1) + b * b / (n2 - 1)
    df = (a + b) ** 2 / denom if denom > 0 else n1 + n2 - 2
    df_int = max(1, round_half_up(df))
    return t, df_int, t_to_p(t, df_int)


def tukey_q_crit(k: int, df2: int) -> float:
    """Closed-form approximation of the 5% studentized-range critical value."""
    if df2 < 2 or k < 2:
        return TUKEY_Q_FALLBACK
    approx = TUKEY_Q_BASE + TUKEY_Q_K_WEIGHT * math.log(k) + TUKEY_Q_DF_WEIGHT / math.sqrt(df2)
    return min(TUKEY_Q_MAX, max(TUKEY_Q_MIN, approx))


def fisher_exact_p(table: np.ndarray) -> float:
    """
    Two-tailed Fisher's exact p for a 2×2 table: sum of the hypergeometric
    probabilities of every table with the observed margins that is no more
    likely than the observed one.
    """
    (a, b), (c, d) = np.asarray(table, dtype=int).tolist()
    r1, r2, c1, c2 = a + b, c + d, a + c, b + d
    n = r1 + r2

    def log_prob(aa: int, bb: int, cc: int, dd: int) -> float:
        return (
            log_factorial(r1) + log_factorial(r2) + log_factorial(c1) + log_factorial(c2)
            - log_factorial(n) - log_factorial(aa) - log_factorial(bb)
            - log_factorial(cc) - log_factorial(dd)
        )

    observed = log_prob(a, b, c, d)
    p = 0.0
    for aa in range(max(0, r1 - c2), min(r1, c1) + 1):
        bb, cc = r1 - aa, c1 - aa
        dd = c2 - bb
        lp = log_prob(aa, bb, cc, dd)
        if lp <= observed + FISHER_LOG_TOLERANCE:
            p += math.exp(lp)
    return min(1.0, p)
