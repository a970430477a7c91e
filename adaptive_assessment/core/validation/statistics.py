"""
Confidence intervals, t-tests and sample-size planning.

Critical t values come from a small lookup table for the common confidence
levels (90%, 95%, 99%), bucketed by degrees of freedom: the first tabulated
df at or above the actual df is used, and df beyond the table use the
df=1000 row. Untabulated confidence levels fall back to the normal
approximation 1.96.

p-values are approximate: tabulated for df <= 30, two-sided normal tail
probability otherwise.
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict, Literal, Sequence

import numpy as np
from scipy.stats import norm

from adaptive_assessment.core.exceptions import InsufficientDataError

logger = logging.getLogger(__name__)

EffectSize = Literal["small", "medium", "large"]

# Critical t values keyed by α/2, then degrees of freedom
T_CRITICAL_TABLE: Dict[float, Dict[int, float]] = {
    0.025: {  # 95% confidence
        1: 12.706, 5: 2.571, 10: 2.228, 15: 2.131, 20: 2.086,
        25: 2.060, 30: 2.042, 40: 2.021, 50: 2.009, 100: 1.984,
        1000: 1.962,
    },
    0.05: {  # 90% confidence
        1: 6.314, 5: 2.015, 10: 1.812, 15: 1.753, 20: 1.725,
        25: 1.708, 30: 1.697, 40: 1.684, 50: 1.676, 100: 1.660,
        1000: 1.645,
    },
    0.005: {  # 99% confidence
        1: 63.657, 5: 4.032, 10: 3.169, 15: 2.947, 20: 2.845,
        25: 2.787, 30: 2.750, 40: 2.704, 50: 2.678, 100: 2.626,
        1000: 2.576,
    },
}
NORMAL_APPROXIMATION_CRITICAL = 1.96
LARGEST_TABULATED_DF = 1000

# Approximate two-sided p-values for small df: first |t| bound not exceeded
P_VALUE_TABLE = [
    (1.0, 0.4),
    (1.5, 0.2),
    (2.0, 0.1),
    (2.5, 0.05),
    (3.0, 0.02),
    (3.5, 0.01),
    (4.0, 0.005),
]
P_VALUE_FLOOR = 0.001
P_VALUE_TABLE_MAX_DF = 30

# Cohen's d effect size buckets
SMALL_EFFECT_LIMIT = 0.2
LARGE_EFFECT_LIMIT = 0.8


@dataclass(frozen=True)
class ConfidenceInterval:
    """Interval estimate of a mean."""

    lower: float
    upper: float
    mean: float
    margin: float
    confidence_level: float


@dataclass(frozen=True)
class StatisticalTest:
    """Outcome of a t-test."""

    statistic: float
    p_value: float
    critical: float
    is_significant: bool
    effect: EffectSize


def get_t_critical(alpha_half: float, df: int) -> float:
    """
    Critical t value for a two-sided test from the lookup table.

    Args:
        alpha_half: α/2 (e.g. 0.025 for 95% confidence).
        df: Degrees of freedom.

    Returns:
        Tabulated critical value, or 1.96 for untabulated α/2.
    """
    table = T_CRITICAL_TABLE.get(round(alpha_half, 6))
    if table is None:
        return NORMAL_APPROXIMATION_CRITICAL

    for tabulated_df in sorted(table):
        if df <= tabulated_df:
            return table[tabulated_df]
    return table[LARGEST_TABULATED_DF]


def approximate_p_value(t_statistic: float, df: int) -> float:
    """Approximate two-sided p-value for |t| with df degrees of freedom."""
    t_abs = abs(t_statistic)
    if df > P_VALUE_TABLE_MAX_DF:
        return float(2 * norm.sf(t_abs))

    for bound, p_value in P_VALUE_TABLE:
        if t_abs <= bound:
            return p_value
    return P_VALUE_FLOOR


def _effect_size(cohens_d: float) -> EffectSize:
    if cohens_d < SMALL_EFFECT_LIMIT:
        return "small"
    elif cohens_d < LARGE_EFFECT_LIMIT:
        return "medium"
    return "large"


def _standardized(difference: float, scale: float) -> float:
    """difference / scale, with 0/0 -> 0 and x/0 -> ±inf."""
    if scale > 0:
        return difference / scale
    if difference == 0:
        return 0.0
    return math.copysign(math.inf, difference)


def calculate_confidence_interval(
    data: Sequence[float],
    confidence_level: float = 0.95,
) -> ConfidenceInterval:
    """
    Confidence interval for the mean using a t critical value.

    A single observation yields a zero-width interval.

    Raises:
        InsufficientDataError: If data is empty.
    """
    if len(data) == 0:
        raise InsufficientDataError("Cannot compute a confidence interval of no data")

    values = np.asarray(data, dtype=float)
    n = len(values)
    mean = float(values.mean())

    if n < 2:
        margin = 0.0
    else:
        standard_error = float(values.std(ddof=1)) / math.sqrt(n)
        alpha = 1 - confidence_level
        margin = get_t_critical(alpha / 2, n - 1) * standard_error

    return ConfidenceInterval(
        lower=mean - margin,
        upper=mean + margin,
        mean=mean,
        margin=margin,
        confidence_level=confidence_level,
    )


def one_sample_t_test(
    data: Sequence[float],
    hypothesized_mean: float = 0.0,
    confidence_level: float = 0.95,
) -> StatisticalTest:
    """
    Two-sided one-sample t-test against a hypothesized mean.

    Raises:
        InsufficientDataError: If fewer than 2 observations are given.
    """
    if len(data) < 2:
        raise InsufficientDataError(
            "One-sample t-test needs at least 2 observations",
            context={"n": len(data)},
        )

    values = np.asarray(data, dtype=float)
    n = len(values)
    difference = float(values.mean()) - hypothesized_mean
    sd = float(values.std(ddof=1))

    t_statistic = _standardized(difference, sd / math.sqrt(n))
    df = n - 1
    critical = get_t_critical((1 - confidence_level) / 2, df)

    return StatisticalTest(
        statistic=t_statistic,
        p_value=approximate_p_value(t_statistic, df),
        critical=critical,
        is_significant=abs(t_statistic) > critical,
        effect=_effect_size(abs(_standardized(difference, sd))),
    )


def two_sample_t_test(
    sample1: Sequence[float],
    sample2: Sequence[float],
    confidence_level: float = 0.95,
) -> StatisticalTest:
    """
    Two-sided independent-samples t-test with pooled variance.

    Raises:
        InsufficientDataError: If either sample has fewer than 2 observations.
    """
    if len(sample1) < 2 or len(sample2) < 2:
        raise InsufficientDataError(
            "Two-sample t-test needs at least 2 observations per sample",
            context={"n1": len(sample1), "n2": len(sample2)},
        )

    x1 = np.asarray(sample1, dtype=float)
    x2 = np.asarray(sample2, dtype=float)
    n1, n2 = len(x1), len(x2)
    difference = float(x1.mean() - x2.mean())

    pooled_variance = (
        (n1 - 1) * float(x1.var(ddof=1)) + (n2 - 1) * float(x2.var(ddof=1))
    ) / (n1 + n2 - 2)
    pooled_sd = math.sqrt(pooled_variance)
    standard_error = pooled_sd * math.sqrt(1 / n1 + 1 / n2)

    t_statistic = _standardized(difference, standard_error)
    df = n1 + n2 - 2
    critical = get_t_critical((1 - confidence_level) / 2, df)

    return StatisticalTest(
        statistic=t_statistic,
        p_value=approximate_p_value(t_statistic, df),
        critical=critical,
        is_significant=abs(t_statistic) > critical,
        effect=_effect_size(abs(_standardized(difference, pooled_sd))),
    )


def calculate_sample_size(
    margin_of_error: float,
    standard_deviation: float,
    confidence_level: float = 0.95,
) -> int:
    """
    Minimum sample size for a mean estimate with the given margin of error.

        n = ceil((z · sd / margin)²),  z = Φ⁻¹(1 - α/2)

    z is the exact normal quantile (1.95996 at 95%), not the large-df entry of
    the t table (1.962), so n can come out a few units below a table-based
    calculation: (0.5, 10) gives 1537 rather than 1540.

    Raises:
        ValueError: If margin_of_error is not positive, standard_deviation is
            negative, or confidence_level is outside (0, 1).
    """
    if margin_of_error <= 0:
        raise ValueError(f"margin_of_error must be positive, got {margin_of_error}")
    if standard_deviation < 0:
        raise ValueError(
            f"standard_deviation must be non-negative, got {standard_deviation}"
        )
    if not (0 < confidence_level < 1):
        raise ValueError(f"confidence_level must be in (0, 1), got {confidence_level}")

    z_critical = float(norm.ppf(1 - (1 - confidence_level) / 2))
    return math.ceil((z_critical * standard_deviation / margin_of_error) ** 2)
