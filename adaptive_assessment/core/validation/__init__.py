"""
Statistical validation toolkit for adaptive assessment data.

- Confidence intervals, one- and two-sample t-tests, sample-size planning
- K-fold cross-validation of response predictability
- Aggregate validation metrics over a session corpus
- Scientific validity verdicts and psychometric reports
"""

from .cross_validation import CrossValidationResult, perform_cross_validation
from .metrics import (
    ValidationMetrics,
    calculate_convergence_rate,
    calculate_stability_index,
    calculate_user_system_agreement,
    calculate_validation_metrics,
    group_sessions_by_time,
)
from .report import (
    CRITERIA_THRESHOLDS,
    PsychometricReport,
    ScientificValidationResult,
    generate_psychometric_report,
    validate_scientific_criteria,
)
from .statistics import (
    ConfidenceInterval,
    StatisticalTest,
    approximate_p_value,
    calculate_confidence_interval,
    calculate_sample_size,
    get_t_critical,
    one_sample_t_test,
    two_sample_t_test,
)

__all__ = [
    "CRITERIA_THRESHOLDS",
    "ConfidenceInterval",
    "CrossValidationResult",
    "PsychometricReport",
    "ScientificValidationResult",
    "StatisticalTest",
    "ValidationMetrics",
    "approximate_p_value",
    "calculate_confidence_interval",
    "calculate_convergence_rate",
    "calculate_sample_size",
    "calculate_stability_index",
    "calculate_user_system_agreement",
    "calculate_validation_metrics",
    "generate_psychometric_report",
    "get_t_critical",
    "group_sessions_by_time",
    "one_sample_t_test",
    "perform_cross_validation",
    "two_sample_t_test",
    "validate_scientific_criteria",
]
