"""
Scientific validation verdicts and psychometric reports.

A corpus is considered scientifically valid when all four criteria pass:

    predictive accuracy     > 0.80
    user-system agreement   > 0.75
    test-retest stability   > 0.80
    Cronbach's alpha        > 0.80

Each failing criterion contributes one recommendation.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Sequence, TypedDict

import numpy as np

from adaptive_assessment.core.cat.item_bank import ItemBank
from adaptive_assessment.core.cat.session import AdaptiveSession
from adaptive_assessment.core.datetime_utils import ensure_timezone_aware, utc_now
from adaptive_assessment.core.reliability import (
    ALPHA_VALIDITY_THRESHOLD,
    TEST_RETEST_VALIDITY_THRESHOLD,
    InternalConsistencyResult,
    RetestReliabilityResult,
    calculate_internal_consistency,
    calculate_test_retest_reliability,
)
from adaptive_assessment.core.validation.cross_validation import (
    ACCURACY_VALIDITY_THRESHOLD,
)
from adaptive_assessment.core.validation.metrics import (
    ValidationMetrics,
    calculate_validation_metrics,
)

logger = logging.getLogger(__name__)

# Agreement between model-expected and actual responses
AGREEMENT_VALIDITY_THRESHOLD = 0.75

# Minimum values (exclusive) for each criterion
CRITERIA_THRESHOLDS: Dict[str, float] = {
    "predictive_accuracy": ACCURACY_VALIDITY_THRESHOLD,
    "user_system_agreement": AGREEMENT_VALIDITY_THRESHOLD,
    "test_retest_stability": TEST_RETEST_VALIDITY_THRESHOLD,
    "cronbach_alpha": ALPHA_VALIDITY_THRESHOLD,
}

CRITERIA_RECOMMENDATIONS: Dict[str, str] = {
    "predictive_accuracy": (
        "Predictive accuracy below target: expand the item bank and improve "
        "the adaptive selection algorithm."
    ),
    "user_system_agreement": (
        "User-system agreement below target: recalibrate item parameters "
        "using respondent feedback."
    ),
    "test_retest_stability": (
        "Test-retest stability below target: review items with low temporal "
        "stability."
    ),
    "cronbach_alpha": (
        "Cronbach's alpha below target: review the internal consistency of "
        "the items in each category."
    ),
}


class CriterionResult(TypedDict):
    value: float
    required: float
    passed: bool


@dataclass(frozen=True)
class ScientificValidationResult:
    """Verdict over the scientific validity criteria."""

    is_valid: bool
    criteria_results: Dict[str, CriterionResult]
    recommendations: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class PsychometricReport:
    """
    Full psychometric report for a study period.

    Attributes:
        internal_consistency: Per-category and mean Cronbach's alpha.
        test_retest: First-vs-last session stability.
        metrics: Aggregate validation metrics.
        validation: Verdict over the scientific criteria.
        sample_size: Number of sessions analyzed.
        study_start: Start of the study period.
        study_end: End of the study period.
        duration_days: Whole days between study_start and study_end.
        generated_at: When the report was generated (UTC).
    """

    internal_consistency: InternalConsistencyResult
    test_retest: RetestReliabilityResult
    metrics: ValidationMetrics
    validation: ScientificValidationResult
    sample_size: int
    study_start: datetime
    study_end: datetime
    duration_days: int
    generated_at: datetime

    def to_dict(self) -> Dict:
        return {
            "reliability": {
                "internal_consistency": {
                    "cronbachs_alpha": self.internal_consistency["cronbachs_alpha"],
                    "interpretation": self.internal_consistency["interpretation"],
                },
                "test_retest": {
                    "stability": self.test_retest["stability"],
                    "correlation": self.test_retest["correlation"],
                    "num_pairs": self.test_retest["num_pairs"],
                    "interpretation": self.test_retest["interpretation"],
                },
            },
            "metrics": {
                "cronbach_alpha": self.metrics.cronbach_alpha,
                "test_retest_reliability": self.metrics.test_retest_reliability,
                "predictive_accuracy": self.metrics.predictive_accuracy,
                "user_system_agreement": self.metrics.user_system_agreement,
                "convergence_rate": self.metrics.convergence_rate,
                "stability_index": self.metrics.stability_index,
                "confidence_interval": list(self.metrics.confidence_interval),
            },
            "validation": {
                "is_valid": self.validation.is_valid,
                "criteria": self.validation.criteria_results,
                "recommendations": self.validation.recommendations,
            },
            "sample_size": self.sample_size,
            "study_period": {
                "start": self.study_start.isoformat(),
                "end": self.study_end.isoformat(),
                "duration_days": self.duration_days,
            },
            "generated_at": self.generated_at.isoformat(),
        }


def validate_scientific_criteria(
    metrics: ValidationMetrics,
) -> ScientificValidationResult:
    """
    Check validation metrics against the scientific criteria.

    Every criterion requires its value to strictly exceed the threshold.

    Args:
        metrics: Aggregate validation metrics.

    Returns:
        ScientificValidationResult with one recommendation per failing
        criterion.
    """
    values = {
        "predictive_accuracy": metrics.predictive_accuracy,
        "user_system_agreement": metrics.user_system_agreement,
        "test_retest_stability": metrics.test_retest_reliability,
        "cronbach_alpha": metrics.cronbach_alpha,
    }

    criteria_results: Dict[str, CriterionResult] = {}
    recommendations: List[str] = []
    for name, required in CRITERIA_THRESHOLDS.items():
        passed = values[name] > required
        criteria_results[name] = {
            "value": values[name],
            "required": required,
            "passed": passed,
        }
        if not passed:
            recommendations.append(CRITERIA_RECOMMENDATIONS[name])

    is_valid = not recommendations
    if is_valid:
        logger.info("All scientific validation criteria met")
    else:
        failed = [name for name, r in criteria_results.items() if not r["passed"]]
        logger.warning(f"Scientific validation failed: {', '.join(failed)}")

    return ScientificValidationResult(
        is_valid=is_valid,
        criteria_results=criteria_results,
        recommendations=recommendations,
    )


def generate_psychometric_report(
    sessions: Sequence[AdaptiveSession],
    item_bank: ItemBank,
    study_start: datetime,
    study_end: datetime,
    rng: Optional[np.random.Generator] = None,
) -> PsychometricReport:
    """
    Build a psychometric report for the sessions of a study period.

    Args:
        sessions: Sessions collected during the study.
        item_bank: Bank with the parameters of the answered items.
        study_start: Start of the study period.
        study_end: End of the study period.
        rng: Random generator for the cross-validation shuffle.

    Returns:
        PsychometricReport.

    Raises:
        ValueError: If study_end precedes study_start.
        InsufficientDataError: If the responses are too few for
            cross-validation.
    """
    study_start = ensure_timezone_aware(study_start)
    study_end = ensure_timezone_aware(study_end)
    if study_end < study_start:
        raise ValueError(
            f"study_end ({study_end.isoformat()}) precedes "
            f"study_start ({study_start.isoformat()})"
        )

    consistency = calculate_internal_consistency(sessions, item_bank)
    retest = calculate_test_retest_reliability(sessions)
    metrics = calculate_validation_metrics(
        sessions, item_bank, rng=rng, consistency=consistency, retest=retest
    )
    report = PsychometricReport(
        internal_consistency=consistency,
        test_retest=retest,
        metrics=metrics,
        validation=validate_scientific_criteria(metrics),
        sample_size=len(sessions),
        study_start=study_start,
        study_end=study_end,
        duration_days=(study_end - study_start).days,
        generated_at=utc_now(),
    )

    logger.info(
        f"Psychometric report: {report.sample_size} sessions over "
        f"{report.duration_days} days, valid={report.validation.is_valid}"
    )
    return report
