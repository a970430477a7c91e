"""
Application configuration settings.
"""

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Dict, Literal, Self

from adaptive_assessment.models import ItemCategory


# Tolerance for floating-point weight summation checks
_WEIGHT_SUM_TOLERANCE = 1e-6


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Adaptive Assessment Engine"
    APP_VERSION: str = "0.1.0"
    ENV: str = "development"
    DEBUG: bool = True

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # Adaptive session defaults
    # SE = 0.30 corresponds to reliability ~0.91 (reliability = 1 - SE²)
    CAT_TARGET_PRECISION: float = 0.3
    CAT_MAX_QUESTIONS: int = 15
    # Floor below which no stopping rule except max questions may fire
    CAT_MIN_QUESTIONS: int = 5
    # Theta convergence: mean |Δθ| over the last CAT_CONVERGENCE_WINDOW
    # re-estimations below CAT_CONVERGENCE_THRESHOLD, once at least
    # CAT_CONVERGENCE_MIN_ITEMS responses have been collected
    CAT_CONVERGENCE_MIN_ITEMS: int = 8
    CAT_CONVERGENCE_WINDOW: int = 3
    CAT_CONVERGENCE_THRESHOLD: float = 0.1

    # Validation
    CROSS_VALIDATION_FOLDS: int = 5
    STABILITY_BUCKET_DAYS: int = 7

    # Exposure monitoring (fraction of all selections)
    EXPOSURE_ALERT_THRESHOLD: float = 0.15

    # Target share of administered items per category, used by weighted
    # selection to score category diversity
    CATEGORY_TARGET_WEIGHTS: Dict[str, float] = {
        "valencia": 0.3,
        "ativacao": 0.3,
        "concentracao": 0.2,
        "motivacao": 0.2,
    }

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_cat_limits(self) -> Self:
        """Validate adaptive session defaults are positive and consistent."""
        if self.CAT_TARGET_PRECISION <= 0:
            raise ValueError(
                f"CAT_TARGET_PRECISION must be positive, got {self.CAT_TARGET_PRECISION}"
            )
        for name in (
            "CAT_MAX_QUESTIONS",
            "CAT_MIN_QUESTIONS",
            "CAT_CONVERGENCE_MIN_ITEMS",
            "CAT_CONVERGENCE_WINDOW",
            "CROSS_VALIDATION_FOLDS",
            "STABILITY_BUCKET_DAYS",
        ):
            value = getattr(self, name)
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")
        if self.CAT_CONVERGENCE_THRESHOLD <= 0:
            raise ValueError(
                "CAT_CONVERGENCE_THRESHOLD must be positive, "
                f"got {self.CAT_CONVERGENCE_THRESHOLD}"
            )
        if not (0.0 <= self.EXPOSURE_ALERT_THRESHOLD <= 1.0):
            raise ValueError(
                "EXPOSURE_ALERT_THRESHOLD must be in [0.0, 1.0], "
                f"got {self.EXPOSURE_ALERT_THRESHOLD}"
            )
        return self

    @model_validator(mode="after")
    def validate_category_weights(self) -> Self:
        """Validate CATEGORY_TARGET_WEIGHTS: positive values summing to 1.0."""
        weights = self.CATEGORY_TARGET_WEIGHTS
        expected_categories = {c.value for c in ItemCategory}
        if set(weights.keys()) != expected_categories:
            raise ValueError(
                f"CATEGORY_TARGET_WEIGHTS keys must be {sorted(expected_categories)}, "
                f"got {sorted(weights.keys())}"
            )
        non_positive = [k for k, v in weights.items() if v <= 0]
        if non_positive:
            raise ValueError(
                "CATEGORY_TARGET_WEIGHTS values must be positive, "
                f"got non-positive for: {non_positive}"
            )
        total = sum(weights.values())
        if abs(total - 1.0) > _WEIGHT_SUM_TOLERANCE:
            raise ValueError(f"CATEGORY_TARGET_WEIGHTS must sum to 1.0, got {total}")
        return self


settings = Settings()
