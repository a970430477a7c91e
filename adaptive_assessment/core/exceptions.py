"""
Exception hierarchy for the assessment engine.

Every error raised on purpose by the engine derives from AssessmentError and
carries a message, optional structured context and an optional cause.
Numeric degeneracy (zero information, flat likelihood, single observations)
is coerced to a defined value instead of raised.
"""
from typing import Any, Dict, Optional


class AssessmentError(Exception):
    """Base exception for assessment engine errors."""

    def __init__(
        self,
        message: str,
        original_error: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        """Initialize with message, optional cause, and structured context."""
        self.message = message
        self.original_error = original_error
        self.context = context or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context."""
        msg = self.message
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            msg = f"{msg} (context: {ctx_str})"
        if self.original_error:
            msg = f"{msg} - caused by: {str(self.original_error)}"
        return msg


class ConfigurationError(AssessmentError, ValueError):
    """Invalid session or engine configuration (non-positive limits, duplicate ids)."""


class UnknownItemError(AssessmentError):
    """An item id was referenced that the item bank does not contain."""

    def __init__(self, item_id: str, context: Optional[Dict[str, Any]] = None):
        self.item_id = item_id
        super().__init__(f"Unknown item '{item_id}'", context=context)


class InvalidResponseError(AssessmentError, ValueError):
    """A response value falls outside the item's declared scale."""


class InsufficientDataError(AssessmentError):
    """Not enough observations for the requested statistic."""


class DataExportError(AssessmentError):
    """Custom exception for data export errors."""
