"""
Core module for configuration, logging, errors and the assessment engine.

Subpackages are not imported at package level. Import them directly:
from adaptive_assessment.core.cat import ... or
from adaptive_assessment.core.validation import ...
"""
from .config import settings

__all__ = ["settings"]
