"""
Adaptive psychometric assessment engine.

Selects questionnaire items adaptively under a 3PL item response model,
re-estimates the respondent's latent trait after every answer, and validates
the measurement process statistically.
"""

__version__ = "0.1.0"
