"""
Shared enumerations for the assessment engine.
"""
import enum


class ItemCategory(str, enum.Enum):
    """Emotional-state dimension measured by a questionnaire item."""

    VALENCIA = "valencia"  # Valence (pleasant/unpleasant)
    ATIVACAO = "ativacao"  # Activation/arousal
    CONCENTRACAO = "concentracao"  # Concentration
    MOTIVACAO = "motivacao"  # Motivation
