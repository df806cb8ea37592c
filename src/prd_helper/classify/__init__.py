"""
Heuristic classification of change sets.

See :mod:`prd_helper.classify.change_classifier` for the public entry
points and :mod:`prd_helper.classify.rules` for the ordered rule tables
they evaluate.
"""

from .change_classifier import (  # noqa: F401
    assess_risk,
    change_bullets,
    classify,
    release_note_lines,
    testing_lines,
)
from .model import ClassificationResult, RiskAssessment, RiskLevel  # noqa: F401
