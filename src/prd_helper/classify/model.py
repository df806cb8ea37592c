"""
Data models produced by the change classifier.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple


class RiskLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


@dataclass(frozen=True)
class RiskAssessment:
    """Overall risk of a change set.

    Attributes
    ----------
    level : RiskLevel
        Highest level forced by any matched category.
    areas : Tuple[str, ...]
        Matched risk categories in fixed priority order
        (database, auth/security, infra, config).
    """

    level: RiskLevel = RiskLevel.LOW
    areas: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ClassificationResult:
    """Everything the report needs from the classifier.

    Attributes
    ----------
    change_bullets : Tuple[str, ...]
        At most six human-readable bullets describing the change.
    testing_lines : Tuple[str, ...]
        Checklist lines for the Testing section.
    release_notes_lines : Tuple[str, ...]
        Release-note candidates, or one explanatory fallback line.
    risk : RiskAssessment
        Risk level and areas.
    """

    change_bullets: Tuple[str, ...] = ()
    testing_lines: Tuple[str, ...] = ()
    release_notes_lines: Tuple[str, ...] = ()
    risk: RiskAssessment = field(default_factory=RiskAssessment)
