"""Data models for overlap and contradiction analysis."""
from dataclasses import dataclass, field
from typing import List, Literal

from skillsync.models.skill import ScoredSkill


@dataclass
class RawOverlap:
    """Skills sharing one normalized trigger or ownership tag."""

    type: Literal["trigger", "owns"]
    value: str
    skills: List[ScoredSkill]

    @property
    def label(self) -> str:
        return f"{self.type}:{self.value}"


@dataclass
class Alternative:
    """A non-recommended skill within an overlap group."""

    skill: ScoredSkill
    use_case: str


@dataclass
class Recommendation:
    """Which skill to use for an overlapping domain, and why."""

    best: ScoredSkill
    reason: str
    alternatives: List[Alternative] = field(default_factory=list)


@dataclass
class OverlapGroup:
    """Skills competing for the same triggers or ownership tags."""

    domain: str
    skills: List[ScoredSkill]
    recommendation: Recommendation


@dataclass
class Contradiction:
    """A logically inconsistent relationship between two skills."""

    skill_a: str
    skill_b: str
    conflict: str
    resolution: str


@dataclass
class OverlapAnalysis:
    """Result of analyzing a scored skill collection."""

    overlaps: List[OverlapGroup] = field(default_factory=list)
    contradictions: List[Contradiction] = field(default_factory=list)
