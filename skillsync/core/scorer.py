"""Rubric-driven quality scoring for skills.

Each category is an ordered table of criteria. A criterion looks at one
parsed skill (and optionally the whole scanned population) and awards
points up to its maximum together with a short explanation. Category
maxima are 25 each, so totals land in 0-100.
"""
import logging
import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from skillsync.models.skill import (
    ParsedSkill,
    QualityScore,
    ScoreBreakdown,
    ScoredSkill,
)

logger = logging.getLogger(__name__)

# Share of a criterion's maximum that counts as a strength
STRENGTH_RATIO = 0.8
MAX_GAPS = 5
MAX_STRENGTHS = 5


class Tier(str, Enum):
    """Quality band derived from a total score."""

    EXCELLENT = "excellent"
    GOOD = "good"
    MEDIOCRE = "mediocre"
    POOR = "poor"


@dataclass(frozen=True)
class ScoringContext:
    """Population-wide facts needed by context-sensitive criteria."""

    all_skill_ids: FrozenSet[str]

    @classmethod
    def from_skills(cls, skills: Iterable[ParsedSkill]) -> "ScoringContext":
        return cls(all_skill_ids=frozenset(s.id for s in skills))


CriterionResult = Tuple[int, str]
Evaluator = Callable[[ParsedSkill, Optional[ScoringContext]], CriterionResult]


@dataclass(frozen=True)
class Criterion:
    """One scoring rule."""

    name: str
    max_points: int
    evaluate: Evaluator


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _ratio_points(matching: int, total: int, max_points: int) -> int:
    return _round_half_up(matching / total * max_points)


def _is_placeholder(text: str) -> bool:
    return "todo" in text.lower()


# Identity

def _structure(skill: ParsedSkill, context: Optional[ScoringContext]) -> CriterionResult:
    points = 0
    if skill.id == skill.path.name:
        points += 2

    role = skill.descriptor.identity.role if skill.descriptor else ""
    if len(role) > 10 and not _is_placeholder(role):
        points += 3
        return points, "ID matches folder & role defined"
    return points, "Partial structure match"


def _expertise(skill: ParsedSkill, context: Optional[ScoringContext]) -> CriterionResult:
    expertise = skill.descriptor.identity.expertise if skill.descriptor else []
    if not expertise:
        return 0, "No expertise listed"
    if any(_is_placeholder(e) for e in expertise):
        return 1, "Expertise contains placeholders"
    if len(expertise) >= 5:
        return 5, f"{len(expertise)} expertise areas"
    return len(expertise), f"{len(expertise)} expertise areas"


def _principles(skill: ParsedSkill, context: Optional[ScoringContext]) -> CriterionResult:
    principles = skill.descriptor.identity.principles if skill.descriptor else []
    if not principles:
        return 0, "No principles defined"
    if len(principles) >= 3:
        return 5, f"{len(principles)} principles"
    return len(principles) * 2, f"{len(principles)} principles"


def _triggers(skill: ParsedSkill, context: Optional[ScoringContext]) -> CriterionResult:
    valid = [t for t in skill.triggers if len(t) > 2]
    if not valid:
        return 0, "No valid triggers"
    if len(valid) >= 5:
        return 5, f"{len(valid)} activation triggers"
    return len(valid), f"{len(valid)} triggers"


def _scope(skill: ParsedSkill, context: Optional[ScoringContext]) -> CriterionResult:
    points = 0
    if skill.owns:
        points += 3
    description = skill.description
    if len(description) > 20 and not _is_placeholder(description):
        points += 2

    if points == 0:
        return 0, "No ownership or description"
    return points, "Scope defined"


IDENTITY_CRITERIA: Sequence[Criterion] = (
    Criterion("Structure & Integrity", 5, _structure),
    Criterion("Has expertise areas", 5, _expertise),
    Criterion("Has guiding principles", 5, _principles),
    Criterion("Has triggers", 5, _triggers),
    Criterion("Scope Definition", 5, _scope),
)


# Sharp edges

def _edges(skill: ParsedSkill) -> list:
    return skill.sharp_edges.edges if skill.sharp_edges else []


def _edge_count(skill: ParsedSkill, context: Optional[ScoringContext]) -> CriterionResult:
    edges = _edges(skill)
    if not edges:
        return 0, "No sharp edges defined"
    if len(edges) >= 5:
        return 8, f"{len(edges)} pitfalls documented"
    return min(len(edges) * 2, 8), f"{len(edges)} pitfalls"


def _edge_detection(skill: ParsedSkill, context: Optional[ScoringContext]) -> CriterionResult:
    edges = _edges(skill)
    if not edges:
        return 0, "No edges to evaluate"
    with_detection = [e for e in edges if len(e.detection) > 10]
    return (
        _ratio_points(len(with_detection), len(edges), 8),
        f"{len(with_detection)}/{len(edges)} edges have detection patterns",
    )


def _edge_solutions(skill: ParsedSkill, context: Optional[ScoringContext]) -> CriterionResult:
    edges = _edges(skill)
    if not edges:
        return 0, "No edges to evaluate"
    with_solution = [
        e for e in edges
        if len(e.solution) > 20 and not _is_placeholder(e.solution)
    ]
    return (
        _ratio_points(len(with_solution), len(edges), 5),
        f"{len(with_solution)}/{len(edges)} edges have meaningful solutions",
    )


def _sharp_edges_doc(skill: ParsedSkill, context: Optional[ScoringContext]) -> CriterionResult:
    if skill.has_sharp_edges_md:
        return 4, "Has detailed sharp-edges.md"
    return 0, "No sharp-edges.md documentation"


SHARP_EDGES_CRITERIA: Sequence[Criterion] = (
    Criterion("Has sharp-edges.yaml", 8, _edge_count),
    Criterion("Edges have detection patterns", 8, _edge_detection),
    Criterion("Edges have solutions", 5, _edge_solutions),
    Criterion("Has sharp-edges.md deep dive", 4, _sharp_edges_doc),
)


# Validations

def _validation_list(skill: ParsedSkill) -> list:
    return skill.validations.validations if skill.validations else []


def _is_valid_pattern(pattern: str) -> bool:
    if len(pattern) < 5:
        return False
    try:
        re.compile(pattern)
    except re.error:
        return False
    return True


def _validation_count(skill: ParsedSkill, context: Optional[ScoringContext]) -> CriterionResult:
    validations = _validation_list(skill)
    if not validations:
        return 0, "No validations - no quality checks"
    if len(validations) >= 5:
        return 10, f"{len(validations)} validations"
    return len(validations) * 2, f"{len(validations)} validations"


def _validation_patterns(skill: ParsedSkill, context: Optional[ScoringContext]) -> CriterionResult:
    validations = _validation_list(skill)
    if not validations:
        return 0, "No validations"
    with_pattern = [v for v in validations if _is_valid_pattern(v.pattern)]
    return (
        _ratio_points(len(with_pattern), len(validations), 8),
        f"{len(with_pattern)}/{len(validations)} have valid regex patterns",
    )


def _patterns_doc(skill: ParsedSkill, context: Optional[ScoringContext]) -> CriterionResult:
    if skill.has_patterns_md:
        return 4, "Has detailed patterns.md"
    return 0, "No patterns.md documentation"


def _anti_patterns_doc(skill: ParsedSkill, context: Optional[ScoringContext]) -> CriterionResult:
    if skill.has_anti_patterns_md:
        return 3, "Has anti-patterns.md"
    return 0, "No anti-patterns.md"


VALIDATIONS_CRITERIA: Sequence[Criterion] = (
    Criterion("Has validations.yaml", 10, _validation_count),
    Criterion("Validations have patterns", 8, _validation_patterns),
    Criterion("Has patterns.md", 4, _patterns_doc),
    Criterion("Has anti-patterns.md", 3, _anti_patterns_doc),
)


# Collaboration

def _collaboration_rules(skill: ParsedSkill, context: Optional[ScoringContext]) -> CriterionResult:
    collaboration = skill.collaboration
    total = 0
    if collaboration:
        total = len(collaboration.delegates_to) + len(collaboration.receives_from)
    if total == 0:
        return 0, "No collaboration rules - isolated skill"
    if total >= 4:
        return 8, f"{total} collaboration rules"
    return total * 2, f"{total} collaboration rules"


def _delegate_conditions(skill: ParsedSkill, context: Optional[ScoringContext]) -> CriterionResult:
    delegates = skill.collaboration.delegates_to if skill.collaboration else []
    if not delegates:
        return 3, "No delegation rules (may be ok for leaf skill)"
    with_when = [d for d in delegates if len(d.when) > 10]
    return (
        _ratio_points(len(with_when), len(delegates), 6),
        f"{len(with_when)}/{len(delegates)} delegates have conditions",
    )


def _referential_integrity(skill: ParsedSkill, context: Optional[ScoringContext]) -> CriterionResult:
    if context is None:
        return 5, "Context missing (skipped check)"

    delegate_ids = skill.delegate_ids
    if not delegate_ids:
        return 5, "No delegates to check"

    broken = [d for d in delegate_ids if d not in context.all_skill_ids]
    if broken:
        return 0, f"Broken links to: {', '.join(broken)}"
    return 5, "All delegates exist"


def _decisions_doc(skill: ParsedSkill, context: Optional[ScoringContext]) -> CriterionResult:
    if skill.has_decisions_md:
        return 3, "Has decisions.md documentation"
    return 0, "No decisions.md"


def _description(skill: ParsedSkill, context: Optional[ScoringContext]) -> CriterionResult:
    description = skill.description
    if not description:
        return 0, "No description"
    if len(description) > 100:
        return 3, "Good description"
    return 1, "Brief description"


COLLABORATION_CRITERIA: Sequence[Criterion] = (
    Criterion("Has collaboration.yaml", 8, _collaboration_rules),
    Criterion("Delegates have conditions", 6, _delegate_conditions),
    Criterion("Referential Integrity (Broken Links)", 5, _referential_integrity),
    Criterion("Has decisions.md", 3, _decisions_doc),
    Criterion("Has description", 3, _description),
)


@dataclass
class CategoryResult:
    """Score and explanations for one category."""

    score: int
    gaps: List[str]
    strengths: List[str]


def evaluate_category(
    skill: ParsedSkill,
    criteria: Sequence[Criterion],
    context: Optional[ScoringContext] = None,
) -> CategoryResult:
    """
    Run every criterion of a category against a skill.

    Args:
        skill: Skill to evaluate
        criteria: Ordered criteria of the category
        context: Optional population context

    Returns:
        CategoryResult with summed points, gaps and strengths in criterion order
    """
    score = 0
    gaps: List[str] = []
    strengths: List[str] = []

    for criterion in criteria:
        points, reason = criterion.evaluate(skill, context)
        score += points

        if points == 0:
            gaps.append(f"{criterion.name}: {reason}")
        elif points >= criterion.max_points * STRENGTH_RATIO:
            strengths.append(f"{criterion.name}: {reason}")

    return CategoryResult(score=score, gaps=gaps, strengths=strengths)


def score_skill(skill: ParsedSkill, context: Optional[ScoringContext] = None) -> ScoredSkill:
    """
    Score one skill against the rubric.

    Without a context the referential-integrity check awards full marks.
    Never raises: a skill whose documents break evaluation gets a zero
    score with a "Scoring failed" gap.

    Args:
        skill: Parsed skill to score
        context: Optional population context (all scanned skill ids)

    Returns:
        ScoredSkill wrapping the skill and its QualityScore
    """
    try:
        identity = evaluate_category(skill, IDENTITY_CRITERIA, context)
        sharp_edges = evaluate_category(skill, SHARP_EDGES_CRITERIA, context)
        validations = evaluate_category(skill, VALIDATIONS_CRITERIA, context)
        collaboration = evaluate_category(skill, COLLABORATION_CRITERIA, context)
    except Exception as e:
        logger.warning("Failed to score skill %s: %s", skill.id, e)
        return ScoredSkill(skill=skill, score=QualityScore.failed())

    categories = (identity, sharp_edges, validations, collaboration)
    breakdown = ScoreBreakdown(
        identity=identity.score,
        sharp_edges=sharp_edges.score,
        validations=validations.score,
        collaboration=collaboration.score,
    )
    gaps = [gap for category in categories for gap in category.gaps]
    strengths = [s for category in categories for s in category.strengths]

    return ScoredSkill(
        skill=skill,
        score=QualityScore(
            total=breakdown.total,
            breakdown=breakdown,
            gaps=gaps[:MAX_GAPS],
            strengths=strengths[:MAX_STRENGTHS],
        ),
    )


def score_all_skills(skills: Sequence[ParsedSkill]) -> List[ScoredSkill]:
    """
    Score a scanned population and rank it.

    Args:
        skills: Every skill from one scan

    Returns:
        Scored skills sorted by total score, highest first; ties keep input order
    """
    context = ScoringContext.from_skills(skills)
    scored = [score_skill(skill, context) for skill in skills]
    return sorted(scored, key=lambda s: s.score.total, reverse=True)


def get_tier(score: int) -> Tier:
    """Map a total score to its quality tier."""
    if score >= 80:
        return Tier.EXCELLENT
    if score >= 60:
        return Tier.GOOD
    if score >= 40:
        return Tier.MEDIOCRE
    return Tier.POOR
