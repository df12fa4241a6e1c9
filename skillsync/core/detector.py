"""Overlap and contradiction detection across scored skills."""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from skillsync.models.analysis import (
    Alternative,
    Contradiction,
    OverlapAnalysis,
    OverlapGroup,
    RawOverlap,
    Recommendation,
)
from skillsync.models.skill import ScoredSkill

logger = logging.getLogger(__name__)

# Category score (out of 25) at which it is cited as a strength
CATEGORY_STRENGTH_THRESHOLD = 20

CATEGORY_STRENGTHS = (
    ("identity", "strong identity definition"),
    ("sharp_edges", "comprehensive pitfall coverage"),
    ("validations", "robust validations"),
    ("collaboration", "clear collaboration rules"),
)


@dataclass
class OverlapIndex:
    """Skills indexed by normalized trigger, ownership tag and tag."""

    triggers: Dict[str, List[ScoredSkill]] = field(default_factory=dict)
    owns: Dict[str, List[ScoredSkill]] = field(default_factory=dict)
    tags: Dict[str, List[ScoredSkill]] = field(default_factory=dict)


@dataclass
class RawGroup:
    """Skills and the domain labels they collide on."""

    skills: List[ScoredSkill]
    domains: List[str] = field(default_factory=list)


def _normalize(value: str) -> str:
    return value.lower().strip()


def _index_values(index: Dict[str, List[ScoredSkill]], skill: ScoredSkill, values: List[str]) -> None:
    for value in values:
        key = _normalize(value)
        bucket = index.setdefault(key, [])
        # A skill repeating a value does not compete with itself
        if not any(s is skill for s in bucket):
            bucket.append(skill)


def build_index(skills: Sequence[ScoredSkill]) -> OverlapIndex:
    """
    Index skills by their normalized triggers, ownership tags and tags.

    Args:
        skills: Scored skills to index

    Returns:
        OverlapIndex with insertion-ordered buckets
    """
    index = OverlapIndex()
    for skill in skills:
        _index_values(index.triggers, skill, skill.triggers)
        _index_values(index.owns, skill, skill.owns)
        # Tags are indexed but do not yet produce an overlap type
        _index_values(index.tags, skill, skill.tags)
    return index


def find_overlaps(skills: Sequence[ScoredSkill]) -> List[RawOverlap]:
    """Find every trigger or ownership value claimed by two or more skills."""
    index = build_index(skills)
    overlaps: List[RawOverlap] = []

    for trigger, matched in index.triggers.items():
        if len(matched) > 1:
            overlaps.append(RawOverlap(type="trigger", value=trigger, skills=matched))

    for domain, matched in index.owns.items():
        if len(matched) > 1:
            overlaps.append(RawOverlap(type="owns", value=domain, skills=matched))

    return overlaps


def _recommendation_reason(best: ScoredSkill, alternatives: List[ScoredSkill]) -> str:
    reasons: List[str] = []

    if alternatives:
        score_diff = best.score.total - alternatives[0].score.total
        if score_diff > 20:
            reasons.append(f"{score_diff} points higher quality score")
        elif score_diff > 10:
            reasons.append(f"{score_diff} points better")

    breakdown = best.score.breakdown
    for attribute, label in CATEGORY_STRENGTHS:
        if getattr(breakdown, attribute) >= CATEGORY_STRENGTH_THRESHOLD:
            reasons.append(label)

    if not reasons:
        return f"Highest overall quality ({best.score.total}/100)"
    return ", ".join(reasons[:2])


def _alternative_use_case(alt: ScoredSkill, best: ScoredSkill) -> str:
    alt_breakdown = alt.score.breakdown
    best_breakdown = best.score.breakdown

    if alt_breakdown.sharp_edges > best_breakdown.sharp_edges:
        return "Better pitfall documentation"
    if alt_breakdown.validations > best_breakdown.validations:
        return "More validation patterns"
    if alt_breakdown.collaboration > best_breakdown.collaboration:
        return "Better integration with other skills"

    best_triggers = best.triggers
    unique_triggers = [t for t in alt.triggers if t not in best_triggers]
    if unique_triggers:
        return f"Unique triggers: {', '.join(unique_triggers[:2])}"

    return f"Lower quality ({alt.score.total}/100) - consider avoiding"


def group_overlaps(overlaps: Sequence[RawOverlap]) -> List[OverlapGroup]:
    """
    Merge raw overlaps that involve the same set of skills.

    Args:
        overlaps: Raw overlaps from find_overlaps

    Returns:
        Overlap groups with recommendations, largest groups first
    """
    grouped: Dict[str, RawGroup] = {}

    for overlap in overlaps:
        key = "|".join(sorted(s.id for s in overlap.skills))
        if key not in grouped:
            grouped[key] = RawGroup(skills=overlap.skills)
        grouped[key].domains.append(overlap.label)

    groups: List[OverlapGroup] = []
    for raw in grouped.values():
        ranked = sorted(raw.skills, key=lambda s: s.score.total, reverse=True)
        best = ranked[0]
        alternatives = ranked[1:]
        groups.append(
            OverlapGroup(
                domain=", ".join(raw.domains),
                skills=ranked,
                recommendation=Recommendation(
                    best=best,
                    reason=_recommendation_reason(best, alternatives),
                    alternatives=[
                        Alternative(skill=alt, use_case=_alternative_use_case(alt, best))
                        for alt in alternatives
                    ],
                ),
            )
        )

    return sorted(groups, key=lambda g: len(g.skills), reverse=True)


def find_contradictions(skills: Sequence[ScoredSkill]) -> List[Contradiction]:
    """
    Compare every pair of skills that share an ownership tag.

    A pair is flagged for circular delegation when each delegates to the
    other, and separately for shared ownership when it shares two or more
    tags.

    Args:
        skills: Scored skills, usually score-sorted

    Returns:
        Contradictions in pair order
    """
    contradictions: List[Contradiction] = []

    for i, skill_a in enumerate(skills):
        for skill_b in skills[i + 1:]:
            owns_b = skill_b.owns
            shared = list(dict.fromkeys(o for o in skill_a.owns if o in owns_b))
            if not shared:
                continue

            a_wins = skill_a.score.total > skill_b.score.total
            better, worse = (skill_a, skill_b) if a_wins else (skill_b, skill_a)

            if skill_b.id in skill_a.delegate_ids and skill_a.id in skill_b.delegate_ids:
                contradictions.append(
                    Contradiction(
                        skill_a=skill_a.id,
                        skill_b=skill_b.id,
                        conflict=f"Circular delegation: {skill_a.id} → {skill_b.id} → {skill_a.id}",
                        resolution=f"Use skill with higher score: {better.id}",
                    )
                )

            if len(shared) >= 2:
                contradictions.append(
                    Contradiction(
                        skill_a=skill_a.id,
                        skill_b=skill_b.id,
                        conflict=f"Both claim ownership of: {', '.join(shared)}",
                        resolution=(
                            f"Prefer {better.id} ({better.score.total}/100) "
                            f"over {worse.id} ({worse.score.total}/100)"
                        ),
                    )
                )

    return contradictions


def analyze_overlaps(skills: Sequence[ScoredSkill]) -> OverlapAnalysis:
    """
    Find overlapping skills and contradictions in a scored collection.

    Args:
        skills: Scored skills, usually the output of score_all_skills

    Returns:
        OverlapAnalysis with grouped overlaps and contradictions
    """
    overlaps = group_overlaps(find_overlaps(skills))
    contradictions = find_contradictions(skills)
    logger.debug(
        "Found %d overlap group(s) and %d contradiction(s) across %d skill(s)",
        len(overlaps), len(contradictions), len(skills),
    )
    return OverlapAnalysis(overlaps=overlaps, contradictions=contradictions)
