"""Rating reports and their text, JSON, YAML and table renderings."""
import json
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from io import StringIO
from typing import Any, Dict, List, Sequence

import yaml
from rich.console import Console
from rich.table import Table

from skillsync.core.scorer import Tier, get_tier
from skillsync.models.analysis import Contradiction, OverlapAnalysis, OverlapGroup
from skillsync.models.skill import ScoredSkill

TIER_STYLES = {
    Tier.EXCELLENT: "bold cyan",
    Tier.GOOD: "magenta",
    Tier.MEDIOCRE: "yellow",
    Tier.POOR: "red",
}


@dataclass
class RatingReport:
    """Everything a rating pass found."""

    timestamp: str
    total_skills: int
    average_score: int
    tiers: Dict[Tier, List[ScoredSkill]] = field(default_factory=dict)
    overlaps: List[OverlapGroup] = field(default_factory=list)
    contradictions: List[Contradiction] = field(default_factory=list)


def group_by_tier(scored: Sequence[ScoredSkill]) -> Dict[Tier, List[ScoredSkill]]:
    """Bucket skills by tier, keeping score order within each tier."""
    tiers: Dict[Tier, List[ScoredSkill]] = {tier: [] for tier in Tier}
    for skill in scored:
        tiers[get_tier(skill.score.total)].append(skill)
    return tiers


def build_report(scored: Sequence[ScoredSkill], analysis: OverlapAnalysis) -> RatingReport:
    """
    Assemble a rating report.

    Args:
        scored: Score-sorted skills
        analysis: Overlaps and contradictions for the same skills

    Returns:
        RatingReport stamped with the current UTC time
    """
    average = 0
    if scored:
        average = int(math.floor(sum(s.score.total for s in scored) / len(scored) + 0.5))

    return RatingReport(
        timestamp=datetime.now(timezone.utc).isoformat(),
        total_skills=len(scored),
        average_score=average,
        tiers=group_by_tier(scored),
        overlaps=list(analysis.overlaps),
        contradictions=list(analysis.contradictions),
    )


def skill_to_dict(skill: ScoredSkill) -> Dict[str, Any]:
    """Plain-data view of a scored skill."""
    breakdown = skill.score.breakdown
    return {
        "id": skill.id,
        "name": skill.name,
        "path": str(skill.path),
        "source": skill.skill.source.value,
        "score": {
            "total": skill.score.total,
            "tier": get_tier(skill.score.total).value,
            "breakdown": {
                "identity": breakdown.identity,
                "sharp_edges": breakdown.sharp_edges,
                "validations": breakdown.validations,
                "collaboration": breakdown.collaboration,
            },
            "gaps": list(skill.score.gaps),
            "strengths": list(skill.score.strengths),
        },
    }


def overlap_to_dict(group: OverlapGroup) -> Dict[str, Any]:
    recommendation = group.recommendation
    return {
        "domain": group.domain,
        "skills": [s.id for s in group.skills],
        "recommendation": {
            "best": recommendation.best.id,
            "reason": recommendation.reason,
            "alternatives": [
                {"skill": alt.skill.id, "use_case": alt.use_case}
                for alt in recommendation.alternatives
            ],
        },
    }


def contradiction_to_dict(contradiction: Contradiction) -> Dict[str, Any]:
    return {
        "skill_a": contradiction.skill_a,
        "skill_b": contradiction.skill_b,
        "conflict": contradiction.conflict,
        "resolution": contradiction.resolution,
    }


def report_to_dict(report: RatingReport) -> Dict[str, Any]:
    """Plain-data view of a report, safe for JSON and YAML."""
    return {
        "timestamp": report.timestamp,
        "total_skills": report.total_skills,
        "average_score": report.average_score,
        "tiers": {
            tier.value: [skill_to_dict(s) for s in report.tiers.get(tier, [])]
            for tier in Tier
        },
        "overlaps": [overlap_to_dict(g) for g in report.overlaps],
        "contradictions": [contradiction_to_dict(c) for c in report.contradictions],
    }


def format_json(report: RatingReport) -> str:
    return json.dumps(report_to_dict(report), indent=2)


def format_yaml(report: RatingReport) -> str:
    return yaml.safe_dump(report_to_dict(report), default_flow_style=False, sort_keys=False)


def find_best(scored: Sequence[ScoredSkill], query: str) -> List[ScoredSkill]:
    """
    Skills whose id, name, description, triggers, owns or tags mention query.

    Args:
        scored: Score-sorted skills
        query: Case-insensitive search text

    Returns:
        Matching skills, best first
    """
    needle = query.lower()
    matches = []
    for skill in scored:
        haystack = " ".join(
            [skill.id, skill.name, skill.description, *skill.triggers, *skill.owns, *skill.tags]
        ).lower()
        if needle in haystack:
            matches.append(skill)
    return matches


def select_skills(scored: Sequence[ScoredSkill], ids: Sequence[str]) -> List[ScoredSkill]:
    """Skills whose id contains any of the given fragments (case-insensitive)."""
    fragments = [i.lower() for i in ids]
    return [s for s in scored if any(f in s.id.lower() for f in fragments)]


def _render(table: Table) -> str:
    console = Console(file=StringIO(), force_terminal=True)
    console.print(table)
    return console.file.getvalue()


def styled_score(score: int) -> str:
    """Score wrapped in rich markup for its tier."""
    style = TIER_STYLES[get_tier(score)]
    return f"[{style}]{score}[/{style}]"


def render_scores_table(scored: Sequence[ScoredSkill], limit: int = 20) -> str:
    """
    Render per-category scores as a rich table.

    Args:
        scored: Score-sorted skills
        limit: Maximum rows

    Returns:
        Rendered table as string
    """
    table = Table(title="Detailed Scores")
    table.add_column("Skill", style="cyan", no_wrap=True)
    table.add_column("Total", justify="right")
    table.add_column("Identity", justify="right")
    table.add_column("Edges", justify="right")
    table.add_column("Valid", justify="right")
    table.add_column("Collab", justify="right")

    for skill in scored[:limit]:
        breakdown = skill.score.breakdown
        table.add_row(
            skill.name[:30],
            styled_score(skill.score.total),
            str(breakdown.identity),
            str(breakdown.sharp_edges),
            str(breakdown.validations),
            str(breakdown.collaboration),
        )

    return _render(table)


def render_comparison_table(skills: Sequence[ScoredSkill]) -> str:
    """Render skills side by side, one column per skill."""
    table = Table(title="Side-by-Side")
    table.add_column("Metric", style="white")
    for skill in skills:
        table.add_column(skill.name[:15], justify="right")

    table.add_row("Total Score", *[f"{styled_score(s.score.total)}/100" for s in skills])
    for label, attribute in (
        ("Identity", "identity"),
        ("Sharp Edges", "sharp_edges"),
        ("Validations", "validations"),
        ("Collaboration", "collaboration"),
    ):
        table.add_row(label, *[f"{getattr(s.score.breakdown, attribute)}/25" for s in skills])

    return _render(table)
