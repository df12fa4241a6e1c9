"""Pytest configuration and shared fixtures."""
from pathlib import Path
from typing import Any, Dict, Optional

import pytest
import yaml

from skillsync.models.skill import (
    CollaborationDocument,
    ParsedSkill,
    QualityScore,
    ScoreBreakdown,
    ScoredSkill,
    SharpEdgesDocument,
    SkillDocument,
    SkillSource,
    ValidationsDocument,
)

LONG_DESCRIPTION = (
    "Designs and reviews PostgreSQL schemas, migrations and query plans for "
    "production services, with a focus on safe rollouts."
)


def full_skill_yaml(skill_id: str = "postgres-expert") -> Dict[str, Any]:
    """skill.yaml content that earns every identity point."""
    return {
        "id": skill_id,
        "name": "Postgres Expert",
        "description": LONG_DESCRIPTION,
        "triggers": ["postgres", "database schema", "migration", "query plan", "index"],
        "owns": ["postgres-schema", "postgres-migrations"],
        "tags": ["database", "sql"],
        "identity": {
            "role": "Senior database reliability engineer",
            "expertise": ["schemas", "indexes", "migrations", "replication", "vacuum"],
            "principles": ["Measure first", "Migrate safely", "Prefer boring tech"],
        },
    }


def full_sharp_edges_yaml() -> Dict[str, Any]:
    return {
        "edges": [
            {
                "id": f"edge-{i}",
                "name": f"Edge {i}",
                "detection": "ALTER TABLE .* ADD COLUMN .* DEFAULT",
                "solution": "Add the column without a default, backfill in batches.",
            }
            for i in range(5)
        ]
    }


def full_validations_yaml() -> Dict[str, Any]:
    return {
        "validations": [
            {"id": f"v-{i}", "name": f"Check {i}", "pattern": r"SELECT\s+\*"}
            for i in range(5)
        ]
    }


def full_collaboration_yaml() -> Dict[str, Any]:
    return {
        "delegates_to": [
            {"skill_id": "python-expert", "when": "Application code needs ORM changes"},
            {"skill_id": "devops-expert", "when": "Deploying migrations to production"},
        ],
        "receives_from": [
            {"skill_id": "python-expert", "context": "Slow queries"},
            {"skill_id": "devops-expert", "context": "Capacity planning"},
        ],
    }


@pytest.fixture
def make_parsed_skill(tmp_path):
    """Factory building ParsedSkill records from raw YAML-like data."""

    def _make(
        skill_id: str = "postgres-expert",
        skill_yaml: Optional[Dict[str, Any]] = None,
        sharp_edges_yaml: Optional[Dict[str, Any]] = None,
        validations_yaml: Optional[Dict[str, Any]] = None,
        collaboration_yaml: Optional[Dict[str, Any]] = None,
        folder: Optional[str] = None,
        **flags: bool,
    ) -> ParsedSkill:
        return ParsedSkill(
            id=skill_id,
            name=skill_id,
            path=tmp_path / "source" / (folder or skill_id),
            source=SkillSource.LOCAL,
            descriptor=SkillDocument.from_raw(skill_yaml) if skill_yaml is not None else None,
            sharp_edges=(
                SharpEdgesDocument.from_raw(sharp_edges_yaml) if sharp_edges_yaml is not None else None
            ),
            validations=(
                ValidationsDocument.from_raw(validations_yaml) if validations_yaml is not None else None
            ),
            collaboration=(
                CollaborationDocument.from_raw(collaboration_yaml)
                if collaboration_yaml is not None else None
            ),
            has_patterns_md=flags.get("has_patterns_md", False),
            has_anti_patterns_md=flags.get("has_anti_patterns_md", False),
            has_decisions_md=flags.get("has_decisions_md", False),
            has_sharp_edges_md=flags.get("has_sharp_edges_md", False),
        )

    return _make


@pytest.fixture
def full_skill(make_parsed_skill) -> ParsedSkill:
    """A skill that scores 100 when its delegates exist."""
    return make_parsed_skill(
        skill_yaml=full_skill_yaml(),
        sharp_edges_yaml=full_sharp_edges_yaml(),
        validations_yaml=full_validations_yaml(),
        collaboration_yaml=full_collaboration_yaml(),
        has_patterns_md=True,
        has_anti_patterns_md=True,
        has_decisions_md=True,
        has_sharp_edges_md=True,
    )


@pytest.fixture
def make_scored_skill(tmp_path):
    """Factory building ScoredSkill records with a chosen breakdown."""

    def _make(
        skill_id: str,
        identity: int = 0,
        sharp_edges: int = 0,
        validations: int = 0,
        collaboration: int = 0,
        triggers=None,
        owns=None,
        tags=None,
        delegates_to=None,
        path: Optional[Path] = None,
        description: str = "",
    ) -> ScoredSkill:
        breakdown = ScoreBreakdown(
            identity=identity,
            sharp_edges=sharp_edges,
            validations=validations,
            collaboration=collaboration,
        )
        skill = ParsedSkill(
            id=skill_id,
            name=skill_id,
            path=path or tmp_path / "source" / skill_id,
            descriptor=SkillDocument.from_raw({
                "id": skill_id,
                "description": description,
                "triggers": triggers or [],
                "owns": owns or [],
                "tags": tags or [],
            }),
            collaboration=CollaborationDocument.from_raw({
                "delegates_to": [{"skill_id": d} for d in (delegates_to or [])],
            }),
        )
        return ScoredSkill(
            skill=skill,
            score=QualityScore(total=breakdown.total, breakdown=breakdown),
        )

    return _make


@pytest.fixture
def write_skill_dir():
    """Factory writing a skill directory to disk."""

    def _write(
        base: Path,
        folder: str,
        skill_yaml: Optional[Dict[str, Any]] = None,
        skill_md: Optional[str] = None,
        extra_yaml: Optional[Dict[str, Dict[str, Any]]] = None,
        markdown: tuple = (),
    ) -> Path:
        skill_dir = base / folder
        skill_dir.mkdir(parents=True, exist_ok=True)
        if skill_yaml is not None:
            (skill_dir / "skill.yaml").write_text(yaml.safe_dump(skill_yaml))
        if skill_md is not None:
            (skill_dir / "SKILL.md").write_text(skill_md)
        for name, data in (extra_yaml or {}).items():
            (skill_dir / name).write_text(yaml.safe_dump(data))
        for name in markdown:
            (skill_dir / name).write_text(f"# {name}\n")
        return skill_dir

    return _write
