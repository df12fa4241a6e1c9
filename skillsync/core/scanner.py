"""Skill directory scanner."""
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence
import yaml

from skillsync.models.skill import (
    CollaborationDocument,
    ParsedSkill,
    SharpEdgesDocument,
    SkillDocument,
    SkillSource,
    ValidationsDocument,
)

logger = logging.getLogger(__name__)

SKILL_YAML = "skill.yaml"
SKILL_MD = "SKILL.md"

DEFAULT_SKILL_PATHS: Sequence[str] = (
    ".spawner/skills",
    ".claude/skills",
    ".cursor/skills",
    ".codex/skills",
    ".gemini/skills",
    ".opencode/skills",
)


def _read_yaml(path: Path) -> Optional[Any]:
    """Parse a YAML file, returning None if it is missing or invalid."""
    if not path.exists():
        return None
    try:
        return yaml.safe_load(path.read_text())
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
        logger.debug("Ignoring unreadable %s: %s", path, e)
        return None


def _parse_frontmatter(content: str) -> Optional[Dict[str, Any]]:
    """
    Extract YAML frontmatter from markdown content.

    Args:
        content: Markdown file content

    Returns:
        Parsed frontmatter as dict, or None if not found/invalid
    """
    match = re.match(r'^---\s*\n(.*?)\n---\s*\n', content, re.DOTALL)
    if not match:
        return None

    try:
        result = yaml.safe_load(match.group(1))
        return result if isinstance(result, dict) else None
    except yaml.YAMLError:
        return None


def _title_from_folder(folder: str) -> str:
    return " ".join(word[:1].upper() + word[1:] for word in folder.split("-"))


def _minimal_descriptor(skill_path: Path) -> Dict[str, Any]:
    """Descriptor for a SKILL.md-only skill."""
    folder = skill_path.name
    data: Dict[str, Any] = {"id": folder, "name": _title_from_folder(folder)}
    try:
        frontmatter = _parse_frontmatter((skill_path / SKILL_MD).read_text())
    except (OSError, UnicodeDecodeError):
        frontmatter = None
    if frontmatter and isinstance(frontmatter.get("description"), str):
        data["description"] = frontmatter["description"]
    return data


def parse_skill_directory(skill_path: Path, source: SkillSource) -> Optional[ParsedSkill]:
    """
    Parse one skill directory.

    A directory is a skill when it has a skill.yaml that parses to a
    mapping, or a SKILL.md marker.

    Args:
        skill_path: Directory to parse
        source: Where the scanned root came from

    Returns:
        ParsedSkill, or None if the directory is not a skill
    """
    raw = _read_yaml(skill_path / SKILL_YAML)
    if not isinstance(raw, dict):
        if not (skill_path / SKILL_MD).exists():
            return None
        raw = _minimal_descriptor(skill_path)

    descriptor = SkillDocument.from_raw(raw)
    skill_id = descriptor.id or skill_path.name

    sharp_edges = _read_yaml(skill_path / "sharp-edges.yaml")
    validations = _read_yaml(skill_path / "validations.yaml")
    collaboration = _read_yaml(skill_path / "collaboration.yaml")

    return ParsedSkill(
        id=skill_id,
        name=descriptor.name or skill_id,
        path=skill_path,
        source=source,
        descriptor=descriptor,
        sharp_edges=SharpEdgesDocument.from_raw(sharp_edges) if sharp_edges is not None else None,
        validations=ValidationsDocument.from_raw(validations) if validations is not None else None,
        collaboration=(
            CollaborationDocument.from_raw(collaboration) if collaboration is not None else None
        ),
        has_patterns_md=(skill_path / "patterns.md").exists(),
        has_anti_patterns_md=(skill_path / "anti-patterns.md").exists(),
        has_decisions_md=(skill_path / "decisions.md").exists(),
        has_sharp_edges_md=(skill_path / "sharp-edges.md").exists(),
    )


def _visible_dirs(path: Path) -> List[Path]:
    entries = []
    for entry in sorted(path.iterdir(), key=lambda p: p.name):
        if entry.name.startswith("."):
            continue
        try:
            if entry.is_dir():
                entries.append(entry)
        except OSError:
            continue
    return entries


def scan_directory(base_path: Path, source: SkillSource) -> List[ParsedSkill]:
    """
    Find skills directly under base_path.

    A subdirectory that is not itself a skill is treated as a category
    folder (e.g. "public", "user") and searched one level deeper.

    Args:
        base_path: Root to scan
        source: Source label for every skill found

    Returns:
        Parsed skills in sorted directory order
    """
    skills: List[ParsedSkill] = []
    if not base_path.exists():
        return skills

    try:
        candidates = _visible_dirs(base_path)
    except OSError as e:
        logger.debug("Cannot read %s: %s", base_path, e)
        return skills

    for entry in candidates:
        skill = parse_skill_directory(entry, source)
        if skill:
            skills.append(skill)
            continue

        try:
            nested = _visible_dirs(entry)
        except OSError as e:
            logger.debug("Cannot read %s: %s", entry, e)
            continue
        for sub_entry in nested:
            sub_skill = parse_skill_directory(sub_entry, source)
            if sub_skill:
                skills.append(sub_skill)

    return skills


def source_for_path(path: Path) -> SkillSource:
    """Spawner roots hold local skills; every other root is community."""
    return SkillSource.LOCAL if ".spawner" in str(path) else SkillSource.COMMUNITY


def scan_skills(paths: Optional[Sequence[Path]] = None) -> List[ParsedSkill]:
    """
    Scan skill roots in order, keeping the first skill seen for each id.

    Args:
        paths: Roots to scan (defaults to DEFAULT_SKILL_PATHS under home)

    Returns:
        Parsed skills with unique ids
    """
    roots = list(paths) if paths is not None else [Path.home() / p for p in DEFAULT_SKILL_PATHS]
    seen = set()
    skills: List[ParsedSkill] = []

    for root in roots:
        root = Path(root).expanduser().absolute()
        for skill in scan_directory(root, source_for_path(root)):
            if skill.id in seen:
                logger.debug("Skipping duplicate skill %s at %s", skill.id, skill.path)
                continue
            seen.add(skill.id)
            skills.append(skill)

    return skills


def get_default_paths() -> List[Path]:
    """Default scan roots that exist."""
    return [p for p in (Path.home() / rel for rel in DEFAULT_SKILL_PATHS) if p.exists()]
