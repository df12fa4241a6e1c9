"""Data models for parsed skills and their quality scores."""
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, List, Mapping, Optional


class SkillSource(str, Enum):
    """Where a scanned skill came from."""

    LOCAL = "local"
    REMOTE = "remote"
    COMMUNITY = "community"


def as_sequence(value: Any) -> List[Any]:
    """
    Coerce an unknown YAML value into an ordered list.

    Lists and tuples are returned as lists, mappings contribute their
    values in order, anything else (including None and scalars) becomes
    an empty list.
    """
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, Mapping):
        return list(value.values())
    return []


def as_string_list(value: Any) -> List[str]:
    """Coerce an unknown YAML value into an ordered list of strings."""
    return [item for item in as_sequence(value) if isinstance(item, str)]


def as_text(value: Any) -> str:
    """Coerce an unknown YAML scalar into text, empty on type mismatch."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return ""
    if isinstance(value, (int, float)):
        return str(value)
    return ""


def _as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


@dataclass(frozen=True)
class Identity:
    """The identity block of a skill descriptor."""

    role: str = ""
    expertise: List[str] = field(default_factory=list)
    tone: str = ""
    principles: List[str] = field(default_factory=list)

    @classmethod
    def from_raw(cls, data: Any) -> "Identity":
        data = _as_mapping(data)
        return cls(
            role=as_text(data.get("role")),
            expertise=as_string_list(data.get("expertise")),
            tone=as_text(data.get("tone")),
            principles=as_string_list(data.get("principles")),
        )


@dataclass(frozen=True)
class SkillDocument:
    """Typed view of skill.yaml. Every field is optional."""

    id: str = ""
    name: str = ""
    version: str = ""
    description: str = ""
    category: str = ""
    targets: List[str] = field(default_factory=list)
    triggers: List[str] = field(default_factory=list)
    owns: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    pairs_with: List[str] = field(default_factory=list)
    layer: Optional[int] = None
    identity: Identity = field(default_factory=Identity)

    @classmethod
    def from_raw(cls, data: Any) -> "SkillDocument":
        """
        Build a descriptor from loosely-typed YAML data.

        Args:
            data: Result of yaml.safe_load on skill.yaml

        Returns:
            SkillDocument with missing or mistyped fields left empty
        """
        data = _as_mapping(data)
        layer = data.get("layer")
        return cls(
            id=as_text(data.get("id")),
            name=as_text(data.get("name")),
            version=as_text(data.get("version")),
            description=as_text(data.get("description")),
            category=as_text(data.get("category")),
            targets=as_string_list(data.get("targets")),
            triggers=as_string_list(data.get("triggers")),
            owns=as_string_list(data.get("owns")),
            tags=as_string_list(data.get("tags")),
            pairs_with=as_string_list(data.get("pairs_with")),
            layer=layer if isinstance(layer, int) and not isinstance(layer, bool) else None,
            identity=Identity.from_raw(data.get("identity")),
        )


@dataclass(frozen=True)
class SharpEdge:
    """A documented pitfall."""

    id: str = ""
    name: str = ""
    description: str = ""
    detection: str = ""
    severity: str = ""
    solution: str = ""

    @classmethod
    def from_raw(cls, data: Any) -> "SharpEdge":
        data = _as_mapping(data)
        return cls(
            id=as_text(data.get("id")),
            name=as_text(data.get("name")),
            description=as_text(data.get("description")),
            detection=as_text(data.get("detection")),
            severity=as_text(data.get("severity")),
            solution=as_text(data.get("solution")),
        )


@dataclass(frozen=True)
class SharpEdgesDocument:
    """Typed view of sharp-edges.yaml."""

    edges: List[SharpEdge] = field(default_factory=list)

    @classmethod
    def from_raw(cls, data: Any) -> "SharpEdgesDocument":
        data = _as_mapping(data)
        return cls(edges=[SharpEdge.from_raw(e) for e in as_sequence(data.get("edges"))])


@dataclass(frozen=True)
class Validation:
    """A single validation rule."""

    id: str = ""
    name: str = ""
    type: str = ""
    pattern: str = ""
    message: str = ""

    @classmethod
    def from_raw(cls, data: Any) -> "Validation":
        data = _as_mapping(data)
        return cls(
            id=as_text(data.get("id")),
            name=as_text(data.get("name")),
            type=as_text(data.get("type")),
            pattern=as_text(data.get("pattern")),
            message=as_text(data.get("message")),
        )


@dataclass(frozen=True)
class ValidationsDocument:
    """Typed view of validations.yaml."""

    validations: List[Validation] = field(default_factory=list)

    @classmethod
    def from_raw(cls, data: Any) -> "ValidationsDocument":
        data = _as_mapping(data)
        return cls(
            validations=[Validation.from_raw(v) for v in as_sequence(data.get("validations"))]
        )


@dataclass(frozen=True)
class Delegation:
    """A delegates_to or receives_from rule."""

    skill_id: Optional[str] = None
    when: str = ""
    context: str = ""

    @classmethod
    def from_raw(cls, data: Any) -> "Delegation":
        data = _as_mapping(data)
        return cls(
            skill_id=as_text(data.get("skill_id")) or None,
            when=as_text(data.get("when")),
            context=as_text(data.get("context")),
        )


@dataclass(frozen=True)
class CollaborationDocument:
    """Typed view of collaboration.yaml."""

    delegates_to: List[Delegation] = field(default_factory=list)
    receives_from: List[Delegation] = field(default_factory=list)

    @classmethod
    def from_raw(cls, data: Any) -> "CollaborationDocument":
        data = _as_mapping(data)
        return cls(
            delegates_to=[Delegation.from_raw(d) for d in as_sequence(data.get("delegates_to"))],
            receives_from=[Delegation.from_raw(d) for d in as_sequence(data.get("receives_from"))],
        )

    @property
    def delegate_ids(self) -> List[str]:
        """Skill ids this skill delegates to, in declaration order."""
        return [d.skill_id for d in self.delegates_to if d.skill_id]


@dataclass(frozen=True)
class ParsedSkill:
    """A scanned skill directory and its parsed documents."""

    id: str
    name: str
    path: Path
    source: SkillSource = SkillSource.LOCAL

    descriptor: Optional[SkillDocument] = None
    sharp_edges: Optional[SharpEdgesDocument] = None
    validations: Optional[ValidationsDocument] = None
    collaboration: Optional[CollaborationDocument] = None

    has_patterns_md: bool = False
    has_anti_patterns_md: bool = False
    has_decisions_md: bool = False
    has_sharp_edges_md: bool = False

    @property
    def triggers(self) -> List[str]:
        return self.descriptor.triggers if self.descriptor else []

    @property
    def owns(self) -> List[str]:
        return self.descriptor.owns if self.descriptor else []

    @property
    def tags(self) -> List[str]:
        return self.descriptor.tags if self.descriptor else []

    @property
    def description(self) -> str:
        return self.descriptor.description if self.descriptor else ""

    @property
    def delegate_ids(self) -> List[str]:
        return self.collaboration.delegate_ids if self.collaboration else []


@dataclass(frozen=True)
class ScoreBreakdown:
    """Per-category scores, each 0-25."""

    identity: int = 0
    sharp_edges: int = 0
    validations: int = 0
    collaboration: int = 0

    @property
    def total(self) -> int:
        return self.identity + self.sharp_edges + self.validations + self.collaboration


@dataclass(frozen=True)
class QualityScore:
    """Quality score for one skill."""

    total: int
    breakdown: ScoreBreakdown
    gaps: List[str] = field(default_factory=list)
    strengths: List[str] = field(default_factory=list)

    @classmethod
    def failed(cls) -> "QualityScore":
        """Score assigned when evaluation raised."""
        return cls(total=0, breakdown=ScoreBreakdown(), gaps=["Scoring failed"], strengths=[])


@dataclass(frozen=True)
class ScoredSkill:
    """A parsed skill together with its quality score."""

    skill: ParsedSkill
    score: QualityScore

    @property
    def id(self) -> str:
        return self.skill.id

    @property
    def name(self) -> str:
        return self.skill.name

    @property
    def path(self) -> Path:
        return self.skill.path

    @property
    def triggers(self) -> List[str]:
        return self.skill.triggers

    @property
    def owns(self) -> List[str]:
        return self.skill.owns

    @property
    def tags(self) -> List[str]:
        return self.skill.tags

    @property
    def description(self) -> str:
        return self.skill.description

    @property
    def delegate_ids(self) -> List[str]:
        return self.skill.delegate_ids
