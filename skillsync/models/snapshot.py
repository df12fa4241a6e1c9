"""Data models for content snapshots and diffs."""
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List


@dataclass
class FileHash:
    """Short content digest of one file."""

    name: str
    hash: str


@dataclass
class SkillSnapshot:
    """Content fingerprint of one skill directory."""

    id: str
    hash: str
    files: List[FileHash] = field(default_factory=list)
    timestamp: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SkillSnapshot":
        return cls(
            id=data["id"],
            hash=data["hash"],
            files=[FileHash(name=f["name"], hash=f["hash"]) for f in data.get("files", [])],
            timestamp=data.get("timestamp", ""),
        )


@dataclass
class DiffResult:
    """Skill ids classified by change status."""

    added: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    modified: List[str] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed or self.modified)


@dataclass
class TargetDiff:
    """Diff of the source tree against one target."""

    target: str
    source_skills: List[str]
    target_skills: List[str]
    diff: DiffResult
