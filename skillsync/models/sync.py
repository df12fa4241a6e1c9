"""Data models for sync targets and sync/backup results."""
from dataclasses import dataclass, field
from pathlib import Path
from typing import List


@dataclass
class SyncTarget:
    """A tool's skill directory. exists is probed once at construction."""

    name: str
    path: Path
    exists: bool = False

    @classmethod
    def probe(cls, name: str, path: Path) -> "SyncTarget":
        return cls(name=name, path=path, exists=path.exists())


@dataclass
class SyncResult:
    """Outcome of syncing a skill list into one target."""

    target: str
    linked: int = 0
    skipped: int = 0
    updated: int = 0
    errors: List[str] = field(default_factory=list)


@dataclass
class BackupResult:
    """A copy of one target's skill directories."""

    target: str
    path: Path
    count: int


@dataclass
class BackupEntry:
    """One timestamped backup under the backup root."""

    timestamp: str
    path: Path
    targets: List[str] = field(default_factory=list)


@dataclass
class RestoreResult:
    """Outcome of restoring a backup."""

    success: bool = True
    restored: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


@dataclass
class PullResult:
    """Outcome of pulling locally-added skills back into the source."""

    pulled: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
