"""Content snapshots and diffs between source and target trees."""
import hashlib
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from skillsync.core.config import get_snapshot_path
from skillsync.models.snapshot import DiffResult, FileHash, SkillSnapshot, TargetDiff
from skillsync.models.sync import SyncTarget

logger = logging.getLogger(__name__)

SHORT_HASH_LENGTH = 8
ERROR_HASH = "error"

Snapshots = Dict[str, SkillSnapshot]


def _short_digest(data: bytes) -> str:
    return hashlib.md5(data).hexdigest()[:SHORT_HASH_LENGTH]


def hash_file(path: Path) -> str:
    """Short content digest of a file, or "error" if it can't be read."""
    try:
        return _short_digest(path.read_bytes())
    except OSError:
        return ERROR_HASH


def hash_directory(path: Path) -> Tuple[str, List[FileHash]]:
    """
    Fingerprint the regular files directly inside a directory.

    Hidden files and subdirectories are ignored. Files are visited in
    sorted name order.

    Args:
        path: Skill directory

    Returns:
        Tuple of (combined hash, per-file hashes)
    """
    files: List[FileHash] = []
    try:
        entries = sorted(path.iterdir(), key=lambda p: p.name)
    except OSError as e:
        logger.debug("Cannot read %s: %s", path, e)
        entries = []

    for entry in entries:
        if entry.name.startswith("."):
            continue
        try:
            if entry.is_file():
                files.append(FileHash(name=entry.name, hash=hash_file(entry)))
        except OSError:
            continue

    combined = "|".join(f"{f.name}:{f.hash}" for f in files)
    return _short_digest(combined.encode()), files


def _subdirectories(path: Path) -> List[str]:
    """Names of entries that are (or link to) directories, in sorted order."""
    if not path.exists():
        return []
    names = []
    try:
        for entry in sorted(path.iterdir(), key=lambda p: p.name):
            try:
                if entry.is_dir():
                    names.append(entry.name)
            except OSError:
                continue
    except OSError as e:
        logger.debug("Cannot read %s: %s", path, e)
    return names


def _target_entries(path: Path) -> List[str]:
    """Names of directory or symlink entries in a target, in sorted order."""
    if not path.exists():
        return []
    names = []
    try:
        for entry in sorted(path.iterdir(), key=lambda p: p.name):
            try:
                if entry.is_symlink() or entry.is_dir():
                    names.append(entry.name)
            except OSError:
                continue
    except OSError as e:
        logger.debug("Cannot read %s: %s", path, e)
    return names


def create_snapshot(source_path: Path) -> Snapshots:
    """
    Snapshot every skill directory directly under a source path.

    Args:
        source_path: Source directory

    Returns:
        Mapping of skill id to SkillSnapshot; empty if the source is missing
    """
    snapshots: Snapshots = {}
    for name in _subdirectories(source_path):
        combined, files = hash_directory(source_path / name)
        snapshots[name] = SkillSnapshot(
            id=name,
            hash=combined,
            files=files,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )
    return snapshots


def load_snapshot(path: Optional[Path] = None) -> Optional[Snapshots]:
    """
    Load a saved snapshot.

    Returns:
        Snapshots, or None when the file is missing or unreadable
    """
    path = path or get_snapshot_path()
    if not path.exists():
        return None

    try:
        data = json.loads(path.read_text())
        snapshots = [SkillSnapshot.from_dict(item) for item in data]
    except (OSError, ValueError, KeyError, TypeError) as e:
        logger.warning("Ignoring unreadable snapshot %s: %s", path, e)
        return None
    return {s.id: s for s in snapshots}


def save_snapshot(snapshots: Snapshots, path: Optional[Path] = None) -> Path:
    """Write snapshots as a JSON list, creating the parent directory."""
    path = path or get_snapshot_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    data = [s.to_dict() for s in snapshots.values()]
    path.write_text(json.dumps(data, indent=2))
    return path


def diff_snapshots(previous: Optional[Snapshots], current: Snapshots) -> DiffResult:
    """
    Classify skills by comparing two snapshots.

    Args:
        previous: Earlier snapshot, or None on first run
        current: Fresh snapshot

    Returns:
        DiffResult; with no previous snapshot every current id is added
    """
    result = DiffResult()

    if previous is None:
        result.added = list(current.keys())
        return result

    for skill_id, snapshot in current.items():
        before = previous.get(skill_id)
        if before is None:
            result.added.append(skill_id)
        elif before.hash != snapshot.hash:
            result.modified.append(skill_id)
        else:
            result.unchanged.append(skill_id)

    for skill_id in previous:
        if skill_id not in current:
            result.removed.append(skill_id)

    return result


def _read_link(path: Path) -> Optional[Path]:
    try:
        return Path(path.readlink())
    except OSError:
        return None


def diff_source_to_target(source_path: Path, target_path: Path) -> DiffResult:
    """
    Compare a source tree with a symlink-farm target.

    A source skill missing from the target is added. One present is
    unchanged when the target entry links exactly to the source skill,
    and modified when it links elsewhere or is a real directory. Target
    entries without a source skill are removed.

    Args:
        source_path: Source directory
        target_path: Target directory

    Returns:
        DiffResult for this target
    """
    source_path = source_path.expanduser().absolute()
    result = DiffResult()
    source_skills = _subdirectories(source_path)
    target_skills = set(_target_entries(target_path))

    for skill in source_skills:
        if skill not in target_skills:
            result.added.append(skill)
            continue

        link = _read_link(target_path / skill)
        if link is not None and link == source_path / skill:
            result.unchanged.append(skill)
        else:
            result.modified.append(skill)

    source_set = set(source_skills)
    for skill in sorted(target_skills):
        if skill not in source_set:
            result.removed.append(skill)

    return result


def get_target_diffs(source_path: Path, targets: Sequence[SyncTarget]) -> List[TargetDiff]:
    """Diff the source tree against each target in order."""
    source_path = source_path.expanduser().absolute()
    source_skills = _subdirectories(source_path)
    return [
        TargetDiff(
            target=target.name,
            source_skills=source_skills,
            target_skills=_target_entries(target.path),
            diff=diff_source_to_target(source_path, target.path),
        )
        for target in targets
    ]
