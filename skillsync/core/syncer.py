"""Symlink-based sync of source skills into tool directories, with backups."""
import logging
import os
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence

from skillsync.core.config import get_backup_base_dir, get_targets
from skillsync.models.skill import ScoredSkill
from skillsync.models.sync import (
    BackupEntry,
    BackupResult,
    PullResult,
    RestoreResult,
    SyncResult,
    SyncTarget,
)

logger = logging.getLogger(__name__)


def _remove_entry(path: Path) -> None:
    """Remove a file, symlink or directory tree."""
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.is_dir():
        shutil.rmtree(path)


def _copy_entry(src: Path, dest: Path) -> None:
    """Copy an entry, recreating symlinks as symlinks."""
    if src.is_symlink():
        os.symlink(os.readlink(src), dest, target_is_directory=True)
    elif src.is_dir():
        shutil.copytree(src, dest, symlinks=True)
    else:
        shutil.copy2(src, dest)


def sync_skills_to_target(
    skills: Sequence[ScoredSkill],
    target: SyncTarget,
    min_score: int = 0,
    dry_run: bool = False,
) -> SyncResult:
    """
    Link every qualifying skill into a target directory.

    Existing links to the right place are left alone, links elsewhere are
    replaced, and real directories occupying a skill's slot are never
    touched (reported as errors).

    Args:
        skills: Score-sorted skills
        target: Target to sync into
        min_score: Skills scoring below this are skipped
        dry_run: Count what would happen without touching the filesystem

    Returns:
        SyncResult with linked/updated/skipped counts and per-skill errors
    """
    result = SyncResult(target=target.name)

    if not dry_run:
        try:
            target.path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            result.errors.append(f"{target.name}: {e}")
            return result

    for skill in skills:
        if skill.score.total < min_score:
            result.skipped += 1
            continue

        link_path = target.path / skill.id
        source_path = skill.path.expanduser().absolute()

        try:
            if link_path.is_symlink():
                if Path(link_path.readlink()) == source_path:
                    result.linked += 1
                    continue
                if not dry_run:
                    link_path.unlink()
                    link_path.symlink_to(source_path, target_is_directory=True)
                result.updated += 1
                continue

            if link_path.exists():
                result.errors.append(f"{skill.id}: target exists as directory, skipped")
                continue

            if not dry_run:
                link_path.symlink_to(source_path, target_is_directory=True)
            result.linked += 1

        except OSError as e:
            result.errors.append(f"{skill.id}: {e}")

    logger.debug(
        "Synced %s: %d linked, %d updated, %d skipped, %d error(s)",
        target.name, result.linked, result.updated, result.skipped, len(result.errors),
    )
    return result


def get_backup_dir(base: Optional[Path] = None) -> Path:
    """A fresh timestamped backup directory path (not created).

    A numeric suffix is appended when a backup from the same second exists.
    """
    base = base or get_backup_base_dir()
    timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S")
    backup_dir = base / timestamp
    suffix = 1
    while backup_dir.exists():
        backup_dir = base / f"{timestamp}-{suffix}"
        suffix += 1
    return backup_dir


def backup_target(target: SyncTarget, backup_dir: Path) -> Optional[BackupResult]:
    """
    Copy a target's skill directories into backup_dir/<target name>.

    Loose files in the target root are ignored, and an entry that fails
    to copy is skipped without aborting the backup.

    Args:
        target: Target to back up
        backup_dir: Timestamped backup root

    Returns:
        BackupResult, or None when the target does not exist
    """
    if not target.exists:
        return None

    target_backup_dir = backup_dir / target.name
    try:
        target_backup_dir.mkdir(parents=True, exist_ok=True)
        entries = sorted(target.path.iterdir(), key=lambda p: p.name)
    except OSError as e:
        logger.warning("Cannot back up %s: %s", target.name, e)
        return None

    count = 0
    for entry in entries:
        try:
            if not entry.is_dir():
                continue
            _copy_entry(entry, target_backup_dir / entry.name)
            count += 1
        except (OSError, shutil.Error) as e:
            logger.debug("Skipping %s during backup: %s", entry, e)

    return BackupResult(target=target.name, path=target_backup_dir, count=count)


def list_backups(base: Optional[Path] = None) -> List[BackupEntry]:
    """
    List timestamped backups, newest first.

    Args:
        base: Backup root (defaults to get_backup_base_dir())

    Returns:
        BackupEntry per backup directory; empty if the root is missing
    """
    base = base or get_backup_base_dir()
    if not base.exists():
        return []

    backups = []
    for entry in base.iterdir():
        if not entry.is_dir():
            continue
        targets = sorted(t.name for t in entry.iterdir() if t.is_dir())
        backups.append(BackupEntry(timestamp=entry.name, path=entry, targets=targets))

    return sorted(backups, key=lambda b: b.timestamp, reverse=True)


def restore_backup(
    backup_path: Path,
    target_name: Optional[str] = None,
    targets: Optional[Sequence[SyncTarget]] = None,
) -> RestoreResult:
    """
    Replace live target contents with a backup.

    Every target directory in the backup (or only target_name) is matched
    against the known targets by name. The live target is emptied and the
    backed-up entries copied back. Failures are recorded per target. An
    unknown target name is only recorded in errors and leaves success
    untouched.

    Args:
        backup_path: A timestamped backup directory
        target_name: Restore only this target
        targets: Known targets (defaults to get_targets())

    Returns:
        RestoreResult; success is False if any target failed
    """
    result = RestoreResult()

    if not backup_path.exists():
        result.success = False
        result.errors.append("Backup not found")
        return result

    known = {t.name: t for t in (targets if targets is not None else get_targets())}
    backup_targets = sorted(p.name for p in backup_path.iterdir() if p.is_dir())

    for name in backup_targets:
        if target_name and name != target_name:
            continue

        target = known.get(name)
        if target is None:
            result.errors.append(f"Unknown target: {name}")
            continue

        try:
            if target.path.exists():
                for entry in list(target.path.iterdir()):
                    _remove_entry(entry)
            else:
                target.path.mkdir(parents=True, exist_ok=True)

            for entry in sorted((backup_path / name).iterdir(), key=lambda p: p.name):
                _copy_entry(entry, target.path / entry.name)

            result.restored.append(name)
        except (OSError, shutil.Error) as e:
            result.success = False
            result.errors.append(f"{name}: {e}")

    return result


def get_existing_skills_in_target(target: SyncTarget) -> List[str]:
    """Names of skill entries (directories or symlinks) in a target."""
    if not target.exists:
        return []
    try:
        return sorted(
            entry.name for entry in target.path.iterdir()
            if entry.is_symlink() or entry.is_dir()
        )
    except OSError:
        return []


def pull_from_target(target: SyncTarget, source_path: Path, force: bool = False) -> PullResult:
    """
    Copy skills that were added directly to a target back into the source.

    Only real directories are pulled; symlinked entries already come from
    a source and are skipped. A manually copied source skill looks like a
    local addition and will be pulled too.

    Args:
        target: Target to pull from
        source_path: Source directory
        force: Replace skills that already exist in the source

    Returns:
        PullResult listing pulled, skipped and failed entries
    """
    result = PullResult()

    if not target.exists:
        result.errors.append("Target does not exist")
        return result

    try:
        source_path.mkdir(parents=True, exist_ok=True)
        entries = sorted(target.path.iterdir(), key=lambda p: p.name)
    except OSError as e:
        result.errors.append(str(e))
        return result

    for entry in entries:
        if entry.is_symlink():
            result.skipped.append(entry.name)
            continue

        dest = source_path / entry.name
        try:
            if not entry.is_dir():
                continue

            if dest.exists() or dest.is_symlink():
                if not force:
                    result.skipped.append(entry.name)
                    continue
                _remove_entry(dest)

            shutil.copytree(entry, dest, symlinks=True)
            result.pulled.append(entry.name)
        except (OSError, shutil.Error) as e:
            result.errors.append(f"{entry.name}: {e}")

    return result
