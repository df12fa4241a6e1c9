"""Main CLI entry point for skillsync."""
import logging
import os
from pathlib import Path
from typing import List, Optional, Tuple

import click

from skillsync import __version__


def _error(message: str) -> None:
    click.echo(click.style("Error: ", fg="red", bold=True) + message)


def _load_config_or_none():
    """Load config.yaml if present; abort on a broken file."""
    from skillsync.core.config import load_config

    try:
        return load_config()
    except FileNotFoundError:
        return None
    except Exception as e:
        _error(f"Failed to load config: {e}")
        raise click.Abort()


def _active_targets(config) -> list:
    """Configured targets, else every known target that exists."""
    from skillsync.core.config import get_targets, targets_from_config

    if config and config.targets:
        return targets_from_config(config)
    return [t for t in get_targets() if t.exists]


def _scan_and_score(paths: Optional[List[Path]] = None):
    from skillsync.core.scanner import scan_skills
    from skillsync.core.scorer import score_all_skills

    return score_all_skills(scan_skills(paths))


def _tier_line(scored) -> str:
    from skillsync.core.report import group_by_tier
    from skillsync.core.scorer import Tier

    tiers = group_by_tier(scored)
    return (
        click.style("⚡", fg="cyan") + f" Excellent: {len(tiers[Tier.EXCELLENT])}  " +
        click.style("✓", fg="magenta") + f" Good: {len(tiers[Tier.GOOD])}  " +
        click.style("○", fg="yellow") + f" Mediocre: {len(tiers[Tier.MEDIOCRE])}  " +
        click.style("✗", fg="red") + f" Poor: {len(tiers[Tier.POOR])}"
    )


@click.group()
@click.version_option(version=__version__)
@click.option('--debug', is_flag=True, help='Enable debug logging')
def cli(debug: bool) -> None:
    """skillsync - rate agent skills, use the best.

    Scores skill definitions, flags overlaps and contradictions, and
    symlinks the best skills into every AI tool's skill directory.
    """
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
def version() -> None:
    """Show skillsync version."""
    click.echo(f"skillsync version {__version__}")


@cli.command()
@click.option('--force', is_flag=True, help='Overwrite existing config.yaml')
def init(force: bool) -> None:
    """Create config.yaml from detected tools."""
    from skillsync.core.config import (
        config_exists,
        create_default_config,
        detect_installed_clis,
        detect_source_path,
        save_config,
    )

    if config_exists() and not force:
        _error("config.yaml already exists. Use --force to overwrite.")
        raise click.Abort()

    detected = [t for t in detect_installed_clis() if t.exists]
    config = create_default_config(detected, detect_source_path())
    path = save_config(config)

    click.echo(click.style("✓ ", fg="green") + f"Created {path}")
    click.echo(f"  Source: {config.source}")
    click.echo(f"  Targets: {', '.join(t.name for t in detected) or 'none detected'}")


@cli.command()
@click.option('--path', '-p', 'paths', multiple=True, type=click.Path(path_type=Path),
              help='Custom paths to scan')
@click.option('--verbose', '-v', is_flag=True, help='Show detailed breakdown')
@click.option(
    '--format', 'output_format',
    type=click.Choice(['text', 'json', 'yaml']),
    default='text',
    help='Output format (text, json, yaml)'
)
def rate(paths: Tuple[Path, ...], verbose: bool, output_format: str) -> None:
    """Scan and rate all skills."""
    from skillsync.core.detector import analyze_overlaps
    from skillsync.core.report import (
        build_report,
        format_json,
        format_yaml,
        render_scores_table,
    )
    from skillsync.core.scorer import Tier

    scored = _scan_and_score(list(paths) or None)
    report = build_report(scored, analyze_overlaps(scored))

    if output_format == 'json':
        click.echo(format_json(report))
        return
    if output_format == 'yaml':
        click.echo(format_yaml(report))
        return

    if not scored:
        click.echo("No skills found")
        return

    click.echo(click.style(f"Rated {len(scored)} skills", fg="magenta", bold=True))
    click.echo()

    sections = (
        (Tier.EXCELLENT, "Excellent (80-100)", "cyan", 5),
        (Tier.GOOD, "Good (60-79)", "magenta", 5),
        (Tier.MEDIOCRE, "Mediocre (40-59)", "yellow", 3),
        (Tier.POOR, "Poor (0-39)", "red", 3),
    )
    for tier, title, color, limit in sections:
        members = report.tiers[tier]
        if not members:
            continue
        click.echo(click.style(f"{title}: {len(members)} skills", fg=color))
        for skill in members[:limit]:
            click.echo(f"  {skill.score.total:>3} {skill.name}")
        click.echo()

    if verbose:
        click.echo(render_scores_table(scored))

    if report.overlaps:
        click.echo(click.style("Overlapping Skills:", fg="yellow", bold=True))
        for group in report.overlaps[:5]:
            best = group.recommendation.best
            click.echo(click.style(f"  Domain: {group.domain}", fg="yellow"))
            click.echo(click.style(f"  ⚡ Use: {best.name} ({best.score.total}/100)", fg="cyan"))
            click.echo(f"     {group.recommendation.reason}")
            for alt in group.recommendation.alternatives[:2]:
                click.echo(f"  ○ Skip: {alt.skill.name} ({alt.skill.score.total}/100) - {alt.use_case}")
            click.echo()

    if report.contradictions:
        click.echo(click.style("Contradictions:", fg="red", bold=True))
        for contradiction in report.contradictions[:5]:
            click.echo(click.style(f"  {contradiction.skill_a} ↔ {contradiction.skill_b}", fg="red"))
            click.echo(f"     Conflict: {contradiction.conflict}")
            click.echo(click.style(f"     Fix: {contradiction.resolution}", fg="cyan"))
            click.echo()


@cli.command()
@click.argument('skill_ids', nargs=-1, required=True)
def compare(skill_ids: Tuple[str, ...]) -> None:
    """Compare specific skills side-by-side."""
    from skillsync.core.report import render_comparison_table, select_skills

    scored = _scan_and_score()
    selected = select_skills(scored, skill_ids)

    if not selected:
        _error("No matching skills found")
        if scored:
            click.echo("Available skills:")
            for skill in scored[:10]:
                click.echo(f"  - {skill.id}")
        return

    click.echo(render_comparison_table(selected))
    winner = selected[0]
    click.echo(click.style(f"⚡ Winner: {winner.name} ({winner.score.total}/100)", fg="cyan", bold=True))


@cli.command()
@click.argument('query')
def best(query: str) -> None:
    """Find the best skill for a use case."""
    from skillsync.core.report import find_best

    matches = find_best(_scan_and_score(), query)
    if not matches:
        click.echo(f"No skills match '{query}'")
        return

    top = matches[0]
    click.echo(click.style(f"⚡ Best: {top.name}", fg="cyan", bold=True))
    click.echo(f"   ID: {top.id}")
    click.echo(f"   Score: {top.score.total}/100")
    click.echo(f"   {top.description or 'No description'}")

    if len(matches) > 1:
        click.echo()
        click.echo(click.style("Alternatives:", fg="magenta"))
        for rank, skill in enumerate(matches[1:4], start=2):
            click.echo(f"   {rank}. {skill.name} ({skill.score.total}/100)")


@cli.command()
def status() -> None:
    """Show skill paths and how many skills each holds."""
    from skillsync.core.scanner import DEFAULT_SKILL_PATHS, get_default_paths, scan_skills

    paths = get_default_paths()
    if not paths:
        click.echo(click.style("No skill directories found", fg="yellow"))
        click.echo("  Expected locations:")
        for rel in DEFAULT_SKILL_PATHS:
            click.echo(f"    ~/{rel}/")
        return

    click.echo(click.style("Skill Paths:", fg="magenta", bold=True))
    for path in paths:
        count = len(scan_skills([path]))
        icon = click.style("✓", fg="cyan") if count else "○"
        click.echo(f"  {icon} {path} ({f'{count} skills' if count else 'empty'})")


@cli.command()
def clean() -> None:
    """List poor skills (score < 40) that should be removed."""
    from skillsync.core.scorer import Tier, get_tier

    poor = [s for s in _scan_and_score() if get_tier(s.score.total) == Tier.POOR]
    if not poor:
        click.echo(click.style("No poor skills found", fg="green"))
        return

    click.echo(f"Found {len(poor)} skill(s) to clean:")
    click.echo()
    for skill in poor:
        click.echo(click.style("✗ ", fg="red") + f"{skill.name} ({skill.score.total}/100)")
        click.echo(f"    {skill.path}")
        if skill.score.gaps:
            click.echo(f"    Missing: {skill.score.gaps[0]}")
    click.echo()
    click.echo("Remove with:")
    for skill in poor:
        click.echo(f'    rm -rf "{skill.path}"')


@cli.command()
def targets() -> None:
    """Show the source directory and sync targets."""
    from skillsync.core.config import get_source_path, get_targets, targets_from_config

    config = _load_config_or_none()
    source = get_source_path(config)
    all_targets = targets_from_config(config) if config and config.targets else get_targets()

    click.echo(click.style("Source:", fg="magenta", bold=True))
    click.echo(f"  ⚡ {source}")
    click.echo()
    click.echo(click.style("Sync Targets:", fg="magenta", bold=True))
    for target in all_targets:
        if target.exists:
            click.echo(click.style("  ✓ ", fg="cyan") + f"{target.name:<12} {target.path} (active)")
        else:
            click.echo(f"  ○ {target.name:<12} {target.path} (not found)")


@cli.command()
@click.option('--min-score', type=click.IntRange(0, 100), default=None,
              help='Only sync skills scoring at least this much')
@click.option('--no-backup', is_flag=True, help='Skip backup before syncing')
@click.option('--dry-run', is_flag=True, help='Show what would happen without syncing')
@click.option('--path', '-p', 'source', type=click.Path(path_type=Path), help='Custom source path')
def sync(min_score: Optional[int], no_backup: bool, dry_run: bool, source: Optional[Path]) -> None:
    """Rate source skills, then symlink them into every target."""
    from skillsync.core.config import get_source_path
    from skillsync.core.scanner import scan_skills
    from skillsync.core.scorer import score_all_skills
    from skillsync.core.syncer import backup_target, get_backup_dir, sync_skills_to_target

    config = _load_config_or_none()
    source_path = source or get_source_path(config)
    threshold = min_score if min_score is not None else (config.min_score if config else 0)
    auto_backup = config.auto_backup if config else True

    skills = scan_skills([source_path])
    if not skills:
        click.echo(f"No skills found in source: {source_path}")
        return

    scored = score_all_skills(skills)
    qualified = [s for s in scored if s.score.total >= threshold]

    click.echo(click.style(f"Rated {len(scored)} skills", fg="magenta", bold=True))
    click.echo("  " + _tier_line(scored))
    if threshold > 0:
        click.echo(
            f"  Syncing {len(qualified)} skills (score ≥ {threshold}), "
            f"skipping {len(scored) - len(qualified)}"
        )

    sync_targets = _active_targets(config)
    if not sync_targets:
        click.echo(click.style("No sync targets found. Run 'skillsync targets'.", fg="yellow"))
        return

    if auto_backup and not no_backup and not dry_run:
        click.echo()
        click.echo(click.style("Backing up", fg="magenta"))
        backup_dir = get_backup_dir()
        for target in sync_targets:
            backup = backup_target(target, backup_dir)
            if backup and backup.count > 0:
                click.echo(click.style("  ✓ ", fg="cyan") + f"{target.name} → {backup.path}")

    click.echo()
    click.echo(click.style("Syncing skills", fg="magenta"))
    for target in sync_targets:
        result = sync_skills_to_target(qualified, target, min_score=threshold, dry_run=dry_run)
        icon = click.style("! ", fg="yellow") if result.errors else click.style("✓ ", fg="cyan")
        suffix = " (dry-run)" if dry_run else ""
        click.echo(
            f"  {icon}{target.name}: {result.linked} linked, {result.skipped} skipped, "
            f"{result.updated} updated{suffix}"
        )
        for err in result.errors[:3]:
            click.echo(f"      {err}")

    click.echo()
    if dry_run:
        click.echo(click.style("Dry run complete. Run without --dry-run to sync.", fg="cyan"))
    else:
        click.echo(click.style("Sync complete!", fg="green", bold=True))


@cli.command()
@click.option('--save', is_flag=True, help='Save the current snapshot for the next run')
@click.option('--path', '-p', 'source', type=click.Path(path_type=Path), help='Custom source path')
def diff(save: bool, source: Optional[Path]) -> None:
    """Show source changes since the last snapshot and per-target drift."""
    from skillsync.core.config import get_source_path
    from skillsync.core.diff import (
        create_snapshot,
        diff_snapshots,
        get_target_diffs,
        load_snapshot,
        save_snapshot,
    )

    config = _load_config_or_none()
    source_path = source or get_source_path(config)

    current = create_snapshot(source_path)
    changes = diff_snapshots(load_snapshot(), current)

    click.echo(click.style(f"Source: {source_path}", fg="magenta", bold=True))
    for label, ids, color in (
        ("added", changes.added, "green"),
        ("modified", changes.modified, "yellow"),
        ("removed", changes.removed, "red"),
    ):
        for skill_id in ids:
            click.echo(click.style(f"  {label:<9}", fg=color) + skill_id)
    click.echo(f"  {len(changes.unchanged)} unchanged")

    for target_diff in get_target_diffs(source_path, _active_targets(config)):
        result = target_diff.diff
        click.echo()
        click.echo(click.style(f"{target_diff.target}:", fg="cyan"))
        click.echo(
            f"  {len(result.added)} to link, {len(result.modified)} diverged, "
            f"{len(result.removed)} orphaned, {len(result.unchanged)} in sync"
        )
        for skill_id in result.modified:
            click.echo(click.style("  ! ", fg="yellow") + skill_id)

    if save:
        path = save_snapshot(current)
        click.echo()
        click.echo(click.style("✓ ", fg="green") + f"Saved snapshot to {path}")


@cli.command()
def backup() -> None:
    """Back up every active target."""
    from skillsync.core.syncer import backup_target, get_backup_dir

    sync_targets = _active_targets(_load_config_or_none())
    if not sync_targets:
        click.echo("No targets to back up")
        return

    backup_dir = get_backup_dir()
    for target in sync_targets:
        result = backup_target(target, backup_dir)
        if result is None:
            click.echo(f"  ○ {target.name} (not found)")
        else:
            click.echo(click.style("  ✓ ", fg="green") + f"{target.name}: {result.count} skill(s) → {result.path}")


@cli.command()
def backups() -> None:
    """List available backups, newest first."""
    from skillsync.core.syncer import list_backups

    entries = list_backups()
    if not entries:
        click.echo("No backups found")
        return

    for entry in entries:
        click.echo(f"  {entry.timestamp}  {', '.join(entry.targets) or '(empty)'}")


@cli.command()
@click.argument('backup_id', required=False)
@click.option('--target', 'target_name', help='Restore only this target')
def restore(backup_id: Optional[str], target_name: Optional[str]) -> None:
    """Restore targets from a backup (default: the newest)."""
    from skillsync.core.config import get_backup_base_dir
    from skillsync.core.syncer import list_backups, restore_backup

    if backup_id:
        candidate = Path(backup_id)
        backup_path = candidate if candidate.is_absolute() else get_backup_base_dir() / backup_id
    else:
        entries = list_backups()
        if not entries:
            _error("No backups found")
            raise click.Abort()
        backup_path = entries[0].path

    config = _load_config_or_none()
    known = _active_targets(config) if config and config.targets else None
    result = restore_backup(backup_path, target_name=target_name, targets=known)

    for name in result.restored:
        click.echo(click.style("  ✓ ", fg="green") + f"Restored {name}")
    for err in result.errors:
        click.echo(click.style("  ✗ ", fg="red") + err)

    if not result.success or result.errors:
        raise click.Abort()


@cli.command()
@click.argument('target_name')
@click.option('--force', is_flag=True, help='Overwrite skills that already exist in the source')
def pull(target_name: str, force: bool) -> None:
    """Copy skills added directly to a target back into the source."""
    from skillsync.core.config import get_source_path, get_targets
    from skillsync.core.syncer import pull_from_target

    config = _load_config_or_none()
    candidates = _active_targets(config) + get_targets()
    target = next((t for t in candidates if t.name == target_name), None)
    if target is None:
        _error(f"Unknown target: {target_name}")
        raise click.Abort()

    result = pull_from_target(target, get_source_path(config), force=force)

    for name in result.pulled:
        click.echo(click.style("  ✓ ", fg="green") + f"Pulled {name}")
    if result.skipped:
        click.echo(f"  Skipped {len(result.skipped)}: {', '.join(result.skipped)}")
    for err in result.errors:
        click.echo(click.style("  ✗ ", fg="red") + err)

    if result.errors:
        raise click.Abort()


@cli.command()
@click.argument('source')
@click.option('--repo', is_flag=True, help='Fetch every skill in the repository')
@click.option('--force', is_flag=True, help='Overwrite an existing skill')
def add(source: str, repo: bool, force: bool) -> None:
    """Fetch a skill from GitHub into the source directory.

    SOURCE is a GitHub reference:

    \b
      owner/repo
      https://github.com/owner/repo/tree/main/skills/my-skill
    """
    from skillsync.core.config import get_source_path
    from skillsync.core.remote import GitHubFetcher, parse_github_url

    remote = parse_github_url(source)
    if remote is None:
        _error(f"Invalid GitHub URL: {source}")
        raise click.Abort()

    dest = get_source_path(_load_config_or_none())
    fetcher = GitHubFetcher(token=os.environ.get("GITHUB_TOKEN"))

    click.echo(f"Fetching from {remote.url}...")
    results = fetcher.fetch_repo(source, dest) if repo else [fetcher.fetch_skill(remote, dest, force=force)]

    failed = 0
    for result in results:
        if result.success:
            click.echo(click.style(f"✓ {result.skill_id}", fg="green") + f" → {result.path}")
        else:
            failed += 1
            click.echo(click.style(f"✗ {result.skill_id}", fg="red") + f" - {result.error}")

    if failed and failed == len(results):
        raise click.Abort()


if __name__ == "__main__":
    cli()
