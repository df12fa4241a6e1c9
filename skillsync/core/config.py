"""Configuration and well-known paths for skillsync."""
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple
import yaml

from skillsync.models.sync import SyncTarget

CONFIG_DIR_NAME = "skillsync"

# (tool name, skills directory relative to the home directory)
KNOWN_TARGETS: Sequence[Tuple[str, str]] = (
    ("claude", ".claude/skills"),
    ("cursor", ".cursor/skills"),
    ("codex", ".codex/skills"),
    ("copilot", ".github-copilot/skills"),
    ("gemini", ".gemini/skills"),
    ("opencode", ".opencode/skills"),
    ("antigravity", ".antigravity/skills"),
    ("windsurf", ".windsurf/skills"),
)


@dataclass
class TargetConfig:
    """A configured sync target."""

    name: str
    path: str
    enabled: bool = True


@dataclass
class RemoteConfig:
    """A remote skill repository."""

    name: str
    url: str
    last_sync: Optional[str] = None


@dataclass
class SyncConfig:
    """Contents of config.yaml."""

    version: str = "1.0.0"
    source: str = ""
    min_score: int = 0
    auto_backup: bool = True
    targets: List[TargetConfig] = field(default_factory=list)
    remotes: List[RemoteConfig] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if not isinstance(self.min_score, int) or not 0 <= self.min_score <= 100:
            raise ValueError("min_score must be an integer between 0 and 100")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _parse_entries(data: Any, section: str, required: Tuple[str, ...]) -> List[Dict[str, Any]]:
    """
    Validate a list-of-mappings section.

    Args:
        data: Raw section data from YAML
        section: Section name (for error messages)
        required: Keys every entry must carry

    Returns:
        List of entry dicts

    Raises:
        ValueError: If the section or an entry has the wrong shape
    """
    if data is None:
        return []
    if not isinstance(data, list):
        raise ValueError(
            f"Invalid format in '{section}' section: "
            f"expected a list, got {type(data).__name__}"
        )

    entries = []
    for entry in data:
        if not isinstance(entry, dict):
            raise ValueError(
                f"Invalid entry in '{section}': expected a dict, got {type(entry).__name__}"
            )
        missing = [key for key in required if key not in entry]
        if missing:
            raise ValueError(
                f"Invalid entry in '{section}': missing {', '.join(missing)}"
            )
        entries.append(entry)
    return entries


def get_config_dir() -> Path:
    """Directory holding config.yaml, the snapshot and backups."""
    return Path.home() / ".config" / CONFIG_DIR_NAME


def get_config_path() -> Path:
    return get_config_dir() / "config.yaml"


def get_snapshot_path() -> Path:
    return get_config_dir() / "snapshot.json"


def get_backup_base_dir() -> Path:
    return get_config_dir() / "backups"


def config_exists() -> bool:
    return get_config_path().exists()


def load_config(path: Optional[Path] = None) -> SyncConfig:
    """
    Load and parse config.yaml.

    Args:
        path: Path to config file (defaults to get_config_path())

    Returns:
        Parsed SyncConfig; keys missing from the file take defaults

    Raises:
        FileNotFoundError: If the config file doesn't exist
        yaml.YAMLError: If YAML syntax is invalid
        ValueError: If values are invalid
    """
    path = path or get_config_path()
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Invalid config file: expected a mapping, got {type(data).__name__}")

    defaults = SyncConfig()
    targets = [
        TargetConfig(name=str(t["name"]), path=str(t["path"]), enabled=bool(t.get("enabled", True)))
        for t in _parse_entries(data.get("targets"), "targets", ("name", "path"))
    ]
    remotes = [
        RemoteConfig(name=str(r["name"]), url=str(r["url"]), last_sync=r.get("last_sync"))
        for r in _parse_entries(data.get("remotes"), "remotes", ("name", "url"))
    ]

    return SyncConfig(
        version=str(data.get("version", defaults.version)),
        source=str(data.get("source") or defaults.source),
        min_score=data.get("min_score", defaults.min_score),
        auto_backup=bool(data.get("auto_backup", defaults.auto_backup)),
        targets=targets,
        remotes=remotes,
    )


def save_config(config: SyncConfig, path: Optional[Path] = None) -> Path:
    """
    Write config.yaml, creating its directory.

    Args:
        config: Configuration to save
        path: Destination (defaults to get_config_path())

    Returns:
        Path that was written
    """
    path = path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.safe_dump(
            config.to_dict(),
            f,
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )
    return path


def create_default_config(detected_targets: Sequence[SyncTarget], source: Path) -> SyncConfig:
    """Build a config enabling every detected target."""
    return SyncConfig(
        source=str(source),
        targets=[
            TargetConfig(name=t.name, path=str(t.path), enabled=True)
            for t in detected_targets
        ],
    )


def get_targets(home: Optional[Path] = None) -> List[SyncTarget]:
    """
    List every known tool's skill directory.

    Args:
        home: Home directory override (for testing)

    Returns:
        SyncTargets in registry order, with existence probed now
    """
    home = home or Path.home()
    return [SyncTarget.probe(name, home / rel) for name, rel in KNOWN_TARGETS]


def targets_from_config(config: SyncConfig) -> List[SyncTarget]:
    """Enabled targets from a config, in configured order."""
    return [
        SyncTarget.probe(t.name, Path(t.path).expanduser())
        for t in config.targets
        if t.enabled
    ]


def detect_installed_clis(home: Optional[Path] = None) -> List[SyncTarget]:
    """
    Detect which tools are installed.

    A tool counts as installed when its home directory (e.g. ~/.cursor)
    exists, even if the skills directory inside it does not yet.
    """
    home = home or Path.home()
    detected = []
    for name, rel in KNOWN_TARGETS:
        path = home / rel
        detected.append(SyncTarget(name=name, path=path, exists=path.parent.exists()))
    return detected


def detect_source_path(home: Optional[Path] = None) -> Path:
    """
    Find the canonical source directory.

    Returns the first existing of ~/.config/skillsync/skills and
    ~/.spawner/skills, falling back to the former.
    """
    home = home or Path.home()
    candidates = [
        home / ".config" / CONFIG_DIR_NAME / "skills",
        home / ".spawner" / "skills",
    ]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return candidates[0]


def get_source_path(config: Optional[SyncConfig] = None) -> Path:
    """Source directory from config, else detected."""
    if config and config.source:
        return Path(config.source).expanduser()
    return detect_source_path()
