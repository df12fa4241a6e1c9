"""Fetch skills from GitHub repositories into the source directory."""
import hashlib
import logging
import re
import shutil
import tarfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional
from urllib.parse import urlparse

import requests

from skillsync import __version__
from skillsync.core.scanner import SKILL_MD, SKILL_YAML

logger = logging.getLogger(__name__)

_SHORTHAND = re.compile(r'^[\w-]+/[\w-]+$', re.ASCII)


@dataclass
class RemoteSkill:
    """A skill (or repository of skills) on GitHub."""

    url: str
    name: str
    owner: str
    repo: str
    ref: Optional[str] = None
    path: Optional[str] = None


@dataclass
class FetchResult:
    """Result of fetching one skill."""

    success: bool
    skill_id: str
    path: Optional[Path] = None
    error: Optional[str] = None


def parse_github_url(text: str) -> Optional[RemoteSkill]:
    """
    Parse a GitHub repository or sub-folder reference.

    Supports:
    - owner/repo
    - github.com/owner/repo
    - https://github.com/owner/repo
    - https://github.com/owner/repo/tree/<ref>/path/to/skill

    Args:
        text: User input

    Returns:
        RemoteSkill, or None if the input is not a GitHub reference
    """
    url = text.strip()
    if _SHORTHAND.match(url):
        url = f"https://github.com/{url}"
    if url.startswith("github.com"):
        url = f"https://{url}"

    parsed = urlparse(url)
    if not parsed.hostname or "github.com" not in parsed.hostname:
        return None

    parts = [p for p in parsed.path.split("/") if p]
    if len(parts) < 2:
        return None

    owner, repo = parts[0], parts[1]
    if repo.endswith(".git"):
        repo = repo[:-4]

    ref = None
    sub_path = None
    if len(parts) > 3 and parts[2] == "tree":
        ref = parts[3]
        if len(parts) > 4:
            sub_path = "/".join(parts[4:])

    return RemoteSkill(
        url=f"https://github.com/{owner}/{repo}",
        name=sub_path.rsplit("/", 1)[-1] if sub_path else repo,
        owner=owner,
        repo=repo,
        ref=ref,
        path=sub_path,
    )


def _is_skill_dir(path: Path) -> bool:
    return (path / SKILL_YAML).exists() or (path / SKILL_MD).exists()


class GitHubFetcher:
    """Download GitHub tarballs and copy skills out of them."""

    API_BASE = "https://api.github.com"

    def __init__(
        self,
        token: Optional[str] = None,
        cache_dir: Optional[Path] = None
    ):
        """
        Initialize GitHub fetcher.

        Args:
            token: GitHub API token for authentication
            cache_dir: Directory for caching extracted tarballs
        """
        self.token = token
        self.cache_dir = cache_dir or Path.home() / ".cache" / "skillsync" / "github"

    def _get_headers(self) -> dict:
        """Get headers for GitHub API requests."""
        headers = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": f"skillsync/{__version__}"
        }
        if self.token:
            headers["Authorization"] = f"token {self.token}"
        return headers

    def resolve_ref(self, remote: RemoteSkill) -> str:
        """
        The ref named in the URL, else the repository's default branch.

        Raises:
            FileNotFoundError: If the repository does not exist
            PermissionError: If the token is rejected or the API rate limit is hit
            ConnectionError: On network failure or any other API error
        """
        if remote.ref:
            return remote.ref

        url = f"{self.API_BASE}/repos/{remote.owner}/{remote.repo}"
        try:
            response = requests.get(url, headers=self._get_headers(), timeout=30)
        except requests.exceptions.RequestException as e:
            raise ConnectionError(f"Failed to connect to GitHub API: {e}")

        if response.status_code == 404:
            raise FileNotFoundError(f"Repository not found: {remote.owner}/{remote.repo}")
        if response.status_code in (401, 403):
            message = response.json().get("message", "") if response.content else ""
            if "rate limit" in message.lower():
                raise PermissionError(f"GitHub API rate limit exceeded: {message}")
            raise PermissionError(f"GitHub access denied for {remote.owner}/{remote.repo}: {message}")
        if response.status_code != 200:
            raise ConnectionError(f"GitHub API error: {response.status_code}")

        return response.json()["default_branch"]

    def download(self, remote: RemoteSkill) -> Path:
        """
        Download and extract a repository tarball.

        Args:
            remote: Repository to download

        Returns:
            Path to the extracted repository root

        Raises:
            ConnectionError: If download fails
            ValueError: If tarball is invalid
        """
        ref = self.resolve_ref(remote)
        download_url = f"{self.API_BASE}/repos/{remote.owner}/{remote.repo}/tarball/{ref}"

        self.cache_dir.mkdir(parents=True, exist_ok=True)
        url_hash = hashlib.sha256(download_url.encode()).hexdigest()[:16]
        extract_dir = self.cache_dir / f"{url_hash}_{ref.replace('/', '-')}"

        if extract_dir.exists():
            return self._get_repo_root(extract_dir)

        try:
            response = requests.get(
                download_url,
                headers=self._get_headers(),
                stream=True,
                timeout=60
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise ConnectionError(f"Failed to download from GitHub: {e}")

        extract_dir.mkdir(parents=True, exist_ok=True)
        try:
            with tarfile.open(fileobj=response.raw, mode="r|gz") as tar:
                tar.extractall(path=extract_dir, filter="data")
        except tarfile.TarError as e:
            shutil.rmtree(extract_dir, ignore_errors=True)
            raise ValueError(f"Failed to extract tarball: {e}")

        return self._get_repo_root(extract_dir)

    def _get_repo_root(self, extract_dir: Path) -> Path:
        """GitHub tarballs wrap everything in one "owner-repo-sha/" directory."""
        contents = list(extract_dir.iterdir())
        if len(contents) == 1 and contents[0].is_dir():
            return contents[0]
        return extract_dir

    def fetch_skill(self, remote: RemoteSkill, dest: Path, force: bool = False) -> FetchResult:
        """
        Copy a single remote skill into dest/<name>.

        Args:
            remote: Skill reference (repository root or tree sub-path)
            dest: Source directory to copy into
            force: Replace an existing skill with the same name

        Returns:
            FetchResult with the installed path or an error
        """
        skill_dir = dest / remote.name

        if skill_dir.exists() and not force:
            return FetchResult(
                success=False,
                skill_id=remote.name,
                path=skill_dir,
                error="Skill already exists. Use --force to overwrite."
            )

        try:
            root = self.download(remote)
            source_in_repo = root / remote.path if remote.path else root

            if not source_in_repo.exists():
                raise FileNotFoundError(f"Path not found in repo: {remote.path}")
            if not _is_skill_dir(source_in_repo):
                raise ValueError(f"No {SKILL_YAML} or {SKILL_MD} found. Is this a valid skill?")

            if skill_dir.exists():
                shutil.rmtree(skill_dir)
            dest.mkdir(parents=True, exist_ok=True)
            shutil.copytree(source_in_repo, skill_dir, ignore=shutil.ignore_patterns(".git"))

            return FetchResult(success=True, skill_id=remote.name, path=skill_dir)

        except (OSError, ValueError, shutil.Error) as e:
            return FetchResult(
                success=False,
                skill_id=remote.name,
                path=skill_dir,
                error=str(e)
            )

    def fetch_repo(self, url: str, dest: Path) -> List[FetchResult]:
        """
        Copy every skill (directory holding skill.yaml) from a repository.

        Args:
            url: GitHub repository reference
            dest: Source directory to copy into

        Returns:
            One FetchResult per skill found; existing skills are not replaced
        """
        remote = parse_github_url(url)
        if remote is None:
            return [FetchResult(success=False, skill_id="unknown", error="Invalid GitHub URL")]

        try:
            root = self.download(remote)
        except (OSError, ValueError) as e:
            return [FetchResult(success=False, skill_id=remote.repo, error=str(e))]

        search_root = root / remote.path if remote.path else root
        results: List[FetchResult] = []

        for skill_yaml in sorted(search_root.rglob(SKILL_YAML)):
            skill_source = skill_yaml.parent
            skill_id = skill_source.name
            skill_dir = dest / skill_id

            if skill_dir.exists():
                results.append(FetchResult(
                    success=False, skill_id=skill_id, path=skill_dir, error="Already exists"
                ))
                continue

            try:
                dest.mkdir(parents=True, exist_ok=True)
                shutil.copytree(skill_source, skill_dir, ignore=shutil.ignore_patterns(".git"))
                results.append(FetchResult(success=True, skill_id=skill_id, path=skill_dir))
            except (OSError, shutil.Error) as e:
                logger.debug("Failed to copy %s: %s", skill_source, e)
                results.append(FetchResult(
                    success=False, skill_id=skill_id, path=skill_dir, error=str(e)
                ))

        return results
