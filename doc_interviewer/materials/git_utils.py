"""Shallow-clone git materials with dulwich porcelain."""

import hashlib
import logging
from pathlib import Path

from dulwich import porcelain

logger = logging.getLogger(__name__)

_GIT_URL_PREFIXES: tuple[str, ...] = ("http://", "https://", "git://", "ssh://", "git@")


def is_git_url(location: str) -> bool:
    text = location.strip()
    return text.startswith(_GIT_URL_PREFIXES) or text.endswith(".git")


def _parse_repo_url(repo_url: str) -> tuple[str, str | None]:
    """
    Split an optional branch off the URL (url:branch).
    The branch is the segment after the last colon if it contains no slash.
    """
    parts = repo_url.rsplit(":", 1)
    if len(parts) == 2 and parts[1] and "/" not in parts[1] and not parts[1].isdigit():
        return parts[0], parts[1]
    return repo_url, None


def _repo_slug(repo_url: str) -> str:
    """Filesystem-safe slug from a repo URL (owner-repo or repo)."""
    url = repo_url.rstrip("/").removesuffix(".git")
    parts = url.replace(":", "/").rstrip("/").split("/")
    if len(parts) >= 2:
        return f"{parts[-2]}-{parts[-1]}"
    return parts[-1] if parts else "repo"


def clone_target_name(repo_url: str) -> str:
    """Slug plus a short hash of the full URL, so branches clone side by side."""
    digest = hashlib.sha1(repo_url.strip().encode("utf-8")).hexdigest()[:10]
    url_only, _branch = _parse_repo_url(repo_url.strip())
    return f"{_repo_slug(url_only)}-{digest}"


def clone_repo(
    repo_url: str,
    data_dir: Path | str,
    *,
    depth: int = 1,
    target_name: str | None = None,
) -> Path:
    """
    Clone a git repository into data_dir/repos/<target_name>.

    An existing clone is reused as is. Optional branch may be appended with a
    colon, e.g. https://github.com/acme/billing:release.
    """
    url_only, branch = _parse_repo_url(repo_url.strip())
    repos_dir = Path(data_dir) / "repos"
    repos_dir.mkdir(parents=True, exist_ok=True)

    target = repos_dir / (target_name or clone_target_name(repo_url))
    if target.exists():
        logger.info("Reusing existing clone at %s", target)
        return target

    clone_kwargs: dict[str, int | str] = {"depth": depth}
    if branch is not None:
        clone_kwargs["branch"] = branch

    logger.info("Cloning %s into %s", url_only, target)
    porcelain.clone(url_only, str(target), **clone_kwargs)
    return target
