"""Cached clones of external repositories.

Each followed repository is cloned under <storage_base>/repositories/<name>
where <name> is a filesystem-safe form of its URL, with the remote
configured as "upstream".
"""

import re
from datetime import datetime
from pathlib import Path

from gitsocial import git_utils
from gitsocial.logging import get_logger
from gitsocial.models import RawCommit, Result
from gitsocial.protocol.address import normalize_url

logger = get_logger("storage")

WORKSPACE = "workspace"
UPSTREAM_REMOTE = "upstream"


def storage_name(ref: str) -> str:
    """Filesystem-safe directory name for a repository URL or address.

    >>> storage_name("https://github.com/facebook/react#branch:main")
    'github-com-facebook-react'
    """
    url = ref.split("#", 1)[0]
    if not url:
        return WORKSPACE

    normalized = normalize_url(url)
    without_protocol = re.sub(r"^(https?|git)://", "", normalized)
    without_protocol = re.sub(r"^git@", "", without_protocol)

    safe = re.sub(r"[:/.@\\]", "-", without_protocol)
    safe = re.sub(r"-+", "-", safe)
    return safe.strip("-")


def repository_storage_dir(storage_base: str | Path, url: str) -> Path:
    """Cache directory for a repository."""
    return Path(storage_base) / "repositories" / storage_name(url)


def get_cached_commits(
    storage_base: str | Path,
    url: str,
    branch: str | None,
    since: datetime | None = None,
    until: datetime | None = None,
    limit: int | None = None,
) -> Result[list[RawCommit]]:
    """Read commits of a cached repository's upstream branch.

    Args:
        storage_base: Base storage directory
        url: Repository URL
        branch: Upstream branch to read
        since: Only commits after this time
        until: Only commits before this time
        limit: Maximum number of commits

    Returns:
        Result with commits newest first, or a failure code
    """
    try:
        storage_dir = repository_storage_dir(storage_base, normalize_url(url))
        if not storage_dir.exists():
            return Result.fail("REPOSITORY_NOT_FOUND", "Repository not found in storage")

        if not branch:
            return Result.fail("MISSING_BRANCH", f"Branch is required for repository: {url}")

        commits = git_utils.get_commits(
            storage_dir,
            branch=f"{UPSTREAM_REMOTE}/{branch}",
            since=since,
            until=until,
            limit=limit,
        )
        logger.info("Retrieved cached commits: url=%s branch=%s count=%d", url, branch, len(commits))
        return Result.ok(commits)
    except Exception as e:
        logger.exception("Failed to read cached commits: url=%s", url)
        return Result.fail("REPOSITORY_ERROR", "Failed to get commits from repository", details=str(e))
