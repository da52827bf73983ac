"""Git repository utilities.

Thin wrappers around the git CLI. Failures are logged and reported as
empty results rather than raised.
"""

import json
import subprocess
from datetime import datetime
from pathlib import Path

from gitsocial.logging import get_logger
from gitsocial.models import RawCommit

logger = get_logger("git_utils")

# ASCII separators keep commit bodies intact when splitting log output
RECORD_SEP = "\x1e"
UNIT_SEP = "\x1f"

LOG_FORMAT = "%x1e%H%x1f%cI%x1f%an%x1f%ae%x1f%B%x1f%S"

DEFAULT_LIMIT = 10000
CONFIG_REF = "refs/gitmsg/social/config"


def run_git(workdir: str | Path, args: list[str]) -> subprocess.CompletedProcess | None:
    """Run a git command in workdir.

    Returns:
        The completed process, or None if git could not be started
    """
    try:
        return subprocess.run(
            ["git", "-C", str(workdir), *args],
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False,
        )
    except OSError as e:
        logger.debug("Failed to run git %s in %s: %s", args[0] if args else "", workdir, e)
        return None


def is_git_repository(workdir: str | Path) -> bool:
    """Check whether workdir is inside a git repository."""
    if not Path(workdir).exists():
        return False
    result = run_git(workdir, ["rev-parse", "--git-dir"])
    return result is not None and result.returncode == 0


def parse_log_output(output: str) -> list[RawCommit]:
    """Parse output produced with LOG_FORMAT into commits.

    Records with missing fields or unparseable dates are skipped.
    """
    commits: list[RawCommit] = []
    for record in output.split(RECORD_SEP):
        if not record.strip():
            continue

        parts = record.split(UNIT_SEP)
        if len(parts) < 6:
            continue

        hash_, date, author, email, message, refname = parts[:6]
        try:
            timestamp = datetime.fromisoformat(date.strip())
        except ValueError:
            logger.debug("Skipping commit with bad date: hash=%s date=%s", hash_.strip(), date)
            continue

        commits.append(
            RawCommit(
                hash=hash_.strip(),
                author=author.strip(),
                email=email.strip(),
                timestamp=timestamp,
                message=message,
                refname=refname.strip() or None,
            )
        )
    return commits


def get_commits(
    workdir: str | Path,
    branch: str | None = None,
    all_refs: bool = False,
    include_refs: list[str] | None = None,
    since: datetime | None = None,
    until: datetime | None = None,
    limit: int | None = None,
) -> list[RawCommit]:
    """List commits, newest first.

    Args:
        workdir: Repository path
        branch: Branch, ref or commit to start from (defaults to HEAD)
        all_refs: Walk every ref except the social config pointer
        include_refs: Extra refs to walk alongside branch
        since: Only commits after this time
        until: Only commits before this time
        limit: Maximum number of commits

    Returns:
        Commits with the ref they were reached through
    """
    args = ["log"]
    if all_refs:
        args.append(f"--exclude={CONFIG_REF}")
        args.append("--all")
    else:
        args.append(branch or "HEAD")
        args.extend(include_refs or [])

    args.extend([
        f"--max-count={limit or DEFAULT_LIMIT}",
        f"--format={LOG_FORMAT}",
        "--no-merges",
    ])
    if since is not None:
        args.append(f"--since={since.isoformat()}")
    if until is not None:
        args.append(f"--until={until.isoformat()}")
    args.append("--")

    result = run_git(workdir, args)
    if result is None or result.returncode != 0:
        logger.debug(
            "git log failed: workdir=%s branch=%s stderr=%s",
            workdir,
            branch,
            result.stderr.strip() if result is not None else "",
        )
        return []

    commits = parse_log_output(result.stdout)
    logger.debug("Found commits: workdir=%s count=%d", workdir, len(commits))
    return commits


def get_previous_commit(workdir: str | Path, commit: RawCommit) -> RawCommit | None:
    """Nearest ancestor of a commit, or None for a root commit."""
    commits = get_commits(workdir, branch=commit.hash, limit=2)
    return next((c for c in commits if c.hash != commit.hash), None)


def list_refs(workdir: str | Path, namespace: str = "") -> list[str]:
    """List refs under refs/gitmsg/, relative to that prefix."""
    clean = namespace.removeprefix("refs/gitmsg/")
    pattern = f"refs/gitmsg/{clean}" if clean else "refs/gitmsg/"

    result = run_git(workdir, ["for-each-ref", "--format=%(refname)", pattern])
    if result is None or result.returncode != 0 or not result.stdout.strip():
        return []

    return [ref.removeprefix("refs/gitmsg/") for ref in result.stdout.strip().split("\n")]


def get_configured_branch(workdir: str | Path) -> str:
    """Branch holding social content.

    Resolution order: the config pointer's JSON "branch", an existing
    "gitsocial" branch, origin's default branch, then "main".
    """
    result = run_git(workdir, ["log", "-1", "--format=%B", CONFIG_REF, "--"])
    if result is not None and result.returncode == 0:
        try:
            config = json.loads(result.stdout.strip())
        except json.JSONDecodeError:
            config = None
        if isinstance(config, dict) and config.get("branch"):
            logger.debug("Using configured branch: branch=%s", config["branch"])
            return config["branch"]

    result = run_git(workdir, ["rev-parse", "--verify", "--quiet", "refs/heads/gitsocial"])
    if result is not None and result.returncode == 0:
        return "gitsocial"

    result = run_git(workdir, ["symbolic-ref", "refs/remotes/origin/HEAD"])
    if result is not None and result.returncode == 0 and result.stdout.strip():
        return result.stdout.strip().removeprefix("refs/remotes/origin/")

    return "main"
