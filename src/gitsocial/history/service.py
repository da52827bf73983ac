"""Log retrieval for the workspace, the timeline and cached repositories."""

from collections.abc import Collection
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from gitsocial import git_utils, storage
from gitsocial.history.reconstruct import reconstruct
from gitsocial.logging import get_logger
from gitsocial.models import EntryType, LogEntry, RawCommit, Result
from gitsocial.protocol.address import parse_repository_id

logger = get_logger("log")

MY_REPOSITORY_SCOPE = "repository:my"
TIMELINE_SCOPE = "timeline"
REPOSITORY_SCOPE_PREFIX = "repository:"


@dataclass(frozen=True)
class LogFilter:
    since: datetime | None = None
    until: datetime | None = None
    limit: int | None = None
    types: Collection[EntryType | str] | None = None
    storage_base: Path | str | None = None  # Required for external repository scopes


def get_logs(
    workdir: str | Path,
    scope: str = MY_REPOSITORY_SCOPE,
    log_filter: LogFilter | None = None,
) -> Result[list[LogEntry]]:
    """Reconstruct the log for a scope.

    Args:
        workdir: Workspace repository path
        scope: "repository:my", "timeline" or "repository:<url>[#branch:<name>]"
        log_filter: Time window, limit, type allow-list and storage base

    Returns:
        Result with entries newest first, or a failure with an error code
    """
    log_filter = log_filter or LogFilter()
    try:
        logger.debug(
            "get_logs: scope=%s since=%s until=%s limit=%s",
            scope,
            log_filter.since,
            log_filter.until,
            log_filter.limit,
        )
        if scope.startswith(REPOSITORY_SCOPE_PREFIX) and scope != MY_REPOSITORY_SCOPE:
            return _external_repository_logs(scope, log_filter)
        if scope in (MY_REPOSITORY_SCOPE, TIMELINE_SCOPE):
            return _workspace_logs(workdir, scope, log_filter)
        return Result.fail("INVALID_SCOPE", f"Unknown log scope: {scope}")
    except Exception as e:
        logger.exception("Failed to get logs: scope=%s", scope)
        return Result.fail("GET_LOGS_ERROR", str(e) or "Failed to get logs")


def _external_repository_logs(scope: str, log_filter: LogFilter) -> Result[list[LogEntry]]:
    repository_id = scope[len(REPOSITORY_SCOPE_PREFIX):]
    parsed = parse_repository_id(repository_id)
    if parsed is None:
        return Result.fail("INVALID_REPOSITORY", f"Invalid repository URL in scope: {repository_id}")

    if not log_filter.storage_base:
        logger.error("No storage base provided for external repository logs")
        return Result.fail("NO_STORAGE_BASE", "Storage base not provided for external repository logs")

    storage_dir = storage.repository_storage_dir(log_filter.storage_base, parsed.repository)
    if not storage_dir.exists():
        return Result.fail("REPOSITORY_NOT_CLONED", f"Repository not cloned: {repository_id}")

    result = storage.get_cached_commits(
        log_filter.storage_base,
        parsed.repository,
        branch=parsed.branch,
        since=log_filter.since,
        until=log_filter.until,
        limit=log_filter.limit,
    )
    if not result.success or result.data is None:
        if result.error is not None:
            return Result(success=False, error=result.error)
        return Result.fail("GET_COMMITS_FAILED", "Failed to get commits from external repository")

    entries = reconstruct(
        result.data,
        repository_id,
        previous_commit=_git_lookup(storage_dir),
        types=log_filter.types,
    )
    logger.debug(
        "Reconstructed external log: repository=%s commits=%d entries=%d",
        repository_id,
        len(result.data),
        len(entries),
    )
    return Result.ok(entries)


def _workspace_logs(workdir: str | Path, scope: str, log_filter: LogFilter) -> Result[list[LogEntry]]:
    if not git_utils.is_git_repository(workdir):
        return Result.fail("NOT_A_REPOSITORY", f"Not a git repository: {workdir}")

    if scope == MY_REPOSITORY_SCOPE:
        branch = git_utils.get_configured_branch(workdir)
        refs = [f"refs/gitmsg/{ref}" for ref in git_utils.list_refs(workdir, "social")]
        commits = git_utils.get_commits(
            workdir,
            branch=branch,
            include_refs=refs,
            since=log_filter.since,
            until=log_filter.until,
            limit=log_filter.limit,
        )
    else:
        commits = git_utils.get_commits(
            workdir,
            all_refs=True,
            since=log_filter.since,
            until=log_filter.until,
            limit=log_filter.limit,
        )

    entries = reconstruct(
        commits,
        str(workdir),
        previous_commit=_git_lookup(workdir),
        types=log_filter.types,
    )
    return Result.ok(entries)


def _git_lookup(workdir: str | Path):
    def lookup(commit: RawCommit, ref: str) -> RawCommit | None:
        return git_utils.get_previous_commit(workdir, commit)

    return lookup
