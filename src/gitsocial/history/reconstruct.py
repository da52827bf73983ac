"""Replay raw commits into an ordered log of typed entries.

Every commit is an implicit post unless a reserved pointer or an action
header says otherwise. Commits on list pointers are snapshots of the whole
list; they are diffed against the previous snapshot to synthesize
follow/unfollow entries that never existed as commits of their own.
"""

from collections.abc import Callable, Collection, Iterable
from enum import StrEnum

from gitsocial.history.details import (
    follow_details,
    format_details,
    list_updated_details,
    unfollow_details,
)
from gitsocial.logging import get_logger
from gitsocial.models import (
    POST_ENTRY_TYPES,
    Author,
    EntryType,
    LogEntry,
    RawCommit,
    RawPayload,
)
from gitsocial.protocol import address, codec
from gitsocial.protocol.lists import ListState, decode_list_state, diff_repositories

logger = get_logger("reconstruct")

REF_NAMESPACE = "refs/gitmsg/"
LISTS_PREFIX = "social/lists/"
CONFIG_REF = "social/config"

SHORT_HASH_LENGTH = 12

# Finds the snapshot preceding a commit on a list pointer
PreviousCommitLookup = Callable[[RawCommit, str], RawCommit | None]


class Classification(StrEnum):
    """What a single commit represents before entries are built."""

    POST = "post"
    COMMENT = "comment"
    REPOST = "repost"
    QUOTE = "quote"
    CONFIG = "config"
    METADATA = "metadata"
    LIST_STATE_CHANGE = "list-state-change"


def build_ref_map(commits: Iterable[RawCommit]) -> dict[str, str]:
    """Map commit hash to reserved pointer name (relative to refs/gitmsg/)."""
    ref_map: dict[str, str] = {}
    for commit in commits:
        if commit.refname and commit.refname.startswith(REF_NAMESPACE):
            ref_map[commit.hash] = commit.refname[len(REF_NAMESPACE):]
    return ref_map


def classify_commit(
    commit: RawCommit,
    ref_map: dict[str, str],
    message: codec.ActionMessage | None = None,
) -> Classification:
    """Classify a commit by its pointer, then by its action header."""
    ref = ref_map.get(commit.hash)
    if ref is not None:
        if ref.startswith(LISTS_PREFIX):
            return Classification.LIST_STATE_CHANGE
        if ref == CONFIG_REF:
            return Classification.CONFIG
        return Classification.METADATA

    if message is None:
        message = codec.decode(commit.message)
    return Classification(codec.get_post_type(message))


def base_repository(repository: str) -> str | None:
    """Remote repository URL without branch or list fragment.

    Local paths and other non-URL locators yield None, so their posts get
    repository-relative addresses.
    """
    base = address.extract_base_repository(repository)
    if not base or not address.is_valid_url(base):
        return None
    return address.normalize_url(base)


def _entry(
    commit: RawCommit,
    entry_type: EntryType,
    details: str,
    repository: str,
    message: codec.ActionMessage | None = None,
    post_id: str | None = None,
) -> LogEntry:
    return LogEntry(
        hash=commit.hash[:SHORT_HASH_LENGTH],
        timestamp=commit.timestamp,
        author=Author(name=commit.author, email=commit.email),
        type=entry_type,
        details=details,
        repository=repository,
        raw=RawPayload(commit=commit, message=message),
        post_id=post_id,
    )


def in_batch_lookup(commits: list[RawCommit]) -> PreviousCommitLookup:
    """Previous snapshot taken from the commit list itself.

    Uses the next older commit reached through the same pointer with a
    different hash. Commits are assumed newest first.
    """
    positions = {commit.hash: index for index, commit in enumerate(commits)}

    def lookup(commit: RawCommit, ref: str) -> RawCommit | None:
        start = positions.get(commit.hash)
        if start is None:
            return None
        for candidate in commits[start + 1:]:
            if candidate.hash == commit.hash:
                continue
            if candidate.refname and candidate.refname[len(REF_NAMESPACE):] == ref:
                return candidate
        return None

    return lookup


def synthesize_list_entries(
    commit: RawCommit,
    ref: str,
    repository: str,
    previous_commit: PreviousCommitLookup,
) -> list[LogEntry]:
    """Turn a list snapshot commit into follow/unfollow entries.

    Never raises: any failure is replaced by a single "updated list" entry.
    """
    list_name = ref[len(LISTS_PREFIX):] if ref.startswith(LISTS_PREFIX) else ref
    try:
        current = decode_list_state(commit.message)
        previous_commit_found = previous_commit(commit, ref)
        previous = decode_list_state(previous_commit_found.message) if previous_commit_found else ListState()

        added, removed = diff_repositories(previous, current)

        entries = [
            _entry(commit, EntryType.REPOSITORY_FOLLOW, follow_details(repo, list_name), repository)
            for repo in added
        ]
        entries.extend(
            _entry(commit, EntryType.REPOSITORY_UNFOLLOW, unfollow_details(repo, list_name), repository)
            for repo in removed
        )
        if entries:
            return entries
    except Exception:
        logger.warning(
            "Failed to diff list snapshot: list=%s commit=%s", list_name, commit.hash[:SHORT_HASH_LENGTH],
            exc_info=True,
        )

    return [_entry(commit, EntryType.LIST_CREATE, list_updated_details(list_name), repository)]


def _commit_entries(
    commit: RawCommit,
    ref_map: dict[str, str],
    repository: str,
    post_base: str | None,
    previous_commit: PreviousCommitLookup,
) -> list[LogEntry]:
    message = codec.decode(commit.message)
    classification = classify_commit(commit, ref_map, message)

    if classification == Classification.LIST_STATE_CHANGE:
        return synthesize_list_entries(commit, ref_map[commit.hash], repository, previous_commit)

    entry_type = EntryType(classification.value)
    post_id = None
    if entry_type in POST_ENTRY_TYPES:
        post_id = address.create(address.AddressKind.COMMIT, commit.hash, post_base)

    return [
        _entry(
            commit,
            entry_type,
            format_details(entry_type, message, commit),
            repository,
            message=message,
            post_id=post_id,
        )
    ]


def reconstruct(
    commits: Iterable[RawCommit],
    repository: str,
    previous_commit: PreviousCommitLookup | None = None,
    types: Collection[EntryType | str] | None = None,
) -> list[LogEntry]:
    """Reconstruct the log for a list of commits.

    Args:
        commits: Raw commits, newest first
        repository: Repository locator the commits belong to. Remote URLs
            qualify post ids; other locators give relative ids
        previous_commit: Lookup for the prior snapshot on a list pointer
            (defaults to searching the commit list itself)
        types: Optional allow-list of entry types; unknown names match nothing

    Returns:
        Entries sorted newest first; ties keep discovery order
    """
    commits = list(commits)
    ref_map = build_ref_map(commits)
    post_base = base_repository(repository)
    if previous_commit is None:
        previous_commit = in_batch_lookup(commits)

    entries: list[LogEntry] = []
    for commit in commits:
        try:
            entries.extend(_commit_entries(commit, ref_map, repository, post_base, previous_commit))
        except Exception:
            logger.warning("Skipping commit: hash=%s", commit.hash[:SHORT_HASH_LENGTH], exc_info=True)

    entries.sort(key=lambda entry: entry.timestamp, reverse=True)

    if types is not None:
        allowed = {str(t) for t in types}
        entries = [entry for entry in entries if entry.type in allowed]

    return entries
