"""List snapshot encoding.

Each list lives on its own pointer (refs/gitmsg/social/lists/<id>) whose
commit message is a JSON document describing the full list state:

    {"version": "0.1.0", "id": "reading", "name": "Reading", "repositories": [...]}
"""

import json
from dataclasses import dataclass

from gitsocial.logging import get_logger
from gitsocial.protocol.codec import PROTOCOL_VERSION

logger = get_logger("lists")


@dataclass(frozen=True)
class ListState:
    """Snapshot of a list at one commit."""

    name: str | None = None
    id: str | None = None
    version: str | None = None
    repositories: tuple[str, ...] = ()


def decode_list_state(text: str | None) -> ListState:
    """Decode a list snapshot from commit text.

    Invalid documents decode to an empty state. Repository order is kept
    and duplicates are dropped.
    """
    try:
        data = json.loads(text or "")
    except (json.JSONDecodeError, TypeError):
        logger.debug("Commit text is not a list snapshot")
        return ListState()

    if not isinstance(data, dict):
        return ListState()

    repositories = data.get("repositories")
    if not isinstance(repositories, list):
        repositories = []

    name = data.get("name")
    list_id = data.get("id")
    version = data.get("version")
    return ListState(
        name=name if isinstance(name, str) else None,
        id=list_id if isinstance(list_id, str) else None,
        version=version if isinstance(version, str) else None,
        repositories=tuple(dict.fromkeys(r for r in repositories if isinstance(r, str))),
    )


def encode_list_state(state: ListState) -> str:
    """Encode a list snapshot as the JSON document stored on its pointer."""
    document = {
        "version": state.version or PROTOCOL_VERSION,
        "id": state.id,
        "name": state.name,
        "repositories": list(state.repositories),
    }
    return json.dumps({k: v for k, v in document.items() if v is not None}, indent=2)


def diff_repositories(previous: ListState, current: ListState) -> tuple[list[str], list[str]]:
    """Repositories added and removed between two snapshots, in list order."""
    previous_set = set(previous.repositories)
    current_set = set(current.repositories)
    added = [repo for repo in current.repositories if repo not in previous_set]
    removed = [repo for repo in previous.repositories if repo not in current_set]
    return added, removed
