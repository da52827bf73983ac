"""Human-readable details for log entries."""

from gitsocial.models import EntryType, RawCommit
from gitsocial.protocol.codec import ActionMessage, find_reference, first_excerpt
from gitsocial.protocol.lists import decode_list_state

NO_MESSAGE = "No message"
UNKNOWN = "unknown"

REPOSITORY_FIELD = "social:repository"
LIST_FIELD = "social:list"

_INTERACTION_PREFIXES = {
    EntryType.COMMENT: "Re",
    EntryType.REPOST: "Repost",
    EntryType.QUOTE: "Quote",
}


def first_line(text: str | None) -> str:
    if not text:
        return ""
    return text.split("\n", 1)[0]


def follow_details(repository: str, list_name: str) -> str:
    return f'Added {repository} to list "{list_name}"'


def unfollow_details(repository: str, list_name: str) -> str:
    return f'Removed {repository} from list "{list_name}"'


def list_updated_details(list_name: str) -> str:
    return f'Updated list "{list_name}"'


def format_details(entry_type: EntryType, message: ActionMessage | None, commit: RawCommit) -> str:
    """Format the details string for a classified commit."""
    primary = first_line(commit.message) or NO_MESSAGE
    fields = message.header.fields if message is not None else {}

    if entry_type == EntryType.LIST_CREATE:
        state = decode_list_state(commit.message)
        return f'Created list "{state.name or state.id or UNKNOWN}"'

    if entry_type == EntryType.LIST_DELETE:
        return "Deleted list"

    if entry_type == EntryType.REPOSITORY_FOLLOW:
        return follow_details(fields.get(REPOSITORY_FIELD) or UNKNOWN, fields.get(LIST_FIELD) or UNKNOWN)

    if entry_type == EntryType.REPOSITORY_UNFOLLOW:
        return unfollow_details(fields.get(REPOSITORY_FIELD) or UNKNOWN, fields.get(LIST_FIELD) or UNKNOWN)

    if entry_type in (EntryType.CONFIG, EntryType.METADATA):
        return (message.content if message is not None else "") or primary

    if entry_type == EntryType.POST:
        return (first_line(message.content) if message is not None else "") or primary

    if entry_type in _INTERACTION_PREFIXES:
        excerpt = first_excerpt(find_reference(message, "original"))
        return f"{_INTERACTION_PREFIXES[entry_type]}: {excerpt or 'post'}"

    raise ValueError(f"Unhandled entry type: {entry_type}")
