"""Address scheme for posts, branches and lists.

Addresses take the form ``<repository>#<kind>:<value>``:

    https://github.com/user/repo#commit:abc123456789
    https://github.com/user/repo#branch:main
    #list:reading

An address without a repository part is relative to the current repository.
"""

import re
from dataclasses import dataclass
from enum import StrEnum
from urllib.parse import urlsplit

FRAGMENT_SEPARATOR = "#"
DEFAULT_BRANCH = "main"

# Commit values are normalized to this many hex characters
COMMIT_HASH_LENGTH = 12


class AddressKind(StrEnum):
    COMMIT = "commit"
    BRANCH = "branch"
    LIST = "list"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ParsedAddress:
    kind: AddressKind
    value: str
    repository: str | None = None


@dataclass(frozen=True)
class RepositoryId:
    repository: str
    branch: str


_VALUE_PATTERNS = {
    AddressKind.COMMIT: re.compile(r"#commit:([^#\s]+)$"),
    AddressKind.BRANCH: re.compile(r"#branch:([^#\s]+)$"),
    AddressKind.LIST: re.compile(r"#list:([^#\s]+)$"),
}

_SSH_URL_RE = re.compile(r"^git@([^:]+):")
_SCHEME_HOST_RE = re.compile(r"^(\w+://)([^/]+)(.*)$")


def normalize_url(url: str) -> str:
    """Normalize a repository URL to canonical form.

    SSH remotes become https, the .git suffix is dropped and the scheme
    and host are lower-cased. Paths keep their case.
    """
    if not url:
        return url

    normalized = url.strip()
    normalized = _SSH_URL_RE.sub(r"https://\1/", normalized)
    if normalized.endswith(".git"):
        normalized = normalized[:-4]

    match = _SCHEME_HOST_RE.match(normalized)
    if match:
        normalized = match.group(1).lower() + match.group(2).lower() + match.group(3)

    return normalized


def is_valid_url(url: str) -> bool:
    """Check whether a string looks like a remote git URL (https or ssh)."""
    if not url or not isinstance(url, str):
        return False
    trimmed = url.strip()

    if trimmed.startswith("git@"):
        return re.match(r"^git@[^:]+:[^/]+/[^/]+", trimmed) is not None

    if trimmed.startswith("https://"):
        parts = urlsplit(trimmed)
        return bool(parts.netloc) and len(parts.path.split("/")) >= 3

    return False


def _normalize_value(kind: AddressKind, value: str) -> str:
    if kind == AddressKind.COMMIT:
        return value.lower()[:COMMIT_HASH_LENGTH]
    return value


def parse(address: str | None) -> ParsedAddress:
    """Split an address into kind, value and repository.

    Unrecognized or missing fragments yield the ``unknown`` kind with the
    input as value.
    """
    if not address:
        return ParsedAddress(kind=AddressKind.UNKNOWN, value="")

    for kind, pattern in _VALUE_PATTERNS.items():
        if f"#{kind}:" not in address:
            continue
        base = address.split(FRAGMENT_SEPARATOR, 1)[0]
        match = pattern.search(address)
        value = _normalize_value(kind, match.group(1)) if match else ""
        return ParsedAddress(
            kind=kind,
            value=value,
            repository=normalize_url(base) if base else None,
        )

    return ParsedAddress(kind=AddressKind.UNKNOWN, value=address)


def create(kind: AddressKind | str, value: str, repository: str | None = None) -> str:
    """Build an address; without a repository the address is relative."""
    kind = AddressKind(kind)
    normalized = _normalize_value(kind, value)
    if repository:
        return f"{repository}#{kind}:{normalized}"
    return f"#{kind}:{normalized}"


def parse_repository_id(identifier: str | None) -> RepositoryId | None:
    """Extract the base repository and branch from a decorated identifier.

    ``url#branch:name`` yields that branch; a plain locator defaults to
    ``main``. Returns None when the identifier cannot be interpreted as a
    repository.
    """
    if not identifier or not identifier.strip():
        return None

    if FRAGMENT_SEPARATOR not in identifier:
        return RepositoryId(repository=normalize_url(identifier), branch=DEFAULT_BRANCH)

    base, fragment = identifier.split(FRAGMENT_SEPARATOR, 1)
    if not fragment.startswith("branch:"):
        return None

    branch = fragment[len("branch:"):]
    if not base.strip() or not branch:
        return None

    return RepositoryId(repository=normalize_url(base), branch=branch)


def extract_base_repository(identifier: str | None) -> str | None:
    """Strip the fragment from an identifier, leaving the repository locator."""
    if not identifier:
        return None
    return identifier.split(FRAGMENT_SEPARATOR, 1)[0]


def is_my_repository(address: str) -> bool:
    """True for addresses relative to the current repository."""
    return address.startswith(FRAGMENT_SEPARATOR)
