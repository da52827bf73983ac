"""Canonical data models."""

import hashlib
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any, Generic, TypeVar

from gitsocial.protocol.codec import ActionMessage

T = TypeVar("T")


class EntryType(StrEnum):
    """Closed set of log entry types."""

    POST = "post"
    COMMENT = "comment"
    REPOST = "repost"
    QUOTE = "quote"
    LIST_CREATE = "list-create"
    LIST_DELETE = "list-delete"
    CONFIG = "config"
    METADATA = "metadata"
    REPOSITORY_FOLLOW = "repository-follow"
    REPOSITORY_UNFOLLOW = "repository-unfollow"


class PostType(StrEnum):
    POST = "post"
    COMMENT = "comment"
    REPOST = "repost"
    QUOTE = "quote"


# Entry types that address a post and therefore carry a post_id
POST_ENTRY_TYPES = frozenset({EntryType.POST, EntryType.COMMENT, EntryType.REPOST, EntryType.QUOTE})


@dataclass(frozen=True)
class RawCommit:
    """A commit as reported by the version-control layer."""

    hash: str  # Full hex hash
    author: str
    email: str
    timestamp: datetime  # Committer date
    message: str  # Raw commit message, untouched
    refname: str | None = None  # Pointer the commit was reached through (e.g. refs/gitmsg/social/config)


@dataclass(frozen=True)
class Author:
    name: str
    email: str


@dataclass(frozen=True)
class RawPayload:
    """Source material a log entry was built from."""

    commit: RawCommit
    message: ActionMessage | None = None


@dataclass(frozen=True)
class LogEntry:
    """One reconstructed record in the repository audit log."""

    hash: str  # 12-character prefix of the source commit hash
    timestamp: datetime
    author: Author
    type: EntryType
    details: str
    repository: str
    raw: RawPayload
    post_id: str | None = None  # Only for post/comment/repost/quote

    @property
    def details_hash(self) -> str:
        """SHA256 hash of details, separating entries synthesized from one commit."""
        return hashlib.sha256(self.details.encode()).hexdigest()[:16]

    @property
    def id(self) -> str:
        """Stable unique ID for this entry."""
        return f"{self.repository}:{self.hash}:{self.type}:{self.details_hash}"

    def to_typesense_doc(self) -> dict:
        """Convert to Typesense document format."""
        return {
            "id": self.id,
            "hash": self.hash,
            "ts": int(self.timestamp.timestamp()),
            "author_name": self.author.name,
            "author_email": self.author.email,
            "type": str(self.type),
            "details": self.details,
            "repository": self.repository,
            "post_id": self.post_id or "",
        }


@dataclass(frozen=True)
class Interactions:
    comments: int = 0
    reposts: int = 0
    quotes: int = 0


@dataclass(frozen=True)
class Post:
    """A post as consumed by thread reconstruction."""

    id: str  # Address, e.g. "https://github.com/user/repo#commit:abc123456789" or "#commit:abc123456789"
    repository: str  # Repository locator (url#branch:name)
    author: Author
    timestamp: datetime
    content: str
    type: PostType = PostType.POST
    original_post_id: str | None = None  # Post this one replies to, reposts or quotes
    parent_comment_id: str | None = None  # Immediate parent comment in nested threads
    interactions: Interactions = field(default_factory=Interactions)
    is_virtual: bool = False  # Built from a reference rather than a fetched commit


@dataclass(frozen=True)
class ThreadContext:
    """A post together with its ancestors and its sorted reply tree."""

    anchor_post: Post
    parent_posts: list[Post]  # Ancestors, topmost first
    child_posts: list[Post]  # Pre-order flattened reply tree
    thread_root_id: str
    has_more_parents: bool = False
    has_more_children: bool = False


@dataclass(frozen=True)
class ThreadItem:
    """A renderable row of a thread."""

    type: str  # post, anchor
    key: str
    depth: int  # <0 for parents, 0 for anchor, >0 for replies
    data: Post | None = None
    has_children: bool = False


@dataclass(frozen=True)
class ErrorInfo:
    code: str
    message: str
    details: Any = None


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of an operation that reports failures as values."""

    success: bool
    data: T | None = None
    error: ErrorInfo | None = None

    @classmethod
    def ok(cls, data: T) -> "Result[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, code: str, message: str, details: Any = None) -> "Result[T]":
        return cls(success=False, error=ErrorInfo(code=code, message=message, details=details))
