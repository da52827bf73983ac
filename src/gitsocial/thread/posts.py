"""Posts built from reconstructed log entries."""

from collections import Counter
from collections.abc import Iterable
from dataclasses import replace

from gitsocial.logging import get_logger
from gitsocial.models import POST_ENTRY_TYPES, Interactions, LogEntry, Post, PostType
from gitsocial.protocol import address, codec

logger = get_logger("posts")

ORIGINAL_FIELD = "original"
REPLY_TO_FIELD = "reply-to"


def _qualify(ref: str | None, base: str | None) -> str | None:
    if not ref:
        return None
    if address.is_my_repository(ref) and base:
        return f"{base}{ref}"
    return ref


def post_from_entry(entry: LogEntry) -> Post | None:
    """Build a post from a post-typed log entry.

    Relative original/reply-to references are qualified with the entry's
    repository. Interactions without an original are dropped.
    """
    if entry.type not in POST_ENTRY_TYPES or not entry.post_id:
        return None

    message = entry.raw.message
    base = address.parse(entry.post_id).repository
    fields = message.header.fields if message is not None else {}

    post = Post(
        id=entry.post_id,
        repository=entry.repository,
        author=entry.author,
        timestamp=entry.timestamp,
        content=codec.extract_clean_content(entry.raw.commit.message),
        type=PostType(entry.type.value),
        original_post_id=_qualify(fields.get(ORIGINAL_FIELD), base),
        parent_comment_id=_qualify(fields.get(REPLY_TO_FIELD), base),
    )
    if post.type != PostType.POST and not post.original_post_id:
        logger.debug("Dropping %s without original: post=%s", post.type, post.id)
        return None
    return post


def with_interactions(posts: Iterable[Post]) -> list[Post]:
    """Fill in comment, repost and quote counts from the posts themselves."""
    posts = list(posts)
    comments: Counter[str] = Counter()
    reposts: Counter[str] = Counter()
    quotes: Counter[str] = Counter()

    for post in posts:
        if post.type == PostType.COMMENT:
            target = post.parent_comment_id or post.original_post_id
            comments[address.parse(target).value or target] += 1
        elif post.type == PostType.REPOST:
            reposts[address.parse(post.original_post_id).value or post.original_post_id] += 1
        elif post.type == PostType.QUOTE:
            quotes[address.parse(post.original_post_id).value or post.original_post_id] += 1

    result = []
    for post in posts:
        key = address.parse(post.id).value or post.id
        result.append(
            replace(
                post,
                interactions=Interactions(comments=comments[key], reposts=reposts[key], quotes=quotes[key]),
            )
        )
    return result


def posts_from_entries(entries: Iterable[LogEntry]) -> list[Post]:
    """Posts for every post-typed entry, with interaction counts."""
    posts = [post for post in (post_from_entry(entry) for entry in entries) if post is not None]
    return with_interactions(posts)
