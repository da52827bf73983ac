"""Reply-tree helpers over flat post collections.

All functions are pure. Post identity follows the address scheme: two
commit addresses with the same hash name the same post even when their
repository prefixes differ, so a post mirrored across repositories is one
thread node.
"""

from collections.abc import Sequence
from enum import StrEnum

from gitsocial.models import Post, PostType
from gitsocial.protocol import address


class ThreadSort(StrEnum):
    TOP = "top"
    LATEST = "latest"
    OLDEST = "oldest"


def matches_post_id(post_id: str | None, target_id: str | None) -> bool:
    """Whether two addresses name the same post."""
    if not post_id or not target_id:
        return False
    if post_id == target_id:
        return True

    parsed_post = address.parse(post_id)
    parsed_target = address.parse(target_id)
    return (
        parsed_post.kind == address.AddressKind.COMMIT
        and parsed_target.kind == address.AddressKind.COMMIT
        and parsed_post.value == parsed_target.value
    )


def find_post(post_id: str | None, all_posts: Sequence[Post]) -> Post | None:
    return next((p for p in all_posts if matches_post_id(p.id, post_id)), None)


def build_parent_child_map(all_posts: Sequence[Post]) -> dict[str, bool]:
    """Ids of posts that have at least one reply.

    Reposts do not make their original a parent.
    """
    parents: dict[str, bool] = {}
    for post in all_posts:
        if post.original_post_id and post.type != PostType.REPOST:
            parents[post.original_post_id] = True
        if post.parent_comment_id:
            parents[post.parent_comment_id] = True
    return parents


def _parent_id(post: Post) -> str | None:
    return post.parent_comment_id or post.original_post_id


def _ancestor_distance(start: Post, target: Post, all_posts: Sequence[Post]) -> int | None:
    """Steps from start up to target, or None if target is not an ancestor."""
    distance = 0
    current = start
    visited = {current.id}
    while (parent_id := _parent_id(current)) is not None:
        parent = find_post(parent_id, all_posts)
        if parent is None or parent.id in visited:
            return None
        distance += 1
        if matches_post_id(parent.id, target.id):
            return distance
        visited.add(parent.id)
        current = parent
    return None


def calculate_depth(post: Post, anchor: Post, all_posts: Sequence[Post]) -> int:
    """Depth of post relative to anchor.

    Positive when post descends from anchor, negative when it is an
    ancestor, 0 for the anchor itself or when the two are unrelated.
    """
    if matches_post_id(post.id, anchor.id):
        return 0

    depth = _ancestor_distance(post, anchor, all_posts)
    if depth is not None:
        return depth

    depth = _ancestor_distance(anchor, post, all_posts)
    if depth is not None:
        return -depth

    return 0


def sort_posts(posts: Sequence[Post], mode: ThreadSort | str) -> list[Post]:
    """Sort posts without mutating the input.

    Unrecognized modes return the input order.
    """
    if mode == ThreadSort.TOP:
        by_time = sorted(posts, key=lambda p: p.timestamp, reverse=True)
        return sorted(by_time, key=lambda p: p.interactions.comments, reverse=True)
    if mode == ThreadSort.LATEST:
        return sorted(posts, key=lambda p: p.timestamp, reverse=True)
    if mode == ThreadSort.OLDEST:
        return sorted(posts, key=lambda p: p.timestamp)
    return list(posts)


def _is_direct_child(post: Post, root_id: str) -> bool:
    if matches_post_id(post.parent_comment_id, root_id):
        return True
    return (
        matches_post_id(post.original_post_id, root_id)
        and post.type != PostType.REPOST
        and not post.parent_comment_id
    )


def sort_thread_tree(
    root_id: str,
    all_posts: Sequence[Post],
    mode: ThreadSort | str,
    depth: int = 1,
    seen: set[str] | None = None,
) -> list[Post]:
    """Pre-order flattening of the reply tree under root_id.

    The requested mode orders top-level replies; nested replies are always
    oldest first. Each post is emitted at most once.
    """
    if seen is None:
        seen = {root_id}

    children = [p for p in all_posts if p.id not in seen and _is_direct_child(p, root_id)]
    ordered = sort_posts(children, mode if depth == 1 else ThreadSort.OLDEST)

    result: list[Post] = []
    for child in ordered:
        # A sibling subtree may already have claimed this post
        if child.id in seen:
            continue
        seen.add(child.id)
        result.append(child)
        result.extend(sort_thread_tree(child.id, all_posts, mode, depth + 1, seen))
    return result
