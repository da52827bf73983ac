"""Thread context around an anchor post."""

from collections.abc import Sequence

from gitsocial.logging import get_logger
from gitsocial.models import Post, PostType, Result, ThreadContext, ThreadItem
from gitsocial.thread.helpers import (
    ThreadSort,
    build_parent_child_map,
    calculate_depth,
    find_post,
    sort_thread_tree,
)

logger = get_logger("thread")


def _thread_root_id(anchor: Post, all_posts: Sequence[Post]) -> str:
    root_id = anchor.id
    current = anchor
    visited = {anchor.id}
    while current.original_post_id:
        parent = find_post(current.original_post_id, all_posts)
        if parent is None or parent.id in visited:
            break
        visited.add(parent.id)
        root_id = parent.id
        current = parent
    return root_id


def _parent_comments(anchor: Post, all_posts: Sequence[Post]) -> list[Post]:
    """Chain of parent comments above anchor, topmost first."""
    chain: list[Post] = []
    current = anchor
    visited = {anchor.id}
    while current.parent_comment_id:
        parent = find_post(current.parent_comment_id, all_posts)
        if parent is None:
            logger.debug("Parent comment not found: post=%s parent=%s", current.id, current.parent_comment_id)
            break
        if parent.id in visited:
            break
        visited.add(parent.id)
        chain.insert(0, parent)
        current = parent
    return chain


def build_context(
    anchor_id: str,
    all_posts: Sequence[Post],
    sort: ThreadSort | str = ThreadSort.TOP,
) -> Result[ThreadContext]:
    """Assemble ancestors and the sorted reply tree of an anchor post."""
    anchor = find_post(anchor_id, all_posts)
    if anchor is None:
        return Result.fail("POST_NOT_FOUND", f"Anchor post not found: {anchor_id}")

    parent_comments = _parent_comments(anchor, all_posts)

    original: Post | None = None
    if parent_comments and parent_comments[0].original_post_id:
        original = find_post(parent_comments[0].original_post_id, all_posts)
    # Quotes already show the content they quote
    if original is None and anchor.original_post_id and anchor.type != PostType.QUOTE:
        original = find_post(anchor.original_post_id, all_posts)

    parent_posts = ([original] if original is not None else []) + parent_comments
    child_posts = sort_thread_tree(anchor.id, all_posts, sort)

    logger.debug(
        "Thread context built: anchor=%s parents=%d children=%d sort=%s",
        anchor.id,
        len(parent_posts),
        len(child_posts),
        sort,
    )
    return Result.ok(
        ThreadContext(
            anchor_post=anchor,
            parent_posts=parent_posts,
            child_posts=child_posts,
            thread_root_id=_thread_root_id(anchor, all_posts),
        )
    )


def build_thread_items(
    context: ThreadContext,
    all_posts: Sequence[Post],
    defer_parents: bool = False,
    max_parents: int = 5,
    max_children: int = 50,
    max_depth: int = 8,
) -> list[ThreadItem]:
    """Rows for rendering a thread: parents, the anchor, then replies."""
    parent_child_map = build_parent_child_map(all_posts)
    items: list[ThreadItem] = []

    if not defer_parents and context.parent_posts and max_parents > 0:
        for post in context.parent_posts[-max_parents:]:
            depth = max(-max_depth, calculate_depth(post, context.anchor_post, all_posts))
            items.append(
                ThreadItem(
                    type="post",
                    key=post.id,
                    depth=depth,
                    data=post,
                    has_children=post.id in parent_child_map,
                )
            )

    items.append(ThreadItem(type="anchor", key=context.anchor_post.id, depth=0, data=context.anchor_post))

    for post in context.child_posts[:max_children]:
        depth = min(max_depth, calculate_depth(post, context.anchor_post, all_posts))
        items.append(
            ThreadItem(
                type="post",
                key=post.id,
                depth=depth,
                data=post,
                has_children=post.id in parent_child_map,
            )
        )

    return items


def flatten_context(context: ThreadContext) -> list[Post]:
    return [*context.parent_posts, context.anchor_post, *context.child_posts]
