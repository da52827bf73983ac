"""Thread reconstruction from flat post collections."""

from .context import build_context, build_thread_items, flatten_context
from .helpers import (
    ThreadSort,
    build_parent_child_map,
    calculate_depth,
    matches_post_id,
    sort_posts,
    sort_thread_tree,
)
from .posts import post_from_entry, posts_from_entries

__all__ = [
    "ThreadSort",
    "build_context",
    "build_parent_child_map",
    "build_thread_items",
    "calculate_depth",
    "flatten_context",
    "matches_post_id",
    "post_from_entry",
    "posts_from_entries",
    "sort_posts",
    "sort_thread_tree",
]
