from datetime import tzinfo
from typing import List, Optional, Sequence

from .comment_tree import check_sort, format_timestamp
from .config import EXPORT_TIME_FORMAT
from .models import CommentNode


INDENT = " " * 4

_SORT_LABELS = {
    ("time", "desc"): "newest first",
    ("time", "asc"): "oldest first",
    ("score", "desc"): "highest first",
    ("score", "asc"): "lowest first",
}


def sort_label(key: str, order: str) -> str:
    check_sort(key, order)
    return _SORT_LABELS[(key, order)]


def render_tree(
    nodes: Sequence[CommentNode],
    *,
    tz: Optional[tzinfo] = None,
    time_format: str = EXPORT_TIME_FORMAT,
) -> str:
    """
    Plain-text view of a comment tree, one block per comment:

        u/author | 5 points | 2024/01/02 03:04:05
        body line
            u/replier | ...
    """
    lines: List[str] = []
    stack = [(node, 0) for node in reversed(nodes)]
    while stack:
        node, depth = stack.pop()
        pad = INDENT * depth
        published = format_timestamp(node.created_utc, tz=tz, time_format=time_format)
        lines.append(f"{pad}u/{node.author} | {node.score} points | {published}")
        for body_line in node.body.splitlines() or [""]:
            lines.append(f"{pad}{body_line}")
        lines.append("")
        stack.extend((reply, depth + 1) for reply in reversed(node.replies))
    return "\n".join(lines).rstrip("\n")
