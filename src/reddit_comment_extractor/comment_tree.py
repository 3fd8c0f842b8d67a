from dataclasses import dataclass, field, replace
from datetime import datetime, tzinfo
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .config import DEFAULT_SORT_BY, DEFAULT_SORT_ORDER, EXPORT_TIME_FORMAT, MAX_COMMENT_DEPTH
from .models import (
    COMMENT_KIND,
    DELETED_BODY,
    SORT_KEYS,
    SORT_ORDERS,
    CommentNode,
    ExportRow,
    InvalidInput,
    NormalizeStats,
)


_REQUIRED_FIELDS = ("id", "author", "body", "score", "created_utc")

_SORT_ATTRS = {"time": "created_utc", "score": "score"}


# ---------------------------
# Normalize
# ---------------------------

def comment_listing(payload: Any) -> List[Any]:
    """
    Pick the comment children out of a thread payload.

    Reddit answers ``/comments/<id>.json`` with ``[post_listing, comment_listing]``.
    """
    if not isinstance(payload, list) or len(payload) < 2:
        raise InvalidInput("invalid reddit thread payload: expected [post, comments] listings")
    listing = payload[1]
    if not isinstance(listing, Mapping):
        return []
    children = (listing.get("data") or {}).get("children")
    if not isinstance(children, list):
        return []
    return children


def _reply_children(data: Mapping) -> List[Any]:
    # Reddit sends "" when a comment has no replies
    replies = data.get("replies")
    if not isinstance(replies, Mapping):
        return []
    listing = replies.get("data")
    if not isinstance(listing, Mapping):
        return []
    children = listing.get("children")
    return children if isinstance(children, list) else []


def _is_visible_comment(raw: Any) -> bool:
    if not isinstance(raw, Mapping) or raw.get("kind") != COMMENT_KIND:
        return False
    data = raw.get("data")
    if not isinstance(data, Mapping):
        # a comment without data is kept so validation can name it
        return True
    return data.get("body") != DELETED_BODY


def _comment_fields(raw: Mapping, position: int) -> Dict[str, Any]:
    data = raw.get("data")
    if not isinstance(data, Mapping):
        raise InvalidInput(f"comment at position {position} has no data object")
    missing = [name for name in _REQUIRED_FIELDS if data.get(name) is None]
    if missing:
        label = data.get("id")
        where = f"comment {label!r}" if label is not None else f"comment at position {position}"
        raise InvalidInput(f"{where} is missing required field(s): {', '.join(missing)}")
    return {name: data[name] for name in _REQUIRED_FIELDS}


def normalize(
    raw_nodes: Sequence[Any],
    *,
    max_depth: int = MAX_COMMENT_DEPTH,
    stats: Optional[NormalizeStats] = None,
) -> List[CommentNode]:
    """
    Convert raw Reddit listing children into CommentNode trees.

    Non-comment entries and ``[deleted]`` comments are dropped together with
    everything below them. Nodes at ``max_depth`` (roots are depth 0) keep
    their fields but lose their replies; each cut that hides at least one
    comment is counted in ``stats.truncated`` when a ``NormalizeStats`` is
    passed in.
    """
    if max_depth < 0:
        raise ValueError(f"max_depth must be >= 0, got {max_depth}")
    if stats is None:
        stats = NormalizeStats()

    # entries are [fields, reply entries, built node]; parents precede children
    roots: List[list] = []
    created: List[list] = []
    stack = [(raw_nodes or [], 0, roots)]
    while stack:
        level, depth, out = stack.pop()
        for position, raw in enumerate(level):
            if not _is_visible_comment(raw):
                stats.dropped += 1
                continue

            entry = [_comment_fields(raw, position), [], None]
            children = _reply_children(raw["data"])
            if children:
                if depth >= max_depth:
                    if any(_is_visible_comment(child) for child in children):
                        stats.truncated += 1
                else:
                    stack.append((children, depth + 1, entry[1]))

            stats.kept += 1
            created.append(entry)
            out.append(entry)

    for entry in reversed(created):
        fields, replies, _ = entry
        entry[2] = CommentNode(replies=tuple(r[2] for r in replies), **fields)
    return [entry[2] for entry in roots]


# ---------------------------
# Sort
# ---------------------------

def check_sort(key: str, order: str) -> None:
    if key not in SORT_KEYS:
        raise ValueError(f"unknown sort key {key!r}, expected one of {SORT_KEYS}")
    if order not in SORT_ORDERS:
        raise ValueError(f"unknown sort order {order!r}, expected one of {SORT_ORDERS}")


def sort_tree(
    nodes: Sequence[CommentNode],
    key: str = DEFAULT_SORT_BY,
    order: str = DEFAULT_SORT_ORDER,
) -> List[CommentNode]:
    """
    Return a new tree with every sibling list ordered by ``key``.

    The sort is stable in both directions, so comments with equal keys keep
    their source order.
    """
    check_sort(key, order)
    attr = _SORT_ATTRS[key]
    reverse = order == "desc"

    # entries are [node, sorted reply entries]; parents precede children
    roots: List[list] = []
    created: List[list] = []
    stack = [(nodes, roots)]
    while stack:
        level, out = stack.pop()
        for node in sorted(level, key=lambda n: getattr(n, attr), reverse=reverse):
            entry = [node, []]
            created.append(entry)
            out.append(entry)
            if node.replies:
                stack.append((node.replies, entry[1]))

    for entry in reversed(created):
        node, replies = entry
        if replies:
            entry[0] = replace(node, replies=tuple(r[0] for r in replies))
    return [entry[0] for entry in roots]


# ---------------------------
# Flatten
# ---------------------------

def format_timestamp(
    ts: int,
    *,
    tz: Optional[tzinfo] = None,
    time_format: str = EXPORT_TIME_FORMAT,
) -> str:
    """Render unix seconds in local time (or ``tz``)."""
    return datetime.fromtimestamp(ts, tz=tz).strftime(time_format)


def flatten(
    nodes: Sequence[CommentNode],
    depth: int = 0,
    *,
    tz: Optional[tzinfo] = None,
    time_format: str = EXPORT_TIME_FORMAT,
) -> List[ExportRow]:
    """Pre-order rows for export, one per comment."""
    rows: List[ExportRow] = []
    # work stack, popped in pre-order
    stack = [(node, depth) for node in reversed(nodes)]
    while stack:
        node, level = stack.pop()
        rows.append(
            ExportRow(
                depth=level,
                id=node.id,
                author=node.author,
                body=node.body.replace("\n", " "),
                score=node.score,
                published=format_timestamp(node.created_utc, tz=tz, time_format=time_format),
                created_utc=node.created_utc,
            )
        )
        stack.extend((reply, level + 1) for reply in reversed(node.replies))
    return rows


def count_nodes(nodes: Sequence[CommentNode]) -> int:
    total = 0
    stack = list(nodes)
    while stack:
        node = stack.pop()
        total += 1
        stack.extend(node.replies)
    return total


# ---------------------------
# Displayed thread
# ---------------------------

@dataclass
class ThreadView:
    """
    The comments currently on screen.

    ``comments`` stays in source order; ``displayed`` is the sorted copy and
    is rebuilt only when the sort changes.
    """

    comments: List[CommentNode]
    sort_by: str = DEFAULT_SORT_BY
    order: str = DEFAULT_SORT_ORDER

    _displayed: Optional[List[CommentNode]] = field(default=None, init=False, repr=False)

    def __post_init__(self):
        check_sort(self.sort_by, self.order)

    @property
    def displayed(self) -> List[CommentNode]:
        if self._displayed is None:
            self._displayed = sort_tree(self.comments, self.sort_by, self.order)
        return self._displayed

    def set_sort(self, sort_by: str, order: str) -> List[CommentNode]:
        check_sort(sort_by, order)
        if (sort_by, order) != (self.sort_by, self.order):
            self.sort_by = sort_by
            self.order = order
            self._displayed = None
        return self.displayed

    def export_rows(self, **kwargs) -> List[ExportRow]:
        return flatten(self.displayed, **kwargs)
