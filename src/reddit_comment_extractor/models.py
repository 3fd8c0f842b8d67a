from dataclasses import dataclass
from typing import Any, Dict, Tuple


COMMENT_KIND = "t1"
DELETED_BODY = "[deleted]"

SORT_KEYS = ("time", "score")
SORT_ORDERS = ("asc", "desc")

# Tabular export labels, in ExportRow field order
EXPORT_COLUMNS = [
    "level",
    "comment id",
    "author",
    "content",
    "score",
    "published time",
    "timestamp",
]


class InvalidInput(ValueError):
    """Raised when upstream data breaks the shape the comment tree expects."""


@dataclass(frozen=True)
class CommentNode:
    id: str
    author: str
    body: str
    score: int
    created_utc: int
    replies: Tuple["CommentNode", ...] = ()


@dataclass(frozen=True)
class ExportRow:
    depth: int
    id: str
    author: str
    body: str
    score: int
    published: str
    created_utc: int

    def as_record(self) -> Dict[str, Any]:
        values = (
            self.depth,
            self.id,
            self.author,
            self.body,
            self.score,
            self.published,
            self.created_utc,
        )
        return dict(zip(EXPORT_COLUMNS, values))


@dataclass
class NormalizeStats:
    kept: int = 0
    dropped: int = 0      # roots of discarded subtrees
    truncated: int = 0    # depth-limit cuts that hid at least one comment
