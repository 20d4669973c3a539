"""Range-based pagination for training listings.

Clients request a slice with `Range: items=<start>-<end>` (zero-based,
inclusive). Listings answer with `Content-Range: items <start>-<end>/<total>`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Generic, List, Optional, TypeVar

T = TypeVar("T")

_RANGE_RE = re.compile(r"^\s*items\s*=\s*(\d+)\s*-\s*(\d+)\s*$")


@dataclass(frozen=True)
class RangeRequest:
    """An inclusive, zero-based [start, end] item range."""
    start: int
    end: int

    def __post_init__(self):
        if self.start < 0 or self.end < self.start:
            raise ValueError(f"invalid item range {self.start}-{self.end}")

    @property
    def limit(self) -> int:
        return self.end - self.start + 1


def parse_range_header(value: Optional[str]) -> Optional[RangeRequest]:
    """Parse an `items=a-b` header. Malformed headers mean "no range"."""
    if not value:
        return None
    m = _RANGE_RE.match(value)
    if not m:
        return None
    start, end = int(m.group(1)), int(m.group(2))
    if end < start:
        return None
    return RangeRequest(start, end)


@dataclass
class Page(Generic[T]):
    """A slice of a listing plus the metadata needed to page through it.

    `requested` is `None` for an unbounded listing. `start`/`end` are the
    bounds actually returned, clamped to `total`.
    """
    items: List[T]
    total: int
    start: int = 0
    requested: Optional[RangeRequest] = field(default=None)

    @property
    def end(self) -> int:
        return self.start + len(self.items) - 1

    def content_range(self) -> str:
        if not self.items:
            return f"items */{self.total}"
        return f"items {self.start}-{self.end}/{self.total}"
