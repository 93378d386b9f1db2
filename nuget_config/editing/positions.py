"""
Position primitives — byte/line/column points, half-open ranges, and the
per-element position records the editor targets.
"""

from __future__ import annotations

from bisect import bisect_right
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class Position:
    """A point in the source buffer.

    ``line`` and ``column`` are 1-based (columns count bytes),
    ``offset`` is a 0-based byte offset.
    """
    line: int
    column: int
    offset: int


@dataclass(frozen=True)
class Range:
    """Half-open byte range ``[start.offset, end.offset)``."""
    start: Position
    end: Position

    def __post_init__(self) -> None:
        if self.start.offset > self.end.offset:
            raise ValueError(
                f"Invalid range: start ({self.start.offset}) > end ({self.end.offset})"
            )

    @classmethod
    def point(cls, position: Position) -> "Range":
        return cls(position, position)

    @property
    def length(self) -> int:
        return self.end.offset - self.start.offset

    @property
    def is_empty(self) -> bool:
        return self.start.offset == self.end.offset

    def contains(self, offset: int) -> bool:
        return self.start.offset <= offset < self.end.offset

    def intersects(self, other: "Range") -> bool:
        """Overlap test that also handles zero-length ranges.

        A zero-length range intersects a non-empty one only when its point
        lies strictly inside it; two zero-length ranges intersect when
        they sit on the same point.
        """
        if self.is_empty and other.is_empty:
            return self.start.offset == other.start.offset
        if self.is_empty:
            return other.start.offset < self.start.offset < other.end.offset
        if other.is_empty:
            return self.start.offset < other.start.offset < self.end.offset
        return self.start.offset < other.end.offset and other.start.offset < self.end.offset

    def slice(self, buffer: bytes) -> bytes:
        return buffer[self.start.offset:self.end.offset]


class LineMap:
    """Maps byte offsets to :class:`Position` values for one buffer."""

    def __init__(self, buffer: bytes) -> None:
        self._size = len(buffer)
        self._line_starts = [0]
        index = buffer.find(b"\n")
        while index != -1:
            self._line_starts.append(index + 1)
            index = buffer.find(b"\n", index + 1)

    def position(self, offset: int) -> Position:
        if offset < 0 or offset > self._size:
            raise ValueError(f"offset {offset} outside buffer of {self._size} bytes")
        line_index = bisect_right(self._line_starts, offset) - 1
        return Position(
            line=line_index + 1,
            column=offset - self._line_starts[line_index] + 1,
            offset=offset,
        )

    def range(self, start: int, end: int) -> Range:
        return Range(self.position(start), self.position(end))


@dataclass(frozen=True)
class ElementPosition:
    """Where one tracked element lives in the original buffer.

    ``attr_ranges[name]`` covers exactly the bytes between the opening and
    closing quote of that attribute's value.
    """
    tag_name: str
    attributes: dict[str, str]
    range: Range
    attr_ranges: dict[str, Range]
    inner_content: str = ""
    self_closing: bool = False
    start_tag_range: Optional[Range] = None
    content_range: Optional[Range] = None
    attr_quotes: dict[str, str] = field(default_factory=dict)
    path: str = ""
    parent: str = ""


class PositionIndex(Mapping):
    """Read-only ``path -> ElementPosition`` map.

    Elements are kept in insertion (document) order in an arena list;
    a ``path -> index`` dict resolves lookups.
    """

    def __init__(self, elements: list[ElementPosition]) -> None:
        self._elements: tuple[ElementPosition, ...] = tuple(elements)
        self._paths: dict[str, int] = {}
        for i, element in enumerate(self._elements):
            if element.path in self._paths:
                raise ValueError(f"duplicate position path {element.path!r}")
            self._paths[element.path] = i

    def __getitem__(self, path: str) -> ElementPosition:
        return self._elements[self._paths[path]]

    def __iter__(self) -> Iterator[str]:
        return iter(self._paths)

    def __len__(self) -> int:
        return len(self._elements)

    def __repr__(self) -> str:
        return f"PositionIndex({len(self)} elements)"

    def children(self, parent_path: str, tag: Optional[str] = None) -> list[ElementPosition]:
        """Direct children of *parent_path*, in document order."""
        return [
            element for element in self._elements
            if element.parent == parent_path
            and (tag is None or element.tag_name == tag)
        ]

    def find(self, parent_path: str, key: str, tag: str = "add") -> Optional[ElementPosition]:
        """The first *tag* child of *parent_path* whose key attribute is *key*."""
        return self.get(entry_path(parent_path, tag, key))


def entry_path(parent_path: str, tag: str, key: Optional[str], ordinal: int = 1) -> str:
    """Build the stable path for a child entry.

    ``packageSources/add[key=nuget.org]`` for keyed entries, a ``[n]``
    suffix for repeats, ``packageSources/add[n]`` for keyless ones.
    """
    if key is None:
        return f"{parent_path}/{tag}[{ordinal}]"
    path = f"{parent_path}/{tag}[key={key}]"
    if ordinal > 1:
        path += f"[{ordinal}]"
    return path
