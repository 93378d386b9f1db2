"""
Edit queue — pending byte-range edits recorded by a ConfigEditor before
they are compiled and spliced into the original buffer.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterator

from ..errors import NotFoundError
from .positions import Position, Range


class EditKind(enum.Enum):
    ADD = "add"
    UPDATE = "update"
    DELETE = "delete"


class EditorState(enum.Enum):
    CLEAN = "clean"    # no pending edits
    DIRTY = "dirty"    # at least one pending edit


@dataclass(frozen=True)
class Edit:
    """A single byte-range replacement against the original buffer.

    ``ADD`` edits carry a zero-length target at their insertion point.
    """
    kind: EditKind
    target: Range
    new_text: str = ""
    label: str = ""

    def __post_init__(self) -> None:
        if self.kind is EditKind.ADD and not self.target.is_empty:
            raise ValueError("ADD edits must target a zero-length range")
        if self.kind is EditKind.DELETE and self.new_text:
            raise ValueError("DELETE edits cannot carry replacement text")

    @classmethod
    def add(cls, point: Position, text: str, label: str = "") -> "Edit":
        return cls(EditKind.ADD, Range.point(point), text, label)

    @classmethod
    def update(cls, target: Range, text: str, label: str = "") -> "Edit":
        return cls(EditKind.UPDATE, target, text, label)

    @classmethod
    def delete(cls, target: Range, label: str = "") -> "Edit":
        return cls(EditKind.DELETE, target, "", label)

    @property
    def insertion_point(self) -> Position:
        return self.target.start

    @property
    def start(self) -> int:
        return self.target.start.offset

    @property
    def end(self) -> int:
        return self.target.end.offset


class EditQueue:
    """Ordered, unsynchronized list of pending edits."""

    def __init__(self) -> None:
        self._edits: list[Edit] = []

    def append(self, edit: Edit) -> Edit:
        self._edits.append(edit)
        return edit

    def remove(self, edit: Edit) -> None:
        """Drop *edit* (matched by identity first, then by value)."""
        for i, queued in enumerate(self._edits):
            if queued is edit:
                del self._edits[i]
                return
        try:
            self._edits.remove(edit)
        except ValueError:
            raise NotFoundError(f"edit {edit.label or edit.kind.value} is not queued") from None

    def clear(self) -> None:
        self._edits.clear()

    def snapshot(self) -> tuple[Edit, ...]:
        return tuple(self._edits)

    @property
    def state(self) -> EditorState:
        return EditorState.DIRTY if self._edits else EditorState.CLEAN

    def __len__(self) -> int:
        return len(self._edits)

    def __iter__(self) -> Iterator[Edit]:
        return iter(list(self._edits))

    def __bool__(self) -> bool:
        return bool(self._edits)
