"""
Edit applier — validates a batch of byte-range edits against the original
buffer, rejects overlaps, and splices everything in one pass.

Edits are applied in descending start-offset order so that every offset
taken from the original position index stays valid no matter how much
earlier (later-applied) edits grow or shrink the buffer.
"""

from __future__ import annotations

import itertools
import logging
from typing import Iterable, Sequence

from ..errors import ConflictError, ValidationError
from .edit_queue import Edit, EditKind

logger = logging.getLogger(__name__)


class EditApplier:
    """Compile and apply edits against one original buffer."""

    def __init__(self, original: bytes) -> None:
        self._original = bytes(original)

    def compile(self, edits: Iterable[Edit]) -> list[Edit]:
        """Return *edits* in canonical ascending order, validated.

        Canonical order is ascending start offset; at equal starts,
        zero-length edits come first; remaining ties keep queue order.

        Raises
        ------
        ValidationError
            An edit falls outside the buffer.
        ConflictError
            Two edits overlap.
        """
        queued = list(edits)
        size = len(self._original)
        for edit in queued:
            if edit.start < 0 or edit.end > size:
                raise ValidationError(
                    f"edit {edit.label or edit.kind.value} "
                    f"[{edit.start}:{edit.end}) is outside the {size}-byte buffer"
                )

        ordered = sorted(
            enumerate(queued),
            key=lambda pair: (pair[1].start, 0 if pair[1].target.is_empty else 1, pair[0]),
        )
        compiled = [edit for _, edit in ordered]

        for first, second in itertools.combinations(compiled, 2):
            if _conflicts(first, second):
                logger.warning(
                    "[PosEdit] Rejecting batch: %s overlaps %s",
                    first.label or first.kind.value,
                    second.label or second.kind.value,
                )
                raise ConflictError(first, second)
        return compiled

    def apply(self, edits: Sequence[Edit]) -> bytes:
        """Apply *edits* and return the new buffer.

        Atomic: either every edit is applied or a ConflictError /
        ValidationError is raised and nothing changes.
        """
        compiled = self.compile(edits)
        if not compiled:
            return self._original

        buffer = bytearray(self._original)
        # Bottom-up: later offsets first so earlier offsets never shift
        for edit in reversed(compiled):
            buffer[edit.start:edit.end] = edit.new_text.encode("utf-8")
            logger.debug(
                "[PosEdit] %s [%d:%d) -> %d bytes",
                edit.label or edit.kind.value, edit.start, edit.end,
                len(edit.new_text.encode("utf-8")),
            )
        return bytes(buffer)


def _conflicts(first: Edit, second: Edit) -> bool:
    if not first.target.intersects(second.target):
        return False
    # Coinciding insertion points are fine; they apply in queue order
    both_points = first.target.is_empty and second.target.is_empty
    return not (both_points and first.kind is EditKind.ADD and second.kind is EditKind.ADD)


def apply_edits(original: bytes, edits: Iterable[Edit]) -> bytes:
    """Convenience wrapper: ``EditApplier(original).apply(edits)``."""
    return EditApplier(original).apply(list(edits))
