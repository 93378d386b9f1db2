"""Position-aware editing — byte-range edits that leave untouched bytes alone."""

from .positions import Position, Range, ElementPosition, PositionIndex, LineMap
from .position_parser import ParseResult, parse_with_positions
from .edit_queue import Edit, EditKind, EditQueue, EditorState
from .edit_applier import EditApplier, apply_edits
from .config_editor import ConfigEditor

__all__ = [
    "Position", "Range", "ElementPosition", "PositionIndex", "LineMap",
    "ParseResult", "parse_with_positions",
    "Edit", "EditKind", "EditQueue", "EditorState",
    "EditApplier", "apply_edits",
    "ConfigEditor",
]
