"""
Config editor — turns logical requests ("add this source", "change that
URL") into byte-range edits against the original buffer of one
:class:`ParseResult`, so applying them leaves every untouched byte of the
document exactly as it was.

The editor never mutates the parsed config: ``get_config()`` keeps
describing the document as parsed until the caller re-parses the output
of :meth:`ConfigEditor.apply_edits`.
"""

from __future__ import annotations

import copy
import logging
import re
from typing import Optional
from xml.sax.saxutils import escape

from .. import constants as C
from ..errors import NotFoundError, ValidationError
from ..models import NuGetConfig
from .edit_applier import EditApplier
from .edit_queue import Edit, EditorState, EditQueue
from .position_parser import ParseResult
from .positions import ElementPosition, LineMap, PositionIndex, Range, entry_path

logger = logging.getLogger(__name__)

DEFAULT_INDENT_UNIT = "  "

_ATTR_NAME = re.compile(r"^[A-Za-z_:][-A-Za-z0-9_.:]*$")
_ILLEGAL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")


class ConfigEditor:
    """Position-aware editor bound to a single ParseResult.

    Not thread-safe: the edit queue is plain mutable state.

    Parameters
    ----------
    parse_result:
        Output of :func:`parse_with_positions`.
    indent_unit:
        One indentation level, used only when no existing element shows
        how the document is indented.
    """

    def __init__(
        self,
        parse_result: ParseResult,
        indent_unit: str = DEFAULT_INDENT_UNIT,
    ) -> None:
        self._result = parse_result
        self._buf = parse_result.original
        self._lines = LineMap(self._buf)
        self._indent_unit = indent_unit
        self._queue = EditQueue()
        # (section, key) -> the queued edit that introduces it
        self._pending_keys: dict[tuple[str, str], Edit] = {}
        # section -> (edit creating the section, rendered entries)
        self._pending_sections: dict[str, tuple[Edit, list[str]]] = {}

        if b"\r\n" in self._buf:
            self._newline: Optional[str] = "\r\n"
        elif b"\n" in self._buf:
            self._newline = "\n"
        else:
            self._newline = None

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def parse_result(self) -> ParseResult:
        return self._result

    def get_config(self) -> NuGetConfig:
        """The config as parsed (a copy); queued edits are not reflected."""
        return copy.deepcopy(self._result.config)

    def get_positions(self) -> PositionIndex:
        return self._result.positions

    @property
    def pending_edits(self) -> tuple[Edit, ...]:
        return self._queue.snapshot()

    @property
    def state(self) -> EditorState:
        return self._queue.state

    @property
    def is_dirty(self) -> bool:
        return self._queue.state is EditorState.DIRTY

    # ------------------------------------------------------------------
    # Package sources
    # ------------------------------------------------------------------

    def add_or_update_source(
        self,
        key: str,
        value: str,
        protocol_version: Optional[str] = None,
    ) -> list[Edit]:
        """Queue the edits that make source *key* point at *value*.

        Returns the queued edits; an empty list means the source already
        has exactly these attributes.
        """
        _require(key, "source key")
        _require(value, "source value")
        if protocol_version is not None:
            _require(protocol_version, "protocol version")

        source = self._result.config.get_source(key)
        if source is None:
            attributes = {C.KEY_ATTR: key, C.VALUE_ATTR: value}
            if protocol_version is not None:
                attributes[C.PROTOCOL_VERSION_ATTR] = protocol_version
            return [self._queue_new_entry(C.PACKAGE_SOURCES, key, attributes)]

        element = self._entry(C.PACKAGE_SOURCES, key)
        changes: dict[str, str] = {}
        if source.value != value:
            changes[C.VALUE_ATTR] = value
        if protocol_version is not None and source.protocol_version != protocol_version:
            changes[C.PROTOCOL_VERSION_ATTR] = protocol_version
        if not changes:
            logger.debug("[PosEdit] Source %r already up to date", key)
        return self._queue_attribute_changes(element, changes)

    def remove_source(self, key: str) -> Edit:
        """Queue deletion of source *key* (its whole line when it has one)."""
        _require(key, "source key")
        if not self._result.config.has_source(key):
            raise NotFoundError(f"package source {key!r} not found")
        return self._queue_entry_removal(self._entry(C.PACKAGE_SOURCES, key))

    def update_attribute(self, key: str, attr_name: str, new_value: str) -> Edit:
        """Queue an update of one attribute of source *key*.

        Only the bytes between the attribute's quotes change. When the
        element lacks the attribute, the element is regenerated with the
        attribute appended.
        """
        _require(key, "source key")
        if not isinstance(attr_name, str) or not _ATTR_NAME.match(attr_name):
            raise ValidationError(f"invalid attribute name {attr_name!r}")
        _require(new_value, f"value for {attr_name}")
        if not self._result.config.has_source(key):
            raise NotFoundError(f"package source {key!r} not found")

        element = self._entry(C.PACKAGE_SOURCES, key)
        return self._queue_attribute_changes(element, {attr_name: new_value})[0]

    def update_package_source_url(self, key: str, new_url: str) -> Edit:
        return self.update_attribute(key, C.VALUE_ATTR, new_url)

    def update_package_source_version(self, key: str, new_version: str) -> Edit:
        return self.update_attribute(key, C.PROTOCOL_VERSION_ATTR, new_version)

    # ------------------------------------------------------------------
    # Config options and disabled sources
    # ------------------------------------------------------------------

    def set_config_option(self, key: str, value: str) -> list[Edit]:
        _require(key, "option key")
        _require(value, "option value")
        current = self._result.config.get_option(key)
        if current is None:
            attributes = {C.KEY_ATTR: key, C.VALUE_ATTR: value}
            return [self._queue_new_entry(C.CONFIG_SECTION, key, attributes)]
        if current == value:
            return []
        element = self._entry(C.CONFIG_SECTION, key)
        return self._queue_attribute_changes(element, {C.VALUE_ATTR: value})

    def remove_config_option(self, key: str) -> Edit:
        _require(key, "option key")
        if self._result.config.get_option(key) is None:
            raise NotFoundError(f"config option {key!r} not found")
        return self._queue_entry_removal(self._entry(C.CONFIG_SECTION, key))

    def disable_source(self, key: str) -> list[Edit]:
        _require(key, "source key")
        element = self._result.positions.find(C.DISABLED_PACKAGE_SOURCES, key)
        if element is None:
            attributes = {C.KEY_ATTR: key, C.VALUE_ATTR: "true"}
            return [self._queue_new_entry(C.DISABLED_PACKAGE_SOURCES, key, attributes)]
        if element.attributes.get(C.VALUE_ATTR, "").lower() == "true":
            return []
        return self._queue_attribute_changes(element, {C.VALUE_ATTR: "true"})

    def enable_source(self, key: str) -> Edit:
        _require(key, "source key")
        element = self._result.positions.find(C.DISABLED_PACKAGE_SOURCES, key)
        if element is None:
            raise NotFoundError(f"package source {key!r} is not disabled")
        return self._queue_entry_removal(element)

    # ------------------------------------------------------------------
    # Queue management
    # ------------------------------------------------------------------

    def discard_edit(self, edit: Edit) -> None:
        """Remove one queued edit, e.g. after a ConflictError."""
        self._queue.remove(edit)
        for pending_key, pending in list(self._pending_keys.items()):
            if pending is edit:
                del self._pending_keys[pending_key]
        for section, (pending, _) in list(self._pending_sections.items()):
            if pending is edit:
                del self._pending_sections[section]

    def clear_edits(self) -> None:
        self._queue.clear()
        self._pending_keys.clear()
        self._pending_sections.clear()

    def apply_edits(self) -> bytes:
        """Splice every queued edit into a copy of the original bytes.

        On success the queue is cleared; the editor stays bound to the
        same ParseResult, so further edits against the new output need a
        fresh parse. On ConflictError nothing changes.
        """
        edits = self._queue.snapshot()
        output = EditApplier(self._buf).apply(edits)
        self.clear_edits()
        logger.debug(
            "[PosEdit] Applied %d edits (%d -> %d bytes)",
            len(edits), len(self._buf), len(output),
        )
        return output

    # ------------------------------------------------------------------
    # Edit construction
    # ------------------------------------------------------------------

    def _entry(self, section: str, key: str) -> ElementPosition:
        element = self._result.positions.get(entry_path(section, C.ADD_ELEMENT, key))
        if element is None:
            raise NotFoundError(f"no position recorded for {section}/{key!r}")
        return element

    def _push(self, edit: Edit) -> Edit:
        self._queue.append(edit)
        logger.debug(
            "[PosEdit] Queued %s %s at [%d:%d)",
            edit.kind.value, edit.label, edit.start, edit.end,
        )
        return edit

    def _queue_attribute_changes(
        self,
        element: ElementPosition,
        changes: dict[str, str],
    ) -> list[Edit]:
        if not changes:
            return []
        for value in changes.values():
            _require(value, "attribute value")

        if all(name in element.attr_ranges for name in changes):
            return [
                self._push(Edit.update(
                    element.attr_ranges[name],
                    _escape_attr(value, element.attr_quotes[name]),
                    label=f"{element.path}@{name}",
                ))
                for name, value in changes.items()
            ]

        text = self._regenerate(element, changes)
        return [self._push(Edit.update(element.range, text, label=f"rewrite {element.path}"))]

    def _regenerate(self, element: ElementPosition, changes: dict[str, str]) -> str:
        """Rebuild *element* with *changes*; missing attributes are appended.

        Existing attributes keep their order, spacing and quotes.
        """
        base = element.range.start.offset
        raw = bytearray(element.range.slice(self._buf))
        quote = _preferred_quote(element)

        if element.attr_ranges:
            insert_at = max(r.end.offset for r in element.attr_ranges.values()) + 1 - base
        else:
            insert_at = 1 + len(element.tag_name)
        appended = "".join(
            f" {name}={quote}{_escape_attr(value, quote)}{quote}"
            for name, value in changes.items()
            if name not in element.attr_ranges
        )

        splices = [(insert_at, insert_at, appended)]
        for name, value in changes.items():
            if name in element.attr_ranges:
                rng = element.attr_ranges[name]
                splices.append((
                    rng.start.offset - base,
                    rng.end.offset - base,
                    _escape_attr(value, element.attr_quotes[name]),
                ))
        for start, end, text in sorted(splices, key=lambda s: s[0], reverse=True):
            raw[start:end] = text.encode("utf-8")
        return raw.decode("utf-8")

    def _queue_entry_removal(self, element: ElementPosition) -> Edit:
        return self._push(Edit.delete(
            self._owning_line(element.range),
            label=f"remove {element.path}",
        ))

    def _owning_line(self, rng: Range) -> Range:
        """Extend *rng* to its whole line when nothing else shares the line."""
        buf = self._buf
        line_start = _line_start(buf, rng.start.offset)
        newline = buf.find(b"\n", rng.end.offset)
        line_end = len(buf) if newline == -1 else newline
        if buf[line_start:rng.start.offset].strip() or buf[rng.end.offset:line_end].strip():
            return rng
        end = len(buf) if newline == -1 else newline + 1
        return self._lines.range(line_start, end)

    def _queue_new_entry(self, section: str, key: str, attributes: dict[str, str]) -> Edit:
        if (section, key) in self._pending_keys:
            raise ValidationError(
                f"{key!r} is already queued for addition to <{section}>; "
                "apply the edits and re-parse before changing it again"
            )
        entry = _render_add(attributes)
        section_element = self._result.positions.get(section)
        if section_element is None or section_element.self_closing:
            edit = self._queue_section_block(section, section_element, entry)
        else:
            edit = self._push(self._insert_into(section_element, entry, f"add {section}/{key}"))
        self._pending_keys[(section, key)] = edit
        return edit

    def _insert_into(self, section: ElementPosition, entry: str, label: str) -> Edit:
        buf = self._buf
        nl = self._newline
        close_offset = section.content_range.end.offset
        if nl is None:
            return Edit.add(self._lines.position(close_offset), entry, label=label)

        indent = self._child_indent(section)
        line_start = _line_start(buf, close_offset)
        if not buf[line_start:close_offset].strip():
            # Closing tag on its own line: insert a full line before it
            return Edit.add(
                self._lines.position(line_start), f"{indent}{entry}{nl}", label=label,
            )
        if not section.content_range.slice(buf).strip():
            parent_indent = _line_indent(buf, section.range.start.offset)
            text = f"{nl}{indent}{entry}{nl}{parent_indent}"
        else:
            text = f"{nl}{indent}{entry}"
        return Edit.add(self._lines.position(close_offset), text, label=label)

    def _queue_section_block(
        self,
        section: str,
        element: Optional[ElementPosition],
        entry: str,
    ) -> Edit:
        """Queue a section rendered with its entries.

        Used when the section is missing (a new block before the root's
        closing tag) or self-closing (the element is rewritten). Entries
        added to the same section later in the batch re-render the block.
        """
        pending = self._pending_sections.get(section)
        entries = [entry]
        if pending is not None:
            entries = pending[1] + [entry]

        if element is None:
            edit = self._new_section(section, entries)
        else:
            edit = self._expanded_section(element, entries)

        if pending is not None:
            self._queue.remove(pending[0])
        self._push(edit)
        self._pending_sections[section] = (edit, entries)
        for pending_key in [k for k in self._pending_keys if k[0] == section]:
            self._pending_keys[pending_key] = edit
        return edit

    def _expanded_section(self, element: ElementPosition, entries: list[str]) -> Edit:
        buf = self._buf
        nl = self._newline
        tag = element.tag_name
        opening = element.range.slice(buf).decode("utf-8").rstrip()[:-2].rstrip() + ">"
        label = f"expand {element.path}"
        if nl is None:
            return Edit.update(element.range, f"{opening}{''.join(entries)}</{tag}>", label=label)

        parent_indent = _line_indent(buf, element.range.start.offset)
        child_indent = parent_indent + self._indent_unit
        lines = [opening] + [f"{child_indent}{e}" for e in entries] + [f"{parent_indent}</{tag}>"]
        return Edit.update(element.range, nl.join(lines), label=label)

    def _new_section(self, section: str, entries: list[str]) -> Edit:
        root = self._result.positions.get(C.ROOT_ELEMENT)
        if root is None or root.content_range is None:
            raise ValidationError(
                f"document has no <{C.ROOT_ELEMENT}> element to hold <{section}>"
            )

        buf = self._buf
        nl = self._newline
        close_offset = root.content_range.end.offset
        label = f"add section {section}"

        if nl is None:
            block = f"<{section}>{''.join(entries)}</{section}>"
            return Edit.add(self._lines.position(close_offset), block, label=label)

        section_indent, unit = self._section_layout(root)
        lines = [f"{section_indent}<{section}>"]
        lines += [f"{section_indent}{unit}{e}" for e in entries]
        lines.append(f"{section_indent}</{section}>")
        block = nl.join(lines)

        line_start = _line_start(buf, close_offset)
        if not buf[line_start:close_offset].strip():
            return Edit.add(self._lines.position(line_start), block + nl, label=label)
        root_indent = _line_indent(buf, root.range.start.offset)
        return Edit.add(
            self._lines.position(close_offset), f"{nl}{block}{nl}{root_indent}", label=label,
        )

    # ------------------------------------------------------------------
    # Indentation inference
    # ------------------------------------------------------------------

    def _child_indent(self, section: ElementPosition) -> str:
        """Indent of the last child that starts its own line, else parent + unit."""
        for child in reversed(self._result.positions.children(section.path)):
            indent = _leading_whitespace(self._buf, child.range.start.offset)
            if indent is not None:
                return indent
        return _line_indent(self._buf, section.range.start.offset) + self._indent_unit

    def _section_layout(self, root: ElementPosition) -> tuple[str, str]:
        """(indent of a section, one indentation level) as used in the document."""
        root_indent = _line_indent(self._buf, root.range.start.offset)
        unit = self._indent_unit
        sections = self._result.positions.children(root.path)
        for section in sections:
            section_indent = _leading_whitespace(self._buf, section.range.start.offset)
            if section_indent is None:
                continue
            child_indent = self._child_indent(section)
            if child_indent.startswith(section_indent) and len(child_indent) > len(section_indent):
                unit = child_indent[len(section_indent):]
            return section_indent, unit
        return root_indent + unit, unit


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _require(value, what: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{what} must be a non-empty string")
    if _ILLEGAL_CHARS.search(value):
        raise ValidationError(f"{what} contains characters that cannot appear in XML")


def _escape_attr(value: str, quote: str) -> str:
    entities = {"\n": "&#10;", "\r": "&#13;", "\t": "&#9;"}
    entities[quote] = "&quot;" if quote == '"' else "&apos;"
    return escape(value, entities)


def _render_add(attributes: dict[str, str]) -> str:
    quote = '"'
    rendered = " ".join(
        f"{name}={quote}{_escape_attr(value, quote)}{quote}"
        for name, value in attributes.items()
    )
    return f"<{C.ADD_ELEMENT} {rendered} />"


def _preferred_quote(element: ElementPosition) -> str:
    if C.VALUE_ATTR in element.attr_quotes:
        return element.attr_quotes[C.VALUE_ATTR]
    for quote in element.attr_quotes.values():
        return quote
    return '"'


def _line_start(buf: bytes, offset: int) -> int:
    return buf.rfind(b"\n", 0, offset) + 1


def _line_indent(buf: bytes, offset: int) -> str:
    """Leading spaces/tabs of the line containing *offset*."""
    start = _line_start(buf, offset)
    end = start
    while end < len(buf) and buf[end:end + 1] in (b" ", b"\t"):
        end += 1
    return buf[start:end].decode("ascii")


def _leading_whitespace(buf: bytes, offset: int) -> Optional[str]:
    """Whitespace before *offset* on its line, or None if anything else precedes it."""
    prefix = buf[_line_start(buf, offset):offset]
    if prefix.strip():
        return None
    return prefix.decode("ascii")
