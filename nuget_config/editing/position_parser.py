"""
Position-tracking parser — walks the raw config bytes once, building the
logical :class:`NuGetConfig` while recording the byte/line/column span of
every element the editor may later target, and of each attribute value.

The tokenizer is deliberately small: it understands exactly the XML a
config file uses (declaration, comments, CDATA, DOCTYPE, tags with
quoted attributes, text) and rejects anything malformed with a
:class:`ParseError` that carries line/column/context.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Optional, Union

from .. import constants as C
from ..errors import ParseError
from ..models import ConfigBuilder, NuGetConfig, check_root
from .positions import ElementPosition, LineMap, PositionIndex, Range, entry_path

logger = logging.getLogger(__name__)

_BOM = b"\xef\xbb\xbf"

_NAME = rb"[A-Za-z_:][-A-Za-z0-9_.:]*"
_START_TAG = re.compile(rb"<(" + _NAME + rb")")
_END_TAG = re.compile(rb"</(" + _NAME + rb")\s*>")
_ATTR = re.compile(rb"\s+(" + _NAME + rb")\s*=\s*([\"'])")
_TAG_CLOSE = re.compile(rb"\s*(/?)>")

_REFERENCE = re.compile(r"&(#x[0-9A-Fa-f]+|#[0-9]+|[A-Za-z]+);|[\t\n]|&")
_NAMED_ENTITIES = {"amp": "&", "lt": "<", "gt": ">", "quot": '"', "apos": "'"}

# Roles of elements on the open-element stack
_ROOT = "root"
_SECTION = "section"
_CREDENTIAL_SOURCE = "credential_source"
_ENTRY = "entry"
_OTHER = "other"


@dataclass(frozen=True)
class ParseResult:
    """Immutable snapshot produced by one parse call.

    Invalidated as soon as its bytes are edited: to keep editing the
    output of :func:`apply_edits`, parse that output again.
    """
    config: NuGetConfig
    positions: PositionIndex
    original: bytes


@dataclass
class _Frame:
    tag: str
    role: str
    start: int
    start_tag_end: int
    attributes: dict[str, str]
    attr_ranges: dict[str, Range]
    attr_quotes: dict[str, str]
    path: str = ""
    parent: str = ""
    section: str = ""
    credential_name: str = ""
    slot: Optional[int] = None
    child_counts: dict[tuple, int] = field(default_factory=dict)


def parse_with_positions(data: Union[bytes, str]) -> ParseResult:
    """Parse *data* and return the (config, positions, original) triple.

    Raises
    ------
    ParseError
        The markup is malformed.
    FormatError
        The markup is well-formed but lacks required structure.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    walker = _Walker(bytes(data))
    result = walker.run()
    logger.debug(
        "[PosParse] Tracked %d elements in %d bytes",
        len(result.positions), len(result.original),
    )
    return result


class _Walker:
    """Single-pass tokenizer + builder over one buffer."""

    def __init__(self, buffer: bytes) -> None:
        self.buf = buffer
        self.lines = LineMap(buffer)
        self.builder = ConfigBuilder()
        self.stack: list[_Frame] = []
        self.slots: list[Optional[ElementPosition]] = []
        self.root_seen = False
        self.bare_sources = False

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    def run(self) -> ParseResult:
        buf = self.buf
        try:
            buf.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise self._error("document is not valid UTF-8", exc.start) from exc

        pos = len(_BOM) if buf.startswith(_BOM) else 0
        size = len(buf)

        while pos < size:
            lt = buf.find(b"<", pos)
            text_end = size if lt == -1 else lt
            if text_end > pos:
                self._text(pos, text_end)
            if lt == -1:
                break
            pos = self._markup(lt)

        if self.stack:
            frame = self.stack[-1]
            raise self._error(
                f"unclosed element <{frame.tag}>", frame.start,
            )
        if not self.root_seen:
            raise self._error("no root element found", min(pos, size))

        elements = [e for e in self.slots if e is not None]
        return ParseResult(
            config=self.builder.build(),
            positions=PositionIndex(elements),
            original=buf,
        )

    def _text(self, start: int, end: int) -> None:
        if self.stack:
            return
        chunk = self.buf[start:end]
        if chunk.strip():
            offset = start + (len(chunk) - len(chunk.lstrip()))
            raise self._error("text content outside the root element", offset)

    def _markup(self, lt: int) -> int:
        buf = self.buf
        if buf.startswith(b"<!--", lt):
            return self._skip_to(lt, b"-->", "unterminated comment")
        if buf.startswith(b"<![CDATA[", lt):
            if not self.stack:
                raise self._error("CDATA section outside the root element", lt)
            return self._skip_to(lt, b"]]>", "unterminated CDATA section")
        if buf.startswith(b"<?", lt):
            return self._skip_to(lt, b"?>", "unterminated processing instruction")
        if buf.startswith(b"<!DOCTYPE", lt):
            return self._doctype(lt)
        if buf.startswith(b"<!", lt):
            raise self._error("unsupported markup declaration", lt)
        if buf.startswith(b"</", lt):
            return self._end_tag(lt)
        return self._start_tag(lt)

    def _skip_to(self, lt: int, terminator: bytes, message: str) -> int:
        end = self.buf.find(terminator, lt + 2)
        if end == -1:
            raise self._error(message, lt)
        return end + len(terminator)

    def _doctype(self, lt: int) -> int:
        if self.root_seen:
            raise self._error("DOCTYPE after the root element", lt)
        close = self.buf.find(b">", lt)
        bracket = self.buf.find(b"[", lt)
        if bracket != -1 and (close == -1 or bracket < close):
            subset_end = self.buf.find(b"]", bracket)
            if subset_end == -1:
                raise self._error("unterminated DOCTYPE internal subset", lt)
            close = self.buf.find(b">", subset_end)
        if close == -1:
            raise self._error("unterminated DOCTYPE", lt)
        return close + 1

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    def _start_tag(self, lt: int) -> int:
        buf = self.buf
        match = _START_TAG.match(buf, lt)
        if match is None:
            raise self._error("invalid tag", lt)
        tag = match.group(1).decode("ascii")

        if not self.stack and self.root_seen:
            raise self._error(f"second root element <{tag}>", lt)

        attributes: dict[str, str] = {}
        attr_ranges: dict[str, Range] = {}
        attr_quotes: dict[str, str] = {}
        pos = match.end()
        while True:
            close = _TAG_CLOSE.match(buf, pos)
            if close is not None:
                self_closing = close.group(1) == b"/"
                tag_end = close.end()
                break
            attr = _ATTR.match(buf, pos)
            if attr is None:
                if pos >= len(buf):
                    raise self._error(f"unterminated start tag <{tag}>", lt)
                raise self._error(f"malformed attribute in <{tag}>", pos)
            name = attr.group(1).decode("ascii")
            quote = attr.group(2)
            value_start = attr.end()
            value_end = buf.find(quote, value_start)
            if value_end == -1:
                raise self._error(f"unterminated value for attribute {name!r}", attr.start(1))
            if b"<" in buf[value_start:value_end]:
                raise self._error(f"'<' in value of attribute {name!r}", value_start)
            if name in attributes:
                raise self._error(f"duplicate attribute {name!r}", attr.start(1))
            attributes[name] = self._attribute_value(value_start, value_end)
            attr_ranges[name] = self.lines.range(value_start, value_end)
            attr_quotes[name] = quote.decode("ascii")
            pos = value_end + 1

        frame = _Frame(
            tag=tag,
            role=_OTHER,
            start=lt,
            start_tag_end=tag_end,
            attributes=attributes,
            attr_ranges=attr_ranges,
            attr_quotes=attr_quotes,
        )
        self._classify(frame)

        if self_closing:
            self._finish(frame, tag_end, content_end=None)
        else:
            self.stack.append(frame)
        return tag_end

    def _end_tag(self, lt: int) -> int:
        match = _END_TAG.match(self.buf, lt)
        if match is None:
            raise self._error("malformed end tag", lt)
        tag = match.group(1).decode("ascii")
        if not self.stack:
            raise self._error(f"unexpected end tag </{tag}>", lt)
        frame = self.stack.pop()
        if frame.tag != tag:
            raise self._error(
                f"mismatched end tag </{tag}>, expected </{frame.tag}>", lt,
            )
        self._finish(frame, match.end(), content_end=lt)
        return match.end()

    # ------------------------------------------------------------------
    # Element bookkeeping
    # ------------------------------------------------------------------

    def _classify(self, frame: _Frame) -> None:
        """Decide the element's role, assign its path, feed the builder."""
        if not self.stack:
            self.root_seen = True
            self.bare_sources = check_root(frame.tag)
            frame.role = _SECTION if self.bare_sources else _ROOT
            frame.path = frame.tag
            frame.section = frame.tag
            if self.bare_sources:
                self.builder.open_section(frame.tag, frame.attributes)
            self._reserve(frame)
            return

        parent = self.stack[-1]
        if parent.role == _ROOT:
            if frame.tag not in C.KNOWN_SECTIONS:
                return
            frame.role = _SECTION
            frame.section = frame.tag
            frame.parent = parent.path
            frame.path = frame.tag
            self.builder.open_section(frame.tag, frame.attributes)
        elif parent.role == _SECTION and parent.section == C.PACKAGE_SOURCE_CREDENTIALS:
            frame.role = _CREDENTIAL_SOURCE
            frame.section = parent.section
            frame.parent = parent.path
            count = _bump(parent.child_counts, (frame.tag,))
            frame.path = _numbered(f"{parent.path}/{frame.tag}", count)
            frame.credential_name = self.builder.open_credential_source(frame.tag)
        elif parent.role == _SECTION:
            frame.role = _ENTRY
            frame.section = parent.section
            frame.parent = parent.path
            frame.path = self._entry_path(parent, frame)
            self.builder.add_entry(parent.section, frame.tag, frame.attributes)
        elif parent.role == _CREDENTIAL_SOURCE:
            frame.role = _ENTRY
            frame.section = parent.section
            frame.parent = parent.path
            frame.path = self._entry_path(parent, frame)
            self.builder.add_credential(parent.credential_name, frame.tag, frame.attributes)
        else:
            return
        self._reserve(frame)

    def _entry_path(self, parent: _Frame, frame: _Frame) -> str:
        key = frame.attributes.get(C.KEY_ATTR)
        count = _bump(parent.child_counts, (frame.tag, key))
        if key is None and frame.tag == C.CLEAR_ELEMENT and count == 1:
            return f"{parent.path}/{frame.tag}"
        return entry_path(parent.path, frame.tag, key, count)

    def _reserve(self, frame: _Frame) -> None:
        frame.slot = len(self.slots)
        self.slots.append(None)

    def _finish(self, frame: _Frame, end: int, content_end: Optional[int]) -> None:
        if frame.slot is None:
            return
        if content_end is None:
            content_range = None
            inner = ""
        else:
            content_range = self.lines.range(frame.start_tag_end, content_end)
            inner = self.buf[frame.start_tag_end:content_end].decode("utf-8")
        self.slots[frame.slot] = ElementPosition(
            tag_name=frame.tag,
            attributes=frame.attributes,
            range=self.lines.range(frame.start, end),
            attr_ranges=frame.attr_ranges,
            inner_content=inner,
            self_closing=content_end is None,
            start_tag_range=self.lines.range(frame.start, frame.start_tag_end),
            content_range=content_range,
            attr_quotes=frame.attr_quotes,
            path=frame.path,
            parent=frame.parent,
        )

    # ------------------------------------------------------------------
    # Values and errors
    # ------------------------------------------------------------------

    def _attribute_value(self, start: int, end: int) -> str:
        # The whole buffer was checked for valid UTF-8 in run()
        raw = self.buf[start:end].decode("utf-8")

        def _replace(match: re.Match) -> str:
            if match.group(0) in ("\t", "\n"):
                return " "
            ref = match.group(1)
            if ref is None:
                raise self._error("bare '&' in attribute value", start)
            if ref.startswith("#"):
                code = int(ref[2:], 16) if ref.startswith("#x") else int(ref[1:])
                if not _is_xml_char(code):
                    raise self._error(f"invalid character reference &{ref};", start)
                return chr(code)
            if ref in _NAMED_ENTITIES:
                return _NAMED_ENTITIES[ref]
            raise self._error(f"undefined entity &{ref};", start)

        return _REFERENCE.sub(_replace, raw.replace("\r\n", "\n").replace("\r", "\n"))

    def _error(self, message: str, offset: int) -> ParseError:
        position = self.lines.position(min(offset, len(self.buf)))
        line_start = offset - (position.column - 1)
        line_end = self.buf.find(b"\n", line_start)
        if line_end == -1:
            line_end = len(self.buf)
        context = self.buf[line_start:line_end].decode("utf-8", errors="replace").strip()
        logger.debug("[PosParse] %s at %d:%d", message, position.line, position.column)
        return ParseError(message, position.line, position.column, context[:120])


def _is_xml_char(code: int) -> bool:
    """The XML 1.0 ``Char`` production."""
    return (
        code in (0x9, 0xA, 0xD)
        or 0x20 <= code <= 0xD7FF
        or 0xE000 <= code <= 0xFFFD
        or 0x10000 <= code <= 0x10FFFF
    )


def _bump(counts: dict[tuple, int], key: tuple) -> int:
    counts[key] = counts.get(key, 0) + 1
    return counts[key]


def _numbered(path: str, count: int) -> str:
    return path if count == 1 else f"{path}[{count}]"
