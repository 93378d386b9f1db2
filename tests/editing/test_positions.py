"""Tests for Position / Range / LineMap / PositionIndex."""

import pytest

from nuget_config.editing.positions import (
    ElementPosition,
    LineMap,
    Position,
    PositionIndex,
    Range,
    entry_path,
)


def _range(start: int, end: int) -> Range:
    return Range(Position(1, start + 1, start), Position(1, end + 1, end))


class TestRange:
    def test_rejects_inverted_range(self):
        with pytest.raises(ValueError):
            _range(5, 3)

    def test_length_and_empty(self):
        assert _range(2, 7).length == 5
        assert _range(4, 4).is_empty
        assert not _range(4, 5).is_empty

    def test_contains_is_half_open(self):
        rng = _range(2, 5)
        assert rng.contains(2)
        assert rng.contains(4)
        assert not rng.contains(5)

    def test_slice(self):
        assert _range(1, 4).slice(b"abcdef") == b"bcd"

    def test_overlapping_ranges_intersect(self):
        assert _range(0, 5).intersects(_range(4, 8))
        assert _range(4, 8).intersects(_range(0, 5))

    def test_adjacent_ranges_do_not_intersect(self):
        assert not _range(0, 5).intersects(_range(5, 8))

    def test_point_inside_range_intersects(self):
        assert _range(3, 3).intersects(_range(0, 5))
        assert _range(0, 5).intersects(_range(3, 3))

    def test_point_on_boundary_does_not_intersect(self):
        assert not _range(0, 0).intersects(_range(0, 5))
        assert not _range(5, 5).intersects(_range(0, 5))

    def test_points_intersect_only_when_equal(self):
        assert _range(2, 2).intersects(_range(2, 2))
        assert not _range(2, 2).intersects(_range(3, 3))

    def test_point_constructor(self):
        pos = Position(2, 3, 10)
        rng = Range.point(pos)
        assert rng.start == rng.end == pos
        assert rng.is_empty


class TestLineMap:
    def test_positions_are_one_based(self):
        lines = LineMap(b"ab\ncd\n")
        assert lines.position(0) == Position(1, 1, 0)
        assert lines.position(1) == Position(1, 2, 1)
        assert lines.position(3) == Position(2, 1, 3)
        assert lines.position(4) == Position(2, 2, 4)

    def test_end_of_buffer_is_valid(self):
        lines = LineMap(b"ab\n")
        assert lines.position(3) == Position(2, 1, 3)

    def test_columns_count_bytes(self):
        data = "é<x/>".encode("utf-8")
        lines = LineMap(data)
        assert lines.position(data.index(b"<")).column == 3

    def test_out_of_range_offset(self):
        with pytest.raises(ValueError):
            LineMap(b"abc").position(4)

    def test_range_helper(self):
        rng = LineMap(b"ab\ncd").range(1, 4)
        assert rng.start == Position(1, 2, 1)
        assert rng.end == Position(2, 2, 4)


def _element(path: str, parent: str = "", tag: str = "add") -> ElementPosition:
    return ElementPosition(
        tag_name=tag,
        attributes={},
        range=_range(0, 1),
        attr_ranges={},
        path=path,
        parent=parent,
    )


class TestPositionIndex:
    def test_mapping_protocol(self):
        index = PositionIndex([
            _element("packageSources", tag="packageSources"),
            _element("packageSources/add[key=a]", "packageSources"),
        ])
        assert len(index) == 2
        assert list(index) == ["packageSources", "packageSources/add[key=a]"]
        assert index["packageSources/add[key=a]"].parent == "packageSources"
        assert index.get("missing") is None

    def test_duplicate_paths_are_rejected(self):
        with pytest.raises(ValueError):
            PositionIndex([_element("a"), _element("a")])

    def test_children_filters_by_parent(self):
        index = PositionIndex([
            _element("packageSources", tag="packageSources"),
            _element("packageSources/clear", "packageSources", tag="clear"),
            _element("packageSources/add[key=a/b]", "packageSources"),
            _element("config", tag="config"),
            _element("config/add[key=x]", "config"),
        ])
        children = index.children("packageSources")
        assert [c.path for c in children] == [
            "packageSources/clear", "packageSources/add[key=a/b]",
        ]
        assert [c.path for c in index.children("packageSources", tag="add")] == [
            "packageSources/add[key=a/b]",
        ]

    def test_find_by_key(self):
        index = PositionIndex([_element("config/add[key=x]", "config")])
        assert index.find("config", "x").path == "config/add[key=x]"
        assert index.find("config", "y") is None


class TestEntryPath:
    def test_keyed(self):
        assert entry_path("packageSources", "add", "nuget.org") == "packageSources/add[key=nuget.org]"

    def test_repeated_key(self):
        assert entry_path("packageSources", "add", "a", 2) == "packageSources/add[key=a][2]"

    def test_keyless(self):
        assert entry_path("packageSources", "add", None, 3) == "packageSources/add[3]"
