"""Tests for the lxml codec."""

import pytest
from lxml import etree

from nuget_config.codec import build_tree, parse_config, serialize_config
from nuget_config.editing import parse_with_positions
from nuget_config.errors import FormatError, ParseError
from nuget_config.models import NuGetConfig, PackageSource, PackageSources


class TestParseConfig:
    def test_agrees_with_position_parser(self, full_config):
        assert parse_config(full_config) == parse_with_positions(full_config).config

    def test_agrees_on_bare_sources_document(self, single_line_sources):
        assert parse_config(single_line_sources) == parse_with_positions(single_line_sources).config

    def test_decodes_credential_names(self, full_config):
        credentials = parse_config(full_config).package_source_credentials.sources
        assert credentials["My Feed"].password == "s3cret"

    def test_syntax_error_has_location(self):
        with pytest.raises(ParseError) as excinfo:
            parse_config(b"<configuration>\n<packageSources>\n</configuration>")
        assert excinfo.value.line >= 1

    def test_empty_document(self):
        with pytest.raises(ParseError):
            parse_config(b"  ")

    def test_missing_package_sources(self):
        with pytest.raises(FormatError):
            parse_config(b"<configuration/>")

    def test_wrong_root(self):
        with pytest.raises(FormatError):
            parse_config(b"<settings/>")

    def test_repeated_section_matches_position_parser(self):
        data = (
            b'<configuration><packageSources><add key="a" value="1"/></packageSources>'
            b'<packageSources><add key="b" value="2"/></packageSources></configuration>'
        )
        with pytest.raises(FormatError):
            parse_config(data)
        with pytest.raises(FormatError):
            parse_with_positions(data)

    def test_invalid_utf8_rejected_by_both_parsers(self):
        data = b"<configuration><!-- \xff --><packageSources/></configuration>"
        with pytest.raises(ParseError):
            parse_config(data)
        with pytest.raises(ParseError):
            parse_with_positions(data)

    def test_external_entities_are_not_resolved(self):
        data = (
            b'<!DOCTYPE configuration [<!ENTITY ext SYSTEM "file:///etc/passwd">]>'
            b'<configuration><packageSources><add key="k" value="v" /></packageSources>'
            b"</configuration>"
        )
        assert parse_config(data).get_source("k").value == "v"


class TestSerializeConfig:
    def test_round_trip(self, full_config):
        config = parse_config(full_config)
        assert parse_config(serialize_config(config)) == config

    def test_declaration_and_layout(self):
        config = NuGetConfig(package_sources=PackageSources(
            sources=[PackageSource("nuget.org", "https://api.nuget.org/v3/index.json", "3")],
        ))
        data = serialize_config(config)
        assert data.startswith(b"<?xml")
        assert b'<add key="nuget.org" value="https://api.nuget.org/v3/index.json" protocolVersion="3"/>' in data
        assert b"packageSourceCredentials" not in data

    def test_credential_names_are_encoded(self, full_config):
        root = build_tree(parse_config(full_config))
        credentials = root.find("packageSourceCredentials")
        assert [child.tag for child in credentials] == ["My_x0020_Feed"]

    def test_clear_element(self, full_config):
        root = build_tree(parse_config(full_config))
        sources = root.find("packageSources")
        assert sources[0].tag == "clear"
        assert etree.tostring(sources[0]) == b"<clear/>"
