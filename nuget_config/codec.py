"""
Conventional codec — bytes <-> NuGetConfig through lxml.

Formatting is regenerated on serialize; use the position-aware editor
(``nuget_config.editing``) when the original bytes must be preserved.
"""

from __future__ import annotations

import logging
from typing import Union

from lxml import etree

from . import constants as C
from .errors import ParseError
from .models import ConfigBuilder, NuGetConfig, check_root, encode_source_name

logger = logging.getLogger(__name__)


def _make_parser() -> etree.XMLParser:
    return etree.XMLParser(
        resolve_entities=False,
        load_dtd=False,
        no_network=True,
        remove_comments=True,
    )


def parse_config(data: Union[bytes, str]) -> NuGetConfig:
    """Parse a config document into its logical model.

    Raises
    ------
    ParseError
        lxml rejected the markup.
    FormatError
        Required structure is missing.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    if not data.strip():
        raise ParseError("empty document")

    try:
        root = etree.fromstring(data, _make_parser())
    except etree.XMLSyntaxError as exc:
        line, column = exc.position if exc.position else (0, 0)
        raise ParseError(exc.msg or str(exc), line, column) from exc

    builder = ConfigBuilder()
    if check_root(root.tag):
        _read_section(builder, root)
    else:
        for section in _elements(root):
            if section.tag in C.KNOWN_SECTIONS:
                _read_section(builder, section)
    config = builder.build()
    logger.debug(
        "[Codec] Parsed %d package sources", len(config.package_sources.sources),
    )
    return config


def _elements(parent: etree._Element) -> list[etree._Element]:
    # Processing instructions and entities have non-string tags
    return [child for child in parent if isinstance(child.tag, str)]


def _read_section(builder: ConfigBuilder, section: etree._Element) -> None:
    builder.open_section(section.tag, dict(section.attrib))
    for child in _elements(section):
        if section.tag == C.PACKAGE_SOURCE_CREDENTIALS:
            name = builder.open_credential_source(child.tag)
            for entry in _elements(child):
                builder.add_credential(name, entry.tag, dict(entry.attrib))
        else:
            builder.add_entry(section.tag, child.tag, dict(child.attrib))


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

def build_tree(config: NuGetConfig) -> etree._Element:
    """Build the lxml element tree for *config*."""
    root = etree.Element(C.ROOT_ELEMENT)

    sources = etree.SubElement(root, C.PACKAGE_SOURCES)
    if config.package_sources.clear:
        etree.SubElement(sources, C.CLEAR_ELEMENT)
    for source in config.package_sources.sources:
        _add_entry(sources, source.key, source.value, source.protocol_version)

    if config.package_source_credentials is not None:
        credentials = etree.SubElement(root, C.PACKAGE_SOURCE_CREDENTIALS)
        for name, block in config.package_source_credentials.sources.items():
            element = etree.SubElement(credentials, encode_source_name(name))
            for entry in block.entries:
                _add_entry(element, entry.key, entry.value)

    if config.config is not None:
        section = etree.SubElement(root, C.CONFIG_SECTION)
        for option in config.config.options:
            _add_entry(section, option.key, option.value)

    if config.disabled_package_sources is not None:
        section = etree.SubElement(root, C.DISABLED_PACKAGE_SOURCES)
        for disabled in config.disabled_package_sources.sources:
            _add_entry(section, disabled.key, disabled.value)

    if config.active_package_source is not None:
        section = etree.SubElement(root, C.ACTIVE_PACKAGE_SOURCE)
        active = config.active_package_source
        _add_entry(section, active.key, active.value, active.protocol_version)

    return root


def _add_entry(parent: etree._Element, key: str, value: str, protocol_version=None) -> None:
    attributes = {C.KEY_ATTR: key, C.VALUE_ATTR: value}
    if protocol_version:
        attributes[C.PROTOCOL_VERSION_ATTR] = protocol_version
    etree.SubElement(parent, C.ADD_ELEMENT, attributes)


def serialize_config(config: NuGetConfig) -> bytes:
    """Render *config* as a pretty-printed UTF-8 document with declaration."""
    data = etree.tostring(
        build_tree(config),
        xml_declaration=True,
        encoding="utf-8",
        pretty_print=True,
    )
    logger.debug("[Codec] Serialized config (%d bytes)", len(data))
    return data
