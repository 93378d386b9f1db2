"""
Logical model of a NuGet config document, plus the builder that both
parsers (lxml codec and position-tracking parser) feed while walking the
markup, so the two modes always agree on the object they produce.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Optional

from . import constants as C
from .errors import FormatError

logger = logging.getLogger(__name__)

_ENCODED_CHAR = re.compile(r"_x([0-9A-Fa-f]{4})_")


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass
class PackageSource:
    """A single ``<add>`` entry of ``packageSources``."""
    key: str
    value: str
    protocol_version: Optional[str] = None


@dataclass
class PackageSources:
    sources: list[PackageSource] = field(default_factory=list)
    clear: bool = False


@dataclass
class Credential:
    """One key/value pair of a credential block (Username, ClearTextPassword...)."""
    key: str
    value: str


@dataclass
class SourceCredential:
    """All credential pairs stored under one source-name element."""
    entries: list[Credential] = field(default_factory=list)

    def get(self, key: str) -> Optional[str]:
        for entry in self.entries:
            if entry.key == key:
                return entry.value
        return None

    @property
    def username(self) -> Optional[str]:
        return self.get(C.USERNAME_KEY)

    @property
    def password(self) -> Optional[str]:
        clear = self.get(C.CLEAR_TEXT_PASSWORD_KEY)
        return clear if clear is not None else self.get(C.PASSWORD_KEY)


@dataclass
class PackageSourceCredentials:
    """Ordered map of source name -> credential block.

    Names are stored decoded (``My Feed``, not ``My_x0020_Feed``).
    """
    sources: dict[str, SourceCredential] = field(default_factory=dict)


@dataclass
class ConfigOption:
    key: str
    value: str


@dataclass
class ConfigSection:
    options: list[ConfigOption] = field(default_factory=list)


@dataclass
class DisabledSource:
    key: str
    value: str = "true"


@dataclass
class DisabledPackageSources:
    sources: list[DisabledSource] = field(default_factory=list)


@dataclass
class NuGetConfig:
    """A complete NuGet config document."""
    package_sources: PackageSources = field(default_factory=PackageSources)
    package_source_credentials: Optional[PackageSourceCredentials] = None
    config: Optional[ConfigSection] = None
    disabled_package_sources: Optional[DisabledPackageSources] = None
    active_package_source: Optional[PackageSource] = None

    def get_source(self, key: str) -> Optional[PackageSource]:
        for source in self.package_sources.sources:
            if source.key == key:
                return source
        return None

    def has_source(self, key: str) -> bool:
        return self.get_source(key) is not None

    def get_option(self, key: str) -> Optional[str]:
        if self.config is None:
            return None
        for option in self.config.options:
            if option.key == key:
                return option.value
        return None

    def is_disabled(self, key: str) -> bool:
        if self.disabled_package_sources is None:
            return False
        return any(
            s.key == key and s.value.lower() == "true"
            for s in self.disabled_package_sources.sources
        )


# ---------------------------------------------------------------------------
# Source-name encoding (credential element names)
# ---------------------------------------------------------------------------

def decode_source_name(name: str) -> str:
    """Turn an element name like ``My_x0020_Feed`` back into ``My Feed``."""
    return _ENCODED_CHAR.sub(lambda m: chr(int(m.group(1), 16)), name)


def encode_source_name(name: str) -> str:
    """Encode characters that are not legal in an XML element name."""
    out = []
    for i, ch in enumerate(name):
        legal = ch.isalpha() or ch == "_" or (i > 0 and (ch.isdigit() or ch in "-."))
        out.append(ch if legal and ch.isascii() else f"_x{ord(ch):04X}_")
    return "".join(out)


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------

class ConfigBuilder:
    """Accumulates sections and entries in document order.

    Parsers call :meth:`open_section` for each known section, then
    :meth:`add_entry` / :meth:`add_credential` for its children, and
    finally :meth:`build`.
    """

    def __init__(self) -> None:
        self._sections: set[str] = set()
        self._sources: list[PackageSource] = []
        self._clear = False
        self._credentials: dict[str, SourceCredential] = {}
        self._options: list[ConfigOption] = []
        self._disabled: list[DisabledSource] = []
        self._active: Optional[PackageSource] = None

    def open_section(self, section: str, attributes: dict[str, str]) -> None:
        if section in self._sections:
            raise FormatError(f"duplicate <{section}> section")
        self._sections.add(section)
        if section == C.PACKAGE_SOURCES:
            if attributes.get(C.CLEAR_ELEMENT, "").lower() == "true":
                self._clear = True

    def open_credential_source(self, element_name: str) -> str:
        name = decode_source_name(element_name)
        self._credentials.setdefault(name, SourceCredential())
        return name

    def add_entry(self, section: str, tag: str, attributes: dict[str, str]) -> None:
        if section == C.PACKAGE_SOURCES and tag == C.CLEAR_ELEMENT:
            self._clear = True
            return
        if tag != C.ADD_ELEMENT:
            logger.debug("[Model] Ignoring <%s> inside <%s>", tag, section)
            return

        key = attributes.get(C.KEY_ATTR)
        if key is None:
            raise FormatError(f"<add> in <{section}> is missing its key attribute")
        value = attributes.get(C.VALUE_ATTR)

        if section == C.PACKAGE_SOURCES:
            if value is None:
                raise FormatError(f"package source {key!r} is missing its value attribute")
            self._sources.append(PackageSource(
                key=key,
                value=value,
                protocol_version=attributes.get(C.PROTOCOL_VERSION_ATTR),
            ))
        elif section == C.CONFIG_SECTION:
            self._options.append(ConfigOption(key=key, value=value or ""))
        elif section == C.DISABLED_PACKAGE_SOURCES:
            self._disabled.append(DisabledSource(key=key, value=value or ""))
        elif section == C.ACTIVE_PACKAGE_SOURCE:
            self._active = PackageSource(
                key=key,
                value=value or "",
                protocol_version=attributes.get(C.PROTOCOL_VERSION_ATTR),
            )

    def add_credential(self, source_name: str, tag: str, attributes: dict[str, str]) -> None:
        if tag != C.ADD_ELEMENT:
            return
        key = attributes.get(C.KEY_ATTR)
        if key is None:
            raise FormatError(
                f"credential entry for {source_name!r} is missing its key attribute"
            )
        block = self._credentials.setdefault(source_name, SourceCredential())
        block.entries.append(Credential(key=key, value=attributes.get(C.VALUE_ATTR, "")))

    def build(self) -> NuGetConfig:
        if C.PACKAGE_SOURCES not in self._sections:
            raise FormatError(f"missing required element <{C.PACKAGE_SOURCES}>")

        config = NuGetConfig(
            package_sources=PackageSources(sources=self._sources, clear=self._clear),
        )
        if C.PACKAGE_SOURCE_CREDENTIALS in self._sections:
            config.package_source_credentials = PackageSourceCredentials(
                sources=self._credentials,
            )
        if C.CONFIG_SECTION in self._sections:
            config.config = ConfigSection(options=self._options)
        if C.DISABLED_PACKAGE_SOURCES in self._sections:
            config.disabled_package_sources = DisabledPackageSources(sources=self._disabled)
        if C.ACTIVE_PACKAGE_SOURCE in self._sections:
            config.active_package_source = self._active
        return config


def check_root(tag: str) -> bool:
    """Validate the root element name.

    Returns True when the root itself is the ``packageSources`` section
    (a bare package-sources document), False for a ``configuration`` root.
    """
    if tag == C.ROOT_ELEMENT:
        return False
    if tag == C.PACKAGE_SOURCES:
        return True
    raise FormatError(
        f"unexpected root element <{tag}>, expected <{C.ROOT_ELEMENT}>"
    )
