"""
ConfigManager — file I/O plus CRUD helpers over a NuGetConfig object.

The CRUD helpers rewrite the whole document through the lxml codec on
save. For edits that must leave the rest of the file byte-for-byte
untouched, load with :meth:`ConfigManager.load_with_positions` and use a
:class:`~nuget_config.editing.ConfigEditor` instead.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from . import constants as C
from .codec import parse_config, serialize_config
from .editing.position_parser import ParseResult, parse_with_positions
from .errors import FormatError, NotFoundError
from .finder import ConfigFinder
from .models import (
    ConfigOption,
    ConfigSection,
    Credential,
    DisabledPackageSources,
    DisabledSource,
    NuGetConfig,
    PackageSource,
    PackageSourceCredentials,
    PackageSources,
    SourceCredential,
)

logger = logging.getLogger(__name__)


class ConfigManager:
    """Loads, saves and manipulates NuGet config documents."""

    def __init__(self, finder: Optional[ConfigFinder] = None) -> None:
        self.finder = finder or ConfigFinder()

    # ------------------------------------------------------------------
    # File I/O
    # ------------------------------------------------------------------

    def read_bytes(self, path: str) -> bytes:
        if not os.path.isfile(path):
            raise NotFoundError(f"config file not found: {path}")
        with open(path, "rb") as f:
            data = f.read()
        if not data.strip():
            raise FormatError(f"config file is empty: {path}")
        return data

    def load_config(self, path: str) -> NuGetConfig:
        return parse_config(self.read_bytes(path))

    def load_with_positions(self, path: str) -> ParseResult:
        return parse_with_positions(self.read_bytes(path))

    def find_and_load_config(self) -> tuple[NuGetConfig, str]:
        """Load the first config the finder locates; returns (config, path)."""
        path = self.finder.find_config_file()
        return self.load_config(path), path

    def save_config(self, config: NuGetConfig, path: str) -> None:
        self.write_bytes(path, serialize_config(config))

    @staticmethod
    def write_bytes(path: str, data: bytes) -> None:
        """Write *data* atomically via temp file + replace."""
        abs_path = os.path.abspath(path)
        tmp_path = abs_path + ".nugetcfg_tmp"
        try:
            with open(tmp_path, "wb") as f:
                f.write(data)
            os.replace(tmp_path, abs_path)
        except Exception:
            # Clean up temp file on failure
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        logger.debug("[Manager] Wrote %d bytes to %s", len(data), abs_path)

    def create_default_config(self) -> NuGetConfig:
        """A config with nuget.org as the only (and active) source."""
        def _default_source() -> PackageSource:
            return PackageSource(
                key=C.DEFAULT_SOURCE_KEY,
                value=C.DEFAULT_PACKAGE_SOURCE,
                protocol_version=C.PROTOCOL_VERSION_V3,
            )

        return NuGetConfig(
            package_sources=PackageSources(sources=[_default_source()]),
            active_package_source=_default_source(),
        )

    def initialize_default_config(self, path: str) -> NuGetConfig:
        directory = os.path.dirname(os.path.abspath(path))
        os.makedirs(directory, exist_ok=True)
        config = self.create_default_config()
        self.save_config(config, path)
        logger.info("[Manager] Initialized default config at %s", path)
        return config

    # ------------------------------------------------------------------
    # Package sources
    # ------------------------------------------------------------------

    def add_package_source(self, config: NuGetConfig, key: str, value: str,
                           protocol_version: Optional[str] = None) -> None:
        """Add *key*, or update it in place when it already exists."""
        existing = config.get_source(key)
        if existing is not None:
            existing.value = value
            if protocol_version:
                existing.protocol_version = protocol_version
            return
        config.package_sources.sources.append(
            PackageSource(key=key, value=value, protocol_version=protocol_version or None)
        )

    def remove_package_source(self, config: NuGetConfig, key: str) -> bool:
        sources = config.package_sources.sources
        for i, source in enumerate(sources):
            if source.key == key:
                del sources[i]
                return True
        return False

    def get_package_source(self, config: NuGetConfig, key: str) -> Optional[PackageSource]:
        return config.get_source(key)

    def get_all_package_sources(self, config: NuGetConfig) -> list[PackageSource]:
        return list(config.package_sources.sources)

    def set_active_package_source(self, config: NuGetConfig, key: str) -> None:
        source = config.get_source(key)
        if source is None:
            raise NotFoundError(f"package source {key!r} not found")
        config.active_package_source = PackageSource(
            key=source.key, value=source.value, protocol_version=source.protocol_version,
        )

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    def add_credential(self, config: NuGetConfig, source_key: str, username: str,
                       password: str, clear_text: bool = True) -> None:
        """Replace the credential block for *source_key*."""
        if config.package_source_credentials is None:
            config.package_source_credentials = PackageSourceCredentials()
        password_key = C.CLEAR_TEXT_PASSWORD_KEY if clear_text else C.PASSWORD_KEY
        config.package_source_credentials.sources[source_key] = SourceCredential(entries=[
            Credential(key=C.USERNAME_KEY, value=username),
            Credential(key=password_key, value=password),
        ])

    def remove_credential(self, config: NuGetConfig, source_key: str) -> bool:
        credentials = config.package_source_credentials
        if credentials is None or source_key not in credentials.sources:
            return False
        del credentials.sources[source_key]
        return True

    # ------------------------------------------------------------------
    # Disabled sources
    # ------------------------------------------------------------------

    def disable_package_source(self, config: NuGetConfig, key: str) -> None:
        if config.disabled_package_sources is None:
            config.disabled_package_sources = DisabledPackageSources()
        for disabled in config.disabled_package_sources.sources:
            if disabled.key == key:
                disabled.value = "true"
                return
        config.disabled_package_sources.sources.append(DisabledSource(key=key, value="true"))

    def enable_package_source(self, config: NuGetConfig, key: str) -> bool:
        if config.disabled_package_sources is None:
            return False
        sources = config.disabled_package_sources.sources
        for i, disabled in enumerate(sources):
            if disabled.key == key:
                del sources[i]
                return True
        return False

    def is_package_source_disabled(self, config: NuGetConfig, key: str) -> bool:
        return config.is_disabled(key)

    # ------------------------------------------------------------------
    # Config options
    # ------------------------------------------------------------------

    def add_config_option(self, config: NuGetConfig, key: str, value: str) -> None:
        if config.config is None:
            config.config = ConfigSection()
        for option in config.config.options:
            if option.key == key:
                option.value = value
                return
        config.config.options.append(ConfigOption(key=key, value=value))

    def remove_config_option(self, config: NuGetConfig, key: str) -> bool:
        if config.config is None:
            return False
        options = config.config.options
        for i, option in enumerate(options):
            if option.key == key:
                del options[i]
                return True
        return False

    def get_config_option(self, config: NuGetConfig, key: str) -> str:
        """Option value, or ``""`` when it is not set."""
        value = config.get_option(key)
        return "" if value is None else value
