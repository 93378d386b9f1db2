"""
Configuration — loads tool settings from .nugetcfg.yaml, environment
variables, and built-in defaults (in that priority order: CLI args > env >
YAML > defaults).

These are settings of the tool itself, not the NuGet config documents it
edits.
"""

import os

import yaml

from . import constants as C


_DEFAULTS = {
    "indent": "  ",
    "config_env_var": C.CONFIG_FILE_ENV_VAR,
    "search_paths": [],
    "protocol_version": None,
    "log_level": "WARNING",
}

# Config file search locations
_CONFIG_FILENAMES = [".nugetcfg.yaml", ".nugetcfg.yml"]


def _find_config_file(explicit_path: str | None = None) -> str | None:
    """Find the config file. Checks explicit path, CWD, then user home."""
    if explicit_path:
        if os.path.isfile(explicit_path):
            return explicit_path
        return None

    search_dirs = [os.getcwd(), os.path.expanduser("~")]
    for d in search_dirs:
        for name in _CONFIG_FILENAMES:
            path = os.path.join(d, name)
            if os.path.isfile(path):
                return path
    return None


def _load_yaml(path: str) -> dict:
    """Load YAML file, returns empty dict on failure."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError):
        return {}


class Config:
    """Tool settings.

    Settings are resolved in priority order:
    1. CLI arguments (handled by caller)
    2. Environment variables
    3. .nugetcfg.yaml config file
    4. Built-in defaults
    """

    def __init__(self, yaml_data: dict | None = None):
        yd = yaml_data or {}

        # Helper: env var > yaml > default
        def _get(env_key: str, yaml_key: str, default, cast=str):
            env_val = os.getenv(env_key)
            if env_val is not None:
                return cast(env_val)
            yaml_val = yd.get(yaml_key)
            if yaml_val is not None:
                return cast(yaml_val)
            return default

        # Indent unit for entries the editor has to synthesise
        self.DEFAULT_INDENT = _get("NUGETCFG_INDENT", "indent", _DEFAULTS["indent"])
        if not self.DEFAULT_INDENT or self.DEFAULT_INDENT.strip(" \t"):
            self.DEFAULT_INDENT = _DEFAULTS["indent"]

        self.CONFIG_FILE_ENV_VAR = _get("NUGETCFG_CONFIG_ENV_VAR", "config_env_var",
                                        _DEFAULTS["config_env_var"])
        self.DEFAULT_PROTOCOL_VERSION = _get("NUGETCFG_PROTOCOL_VERSION",
                                             "protocol_version",
                                             _DEFAULTS["protocol_version"])
        self.LOG_LEVEL = _get("NUGETCFG_LOG_LEVEL", "log_level",
                              _DEFAULTS["log_level"]).upper()

        # Extra NuGet.Config candidates, searched before the defaults
        self.SEARCH_PATHS: list[str] = yd.get("search_paths", _DEFAULTS["search_paths"])
        if not isinstance(self.SEARCH_PATHS, list):
            self.SEARCH_PATHS = []
        self.SEARCH_PATHS = [str(p) for p in self.SEARCH_PATHS]

    @classmethod
    def load(cls, config_path: str | None = None) -> "Config":
        """Load config from YAML file (if found) + env vars + defaults."""
        path = _find_config_file(config_path)
        yaml_data = _load_yaml(path) if path else {}
        return cls(yaml_data)
