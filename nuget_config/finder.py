"""
Config discovery — where NuGet.Config files live and which one wins.

Search order: the file named by the ``NUGET_CONFIG_FILE`` environment
variable (when it exists), then the search paths (by default the current
directory, its parent, the user config dir and the machine config dir).
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Mapping, Optional

from . import constants as C
from .errors import NotFoundError

logger = logging.getLogger(__name__)


def user_config_dir(platform: Optional[str] = None,
                    environ: Optional[Mapping[str, str]] = None) -> str:
    """Per-user config directory for *platform* (``sys.platform`` style)."""
    platform = platform or sys.platform
    env = os.environ if environ is None else environ
    if platform.startswith("win"):
        return env.get("APPDATA", "")
    home = env.get("HOME") or os.path.expanduser("~")
    if platform == "darwin":
        return os.path.join(home, "Library", "Application Support")
    return env.get("XDG_CONFIG_HOME") or os.path.join(home, ".config")


def machine_config_dir(platform: Optional[str] = None,
                       environ: Optional[Mapping[str, str]] = None) -> str:
    platform = platform or sys.platform
    env = os.environ if environ is None else environ
    if platform.startswith("win"):
        return env.get("ProgramData", "")
    if platform == "darwin":
        return "/Library/Application Support"
    return "/etc"


def default_config_locations(platform: Optional[str] = None,
                             environ: Optional[Mapping[str, str]] = None,
                             cwd: Optional[str] = None) -> list[str]:
    """Default candidate paths, most specific first."""
    cwd = cwd or os.getcwd()
    locations = [
        os.path.join(cwd, C.DEFAULT_CONFIG_FILENAME),
        os.path.join(os.path.dirname(os.path.abspath(cwd)), C.DEFAULT_CONFIG_FILENAME),
    ]
    for base in (user_config_dir(platform, environ), machine_config_dir(platform, environ)):
        if base:
            locations.append(os.path.join(base, C.GLOBAL_FOLDER_NAME, C.DEFAULT_CONFIG_FILENAME))
    return locations


def _expand(path: str) -> str:
    return os.path.abspath(os.path.expandvars(os.path.expanduser(path)))


class ConfigFinder:
    """Locates NuGet config files.

    Parameters
    ----------
    search_paths:
        Candidate file paths in priority order; ``None`` uses
        :func:`default_config_locations`.
    env_var:
        Environment variable that may name an explicit config file.
    environ:
        Environment mapping to read (defaults to ``os.environ``).
    """

    def __init__(
        self,
        search_paths: Optional[list[str]] = None,
        env_var: str = C.CONFIG_FILE_ENV_VAR,
        environ: Optional[Mapping[str, str]] = None,
        platform: Optional[str] = None,
    ) -> None:
        self._search_paths = list(search_paths) if search_paths is not None else None
        self.env_var = env_var
        self._environ = environ
        self._platform = platform

    @property
    def environ(self) -> Mapping[str, str]:
        return os.environ if self._environ is None else self._environ

    def search_locations(self) -> list[str]:
        locations: list[str] = []
        env_path = self.environ.get(self.env_var, "")
        if env_path and os.path.isfile(_expand(env_path)):
            locations.append(env_path)
        if self._search_paths is not None:
            locations.extend(self._search_paths)
        else:
            locations.extend(default_config_locations(self._platform, self.environ))
        return locations

    def find_all_config_files(self) -> list[str]:
        found: list[str] = []
        for location in self.search_locations():
            path = _expand(location)
            if os.path.isfile(path) and path not in found:
                found.append(path)
        logger.debug("[Finder] %d config file(s) found", len(found))
        return found

    def find_config_file(self) -> str:
        """First existing config file; raises NotFoundError when there is none."""
        for location in self.search_locations():
            path = _expand(location)
            if os.path.isfile(path):
                logger.debug("[Finder] Using %s", path)
                return path
        raise NotFoundError("no NuGet config file found in the search locations")

    def find_project_config(self, start_dir: str) -> str:
        """Walk from *start_dir* up to the filesystem root looking for NuGet.Config."""
        current = os.path.abspath(start_dir)
        while True:
            candidate = os.path.join(current, C.DEFAULT_CONFIG_FILENAME)
            if os.path.isfile(candidate):
                return candidate
            parent = os.path.dirname(current)
            if parent == current:
                break
            current = parent
        raise NotFoundError(f"no {C.DEFAULT_CONFIG_FILENAME} in {start_dir} or its parents")

    def user_config_file(self) -> str:
        base = user_config_dir(self._platform, self.environ)
        if not base:
            return ""
        return os.path.join(base, C.GLOBAL_FOLDER_NAME, C.DEFAULT_CONFIG_FILENAME)

    def machine_config_file(self) -> str:
        base = machine_config_dir(self._platform, self.environ)
        if not base:
            return ""
        return os.path.join(base, C.GLOBAL_FOLDER_NAME, C.DEFAULT_CONFIG_FILENAME)
