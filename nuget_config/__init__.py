"""
nuget_config — NuGet.Config parsing and format-preserving editing.

Public API for library usage::

    from nuget_config import parse_with_positions, ConfigEditor

    result = parse_with_positions(data)
    editor = ConfigEditor(result)
    editor.add_or_update_source("ci", "https://ci.example/nuget")
    new_data = editor.apply_edits()
"""

from .errors import (
    NuGetConfigError, NotFoundError, ParseError, FormatError,
    ConflictError, ValidationError,
)
from .models import NuGetConfig, PackageSource
from .codec import parse_config, serialize_config
from .editing import ConfigEditor, ParseResult, parse_with_positions, apply_edits
from .finder import ConfigFinder
from .manager import ConfigManager

__all__ = [
    "NuGetConfigError", "NotFoundError", "ParseError", "FormatError",
    "ConflictError", "ValidationError",
    "NuGetConfig", "PackageSource",
    "parse_config", "serialize_config",
    "ConfigEditor", "ParseResult", "parse_with_positions", "apply_edits",
    "ConfigFinder", "ConfigManager",
]
