"""Rewrite delimited literals in JS/TS/JSX/Vue sources into translation calls."""

from __future__ import annotations

from .config import CodemodOptions, I18nImport, PlainImport, normalize_options
from .errors import (
    CodemodError,
    ConfigurationError,
    ConfigWarning,
    ReplacementPositionError,
    SfcError,
    SourceParseError,
    TransformError,
    UnsupportedFileTypeError,
)
from .keys import build_value_index, canonicalize, resolve_key
from .models import (
    Change,
    ConflictContext,
    ExtractedString,
    KeyGroup,
    ProcessResult,
    UsedExistingKey,
)
from .patcher import apply_changes
from .processor import process_code

__version__ = "0.1.0"

__all__ = [
    "Change",
    "CodemodError",
    "CodemodOptions",
    "ConfigWarning",
    "ConfigurationError",
    "ConflictContext",
    "ExtractedString",
    "I18nImport",
    "KeyGroup",
    "PlainImport",
    "ProcessResult",
    "ReplacementPositionError",
    "SfcError",
    "SourceParseError",
    "TransformError",
    "UnsupportedFileTypeError",
    "UsedExistingKey",
    "apply_changes",
    "build_value_index",
    "canonicalize",
    "normalize_options",
    "process_code",
    "resolve_key",
]
