"""Typed failures raised by the codemod core.

Every error carries a stable ``code`` so callers can classify failures
without parsing messages. ``process_code`` catches the recoverable ones and
hands them back on the result instead of raising.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class CodemodError(Exception):
    code = "GENERAL001"
    severity = "error"

    def __init__(
        self,
        message: str,
        *,
        file_path: str | None = None,
        line: int | None = None,
        column: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.file_path = file_path
        self.line = line
        self.column = column
        self.details = details or {}

    def location(self) -> str:
        if not self.file_path:
            return ""
        if self.line is None:
            return self.file_path
        return f"{self.file_path}:{self.line}:{(self.column or 0) + 1}"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "code": self.code,
            "severity": self.severity,
            "message": self.message,
        }
        if self.file_path:
            data["file"] = self.file_path
        if self.line is not None:
            data["line"] = self.line
            data["column"] = self.column
        if self.details:
            data["details"] = self.details
        return data

    def __str__(self) -> str:
        where = self.location()
        prefix = f"[{self.code}]"
        return f"{prefix} {where}: {self.message}" if where else f"{prefix} {self.message}"


class ConfigurationError(CodemodError):
    code = "CONFIG001"
    severity = "fatal"


class SourceParseError(CodemodError):
    code = "PARSING001"


class UnsupportedFileTypeError(CodemodError):
    code = "PARSING002"
    severity = "warning"


class TransformError(CodemodError):
    code = "TRANSFORM001"


class ReplacementPositionError(CodemodError):
    code = "TRANSFORM003"


class SfcError(CodemodError):
    code = "VUE001"


@dataclass(frozen=True)
class ConfigWarning:
    code: str
    option: str
    message: str

    def __str__(self) -> str:
        return f"[{self.code}] {self.option}: {self.message}"
