from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from .errors import CodemodError, ConfigWarning

Key = Union[str, int]


@dataclass(frozen=True)
class Location:
    file_path: str
    line: int
    column: int


@dataclass(frozen=True)
class ExtractedString:
    key: Key
    value: str
    file_path: str
    line: int
    column: int


@dataclass(frozen=True)
class UsedExistingKey:
    file_path: str
    line: int
    column: int
    key: Key
    value: str


@dataclass(frozen=True)
class KeyGroup:
    """Every key known to translate to one canonical value."""

    primary_key: Key
    keys: tuple[Key, ...]


@dataclass(frozen=True)
class ConflictContext:
    file_path: str
    line: int
    column: int
    same_value_keys: tuple[Key, ...]


@dataclass(frozen=True)
class MatchContext:
    before: str
    after: str
    full_match: str


@dataclass(frozen=True)
class Change:
    file_path: str
    original: str
    replacement: str
    line: int
    column: int
    end_line: int
    end_column: int
    start: int | None = None
    end: int | None = None
    match_context: MatchContext | None = None


@dataclass(frozen=True)
class ImportRequirement:
    source: str
    name: str
    kind: str = "named"  # named | default | namespace
    alias: str | None = None
    # Inserted verbatim instead of a generated statement.
    statement: str | None = None

    @property
    def local_name(self) -> str:
        return self.alias or self.name


@dataclass(frozen=True)
class AccessorRequirement:
    """An acquisition statement needed in ``owner_start``'s function.

    ``owner_start`` is the original-text offset of the owning function, or
    None for module scope.
    """

    owner_start: int | None
    accessor_name: str
    hook_source: str
    hook_name: str
    hook_alias: str | None = None
    destructured: bool = True


@dataclass
class ProcessResult:
    code: str
    extracted_strings: list[ExtractedString] = field(default_factory=list)
    used_existing_keys: list[UsedExistingKey] = field(default_factory=list)
    changes: list[Change] = field(default_factory=list)
    error: CodemodError | None = None
    warnings: list[ConfigWarning] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.changes)
