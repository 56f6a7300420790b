from __future__ import annotations

import re
from dataclasses import dataclass

DEFAULT_PATTERN = r"___(.+)___"


@dataclass(frozen=True)
class PatternMatch:
    full: str
    payload: str
    start: int
    end: int


class DelimiterPattern:
    """Finds delimited extraction sites inside one raw text value."""

    def __init__(self, pattern: str = DEFAULT_PATTERN) -> None:
        self.source = pattern
        self.regex = re.compile(pattern)
        if self.regex.groups != 1:
            raise re.error(f"pattern needs exactly one capturing group: {pattern}")

    def find_all(self, text: str) -> list[PatternMatch]:
        matches: list[PatternMatch] = []
        for match in self.regex.finditer(text):
            payload = match.group(1)
            # Empty payloads are never extraction sites.
            if not payload:
                continue
            matches.append(
                PatternMatch(
                    full=match.group(0),
                    payload=payload,
                    start=match.start(),
                    end=match.end(),
                )
            )
        return matches

    def match_one(self, text: str) -> PatternMatch | None:
        match = self.regex.search(text)
        if match is None or not match.group(1):
            return None
        return PatternMatch(
            full=match.group(0),
            payload=match.group(1),
            start=match.start(),
            end=match.end(),
        )

    def __repr__(self) -> str:
        return f"DelimiterPattern({self.source!r})"
