from __future__ import annotations

import re

import pytest

from i18n_codemod.pattern import DEFAULT_PATTERN, DelimiterPattern


def test_default_pattern_finds_payload() -> None:
    matches = DelimiterPattern().find_all("a ___Hello___ b")
    assert len(matches) == 1
    match = matches[0]
    assert match.full == "___Hello___"
    assert match.payload == "Hello"
    assert (match.start, match.end) == (2, 13)


def test_default_pattern_is_greedy() -> None:
    matches = DelimiterPattern(DEFAULT_PATTERN).find_all("___a___ and ___b___")
    assert [m.payload for m in matches] == ["a___ and ___b"]


def test_lazy_pattern_yields_each_site() -> None:
    matches = DelimiterPattern(r"___(.+?)___").find_all("___a___ and ___b___")
    assert [m.payload for m in matches] == ["a", "b"]


def test_empty_payload_is_not_a_site() -> None:
    pattern = DelimiterPattern(r"___(.*?)___")
    assert pattern.find_all("______") == []
    assert pattern.match_one("______") is None


@pytest.mark.parametrize("bad", [r"___.+___", r"(_)(.+)(_)"])
def test_pattern_needs_exactly_one_group(bad: str) -> None:
    with pytest.raises(re.error):
        DelimiterPattern(bad)
