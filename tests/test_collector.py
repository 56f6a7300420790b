"""Site handling: which literals are rewritten and what replaces them."""

from __future__ import annotations

from i18n_codemod.collector import format_args, informal_placeholders
from i18n_codemod.config import CodemodOptions
from i18n_codemod.processor import process_code
from i18n_codemod.source import parse_source

LAZY = r"___(.+?)___"


def test_format_args_uses_shorthand() -> None:
    assert format_args([("name", "name"), ("arg1", "user.id")]) == "{ name, arg1: user.id }"


def test_informal_placeholders_bind_by_name() -> None:
    assert informal_placeholders("Hello {name}, you have ${count} items") == [
        ("name", "name"),
        ("arg1", "count"),
    ]


def test_template_expression_becomes_argument() -> None:
    result = process_code("const s = `___Select ${label}___`;\n", "a.js")
    assert 't("Select {arg1}", { arg1: label })' in result.code
    assert [(e.key, e.value) for e in result.extracted_strings] == [
        ("Select {arg1}", "Select {arg1}")
    ]


def test_literal_braces_get_no_arguments() -> None:
    result = process_code('const s = "___User: {userName}___";\n', "a.js")
    assert 'const s = t("User: {userName}");' in result.code


def test_partial_string_becomes_template_literal() -> None:
    result = process_code('const s = "Hi ___Bob___!";\n', "a.js")
    assert 'const s = `Hi ${t("Bob")}!`;' in result.code


def test_partial_template_keeps_outside_expressions() -> None:
    options = CodemodOptions(pattern=LAZY)
    result = process_code("const s = `${n} ___items___ left`;\n", "a.js", options)
    assert 'const s = `${n} ${t("items")} left`;' in result.code


def test_several_sites_in_one_string() -> None:
    options = CodemodOptions(pattern=LAZY)
    result = process_code('const s = "___Yes___ / ___No___";\n', "a.js", options)
    assert 'const s = `${t("Yes")} / ${t("No")}`;' in result.code
    assert [e.value for e in result.extracted_strings] == ["Yes", "No"]


def test_nested_site_is_rendered_into_outer_call() -> None:
    code = 'const s = `___Total ${fmt("___items___")}___`;\n'
    result = process_code(code, "a.js")
    assert 'const s = t("Total {arg1}", { arg1: fmt(t("items")) });' in result.code
    assert len(result.changes) == 1
    assert sorted(e.value for e in result.extracted_strings) == ["Total {arg1}", "items"]


def test_jsx_attribute_gets_expression_container() -> None:
    result = process_code('export const Logo = () => <img alt="___Logo___" />;\n', "a.jsx")
    assert '<img alt={t("Logo")} />' in result.code


def test_jsx_attribute_partial_gets_template() -> None:
    options = CodemodOptions(pattern=LAZY)
    result = process_code('const A = () => <img alt="By ___Me___" />;\n', "a.jsx", options)
    assert '<img alt={`By ${t("Me")}`} />' in result.code


def test_jsx_text_is_wrapped() -> None:
    result = process_code("function A() {\n  return <p>___Hello___</p>;\n}\n", "a.jsx")
    assert '<p>{t("Hello")}</p>' in result.code


def test_skipped_sites_are_left_alone() -> None:
    code = (
        'import x from "___x___";\n'
        'const y = require("___y___");\n'
        'const o = { "___k___": 1 };\n'
        "const q = gql`___q___`;\n"
        'const done = t("___d___");\n'
    )
    result = process_code(code, "a.js")
    assert result.code == code
    assert result.changes == []
    assert result.extracted_strings == []


def test_ts_literal_types_are_skipped() -> None:
    code = 'type Mode = "___m___";\nconst m: Mode = "___m___" as Mode;\n'
    result = process_code(code, "a.ts")
    assert 'type Mode = "___m___";' in result.code
    assert 'const m: Mode = t("m") as Mode;' in result.code


def test_line_comments_never_swallow_code() -> None:
    options = CodemodOptions(append_extracted_comment=True, extracted_comment_type="line")
    result = process_code('foo("___a___", bar("___b___"));\n', "a.js", options)
    assert result.code.endswith('foo(t("a"), // a\n bar(t("b"))); // b\n')
    parse_source(result.code, "javascript")
    for line in result.code.splitlines():
        if "//" in line:
            assert not set(line.split("//", 1)[1]) & set(")]};")


def test_comments_inside_jsx_are_block_comments() -> None:
    options = CodemodOptions(append_extracted_comment=True, extracted_comment_type="line")
    result = process_code('const A = () => <img alt="___Logo___" />;\n', "a.jsx", options)
    assert '<img alt={t("Logo") /* Logo */} />' in result.code


def test_call_factory_shapes_every_call() -> None:
    options = CodemodOptions(call_factory=lambda name, key, text: f"{name}.call({key!r})")
    result = process_code("const s = `___Hi ${n}___`;\n", "a.js", options)
    assert "const s = t.call('Hi {arg1}');" in result.code
