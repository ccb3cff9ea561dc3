"""Unit tests for balanced-brace extraction and numbering helpers."""

from __future__ import annotations

import pytest

from lutex.braces import (
    extract_braced,
    section_name,
    section_reference,
    strip_braced,
    to_letter,
    to_roman,
    to_subfigure_letter,
)


def test_extract_braced_keeps_nested_braces() -> None:
    """Nested groups stay inside the extracted argument."""
    match = extract_braced(r"\caption{A {nested} caption} tail", r"\caption")
    assert match is not None, "expected the caption command to be found"
    assert match.content == "A {nested} caption"
    assert match.rest == " tail"
    assert match.full_match == r"\caption{A {nested} caption}"
    assert match.start == 0


def test_extract_braced_reports_offset_of_command() -> None:
    match = extract_braced(r"lead \label{x} \caption{deep {a {b}} c}", r"\caption")
    assert match is not None
    assert match.content == "deep {a {b}} c"
    assert match.start == len(r"lead \label{x} ")


@pytest.mark.parametrize(
    "text",
    [
        r"no command here",
        r"\caption{never closed",
        r"\captionx{other}",
    ],
)
def test_extract_braced_returns_none_when_missing_or_unbalanced(text: str) -> None:
    assert extract_braced(text, r"\caption") is None, f"unexpected match in {text!r}"


def test_extract_braced_with_empty_command_matches_first_group() -> None:
    match = extract_braced(r"[2]{\mathbb{R}^{#1}} trailing", "")
    assert match is not None
    assert match.content == r"\mathbb{R}^{#1}"


def test_strip_braced_removes_the_command() -> None:
    content, rest = strip_braced(r"before \caption{Cap {x}} after", r"\caption")
    assert content == "Cap {x}"
    assert rest == "before  after"


def test_strip_braced_leaves_text_without_command() -> None:
    assert strip_braced("plain", r"\caption") == (None, "plain")


@pytest.mark.parametrize(
    ("number", "expected"),
    [
        (1, "I"),
        (4, "IV"),
        (9, "IX"),
        (14, "XIV"),
        (40, "XL"),
        (1994, "MCMXCIV"),
        (0, "0"),
    ],
)
def test_to_roman(number: int, expected: str) -> None:
    assert to_roman(number) == expected


def test_letter_helpers() -> None:
    assert [to_letter(n) for n in (1, 2, 26)] == ["A", "B", "Z"]
    assert [to_subfigure_letter(i) for i in (0, 1, 2)] == ["a", "b", "c"]


def test_section_numbering_switches_after_appendix() -> None:
    assert section_name(3, None) == "III"
    assert section_name(3, 3) == "III", "the section holding \\appendix keeps Roman"
    assert section_name(4, 3) == "Appendix A"
    assert section_name(5, 3) == "Appendix B"
    assert section_reference(2, None) == "Sec. II"
    assert section_reference(4, 3) == "Appx. A"
