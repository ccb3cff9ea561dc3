r"""Brace matching and numbering helpers shared by the renderers.

Every environment renderer needs to pull the argument of a command such as
``\caption{...}`` out of raw LaTeX, and arguments may themselves contain
braces (``\caption{A {nested} caption}``). Regular expressions cannot match
arbitrary nesting, so :func:`extract_braced` walks the text and keeps a depth
counter instead.

Example
-------
>>> from lutex.braces import extract_braced, to_roman
>>> extract_braced(r"\caption{A {nested} caption} tail", r"\caption").content
'A {nested} caption'
>>> to_roman(14)
'XIV'
"""

from __future__ import annotations

import dataclasses as dc

_ROMAN_STEPS = (
    (1000, "M"),
    (900, "CM"),
    (500, "D"),
    (400, "CD"),
    (100, "C"),
    (90, "XC"),
    (50, "L"),
    (40, "XL"),
    (10, "X"),
    (9, "IX"),
    (5, "V"),
    (4, "IV"),
    (1, "I"),
)


@dc.dataclass(frozen=True, slots=True)
class BracedMatch:
    """Result of a balanced-brace extraction.

    Attributes
    ----------
    content : str
        Text between the opening brace and its balancing closing brace.
    rest : str
        Text following the closing brace.
    full_match : str
        The command together with its braced argument.
    start : int
        Offset of the command within the searched text.
    """

    content: str
    rest: str
    full_match: str
    start: int


def extract_braced(text: str, command: str) -> BracedMatch | None:
    r"""Return the balanced-brace argument that follows ``command``.

    Parameters
    ----------
    text : str
        Raw LaTeX to search.
    command : str
        Command name including the backslash, for example ``r"\caption"``.

    Returns
    -------
    BracedMatch or None
        The first occurrence of ``command{...}`` with nested braces kept
        intact, or ``None`` when the command is missing or never closed.
    """
    start = text.find(command + "{")
    if start == -1:
        return None
    content_start = start + len(command) + 1
    depth = 0
    for index in range(content_start, len(text)):
        char = text[index]
        if char == "{":
            depth += 1
        elif char == "}":
            if depth == 0:
                return BracedMatch(
                    content=text[content_start:index],
                    rest=text[index + 1 :],
                    full_match=text[start : index + 1],
                    start=start,
                )
            depth -= 1
    return None


def strip_braced(text: str, command: str) -> tuple[str | None, str]:
    """Extract the first ``command{...}`` and return it with the remaining text."""
    match = extract_braced(text, command)
    if match is None:
        return None, text
    return match.content, text[: match.start] + match.rest


def to_roman(number: int) -> str:
    """Return ``number`` as upper-case Roman numerals; non-positive stays Arabic."""
    if number <= 0:
        return str(number)
    parts: list[str] = []
    remaining = number
    for value, numeral in _ROMAN_STEPS:
        count, remaining = divmod(remaining, value)
        parts.append(numeral * count)
    return "".join(parts)


def to_letter(number: int) -> str:
    """Return the capital letter for a 1-based index (1 -> ``A``)."""
    return chr(64 + number)


def to_subfigure_letter(index: int) -> str:
    """Return the lower-case letter for a 0-based subfigure index (0 -> ``a``)."""
    return chr(97 + index)


def section_name(number: int, appendix_start: int | None) -> str:
    """Return the heading number of a section.

    Sections before ``\\appendix`` use Roman numerals; sections after it are
    lettered from ``A`` and prefixed with ``Appendix``.

    >>> section_name(2, None), section_name(4, 3)
    ('II', 'Appendix A')
    """
    if appendix_start is not None and number > appendix_start:
        return f"Appendix {to_letter(number - appendix_start)}"
    return to_roman(number)


def section_reference(number: int, appendix_start: int | None) -> str:
    """Return the cross-reference text for a section (``Sec. II``, ``Appx. A``)."""
    if appendix_start is not None and number > appendix_start:
        return f"Appx. {to_letter(number - appendix_start)}"
    return f"Sec. {to_roman(number)}"


__all__ = [
    "BracedMatch",
    "extract_braced",
    "section_name",
    "section_reference",
    "strip_braced",
    "to_letter",
    "to_roman",
    "to_subfigure_letter",
]
