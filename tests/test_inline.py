"""Tests for inline macro expansion and citation numbering."""

from __future__ import annotations

import pytest
from bs4 import BeautifulSoup

from lutex.inline import CitationRegistry, InlineMacroExpander, Reference


@pytest.fixture
def references() -> dict[str, Reference]:
    """Return two bibliography entries keyed by citation key."""
    return {
        "knuth84": Reference(
            key="knuth84",
            authors=["Knuth, Donald"],
            title="Literate Programming",
            journal="The Computer Journal",
            year="1984",
        ),
        "lamport94": Reference(
            key="lamport94",
            authors=["Lamport, Leslie", "others"],
            title="LaTeX",
            journal="Addison-Wesley",
            year="1994",
            url="https://example.org/latex",
        ),
    }


@pytest.mark.parametrize(
    ("source", "expected"),
    [
        (r"\emph{a}", "<em>a</em>"),
        (r"\textbf{b}", "<strong>b</strong>"),
        (r"\textit{c}", "<em>c</em>"),
        (r"\texttt{d}", "<code>d</code>"),
        (r"\todo{fix me }", '<span class="todo">(TODO: fix me)</span>'),
        (r"G\"odel", "G&ouml;del"),
        (r"item \#3", "item #3"),
        (r"50\% off", "50% off"),
        (r"A \& B", "A &amp; B"),
        ("a~b", "a&nbsp;b"),
        (r"\url{https://example.org}", '<a href="https://example.org">https://example.org</a>'),
    ],
)
def test_expand_single_macros(source: str, expected: str) -> None:
    assert InlineMacroExpander().expand(source) == expected


def test_expand_escapes_html_before_macros() -> None:
    html = InlineMacroExpander().expand(r"a < b and \emph{<x>}")
    assert html == "a &lt; b and <em>&lt;x&gt;</em>"


def test_cite_without_bibliography_renders_placeholder() -> None:
    html = InlineMacroExpander().expand(r"\cite{a, b}")
    soup = BeautifulSoup(html, "html.parser")
    keys = [span["data-key"] for span in soup.select("span.citation")]
    assert keys == ["a", "b"]
    assert soup.get_text() == "[a][b]"


def test_cite_numbers_by_first_use(references: dict[str, Reference]) -> None:
    citations = CitationRegistry(references)
    expander = InlineMacroExpander(citations)
    first = BeautifulSoup(expander.expand(r"\cite{lamport94}"), "html.parser")
    second = BeautifulSoup(expander.expand(r"\cite{knuth84,lamport94,missing}"), "html.parser")

    assert first.a.get_text() == "[1]"
    assert [a.get_text() for a in second.select("a.citation")] == ["[2]", "[1]"]
    assert second.select_one("span.citation")["data-key"] == "missing"
    assert [ref.key for _, ref in citations.cited()] == ["lamport94", "knuth84"]


def test_cite_links_to_url_or_search(references: dict[str, Reference]) -> None:
    expander = InlineMacroExpander(CitationRegistry(references))
    soup = BeautifulSoup(expander.expand(r"\cite{knuth84} \cite{lamport94}"), "html.parser")
    knuth, lamport = soup.select("a.citation")
    assert knuth["href"].startswith("https://scholar.google.com/scholar?q=Literate+Programming")
    assert knuth["target"] == "_blank"
    assert "Knuth, Donald" in knuth["data-tooltip"]
    assert lamport["href"] == "https://example.org/latex"


def test_proof_panel_wraps_content_until_qed() -> None:
    html = InlineMacroExpander().expand(r"\pf{thm:main} Obvious. \qed")
    soup = BeautifulSoup(html, "html.parser")
    panel = soup.select_one("div.proof-panel")
    assert panel is not None, "expected a proof panel"
    assert panel.select_one("div.proof-toggle")["data-label"] == "thm:main"
    assert "Obvious." in panel.select_one("div.proof-content").get_text()
    assert r"\lutexproofref{thm:main}" in html


def test_qed_does_not_match_longer_commands() -> None:
    assert InlineMacroExpander().expand(r"\qedhere") == r"\qedhere"


def test_formatted_authors() -> None:
    reference = Reference(key="k", authors=["Knuth, Donald", "Ada Lovelace", "others"])
    assert reference.formatted_authors() == "Donald Knuth, Ada Lovelace, et al."


def test_url_keeps_tilde_while_prose_tilde_is_nbsp() -> None:
    html = InlineMacroExpander().expand(r"Home~page: \url{https://example.org/~user}")
    link = BeautifulSoup(html, "html.parser").select_one("a")
    assert link["href"] == "https://example.org/~user"
    assert link.get_text() == "https://example.org/~user"
    assert html.startswith("Home&nbsp;page: ")
