r"""Inline macro expansion for paragraph and caption text.

The expander applies a fixed, order-sensitive list of substitutions to
HTML-escaped source text. Order matters: citation expansion must not see
markup produced by ``\todo``, and the proof markers must come last so their
``<div>`` markup is not rewritten by earlier rules.

Citations resolve against an optional :class:`CitationRegistry`. Numbers are
handed out in order of first use, so the first key cited anywhere in the
document becomes ``[1]`` regardless of where its bibliography entry sits.

Example
-------
>>> from lutex.inline import InlineMacroExpander
>>> InlineMacroExpander().expand(r"An \emph{important} point~\cite{a, b}")
'An <em>important</em> point&nbsp;<span class="citation" data-key="a">[a]</span><span class="citation" data-key="b">[b]</span>'
"""

from __future__ import annotations

import dataclasses as dc
import re
import typing as typ
from html import escape
from urllib.parse import quote_plus

if typ.TYPE_CHECKING:
    import collections.abc as cabc

TODO_PATTERN = re.compile(r"\\todo\{([^}]*)\}")
UMLAUT_PATTERN = re.compile(r'\\"([aouAOU])')
EMPH_PATTERN = re.compile(r"\\emph\{([^}]+)\}")
TEXTBF_PATTERN = re.compile(r"\\textbf\{([^}]+)\}")
TEXTIT_PATTERN = re.compile(r"\\textit\{([^}]+)\}")
TEXTTT_PATTERN = re.compile(r"\\texttt\{([^}]+)\}")
URL_PATTERN = re.compile(r"\\url\{([^}]+)\}")
CITE_PATTERN = re.compile(r"\\cite\{([^}]+)\}")
PROOF_PATTERN = re.compile(r"\\pf\{([^}]+)\}")
QED_PATTERN = re.compile(r"\\qed(?![A-Za-z])")

SCHOLAR_SEARCH_URL = "https://scholar.google.com/scholar?q="


@dc.dataclass(slots=True)
class Reference:
    """Bibliography entry consumed by citation rendering.

    Attributes
    ----------
    key : str
        Citation key used in ``\\cite{}``.
    authors : list[str]
        Author names, ``"Last, First"`` or free form.
    title : str
        Work title.
    journal : str
        Journal or book title.
    year : str
        Publication year.
    url : str
        Optional link to the work.
    """

    key: str
    authors: list[str] = dc.field(default_factory=list)
    title: str = ""
    journal: str = ""
    year: str = ""
    url: str = ""

    def formatted_authors(self) -> str:
        """Return authors as ``First Last`` joined by commas."""
        names: list[str] = []
        for author in self.authors:
            parts = [part.strip() for part in author.split(",")]
            if len(parts) > 1:
                names.append(f"{parts[1]} {parts[0]}")
            elif author.strip() == "others":
                names.append("et al.")
            else:
                names.append(author.strip())
        return ", ".join(names)


class CitationRegistry:
    """Number bibliography entries by first citation."""

    def __init__(self, references: cabc.Mapping[str, Reference] | None = None) -> None:
        self.references: dict[str, Reference] = dict(references or {})
        self._order: list[str] = []

    def cite(self, key: str) -> int | None:
        """Return the citation number for ``key``, assigning one on first use."""
        if key not in self.references:
            return None
        if key not in self._order:
            self._order.append(key)
        return self._order.index(key) + 1

    def cited(self) -> list[tuple[int, Reference]]:
        """Return ``(number, reference)`` pairs for every cited entry in order."""
        return [
            (number, self.references[key])
            for number, key in enumerate(self._order, start=1)
        ]

    def tooltip(self, number: int, reference: Reference) -> str:
        """Return the hover text shown for a resolved citation."""
        return (
            f"[{number}] {', '.join(reference.authors)}, "
            f'"{reference.title}", {reference.journal} ({reference.year})'
        )


class InlineMacroExpander:
    """Apply the inline macro substitutions to a fragment of source text."""

    def __init__(self, citations: CitationRegistry | None = None) -> None:
        self.citations = citations

    def expand(self, text: str) -> str:
        """Escape ``text`` and expand the supported inline macros."""
        html = escape(text, quote=False)
        html = TODO_PATTERN.sub(
            lambda m: f'<span class="todo">(TODO: {m.group(1).strip()})</span>', html
        )
        html = UMLAUT_PATTERN.sub(lambda m: f"&{m.group(1)}uml;", html)
        html = EMPH_PATTERN.sub(r"<em>\1</em>", html)
        html = TEXTBF_PATTERN.sub(r"<strong>\1</strong>", html)
        html = TEXTIT_PATTERN.sub(r"<em>\1</em>", html)
        html = TEXTTT_PATTERN.sub(r"<code>\1</code>", html)
        html = URL_PATTERN.sub(self._link, html)
        html = html.replace("\\#", "#").replace("\\%", "%").replace("\\&amp;", "&amp;")
        html = html.replace("~", "&nbsp;")
        html = CITE_PATTERN.sub(self._citation, html)
        html = PROOF_PATTERN.sub(self._proof_panel, html)
        return QED_PATTERN.sub("</div></div>", html)

    def _citation(self, match: re.Match[str]) -> str:
        """Render one citation token per comma-separated key."""
        tokens: list[str] = []
        for raw_key in match.group(1).split(","):
            key = raw_key.strip()
            if not key:
                continue
            number = self.citations.cite(key) if self.citations else None
            if number is None or self.citations is None:
                tokens.append(f'<span class="citation" data-key="{key}">[{key}]</span>')
                continue
            reference = self.citations.references[key]
            tooltip = escape(self.citations.tooltip(number, reference), quote=True)
            href = reference.url or SCHOLAR_SEARCH_URL + quote_plus(reference.title)
            tokens.append(
                f'<a class="citation" data-tooltip="{tooltip}" data-key="{key}" '
                f'href="{escape(href, quote=True)}" target="_blank">[{number}]</a>'
            )
        return "".join(tokens)

    @staticmethod
    def _link(match: re.Match[str]) -> str:
        target = match.group(1).strip()
        # ``&#126;`` keeps a literal tilde out of the later ``~`` rewrite.
        target = target.replace(chr(34), "&quot;").replace("~", "&#126;")
        return f'<a href="{target}">{target}</a>'

    @staticmethod
    def _proof_panel(match: re.Match[str]) -> str:
        label = match.group(1).strip()
        return (
            f'<div class="proof-panel"><div class="proof-toggle" data-label="{label}">'
            f"<span>Proof of&nbsp;&nbsp;\\lutexproofref{{{label}}}</span></div>"
            '<div class="proof-content">'
        )


__all__ = ["CitationRegistry", "InlineMacroExpander", "Reference"]
