"""End-to-end tests for article rendering and the HTML page writer.

The fixtures lay out a small LaTeX project in a temporary directory (a main
file with front matter plus one ``\\input`` file) and a ``lutex.yaml`` that
points at it. ``ArticlePageBuilder`` then renders the page through the
packaged Jinja template, and the assertions inspect the written HTML with
BeautifulSoup and the navigation sidecar with ``msgspec``.
"""

from __future__ import annotations

import typing as typ
from pathlib import Path

import msgspec.json as msgspec_json
import pytest
from bs4 import BeautifulSoup

from lutex._constants import NAV_META_TEMPLATE
from lutex.config import load_site_config
from lutex.document import (
    ArticlePageBuilder,
    build_resolver,
    collect_macros,
    parse_front_matter,
    render_article,
)
from lutex.inline import Reference
from lutex.sources import FileSystemResolver, HttpResolver, MappingResolver

MAIN_TEX = r"""
\documentclass{article}
\newcommand{\R}{\mathbb{R}}
\title{Sample \emph{Paper}}
\author{Ada Lovelace \\ Charles Babbage}
\affiliation{Analytical \\ Engine Society}
%%github:https://github.com/example/paper
%%arxiv:2401.00001
\begin{document}
\maketitle
\begin{abstract}
We build on
\cite{knuth84}.
\end{abstract}
\section{Intro}\label{sec:intro}
Text citing \cite{knuth84} and \autoref{sec:method}.
\input{method}
\bibliography{refs, extra}
\end{document}
""".lstrip()

METHOD_TEX = r"""
\section{Method}\label{sec:method}
\subsection{Setup}
\begin{equation}
x \in \R \label{eq:x}
\end{equation}
""".lstrip()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Write a two-file LaTeX project and its site configuration."""
    (tmp_path / "main.tex").write_text(MAIN_TEX, encoding="utf-8")
    (tmp_path / "method.tex").write_text(METHOD_TEX, encoding="utf-8")
    (tmp_path / "lutex.yaml").write_text(
        """
defaults:
  output_dir: public
documents:
  paper:
    source: main
    label: Sample
macros:
  Z: '\\mathbb{Z}'
references:
  knuth84:
    authors: ["Knuth, Donald"]
    title: Literate Programming
    journal: The Computer Journal
    year: "1984"
        """.strip()
        + "\n",
        encoding="utf-8",
    )
    return tmp_path


@pytest.fixture
def written(project: Path) -> list[Path]:
    """Render the sample project and return the written paths."""
    site = load_site_config(project / "lutex.yaml")
    return ArticlePageBuilder(site.get_document("paper"), site).run()


@pytest.fixture
def page(written: list[Path]) -> BeautifulSoup:
    """Return the rendered page parsed with BeautifulSoup."""
    return BeautifulSoup(written[0].read_text(encoding="utf-8"), "html.parser")


def test_parse_front_matter() -> None:
    front = parse_front_matter(MAIN_TEX)
    assert front.title == r"Sample \emph{Paper}"
    assert front.author == r"Ada Lovelace \\ Charles Babbage"
    assert front.github == "https://github.com/example/paper"
    assert front.arxiv == "2401.00001"
    assert front.abstract == "We build on\n\\cite{knuth84}."
    assert front.bibliography == ["refs.bib", "extra.bib"]
    assert front.macros == {"\\R": "\\mathbb{R}"}


def test_parse_front_matter_ignores_commented_commands() -> None:
    front = parse_front_matter("% \\title{Old}\n\\title{New {Title}}\n")
    assert front.title == "New {Title}"
    assert front.abstract == ""
    assert front.bibliography == []


def test_collect_macros_reads_every_definition() -> None:
    macros = collect_macros("\\newcommand{\\a}{1}\ntext\n\\renewcommand*{\\b}[2]{#1+#2}\n")
    assert macros == {"\\a": "1", "\\b": "#1+#2"}


def test_render_article_combines_front_matter_and_body() -> None:
    resolver = MappingResolver({"method.tex": METHOD_TEX})
    article = render_article(
        MAIN_TEX,
        resolver,
        references={"knuth84": Reference(key="knuth84", title="Literate Programming")},
        macros={"\\R": "R", "\\Z": "\\mathbb{Z}"},
    )
    assert article.title_html == "Sample <em>Paper</em>"
    assert article.author_html == "Ada Lovelace<br>Charles Babbage"
    assert article.affiliation_html == "Analytical Engine Society"
    assert article.macros == {"\\R": "\\mathbb{R}", "\\Z": "\\mathbb{Z}"}
    assert [ref.key for _, ref in article.references] == ["knuth84"]
    assert article.body.unresolved == []
    assert len(article.body.navigation) == 4


def test_build_resolver_prefers_source_url(project: Path) -> None:
    site = load_site_config(project / "lutex.yaml")
    document = site.get_document("paper")
    assert isinstance(build_resolver(document), FileSystemResolver)
    document.source_url = "https://example.invalid/paper/"
    assert isinstance(build_resolver(document), HttpResolver)


def test_page_paths(project: Path, written: list[Path]) -> None:
    assert written == [
        project / "public" / "main.html",
        project / "public" / NAV_META_TEMPLATE.format(key="paper"),
    ]


def test_page_header_and_abstract(page: BeautifulSoup) -> None:
    assert page.title.get_text() == "Sample Paper"
    assert page.select_one("h1.article-title").get_text() == "Sample Paper"
    assert page.select_one("p.article-author br") is not None
    assert page.select_one("a.arxiv-link")["href"] == "https://arxiv.org/abs/2401.00001"
    assert page.select_one("a.github-link")["href"] == "https://github.com/example/paper"
    abstract = page.select_one("section.abstract")
    assert "We build on" in abstract.get_text()
    assert abstract.select_one("a.citation").get_text() == "[1]"


def test_page_body_and_references(page: BeautifulSoup) -> None:
    body = page.select_one("article.article-body")
    assert [h2.get_text() for h2 in body.select("h2")] == ["I. Intro", "II. Method"]
    link = body.select_one("a.autoref")
    assert link["href"] == "#sec-2"
    assert link.get_text() == "Sec.\xa0II"
    equation = body.select_one("div.equation")
    assert equation["file"] == "method.tex"
    assert equation["line"] == "3"
    items = page.select("section.references li")
    assert [li["data-key"] for li in items] == ["knuth84"]
    assert "Donald Knuth" in items[0].get_text()


def test_page_navigation_and_assets(page: BeautifulSoup) -> None:
    sections = page.select("nav.lutex-nav ol.nav-sections > li > a")
    assert [a["data-command"] for a in sections] == ["s 1", "s 2"]
    nested = page.select("nav.lutex-nav ol.nav-subsections a")
    assert [a["href"] for a in nested] == ["#subsec-2-1"]
    assert page.select_one("details.nav-equations a")["data-command"] == "e 1"
    assert page.select_one("details.nav-figures") is None
    assert ".codehilite" in page.style.string
    script = page.script.string
    assert '"\\\\Z": "\\\\mathbb{Z}"' in script


def test_navigation_sidecar(written: list[Path]) -> None:
    payload = typ.cast(
        "dict[str, list[dict[str, typ.Any]]]", msgspec_json.decode(written[1].read_bytes())
    )
    assert [entry["command"] for entry in payload["sections"]] == ["s 1", "s 2"]
    assert payload["subsections"][0]["number"] == [2, 1]
    assert payload["equations"][0]["label"] == "eq:x"
    assert payload["figures"] == []


def test_output_dir_override(project: Path, tmp_path_factory: pytest.TempPathFactory) -> None:
    site = load_site_config(project / "lutex.yaml")
    target = tmp_path_factory.mktemp("dist")
    builder = ArticlePageBuilder(
        site.get_document("paper"),
        site,
        resolver=FileSystemResolver(project),
        output_dir=target,
    )
    paths = builder.run()
    assert all(path.parent == target for path in paths)
