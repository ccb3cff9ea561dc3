r"""Article front matter, the full render pipeline, and the page writer.

The main ``.tex`` file carries front matter outside the body walk:
``\title``, ``\author``, ``\affiliation``, the ``abstract`` environment,
``%%github:`` / ``%%arxiv:`` link comments, ``\bibliography`` files and
``\newcommand`` macro definitions. :func:`parse_front_matter` extracts those,
:func:`render_article` combines them with the body produced by
:func:`lutex.parser.render_body`, and :class:`ArticlePageBuilder` writes a
themed HTML page plus a navigation sidecar for a configured document.

Example
-------
>>> from lutex.document import parse_front_matter
>>> parse_front_matter("\\title{On {Nested} Braces}\n%%arxiv:2401.00001").arxiv
'2401.00001'
"""

from __future__ import annotations

import dataclasses as dc
import json
import logging
import re
import typing as typ
from pathlib import Path

import msgspec.json as msgspec_json
from jinja2 import Environment, FileSystemLoader, select_autoescape

from ._constants import BIB_EXTENSION, NAV_META_TEMPLATE
from .braces import extract_braced
from .highlight import CodeHighlighter
from .inline import CitationRegistry, InlineMacroExpander
from .parser import NEWCOMMAND_PATTERN, render_body
from .sources import FileSystemResolver, HttpResolver, with_extension

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .config import DocumentConfig, SiteConfig
    from .inline import Reference
    from .parser import RenderedBody
    from .sources import SourceResolver

logger = logging.getLogger(__name__)

GITHUB_PATTERN = re.compile(r"^%%github:(.+)$", re.MULTILINE)
ARXIV_PATTERN = re.compile(r"^%%arxiv:(.+)$", re.MULTILINE)
ABSTRACT_PATTERN = re.compile(r"\\begin\{abstract\}(.*?)\\end\{abstract\}", re.DOTALL)
COMMENT_LINE_PATTERN = re.compile(r"(?<!\\)%[^\n]*")


@dc.dataclass(slots=True)
class FrontMatter:
    """Metadata read from the main file outside the body walk."""

    title: str = ""
    author: str = ""
    affiliation: str = ""
    abstract: str = ""
    github: str = ""
    arxiv: str = ""
    bibliography: list[str] = dc.field(default_factory=list)
    macros: dict[str, str] = dc.field(default_factory=dict)


@dc.dataclass(slots=True)
class Article:
    """A rendered article: front matter HTML, body, and cited references."""

    front_matter: FrontMatter
    title_html: str
    author_html: str
    affiliation_html: str
    abstract_html: str
    body: RenderedBody
    references: list[tuple[int, Reference]]

    @property
    def macros(self) -> dict[str, str]:
        """Return every math macro known to the article."""
        return self.body.macros


def collect_macros(text: str) -> dict[str, str]:
    """Return ``\\newcommand`` definitions found anywhere in ``text``."""
    macros: dict[str, str] = {}
    for line in text.splitlines():
        stripped = line.strip()
        match = NEWCOMMAND_PATTERN.match(stripped)
        if match is None:
            continue
        definition = extract_braced(stripped[match.end() :], "")
        if definition is not None:
            macros[match.group(1)] = definition.content
    return macros


def parse_front_matter(text: str) -> FrontMatter:
    """Extract title, authors, abstract, links, bibliography and macros."""
    front = FrontMatter()
    github = GITHUB_PATTERN.search(text)
    if github:
        front.github = github.group(1).strip()
    arxiv = ARXIV_PATTERN.search(text)
    if arxiv:
        front.arxiv = arxiv.group(1).strip()

    uncommented = COMMENT_LINE_PATTERN.sub("", text)
    for command in ("title", "author", "affiliation"):
        match = extract_braced(uncommented, f"\\{command}")
        if match is not None:
            setattr(front, command, match.content.strip())
    abstract = ABSTRACT_PATTERN.search(uncommented)
    if abstract:
        front.abstract = abstract.group(1).strip()
    bibliography = extract_braced(uncommented, "\\bibliography")
    if bibliography is not None:
        front.bibliography = [
            with_extension(name.strip(), BIB_EXTENSION)
            for name in bibliography.content.split(",")
            if name.strip()
        ]
    preamble, _, _ = uncommented.partition("\\begin{document}")
    front.macros = collect_macros(preamble)
    return front


def build_resolver(document: DocumentConfig) -> SourceResolver:
    """Return the resolver matching the document's source location."""
    if document.source_url:
        return HttpResolver(document.source_url)
    return FileSystemResolver(document.source_root)


def render_article(
    text: str,
    resolver: SourceResolver | None = None,
    *,
    file_name: str = "main.tex",
    references: cabc.Mapping[str, Reference] | None = None,
    macros: cabc.Mapping[str, str] | None = None,
    highlighter: CodeHighlighter | None = None,
) -> Article:
    """Render front matter and body of the main file ``text``.

    Parameters
    ----------
    text : str
        Source of the main file.
    resolver : SourceResolver, optional
        Loader for ``\\input`` targets.
    file_name : str, optional
        Name reported in ``file`` attributes for the main file.
    references : Mapping[str, Reference], optional
        Bibliography entries used to number citations.
    macros : Mapping[str, str], optional
        Configured math macros; definitions in the document win.
    highlighter : CodeHighlighter, optional
        Highlighter for listing environments.

    Returns
    -------
    Article
        Rendered article with its navigation index and cited references.
    """
    front = parse_front_matter(text)
    citations = CitationRegistry(references)
    expander = InlineMacroExpander(citations)
    abstract_html = expander.expand(" ".join(front.abstract.split()))
    body = render_body(
        text,
        resolver,
        file_name=file_name,
        citations=citations,
        highlighter=highlighter,
        macros={**(macros or {}), **front.macros},
    )
    author_lines = [line.strip() for line in front.author.split("\\\\")]
    return Article(
        front_matter=front,
        title_html=expander.expand(front.title),
        author_html="<br>".join(expander.expand(line) for line in author_lines if line),
        affiliation_html=expander.expand(" ".join(front.affiliation.replace("\\\\", " ").split())),
        abstract_html=abstract_html,
        body=body,
        references=citations.cited(),
    )


class ArticlePageBuilder:
    """Render a configured document into a themed HTML page on disk."""

    def __init__(
        self,
        document: DocumentConfig,
        site_config: SiteConfig,
        *,
        templates_dir: Path | None = None,
        resolver: SourceResolver | None = None,
        output_dir: Path | None = None,
    ) -> None:
        """Initialize the builder for one document.

        Parameters
        ----------
        document : DocumentConfig
            Document to render.
        site_config : SiteConfig
            Site configuration providing shared references.
        templates_dir : Path, optional
            Directory containing Jinja templates; defaults to the package templates.
        resolver : SourceResolver, optional
            Override for the source loader; defaults to one built from the config.
        output_dir : Path, optional
            Override for the HTML output directory.
        """
        self.document = document
        self.site_config = site_config
        self.templates_dir = templates_dir or Path(__file__).parent / "templates"
        self.resolver = resolver or build_resolver(document)
        self.output_dir_override = output_dir
        self.highlighter = CodeHighlighter(document.pygments_style)
        self.env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            autoescape=select_autoescape(["html", "xml", "jinja"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.template = self.env.get_template(document.template)

    def render(self) -> Article:
        """Load the main file and render it into an :class:`Article`."""
        file_name = with_extension(self.document.source)
        text = self.resolver.read(file_name)
        return render_article(
            text,
            self.resolver,
            file_name=file_name,
            references=self.site_config.references,
            macros=self.document.macros,
            highlighter=self.highlighter,
        )

    def run(self) -> list[Path]:
        """Render the page and its navigation sidecar.

        Returns
        -------
        list[Path]
            Paths of the HTML page and the navigation JSON file.

        Raises
        ------
        SourceNotFoundError
            If the main file or an ``\\input`` target cannot be retrieved.
        """
        article = self.render()
        if self.output_dir_override is None:
            output_path = self.document.output_path
        else:
            output_path = self.output_dir_override / self.document.output
        out_dir = output_path.parent
        out_dir.mkdir(parents=True, exist_ok=True)
        html = self.template.render(**self._context(article))
        output_path.write_text(html, encoding="utf-8")
        nav_path = out_dir / NAV_META_TEMPLATE.format(key=self.document.key)
        nav_path.write_bytes(msgspec_json.encode(article.body.navigation.as_dict()))
        logger.info("rendered %s to %s", self.document.key, output_path)
        return [output_path, nav_path]

    def _context(self, article: Article) -> dict[str, typ.Any]:
        """Build the template context for ``article``."""
        front = article.front_matter
        return {
            "document": self.document,
            "title_html": article.title_html,
            "author_html": article.author_html,
            "affiliation_html": article.affiliation_html,
            "abstract_html": article.abstract_html,
            "github": front.github,
            "arxiv": front.arxiv,
            "body_html": article.body.html,
            "navigation": article.body.navigation,
            "references": article.references,
            "macros_json": json.dumps(article.macros).replace("</", "<\\/"),
            "pygments_css": self.highlighter.stylesheet,
        }


__all__ = [
    "Article",
    "ArticlePageBuilder",
    "FrontMatter",
    "build_resolver",
    "collect_macros",
    "parse_front_matter",
    "render_article",
]
