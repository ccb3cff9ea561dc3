"""Cyclopts CLI entrypoint for rendering LaTeX articles into HTML pages.

The ``lutex`` console script renders every document listed in ``lutex.yaml``
(``lutex render``), prints the navigation index of a single source file as
JSON (``lutex nav``), and reports cross-references that point at undefined
labels (``lutex check``). Options can also be supplied through ``LUTEX_*``
environment variables, which makes the commands convenient to drive from CI.

Examples
--------
Render all configured documents:

>>> from lutex.cli import main
>>> main()  # doctest: +SKIP

Render one document into a custom directory:

>>> from lutex.cli import app
>>> app.run(["render", "--document", "paper", "--output-dir", "dist"])  # doctest: +SKIP
"""

from __future__ import annotations

import logging
import sys
import typing as typ
from pathlib import Path

import cyclopts
import msgspec.json as msgspec_json
from cyclopts import App, Parameter

from .config import load_site_config
from .document import ArticlePageBuilder, render_article
from .sources import FileSystemResolver

if typ.TYPE_CHECKING:
    from .document import Article

DEFAULT_CONFIG = Path("lutex.yaml")
LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s:%(lineno)d | %(message)s"

app = App(name="lutex", config=cyclopts.config.Env("LUTEX_", command=False))  # type: ignore[unknown-argument]


def _configure_logging(level: str) -> None:
    """Point the root logger at stderr with the given level name."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format=LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )


def _format_path(path: Path) -> str:
    """Return a cwd-relative path when possible, otherwise the absolute path."""
    if path.is_absolute():
        try:
            return str(path.relative_to(Path.cwd()))
        except ValueError:  # pragma: no cover - fallback for different roots
            return str(path)
    return str(path)


def _render_source(source: Path) -> Article:
    """Render a standalone source file, resolving inputs beside it."""
    resolver = FileSystemResolver(source.parent)
    return render_article(
        resolver.read(source.name), resolver, file_name=source.name
    )


@app.command(help="Render configured LaTeX documents into HTML pages.")
def render(
    *,
    document: typ.Annotated[
        str | None, Parameter(help="Document identifier", env_var="LUTEX_DOCUMENT")
    ] = None,
    config: typ.Annotated[
        Path, Parameter(help="Path to site config", env_var="LUTEX_CONFIG")
    ] = DEFAULT_CONFIG,
    output_dir: typ.Annotated[
        Path | None,
        Parameter(help="Override the output folder", env_var="LUTEX_OUTPUT_DIR"),
    ] = None,
    log_level: typ.Annotated[
        str, Parameter(help="Logging level", env_var="LUTEX_LOG_LEVEL")
    ] = "warning",
) -> None:
    """Render documents for the requested site configuration.

    Parameters
    ----------
    document : str or None, optional
        Specific document key to render; when ``None`` (default) every
        configured document is rendered.
    config : Path, optional
        Path to the ``lutex.yaml`` configuration file (overridable via
        ``LUTEX_CONFIG``).
    output_dir : Path or None, optional
        Override output directory for single-document rendering.
    log_level : str, optional
        Name of the logging level for diagnostics written to stderr.

    Raises
    ------
    ValueError
        If ``output_dir`` is supplied when more than one document is rendered.
    """
    _configure_logging(log_level)
    site_config = load_site_config(config)

    if document:
        targets = [site_config.get_document(document)]
    else:
        targets = list(site_config.documents.values())

    if len(targets) > 1 and output_dir:
        msg = "Cannot override output_dir when rendering multiple documents."
        raise ValueError(msg)

    for document_config in targets:
        builder = ArticlePageBuilder(document_config, site_config, output_dir=output_dir)
        for path in builder.run():
            print(f"wrote {_format_path(path)}")


@app.command(help="Print the navigation index of a LaTeX source as JSON.")
def nav(
    source: typ.Annotated[Path, Parameter(help="Main .tex file")],
    *,
    log_level: typ.Annotated[
        str, Parameter(help="Logging level", env_var="LUTEX_LOG_LEVEL")
    ] = "warning",
) -> None:
    """Write the navigation index of ``source`` to stdout."""
    _configure_logging(log_level)
    article = _render_source(source)
    print(msgspec_json.encode(article.body.navigation.as_dict()).decode("utf-8"))


@app.command(help="Report references to labels that are never defined.")
def check(
    source: typ.Annotated[Path, Parameter(help="Main .tex file")],
    *,
    log_level: typ.Annotated[
        str, Parameter(help="Logging level", env_var="LUTEX_LOG_LEVEL")
    ] = "error",
) -> None:
    """Render ``source`` and list unresolved references.

    Raises
    ------
    SystemExit
        With status 1 when at least one reference is unresolved.
    """
    _configure_logging(log_level)
    article = _render_source(source)
    unresolved = article.body.unresolved
    for label in unresolved:
        print(f"unresolved: {label}")
    if unresolved:
        raise SystemExit(1)
    print(f"ok: {len(article.body.registry)} labels resolved")


def main() -> None:
    """Invoke the Cyclopts application that powers the ``lutex`` command."""
    app()


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    main()


__all__ = ["app", "main"]
