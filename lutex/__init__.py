"""Render a LaTeX subset into navigable HTML articles.

This package walks LaTeX sources (following ``\\input`` across files),
renders sections, floats, equations and theorem-like blocks into HTML,
resolves ``\\autoref`` cross-references, and exposes a navigation index for
"jump to" interfaces. The ``lutex`` console script drives it from a
``lutex.yaml`` site configuration.

Exports
-------
- ``app``: Cyclopts application entry for subcommands.
- ``main``: Convenience function that invokes the Cyclopts app.
- ``render_body``: Render body source into resolved HTML.
- ``render_article``: Render front matter and body of a main file.

Examples
--------
>>> from lutex import render_body
>>> "sec-1" in render_body("\\\\section{Intro}").html
True
"""

from __future__ import annotations

from .cli import app, main
from .document import render_article
from .parser import render_body

__all__ = ["app", "main", "render_article", "render_body"]
