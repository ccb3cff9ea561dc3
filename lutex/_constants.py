"""Common literal values used across lutex.

These constants keep environment names, id prefixes and file conventions in
one place so the walker, the renderers, and tests can import the same values
without drifting. Intended for internal use within the lutex package.

Examples
--------
>>> from lutex import _constants
>>> _constants.NAV_META_TEMPLATE.format(key="paper")
'.lutex-paper-nav.json'
>>> "lemma" in _constants.THEOREM_ENVIRONMENTS
True
"""

NAV_META_TEMPLATE = ".lutex-{key}-nav.json"
TEX_EXTENSION = ".tex"
BIB_EXTENSION = ".bib"

EQUATION_ENVIRONMENTS = ("equation", "align", "gather")
MULTILINE_EQUATION_ENVIRONMENTS = ("align", "gather")
THEOREM_ENVIRONMENTS = (
    "theorem",
    "lemma",
    "definition",
    "corollary",
    "example",
    "problem",
    "proposition",
)
LISTING_ENVIRONMENTS = ("lstlisting", "minted", "verbatim")

# Lines starting with these are consumed by the walker without output; the
# article front matter reads them separately.
PREAMBLE_COMMANDS = (
    "\\documentclass",
    "\\usepackage",
    "\\title",
    "\\author",
    "\\affiliation",
    "\\maketitle",
    "\\bibliography",
    "\\bibliographystyle",
    "\\begin{document}",
    "\\end{document}",
)
FRONT_MATTER_ENVIRONMENTS = ("abstract",)

CHECKPOINT_MARKER = "%%check"
IGNORE_REGION_START = "%region Ignore"
REGION_END = "%endregion"
