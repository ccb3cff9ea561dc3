r"""Environment renderers for equations, floats, theorems, lists and listings.

Each renderer works in three explicit steps: a ``parse_*`` function extracts
structured data from the raw environment text, the renderer then applies its
side effects (advance a counter, register the label, append a navigation
entry), and finally builds the HTML fragment. Keeping extraction separate
from the side effects means no counter moves as a by-product of a regular
expression callback.

The walker picks a renderer through :class:`EnvironmentKind`, so the set of
supported environment names lives in one place.

Example
-------
>>> from lutex.environments import EnvironmentKind, parse_equation
>>> EnvironmentKind.from_name("figure*")
<EnvironmentKind.FIGURE: 'figure'>
>>> parse_equation(r"E = mc^2 \label{eq:energy}").label
'eq:energy'
"""

from __future__ import annotations

import dataclasses as dc
import enum
import re
import typing as typ
from html import escape

from ._constants import (
    EQUATION_ENVIRONMENTS,
    FRONT_MATTER_ENVIRONMENTS,
    LISTING_ENVIRONMENTS,
    MULTILINE_EQUATION_ENVIRONMENTS,
    THEOREM_ENVIRONMENTS,
)
from .braces import strip_braced, to_subfigure_letter
from .navigation import NavigationEntry
from .registry import EntityKind, LabeledEntity

if typ.TYPE_CHECKING:
    from .highlight import CodeHighlighter
    from .inline import InlineMacroExpander
    from .navigation import NavigationIndex
    from .registry import LabelRegistry

LABEL_PATTERN = re.compile(r"\\label\{([^}]+)\}")
SUBFLOAT_PATTERN = re.compile(
    r"\\subfloat\[([^\]]*)\]\s*\{([^{}]*(?:\{[^{}]*\}[^{}]*)*)\}"
)
GRAPHICS_PATTERN = re.compile(
    r"\\includegraphics(?:\[([^\]]*)\])?\s*\{([^}]+)\}", re.DOTALL
)
WIDTH_PATTERN = re.compile(r"width\s*=\s*([0-9.]*)\s*\\(?:text|line)width")
TABULAR_PATTERN = re.compile(
    r"\\begin\{tabular\}\{([^}]*)\}(.*?)\\end\{tabular\}", re.DOTALL
)
HLINE_SPLIT_PATTERN = re.compile(r"(?:\\\\)?\s*\\hline")
ITEM_SPLIT_PATTERN = re.compile(r"\\item\s+")
THEOREM_OPENING_PATTERN = re.compile(
    r"^\s*(?:\[([^\]]*)\])?\s*(?:\\label\{([^}]+)\})?"
)
PLACEMENT_PATTERN = re.compile(r"^\s*\[[^\]]*\]")
LISTING_LANGUAGE_PATTERN = re.compile(r"language\s*=\s*\{?([A-Za-z0-9_+#.-]+)")
MINTED_LANGUAGE_PATTERN = re.compile(r"^\s*(?:\[[^\]]*\])?\s*\{([^}]*)\}")


class EnvironmentKind(enum.Enum):
    """Tagged dispatch over the environment names the walker understands."""

    EQUATION = "equation"
    FIGURE = "figure"
    TABLE = "table"
    THEOREM = "theorem"
    ITEMIZE = "itemize"
    ENUMERATE = "enumerate"
    LISTING = "listing"
    FRONT_MATTER = "front_matter"
    UNKNOWN = "unknown"

    @classmethod
    def from_name(cls, name: str) -> EnvironmentKind:
        """Return the kind for a ``\\begin{name}`` environment name."""
        base = name.rstrip("*")
        match base:
            case _ if base in EQUATION_ENVIRONMENTS:
                return cls.EQUATION
            case _ if base in THEOREM_ENVIRONMENTS:
                return cls.THEOREM
            case _ if base in LISTING_ENVIRONMENTS:
                return cls.LISTING
            case _ if base in FRONT_MATTER_ENVIRONMENTS:
                return cls.FRONT_MATTER
            case "figure":
                return cls.FIGURE
            case "table":
                return cls.TABLE
            case "itemize":
                return cls.ITEMIZE
            case "enumerate":
                return cls.ENUMERATE
            case _:
                return cls.UNKNOWN

    @property
    def keeps_raw_lines(self) -> bool:
        """Whether buffered lines skip trimming and comment stripping."""
        return self is EnvironmentKind.LISTING

    @property
    def takes_placement(self) -> bool:
        """Whether a leading ``[...]`` option after ``\\begin`` is discarded."""
        return self in (
            EnvironmentKind.FIGURE,
            EnvironmentKind.TABLE,
            EnvironmentKind.ITEMIZE,
            EnvironmentKind.ENUMERATE,
        )


@dc.dataclass(slots=True)
class Counters:
    """Document-wide numbering counters.

    Equations, figures, tables and theorem-like blocks each count across the
    whole document; sections are tracked by the walker itself.
    """

    equation: int = 0
    figure: int = 0
    table: int = 0
    theorem: int = 0


@dc.dataclass(frozen=True, slots=True)
class EquationParts:
    """Label and math body of an equation environment."""

    label: str | None
    body: str
    row_breaks: int


@dc.dataclass(frozen=True, slots=True)
class Graphic:
    """An ``\\includegraphics`` target with its width factor."""

    path: str
    width: float = 1.0


@dc.dataclass(frozen=True, slots=True)
class Subfloat:
    """One ``\\subfloat[caption]{...}`` block inside a figure."""

    caption: str
    graphic: Graphic | None
    label: str | None


@dc.dataclass(frozen=True, slots=True)
class FigureParts:
    """Structured content of a figure environment."""

    label: str | None
    caption: str | None
    subfloats: list[Subfloat]
    graphic: Graphic | None


@dc.dataclass(frozen=True, slots=True)
class TableParts:
    """Structured content of a table environment; ``rows`` is ``None`` without tabular."""

    label: str | None
    caption: str | None
    column_spec: str | None
    rows: list[list[str]] | None


@dc.dataclass(frozen=True, slots=True)
class TheoremOpening:
    """Optional display name and label following ``\\begin{theorem}``."""

    name: str | None
    label: str | None
    remainder: str


def take_label(content: str) -> tuple[str | None, str]:
    """Return the first ``\\label{}`` value and ``content`` without it."""
    match = LABEL_PATTERN.search(content)
    if match is None:
        return None, content
    return match.group(1).strip(), content[: match.start()] + content[match.end() :]


def parse_graphic(content: str) -> Graphic | None:
    """Return the first ``\\includegraphics`` target found in ``content``."""
    match = GRAPHICS_PATTERN.search(content)
    if match is None:
        return None
    width = 1.0
    width_match = WIDTH_PATTERN.search(match.group(1) or "")
    if width_match and width_match.group(1):
        try:
            width = float(width_match.group(1))
        except ValueError:
            width = 1.0
    return Graphic(path=match.group(2).strip(), width=width)


def parse_equation(content: str, env_name: str = "equation") -> EquationParts:
    """Extract the first label and count row breaks of multi-line variants."""
    label, body = take_label(content)
    row_breaks = 0
    if env_name.rstrip("*") in MULTILINE_EQUATION_ENVIRONMENTS:
        row_breaks = body.count("\\\\")
    return EquationParts(label=label, body=body.strip(), row_breaks=row_breaks)


def parse_figure(content: str) -> FigureParts:
    """Extract subfloats or a single graphic, then the caption and label."""
    subfloats: list[Subfloat] = []
    for match in SUBFLOAT_PATTERN.finditer(content):
        inner = match.group(2)
        sub_label, _ = take_label(inner)
        subfloats.append(
            Subfloat(
                caption=match.group(1).strip(),
                graphic=parse_graphic(inner),
                label=sub_label,
            )
        )
    graphic = None
    if subfloats:
        content = SUBFLOAT_PATTERN.sub("", content)
    else:
        graphic = parse_graphic(content)
    label, content = take_label(content)
    caption, content = strip_braced(content, "\\caption")
    return FigureParts(
        label=label,
        caption=caption.strip() if caption is not None else None,
        subfloats=subfloats,
        graphic=graphic,
    )


def parse_table(content: str) -> TableParts:
    """Extract label, caption and the ``tabular`` rows of a table."""
    label, content = take_label(content)
    caption, content = strip_braced(content, "\\caption")
    match = TABULAR_PATTERN.search(content)
    rows: list[list[str]] | None = None
    column_spec = None
    if match is not None:
        column_spec = match.group(1)
        rows = []
        for chunk in HLINE_SPLIT_PATTERN.split(match.group(2)):
            for row in chunk.split("\\\\"):
                if row.strip():
                    rows.append([cell.strip() for cell in row.split("&")])
    return TableParts(
        label=label,
        caption=caption.strip() if caption is not None else None,
        column_spec=column_spec,
        rows=rows,
    )


def parse_theorem_opening(rest: str) -> TheoremOpening:
    """Parse ``[name]`` and ``\\label{}`` from the rest of an opening line."""
    match = THEOREM_OPENING_PATTERN.match(rest)
    if match is None:  # pragma: no cover - the pattern matches the empty string
        return TheoremOpening(name=None, label=None, remainder=rest.strip())
    name = match.group(1).strip() if match.group(1) else None
    label = match.group(2).strip() if match.group(2) else None
    return TheoremOpening(name=name, label=label, remainder=rest[match.end() :].strip())


def parse_list_items(content: str) -> list[str]:
    """Split list content on ``\\item`` markers, dropping empty segments."""
    return [item.strip() for item in ITEM_SPLIT_PATTERN.split(content) if item.strip()]


def parse_listing_language(env_name: str, opening: str) -> str | None:
    """Return the language named on a listing's opening line, if any."""
    if env_name == "minted":
        match = MINTED_LANGUAGE_PATTERN.match(opening)
        return match.group(1).strip() if match else None
    match = LISTING_LANGUAGE_PATTERN.search(opening)
    return match.group(1) if match else None


def strip_placement(rest: str) -> str:
    """Drop a leading ``[htbp]`` style option from an opening line."""
    return PLACEMENT_PATTERN.sub("", rest, count=1).strip()


class EnvironmentRenderer:
    """Render environment bodies and record their labels and jump targets."""

    def __init__(
        self,
        *,
        counters: Counters,
        registry: LabelRegistry,
        navigation: NavigationIndex,
        expander: InlineMacroExpander,
        highlighter: CodeHighlighter,
    ) -> None:
        self.counters = counters
        self.registry = registry
        self.navigation = navigation
        self.expander = expander
        self.highlighter = highlighter

    def render(self, kind: EnvironmentKind, env_name: str, content: str, meta: str) -> str:
        """Dispatch a closed, buffered environment to its renderer."""
        match kind:
            case EnvironmentKind.EQUATION:
                return self.render_equation(env_name, content, meta)
            case EnvironmentKind.FIGURE:
                return self.render_figure(content, meta)
            case EnvironmentKind.TABLE:
                return self.render_table(content, meta)
            case EnvironmentKind.ITEMIZE:
                return self.render_list(content, meta, numbered=False)
            case EnvironmentKind.ENUMERATE:
                return self.render_list(content, meta, numbered=True)
            case EnvironmentKind.FRONT_MATTER:
                return ""
            case _:
                return self.render_unknown(env_name, content, meta)

    def render_equation(self, env_name: str, content: str, meta: str) -> str:
        """Number an equation and pass its math body through verbatim."""
        parts = parse_equation(content, env_name)
        self.counters.equation += 1
        number = self.counters.equation
        label = parts.label or f"eq:{number}"
        anchor = f"eq-{number}"
        self.registry.register(
            LabeledEntity(EntityKind.EQUATION, label, number, f"Eq. ({number})", anchor)
        )
        self.navigation.equations.append(
            NavigationEntry(number, label, anchor, f"e {number}", f"Eq ({number}): {label}")
        )
        # Coarse: every row break inside align/gather is taken as a numbered row.
        self.counters.equation += parts.row_breaks
        return (
            f'<div class="equation" id="{anchor}" data-label="{escape(label)}" {meta}>'
            f"\\begin{{{env_name}}}{escape(parts.body, quote=False)}"
            f"\\end{{{env_name}}}</div>"
        )

    def render_figure(self, content: str, meta: str) -> str:
        """Render a figure with optional subfloats and a numbered caption."""
        parts = parse_figure(content)
        self.counters.figure += 1
        number = self.counters.figure
        blocks: list[str] = []
        if parts.subfloats:
            blocks.append('<div class="subfloats-container">')
            for index, subfloat in enumerate(parts.subfloats):
                blocks.append(self._render_subfloat(number, index, subfloat))
            blocks.append("</div>")
        else:
            blocks.append(self._placeholder(parts.graphic))

        label = parts.label or f"fig:{number}"
        anchor = f"fig-{number}"
        self.registry.register(
            LabeledEntity(EntityKind.FIGURE, label, number, f"Fig. {number}", anchor)
        )
        self.navigation.figures.append(
            NavigationEntry(number, label, anchor, f"f {number}", f"Fig {number}: {label}")
        )
        if parts.caption:
            caption = self.expander.expand(parts.caption)
            blocks.append(
                f'<div class="figure-caption">Figure {number}: {caption}</div>'
            )
        body = "".join(blocks)
        return (
            f'<div class="figure" id="{anchor}" data-label="{escape(label)}" {meta}>'
            f"{body}</div>"
        )

    def _render_subfloat(self, number: int, index: int, subfloat: Subfloat) -> str:
        letter = to_subfigure_letter(index)
        attrs = ""
        if subfloat.label:
            anchor = subfloat.label.replace(":", "-")
            self.registry.register(
                LabeledEntity(
                    EntityKind.FIGURE,
                    subfloat.label,
                    number,
                    f"Fig. {number}{letter}",
                    anchor,
                )
            )
            attrs = f' id="{escape(anchor)}" data-label="{escape(subfloat.label)}"'
        caption = ""
        if subfloat.caption:
            caption = (
                f'<div class="subfloat-caption">({letter}) '
                f"{self.expander.expand(subfloat.caption)}</div>"
            )
        return f'<div class="subfloat"{attrs}>{self._placeholder(subfloat.graphic)}{caption}</div>'

    @staticmethod
    def _placeholder(graphic: Graphic | None) -> str:
        if graphic is None:
            return '<div class="figure-placeholder"></div>'
        path = escape(graphic.path)
        return (
            f'<div class="figure-placeholder" data-src="{path}" '
            f'data-width="{graphic.width:g}">{path}</div>'
        )

    def render_table(self, content: str, meta: str) -> str:
        """Render a table's ``tabular`` rows and numbered caption."""
        parts = parse_table(content)
        self.counters.table += 1
        number = self.counters.table
        label = parts.label or f"tab:{number}"
        anchor = f"tab-{number}"
        self.registry.register(
            LabeledEntity(EntityKind.TABLE, label, number, f"Tab. {number}", anchor)
        )
        self.navigation.tables.append(
            NavigationEntry(number, label, anchor, f"t {number}", f"Table {number}: {label}")
        )
        blocks: list[str] = []
        if parts.rows is not None:
            rows = "\n".join(
                "<tr>"
                + "".join(f"<td>{self.expander.expand(cell)}</td>" for cell in row)
                + "</tr>"
                for row in parts.rows
            )
            columns = f' data-columns="{escape(parts.column_spec)}"' if parts.column_spec else ""
            blocks.append(f'<table class="centered-table"{columns}><tbody>{rows}</tbody></table>')
        if parts.caption:
            caption = self.expander.expand(parts.caption)
            blocks.append(f'<div class="table-caption">Table {number}: {caption}</div>')
        body = "".join(blocks)
        return (
            f'<div class="table" id="{anchor}" data-label="{escape(label)}" {meta}>'
            f"{body}</div>"
        )

    def open_theorem(self, env_name: str, opening: TheoremOpening, meta: str) -> str:
        """Number a theorem-like block and return its opening container."""
        self.counters.theorem += 1
        number = self.counters.theorem
        kind_name = env_name.rstrip("*").capitalize()
        label = opening.label or f"thm:{number}"
        anchor = f"thm-{number}"
        self.registry.register(
            LabeledEntity(EntityKind.THEOREM, label, number, f"{kind_name} {number}", anchor)
        )
        name = opening.name or ""
        self.navigation.theorems.append(
            NavigationEntry(
                number,
                label,
                anchor,
                f"h {number}",
                f"{kind_name} {number}: {name or '??'}",
                name,
            )
        )
        heading = f"{kind_name} {number}"
        if name:
            heading = f"{heading} ({self.expander.expand(name)})"
        return (
            f'<div class="theorem" id="{anchor}" data-label="{escape(label)}" {meta}>'
            f"<strong>{heading} </strong>"
        )

    def render_list(self, content: str, meta: str, *, numbered: bool) -> str:
        """Render itemize/enumerate content as an HTML list."""
        items = "\n".join(
            f"<li>{self.expander.expand(item)}</li>" for item in parse_list_items(content)
        )
        tag = "ol" if numbered else "ul"
        return f"<{tag} {meta}>{items}</{tag}>"

    def render_listing(self, env_name: str, opening: str, code: str, meta: str) -> str:
        """Highlight a verbatim listing with Pygments."""
        language = parse_listing_language(env_name, opening)
        block = self.highlighter.code_block(code, language)
        return f'<div class="listing" {meta}>{block}</div>'

    def render_unknown(self, env_name: str, content: str, meta: str) -> str:
        """Show an unsupported environment's content as a visible todo block."""
        return (
            f'<div class="todo" data-env="{escape(env_name)}" {meta}>'
            f"{escape(content, quote=False)}</div>"
        )


__all__ = [
    "Counters",
    "EnvironmentKind",
    "EnvironmentRenderer",
    "EquationParts",
    "FigureParts",
    "Graphic",
    "Subfloat",
    "TableParts",
    "TheoremOpening",
    "parse_equation",
    "parse_figure",
    "parse_graphic",
    "parse_list_items",
    "parse_listing_language",
    "parse_table",
    "parse_theorem_opening",
    "strip_placement",
    "take_label",
]
