r"""Line-oriented document walker for the supported LaTeX subset.

The walker reads source text one line at a time and keeps all of its
bookkeeping in a :class:`ParseState` owned by a single render. For each line
it strips comments, detects paragraph breaks, and dispatches in a fixed
priority order: ``\input``, ``\section``, ``\subsection``, ``\appendix``,
``\begin{env}``, the body or end of an open environment, and finally plain
text. Every emitted block carries ``file`` and ``line`` attributes so a
browser can jump back to the source.

Rendering happens in two phases. :meth:`DocumentWalker.walk` produces HTML in
which cross-references are still literal ``\autoref{}`` tokens while the
label registry fills up; :func:`lutex.registry.resolve_references` then
rewrites those tokens once the whole document, including every included file,
is known. :func:`render_body` runs both phases.

Example
-------
>>> from lutex.parser import render_body
>>> body = render_body("\\section{Intro}\\label{sec:intro}\nSee \\autoref{sec:intro}.")
>>> body.navigation.sections[0].command
's 1'
>>> 'class="autoref">Sec.&nbsp;I</a>' in body.html
True
"""

from __future__ import annotations

import dataclasses as dc
import logging
import re
import textwrap
import typing as typ
from html import escape

from ._constants import (
    CHECKPOINT_MARKER,
    IGNORE_REGION_START,
    PREAMBLE_COMMANDS,
    REGION_END,
)
from .braces import (
    extract_braced,
    section_name,
    section_reference,
    strip_braced,
    to_letter,
)
from .environments import (
    Counters,
    EnvironmentKind,
    EnvironmentRenderer,
    parse_theorem_opening,
    strip_placement,
    take_label,
)
from .highlight import CodeHighlighter
from .inline import CitationRegistry, InlineMacroExpander
from .navigation import NavigationEntry, NavigationIndex
from .registry import (
    EntityKind,
    LabeledEntity,
    LabelRegistry,
    resolve_references,
    unresolved_labels,
)
from .sources import SourceNotFoundError, with_extension

if typ.TYPE_CHECKING:
    from .sources import SourceResolver

logger = logging.getLogger(__name__)

COMMENT_PATTERN = re.compile(r"(?<!\\)%.*$")
INPUT_PATTERN = re.compile(r"\\input\{([^}]+)\}")
BEGIN_PATTERN = re.compile(r"^\\begin\{([^}]+)\}")
NEWCOMMAND_PATTERN = re.compile(
    r"^\\(?:re)?newcommand\*?\s*\{?\s*(\\[A-Za-z@]+)\s*\}?\s*(?:\[(\d+)\])?"
)
PARAGRAPH_BREAK = "<br><br>"


@dc.dataclass(slots=True)
class SourceFrame:
    """Position within one source file; ``line`` is 1-based once reading starts."""

    file: str
    line: int = 0

    def meta(self) -> str:
        """Return the ``file``/``line`` attribute pair for emitted blocks."""
        return f'file="{escape(self.file)}" line="{self.line}"'


@dc.dataclass(slots=True)
class ParseState:
    """Mutable state threaded through one walk.

    At most one buffered environment is open at a time, and a source line is
    added either to ``paragraph`` or to ``env_lines``, never both.
    Theorem-like blocks are not buffered; their names sit on
    ``open_theorems`` until the matching ``\\end`` closes the container.
    Checkpoints met inside a buffered environment wait on
    ``pending_checkpoints`` and follow its fragment.
    """

    frames: list[SourceFrame] = dc.field(default_factory=list)
    env_name: str | None = None
    env_kind: EnvironmentKind | None = None
    env_lines: list[str] = dc.field(default_factory=list)
    env_opening: str = ""
    env_meta: str = ""
    paragraph: list[tuple[str, str]] = dc.field(default_factory=list)
    blank_run: int = 0
    section: int = 0
    subsection: int = 0
    appendix_start: int | None = None
    open_theorems: list[str] = dc.field(default_factory=list)
    pending_checkpoints: list[str] = dc.field(default_factory=list)
    ignoring: bool = False
    in_preamble: bool = False
    after_document: bool = False
    counters: Counters = dc.field(default_factory=Counters)

    @property
    def frame(self) -> SourceFrame:
        """Return the frame of the file currently being read."""
        return self.frames[-1]

    @property
    def env_open(self) -> bool:
        """Whether a buffered environment is waiting for its ``\\end``."""
        return self.env_name is not None


@dc.dataclass(slots=True)
class WalkResult:
    """Phase-one output of a walk: HTML with unresolved reference tokens."""

    html: str
    registry: LabelRegistry
    navigation: NavigationIndex
    macros: dict[str, str]


@dc.dataclass(slots=True)
class RenderedBody:
    """Final body HTML together with the indexes built while rendering.

    Attributes
    ----------
    html : str
        Body HTML with every cross-reference resolved.
    navigation : NavigationIndex
        Jump targets in order of appearance.
    registry : LabelRegistry
        Every registered label.
    macros : dict[str, str]
        Math macros collected from ``\\newcommand`` lines.
    unresolved : list[str]
        Labels referenced but never defined.
    """

    html: str
    navigation: NavigationIndex
    registry: LabelRegistry
    macros: dict[str, str]
    unresolved: list[str]


def strip_comment(line: str) -> str:
    """Remove an unescaped ``%`` comment from ``line``."""
    return COMMENT_PATTERN.sub("", line)


class DocumentWalker:
    """Walk source text and emit HTML fragments in source order."""

    def __init__(
        self,
        resolver: SourceResolver | None = None,
        *,
        citations: CitationRegistry | None = None,
        highlighter: CodeHighlighter | None = None,
        macros: dict[str, str] | None = None,
    ) -> None:
        """Initialize a walker for a single render.

        Parameters
        ----------
        resolver : SourceResolver, optional
            Collaborator that loads ``\\input`` targets; without one any
            ``\\input`` raises :class:`~lutex.sources.SourceNotFoundError`.
        citations : CitationRegistry, optional
            Bibliography used to number ``\\cite`` keys.
        highlighter : CodeHighlighter, optional
            Pygments wrapper used for listing environments.
        macros : dict[str, str], optional
            Math macros known before the walk, extended by ``\\newcommand``.
        """
        self.resolver = resolver
        self.state = ParseState()
        self.registry = LabelRegistry()
        self.navigation = NavigationIndex()
        self.macros: dict[str, str] = dict(macros or {})
        self.expander = InlineMacroExpander(citations)
        self.renderer = EnvironmentRenderer(
            counters=self.state.counters,
            registry=self.registry,
            navigation=self.navigation,
            expander=self.expander,
            highlighter=highlighter or CodeHighlighter(),
        )
        self._fragments: list[str] = []
        self._finished = False

    def walk(self, text: str, file_name: str = "main.tex") -> None:
        """Walk a top-level source file, skipping its preamble when present."""
        self.state.in_preamble = any(
            strip_comment(line).strip().startswith("\\begin{document}")
            for line in text.splitlines()
        )
        self.state.after_document = False
        self._walk_file(text, file_name)

    def finish(self) -> WalkResult:
        """Flush trailing buffers and return the phase-one result."""
        if not self._finished:
            self._finished = True
            self._flush_trailing()
        return WalkResult(
            html="".join(self._fragments),
            registry=self.registry,
            navigation=self.navigation,
            macros=self.macros,
        )

    def _walk_file(self, text: str, file_name: str) -> None:
        self.state.frames.append(SourceFrame(file_name))
        try:
            for raw_line in text.splitlines():
                self.state.frame.line += 1
                self._process_line(raw_line)
            if not self.state.env_open:
                self._flush_paragraph()
        finally:
            self.state.frames.pop()

    def _emit(self, fragment: str) -> None:
        if fragment:
            self._fragments.append(fragment)

    def _process_line(self, raw_line: str) -> None:
        state = self.state
        if state.env_kind is not None and state.env_kind.keeps_raw_lines:
            self._continue_listing(raw_line)
            return
        line = raw_line.strip()
        if state.ignoring:
            state.ignoring = line != REGION_END
            return
        if line == IGNORE_REGION_START:
            state.ignoring = True
            return
        if state.in_preamble or state.after_document:
            if line.startswith("\\begin{document}"):
                state.in_preamble = False
            return
        if not line:
            state.blank_run += 1
            return

        is_checkpoint = line == CHECKPOINT_MARKER
        if not is_checkpoint:
            line = strip_comment(line).strip()
            if not line:
                return
        if state.blank_run:
            state.blank_run = 0
            if not state.env_open:
                self._paragraph_break()
        if is_checkpoint:
            marker = f'<div class="checkpoint" {state.frame.meta()}></div>'
            if state.env_open:
                state.pending_checkpoints.append(marker)
            else:
                self._flush_paragraph()
                self._emit(marker)
            return
        self._dispatch(line)

    def _dispatch(self, line: str) -> None:
        state = self.state
        input_match = INPUT_PATTERN.search(line)
        if input_match is not None:
            before = line[: input_match.start()].strip()
            after = line[input_match.end() :].strip()
            if before:
                self._dispatch(before)
            self._include(input_match.group(1).strip())
            if after:
                self._dispatch(after)
        elif line.startswith("\\section"):
            self._section(line)
        elif line.startswith("\\subsection"):
            self._subsection(line)
        elif line.startswith("\\appendix"):
            state.appendix_start = state.section
        elif line.startswith(("\\newcommand", "\\renewcommand")):
            self._define_macro(line)
        elif line.startswith("\\end{document}"):
            self._flush_paragraph()
            state.after_document = True
        elif not state.env_open and line.startswith(PREAMBLE_COMMANDS):
            return
        elif not state.env_open and BEGIN_PATTERN.match(line):
            self._begin(line)
        elif state.env_open:
            self._continue_environment(line)
        elif state.open_theorems and self._theorem_end(line) != -1:
            self._close_theorem(line)
        else:
            state.paragraph.append((state.frame.meta(), line))

    def _include(self, name: str) -> None:
        file_name = with_extension(name)
        if any(frame.file == file_name for frame in self.state.frames):
            logger.warning("skipping recursive \\input{%s}", name)
            self._flush_paragraph()
            self._emit(
                f'<div class="todo" {self.state.frame.meta()}>'
                f"Recursive \\input{{{escape(name)}}} skipped</div>"
            )
            return
        if self.resolver is None:
            raise SourceNotFoundError(file_name, "cannot be loaded without a resolver")
        text = self.resolver.read(file_name)
        self._flush_paragraph()
        self._walk_file(text, file_name)

    def _section(self, line: str) -> None:
        state = self.state
        starred = line.startswith("\\section*")
        title, rest = strip_braced(line, "\\section*" if starred else "\\section")
        if title is None:
            state.paragraph.append((state.frame.meta(), line))
            return
        label, rest = take_label(rest)
        self._flush_paragraph()
        title_html = self.expander.expand(title.strip())
        meta = state.frame.meta()
        if starred:
            self._emit(f"<h2 {meta}>{title_html}</h2>")
        else:
            state.section += 1
            state.subsection = 0
            number = state.section
            label = label or f"sec:{number}"
            anchor = f"sec-{number}"
            self.registry.register(
                LabeledEntity(
                    EntityKind.SECTION,
                    label,
                    number,
                    section_reference(number, state.appendix_start),
                    anchor,
                )
            )
            self.navigation.sections.append(
                NavigationEntry(
                    number,
                    label,
                    anchor,
                    f"s {number}",
                    f"\u00a7{number}: {title.strip()}",
                    title.strip(),
                )
            )
            name = section_name(number, state.appendix_start)
            self._emit(
                f'<h2 id="{anchor}" data-label="{escape(label)}" {meta}>'
                f"{name}. {title_html}</h2>"
            )
        if rest.strip():
            self._dispatch(rest.strip())

    def _subsection(self, line: str) -> None:
        state = self.state
        starred = line.startswith("\\subsection*")
        title, rest = strip_braced(line, "\\subsection*" if starred else "\\subsection")
        if title is None:
            state.paragraph.append((state.frame.meta(), line))
            return
        label, rest = take_label(rest)
        self._flush_paragraph()
        title_html = self.expander.expand(title.strip())
        meta = state.frame.meta()
        if starred:
            self._emit(f"<h3 {meta}>{title_html}</h3>")
        else:
            state.subsection += 1
            sec, sub = state.section, state.subsection
            label = label or f"subsec:{sec}.{sub}"
            anchor = f"subsec-{sec}-{sub}"
            reference = f"{section_reference(sec, state.appendix_start)}.{to_letter(sub)}"
            self.registry.register(
                LabeledEntity(EntityKind.SUBSECTION, label, (sec, sub), reference, anchor)
            )
            self.navigation.subsections.append(
                NavigationEntry(
                    (sec, sub),
                    label,
                    anchor,
                    f"s {sec}.{sub}",
                    f"\u00a7{sec}.{sub}: {title.strip()}",
                    title.strip(),
                )
            )
            self._emit(
                f'<h3 id="{anchor}" data-label="{escape(label)}" {meta}>'
                f"{to_letter(sub)}. {title_html}</h3>"
            )
        if rest.strip():
            self._dispatch(rest.strip())

    def _define_macro(self, line: str) -> None:
        match = NEWCOMMAND_PATTERN.match(line)
        if match is None:
            return
        definition = extract_braced(line[match.end() :], "")
        if definition is not None:
            self.macros[match.group(1)] = definition.content

    def _begin(self, line: str) -> None:
        state = self.state
        match = BEGIN_PATTERN.match(line)
        if match is None:  # pragma: no cover - guarded by the dispatcher
            return
        env_name = match.group(1).strip()
        rest = line[match.end() :]
        kind = EnvironmentKind.from_name(env_name)
        self._flush_paragraph()
        meta = state.frame.meta()
        if kind is EnvironmentKind.THEOREM:
            opening = parse_theorem_opening(rest)
            self._emit(self.renderer.open_theorem(env_name, opening, meta))
            state.open_theorems.append(env_name)
            if opening.remainder:
                self._dispatch(opening.remainder)
            return
        state.env_name = env_name
        state.env_kind = kind
        state.env_lines = []
        state.env_opening = rest
        state.env_meta = meta
        if kind is EnvironmentKind.LISTING:
            return
        if kind.takes_placement:
            rest = strip_placement(rest)
        if rest.strip():
            self._continue_environment(rest.strip())

    def _continue_environment(self, line: str) -> None:
        state = self.state
        end_marker = f"\\end{{{state.env_name}}}"
        index = line.find(end_marker)
        if index == -1:
            state.env_lines.append(line)
            return
        before = line[:index].strip()
        if before:
            state.env_lines.append(before)
        self._close_environment()
        after = line[index + len(end_marker) :].strip()
        if after:
            self._dispatch(after)

    def _continue_listing(self, raw_line: str) -> None:
        state = self.state
        end_marker = f"\\end{{{state.env_name}}}"
        index = raw_line.find(end_marker)
        if index == -1:
            state.env_lines.append(raw_line.rstrip())
            return
        if raw_line[:index].strip():
            state.env_lines.append(raw_line[:index].rstrip())
        env_name = state.env_name or ""
        code = textwrap.dedent("\n".join(state.env_lines)).strip("\n")
        self._emit(
            self.renderer.render_listing(env_name, state.env_opening, code, state.env_meta)
        )
        self._reset_environment()
        after = strip_comment(raw_line[index + len(end_marker) :]).strip()
        if after:
            self._dispatch(after)

    def _close_environment(self) -> None:
        state = self.state
        if state.env_kind is None or state.env_name is None:  # pragma: no cover
            return
        content = " ".join(state.env_lines)
        self._emit(
            self.renderer.render(state.env_kind, state.env_name, content, state.env_meta)
        )
        self._reset_environment()

    def _reset_environment(self) -> None:
        state = self.state
        state.env_name = None
        state.env_kind = None
        state.env_lines = []
        state.env_opening = ""
        state.env_meta = ""
        for marker in state.pending_checkpoints:
            self._emit(marker)
        state.pending_checkpoints = []

    def _theorem_end(self, line: str) -> int:
        """Return the offset of the innermost open theorem's ``\\end``, or -1."""
        return line.find(f"\\end{{{self.state.open_theorems[-1]}}}")

    def _close_theorem(self, line: str) -> None:
        state = self.state
        index = self._theorem_end(line)
        before = line[:index].strip()
        if before:
            state.paragraph.append((state.frame.meta(), before))
        env_name = state.open_theorems.pop()
        self._flush_paragraph()
        self._emit("</div>")
        after = line[index + len(f"\\end{{{env_name}}}") :].strip()
        if after:
            self._dispatch(after)

    def _flush_paragraph(self) -> bool:
        """Emit buffered paragraph lines; return whether anything was emitted."""
        state = self.state
        if not state.paragraph:
            return False
        for meta, text in state.paragraph:
            self._emit(f"<span {meta}>{self.expander.expand(text)} </span>")
        state.paragraph = []
        return True

    def _paragraph_break(self) -> None:
        if self._flush_paragraph():
            self._emit(PARAGRAPH_BREAK)

    def _flush_trailing(self) -> None:
        state = self.state
        self._flush_paragraph()
        if state.env_open:
            logger.warning(
                "environment '%s' opened at %s was never closed",
                state.env_name,
                state.env_meta,
            )
            separator = "\n" if state.env_kind and state.env_kind.keeps_raw_lines else " "
            content = separator.join(state.env_lines)
            self._emit(
                self.renderer.render_unknown(state.env_name or "", content, state.env_meta)
            )
            self._reset_environment()
        while state.open_theorems:
            logger.warning("theorem-like '%s' was never closed", state.open_theorems.pop())
            self._emit("</div>")


def render_body(
    text: str,
    resolver: SourceResolver | None = None,
    *,
    file_name: str = "main.tex",
    citations: CitationRegistry | None = None,
    highlighter: CodeHighlighter | None = None,
    macros: dict[str, str] | None = None,
) -> RenderedBody:
    """Walk ``text`` and resolve its cross-references.

    Parameters
    ----------
    text : str
        Source of the main file.
    resolver : SourceResolver, optional
        Loader for ``\\input`` targets.
    file_name : str, optional
        Name reported in the ``file`` attribute of blocks from ``text``.
    citations : CitationRegistry, optional
        Bibliography for ``\\cite`` numbering.
    highlighter : CodeHighlighter, optional
        Highlighter for listing environments.
    macros : dict[str, str], optional
        Math macros known before the walk.

    Returns
    -------
    RenderedBody
        Resolved HTML plus the navigation index, label registry and macros.

    Raises
    ------
    SourceNotFoundError
        If an ``\\input`` target cannot be retrieved.
    """
    walker = DocumentWalker(
        resolver, citations=citations, highlighter=highlighter, macros=macros
    )
    walker.walk(text, file_name)
    phase_one = walker.finish()
    missing = unresolved_labels(phase_one.html, phase_one.registry)
    for label in missing:
        logger.warning("unresolved reference to label '%s'", label)
    return RenderedBody(
        html=resolve_references(phase_one.html, phase_one.registry),
        navigation=phase_one.navigation,
        registry=phase_one.registry,
        macros=phase_one.macros,
        unresolved=missing,
    )


__all__ = [
    "DocumentWalker",
    "ParseState",
    "RenderedBody",
    "SourceFrame",
    "WalkResult",
    "render_body",
    "strip_comment",
]
