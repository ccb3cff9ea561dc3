r"""Label registry and the cross-reference resolution pass.

Numbered constructs register a :class:`LabeledEntity` while the walker runs.
References are left in the phase-one HTML as literal ``\autoref{label}`` or
``\appref{label}`` tokens, because a reference may point at a label defined
later in the document or inside another ``\input`` file. Once every file has
been walked, :func:`resolve_references` rewrites those tokens in a single
pass over the finished HTML.

Example
-------
>>> from lutex.registry import EntityKind, LabelRegistry, LabeledEntity
>>> from lutex.registry import resolve_references
>>> registry = LabelRegistry()
>>> registry.register(
...     LabeledEntity(EntityKind.EQUATION, "eq:x", 1, "Eq. (1)", "eq-1")
... )
>>> resolve_references(r"see \autoref{eq:x}", registry)
'see <a href="#eq-1" class="autoref">Eq.&nbsp;(1)</a>'
"""

from __future__ import annotations

import dataclasses as dc
import enum
import logging
import re
import typing as typ
from html import escape, unescape

if typ.TYPE_CHECKING:
    import collections.abc as cabc

logger = logging.getLogger(__name__)

AUTOREF_PATTERN = re.compile(r"\\(auto|app)ref\{([^}]*)\}")
PROOF_REF_PATTERN = re.compile(r"\\lutexproofref\{([^}]*)\}")


class EntityKind(enum.Enum):
    """Kinds of referenceable constructs; values double as id prefixes."""

    SECTION = "sec"
    SUBSECTION = "subsec"
    EQUATION = "eq"
    FIGURE = "fig"
    TABLE = "tab"
    THEOREM = "thm"


@dc.dataclass(frozen=True, slots=True)
class LabeledEntity:
    """Reference metadata for one numbered construct.

    Attributes
    ----------
    kind : EntityKind
        What was labelled.
    label : str
        User label from ``\\label{}`` or the generated ``kind:index`` key.
    number : int or tuple[int, int]
        Counter value; subsections carry ``(section, subsection)``.
    display_text : str
        Human-readable reference text such as ``"Fig. 3"``.
    anchor_id : str
        HTML id the reference links to.
    """

    kind: EntityKind
    label: str
    number: int | tuple[int, int]
    display_text: str
    anchor_id: str


class LabelRegistry:
    """Mapping from label strings to :class:`LabeledEntity` records."""

    def __init__(self) -> None:
        self._entries: dict[str, LabeledEntity] = {}

    def register(self, entity: LabeledEntity) -> None:
        """Store ``entity``; a later registration of the same label wins."""
        previous = self._entries.get(entity.label)
        if previous is not None:
            logger.debug(
                "label %r redefined: %s replaces %s",
                entity.label,
                entity.anchor_id,
                previous.anchor_id,
            )
        self._entries[entity.label] = entity

    def lookup(self, label: str) -> LabeledEntity | None:
        """Return the entity registered under ``label``, if any."""
        return self._entries.get(label)

    def __contains__(self, label: object) -> bool:
        return label in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> cabc.Iterator[LabeledEntity]:
        return iter(self._entries.values())


def display_html(text: str) -> str:
    """Escape ``text`` and keep reference words glued with non-breaking spaces."""
    return escape(text, quote=False).replace(" ", "&nbsp;")


def resolve_references(html: str, registry: LabelRegistry) -> str:
    r"""Replace every autoref token in ``html`` using ``registry``.

    The function is pure: it never mutates the registry and can be re-run on
    its own output without changing it further.

    Parameters
    ----------
    html : str
        Phase-one HTML containing ``\autoref{}``, ``\appref{}`` and proof
        reference tokens. Labels inside the tokens are HTML-escaped and are
        unescaped before lookup.
    registry : LabelRegistry
        Registry populated by a completed walk.

    Returns
    -------
    str
        HTML where known labels became anchors and unknown labels became
        visibly marked placeholders.
    """

    def _autoref(match: re.Match[str]) -> str:
        entity = registry.lookup(unescape(match.group(2)))
        if entity is None:
            token = escape(unescape(match.group(0))).replace("\\", "&#92;")
            return f'<span class="todo unresolved-ref">{token}</span>'
        return (
            f'<a href="#{escape(entity.anchor_id)}" class="autoref">'
            f"{display_html(entity.display_text)}</a>"
        )

    def _proof_ref(match: re.Match[str]) -> str:
        label = unescape(match.group(1))
        entity = registry.lookup(label)
        if entity is None:
            return escape(label)
        return (
            f'<a href="#{escape(entity.anchor_id)}" class="autoref">'
            f"{display_html(entity.display_text)}</a>"
        )

    resolved = AUTOREF_PATTERN.sub(_autoref, html)
    return PROOF_REF_PATTERN.sub(_proof_ref, resolved)


def unresolved_labels(html: str, registry: LabelRegistry) -> list[str]:
    """Return labels referenced in ``html`` that ``registry`` does not know."""
    missing: list[str] = []
    for match in AUTOREF_PATTERN.finditer(html):
        label = unescape(match.group(2))
        if label not in registry and label not in missing:
            missing.append(label)
    return missing


__all__ = [
    "AUTOREF_PATTERN",
    "EntityKind",
    "LabelRegistry",
    "LabeledEntity",
    "display_html",
    "resolve_references",
    "unresolved_labels",
]
