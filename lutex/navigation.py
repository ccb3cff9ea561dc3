"""Navigation index exposed to command-palette style "jump to" interfaces."""

from __future__ import annotations

import dataclasses as dc

NAV_KINDS = ("sections", "subsections", "figures", "tables", "equations", "theorems")


@dc.dataclass(frozen=True, slots=True)
class NavigationEntry:
    """UI-facing projection of a labelled construct.

    Attributes
    ----------
    number : int or tuple[int, int]
        Counter value; subsections carry ``(section, subsection)``.
    label : str
        Label key the construct was registered under.
    id : str
        HTML anchor id.
    command : str
        Short jump token such as ``"s 2.1"`` or ``"f 3"``.
    display : str
        One-line summary shown in the palette.
    title : str
        Heading text or theorem name; empty for floats and equations.
    """

    number: int | tuple[int, int]
    label: str
    id: str
    command: str
    display: str
    title: str = ""


@dc.dataclass(slots=True)
class NavigationIndex:
    """Append-only lists of jump targets in order of first appearance."""

    sections: list[NavigationEntry] = dc.field(default_factory=list)
    subsections: list[NavigationEntry] = dc.field(default_factory=list)
    figures: list[NavigationEntry] = dc.field(default_factory=list)
    tables: list[NavigationEntry] = dc.field(default_factory=list)
    equations: list[NavigationEntry] = dc.field(default_factory=list)
    theorems: list[NavigationEntry] = dc.field(default_factory=list)

    def find(self, command: str) -> NavigationEntry | None:
        """Return the entry whose jump command matches ``command``."""
        wanted = " ".join(command.split())
        for kind in NAV_KINDS:
            for entry in getattr(self, kind):
                if entry.command == wanted:
                    return entry
        return None

    def as_dict(self) -> dict[str, list[dict[str, object]]]:
        """Return a JSON-ready mapping of every navigation list."""
        return {
            kind: [dc.asdict(entry) for entry in getattr(self, kind)]
            for kind in NAV_KINDS
        }

    def __len__(self) -> int:
        return sum(len(getattr(self, kind)) for kind in NAV_KINDS)


__all__ = ["NAV_KINDS", "NavigationEntry", "NavigationIndex"]
