"""Utility helpers shared by the lutex configuration loader."""

from __future__ import annotations

import typing as typ

from lutex.inline import Reference

from .models import SiteConfigError


def _optional_str(value: object | None) -> str | None:
    """Return a stripped string value or None when empty."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _build_macros(payload: object | None, *, where: str) -> dict[str, str]:
    """Normalise a macro mapping, adding the leading backslash when missing."""
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        msg = f"'{where}' must be a mapping of macro names to definitions."
        raise SiteConfigError(msg)
    macros: dict[str, str] = {}
    for name, definition in payload.items():
        key = str(name).strip()
        if not key:
            continue
        if not key.startswith("\\"):
            key = f"\\{key}"
        macros[key] = str(definition)
    return macros


def _build_authors(value: object | None) -> list[str]:
    """Accept authors as a list or a BibTeX-style ``and``-separated string."""
    match value:
        case None:
            return []
        case str() as text:
            return [part.strip() for part in text.split(" and ") if part.strip()]
        case list() as items:
            return [str(item).strip() for item in items if str(item).strip()]
        case _:
            return [str(value)]


def _build_references(payload: object | None) -> dict[str, Reference]:
    """Build citation references from the ``references`` mapping."""
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        msg = "'references' must be a mapping of citation keys to entries."
        raise SiteConfigError(msg)
    references: dict[str, Reference] = {}
    for key, entry in payload.items():
        if not isinstance(entry, dict):
            msg = f"Reference '{key}' must be a mapping."
            raise SiteConfigError(msg)
        references[str(key)] = Reference(
            key=str(key),
            authors=_build_authors(entry.get("authors", entry.get("author"))),
            title=_optional_str(entry.get("title")) or "",
            journal=_optional_str(entry.get("journal", entry.get("booktitle"))) or "",
            year=_optional_str(entry.get("year")) or "",
            url=_optional_str(entry.get("url")) or "",
        )
    return references


def _merge_macros(
    base: typ.Mapping[str, str], override: typ.Mapping[str, str] | None
) -> dict[str, str]:
    """Return ``base`` updated with ``override``."""
    merged = dict(base)
    if override:
        merged.update(override)
    return merged


__all__ = [
    "_build_authors",
    "_build_macros",
    "_build_references",
    "_merge_macros",
    "_optional_str",
]
