"""Typed dataclasses describing lutex site configuration structures."""

from __future__ import annotations

import dataclasses as dc
import typing as typ
from pathlib import Path

if typ.TYPE_CHECKING:
    from lutex.inline import Reference


class SiteConfigError(ValueError):
    """Raised when the site configuration is invalid or incomplete."""


@dc.dataclass(slots=True)
class DocumentConfig:
    """A fully resolved document definition sourced from YAML config.

    Attributes
    ----------
    key : str
        Identifier of the document within the config file.
    label : str
        Human-readable name used in page titles.
    source : str
        Name of the main ``.tex`` file, relative to the source root or URL.
    source_root : Path
        Directory the filesystem resolver reads from.
    source_url : str or None
        Base URL to fetch sources from instead of ``source_root``.
    output_dir : Path
        Directory receiving the rendered page.
    output : str
        File name of the rendered page.
    template : str
        Jinja template used for the page shell.
    pygments_style : str
        Pygments style for listing environments.
    macros : dict[str, str]
        Math macros merged over the site-wide ones.
    """

    key: str
    label: str
    source: str
    source_root: Path
    source_url: str | None
    output_dir: Path
    output: str
    template: str
    pygments_style: str
    macros: dict[str, str] = dc.field(default_factory=dict)

    @property
    def output_path(self) -> Path:
        """Return the path the rendered page is written to."""
        return self.output_dir / self.output


@dc.dataclass(slots=True)
class SiteConfig:
    """Collection of document configs alongside shared macros and references."""

    documents: dict[str, DocumentConfig]
    default_document: str | None = None
    macros: dict[str, str] = dc.field(default_factory=dict)
    references: dict[str, Reference] = dc.field(default_factory=dict)

    def get_document(self, key: str | None) -> DocumentConfig:
        """Return the requested document or fall back to the configured default."""
        if key is None:
            return self._get_default_document()
        try:
            return self.documents[key]
        except KeyError as exc:
            available = ", ".join(sorted(self.documents))
            msg = f"Unknown document '{key}'. Known documents: {available}"
            raise KeyError(msg) from exc

    def _get_default_document(self) -> DocumentConfig:
        """Return the configured default document or the first defined one."""
        if self.default_document and self.default_document in self.documents:
            return self.documents[self.default_document]
        if not self.documents:  # pragma: no cover - loader rejects empty configs
            msg = "No documents configured."
            raise SiteConfigError(msg)
        first_key = next(iter(self.documents))
        return self.documents[first_key]


__all__ = ["DocumentConfig", "SiteConfig", "SiteConfigError"]
