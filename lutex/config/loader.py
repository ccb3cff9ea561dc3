"""Load site configuration YAML into typed dataclasses."""

from __future__ import annotations

import dataclasses as dc
import typing as typ
from pathlib import Path

from ruamel.yaml import YAML

from .helpers import (
    _build_macros,
    _build_references,
    _merge_macros,
    _optional_str,
)
from .models import DocumentConfig, SiteConfig, SiteConfigError

DEFAULT_TEMPLATE = "article.jinja"


def load_site_config(path: Path) -> SiteConfig:
    """Load the YAML configuration describing the documents to render.

    Parameters
    ----------
    path : Path
        Filesystem path to the YAML configuration file (for example,
        ``lutex.yaml``).

    Returns
    -------
    SiteConfig
        Parsed configuration with every document resolved against the
        ``defaults`` block, plus site-wide macros and references.

    Raises
    ------
    FileNotFoundError
        If the configuration file does not exist at ``path``.
    TypeError
        If the top-level YAML structure is not a mapping.
    SiteConfigError
        If required sections or fields are missing or invalid.
    YAMLError
        If the YAML content cannot be parsed by the underlying loader.

    Examples
    --------
    >>> from pathlib import Path
    >>> from lutex.config import load_site_config
    >>> config = load_site_config(Path("lutex.yaml"))  # doctest: +SKIP
    >>> config.get_document(None).source  # doctest: +SKIP
    'main.tex'
    """
    if not path.exists():
        msg = f"Configuration file '{path}' not found."
        raise FileNotFoundError(msg)

    loader = YAML(typ="safe")
    loader.version = (1, 2)
    with path.open("r", encoding="utf-8") as handle:
        loaded = loader.load(handle) or {}
    if not isinstance(loaded, dict):
        msg = "Top-level YAML structure must be a mapping."
        raise TypeError(msg)
    raw: dict[str, typ.Any] = dict(loaded)
    defaults = raw.get("defaults", {}) or {}
    base_dir = path.parent

    site_macros = _build_macros(raw.get("macros"), where="macros")
    references = _build_references(raw.get("references"))

    document_defaults = _DocumentDefaults(
        source_root=base_dir / defaults.get("source_root", "."),
        source_url=_optional_str(defaults.get("source_url")),
        output_dir=base_dir / defaults.get("output_dir", "public"),
        template=defaults.get("template", DEFAULT_TEMPLATE),
        pygments_style=defaults.get("pygments_style", "monokai"),
        macros=site_macros,
    )

    documents_raw = raw.get("documents") or {}
    if not documents_raw:
        msg = "No documents defined in configuration."
        raise SiteConfigError(msg)

    documents: dict[str, DocumentConfig] = {}
    for key, payload in documents_raw.items():
        match payload:
            case dict():
                documents[key] = _build_document_config(
                    key=key, payload=payload, defaults=document_defaults, base_dir=base_dir
                )
            case str() as source:
                documents[key] = _build_document_config(
                    key=key,
                    payload={"source": source},
                    defaults=document_defaults,
                    base_dir=base_dir,
                )
            case _:
                continue

    return SiteConfig(
        documents=documents,
        default_document=_optional_str(defaults.get("default_document")),
        macros=site_macros,
        references=references,
    )


@dc.dataclass(slots=True)
class _DocumentDefaults:
    """Internal container for document default configuration values."""

    source_root: Path
    source_url: str | None
    output_dir: Path
    template: str
    pygments_style: str
    macros: dict[str, str]


def _build_document_config(
    *,
    key: str,
    payload: typ.Mapping[str, typ.Any],
    defaults: _DocumentDefaults,
    base_dir: Path,
) -> DocumentConfig:
    """Build a DocumentConfig for a single entry using defaults and overrides."""
    source = _optional_str(payload.get("source"))
    if not source:
        msg = f"Document '{key}' is missing 'source'."
        raise SiteConfigError(msg)

    source_root = defaults.source_root
    if payload.get("source_root"):
        source_root = base_dir / payload["source_root"]
    output_dir = defaults.output_dir
    if payload.get("output_dir"):
        output_dir = base_dir / payload["output_dir"]
    stem = Path(source).stem or key
    doc_macros = _build_macros(payload.get("macros"), where=f"documents.{key}.macros")

    return DocumentConfig(
        key=key,
        label=payload.get("label") or key.replace("-", " ").title(),
        source=source,
        source_root=source_root,
        source_url=_optional_str(payload.get("source_url")) or defaults.source_url,
        output_dir=output_dir,
        output=payload.get("output") or f"{stem}.html",
        template=payload.get("template", defaults.template),
        pygments_style=payload.get("pygments_style", defaults.pygments_style),
        macros=_merge_macros(defaults.macros, doc_macros),
    )


__all__ = ["DEFAULT_TEMPLATE", "load_site_config"]
