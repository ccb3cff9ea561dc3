"""Load and validate the ``lutex.yaml`` site configuration.

This subpackage parses the project's configuration file, merges the
``defaults`` block with per-document overrides, and produces typed
dataclasses (:class:`SiteConfig`, :class:`DocumentConfig`) that the page
builder consumes. Site-wide math macros and bibliography entries are parsed
here as well, since BibTeX files are not read by lutex itself.

Examples
--------
>>> from pathlib import Path
>>> from lutex.config import load_site_config
>>> site = load_site_config(Path("lutex.yaml"))  # doctest: +SKIP
>>> doc = site.get_document("paper")  # doctest: +SKIP
>>> doc.output_path  # doctest: +SKIP
PosixPath('public/paper.html')
"""

from .loader import load_site_config
from .models import DocumentConfig, SiteConfig, SiteConfigError

__all__ = [
    "DocumentConfig",
    "SiteConfig",
    "SiteConfigError",
    "load_site_config",
]
