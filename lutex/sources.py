"""Text-retrieval collaborators used to load the main file and ``\\input`` targets.

The walker never touches the filesystem or the network itself; it asks a
:class:`SourceResolver` for the text of a named file. Two resolvers ship with
the package: :class:`FileSystemResolver` reads from a project directory and
:class:`HttpResolver` fetches from a base URL, the way the browser preview
loads sources over HTTP. :class:`MappingResolver` serves in-memory sources
for tests and editor buffers.

Retrieval failures raise :class:`SourceNotFoundError`; that is the only hard
error a render can produce.
"""

from __future__ import annotations

import logging
import posixpath
import typing as typ
from pathlib import Path

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ._constants import TEX_EXTENSION

if typ.TYPE_CHECKING:
    import collections.abc as cabc

logger = logging.getLogger(__name__)


class SourceNotFoundError(LookupError):
    """Raised when a resolver cannot produce the text of a named source."""

    def __init__(self, name: str, reason: str = "not found") -> None:
        super().__init__(f"Source '{name}' {reason}.")
        self.name = name
        self.reason = reason


@typ.runtime_checkable
class SourceResolver(typ.Protocol):
    """Anything that can turn a source name into its text."""

    def read(self, name: str) -> str:
        """Return the text of ``name`` or raise :class:`SourceNotFoundError`."""
        ...


def with_extension(name: str, extension: str = TEX_EXTENSION) -> str:
    """Append ``extension`` when ``name`` has none, as LaTeX does for ``\\input``."""
    base = posixpath.basename(name)
    return name if "." in base else f"{name}{extension}"


class MappingResolver:
    """Serve sources from an in-memory mapping of name to text."""

    def __init__(self, sources: cabc.Mapping[str, str]) -> None:
        self.sources = dict(sources)

    def read(self, name: str) -> str:
        """Return the stored text for ``name``."""
        try:
            return self.sources[name]
        except KeyError as exc:
            raise SourceNotFoundError(name) from exc


class FileSystemResolver:
    """Read sources relative to a project root directory."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def read(self, name: str) -> str:
        """Return the UTF-8 text of ``root / name``."""
        path = self.root / name
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise SourceNotFoundError(name) from exc
        except OSError as exc:
            raise SourceNotFoundError(name, f"unreadable ({exc.strerror})") from exc


class HttpResolver:
    """Fetch sources from ``base_url`` with retrying GET requests."""

    def __init__(self, base_url: str, *, timeout: int = 30) -> None:
        self.base_url = base_url if base_url.endswith("/") else f"{base_url}/"
        self.timeout = timeout

    def url_for(self, name: str) -> str:
        """Return the absolute URL of ``name`` below the base URL."""
        return f"{self.base_url}{name.lstrip('/')}"

    def read(self, name: str) -> str:
        """Download ``name`` and return the response body."""
        session = requests.Session()
        retry = Retry(
            total=5,
            read=5,
            connect=3,
            backoff_factor=0.5,
            status_forcelist=(500, 502, 503, 504),
            allowed_methods=("GET", "HEAD"),
        )
        adapter = HTTPAdapter(max_retries=retry)
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        url = self.url_for(name)
        logger.debug("fetching %s", url)
        try:
            resp = session.get(url, timeout=self.timeout)
            resp.raise_for_status()
            return resp.text
        except requests.RequestException as exc:
            raise SourceNotFoundError(name, f"could not be fetched from {url}") from exc
        finally:
            session.close()


__all__ = [
    "FileSystemResolver",
    "HttpResolver",
    "MappingResolver",
    "SourceNotFoundError",
    "SourceResolver",
    "with_extension",
]
