"""
sources — locating and reading Mech program text.

Local paths are read from disk; paths starting with https:// are fetched.
"""

from __future__ import annotations

import logging
import urllib.request
from pathlib import Path
from typing import Iterable, Iterator

from .core import MechError

logger = logging.getLogger(__name__)

SOURCE_EXTENSIONS = (".mec",)
TEST_EXTENSIONS = (".mec",)
URL_PREFIX = "https://"
FETCH_TIMEOUT = 30


class SourceLoadError(MechError):
    pass


def is_url(path: str) -> bool:
    return path.startswith(URL_PREFIX)


def has_source_extension(path: str | Path, extensions=SOURCE_EXTENSIONS) -> bool:
    return Path(path).suffix in extensions


def fetch_source(url: str) -> str:
    """Download program text. Network errors propagate to the caller."""
    logger.debug("fetching %s", url)
    req = urllib.request.Request(url, method="GET")
    with urllib.request.urlopen(req, timeout=FETCH_TIMEOUT) as resp:
        charset = resp.headers.get_content_charset() or "utf-8"
        return resp.read().decode(charset)


def read_source(path: str | Path) -> str:
    """Program text for a local path or https:// URL."""
    if isinstance(path, str) and is_url(path):
        return fetch_source(path)
    try:
        return Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise SourceLoadError(f"cannot read {path}: {e}") from e


def scan_directory(directory: str | Path, extensions=SOURCE_EXTENSIONS) -> list[Path]:
    """Source files directly inside directory (not recursive), by name."""
    return sorted(p for p in Path(directory).iterdir()
                  if p.is_file() and p.suffix in extensions)


def collect_sources(paths: Iterable[str]) -> Iterator[str]:
    """Expand folders into their source files; keep files and URLs as given."""
    for path in paths:
        if not is_url(path) and Path(path).is_dir():
            for p in scan_directory(path):
                yield str(p)
        else:
            yield path
