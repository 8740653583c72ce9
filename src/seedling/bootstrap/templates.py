# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging
import os
from importlib import metadata, resources
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional

from seedling.errors import TemplateNotFound

log = logging.getLogger("seedling")

TEMPLATE_EXT = ".j2"
BUILTIN_TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
EXTENSION_ENTRY_POINT_GROUP = "seedling.bootstrap_templates"

DEFAULT_TEMPLATE = "seedling-full"
DEFAULT_WINDOWS_TEMPLATE = "windows-seedling-msi"

CandidateSource = Callable[[str], Iterable[Path]]


def default_template_name(base_os: str) -> str:
    return DEFAULT_WINDOWS_TEMPLATE if base_os == "windows" else DEFAULT_TEMPLATE


def home_dir() -> Optional[Path]:
    """The invoking user's home, or None when it cannot be resolved."""
    try:
        home = Path.home()
    except (KeyError, RuntimeError):
        return None
    return home if str(home) not in ("", "~") else None


def extension_template_dirs() -> List[Path]:
    """
    Template directories contributed by installed extension packages.

    An extension registers a package holding *.j2 files:

        [project.entry-points."seedling.bootstrap_templates"]
        mycloud = "seedling_mycloud.templates"
    """
    dirs: List[Path] = []
    for ep in metadata.entry_points(group=EXTENSION_ENTRY_POINT_GROUP):
        try:
            dirs.append(Path(str(resources.files(ep.value))))
        except ModuleNotFoundError:
            log.warning("Template package %s from entry point %s is not importable", ep.value, ep.name)
    return dirs


def _looks_like_path(name: str) -> bool:
    return os.sep in name or "/" in name or name.endswith(TEMPLATE_EXT)


class TemplateLocator:
    """
    Resolve a template name to a file.

    A name that looks like a path must exist. Otherwise candidates are tried
    in order and the first existing one wins:

      1. built-in templates          seedling/bootstrap/templates/<name>.j2
      2. system config directory     <config_dir>/bootstrap/<name>.j2
      3. user home                   ~/.seedling/bootstrap/<name>.j2
      4. installed extensions        <entry point package>/<name>.j2
    """

    def __init__(
        self,
        *,
        builtin_dir: Path = BUILTIN_TEMPLATES_DIR,
        config_dir: Optional[str | Path] = None,
        home: Optional[Callable[[], Optional[Path]]] = home_dir,
        extension_dirs: Callable[[], Iterable[Path]] = extension_template_dirs,
    ):
        self.builtin_dir = Path(builtin_dir)
        self.config_dir = Path(config_dir) if config_dir else None
        self._home = home
        self._extension_dirs = extension_dirs

    # Each source yields candidate paths lazily, in priority order.
    def _builtin(self, filename: str) -> Iterator[Path]:
        yield self.builtin_dir / filename

    def _config_dir(self, filename: str) -> Iterator[Path]:
        if self.config_dir:
            yield self.config_dir / "bootstrap" / filename

    def _home_dir(self, filename: str) -> Iterator[Path]:
        home = self._home() if self._home else None
        if home is not None:
            yield home / ".seedling" / "bootstrap" / filename

    def _extensions(self, filename: str) -> Iterator[Path]:
        for d in self._extension_dirs():
            yield Path(d) / filename

    @property
    def sources(self) -> List[CandidateSource]:
        return [self._builtin, self._config_dir, self._home_dir, self._extensions]

    def candidates(self, name: str) -> Iterator[Path]:
        filename = f"{name}{TEMPLATE_EXT}"
        for source in self.sources:
            yield from source(filename)

    def locate(self, name: str) -> Path:
        direct = Path(name).expanduser()
        if direct.is_file():
            log.debug("Using bootstrap template %s", direct)
            return direct.resolve()
        if _looks_like_path(name):
            raise TemplateNotFound(name, [str(direct)])

        searched: List[str] = []
        for candidate in self.candidates(name):
            searched.append(str(candidate))
            if candidate.is_file():
                log.debug("Found bootstrap template %s", candidate)
                return candidate
        raise TemplateNotFound(name, searched)
