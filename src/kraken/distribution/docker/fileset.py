"""
Composable description of files to copy. A :class:`FileSet` holds an ordered list of sources (files or
directories, each with optional include/exclude patterns, a target sub-directory and template variables) and any
number of nested file sets.
"""

from __future__ import annotations

import dataclasses
import fnmatch
import re
import string
from collections.abc import Iterable, Iterator, Mapping, Sequence
from pathlib import Path
from typing import Any


class _DottedTemplate(string.Template):
    # Allows `$project.name` and `${project.name}`.
    idpattern = r"(?a:[_a-z][_a-z0-9]*(?:\.[_a-z][_a-z0-9]*)*)"
    flags = re.IGNORECASE


class _DottedLookup(Mapping[str, str]):
    """Resolves dotted names against a mapping of variables. Unknown names raise a :class:`KeyError`, which makes
    :meth:`string.Template.safe_substitute` leave the placeholder untouched."""

    def __init__(self, variables: Mapping[str, Any]) -> None:
        self._variables = variables

    def __getitem__(self, key: str) -> str:
        head, *tail = key.split(".")
        value = self._variables[head]
        for part in tail:
            if isinstance(value, Mapping):
                value = value[part]
            else:
                try:
                    value = getattr(value, part)
                except AttributeError:
                    raise KeyError(key)
        return str(value)

    def __iter__(self) -> Iterator[str]:
        return iter(self._variables)

    def __len__(self) -> int:
        return len(self._variables)


def expand_template(text: str, variables: Mapping[str, Any]) -> str:
    """Substitute `$name`, `${name}` and dotted references such as `${project.version}` in *text*. A dotted segment
    is looked up as a mapping key or an attribute. Placeholders that cannot be resolved are kept as they are, and
    `$$` is replaced by a single `$`.

    >>> expand_template("FROM app:${project.version} # $$HOME is $HOME", {"project": {"version": "1.0"}})
    'FROM app:1.0 # $HOME is $HOME'
    """

    return _DottedTemplate(text).safe_substitute(_DottedLookup(variables))


def _matches(relative: Path, patterns: Sequence[str]) -> bool:
    posix = relative.as_posix()
    return any(fnmatch.fnmatch(posix, pattern) or fnmatch.fnmatch(relative.name, pattern) for pattern in patterns)


@dataclasses.dataclass
class FileSource:
    """A single source of a :class:`FileSet`."""

    #: A file or directory. Relative paths are resolved against the base directory given to the file set.
    path: Path

    #: A sub-directory of the destination to copy the source into.
    into: Path | None = None

    #: Glob patterns for files to include, relative to :attr:`path`. If empty, all files are included.
    include: Sequence[str] = ()

    #: Glob patterns for files to exclude, relative to :attr:`path`.
    exclude: Sequence[str] = ()

    #: Template variables to expand in each file. If `None`, files are copied verbatim.
    expand: Mapping[str, Any] | None = None

    def resolve(self, base_directory: Path) -> Path:
        return base_directory / self.path

    def iter_files(self, base_directory: Path) -> Iterator[tuple[Path, Path]]:
        """Yields a tuple of the absolute source file and the destination path relative to the copy target for every
        file that matches the source's patterns. Yields nothing if the source does not exist."""

        root = self.resolve(base_directory)
        into = self.into or Path()
        if root.is_file():
            relative = Path(root.name)
            if self.include and not _matches(relative, self.include):
                return
            if not _matches(relative, self.exclude):
                yield root, into / relative
            return

        for file in sorted(root.rglob("*")):
            if not file.is_file():
                continue
            relative = file.relative_to(root)
            if self.include and not _matches(relative, self.include):
                continue
            if _matches(relative, self.exclude):
                continue
            yield file, into / relative


class FileSet:
    """An ordered, nestable collection of :class:`FileSource`s."""

    def __init__(self) -> None:
        self.sources: list[FileSource] = []
        self.children: list[FileSet] = []

    def __repr__(self) -> str:
        return f"FileSet(sources={self.sources!r}, children={len(self.children)})"

    def from_(
        self,
        source: str | Path,
        *,
        into: str | Path | None = None,
        include: Iterable[str] = (),
        exclude: Iterable[str] = (),
        expand: Mapping[str, Any] | None = None,
    ) -> FileSet:
        """Add a file or directory to the set."""

        self.sources.append(
            FileSource(
                path=Path(source),
                into=None if into is None else Path(into),
                include=list(include),
                exclude=list(exclude),
                expand=expand,
            )
        )
        return self

    def with_(self, *children: FileSet) -> FileSet:
        """Nest other file sets. Their sources are copied with their own settings."""

        for child in children:
            if child is self:
                raise ValueError("a FileSet cannot contain itself")
            self.children.append(child)
        return self

    def iter_sources(self) -> Iterator[FileSource]:
        yield from self.sources
        for child in self.children:
            yield from child.iter_sources()

    def iter_files(self, base_directory: Path) -> Iterator[tuple[Path, Path, Mapping[str, Any] | None]]:
        """Yields `(source_file, relative_destination, expand)` for every file in the set, in declaration order."""

        for source in self.iter_sources():
            for file, destination in source.iter_files(base_directory):
                yield file, destination, source.expand

    def missing_sources(self, base_directory: Path) -> list[Path]:
        return [
            source.resolve(base_directory)
            for source in self.iter_sources()
            if not source.resolve(base_directory).exists()
        ]

    def is_empty(self) -> bool:
        return next(self.iter_sources(), None) is None
