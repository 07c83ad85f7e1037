from __future__ import annotations

import shutil
from pathlib import Path

from kraken.common import pluralize
from kraken.common.path import try_relative_to
from kraken.core import Project, Property, Task, TaskStatus

from ..fileset import FileSet, expand_template

DEFAULT_ENCODING = "utf-8"


class CopyFilesTask(Task):
    """Copies the files of a :class:`FileSet` into a destination directory. Sources that request template expansion
    are rendered with their variables, other files are copied as they are."""

    description = 'Copy files into "%(destination)s".'

    destination: Property[Path]
    files: Property[FileSet]
    encoding: Property[str] = Property.default(DEFAULT_ENCODING)

    def __init__(self, name: str, project: Project) -> None:
        super().__init__(name, project)
        self.files.set(FileSet())

    def _copy_file(self, source: Path, target: Path, expand: dict[str, object] | None) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        if expand is None:
            shutil.copy2(source, target)
            return
        try:
            text = source.read_text(self.encoding.get())
        except UnicodeDecodeError:
            self.logger.debug("not expanding binary file %s", source)
            shutil.copy2(source, target)
            return
        target.write_text(expand_template(text, expand), self.encoding.get())
        shutil.copymode(source, target)

    # Task

    def prepare(self) -> TaskStatus | None:
        missing = self.files.get().missing_sources(self.project.directory)
        if missing:
            return TaskStatus.failed(
                "source does not exist: " + ", ".join(f'"{try_relative_to(path)}"' for path in missing)
            )
        return TaskStatus.pending()

    def execute(self) -> TaskStatus:
        destination = self.destination.get()
        destination.mkdir(parents=True, exist_ok=True)

        count = 0
        for source, relative, expand in self.files.get().iter_files(self.project.directory):
            self._copy_file(source, destination / relative, dict(expand) if expand is not None else None)
            count += 1

        return TaskStatus.succeeded(f"copied {count} {pluralize('file', count)} to {try_relative_to(destination)}")
