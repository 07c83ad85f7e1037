from __future__ import annotations

from kraken.common import buildscript

buildscript(requirements=["kraken-build>=0.33.2"])

from kraken.core import Project

from kraken.std import python
from kraken.std.git import git_describe

project = Project.current()
python.black(additional_files=[__file__, project.directory / "examples"])
python.flake8()
python.isort(additional_files=[__file__, project.directory / "examples"])
python.mypy()
python.pytest()
python.install()

python.build(as_version=python.git_version_to_python(git_describe(project.directory), include_sha=False))
