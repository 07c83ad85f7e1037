from collections.abc import Iterator
from pathlib import Path
from tempfile import TemporaryDirectory

from pytest import fixture

from kraken.core import Project
from kraken.core.testing import kraken_ctx, kraken_project


@fixture
def tempdir() -> Iterator[Path]:
    with TemporaryDirectory() as tempdir:
        yield Path(tempdir)


@fixture(name="kraken_project")
def _kraken_project_fixture() -> Iterator[Project]:
    with kraken_ctx() as ctx, kraken_project(ctx) as project:
        yield project
