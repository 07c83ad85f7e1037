""" Access to the configuration that is supplied from outside of the build script: environment variables and
project properties. Everything that reads ambient configuration goes through a :class:`ConfigProvider` so that tests
can inject fixed values. """

from __future__ import annotations

import abc
import dataclasses
import logging
import os
import re
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any

from kraken.common import TomlConfigFile
from kraken.core import Project

logger = logging.getLogger(__name__)

#: The file in a project directory that contains project properties.
PROJECT_PROPERTIES_FILE = "kraken.properties.toml"

#: The file that contains user-wide project properties.
USER_PROPERTIES_FILE = Path("~/.config/kraken/properties.toml")

#: Prefix of environment variables that override project properties.
PROPERTY_ENVIRONMENT_PREFIX = "KRAKEN_PROPERTY_"

#: Used when neither the build script nor the project properties specify a version.
DEFAULT_VERSION = "latest"


def property_environment_variable(key: str) -> str:
    """Returns the name of the environment variable that overrides the project property *key*.

    >>> property_environment_variable("docker.user")
    'KRAKEN_PROPERTY_DOCKER_USER'
    """

    return PROPERTY_ENVIRONMENT_PREFIX + re.sub(r"[.\-]", "_", key).upper()


def _flatten(data: Mapping[str, Any], prefix: str = "") -> Iterator[tuple[str, str]]:
    for key, value in data.items():
        if isinstance(value, Mapping):
            yield from _flatten(value, f"{prefix}{key}.")
        elif isinstance(value, bool):
            yield f"{prefix}{key}", str(value).lower()
        else:
            yield f"{prefix}{key}", str(value)


class ProjectProperties(Mapping[str, str]):
    """
    Read-only view of the project properties. A property is looked up in the environment first (see
    :func:`property_environment_variable`), then in each of the given TOML files in order. Tables in the TOML
    files are flattened into dotted keys, i.e. `[docker] user = "x"` defines the property `docker.user`.
    """

    def __init__(self, files: list[Path], environ: Mapping[str, str] | None = None) -> None:
        self._files = files
        self._environ = os.environ if environ is None else environ
        self._data: dict[str, str] | None = None

    @staticmethod
    def for_directory(directory: Path, environ: Mapping[str, str] | None = None) -> ProjectProperties:
        return ProjectProperties([directory / PROJECT_PROPERTIES_FILE, USER_PROPERTIES_FILE.expanduser()], environ)

    def _get_data(self) -> dict[str, str]:
        if self._data is None:
            data: dict[str, str] = {}
            for path in reversed(self._files):
                if path.is_file():
                    logger.debug("Reading project properties from %s", path)
                    data.update(_flatten(TomlConfigFile(path)))
            self._data = data
        return self._data

    def __getitem__(self, key: str) -> str:
        value = self._environ.get(property_environment_variable(key))
        if value is not None:
            return value
        return self._get_data()[key]

    def __iter__(self) -> Iterator[str]:
        # An environment variable does not tell whether `_` stood for `.`, `-` or `_` in the key. Variables that
        # override a key from a file are listed under that key, all others with every `_` read as `.`.
        keys = dict.fromkeys(self._get_data())
        overridden = {property_environment_variable(key) for key in keys}
        for name in self._environ:
            if name.startswith(PROPERTY_ENVIRONMENT_PREFIX) and name not in overridden:
                keys.setdefault(name[len(PROPERTY_ENVIRONMENT_PREFIX) :].lower().replace("_", "."), None)
        return iter(keys)

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __repr__(self) -> str:
        return f"ProjectProperties(files={[str(x) for x in self._files]})"


class ConfigProvider(abc.ABC):
    """Interface to read environment variables and project properties."""

    @abc.abstractmethod
    def getenv(self, name: str) -> str | None:
        """Return the value of the environment variable *name*, or `None` if it is not set."""

    @abc.abstractmethod
    def get_property(self, name: str) -> str | None:
        """Return the value of the project property *name*, or `None` if it is not set."""


class MappingConfigProvider(ConfigProvider):
    """A :class:`ConfigProvider` that reads from two mappings."""

    def __init__(self, environ: Mapping[str, str] | None = None, properties: Mapping[str, str] | None = None) -> None:
        self.environ = {} if environ is None else environ
        self.properties = {} if properties is None else properties

    def getenv(self, name: str) -> str | None:
        return self.environ.get(name)

    def get_property(self, name: str) -> str | None:
        return self.properties.get(name)


def config_provider(project: Project | None = None) -> ConfigProvider:
    """Returns the :class:`ConfigProvider` for the given or current project. Unless one was stored in the project's
    metadata before, a provider that reads :data:`os.environ` and the :class:`ProjectProperties` of the project
    directory is created."""

    project = project or Project.current()
    return project.find_metadata(
        ConfigProvider,  # type: ignore[type-abstract]
        lambda: MappingConfigProvider(os.environ, ProjectProperties.for_directory(project.directory)),
    )


@dataclasses.dataclass
class ProjectContext:
    """Describes the project to the Docker image rules. This object is bound to the `project` variable when the
    image sources are copied, so `${project.version}` in a source file expands to :attr:`version`."""

    name: str
    version: str
    directory: Path


def _default_project_name(project: Project) -> str:
    # Project.name is deprecated for the root project.
    if project.address.is_root():
        return project.directory.name
    return project.address.name


def project_context(
    project: Project | None = None,
    *,
    name: str | None = None,
    version: str | None = None,
    config: ConfigProvider | None = None,
) -> ProjectContext:
    """Returns the :class:`ProjectContext` for the given or current project, creating it on first access.

    :param name: Override the project name. Otherwise the `name` project property is used, falling back to the
        name of the kraken project.
    :param version: Override the project version. Otherwise the `version` project property is used, falling
        back to :data:`DEFAULT_VERSION`.
    :param config: The configuration to read project properties from. Defaults to :func:`config_provider`.
    """

    project = project or Project.current()
    context = project.find_metadata(ProjectContext)
    if context is None:
        config = config or config_provider(project)
        context = ProjectContext(
            name=config.get_property("name") or _default_project_name(project),
            version=config.get_property("version") or DEFAULT_VERSION,
            directory=project.directory,
        )
        logger.debug("Using project name %r and version %r for %s", context.name, context.version, project)
        project.metadata.append(context)

    if name is not None:
        context.name = name
    if version is not None:
        context.version = version

    return context
