"""
Build and push Docker images from a kraken project.

Declare the images in the project's :class:`DockerSettings`, then call :func:`docker_image_tasks` to create a copy,
build and push task for each of them:

.. code-block:: python

    from kraken.distribution.docker import docker_image_tasks, docker_settings

    settings = docker_settings(pull=True)
    settings.image("webServer").depends_on(":python.build")
    docker_image_tasks()

The sources of an image live in `src/docker/<name>`. Registry credentials are read from the `docker.user`,
`docker.password`, `docker.email` and `docker.url` project properties, the daemon connection from the `DOCKER_HOST`
and `DOCKER_CERT_PATH` environment variables.
"""

from __future__ import annotations

import dataclasses
from typing import cast

from kraken.core import Project

from .config import (
    ConfigProvider,
    MappingConfigProvider,
    ProjectContext,
    ProjectProperties,
    config_provider,
    project_context,
)
from .fileset import FileSet
from .remote_api import (
    DockerRemoteApi,
    RegistryCredentials,
    configure_docker_remote_api,
    configure_remote_api,
    docker_remote_api,
)
from .rules import KrakenTaskRegistry, build_tasks_for_image, create_image_tasks, image_task_names
from .settings import DockerSettings, DuplicateImageError, ImageDescriptor, docker_settings
from .tasks import CopyFilesTask, DockerBuildImageTask, DockerPushImageTask

__all__ = [
    "ConfigProvider",
    "CopyFilesTask",
    "DockerBuildImageTask",
    "DockerImageTasks",
    "DockerPushImageTask",
    "DockerRemoteApi",
    "DockerSettings",
    "DuplicateImageError",
    "FileSet",
    "ImageDescriptor",
    "MappingConfigProvider",
    "ProjectContext",
    "ProjectProperties",
    "RegistryCredentials",
    "build_tasks_for_image",
    "configure_docker_remote_api",
    "configure_remote_api",
    "docker_image_tasks",
    "docker_remote_api",
    "docker_settings",
    "project_context",
]


@dataclasses.dataclass
class DockerImageTasks:
    copy: CopyFilesTask
    build: DockerBuildImageTask
    push: DockerPushImageTask


def docker_image_tasks(
    project: Project | None = None,
    *,
    config: ConfigProvider | None = None,
) -> list[DockerImageTasks]:
    """Create the copy, build and push tasks for every image in the project's :class:`DockerSettings`.

    Before the tasks are created, the project's :class:`DockerRemoteApi` is configured from the environment and the
    project properties (see :func:`configure_remote_api`), and images without a repository or tag get the project
    name and version as they are at this point. If *config* is given, its `name` and `version` properties replace
    the project's.

    :param project: The project to create the tasks in. Defaults to the current project.
    :param config: Where to read environment variables and project properties from. Defaults to the environment
        and the project's :class:`ProjectProperties`.
    """

    project = project or Project.current()
    if config is None:
        config = config_provider(project)
    else:
        # The context may have been created from the default provider when the images were declared.
        project_context(
            project, name=config.get_property("name"), version=config.get_property("version"), config=config
        )

    settings = docker_settings(project)
    settings.initialize()
    remote_api = configure_docker_remote_api(project, config)

    registry = KrakenTaskRegistry(project, remote_api)
    create_image_tasks(settings, registry, project.build_directory)

    result = []
    for image in settings.images.values():
        copy_name, build_name, push_name = image_task_names(image.name)
        result.append(
            DockerImageTasks(
                copy=cast(CopyFilesTask, registry.tasks[copy_name]),
                build=cast(DockerBuildImageTask, registry.tasks[build_name]),
                push=cast(DockerPushImageTask, registry.tasks[push_name]),
            )
        )
    return result
