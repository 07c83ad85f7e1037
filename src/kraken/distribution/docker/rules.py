"""
Derives the tasks for the images in the :class:`DockerSettings`. Every image gets three tasks, each depending on the
previous one:

* `docker<Name>Copy` copies `src/docker/<name>` (with template expansion) and the image's extra files into
  `<build directory>/docker/<name>`,
* `docker<Name>Build` builds the image from that directory and tags it as `<repository>:<tag>`,
* `docker<Name>Push` pushes the image.

The rule itself (:func:`build_tasks_for_image`) only produces :class:`TaskSpec`s. A :class:`TaskRegistry` turns them
into actual tasks, for kraken that is the :class:`KrakenTaskRegistry`.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any, Protocol

from kraken.core import Project, Task

from .fileset import FileSet
from .remote_api import DockerRemoteApi
from .settings import DockerSettings, DuplicateImageError, ImageDescriptor
from .tasks import CopyFilesTask, DockerBuildImageTask, DockerPushImageTask

logger = logging.getLogger(__name__)

#: The group that all Docker image tasks are added to.
DOCKER_GROUP = "docker"


def upper_camel(name: str) -> str:
    """Converts a lower camel case name to upper camel case.

    >>> upper_camel("webServer")
    'WebServer'
    """

    return name[:1].upper() + name[1:]


def image_task_names(image_name: str) -> tuple[str, str, str]:
    """Returns the names of the copy, build and push task for the image with the given name."""

    fragment = upper_camel(image_name)
    return f"docker{fragment}Copy", f"docker{fragment}Build", f"docker{fragment}Push"


@dataclasses.dataclass(frozen=True, kw_only=True)
class TaskSpec:
    name: str
    description: str
    group: str = DOCKER_GROUP

    #: Tasks to depend on. Strings that match the name of another spec refer to the task created for that spec.
    depends_on: Sequence[Any] = ()


@dataclasses.dataclass(frozen=True, kw_only=True)
class CopyTaskSpec(TaskSpec):
    destination: Path
    files: FileSet


@dataclasses.dataclass(frozen=True, kw_only=True)
class BuildTaskSpec(TaskSpec):
    input_dir: Path
    tag: str
    pull: bool


@dataclasses.dataclass(frozen=True, kw_only=True)
class PushTaskSpec(TaskSpec):
    image_name: str
    tag: str
    registry_url: str | None = None


def build_tasks_for_image(
    image: ImageDescriptor, settings: DockerSettings, build_dir: Path
) -> tuple[CopyTaskSpec, BuildTaskSpec, PushTaskSpec]:
    """Create the specifications of the copy, build and push task for *image*.

    :param image: The image to create the tasks for.
    :param settings: The settings that the image belongs to.
    :param build_dir: The build directory of the project. The image's files are staged in `docker/<name>` inside
        of it.
    """

    copy_name, build_name, push_name = image_task_names(image.name)
    repository = image.repository or settings.project.name
    tag = image.tag or settings.project.version
    staging_dir = build_dir / "docker" / image.name

    files = FileSet()
    files.from_(Path("src", "docker", image.name), expand={"project": settings.project})
    files.with_(image.files)

    copy = CopyTaskSpec(
        name=copy_name,
        description=f"Copy files for Docker image '{image.name}'",
        depends_on=tuple(image.dependencies),
        destination=staging_dir,
        files=files,
    )
    build = BuildTaskSpec(
        name=build_name,
        description=f"Build Docker image '{image.name}'",
        depends_on=(copy_name,),
        input_dir=staging_dir,
        tag=f"{repository}:{tag}",
        pull=settings.pull,
    )
    push = PushTaskSpec(
        name=push_name,
        description=f"Push Docker image '{image.name}'",
        depends_on=(build_name,),
        image_name=repository,
        tag=tag,
        registry_url=settings.registry_url,
    )
    return copy, build, push


class TaskRegistry(Protocol):
    """The part of a build engine that :func:`create_image_tasks` needs."""

    def register(self, spec: TaskSpec) -> None:
        """Create the task described by *spec*."""

    def depend_on(self, name: str, *dependencies: Any) -> None:
        """Declare that the task called *name* depends on *dependencies*."""


def create_image_tasks(settings: DockerSettings, registry: TaskRegistry, build_dir: Path) -> list[TaskSpec]:
    """Register the tasks for all images in *settings*, in the order the images were declared. All task names are
    checked for uniqueness before the first task is registered; dependencies are wired after all tasks exist."""

    specs: list[TaskSpec] = []
    owners: dict[str, str] = {}
    for image in settings.images.values():
        for spec in build_tasks_for_image(image, settings, build_dir):
            if spec.name in owners:
                raise DuplicateImageError(
                    f"images {owners[spec.name]!r} and {image.name!r} would both create the task {spec.name!r}"
                )
            owners[spec.name] = image.name
            specs.append(spec)

    for spec in specs:
        logger.debug("Creating task %s", spec.name)
        registry.register(spec)
    for spec in specs:
        if spec.depends_on:
            registry.depend_on(spec.name, *spec.depends_on)

    return specs


class KrakenTaskRegistry:
    """Creates the tasks for :class:`TaskSpec`s in a kraken project."""

    def __init__(self, project: Project, remote_api: DockerRemoteApi) -> None:
        self.project = project
        self.remote_api = remote_api
        self.tasks: dict[str, Task] = {}

    def register(self, spec: TaskSpec) -> None:
        task: Task
        match spec:
            case CopyTaskSpec():
                task = copy_task = self.project.task(
                    spec.name, CopyFilesTask, group=spec.group, description=spec.description
                )
                copy_task.destination = spec.destination
                copy_task.files = spec.files
            case BuildTaskSpec():
                task = build_task = self.project.task(
                    spec.name, DockerBuildImageTask, group=spec.group, description=spec.description
                )
                build_task.input_dir = spec.input_dir
                build_task.tag = spec.tag
                build_task.pull = spec.pull
                build_task.remote_api = self.remote_api
            case PushTaskSpec():
                task = push_task = self.project.task(
                    spec.name, DockerPushImageTask, group=spec.group, description=spec.description
                )
                push_task.image_name = spec.image_name
                push_task.tag = spec.tag
                push_task.registry_url = spec.registry_url
                push_task.remote_api = self.remote_api
            case _:
                raise TypeError(f"unsupported task spec {type(spec).__name__}")
        self.tasks[spec.name] = task

    def depend_on(self, name: str, *dependencies: Any) -> None:
        self.tasks[name].depends_on(
            *(self.tasks.get(dep, dep) if isinstance(dep, str) else dep for dep in dependencies)
        )
