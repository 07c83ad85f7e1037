from __future__ import annotations

import dataclasses
import logging
import re
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from kraken.core import Address, Project, Task

from .config import ProjectContext, project_context
from .fileset import FileSet

logger = logging.getLogger(__name__)

#: Image names become part of task names, so they must be valid in a task address.
IMAGE_NAME_REGEX = r"^[a-zA-Z0-9_\-\.]+$"

TaskReference = Task | Address | str


class DuplicateImageError(ValueError):
    pass


@dataclasses.dataclass
class ImageDescriptor:
    """Configuration of a single Docker image."""

    #: Identifies the image in :attr:`DockerSettings.images` and in the names of its tasks. Cannot be changed.
    name: str

    #: The repository to tag and push the image as. Defaults to the project name at the time the tasks are created.
    repository: str | None = None

    #: The tag of the image. Defaults to the project version at the time the tasks are created.
    tag: str | None = None

    #: Additional files to copy into the image's build context, on top of `src/docker/<name>`.
    files: FileSet = dataclasses.field(default_factory=FileSet)

    #: Tasks that must complete before the image's files are copied.
    dependencies: list[TaskReference] = dataclasses.field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("ImageDescriptor.name must not be empty")
        if not re.match(IMAGE_NAME_REGEX, self.name):
            raise ValueError(f"invalid image name {self.name!r}, must match /{IMAGE_NAME_REGEX}/")

    def __setattr__(self, key: str, value: Any) -> None:
        if key == "name" and "name" in vars(self):
            raise AttributeError(f"cannot rename {self!r}, ImageDescriptor.name is immutable")
        super().__setattr__(key, value)

    def __repr__(self) -> str:
        return f"ImageDescriptor({self.name!r})"

    def depends_on(self, *tasks: TaskReference) -> ImageDescriptor:
        """Add tasks that must complete before the image's files are copied."""

        for task in tasks:
            if task not in self.dependencies:
                self.dependencies.append(task)
        return self

    def from_(
        self,
        source: str | Path,
        *,
        into: str | Path | None = None,
        include: Iterable[str] = (),
        exclude: Iterable[str] = (),
        expand: Mapping[str, Any] | None = None,
    ) -> ImageDescriptor:
        """Add a file or directory to the image's files. See :meth:`FileSet.from_`."""

        self.files.from_(source, into=into, include=include, exclude=exclude, expand=expand)
        return self

    def with_(self, *file_sets: FileSet) -> ImageDescriptor:
        """Add nested file sets to the image's files."""

        self.files.with_(*file_sets)
        return self


def initialize_image(image: ImageDescriptor, project: ProjectContext) -> None:
    """Resolve the repository and tag of an image that are still unset to the project name and version. Values that
    were configured already are kept, so calling this again has no effect."""

    if image.repository is None:
        image.repository = project.name
    if image.tag is None:
        image.tag = project.version


@dataclasses.dataclass
class DockerSettings:
    """Project-global settings for Docker images."""

    project: ProjectContext

    #: Whether to attempt to pull a newer version of the base image when building.
    pull: bool = False

    #: The registry to log into when pushing, unless the registry credentials name a URL.
    registry_url: str | None = None

    #: The images to build, in the order they were declared.
    images: dict[str, ImageDescriptor] = dataclasses.field(default_factory=dict)

    def image(self, name: str, *, repository: str | None = None, tag: str | None = None) -> ImageDescriptor:
        """Get or create the image with the given *name* and apply the *repository* and *tag* overrides. An unset
        repository or tag follows the project name or version until the tasks are created."""

        image = self.images.get(name)
        if image is None:
            image = self.add_image(ImageDescriptor(name))
        if repository is not None:
            image.repository = repository
        if tag is not None:
            image.tag = tag
        return image

    def add_image(self, image: ImageDescriptor) -> ImageDescriptor:
        """Add an image. Raises a :class:`DuplicateImageError` if an image with the same name exists."""

        if image.name in self.images:
            raise DuplicateImageError(f"image {image.name!r} is already declared")
        self.images[image.name] = image
        logger.debug("Declared Docker image %r", image.name)
        return image

    def image_tag(self, image: ImageDescriptor) -> str:
        """The `repository:tag` reference of *image*, with unset values taken from the project."""

        return f"{image.repository or self.project.name}:{image.tag or self.project.version}"

    def initialize(self) -> None:
        """Pin the repository and tag of every image. Called when the tasks are created."""

        for image in self.images.values():
            initialize_image(image, self.project)


def docker_settings(
    project: Project | None = None,
    *,
    pull: bool | None = None,
    registry_url: str | None = None,
) -> DockerSettings:
    """Read the Docker settings for the given or current project and optionally update attributes.

    :param project: The project to get the settings for. If not specified, the current project will be used.
    :param pull: Whether image builds should pull newer base images.
    :param registry_url: The URL of the registry to push to.
    """

    project = project or Project.current()
    settings = project.find_metadata(DockerSettings)
    if settings is None:
        settings = DockerSettings(project_context(project))
        project.metadata.append(settings)

    if pull is not None:
        settings.pull = pull

    if registry_url is not None:
        settings.registry_url = registry_url

    return settings
