from pathlib import Path
from typing import Any

import pytest

from kraken.distribution.docker.config import ProjectContext
from kraken.distribution.docker.rules import (
    DOCKER_GROUP,
    BuildTaskSpec,
    CopyTaskSpec,
    PushTaskSpec,
    TaskSpec,
    build_tasks_for_image,
    create_image_tasks,
    image_task_names,
    upper_camel,
)
from kraken.distribution.docker.settings import DockerSettings, DuplicateImageError

BUILD_DIR = Path("/project/build")


class RecordingRegistry:
    def __init__(self) -> None:
        self.registered: list[TaskSpec] = []
        self.edges: dict[str, list[Any]] = {}

    def register(self, spec: TaskSpec) -> None:
        self.registered.append(spec)

    def depend_on(self, name: str, *dependencies: Any) -> None:
        assert name in {spec.name for spec in self.registered}, f"{name} was not registered before depend_on()"
        self.edges.setdefault(name, []).extend(dependencies)


@pytest.fixture
def settings() -> DockerSettings:
    return DockerSettings(ProjectContext(name="shop", version="1.2.3", directory=Path("/project")))


@pytest.mark.parametrize(
    argnames=("name", "expected"),
    argvalues=[("webServer", "WebServer"), ("api", "Api"), ("Worker", "Worker"), ("x", "X")],
)
def test__upper_camel(name: str, expected: str) -> None:
    assert upper_camel(name) == expected


def test__image_task_names() -> None:
    assert image_task_names("webServer") == ("dockerWebServerCopy", "dockerWebServerBuild", "dockerWebServerPush")


def test__build_tasks_for_image__copy_task(settings: DockerSettings) -> None:
    image = settings.image("webServer").depends_on(":lib:build").from_("dist", into="app")

    copy, _build, _push = build_tasks_for_image(image, settings, BUILD_DIR)

    assert isinstance(copy, CopyTaskSpec)
    assert copy.name == "dockerWebServerCopy"
    assert copy.description == "Copy files for Docker image 'webServer'"
    assert copy.group == DOCKER_GROUP
    assert copy.destination == BUILD_DIR / "docker" / "webServer"
    assert copy.depends_on == (":lib:build",)

    sources = list(copy.files.iter_sources())
    assert [source.path for source in sources] == [Path("src/docker/webServer"), Path("dist")]
    assert sources[0].expand == {"project": settings.project}
    assert sources[1].expand is None
    assert sources[1].into == Path("app")


def test__build_tasks_for_image__build_task(settings: DockerSettings) -> None:
    settings.pull = True
    image = settings.image("webServer", repository="acme/web", tag="edge")

    copy, build, _push = build_tasks_for_image(image, settings, BUILD_DIR)

    assert isinstance(build, BuildTaskSpec)
    assert build.name == "dockerWebServerBuild"
    assert build.description == "Build Docker image 'webServer'"
    assert build.group == DOCKER_GROUP
    assert build.input_dir == copy.destination
    assert build.tag == "acme/web:edge"
    assert build.pull is True
    assert build.depends_on == ("dockerWebServerCopy",)


def test__build_tasks_for_image__push_task(settings: DockerSettings) -> None:
    settings.registry_url = "registry.example.com"
    image = settings.image("webServer", repository="acme/web", tag="edge")

    _copy, _build, push = build_tasks_for_image(image, settings, BUILD_DIR)

    assert isinstance(push, PushTaskSpec)
    assert push.name == "dockerWebServerPush"
    assert push.description == "Push Docker image 'webServer'"
    assert push.group == DOCKER_GROUP
    assert push.image_name == "acme/web"
    assert push.tag == "edge"
    assert push.registry_url == "registry.example.com"
    assert push.depends_on == ("dockerWebServerBuild",)


def test__build_tasks_for_image__unset_repository_and_tag_resolve_to_project(settings: DockerSettings) -> None:
    image = settings.image("webServer")
    image.repository = None
    image.tag = None

    _copy, build, push = build_tasks_for_image(image, settings, BUILD_DIR)

    assert build.tag == "shop:1.2.3"
    assert push.image_name == "shop"
    assert push.tag == "1.2.3"


def test__create_image_tasks__creates_three_tasks_per_image_in_declaration_order(settings: DockerSettings) -> None:
    for name in ["webServer", "worker", "api"]:
        settings.image(name)
    registry = RecordingRegistry()

    specs = create_image_tasks(settings, registry, BUILD_DIR)

    assert len(specs) == 9
    assert registry.registered == specs
    assert [spec.name for spec in specs] == [
        "dockerWebServerCopy",
        "dockerWebServerBuild",
        "dockerWebServerPush",
        "dockerWorkerCopy",
        "dockerWorkerBuild",
        "dockerWorkerPush",
        "dockerApiCopy",
        "dockerApiBuild",
        "dockerApiPush",
    ]


def test__create_image_tasks__dependencies_stay_within_each_image(settings: DockerSettings) -> None:
    settings.image("webServer").depends_on("assemble")
    settings.image("worker")
    registry = RecordingRegistry()

    create_image_tasks(settings, registry, BUILD_DIR)

    assert registry.edges == {
        "dockerWebServerCopy": ["assemble"],
        "dockerWebServerBuild": ["dockerWebServerCopy"],
        "dockerWebServerPush": ["dockerWebServerBuild"],
        "dockerWorkerBuild": ["dockerWorkerCopy"],
        "dockerWorkerPush": ["dockerWorkerBuild"],
    }


def test__create_image_tasks__rejects_colliding_task_names(settings: DockerSettings) -> None:
    settings.image("webServer")
    settings.image("WebServer")
    registry = RecordingRegistry()

    with pytest.raises(DuplicateImageError):
        create_image_tasks(settings, registry, BUILD_DIR)

    assert registry.registered == []


def test__create_image_tasks__without_images(settings: DockerSettings) -> None:
    registry = RecordingRegistry()
    assert create_image_tasks(settings, registry, BUILD_DIR) == []
    assert registry.registered == []
