from __future__ import annotations

from pathlib import Path

from docker.errors import BuildError
from kraken.core import Project, Property, Task, TaskStatus

from ..remote_api import DockerRemoteApi


class DockerBuildImageTask(Task):
    """Builds a Docker image from a directory that contains a `Dockerfile`, using the Docker daemon described by
    :attr:`remote_api`."""

    description = 'Build Docker image "%(tag)s".'

    input_dir: Property[Path]
    tag: Property[str]
    pull: Property[bool] = Property.default(False)
    dockerfile: Property[str] = Property.default("Dockerfile")
    remote_api: Property[DockerRemoteApi]

    #: The ID of the image that was built.
    image_id: Property[str] = Property.output()

    def __init__(self, name: str, project: Project) -> None:
        super().__init__(name, project)
        self.remote_api.set(DockerRemoteApi())

    # Task

    def execute(self) -> TaskStatus:
        input_dir = self.input_dir.get()
        tag = self.tag.get()
        self.logger.info("building %s from %s (pull: %s)", tag, input_dir, self.pull.get())

        client = self.remote_api.get().create_client()
        try:
            image, logs = client.images.build(
                path=str(input_dir.absolute()),
                dockerfile=self.dockerfile.get(),
                tag=tag,
                pull=self.pull.get(),
                rm=True,
            )
            for chunk in logs:
                line = chunk.get("stream", "").rstrip()
                if line:
                    self.logger.info("%s", line)
        except BuildError as exc:
            for chunk in exc.build_log:
                line = chunk.get("stream", "").rstrip()
                if line:
                    self.logger.error("%s", line)
            return TaskStatus.failed(f"failed to build {tag}: {exc.msg}")
        finally:
            client.close()

        self.image_id = image.id
        return TaskStatus.succeeded(f"built {tag} ({image.short_id})")
