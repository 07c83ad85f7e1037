from __future__ import annotations

from kraken.core import Project, Property, Task, TaskStatus

from ..remote_api import DockerRemoteApi


class DockerPushImageTask(Task):
    """Pushes an image to a registry. If the :attr:`remote_api` carries registry credentials with a username, the
    task logs into the registry first."""

    description = 'Push Docker image "%(image_name)s:%(tag)s".'

    image_name: Property[str]
    tag: Property[str]
    registry_url: Property[str | None] = Property.default(None)
    remote_api: Property[DockerRemoteApi]

    def __init__(self, name: str, project: Project) -> None:
        super().__init__(name, project)
        self.remote_api.set(DockerRemoteApi())

    def get_registry(self) -> str | None:
        """The registry to log into. The URL of the registry credentials takes precedence over :attr:`registry_url`."""

        credentials = self.remote_api.get().registry_credentials
        if credentials is not None and credentials.url:
            return credentials.url
        return self.registry_url.get()

    # Task

    def execute(self) -> TaskStatus:
        image_name = self.image_name.get()
        tag = self.tag.get()
        remote_api = self.remote_api.get()
        credentials = remote_api.registry_credentials

        client = remote_api.create_client()
        try:
            if credentials is not None and credentials.username:
                registry = self.get_registry()
                self.logger.info("logging into %s as %s", registry or "the default registry", credentials.username)
                client.login(
                    username=credentials.username,
                    password=credentials.password,
                    email=credentials.email,
                    registry=registry,
                )

            self.logger.info("pushing %s:%s", image_name, tag)
            for chunk in client.images.push(image_name, tag=tag, stream=True, decode=True):
                if "error" in chunk:
                    self.logger.warning("%s", chunk["error"])
                    return TaskStatus.failed(f"failed to push {image_name}:{tag}: {chunk['error']}")
                if "status" in chunk:
                    self.logger.debug("%s %s", chunk.get("id", ""), chunk["status"])
        finally:
            client.close()

        return TaskStatus.succeeded(f"pushed {image_name}:{tag}")
