"""
Configuration of the connection to the Docker daemon and the registry, consumed by the build and push tasks.
"""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path

import docker
from docker.tls import TLSConfig
from kraken.core import Project

from .config import ConfigProvider, config_provider

logger = logging.getLogger(__name__)

DOCKER_HOST = "DOCKER_HOST"
DOCKER_CERT_PATH = "DOCKER_CERT_PATH"

#: The project properties that are copied into the :class:`RegistryCredentials`.
REGISTRY_USER_PROPERTY = "docker.user"
REGISTRY_PASSWORD_PROPERTY = "docker.password"
REGISTRY_EMAIL_PROPERTY = "docker.email"
REGISTRY_URL_PROPERTY = "docker.url"


@dataclasses.dataclass
class RegistryCredentials:
    username: str | None = None
    password: str | None = None
    email: str | None = None
    url: str | None = None


@dataclasses.dataclass
class DockerRemoteApi:
    """Connection settings for the Docker daemon."""

    #: The URL of the Docker daemon. If not set, the Docker client's defaults apply.
    url: str | None = None

    #: A directory with the `ca.pem`, `cert.pem` and `key.pem` files to connect to the daemon via TLS.
    cert_path: Path | None = None

    api_version: str = "auto"
    registry_credentials: RegistryCredentials | None = None

    def tls_config(self) -> TLSConfig | None:
        if self.cert_path is None:
            return None
        return TLSConfig(
            client_cert=(str(self.cert_path / "cert.pem"), str(self.cert_path / "key.pem")),
            ca_cert=str(self.cert_path / "ca.pem"),
            verify=True,
        )

    def create_client(self) -> docker.DockerClient:
        if self.url is None:
            return docker.from_env(version=self.api_version)
        return docker.DockerClient(base_url=self.url, version=self.api_version, tls=self.tls_config() or False)


def docker_remote_api(project: Project | None = None) -> DockerRemoteApi:
    """Returns the :class:`DockerRemoteApi` of the given or current project, creating it on first access."""

    project = project or Project.current()
    return project.find_metadata(DockerRemoteApi, DockerRemoteApi)


def configure_remote_api(remote_api: DockerRemoteApi, config: ConfigProvider) -> DockerRemoteApi:
    """
    Copy the ambient configuration into *remote_api*:

    * the daemon URL from the `DOCKER_HOST` environment variable, with `tcp://` replaced by `https://`
    * the certificate path from the `DOCKER_CERT_PATH` environment variable
    * the registry credentials from the `docker.user`, `docker.password`, `docker.email` and `docker.url`
      project properties

    Values that are not available are left unset, for credentials this means they are set to `None`.
    """

    credentials = remote_api.registry_credentials
    if credentials is None:
        credentials = remote_api.registry_credentials = RegistryCredentials()

    host = config.getenv(DOCKER_HOST)
    if host is not None:
        remote_api.url = host.replace("tcp://", "https://", 1)

    cert_path = config.getenv(DOCKER_CERT_PATH)
    if cert_path is not None:
        remote_api.cert_path = Path(cert_path)

    logger.debug("Using Docker URL '%s'", remote_api.url)
    logger.debug("Using Docker certificate path '%s'", remote_api.cert_path)

    credentials.username = config.get_property(REGISTRY_USER_PROPERTY)
    credentials.password = config.get_property(REGISTRY_PASSWORD_PROPERTY)
    credentials.email = config.get_property(REGISTRY_EMAIL_PROPERTY)
    credentials.url = config.get_property(REGISTRY_URL_PROPERTY)

    return remote_api


def configure_docker_remote_api(
    project: Project | None = None, config: ConfigProvider | None = None
) -> DockerRemoteApi:
    """Run :func:`configure_remote_api` for the given or current project."""

    project = project or Project.current()
    return configure_remote_api(docker_remote_api(project), config or config_provider(project))
