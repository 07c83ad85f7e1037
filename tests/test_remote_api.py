from pathlib import Path
from unittest.mock import patch

from kraken.core import Project
from kraken.distribution.docker.config import MappingConfigProvider
from kraken.distribution.docker.remote_api import (
    DockerRemoteApi,
    RegistryCredentials,
    configure_docker_remote_api,
    configure_remote_api,
    docker_remote_api,
)

CREDENTIALS = {
    "docker.user": "jane",
    "docker.password": "s3cret",
    "docker.email": "jane@example.com",
    "docker.url": "registry.example.com",
}


def test__configure_remote_api__rewrites_tcp_host_to_https() -> None:
    remote_api = configure_remote_api(
        DockerRemoteApi(), MappingConfigProvider(environ={"DOCKER_HOST": "tcp://192.168.59.103:2376"})
    )
    assert remote_api.url == "https://192.168.59.103:2376"


def test__configure_remote_api__keeps_other_hosts() -> None:
    remote_api = configure_remote_api(
        DockerRemoteApi(), MappingConfigProvider(environ={"DOCKER_HOST": "unix:///var/run/docker.sock"})
    )
    assert remote_api.url == "unix:///var/run/docker.sock"


def test__configure_remote_api__sets_cert_path() -> None:
    remote_api = configure_remote_api(
        DockerRemoteApi(), MappingConfigProvider(environ={"DOCKER_CERT_PATH": "/home/jane/.docker/machine"})
    )
    assert remote_api.cert_path == Path("/home/jane/.docker/machine")


def test__configure_remote_api__leaves_unset_environment_alone() -> None:
    remote_api = configure_remote_api(DockerRemoteApi(url="unix:///run/docker.sock"), MappingConfigProvider())
    assert remote_api.url == "unix:///run/docker.sock"
    assert remote_api.cert_path is None


def test__configure_remote_api__creates_credentials_from_properties() -> None:
    remote_api = configure_remote_api(DockerRemoteApi(), MappingConfigProvider(properties=CREDENTIALS))
    assert remote_api.registry_credentials == RegistryCredentials(
        username="jane", password="s3cret", email="jane@example.com", url="registry.example.com"
    )


def test__configure_remote_api__reuses_existing_credentials() -> None:
    credentials = RegistryCredentials(username="old")
    remote_api = configure_remote_api(
        DockerRemoteApi(registry_credentials=credentials), MappingConfigProvider(properties=CREDENTIALS)
    )
    assert remote_api.registry_credentials is credentials
    assert credentials.username == "jane"


def test__configure_remote_api__missing_properties_become_none() -> None:
    remote_api = configure_remote_api(
        DockerRemoteApi(registry_credentials=RegistryCredentials(username="old", password="old")),
        MappingConfigProvider(properties={"docker.user": "jane"}),
    )
    assert remote_api.registry_credentials == RegistryCredentials(username="jane")


def test__configure_docker_remote_api__configures_the_project_instance(kraken_project: Project) -> None:
    config = MappingConfigProvider(environ={"DOCKER_HOST": "tcp://docker:2376"}, properties=CREDENTIALS)
    remote_api = configure_docker_remote_api(kraken_project, config)
    assert remote_api is docker_remote_api(kraken_project)
    assert remote_api.url == "https://docker:2376"


def test__DockerRemoteApi__tls_config_uses_cert_path() -> None:
    assert DockerRemoteApi().tls_config() is None

    with patch("kraken.distribution.docker.remote_api.TLSConfig") as tls_config:
        DockerRemoteApi(cert_path=Path("/certs")).tls_config()
    tls_config.assert_called_once_with(
        client_cert=("/certs/cert.pem", "/certs/key.pem"), ca_cert="/certs/ca.pem", verify=True
    )


def test__DockerRemoteApi__create_client() -> None:
    with patch("kraken.distribution.docker.remote_api.docker") as docker:
        DockerRemoteApi().create_client()
        docker.from_env.assert_called_once_with(version="auto")

        DockerRemoteApi(url="https://docker:2376", api_version="1.41").create_client()
        docker.DockerClient.assert_called_once_with(base_url="https://docker:2376", version="1.41", tls=False)
