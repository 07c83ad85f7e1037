from kraken.common import buildscript

buildscript(requirements=["kraken-docker-distribution@../.."])

from kraken.distribution.docker import docker_image_tasks, docker_settings

settings = docker_settings(pull=True)
settings.image("webServer").from_("static", into="static")
settings.image("worker", repository="example/worker")

docker_image_tasks()
