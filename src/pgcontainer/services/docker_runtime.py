"""Docker engine services for pgcontainer."""

import io
from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Tuple

import requests
from docker.errors import DockerException

from pgcontainer.constants import (
    CONTAINER_NAME_PREFIX,
    DB_NAME_BUILD_ARG,
    DOCKERFILE_NAME,
    HOST_IP,
    HOST_PORT,
    IMAGE_TIMESTAMP_FORMAT,
    SERVICE_PORT,
)
from pgcontainer.errors import EngineError, EngineUnknownError
from pgcontainer.errors_catalog import actionable_error


def image_tag(database_name: str, now: Optional[datetime] = None) -> str:
    """Tag for a fresh snapshot image; unique only to the minute."""
    moment = now or datetime.now()
    return f"{database_name}-{moment.strftime(IMAGE_TIMESTAMP_FORMAT)}:latest"


def container_name(database_name: str, now: Optional[datetime] = None) -> str:
    moment = now or datetime.now()
    return f"{CONTAINER_NAME_PREFIX}{database_name}-{int(moment.timestamp())}"


class DockerRuntimeService:
    """Builds snapshot images and launches containers through the engine API."""

    def __init__(self, logger, console, client, build_timeout: Optional[float] = None):
        self.logger = logger
        self.console = console
        self.client = client
        self.build_timeout = build_timeout

    def _drain_build_stream(self, stream: Iterable[Dict[str, Any]]) -> Optional[str]:
        build_error: Optional[str] = None
        for chunk in stream:
            if not isinstance(chunk, dict):
                continue
            if "stream" in chunk:
                line = str(chunk["stream"]).rstrip()
                if line:
                    self.logger.debug("build: %s", line)
            if build_error is None and ("error" in chunk or "errorDetail" in chunk):
                detail = chunk.get("errorDetail") or {}
                build_error = chunk.get("error") or detail.get("message") or str(chunk)
        return build_error

    def build_image(
        self,
        context: bytes,
        database_name: str,
        now: Optional[datetime] = None,
    ) -> str:
        """Build an image from a tar context and return its tag.

        The engine streams build progress; the stream is consumed to the end
        before the build counts as finished and is closed on every path.
        """
        tag = image_tag(database_name, now)
        self.console.print(f"[blue]Building image {tag}...[/blue]")
        self.logger.info("Building image %s", tag)

        stream = None
        try:
            try:
                stream = self.client.api.build(
                    fileobj=io.BytesIO(context),
                    custom_context=True,
                    tag=tag,
                    dockerfile=DOCKERFILE_NAME,
                    rm=True,
                    forcerm=True,
                    buildargs={DB_NAME_BUILD_ARG: database_name},
                    decode=True,
                    timeout=self.build_timeout,
                )
            except DockerException as exc:
                raise EngineError(str(exc)) from exc

            if stream is None:
                raise EngineUnknownError("Unknown error occurred when building docker image")

            try:
                build_error = self._drain_build_stream(stream)
            except (DockerException, requests.RequestException) as exc:
                raise EngineError(f"Build output stream failed: {exc}") from exc
        finally:
            close = getattr(stream, "close", None)
            if callable(close):
                close()

        if build_error:
            raise EngineError(build_error)

        self.console.print(f"[green]Image built successfully with name: {tag}[/green]")
        self.logger.info("Image built successfully with name: %s", tag)
        return tag

    def launch_container(
        self,
        image: str,
        database_name: str,
        now: Optional[datetime] = None,
    ) -> Tuple[str, str]:
        name = container_name(database_name, now)
        self.console.print(f"[blue]Creating container {name}...[/blue]")

        try:
            host_config = self.client.api.create_host_config(
                port_bindings={SERVICE_PORT: (HOST_IP, HOST_PORT)},
            )
            created = self.client.api.create_container(
                image=image,
                name=name,
                environment=[],
                ports=[SERVICE_PORT],
                host_config=host_config,
            )
            container_id = created["Id"]
            self.logger.info("Created container: %s (%s)", name, container_id[:12])

            self.client.api.start(container_id)
        except DockerException as exc:
            raise EngineError(
                actionable_error("container_launch_failed", image=image, reason=str(exc))
            ) from exc

        self.console.print(
            f"[green]Container started with name: {name} "
            f"(listening on {HOST_IP}:{HOST_PORT})[/green]"
        )
        self.logger.info("Started container %s", name)
        return name, container_id
