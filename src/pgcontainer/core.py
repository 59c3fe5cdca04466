import logging
import tempfile
from datetime import datetime
from typing import Any, Callable, Dict, Optional

import docker
from docker.errors import DockerException
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from .constants import DEFAULT_POSTGRES_VERSION
from .errors import EngineError, SnapshotError
from .errors_catalog import actionable_error
from .models import ConnectionDescriptor, PipelineResult
from .services.archive import ArchiveService
from .services.command_runner import CommandRunner
from .services.connection import parse_connection_url, redact_connection_url
from .services.docker_runtime import DockerRuntimeService
from .services.dump_tool import DumpToolService
from .services.manifest import ManifestService
from .services.recipe import build_recipe

console = Console()
logger = logging.getLogger("pgcontainer")


class PgContainer:
    """Snapshot pipeline: pg_dump, pack, build and optionally run."""

    def __init__(
        self,
        connection_url: str,
        create_container: bool = False,
        pg_dump: Optional[str] = None,
        tool_dir: Optional[str] = None,
        postgres_version: str = DEFAULT_POSTGRES_VERSION,
        dump_timeout: Optional[float] = None,
        build_timeout: Optional[float] = None,
        manifest_file: Optional[str] = None,
        docker_client=None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.connection_url = connection_url
        self.create_container = create_container
        self.pg_dump = pg_dump
        self.tool_dir = tool_dir or tempfile.gettempdir()
        self.postgres_version = postgres_version
        self.dump_timeout = dump_timeout
        self.build_timeout = build_timeout
        self.clock = clock

        self.docker_client = docker_client
        self.command_runner = CommandRunner(logger=logger)
        self.dump_tool_service = DumpToolService(
            logger=logger,
            console=console,
            command_runner=self.command_runner,
        )
        self.archive_service = ArchiveService()
        self.manifest_service = ManifestService(logger=logger, manifest_file=manifest_file)

        self.result: Optional[PipelineResult] = None

    def _run_step(self, name: str, callback, *args, **kwargs):
        self.manifest_service.step_started(name)

        try:
            result = callback(*args, **kwargs)
        except KeyboardInterrupt:
            self.manifest_service.step_finished(
                name, "aborted", error="Operation cancelled by user."
            )
            raise
        except Exception as exc:
            self.manifest_service.step_finished(name, "failed", error=str(exc))
            raise

        self.manifest_service.step_finished(name, "success")
        return result

    def _build_metadata(self) -> Dict[str, Any]:
        return {
            "connection_url": redact_connection_url(self.connection_url),
            "create_container": self.create_container,
            "postgres_version": self.postgres_version,
        }

    def _docker_runtime(self) -> DockerRuntimeService:
        if self.docker_client is None:
            try:
                if self.build_timeout is not None:
                    self.docker_client = docker.from_env(timeout=self.build_timeout)
                else:
                    self.docker_client = docker.from_env()
            except DockerException as exc:
                raise EngineError(actionable_error("docker_unavailable", reason=str(exc))) from exc

        return DockerRuntimeService(
            logger=logger,
            console=console,
            client=self.docker_client,
            build_timeout=self.build_timeout,
        )

    def parse_connection(self) -> ConnectionDescriptor:
        descriptor = parse_connection_url(self.connection_url)
        logger.info("Database name: %s", descriptor.database_name)
        return descriptor

    def resolve_dump_tool(self) -> str:
        tool_path = self.dump_tool_service.resolve(self.pg_dump, self.tool_dir)
        logger.debug("Using dump tool: %s", tool_path)
        return tool_path

    def capture_dump(self, tool_path: str) -> bytes:
        console.print("[bold blue]> Step 1: Processing dump[/bold blue]")
        payload = self.dump_tool_service.dump(
            tool_path,
            self.connection_url,
            timeout=self.dump_timeout,
        )
        logger.info("Captured dump: %s bytes", len(payload))
        return payload

    def build_context(self, payload: bytes) -> bytes:
        context = self.archive_service.build_context(build_recipe(self.postgres_version), payload)
        for name, size, mode in self.archive_service.list_entries(context):
            logger.debug("Build context entry %s (%s bytes, mode %o)", name, size, mode)
        return context

    def build_image(self, context: bytes, database_name: str) -> str:
        console.print("[bold blue]> Step 2: Creating Docker image[/bold blue]")
        return self._docker_runtime().build_image(context, database_name, now=self.clock())

    def launch_container(self, image: str, database_name: str):
        console.print("[bold blue]> Step 3: Creating a container[/bold blue]")
        return self._docker_runtime().launch_container(image, database_name, now=self.clock())

    def print_step_summary(self):
        table = Table(title="Snapshot steps")
        table.add_column("Step")
        table.add_column("Status")
        table.add_column("Error", overflow="fold")
        for step in self.manifest_service.steps:
            color = "green" if step["status"] == "success" else "red"
            table.add_row(step["name"], Text(step["status"], style=color), Text(step["error"] or ""))
        console.print(table)

    def run(self) -> int:
        exit_code = 1
        manifest_status = "failed"
        manifest_error: Optional[str] = None

        try:
            logger.info("Starting pgcontainer...")
            self.manifest_service.start_run(metadata=self._build_metadata())

            descriptor = self._run_step("parse_connection", self.parse_connection)
            database_name = descriptor.database_name

            tool_path = self._run_step("resolve_dump_tool", self.resolve_dump_tool)
            payload = self._run_step("capture_dump", self.capture_dump, tool_path)
            context = self._run_step("build_context", self.build_context, payload)
            tag = self._run_step("build_image", self.build_image, context, database_name)
            self.manifest_service.add_artifact("image", tag)

            name: Optional[str] = None
            container_id: Optional[str] = None
            if self.create_container:
                name, container_id = self._run_step(
                    "launch_container", self.launch_container, tag, database_name
                )
                self.manifest_service.add_artifact("container", name)

            self.result = PipelineResult(
                database_name=database_name,
                image_tag=tag,
                dump_size=len(payload),
                container_name=name,
                container_id=container_id,
            )
            manifest_status = "success"
            exit_code = 0
            return exit_code

        except KeyboardInterrupt:
            console.print("[bold red]Operation cancelled by user.[/bold red]")
            logger.info("Operation cancelled by user")
            manifest_status = "aborted"
            manifest_error = "Operation cancelled by user."
            return exit_code
        except SnapshotError as exc:
            self.print_step_summary()
            console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
            logger.error(str(exc))
            manifest_error = str(exc)
            return exit_code
        except Exception as exc:
            self.print_step_summary()
            console.print(f"[bold red]Unexpected error:[/bold red] {escape(str(exc))}")
            logger.exception("Unexpected error")
            manifest_error = str(exc)
            return exit_code
        finally:
            self.manifest_service.finalize(manifest_status, error=manifest_error)
