"""pg_dump discovery and execution for pgcontainer."""

import os
import shutil
from importlib import resources
from pathlib import Path
from typing import Optional

from pgcontainer.constants import DUMP_TOOL_NAME, TOOL_MODE
from pgcontainer.errors import DumpToolError
from pgcontainer.errors_catalog import actionable_error
from pgcontainer.services.connection import redact_connection_url


class DumpToolService:
    """Locates pg_dump and captures its output for one connection URL."""

    BUNDLED_TOOL_DIR = "bin"

    def __init__(self, logger, console, command_runner, package: str = "pgcontainer"):
        self.logger = logger
        self.console = console
        self.command_runner = command_runner
        self.package = package

    def materialize(self, target_dir: str, payload: bytes, name: str = DUMP_TOOL_NAME) -> Path:
        """Write ``payload`` to ``target_dir/name`` unless a file is already there.

        The existence check is not locked, so two concurrent runs sharing a
        directory may race on the first write.
        """
        path = Path(target_dir) / name
        if path.exists():
            self.logger.debug("Reusing dump tool at %s", path)
            return path.resolve()

        try:
            os.makedirs(target_dir, exist_ok=True)
            path.write_bytes(payload)
            os.chmod(path, TOOL_MODE)
        except OSError as exc:
            raise DumpToolError(f"Could not write dump tool to {path}: {exc}") from exc

        self.logger.debug("Wrote dump tool to %s (%s bytes)", path, len(payload))
        return path.resolve()

    def bundled_payload(self) -> Optional[bytes]:
        try:
            bundle_dir = resources.files(self.package).joinpath(self.BUNDLED_TOOL_DIR)
            resource = bundle_dir.joinpath(DUMP_TOOL_NAME)
        except ModuleNotFoundError:
            return None
        if not resource.is_file():
            return None
        return resource.read_bytes()

    def resolve(self, explicit_path: Optional[str], target_dir: str) -> str:
        if explicit_path:
            if not os.path.isfile(explicit_path):
                raise DumpToolError(actionable_error("pg_dump_not_found", path=explicit_path))
            return explicit_path

        payload = self.bundled_payload()
        if payload is not None:
            return str(self.materialize(target_dir, payload))

        found = shutil.which(DUMP_TOOL_NAME)
        if found:
            self.logger.debug("Using %s from PATH: %s", DUMP_TOOL_NAME, found)
            return found

        raise DumpToolError(actionable_error("pg_dump_not_found", path=DUMP_TOOL_NAME))

    def dump(self, tool_path: str, connection_url: str, timeout: Optional[float] = None) -> bytes:
        redacted = redact_connection_url(connection_url)
        result = self.command_runner.run(
            [tool_path, connection_url],
            timeout=timeout,
            redact={connection_url: redacted},
            error_cls=DumpToolError,
        )

        if result.returncode != 0:
            stderr = (result.stderr or b"").decode("utf-8", errors="replace").strip()
            if stderr:
                self.console.print(stderr, markup=False, highlight=False)
                self.logger.debug("pg_dump stderr: %s", stderr)
            raise DumpToolError(
                actionable_error("pg_dump_failed", returncode=str(result.returncode))
            )

        return result.stdout
