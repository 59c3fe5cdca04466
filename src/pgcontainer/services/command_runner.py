"""Subprocess execution service for pgcontainer."""

import subprocess
from typing import Dict, List, Optional, Type

from pgcontainer.errors import SnapshotError


class CommandRunner:
    """Runs external commands with consistent error handling.

    Output is captured as bytes; callers decide how to decode it.
    """

    def __init__(self, logger):
        self.logger = logger

    def run(
        self,
        cmd: List[str],
        timeout: Optional[float] = None,
        redact: Optional[Dict[str, str]] = None,
        error_cls: Type[SnapshotError] = SnapshotError,
    ) -> subprocess.CompletedProcess:
        shown = list(cmd)
        for secret, replacement in (redact or {}).items():
            shown = [part.replace(secret, replacement) for part in shown]
        cmd_str = " ".join(shown)
        self.logger.debug("Executing: %s", cmd_str)

        try:
            result = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=timeout,
            )
        except FileNotFoundError as exc:
            raise error_cls(
                f"Required command not found: {cmd[0]}. Please install it and try again."
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise error_cls(f"Command timed out after {timeout}s: {cmd_str}") from exc
        except OSError as exc:
            raise error_cls(f"Failed to execute command: {cmd_str}. {exc}") from exc

        self.logger.debug(
            "Command exited with %s (%s bytes on stdout)", result.returncode, len(result.stdout)
        )
        return result
