"""Configuration loader for pgcontainer."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from pgcontainer.errors import SnapshotError


class ConfigLoader:
    """Loads YAML configuration files for CLI defaults."""

    SUPPORTED_KEYS = {
        "container",
        "pg_dump",
        "tool_dir",
        "postgres_version",
        "dump_timeout",
        "build_timeout",
        "verbose",
        "log_file",
        "manifest_file",
    }

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise SnapshotError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise SnapshotError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise SnapshotError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(set(parsed.keys()) - self.SUPPORTED_KEYS)
        if unknown:
            unknown_list = ", ".join(unknown)
            raise SnapshotError(f"Unknown configuration keys: {unknown_list}")

        return parsed
