"""Shared constants for pgcontainer."""

DUMP_TOOL_NAME = "pg_dump"
TOOL_MODE = 0o755

DOCKERFILE_NAME = "Dockerfile"
DUMP_FILE_NAME = "dump.sql"
RECIPE_MODE = 0o600
DUMP_MODE = 0o777

DB_NAME_BUILD_ARG = "DB_NAME"
DEFAULT_POSTGRES_VERSION = "latest"

IMAGE_TIMESTAMP_FORMAT = "%Y-%m-%d-%H%M"
CONTAINER_NAME_PREFIX = "postgres-"
SERVICE_PORT = 5432
HOST_IP = "127.0.0.1"
HOST_PORT = 5432
