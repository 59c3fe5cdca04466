"""Dockerfile rendering for pgcontainer images."""

from pgcontainer.constants import (
    DB_NAME_BUILD_ARG,
    DEFAULT_POSTGRES_VERSION,
    DUMP_FILE_NAME,
    SERVICE_PORT,
)


def build_recipe(postgres_version: str = DEFAULT_POSTGRES_VERSION) -> str:
    """Return the Dockerfile that seeds a postgres image from ``dump.sql``.

    The official image runs every script in ``/docker-entrypoint-initdb.d``
    against ``POSTGRES_DB`` on first start, so the database name arrives as a
    build argument and the dump is loaded when the container first boots.
    The entrypoint runs psql with ON_ERROR_STOP=1; the dump switches it off
    so ownership statements for roles missing from the image do not abort
    initialisation.
    """
    return f"""
FROM postgres:{postgres_version}

ARG {DB_NAME_BUILD_ARG}
ENV POSTGRES_DB=${{{DB_NAME_BUILD_ARG}}}
ENV POSTGRES_USER=postgres
ENV POSTGRES_PASSWORD=postgres
ENV PGDATA=/data

COPY {DUMP_FILE_NAME} /docker-entrypoint-initdb.d/{DUMP_FILE_NAME}
RUN sed -i '1i \\\\set ON_ERROR_STOP off' /docker-entrypoint-initdb.d/{DUMP_FILE_NAME}

EXPOSE {SERVICE_PORT}
""".strip() + "\n"
