"""Connection URL parsing for pgcontainer."""

from urllib.parse import unquote, urlsplit

from pgcontainer.errors import ConnectionURLError
from pgcontainer.errors_catalog import actionable_error
from pgcontainer.models import ConnectionDescriptor


def parse_connection_url(connection_url: str) -> ConnectionDescriptor:
    """Derive the database name used to label the image and container.

    The URL path wins; when it is empty the username is used instead, which
    mirrors how libpq picks the default database.
    """
    if not isinstance(connection_url, str):
        raise ConnectionURLError(
            actionable_error("invalid_connection_url", reason=f"expected a string, got {connection_url!r}")
        )

    try:
        parsed = urlsplit(connection_url)
        # port is parsed lazily; touch it so a bad port fails here
        parsed.port
    except ValueError as exc:
        raise ConnectionURLError(actionable_error("invalid_connection_url", reason=str(exc))) from exc

    database_name = unquote(parsed.path)
    if database_name.startswith("/"):
        database_name = database_name[1:]
    if not database_name and parsed.username:
        database_name = unquote(parsed.username)

    if not database_name:
        raise ConnectionURLError(actionable_error("missing_database_name"))

    return ConnectionDescriptor(database_name=database_name)


def redact_connection_url(connection_url: str) -> str:
    """Mask the password of a connection URL for logs and error messages."""
    try:
        parsed = urlsplit(connection_url)
        password = parsed.password
    except ValueError:
        return "<invalid connection url>"

    if not password:
        return connection_url

    userinfo, _, hostinfo = parsed.netloc.rpartition("@")
    username = userinfo.split(":", 1)[0]
    netloc = f"{username}:***@{hostinfo}"
    return parsed._replace(netloc=netloc).geturl()
