"""NoteSync urls."""

import logging
import typing as t
from urllib.parse import quote_plus

from .settings import (
    ELASTICSEARCH_HOST,
    ELASTICSEARCH_PASSWORD,
    ELASTICSEARCH_PORT,
    ELASTICSEARCH_SCHEME,
    ELASTICSEARCH_URL,
    ELASTICSEARCH_USER,
    MEILISEARCH,
    MEILISEARCH_URL,
    PG_DRIVER,
    PG_HOST,
    PG_PASSWORD,
    PG_PORT,
    PG_URL,
    PG_USER,
)

logger = logging.getLogger(__name__)

DIALECT = {
    "psycopg2": "postgresql",
    "psycopg": "postgresql",
    "pg8000": "postgresql",
}


def get_search_url(
    scheme: t.Optional[str] = None,
    user: t.Optional[str] = None,
    host: t.Optional[str] = None,
    password: t.Optional[str] = None,
    port: t.Optional[int] = None,
) -> str:
    """
    Return the URL to connect to Elasticsearch/OpenSearch/Meilisearch.

    Args:
        scheme (Optional[str]): The scheme to use for the connection. Defaults to None.
        user (Optional[str]): The username to use for the connection. Defaults to None.
        host (Optional[str]): The host to connect to. Defaults to None.
        password (Optional[str]): The password to use for the connection. Defaults to None.
        port (Optional[int]): The port to use for the connection. Defaults to None.

    Returns:
        str: The URL to connect to the search backend.
    """
    # Meilisearch authenticates with an api key rather than the url
    if MEILISEARCH:
        return MEILISEARCH_URL.strip()

    scheme = scheme or ELASTICSEARCH_SCHEME
    host = host or ELASTICSEARCH_HOST
    port = port or ELASTICSEARCH_PORT
    user = user or ELASTICSEARCH_USER
    password = password or ELASTICSEARCH_PASSWORD
    # override the default URL if ELASTICSEARCH_URL is set
    if ELASTICSEARCH_URL:
        return ELASTICSEARCH_URL.strip()

    auth: str = ""
    if user and password:
        auth = f"{user}:{quote_plus(password)}@"
    else:
        logger.debug("Connecting to Search without password.")

    return f"{scheme}://{auth}{host}:{port}"


def get_database_url(
    database: str,
    user: t.Optional[str] = None,
    host: t.Optional[str] = None,
    password: t.Optional[str] = None,
    port: t.Optional[int] = None,
    driver: t.Optional[str] = None,
) -> str:
    """
    Return the URL to connect to the database.

    Args:
        database (str): The name of the database to connect to.
        user (str, optional): The username to use for authentication. Defaults to None.
        host (str, optional): The hostname of the database server. Defaults to None.
        password (str, optional): The password to use for authentication. Defaults to None.
        port (int, optional): The port number to use for the database connection. Defaults to None.
        driver (str, optional): The name of the driver to use for the connection. Defaults to None.

    Returns:
        str: The URL to connect to the database.
    """
    user = user or PG_USER
    host = host or PG_HOST
    password = password or PG_PASSWORD
    port = port or PG_PORT
    driver = driver or PG_DRIVER
    # override the default URL if PG_URL is set
    if PG_URL:
        return PG_URL.strip()

    auth: str = f"{user}:{quote_plus(password)}" if password else user
    if not password:
        logger.debug("Connecting to database without password.")

    protocol: t.Optional[str] = DIALECT.get(driver)
    if not protocol:
        raise ValueError(
            f"Unsupported PG_DRIVER={driver!r}; expected one of "
            f"{', '.join(DIALECT)}."
        )

    return f"{protocol}+{driver}://{auth}@{host}:{port}/{database}"
