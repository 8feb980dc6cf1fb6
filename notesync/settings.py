"""NoteSync settings

This module contains the settings for NoteSync.
It reads environment variables from a .env file and sets default values for each variable.
The variables are used to configure various parameters such as batch size, count interval, checkpoint path, etc.
"""

import logging
import logging.config
import os
import typing as t

from environs import Env

logger = logging.getLogger(__name__)

env = Env()
env.read_env(path=os.path.join(os.getcwd(), ".env"))

# NoteSync:
# number of notes to fetch and publish per batch
BATCH_SIZE = env.int("BATCH_SIZE", default=10000)
CHECKPOINT_PATH = env.str("CHECKPOINT_PATH", default="./")
# how often to recount the matching notes (in secs)
COUNT_INTERVAL = env.float("COUNT_INTERVAL", default=3600.0)
# number of recent batch durations used for the eta
ETA_WINDOW = env.int("ETA_WINDOW", default=10)
FORMAT_WITH_COMMAS = env.bool("FORMAT_WITH_COMMAS", default=True)
QUERY_LITERAL_BINDS = env.bool("QUERY_LITERAL_BINDS", default=False)
# source table
NOTE_SCHEMA = env.str("NOTE_SCHEMA", default="public")
NOTE_TABLE = env.str("NOTE_TABLE", default="note")

# SQLAlchemy Settings:
# Use NullPool (no connection pooling) - useful for testing or when you want to close connections immediately
SQLALCHEMY_USE_NULLPOOL = env.bool("SQLALCHEMY_USE_NULLPOOL", default=False)
# This is the number of connections that will be persistently maintained in the pool.
SQLALCHEMY_POOL_SIZE = env.int("SQLALCHEMY_POOL_SIZE", default=5)
# This is the number of connections that can be opened beyond the pool_size when all connections in the pool are in use.
SQLALCHEMY_MAX_OVERFLOW = env.int("SQLALCHEMY_MAX_OVERFLOW", default=10)
# When set to True, a "ping" will be performed on connections before they are checked out of the pool to ensure they are still live.
SQLALCHEMY_POOL_PRE_PING = env.bool("SQLALCHEMY_POOL_PRE_PING", default=False)
# Connections are recycled after this many seconds, -1 disables recycling.
SQLALCHEMY_POOL_RECYCLE = env.int("SQLALCHEMY_POOL_RECYCLE", default=-1)
# This is the number of seconds to wait for a connection to become available from the pool before raising a TimeoutError.
SQLALCHEMY_POOL_TIMEOUT = env.int("SQLALCHEMY_POOL_TIMEOUT", default=30)

# Elasticsearch/OpenSearch:
ELASTICSEARCH_API_KEY = env.str("ELASTICSEARCH_API_KEY", default=None)
ELASTICSEARCH_API_KEY_ID = env.str("ELASTICSEARCH_API_KEY_ID", default=None)
ELASTICSEARCH_AWS_HOSTED = env.bool("ELASTICSEARCH_AWS_HOSTED", default=False)
ELASTICSEARCH_AWS_REGION = env.str("ELASTICSEARCH_AWS_REGION", default=None)
ELASTICSEARCH_BASIC_AUTH = env.str("ELASTICSEARCH_BASIC_AUTH", default=None)
ELASTICSEARCH_BEARER_AUTH = env.str("ELASTICSEARCH_BEARER_AUTH", default=None)
# provide a path to CA certs on disk
ELASTICSEARCH_CA_CERTS = env.str("ELASTICSEARCH_CA_CERTS", default=None)
# Elasticsearch index chunk size (how many documents to index at a time)
ELASTICSEARCH_CHUNK_SIZE = env.int("ELASTICSEARCH_CHUNK_SIZE", default=5000)
# PEM formatted SSL client certificate
ELASTICSEARCH_CLIENT_CERT = env.str("ELASTICSEARCH_CLIENT_CERT", default=None)
# PEM formatted SSL client key
ELASTICSEARCH_CLIENT_KEY = env.str("ELASTICSEARCH_CLIENT_KEY", default=None)
ELASTICSEARCH_CLOUD_ID = env.str("ELASTICSEARCH_CLOUD_ID", default=None)
ELASTICSEARCH_HOST = env.str("ELASTICSEARCH_HOST", default="localhost")
ELASTICSEARCH_HTTP_AUTH = env.list("ELASTICSEARCH_HTTP_AUTH", default=None)
if ELASTICSEARCH_HTTP_AUTH:
    ELASTICSEARCH_HTTP_AUTH = tuple(ELASTICSEARCH_HTTP_AUTH)
ELASTICSEARCH_HTTP_COMPRESS = env.bool(
    "ELASTICSEARCH_HTTP_COMPRESS", default=True
)
# number of seconds we should wait before the first retry.
# Any subsequent retries will be powers of initial_backoff * 2**retry_number
ELASTICSEARCH_INITIAL_BACKOFF = env.float(
    "ELASTICSEARCH_INITIAL_BACKOFF", default=2
)
# maximum number of seconds a retry will wait
ELASTICSEARCH_MAX_BACKOFF = env.float("ELASTICSEARCH_MAX_BACKOFF", default=600)
# the maximum size of the request in bytes (default: 100MB)
ELASTICSEARCH_MAX_CHUNK_BYTES = env.int(
    "ELASTICSEARCH_MAX_CHUNK_BYTES",
    default=104857600,
)
# maximum number of times a document will be retried when 429 is received,
# set to 0 (default) for no retries on 429
ELASTICSEARCH_MAX_RETRIES = env.int("ELASTICSEARCH_MAX_RETRIES", default=0)
ELASTICSEARCH_OPAQUE_ID = env.str("ELASTICSEARCH_OPAQUE_ID", default=None)
ELASTICSEARCH_PASSWORD = env.str("ELASTICSEARCH_PASSWORD", default=None)
ELASTICSEARCH_PORT = env.int("ELASTICSEARCH_PORT", default=9200)
# the size of the task queue between the main thread
# (producing chunks to send) and the processing threads.
ELASTICSEARCH_QUEUE_SIZE = env.int("ELASTICSEARCH_QUEUE_SIZE", default=4)
ELASTICSEARCH_RAISE_ON_ERROR = env.bool(
    "ELASTICSEARCH_RAISE_ON_ERROR", default=True
)
# if ``False`` then don't propagate exceptions from call to elasticsearch bulk
ELASTICSEARCH_RAISE_ON_EXCEPTION = env.bool(
    "ELASTICSEARCH_RAISE_ON_EXCEPTION", default=True
)
ELASTICSEARCH_SCHEME = env.str("ELASTICSEARCH_SCHEME", default="http")
ELASTICSEARCH_SSL_ASSERT_FINGERPRINT = env.str(
    "ELASTICSEARCH_SSL_ASSERT_FINGERPRINT", default=None
)
ELASTICSEARCH_SSL_ASSERT_HOSTNAME = env.str(
    "ELASTICSEARCH_SSL_ASSERT_HOSTNAME", default=None
)
ELASTICSEARCH_SSL_CONTEXT = env.str("ELASTICSEARCH_SSL_CONTEXT", default=None)
# don't show warnings about ssl certs verification
ELASTICSEARCH_SSL_SHOW_WARN = env.bool(
    "ELASTICSEARCH_SSL_SHOW_WARN",
    default=False,
)
ELASTICSEARCH_SSL_VERSION = env.int("ELASTICSEARCH_SSL_VERSION", default=None)
ELASTICSEARCH_STREAMING_BULK = env.bool(
    "ELASTICSEARCH_STREAMING_BULK", default=True
)
# the size of the threadpool to use for the bulk requests
ELASTICSEARCH_THREAD_COUNT = env.int("ELASTICSEARCH_THREAD_COUNT", default=4)
# increase this if you are getting read request timeouts
ELASTICSEARCH_TIMEOUT = env.float("ELASTICSEARCH_TIMEOUT", default=10)
ELASTICSEARCH_USER = env.str("ELASTICSEARCH_USER", default=None)
ELASTICSEARCH_VERIFY_CERTS = env.bool(
    "ELASTICSEARCH_VERIFY_CERTS", default=True
)
# full Elasticsearch/OpenSearch url including user, password, host and port
ELASTICSEARCH_URL = env.str("ELASTICSEARCH_URL", default=None)

ELASTICSEARCH = env.bool("ELASTICSEARCH", default=None)
OPENSEARCH = env.bool("OPENSEARCH", default=None)
MEILISEARCH = env.bool("MEILISEARCH", default=None)

if ELASTICSEARCH is None and OPENSEARCH is None and MEILISEARCH is None:
    ELASTICSEARCH, OPENSEARCH, MEILISEARCH = True, False, False
elif not (ELASTICSEARCH or OPENSEARCH or MEILISEARCH):
    # fall back to the first backend that was not explicitly disabled
    if ELASTICSEARCH is None:
        ELASTICSEARCH = True
    elif OPENSEARCH is None:
        OPENSEARCH = True
    elif MEILISEARCH is None:
        MEILISEARCH = True

ELASTICSEARCH = bool(ELASTICSEARCH)
OPENSEARCH = bool(OPENSEARCH)
MEILISEARCH = bool(MEILISEARCH)

if ELASTICSEARCH + OPENSEARCH + MEILISEARCH > 1:
    raise ValueError(
        "Cannot enable more than one of ELASTICSEARCH, OPENSEARCH and "
        "MEILISEARCH"
    )
if not (ELASTICSEARCH or OPENSEARCH or MEILISEARCH):
    raise ValueError(
        "Enable one search backend: ELASTICSEARCH, OPENSEARCH or MEILISEARCH"
    )

OPENSEARCH_AWS_HOSTED = env.bool("OPENSEARCH_AWS_HOSTED", default=False)
OPENSEARCH_AWS_SERVERLESS = env.bool(
    "OPENSEARCH_AWS_SERVERLESS", default=False
)

# Meilisearch:
MEILISEARCH_URL = env.str("MEILISEARCH_URL", default="http://localhost:7700")
MEILISEARCH_API_KEY = env.str("MEILISEARCH_API_KEY", default=None)
# http timeout for a single add documents request (in secs)
MEILISEARCH_TIMEOUT = env.int("MEILISEARCH_TIMEOUT", default=60)

# Postgres:
# full database url including user, password, host, port and dbname
PG_URL = env.str("PG_URL", default=None)
PG_DRIVER = env.str("PG_DRIVER", default="psycopg2")
PG_HOST = env.str("PG_HOST", default="localhost")
PG_PASSWORD = env.str("PG_PASSWORD", default=None)
PG_PORT = env.int("PG_PORT", default=5432)
PG_SSLMODE = env.str("PG_SSLMODE", default=None)
PG_SSLROOTCERT = env.str("PG_SSLROOTCERT", default=None)
PG_USER = env.str("PG_USER", default="postgres")
# The misskey database name
PG_DATABASE = env.str("PG_DATABASE", default="misskey")


# Logging:
def _get_logging_config(silent_loggers: t.Optional[str] = None):
    """Return the logging configuration based on environment variables."""
    config: dict = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "simple": {
                "format": "%(asctime)s.%(msecs)03d:%(levelname)s:%(name)s: %(message)s",  # noqa E501
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": env.str(
                    "CONSOLE_LOGGING_HANDLER_MIN_LEVEL",
                    default="WARNING",
                ),
                "formatter": "simple",
            },
        },
        "loggers": {
            "": {
                "handlers": env.list("LOG_HANDLERS", default=["console"]),
                "level": env.str("GENERAL_LOGGING_LEVEL", default="DEBUG"),
                "propagate": True,
            },
        },
    }
    if silent_loggers:
        for silent_logger in silent_loggers:
            config["loggers"][silent_logger] = {
                "level": "INFO",
            }

    for logger_config in env.list("CUSTOM_LOGGING", default=[]):
        logger, level = logger_config.split("=")
        config["loggers"][logger] = {
            "level": level,
        }
    return config


LOGGING = _get_logging_config(
    silent_loggers=[
        "urllib3.connectionpool",
        "urllib3.util.retry",
        "elasticsearch",
        "elastic_transport.transport",
        "opensearch",
        "httpx",
        "httpcore",
    ]
)

logging.config.dictConfig(LOGGING)
