"""NoteSync utils."""

import logging
import sys
import typing as t
from datetime import datetime, timedelta, timezone
from time import time
from urllib.parse import ParseResult, urlparse

import click
import sqlalchemy as sa
import sqlparse

from . import settings

logger = logging.getLogger(__name__)

HIGHLIGHT_BEGIN = "\033[4m"
HIGHLIGHT_END = "\033[0m:"


class Timer:
    def __init__(self, message: t.Optional[str] = None):
        self.message: str = message or ""

    def __enter__(self):
        self.start: float = time()
        return self

    def __exit__(self, *args):
        elapsed: float = time() - self.start
        sys.stdout.write(
            f"{self.message} {(timedelta(seconds=elapsed))} "
            f"({elapsed:2.2f} sec)\n"
        )


def format_number(n: int) -> str:
    """
    Format a number with commas if the setting is enabled."""
    return f"{n:,}" if settings.FORMAT_WITH_COMMAS else f"{n}"


def format_duration(seconds: t.Optional[float]) -> str:
    """Format seconds as H:MM:SS, or -:--:-- when unknown."""
    if seconds is None:
        return "-:--:--"
    hours, remainder = divmod(int(max(seconds, 0)), 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours}:{minutes:02d}:{seconds:02d}"


def parse_instant(value: str) -> datetime:
    """
    Parse an ISO-8601 timestamp or milliseconds since the unix epoch.

    Naive timestamps are taken to be UTC.
    """
    value = value.strip()
    if value.lstrip("-").isdigit():
        seconds, milliseconds = divmod(int(value), 1000)
        return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(
            microsecond=milliseconds * 1000
        )
    if value.endswith(("Z", "z")):
        value = f"{value[:-1]}+00:00"
    instant: datetime = datetime.fromisoformat(value)
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def get_redacted_url(url: str) -> str:
    """
    Returns a redacted version of the input URL, with the password replaced by asterisks.
    """
    parsed_url: ParseResult = urlparse(url)
    if parsed_url.password:
        username = parsed_url.username or ""
        hostname = parsed_url.hostname or ""
        port = f":{parsed_url.port}" if parsed_url.port else ""
        redacted_password = "*" * len(parsed_url.password)
        netloc: str = f"{username}:{redacted_password}@{hostname}{port}"
        parsed_url = parsed_url._replace(netloc=netloc)
    return parsed_url.geturl()


def show_settings(
    database_url: str,
    search_url: str,
    index: str,
    note_filter: t.Any,
) -> None:
    """Show settings."""
    logger.info(f"{HIGHLIGHT_BEGIN}Settings{HIGHLIGHT_END}")
    logger.info(f'{"Index":<10s}: {index}')
    logger.info(f'{"Batch":<10s}: {format_number(note_filter.batch_size)}')
    logger.info(f"{HIGHLIGHT_BEGIN}Checkpoint{HIGHLIGHT_END}")
    logger.info(f"Path: {settings.CHECKPOINT_PATH}")
    logger.info("-" * 65)
    logger.info(f"{HIGHLIGHT_BEGIN}Database{HIGHLIGHT_END}")
    logger.info(f"URL: {get_redacted_url(database_url)}")
    if settings.MEILISEARCH:
        name: str = "Meilisearch"
    elif settings.OPENSEARCH:
        name = "OpenSearch"
    else:
        name = "Elasticsearch"
    logger.info(f"{HIGHLIGHT_BEGIN}{name}{HIGHLIGHT_END}")
    logger.info(f"URL: {get_redacted_url(search_url)}")
    logger.info("-" * 65)
    logger.info(f"{HIGHLIGHT_BEGIN}Filter{HIGHLIGHT_END}")
    logger.info(f'{"Since":<10s}: {note_filter.since or "-"}')
    logger.info(f'{"Until":<10s}: {note_filter.until or "-"}')
    logger.info(
        f'{"Hosts":<10s}: {", ".join(note_filter.hosts) or "local only"}'
    )
    logger.info("-" * 65)


def compiled_query(
    query: sa.sql.Select,
    label: t.Optional[str] = None,
    literal_binds: bool = settings.QUERY_LITERAL_BINDS,
) -> None:
    """Compile an SQLAlchemy query with an optional label."""
    query = str(
        query.compile(
            dialect=sa.dialects.postgresql.dialect(),
            compile_kwargs={"literal_binds": literal_binds},
        )
    )
    query = sqlparse.format(query, reindent=True, keyword_case="upper")
    if label:
        logger.debug(f"\033[4m{label}:\033[0m\n{query}")
        sys.stdout.write(f"\033[4m{label}:\033[0m\n{query}\n")
    else:
        logger.debug(f"{query}")
        sys.stdout.write(f"{query}\n")
    sys.stdout.write("-" * 79)
    sys.stdout.write("\n")


class MutuallyExclusiveOption(click.Option):
    """
    A custom Click option that allows for mutually exclusive arguments.

    Args:
        click.Option: The base class for Click options.

    Attributes:
        mutually_exclusive (set): A set of argument names that are mutually exclusive with this option.
    """

    def __init__(self, *args, **kwargs):
        self.mutually_exclusive: t.Set = set(
            kwargs.pop("mutually_exclusive", [])
        )
        help: str = kwargs.get("help", "")
        if self.mutually_exclusive:
            kwargs["help"] = help + (
                f" NOTE: This argument is mutually exclusive with "
                f" arguments: [{', '.join(self.mutually_exclusive)}]."
            )
        super(MutuallyExclusiveOption, self).__init__(*args, **kwargs)

    def handle_parse_result(
        self,
        ctx: click.Context,
        opts: t.Mapping[str, t.Any],
        args: t.List[str],
    ) -> t.Tuple[t.Any, t.List[str]]:
        """
        Handles the parsing of the command-line arguments.

        Args:
            ctx (click.Context): The Click context.
            opts (dict): The dictionary of parsed options.
            args (list): The list of parsed arguments.

        Returns:
            The result of the base class's `handle_parse_result` method.
        """
        if self.mutually_exclusive.intersection(opts) and self.name in opts:
            raise click.UsageError(
                f"Illegal usage: `{self.name}` is mutually exclusive with "
                f"arguments `{', '.join(self.mutually_exclusive)}`."
            )

        return super(MutuallyExclusiveOption, self).handle_parse_result(
            ctx, opts, args
        )
