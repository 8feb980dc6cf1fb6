"""NoteSync SearchClient helper."""

import logging
import typing as t

import boto3
import elastic_transport
import elasticsearch
import elasticsearch.helpers
import meilisearch_python_sdk
import opensearchpy
import opensearchpy.helpers
from requests_aws4auth import AWS4Auth

from . import settings
from .constants import FAILED, PRIMARY_KEY, SUCCEEDED
from .note import Note
from .urls import get_search_url

logger = logging.getLogger(__name__)


class TaskInfo(t.NamedTuple):
    """Handle for a published batch."""

    task_uid: t.Union[int, str]
    status: str


class SearchClient(object):
    """SearchClient."""

    def __init__(self):
        """
        Return an Elasticsearch/OpenSearch/Meilisearch client.

        The default connection parameters are:
        host = 'localhost', port = 9200
        """
        url: str = get_search_url()
        self.is_opensearch: bool = False
        self.is_meilisearch: bool = False
        if settings.ELASTICSEARCH:
            self.name = "Elasticsearch"
            self.__client: elasticsearch.Elasticsearch = get_search_client(
                url,
                client=elasticsearch.Elasticsearch,
                node_class=elastic_transport.RequestsHttpNode,
            )
            self.streaming_bulk: t.Callable = (
                elasticsearch.helpers.streaming_bulk
            )
            self.parallel_bulk: t.Callable = (
                elasticsearch.helpers.parallel_bulk
            )

        elif settings.OPENSEARCH:
            self.is_opensearch = True
            self.name = "OpenSearch"
            self.__client: opensearchpy.OpenSearch = get_search_client(
                url,
                client=opensearchpy.OpenSearch,
                connection_class=opensearchpy.RequestsHttpConnection,
            )
            self.streaming_bulk: t.Callable = (
                opensearchpy.helpers.streaming_bulk
            )
            self.parallel_bulk: t.Callable = opensearchpy.helpers.parallel_bulk

        elif settings.MEILISEARCH:
            self.is_meilisearch = True
            self.name = "Meilisearch"
            self.__client: meilisearch_python_sdk.Client = (
                get_meilisearch_client(url)
            )
        else:
            raise RuntimeError("Unknown search client")

        self.doc_count: int = 0
        self.task_count: int = 0

    def close(self) -> None:
        """Close transport connection."""
        if self.is_meilisearch:
            self.__client.http_client.close()
        else:
            self.__client.transport.close()

    def publish(self, index: str, notes: t.Sequence[Note]) -> TaskInfo:
        """
        Upsert a batch of notes keyed by note id.

        Returns as soon as the backend has accepted the batch, the
        documents may not be searchable yet.

        Args:
            index (str): the index to publish to.
            notes (Sequence[Note]): a non-empty batch of notes.

        Returns:
            TaskInfo: the backend task handle and its status.
        """
        if not notes:
            raise ValueError("Cannot publish an empty batch")

        documents: t.List[dict] = [note.to_document() for note in notes]
        if self.is_meilisearch:
            task_info = self.__client.index(index).add_documents(
                documents, primary_key=PRIMARY_KEY
            )
            self.task_count += 1
            self.doc_count += len(documents)
            return TaskInfo(task_info.task_uid, str(task_info.status))

        actions: t.Generator = (
            {
                "_op_type": "index",
                "_id": document[PRIMARY_KEY],
                "_source": document,
            }
            for document in documents
        )
        succeeded: int = self.bulk(index, actions)
        self.task_count += 1
        status: str = SUCCEEDED if succeeded == len(documents) else FAILED
        if status == FAILED:
            logger.warning(
                f"{self.name} indexed {succeeded} of {len(documents)} "
                f"documents in batch {self.task_count}"
            )
        return TaskInfo(self.task_count, status)

    def bulk(
        self,
        index: str,
        actions: t.Iterable[t.Union[bytes, str, t.Dict[str, t.Any]]],
        chunk_size: t.Optional[int] = None,
        max_chunk_bytes: t.Optional[int] = None,
        queue_size: t.Optional[int] = None,
        thread_count: t.Optional[int] = None,
        refresh: bool = False,
        max_retries: t.Optional[int] = None,
        initial_backoff: t.Optional[float] = None,
        max_backoff: t.Optional[float] = None,
        raise_on_exception: t.Optional[bool] = None,
        raise_on_error: t.Optional[bool] = None,
    ) -> int:
        """Push documents to Elasticsearch/OpenSearch, return the ok count."""
        chunk_size = chunk_size or settings.ELASTICSEARCH_CHUNK_SIZE
        max_chunk_bytes = (
            max_chunk_bytes or settings.ELASTICSEARCH_MAX_CHUNK_BYTES
        )
        thread_count = thread_count or settings.ELASTICSEARCH_THREAD_COUNT
        queue_size = queue_size or settings.ELASTICSEARCH_QUEUE_SIZE
        # max_retries, initial_backoff & max_backoff are only applicable when
        # streaming bulk is in use
        max_retries = max_retries or settings.ELASTICSEARCH_MAX_RETRIES
        initial_backoff = (
            initial_backoff or settings.ELASTICSEARCH_INITIAL_BACKOFF
        )
        max_backoff = max_backoff or settings.ELASTICSEARCH_MAX_BACKOFF
        raise_on_exception = (
            raise_on_exception or settings.ELASTICSEARCH_RAISE_ON_EXCEPTION
        )
        raise_on_error = (
            raise_on_error or settings.ELASTICSEARCH_RAISE_ON_ERROR
        )

        try:
            return self._bulk(
                index,
                actions,
                chunk_size=chunk_size,
                max_chunk_bytes=max_chunk_bytes,
                queue_size=queue_size,
                thread_count=thread_count,
                refresh=refresh,
                max_retries=max_retries,
                initial_backoff=initial_backoff,
                max_backoff=max_backoff,
                raise_on_exception=raise_on_exception,
                raise_on_error=raise_on_error,
            )
        except Exception as e:
            logger.exception(f"Exception {e}")
            raise

    def _bulk(
        self,
        index: str,
        actions: t.Iterable[t.Union[bytes, str, t.Dict[str, t.Any]]],
        chunk_size: int,
        max_chunk_bytes: int,
        queue_size: int,
        thread_count: int,
        refresh: bool,
        max_retries: int,
        initial_backoff: float,
        max_backoff: float,
        raise_on_exception: bool,
        raise_on_error: bool,
    ) -> int:
        """Bulk index docs to Elasticsearch/OpenSearch."""
        succeeded: int = 0
        if settings.ELASTICSEARCH_STREAMING_BULK:
            for ok, _ in self.streaming_bulk(
                self.__client,
                actions,
                index=index,
                chunk_size=chunk_size,
                max_chunk_bytes=max_chunk_bytes,
                max_retries=max_retries,
                max_backoff=max_backoff,
                initial_backoff=initial_backoff,
                refresh=refresh,
                raise_on_exception=raise_on_exception,
                raise_on_error=raise_on_error,
            ):
                if ok:
                    succeeded += 1
        else:
            # parallel bulk consumes more memory and is also more likely
            # to result in 429 errors.
            for ok, _ in self.parallel_bulk(
                self.__client,
                actions,
                index=index,
                thread_count=thread_count,
                chunk_size=chunk_size,
                max_chunk_bytes=max_chunk_bytes,
                queue_size=queue_size,
                refresh=refresh,
                raise_on_exception=raise_on_exception,
                raise_on_error=raise_on_error,
            ):
                if ok:
                    succeeded += 1
        self.doc_count += succeeded
        return succeeded


def get_meilisearch_client(url: str) -> meilisearch_python_sdk.Client:
    """Returns a Meilisearch client for the url."""
    return meilisearch_python_sdk.Client(
        url,
        settings.MEILISEARCH_API_KEY,
        timeout=settings.MEILISEARCH_TIMEOUT,
    )


def get_search_client(
    url: str,
    client: t.Union[opensearchpy.OpenSearch, elasticsearch.Elasticsearch],
    connection_class: t.Optional[opensearchpy.RequestsHttpConnection] = None,
    node_class: t.Optional[elastic_transport.RequestsHttpNode] = None,
) -> t.Union[opensearchpy.OpenSearch, elasticsearch.Elasticsearch]:
    """
    Returns a search client based on the specified parameters.

    Args:
        url (str): The URL of the search client.
        client (Union[opensearchpy.OpenSearch, elasticsearch.Elasticsearch]): The search client to use.
        connection_class (opensearchpy.RequestsHttpConnection): The connection class to use.
        node_class (elastic_transport.RequestsHttpNode): The node class to use.

    Returns:
        Union[opensearchpy.OpenSearch, elasticsearch.Elasticsearch]: The search client.
    """
    if settings.OPENSEARCH_AWS_HOSTED or settings.ELASTICSEARCH_AWS_HOSTED:
        credentials = boto3.Session().get_credentials()
        service: str = "aoss" if settings.OPENSEARCH_AWS_SERVERLESS else "es"
        http_auth: AWS4Auth = AWS4Auth(
            credentials.access_key,
            credentials.secret_key,
            settings.ELASTICSEARCH_AWS_REGION,
            service,
            session_token=credentials.token,
        )
        if settings.OPENSEARCH:
            return client(
                hosts=[url],
                http_auth=http_auth,
                use_ssl=True,
                verify_certs=True,
                connection_class=connection_class,
            )
        return client(
            hosts=[url],
            http_auth=http_auth,
            use_ssl=True,
            verify_certs=True,
            node_class=node_class,
        )

    api_key: t.Optional[t.Tuple[str, str]] = None
    if settings.ELASTICSEARCH_API_KEY_ID and settings.ELASTICSEARCH_API_KEY:
        api_key = (
            settings.ELASTICSEARCH_API_KEY_ID,
            settings.ELASTICSEARCH_API_KEY,
        )
    return client(
        hosts=[url],
        http_auth=settings.ELASTICSEARCH_HTTP_AUTH,
        cloud_id=settings.ELASTICSEARCH_CLOUD_ID,
        api_key=api_key,
        basic_auth=settings.ELASTICSEARCH_BASIC_AUTH,
        bearer_auth=settings.ELASTICSEARCH_BEARER_AUTH,
        opaque_id=settings.ELASTICSEARCH_OPAQUE_ID,
        http_compress=settings.ELASTICSEARCH_HTTP_COMPRESS,
        verify_certs=settings.ELASTICSEARCH_VERIFY_CERTS,
        ca_certs=settings.ELASTICSEARCH_CA_CERTS,
        client_cert=settings.ELASTICSEARCH_CLIENT_CERT,
        client_key=settings.ELASTICSEARCH_CLIENT_KEY,
        ssl_assert_hostname=settings.ELASTICSEARCH_SSL_ASSERT_HOSTNAME,
        ssl_assert_fingerprint=settings.ELASTICSEARCH_SSL_ASSERT_FINGERPRINT,
        ssl_version=settings.ELASTICSEARCH_SSL_VERSION,
        ssl_context=settings.ELASTICSEARCH_SSL_CONTEXT,
        ssl_show_warn=settings.ELASTICSEARCH_SSL_SHOW_WARN,
        timeout=settings.ELASTICSEARCH_TIMEOUT,
    )
