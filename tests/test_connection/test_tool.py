"""Connection 与 ElasticsearchConnection 单元测试."""

import unittest
from unittest.mock import MagicMock, patch

from elasticsearch import BadRequestError, Elasticsearch, NotFoundError
from elasticsearch.exceptions import ConnectionError as ESConnectionError

from elasticcriteria.connection import (
    ClusterConfig,
    ConnectionConfig,
    ElasticsearchConnection,
    ResponseError,
    TransportError,
    index_path,
)

ES_PATCH_PATH = "elasticcriteria.connection.tool.Elasticsearch"


class TestIndexPath(unittest.TestCase):
    """index_path 路径拼接测试."""

    def test_cluster_level(self):
        self.assertEqual(index_path(None, "_search"), "/_search")

    def test_single_index(self):
        self.assertEqual(index_path("products", "_search"), "/products/_search")

    def test_multiple_indices_and_wildcard(self):
        self.assertEqual(index_path(["logs-*", "events"], "_search"), "/logs-*,events/_search")

    def test_name_is_quoted(self):
        self.assertEqual(index_path("a b", "_bulk"), "/a%20b/_bulk")


class TestElasticsearchConnection(unittest.TestCase):
    """ElasticsearchConnection 单元测试."""

    def setUp(self):
        self.client = MagicMock(spec=Elasticsearch)
        self.client.perform_request.return_value = MagicMock(body={"acknowledged": True})
        self.connection = ElasticsearchConnection(client=self.client)

    def test_requires_config_or_client(self):
        with self.assertRaises(ValueError):
            ElasticsearchConnection()

    @patch(ES_PATCH_PATH)
    def test_create_client_from_config(self, mock_es):
        cluster = ClusterConfig(
            hosts=("https://es:9200",),
            username="elastic",
            password="changeme",
            ca_certs="/etc/ca.pem",
        )
        connection = ElasticsearchConnection(cluster, ConnectionConfig(request_timeout=5))

        kwargs = mock_es.call_args.kwargs
        self.assertEqual(kwargs["hosts"], ["https://es:9200"])
        self.assertEqual(kwargs["basic_auth"], ("elastic", "changeme"))
        self.assertEqual(kwargs["request_timeout"], 5)
        self.assertEqual(kwargs["max_retries"], 0)
        self.assertEqual(kwargs["ca_certs"], "/etc/ca.pem")
        self.assertIs(connection.client, mock_es.return_value)

    @patch(ES_PATCH_PATH)
    def test_create_client_with_api_key(self, mock_es):
        ElasticsearchConnection(ClusterConfig(hosts=("http://es:9200",), api_key="key"))
        kwargs = mock_es.call_args.kwargs
        self.assertEqual(kwargs["api_key"], "key")
        self.assertNotIn("basic_auth", kwargs)

    def test_search_request(self):
        self.connection.search("products", {"query": {"match_all": {}}}, {"routing": "u1"})

        self.client.perform_request.assert_called_once_with(
            "POST",
            "/products/_search",
            params={"routing": "u1"},
            headers={"accept": "application/json", "content-type": "application/json"},
            body={"query": {"match_all": {}}},
        )

    def test_bulk_uses_ndjson(self):
        lines = [{"index": {"_index": "products", "_id": "1"}}, {"name": "a"}]
        self.connection.bulk(lines)

        args, kwargs = self.client.perform_request.call_args
        self.assertEqual(args, ("POST", "/_bulk"))
        self.assertEqual(kwargs["headers"]["content-type"], "application/x-ndjson")
        self.assertEqual(kwargs["body"], lines)

    def test_scroll_and_clear_scroll(self):
        self.connection.scroll("token-1", "1m")
        self.connection.clear_scroll("token-2")

        calls = self.client.perform_request.call_args_list
        self.assertEqual(calls[0].args, ("POST", "/_search/scroll"))
        self.assertEqual(calls[0].kwargs["body"], {"scroll": "1m", "scroll_id": "token-1"})
        self.assertEqual(calls[1].args, ("DELETE", "/_search/scroll"))
        self.assertEqual(calls[1].kwargs["body"], {"scroll_id": ["token-2"]})

    def test_request_without_body_has_no_content_type(self):
        self.connection.refresh("products")

        kwargs = self.client.perform_request.call_args.kwargs
        self.assertEqual(kwargs["headers"], {"accept": "application/json"})
        self.assertIsNone(kwargs["body"])

    def test_returns_response_body(self):
        self.client.perform_request.return_value = MagicMock(body={"version": {"number": "8.15.0"}})
        self.assertEqual(self.connection.version(), "8.15.0")

    def test_api_error_maps_to_response_error(self):
        body = {"error": {"type": "parsing_exception"}, "status": 400}
        self.client.perform_request.side_effect = BadRequestError(
            "parsing_exception", meta=MagicMock(status=400), body=body
        )

        with self.assertRaises(ResponseError) as ctx:
            self.connection.search("products", {"query": {"bad": {}}})

        self.assertEqual(ctx.exception.status, 400)
        self.assertEqual(ctx.exception.body, body)
        self.assertTrue(str(ctx.exception).startswith("[400]"))

    def test_not_found_maps_to_response_error(self):
        self.client.perform_request.side_effect = NotFoundError(
            "index_not_found_exception", meta=MagicMock(status=404), body={}
        )
        with self.assertRaises(ResponseError) as ctx:
            self.connection.search("missing", {})
        self.assertEqual(ctx.exception.status, 404)

    def test_connection_error_maps_to_transport_error(self):
        self.client.perform_request.side_effect = ESConnectionError("unreachable")

        with self.assertRaises(TransportError):
            self.connection.search("products", {})

    def test_context_manager_closes_client(self):
        with ElasticsearchConnection(client=self.client) as connection:
            self.assertIs(connection.client, self.client)
        self.client.close.assert_called_once()
