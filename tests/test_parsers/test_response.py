"""ResultView 单元测试."""

import pytest

from elasticcriteria.parsers import AggregationResult, Bucket, Hit, ResultView


@pytest.fixture
def response():
    return {
        "took": 12,
        "timed_out": False,
        "_scroll_id": "token-1",
        "hits": {
            "total": {"value": 45, "relation": "eq"},
            "max_score": 2.5,
            "hits": [
                {
                    "_index": "products",
                    "_id": "1",
                    "_score": 2.5,
                    "_source": {"name": "phone"},
                    "highlight": {"name": ["<em>phone</em>"]},
                },
                {"_index": "products", "_id": "2", "_score": 1.0, "_source": {"name": "tablet"}},
            ],
        },
        "aggregations": {
            "by_brand": {
                "buckets": [
                    {"key": "apple", "doc_count": 10, "avg_price": {"value": 899.5}},
                    {"key": "xiaomi", "doc_count": 5, "avg_price": {"value": 299.0}},
                ]
            },
            "price_ranges": {
                "buckets": {
                    "cheap": {"to": 100, "doc_count": 3},
                    "expensive": {"from": 100, "doc_count": 7},
                }
            },
            "in_stock": {"doc_count": 30, "colors": {"buckets": [{"key": "red", "doc_count": 4}]}},
            "price_stats": {"count": 45, "min": 1.0, "max": 999.0, "avg": 120.0, "sum": 5400.0},
        },
        "suggest": {
            "title_suggest": [
                {"text": "phnoe", "options": [{"text": "phone", "score": 0.8, "freq": 12}]}
            ]
        },
    }


class TestResultView:
    def test_hits(self, response):
        view = ResultView(response, offset=10, limit=10)

        assert len(view) == 2
        assert view.ids == ["1", "2"]
        assert view.results == [{"name": "phone"}, {"name": "tablet"}]
        assert isinstance(view.hits[0], Hit)
        assert view.hits[0].get_highlight("name") == "<em>phone</em>"
        assert view.hits[1].get_highlight("name", "none") == "none"
        assert [hit.doc_id for hit in view] == ["1", "2"]

    def test_metadata(self, response):
        view = ResultView(response)
        assert view.total_entries == 45
        assert view.took == 12
        assert view.timed_out is False
        assert view.max_score == 2.5
        assert view.scroll_id == "token-1"
        assert view.raw is response

    def test_legacy_integer_total(self):
        assert ResultView({"hits": {"total": 7, "hits": []}}).total_entries == 7

    def test_pagination(self, response):
        view = ResultView(response, offset=10, limit=10)
        assert view.current_page == 2
        assert view.total_pages == 5
        assert view.previous_page == 1
        assert view.next_page == 3
        assert view.per_page == 10

    def test_first_and_last_page(self, response):
        assert ResultView(response, offset=0, limit=10).previous_page is None
        assert ResultView(response, offset=40, limit=10).next_page is None

    def test_zero_limit(self, response):
        view = ResultView(response, offset=0, limit=0)
        assert view.current_page == 1
        assert view.total_pages == 0

    def test_terms_buckets_and_sub_aggregation(self, response):
        by_brand = ResultView(response).aggregation("by_brand")

        assert isinstance(by_brand, AggregationResult)
        assert [bucket.key for bucket in by_brand.buckets] == ["apple", "xiaomi"]
        assert by_brand.bucket("xiaomi").doc_count == 5
        assert by_brand.bucket("apple").aggregation("avg_price").value == 899.5
        assert by_brand.bucket("samsung") is None

    def test_keyed_buckets(self, response):
        buckets = ResultView(response).aggregation("price_ranges").buckets
        assert [(b.key, b.doc_count) for b in buckets] == [("cheap", 3), ("expensive", 7)]
        assert isinstance(buckets[0], Bucket)

    def test_single_bucket_aggregation(self, response):
        in_stock = ResultView(response).aggregation("in_stock")
        assert in_stock.doc_count == 30
        assert in_stock.aggregation("colors").buckets[0].key == "red"

    def test_stats(self, response):
        stats = ResultView(response).aggregation("price_stats").stats()
        assert stats.count == 45
        assert stats.max == 999.0
        assert stats.std_deviation is None

    def test_missing_aggregation(self, response):
        view = ResultView(response)
        assert view.aggregation("unknown") is None
        assert set(view.aggregations) == {"by_brand", "price_ranges", "in_stock", "price_stats"}

    def test_suggestions(self, response):
        items = ResultView(response).suggestions("title_suggest")
        assert [(item.text, item.score, item.freq) for item in items] == [("phone", 0.8, 12)]
        assert ResultView(response).suggestions("other") == []

    def test_empty(self):
        view = ResultView.empty(offset=20, limit=10)
        assert len(view) == 0
        assert view.total_entries == 0
        assert view.hits == []
        assert view.aggregation("x") is None
        assert view.current_page == 3

    def test_unsupported_response_type(self):
        with pytest.raises(TypeError):
            ResultView(["not", "a", "dict"])
