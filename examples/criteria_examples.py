"""Criteria 使用示例.

展示链式构建查询、嵌套聚合、post_filter 以及渲染后的 DSL。
渲染部分不需要连接集群，执行部分需要本地 ES 节点。
"""

import json

from elasticcriteria import (
    ClusterConfig,
    Criteria,
    ElasticsearchConnection,
    Index,
    TranslatorCapabilities,
)


def print_dsl(title: str, criteria: Criteria) -> None:
    """打印渲染后的 DSL."""
    print(f"\n{'=' * 60}")
    print(title)
    print("=" * 60)
    print(json.dumps(criteria.to_dict(), indent=2, ensure_ascii=False))


# ==================== 示例1：结构化过滤 ====================
def example_where():
    """标量、列表、区间与 None 对应不同的子句."""
    criteria = (
        Criteria()
        .where({"state": "approved", "tags": ["sale", "new"], "price": {"gte": 10, "lt": 100}})
        .where_not({"deleted_at": None})
        .search("title:phone OR title:tablet")
    )
    print_dsl("结构化过滤 + Query String", criteria)


# ==================== 示例2：嵌套聚合 ====================
def example_nested_aggregations():
    """按品牌分组，组内再统计平均价格与颜色分布."""
    criteria = Criteria().aggregate(
        "by_brand",
        {"terms": {"field": "brand", "size": 10}},
        builder=lambda agg: agg.aggregate("avg_price", {"avg": {"field": "price"}}).aggregate(
            "colors", size=5
        ),
    )
    print_dsl("嵌套聚合", criteria)


# ==================== 示例3：子聚合排序的两种渲染 ====================
def example_bucket_sort():
    """同一个 Criteria 按不同的能力开关渲染."""
    criteria = Criteria().aggregate(
        "brand",
        order={"avg_price": "desc"},
        builder=lambda agg: agg.aggregate("avg_price", {"avg": {"field": "price"}}),
    )
    print_dsl("内联 order", criteria)

    from elasticcriteria import QueryTranslator

    translator = QueryTranslator(TranslatorCapabilities(bucket_sort_ordering=True))
    print(json.dumps(translator.render(criteria), indent=2))


# ==================== 示例4：post_filter ====================
def example_post_filter():
    """颜色筛选只作用于命中列表，颜色聚合仍统计全部颜色."""
    criteria = Criteria().where({"category": "shoes"}).aggregate("color").post_where({"color": "red"})
    print_dsl("post_filter", criteria)


# ==================== 示例5：合并与 unscope ====================
def example_merge():
    """合并两个 Criteria，再去掉 Query String."""
    base = Criteria().where({"state": "approved"}).sort("-created_at")
    extra = Criteria().where({"in_stock": True}).search("phone").page(2)
    print_dsl("merge + unscope", base.merge(extra).unscope("search"))


# ==================== 示例6：执行 ====================
def example_execute():
    """在本地 ES 上执行查询并遍历结果."""
    connection = ElasticsearchConnection(ClusterConfig(hosts=("http://localhost:9200",)))
    products = Index("products", connection)

    view = products.where({"state": "approved"}).aggregate("brand").failsafe().execute()
    print(f"共 {view.total_entries} 条，第 {view.current_page}/{view.total_pages} 页")
    brand = view.aggregation("brand")
    for bucket in brand.buckets if brand else []:
        print(f"  {bucket.key}: {bucket.doc_count}")

    for document in products.match_all().find_each_result(batch_size=500):
        print(document)


if __name__ == "__main__":
    example_where()
    example_nested_aggregations()
    example_bucket_sort()
    example_post_filter()
    example_merge()
