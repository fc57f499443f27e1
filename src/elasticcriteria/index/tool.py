"""索引宿主模块.

Index 把索引名、连接、记录适配器组合在一起，作为创建 Criteria 与
导入记录的入口。宿主类型通过持有 Index 获得查询能力，而不是继承共享状态.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from elasticcriteria.builders import Criteria, SearchTarget
from elasticcriteria.bulk import BulkBatcher, BulkConfig, BulkResult
from elasticcriteria.connection import Connection
from elasticcriteria.exceptions import UsageError
from elasticcriteria.index.adapter import ModelAdapter
from elasticcriteria.parsers import ResultView
from elasticcriteria.translators import TranslatorCapabilities

logger = logging.getLogger(__name__)


class Index:
    """
    索引宿主.

    Args:
        name: 索引名
        connection: 连接
        adapter: 记录源适配器，records/import_all 等方法需要
        serializer: 把记录转换为文档的函数，默认要求记录本身是字典
        capabilities: 渲染能力开关
        bulk_config: 导入时使用的批量配置

    使用示例:
        products = Index("products", connection, adapter=ProductAdapter(), serializer=to_document)

        view = products.where({"state": "approved"}).sort("-created_at").execute()
        records = products.records_for(view)

        result = products.import_all(batch_size=500)
    """

    def __init__(
        self,
        name: str,
        connection: Connection,
        adapter: ModelAdapter | None = None,
        serializer: Callable[[Any], dict[str, Any]] | None = None,
        capabilities: TranslatorCapabilities | None = None,
        bulk_config: BulkConfig | None = None,
    ):
        if not name:
            raise UsageError("索引名不能为空")
        self.name = name
        self.connection = connection
        self.adapter = adapter
        self.serializer = serializer
        self.capabilities = capabilities
        self.bulk_config = bulk_config or BulkConfig()

    def criteria(self) -> Criteria:
        """创建绑定到本索引的空 Criteria."""
        return Criteria(
            target=SearchTarget(
                index=self.name,
                connection=self.connection,
                adapter=self.adapter,
                capabilities=self.capabilities,
            )
        )

    # ========== 查询快捷方法 ==========

    def where(self, fields: Mapping[str, Any]) -> Criteria:
        return self.criteria().where(fields)

    def search(self, query: str, **options: Any) -> Criteria:
        return self.criteria().search(query, **options)

    def match_all(self) -> Criteria:
        return self.criteria().match_all()

    def aggregate(self, name: str, definition: Mapping[str, Any] | None = None, **kwargs: Any) -> Criteria:
        return self.criteria().aggregate(name, definition, **kwargs)

    def records_for(self, view: ResultView) -> list[Any]:
        """把结果视图中的命中还原为业务记录，顺序与命中一致."""
        return self._require_adapter().fetch_in_order(view.ids)

    # ========== 写入 ==========

    def serialize(self, record: Any) -> dict[str, Any]:
        """把记录转换为索引文档."""
        if self.serializer is not None:
            return self.serializer(record)
        if isinstance(record, Mapping):
            return dict(record)
        raise UsageError(f"索引 {self.name} 未配置 serializer，无法序列化 {type(record).__name__}")

    def bulk(
        self,
        config: BulkConfig | None = None,
        progress_callback: Callable[[int, int, BulkResult], None] | None = None,
    ) -> BulkBatcher:
        """
        创建写入本索引的批处理器.

        使用示例:
            with products.bulk() as batcher:
                batcher.index("1", {"name": "phone"})
                batcher.delete("2")
        """
        return BulkBatcher(
            self.connection,
            self.name,
            config or self.bulk_config,
            progress_callback=progress_callback,
        )

    def import_records(
        self,
        records: Iterable[Any],
        config: BulkConfig | None = None,
        progress_callback: Callable[[int, int, BulkResult], None] | None = None,
    ) -> BulkResult:
        """
        索引给定的记录.

        Args:
            records: 记录迭代器，惰性消费
            config: 批量配置，默认使用 Index 的配置
            progress_callback: 每批次完成后的回调

        Returns:
            批量操作结果
        """
        adapter = self.adapter
        with self.bulk(config, progress_callback) as batcher:
            for record in records:
                document = self.serialize(record)
                doc_id = adapter.record_id(record) if adapter else document.get("id")
                batcher.index(doc_id, document)

        result = batcher.result
        logger.info(
            f"索引 {self.name} 导入完成: 总数 {result.total}, 成功 {result.success}, "
            f"失败 {result.failed}, 批次 {result.batch_count}"
        )
        return result

    def import_all(
        self,
        batch_size: int = 1000,
        progress_callback: Callable[[int, int, BulkResult], None] | None = None,
    ) -> BulkResult:
        """通过 ModelAdapter.iterate_all 导入全部记录."""
        adapter = self._require_adapter()
        return self.import_records(
            adapter.iterate_all(batch_size), progress_callback=progress_callback
        )

    def delete_records(self, records: Iterable[Any]) -> BulkResult:
        """
        从索引删除给定记录，文档不存在（404）视为成功.
        """
        adapter = self._require_adapter()
        config = BulkConfig(
            max_count=self.bulk_config.max_count,
            max_bytes=self.bulk_config.max_bytes,
            ignore_statuses=tuple({*self.bulk_config.ignore_statuses, 404}),
            refresh=self.bulk_config.refresh,
        )
        with self.bulk(config) as batcher:
            for record in records:
                batcher.delete(adapter.record_id(record))
        return batcher.result

    def refresh(self) -> dict[str, Any]:
        return self.connection.refresh(self.name)

    def _require_adapter(self) -> ModelAdapter:
        if self.adapter is None:
            raise UsageError(f"索引 {self.name} 未配置 ModelAdapter")
        return self.adapter

    def __repr__(self) -> str:
        return f"Index(name={self.name!r})"
