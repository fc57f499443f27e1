"""记录源适配器模块.

ModelAdapter 是命中结果与业务记录之间的唯一接口：任何记录源（ORM、
内存列表、远程服务）都必须显式实现 fetch_by_ids 与 iterate_all.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from typing import Any


class ModelAdapter(ABC):
    """
    记录源适配器抽象基类.

    使用示例:
        class UserAdapter(ModelAdapter):
            def fetch_by_ids(self, ids):
                return User.objects.filter(id__in=ids)

            def iterate_all(self, batch_size):
                return User.objects.iterator(chunk_size=batch_size)
    """

    @abstractmethod
    def fetch_by_ids(self, ids: Sequence[str]) -> Iterable[Any]:
        """
        按 ID 获取记录.

        返回顺序不做要求，缺失的 ID 直接跳过.
        """

    @abstractmethod
    def iterate_all(self, batch_size: int) -> Iterable[Any]:
        """
        惰性遍历全部记录.

        Args:
            batch_size: 底层每次读取的记录数
        """

    def record_id(self, record: Any) -> str:
        """获取记录 ID，默认读取 id 属性或键."""
        if isinstance(record, dict):
            return str(record["id"])
        return str(record.id)

    def fetch_in_order(self, ids: Sequence[str]) -> list[Any]:
        """
        按给定 ID 的顺序返回记录.

        Args:
            ids: 文档 ID 列表（通常来自命中结果）

        Returns:
            与 ids 顺序一致的记录列表，缺失的记录被跳过
        """
        if not ids:
            return []
        by_id = {self.record_id(record): record for record in self.fetch_by_ids(ids)}
        return [by_id[str(doc_id)] for doc_id in ids if str(doc_id) in by_id]
