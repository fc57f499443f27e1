"""批量写入使用示例.

本文件展示了如何使用 BulkBatcher 和 Index 导入、更新、删除文档。
"""

from elasticcriteria import (
    BulkBatcher,
    BulkConfig,
    ClusterConfig,
    ElasticsearchConnection,
    Index,
    ModelAdapter,
)

# 创建连接
connection = ElasticsearchConnection(ClusterConfig(hosts=("http://localhost:9200",)))


class UserAdapter(ModelAdapter):
    """基于内存列表的记录源."""

    def __init__(self, users):
        self.users = users

    def fetch_by_ids(self, ids):
        return [user for user in self.users if str(user["id"]) in ids]

    def iterate_all(self, batch_size):
        return iter(self.users)


USERS = [
    {"id": "1", "name": "张三", "age": 25, "city": "北京"},
    {"id": "2", "name": "李四", "age": 30, "city": "上海"},
    {"id": "3", "name": "王五", "age": 28, "city": "广州"},
]


# ==================== 示例1：手动分批 ====================
def example_batcher():
    """按数量阈值自动分批，退出上下文时发送剩余操作."""
    with BulkBatcher(connection, "users", BulkConfig(max_count=2)) as batcher:
        for user in USERS:
            batcher.index(user["id"], user)
        batcher.update("1", {"city": "杭州"}, retry_on_conflict=3)
        batcher.delete("3")

    result = batcher.result
    print(f"批量结果: 成功={result.success}, 失败={result.failed}, 批次={result.batch_sizes}")
    if result.has_errors:
        print(result.get_error_summary())


# ==================== 示例2：全量导入 ====================
def example_import_all():
    """通过 ModelAdapter 导入全部记录并打印进度."""
    users = Index("users", connection, adapter=UserAdapter(USERS))

    def progress(batch_number, batch_size, result):
        print(f"批次 {batch_number}: {batch_size} 条，累计 {result.total}")

    result = users.import_all(batch_size=500, progress_callback=progress)
    users.refresh()
    print(f"导入完成: 成功={result.success}, 失败={result.failed}")

    records = users.where({"city": "北京"}).records()
    print(f"北京用户: {[record['name'] for record in records]}")


if __name__ == "__main__":
    example_batcher()
    example_import_all()
