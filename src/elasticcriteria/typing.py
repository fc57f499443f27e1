"""Elastic Criteria 类型定义模块."""

from typing import Any, Dict, List, Union

from elasticsearch.dsl.query import Query

# 单个查询子句，如 {"term": {"state": "approved"}}
Clause = Dict[str, Any]

# 可被接受的子句输入：原始字典或 elasticsearch.dsl 的 Query 对象（Q(...) 的返回值）
ClauseLike = Union[Clause, Query]

# 渲染后的查询文档
QueryDocument = Dict[str, Any]

# 排序规格，如 "name" 或 {"created_at": "desc"}
SortSpec = Union[str, Dict[str, Any]]

# 批量请求（bulk / msearch）的 NDJSON 行
BulkLines = List[Dict[str, Any]]
