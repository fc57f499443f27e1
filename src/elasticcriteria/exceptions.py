"""Elastic Criteria 异常定义模块."""


class ElasticCriteriaError(Exception):
    """Elastic Criteria 基础异常类."""

    pass


class UsageError(ElasticCriteriaError):
    """查询条件构建阶段的用法错误.

    在构建期（而非执行期）发现的非法输入，例如向 where 传入不支持的值类型、
    range 未提供任何边界、unscope 了未知的字段。不受 failsafe 模式影响。
    """

    pass
