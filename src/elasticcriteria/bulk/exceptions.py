"""批量操作异常定义模块."""

from elasticcriteria.exceptions import ElasticCriteriaError


class BulkOperationError(ElasticCriteriaError):
    """批量操作基础异常类."""

    pass


class BulkValidationError(BulkOperationError):
    """批量操作验证异常，在入队或配置时抛出."""

    pass
