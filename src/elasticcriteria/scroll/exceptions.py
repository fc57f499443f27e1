"""滚动游标异常定义模块."""

from elasticcriteria.exceptions import UsageError


class ScrollExhaustedError(UsageError):
    """在已耗尽或已释放的游标上继续获取时抛出."""

    pass
