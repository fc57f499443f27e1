"""滚动游标数据模型定义模块."""

from enum import Enum


class ScrollState(Enum):
    """滚动游标状态."""

    NOT_STARTED = "not_started"
    ACTIVE = "active"
    EXHAUSTED = "exhausted"
