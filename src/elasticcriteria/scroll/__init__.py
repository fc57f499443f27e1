"""滚动游标模块."""

from elasticcriteria.scroll.exceptions import ScrollExhaustedError
from elasticcriteria.scroll.models import ScrollState
from elasticcriteria.scroll.tool import ScrollCursor

__all__ = ["ScrollCursor", "ScrollState", "ScrollExhaustedError"]
