"""滚动游标工具模块."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from elasticcriteria.connection.exceptions import ExecutionError
from elasticcriteria.exceptions import UsageError
from elasticcriteria.parsers import ResultView
from elasticcriteria.scroll.exceptions import ScrollExhaustedError
from elasticcriteria.scroll.models import ScrollState

if TYPE_CHECKING:
    from elasticcriteria.builders.criteria import Criteria

logger = logging.getLogger(__name__)


class ScrollCursor:
    """
    服务端滚动游标.

    状态迁移: NOT_STARTED -> ACTIVE -> EXHAUSTED。
    第一次获取用渲染后的查询打开游标，之后只发送令牌与超时；
    获取到零条命中时进入 EXHAUSTED 并释放服务端游标。
    迭代过程中出现任何异常也会释放游标。

    游标令牌是有状态的，同一个游标不能被多个调用方并发使用。

    Args:
        criteria: 查询条件，其分页设置会被忽略
        batch_size: 每批获取的文档数
        timeout: 服务端保持游标的时长

    使用示例:
        with criteria.scroll_cursor(batch_size=500) as cursor:
            for view in cursor:
                handle(view.results)
    """

    def __init__(self, criteria: Criteria, batch_size: int = 1000, timeout: str = "1m"):
        if batch_size < 1:
            raise UsageError(f"batch_size 必须 >= 1，当前值: {batch_size}")
        self.criteria = criteria.unscope("paginate").limit(batch_size)
        self.batch_size = batch_size
        self.timeout = timeout
        self.state = ScrollState.NOT_STARTED
        self.token: str | None = None
        self._released = False

    @property
    def exhausted(self) -> bool:
        return self.state is ScrollState.EXHAUSTED

    def fetch(self) -> ResultView:
        """
        获取下一批结果.

        Returns:
            本批次的结果视图；命中数为零表示已耗尽

        Raises:
            ScrollExhaustedError: 游标已耗尽或已释放
            TransportError: 连接失败（仅打开游标时受 failsafe 保护）
            ResponseError: 服务端拒绝请求
        """
        if self.exhausted or self._released:
            raise ScrollExhaustedError("滚动游标已耗尽或已释放，请重新创建游标")

        try:
            if self.state is ScrollState.NOT_STARTED:
                view = self._open()
            else:
                view = self._continue()
        except Exception:
            self.release()
            raise

        if view.scroll_id:
            self.token = view.scroll_id

        if len(view) == 0:
            logger.info(f"滚动游标已耗尽: token={self.token}")
            self.state = ScrollState.EXHAUSTED
            self.release()
        else:
            self.state = ScrollState.ACTIVE
        return view

    def _open(self) -> ResultView:
        view = self.criteria.scroll(timeout=self.timeout).execute()
        logger.info(
            f"打开滚动游标: batch_size={self.batch_size}, timeout={self.timeout}, "
            f"total={view.total_entries}"
        )
        return view

    def _continue(self) -> ResultView:
        connection = self.criteria._require_target().connection
        response = connection.scroll(self.token, self.timeout)
        return ResultView(response, offset=0, limit=self.batch_size)

    def release(self) -> None:
        """释放服务端游标，重复调用无副作用."""
        if self._released:
            return
        self._released = True
        if not self.token:
            return
        connection = self.criteria._require_target().connection
        try:
            connection.clear_scroll(self.token)
        except ExecutionError as e:
            logger.warning(f"释放滚动游标失败: token={self.token}, error={e}")

    def __iter__(self) -> ScrollCursor:
        return self

    def __next__(self) -> ResultView:
        if self.exhausted or self._released:
            raise StopIteration
        view = self.fetch()
        if len(view) == 0:
            raise StopIteration
        return view

    def __enter__(self) -> ScrollCursor:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()
