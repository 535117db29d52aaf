"""
页面快照事务 - 导出前快照，导出后无论成败都回放快照

职责：
1. begin: 序列化整页（对象、裁切、背景）为不透明快照
2. commit_or_restore: 回放快照到活动页面（finally 位置调用）
3. 回放失败：记录异常并强制清空页面，不留下半变换状态

测试要点：
- test_restore_after_mutation: 变换后恢复为原图
- test_restore_on_exception: 异常时也恢复
- test_restore_failure_forces_clear: 恢复失败时强制清空
- test_double_begin_rejected: 重复begin报错
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..interfaces import ISceneEngine, TransactionError
from ..models import PageDocument

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PageSnapshot:
    """页面快照（恢复的唯一依据）"""
    page_id: str
    payload: str

    @classmethod
    def capture(cls, engine: ISceneEngine, page: PageDocument) -> PageSnapshot:
        state = page.model_copy(update={"objects": list(engine.get_page_objects(page))})
        return cls(page_id=page.page_id, payload=state.model_dump_json())

    def replay(self) -> PageDocument:
        return PageDocument.model_validate_json(self.payload)


class PageTransaction:
    """页面快照事务"""

    def __init__(self, engine: ISceneEngine, page: PageDocument):
        self.engine = engine
        self.page = page
        self.snapshot: PageSnapshot | None = None
        self.restored: bool | None = None

    def begin(self) -> PageSnapshot:
        """开始事务（取快照）"""
        if self.snapshot is not None:
            raise TransactionError(f"事务已开始: {self.page.page_id}")
        self.snapshot = PageSnapshot.capture(self.engine, self.page)
        return self.snapshot

    def commit_or_restore(self) -> bool:
        """
        回放快照到活动页面

        Returns:
            是否恢复成功（False 表示已降级为强制清空）
        """
        if self.snapshot is None:
            raise TransactionError(f"事务未开始: {self.page.page_id}")
        try:
            original = self.snapshot.replay()
            self.engine.set_page_objects(self.page, original.objects)
            self.page.clip_id = original.clip_id
            self.page.background = original.background
            self.restored = True
        except Exception:
            logger.exception(f"页面恢复失败，强制清空: {self.page.page_id}")
            self._force_clear()
            self.restored = False
        return self.restored

    def _force_clear(self) -> None:
        try:
            self.engine.clear_page(self.page)
        except Exception:
            logger.exception(f"页面强制清空失败: {self.page.page_id}")

    def __enter__(self) -> PageTransaction:
        self.begin()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.commit_or_restore()
        return False
