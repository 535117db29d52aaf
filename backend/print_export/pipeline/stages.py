"""
导出阶段定义

职责：
1. 定义导出各阶段的名称与进度区间
2. 定义阶段钩子（显式有序的异步回调列表）
3. 定义生命周期事件名

测试要点：
- test_stage_progress_ranges: 进度区间连续
- test_phase_hooks_order: 钩子按注册顺序执行
- test_phase_hooks_filter: 只执行对应阶段的钩子
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Awaitable, Callable

if TYPE_CHECKING:
    from ..models import ExportRequest, ExportResult, PageDocument


class ExportStage(str, Enum):
    """导出阶段枚举"""
    PRECHECK = "PRECHECK"
    PAGES = "PAGES"
    REFERENCE = "REFERENCE"
    FINALIZE = "FINALIZE"


@dataclass
class PipelineStage:
    """导出阶段"""
    name: str
    progress_start: int  # 进度起点（0-100）
    progress_end: int    # 进度终点

    def progress_at(self, fraction: float) -> int:
        """阶段内进度换算为整体进度"""
        fraction = min(max(fraction, 0.0), 1.0)
        return int(self.progress_start + (self.progress_end - self.progress_start) * fraction)


EXPORT_STAGES: list[PipelineStage] = [
    PipelineStage(ExportStage.PRECHECK.value, 0, 5),
    PipelineStage(ExportStage.PAGES.value, 5, 90),
    PipelineStage(ExportStage.REFERENCE.value, 90, 95),
    PipelineStage(ExportStage.FINALIZE.value, 95, 100),
]

STAGES_BY_NAME: dict[str, PipelineStage] = {stage.name: stage for stage in EXPORT_STAGES}


class ExportPhase(str, Enum):
    """钩子执行时机"""
    BEFORE_EXPORT = "before_export"
    BEFORE_PAGE = "before_page"
    PAGE_PREPARED = "page_prepared"
    PAGE_RESTORED = "page_restored"
    AFTER_EXPORT = "after_export"


class ExportEvent(str, Enum):
    """生命周期事件"""
    START = "export:start"
    PAGE_COMPLETE = "export:page-complete"
    END = "export:end"


@dataclass
class PhaseContext:
    """钩子上下文"""
    phase: ExportPhase
    request: ExportRequest
    result: ExportResult
    page: PageDocument | None = None
    page_index: int | None = None


PhaseHandler = Callable[[PhaseContext], Awaitable[None]]


@dataclass
class PhaseHook:
    """阶段钩子"""
    phase: ExportPhase
    handler: PhaseHandler
    name: str = ""


async def run_phase_hooks(hooks: list[PhaseHook], context: PhaseContext) -> None:
    """按注册顺序执行当前阶段的钩子"""
    for hook in hooks:
        if hook.phase == context.phase:
            await hook.handler(context)
