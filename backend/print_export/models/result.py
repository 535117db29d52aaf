"""
导出结果模型 - 定义导出状态、逐页结果与生命周期

包含：
- ExportStatus: 导出整体状态
- PageKind/PageStatus/ConversionTier/FaultKind: 逐页结果分类
- PageOutcome: 单页结果（成功/经恢复/失败）
- ExportResult: 导出结果（文件路径或内存字节 + 实际页数）
"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field


class ExportStatus(str, Enum):
    """导出状态"""
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    PARTIAL = "partial"       # 部分页面失败
    FAILED = "failed"
    CANCELLED = "cancelled"


class PageKind(str, Enum):
    """输出页类型"""
    CONTENT = "content"
    EFFECT = "effect"
    REFERENCE = "reference"


class PageStatus(str, Enum):
    """单页状态"""
    SUCCEEDED = "succeeded"
    RECOVERED = "recovered"   # 经恢复链转换成功
    FAILED = "failed"


class ConversionTier(str, Enum):
    """转换层级（按顺序尝试）"""
    PRIMARY = "primary"
    STRIP_IMAGES = "tier_a"
    STRIP_COMPLEX = "tier_b"
    RASTERIZE = "tier_c"


class FaultKind(str, Enum):
    """页面故障分类"""
    CONVERSION = "conversion"
    RESOURCE = "resource"
    VECTORIZATION = "vectorization"
    TRANSACTION = "transaction"
    PREPARATION = "preparation"


class PageOutcome(BaseModel):
    """单页导出结果"""
    source_index: int = Field(..., description="来源页序号（参考页为-1）")
    page_id: str
    kind: PageKind = PageKind.CONTENT
    label: str = ""
    status: PageStatus
    tier: ConversionTier | None = None
    fault: FaultKind | None = None
    error: str | None = None


class ExportProgress(BaseModel):
    """导出进度"""
    stage: str = "INIT"
    percent: int = 0
    message: str = ""


class ExportResult(BaseModel):
    """导出结果"""
    export_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    file_name: str

    status: ExportStatus = ExportStatus.PENDING
    progress: ExportProgress = Field(default_factory=ExportProgress)

    pages: list[PageOutcome] = Field(default_factory=list)
    page_count: int = Field(default=0, description="实际输出页数")
    output_path: Path | None = None
    data: bytes | None = Field(default=None, exclude=True)

    flags: list[str] = Field(default_factory=list, description="告警标记")
    errors: list[str] = Field(default_factory=list, description="错误信息")

    created_at: datetime = Field(default_factory=datetime.now)
    started_at: datetime | None = None
    finished_at: datetime | None = None

    model_config = {"arbitrary_types_allowed": True}

    @property
    def succeeded_pages(self) -> list[PageOutcome]:
        return [p for p in self.pages if p.status == PageStatus.SUCCEEDED]

    @property
    def recovered_pages(self) -> list[PageOutcome]:
        return [p for p in self.pages if p.status == PageStatus.RECOVERED]

    @property
    def failed_pages(self) -> list[PageOutcome]:
        return [p for p in self.pages if p.status == PageStatus.FAILED]

    def mark_running(self, stage: str = "PRECHECK") -> None:
        """标记为运行中"""
        self.status = ExportStatus.RUNNING
        self.started_at = datetime.now()
        self.progress.stage = stage

    def mark_finished(self) -> None:
        """按逐页结果标记完成状态"""
        self.finished_at = datetime.now()
        self.progress.percent = 100
        if self.page_count == 0:
            self.status = ExportStatus.FAILED
        elif self.failed_pages:
            self.status = ExportStatus.PARTIAL
        else:
            self.status = ExportStatus.SUCCEEDED

    def mark_failed(self, error: str) -> None:
        """标记为失败"""
        self.status = ExportStatus.FAILED
        self.finished_at = datetime.now()
        self.errors.append(error)

    def mark_cancelled(self, reason: str) -> None:
        """标记为取消"""
        self.status = ExportStatus.CANCELLED
        self.finished_at = datetime.now()
        self.errors.append(reason)

    def add_flag(self, flag: str) -> None:
        """添加告警标记（不中断）"""
        if flag not in self.flags:
            self.flags.append(flag)

    def record(self, outcome: PageOutcome) -> None:
        """记录单页结果"""
        self.pages.append(outcome)
        if outcome.status != PageStatus.FAILED:
            self.page_count += 1
        elif outcome.error:
            self.errors.append(f"{outcome.label or outcome.page_id}: {outcome.error}")

    def summary(self) -> str:
        """结束时的单条汇总信息"""
        parts = [
            f"成功 {len(self.succeeded_pages)} 页",
            f"恢复 {len(self.recovered_pages)} 页",
            f"失败 {len(self.failed_pages)} 页",
        ]
        return "，".join(parts)
