"""
导出请求模型

包含：
- RenderMode: 渲染模式（默认/无边界/样机/信封）
- EnvelopeAnchor/EnvelopeOption: 信封模式的锚点与尺寸
- PrintSize: 明确的打印纸张尺寸
- OutputKind: 输出形态（文件/内存字节）
- ExportRequest: 导出请求
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field

from .page import PageDocument
from .scene import SceneObject


class RenderMode(str, Enum):
    """渲染模式"""
    DEFAULT = "default"
    NO_BOUNDARY = "no-boundary"
    MOCKUP = "mockup"
    ENVELOPE = "envelope"


class EnvelopeAnchor(str, Enum):
    """信封模式的放置锚点"""
    TOP = "top"         # 顶部居中
    LEFT = "left"       # 左侧居中
    CENTER = "center"   # 默认居中


class EnvelopeOption(BaseModel):
    """信封模式配置"""
    width_mm: float | None = None
    height_mm: float | None = None
    anchor: EnvelopeAnchor = EnvelopeAnchor.CENTER

    @property
    def has_size(self) -> bool:
        return bool(self.width_mm and self.height_mm)


class PrintSize(BaseModel):
    """打印纸张尺寸（mm）"""
    width_mm: float = Field(..., gt=0)
    height_mm: float = Field(..., gt=0)

    @classmethod
    def parse(cls, text: str) -> PrintSize:
        """解析 '210x297' 形式的尺寸"""
        w, _, h = text.lower().partition("x")
        return cls(width_mm=float(w), height_mm=float(h))


class OutputKind(str, Enum):
    """输出形态"""
    FILE = "file"
    BYTES = "bytes"


class ExportRequest(BaseModel):
    """导出请求"""
    pages: list[PageDocument] = Field(default_factory=list)
    file_name: str = "export"
    print_size: PrintSize | None = Field(default=None, description="为空时使用内容尺寸")
    dpi: int | None = Field(default=None, gt=0, description="为空时取配置 page.default_dpi")
    render_mode: RenderMode = RenderMode.DEFAULT
    envelope: EnvelopeOption | None = None
    reference_object: SceneObject | None = Field(default=None, description="末尾参考页（刀线）")

    output: OutputKind = OutputKind.BYTES
    output_dir: Path | None = None
    all_or_nothing: bool | None = Field(default=None, description="为空时取配置")

    model_config = {"arbitrary_types_allowed": True}
