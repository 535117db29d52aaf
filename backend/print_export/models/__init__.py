"""
数据模型层 - 定义系统核心数据结构

所有模块通过这些模型交互，实现解耦：
- SceneObject/TextRun: 可编辑场景节点与文字样式段
- PageDocument/PageGeometry/VectorDocument: 页面、几何与中间矢量文档
- ExportRequest: 导出请求
- ExportResult/PageOutcome: 导出结果与逐页结果
"""

from .page import Orientation, PageDocument, PageGeometry, Unit, VectorDocument
from .request import (
    EnvelopeAnchor,
    EnvelopeOption,
    ExportRequest,
    OutputKind,
    PrintSize,
    RenderMode,
)
from .result import (
    ConversionTier,
    ExportProgress,
    ExportResult,
    ExportStatus,
    FaultKind,
    PageKind,
    PageOutcome,
    PageStatus,
)
from .scene import (
    EffectKind,
    ObjectKind,
    ObjectRole,
    Paint,
    SceneObject,
    TextRun,
    Transform,
    iter_objects,
    parse_font_weight,
)

__all__ = [
    "SceneObject",
    "TextRun",
    "Transform",
    "Paint",
    "ObjectKind",
    "ObjectRole",
    "EffectKind",
    "iter_objects",
    "parse_font_weight",
    "PageDocument",
    "PageGeometry",
    "VectorDocument",
    "Unit",
    "Orientation",
    "ExportRequest",
    "RenderMode",
    "EnvelopeAnchor",
    "EnvelopeOption",
    "PrintSize",
    "OutputKind",
    "ExportResult",
    "ExportStatus",
    "ExportProgress",
    "PageOutcome",
    "PageKind",
    "PageStatus",
    "ConversionTier",
    "FaultKind",
]
