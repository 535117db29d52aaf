"""
页面模型 - 页面文档、几何结果与中间矢量文档

对应：
- PageDocument: 有序场景节点 + 内容尺寸与单位
- PageGeometry: 几何解析结果（物理单位mm）
- VectorDocument: 序列化后的中间SVG文档
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from .scene import ObjectRole, SceneObject, iter_objects


class Unit(str, Enum):
    """内容尺寸单位"""
    PX = "px"   # 设备像素（需DPI换算）
    MM = "mm"   # 物理毫米


class Orientation(str, Enum):
    """页面方向"""
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"


class PageDocument(BaseModel):
    """页面文档"""
    page_id: str = Field(..., description="页面标识")
    objects: list[SceneObject] = Field(default_factory=list)
    width: float = Field(..., description="内容宽度（按unit）")
    height: float = Field(..., description="内容高度（按unit）")
    unit: Unit = Unit.PX
    clip_id: str | None = Field(default=None, description="页面级裁切参照节点id")
    background: str | None = Field(default=None, description="页面背景色")

    def find(self, object_id: str) -> SceneObject | None:
        """按id查找节点（含嵌套）"""
        for obj in iter_objects(self.objects):
            if obj.id == object_id:
                return obj
        return None

    def find_role(self, role: ObjectRole) -> SceneObject | None:
        """查找首个指定角色的顶层节点"""
        for obj in self.objects:
            if obj.role == role:
                return obj
        return None

    def text_objects(self) -> list[SceneObject]:
        """全部文字节点（含组内）"""
        return [obj for obj in iter_objects(self.objects) if obj.is_text]


class PageGeometry(BaseModel):
    """页面几何（单位：mm）"""
    page_width_mm: float
    page_height_mm: float
    content_width_mm: float
    content_height_mm: float
    offset_x_mm: float = 0.0
    offset_y_mm: float = 0.0
    orientation: Orientation = Orientation.PORTRAIT


class VectorDocument(BaseModel):
    """中间矢量文档（SVG）"""
    page_id: str
    svg: str
    width_mm: float
    height_mm: float
