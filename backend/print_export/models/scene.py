"""
场景模型 - 定义可编辑场景图节点

包含：
- ObjectKind/ObjectRole: 节点类型与角色（封闭枚举）
- EffectKind: 常用印刷特效标签（特效标签本身是开放字符串）
- Transform/Paint: 几何变换与绘制属性
- TextRun: 文字样式段
- SceneObject: 场景节点
"""

from __future__ import annotations

from enum import Enum
from typing import Iterator

from pydantic import BaseModel, Field, field_validator

FONT_WEIGHT_NORMAL = 400
FONT_WEIGHT_BOLD = 700


class ObjectKind(str, Enum):
    """节点类型"""
    RECT = "rect"
    ELLIPSE = "ellipse"
    PATH = "path"
    IMAGE = "image"
    TEXT = "text"
    GROUP = "group"


class ObjectRole(str, Enum):
    """节点角色（导出时按角色决定取舍）"""
    WORKSPACE = "workspace"         # 工作区边界
    BACKGROUND = "background"       # 模板背景
    CUT_LINE = "cut_line"           # 刀线
    CLIP_OUTLINE = "clip_outline"   # 页面裁切轮廓
    ACCESSORY = "accessory"         # 附件图标（仅编辑时可见）
    GUIDE = "guide"                 # 辅助线
    OVERLAY = "overlay"             # 编辑用叠加层
    MOCKUP = "mockup"               # 样机底图
    GROUP = "group"


class EffectKind(str, Enum):
    """常用印刷特效"""
    RAISED_FINISH = "raised-finish"
    FOIL = "foil"
    DIE_CUT = "die-cut"


class Transform(BaseModel):
    """几何变换（以节点左上角为原点）"""
    x: float = 0.0
    y: float = 0.0
    scale_x: float = 1.0
    scale_y: float = 1.0
    rotation: float = Field(default=0.0, description="角度，顺时针")
    skew_x: float = 0.0
    skew_y: float = 0.0
    flip_x: bool = False
    flip_y: bool = False

    @property
    def is_identity(self) -> bool:
        return self == Transform()

    def to_svg(self) -> str:
        """转为SVG transform属性"""
        parts: list[str] = []
        if self.x or self.y:
            parts.append(f"translate({_fmt(self.x)} {_fmt(self.y)})")
        if self.rotation:
            parts.append(f"rotate({_fmt(self.rotation)})")
        if self.skew_x:
            parts.append(f"skewX({_fmt(self.skew_x)})")
        if self.skew_y:
            parts.append(f"skewY({_fmt(self.skew_y)})")
        sx = -self.scale_x if self.flip_x else self.scale_x
        sy = -self.scale_y if self.flip_y else self.scale_y
        if sx != 1.0 or sy != 1.0:
            parts.append(f"scale({_fmt(sx)} {_fmt(sy)})")
        return " ".join(parts)


class Paint(BaseModel):
    """绘制属性"""
    fill: str | None = None
    stroke: str | None = None
    stroke_width: float = 0.0
    opacity: float = 1.0


class TextRun(BaseModel):
    """文字样式段（同一样式的连续子串）"""
    text: str
    font_family: str
    font_size: float | None = Field(default=None, description="为空时取配置默认字号")
    font_weight: int = FONT_WEIGHT_NORMAL
    underline: bool = False
    fill: str | None = None
    stroke: str | None = None
    stroke_width: float = 0.0
    x: float = Field(default=0.0, description="基线起点X（节点局部坐标）")
    y: float = Field(default=0.0, description="基线Y（节点局部坐标）")

    @field_validator("font_weight", mode="before")
    @classmethod
    def _parse_weight(cls, v):
        return parse_font_weight(v)

    @property
    def is_blank(self) -> bool:
        return not self.text.strip()


class SceneObject(BaseModel):
    """场景节点"""
    id: str = Field(..., description="节点唯一标识")
    kind: ObjectKind
    role: ObjectRole | None = None
    transform: Transform = Field(default_factory=Transform)
    paint: Paint = Field(default_factory=Paint)
    width: float = 0.0
    height: float = 0.0

    path_data: str | None = Field(default=None, description="path节点的d属性")
    image_href: str | None = Field(default=None, description="image节点的data URL")
    children: list[SceneObject] = Field(default_factory=list)
    runs: list[TextRun] = Field(default_factory=list, description="text节点的样式段")

    effects: list[str] = Field(default_factory=list, description="印刷特效标签")
    clip_id: str | None = Field(default=None, description="裁切参照节点id")
    css_class: str | None = None
    visible: bool = True

    @property
    def is_text(self) -> bool:
        return self.kind == ObjectKind.TEXT

    @property
    def has_effects(self) -> bool:
        return bool(self.effects)

    def iter_tree(self) -> Iterator[SceneObject]:
        """深度优先遍历自身及全部子节点"""
        yield self
        for child in self.children:
            yield from child.iter_tree()


def parse_font_weight(value: int | str | None) -> int:
    """解析字重：bold=700, normal=400, 其余按数值"""
    if value is None:
        return FONT_WEIGHT_NORMAL
    if isinstance(value, (int, float)):
        return int(value)
    text = str(value).strip().lower()
    if text == "bold":
        return FONT_WEIGHT_BOLD
    if text in ("", "normal"):
        return FONT_WEIGHT_NORMAL
    try:
        return int(float(text))
    except ValueError:
        return FONT_WEIGHT_NORMAL


def iter_objects(objects: list[SceneObject]) -> Iterator[SceneObject]:
    """遍历对象列表中的全部节点（含嵌套）"""
    for obj in objects:
        yield from obj.iter_tree()


def _fmt(value: float) -> str:
    return f"{value:.4f}".rstrip("0").rstrip(".") or "0"
