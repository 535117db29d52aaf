"""
文字转曲 - 将文字节点按样式段转换为路径几何

职责：
1. 每个样式段按其基线坐标、字体族、字号独立生成轮廓路径
2. 填充色：样式段 > 文字节点 > 默认色；保留描边
3. 下划线：厚度=字号5%，位于基线下方字号15%，宽度=字符前进宽度之和
4. 字重只记录不模拟加粗（输出告警）
5. 所有路径收入一个组合节点，复制原节点的 id/class/透明度/变换，原位替换

依赖：
- fontTools: SVGPathPen 输出 SVG path 数据

测试要点：
- test_two_runs_with_underline: 两个样式段 + 一条下划线
- test_blank_run_skipped: 空白样式段不生成几何
- test_fill_fallback: 填充色回退
- test_font_failure_is_fatal: 字体不可用时抛 FontResourceError
- test_nested_text_in_group: 组内文字原位替换
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from fontTools.pens.svgPathPen import SVGPathPen

from ..config import FontConfig, get_config
from ..interfaces import FontResourceError, IFontProvider, VectorizationError
from ..models import ObjectKind, Paint, SceneObject, TextRun

logger = logging.getLogger(__name__)

BOLD_THRESHOLD = 600


@dataclass
class RunLayout:
    """样式段排版结果"""
    index: int
    text: str
    x: float
    baseline: float
    advance: float
    font_size: float
    underline_top: float | None = None


@dataclass
class VectorizedText:
    """转曲结果"""
    composite: SceneObject
    runs: list[RunLayout] = field(default_factory=list)

    @property
    def underline_count(self) -> int:
        return sum(1 for child in self.composite.children if child.id.endswith("_underline"))


class TextVectorizer:
    """文字转曲器"""

    def __init__(self, fonts: IFontProvider, config: FontConfig | None = None):
        self.fonts = fonts
        self.config = config or get_config().fonts
        self._weight_warned: set[tuple[str, int]] = set()

    async def vectorize(self, obj: SceneObject) -> VectorizedText:
        """
        转换单个文字节点

        Raises:
            FontResourceError: 样式段所需字体无法解析
            VectorizationError: 轮廓生成失败
        """
        if not obj.is_text:
            raise VectorizationError(f"非文字节点: {obj.id}")

        children: list[SceneObject] = []
        layouts: list[RunLayout] = []

        for index, run in enumerate(obj.runs):
            if run.is_blank:
                continue

            resource = await self.fonts.resolve_outline_resource(run.font_family)
            self._check_weight(run)

            fill = run.fill or obj.paint.fill or self.config.default_fill
            font_size = self._font_size(run)
            try:
                pen = SVGPathPen(resource.glyph_set)
                advance = resource.draw_text(run.text, run.x, run.y, font_size, pen)
                path_data = pen.getCommands()
            except FontResourceError:
                raise
            except Exception as e:
                raise VectorizationError(f"文字轮廓生成失败: {obj.id} run{index}: {e}") from e

            if path_data:
                children.append(
                    SceneObject(
                        id=f"{obj.id}_run{index}",
                        kind=ObjectKind.PATH,
                        path_data=path_data,
                        paint=self._run_paint(obj, run, fill),
                    )
                )
            else:
                logger.warning(f"样式段无轮廓: {obj.id} run{index} {run.text!r}")

            layout = RunLayout(
                index=index,
                text=run.text,
                x=run.x,
                baseline=run.y,
                advance=advance,
                font_size=font_size,
            )
            if run.underline:
                width = resource.text_advance(run.text, font_size)
                children.append(self._underline(obj, index, run, font_size, width, fill))
                layout.underline_top = run.y + font_size * self.config.underline_offset_ratio
            layouts.append(layout)

        composite = SceneObject(
            id=obj.id,
            kind=ObjectKind.GROUP,
            role=obj.role,
            transform=obj.transform.model_copy(),
            paint=Paint(opacity=obj.paint.opacity),
            width=obj.width,
            height=obj.height,
            children=children,
            effects=list(obj.effects),
            clip_id=obj.clip_id,
            css_class=obj.css_class,
            visible=obj.visible,
        )
        return VectorizedText(composite=composite, runs=layouts)

    async def vectorize_objects(self, objects: list[SceneObject]) -> list[SceneObject]:
        """转换对象列表中的全部文字节点（含组内），保持原有顺序"""
        result: list[SceneObject] = []
        for obj in objects:
            if obj.is_text:
                vectorized = await self.vectorize(obj)
                result.append(vectorized.composite)
            elif obj.kind == ObjectKind.GROUP and obj.children:
                children = await self.vectorize_objects(obj.children)
                result.append(obj.model_copy(update={"children": children}))
            else:
                result.append(obj)
        return result

    def _run_paint(self, obj: SceneObject, run: TextRun, fill: str) -> Paint:
        stroke = run.stroke or obj.paint.stroke
        stroke_width = run.stroke_width or obj.paint.stroke_width
        if not stroke or not stroke_width:
            return Paint(fill=fill)
        return Paint(fill=fill, stroke=stroke, stroke_width=stroke_width)

    def _underline(
        self,
        obj: SceneObject,
        index: int,
        run: TextRun,
        font_size: float,
        width: float,
        fill: str,
    ) -> SceneObject:
        """生成矩形下划线路径"""
        thickness = font_size * self.config.underline_thickness_ratio
        top = run.y + font_size * self.config.underline_offset_ratio
        left = run.x
        right = run.x + width
        path_data = (
            f"M{left:g} {top:g}L{right:g} {top:g}"
            f"L{right:g} {top + thickness:g}L{left:g} {top + thickness:g}Z"
        )
        return SceneObject(
            id=f"{obj.id}_run{index}_underline",
            kind=ObjectKind.PATH,
            path_data=path_data,
            paint=Paint(fill=fill),
        )

    def _font_size(self, run: TextRun) -> float:
        """样式段未指定字号时取配置默认字号"""
        return run.font_size or self.config.default_font_size

    def _check_weight(self, run: TextRun) -> None:
        """字重仅记录：不做描边模拟加粗"""
        if run.font_weight < BOLD_THRESHOLD:
            return
        key = (run.font_family, run.font_weight)
        if key in self._weight_warned:
            return
        self._weight_warned.add(key)
        logger.warning(
            f"字重 {run.font_weight} 未生效: {run.font_family}（需要独立的粗体字体文件）"
        )
