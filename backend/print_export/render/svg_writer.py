"""
SVG 序列化 - 将页面文档写为中间矢量文档

职责：
1. 按内容几何输出物理尺寸（mm）与页面单位 viewBox
2. 节点 -> SVG 元素（rect/ellipse/path/image/text/g）
3. 裁切参照写入 <defs><clipPath>；clip_outline 角色只作为裁切来源
4. 序列化后清理背景矩形与空组

测试要点：
- test_write_sizes: 文档尺寸与viewBox
- test_clip_outline_not_drawn: 裁切轮廓不直接绘制
- test_missing_clip_reference: 裁切引用缺失时忽略
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET

from ..models import (
    ObjectKind,
    ObjectRole,
    PageDocument,
    PageGeometry,
    SceneObject,
    VectorDocument,
)
from .svg_cleanup import (
    HREF_ATTRS,
    clean_groups,
    qname,
    remove_background,
    to_string,
)

logger = logging.getLogger(__name__)

TRANSPARENT = "transparent"


class SvgDocumentWriter:
    """SVG文档写出器"""

    def write(self, page: PageDocument, geometry: PageGeometry) -> VectorDocument:
        """序列化页面"""
        root = ET.Element(
            qname("svg"),
            {
                "version": "1.1",
                "width": f"{geometry.content_width_mm:g}mm",
                "height": f"{geometry.content_height_mm:g}mm",
                "viewBox": f"0 0 {page.width:g} {page.height:g}",
            },
        )
        defs = ET.SubElement(root, qname("defs"))
        self._clips: dict[str, str] = {}
        self._page = page
        self._defs = defs

        if page.background and page.background != TRANSPARENT:
            ET.SubElement(
                root,
                qname("rect"),
                {"x": "0", "y": "0", "width": f"{page.width:g}", "height": f"{page.height:g}", "fill": page.background},
            )

        container = root
        if page.clip_id:
            clip_ref = self._clip_ref(page.clip_id)
            if clip_ref:
                container = ET.SubElement(root, qname("g"), {"clip-path": clip_ref})

        for obj in page.objects:
            element = self._element(obj)
            if element is not None:
                container.append(element)

        if len(defs) == 0:
            root.remove(defs)

        remove_background(root)
        clean_groups(root)

        return VectorDocument(
            page_id=page.page_id,
            svg=to_string(root),
            width_mm=geometry.content_width_mm,
            height_mm=geometry.content_height_mm,
        )

    def _element(self, obj: SceneObject) -> ET.Element | None:
        if not obj.visible or obj.role == ObjectRole.CLIP_OUTLINE:
            return None

        attrs: dict[str, str] = {"id": obj.id}
        transform = obj.transform.to_svg()
        if transform:
            attrs["transform"] = transform
        if obj.css_class:
            attrs["class"] = obj.css_class
        attrs.update(self._paint_attrs(obj))
        if obj.clip_id:
            clip_ref = self._clip_ref(obj.clip_id)
            if clip_ref:
                attrs["clip-path"] = clip_ref

        if obj.kind == ObjectKind.GROUP:
            element = ET.Element(qname("g"), attrs)
            for child in obj.children:
                child_el = self._element(child)
                if child_el is not None:
                    element.append(child_el)
            return element

        if obj.kind == ObjectKind.TEXT:
            return self._text_element(obj, attrs)

        shape = self._shape(obj)
        if shape is None:
            return None
        shape.attrib.update(attrs)
        return shape

    def _shape(self, obj: SceneObject) -> ET.Element | None:
        """几何元素（不含绘制属性）"""
        if obj.kind == ObjectKind.RECT:
            return ET.Element(
                qname("rect"),
                {"x": "0", "y": "0", "width": f"{obj.width:g}", "height": f"{obj.height:g}"},
            )
        if obj.kind == ObjectKind.ELLIPSE:
            return ET.Element(
                qname("ellipse"),
                {
                    "cx": f"{obj.width / 2:g}",
                    "cy": f"{obj.height / 2:g}",
                    "rx": f"{obj.width / 2:g}",
                    "ry": f"{obj.height / 2:g}",
                },
            )
        if obj.kind == ObjectKind.PATH:
            if not obj.path_data:
                return None
            return ET.Element(qname("path"), {"d": obj.path_data})
        if obj.kind == ObjectKind.IMAGE:
            if not obj.image_href:
                return None
            return ET.Element(
                qname("image"),
                {
                    "x": "0",
                    "y": "0",
                    "width": f"{obj.width:g}",
                    "height": f"{obj.height:g}",
                    "preserveAspectRatio": "none",
                    HREF_ATTRS[0]: obj.image_href,
                },
            )
        return None

    def _text_element(self, obj: SceneObject, attrs: dict[str, str]) -> ET.Element:
        element = ET.Element(qname("text"), attrs)
        for run in obj.runs:
            tspan = ET.SubElement(
                element,
                qname("tspan"),
                {
                    "x": f"{run.x:g}",
                    "y": f"{run.y:g}",
                    "font-family": run.font_family,
                    "font-weight": str(run.font_weight),
                },
            )
            if run.font_size:
                tspan.set("font-size", f"{run.font_size:g}")
            if run.fill:
                tspan.set("fill", run.fill)
            if run.underline:
                tspan.set("text-decoration", "underline")
            tspan.text = run.text
        return element

    def _paint_attrs(self, obj: SceneObject) -> dict[str, str]:
        paint = obj.paint
        attrs: dict[str, str] = {}
        is_container = obj.kind in (ObjectKind.GROUP, ObjectKind.TEXT)
        if paint.fill is not None:
            attrs["fill"] = "none" if paint.fill == TRANSPARENT else paint.fill
        elif not is_container and obj.kind != ObjectKind.IMAGE:
            attrs["fill"] = "none"
        if paint.stroke and paint.stroke != TRANSPARENT and paint.stroke_width > 0:
            attrs["stroke"] = paint.stroke
            attrs["stroke-width"] = f"{paint.stroke_width:g}"
        if paint.opacity < 1.0:
            attrs["opacity"] = f"{paint.opacity:g}"
        return attrs

    def _clip_ref(self, clip_id: str) -> str | None:
        """确保 clipPath 定义存在，返回 url(#...) 引用"""
        if clip_id in self._clips:
            return self._clips[clip_id]
        source = self._page.find(clip_id)
        shapes = self._clip_shapes(source) if source is not None else []
        if not shapes:
            logger.warning(f"裁切引用缺失，已忽略: {self._page.page_id} -> {clip_id}")
            return None
        def_id = f"clip-{clip_id}"
        clip_path = ET.SubElement(self._defs, qname("clipPath"), {"id": def_id})
        clip_path.extend(shapes)
        ref = f"url(#{def_id})"
        self._clips[clip_id] = ref
        return ref

    def _clip_shapes(self, source: SceneObject, parent_transform: str = "") -> list[ET.Element]:
        """clipPath 只接受基本图形：组节点展开为子图形，变换逐级拼接"""
        transform = " ".join(t for t in (parent_transform, source.transform.to_svg()) if t)
        if source.kind == ObjectKind.GROUP:
            shapes: list[ET.Element] = []
            for child in source.children:
                shapes.extend(self._clip_shapes(child, transform))
            return shapes
        shape = self._shape(source)
        if shape is None:
            return []
        if transform:
            shape.set("transform", transform)
        return [shape]
