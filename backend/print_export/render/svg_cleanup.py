"""
SVG 文档处理 - 中间矢量文档的解析、清理与降级

职责：
1. 解析/输出 SVG（ElementTree，命名空间统一）
2. 清理：移除全幅白色背景矩形、空组、无属性组
3. 降级：移除内嵌图片（Tier A）、移除复杂结构（Tier B）
4. 统计可编辑文字元素（用于校验转曲）

测试要点：
- test_clean_groups: 空组删除与无属性组展开
- test_strip_images: 移除图片
- test_strip_complex: 移除滤镜/蒙版/裁切等
- test_count_text_primitives: 文字元素计数
"""

from __future__ import annotations

import xml.etree.ElementTree as ET

SVG_NS = "http://www.w3.org/2000/svg"
XLINK_NS = "http://www.w3.org/1999/xlink"

ET.register_namespace("", SVG_NS)
ET.register_namespace("xlink", XLINK_NS)

HREF_ATTRS = (f"{{{XLINK_NS}}}href", "href")
TEXT_TAGS = frozenset({"text", "tspan", "textPath"})
COMPLEX_TAGS = frozenset(
    {"filter", "mask", "clipPath", "pattern", "marker", "symbol", "use", "foreignObject"}
)
COMPLEX_ATTRS = ("filter", "mask", "clip-path", "marker-start", "marker-mid", "marker-end")
WHITE_FILLS = frozenset({"#fff", "#ffffff", "white", "rgb(255,255,255)"})
MAX_CLEAN_PASSES = 10


def qname(tag: str) -> str:
    """SVG命名空间下的完整标签名"""
    return f"{{{SVG_NS}}}{tag}"


def local_name(tag: str) -> str:
    """去掉命名空间的标签名"""
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def parse_svg(svg: str | bytes) -> ET.Element:
    """解析SVG文本"""
    return ET.fromstring(svg)


def to_string(root: ET.Element) -> str:
    """输出SVG文本"""
    return ET.tostring(root, encoding="unicode")


def get_href(element: ET.Element) -> str | None:
    for attr in HREF_ATTRS:
        value = element.get(attr)
        if value is not None:
            return value
    return None


def set_href(element: ET.Element, value: str) -> None:
    for attr in HREF_ATTRS:
        if attr in element.attrib:
            element.set(attr, value)
            return
    element.set(HREF_ATTRS[0], value)


def remove_where(root: ET.Element, predicate) -> int:
    """删除满足条件的全部元素，返回删除数量"""
    removed = 0
    for parent in list(root.iter()):
        for child in list(parent):
            if predicate(child):
                parent.remove(child)
                removed += 1
    return removed


def strip_images(root: ET.Element) -> int:
    """移除全部内嵌图片"""
    return remove_where(root, lambda el: local_name(el.tag) == "image")


def strip_complex(root: ET.Element) -> int:
    """移除转换器不稳定支持的结构（滤镜/蒙版/裁切/图案/标记/引用）"""
    removed = remove_where(root, lambda el: local_name(el.tag) in COMPLEX_TAGS)
    for el in root.iter():
        for attr in COMPLEX_ATTRS:
            if attr in el.attrib:
                del el.attrib[attr]
                removed += 1
    return removed


def remove_background(root: ET.Element) -> int:
    """移除顶层全幅白色背景矩形"""
    view_box = (root.get("viewBox") or "").split()
    if len(view_box) != 4:
        return 0
    full_w, full_h = float(view_box[2]), float(view_box[3])

    def _is_background(el: ET.Element) -> bool:
        if local_name(el.tag) != "rect":
            return False
        fill = (el.get("fill") or "").replace(" ", "").lower()
        if fill not in WHITE_FILLS:
            return False
        try:
            w = float(el.get("width", "0"))
            h = float(el.get("height", "0"))
        except ValueError:
            return False
        return w >= full_w and h >= full_h and not el.get("transform")

    removed = 0
    for child in list(root):
        if _is_background(child):
            root.remove(child)
            removed += 1
    return removed


def clean_groups(root: ET.Element, max_passes: int = MAX_CLEAN_PASSES) -> int:
    """删除空组、展开无属性组（多轮直至稳定）"""
    total = 0
    for _ in range(max_passes):
        changed = 0
        for parent in list(root.iter()):
            for child in list(parent):
                if local_name(child.tag) != "g":
                    continue
                if len(child) == 0:
                    parent.remove(child)
                    changed += 1
                elif not child.attrib:
                    position = list(parent).index(child)
                    parent.remove(child)
                    for offset, grandchild in enumerate(list(child)):
                        parent.insert(position + offset, grandchild)
                    changed += 1
        total += changed
        if not changed:
            break
    return total


def count_text_primitives(svg: str | ET.Element) -> int:
    """统计可编辑文字元素数量"""
    root = parse_svg(svg) if isinstance(svg, (str, bytes)) else svg
    return sum(1 for el in root.iter() if local_name(el.tag) in TEXT_TAGS)
