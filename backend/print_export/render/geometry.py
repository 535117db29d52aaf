"""
页面几何解析 - 单位/DPI换算、页面尺寸与内容放置

职责：
1. px/mm/pt 单位换算
2. 页面尺寸：明确打印尺寸优先，否则取内容尺寸
3. 放置偏移：默认居中并下限截断为0；信封模式按锚点放置
4. 页面方向：宽 >= 高 为横向

测试要点：
- test_px_to_mm: 像素换算
- test_centering_law: 居中规则（含内容大于页面时截断）
- test_explicit_print_size_scenario: 100x150mm 放入 210x297mm 偏移 (55, 73.5)
- test_envelope_anchor: 信封锚点
"""

from __future__ import annotations

from ..models import (
    EnvelopeAnchor,
    EnvelopeOption,
    Orientation,
    PageGeometry,
    PrintSize,
    RenderMode,
    Unit,
)

MM_PER_INCH = 25.4
PT_PER_INCH = 72.0


def px_to_mm(px: float, dpi: float) -> float:
    """像素转毫米"""
    return px / dpi * MM_PER_INCH


def mm_to_px(mm: float, dpi: float) -> float:
    """毫米转像素"""
    return mm / MM_PER_INCH * dpi


def mm_to_pt(mm: float) -> float:
    """毫米转PDF点"""
    return mm * PT_PER_INCH / MM_PER_INCH


def to_mm(value: float, unit: Unit, dpi: float) -> float:
    """按声明单位换算到毫米"""
    if unit == Unit.PX:
        return px_to_mm(value, dpi)
    return value


def centered_offset(page_size: float, content_size: float) -> float:
    """居中偏移（下限为0，内容溢出不做修正）"""
    return max(0.0, (page_size - content_size) / 2)


def resolve_page_geometry(
    width: float,
    height: float,
    unit: Unit,
    dpi: float,
    print_size: PrintSize | None = None,
    render_mode: RenderMode = RenderMode.DEFAULT,
    envelope: EnvelopeOption | None = None,
    envelope_top_offset_mm: float = 0.5,
) -> PageGeometry:
    """
    解析页面几何

    Args:
        width/height: 内容尺寸（按unit）
        unit: 声明单位
        dpi: 分辨率（unit为px时用于换算）
        print_size: 明确打印尺寸，为空时使用内容尺寸
        render_mode: 渲染模式
        envelope: 信封模式配置
        envelope_top_offset_mm: 顶部锚点的纵向偏移

    Returns:
        页面几何（mm）
    """
    content_w = to_mm(width, unit, dpi)
    content_h = to_mm(height, unit, dpi)

    is_envelope = render_mode == RenderMode.ENVELOPE
    if is_envelope and envelope is not None and envelope.has_size:
        content_w = float(envelope.width_mm)
        content_h = float(envelope.height_mm)

    if print_size is not None:
        page_w, page_h = print_size.width_mm, print_size.height_mm
    else:
        page_w, page_h = content_w, content_h

    offset_x = centered_offset(page_w, content_w)
    offset_y = centered_offset(page_h, content_h)

    if is_envelope:
        anchor = envelope.anchor if envelope is not None else EnvelopeAnchor.CENTER
        if anchor == EnvelopeAnchor.TOP:
            offset_y = max(0.0, envelope_top_offset_mm)
        elif anchor == EnvelopeAnchor.LEFT:
            offset_x = 0.0

    orientation = Orientation.LANDSCAPE if page_w >= page_h else Orientation.PORTRAIT

    return PageGeometry(
        page_width_mm=page_w,
        page_height_mm=page_h,
        content_width_mm=content_w,
        content_height_mm=content_h,
        offset_x_mm=offset_x,
        offset_y_mm=offset_y,
        orientation=orientation,
    )
