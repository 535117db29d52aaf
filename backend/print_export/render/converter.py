"""
矢量 -> 分页文档转换 - 将中间SVG放置为PDF页面，失败时逐级恢复

状态机：Prepared -> Serialized -> Converted | Recovering -> Converted | Failed

职责：
1. 转换前预处理内嵌图片（尽力而为，失败不阻断）
2. 主转换：SVG转PDF后按偏移放置到目标页
3. 恢复链（首个成功者胜出）：
   - Tier A: 移除全部内嵌图片
   - Tier B: 再移除滤镜/蒙版/裁切/标记/引用等复杂结构
   - Tier C: 整页栅格化为位图后放置
4. 每一层返回 TierResult（成功文档或 ConversionFault），不以异常驱动流程
5. 每一层在独立的单页文档中绘制，成功后才并入目标文档

依赖：
- PyMuPDF (fitz): SVG解析、PDF页面放置与栅格化

测试要点：
- test_primary_success: 主转换成功不进入恢复链
- test_tier_a_wins: Tier A 成功时不尝试 B/C
- test_all_tiers_fail: 全部失败标记 Failed
- test_rasterize_fallback: 矢量层全部失败时栅格化
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

import fitz

from ..config import ExportConfig, get_config
from ..models import ConversionTier, PageGeometry, VectorDocument
from .geometry import mm_to_pt
from .images import ImageScreener
from .svg_cleanup import parse_svg, strip_complex, strip_images, to_string

logger = logging.getLogger(__name__)

VectorPlacer = Callable[[fitz.Page, bytes, fitz.Rect], None]
RasterPlacer = Callable[[fitz.Page, bytes, fitz.Rect, float], None]


class ConversionState(str, Enum):
    """单页转换状态"""
    PREPARED = "prepared"
    SERIALIZED = "serialized"
    RECOVERING = "recovering"
    CONVERTED = "converted"
    FAILED = "failed"


@dataclass
class ConversionFault:
    """单层转换故障"""
    tier: ConversionTier
    message: str


@dataclass
class TierResult:
    """单层转换结果"""
    tier: ConversionTier
    document: fitz.Document | None = None
    fault: ConversionFault | None = None

    @property
    def ok(self) -> bool:
        return self.document is not None and self.fault is None


@dataclass
class PageConversion:
    """单页转换记录"""
    page_id: str
    state: ConversionState = ConversionState.PREPARED
    tier: ConversionTier | None = None
    attempted: list[ConversionTier] = field(default_factory=list)
    faults: list[ConversionFault] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.state == ConversionState.CONVERTED

    @property
    def recovered(self) -> bool:
        return self.ok and self.tier != ConversionTier.PRIMARY

    def error_summary(self) -> str:
        return "; ".join(f"{f.tier.value}: {f.message}" for f in self.faults)


def place_vector(page: fitz.Page, svg: bytes, rect: fitz.Rect) -> None:
    """SVG转PDF后作为矢量内容放置"""
    source = fitz.open(stream=svg, filetype="svg")
    try:
        pdf_bytes = source.convert_to_pdf()
    finally:
        source.close()
    vector = fitz.open(stream=pdf_bytes, filetype="pdf")
    try:
        page.show_pdf_page(rect, vector, 0)
    finally:
        vector.close()


def place_raster(page: fitz.Page, svg: bytes, rect: fitz.Rect, zoom: float) -> None:
    """SVG整页栅格化后作为图片放置"""
    source = fitz.open(stream=svg, filetype="svg")
    try:
        pix = source[0].get_pixmap(matrix=fitz.Matrix(zoom, zoom), alpha=False)
        page.insert_image(rect, pixmap=pix)
    finally:
        source.close()


def content_rect(geometry: PageGeometry) -> fitz.Rect:
    """内容在页面上的放置区域（pt）"""
    x0 = mm_to_pt(geometry.offset_x_mm)
    y0 = mm_to_pt(geometry.offset_y_mm)
    return fitz.Rect(
        x0,
        y0,
        x0 + mm_to_pt(geometry.content_width_mm),
        y0 + mm_to_pt(geometry.content_height_mm),
    )


class PageConverter:
    """页面转换器（含恢复链）"""

    def __init__(
        self,
        config: ExportConfig | None = None,
        screener: ImageScreener | None = None,
        vector_placer: VectorPlacer = place_vector,
        raster_placer: RasterPlacer = place_raster,
    ):
        self.config = config or get_config()
        self.screener = screener or ImageScreener(self.config.images)
        self.vector_placer = vector_placer
        self.raster_placer = raster_placer

    def convert(
        self,
        target: fitz.Document,
        vector_doc: VectorDocument,
        geometry: PageGeometry,
    ) -> PageConversion:
        """
        转换单页并追加到目标文档

        Args:
            target: 目标PDF文档
            vector_doc: 中间矢量文档
            geometry: 页面几何

        Returns:
            转换记录（成功时已追加一页）
        """
        conversion = PageConversion(page_id=vector_doc.page_id, state=ConversionState.SERIALIZED)
        svg = self._prescreen(vector_doc)

        for tier, attempt in self.tiers():
            conversion.attempted.append(tier)
            result = attempt(svg, geometry)
            if result.ok:
                result = self._merge(target, result)
            if result.ok:
                conversion.tier = tier
                conversion.state = ConversionState.CONVERTED
                if tier != ConversionTier.PRIMARY:
                    logger.info(f"页面经恢复转换成功: {vector_doc.page_id} ({tier.value})")
                return conversion

            conversion.faults.append(result.fault)
            conversion.state = ConversionState.RECOVERING
            logger.warning(f"页面转换失败: {vector_doc.page_id} ({tier.value}): {result.fault.message}")

        conversion.state = ConversionState.FAILED
        logger.error(f"页面转换彻底失败: {vector_doc.page_id}: {conversion.error_summary()}")
        return conversion

    def tiers(self) -> list[tuple[ConversionTier, Callable[[str, PageGeometry], TierResult]]]:
        """按顺序尝试的转换层"""
        return [
            (ConversionTier.PRIMARY, self.convert_primary),
            (ConversionTier.STRIP_IMAGES, self.convert_without_images),
            (ConversionTier.STRIP_COMPLEX, self.convert_simplified),
            (ConversionTier.RASTERIZE, self.convert_rasterized),
        ]

    def convert_primary(self, svg: str, geometry: PageGeometry) -> TierResult:
        return self._attempt(
            ConversionTier.PRIMARY,
            geometry,
            lambda page, rect: self.vector_placer(page, svg.encode("utf-8"), rect),
        )

    def convert_without_images(self, svg: str, geometry: PageGeometry) -> TierResult:
        def _draw(page: fitz.Page, rect: fitz.Rect) -> None:
            root = parse_svg(svg)
            strip_images(root)
            self.vector_placer(page, to_string(root).encode("utf-8"), rect)

        return self._attempt(ConversionTier.STRIP_IMAGES, geometry, _draw)

    def convert_simplified(self, svg: str, geometry: PageGeometry) -> TierResult:
        def _draw(page: fitz.Page, rect: fitz.Rect) -> None:
            root = parse_svg(svg)
            strip_images(root)
            strip_complex(root)
            self.vector_placer(page, to_string(root).encode("utf-8"), rect)

        return self._attempt(ConversionTier.STRIP_COMPLEX, geometry, _draw)

    def convert_rasterized(self, svg: str, geometry: PageGeometry) -> TierResult:
        zoom = self.config.raster.zoom
        return self._attempt(
            ConversionTier.RASTERIZE,
            geometry,
            lambda page, rect: self.raster_placer(page, svg.encode("utf-8"), rect, zoom),
        )

    def _attempt(
        self,
        tier: ConversionTier,
        geometry: PageGeometry,
        draw: Callable[[fitz.Page, fitz.Rect], None],
    ) -> TierResult:
        """在独立单页文档中绘制，异常收敛为 ConversionFault"""
        scratch = fitz.open()
        try:
            page = scratch.new_page(
                width=mm_to_pt(geometry.page_width_mm),
                height=mm_to_pt(geometry.page_height_mm),
            )
            draw(page, content_rect(geometry))
        except Exception as e:
            scratch.close()
            return TierResult(tier=tier, fault=ConversionFault(tier=tier, message=str(e) or type(e).__name__))
        return TierResult(tier=tier, document=scratch)

    def _merge(self, target: fitz.Document, result: TierResult) -> TierResult:
        """将单页文档并入目标文档；合并失败同样记为该层故障"""
        try:
            target.insert_pdf(result.document)
        except Exception as e:
            fault = ConversionFault(tier=result.tier, message=f"合并页面失败: {e}")
            return TierResult(tier=result.tier, fault=fault)
        finally:
            result.document.close()
        return result

    def _prescreen(self, vector_doc: VectorDocument) -> str:
        try:
            svg, report = self.screener.screen_svg(vector_doc.svg)
        except Exception as e:
            logger.warning(f"图片预处理跳过: {vector_doc.page_id}: {e}")
            return vector_doc.svg
        if report.rewritten or report.removed:
            logger.info(
                f"图片预处理: {vector_doc.page_id} 重编码 {report.rewritten} 张，移除 {report.removed} 张"
            )
        return svg
