"""
内嵌图片预处理 - 转换前压缩/重编码 SVG 中的 data URL 图片

职责：
1. 解析 data URL 并规范化 base64
2. 移除不支持的 MIME 类型
3. 超过体积或边长阈值时缩放重编码：透明格式 -> PNG，其余 -> JPEG
4. SVG/GIF/WEBP 图片统一转为 PNG（SVG 先经 PyMuPDF 栅格化）
5. 单张图片处理失败只记录告警，保留原图（交由恢复链兜底）

依赖：
- Pillow: 缩放与重编码
- PyMuPDF: SVG 图片栅格化

测试要点：
- test_normalize_base64: base64 规范化
- test_unsupported_mime_removed: 不支持的类型被移除
- test_large_png_downscaled: 超限PNG缩放且保持PNG
- test_opaque_recompressed_to_jpeg: 不透明图片重编码为JPEG
- test_corrupt_image_left_unchanged: 损坏图片保持原样
"""

from __future__ import annotations

import base64
import io
import logging
import re
from dataclasses import dataclass
from urllib.parse import unquote_to_bytes

import fitz
from PIL import Image

from ..config import ImageConfig, get_config
from .svg_cleanup import get_href, local_name, parse_svg, set_href, to_string

logger = logging.getLogger(__name__)

ALPHA_MIMES = frozenset({"image/png", "image/webp", "image/svg+xml", "image/gif"})
TO_PNG_MIMES = frozenset({"image/webp", "image/svg+xml", "image/gif"})

_DATA_URL_RE = re.compile(
    r"^data:(?P<mime>[^;,]*)(?P<params>(?:;[^;,]*)*?)(?P<b64>;base64)?,(?P<data>.*)$",
    re.DOTALL,
)


def normalize_base64(text: str) -> str:
    """去空白、URL安全字符转标准字符并补齐填充"""
    cleaned = re.sub(r"\s+", "", text).replace("-", "+").replace("_", "/")
    cleaned = cleaned.rstrip("=")
    padding = (-len(cleaned)) % 4
    return cleaned + "=" * padding


@dataclass
class DataUrl:
    """data URL 图片"""
    mime: str
    data: bytes

    @classmethod
    def parse(cls, url: str) -> DataUrl | None:
        match = _DATA_URL_RE.match(url.strip())
        if match is None:
            return None
        mime = (match.group("mime") or "text/plain").lower()
        payload = match.group("data")
        if match.group("b64"):
            data = base64.b64decode(normalize_base64(payload))
        else:
            data = unquote_to_bytes(payload)
        return cls(mime=mime, data=data)

    def to_url(self) -> str:
        return f"data:{self.mime};base64,{base64.b64encode(self.data).decode('ascii')}"


@dataclass
class ScreeningReport:
    """预处理统计"""
    inspected: int = 0
    rewritten: int = 0
    removed: int = 0
    failed: int = 0


class ImageScreener:
    """内嵌图片预处理器"""

    def __init__(self, config: ImageConfig | None = None):
        self.config = config or get_config().images

    def screen_svg(self, svg: str) -> tuple[str, ScreeningReport]:
        """处理SVG中的全部 data URL 图片"""
        root = parse_svg(svg)
        report = ScreeningReport()
        for parent in list(root.iter()):
            for child in list(parent):
                if local_name(child.tag) != "image":
                    continue
                href = get_href(child)
                if not href or not href.startswith("data:"):
                    continue
                report.inspected += 1
                try:
                    screened = self.screen_data_url(href)
                except Exception as e:
                    logger.warning(f"图片预处理失败，保留原图: {child.get('id', '?')}: {e}")
                    report.failed += 1
                    continue
                if screened is None:
                    parent.remove(child)
                    report.removed += 1
                elif screened != href:
                    set_href(child, screened)
                    report.rewritten += 1
        return to_string(root), report

    def screen_data_url(self, href: str) -> str | None:
        """
        处理单个 data URL

        Returns:
            新的 data URL；无需处理时原样返回；不支持的类型返回None
        """
        parsed = DataUrl.parse(href)
        if parsed is None:
            raise ValueError("无法解析 data URL")
        if parsed.mime not in self.config.allowed_mimes:
            logger.warning(f"不支持的图片类型，已移除: {parsed.mime}")
            return None

        has_alpha = parsed.mime in ALPHA_MIMES
        max_side = self.config.max_side_alpha if has_alpha else self.config.max_side_opaque
        too_large = len(parsed.data) > self.config.max_inline_bytes

        image = self._open(parsed)
        longest = max(image.size)
        if not too_large and longest <= max_side and parsed.mime not in TO_PNG_MIMES:
            return href

        if longest > max_side:
            ratio = max_side / longest
            size = (max(1, round(image.width * ratio)), max(1, round(image.height * ratio)))
            image = image.resize(size, Image.Resampling.LANCZOS)

        buffer = io.BytesIO()
        if has_alpha:
            if image.mode not in ("RGBA", "LA", "RGB", "L"):
                image = image.convert("RGBA")
            image.save(buffer, format="PNG", optimize=True)
            mime = "image/png"
        else:
            if image.mode != "RGB":
                image = image.convert("RGB")
            quality = self.config.jpeg_quality
            if parsed.mime == "image/jpeg":
                quality = max(1, quality - 5)
            image.save(buffer, format="JPEG", quality=quality, optimize=True)
            mime = "image/jpeg"

        logger.debug(
            f"图片已重编码: {parsed.mime} {len(parsed.data)}B -> {mime} {buffer.tell()}B"
        )
        return DataUrl(mime=mime, data=buffer.getvalue()).to_url()

    def _open(self, parsed: DataUrl) -> Image.Image:
        if parsed.mime == "image/svg+xml":
            doc = fitz.open(stream=parsed.data, filetype="svg")
            try:
                pix = doc[0].get_pixmap(alpha=True)
                png = pix.tobytes("png")
            finally:
                doc.close()
            return Image.open(io.BytesIO(png))
        image = Image.open(io.BytesIO(parsed.data))
        image.load()
        return image
