"""
字体轮廓资源 - 基于 fontTools 的字形轮廓与度量访问

职责：
1. 加载 TTF/OTF/TTC 字体（路径或字节）
2. 字符 -> 字形名映射、轮廓存在性判定
3. 字符前进宽度（hmtx）
4. 按字号绘制文本轮廓到任意 pen

依赖：
- fontTools: TTFont / RecordingPen / TransformPen

测试要点：
- test_has_outline: 有轮廓字符判定
- test_notdef_is_missing: 映射到 .notdef 或无映射视为缺失
- test_empty_outline_is_missing: 空轮廓视为缺失
- test_find_missing_glyphs: 跳过空白与重复字符
"""

from __future__ import annotations

import io
import logging
import unicodedata
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from fontTools.pens.recordingPen import RecordingPen
from fontTools.pens.transformPen import TransformPen
from fontTools.ttLib import TTFont

from ..interfaces import FontResourceError

logger = logging.getLogger(__name__)

NOTDEF = ".notdef"
_SKIP_CHARS = frozenset(" \n\r\t")


class FontOutlineResource:
    """字体轮廓资源"""

    def __init__(self, family: str, font: TTFont, source: str = ""):
        self.family = family
        self.font = font
        self.source = source
        self.units_per_em = float(font["head"].unitsPerEm)
        self.glyph_set = font.getGlyphSet()
        self._cmap: dict[int, str] = font.getBestCmap() or {}
        self._hmtx = font["hmtx"].metrics
        self._outline_known: dict[str, bool] = {}

    @classmethod
    def load(cls, family: str, source: Path | str | bytes) -> FontOutlineResource:
        """
        加载字体文件或字节

        Raises:
            FontResourceError: 无法解析
        """
        try:
            if isinstance(source, (bytes, bytearray)):
                font = TTFont(io.BytesIO(bytes(source)))
                label = f"<{len(source)} bytes>"
            else:
                path = Path(source).expanduser()
                if path.suffix.lower() == ".ttc":
                    font = TTFont(str(path), fontNumber=0)
                else:
                    font = TTFont(str(path))
                label = str(path)
            return cls(family, font, source=label)
        except Exception as e:
            raise FontResourceError(f"字体轮廓解析失败: {family}: {e}") from e

    def glyph_name(self, char: str) -> str | None:
        """字符对应的字形名（无映射返回None）"""
        return self._cmap.get(ord(char))

    def has_outline(self, char: str) -> bool:
        """字符是否有可用轮廓（无映射/.notdef/空轮廓均视为缺失）"""
        name = self.glyph_name(char)
        if not name or name == NOTDEF or name not in self.glyph_set:
            return False
        known = self._outline_known.get(name)
        if known is None:
            pen = RecordingPen()
            self.glyph_set[name].draw(pen)
            known = bool(pen.value)
            self._outline_known[name] = known
        return known

    def advance(self, char: str) -> float:
        """字符前进宽度（字体单位）"""
        name = self.glyph_name(char) or NOTDEF
        metrics = self._hmtx.get(name)
        if metrics is None:
            return 0.0
        return float(metrics[0])

    def text_advance(self, text: str, font_size: float) -> float:
        """文本总前进宽度（按字号缩放）"""
        scale = font_size / self.units_per_em
        return sum(self.advance(ch) for ch in text) * scale

    def draw_text(self, text: str, x: float, y: float, font_size: float, pen: Any) -> float:
        """
        按字号在基线 (x, y) 处绘制文本轮廓

        字体坐标Y向上，输出坐标Y向下，绘制时翻转。

        Returns:
            绘制的总前进宽度
        """
        scale = font_size / self.units_per_em
        cursor = x
        for ch in text:
            name = self.glyph_name(ch) or NOTDEF
            if name in self.glyph_set:
                glyph_pen = TransformPen(pen, (scale, 0, 0, -scale, cursor, y))
                self.glyph_set[name].draw(glyph_pen)
            cursor += self.advance(ch) * scale
        return cursor - x


@dataclass
class GlyphSupport:
    """字形支持检查结果"""
    family: str
    missing: list[str] = field(default_factory=list)
    checked: int = 0
    total: int = 0


def is_ignorable(char: str) -> bool:
    """空白与控制字符不参与缺字检查"""
    return char in _SKIP_CHARS or char.isspace() or unicodedata.category(char) == "Cc"


def find_missing_glyphs(resource: FontOutlineResource, text: str) -> GlyphSupport:
    """检查文本中字体无法渲染的字符（去重，保持出现顺序）"""
    result = GlyphSupport(family=resource.family, total=len(text))
    seen: set[str] = set()
    for ch in text:
        if is_ignorable(ch) or ch in seen:
            continue
        seen.add(ch)
        try:
            supported = resource.has_outline(ch)
        except Exception as e:
            logger.warning(f"字形检查异常: {resource.family} {ch!r}: {e}")
            supported = False
        if not supported:
            result.missing.append(ch)
    result.checked = len(seen)
    return result
