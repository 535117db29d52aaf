"""
字体模块 - 轮廓资源、缓存与缺字预检

子模块：
- outline: 字体轮廓资源（fontTools）
- resolver: 字体文件定位
- cache: 按字体族的读穿式缓存
- glyph_check: 缺字预检与确认
"""

from .cache import FontOutlineCache, FontResourceState
from .glyph_check import GlyphPrechecker, GlyphReport, collect_runs
from .outline import FontOutlineResource, GlyphSupport, find_missing_glyphs
from .resolver import FontDirectoryResolver

__all__ = [
    "FontOutlineCache",
    "FontResourceState",
    "FontOutlineResource",
    "FontDirectoryResolver",
    "GlyphPrechecker",
    "GlyphReport",
    "GlyphSupport",
    "collect_runs",
    "find_missing_glyphs",
]
