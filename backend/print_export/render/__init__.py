"""
渲染模块 - 页面几何、文字转曲、特效分层、SVG序列化与PDF转换

子模块：
- geometry: 单位换算与页面几何
- text_vectorizer: 文字转曲
- effects: 特效分层
- svg_writer / svg_cleanup: 中间矢量文档
- images: 内嵌图片预处理
- converter: PDF转换与恢复链
"""

from .converter import ConversionFault, ConversionState, PageConversion, PageConverter, TierResult
from .effects import EffectDecomposer, EffectGroup
from .geometry import mm_to_pt, mm_to_px, px_to_mm, resolve_page_geometry
from .images import ImageScreener
from .svg_writer import SvgDocumentWriter
from .text_vectorizer import TextVectorizer, VectorizedText

__all__ = [
    "PageConverter",
    "PageConversion",
    "ConversionFault",
    "ConversionState",
    "TierResult",
    "EffectDecomposer",
    "EffectGroup",
    "ImageScreener",
    "SvgDocumentWriter",
    "TextVectorizer",
    "VectorizedText",
    "resolve_page_geometry",
    "px_to_mm",
    "mm_to_px",
    "mm_to_pt",
]
