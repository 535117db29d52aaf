"""
pytest 配置与公共 fixtures

使用方式：
    def test_something(font_cache, sample_page):
        report = asyncio.run(GlyphPrechecker(font_cache).run(collect_runs([sample_page])))
"""

from __future__ import annotations

import string
import tempfile
from pathlib import Path
from typing import Generator

import pytest
from fontTools.fontBuilder import FontBuilder
from fontTools.pens.ttGlyphPen import TTGlyphPen

from print_export.config import ExportConfig
from print_export.engine import InMemorySceneEngine
from print_export.fonts import FontOutlineCache, FontOutlineResource
from print_export.interfaces import FontResourceError
from print_export.models import (
    ObjectKind,
    ObjectRole,
    PageDocument,
    Paint,
    SceneObject,
    TextRun,
    Transform,
    Unit,
)

TEST_FAMILY = "Test Sans"
UNITS_PER_EM = 1000
GLYPH_ADVANCE = 600
EMPTY_GLYPH_CHAR = "Q"


def build_test_font(path: Path, family: str = TEST_FAMILY) -> Path:
    """生成测试字体：字母为矩形轮廓，Q 映射到空轮廓"""
    letters = [c for c in string.ascii_letters if c != EMPTY_GLYPH_CHAR]
    glyph_order = [".notdef", "space", EMPTY_GLYPH_CHAR] + letters

    cmap = {ord(" "): "space", ord(EMPTY_GLYPH_CHAR): EMPTY_GLYPH_CHAR}
    cmap.update({ord(c): c for c in letters})

    def _box(width: int):
        pen = TTGlyphPen(None)
        pen.moveTo((50, 0))
        pen.lineTo((50, 700))
        pen.lineTo((width - 50, 700))
        pen.lineTo((width - 50, 0))
        pen.closePath()
        return pen.glyph()

    glyphs = {
        ".notdef": _box(500),
        "space": TTGlyphPen(None).glyph(),
        EMPTY_GLYPH_CHAR: TTGlyphPen(None).glyph(),
    }
    glyphs.update({c: _box(GLYPH_ADVANCE) for c in letters})

    metrics = {name: (GLYPH_ADVANCE, 50) for name in glyph_order}
    metrics[".notdef"] = (500, 50)
    metrics["space"] = (250, 0)
    metrics[EMPTY_GLYPH_CHAR] = (GLYPH_ADVANCE, 0)

    fb = FontBuilder(UNITS_PER_EM, isTTF=True)
    fb.setupGlyphOrder(glyph_order)
    fb.setupCharacterMap(cmap)
    fb.setupGlyf(glyphs)
    fb.setupHorizontalMetrics(metrics)
    fb.setupHorizontalHeader(ascent=800, descent=-200)
    fb.setupNameTable({"familyName": family, "styleName": "Regular"})
    fb.setupOS2(sTypoAscender=800, sTypoDescender=-200, usWinAscent=800, usWinDescent=200)
    fb.setupPost()
    fb.save(str(path))
    return path


# ============================================================================
# 配置 Fixtures
# ============================================================================

@pytest.fixture
def export_config() -> ExportConfig:
    """运行期配置（页间不等待）"""
    config = ExportConfig()
    config.pipeline.page_yield_sec = 0.0
    config.pipeline.aggressive_yield_sec = 0.0
    return config


# ============================================================================
# 字体 Fixtures
# ============================================================================

@pytest.fixture(scope="session")
def font_path(tmp_path_factory) -> Path:
    """测试字体文件（会话级别）"""
    return build_test_font(tmp_path_factory.mktemp("fonts") / "TestSans-Regular.ttf")


@pytest.fixture
def font_resource(font_path: Path) -> FontOutlineResource:
    """测试字体轮廓资源"""
    return FontOutlineResource.load(TEST_FAMILY, font_path)


@pytest.fixture
def font_cache(font_path: Path) -> FontOutlineCache:
    """只认识测试字体的字体缓存"""

    async def _resolver(family: str) -> Path:
        if family == TEST_FAMILY:
            return font_path
        raise FontResourceError(f"未找到字体: {family}")

    return FontOutlineCache(resolver=_resolver)


# ============================================================================
# 场景 Fixtures
# ============================================================================

@pytest.fixture
def engine() -> InMemorySceneEngine:
    """内存场景引擎"""
    return InMemorySceneEngine()


@pytest.fixture
def text_object() -> SceneObject:
    """两个样式段的文字节点（第二段带下划线）"""
    return SceneObject(
        id="title",
        kind=ObjectKind.TEXT,
        transform=Transform(x=10, y=20, rotation=15),
        paint=Paint(fill="#333333", opacity=0.8),
        css_class="headline",
        runs=[
            TextRun(text="Hello", font_family=TEST_FAMILY, font_size=24, fill="black", x=0, y=30),
            TextRun(
                text="World",
                font_family=TEST_FAMILY,
                font_size=36,
                fill="red",
                underline=True,
                x=80,
                y=30,
            ),
        ],
    )


@pytest.fixture
def sample_page(text_object: SceneObject) -> PageDocument:
    """包含各类角色节点的页面（单位mm）"""
    return PageDocument(
        page_id="page-1",
        width=100,
        height=150,
        unit=Unit.MM,
        clip_id="workspace",
        background="#ffffff",
        objects=[
            SceneObject(
                id="workspace",
                kind=ObjectKind.RECT,
                role=ObjectRole.WORKSPACE,
                width=100,
                height=150,
                paint=Paint(fill="#ffffff"),
            ),
            SceneObject(
                id="template-bg",
                kind=ObjectKind.RECT,
                role=ObjectRole.BACKGROUND,
                width=100,
                height=150,
                paint=Paint(fill="#f0f0f0"),
            ),
            SceneObject(
                id="page-outline",
                kind=ObjectKind.RECT,
                role=ObjectRole.CLIP_OUTLINE,
                width=96,
                height=146,
                transform=Transform(x=2, y=2),
            ),
            SceneObject(
                id="logo",
                kind=ObjectKind.ELLIPSE,
                width=30,
                height=30,
                transform=Transform(x=35, y=60),
                paint=Paint(fill="#0055aa", stroke="#000000", stroke_width=0.5),
                effects=["foil"],
                clip_id="workspace",
            ),
            SceneObject(
                id="frame",
                kind=ObjectKind.RECT,
                width=80,
                height=20,
                transform=Transform(x=10, y=120),
                paint=Paint(fill="#aa0000"),
                effects=["die-cut"],
            ),
            SceneObject(id="guide-1", kind=ObjectKind.PATH, role=ObjectRole.GUIDE, path_data="M0 75L100 75"),
            SceneObject(id="mold-icon", kind=ObjectKind.RECT, role=ObjectRole.ACCESSORY, width=5, height=5),
            text_object,
        ],
    )


@pytest.fixture
def simple_page() -> PageDocument:
    """无文字、无特效的单页（单位mm）"""
    return PageDocument(
        page_id="simple",
        width=100,
        height=150,
        unit=Unit.MM,
        objects=[
            SceneObject(
                id="box",
                kind=ObjectKind.RECT,
                width=50,
                height=50,
                transform=Transform(x=25, y=50),
                paint=Paint(fill="#123456"),
            ),
        ],
    )


# ============================================================================
# 文件 Fixtures
# ============================================================================

@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """临时目录"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)
