"""
字体子系统单元测试

每个模块完成后必须运行：pytest tests/unit/test_fonts.py -v
"""

import asyncio
from pathlib import Path

import pytest
from fontTools.pens.recordingPen import RecordingPen

from print_export.fonts import (
    FontDirectoryResolver,
    FontOutlineCache,
    FontOutlineResource,
    FontResourceState,
    GlyphPrechecker,
    GlyphReport,
    collect_runs,
    find_missing_glyphs,
)
from print_export.interfaces import FontResourceError
from print_export.models import TextRun

TEST_FAMILY = "Test Sans"


class TestFontOutlineResource:
    """字体轮廓资源测试"""

    def test_has_outline(self, font_resource: FontOutlineResource):
        """测试有轮廓字符判定"""
        assert font_resource.has_outline("A")
        assert font_resource.has_outline("z")

    def test_notdef_is_missing(self, font_resource: FontOutlineResource):
        """测试无映射字符视为缺失"""
        assert font_resource.glyph_name("中") is None
        assert not font_resource.has_outline("中")

    def test_empty_outline_is_missing(self, font_resource: FontOutlineResource):
        """测试空轮廓视为缺失"""
        assert font_resource.glyph_name("Q") == "Q"
        assert not font_resource.has_outline("Q")

    def test_text_advance(self, font_resource: FontOutlineResource):
        """测试文本前进宽度按字号缩放"""
        assert font_resource.text_advance("Hello", 24) == pytest.approx(72.0)
        assert font_resource.text_advance("A B", 10) == pytest.approx(14.5)

    def test_draw_text(self, font_resource: FontOutlineResource):
        """测试绘制轮廓并返回前进宽度"""
        pen = RecordingPen()
        advance = font_resource.draw_text("AB", 5, 30, 10, pen)
        assert advance == pytest.approx(12.0)
        moves = [args[0] for op, args in pen.value if op == "moveTo"]
        # 第一个字形左下角：x=5+0.5，y=30（Y轴翻转后基线不变）
        assert moves[0] == pytest.approx((5.5, 30.0))
        assert moves[1] == pytest.approx((11.5, 30.0))

    def test_load_invalid_bytes(self):
        """测试无法解析的字节抛出资源错误"""
        with pytest.raises(FontResourceError):
            FontOutlineResource.load("Broken", b"not a font")

    def test_find_missing_glyphs(self, font_resource: FontOutlineResource):
        """测试缺字检查跳过空白与重复字符"""
        support = find_missing_glyphs(font_resource, "Qa 中中\nQ")
        assert support.missing == ["Q", "中"]
        assert support.checked == 3


class TestFontDirectoryResolver:
    """字体定位测试"""

    def test_find_by_family_mapping(self, font_path: Path):
        """测试显式映射"""
        resolver = FontDirectoryResolver(families={"Brand": str(font_path)})
        assert resolver.find("Brand") == font_path.resolve()

    def test_find_in_font_dirs(self, font_path: Path):
        """测试按文件名在目录中查找（忽略大小写与空格）"""
        resolver = FontDirectoryResolver(font_dirs=[str(font_path.parent)])
        assert resolver.find("test sans") == font_path.resolve()

    def test_missing_mapping_file(self, temp_dir: Path):
        """测试映射文件不存在"""
        resolver = FontDirectoryResolver(families={"Brand": str(temp_dir / "none.ttf")})
        with pytest.raises(FontResourceError):
            resolver.find("Brand")

    def test_not_found(self, temp_dir: Path):
        """测试找不到字体"""
        resolver = FontDirectoryResolver(font_dirs=[str(temp_dir)])
        with pytest.raises(FontResourceError, match="未找到字体"):
            asyncio.run(resolver("Nope"))


class TestFontOutlineCache:
    """字体轮廓缓存测试"""

    def test_resolve_memoized(self, font_cache: FontOutlineCache):
        """测试重复解析只加载一次"""

        async def _run():
            first = await font_cache.resolve_outline_resource(TEST_FAMILY)
            second = await font_cache.resolve_outline_resource(TEST_FAMILY)
            return first, second

        first, second = asyncio.run(_run())
        assert first is second
        assert font_cache.load_count == 1
        assert font_cache.state(TEST_FAMILY) == FontResourceState.LOADED

    def test_concurrent_resolve_shares_load(self, font_path: Path):
        """测试并发解析同一字体族共享一次加载"""
        calls = []

        async def _resolver(family: str):
            calls.append(family)
            await asyncio.sleep(0)
            return font_path

        cache = FontOutlineCache(resolver=_resolver)

        async def _run():
            return await asyncio.gather(
                *(cache.resolve_outline_resource(TEST_FAMILY) for _ in range(5))
            )

        resources = asyncio.run(_run())
        assert calls == [TEST_FAMILY]
        assert all(r is resources[0] for r in resources)

    def test_failed_family_stays_failed(self, font_cache: FontOutlineCache):
        """测试永久失败不重试"""

        async def _run():
            for _ in range(2):
                with pytest.raises(FontResourceError):
                    await font_cache.resolve_outline_resource("Unknown")

        asyncio.run(_run())
        assert font_cache.load_count == 1
        assert font_cache.state("Unknown") == FontResourceState.FAILED

    def test_check_glyph_support(self, font_cache: FontOutlineCache):
        """测试缺字检查"""
        support = asyncio.run(font_cache.check_glyph_support(TEST_FAMILY, "AQ"))
        assert support.missing == ["Q"]

    def test_add_preloaded(self, font_resource: FontOutlineResource):
        """测试登记已加载资源后不再调用定位器"""

        async def _resolver(family: str):
            raise AssertionError("不应调用")

        cache = FontOutlineCache(resolver=_resolver)
        cache.add(font_resource)
        assert asyncio.run(cache.resolve_outline_resource(TEST_FAMILY)) is font_resource


class TestGlyphPrechecker:
    """字形预检测试"""

    def test_report_groups_by_family(self, font_cache: FontOutlineCache):
        """测试按字体族汇总（跳过空白段）"""
        runs = [
            TextRun(text="Quiz", font_family=TEST_FAMILY),
            TextRun(text="   ", font_family="Blank Family"),
            TextRun(text="中Q", font_family=TEST_FAMILY),
        ]
        report = asyncio.run(GlyphPrechecker(font_cache).run(runs))
        assert report.missing == {TEST_FAMILY: ["Q", "中"]}
        assert report.unresolved == []

    def test_unresolved_family_skipped(self, font_cache: FontOutlineCache):
        """测试无法加载的字体族记录后跳过"""
        runs = [TextRun(text="abc", font_family="Unknown")]
        report = asyncio.run(GlyphPrechecker(font_cache).run(runs))
        assert report.unresolved == ["Unknown"]
        assert not report.has_missing

    def test_summary_preview_limit(self):
        """测试摘要每个字体最多列出N个字符"""
        report = GlyphReport(missing={"A Font": list("abcdefg"), "B Font": []})
        assert report.summary(preview=5) == "A Font: a, b, c, d, e … and 2 more"

    def test_gate_default_cancel(self, font_cache: FontOutlineCache):
        """测试存在缺字且无回调时取消"""
        report = GlyphReport(missing={TEST_FAMILY: ["Q"]})
        assert asyncio.run(GlyphPrechecker(font_cache).confirm(report, None)) is False

    def test_gate_async_callback(self, font_cache: FontOutlineCache):
        """测试异步确认回调"""
        seen = []

        async def _confirm(report):
            seen.append(report)
            return True

        report = GlyphReport(missing={TEST_FAMILY: ["Q"]})
        assert asyncio.run(GlyphPrechecker(font_cache).confirm(report, _confirm)) is True
        assert seen == [report]

    def test_gate_passes_without_missing(self, font_cache: FontOutlineCache):
        """测试无缺字时不调用回调"""

        def _confirm(report):
            raise AssertionError("不应调用")

        assert asyncio.run(GlyphPrechecker(font_cache).confirm(GlyphReport(), _confirm)) is True

    def test_collect_runs_nested(self, sample_page):
        """测试收集页面文字样式段"""
        runs = collect_runs([sample_page])
        assert [r.text for r in runs] == ["Hello", "World"]
