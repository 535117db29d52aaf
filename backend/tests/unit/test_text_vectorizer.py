"""
文字转曲单元测试

每个模块完成后必须运行：pytest tests/unit/test_text_vectorizer.py -v
"""

import asyncio
import logging

import pytest

from print_export.config import FontConfig
from print_export.fonts import FontOutlineCache
from print_export.interfaces import FontResourceError, VectorizationError
from print_export.models import ObjectKind, Paint, SceneObject, TextRun
from print_export.render import TextVectorizer

TEST_FAMILY = "Test Sans"


@pytest.fixture
def vectorizer(font_cache: FontOutlineCache) -> TextVectorizer:
    return TextVectorizer(font_cache, FontConfig())


def _text(runs: list[TextRun], **kwargs) -> SceneObject:
    return SceneObject(id="t", kind=ObjectKind.TEXT, runs=runs, **kwargs)


class TestTextVectorizer:
    """文字转曲测试"""

    def test_two_runs_with_underline(self, vectorizer: TextVectorizer, text_object: SceneObject):
        """测试两个样式段生成两条路径和一条下划线"""
        result = asyncio.run(vectorizer.vectorize(text_object))
        composite = result.composite

        assert composite.kind == ObjectKind.GROUP
        assert [c.id for c in composite.children] == ["title_run0", "title_run1", "title_run1_underline"]
        assert result.underline_count == 1

        hello, world = result.runs
        assert hello.advance == pytest.approx(72.0)
        assert world.advance == pytest.approx(108.0)
        assert world.underline_top == pytest.approx(35.4)

        underline = composite.children[2]
        assert underline.path_data == "M80 35.4L188 35.4L188 37.2L80 37.2Z"
        assert underline.paint.fill == "red"

    def test_composite_keeps_identity(self, vectorizer: TextVectorizer, text_object: SceneObject):
        """测试组合节点继承 id、class、透明度与变换"""
        composite = asyncio.run(vectorizer.vectorize(text_object)).composite
        assert composite.id == "title"
        assert composite.css_class == "headline"
        assert composite.paint.opacity == 0.8
        assert composite.transform == text_object.transform
        assert composite.transform is not text_object.transform

    def test_run_baseline_placement(self, vectorizer: TextVectorizer):
        """测试样式段在自身基线处绘制"""
        obj = _text([TextRun(text="A", font_family=TEST_FAMILY, font_size=10, x=5, y=30)])
        composite = asyncio.run(vectorizer.vectorize(obj)).composite
        assert composite.children[0].path_data.startswith("M5.5 30")

    def test_blank_run_skipped(self, vectorizer: TextVectorizer):
        """测试空白样式段不生成几何"""
        obj = _text(
            [
                TextRun(text="   ", font_family="Unknown"),
                TextRun(text="Hi", font_family=TEST_FAMILY),
            ]
        )
        result = asyncio.run(vectorizer.vectorize(obj))
        assert [c.id for c in result.composite.children] == ["t_run1"]

    def test_empty_outline_run_skipped(self, vectorizer: TextVectorizer):
        """测试全部为空轮廓的样式段不生成路径"""
        obj = _text([TextRun(text="QQ", font_family=TEST_FAMILY)])
        result = asyncio.run(vectorizer.vectorize(obj))
        assert result.composite.children == []
        assert result.runs[0].advance == pytest.approx(19.2)

    def test_empty_outline_run_keeps_underline(self, vectorizer: TextVectorizer):
        """测试空轮廓样式段仍按前进宽度绘制下划线"""
        obj = _text([TextRun(text="QQ", font_family=TEST_FAMILY, font_size=20, underline=True, x=10, y=50)])
        result = asyncio.run(vectorizer.vectorize(obj))

        assert [c.id for c in result.composite.children] == ["t_run0_underline"]
        assert result.underline_count == 1
        assert result.composite.children[0].path_data == "M10 53L34 53L34 54L10 54Z"

    def test_default_font_size_from_config(self, font_cache: FontOutlineCache):
        """测试未指定字号的样式段使用配置默认字号"""
        vectorizer = TextVectorizer(font_cache, FontConfig(default_font_size=40))
        obj = _text([TextRun(text="AB", font_family=TEST_FAMILY, underline=True)])
        layout = asyncio.run(vectorizer.vectorize(obj)).runs[0]

        assert layout.font_size == 40
        assert layout.advance == pytest.approx(48.0)
        assert layout.underline_top == pytest.approx(6.0)

    def test_fill_fallback(self, vectorizer: TextVectorizer):
        """测试填充色回退：样式段 > 节点 > 默认"""
        node_fill = _text([TextRun(text="A", font_family=TEST_FAMILY)], paint=Paint(fill="#00ff00"))
        default_fill = _text([TextRun(text="A", font_family=TEST_FAMILY)])

        first = asyncio.run(vectorizer.vectorize(node_fill)).composite.children[0]
        second = asyncio.run(vectorizer.vectorize(default_fill)).composite.children[0]
        assert first.paint.fill == "#00ff00"
        assert second.paint.fill == "black"

    def test_stroke_preserved(self, vectorizer: TextVectorizer):
        """测试保留描边"""
        obj = _text([TextRun(text="A", font_family=TEST_FAMILY, stroke="#111111", stroke_width=0.5)])
        child = asyncio.run(vectorizer.vectorize(obj)).composite.children[0]
        assert child.paint.stroke == "#111111"
        assert child.paint.stroke_width == 0.5

    def test_font_failure_is_fatal(self, vectorizer: TextVectorizer):
        """测试字体不可用时抛 FontResourceError（不替换字体）"""
        obj = _text([TextRun(text="A", font_family="Unknown")])
        with pytest.raises(FontResourceError):
            asyncio.run(vectorizer.vectorize(obj))

    def test_non_text_rejected(self, vectorizer: TextVectorizer):
        """测试非文字节点"""
        with pytest.raises(VectorizationError):
            asyncio.run(vectorizer.vectorize(SceneObject(id="r", kind=ObjectKind.RECT)))

    def test_bold_weight_logged_once(self, vectorizer: TextVectorizer, caplog):
        """测试粗体只告警一次"""
        obj = _text(
            [
                TextRun(text="A", font_family=TEST_FAMILY, font_weight="bold"),
                TextRun(text="B", font_family=TEST_FAMILY, font_weight=700, x=20),
            ]
        )
        with caplog.at_level(logging.WARNING, logger="print_export"):
            asyncio.run(vectorizer.vectorize(obj))
        assert sum("字重 700 未生效" in r.getMessage() for r in caplog.records) == 1

    def test_nested_text_in_group(self, vectorizer: TextVectorizer, text_object: SceneObject):
        """测试组内文字原位替换并保持顺序"""
        group = SceneObject(
            id="g",
            kind=ObjectKind.GROUP,
            children=[SceneObject(id="before", kind=ObjectKind.RECT), text_object],
        )
        objects = asyncio.run(vectorizer.vectorize_objects([group]))

        new_group = objects[0]
        assert [c.id for c in new_group.children] == ["before", "title"]
        assert new_group.children[1].kind == ObjectKind.GROUP
        assert not any(o.is_text for o in new_group.iter_tree())
        # 原对象未被修改
        assert group.children[1].kind == ObjectKind.TEXT
