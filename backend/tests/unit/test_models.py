"""
数据模型单元测试

每个模块完成后必须运行：pytest tests/unit/test_models.py -v
"""

import pytest
from pydantic import ValidationError

from print_export.models import (
    ExportRequest,
    ExportResult,
    ExportStatus,
    FaultKind,
    ObjectKind,
    ObjectRole,
    PageDocument,
    PageKind,
    PageOutcome,
    PageStatus,
    PrintSize,
    SceneObject,
    TextRun,
    Transform,
    parse_font_weight,
)


class TestTransform:
    """几何变换测试"""

    def test_identity(self):
        """测试单位变换"""
        assert Transform().is_identity
        assert Transform().to_svg() == ""

    def test_to_svg_order(self):
        """测试变换顺序：平移、旋转、缩放"""
        t = Transform(x=10, y=20.5, rotation=15, scale_x=2)
        assert t.to_svg() == "translate(10 20.5) rotate(15) scale(2 1)"

    def test_flip_as_negative_scale(self):
        """测试翻转转为负缩放"""
        t = Transform(flip_x=True)
        assert t.to_svg() == "scale(-1 1)"


class TestTextRun:
    """文字样式段测试"""

    @pytest.mark.parametrize(
        "value,expected",
        [("bold", 700), ("normal", 400), ("", 400), ("600", 600), (300, 300), (None, 400)],
    )
    def test_parse_font_weight(self, value, expected):
        """测试字重解析"""
        assert parse_font_weight(value) == expected

    def test_weight_validator(self):
        """测试字段校验时解析字重"""
        run = TextRun(text="A", font_family="X", font_weight="bold")
        assert run.font_weight == 700

    def test_is_blank(self):
        """测试空白段判定"""
        assert TextRun(text="  \n", font_family="X").is_blank
        assert not TextRun(text=" a ", font_family="X").is_blank


class TestPageDocument:
    """页面文档测试"""

    def test_find_nested(self):
        """测试按id查找组内节点"""
        page = PageDocument(
            page_id="p",
            width=10,
            height=10,
            objects=[
                SceneObject(
                    id="g",
                    kind=ObjectKind.GROUP,
                    children=[SceneObject(id="inner", kind=ObjectKind.RECT)],
                )
            ],
        )
        assert page.find("inner") is not None
        assert page.find("nope") is None

    def test_find_role_and_text(self, sample_page: PageDocument):
        """测试按角色查找与文字节点列举"""
        assert sample_page.find_role(ObjectRole.WORKSPACE).id == "workspace"
        assert [o.id for o in sample_page.text_objects()] == ["title"]


class TestExportRequest:
    """导出请求测试"""

    def test_print_size_parse(self):
        """测试打印尺寸解析"""
        size = PrintSize.parse("210x297")
        assert size.width_mm == 210
        assert size.height_mm == 297

    def test_print_size_positive(self):
        """测试打印尺寸必须为正"""
        with pytest.raises(ValidationError):
            PrintSize(width_mm=0, height_mm=100)

    def test_defaults(self):
        """测试默认值"""
        request = ExportRequest()
        assert request.dpi is None
        assert request.all_or_nothing is None
        assert request.print_size is None


class TestExportResult:
    """导出结果测试"""

    def _outcome(self, status: PageStatus, error: str | None = None) -> PageOutcome:
        return PageOutcome(source_index=0, page_id="p", kind=PageKind.CONTENT, status=status, error=error)

    def test_record_counts_only_output_pages(self):
        """测试只统计实际输出页"""
        result = ExportResult(file_name="a")
        result.record(self._outcome(PageStatus.SUCCEEDED))
        result.record(self._outcome(PageStatus.RECOVERED))
        result.record(self._outcome(PageStatus.FAILED, "boom"))

        assert result.page_count == 2
        assert len(result.failed_pages) == 1
        assert result.errors == ["p: boom"]
        assert result.summary() == "成功 1 页，恢复 1 页，失败 1 页"

    def test_mark_finished_status(self):
        """测试完成状态判定"""
        empty = ExportResult(file_name="a")
        empty.mark_finished()
        assert empty.status == ExportStatus.FAILED

        partial = ExportResult(file_name="a")
        partial.record(self._outcome(PageStatus.SUCCEEDED))
        partial.record(
            PageOutcome(
                source_index=1,
                page_id="q",
                status=PageStatus.FAILED,
                fault=FaultKind.CONVERSION,
            )
        )
        partial.mark_finished()
        assert partial.status == ExportStatus.PARTIAL
        assert partial.progress.percent == 100

    def test_add_flag_dedup(self):
        """测试告警标记去重"""
        result = ExportResult(file_name="a")
        result.add_flag("缺字:X")
        result.add_flag("缺字:X")
        assert result.flags == ["缺字:X"]

    def test_data_excluded_from_dump(self):
        """测试内存字节不参与序列化"""
        result = ExportResult(file_name="a", data=b"%PDF")
        assert "data" not in result.model_dump()
