"""
字形预检 - 导出前全局检查缺字并请求调用方确认

职责：
1. 汇总全部页面的文字样式段，按字体族合并文本
2. 逐字体族检查缺失字符（去重、忽略空白）
3. 生成统一的缺字报告（字体族 -> 缺失字符）
4. 存在缺字时调用确认回调；未提供回调时默认取消

测试要点：
- test_report_groups_by_family: 按字体族汇总
- test_unresolved_family_skipped: 无法加载的字体族记录后跳过
- test_summary_preview_limit: 摘要每个字体最多列出N个字符
- test_gate_default_cancel: 无回调时取消
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import Iterable

from ..interfaces import ConfirmCallback, FontResourceError, IFontProvider
from ..models import PageDocument, TextRun, iter_objects

logger = logging.getLogger(__name__)


@dataclass
class GlyphReport:
    """缺字报告"""
    missing: dict[str, list[str]] = field(default_factory=dict)
    unresolved: list[str] = field(default_factory=list)
    checked_chars: int = 0
    total_chars: int = 0

    @property
    def has_missing(self) -> bool:
        return any(self.missing.values())

    def summary(self, preview: int = 5) -> str:
        """可读的缺字摘要（每个字体最多列出preview个字符）"""
        lines = []
        for family, chars in self.missing.items():
            if not chars:
                continue
            shown = ", ".join(chars[:preview])
            rest = len(chars) - preview
            if rest > 0:
                shown += f" … and {rest} more"
            lines.append(f"{family}: {shown}")
        return "\n".join(lines)


def collect_runs(pages: Iterable[PageDocument]) -> list[TextRun]:
    """收集全部页面（含组内）的文字样式段"""
    runs: list[TextRun] = []
    for page in pages:
        for obj in iter_objects(page.objects):
            if obj.is_text:
                runs.extend(obj.runs)
    return runs


class GlyphPrechecker:
    """字形预检器"""

    def __init__(self, fonts: IFontProvider, preview: int = 5):
        self.fonts = fonts
        self.preview = preview

    async def run(self, runs: Iterable[TextRun]) -> GlyphReport:
        """检查全部样式段"""
        by_family: dict[str, list[str]] = {}
        for run in runs:
            if run.is_blank:
                continue
            by_family.setdefault(run.font_family, []).append(run.text)

        report = GlyphReport()
        for family, texts in by_family.items():
            text = "".join(texts)
            try:
                support = await self.fonts.check_glyph_support(family, text)
            except FontResourceError as e:
                logger.warning(f"缺字检查跳过（字体不可用）: {family}: {e}")
                report.unresolved.append(family)
                continue
            report.checked_chars += support.checked
            report.total_chars += support.total
            if support.missing:
                report.missing[family] = list(support.missing)
                logger.warning(f"字体缺字: {family}: {''.join(support.missing)}")
        return report

    async def confirm(self, report: GlyphReport, callback: ConfirmCallback | None) -> bool:
        """缺字时请求继续/取消决定（无缺字直接通过）"""
        if not report.has_missing:
            return True
        if callback is None:
            logger.warning(f"存在缺字且未提供确认回调，取消导出:\n{report.summary(self.preview)}")
            return False
        decision = callback(report)
        if inspect.isawaitable(decision):
            decision = await decision
        return bool(decision)
