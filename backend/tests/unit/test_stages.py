"""
导出阶段与日志单元测试

每个模块完成后必须运行：pytest tests/unit/test_stages.py -v
"""

import asyncio
import logging

from print_export.config import LoggingConfig
from print_export.logging_setup import LOGGER_NAME, setup_logging
from print_export.models import ExportRequest, ExportResult
from print_export.pipeline import EXPORT_STAGES, ExportPhase, PhaseContext, PhaseHook
from print_export.pipeline.stages import run_phase_hooks


class TestStages:
    """导出阶段测试"""

    def test_stage_progress_ranges(self):
        """测试进度区间连续且覆盖0-100"""
        assert EXPORT_STAGES[0].progress_start == 0
        assert EXPORT_STAGES[-1].progress_end == 100
        for prev, cur in zip(EXPORT_STAGES, EXPORT_STAGES[1:]):
            assert prev.progress_end == cur.progress_start

    def test_progress_at_clamped(self):
        """测试阶段内进度截断"""
        pages = EXPORT_STAGES[1]
        assert pages.progress_at(-1) == 5
        assert pages.progress_at(0.5) == 47
        assert pages.progress_at(2) == 90

    def test_phase_hooks_filter(self):
        """测试只执行对应阶段的钩子"""
        calls = []

        async def _handler(context):
            calls.append(context.phase)

        hooks = [
            PhaseHook(ExportPhase.BEFORE_PAGE, _handler),
            PhaseHook(ExportPhase.AFTER_EXPORT, _handler),
        ]
        context = PhaseContext(
            phase=ExportPhase.AFTER_EXPORT,
            request=ExportRequest(),
            result=ExportResult(file_name="x"),
        )
        asyncio.run(run_phase_hooks(hooks, context))
        assert calls == [ExportPhase.AFTER_EXPORT]


class TestLogging:
    """日志初始化测试"""

    def test_setup_logging_level(self):
        """测试日志级别生效"""
        logger = setup_logging(LoggingConfig(log_level="debug"))
        assert logger.name == LOGGER_NAME
        assert logger.level == logging.DEBUG

    def test_setup_logging_idempotent(self):
        """测试重复调用不重复添加handler"""
        logger = setup_logging(LoggingConfig())
        count = len(logger.handlers)
        setup_logging(LoggingConfig())
        assert len(logger.handlers) == count

    def test_setup_logging_file(self, temp_dir):
        """测试写入日志文件"""
        log_file = temp_dir / "logs" / "export.log"
        logger = setup_logging(LoggingConfig(log_to_file=True, log_file=str(log_file)))
        setup_logging(LoggingConfig(log_to_file=True, log_file=str(log_file)))
        try:
            file_handlers = [h for h in logger.handlers if isinstance(h, logging.FileHandler)]
            assert len(file_handlers) == 1
            assert log_file.parent.is_dir()
        finally:
            for handler in [h for h in logger.handlers if isinstance(h, logging.FileHandler)]:
                logger.removeHandler(handler)
                handler.close()
