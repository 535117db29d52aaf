"""
流水线模块 - 导出编排与执行

子模块：
- stages: 导出阶段、钩子与事件定义
- transaction: 页面快照事务
- mutations: 导出期页面变换
- orchestrator: 导出编排器
"""

from .mutations import RENDER_MODE_POLICIES, prepare_page_for_export
from .orchestrator import ExportOrchestrator, export_document
from .stages import (
    EXPORT_STAGES,
    ExportEvent,
    ExportPhase,
    ExportStage,
    PhaseContext,
    PhaseHook,
    PipelineStage,
)
from .transaction import PageSnapshot, PageTransaction

__all__ = [
    "ExportOrchestrator",
    "export_document",
    "PageTransaction",
    "PageSnapshot",
    "prepare_page_for_export",
    "RENDER_MODE_POLICIES",
    "PipelineStage",
    "EXPORT_STAGES",
    "ExportStage",
    "ExportPhase",
    "ExportEvent",
    "PhaseContext",
    "PhaseHook",
]
