"""
导出编排器 - 串联预检、事务、转曲、几何、转换与特效分层

职责：
1. 全局缺字预检（一次），未确认则在任何变换前取消
2. 逐页严格顺序执行：快照 -> 变换 -> 转曲 -> 特效分组 -> 几何 -> 转换 -> 特效页 -> 恢复
3. 页面级故障逐页收集，不因单页失败中断（可选全有或全无）
4. 追加末尾参考页（刀线）
5. 输出到文件或返回内存字节，并报告实际页数
6. 页间让出事件循环，可选回收内存

测试要点：
- test_single_page_geometry: 单页尺寸与偏移
- test_effect_page_cardinality: 特效页数量与顺序
- test_restore_after_forced_fault: 强制故障后页面恢复
- test_font_resource_fault: 字体不可用时报告资源故障且不替换字体
- test_glyph_gate_cancel: 缺字取消时不变换任何页面
- test_reference_page_appended: 末尾参考页
- test_lifecycle_events: 生命周期事件
"""

from __future__ import annotations

import asyncio
import gc
import logging
from pathlib import Path
from typing import Iterable

import fitz

from ..config import ExportConfig, get_config
from ..engine import InMemorySceneEngine
from ..fonts import FontOutlineCache, GlyphPrechecker, collect_runs
from ..interfaces import (
    ConfirmCallback,
    ConversionError,
    ExportCancelled,
    ExportError,
    FontResourceError,
    IExportListener,
    IFontProvider,
    ISceneEngine,
    VectorizationError,
)
from ..models import (
    ExportRequest,
    ExportResult,
    FaultKind,
    OutputKind,
    PageDocument,
    PageGeometry,
    PageKind,
    PageOutcome,
    PageStatus,
    RenderMode,
)
from ..render import EffectDecomposer, PageConverter, TextVectorizer, resolve_page_geometry
from ..render.svg_cleanup import count_text_primitives
from .mutations import prepare_page_for_export
from .stages import (
    STAGES_BY_NAME,
    ExportEvent,
    ExportPhase,
    ExportStage,
    PhaseContext,
    PhaseHook,
    run_phase_hooks,
)
from .transaction import PageTransaction

logger = logging.getLogger(__name__)

REFERENCE_PAGE_ID = "reference"


class ExportOrchestrator:
    """导出编排器"""

    def __init__(
        self,
        engine: ISceneEngine,
        fonts: IFontProvider | None = None,
        config: ExportConfig | None = None,
        confirm: ConfirmCallback | None = None,
        hooks: Iterable[PhaseHook] | None = None,
        listeners: Iterable[IExportListener] | None = None,
        converter: PageConverter | None = None,
    ):
        self.config = config or get_config()
        self.engine = engine
        self.fonts = fonts or FontOutlineCache(config=self.config.fonts)
        self.confirm = confirm
        self.hooks = list(hooks or [])
        self.listeners = list(listeners or [])

        self.prechecker = GlyphPrechecker(self.fonts, preview=self.config.pipeline.missing_glyph_preview)
        self.vectorizer = TextVectorizer(self.fonts, self.config.fonts)
        self.decomposer = EffectDecomposer(engine, self.config.effects)
        self.converter = converter or PageConverter(self.config)

    async def export_document(self, request: ExportRequest) -> ExportResult:
        """
        导出文档

        Raises:
            ExportCancelled: 缺字确认未通过（未变换任何页面）
            ExportError: 全有或全无模式下出现页面失败，或输出写入失败
        """
        result = ExportResult(file_name=request.file_name)
        result.mark_running(ExportStage.PRECHECK.value)
        self._emit(ExportEvent.START, {"file_name": request.file_name, "pages": len(request.pages)})
        await self._run_hooks(ExportPhase.BEFORE_EXPORT, request, result)

        await self._precheck(request, result)

        all_or_nothing = request.all_or_nothing
        if all_or_nothing is None:
            all_or_nothing = self.config.pipeline.all_or_nothing

        document = fitz.open()
        try:
            total = len(request.pages)
            for index, page in enumerate(request.pages):
                self._update_progress(
                    result,
                    ExportStage.PAGES,
                    index / total if total else 1.0,
                    f"导出页面 ({index + 1}/{total})",
                )
                outcomes = await self._export_page(document, request, result, index, page)
                self._collect(result, outcomes, all_or_nothing)
                if index + 1 < total:
                    await self._breathe()

            if request.reference_object is not None:
                self._update_progress(result, ExportStage.REFERENCE, 0.0, "导出参考页")
                outcome = await self._export_reference(document, request)
                self._collect(result, [outcome], all_or_nothing)

            self._update_progress(result, ExportStage.FINALIZE, 0.0, "输出文档")
            if document.page_count > 0:
                self._finalize(document, request, result)
            else:
                result.add_flag("无可输出页面")
        except ExportError as e:
            result.mark_failed(str(e))
            self._emit(ExportEvent.END, {"status": result.status.value, "page_count": 0})
            raise
        finally:
            document.close()

        result.mark_finished()
        if result.failed_pages:
            logger.warning(f"导出完成（部分失败）: {request.file_name}: {result.summary()}")
        else:
            logger.info(f"导出完成: {request.file_name}: {result.summary()}")

        await self._run_hooks(ExportPhase.AFTER_EXPORT, request, result)
        self._emit(
            ExportEvent.END,
            {"status": result.status.value, "page_count": result.page_count, "summary": result.summary()},
        )
        return result

    async def _precheck(self, request: ExportRequest, result: ExportResult) -> None:
        """缺字预检与确认"""
        report = await self.prechecker.run(collect_runs(request.pages))
        for family in report.unresolved:
            result.add_flag(f"字体不可用:{family}")
        if not await self.prechecker.confirm(report, self.confirm):
            summary = report.summary(self.prechecker.preview)
            result.mark_cancelled("缺字确认未通过，导出已取消")
            self._emit(ExportEvent.END, {"status": result.status.value, "page_count": 0})
            raise ExportCancelled(summary)
        for family in report.missing:
            result.add_flag(f"缺字:{family}")
        self._update_progress(result, ExportStage.PRECHECK, 1.0, "缺字预检完成")

    async def _export_page(
        self,
        document: fitz.Document,
        request: ExportRequest,
        result: ExportResult,
        index: int,
        page: PageDocument,
    ) -> list[PageOutcome]:
        """单页：事务内变换、转换并追加特效页，结束时恢复"""
        await self._run_hooks(ExportPhase.BEFORE_PAGE, request, result, page, index)

        outcomes: list[PageOutcome] = []
        transaction = PageTransaction(self.engine, page)
        transaction.begin()
        try:
            prepare_page_for_export(self.engine, page, request.render_mode)
            objects = await self.vectorizer.vectorize_objects(self.engine.get_page_objects(page))
            self.engine.set_page_objects(page, objects)
            effect_groups = self.decomposer.decompose(objects)
            await self._run_hooks(ExportPhase.PAGE_PREPARED, request, result, page, index)

            geometry = self._page_geometry(request, page)
            outcomes.append(self._convert(document, page, geometry, index, PageKind.CONTENT))
            for group in effect_groups:
                effect_page = self.decomposer.build_page(page, group)
                outcomes.append(self._convert(document, effect_page, geometry, index, PageKind.EFFECT))
        except FontResourceError as e:
            logger.warning(f"字体资源故障: {page.page_id}: {e}")
            outcomes.append(self._failed(index, page.page_id, PageKind.CONTENT, FaultKind.RESOURCE, e))
        except VectorizationError as e:
            logger.warning(f"文字转曲失败: {page.page_id}: {e}")
            outcomes.append(self._failed(index, page.page_id, PageKind.CONTENT, FaultKind.VECTORIZATION, e))
        except Exception as e:
            logger.exception(f"页面准备失败: {page.page_id}")
            outcomes.append(self._failed(index, page.page_id, PageKind.CONTENT, FaultKind.PREPARATION, e))
        finally:
            if not transaction.commit_or_restore():
                result.add_flag(f"页面恢复失败已清空:{page.page_id}")
            await self._run_hooks(ExportPhase.PAGE_RESTORED, request, result, page, index)

        return outcomes

    async def _export_reference(self, document: fitz.Document, request: ExportRequest) -> PageOutcome:
        """末尾参考页（刀线），沿用最后一个内容页的页面尺寸策略并居中"""
        try:
            reference = self.engine.clone_object(request.reference_object)
            reference = (await self.vectorizer.vectorize_objects([reference]))[0]
        except FontResourceError as e:
            logger.warning(f"参考页字体资源故障: {e}")
            return self._failed(-1, REFERENCE_PAGE_ID, PageKind.REFERENCE, FaultKind.RESOURCE, e)
        except VectorizationError as e:
            logger.warning(f"参考页文字转曲失败: {e}")
            return self._failed(-1, REFERENCE_PAGE_ID, PageKind.REFERENCE, FaultKind.VECTORIZATION, e)
        reference.paint.fill = "transparent"
        reference.transform = reference.transform.model_copy(update={"x": 0.0, "y": 0.0})
        reference.clip_id = None
        reference.effects = []

        unit = request.pages[-1].unit if request.pages else self.config.page.default_unit
        page = PageDocument(
            page_id=REFERENCE_PAGE_ID,
            objects=[reference],
            width=reference.width * abs(reference.transform.scale_x),
            height=reference.height * abs(reference.transform.scale_y),
            unit=unit,
        )
        geometry = resolve_page_geometry(
            page.width,
            page.height,
            page.unit,
            self._dpi(request),
            print_size=request.print_size,
            render_mode=RenderMode.DEFAULT,
        )
        try:
            return self._convert(document, page, geometry, -1, PageKind.REFERENCE)
        except Exception as e:
            logger.exception("参考页导出失败")
            return self._failed(-1, page.page_id, PageKind.REFERENCE, FaultKind.PREPARATION, e)

    def _convert(
        self,
        document: fitz.Document,
        page: PageDocument,
        geometry: PageGeometry,
        index: int,
        kind: PageKind,
    ) -> PageOutcome:
        """序列化并转换单个输出页"""
        try:
            vector_doc = self.engine.serialize_to_vector_document(page, geometry)
        except ConversionError as e:
            logger.warning(f"页面序列化失败: {page.page_id}: {e}")
            return self._failed(index, page.page_id, kind, FaultKind.CONVERSION, e)

        if count_text_primitives(vector_doc.svg):
            return self._failed(
                index,
                page.page_id,
                kind,
                FaultKind.VECTORIZATION,
                VectorizationError("序列化结果仍包含可编辑文字"),
            )

        conversion = self.converter.convert(document, vector_doc, geometry)
        if not conversion.ok:
            return PageOutcome(
                source_index=index,
                page_id=page.page_id,
                kind=kind,
                label=page.page_id,
                status=PageStatus.FAILED,
                fault=FaultKind.CONVERSION,
                error=conversion.error_summary(),
            )
        return PageOutcome(
            source_index=index,
            page_id=page.page_id,
            kind=kind,
            label=page.page_id,
            status=PageStatus.RECOVERED if conversion.recovered else PageStatus.SUCCEEDED,
            tier=conversion.tier,
        )

    def _dpi(self, request: ExportRequest) -> int:
        return request.dpi or self.config.page.default_dpi

    def _page_geometry(self, request: ExportRequest, page: PageDocument) -> PageGeometry:
        return resolve_page_geometry(
            page.width,
            page.height,
            page.unit,
            self._dpi(request),
            print_size=request.print_size,
            render_mode=request.render_mode,
            envelope=request.envelope,
            envelope_top_offset_mm=self.config.envelope.top_offset_mm,
        )

    def _collect(self, result: ExportResult, outcomes: list[PageOutcome], all_or_nothing: bool) -> None:
        for outcome in outcomes:
            result.record(outcome)
            self._emit(
                ExportEvent.PAGE_COMPLETE,
                {
                    "page_id": outcome.page_id,
                    "kind": outcome.kind.value,
                    "status": outcome.status.value,
                    "tier": outcome.tier.value if outcome.tier else None,
                    "percent": result.progress.percent,
                },
            )
            if outcome.status == PageStatus.FAILED and all_or_nothing:
                raise ExportError(f"页面导出失败（全有或全无）: {outcome.page_id}: {outcome.error}")

    def _finalize(self, document: fitz.Document, request: ExportRequest, result: ExportResult) -> None:
        """写出文件或返回内存字节"""
        try:
            if request.output == OutputKind.FILE:
                output_dir = Path(request.output_dir or self.config.output_dir)
                output_dir.mkdir(parents=True, exist_ok=True)
                name = request.file_name
                if not name.lower().endswith(".pdf"):
                    name = f"{name}.pdf"
                output_path = output_dir / name
                document.save(str(output_path), garbage=3, deflate=True)
                result.output_path = output_path
            else:
                result.data = document.tobytes(garbage=3, deflate=True)
        except Exception as e:
            raise ExportError(f"文档输出失败: {request.file_name}: {e}") from e
        result.page_count = document.page_count

    async def _breathe(self) -> None:
        """页间让出事件循环"""
        pipeline = self.config.pipeline
        if pipeline.aggressive_cleanup:
            gc.collect()
            await asyncio.sleep(pipeline.aggressive_yield_sec)
        else:
            await asyncio.sleep(pipeline.page_yield_sec)

    async def _run_hooks(
        self,
        phase: ExportPhase,
        request: ExportRequest,
        result: ExportResult,
        page: PageDocument | None = None,
        index: int | None = None,
    ) -> None:
        if not self.hooks:
            return
        context = PhaseContext(phase=phase, request=request, result=result, page=page, page_index=index)
        await run_phase_hooks(self.hooks, context)

    def _emit(self, event: ExportEvent, payload: dict) -> None:
        for listener in self.listeners:
            try:
                listener(event.value, payload)
            except Exception as e:
                logger.warning(f"事件监听器异常: {event.value}: {e}")

    def _update_progress(self, result: ExportResult, stage: ExportStage, fraction: float, message: str) -> None:
        result.progress.stage = stage.value
        result.progress.percent = STAGES_BY_NAME[stage.value].progress_at(fraction)
        result.progress.message = message

    @staticmethod
    def _failed(
        index: int,
        page_id: str,
        kind: PageKind,
        fault: FaultKind,
        error: Exception,
    ) -> PageOutcome:
        return PageOutcome(
            source_index=index,
            page_id=page_id,
            kind=kind,
            label=page_id,
            status=PageStatus.FAILED,
            fault=fault,
            error=str(error) or type(error).__name__,
        )


async def export_document(
    request: ExportRequest,
    engine: ISceneEngine | None = None,
    fonts: IFontProvider | None = None,
    config: ExportConfig | None = None,
    confirm: ConfirmCallback | None = None,
) -> ExportResult:
    """导出文档（便捷入口，默认使用内存场景引擎）"""
    if engine is None:
        engine = InMemorySceneEngine()
    orchestrator = ExportOrchestrator(engine, fonts=fonts, config=config, confirm=confirm)
    return await orchestrator.export_document(request)
