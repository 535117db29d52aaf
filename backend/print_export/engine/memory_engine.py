"""
内存场景引擎 - ISceneEngine 的参考实现

页面对象直接保存在 PageDocument 中；序列化委托 SvgDocumentWriter。
供命令行工具与单元测试使用，交互式编辑引擎可按同一接口接入。
"""

from __future__ import annotations

import logging

from ..interfaces import ConversionError, ISceneEngine
from ..models import PageDocument, PageGeometry, SceneObject, VectorDocument
from ..render.svg_writer import SvgDocumentWriter

logger = logging.getLogger(__name__)


class InMemorySceneEngine(ISceneEngine):
    """内存场景引擎"""

    def __init__(self, writer: SvgDocumentWriter | None = None):
        self.writer = writer or SvgDocumentWriter()

    def get_page_objects(self, page: PageDocument) -> list[SceneObject]:
        return page.objects

    def set_page_objects(self, page: PageDocument, objects: list[SceneObject]) -> None:
        page.objects = list(objects)

    def serialize_to_vector_document(
        self,
        page: PageDocument,
        geometry: PageGeometry,
    ) -> VectorDocument:
        try:
            return self.writer.write(page, geometry)
        except Exception as e:
            raise ConversionError(f"页面序列化失败: {page.page_id}: {e}") from e

    def clone_object(self, obj: SceneObject) -> SceneObject:
        return obj.model_copy(deep=True)

    def clear_page(self, page: PageDocument) -> None:
        logger.warning(f"强制清空页面: {page.page_id}")
        page.objects = []
        page.clip_id = None
