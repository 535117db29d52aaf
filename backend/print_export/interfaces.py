"""
模块接口契约 - 定义协作方与各模块的抽象接口

设计原则：
1. 编辑引擎、字体子系统通过接口接入，不直接依赖具体实现
2. 每个接口定义清晰的输入输出类型
3. 便于单元测试和mock替换

使用方式：
    from print_export.interfaces import ISceneEngine

    class MyEngine(ISceneEngine):
        def get_page_objects(self, page: PageDocument) -> list[SceneObject]:
            ...
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Awaitable, Callable, Protocol, Union

if TYPE_CHECKING:
    from .fonts.outline import FontOutlineResource, GlyphSupport
    from .fonts.glyph_check import GlyphReport
    from .models import PageDocument, PageGeometry, SceneObject, VectorDocument


# ============================================================================
# 编辑引擎接口（协作方）
# ============================================================================

class ISceneEngine(ABC):
    """场景引擎接口 - 页面对象读写、序列化与克隆"""

    @abstractmethod
    def get_page_objects(self, page: PageDocument) -> list[SceneObject]:
        """
        获取页面的有序对象列表（活动对象，非副本）

        Args:
            page: 页面文档

        Returns:
            页面对象列表
        """
        ...

    @abstractmethod
    def set_page_objects(self, page: PageDocument, objects: list[SceneObject]) -> None:
        """
        整体替换页面对象

        Args:
            page: 页面文档
            objects: 新的有序对象列表
        """
        ...

    @abstractmethod
    def serialize_to_vector_document(
        self,
        page: PageDocument,
        geometry: PageGeometry,
    ) -> VectorDocument:
        """
        将页面序列化为中间矢量文档

        Args:
            page: 已完成导出变换的页面
            geometry: 页面几何（决定文档物理尺寸）

        Returns:
            中间矢量文档

        Raises:
            ConversionError: 序列化失败
        """
        ...

    @abstractmethod
    def clone_object(self, obj: SceneObject) -> SceneObject:
        """深拷贝对象"""
        ...

    @abstractmethod
    def clear_page(self, page: PageDocument) -> None:
        """强制清空页面（恢复失败时的最后手段）"""
        ...


# ============================================================================
# 字体子系统接口（协作方）
# ============================================================================

class IFontProvider(ABC):
    """字体提供者接口 - 解析字体轮廓资源"""

    @abstractmethod
    async def resolve_outline_resource(self, font_family: str) -> FontOutlineResource:
        """
        解析字体族的轮廓资源（异步、按字体族缓存）

        Args:
            font_family: 字体族名称

        Returns:
            已加载的轮廓资源

        Raises:
            FontResourceError: 无法解析或加载
        """
        ...

    @abstractmethod
    async def check_glyph_support(self, font_family: str, text: str) -> GlyphSupport:
        """
        检查字体对文本的字形支持

        Args:
            font_family: 字体族名称
            text: 待检查文本

        Returns:
            缺失字符结果
        """
        ...


# ============================================================================
# 调用方钩子
# ============================================================================

ConfirmResult = Union[bool, Awaitable[bool]]
ConfirmCallback = Callable[["GlyphReport"], ConfirmResult]


class IExportListener(Protocol):
    """导出生命周期监听器协议"""

    def __call__(self, event: str, payload: dict) -> None:
        """接收 export:start / export:page-complete / export:end 事件"""
        ...


# ============================================================================
# 异常定义
# ============================================================================

class PrintExportError(Exception):
    """基础异常"""
    pass


class ExportCancelled(PrintExportError):
    """导出被取消（缺字确认未通过）"""
    pass


class FontResourceError(PrintExportError):
    """字体资源错误"""
    pass


class VectorizationError(PrintExportError):
    """文字转曲错误"""
    pass


class ConversionError(PrintExportError):
    """转换错误"""
    pass


class TransactionError(PrintExportError):
    """快照事务错误"""
    pass


class ExportError(PrintExportError):
    """导出错误"""
    pass
