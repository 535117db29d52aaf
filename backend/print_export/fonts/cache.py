"""
字体轮廓缓存 - 按字体族读穿式解析并缓存轮廓资源

职责：
1. 按字体族异步解析（同一字体族并发请求共享一次加载）
2. 资源状态：unloaded -> loading -> loaded | failed
3. 只追加不驱逐；失败的字体族在缓存生命周期内保持失败
4. 由调用方注入（按导出调用或跨调用复用），不使用全局单例

测试要点：
- test_resolve_memoized: 重复解析只加载一次
- test_failed_family_stays_failed: 永久失败不重试
- test_check_glyph_support: 缺字检查
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Union

from ..config import FontConfig, get_config
from ..interfaces import FontResourceError, IFontProvider
from .outline import FontOutlineResource, GlyphSupport, find_missing_glyphs
from .resolver import FontDirectoryResolver

logger = logging.getLogger(__name__)

FontSource = Union[Path, str, bytes]
FontResolver = Callable[[str], Awaitable[FontSource]]


class FontResourceState(str, Enum):
    """字体资源状态"""
    UNLOADED = "unloaded"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


class FontOutlineCache(IFontProvider):
    """字体轮廓缓存"""

    def __init__(self, resolver: FontResolver | None = None, config: FontConfig | None = None):
        if resolver is None:
            resolver = FontDirectoryResolver.from_config(config or get_config().fonts)
        self._resolver = resolver
        self._resources: dict[str, FontOutlineResource] = {}
        self._failures: dict[str, str] = {}
        self._states: dict[str, FontResourceState] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self.load_count = 0

    def state(self, family: str) -> FontResourceState:
        """获取字体族的资源状态"""
        return self._states.get(family, FontResourceState.UNLOADED)

    def add(self, resource: FontOutlineResource) -> None:
        """登记已加载的资源"""
        if resource.family in self._resources:
            return
        self._resources[resource.family] = resource
        self._states[resource.family] = FontResourceState.LOADED

    async def resolve_outline_resource(self, font_family: str) -> FontOutlineResource:
        """解析字体族（读穿式缓存）"""
        cached = self._lookup(font_family)
        if cached is not None:
            return cached

        lock = self._locks.setdefault(font_family, asyncio.Lock())
        async with lock:
            cached = self._lookup(font_family)
            if cached is not None:
                return cached

            self._states[font_family] = FontResourceState.LOADING
            self.load_count += 1
            try:
                source = await self._resolver(font_family)
                resource = FontOutlineResource.load(font_family, source)
            except Exception as e:
                message = str(e) if isinstance(e, FontResourceError) else f"字体资源加载失败: {font_family}: {e}"
                self._failures[font_family] = message
                self._states[font_family] = FontResourceState.FAILED
                logger.warning(message)
                raise FontResourceError(message) from e

            self._resources[font_family] = resource
            self._states[font_family] = FontResourceState.LOADED
            logger.debug(f"字体资源已加载: {font_family} <- {resource.source}")
            return resource

    async def check_glyph_support(self, font_family: str, text: str) -> GlyphSupport:
        """检查字体对文本的字形支持"""
        resource = await self.resolve_outline_resource(font_family)
        return find_missing_glyphs(resource, text)

    def _lookup(self, family: str) -> FontOutlineResource | None:
        resource = self._resources.get(family)
        if resource is not None:
            return resource
        failure = self._failures.get(family)
        if failure is not None:
            raise FontResourceError(failure)
        return None
