"""
引擎模块 - 编辑引擎协作方的参考实现
"""

from .memory_engine import InMemorySceneEngine

__all__ = ["InMemorySceneEngine"]
