"""
导出期页面变换 - 在快照事务内对页面做输出专用修改

职责：
1. 按渲染模式替换/移除裁切（默认：通用边界裁切 -> 页面裁切轮廓）
2. 移除与输出无关的节点（辅助线、编辑叠加层、附件图标、隐藏节点）
3. 背景与工作区填充置为透明

测试要点：
- test_default_mode_clip_substitution: 默认模式裁切替换
- test_envelope_mode_unclipped: 信封模式移除裁切
- test_no_boundary_removes_background: 无边界模式移除背景
- test_mockup_removes_mockup: 样机模式移除样机底图
- test_strip_helpers: 移除辅助节点（含组内）
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..interfaces import ISceneEngine
from ..models import ObjectRole, PageDocument, RenderMode, SceneObject, iter_objects

TRANSPARENT = "transparent"

ALWAYS_REMOVED = frozenset({ObjectRole.GUIDE, ObjectRole.OVERLAY, ObjectRole.ACCESSORY})


class ClipPolicy(str, Enum):
    """裁切策略"""
    OUTLINE = "outline"   # 使用页面裁切轮廓
    NONE = "none"         # 不裁切


@dataclass(frozen=True)
class RenderModePolicy:
    """渲染模式策略"""
    removed_roles: frozenset[ObjectRole]
    clip: ClipPolicy


RENDER_MODE_POLICIES: dict[RenderMode, RenderModePolicy] = {
    RenderMode.DEFAULT: RenderModePolicy(frozenset(), ClipPolicy.OUTLINE),
    RenderMode.NO_BOUNDARY: RenderModePolicy(frozenset({ObjectRole.BACKGROUND}), ClipPolicy.OUTLINE),
    RenderMode.MOCKUP: RenderModePolicy(frozenset({ObjectRole.MOCKUP}), ClipPolicy.NONE),
    RenderMode.ENVELOPE: RenderModePolicy(frozenset(), ClipPolicy.NONE),
}


def prepare_page_for_export(engine: ISceneEngine, page: PageDocument, render_mode: RenderMode) -> None:
    """对页面执行导出期变换（须在事务内调用）"""
    policy = RENDER_MODE_POLICIES[render_mode]
    removed = ALWAYS_REMOVED | policy.removed_roles

    objects = _strip(engine.get_page_objects(page), removed)

    outline = next((o for o in objects if o.role == ObjectRole.CLIP_OUTLINE), None)
    boundary_ids = {o.id for o in iter_objects(objects) if o.role == ObjectRole.WORKSPACE}
    outline_id = outline.id if outline is not None else None

    if policy.clip == ClipPolicy.OUTLINE:
        # 无页面裁切轮廓时保留原有边界裁切
        detach = boundary_ids if outline_id else set()
        if outline_id:
            page.clip_id = outline_id
        replacement = outline_id
    else:
        detach = boundary_ids | ({outline_id} if outline_id else set())
        page.clip_id = None
        replacement = None

    for obj in iter_objects(objects):
        if obj.clip_id and obj.clip_id in detach:
            obj.clip_id = replacement
        if obj.role == ObjectRole.WORKSPACE:
            obj.paint.fill = TRANSPARENT

    page.background = None
    engine.set_page_objects(page, objects)


def _strip(objects: list[SceneObject], roles: frozenset[ObjectRole]) -> list[SceneObject]:
    kept: list[SceneObject] = []
    for obj in objects:
        if not obj.visible or obj.role in roles:
            continue
        if obj.children:
            obj.children = _strip(obj.children, roles)
        kept.append(obj)
    return kept
