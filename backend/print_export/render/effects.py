"""
特效分层 - 按印刷特效标签拆出独立输出页

职责：
1. 收集页面中（含组内）出现的全部特效标签
2. 每个标签生成一组克隆对象：位置与原页一致，统一填充为该特效的呈现色
3. 背景/工作区/裁切轮廓等角色不参与
4. 不修改主内容页上的原对象（特效对象在主页照常渲染）

测试要点：
- test_two_tags_two_groups: 两种标签得到两组
- test_clone_recolored: 克隆对象改色且原对象不变
- test_nested_tag_keeps_parent_transform: 组内标签保留父级变换
- test_group_order: 按配置顺序，未知标签按出现顺序
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..config import EffectConfig, get_config
from ..interfaces import ISceneEngine
from ..models import ObjectKind, ObjectRole, PageDocument, SceneObject

EXCLUDED_ROLES = frozenset(
    {
        ObjectRole.BACKGROUND,
        ObjectRole.WORKSPACE,
        ObjectRole.CLIP_OUTLINE,
        ObjectRole.MOCKUP,
        ObjectRole.GUIDE,
        ObjectRole.OVERLAY,
        ObjectRole.ACCESSORY,
    }
)


@dataclass
class EffectGroup:
    """单个特效标签的对象分组"""
    tag: str
    color: str
    objects: list[SceneObject] = field(default_factory=list)


class EffectDecomposer:
    """特效分层器"""

    def __init__(self, engine: ISceneEngine, config: EffectConfig | None = None):
        self.engine = engine
        self.config = config or get_config().effects

    def collect_tags(self, objects: list[SceneObject]) -> list[str]:
        """页面中出现的特效标签（按输出顺序）"""
        seen: dict[str, None] = {}

        def _walk(items: list[SceneObject]) -> None:
            for obj in items:
                if obj.role in EXCLUDED_ROLES:
                    continue
                for tag in obj.effects:
                    seen.setdefault(tag, None)
                _walk(obj.children)

        _walk(objects)
        ordered = [tag for tag in self.config.order if tag in seen]
        ordered.extend(tag for tag in seen if tag not in self.config.order)
        return ordered

    def decompose(self, objects: list[SceneObject]) -> list[EffectGroup]:
        """按标签分组并生成改色克隆"""
        groups: list[EffectGroup] = []
        for tag in self.collect_tags(objects):
            color = self.config.color_for(tag)
            clones = []
            for obj in objects:
                if obj.role in EXCLUDED_ROLES:
                    continue
                extracted = self._extract(obj, tag, color)
                if extracted is not None:
                    clones.append(extracted)
            groups.append(EffectGroup(tag=tag, color=color, objects=clones))
        return groups

    def build_page(self, source: PageDocument, group: EffectGroup) -> PageDocument:
        """特效页：与源页同尺寸，无背景、无裁切"""
        return PageDocument(
            page_id=f"{source.page_id}:{group.tag}",
            objects=group.objects,
            width=source.width,
            height=source.height,
            unit=source.unit,
            clip_id=None,
            background=None,
        )

    def _extract(self, obj: SceneObject, tag: str, color: str) -> SceneObject | None:
        """带标签的子树整体克隆；仅子节点带标签时保留父级外壳"""
        if tag in obj.effects:
            return self._recolor(self.engine.clone_object(obj), color)
        if obj.kind != ObjectKind.GROUP:
            return None
        kept = []
        for child in obj.children:
            if child.role in EXCLUDED_ROLES:
                continue
            extracted = self._extract(child, tag, color)
            if extracted is not None:
                kept.append(extracted)
        if not kept:
            return None
        shell = self.engine.clone_object(obj.model_copy(update={"children": []}))
        shell.children = kept
        shell.clip_id = None
        return shell

    def _recolor(self, obj: SceneObject, color: str) -> SceneObject:
        obj.clip_id = None
        if obj.kind == ObjectKind.IMAGE:
            # 轮廓提取不在本模块，图片以其外接矩形表示
            obj.kind = ObjectKind.RECT
            obj.image_href = None
        if obj.kind == ObjectKind.GROUP:
            obj.children = [self._recolor(child, color) for child in obj.children]
            return obj
        if obj.kind == ObjectKind.TEXT:
            for run in obj.runs:
                run.fill = color
        obj.paint.fill = color
        if obj.paint.stroke:
            obj.paint.stroke = color
        return obj
