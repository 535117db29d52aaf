"""
字体文件定位 - 按字体族名查找字体文件

查找顺序：
1. 配置 fonts.families 中的显式映射
2. 直接路径
3. font_dirs 下递归查找，文件名（忽略大小写与空格）包含字体族名
"""

from __future__ import annotations

from pathlib import Path

from ..config import FontConfig
from ..interfaces import FontResourceError

_FONT_EXTENSIONS = (".ttf", ".otf", ".ttc")


class FontDirectoryResolver:
    """基于目录的字体定位器"""

    def __init__(self, font_dirs: list[str] | None = None, families: dict[str, str] | None = None):
        self.font_dirs = [Path(d).expanduser() for d in (font_dirs or [])]
        self.families = dict(families or {})
        self._files: tuple[Path, ...] | None = None

    @classmethod
    def from_config(cls, config: FontConfig) -> FontDirectoryResolver:
        return cls(font_dirs=config.font_dirs, families=config.families)

    async def __call__(self, family: str) -> Path:
        return self.find(family)

    def find(self, family: str) -> Path:
        """定位字体文件，找不到抛 FontResourceError"""
        mapped = self.families.get(family)
        if mapped:
            path = Path(mapped).expanduser()
            if path.is_file():
                return path.resolve()
            raise FontResourceError(f"字体映射文件不存在: {family} -> {mapped}")

        direct = Path(family).expanduser()
        if direct.suffix.lower() in _FONT_EXTENSIONS and direct.is_file():
            return direct.resolve()

        key = _normalize(family)
        for fp in self._list_files():
            if key and (key in _normalize(fp.stem) or key in _normalize(fp.name)):
                return fp

        searched = ", ".join(str(d) for d in self.font_dirs) or "(none)"
        raise FontResourceError(f"未找到字体: {family} (searched_dirs={searched})")

    def _list_files(self) -> tuple[Path, ...]:
        if self._files is not None:
            return self._files
        seen: set[Path] = set()
        for root in self.font_dirs:
            if not root.is_dir():
                continue
            for ext in _FONT_EXTENSIONS:
                for fp in root.glob(f"**/*{ext}"):
                    if fp.is_file():
                        seen.add(fp.resolve())
        self._files = tuple(sorted(seen))
        return self._files


def _normalize(name: str) -> str:
    return name.lower().replace(" ", "").replace("-", "").replace("_", "")
