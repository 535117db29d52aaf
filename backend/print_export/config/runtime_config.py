"""
运行期配置 - 读取 config/export_runtime.yaml

职责：
- 加载页面/字体/图片/栅格化/特效/流水线等运行参数
- 提供环境变量覆盖机制（PRINT_EXPORT_ 前缀）
- 类型安全的配置访问
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

DEFAULT_CONFIG_PATH = Path("config/export_runtime.yaml")


class PageConfig(BaseModel):
    """页面配置"""

    default_dpi: int = 150
    default_unit: str = "px"


class EnvelopeConfig(BaseModel):
    """信封模式配置"""

    top_offset_mm: float = 0.5


class FontConfig(BaseModel):
    """字体配置"""

    font_dirs: list[str] = Field(default_factory=list)
    families: dict[str, str] = Field(default_factory=dict, description="字体族 -> 字体文件路径")
    default_font_size: float = 16.0
    default_fill: str = "black"
    underline_thickness_ratio: float = 0.05
    underline_offset_ratio: float = 0.15


class ImageConfig(BaseModel):
    """内嵌图片预处理配置"""

    max_inline_bytes: int = 5 * 1024 * 1024
    max_side_alpha: int = 1536
    max_side_opaque: int = 2048
    jpeg_quality: int = 85
    allowed_mimes: list[str] = Field(
        default_factory=lambda: [
            "image/jpeg",
            "image/png",
            "image/gif",
            "image/webp",
            "image/svg+xml",
        ]
    )


class RasterConfig(BaseModel):
    """栅格化兜底配置"""

    zoom: float = 2.0


class EffectConfig(BaseModel):
    """印刷特效配置"""

    colors: dict[str, str] = Field(
        default_factory=lambda: {
            "raised-finish": "#d3d3d3",
            "foil": "#FFD700",
            "die-cut": "#dbecea",
        }
    )
    default_color: str = "#000000"
    order: list[str] = Field(
        default_factory=lambda: ["raised-finish", "die-cut", "foil"]
    )

    def color_for(self, tag: str) -> str:
        """获取特效的呈现颜色"""
        return self.colors.get(tag, self.default_color)


class PipelineConfig(BaseModel):
    """流水线配置"""

    page_yield_sec: float = 0.1
    aggressive_cleanup: bool = False
    aggressive_yield_sec: float = 0.2
    all_or_nothing: bool = False
    missing_glyph_preview: int = 5


class LoggingConfig(BaseModel):
    """日志配置"""

    log_level: str = "INFO"
    log_to_file: bool = False
    log_file: str = "logs/print_export.log"


class ExportConfig(BaseSettings):
    """运行期配置（支持环境变量覆盖）"""

    base_dir: Path = Path(".")
    output_dir: Path = Path("output")

    page: PageConfig = Field(default_factory=PageConfig)
    envelope: EnvelopeConfig = Field(default_factory=EnvelopeConfig)
    fonts: FontConfig = Field(default_factory=FontConfig)
    images: ImageConfig = Field(default_factory=ImageConfig)
    raster: RasterConfig = Field(default_factory=RasterConfig)
    effects: EffectConfig = Field(default_factory=EffectConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {
        "env_prefix": "PRINT_EXPORT_",
        "env_nested_delimiter": "__",
        "arbitrary_types_allowed": True,
    }

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> ExportConfig:
        """从YAML文件加载配置"""
        path = Path(yaml_path)
        if not path.exists():
            return cls()

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        opts = data.get("export_options", {})

        config = cls(
            base_dir=path.parent,
            page=PageConfig(**cls._extract(opts, "page")),
            envelope=EnvelopeConfig(**cls._extract(opts, "envelope")),
            fonts=FontConfig(**cls._extract(opts, "fonts")),
            images=ImageConfig(**cls._extract(opts, "images")),
            raster=RasterConfig(**cls._extract(opts, "raster")),
            effects=EffectConfig(**cls._extract(opts, "effects")),
            pipeline=PipelineConfig(**cls._extract(opts, "pipeline")),
            logging=LoggingConfig(**cls._extract(opts, "logging")),
        )

        config._resolve_paths(base_dir=path.parent)
        return config

    @staticmethod
    def _extract(data: dict[str, Any], key: str) -> dict[str, Any]:
        """提取并展平配置（支持 {default: v} 写法）"""
        section = data.get(key) or {}
        result = {}
        for k, v in section.items():
            if isinstance(v, dict) and "default" in v:
                result[k] = v["default"]
            else:
                result[k] = v
        return result

    def _resolve_paths(self, base_dir: Path) -> None:
        """解析相对路径配置为绝对路径（基于配置文件所在目录）"""
        self.fonts.font_dirs = [
            str(p if Path(p).expanduser().is_absolute() else (base_dir / p).resolve())
            for p in self.fonts.font_dirs
        ]
        for family, font_path in list(self.fonts.families.items()):
            p = Path(font_path).expanduser()
            if not p.is_absolute():
                self.fonts.families[family] = str((base_dir / p).resolve())
        if not self.output_dir.is_absolute():
            self.output_dir = (base_dir / self.output_dir).resolve()


# 全局配置实例
_config: ExportConfig | None = None


def get_config() -> ExportConfig:
    """获取全局配置（惰性加载）"""
    global _config
    if _config is None:
        _config = ExportConfig.from_yaml(DEFAULT_CONFIG_PATH)
    return _config


def reload_config(yaml_path: str | Path | None = None) -> ExportConfig:
    """重新加载配置"""
    global _config
    path = yaml_path or DEFAULT_CONFIG_PATH
    _config = ExportConfig.from_yaml(path)
    return _config
