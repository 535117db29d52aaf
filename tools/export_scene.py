"""
场景导出工具 - 读取 ExportRequest JSON 并输出 PDF

用法：
    python tools/export_scene.py --scene scene.json --out output
    python tools/export_scene.py --scene scene.json --print-size 210x297 --mode envelope
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path


def _add_backend_to_path() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    backend_root = repo_root / "backend"
    if str(backend_root) not in sys.path:
        sys.path.insert(0, str(backend_root))


def main() -> int:
    parser = argparse.ArgumentParser(description="Export a scene JSON to a paged PDF.")
    parser.add_argument("--scene", required=True, help="ExportRequest JSON 文件")
    parser.add_argument("--out", default="", help="输出目录（默认取配置 output_dir）")
    parser.add_argument("--config", default="config/export_runtime.yaml", help="运行期配置YAML")
    parser.add_argument("--print-size", default="", help="打印尺寸，如 210x297（mm）")
    parser.add_argument("--dpi", type=int, default=0, help="覆盖请求中的DPI")
    parser.add_argument(
        "--mode",
        default="",
        choices=["", "default", "no-boundary", "mockup", "envelope"],
        help="渲染模式",
    )
    parser.add_argument("--allow-missing-glyphs", action="store_true", help="缺字时继续导出")
    parser.add_argument("--strict", action="store_true", help="任一页失败即整体失败")
    args = parser.parse_args()

    _add_backend_to_path()
    from print_export.config import reload_config  # type: ignore
    from print_export.engine import InMemorySceneEngine  # type: ignore
    from print_export.interfaces import ExportCancelled, PrintExportError  # type: ignore
    from print_export.logging_setup import setup_logging  # type: ignore
    from print_export.models import ExportRequest, OutputKind, PrintSize, RenderMode  # type: ignore
    from print_export.pipeline import ExportOrchestrator  # type: ignore

    config = reload_config(args.config)
    setup_logging(config.logging)

    data = json.loads(Path(args.scene).read_text(encoding="utf-8"))
    request = ExportRequest.model_validate(data)
    request.output = OutputKind.FILE
    if args.out:
        request.output_dir = Path(args.out)
    if args.print_size:
        request.print_size = PrintSize.parse(args.print_size)
    if args.dpi:
        request.dpi = args.dpi
    if args.mode:
        request.render_mode = RenderMode(args.mode)
    if args.strict:
        request.all_or_nothing = True

    def _confirm(report) -> bool:
        print("缺字:\n" + report.summary(config.pipeline.missing_glyph_preview))
        return args.allow_missing_glyphs

    orchestrator = ExportOrchestrator(InMemorySceneEngine(), config=config, confirm=_confirm)
    try:
        result = asyncio.run(orchestrator.export_document(request))
    except ExportCancelled:
        print("已取消")
        return 2
    except PrintExportError as e:
        print(f"导出失败: {e}")
        return 1

    for outcome in result.pages:
        tier = outcome.tier.value if outcome.tier else "-"
        print(f"{outcome.kind.value:10s} {outcome.page_id:24s} {outcome.status.value:10s} {tier}")
        if outcome.error:
            print(f"    {outcome.error}")
    print(f"status={result.status.value} pages={result.page_count} output={result.output_path}")
    return 0 if result.page_count else 1


if __name__ == "__main__":
    raise SystemExit(main())
