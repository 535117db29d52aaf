"""
印刷导出流水线 - 后端核心模块

模块结构：
- config/     运行期配置加载
- models/     数据模型定义（场景/页面/请求/结果）
- fonts/      字体轮廓资源与字形预检
- render/     几何解析/文字转曲/特效分层/SVG序列化/PDF转换
- pipeline/   导出编排、快照事务与阶段定义
- engine/     内存场景引擎（编辑引擎协作方的参考实现）
"""

__version__ = "0.1.0"
