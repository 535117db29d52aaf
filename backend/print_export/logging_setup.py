"""
日志初始化 - 按 LoggingConfig 配置 print_export 日志器

职责：
1. 设置日志级别
2. 可选写入日志文件
3. 重复调用不叠加 handler

测试要点：
- test_setup_logging_level: 日志级别生效
- test_setup_logging_idempotent: 重复调用不重复添加handler
"""

from __future__ import annotations

import logging
from pathlib import Path

from .config import LoggingConfig

LOGGER_NAME = "print_export"
_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(config: LoggingConfig | None = None) -> logging.Logger:
    """初始化包级日志器"""
    config = config or LoggingConfig()
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, config.log_level.upper(), logging.INFO))

    formatter = logging.Formatter(_FORMAT)
    if not any(getattr(h, "_print_export", False) for h in logger.handlers):
        stream = logging.StreamHandler()
        stream.setFormatter(formatter)
        stream._print_export = True  # type: ignore[attr-defined]
        logger.addHandler(stream)

    if config.log_to_file:
        log_path = Path(config.log_file)
        existing = [
            h
            for h in logger.handlers
            if isinstance(h, logging.FileHandler)
            and Path(h.baseFilename) == log_path.resolve()
        ]
        if not existing:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path, encoding="utf-8")
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger
