"""
日志模块

使用 loguru 提供统一的日志记录功能。库内部只调用 ``logger``，
由命令行入口决定输出位置和级别。
"""

import os
import sys
from typing import Optional

from loguru import logger

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}"


def resolve_level(debug: bool = False, quiet: bool = False) -> str:
    """根据命令行开关和 MODKEEPER_DEBUG 环境变量确定日志级别"""
    if debug or os.environ.get("MODKEEPER_DEBUG", "0") == "1":
        return "DEBUG"
    if quiet:
        return "WARNING"
    return "INFO"


def setup_logger(
    level: Optional[str] = None,
    sink=sys.stdout,
    log_file: Optional[str] = None,
    enqueue: bool = True,
    colorize: bool = True,
) -> None:
    """
    设置日志记录器

    Args:
        level: 日志级别 (DEBUG, INFO, WARNING, ERROR)，为空时读取环境变量
        sink: 控制台输出目标
        log_file: 额外写入的日志文件（按 10 MB 轮转）
        enqueue: 是否启用队列（线程安全）
        colorize: 是否启用颜色
    """
    if level is None:
        level = resolve_level()

    logger.remove()

    logger.add(
        sink=sink,
        format=LOG_FORMAT,
        enqueue=enqueue,
        level=level,
        colorize=colorize,
        backtrace=(level == "DEBUG"),
        diagnose=(level == "DEBUG"),
    )

    if log_file:
        logger.add(
            log_file,
            format=LOG_FORMAT,
            enqueue=enqueue,
            level="DEBUG",
            rotation="10 MB",
            encoding="utf-8",
        )

    if level == "DEBUG":
        logger.debug("DEBUG 模式已启用")


__all__ = ["logger", "setup_logger", "resolve_level", "LOG_FORMAT"]
