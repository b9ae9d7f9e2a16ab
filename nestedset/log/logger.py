"""日志

库内日志器都挂在 "nestedset" 之下：树加载与缓存命中在 nestedset.orm.tree.*，
事务在 nestedset.orm.transaction，数据库在 nestedset.orm.session。
应用只需 setup_logger("nestedset", level="DEBUG") 即可看到全部。
"""

import inspect
import logging
import os
import time
from logging.handlers import RotatingFileHandler
from typing import Any, Optional


DEFAULT_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


class MicrosecondFormatter(logging.Formatter):
    """时间戳带六位微秒"""

    def formatTime(self, record, datefmt=None):
        stamp = time.strftime(datefmt or "%Y-%m-%d %H:%M:%S", self.converter(record.created))
        return f"{stamp}.{int((record.created % 1) * 1_000_000):06d}"


def create_formatter(log_format: Optional[str] = None, use_microseconds: bool = True) -> logging.Formatter:
    fmt = log_format or DEFAULT_LOG_FORMAT
    return MicrosecondFormatter(fmt) if use_microseconds else logging.Formatter(fmt)


def _file_handler(log_file: str, max_bytes: int, backup_count: int) -> logging.Handler:
    directory = os.path.dirname(log_file)
    if directory:
        os.makedirs(directory, exist_ok=True)
    if max_bytes > 0:
        return RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
    return logging.FileHandler(log_file, encoding="utf-8")


def setup_logger(
    name: Optional[str] = None,
    level: str = "INFO",
    log_file: Optional[str] = None,
    console: bool = True,
    max_bytes: int = 0,
    backup_count: int = 0,
    log_format: Optional[str] = None,
    use_microseconds: bool = True,
    propagate: bool = True,
) -> logging.Logger:
    """配置日志器并返回

    重复调用会替换之前添加的处理器。max_bytes 大于 0 时文件按大小轮转。

    使用示例:
        setup_logger("nestedset.orm.tree", level="DEBUG")
        setup_logger("nestedset", log_file="logs/tree.log", max_bytes=10 * 1024 * 1024, backup_count=5)
    """
    target = logging.getLogger(name)
    target.setLevel(getattr(logging, level.upper(), logging.INFO))
    target.propagate = propagate
    target.handlers.clear()

    handlers = []
    if console:
        handlers.append(logging.StreamHandler())
    if log_file:
        handlers.append(_file_handler(log_file, max_bytes, backup_count))

    formatter = create_formatter(log_format, use_microseconds)
    for handler in handlers:
        handler.setFormatter(formatter)
        target.addHandler(handler)
    return target


def setup_root_logger(config: Any = None, level: str = "INFO", log_file: Optional[str] = None,
                      console: bool = True) -> logging.Logger:
    """配置根日志器；传入 LoggingSettings 时级别、文件与轮转参数取自配置"""
    if config is None:
        return setup_logger(None, level=level, log_file=log_file, console=console)
    return setup_logger(
        None,
        level=config.level,
        log_file=config.file_path or None,
        console=console and config.enable_console,
        max_bytes=config.file_max_bytes,
        backup_count=config.file_backup_count,
    )


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """取日志器

    不传名称时使用调用方模块的 __name__；不含点号的简写加 "nestedset." 前缀，
    如 get_logger("tree") 得到 "nestedset.tree"。
    """
    if name is None:
        caller = inspect.currentframe().f_back
        name = caller.f_globals.get("__name__", "nestedset") if caller is not None else "nestedset"
    elif "." not in name and name != "nestedset":
        name = f"nestedset.{name}"
    return logging.getLogger(name)


logger = logging.getLogger("nestedset")
