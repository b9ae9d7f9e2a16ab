"""日志模块

- get_logger: 按模块名获取日志器
- setup_logger / setup_root_logger: 配置控制台与文件输出

使用示例:
    from nestedset.log import get_logger, setup_logger

    # 打开树构建的调试日志
    setup_logger("nestedset.orm.tree", level="DEBUG")

    logger = get_logger()
"""

from .logger import (
    setup_logger,
    setup_root_logger,
    create_formatter,
    MicrosecondFormatter,
    DEFAULT_LOG_FORMAT,
    logger,
    get_logger,
)

__all__ = [
    "setup_logger",
    "setup_root_logger",
    "create_formatter",
    "MicrosecondFormatter",
    "DEFAULT_LOG_FORMAT",
    "logger",
    "get_logger",
]
