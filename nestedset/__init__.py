"""
nestedset - 嵌套集合树形结构类库

提供整树加载与缓存、节点惰性导航、事务内递归删除，以及配套的 ORM 基础、日志与配置
"""

from .version import __version__, __author__, __description__

# 导出 ORM 模块
from .orm import (
    Base,
    IdModel,
    CoreModel,
    db_manager,
    init_database,
    get_engine,
    db_session_scope,
    TransactionManager,
    TransactionContext,
    SavepointContext,
    TransactionPropagation,
    TransactionState,
    transaction_manager,
    get_current_transaction,
)

# 导出嵌套集合
from .orm.tree import (
    NestedSetMixin,
    NestedSetFieldsMixin,
    TreeCache,
    NodeLinks,
    LinkKind,
    UNRESOLVED,
    DeleteOutcome,
    build_tree_level,
    configure_nested_set,
    NestedSetError,
    MalformedTreeError,
    InvalidRelationError,
)

# 导出日志
from .log import (
    setup_logger,
    setup_root_logger,
    logger,
    get_logger,
)

# 导出配置
from .config import (
    AppSettings,
    DatabaseSettings,
    LoggingSettings,
    NestedSetSettings,
    ConfigLoader,
    load_yaml_config,
)

__all__ = [
    # 版本信息
    "__version__",
    "__author__",
    "__description__",

    # ORM
    "Base",
    "IdModel",
    "CoreModel",
    "db_manager",
    "init_database",
    "get_engine",
    "db_session_scope",

    # 事务
    "TransactionManager",
    "TransactionContext",
    "SavepointContext",
    "TransactionPropagation",
    "TransactionState",
    "transaction_manager",
    "get_current_transaction",

    # 嵌套集合
    "NestedSetMixin",
    "NestedSetFieldsMixin",
    "TreeCache",
    "NodeLinks",
    "LinkKind",
    "UNRESOLVED",
    "DeleteOutcome",
    "build_tree_level",
    "configure_nested_set",
    "NestedSetError",
    "MalformedTreeError",
    "InvalidRelationError",

    # 日志
    "setup_logger",
    "setup_root_logger",
    "logger",
    "get_logger",

    # 配置
    "AppSettings",
    "DatabaseSettings",
    "LoggingSettings",
    "NestedSetSettings",
    "ConfigLoader",
    "load_yaml_config",
]
