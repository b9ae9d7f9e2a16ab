"""ORM模块

提供嵌套集合树所需的 ORM 基础：
- CoreModel: 核心模型基类，包含ID、时间戳、CRUD、序列化
- 数据库会话管理
- 事务管理
- 嵌套集合扩展（nestedset.orm.tree）

使用示例:
    from nestedset.orm import CoreModel, init_database, Base
    from nestedset.orm.tree import NestedSetFieldsMixin, NestedSetMixin

    engine, _ = init_database("sqlite:///./tree.db")

    class Category(CoreModel, NestedSetFieldsMixin, NestedSetMixin):
        title = mapped_column(String(100))

    Base.metadata.create_all(engine)
"""

from .id_model import IdModel, Base
from .core_model import CoreModel
from .db_session import (
    db_manager,
    init_database,
    get_engine,
    db_session_scope,
)
from .transaction import (
    TransactionManager,
    TransactionContext,
    SavepointContext,
    TransactionPropagation,
    TransactionState,
    transaction_manager,
    get_current_transaction,
)

__all__ = [
    # 模型
    "Base",
    "IdModel",
    "CoreModel",

    # 数据库会话
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
]
