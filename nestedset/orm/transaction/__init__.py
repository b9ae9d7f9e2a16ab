"""事务管理

递归删除与模型保存共用的事务层：
- REQUIRED 加入或新建事务，NESTED 在外层事务中开启保存点
- 事务进行中时模型上的 commit=True 改为 flush

使用示例:
    from nestedset.orm import transaction_manager as tm

    with tm.transaction() as tx:
        with tx.savepoint() as sp:
            node.delete_node()
"""

from .state import TransactionState
from .exceptions import (
    TransactionError,
    TransactionNotActiveError,
    TransactionAlreadyCommittedError,
    PropagationError,
)
from .propagation import TransactionPropagation
from .context import TransactionContext, SavepointContext
from .manager import (
    TransactionManager,
    transaction_manager,
    get_current_transaction,
)

__all__ = [
    "TransactionState",
    "TransactionPropagation",
    "TransactionError",
    "TransactionNotActiveError",
    "TransactionAlreadyCommittedError",
    "PropagationError",
    "TransactionContext",
    "SavepointContext",
    "TransactionManager",
    "transaction_manager",
    "get_current_transaction",
]
