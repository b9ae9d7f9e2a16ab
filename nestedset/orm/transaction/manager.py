"""事务管理器

当前线程/协程所处的顶层事务保存在 ContextVar 中，
transaction() 依据传播行为决定新建事务、加入事务还是开启保存点。
"""

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Generator, Optional, Union

from sqlalchemy.orm import Session

from ...log import get_logger
from .context import SavepointContext, TransactionContext
from .exceptions import PropagationError
from .propagation import TransactionPropagation


logger = get_logger("nestedset.orm.transaction")

_current_transaction: ContextVar[Optional[TransactionContext]] = ContextVar(
    "nestedset_current_transaction", default=None
)


def get_current_transaction() -> Optional[TransactionContext]:
    """当前上下文中的顶层事务，没有时返回 None"""
    return _current_transaction.get()


class TransactionManager:
    """事务入口（单例）

    使用示例:
        from nestedset.orm import transaction_manager as tm

        with tm.transaction() as tx:
            node.delete_node()

        with tm.transaction():
            with tm.transaction(propagation=TransactionPropagation.NESTED) as sp:
                ...
    """

    _instance: Optional["TransactionManager"] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @property
    def current_transaction(self) -> Optional[TransactionContext]:
        return _current_transaction.get()

    def is_in_transaction(self) -> bool:
        tx = _current_transaction.get()
        return tx is not None and tx.is_active

    def get_session(self) -> Session:
        from ..db_session import db_manager
        return db_manager.get_session()

    @contextmanager
    def transaction(
        self,
        session: Optional[Session] = None,
        propagation: TransactionPropagation = TransactionPropagation.REQUIRED,
        auto_commit: bool = True,
        suppress_commit: bool = True,
    ) -> Generator[Union[TransactionContext, SavepointContext], None, None]:
        """按传播行为进入事务

        Args:
            session: 新建事务时使用的 Session，默认取 db_manager 当前 session
            propagation: 传播行为
            auto_commit: 新建的事务在正常退出时是否提交
            suppress_commit: 事务中模型的 commit=True 是否改为 flush

        Yields:
            已有事务中使用 NESTED 时为 SavepointContext，否则为 TransactionContext
        """
        current = _current_transaction.get()
        if current is not None and current.is_active:
            if propagation is TransactionPropagation.NEVER:
                raise PropagationError("NEVER", "不能在已有事务中调用")
            if propagation is TransactionPropagation.NESTED:
                with current.savepoint() as point:
                    yield point
                return
            with current:
                yield current
            return

        if propagation is TransactionPropagation.MANDATORY:
            raise PropagationError("MANDATORY", "必须在已有事务中调用")
        if propagation is TransactionPropagation.NESTED:
            raise PropagationError("NESTED", "没有可以开启保存点的外层事务")

        tx = TransactionContext(
            session if session is not None else self.get_session(),
            propagation=propagation,
            auto_commit=auto_commit,
            suppress_commit=suppress_commit,
        )
        token = _current_transaction.set(tx)
        try:
            with tx:
                yield tx
        finally:
            _current_transaction.reset(token)
            logger.debug(f"事务结束: {tx.state.value}")


transaction_manager = TransactionManager()
