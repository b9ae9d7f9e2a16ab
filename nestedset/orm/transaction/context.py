"""事务上下文

TransactionContext 对应一个 Session 上的顶层事务，SavepointContext 对应其中的一个保存点。
递归删除在外层事务里只操作保存点，被拒绝时撤销自己的那部分而不影响外层。
"""

from contextlib import contextmanager
from typing import Callable, Generator, Optional

from sqlalchemy.orm import Session, SessionTransaction

from ...log import get_logger
from .exceptions import TransactionAlreadyCommittedError, TransactionNotActiveError
from .propagation import TransactionPropagation
from .state import TransactionState


logger = get_logger("nestedset.orm.transaction")


class SavepointContext:
    """保存点

    release() 把保存点内的变更并入外层事务，rollback() 只撤销保存点内的变更。
    两者都只在保存点仍处于 ACTIVE 时生效。
    """

    def __init__(self, name: str, nested: SessionTransaction, parent: "TransactionContext"):
        self.name = name
        self.parent = parent
        self.state = TransactionState.ACTIVE
        self._nested = nested

    @property
    def is_active(self) -> bool:
        return self.state is TransactionState.ACTIVE

    @property
    def session(self) -> Session:
        return self.parent.session

    def release(self) -> None:
        if self.is_active:
            self._finish(self._nested.commit, TransactionState.COMMITTED)

    def rollback(self) -> None:
        if self.is_active:
            self._finish(self._nested.rollback, TransactionState.ROLLED_BACK)

    def _finish(self, action: Callable[[], None], outcome: TransactionState) -> None:
        try:
            action()
        except Exception:
            self.state = TransactionState.FAILED
            raise
        self.state = outcome
        logger.debug(f"保存点 {self.name}: {outcome.value}")


class TransactionContext:
    """顶层事务

    REQUIRED 传播会让内层调用重复进入同一个上下文，nesting_level 记录进入的层数，
    只有最外层正常退出时才提交。中途调用过 rollback() 的事务退出时不再提交。

    使用示例:
        with transaction_manager.transaction() as tx:
            node.delete_node()
            if not ok:
                tx.rollback()
    """

    def __init__(
        self,
        session: Session,
        propagation: TransactionPropagation = TransactionPropagation.REQUIRED,
        auto_commit: bool = True,
        suppress_commit: bool = True,
    ):
        self.session = session
        self.propagation = propagation
        self.auto_commit = auto_commit
        self.suppress_commit = suppress_commit
        self.state = TransactionState.INACTIVE
        self.nesting_level = 0
        self._savepoint_count = 0

    @property
    def is_active(self) -> bool:
        return self.state is TransactionState.ACTIVE

    def begin(self) -> "TransactionContext":
        if self.is_active:
            self.nesting_level += 1
        else:
            self.state = TransactionState.ACTIVE
            self.nesting_level = 1
        logger.debug(f"进入事务，层级 {self.nesting_level}")
        return self

    def commit(self) -> None:
        """提交；被重复进入时只退出一层"""
        if self.state is TransactionState.COMMITTED:
            raise TransactionAlreadyCommittedError()
        if not self.is_active:
            raise TransactionNotActiveError(f"无法提交，事务状态为 {self.state.value}")
        if self.nesting_level > 1:
            self.nesting_level -= 1
            return
        try:
            self.session.commit()
        except Exception:
            self.state = TransactionState.FAILED
            raise
        self.state = TransactionState.COMMITTED
        self.nesting_level = 0
        logger.debug("事务已提交")

    def rollback(self) -> None:
        """回滚整个事务，重复调用无效果"""
        if self.state is TransactionState.COMMITTED:
            raise TransactionAlreadyCommittedError("事务已提交，无法回滚")
        if self.state not in (TransactionState.ACTIVE, TransactionState.FAILED):
            return
        try:
            self.session.rollback()
        except Exception:
            self.state = TransactionState.FAILED
            raise
        self.state = TransactionState.ROLLED_BACK
        self.nesting_level = 0
        logger.debug("事务已回滚")

    @contextmanager
    def savepoint(self, name: Optional[str] = None) -> Generator[SavepointContext, None, None]:
        """开启保存点，块内抛出异常时回滚保存点并继续抛出"""
        if not self.is_active:
            raise TransactionNotActiveError("事务未激活，无法创建保存点")
        self._savepoint_count += 1
        point = SavepointContext(
            name or f"sp_{self._savepoint_count}",
            self.session.begin_nested(),
            self,
        )
        try:
            yield point
        except Exception:
            point.rollback()
            raise
        point.release()

    def should_suppress_commit(self) -> bool:
        """事务进行中时模型上的 commit=True 只 flush"""
        return self.is_active and self.suppress_commit

    def __enter__(self) -> "TransactionContext":
        return self.begin()

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            self.rollback()
            return False
        if self.nesting_level > 1:
            self.nesting_level -= 1
        elif self.nesting_level == 1 and self.auto_commit:
            try:
                self.commit()
            except Exception:
                self.rollback()
                raise
        return False
