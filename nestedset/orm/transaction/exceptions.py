"""事务异常"""


class TransactionError(Exception):
    """事务错误基类"""


class TransactionNotActiveError(TransactionError):
    """事务未开始或已结束"""

    def __init__(self, message: str = "事务未激活"):
        super().__init__(message)


class TransactionAlreadyCommittedError(TransactionError):
    """对已提交的事务再次提交或回滚"""

    def __init__(self, message: str = "事务已提交"):
        super().__init__(message)


class PropagationError(TransactionError):
    """传播行为与当前事务状态不符

    Attributes:
        propagation: 传播行为名称，如 "NESTED"
    """

    def __init__(self, propagation: str, message: str):
        self.propagation = propagation
        super().__init__(f"[{propagation}] {message}")
