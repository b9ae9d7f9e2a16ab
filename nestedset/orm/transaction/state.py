"""事务状态"""

from enum import Enum


class TransactionState(str, Enum):
    """事务所处阶段

    INACTIVE 经 begin() 进入 ACTIVE，之后以 COMMITTED 或 ROLLED_BACK 结束；
    数据库在提交或回滚时报错则停在 FAILED，此时仍允许回滚。
    """

    INACTIVE = "inactive"
    ACTIVE = "active"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    FAILED = "failed"
