"""事务传播行为"""

from enum import Enum


class TransactionPropagation(str, Enum):
    """调用方已处于事务中时 transaction() 的处理方式

    REQUIRED 用于普通写入；递归删除在外层事务里使用 NESTED，
    被拒绝时只撤销自己的保存点。
    """

    REQUIRED = "required"
    """加入已有事务，没有则新建（默认）"""

    MANDATORY = "mandatory"
    """只能加入已有事务"""

    NESTED = "nested"
    """在已有事务中开启保存点，没有外层事务时报错"""

    NEVER = "never"
    """不能在已有事务中调用"""
