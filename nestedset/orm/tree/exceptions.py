"""嵌套集合异常定义

提供树构建与导航相关的异常类。
"""

from typing import Any, Iterable


class NestedSetError(Exception):
    """嵌套集合基础异常"""
    pass


class MalformedTreeError(NestedSetError):
    """边界数据损坏异常

    当左右值无法构成合法的嵌套集合时抛出（跨度为负或为奇数、
    子孙数量超出给定列表、子节点不在父节点边界内等）。
    这类错误表示外部数据已损坏，不应被调用方吞掉。

    Attributes:
        node: 出问题的节点
        reason: 错误原因
    """

    def __init__(self, node: Any, reason: str):
        self.node = node
        self.reason = reason
        super().__init__(f"Malformed nested set at {node!r}: {reason}")


class InvalidRelationError(NestedSetError, ValueError):
    """无效关系名异常

    当填充导航关系时传入了未知的关系名时抛出。

    Attributes:
        relation: 传入的关系名
        valid_relations: 合法的关系名列表
    """

    def __init__(self, relation: Any, valid_relations: Iterable[str]):
        self.relation = relation
        self.valid_relations = list(valid_relations)
        super().__init__(
            f"Invalid relation '{relation}'. Valid relations: {self.valid_relations}"
        )


__all__ = [
    "NestedSetError",
    "MalformedTreeError",
    "InvalidRelationError",
]
