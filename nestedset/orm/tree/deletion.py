"""递归删除

深度优先删除子树：先删除全部子节点，任一子节点失败立即停止；
子节点全部成功后删除节点本身（根节点用整棵子树的批量删除，其他节点逐行删除）。

结果通过 DeleteOutcome 逐层返回，不借助异常传递“需要回滚”。
事务边界由 NestedSetMixin.delete_recursively() 负责。
"""

from enum import Enum

from ...log import get_logger

logger = get_logger("nestedset.orm.tree")


class DeleteOutcome(str, Enum):
    """删除结果"""

    SUCCESS = "success"
    FAILURE = "failure"

    @classmethod
    def from_bool(cls, deleted: bool) -> "DeleteOutcome":
        return cls.SUCCESS if deleted else cls.FAILURE

    def __bool__(self) -> bool:
        return self is DeleteOutcome.SUCCESS


def delete_subtree(node) -> DeleteOutcome:
    """深度优先删除 node 及其子孙

    Args:
        node: NestedSetMixin 节点

    Returns:
        DeleteOutcome.SUCCESS 或 DeleteOutcome.FAILURE（某个节点的删除被拒绝）

    数据库异常不在这里处理，原样向上抛出。
    """
    for child in list(node.get_children()):
        if delete_subtree(child) is DeleteOutcome.FAILURE:
            return DeleteOutcome.FAILURE

    if node.is_root():
        deleted = node.delete_with_children()
    else:
        deleted = node.delete_node()

    if not deleted:
        logger.info(f"{node!r} 删除被拒绝，停止递归删除")
    return DeleteOutcome.from_bool(deleted)


__all__ = [
    "DeleteOutcome",
    "delete_subtree",
]
