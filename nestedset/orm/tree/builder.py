"""层级构建器

根据左右值把按左值排序的扁平节点列表还原成带父子、兄弟、祖先链接的树，
整个过程不发起任何查询。

两种模式：
    - 全树模式（full_tree=True）：items 是 root 的全部子孙，按左值排序；
      通过子孙数量 (right - left - 1) / 2 切分子树并递归。
    - 单层模式（full_tree=False）：items 恰好是 root 的直接子节点；
      只设置父节点与兄弟链接，不递归、不设置祖先。

节点需要提供:
    - nested_links: NodeLinks
    - nested_bounds: (left, right)

使用示例:
    root.nested_links.ancestors = []
    build_tree_level(nodes[1:], nodes[0], full_tree=True)
"""

from typing import Any, Callable, Optional, Sequence

from .exceptions import MalformedTreeError, NestedSetError
from .links import LinkKind, UNRESOLVED
from .tree_config import TreeConfig

LinkCallback = Callable[[Any, Any], None]


def descendant_count(node) -> int:
    """计算节点的子孙数量

    Raises:
        MalformedTreeError: 跨度为负或为奇数
    """
    left, right = node.nested_bounds
    span = right - left - 1
    if span < 0 or span % 2:
        raise MalformedTreeError(node, f"left={left}, right={right} 无法得出整数子孙数量")
    return span // 2


def build_tree_level(
    items: Sequence,
    root,
    full_tree: bool = True,
    on_link: Optional[LinkCallback] = None,
    validate: Optional[bool] = None,
) -> list:
    """构建 root 下的一层（全树模式下递归构建全部层级）

    Args:
        items: 按左值升序的节点列表
        root: 父节点
        full_tree: True 为全树模式，False 为单层模式
        on_link: 每链接一个节点后的回调 on_link(root, item)
        validate: 单层模式是否校验子节点边界，None 时读取 TreeConfig

    Returns:
        root 的直接子节点列表（即 root.nested_links.children）

    Raises:
        MalformedTreeError: 边界数据与列表不一致
    """
    if full_tree:
        ancestors = root.nested_links.ancestors
        if ancestors is UNRESOLVED:
            raise NestedSetError("全树模式要求根节点的祖先链接已解析")
        return _build_subtree(items, 0, len(items), root, ancestors, on_link)

    if validate is None:
        validate = TreeConfig.get_validate_level_children()
    return _build_single_level(items, root, on_link, validate)


def _build_subtree(items, start, stop, root, root_ancestors, on_link) -> list:
    children = []
    root.nested_links.children = children
    chain = list(root_ancestors) + [root]

    previous = None
    i = start
    while i < stop:
        item = items[i]
        _check_child(root, item, previous)
        _attach(root, item, previous, children, on_link)
        previous = item

        item.nested_links.ancestors = list(chain)

        count = descendant_count(item)
        if count:
            if i + count >= stop:
                raise MalformedTreeError(
                    item, f"声明了 {count} 个子孙，但列表只剩 {stop - i - 1} 个节点"
                )
            _build_subtree(items, i + 1, i + 1 + count, item, chain, on_link)
            i += count
        else:
            item.nested_links.children = []
        i += 1

    if previous is not None:
        previous.nested_links.next = None
    return children


def _build_single_level(items, root, on_link, validate) -> list:
    children = []
    root.nested_links.children = children

    previous = None
    for item in items:
        if validate:
            _check_child(root, item, previous)
        _attach(root, item, previous, children, on_link)
        previous = item

    if previous is not None:
        previous.nested_links.next = None
    return children


def _attach(root, item, previous, children, on_link) -> None:
    children.append(item)
    links = item.nested_links
    links.set(LinkKind.PARENT, root)
    links.set(LinkKind.PREV, previous)
    if previous is not None:
        previous.nested_links.set(LinkKind.NEXT, item)
    if on_link is not None:
        on_link(root, item)


def _check_child(root, item, previous) -> None:
    """子节点须位于父节点边界内，且在前一个兄弟之后、不重叠"""
    root_left, root_right = root.nested_bounds
    left, right = item.nested_bounds
    if not (root_left < left < right < root_right):
        raise MalformedTreeError(
            item, f"[{left}, {right}] 不在父节点 [{root_left}, {root_right}] 内"
        )
    if previous is not None:
        _, previous_right = previous.nested_bounds
        if left <= previous_right:
            raise MalformedTreeError(
                item, f"左值 {left} 与前一个兄弟的右值 {previous_right} 重叠或乱序"
            )


__all__ = [
    "descendant_count",
    "build_tree_level",
]
