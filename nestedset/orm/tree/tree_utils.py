"""嵌套集合工具函数

提供已链接树的遍历、导出与左右值校验。

使用示例:
    from nestedset.orm.tree import tree_to_dict_list, validate_nested_set

    nodes = Category.load_tree(1)
    data = tree_to_dict_list(nodes[0])

    errors = validate_nested_set([(1, 4), (2, 3)])
"""

from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple


def iter_subtree(root) -> Iterator[Any]:
    """前序遍历（即左值顺序）root 及其子孙

    通过 get_children() 访问子节点，已加载的树不会产生查询。
    """
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.get_children()))


def tree_to_dict_list(
    root,
    to_dict: Optional[Callable[[Any], Dict[str, Any]]] = None,
    children_field: str = "children",
) -> Dict[str, Any]:
    """将已链接的节点导出为嵌套字典

    Args:
        root: 起始节点
        to_dict: 单个节点转字典的函数，默认调用 node.to_dict()
        children_field: 子节点列表字段名

    Returns:
        嵌套字典，如 {"id": 1, ..., "children": [{...}, ...]}
    """
    if to_dict is None:
        to_dict = lambda node: node.to_dict()

    data = dict(to_dict(root))
    data[children_field] = [
        tree_to_dict_list(child, to_dict, children_field)
        for child in root.get_children()
    ]
    return data


def calculate_tree_depth(nodes: Sequence) -> int:
    """计算已加载树的层数（只有根节点时为 1，空树为 0）"""
    if not nodes:
        return 0
    return max(len(node.get_ancestors()) for node in nodes) + 1


def _bounds_of(item) -> Tuple[int, int]:
    if isinstance(item, (tuple, list)):
        return item[0], item[1]
    return item.nested_bounds


def validate_nested_set(items: Sequence) -> List[str]:
    """校验一棵树的左右值是否构成合法的嵌套集合

    Args:
        items: 按左值排序的节点，或 (left, right) 元组

    Returns:
        错误描述列表，合法时为空列表

    检查项：
        - 根节点 left == 1
        - 每个节点 right > left 且跨度为偶数
        - 节点之间只有包含或相离，没有交叉
        - 全部左右值恰好覆盖 1..2N
    """
    errors: List[str] = []
    if not items:
        return errors

    bounds = [_bounds_of(item) for item in items]

    if bounds[0][0] != 1:
        errors.append(f"根节点左值应为 1，实际为 {bounds[0][0]}")

    stack: List[Tuple[int, int]] = []
    previous_left = None
    for index, (left, right) in enumerate(bounds):
        if previous_left is not None and left <= previous_left:
            errors.append(f"第 {index} 个节点左值 {left} 未按升序排列")
        previous_left = left

        if right <= left or (right - left - 1) % 2:
            errors.append(f"第 {index} 个节点 [{left}, {right}] 跨度非法")
            continue

        while stack and stack[-1][1] < left:
            stack.pop()
        if stack and right > stack[-1][1]:
            errors.append(
                f"第 {index} 个节点 [{left}, {right}] 与 [{stack[-1][0]}, {stack[-1][1]}] 交叉"
            )
        stack.append((left, right))

    values = sorted(value for pair in bounds for value in pair)
    if values != list(range(1, 2 * len(bounds) + 1)):
        errors.append(f"左右值未恰好覆盖 1..{2 * len(bounds)}")

    return errors


__all__ = [
    "iter_subtree",
    "tree_to_dict_list",
    "calculate_tree_depth",
    "validate_nested_set",
]
