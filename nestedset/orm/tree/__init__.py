"""嵌套集合扩展模块

提供基于左右值（Nested Set）的树形结构支持。

主要组件:
- NestedSetMixin: 整树加载、惰性导航、递归删除
- NestedSetFieldsMixin: tree / lft / rgt / depth 字段定义
- build_tree_level: 由扁平列表还原链接的层级构建器
- TreeCache: 按树标识缓存已构建的树
- NodeLinks / LinkKind: 节点导航链接
- 工具函数: 遍历、导出、校验

使用示例:
    from nestedset.orm import CoreModel
    from nestedset.orm.tree import NestedSetMixin, NestedSetFieldsMixin

    class Category(CoreModel, NestedSetFieldsMixin, NestedSetMixin):
        title = mapped_column(String(100))

    nodes = Category.load_tree(1)
    root = nodes[0]
    for child in root.get_children():
        print(child.title, child.get_next())

    Category.clear_tree_cache()     # 数据被外部修改后手动清除
"""

from .exceptions import NestedSetError, MalformedTreeError, InvalidRelationError
from .links import UNRESOLVED, LinkKind, NodeLinks
from .tree_config import TreeConfig, configure_nested_set, get_nested_set_config
from .builder import build_tree_level, descendant_count
from .tree_cache import TreeCache
from .deletion import DeleteOutcome, delete_subtree
from .nested_set_fields import NestedSetFieldsMixin
from .nested_set_mixin import NestedSetMixin
from .tree_utils import (
    iter_subtree,
    tree_to_dict_list,
    calculate_tree_depth,
    validate_nested_set,
)

__all__ = [
    # Mixin 类
    "NestedSetMixin",
    "NestedSetFieldsMixin",

    # 构建与缓存
    "build_tree_level",
    "descendant_count",
    "TreeCache",

    # 链接
    "UNRESOLVED",
    "LinkKind",
    "NodeLinks",

    # 删除
    "DeleteOutcome",
    "delete_subtree",

    # 配置
    "TreeConfig",
    "configure_nested_set",
    "get_nested_set_config",

    # 异常
    "NestedSetError",
    "MalformedTreeError",
    "InvalidRelationError",

    # 工具函数
    "iter_subtree",
    "tree_to_dict_list",
    "calculate_tree_depth",
    "validate_nested_set",
]
