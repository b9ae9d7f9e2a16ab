"""树缓存

按树标识缓存已构建完成的节点列表（按左值排序、链接完整）。
空树缓存为空列表，之后同一标识不再查询。

缓存不会自动失效：外部修改了数据时，调用方需要显式 invalidate() 或 clear()。

使用示例:
    cache = TreeCache()
    nodes = cache.get_or_load(1, lambda tree_id: Category.build_tree(tree_id))
    cache.invalidate(1)
"""

from typing import Any, Callable, Dict, Hashable, List, Optional

from ...log import get_logger

logger = get_logger("nestedset.orm.tree")


class TreeCache:
    """树标识 → 节点列表 的缓存

    列表本身是节点的唯一持有者，节点之间的链接都是对列表内对象的引用。
    """

    def __init__(self, name: str = None):
        self.name = name or "default"
        self._trees: Dict[Hashable, List[Any]] = {}

    def get(self, tree_id: Hashable) -> Optional[List[Any]]:
        """获取缓存的节点列表，未缓存返回 None（空树返回 []）"""
        return self._trees.get(tree_id)

    def store(self, tree_id: Hashable, nodes: List[Any]) -> List[Any]:
        """写入缓存并返回同一个列表"""
        self._trees[tree_id] = nodes
        logger.debug(f"[{self.name}] 缓存树 {tree_id!r}，共 {len(nodes)} 个节点")
        return nodes

    def get_or_load(self, tree_id: Hashable, loader: Callable[[Hashable], List[Any]]) -> List[Any]:
        """命中缓存直接返回，否则调用 loader(tree_id) 并缓存结果"""
        nodes = self._trees.get(tree_id)
        if nodes is not None:
            logger.debug(f"[{self.name}] 命中树缓存 {tree_id!r}")
            return nodes
        return self.store(tree_id, loader(tree_id))

    def invalidate(self, tree_id: Hashable) -> bool:
        """移除单棵树的缓存，返回是否存在过"""
        existed = self._trees.pop(tree_id, None) is not None
        if existed:
            logger.debug(f"[{self.name}] 移除树缓存 {tree_id!r}")
        return existed

    def clear(self) -> None:
        """清空全部缓存"""
        self._trees.clear()
        logger.debug(f"[{self.name}] 树缓存已清空")

    @property
    def tree_ids(self) -> list:
        return list(self._trees.keys())

    def __contains__(self, tree_id: Hashable) -> bool:
        return tree_id in self._trees

    def __len__(self) -> int:
        return len(self._trees)

    def __repr__(self) -> str:
        return f"TreeCache(name={self.name!r}, trees={len(self._trees)})"


__all__ = ["TreeCache"]
