"""嵌套集合 Mixin

提供基于左右值（Nested Set）的树形读取与递归删除。

嵌套集合模式说明：
    - 每个节点存储 left / right 两个整数，子孙节点的左右值都严格位于祖先之间
    - 子孙数量 = (right - left - 1) / 2，根节点 left == 1
    - 优点：一次按左值排序的查询即可还原整棵树
    - 左右值的维护（插入、移动）不在本模块范围内

使用示例:
    from nestedset.orm import CoreModel
    from nestedset.orm.tree import NestedSetFieldsMixin, NestedSetMixin

    class Category(CoreModel, NestedSetFieldsMixin, NestedSetMixin):
        title = mapped_column(String(100))

    nodes = Category.load_tree(1)      # 一次查询，整棵树链接完毕并缓存
    root = nodes[0]
    root.get_children()                # 不再查询

    node = Category.get(5)
    node.get_ancestors()               # 按需查询祖先
    node.delete_recursively()          # 被拒绝时返回 False 并回滚
"""

from typing import Any, Hashable, List, Optional, Sequence, Tuple, Union

from sqlalchemy import delete, exists, inspect
from sqlalchemy.orm import aliased
from sqlalchemy.orm.attributes import set_committed_value
from sqlalchemy.orm.state import InstanceState

from ...log import get_logger
from ..transaction import transaction_manager, TransactionPropagation
from .builder import build_tree_level
from .deletion import DeleteOutcome, delete_subtree
from .exceptions import NestedSetError
from .links import LinkKind, NodeLinks
from .tree_cache import TreeCache
from .tree_config import TreeConfig

logger = get_logger()


class NestedSetMixin:
    """嵌套集合 Mixin

    为模型提供树的整体加载、节点的惰性导航与递归删除。
    宿主模型需继承 CoreModel（依赖 query / session / to_dict）。

    可配置属性（子类可覆盖）:
        - __tree_attribute__: 树标识字段名，默认 "tree"；None 表示整张表只有一棵树
        - __left_attribute__: 左值字段名，默认 "lft"
        - __right_attribute__: 右值字段名，默认 "rgt"
        - __depth_attribute__: 深度字段名，默认 "depth"；None 时用 NOT EXISTS 查直接子节点
        - __tree_relation__: 指向“树对象”的关系名，load_tree 传入树对象时回填，默认 None
        - __transactional_delete__: 递归删除是否使用事务，None 时读取 TreeConfig

    导航链接:
        每个实例挂载一份 NodeLinks（nested_links），get_* 方法先查链接，
        已解析则直接返回，不发起查询。
    """

    # ==================== 可配置属性 ====================

    __tree_attribute__: Optional[str] = "tree"
    __left_attribute__: str = "lft"
    __right_attribute__: str = "rgt"
    __depth_attribute__: Optional[str] = "depth"
    __tree_relation__: Optional[str] = None
    __transactional_delete__: Optional[bool] = None

    # 每个模型类一份，首次使用时创建
    __tree_cache__: Optional[TreeCache] = None

    # ==================== 链接与边界 ====================

    @property
    def nested_links(self) -> NodeLinks:
        """当前节点的导航链接记录（惰性创建）"""
        links = self.__dict__.get("_nested_links")
        if links is None:
            links = NodeLinks()
            self.__dict__["_nested_links"] = links
        return links

    @property
    def nested_bounds(self) -> Tuple[int, int]:
        """(left, right)"""
        cls = self.__class__
        return getattr(self, cls.__left_attribute__), getattr(self, cls.__right_attribute__)

    @property
    def nested_tree_id(self) -> Any:
        """所属树的标识，单树表返回 None"""
        name = self.__class__.__tree_attribute__
        return getattr(self, name) if name else None

    def is_root(self) -> bool:
        """是否为根节点（left == 1）"""
        return getattr(self, self.__class__.__left_attribute__) == 1

    def is_leaf(self) -> bool:
        """是否为叶子节点（right - left == 1）"""
        left, right = self.nested_bounds
        return right - left == 1

    def reset_nested_links(self) -> None:
        """清除已解析的导航链接，下次访问重新查询"""
        self.nested_links.reset()

    # ==================== 树缓存 ====================

    @classmethod
    def get_tree_cache(cls) -> TreeCache:
        """获取当前模型类的树缓存"""
        cache = cls.__dict__.get("__tree_cache__")
        if cache is None:
            cache = TreeCache(name=cls.__name__)
            cls.__tree_cache__ = cache
        return cache

    @classmethod
    def use_tree_cache(cls, cache: TreeCache) -> TreeCache:
        """替换当前模型类的树缓存（例如多个模型共享一份，或测试中注入）"""
        cls.__tree_cache__ = cache
        return cache

    @classmethod
    def load_tree(
        cls,
        tree: Any,
        options: Optional[Sequence] = None,
        cache: Optional[TreeCache] = None,
    ) -> List[Any]:
        """加载整棵树（带缓存）

        命中缓存时返回同一个列表对象，不查询数据库，即使数据已被外部修改。

        Args:
            tree: 树标识，或树对象（ORM 实例，取其主键作为标识；
                  若模型声明了 __tree_relation__，所有节点的该关系会回填为此对象）
            options: SQLAlchemy 加载选项，如 [selectinload(Category.owner)]
            cache: 使用的缓存，默认为模型类自己的缓存

        Returns:
            按左值排序、链接完整的节点列表；空树返回 []
        """
        tree_id, tree_object = cls._resolve_tree_id(tree)
        if cache is None:
            cache = cls.get_tree_cache()
        return cache.get_or_load(
            tree_id,
            lambda tid: cls.build_tree(tid, options=options, tree_object=tree_object),
        )

    @staticmethod
    def _resolve_tree_id(tree: Any) -> Tuple[Hashable, Any]:
        """树对象取主键作为标识，其余值原样作为标识，返回 (tree_id, tree_object)"""
        state = inspect(tree, raiseerr=False)
        if not isinstance(state, InstanceState):
            return tree, None
        pk = state.mapper.primary_key_from_instance(tree)
        return (pk[0] if len(pk) == 1 else tuple(pk)), tree

    @classmethod
    def build_tree(
        cls,
        tree_id: Hashable,
        options: Optional[Sequence] = None,
        tree_object: Any = None,
    ) -> List[Any]:
        """查询并构建整棵树（不读写缓存）

        第一个节点视为根节点，其余节点以全树模式交给层级构建器。
        """
        nodes = cls.query_tree(tree_id, options=options).all()
        if not nodes:
            logger.debug(f"{cls.__name__} 树 {tree_id!r} 为空")
            return []

        root = nodes[0]
        links = root.nested_links
        links.set(LinkKind.ANCESTORS, [])
        links.set(LinkKind.PARENT, None)
        links.set(LinkKind.PREV, None)
        links.set(LinkKind.NEXT, None)

        on_link = None
        if tree_object is not None and cls.__tree_relation__:
            set_committed_value(root, cls.__tree_relation__, tree_object)
            on_link = _propagate_tree_relation

        build_tree_level(nodes[1:], root, full_tree=True, on_link=on_link)
        logger.debug(f"{cls.__name__} 树 {tree_id!r} 构建完成，共 {len(nodes)} 个节点")
        return nodes

    @classmethod
    def clear_tree_cache(cls, tree: Any = None) -> None:
        """清除树缓存，tree 可以是标识或树对象；不传时清空当前模型类的全部缓存"""
        cache = cls.get_tree_cache()
        if tree is None:
            cache.clear()
        else:
            cache.invalidate(cls._resolve_tree_id(tree)[0])

    # ==================== 查询构建 ====================

    @classmethod
    def _scoped_query(cls, tree_id: Any):
        query = cls.query
        name = cls.__tree_attribute__
        if name:
            query = query.filter(getattr(cls, name) == tree_id)
        return query

    @classmethod
    def _bound_columns(cls):
        return getattr(cls, cls.__left_attribute__), getattr(cls, cls.__right_attribute__)

    @classmethod
    def query_tree(cls, tree_id: Any, options: Optional[Sequence] = None):
        """整棵树的全部节点，按左值升序"""
        left_col, _ = cls._bound_columns()
        query = cls._scoped_query(tree_id).order_by(left_col)
        if options:
            query = query.options(*options)
        return query

    def query_ancestors(self):
        """全部祖先，根在前"""
        cls = self.__class__
        left_col, right_col = cls._bound_columns()
        left, right = self.nested_bounds
        return (
            cls._scoped_query(self.nested_tree_id)
            .filter(left_col < left, right_col > right)
            .order_by(left_col)
        )

    def query_descendants(self):
        """全部子孙，按左值升序"""
        cls = self.__class__
        left_col, right_col = cls._bound_columns()
        left, right = self.nested_bounds
        return (
            cls._scoped_query(self.nested_tree_id)
            .filter(left_col > left, right_col < right)
            .order_by(left_col)
        )

    def query_children(self, depth: Optional[int] = 1):
        """depth 层以内的子孙，depth=1 为直接子节点，None 为全部子孙

        Raises:
            NestedSetError: 模型没有深度字段且 depth > 1
        """
        query = self.query_descendants()
        if depth is None:
            return query

        cls = self.__class__
        depth_name = cls.__depth_attribute__
        if depth_name:
            return query.filter(getattr(cls, depth_name) <= getattr(self, depth_name) + depth)

        if depth != 1:
            raise NestedSetError(f"{cls.__name__} 没有深度字段，只能查询直接子节点")

        # 直接子节点：与当前节点之间不存在其他节点
        left_col, right_col = cls._bound_columns()
        left, right = self.nested_bounds
        between = aliased(cls)
        between_left = getattr(between, cls.__left_attribute__)
        between_right = getattr(between, cls.__right_attribute__)
        conditions = [
            between_left > left,
            between_right < right,
            between_left < left_col,
            between_right > right_col,
        ]
        if cls.__tree_attribute__:
            conditions.append(
                getattr(between, cls.__tree_attribute__) == getattr(cls, cls.__tree_attribute__)
            )
        return query.filter(~exists().where(*conditions))

    def query_prev(self):
        """前一个兄弟节点（right == 当前 left - 1）"""
        cls = self.__class__
        _, right_col = cls._bound_columns()
        left, _ = self.nested_bounds
        return cls._scoped_query(self.nested_tree_id).filter(right_col == left - 1)

    def query_next(self):
        """后一个兄弟节点（left == 当前 right + 1）"""
        cls = self.__class__
        left_col, _ = cls._bound_columns()
        _, right = self.nested_bounds
        return cls._scoped_query(self.nested_tree_id).filter(left_col == right + 1)

    # ==================== 节点导航方法 ====================

    def get_ancestors(self) -> List[Any]:
        """获取全部祖先（根在前），结果缓存在链接中

        非根节点查询一次祖先，并顺带设置每个祖先的父节点链接。
        """
        links = self.nested_links
        if links.is_resolved(LinkKind.ANCESTORS):
            return links.ancestors

        if self.is_root():
            links.set(LinkKind.ANCESTORS, [])
            links.set(LinkKind.PARENT, None)
            return links.ancestors

        ancestors = self.query_ancestors().all()
        self._adopt(ancestors)
        links.set(LinkKind.ANCESTORS, ancestors)

        if not ancestors:
            links.set(LinkKind.PARENT, None)
            return ancestors

        child = self
        for ancestor in reversed(ancestors):
            child.nested_links.set(LinkKind.PARENT, ancestor)
            child = ancestor
        child.nested_links.set(LinkKind.PARENT, None)

        for index, ancestor in enumerate(ancestors):
            if not ancestor.nested_links.is_resolved(LinkKind.ANCESTORS):
                ancestor.nested_links.set(LinkKind.ANCESTORS, ancestors[:index])

        logger.debug(f"{self!r} 查询到 {len(ancestors)} 个祖先")
        return ancestors

    def get_parent(self) -> Optional[Any]:
        """获取父节点，根节点返回 None"""
        links = self.nested_links
        if not links.is_resolved(LinkKind.PARENT):
            ancestors = self.get_ancestors()
            if not links.is_resolved(LinkKind.PARENT):
                links.set(LinkKind.PARENT, ancestors[-1] if ancestors else None)
        return links.parent

    def get_children(self, options: Optional[Sequence] = None) -> List[Any]:
        """获取直接子节点（按左值排序），结果缓存在链接中

        叶子节点直接得到空列表，不查询。

        Args:
            options: SQLAlchemy 加载选项，仅在需要查询时使用
        """
        links = self.nested_links
        if links.is_resolved(LinkKind.CHILDREN):
            return links.children

        if self.is_leaf():
            links.set(LinkKind.CHILDREN, [])
            return links.children

        query = self.query_children(1)
        if options:
            query = query.options(*options)
        children = query.all()
        self._adopt(children)
        build_tree_level(children, self, full_tree=False)
        logger.debug(f"{self!r} 查询到 {len(children)} 个子节点")
        return links.children

    def get_prev(self) -> Optional[Any]:
        """获取前一个兄弟节点，不存在返回 None（同样缓存）"""
        links = self.nested_links
        if links.is_resolved(LinkKind.PREV):
            return links.prev

        prev = None if self.is_root() else self.query_prev().first()
        links.set(LinkKind.PREV, prev)
        if prev is not None:
            self._adopt([prev])
            if not prev.nested_links.is_resolved(LinkKind.NEXT):
                prev.nested_links.set(LinkKind.NEXT, self)
        return prev

    def get_next(self) -> Optional[Any]:
        """获取后一个兄弟节点，不存在返回 None（同样缓存）"""
        links = self.nested_links
        if links.is_resolved(LinkKind.NEXT):
            return links.next

        next_node = None if self.is_root() else self.query_next().first()
        links.set(LinkKind.NEXT, next_node)
        if next_node is not None:
            self._adopt([next_node])
            if not next_node.nested_links.is_resolved(LinkKind.PREV):
                next_node.nested_links.set(LinkKind.PREV, self)
        return next_node

    def get_descendants(self, options: Optional[Sequence] = None) -> List[Any]:
        """一次查询获取全部子孙（按左值排序），并以全树模式链接整棵子树

        每次调用都会查询；需要缓存整棵树时使用 load_tree。
        """
        if self.is_leaf():
            self.nested_links.set(LinkKind.CHILDREN, [])
            return []

        self.get_ancestors()
        query = self.query_descendants()
        if options:
            query = query.options(*options)
        descendants = query.all()
        self._adopt(descendants)
        build_tree_level(descendants, self, full_tree=True)
        return descendants

    def get_nested_relation(self, kind: Union[LinkKind, str]) -> Any:
        """按关系种类获取导航关系

        Raises:
            InvalidRelationError: 未知的关系名
        """
        getters = {
            LinkKind.ANCESTORS: self.get_ancestors,
            LinkKind.PARENT: self.get_parent,
            LinkKind.PREV: self.get_prev,
            LinkKind.NEXT: self.get_next,
            LinkKind.CHILDREN: self.get_children,
        }
        return getters[LinkKind.coerce(kind)]()

    def populate_nested_relation(self, kind: Union[LinkKind, str], value: Any) -> None:
        """直接填充导航关系

        - parent: 同时设置 ancestors = 父节点的祖先 + [父节点]（None 时为 []）
        - ancestors: 同时设置 parent = 最后一个祖先；单个节点会被包装成列表
        - prev / next / children: 原样写入

        Raises:
            InvalidRelationError: 未知的关系名
        """
        kind = LinkKind.coerce(kind)
        links = self.nested_links

        if kind is LinkKind.PARENT:
            ancestors = [] if value is None else list(value.get_ancestors()) + [value]
            links.set(LinkKind.ANCESTORS, ancestors)
            links.set(LinkKind.PARENT, value)
        elif kind is LinkKind.ANCESTORS:
            if not value:
                links.set(LinkKind.ANCESTORS, [])
                links.set(LinkKind.PARENT, None)
            else:
                ancestors = list(value) if isinstance(value, (list, tuple)) else [value]
                links.set(LinkKind.ANCESTORS, ancestors)
                links.set(LinkKind.PARENT, ancestors[-1])
        else:
            links.set(kind, value)

    def _adopt(self, nodes: Sequence) -> None:
        """把当前节点已加载的树对象关系传给查询得到的节点"""
        name = self.__class__.__tree_relation__
        if not name or name not in inspect(self).dict:
            return
        value = getattr(self, name)
        for node in nodes:
            set_committed_value(node, name, value)

    # ==================== 序列化 ====================

    @classmethod
    def extra_fields(cls) -> List[str]:
        """可序列化的导航关系名"""
        return [kind.value for kind in LinkKind]

    def to_dict_with_nested_relations(self, relations: Optional[Sequence] = None, exclude: set = None) -> dict:
        """转换为字典（包含导航关系，关系中的节点只展开一层）

        Args:
            relations: 关系名列表，默认全部（ancestors/parent/prev/next/children）
            exclude: 需要排除的字段集合
        """
        data = self.to_dict(exclude=exclude)
        for name in (relations if relations is not None else self.extra_fields()):
            kind = LinkKind.coerce(name)
            value = self.get_nested_relation(kind)
            if value is None:
                data[kind.value] = None
            elif isinstance(value, list):
                data[kind.value] = [node.to_dict(exclude=exclude) for node in value]
            else:
                data[kind.value] = value.to_dict(exclude=exclude)
        return data

    # ==================== 删除 ====================

    def before_delete(self) -> bool:
        """删除前钩子，返回 False 表示拒绝删除（子类覆盖）"""
        return True

    def after_delete(self) -> None:
        """删除后钩子（子类覆盖）"""
        pass

    def delete_node(self) -> bool:
        """删除当前这一行

        Returns:
            False 表示 before_delete 拒绝；数据库错误直接抛出
        """
        if not self.before_delete():
            return False
        session = self.session
        session.delete(self)
        session.flush()
        self.after_delete()
        return True

    def delete_with_children(self) -> bool:
        """一条 DELETE 删除当前节点及其全部子孙

        Returns:
            False 表示 before_delete 拒绝；数据库错误直接抛出
        """
        if not self.before_delete():
            return False
        cls = self.__class__
        left_col, right_col = cls._bound_columns()
        left, right = self.nested_bounds
        stmt = delete(cls).where(left_col >= left, right_col <= right)
        if cls.__tree_attribute__:
            stmt = stmt.where(getattr(cls, cls.__tree_attribute__) == self.nested_tree_id)
        result = self.session.execute(stmt.execution_options(synchronize_session="fetch"))
        logger.debug(f"{self!r} 批量删除 {result.rowcount} 行")
        self.after_delete()
        return True

    @classmethod
    def is_delete_transactional(cls) -> bool:
        if cls.__transactional_delete__ is not None:
            return cls.__transactional_delete__
        return TreeConfig.get_transactional_delete()

    def delete_recursively(self) -> bool:
        """递归删除当前节点及其子孙

        事务模式下（默认）：
            - 无外层事务时新建事务，成功提交
            - 已在事务中时使用 savepoint
            - 某个节点被拒绝：回滚并返回 False
            - 其他异常：回滚后原样抛出
        非事务模式下直接返回删除结果。

        Returns:
            是否全部删除成功
        """
        if not self.is_delete_transactional():
            return delete_subtree(self) is DeleteOutcome.SUCCESS

        propagation = (
            TransactionPropagation.NESTED
            if transaction_manager.is_in_transaction()
            else TransactionPropagation.REQUIRED
        )
        with transaction_manager.transaction(session=self.session, propagation=propagation) as tx:
            if delete_subtree(self) is DeleteOutcome.FAILURE:
                tx.rollback()
                logger.warning(f"{self!r} 递归删除失败，已回滚")
                return False
        return True


def _propagate_tree_relation(root, item) -> None:
    name = root.__class__.__tree_relation__
    set_committed_value(item, name, getattr(root, name))


__all__ = ["NestedSetMixin"]
