"""嵌套集合 NestedSetMixin 测试

测试 NestedSetMixin 的核心功能：
1. 整树加载与缓存
2. 节点惰性导航（每种关系最多查询一次）
3. 导航关系的填充与序列化
4. 无深度字段 / 单树表
5. 树对象关系回填
"""

import pytest
from sqlalchemy import ForeignKey, Integer, String, update
from sqlalchemy.orm import Mapped, mapped_column, relationship, sessionmaker, scoped_session

from nestedset.orm import Base, CoreModel
from nestedset.orm.tree import (
    InvalidRelationError,
    LinkKind,
    MalformedTreeError,
    NestedSetError,
    NestedSetFieldsMixin,
    NestedSetMixin,
    TreeCache,
)


# ==================== 测试模型定义 ====================

class NestedCategory(CoreModel, NestedSetFieldsMixin, NestedSetMixin):
    """分类模型 - 使用 NestedSetFieldsMixin"""
    __tablename__ = "test_nested_category"
    __table_args__ = {'extend_existing': True}

    title: Mapped[str] = mapped_column(String(100))


class NestedMenu(CoreModel, NestedSetMixin):
    """菜单模型 - 整张表一棵树，无深度字段"""
    __tablename__ = "test_nested_menu"
    __table_args__ = {'extend_existing': True}

    __tree_attribute__ = None
    __depth_attribute__ = None

    lft: Mapped[int] = mapped_column(Integer, nullable=False)
    rgt: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(100))


class NestedCatalog(CoreModel):
    """树对象"""
    __tablename__ = "test_nested_catalog"
    __table_args__ = {'extend_existing': True}

    name: Mapped[str] = mapped_column(String(100))


class NestedCatalogNode(CoreModel, NestedSetFieldsMixin, NestedSetMixin):
    """目录节点 - tree 字段关联到树对象"""
    __tablename__ = "test_nested_catalog_node"
    __table_args__ = {'extend_existing': True}

    __tree_relation__ = "catalog"

    tree: Mapped[int] = mapped_column(Integer, ForeignKey("test_nested_catalog.id"), nullable=True)
    catalog: Mapped[NestedCatalog] = relationship(NestedCatalog)
    title: Mapped[str] = mapped_column(String(100))


# root(1,10) -> A(2,5) -> C(3,4); root -> B(6,9) -> D(7,8)
SAMPLE_ROWS = [
    ("root", 1, 10, 0),
    ("A", 2, 5, 1),
    ("C", 3, 4, 2),
    ("B", 6, 9, 1),
    ("D", 7, 8, 2),
]


def seed_tree(model, tree_id=1, rows=SAMPLE_ROWS, **extra):
    nodes = [
        model(title=title, tree=tree_id, lft=lft, rgt=rgt, depth=depth, **extra)
        for title, lft, rgt, depth in rows
    ]
    model.add_all(nodes, commit=True)


def by_title(nodes):
    return {node.title: node for node in nodes}


def titles(nodes):
    return [node.title for node in nodes]


class DatabaseTestBase:
    """建表并绑定 CoreModel.query，每个测试使用全新的树缓存"""

    @pytest.fixture(autouse=True)
    def setup_db(self, memory_engine):
        """初始化数据库"""
        Base.metadata.create_all(bind=memory_engine)
        SessionLocal = sessionmaker(autoflush=False, bind=memory_engine)
        self.session_scope = scoped_session(SessionLocal)
        CoreModel.query = self.session_scope.query_property()
        for model in (NestedCategory, NestedMenu, NestedCatalogNode):
            model.use_tree_cache(TreeCache(name=model.__name__))
        yield
        self.session_scope.remove()

    def fresh_session(self):
        """丢弃当前 session，后续查询拿到全新的实例"""
        self.session_scope.remove()


# ==================== 整树加载 ====================

class TestLoadTree(DatabaseTestBase):
    """整树加载测试"""

    @pytest.fixture(autouse=True)
    def seed(self, setup_db):
        seed_tree(NestedCategory, tree_id=1)
        self.fresh_session()

    def test_links_of_sample_tree(self):
        """root 的子节点为 [A, B]，A 的子节点为 [C]，兄弟与祖先正确"""
        nodes = NestedCategory.load_tree(1)
        n = by_title(nodes)

        assert titles(nodes) == ["root", "A", "C", "B", "D"]
        assert n["root"].get_children() == [n["A"], n["B"]]
        assert n["A"].get_children() == [n["C"]]
        assert n["A"].get_prev() is None
        assert n["A"].get_next() is n["B"]
        assert n["B"].get_prev() is n["A"]
        assert n["B"].get_next() is None
        assert n["C"].get_ancestors() == [n["root"], n["A"]]

    def test_single_query_for_whole_tree(self, sql_counter):
        """加载一次查询，之后所有导航都不再查询"""
        sql_counter.reset()
        nodes = NestedCategory.load_tree(1)
        assert sql_counter.count == 1

        for node in nodes:
            node.get_ancestors()
            node.get_parent()
            node.get_children()
            node.get_prev()
            node.get_next()
        assert sql_counter.count == 1

    def test_structural_properties(self):
        """每个节点只出现在父节点的子节点中一次，祖先与兄弟链接一致"""
        nodes = NestedCategory.load_tree(1)
        root = nodes[0]

        assert sum(len(node.get_children()) for node in nodes) == len(nodes) - 1
        assert root.get_parent() is None
        assert root.get_ancestors() == []
        assert root.get_prev() is None
        assert root.get_next() is None

        for node in nodes[1:]:
            parent = node.get_parent()
            assert parent.get_children().count(node) == 1
            assert node.get_ancestors()[-1] is parent
            assert node.get_ancestors()[0] is root
            if node.get_prev() is not None:
                assert node.get_prev().get_next() is node
            if node.get_next() is not None:
                assert node.get_next().get_prev() is node

    def test_same_list_returned_from_cache(self, sql_counter):
        """同一树标识第二次加载返回同一个列表对象，即使数据已变化"""
        first = NestedCategory.load_tree(1)

        NestedCategory.query.session.execute(
            update(NestedCategory).where(NestedCategory.lft == 3).values(title="changed")
        )
        sql_counter.reset()
        second = NestedCategory.load_tree(1)

        assert second is first
        assert sql_counter.count == 0

    def test_clear_tree_cache_reloads(self, sql_counter):
        first = NestedCategory.load_tree(1)
        NestedCategory.clear_tree_cache(1)

        sql_counter.reset()
        second = NestedCategory.load_tree(1)

        assert second is not first
        assert sql_counter.count == 1

    def test_empty_tree_cached(self, sql_counter):
        sql_counter.reset()

        assert NestedCategory.load_tree(99) == []
        assert NestedCategory.load_tree(99) == []
        assert sql_counter.count == 1

    def test_trees_are_isolated(self):
        seed_tree(NestedCategory, tree_id=2, rows=[("other", 1, 4, 0), ("leaf", 2, 3, 1)])

        nodes = NestedCategory.load_tree(2)

        assert titles(nodes) == ["other", "leaf"]
        assert nodes[0].get_children() == [nodes[1]]

    def test_injected_cache(self):
        cache = TreeCache(name="injected")

        nodes = NestedCategory.load_tree(1, cache=cache)

        assert cache.get(1) is nodes
        assert 1 not in NestedCategory.get_tree_cache()

    def test_malformed_tree(self):
        """左右值声明的子孙数量与实际行数不符"""
        seed_tree(NestedCategory, tree_id=3, rows=[("root", 1, 6, 0), ("A", 2, 5, 1)])

        with pytest.raises(MalformedTreeError):
            NestedCategory.load_tree(3)


# ==================== 惰性导航 ====================

class TestLazyNavigation(DatabaseTestBase):
    """单个节点的惰性导航测试"""

    @pytest.fixture(autouse=True)
    def seed(self, setup_db):
        seed_tree(NestedCategory, tree_id=1)
        self.fresh_session()

    def node(self, title):
        return NestedCategory.query.filter_by(tree=1, title=title).one()

    def test_get_children_queries_once(self, sql_counter):
        root = self.node("root")

        sql_counter.reset()
        children = root.get_children()
        again = root.get_children()

        assert titles(children) == ["A", "B"]
        assert again is children
        assert sql_counter.count == 1
        assert children[0].get_next() is children[1]
        assert children[0].get_parent() is root
        assert sql_counter.count == 1

    def test_leaf_children_without_query(self, sql_counter):
        leaf = self.node("C")

        sql_counter.reset()

        assert leaf.get_children() == []
        assert sql_counter.count == 0

    def test_get_ancestors_sets_parent_chain(self, sql_counter):
        c = self.node("C")

        sql_counter.reset()
        ancestors = c.get_ancestors()

        assert titles(ancestors) == ["root", "A"]
        assert sql_counter.count == 1

        root, a = ancestors
        assert c.get_parent() is a
        assert a.get_parent() is root
        assert a.get_ancestors() == [root]
        assert root.get_parent() is None
        assert sql_counter.count == 1

    def test_get_parent_of_root_without_query(self, sql_counter):
        root = self.node("root")

        sql_counter.reset()

        assert root.get_parent() is None
        assert root.get_ancestors() == []
        assert sql_counter.count == 0

    def test_root_siblings_without_query(self, sql_counter):
        root = self.node("root")

        sql_counter.reset()

        assert root.get_prev() is None
        assert root.get_next() is None
        assert sql_counter.count == 0

    def test_get_prev_sets_reciprocal_link(self, sql_counter):
        b = self.node("B")

        sql_counter.reset()
        a = b.get_prev()

        assert a.title == "A"
        assert a.get_next() is b
        assert sql_counter.count == 1

    def test_missing_sibling_is_cached(self, sql_counter):
        b = self.node("B")

        sql_counter.reset()

        assert b.get_next() is None
        assert b.get_next() is None
        assert sql_counter.count == 1

    def test_get_descendants_links_subtree(self, sql_counter):
        root = self.node("root")

        sql_counter.reset()
        descendants = root.get_descendants()

        assert titles(descendants) == ["A", "C", "B", "D"]
        assert sql_counter.count == 1

        n = by_title(descendants)
        assert n["A"].get_children() == [n["C"]]
        assert n["D"].get_ancestors() == [root, n["B"]]
        assert n["B"].get_prev() is n["A"]
        assert sql_counter.count == 1

    def test_get_descendants_always_queries(self, sql_counter):
        a = self.node("A")
        a.get_descendants()

        sql_counter.reset()
        a.get_descendants()

        assert sql_counter.count == 1

    def test_query_children_by_depth(self):
        root = self.node("root")

        assert titles(root.query_children(1).all()) == ["A", "B"]
        assert titles(root.query_children(2).all()) == ["A", "C", "B", "D"]
        assert titles(root.query_children(None).all()) == ["A", "C", "B", "D"]

    def test_reset_nested_links(self, sql_counter):
        root = self.node("root")
        root.get_children()
        root.reset_nested_links()

        sql_counter.reset()
        root.get_children()

        assert sql_counter.count == 1

    def test_get_nested_relation(self):
        c = self.node("C")

        assert c.get_nested_relation("parent").title == "A"
        assert c.get_nested_relation(LinkKind.CHILDREN) == []

        with pytest.raises(InvalidRelationError):
            c.get_nested_relation("cousins")


# ==================== 关系填充与序列化 ====================

class TestPopulateAndSerialize(DatabaseTestBase):
    """导航关系填充与序列化测试"""

    @pytest.fixture(autouse=True)
    def seed(self, setup_db):
        seed_tree(NestedCategory, tree_id=1)
        self.fresh_session()

    def test_populate_parent_sets_ancestors(self, sql_counter):
        root = NestedCategory.query.filter_by(title="root").one()
        a = NestedCategory.query.filter_by(title="A").one()

        sql_counter.reset()
        a.populate_nested_relation("parent", root)

        assert a.get_parent() is root
        assert a.get_ancestors() == [root]
        assert sql_counter.count == 0

    def test_populate_parent_none(self):
        root = NestedCategory.query.filter_by(title="root").one()

        root.populate_nested_relation(LinkKind.PARENT, None)

        assert root.nested_links.ancestors == []
        assert root.nested_links.parent is None

    def test_populate_single_ancestor(self):
        root = NestedCategory.query.filter_by(title="root").one()
        a = NestedCategory.query.filter_by(title="A").one()

        a.populate_nested_relation("ancestors", root)

        assert a.nested_links.ancestors == [root]
        assert a.nested_links.parent is root

    def test_populate_siblings(self):
        a = NestedCategory.query.filter_by(title="A").one()
        b = NestedCategory.query.filter_by(title="B").one()

        a.populate_nested_relation("next", b)

        assert a.get_next() is b

    def test_populate_invalid_relation(self):
        a = NestedCategory.query.filter_by(title="A").one()

        with pytest.raises(InvalidRelationError):
            a.populate_nested_relation("sibling", None)

    def test_extra_fields(self):
        assert NestedCategory.extra_fields() == ["ancestors", "parent", "prev", "next", "children"]

    def test_to_dict_with_nested_relations(self, sql_counter):
        nodes = NestedCategory.load_tree(1)
        a = by_title(nodes)["A"]

        sql_counter.reset()
        data = a.to_dict_with_nested_relations()

        assert data["title"] == "A"
        assert data["parent"]["title"] == "root"
        assert [item["title"] for item in data["ancestors"]] == ["root"]
        assert [item["title"] for item in data["children"]] == ["C"]
        assert data["prev"] is None
        assert data["next"]["title"] == "B"
        assert sql_counter.count == 0

    def test_to_dict_with_selected_relations(self):
        nodes = NestedCategory.load_tree(1)
        c = by_title(nodes)["C"]

        data = c.to_dict_with_nested_relations(relations=["parent"], exclude={"created_at"})

        assert "children" not in data
        assert "created_at" not in data
        assert data["parent"]["title"] == "A"


# ==================== 无深度字段 / 单树表 ====================

class TestWithoutDepthColumn(DatabaseTestBase):
    """整张表一棵树、没有深度字段的模型"""

    @pytest.fixture(autouse=True)
    def seed(self, setup_db):
        nodes = [
            NestedMenu(title=title, lft=lft, rgt=rgt)
            for title, lft, rgt, _ in SAMPLE_ROWS
        ]
        NestedMenu.add_all(nodes, commit=True)
        self.fresh_session()

    def test_direct_children_without_depth(self):
        root = NestedMenu.query.filter_by(lft=1).one()

        assert titles(root.get_children()) == ["A", "B"]

    def test_deeper_query_not_supported(self):
        root = NestedMenu.query.filter_by(lft=1).one()

        with pytest.raises(NestedSetError):
            root.query_children(2)

    def test_load_whole_table(self):
        nodes = NestedMenu.load_tree("main")
        n = by_title(nodes)

        assert titles(nodes) == ["root", "A", "C", "B", "D"]
        assert n["D"].get_ancestors() == [n["root"], n["B"]]
        assert n["root"].nested_tree_id is None


# ==================== 树对象关系回填 ====================

class TestTreeRelation(DatabaseTestBase):
    """__tree_relation__ 回填测试"""

    @pytest.fixture(autouse=True)
    def seed(self, setup_db):
        catalog = NestedCatalog(name="产品目录")
        catalog.save(commit=True)
        self.catalog_id = catalog.id
        seed_tree(NestedCatalogNode, tree_id=self.catalog_id)
        self.fresh_session()

    def test_load_tree_with_tree_object(self, sql_counter):
        catalog = NestedCatalog.get(self.catalog_id)
        assert catalog.id == self.catalog_id

        sql_counter.reset()
        nodes = NestedCatalogNode.load_tree(catalog)

        assert len(nodes) == 5
        for node in nodes:
            assert node.catalog is catalog
        assert sql_counter.count == 1
        assert NestedCatalogNode.get_tree_cache().get(self.catalog_id) is nodes

    def test_lazy_navigation_adopts_relation(self, sql_counter):
        c = NestedCatalogNode.query.filter_by(title="C").one()
        catalog = c.catalog

        sql_counter.reset()
        ancestors = c.get_ancestors()

        for node in ancestors:
            assert node.catalog is catalog
        assert sql_counter.count == 1

    def test_clear_cache_by_tree_object(self, sql_counter):
        """按树对象清除缓存后重新加载会重新查询"""
        catalog = NestedCatalog.get(self.catalog_id)
        first = NestedCatalogNode.load_tree(catalog)

        NestedCatalogNode.clear_tree_cache(catalog)

        assert self.catalog_id not in NestedCatalogNode.get_tree_cache()
        sql_counter.reset()
        second = NestedCatalogNode.load_tree(catalog)
        assert second is not first
        assert sql_counter.count == 1
        assert NestedCatalogNode.get_tree_cache().get(self.catalog_id) is second
