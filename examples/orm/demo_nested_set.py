"""嵌套集合 Mixin 使用示例

演示 NestedSetMixin 的各种使用场景：
1. 整树加载与缓存
2. 单个节点的惰性导航
3. 导航关系序列化
4. 带拒绝钩子的递归删除
"""

import sys
from pathlib import Path

# 添加项目根目录到 path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from nestedset.log import setup_logger
from nestedset.orm import CoreModel, Base, init_database, db_session_scope
from nestedset.orm.tree import (
    NestedSetFieldsMixin,
    NestedSetMixin,
    tree_to_dict_list,
    validate_nested_set,
)


class Department(CoreModel, NestedSetFieldsMixin, NestedSetMixin):
    """部门模型"""
    __tablename__ = "demo_department"

    name: Mapped[str] = mapped_column(String(100), comment="部门名称")
    locked: Mapped[bool] = mapped_column(default=False, comment="锁定后不允许删除")

    def before_delete(self) -> bool:
        if self.locked:
            print(f"  [Hook] {self.name} 已锁定，拒绝删除")
            return False
        return True

    def after_delete(self) -> None:
        print(f"  [Hook] {self.name} 已删除")


# 总部(1,12)
#   ├─ 研发部(2,7)
#   │    ├─ 平台组(3,4)
#   │    └─ 算法组(5,6)
#   └─ 市场部(8,11)
#        └─ 品牌组(9,10)  锁定
ROWS = [
    ("总部", 1, 12, 0, False),
    ("研发部", 2, 7, 1, False),
    ("平台组", 3, 4, 2, False),
    ("算法组", 5, 6, 2, False),
    ("市场部", 8, 11, 1, False),
    ("品牌组", 9, 10, 2, True),
]


def seed():
    with db_session_scope():
        Department.add_all([
            Department(name=name, tree=1, lft=lft, rgt=rgt, depth=depth, locked=locked)
            for name, lft, rgt, depth, locked in ROWS
        ])


def demo_load_tree():
    print("\n==================== 1. 整树加载 ====================")
    with db_session_scope():
        nodes = Department.load_tree(1)
        print(f"  左右值校验: {validate_nested_set(nodes) or '通过'}")
        for node in nodes:
            parent = node.get_parent()
            indent = "    " * len(node.get_ancestors())
            print(f"  {indent}{node.name} (父: {parent.name if parent else '-'})")

        again = Department.load_tree(1)
        print(f"  第二次加载命中缓存: {again is nodes}")

    # 节点随 session 一起失效，换 session 前清除
    Department.clear_tree_cache(1)


def demo_lazy_navigation():
    print("\n==================== 2. 惰性导航 ====================")
    with db_session_scope():
        node = Department.query.filter_by(name="算法组").one()
        print(f"  {node.name} 的祖先: {[a.name for a in node.get_ancestors()]}")
        print(f"  {node.name} 的前一个兄弟: {node.get_prev().name}")
        print(f"  {node.name} 的后一个兄弟: {node.get_next()}")
        print(f"  {node.name} 的子节点: {node.get_children()}")


def demo_serialize():
    print("\n==================== 3. 序列化 ====================")
    with db_session_scope():
        root = Department.load_tree(1)[0]
        print(f"  {tree_to_dict_list(root, to_dict=lambda n: {'name': n.name})}")
        data = root.get_children()[0].to_dict_with_nested_relations(
            relations=["parent", "next"],
            exclude={"created_at"},
        )
        print(f"  研发部: parent={data['parent']['name']}, next={data['next']['name']}")

    Department.clear_tree_cache()


def demo_delete():
    print("\n==================== 4. 递归删除 ====================")
    with db_session_scope():
        root = Department.query.filter_by(lft=1).one()
        print(f"  删除总部: {root.delete_recursively()}")
        print(f"  剩余部门数: {Department.query.count()}")

    with db_session_scope():
        dept = Department.query.filter_by(name="研发部").one()
        print(f"  删除研发部: {dept.delete_recursively()}")
        print(f"  剩余部门数: {Department.query.count()}")


if __name__ == "__main__":
    setup_logger("nestedset", level="INFO")

    engine, _ = init_database("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    seed()
    demo_load_tree()
    demo_lazy_navigation()
    demo_serialize()
    demo_delete()
