"""嵌套集合字段定义

提供标准的嵌套集合字段定义 Mixin，简化模型定义。

使用示例:
    from nestedset.orm import CoreModel
    from nestedset.orm.tree import NestedSetFieldsMixin, NestedSetMixin

    class Category(CoreModel, NestedSetFieldsMixin, NestedSetMixin):
        title = mapped_column(String(100))
"""

from typing import Optional

from sqlalchemy import Integer
from sqlalchemy.orm import Mapped, mapped_column


class NestedSetFieldsMixin:
    """嵌套集合字段 Mixin

    提供 NestedSetMixin 默认使用的字段：
    - tree: 树标识（同一张表可存放多棵树）
    - lft / rgt: 左右值
    - depth: 深度（根节点为 0）

    左右值与深度由写入方维护，本库只读取。
    字段名与 NestedSetMixin 的 __tree_attribute__ 等默认值一致。
    """

    tree: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        index=True,
        comment="树标识"
    )

    lft: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        index=True,
        comment="左值"
    )

    rgt: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        index=True,
        comment="右值"
    )

    depth: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="深度（根节点为0）"
    )


__all__ = ["NestedSetFieldsMixin"]
