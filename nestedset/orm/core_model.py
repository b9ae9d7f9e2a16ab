"""模型基类

CoreModel 负责表名推导、创建时间、session 访问和几项保存/读取方法，
嵌套集合 Mixin 通过其中的 query、session 与 to_dict 完成查询和序列化。
"""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar, TYPE_CHECKING

from sqlalchemy import DateTime, func, inspect
from sqlalchemy.orm import Mapped, Query, Session, declared_attr, mapped_column

if TYPE_CHECKING:
    from typing_extensions import Self

from .id_model import IdModel, Base
from .utils import to_snake_case
from ..log import get_logger


logger = get_logger()


class CoreModel(IdModel):
    """模型基类

    使用示例:
        from nestedset.orm import CoreModel, init_database

        init_database("sqlite:///./tree.db")

        class Category(CoreModel, NestedSetFieldsMixin, NestedSetMixin):
            title: Mapped[str] = mapped_column(String(50))

        Category.add_all(rows, commit=True)
    """
    __abstract__ = True
    __allow_unmapped__ = True

    # init_database() 或测试夹具通过 scoped_session.query_property() 设置
    if TYPE_CHECKING:
        query: ClassVar[Query[Self]]

    @declared_attr.directive
    def __tablename__(cls) -> str:
        name = cls.__name__
        if "_" in name:
            raise ValueError(f"{name} 含有下划线，无法推导表名，请显式声明 __tablename__")
        return to_snake_case(name)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        server_default=func.now(),
        comment="创建时间",
    )

    @property
    def session(self) -> Session:
        """节点所属的 session，未绑定 query 时取 db_manager 当前 session"""
        query = getattr(type(self), "query", None)
        if query is not None:
            return query.session
        from .db_session import db_manager
        return db_manager.get_session()

    def save(self, commit: bool = False) -> Self:
        """加入 session；commit=True 时提交，事务进行中改为 flush"""
        self.session.add(self)
        if commit:
            self._commit(self.session)
        return self

    @classmethod
    def add_all(cls, objects: list, commit: bool = False) -> list:
        session = cls.query.session
        session.add_all(objects)
        if commit:
            cls._commit(session)
        return objects

    @classmethod
    def get(cls, id: int):
        """按主键读取，不存在返回 None"""
        return cls.query.filter_by(id=id).one_or_none()

    def to_dict(self, exclude: set = None) -> dict:
        """列属性转字典"""
        exclude = exclude or set()
        return {
            attr.key: getattr(self, attr.key)
            for attr in inspect(self).mapper.column_attrs
            if attr.key not in exclude
        }

    @staticmethod
    def _commit(session: Session) -> None:
        from .transaction import get_current_transaction
        tx = get_current_transaction()
        if tx is not None and tx.should_suppress_commit():
            logger.debug("事务进行中，commit=True 改为 flush")
            session.flush()
        else:
            session.commit()


__all__ = ["CoreModel", "Base"]
