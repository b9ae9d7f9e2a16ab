"""数据库连接与 session

init_database() 建立引擎和按工作单元划分的 scoped_session，并把 CoreModel.query 绑定上去。
整树缓存里的节点属于加载它们的 session，所以脚本和任务应在 db_session_scope()
中完成一次加载与导航，离开前清除缓存。

使用示例:
    from nestedset.orm import init_database, db_session_scope

    init_database("sqlite:///./tree.db")

    with db_session_scope():
        nodes = Category.load_tree(1)
"""

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Generator, Optional
from uuid import uuid4

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..log import get_logger


logger = get_logger("nestedset.orm.session")

_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")

_unit_id: ContextVar[str] = ContextVar("nestedset_unit_id", default="")


def _current_unit() -> str:
    """scoped_session 的作用域：当前工作单元 ID，首次访问时生成"""
    unit = _unit_id.get()
    if not unit:
        unit = uuid4().hex[:8]
        _unit_id.set(unit)
    return unit


def _engine_kwargs(database_url: str, echo: bool) -> dict:
    kwargs: dict = {"echo": echo}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in _MEMORY_URLS:
            # 内存库只存在于单个连接中
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True
    return kwargs


class DatabaseManager:
    """引擎与 scoped_session 的持有者（单例）"""

    _instance: Optional["DatabaseManager"] = None

    def __new__(cls):
        if cls._instance is None:
            instance = super().__new__(cls)
            instance._engine = None
            instance._sessions = None
            cls._instance = instance
        return cls._instance

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("数据库未初始化，请先调用 init_database()")
        return self._engine

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    def init(
        self,
        database_url: Optional[str] = None,
        echo: bool = False,
        config: Any = None,
        bind_query: bool = True,
    ) -> tuple:
        """创建引擎与 scoped_session

        Args:
            database_url: 数据库 URL，传入 config 时可省略
            echo: 是否打印 SQL
            config: DatabaseSettings，提供 url 与 echo
            bind_query: 是否设置 CoreModel.query

        Returns:
            (engine, scoped_session)
        """
        if config is not None:
            database_url = database_url or config.url
            echo = echo or config.echo
        if not database_url:
            raise ValueError("缺少数据库 URL")

        self.dispose()
        self._engine = create_engine(database_url, **_engine_kwargs(database_url, echo))
        self._sessions = scoped_session(
            sessionmaker(bind=self._engine, autoflush=True),
            scopefunc=_current_unit,
        )
        if bind_query:
            from .core_model import CoreModel
            CoreModel.query = self._sessions.query_property()

        logger.info(f"数据库已初始化: {self._engine.url.render_as_string(hide_password=True)}")
        return self._engine, self._sessions

    def get_session(self) -> Session:
        """当前工作单元的 session"""
        if self._sessions is None:
            raise RuntimeError("数据库未初始化，请先调用 init_database()")
        return self._sessions()

    def remove_session(self) -> None:
        """关闭并丢弃当前工作单元的 session"""
        if self._sessions is not None:
            self._sessions.remove()

    def dispose(self) -> None:
        """释放连接池，之后需重新 init"""
        self.remove_session()
        if self._engine is not None:
            self._engine.dispose()
            logger.debug("数据库引擎已释放")
        self._engine = None
        self._sessions = None


db_manager = DatabaseManager()


def init_database(database_url: Optional[str] = None, echo: bool = False, config: Any = None):
    """初始化数据库，见 DatabaseManager.init"""
    return db_manager.init(database_url=database_url, echo=echo, config=config)


def get_engine() -> Engine:
    return db_manager.engine


@contextmanager
def db_session_scope(scope_id: Optional[str] = None, auto_commit: bool = True) -> Generator[Session, None, None]:
    """一个工作单元

    块内的 db_manager.get_session() 与 Model.query 共用同一个 session；
    正常退出时提交（auto_commit=False 时不提交），异常时回滚，最后移除 session。
    """
    token = _unit_id.set(scope_id or uuid4().hex[:8])
    session = db_manager.get_session()
    try:
        yield session
        if auto_commit:
            session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        db_manager.remove_session()
        _unit_id.reset(token)


__all__ = [
    "DatabaseManager",
    "db_manager",
    "init_database",
    "get_engine",
    "db_session_scope",
]
