"""
Pytest 公共配置和 Fixtures

提供测试所需的公共资源：
- 内存数据库引擎
- 支持 SAVEPOINT 的内存数据库引擎
- SQL 语句计数
- 临时目录 / 文件
"""

import os
import tempfile

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.pool import StaticPool

from nestedset.orm.tree import TreeConfig


# ==================== 基础 Fixtures ====================

@pytest.fixture(scope="session")
def temp_dir():
    """创建临时目录"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def temp_file(temp_dir):
    """创建临时文件的工厂函数"""
    created_files = []

    def _create_file(filename: str, content: str = "") -> str:
        filepath = os.path.join(temp_dir, filename)
        if os.path.dirname(filepath):
            os.makedirs(os.path.dirname(filepath), exist_ok=True)
        with open(filepath, "w", encoding="utf-8") as f:
            f.write(content)
        created_files.append(filepath)
        return filepath

    yield _create_file

    for f in created_files:
        if os.path.exists(f):
            os.remove(f)


@pytest.fixture(autouse=True)
def reset_tree_config():
    """每个测试前后恢复嵌套集合全局配置"""
    TreeConfig.reset()
    yield
    TreeConfig.reset()


# ==================== 数据库 Fixtures ====================

@pytest.fixture(scope="function")
def memory_engine():
    """创建 SQLite 内存数据库引擎（每个测试一个全新数据库）"""
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def savepoint_engine():
    """支持 SAVEPOINT 的 SQLite 内存数据库引擎

    pysqlite 默认自行管理 BEGIN，会破坏保存点；这里交由 SQLAlchemy 发出 BEGIN。
    """
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    yield engine
    engine.dispose()


class StatementCounter:
    """记录引擎上执行的 SQL 语句"""

    def __init__(self):
        self.statements = []

    def __call__(self, conn, cursor, statement, parameters, context, executemany):
        self.statements.append(statement)

    @property
    def count(self) -> int:
        return len(self.statements)

    def reset(self):
        self.statements.clear()


@pytest.fixture
def sql_counter(memory_engine):
    """SQL 语句计数器，绑定到 memory_engine"""
    counter = StatementCounter()
    event.listen(memory_engine, "before_cursor_execute", counter)
    yield counter
    event.remove(memory_engine, "before_cursor_execute", counter)
