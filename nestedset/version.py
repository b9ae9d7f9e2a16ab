"""版本信息"""

__version__ = "0.1.0"
__author__ = "nestedset contributors"
__description__ = "基于 SQLAlchemy 的嵌套集合（左右值）树读取与递归删除"
