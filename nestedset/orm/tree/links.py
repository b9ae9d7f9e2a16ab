"""节点导航链接

每个节点挂载一份 NodeLinks，记录五种导航关系的解析状态：
    - UNRESOLVED: 尚未计算
    - None: 已计算，不存在该关系（如根节点没有父节点）
    - 其他值: 已计算的结果

使用示例:
    links = NodeLinks()
    links.is_resolved(LinkKind.PARENT)   # False
    links.set(LinkKind.PARENT, None)
    links.is_resolved(LinkKind.PARENT)   # True
    links.get(LinkKind.PARENT)           # None
"""

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Union

from .exceptions import InvalidRelationError


class _Unresolved:
    """未解析标记（单例）"""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNRESOLVED"

    def __bool__(self) -> bool:
        return False


UNRESOLVED = _Unresolved()


class LinkKind(str, Enum):
    """导航关系种类"""

    ANCESTORS = "ancestors"
    """祖先列表，根在前，根节点为空列表"""

    PARENT = "parent"
    """父节点"""

    PREV = "prev"
    """前一个兄弟节点"""

    NEXT = "next"
    """后一个兄弟节点"""

    CHILDREN = "children"
    """直接子节点列表，按左值排序"""

    @classmethod
    def coerce(cls, kind: Union["LinkKind", str]) -> "LinkKind":
        """将字符串关系名转换为 LinkKind

        Raises:
            InvalidRelationError: 未知的关系名
        """
        if isinstance(kind, cls):
            return kind
        try:
            return cls(kind)
        except ValueError:
            raise InvalidRelationError(kind, [k.value for k in cls]) from None


@dataclass
class NodeLinks:
    """单个节点的导航链接记录"""

    ancestors: Any = UNRESOLVED
    parent: Any = UNRESOLVED
    prev: Any = UNRESOLVED
    next: Any = UNRESOLVED
    children: Any = UNRESOLVED

    def is_resolved(self, kind: Union[LinkKind, str]) -> bool:
        return getattr(self, LinkKind.coerce(kind).value) is not UNRESOLVED

    def get(self, kind: Union[LinkKind, str], default: Any = UNRESOLVED) -> Any:
        value = getattr(self, LinkKind.coerce(kind).value)
        return default if value is UNRESOLVED else value

    def set(self, kind: Union[LinkKind, str], value: Any) -> None:
        setattr(self, LinkKind.coerce(kind).value, value)

    def reset(self, kind: Union[LinkKind, str] = None) -> None:
        """重置为未解析，不传 kind 时重置全部"""
        if kind is not None:
            setattr(self, LinkKind.coerce(kind).value, UNRESOLVED)
            return
        for f in fields(self):
            setattr(self, f.name, UNRESOLVED)

    def resolved_kinds(self) -> list:
        """已解析的关系种类"""
        return [kind for kind in LinkKind if self.is_resolved(kind)]


__all__ = [
    "UNRESOLVED",
    "LinkKind",
    "NodeLinks",
]
