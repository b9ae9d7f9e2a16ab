"""
嵌套集合全局配置管理

提供全局配置接口，用于设置单层构建校验与递归删除的事务行为。
"""

from typing import Any, Optional


class TreeConfig:
    """嵌套集合全局配置类

    使用类变量存储全局配置：
    - validate_level_children: 单层构建时是否校验子节点边界
    - transactional_delete: 递归删除是否包裹在事务中（模型未声明时的默认值）
    """

    _validate_level_children: bool = True
    _transactional_delete: bool = True

    @classmethod
    def configure(
        cls,
        validate_level_children: Optional[bool] = None,
        transactional_delete: Optional[bool] = None,
    ):
        """配置全局选项，None 表示保持不变

        Examples:
            >>> configure_nested_set(validate_level_children=False)
        """
        if validate_level_children is not None:
            cls._validate_level_children = bool(validate_level_children)
        if transactional_delete is not None:
            cls._transactional_delete = bool(transactional_delete)

    @classmethod
    def get_validate_level_children(cls) -> bool:
        return cls._validate_level_children

    @classmethod
    def get_transactional_delete(cls) -> bool:
        return cls._transactional_delete

    @classmethod
    def reset(cls):
        """重置为默认配置（主要用于测试）"""
        cls._validate_level_children = True
        cls._transactional_delete = True


def configure_nested_set(
    validate_level_children: Optional[bool] = None,
    transactional_delete: Optional[bool] = None,
    settings: Any = None,
):
    """配置嵌套集合全局选项（便捷函数）

    Args:
        validate_level_children: 单层构建时是否校验子节点边界
        transactional_delete: 递归删除默认是否使用事务
        settings: NestedSetSettings 配置对象，提供后从中读取上述两项

    Examples:
        >>> from nestedset.config import NestedSetSettings
        >>> configure_nested_set(settings=NestedSetSettings())
    """
    if settings is not None:
        validate_level_children = getattr(settings, "validate_level_children", validate_level_children)
        transactional_delete = getattr(settings, "transactional_delete", transactional_delete)
    TreeConfig.configure(
        validate_level_children=validate_level_children,
        transactional_delete=transactional_delete,
    )


def get_nested_set_config() -> dict:
    """获取当前嵌套集合配置"""
    return {
        "validate_level_children": TreeConfig.get_validate_level_children(),
        "transactional_delete": TreeConfig.get_transactional_delete(),
    }


__all__ = [
    "TreeConfig",
    "configure_nested_set",
    "get_nested_set_config",
]
