"""YAML 配置加载

解析结果按绝对路径缓存，取用方拿到的是同一个字典，不要原地修改。

使用示例:
    from nestedset.config import AppSettings, NestedSetSettings, load_yaml_config

    settings = load_yaml_config("config/settings.yaml", AppSettings)
    tree_settings = load_yaml_config("config/settings.yaml", NestedSetSettings, section="nested_set")
"""

import os
from typing import Any, Dict, Optional, Type, TypeVar

import yaml


SettingsT = TypeVar("SettingsT")


class ConfigLoader:
    """带缓存的 YAML 读取"""

    _cache: Dict[str, Dict[str, Any]] = {}

    @staticmethod
    def resolve(config_path: str, base_dir: Optional[str] = None) -> str:
        """相对路径基于 base_dir（默认当前目录）转为绝对路径"""
        return os.path.abspath(os.path.join(base_dir or os.getcwd(), config_path))

    @classmethod
    def load(cls, config_path: str, base_dir: Optional[str] = None, use_cache: bool = True) -> Dict[str, Any]:
        """读取 YAML 文件，空文件返回空字典

        Raises:
            FileNotFoundError: 文件不存在
            yaml.YAMLError: 内容无法解析
        """
        path = cls.resolve(config_path, base_dir)
        if use_cache and path in cls._cache:
            return cls._cache[path]
        if not os.path.isfile(path):
            raise FileNotFoundError(f"配置文件不存在: {path}")

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if use_cache:
            cls._cache[path] = data
        return data

    @classmethod
    def reload(cls, config_path: str, base_dir: Optional[str] = None) -> Dict[str, Any]:
        cls._cache.pop(cls.resolve(config_path, base_dir), None)
        return cls.load(config_path, base_dir)

    @classmethod
    def clear_cache(cls) -> None:
        cls._cache.clear()

    @classmethod
    def cached_paths(cls) -> list:
        return list(cls._cache)


def load_yaml_config(
    config_path: str,
    settings_class: Type[SettingsT],
    base_dir: Optional[str] = None,
    section: Optional[str] = None,
    **overrides,
) -> SettingsT:
    """由 YAML 内容构造 pydantic-settings 实例

    Args:
        config_path: 配置文件路径
        settings_class: 目标配置类
        base_dir: 相对路径的基准目录
        section: 只取某一段，如 "nested_set"
        **overrides: 覆盖项，不会写回缓存
    """
    data = ConfigLoader.load(config_path, base_dir)
    if section is not None:
        data = data.get(section) or {}
    return settings_class(**{**data, **overrides})


__all__ = [
    "ConfigLoader",
    "load_yaml_config",
]
