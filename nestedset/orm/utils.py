"""ORM 工具函数

提供命名转换工具。
"""
import re


def to_snake_case(name: str) -> str:
    """驼峰命名转下划线命名（支持连续大写缩写如 API、URL）

    Examples:
        >>> to_snake_case("CategoryNode")
        'category_node'
        >>> to_snake_case("APIMenu")
        'api_menu'
    """
    # 连续大写后跟大写+小写：APIMenu → API_Menu
    result = re.sub(r'([A-Z\d]+)([A-Z][a-z])', r'\1_\2', name)
    # 小写字母后跟大写：categoryNode → category_Node
    result = re.sub(r'([a-z])([A-Z])', r'\1_\2', result)
    return result.lower()
