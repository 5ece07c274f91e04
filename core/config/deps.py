"""
依赖注入：Annotated[T, Depends(getter)] 标记配置项，inject() 调用 getter 取值。

用法：
    from core.config import inject, MatchingConfig

    matching = inject(MatchingConfig)
"""

from __future__ import annotations

from typing import Annotated, Any, Callable, get_args, get_origin


class Depends:
    """依赖标记：保存取值函数 getter。"""

    __slots__ = ("getter",)

    def __init__(self, getter: Callable[[], Any]) -> None:
        self.getter = getter

    def __repr__(self) -> str:
        return f"Depends({getattr(self.getter, '__name__', self.getter)!r})"


def find_depends(typed: Any) -> Depends:
    """从 Annotated 元数据中找出 Depends；类型不符时抛出 TypeError。"""
    if get_origin(typed) is not Annotated:
        raise TypeError(f"期望 Annotated 类型，得到: {typed}")
    metadata = get_args(typed)[1:]
    for meta in metadata:
        if isinstance(meta, Depends):
            return meta
    raise TypeError(f"未找到 Depends 元数据: {typed}")


def inject(typed: Any) -> Any:
    """解析 Annotated[T, Depends(getter)]，返回 getter() 的结果。"""
    return find_depends(typed).getter()
