"""
加载器兼容回退

Quilt 可以加载 Fabric 模组，反之不行。当以 Quilt 解析失败时，
用 Fabric 替换 Quilt 重新解析一次，并告知调用方使用了回退。
"""

import functools
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Tuple, TypeVar

from loguru import logger

from modkeeper.exceptions import SelectError
from modkeeper.models import (
    DownloadCandidate,
    Filter,
    LoaderAny,
    LoaderPrefer,
    ModLoader,
)
from modkeeper.services.selector import select_latest
from modkeeper.services.version_groups import VersionGroupCache

T = TypeVar("T")

# 单向兼容：键可以加载值的模组
LOADER_FALLBACKS = {
    ModLoader.QUILT: ModLoader.FABRIC,
}


def fallback_for(loader: Optional[ModLoader]) -> Optional[ModLoader]:
    if loader is None:
        return None
    return LOADER_FALLBACKS.get(loader)


def primary_loader(filters: Sequence[Filter]) -> Optional[ModLoader]:
    """第一个加载器过滤器中的第一个加载器"""
    for f in filters:
        if isinstance(f, (LoaderPrefer, LoaderAny)) and f.loaders:
            return f.loaders[0]
    return None


def substitute_loader(
    filters: Sequence[Filter], primary: ModLoader, secondary: ModLoader
) -> List[Filter]:
    """返回把加载器过滤器中的 primary 替换为 secondary 后的过滤器副本"""
    result: List[Filter] = []
    for f in filters:
        if isinstance(f, (LoaderPrefer, LoaderAny)) and primary in f.loaders:
            loaders = [
                secondary if loader == primary else loader for loader in f.loaders
            ]
            result.append(type(f)(tuple(loaders)))
        else:
            result.append(f)
    return result


def with_loader_fallback(
    resolve: Callable[..., Awaitable[T]],
) -> Callable[..., Awaitable[Tuple[T, bool]]]:
    """
    为以加载器作为第一个参数的异步解析函数加上回退

    被包装的函数签名为 ``resolve(loader, *args, **kwargs)``，包装后接受
    ``(primary, *args, secondary=None, **kwargs)`` 并返回 ``(结果, 是否使用了回退)``。
    只有 SelectError 会触发回退，且最多回退一次。
    """

    @functools.wraps(resolve)
    async def wrapper(
        primary: ModLoader,
        *args: Any,
        secondary: Optional[ModLoader] = None,
        **kwargs: Any,
    ) -> Tuple[T, bool]:
        fallback = secondary or fallback_for(primary)
        try:
            return await resolve(primary, *args, **kwargs), False
        except SelectError as e:
            if fallback is None or fallback == primary:
                raise
            logger.debug(f"以 {primary} 解析失败 ({e.message})，尝试 {fallback}")

        result = await resolve(fallback, *args, **kwargs)
        logger.debug(f"未找到 {primary} 文件，使用向后兼容的 {fallback} 文件")
        return result, True

    return wrapper


async def _select_for_loader(
    loader: ModLoader,
    candidates: Sequence[DownloadCandidate],
    filters: Sequence[Filter],
    primary: ModLoader,
    version_groups: Optional[VersionGroupCache] = None,
) -> DownloadCandidate:
    if loader != primary:
        filters = substitute_loader(filters, primary, loader)
    return await select_latest(candidates, filters, version_groups)


_select_with_fallback = with_loader_fallback(_select_for_loader)


async def select_latest_with_fallback(
    candidates: Sequence[DownloadCandidate],
    filters: Sequence[Filter],
    primary: ModLoader,
    secondary: Optional[ModLoader] = None,
    version_groups: Optional[VersionGroupCache] = None,
) -> Tuple[DownloadCandidate, bool]:
    """
    先以 primary 选择，失败且存在回退加载器时以回退加载器重新选择一次

    Returns:
        (被选中的候选文件, 是否使用了回退)
    """
    return await _select_with_fallback(
        primary,
        candidates,
        filters,
        primary,
        version_groups,
        secondary=secondary,
    )
