"""
游戏版本分组缓存

把 Modrinth 的游戏版本标签列表划分为"次要版本组"，供 GameVersionMinor 过滤器使用。
分组在第一次使用时获取并在进程生命周期内缓存，之后不会失效或更新。
"""

import asyncio
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple

from loguru import logger

VersionGroups = Tuple[Tuple[str, ...], ...]
GameVersionFetcher = Callable[[], Awaitable[List[dict]]]


def group_game_versions(game_versions: Sequence[dict]) -> VersionGroups:
    """
    按列表顺序划分版本组

    只保留正式版 (release)。Modrinth 的列表从新到旧排列，
    每遇到一个 major 版本（如 1.20）就在它之后结束当前组。
    """
    groups: List[List[str]] = [[]]
    for entry in game_versions:
        if entry.get("version_type") != "release":
            continue
        groups[-1].append(entry["version"])
        if entry.get("major"):
            groups.append([])
    return tuple(tuple(group) for group in groups if group)


class VersionGroupCache:
    """
    只写一次的版本分组缓存

    并发的首次调用共享同一个获取任务，因此只会发出一次网络请求；
    写入之后的调用直接返回内存中的结果。
    """

    def __init__(self, fetch: GameVersionFetcher):
        self._fetch = fetch
        self._groups: Optional[VersionGroups] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def loaded(self) -> bool:
        return self._groups is not None

    async def get_version_groups(self) -> VersionGroups:
        if self._groups is not None:
            return self._groups

        task = self._task
        if task is None or not self._reusable(task):
            task = self._task = asyncio.ensure_future(self._load())
        try:
            # 取消某个等待者不会取消共享的获取任务
            return await asyncio.shield(task)
        except BaseException:
            # 获取失败或被取消都不缓存，下一次调用重新获取
            if self._task is task and task.done() and not self._reusable(task):
                self._task = None
            raise

    @staticmethod
    def _reusable(task: asyncio.Task) -> bool:
        """任务属于当前事件循环且没有失败或被取消"""
        if task.get_loop() is not asyncio.get_running_loop():
            return False
        if not task.done():
            return True
        return not task.cancelled() and task.exception() is None

    async def _load(self) -> VersionGroups:
        logger.debug("正在获取游戏版本列表以计算版本分组")
        groups = group_game_versions(await self._fetch())
        self._groups = groups
        logger.debug(f"已缓存 {len(groups)} 个游戏版本分组")
        return groups


_default_cache: Optional[VersionGroupCache] = None


def default_cache() -> VersionGroupCache:
    """进程级默认缓存，使用 Modrinth 的游戏版本标签"""
    global _default_cache
    if _default_cache is None:
        from modkeeper.services.api_client import ModrinthClient

        async def fetch() -> List[dict]:
            async with ModrinthClient() as client:
                return await client.list_game_versions()

        _default_cache = VersionGroupCache(fetch)
    return _default_cache


async def get_version_groups() -> VersionGroups:
    return await default_cache().get_version_groups()
