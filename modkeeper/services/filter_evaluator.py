"""
过滤器求值

对一个过滤器和候选列表求出满足该过滤器的候选下标集合。
求值是纯函数：不修改候选列表，也没有共享的可变状态，
唯一的例外是 GameVersionMinor 首次使用时会触发版本分组的获取。
"""

import re
from typing import Callable, Iterable, Optional, Sequence, Set

from modkeeper.exceptions import InvalidFilenamePatternError
from modkeeper.models import (
    DownloadCandidate,
    Filename,
    Filter,
    GameVersionMinor,
    GameVersionStrict,
    LoaderAny,
    LoaderPrefer,
    ModLoader,
    ReleaseChannelFilter,
)
from modkeeper.services.normalizer import strip_mc_prefix
from modkeeper.services.version_groups import (
    VersionGroupCache,
    VersionGroups,
    default_cache,
)

IndexSet = Set[int]


def normalize_version(version: str) -> str:
    return strip_mc_prefix(version.strip().lower())


def positions(
    candidates: Sequence[DownloadCandidate],
    predicate: Callable[[DownloadCandidate], bool],
) -> IndexSet:
    """满足 predicate 的候选下标"""
    return {i for i, candidate in enumerate(candidates) if predicate(candidate)}


def match_loader_prefer(
    loaders: Iterable[ModLoader], candidates: Sequence[DownloadCandidate]
) -> IndexSet:
    """返回列表中第一个有匹配文件的加载器的匹配下标，不做并集"""
    for loader in loaders:
        matched = positions(candidates, lambda c: c.supports(loader))
        if matched:
            return matched
    return set()


def match_loader_any(
    loaders: Iterable[ModLoader], candidates: Sequence[DownloadCandidate]
) -> IndexSet:
    wanted = set(loaders)
    return positions(candidates, lambda c: not wanted.isdisjoint(c.loaders))


def match_game_versions(
    versions: Iterable[str], candidates: Sequence[DownloadCandidate]
) -> IndexSet:
    """候选声明的任一版本与任一请求版本相同即匹配"""
    wanted = {normalize_version(v) for v in versions}
    return positions(
        candidates,
        lambda c: any(normalize_version(v) in wanted for v in c.game_versions),
    )


def expand_minor_versions(
    versions: Iterable[str], groups: VersionGroups
) -> Set[str]:
    """
    把请求的版本扩展为它们所在版本组的全部版本

    不属于任何组的请求版本（例如快照）仍然只匹配它自己。
    """
    requested = {normalize_version(v) for v in versions}
    expanded = set(requested)
    for group in groups:
        normalized = {normalize_version(v) for v in group}
        if not requested.isdisjoint(normalized):
            expanded |= normalized
    return expanded


def match_release_channel(
    filter_: ReleaseChannelFilter, candidates: Sequence[DownloadCandidate]
) -> IndexSet:
    return positions(candidates, lambda c: c.release_channel.satisfies(filter_.channel))


def compile_filename_pattern(pattern: str) -> "re.Pattern[str]":
    try:
        return re.compile(pattern)
    except re.error as e:
        raise InvalidFilenamePatternError(pattern, str(e)) from e


def match_filename(pattern: str, candidates: Sequence[DownloadCandidate]) -> IndexSet:
    regex = compile_filename_pattern(pattern)
    return positions(candidates, lambda c: regex.search(c.filename) is not None)


def evaluate_with_groups(
    filter_: Filter,
    candidates: Sequence[DownloadCandidate],
    groups: VersionGroups = (),
) -> IndexSet:
    """
    同步求值

    Args:
        filter_: 过滤器
        candidates: 候选列表（按从新到旧排列）
        groups: 版本分组，只有 GameVersionMinor 需要

    Raises:
        InvalidFilenamePatternError: Filename 过滤器的正则表达式无效
    """
    if isinstance(filter_, LoaderPrefer):
        return match_loader_prefer(filter_.loaders, candidates)
    if isinstance(filter_, LoaderAny):
        return match_loader_any(filter_.loaders, candidates)
    if isinstance(filter_, GameVersionStrict):
        return match_game_versions(filter_.versions, candidates)
    if isinstance(filter_, GameVersionMinor):
        return match_game_versions(
            expand_minor_versions(filter_.versions, groups), candidates
        )
    if isinstance(filter_, ReleaseChannelFilter):
        return match_release_channel(filter_, candidates)
    if isinstance(filter_, Filename):
        return match_filename(filter_.pattern, candidates)
    raise TypeError(f"未知的过滤器类型: {type(filter_).__name__}")


async def evaluate(
    filter_: Filter,
    candidates: Sequence[DownloadCandidate],
    version_groups: Optional[VersionGroupCache] = None,
) -> IndexSet:
    """
    对单个过滤器求值，返回满足条件的候选下标集合

    GameVersionMinor 需要版本分组，未提供缓存时使用进程级默认缓存。
    """
    groups: VersionGroups = ()
    if isinstance(filter_, GameVersionMinor):
        cache = version_groups or default_cache()
        groups = await cache.get_version_groups()
    return evaluate_with_groups(filter_, candidates, groups)
