"""
过滤器组合与最终选择

所有过滤器分别对完整候选列表求值，取交集，再选出下标最小
（即最新）的候选文件。
"""

import asyncio
from dataclasses import dataclass
from typing import List, Optional, Sequence

from loguru import logger

from modkeeper.exceptions import FilterEmptyError, IntersectFailureError
from modkeeper.models import DownloadCandidate, Filter
from modkeeper.services.filter_evaluator import IndexSet, evaluate
from modkeeper.services.version_groups import VersionGroupCache


@dataclass(frozen=True)
class FilterReport:
    """单个过滤器的求值结果，用于诊断"""

    filter: Filter
    matched: frozenset

    @property
    def empty(self) -> bool:
        return not self.matched


async def explain(
    candidates: Sequence[DownloadCandidate],
    filters: Sequence[Filter],
    version_groups: Optional[VersionGroupCache] = None,
) -> List[FilterReport]:
    """分别对每个过滤器求值（并发），结果顺序与 filters 一致"""
    results = await asyncio.gather(
        *(evaluate(f, candidates, version_groups) for f in filters)
    )
    return [
        FilterReport(filter=f, matched=frozenset(indices))
        for f, indices in zip(filters, results)
    ]


async def select_latest_index(
    candidates: Sequence[DownloadCandidate],
    filters: Sequence[Filter],
    version_groups: Optional[VersionGroupCache] = None,
) -> int:
    """
    返回被选中候选的下标

    Raises:
        FilterEmptyError: 有过滤器单独求值为空，列出所有这样的过滤器
        IntersectFailureError: 各过滤器都非空但交集为空
        InvalidFilenamePatternError: Filename 过滤器的正则表达式无效
    """
    reports = await explain(candidates, filters, version_groups)

    for report in reports:
        logger.debug(f"过滤器 [{report.filter}] 匹配 {len(report.matched)} 个文件")

    empty = [report.filter.kind for report in reports if report.empty]
    if empty:
        raise FilterEmptyError(empty)

    surviving: IndexSet = set(range(len(candidates)))
    for report in reports:
        surviving &= report.matched

    if not surviving:
        raise IntersectFailureError()

    return min(surviving)


async def select_latest(
    candidates: Sequence[DownloadCandidate],
    filters: Sequence[Filter],
    version_groups: Optional[VersionGroupCache] = None,
) -> DownloadCandidate:
    """
    从按从新到旧排列的候选列表中选出满足所有过滤器的最新文件

    Args:
        candidates: 候选列表，调用方保证从新到旧排列
        filters: 过滤器列表
        version_groups: 版本分组缓存，GameVersionMinor 需要

    Returns:
        被选中的候选文件
    """
    index = await select_latest_index(candidates, filters, version_groups)
    return candidates[index]
