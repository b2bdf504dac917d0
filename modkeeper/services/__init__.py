"""
ModKeeper 服务层

包含平台客户端、候选文件标准化、过滤器求值与组合、加载器回退、
版本分组缓存以及模组解析。
"""

from modkeeper.services.api_client import (
    CurseForgeClient,
    GitHubClient,
    ModrinthClient,
)
from modkeeper.services.filter_evaluator import evaluate, evaluate_with_groups
from modkeeper.services.loader_fallback import (
    LOADER_FALLBACKS,
    select_latest_with_fallback,
    with_loader_fallback,
)
from modkeeper.services.mod_resolver import ModResolver, ResolutionReport, ResolvedMod
from modkeeper.services.selector import explain, select_latest, select_latest_index
from modkeeper.services.version_groups import VersionGroupCache, get_version_groups

__all__ = [
    "ModrinthClient",
    "CurseForgeClient",
    "GitHubClient",
    "evaluate",
    "evaluate_with_groups",
    "explain",
    "select_latest",
    "select_latest_index",
    "select_latest_with_fallback",
    "with_loader_fallback",
    "LOADER_FALLBACKS",
    "VersionGroupCache",
    "get_version_groups",
    "ModResolver",
    "ResolutionReport",
    "ResolvedMod",
]
