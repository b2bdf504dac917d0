"""
ModKeeper 数据模型包

包含加载器/渠道枚举、过滤器、下载候选文件以及配置模型。
"""

from modkeeper.models.types import ModLoader, ReleaseChannel
from modkeeper.models.candidate import DownloadCandidate
from modkeeper.models.filters import (
    Filter,
    LoaderPrefer,
    LoaderAny,
    GameVersionStrict,
    GameVersionMinor,
    ReleaseChannelFilter,
    Filename,
    filter_from_dict,
)
from modkeeper.models.config import (
    CurseForgeProject,
    ModrinthProject,
    GitHubRepository,
    ModIdentifier,
    Mod,
    Profile,
    Config,
    parse_identifier,
)

__all__ = [
    # 枚举
    "ModLoader",
    "ReleaseChannel",
    # 候选文件
    "DownloadCandidate",
    # 过滤器
    "Filter",
    "LoaderPrefer",
    "LoaderAny",
    "GameVersionStrict",
    "GameVersionMinor",
    "ReleaseChannelFilter",
    "Filename",
    "filter_from_dict",
    # 配置模型
    "CurseForgeProject",
    "ModrinthProject",
    "GitHubRepository",
    "ModIdentifier",
    "Mod",
    "Profile",
    "Config",
    "parse_identifier",
]
