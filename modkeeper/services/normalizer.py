"""
候选文件标准化

把 Modrinth 版本、CurseForge 文件和 GitHub 发布资源转换成 DownloadCandidate。
平台特有的数据结构不会越过本模块。记录缺少字段或取值无法识别时
抛出 MalformedRecordError，而不是原始的 KeyError / ValueError。
"""

import re
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Any, Callable, Iterable, List, Optional, Tuple, TypeVar

from loguru import logger

from modkeeper.exceptions import DistributionDeniedError, MalformedRecordError
from modkeeper.models import DownloadCandidate, ModLoader, ReleaseChannel

T = TypeVar("T")

RESOURCEPACK_EXTENSIONS = (".zip",)
KNOWN_SUFFIXES = (".jar", ".zip")

RECORD_ERRORS = (AttributeError, KeyError, TypeError, ValueError)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_FRACTION = re.compile(r"\.(\d+)")


def output_path_for(filename: str) -> PurePosixPath:
    """根据扩展名决定文件的输出子目录"""
    if filename.lower().endswith(RESOURCEPACK_EXTENSIONS):
        return PurePosixPath("resourcepacks") / filename
    return PurePosixPath("mods") / filename


def strip_mc_prefix(version: str) -> str:
    """去掉版本号前常见的 "mc" 前缀，例如 mc1.20.1 -> 1.20.1"""
    return version[2:] if version.startswith("mc") else version


def filename_tokens(filename: str) -> Tuple[List[str], List[ModLoader]]:
    """
    从发布资源的文件名推断游戏版本和加载器

    去掉已知后缀后按 "-" 分割，每一段去掉 "mc" 前缀后作为可能的游戏版本，
    能识别为加载器名称的段作为加载器。

    这是一个宽松的启发式规则：文件名里无关的片段也会被当作"版本"，
    而用 "_" 或 "+" 连接的版本号则无法被识别。它的正确性取决于上游的命名习惯。
    """
    stem = filename
    for suffix in KNOWN_SUFFIXES:
        if stem.endswith(suffix):
            stem = stem[: -len(suffix)]
            break

    versions: List[str] = []
    loaders: List[ModLoader] = []
    for token in stem.split("-"):
        if not token:
            continue
        versions.append(strip_mc_prefix(token))
        loader = ModLoader.parse(token)
        if loader is not None and loader not in loaders:
            loaders.append(loader)
    return versions, loaders


def _parse_loaders(values: Iterable[str]) -> List[ModLoader]:
    loaders = []
    for value in values:
        loader = ModLoader.parse(value)
        if loader is not None and loader not in loaders:
            loaders.append(loader)
    return loaders


def _malformed(platform: str, record: Any, error: Exception) -> MalformedRecordError:
    record_id = record.get("id") if isinstance(record, dict) else None
    return MalformedRecordError(platform, record_id, f"{type(error).__name__}: {error}")


def _primary_file(version: dict) -> dict:
    files = version.get("files") or []
    if not files:
        raise ValueError("没有可下载的文件")
    for file in files:
        if file.get("primary", False):
            return file
    return files[0]


def from_modrinth_version(version: dict) -> DownloadCandidate:
    """
    Modrinth 版本 -> 候选文件（使用主文件，没有主文件时使用第一个文件）

    Raises:
        MalformedRecordError: 版本没有文件、缺少字段或发布渠道无法识别
    """
    try:
        file = _primary_file(version)
        return DownloadCandidate(
            download_url=file["url"],
            output_path=output_path_for(file["filename"]),
            game_versions=tuple(version.get("game_versions", [])),
            loaders=frozenset(_parse_loaders(version.get("loaders", []))),
            release_channel=ReleaseChannel.parse(version.get("version_type", "release")),
            length=file.get("size", 0) or 0,
            recency_key=version.get("date_published"),
            title=version.get("name", ""),
        )
    except RECORD_ERRORS as e:
        raise _malformed("Modrinth", version, e) from e


def from_curseforge_file(file: dict) -> DownloadCandidate:
    """
    CurseForge 文件 -> 候选文件

    Raises:
        DistributionDeniedError: 文件没有下载链接（作者禁止第三方下载）
        MalformedRecordError: 缺少字段或 releaseType 无法识别
    """
    try:
        download_url = file.get("downloadUrl")
        if not download_url:
            raise DistributionDeniedError(file.get("modId", 0), file.get("id", 0))

        # gameVersions 中同时包含游戏版本和加载器名称
        tags = file.get("gameVersions", [])
        loaders = _parse_loaders(tags)
        game_versions = [
            v["gameVersionName"]
            for v in file.get("sortableGameVersions", [])
            if v.get("gameVersionName") and ModLoader.parse(v["gameVersionName"]) is None
        ]
        if not game_versions:
            game_versions = [tag for tag in tags if ModLoader.parse(tag) is None]

        return DownloadCandidate(
            download_url=download_url,
            output_path=output_path_for(file["fileName"]),
            game_versions=tuple(game_versions),
            loaders=frozenset(loaders),
            release_channel=ReleaseChannel.parse(file.get("releaseType", 1)),
            length=file.get("fileLength", 0) or 0,
            recency_key=file.get("fileDate"),
            title=file.get("displayName", ""),
        )
    except RECORD_ERRORS as e:
        raise _malformed("CurseForge", file, e) from e


def parse_file_date(value: Optional[str]) -> datetime:
    """
    解析 CurseForge 的 fileDate

    小数秒的位数不固定，统一补齐到微秒；无法解析的日期视为最旧。
    """
    if not value:
        return _EPOCH
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), value)
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"无法解析的文件日期: {value}")
        return _EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def sort_curseforge_files(files: List[dict]) -> List[dict]:
    """按 fileDate 从新到旧排序，CurseForge 不保证返回顺序"""
    return sorted(files, key=lambda f: parse_file_date(f.get("fileDate")), reverse=True)


def is_source_asset(name: str) -> bool:
    return "source" in name


def from_github_asset(asset: dict, release: Optional[dict] = None) -> DownloadCandidate:
    """
    GitHub 发布资源 -> 候选文件，预发布视为 Beta

    Raises:
        MalformedRecordError: 资源缺少名称或下载链接
    """
    release = release or {}
    try:
        game_versions, loaders = filename_tokens(asset["name"])
        channel = ReleaseChannel.BETA if release.get("prerelease") else ReleaseChannel.RELEASE
        return DownloadCandidate(
            download_url=asset["browser_download_url"],
            output_path=output_path_for(asset["name"]),
            game_versions=tuple(game_versions),
            loaders=frozenset(loaders),
            release_channel=channel,
            length=asset.get("size", 0) or 0,
            recency_key=release.get("published_at") or asset.get("updated_at"),
            title=release.get("name") or asset["name"],
        )
    except RECORD_ERRORS as e:
        raise _malformed("GitHub", asset, e) from e


def from_github_releases(releases: List[dict]) -> List[DownloadCandidate]:
    """把所有发布的资源展开成候选列表，保持发布顺序，跳过源码包"""
    candidates = []
    for release in releases:
        try:
            assets = [a for a in release.get("assets", []) if not is_source_asset(a["name"])]
        except RECORD_ERRORS as e:
            raise _malformed("GitHub", release, e) from e
        candidates.extend(from_github_asset(asset, release) for asset in assets)
    return candidates


def normalize_many(
    records: Iterable[T],
    normalize: Callable[[T], DownloadCandidate],
    skip_denied: bool = True,
) -> List[DownloadCandidate]:
    """
    批量标准化

    Args:
        records: 平台原始记录
        normalize: 单条记录的转换函数
        skip_denied: 为 True 时跳过禁止第三方下载的文件，否则抛出异常
    """
    candidates = []
    for record in records:
        try:
            candidates.append(normalize(record))
        except DistributionDeniedError as e:
            if not skip_denied:
                raise
            logger.warning(f"跳过文件: {e.message}")
    return candidates
