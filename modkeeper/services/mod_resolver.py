"""
模组解析服务

为配置档案中的模组获取候选文件并选出要下载的文件。
固定版本 (pin) 的模组跳过选择，直接获取指定文件。
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple, Union

import aiohttp
from loguru import logger

from modkeeper.exceptions import (
    APINotFoundError,
    DistributionDeniedError,
    FilterEmptyError,
    IncompatibleModError,
    InvalidPinError,
    ModKeeperError,
    NotAModError,
    ProjectNotFoundError,
    SelectError,
)
from modkeeper.models import (
    CurseForgeProject,
    DownloadCandidate,
    Filter,
    GitHubRepository,
    Mod,
    ModIdentifier,
    ModrinthProject,
    Profile,
    parse_identifier,
)
from modkeeper.services.api_client import CurseForgeClient, GitHubClient, ModrinthClient
from modkeeper.services.loader_fallback import (
    fallback_for,
    primary_loader,
    select_latest_with_fallback,
)
from modkeeper.services.normalizer import (
    from_curseforge_file,
    from_github_asset,
    from_github_releases,
    from_modrinth_version,
    normalize_many,
    sort_curseforge_files,
)
from modkeeper.services.selector import select_latest
from modkeeper.services.version_groups import VersionGroupCache, default_cache


@dataclass
class ResolvedMod:
    """解析成功的模组"""

    mod: Mod
    candidate: DownloadCandidate
    used_fallback: bool = False
    pinned: bool = False


@dataclass
class FailedMod:
    """解析失败的模组及原因"""

    mod: Mod
    error: Exception

    @property
    def reason(self) -> str:
        if isinstance(self.error, ModKeeperError):
            return self.error.message
        return f"{type(self.error).__name__}: {self.error}"


@dataclass
class ResolutionReport:
    """批量解析结果"""

    resolved: List[ResolvedMod] = field(default_factory=list)
    failed: List[FailedMod] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


class ModResolver:
    """模组解析器"""

    def __init__(
        self,
        modrinth: Optional[ModrinthClient] = None,
        curseforge: Optional[CurseForgeClient] = None,
        github: Optional[GitHubClient] = None,
        version_groups: Optional[VersionGroupCache] = None,
    ):
        self.modrinth = modrinth or ModrinthClient()
        self.curseforge = curseforge or CurseForgeClient()
        self.github = github or GitHubClient()
        self.version_groups = version_groups or default_cache()

    async def fetch_candidates(self, mod: Mod) -> List[DownloadCandidate]:
        """
        获取并标准化模组的全部候选文件（从新到旧）

        Raises:
            APINotFoundError: 平台上不存在该项目
        """
        identifier = mod.identifier

        if isinstance(identifier, CurseForgeProject):
            files = await self.curseforge.get_mod_files(identifier.project_id)
            if files is None:
                raise APINotFoundError(f"CurseForge 项目 {identifier.project_id} 不存在")
            return normalize_many(sort_curseforge_files(files), from_curseforge_file)

        if isinstance(identifier, ModrinthProject):
            versions = await self.modrinth.list_versions(identifier.project_id)
            if versions is None:
                raise APINotFoundError(f"Modrinth 项目 {identifier.project_id} 不存在")
            return [from_modrinth_version(v) for v in versions if v.get("files")]

        if isinstance(identifier, GitHubRepository):
            releases = await self.github.list_releases(identifier.owner, identifier.repo)
            if releases is None:
                raise APINotFoundError(f"GitHub 仓库 {identifier} 不存在")
            return from_github_releases(releases)

        raise TypeError(f"未知的模组标识: {identifier!r}")

    async def fetch_pinned(self, mod: Mod) -> DownloadCandidate:
        """
        获取固定版本的文件

        Raises:
            InvalidPinError: CurseForge/GitHub 的固定版本不是整数
            DistributionDeniedError: CurseForge 文件禁止第三方下载
            APINotFoundError: 固定的文件不存在
        """
        identifier = mod.identifier
        pin = mod.pin or ""

        if isinstance(identifier, ModrinthProject):
            version = await self.modrinth.get_version(pin)
            if version is None:
                raise APINotFoundError(f"Modrinth 版本 {pin} 不存在")
            return from_modrinth_version(version)

        try:
            pin_id = int(pin)
        except ValueError:
            raise InvalidPinError(
                f"模组 {mod.name} 的固定版本不是有效的标识符: {pin!r}",
                context={"mod": mod.name, "pin": pin},
            ) from None

        if isinstance(identifier, CurseForgeProject):
            file = await self.curseforge.get_mod_file(identifier.project_id, pin_id)
            if file is None:
                raise APINotFoundError(f"CurseForge 文件 {pin_id} 不存在")
            return from_curseforge_file(file)

        if isinstance(identifier, GitHubRepository):
            asset = await self.github.get_release_asset(
                identifier.owner, identifier.repo, pin_id
            )
            if asset is None:
                raise APINotFoundError(f"GitHub 发布资源 {pin_id} 不存在")
            return from_github_asset(asset)

        raise TypeError(f"未知的模组标识: {identifier!r}")

    async def resolve(
        self, mod: Mod, profile_filters: Sequence[Filter] = ()
    ) -> ResolvedMod:
        """
        解析单个模组

        Args:
            mod: 模组
            profile_filters: 配置档案的过滤器，模组设置 override_filters 时忽略

        Returns:
            ResolvedMod，包含被选中的文件以及是否使用了加载器回退
        """
        if mod.pin is not None:
            logger.debug(f"模组 {mod.name} 固定为 {mod.pin}，跳过选择")
            return ResolvedMod(mod, await self.fetch_pinned(mod), pinned=True)

        candidates = await self.fetch_candidates(mod)
        filters = mod.effective_filters(list(profile_filters))
        logger.debug(
            f"模组 {mod.name}: {len(candidates)} 个候选文件, {len(filters)} 个过滤器"
        )

        primary = primary_loader(filters)
        if fallback_for(primary) is None:
            candidate = await select_latest(candidates, filters, self.version_groups)
            return ResolvedMod(mod, candidate)

        candidate, used_fallback = await select_latest_with_fallback(
            candidates, filters, primary, version_groups=self.version_groups
        )
        return ResolvedMod(mod, candidate, used_fallback=used_fallback)

    async def resolve_many(
        self,
        mods: List[Mod],
        profile_filters: Sequence[Filter] = (),
        max_concurrent: int = 5,
    ) -> ResolutionReport:
        """
        批量解析模组

        单个模组失败不会中断其他模组，失败原因记录在报告中。
        max_concurrent 个工作协程从同一个队列中取出模组，报告保持 mods 的顺序。
        """
        queue: asyncio.Queue = asyncio.Queue()
        for position, mod in enumerate(mods):
            queue.put_nowait((position, mod))
        results: List[Union[ResolvedMod, FailedMod]] = [None] * len(mods)  # type: ignore

        async def resolve_worker():
            while not queue.empty():
                position, mod = queue.get_nowait()
                try:
                    results[position] = await self.resolve(mod, profile_filters)
                except (ModKeeperError, aiohttp.ClientError, asyncio.TimeoutError) as e:
                    results[position] = FailedMod(mod, e)

        await asyncio.gather(*(resolve_worker() for _ in range(max(1, max_concurrent))))

        report = ResolutionReport()
        for result in results:
            if isinstance(result, FailedMod):
                report.failed.append(result)
                if isinstance(result.error, FilterEmptyError):
                    logger.error(
                        f"[跳过] {result.mod.name}: 过滤器 "
                        f"{', '.join(result.error.filters)} 没有匹配到任何文件"
                    )
                else:
                    logger.error(f"[跳过] {result.mod.name}: {result.reason}")
                continue
            report.resolved.append(result)
            if result.used_fallback:
                logger.warning(
                    f"[兼容] {result.mod.name}: 使用向后兼容的加载器文件 "
                    f"{result.candidate.filename}"
                )
            else:
                logger.success(f"[完成] {result.mod.name}: {result.candidate.filename}")
        return report

    async def add_mod(
        self,
        profile: Profile,
        identifier: Union[str, ModIdentifier],
        perform_checks: bool = True,
    ) -> Mod:
        """
        检查并把模组添加到配置档案

        Args:
            profile: 目标配置档案
            identifier: 模组标识，字符串会按 parse_identifier 的规则解析
            perform_checks: 为 True 时检查模组与档案的过滤器是否兼容

        Returns:
            添加的模组，使用平台返回的规范标识和名称

        Raises:
            ProjectNotFoundError: 平台上不存在该项目
            ModAlreadyAddedError: 档案中已有相同标识或名称的模组
            NotAModError: 项目不是模组
            DistributionDeniedError: CurseForge 项目禁止第三方下载
            IncompatibleModError: 没有文件满足档案的过滤器
        """
        if isinstance(identifier, str):
            identifier = parse_identifier(identifier)

        mod, project = await self._fetch_project(identifier)
        profile.ensure_not_added(mod)
        await self._ensure_is_mod(mod, project, perform_checks)

        if perform_checks:
            try:
                # Quilt 档案接受只有 Fabric 文件的模组
                await self.resolve(mod, profile.filters)
            except SelectError as e:
                raise IncompatibleModError(
                    f"模组 {mod.name} 与配置档案 {profile.name} 不兼容",
                    context={"mod": mod.name, "reason": e.message},
                ) from e

        profile.add_mod(mod)
        logger.success(f"已添加模组 {mod.name} ({mod.identifier})")
        return mod

    async def _fetch_project(self, identifier: ModIdentifier) -> Tuple[Mod, Any]:
        if isinstance(identifier, ModrinthProject):
            project = await self.modrinth.get_project(identifier.project_id)
            if project is not None:
                mod = Mod(project["title"].strip(), ModrinthProject(project["id"]))
                return mod, project
        elif isinstance(identifier, CurseForgeProject):
            project = await self.curseforge.get_mod(identifier.project_id)
            if project is not None:
                mod = Mod(project["name"].strip(), CurseForgeProject(int(project["id"])))
                return mod, project
        elif isinstance(identifier, GitHubRepository):
            project = await self.github.get_repository(identifier.owner, identifier.repo)
            if project is not None:
                repository = GitHubRepository(project["owner"]["login"], project["name"])
                return Mod(project["name"].strip(), repository), project
        else:
            raise TypeError(f"未知的模组标识: {identifier!r}")

        raise ProjectNotFoundError(
            f"项目 {identifier} 不存在", context={"identifier": str(identifier)}
        )

    async def _ensure_is_mod(self, mod: Mod, project: Any, perform_checks: bool) -> None:
        identifier = mod.identifier
        if isinstance(identifier, ModrinthProject):
            if project.get("project_type") != "mod":
                raise NotAModError(
                    f"{mod.name} 是 {project.get('project_type')}，不是模组",
                    context={"identifier": str(identifier)},
                )
        elif isinstance(identifier, CurseForgeProject):
            if project.get("allowModDistribution") is False:
                raise DistributionDeniedError(identifier.project_id)
            website = (project.get("links") or {}).get("websiteUrl") or ""
            if "mc-mods" not in website:
                raise NotAModError(
                    f"{mod.name} 不是模组", context={"identifier": str(identifier)}
                )
        elif perform_checks:
            releases = await self.github.list_releases(identifier.owner, identifier.repo)
            has_jar = any(
                asset.get("name", "").endswith(".jar")
                for release in releases or []
                for asset in release.get("assets", [])
            )
            if not has_jar:
                raise NotAModError(
                    f"仓库 {identifier} 的发布中没有 JAR 文件",
                    context={"identifier": str(identifier)},
                )

    async def close(self):
        """关闭所有客户端"""
        await self.modrinth.close()
        await self.curseforge.close()
        await self.github.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
