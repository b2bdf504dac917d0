"""
API 客户端

Modrinth、CurseForge 与 GitHub 三个平台的最小客户端，只负责获取原始数据，
不做任何筛选。
"""

import os
from typing import Any, Dict, List, Optional

import aiohttp
from loguru import logger

from modkeeper import __version__
from modkeeper.exceptions import APIError, APIRateLimitError, APIServerError


MODRINTH_BASE_URL = "https://api.modrinth.com/v2"
CURSEFORGE_BASE_URL = "https://api.curseforge.com/v1"
GITHUB_BASE_URL = "https://api.github.com"

USER_AGENT = f"modkeeper/{__version__}"


class _PlatformClient:
    """平台客户端基类，管理 aiohttp session"""

    platform = ""

    def __init__(self, session: Optional[aiohttp.ClientSession] = None):
        self._session = session
        self._owned_session = session is None

    @property
    def session(self) -> aiohttp.ClientSession:
        """获取或创建 aiohttp session"""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owned_session = True
        return self._session

    def _headers(self) -> Dict[str, str]:
        return {"User-Agent": USER_AGENT}

    async def _request(self, url: str, params: Optional[dict] = None) -> Any:
        """
        发送 GET 请求

        Returns:
            解析后的 JSON，资源不存在 (404) 时返回 None
        """
        logger.debug(f"[{self.platform}] GET {url} {params or ''}")
        async with self.session.get(
            url, params=params, headers=self._headers()
        ) as response:
            if response.status == 200:
                return await response.json()
            elif response.status == 404:
                return None
            elif response.status == 429:
                raise APIRateLimitError(
                    f"{self.platform} API 请求过于频繁", response=response
                )
            elif response.status >= 500:
                raise APIServerError(
                    f"{self.platform} API 服务器错误 (状态码: {response.status})",
                    response=response,
                )
            else:
                raise APIError(
                    f"{self.platform} API 请求失败 (状态码: {response.status})",
                    response=response,
                )

    async def close(self):
        """关闭客户端"""
        if self._owned_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


class ModrinthClient(_PlatformClient):
    """Modrinth API 客户端"""

    platform = "Modrinth"

    async def get_project(self, idx: str) -> Optional[dict]:
        """通过 slug 或 id 获取项目详情"""
        return await self._request(f"{MODRINTH_BASE_URL}/project/{idx}")

    async def list_versions(self, idx: str) -> Optional[List[dict]]:
        """列出项目的所有版本，Modrinth 保证从新到旧排列"""
        return await self._request(f"{MODRINTH_BASE_URL}/project/{idx}/version")

    async def get_version(self, version_id: str) -> Optional[dict]:
        return await self._request(f"{MODRINTH_BASE_URL}/version/{version_id}")

    async def list_game_versions(self) -> List[dict]:
        """
        获取所有已知的游戏版本标签

        每一项包含 version、version_type (release/snapshot/...)、date 与 major。
        """
        response = await self._request(f"{MODRINTH_BASE_URL}/tag/game_version")
        if response is None:
            raise APIError("Modrinth 未返回游戏版本列表")
        return response


class CurseForgeClient(_PlatformClient):
    """CurseForge API 客户端"""

    platform = "CurseForge"
    page_size = 50

    def __init__(
        self,
        api_key: Optional[str] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        super().__init__(session)
        self.api_key = api_key or os.environ.get("CURSEFORGE_API_KEY", "")

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        headers["Accept"] = "application/json"
        if self.api_key:
            headers["x-api-key"] = self.api_key
        return headers

    async def get_mod(self, mod_id: int) -> Optional[dict]:
        """获取模组详情（名称、allowModDistribution、links 等）"""
        response = await self._request(f"{CURSEFORGE_BASE_URL}/mods/{mod_id}")
        if response is None:
            return None
        return response.get("data")

    async def get_mod_files(self, mod_id: int) -> Optional[List[dict]]:
        """
        获取模组的全部文件（自动翻页）

        CurseForge 不保证返回顺序，调用方需要自行按日期排序。
        """
        files: List[dict] = []
        index = 0
        while True:
            response = await self._request(
                f"{CURSEFORGE_BASE_URL}/mods/{mod_id}/files",
                {"index": index, "pageSize": self.page_size},
            )
            if response is None:
                return None if not files else files
            page = response.get("data", [])
            files.extend(page)
            pagination = response.get("pagination", {})
            total = pagination.get("totalCount", len(files))
            index += len(page)
            if not page or index >= total:
                return files

    async def get_mod_file(self, mod_id: int, file_id: int) -> Optional[dict]:
        response = await self._request(
            f"{CURSEFORGE_BASE_URL}/mods/{mod_id}/files/{file_id}"
        )
        if response is None:
            return None
        return response.get("data")


class GitHubClient(_PlatformClient):
    """GitHub Releases 客户端"""

    platform = "GitHub"

    def __init__(
        self,
        token: Optional[str] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        super().__init__(session)
        self.token = token or os.environ.get("GITHUB_TOKEN", "")

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        headers["Accept"] = "application/vnd.github+json"
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def get_repository(self, owner: str, repo: str) -> Optional[dict]:
        return await self._request(f"{GITHUB_BASE_URL}/repos/{owner}/{repo}")

    async def list_releases(self, owner: str, repo: str) -> Optional[List[dict]]:
        """列出仓库的发布，GitHub 按创建时间从新到旧返回"""
        return await self._request(
            f"{GITHUB_BASE_URL}/repos/{owner}/{repo}/releases",
            {"per_page": 100},
        )

    async def get_release_asset(
        self, owner: str, repo: str, asset_id: int
    ) -> Optional[dict]:
        return await self._request(
            f"{GITHUB_BASE_URL}/repos/{owner}/{repo}/releases/assets/{asset_id}"
        )
