"""
配置模型

配置文件中的模组、配置档案以及整体配置。
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from modkeeper.exceptions import (
    ConfigValidationError,
    ModAlreadyAddedError,
    ModNotFoundError,
)
from modkeeper.models.filters import Filter, filter_from_dict


@dataclass(frozen=True)
class CurseForgeProject:
    """CurseForge 项目，使用整数 ID"""

    project_id: int

    def to_dict(self) -> Dict[str, Any]:
        return {"CurseForgeProject": self.project_id}

    def __str__(self) -> str:
        return f"CurseForge:{self.project_id}"


@dataclass(frozen=True)
class ModrinthProject:
    """Modrinth 项目，使用字符串 ID 或 slug"""

    project_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {"ModrinthProject": self.project_id}

    def __str__(self) -> str:
        return f"Modrinth:{self.project_id}"


@dataclass(frozen=True)
class GitHubRepository:
    """GitHub 仓库，通过 Releases 分发"""

    owner: str
    repo: str

    def to_dict(self) -> Dict[str, Any]:
        return {"GitHubRepository": [self.owner, self.repo]}

    def __str__(self) -> str:
        return f"GitHub:{self.owner}/{self.repo}"


ModIdentifier = Union[CurseForgeProject, ModrinthProject, GitHubRepository]


def parse_identifier(text: str) -> ModIdentifier:
    """
    从用户输入解析模组标识

    纯数字视为 CurseForge 项目 ID，``owner/repo`` 视为 GitHub 仓库，
    其余视为 Modrinth 项目 ID 或 slug。
    """
    text = text.strip()
    if not text:
        raise ConfigValidationError("模组标识不能为空")
    if text.isdigit():
        return CurseForgeProject(int(text))
    parts = text.split("/")
    if len(parts) == 2 and all(parts):
        return GitHubRepository(parts[0], parts[1])
    if "/" in text:
        raise ConfigValidationError(f"无效的模组标识: {text}")
    return ModrinthProject(text)


def identifier_from_dict(data: Dict[str, Any]) -> ModIdentifier:
    if not isinstance(data, dict) or len(data) != 1:
        raise ConfigValidationError(f"无效的模组标识: {data!r}")
    ((kind, value),) = data.items()
    if kind == "CurseForgeProject":
        try:
            return CurseForgeProject(int(value))
        except (TypeError, ValueError):
            raise ConfigValidationError(f"CurseForge 项目 ID 必须是整数: {value!r}")
    if kind == "ModrinthProject":
        return ModrinthProject(str(value))
    if kind == "GitHubRepository":
        if not isinstance(value, (list, tuple)) or len(value) != 2:
            raise ConfigValidationError(f"GitHub 仓库必须是 [owner, repo]: {value!r}")
        return GitHubRepository(str(value[0]), str(value[1]))
    raise ConfigValidationError(f"未知的模组标识类型: {kind}")


def _filters_from_list(items: Any) -> List[Filter]:
    if items is None:
        return []
    if not isinstance(items, list):
        raise ConfigValidationError("filters 必须是列表")
    return [filter_from_dict(item) for item in items]


@dataclass
class Mod:
    """配置档案中管理的一个模组"""

    name: str
    identifier: ModIdentifier
    pin: Optional[str] = None
    filters: List[Filter] = field(default_factory=list)
    # 为 True 时模组自己的过滤器完全替换档案过滤器
    override_filters: bool = False

    def effective_filters(self, profile_filters: List[Filter]) -> List[Filter]:
        """解析该模组时实际使用的过滤器"""
        if self.override_filters:
            return list(self.filters)
        return list(profile_filters) + list(self.filters)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Mod":
        try:
            name = data["name"]
            identifier = identifier_from_dict(data["identifier"])
        except KeyError as e:
            raise ConfigValidationError(f"模组缺少字段: {e.args[0]}")
        pin = data.get("pin")
        return cls(
            name=name,
            identifier=identifier,
            pin=str(pin) if pin is not None else None,
            filters=_filters_from_list(data.get("filters")),
            override_filters=bool(data.get("override_filters", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "identifier": self.identifier.to_dict(),
        }
        if self.pin is not None:
            data["pin"] = self.pin
        if self.filters:
            data["filters"] = [f.to_dict() for f in self.filters]
        if self.override_filters:
            data["override_filters"] = True
        return data


@dataclass
class Profile:
    """配置档案：输出目录、公共过滤器以及管理的模组"""

    name: str
    output_dir: Path
    filters: List[Filter] = field(default_factory=list)
    mods: List[Mod] = field(default_factory=list)

    def add_mod(self, mod: Mod) -> None:
        self.ensure_not_added(mod)
        self.mods.append(mod)

    def ensure_not_added(self, mod: Mod) -> None:
        """模组的标识或名称（不区分大小写）已存在时抛出 ModAlreadyAddedError"""
        for existing in self.mods:
            if (
                existing.identifier == mod.identifier
                or existing.name.lower() == mod.name.lower()
            ):
                raise ModAlreadyAddedError(
                    f"模组 {mod.name} 已存在于配置档案 {self.name} 中",
                    context={"mod": mod.name, "identifier": str(mod.identifier)},
                )

    def get_mod(self, name_or_id: str) -> Mod:
        key = name_or_id.lower()
        for mod in self.mods:
            if mod.name.lower() == key or _identifier_key(mod.identifier) == key:
                return mod
        raise ModNotFoundError(
            f"配置档案 {self.name} 中没有模组 {name_or_id}",
            context={"mod": name_or_id},
        )

    def remove_mod(self, name_or_id: str) -> Mod:
        mod = self.get_mod(name_or_id)
        self.mods.remove(mod)
        return mod

    def add_filter(self, new_filter: Filter) -> None:
        """添加过滤器，已存在同种类过滤器时将其替换"""
        for i, existing in enumerate(self.filters):
            if existing == new_filter:
                self.filters[i] = new_filter
                return
        self.filters.append(new_filter)

    def remove_filter(self, kind: str) -> Optional[Filter]:
        for existing in self.filters:
            if existing.kind == kind:
                self.filters.remove(existing)
                return existing
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Profile":
        try:
            name = data["name"]
            output_dir = Path(data["output_dir"]).expanduser()
        except KeyError as e:
            raise ConfigValidationError(f"配置档案缺少字段: {e.args[0]}")
        profile = cls(name=name, output_dir=output_dir)
        for item in _filters_from_list(data.get("filters")):
            profile.add_filter(item)
        for item in data.get("mods") or []:
            profile.add_mod(Mod.from_dict(item))
        return profile

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "output_dir": str(self.output_dir),
            "filters": [f.to_dict() for f in self.filters],
            "mods": [mod.to_dict() for mod in self.mods],
        }


def _identifier_key(identifier: ModIdentifier) -> str:
    if isinstance(identifier, GitHubRepository):
        return f"{identifier.owner}/{identifier.repo}".lower()
    return str(identifier.project_id).lower()


@dataclass
class Config:
    """整体配置"""

    active_profile: int = 0
    profiles: List[Profile] = field(default_factory=list)

    def get_active_profile(self) -> Profile:
        if not self.profiles:
            raise ConfigValidationError("配置中没有任何配置档案")
        if not 0 <= self.active_profile < len(self.profiles):
            raise ConfigValidationError(
                f"active_profile 超出范围: {self.active_profile}"
            )
        return self.profiles[self.active_profile]

    def get_profile(self, name: str) -> Profile:
        for profile in self.profiles:
            if profile.name == name:
                return profile
        raise ConfigValidationError(f"找不到配置档案: {name}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        if not isinstance(data, dict):
            raise ConfigValidationError("配置文件的顶层必须是映射")
        profiles = data.get("profiles") or []
        if not isinstance(profiles, list):
            raise ConfigValidationError("profiles 必须是列表")
        try:
            active_profile = int(data.get("active_profile", 0))
        except (TypeError, ValueError):
            raise ConfigValidationError("active_profile 必须是整数")
        return cls(
            active_profile=active_profile,
            profiles=[Profile.from_dict(p) for p in profiles],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "active_profile": self.active_profile,
            "profiles": [p.to_dict() for p in self.profiles],
        }
