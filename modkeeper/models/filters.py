"""
过滤器定义

过滤器描述"哪些文件可以被选中"。每种过滤器只负责数据，
求值逻辑位于 modkeeper.services.filter_evaluator。

同种类的两个过滤器无论参数是否相同都视为相等，配置档案据此去重：
一个档案中每种过滤器最多出现一次。
"""

from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Iterable, Tuple

from modkeeper.exceptions import ConfigValidationError
from modkeeper.models.types import ModLoader, ReleaseChannel


class Filter:
    """所有过滤器的基类"""

    kind: ClassVar[str] = ""
    label: ClassVar[str] = ""

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Filter):
            return NotImplemented
        return self.kind == other.kind

    def __hash__(self) -> int:
        return hash(self.kind)

    def payload(self) -> Any:
        raise NotImplementedError

    def describe(self) -> str:
        raise NotImplementedError

    def to_dict(self) -> Dict[str, Any]:
        return {self.kind: self.payload()}

    def __str__(self) -> str:
        return f"{self.label}: {self.describe()}"


def _loaders(values: Iterable) -> Tuple[ModLoader, ...]:
    result = []
    for value in values:
        if isinstance(value, ModLoader):
            loader = value
        else:
            loader = ModLoader.parse(str(value))
            if loader is None:
                raise ConfigValidationError(f"未知的模组加载器: {value}")
        if loader not in result:
            result.append(loader)
    return tuple(result)


@dataclass(frozen=True, eq=False)
class LoaderPrefer(Filter):
    """按列表顺序优先选择第一个有匹配文件的加载器"""

    loaders: Tuple[ModLoader, ...]

    kind: ClassVar[str] = "LoaderPrefer"
    label: ClassVar[str] = "Mod Loader (Prefer)"

    def __post_init__(self):
        object.__setattr__(self, "loaders", _loaders(self.loaders))

    def payload(self):
        return [loader.value for loader in self.loaders]

    def describe(self) -> str:
        return ", ".join(loader.value for loader in self.loaders)


@dataclass(frozen=True, eq=False)
class LoaderAny(Filter):
    """选择兼容任一给定加载器的文件"""

    loaders: Tuple[ModLoader, ...]

    kind: ClassVar[str] = "LoaderAny"
    label: ClassVar[str] = "Mod Loader (Either)"

    def __post_init__(self):
        object.__setattr__(self, "loaders", _loaders(self.loaders))

    def payload(self):
        return [loader.value for loader in self.loaders]

    def describe(self) -> str:
        return ", ".join(loader.value for loader in self.loaders)


@dataclass(frozen=True, eq=False)
class GameVersionStrict(Filter):
    """选择严格兼容给定游戏版本的文件"""

    versions: Tuple[str, ...]

    kind: ClassVar[str] = "GameVersionStrict"
    label: ClassVar[str] = "Game Version"

    def __post_init__(self):
        object.__setattr__(self, "versions", tuple(str(v) for v in self.versions))

    def payload(self):
        return list(self.versions)

    def describe(self) -> str:
        return ", ".join(self.versions)


@dataclass(frozen=True, eq=False)
class GameVersionMinor(Filter):
    """
    选择兼容给定游戏版本或其同一次要版本组中任一版本的文件

    版本组由 Modrinth 的游戏版本标签列表决定。
    """

    versions: Tuple[str, ...]

    kind: ClassVar[str] = "GameVersionMinor"
    label: ClassVar[str] = "Game Version (Minor)"

    def __post_init__(self):
        object.__setattr__(self, "versions", tuple(str(v) for v in self.versions))

    def payload(self):
        return list(self.versions)

    def describe(self) -> str:
        return ", ".join(self.versions)


@dataclass(frozen=True, eq=False)
class ReleaseChannelFilter(Filter):
    """选择给定渠道或更稳定渠道的文件"""

    channel: ReleaseChannel

    kind: ClassVar[str] = "ReleaseChannel"
    label: ClassVar[str] = "Release Channel"

    def __post_init__(self):
        if not isinstance(self.channel, ReleaseChannel):
            try:
                channel = ReleaseChannel.parse(self.channel)
            except ValueError as e:
                raise ConfigValidationError(str(e)) from e
            object.__setattr__(self, "channel", channel)

    def payload(self):
        return self.channel.value

    def describe(self) -> str:
        return self.channel.value


@dataclass(frozen=True, eq=False)
class Filename(Filter):
    """选择文件名匹配给定正则表达式的文件"""

    pattern: str

    kind: ClassVar[str] = "Filename"
    label: ClassVar[str] = "Filename"

    def payload(self):
        return self.pattern

    def describe(self) -> str:
        return self.pattern


FILTER_TYPES = {
    cls.kind: cls
    for cls in (
        LoaderPrefer,
        LoaderAny,
        GameVersionStrict,
        GameVersionMinor,
        ReleaseChannelFilter,
        Filename,
    )
}

# 旧配置文件中使用的名称
_LEGACY_KINDS = {
    "ModLoaderPrefer": "LoaderPrefer",
    "ModLoaderAny": "LoaderAny",
    "GameVersion": "GameVersionStrict",
}


def filter_from_dict(data: Dict[str, Any]) -> Filter:
    """
    从 {"种类": 参数} 形式的字典构造过滤器

    Raises:
        ConfigValidationError: 字典结构或参数无效
    """
    if not isinstance(data, dict) or len(data) != 1:
        raise ConfigValidationError(f"过滤器必须是只有一个键的映射: {data!r}")

    ((kind, payload),) = data.items()
    kind = _LEGACY_KINDS.get(kind, kind)
    cls = FILTER_TYPES.get(kind)
    if cls is None:
        raise ConfigValidationError(f"未知的过滤器类型: {kind}")

    if cls in (ReleaseChannelFilter, Filename):
        if not isinstance(payload, str):
            raise ConfigValidationError(f"过滤器 {kind} 的参数必须是字符串")
        return cls(payload)

    if isinstance(payload, str):
        payload = [payload]
    if not isinstance(payload, list):
        raise ConfigValidationError(f"过滤器 {kind} 的参数必须是列表")
    return cls(tuple(payload))


__all__ = [
    "Filter",
    "LoaderPrefer",
    "LoaderAny",
    "GameVersionStrict",
    "GameVersionMinor",
    "ReleaseChannelFilter",
    "Filename",
    "FILTER_TYPES",
    "filter_from_dict",
]
