"""
基础枚举类型

模组加载器与发布渠道。
"""

from enum import Enum
from typing import Optional, Union


class ModLoader(Enum):
    """模组加载器"""

    QUILT = "Quilt"
    FABRIC = "Fabric"
    FORGE = "Forge"
    NEOFORGE = "NeoForge"

    @classmethod
    def parse(cls, value: str) -> Optional["ModLoader"]:
        """
        不区分大小写地解析加载器名称

        无法识别时返回 None，CurseForge 的 gameVersions 中混有游戏版本和加载器，
        调用方依此把两者分开。
        """
        lowered = value.strip().lower()
        for loader in cls:
            if loader.value.lower() == lowered:
                return loader
        return None

    def __str__(self) -> str:
        return self.value


class ReleaseChannel(Enum):
    """发布渠道，Release 最稳定"""

    RELEASE = "Release"
    BETA = "Beta"
    ALPHA = "Alpha"

    @property
    def stability(self) -> int:
        return _STABILITY[self]

    def satisfies(self, threshold: "ReleaseChannel") -> bool:
        """该渠道是否至少与 threshold 一样稳定"""
        return self.stability >= threshold.stability

    @classmethod
    def parse(cls, value: Union[str, int]) -> "ReleaseChannel":
        """
        解析发布渠道

        支持 Modrinth 的 version_type 字符串以及 CurseForge 的 releaseType 数字
        (1 = Release, 2 = Beta, 3 = Alpha)。
        """
        if isinstance(value, int):
            try:
                return _CURSEFORGE_RELEASE_TYPES[value]
            except KeyError:
                raise ValueError(f"未知的 releaseType: {value}") from None
        lowered = value.strip().lower()
        for channel in cls:
            if channel.value.lower() == lowered:
                return channel
        raise ValueError(f"未知的发布渠道: {value}")

    def __str__(self) -> str:
        return self.value


_STABILITY = {
    ReleaseChannel.RELEASE: 2,
    ReleaseChannel.BETA: 1,
    ReleaseChannel.ALPHA: 0,
}

_CURSEFORGE_RELEASE_TYPES = {
    1: ReleaseChannel.RELEASE,
    2: ReleaseChannel.BETA,
    3: ReleaseChannel.ALPHA,
}
