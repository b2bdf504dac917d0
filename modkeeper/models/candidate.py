"""
下载候选文件

三个平台的文件/版本/发布资源统一转换成的内部表示。
"""

from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import FrozenSet, Tuple, Union

from modkeeper.models.types import ModLoader, ReleaseChannel


@dataclass(frozen=True)
class DownloadCandidate:
    """
    一个可供选择的下载文件。

    候选列表由调用方按从新到旧排序，引擎依赖这一顺序做最终选择。
    """

    download_url: str
    output_path: PurePosixPath
    game_versions: Tuple[str, ...] = ()
    loaders: FrozenSet[ModLoader] = frozenset()
    release_channel: ReleaseChannel = ReleaseChannel.RELEASE
    length: int = 0
    recency_key: Union[str, int, None] = field(default=None, compare=False)
    title: str = field(default="", compare=False)

    def __post_init__(self):
        object.__setattr__(self, "output_path", PurePosixPath(self.output_path))
        object.__setattr__(self, "game_versions", tuple(self.game_versions))
        object.__setattr__(self, "loaders", frozenset(self.loaders))

    @property
    def filename(self) -> str:
        return self.output_path.name

    def supports(self, loader: ModLoader) -> bool:
        return loader in self.loaders
