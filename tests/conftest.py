from pathlib import PurePosixPath
from typing import Iterable, Optional

import pytest

from modkeeper.models import DownloadCandidate, ModLoader, ReleaseChannel
from modkeeper.services.version_groups import VersionGroupCache

# Modrinth 的游戏版本标签，从新到旧
SAMPLE_GAME_VERSIONS = [
    {"version": "1.20.4", "version_type": "release", "major": False},
    {"version": "1.20.3", "version_type": "release", "major": False},
    {"version": "23w45a", "version_type": "snapshot", "major": False},
    {"version": "1.20.2", "version_type": "release", "major": False},
    {"version": "1.20.1", "version_type": "release", "major": False},
    {"version": "1.20", "version_type": "release", "major": True},
    {"version": "1.19.4", "version_type": "release", "major": False},
    {"version": "1.19.3", "version_type": "release", "major": False},
    {"version": "1.19", "version_type": "release", "major": True},
    {"version": "1.18.2", "version_type": "release", "major": False},
    {"version": "1.18", "version_type": "release", "major": True},
]


def make_candidate(
    filename: str = "mod.jar",
    versions: Iterable[str] = ("1.20.1",),
    loaders: Iterable[ModLoader] = (ModLoader.FABRIC,),
    channel: ReleaseChannel = ReleaseChannel.RELEASE,
    date: Optional[str] = None,
) -> DownloadCandidate:
    return DownloadCandidate(
        download_url=f"https://cdn.example.com/{filename}",
        output_path=PurePosixPath("mods") / filename,
        game_versions=tuple(versions),
        loaders=frozenset(loaders),
        release_channel=channel,
        length=1024,
        recency_key=date,
    )


@pytest.fixture
def candidate_factory():
    """Factory for DownloadCandidate values with sensible defaults."""
    return make_candidate


@pytest.fixture
def scenario_candidates() -> list[DownloadCandidate]:
    """Forge 1.20.1 (newest), Fabric 1.20.1, Fabric 1.19.4 (oldest)."""
    return [
        make_candidate(
            "forge-1.20.1.jar", ["1.20.1"], [ModLoader.FORGE], date="2023-09-03"
        ),
        make_candidate(
            "fabric-1.20.1.jar", ["1.20.1"], [ModLoader.FABRIC], date="2023-09-02"
        ),
        make_candidate(
            "fabric-1.19.4.jar", ["1.19.4"], [ModLoader.FABRIC], date="2023-09-01"
        ),
    ]


@pytest.fixture
def version_groups() -> VersionGroupCache:
    """Version group cache backed by SAMPLE_GAME_VERSIONS, no network."""

    async def fetch():
        return SAMPLE_GAME_VERSIONS

    return VersionGroupCache(fetch)
