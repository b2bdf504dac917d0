"""
Tests for candidate normalisation.

These tests verify:
- Each platform record maps onto DownloadCandidate
- CurseForge files without a download URL are denied
- Output paths route by file extension
- The filename token heuristic for GitHub assets (including its known looseness)
- Malformed records raise MalformedRecordError
- CurseForge file dates are compared as timestamps
"""

from pathlib import PurePosixPath

import pytest

from modkeeper.exceptions import DistributionDeniedError, MalformedRecordError, ResolutionError
from modkeeper.models import ModLoader, ReleaseChannel
from modkeeper.services.normalizer import (
    filename_tokens,
    from_curseforge_file,
    from_github_asset,
    from_github_releases,
    from_modrinth_version,
    is_source_asset,
    normalize_many,
    output_path_for,
    parse_file_date,
    sort_curseforge_files,
)


@pytest.fixture
def modrinth_version() -> dict:
    return {
        "id": "abc123",
        "name": "Sodium 0.5.3",
        "version_type": "beta",
        "date_published": "2023-09-02T10:00:00Z",
        "game_versions": ["1.20.1", "1.20"],
        "loaders": ["fabric", "quilt", "iris-shaders"],
        "files": [
            {
                "url": "https://cdn.modrinth.com/sodium-sources.jar",
                "filename": "sodium-sources.jar",
                "size": 10,
                "primary": False,
            },
            {
                "url": "https://cdn.modrinth.com/sodium-0.5.3.jar",
                "filename": "sodium-0.5.3.jar",
                "size": 2048,
                "primary": True,
            },
        ],
    }


@pytest.fixture
def curseforge_file() -> dict:
    return {
        "id": 4712866,
        "modId": 238222,
        "displayName": "jei-1.20.1-forge-15.2.0.27",
        "fileName": "jei-1.20.1-forge-15.2.0.27.jar",
        "releaseType": 1,
        "fileDate": "2023-09-10T12:00:00Z",
        "fileLength": 1234567,
        "downloadUrl": "https://edge.forgecdn.net/files/4712/866/jei.jar",
        "gameVersions": ["1.20.1", "Forge", "NeoForge"],
        "sortableGameVersions": [
            {"gameVersionName": "1.20.1"},
            {"gameVersionName": "Forge"},
            {"gameVersionName": "NeoForge"},
        ],
    }


class TestOutputPath:
    def test_jar_goes_to_mods(self) -> None:
        assert output_path_for("sodium.jar") == PurePosixPath("mods/sodium.jar")

    def test_zip_goes_to_resourcepacks(self) -> None:
        assert output_path_for("Faithful.zip") == PurePosixPath(
            "resourcepacks/Faithful.zip"
        )


class TestModrinth:
    def test_uses_primary_file(self, modrinth_version: dict) -> None:
        candidate = from_modrinth_version(modrinth_version)

        assert candidate.download_url == "https://cdn.modrinth.com/sodium-0.5.3.jar"
        assert candidate.filename == "sodium-0.5.3.jar"
        assert candidate.length == 2048

    def test_falls_back_to_first_file(self, modrinth_version: dict) -> None:
        for file in modrinth_version["files"]:
            file["primary"] = False

        candidate = from_modrinth_version(modrinth_version)

        assert candidate.filename == "sodium-sources.jar"

    def test_structured_metadata(self, modrinth_version: dict) -> None:
        candidate = from_modrinth_version(modrinth_version)

        assert candidate.game_versions == ("1.20.1", "1.20")
        # 无法识别的加载器（如 iris-shaders）被忽略
        assert candidate.loaders == {ModLoader.FABRIC, ModLoader.QUILT}
        assert candidate.release_channel is ReleaseChannel.BETA
        assert candidate.recency_key == "2023-09-02T10:00:00Z"
        assert candidate.title == "Sodium 0.5.3"


class TestMalformedModrinth:
    def test_missing_url(self, modrinth_version: dict) -> None:
        del modrinth_version["files"][1]["url"]

        with pytest.raises(MalformedRecordError) as exc_info:
            from_modrinth_version(modrinth_version)

        assert exc_info.value.record_id == "abc123"
        assert exc_info.value.code == "E640"
        assert isinstance(exc_info.value, ResolutionError)

    def test_no_files(self, modrinth_version: dict) -> None:
        modrinth_version["files"] = []

        with pytest.raises(MalformedRecordError):
            from_modrinth_version(modrinth_version)

    def test_unknown_version_type(self, modrinth_version: dict) -> None:
        modrinth_version["version_type"] = "snapshot"

        with pytest.raises(MalformedRecordError) as exc_info:
            from_modrinth_version(modrinth_version)

        assert "ValueError" in exc_info.value.message


class TestCurseForge:
    def test_maps_file(self, curseforge_file: dict) -> None:
        candidate = from_curseforge_file(curseforge_file)

        assert candidate.download_url.endswith("jei.jar")
        assert candidate.output_path == PurePosixPath(
            "mods/jei-1.20.1-forge-15.2.0.27.jar"
        )
        assert candidate.game_versions == ("1.20.1",)
        assert candidate.loaders == {ModLoader.FORGE, ModLoader.NEOFORGE}
        assert candidate.release_channel is ReleaseChannel.RELEASE
        assert candidate.length == 1234567

    def test_game_versions_fall_back_to_tags(self, curseforge_file: dict) -> None:
        del curseforge_file["sortableGameVersions"]

        candidate = from_curseforge_file(curseforge_file)

        assert candidate.game_versions == ("1.20.1",)

    def test_missing_download_url_is_denied(self, curseforge_file: dict) -> None:
        curseforge_file["downloadUrl"] = None

        with pytest.raises(DistributionDeniedError) as exc_info:
            from_curseforge_file(curseforge_file)

        assert exc_info.value.mod_id == 238222
        assert exc_info.value.file_id == 4712866

    def test_sort_newest_first(self) -> None:
        files = [
            {"id": 1, "fileDate": "2023-01-01T00:00:00Z"},
            {"id": 3, "fileDate": "2023-03-01T00:00:00Z"},
            {"id": 2, "fileDate": "2023-02-01T00:00:00Z"},
        ]

        assert [f["id"] for f in sort_curseforge_files(files)] == [3, 2, 1]
        # 原列表不变
        assert [f["id"] for f in files] == [1, 3, 2]

    def test_sort_compares_timestamps_not_strings(self) -> None:
        files = [
            {"id": "whole", "fileDate": "2023-01-01T00:00:00Z"},
            {"id": "later", "fileDate": "2023-01-01T00:00:01Z"},
            {"id": "fraction", "fileDate": "2023-01-01T00:00:00.5Z"},
            {"id": "missing"},
        ]

        assert [f["id"] for f in sort_curseforge_files(files)] == [
            "later",
            "fraction",
            "whole",
            "missing",
        ]

    def test_unparsable_date_is_oldest(self) -> None:
        assert parse_file_date("yesterday") < parse_file_date("2000-01-01T00:00:00Z")
        assert parse_file_date("2023-01-01T00:00:00.1234567Z").microsecond == 123456

    def test_missing_file_name_is_malformed(self, curseforge_file: dict) -> None:
        del curseforge_file["fileName"]

        with pytest.raises(MalformedRecordError) as exc_info:
            from_curseforge_file(curseforge_file)

        assert exc_info.value.platform == "CurseForge"
        assert exc_info.value.record_id == 4712866

    def test_unknown_release_type_is_malformed(self, curseforge_file: dict) -> None:
        curseforge_file["releaseType"] = 9

        with pytest.raises(MalformedRecordError):
            from_curseforge_file(curseforge_file)


class TestFilenameTokens:
    def test_extracts_versions_and_loaders(self) -> None:
        versions, loaders = filename_tokens("sodium-fabric-mc1.20.1-0.5.3.jar")

        assert "1.20.1" in versions
        assert loaders == [ModLoader.FABRIC]

    def test_heuristic_over_matches_unrelated_tokens(self) -> None:
        versions, _ = filename_tokens("better-end-1.20.1.jar")

        # "better" 和 "end" 也被当作版本，这是已知的局限
        assert versions == ["better", "end", "1.20.1"]

    def test_heuristic_under_matches_other_delimiters(self) -> None:
        versions, loaders = filename_tokens("modmenu_fabric+1.20.1.jar")

        assert "1.20.1" not in versions
        assert loaders == []


class TestGitHub:
    def test_release_assets_are_flattened_in_order(self) -> None:
        releases = [
            {
                "name": "v2",
                "prerelease": True,
                "published_at": "2023-09-02T00:00:00Z",
                "assets": [
                    {
                        "name": "mod-fabric-1.20.1-2.0.jar",
                        "browser_download_url": "https://github.com/a/b/2.jar",
                        "size": 5,
                    },
                    {
                        "name": "mod-fabric-1.20.1-2.0-sources.jar",
                        "browser_download_url": "https://github.com/a/b/2s.jar",
                        "size": 1,
                    },
                ],
            },
            {
                "name": "v1",
                "prerelease": False,
                "published_at": "2023-09-01T00:00:00Z",
                "assets": [
                    {
                        "name": "mod-forge-1.19.4-1.0.jar",
                        "browser_download_url": "https://github.com/a/b/1.jar",
                        "size": 4,
                    }
                ],
            },
        ]

        candidates = from_github_releases(releases)

        assert [c.filename for c in candidates] == [
            "mod-fabric-1.20.1-2.0.jar",
            "mod-forge-1.19.4-1.0.jar",
        ]
        assert candidates[0].release_channel is ReleaseChannel.BETA
        assert candidates[1].release_channel is ReleaseChannel.RELEASE
        assert candidates[1].loaders == {ModLoader.FORGE}
        assert candidates[0].title == "v2"

    def test_asset_without_release(self) -> None:
        candidate = from_github_asset(
            {
                "name": "pack-1.20.zip",
                "browser_download_url": "https://github.com/a/b/pack.zip",
                "size": 9,
            }
        )

        assert candidate.output_path == PurePosixPath("resourcepacks/pack-1.20.zip")
        assert candidate.release_channel is ReleaseChannel.RELEASE

    def test_source_assets_are_skipped(self) -> None:
        releases = [
            {
                "name": "v1",
                "assets": [
                    {
                        "name": "mod-1.0-source.jar",
                        "browser_download_url": "https://github.com/a/b/src.jar",
                    },
                    {
                        "name": "mod-1.0.jar",
                        "browser_download_url": "https://github.com/a/b/mod.jar",
                    },
                ],
            }
        ]

        assert is_source_asset("mod-1.0-source.jar")
        assert [c.filename for c in from_github_releases(releases)] == ["mod-1.0.jar"]

    def test_asset_without_download_url_is_malformed(self) -> None:
        with pytest.raises(MalformedRecordError) as exc_info:
            from_github_releases([{"name": "v1", "assets": [{"id": 5, "name": "mod.jar"}]}])

        assert exc_info.value.platform == "GitHub"
        assert exc_info.value.record_id == 5


class TestNormalizeMany:
    def test_denied_files_are_skipped(self, curseforge_file: dict) -> None:
        denied = dict(curseforge_file, id=1, downloadUrl=None)

        candidates = normalize_many([denied, curseforge_file], from_curseforge_file)

        assert len(candidates) == 1

    def test_denied_files_raise_when_not_skipping(self, curseforge_file: dict) -> None:
        denied = dict(curseforge_file, downloadUrl=None)

        with pytest.raises(DistributionDeniedError):
            normalize_many([denied], from_curseforge_file, skip_denied=False)
