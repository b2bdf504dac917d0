"""
Tests for the Quilt -> Fabric loader fallback.

These tests verify:
- Loader substitution inside loader filters
- Fallback is attempted exactly once and reported
- Loaders without a fallback fail on the first attempt
- Only selection failures trigger the fallback
"""

from unittest.mock import AsyncMock

import pytest

from modkeeper.exceptions import (
    FilterEmptyError,
    IntersectFailureError,
    InvalidFilenamePatternError,
)
from modkeeper.models import (
    Filename,
    GameVersionStrict,
    LoaderAny,
    LoaderPrefer,
    ModLoader,
)
from modkeeper.services.loader_fallback import (
    fallback_for,
    primary_loader,
    select_latest_with_fallback,
    substitute_loader,
    with_loader_fallback,
)


class TestHelpers:
    def test_only_quilt_falls_back(self) -> None:
        assert fallback_for(ModLoader.QUILT) is ModLoader.FABRIC
        assert fallback_for(ModLoader.FABRIC) is None
        assert fallback_for(ModLoader.FORGE) is None
        assert fallback_for(None) is None

    def test_primary_loader_is_first_loader_of_first_loader_filter(self) -> None:
        filters = [
            GameVersionStrict(["1.20.1"]),
            LoaderPrefer([ModLoader.QUILT, ModLoader.FABRIC]),
            LoaderAny([ModLoader.FORGE]),
        ]

        assert primary_loader(filters) is ModLoader.QUILT
        assert primary_loader([GameVersionStrict(["1.20.1"])]) is None

    def test_substitute_loader(self) -> None:
        filters = [
            LoaderAny([ModLoader.QUILT]),
            LoaderPrefer([ModLoader.QUILT, ModLoader.FORGE]),
            GameVersionStrict(["1.20.1"]),
        ]

        result = substitute_loader(filters, ModLoader.QUILT, ModLoader.FABRIC)

        assert result[0].loaders == (ModLoader.FABRIC,)
        assert result[1].loaders == (ModLoader.FABRIC, ModLoader.FORGE)
        assert result[2] is filters[2]
        # 原过滤器不变
        assert filters[0].loaders == (ModLoader.QUILT,)

    def test_substitute_deduplicates(self) -> None:
        filters = [LoaderPrefer([ModLoader.QUILT, ModLoader.FABRIC])]

        result = substitute_loader(filters, ModLoader.QUILT, ModLoader.FABRIC)

        assert result[0].loaders == (ModLoader.FABRIC,)


class TestSelectWithFallback:
    @pytest.mark.asyncio
    async def test_primary_match_does_not_use_fallback(self, candidate_factory) -> None:
        candidates = [
            candidate_factory("fabric.jar", loaders=[ModLoader.FABRIC]),
            candidate_factory("quilt.jar", loaders=[ModLoader.QUILT]),
        ]

        selected, used_fallback = await select_latest_with_fallback(
            candidates, [LoaderAny([ModLoader.QUILT])], ModLoader.QUILT
        )

        assert selected.filename == "quilt.jar"
        assert used_fallback is False

    @pytest.mark.asyncio
    async def test_falls_back_to_fabric(self, candidate_factory) -> None:
        candidates = [
            candidate_factory("forge.jar", loaders=[ModLoader.FORGE]),
            candidate_factory("fabric.jar", loaders=[ModLoader.FABRIC]),
        ]
        filters = [GameVersionStrict(["1.20.1"]), LoaderAny([ModLoader.QUILT])]

        selected, used_fallback = await select_latest_with_fallback(
            candidates, filters, ModLoader.QUILT
        )

        assert selected.filename == "fabric.jar"
        assert used_fallback is True

    @pytest.mark.asyncio
    async def test_fails_when_neither_loader_matches(self, candidate_factory) -> None:
        candidates = [candidate_factory("forge.jar", loaders=[ModLoader.FORGE])]

        with pytest.raises(FilterEmptyError):
            await select_latest_with_fallback(
                candidates, [LoaderAny([ModLoader.QUILT])], ModLoader.QUILT
            )

    @pytest.mark.asyncio
    async def test_no_fallback_for_fabric(self, candidate_factory) -> None:
        candidates = [candidate_factory("quilt.jar", loaders=[ModLoader.QUILT])]

        with pytest.raises(FilterEmptyError):
            await select_latest_with_fallback(
                candidates, [LoaderAny([ModLoader.FABRIC])], ModLoader.FABRIC
            )

    @pytest.mark.asyncio
    async def test_explicit_secondary(self, candidate_factory) -> None:
        candidates = [candidate_factory("forge.jar", loaders=[ModLoader.FORGE])]

        selected, used_fallback = await select_latest_with_fallback(
            candidates,
            [LoaderAny([ModLoader.NEOFORGE])],
            ModLoader.NEOFORGE,
            secondary=ModLoader.FORGE,
        )

        assert selected.filename == "forge.jar"
        assert used_fallback is True


class TestDecorator:
    @pytest.mark.asyncio
    async def test_retries_exactly_once(self) -> None:
        resolve = AsyncMock(side_effect=IntersectFailureError())
        wrapped = with_loader_fallback(resolve)

        with pytest.raises(IntersectFailureError):
            await wrapped(ModLoader.QUILT, "mod-id")

        assert resolve.await_count == 2
        assert resolve.await_args_list[0].args == (ModLoader.QUILT, "mod-id")
        assert resolve.await_args_list[1].args == (ModLoader.FABRIC, "mod-id")

    @pytest.mark.asyncio
    async def test_reports_fallback_use(self) -> None:
        resolve = AsyncMock(side_effect=[FilterEmptyError(["LoaderAny"]), "fabric-file"])
        wrapped = with_loader_fallback(resolve)

        assert await wrapped(ModLoader.QUILT) == ("fabric-file", True)

    @pytest.mark.asyncio
    async def test_no_retry_without_fallback_loader(self) -> None:
        resolve = AsyncMock(side_effect=FilterEmptyError(["LoaderAny"]))
        wrapped = with_loader_fallback(resolve)

        with pytest.raises(FilterEmptyError):
            await wrapped(ModLoader.FORGE)

        assert resolve.await_count == 1

    @pytest.mark.asyncio
    async def test_configuration_errors_are_not_retried(self) -> None:
        resolve = AsyncMock(side_effect=InvalidFilenamePatternError("(", "bad"))
        wrapped = with_loader_fallback(resolve)

        with pytest.raises(InvalidFilenamePatternError):
            await wrapped(ModLoader.QUILT)

        assert resolve.await_count == 1

    @pytest.mark.asyncio
    async def test_kwargs_are_forwarded(self) -> None:
        resolve = AsyncMock(return_value="file")
        wrapped = with_loader_fallback(resolve)

        assert await wrapped(ModLoader.FABRIC, filters=[Filename("x")]) == ("file", False)
        assert "filters" in resolve.await_args.kwargs
