"""Tests for the group validator (no network required)."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from versionsentinel.engines.update_checker.catalog import (
    CompositeCatalog,
    NuGetCatalog,
    StaticCatalog,
)
from versionsentinel.engines.update_checker.errors import CatalogLookupError
from versionsentinel.engines.update_checker.models import Dependency, VersionCandidate
from versionsentinel.engines.update_checker.validator import GroupValidator


class _FakeCatalog:
    """Static listings, plus names whose lookup fails or hangs."""

    def __init__(self, listings, *, failing=(), slow=()):
        self._static = StaticCatalog(listings)
        self._failing = set(failing)
        self._slow = set(slow)
        self.calls: list[str] = []

    async def versions_for(self, dependency):
        self.calls.append(dependency.name)
        if dependency.name in self._failing:
            raise CatalogLookupError(dependency.name, "HTTP 503")
        if dependency.name in self._slow:
            await asyncio.sleep(5)
        return await self._static.versions_for(dependency)


def _group(*names: str) -> list[Dependency]:
    return [Dependency(name=n, package_manager="maven", version="1.0.0") for n in names]


def _validator(catalog, **kwargs) -> GroupValidator:
    kwargs.setdefault("timeout", 1.0)
    kwargs.setdefault("concurrency", 4)
    kwargs.setdefault("strict_catalog", False)
    return GroupValidator(catalog, **kwargs)


# ── Conjunction ──────────────────────────────────────────────────────────


class TestConjunction:
    @pytest.mark.anyio
    async def test_all_members_list_candidate(self):
        catalog = StaticCatalog({n: ["1.0.0", "1.2.0"] for n in ("a", "b", "c")})
        assert await _validator(catalog).is_candidate_acceptable(_group("a", "b", "c"), "1.2.0")

    @pytest.mark.anyio
    async def test_one_member_missing_candidate_vetoes(self):
        catalog = StaticCatalog({"a": ["1.2.0"], "b": ["1.2.0"], "c": ["1.0.0", "1.1.0"]})
        validator = _validator(catalog)
        assert not await validator.is_candidate_acceptable(_group("a", "b", "c"), "1.2.0")

        verdict = await validator.evaluate(_group("a", "b", "c"), "1.2.0")
        assert verdict.unavailable == ("c",)

    @pytest.mark.anyio
    async def test_empty_catalog_is_permissive(self):
        catalog = StaticCatalog({"a": ["1.2.0"], "b": ["1.2.0"], "c": []})
        validator = _validator(catalog)
        assert await validator.is_candidate_acceptable(_group("a", "b", "c"), "1.2.0")

        verdict = await validator.evaluate(_group("a", "b", "c"), "1.2.0")
        assert verdict.no_information == ("c",)
        assert verdict.unavailable == ()

    @pytest.mark.anyio
    async def test_unknown_dependency_is_no_information(self):
        catalog = StaticCatalog({"a": ["1.2.0"]})
        assert await _validator(catalog).is_candidate_acceptable(_group("a", "zzz"), "1.2.0")

    @pytest.mark.anyio
    async def test_accepts_version_candidate(self):
        catalog = StaticCatalog({"a": ["1.2.0"]})
        candidate = VersionCandidate(version="1.2.0", source_url="https://example.com")
        assert await _validator(catalog).is_candidate_acceptable(_group("a"), candidate)

    @pytest.mark.anyio
    async def test_every_member_looked_up_in_own_catalog(self):
        catalog = _FakeCatalog({"a": ["1.2.0"], "b": ["1.2.0"]})
        await _validator(catalog).evaluate(_group("a", "b"), "1.2.0")
        assert sorted(catalog.calls) == ["a", "b"]

    @pytest.mark.anyio
    async def test_verdict_order_independent_of_completion_order(self):
        catalog = _FakeCatalog({"a": ["1.0.0"], "b": ["1.0.0"], "c": ["1.2.0"]})
        verdict = await _validator(catalog, concurrency=1).evaluate(_group("a", "b", "c"), "1.2.0")
        assert verdict.unavailable == ("a", "b")


# ── Lookup failures ──────────────────────────────────────────────────────


class TestLookupFailures:
    @pytest.mark.anyio
    async def test_failure_is_no_information_by_default(self):
        catalog = _FakeCatalog({"a": ["1.2.0"]}, failing={"b"})
        verdict = await _validator(catalog).evaluate(_group("a", "b"), "1.2.0")
        assert verdict.acceptable
        assert verdict.failed == ("b",)

    @pytest.mark.anyio
    async def test_failure_vetoes_when_strict(self):
        catalog = _FakeCatalog({"a": ["1.2.0"]}, failing={"b"})
        verdict = await _validator(catalog, strict_catalog=True).evaluate(
            _group("a", "b"), "1.2.0"
        )
        assert not verdict.acceptable
        assert verdict.unavailable == ()

    @pytest.mark.anyio
    async def test_timeout_is_no_information(self):
        catalog = _FakeCatalog({"a": ["1.2.0"]}, slow={"b"})
        verdict = await _validator(catalog, timeout=0.05).evaluate(_group("a", "b"), "1.2.0")
        assert verdict.acceptable
        assert verdict.failed == ("b",)

    @pytest.mark.anyio
    async def test_unavailable_still_vetoes_alongside_failure(self):
        catalog = _FakeCatalog({"a": ["1.0.0"]}, failing={"b"})
        verdict = await _validator(catalog).evaluate(_group("a", "b"), "1.2.0")
        assert not verdict.acceptable
        assert verdict.unavailable == ("a",)

    @pytest.mark.anyio
    async def test_malformed_registry_response_is_no_information(self):
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(
                lambda request: httpx.Response(200, text="<html>proxy</html>")
            )
        )
        async with NuGetCatalog(client) as catalog:
            validator = _validator(catalog)
            group = [Dependency(name="Foo", package_manager="nuget")]
            verdict = await validator.evaluate(group, "1.2.0")
            assert await validator.is_candidate_acceptable(group, "1.2.0")
        assert verdict.failed == ("Foo",)
        assert verdict.unavailable == ()

    @pytest.mark.anyio
    async def test_missing_catalog_for_package_manager_is_no_information(self):
        catalog = CompositeCatalog({"maven": StaticCatalog({"a": ["1.2.0"]})})
        group = _group("a") + [Dependency(name="Foo", package_manager="nuget")]
        verdict = await _validator(catalog).evaluate(group, "1.2.0")
        assert verdict.acceptable
        assert verdict.failed == ("Foo",)


# ── Configuration ────────────────────────────────────────────────────────


class TestConfiguration:
    def test_strict_from_environment(self, monkeypatch):
        monkeypatch.setenv("VERSIONSENTINEL_STRICT_CATALOG", "1")
        assert GroupValidator(StaticCatalog({})).strict_catalog

    def test_argument_overrides_environment(self, monkeypatch):
        monkeypatch.setenv("VERSIONSENTINEL_STRICT_CATALOG", "true")
        assert not GroupValidator(StaticCatalog({}), strict_catalog=False).strict_catalog

    def test_permissive_by_default(self):
        assert not GroupValidator(StaticCatalog({})).strict_catalog
