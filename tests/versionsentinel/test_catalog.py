"""Tests for version catalogs (HTTP mocked, no network)."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from versionsentinel.engines.update_checker.catalog import (
    CompositeCatalog,
    CratesCatalog,
    MavenRepositoryCatalog,
    NuGetCatalog,
    StaticCatalog,
    VersionCatalog,
)
from versionsentinel.engines.update_checker.errors import (
    CatalogLookupError,
    UnsupportedEcosystemError,
)
from versionsentinel.engines.update_checker.models import (
    Dependency,
    Requirement,
    VersionCandidate,
)

MAVEN_METADATA = """\
<metadata>
  <groupId>com.example</groupId>
  <artifactId>lib-a</artifactId>
  <versioning>
    <latest>1.2.0</latest>
    <release>1.2.0</release>
    <versions>
      <version>1.0.0</version>
      <version>1.2.0</version>
    </versions>
  </versioning>
</metadata>
"""


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _maven_dep(repository: str | None = None) -> Dependency:
    return Dependency(
        name="com.example:lib-a",
        package_manager="maven",
        requirements=(
            Requirement(
                file="pom.xml",
                requirement="1.0.0",
                source={"url": repository} if repository else None,
            ),
        ),
    )


# ── In-memory catalogs ───────────────────────────────────────────────────


class TestStaticCatalog:
    @pytest.mark.anyio
    async def test_lists_versions(self):
        catalog = StaticCatalog({"a": ["1.0", VersionCandidate(version="1.1")]})
        versions = await catalog.versions_for(Dependency(name="a", package_manager="maven"))
        assert [v.version for v in versions] == ["1.0", "1.1"]

    @pytest.mark.anyio
    async def test_unknown_is_empty(self):
        catalog = StaticCatalog({})
        assert await catalog.versions_for(Dependency(name="a", package_manager="maven")) == []

    def test_satisfies_protocol(self):
        assert isinstance(StaticCatalog({}), VersionCatalog)


class TestCompositeCatalog:
    @pytest.mark.anyio
    async def test_dispatches_by_package_manager(self):
        composite = CompositeCatalog(
            {"maven": StaticCatalog({"a": ["1.0"]}), "nuget": StaticCatalog({"a": ["9.0"]})}
        )
        versions = await composite.versions_for(Dependency(name="a", package_manager="nuget"))
        assert [v.version for v in versions] == ["9.0"]

    @pytest.mark.anyio
    async def test_unknown_package_manager(self):
        with pytest.raises(UnsupportedEcosystemError):
            await CompositeCatalog({}).versions_for(Dependency(name="a", package_manager="pip"))


# ── Maven ────────────────────────────────────────────────────────────────


class TestMavenRepositoryCatalog:
    def test_metadata_url_default_repository(self):
        catalog = MavenRepositoryCatalog(MagicMock())
        assert catalog.metadata_url(_maven_dep()) == (
            "https://repo.maven.apache.org/maven2/com/example/lib-a/maven-metadata.xml"
        )

    def test_metadata_url_from_requirement_source(self):
        catalog = MavenRepositoryCatalog(MagicMock())
        url = catalog.metadata_url(_maven_dep("https://repo.example.com/releases/"))
        assert url == "https://repo.example.com/releases/com/example/lib-a/maven-metadata.xml"

    def test_repository_from_environment(self, monkeypatch):
        monkeypatch.setenv("VERSIONSENTINEL_MAVEN_REPOSITORY_URL", "https://mirror.example.com/m2")
        catalog = MavenRepositoryCatalog(MagicMock())
        assert catalog.metadata_url(_maven_dep()).startswith("https://mirror.example.com/m2/")

    @pytest.mark.anyio
    async def test_parses_versions(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path.endswith("/com/example/lib-a/maven-metadata.xml")
            return httpx.Response(200, text=MAVEN_METADATA)

        async with MavenRepositoryCatalog(_client(handler)) as catalog:
            versions = await catalog.versions_for(_maven_dep())
        assert [v.version for v in versions] == ["1.0.0", "1.2.0"]
        assert versions[0].listing_url.endswith("maven-metadata.xml")

    @pytest.mark.anyio
    async def test_not_found_is_empty(self):
        catalog = MavenRepositoryCatalog(_client(lambda request: httpx.Response(404)))
        assert await catalog.versions_for(_maven_dep()) == []

    @pytest.mark.anyio
    async def test_malformed_metadata_raises(self):
        catalog = MavenRepositoryCatalog(_client(lambda request: httpx.Response(200, text="<oops")))
        with pytest.raises(CatalogLookupError):
            await catalog.versions_for(_maven_dep())


# ── Retry ────────────────────────────────────────────────────────────────


class TestRetry:
    @pytest.mark.anyio
    async def test_retry_on_server_error(self):
        responses = iter([httpx.Response(503), httpx.Response(200, text=MAVEN_METADATA)])
        catalog = MavenRepositoryCatalog(_client(lambda request: next(responses)))

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            versions = await catalog.versions_for(_maven_dep())

        assert [v.version for v in versions] == ["1.0.0", "1.2.0"]
        mock_sleep.assert_awaited_once()

    @pytest.mark.anyio
    async def test_retry_exhausted(self):
        catalog = MavenRepositoryCatalog(_client(lambda request: httpx.Response(502)))

        with patch("asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(CatalogLookupError) as exc_info:
                await catalog.versions_for(_maven_dep())
        assert exc_info.value.reason == "HTTP 502"

    @pytest.mark.anyio
    async def test_timeout_retried(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        catalog = MavenRepositoryCatalog(_client(handler))
        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            with pytest.raises(CatalogLookupError) as exc_info:
                await catalog.versions_for(_maven_dep())
        assert exc_info.value.reason == "timeout"
        assert mock_sleep.await_count == 2

    @pytest.mark.anyio
    async def test_client_error_not_retried(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(401)

        catalog = MavenRepositoryCatalog(_client(handler))
        with pytest.raises(CatalogLookupError):
            await catalog.versions_for(_maven_dep())
        assert len(calls) == 1


# ── NuGet / crates.io ────────────────────────────────────────────────────


class TestNuGetCatalog:
    @pytest.mark.anyio
    async def test_flat_container(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/v3-flatcontainer/newtonsoft.json/index.json"
            return httpx.Response(200, json={"versions": ["13.0.1", "13.0.3"]})

        catalog = NuGetCatalog(_client(handler))
        dep = Dependency(name="Newtonsoft.Json", package_manager="nuget")
        versions = await catalog.versions_for(dep)
        assert [v.version for v in versions] == ["13.0.1", "13.0.3"]

    @pytest.mark.anyio
    async def test_non_json_body_raises_lookup_error(self):
        catalog = NuGetCatalog(
            _client(lambda request: httpx.Response(200, text="<html>proxy login</html>"))
        )
        dep = Dependency(name="Newtonsoft.Json", package_manager="nuget")
        with pytest.raises(CatalogLookupError, match="malformed index"):
            await catalog.versions_for(dep)


class TestCratesCatalog:
    @pytest.mark.anyio
    async def test_yanked_excluded(self):
        payload = {
            "crate": {"repository": "https://github.com/serde-rs/serde"},
            "versions": [
                {"num": "1.0.200", "yanked": False},
                {"num": "1.0.199", "yanked": True},
            ],
        }
        catalog = CratesCatalog(_client(lambda request: httpx.Response(200, json=payload)))
        versions = await catalog.versions_for(Dependency(name="serde", package_manager="cargo"))
        assert [v.version for v in versions] == ["1.0.200"]
        assert versions[0].source_url == "https://github.com/serde-rs/serde"

    @pytest.mark.anyio
    async def test_missing_version_number_raises_lookup_error(self):
        payload = {"crate": {}, "versions": [{"yanked": False}]}
        catalog = CratesCatalog(_client(lambda request: httpx.Response(200, json=payload)))
        with pytest.raises(CatalogLookupError, match="malformed response"):
            await catalog.versions_for(Dependency(name="serde", package_manager="cargo"))
