"""Version catalogs — where the list of published versions comes from.

The core only depends on :class:`VersionCatalog`.  The HTTP catalogs below
are thin async wrappers around public registries with their own retry
policy; the group validator never retries.
"""

from __future__ import annotations

import asyncio
import os
import xml.etree.ElementTree as ET
from collections.abc import Iterable, Mapping
from typing import Protocol, runtime_checkable

import httpx
import structlog

from versionsentinel.engines.update_checker.errors import (
    CatalogLookupError,
    UnsupportedEcosystemError,
)
from versionsentinel.engines.update_checker.models import Dependency, VersionCandidate

log = structlog.get_logger("versionsentinel.engine")

_MAX_RETRIES = 3
_RETRY_BASE_DELAY = 1.0  # seconds

DEFAULT_MAVEN_REPOSITORY = "https://repo.maven.apache.org/maven2"
NUGET_FLAT_CONTAINER = "https://api.nuget.org/v3-flatcontainer"
CRATES_API = "https://crates.io/api/v1/crates"

_USER_AGENT = "versionsentinel (dependency update checker)"


@runtime_checkable
class VersionCatalog(Protocol):
    """Interface that every version source must satisfy."""

    async def versions_for(self, dependency: Dependency) -> list[VersionCandidate]: ...


class StaticCatalog:
    """In-memory catalog keyed by dependency name.  Unknown names list nothing."""

    def __init__(self, listings: Mapping[str, Iterable[VersionCandidate | str]]) -> None:
        self._listings = {
            name: [VersionCandidate.coerce(v) for v in versions]
            for name, versions in listings.items()
        }

    async def versions_for(self, dependency: Dependency) -> list[VersionCandidate]:
        return list(self._listings.get(dependency.name, []))


class CompositeCatalog:
    """Dispatch lookups to a per-package-manager catalog."""

    def __init__(self, catalogs: Mapping[str, VersionCatalog]) -> None:
        self._catalogs = dict(catalogs)

    async def versions_for(self, dependency: Dependency) -> list[VersionCandidate]:
        catalog = self._catalogs.get(dependency.package_manager)
        if catalog is None:
            raise UnsupportedEcosystemError(
                f"no version catalog for package manager '{dependency.package_manager}'"
            )
        return await catalog.versions_for(dependency)


class HttpCatalog:
    """Shared HTTP plumbing: one client, bounded retry with exponential backoff."""

    def __init__(self, client: httpx.AsyncClient | None = None, *, timeout: float = 30.0) -> None:
        self._client = client or httpx.AsyncClient(
            headers={"User-Agent": _USER_AGENT},
            timeout=timeout,
            follow_redirects=True,
        )

    # ── lifecycle ──────────────────────────────────────────────────────────

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> HttpCatalog:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # ── internal ───────────────────────────────────────────────────────────

    async def _get(self, dependency: Dependency, url: str) -> httpx.Response | None:
        """GET *url*; ``None`` on 404.  Retries 5xx and timeouts."""
        last_error = ""
        for attempt in range(_MAX_RETRIES):
            try:
                resp = await self._client.get(url)
                if resp.status_code == 404:
                    log.debug("catalog.not_found", dependency=dependency.name, url=url)
                    return None
                if resp.status_code < 500:
                    resp.raise_for_status()
                    return resp
                log.warning(
                    "catalog.server_error",
                    url=url,
                    status=resp.status_code,
                    attempt=attempt + 1,
                    max_retries=_MAX_RETRIES,
                )
                last_error = f"HTTP {resp.status_code}"
            except httpx.TimeoutException:
                log.warning(
                    "catalog.timeout",
                    url=url,
                    attempt=attempt + 1,
                    max_retries=_MAX_RETRIES,
                )
                last_error = "timeout"
            except httpx.HTTPError as exc:
                raise CatalogLookupError(dependency.name, str(exc)) from exc

            if attempt < _MAX_RETRIES - 1:
                await asyncio.sleep(_RETRY_BASE_DELAY * (2**attempt))

        raise CatalogLookupError(dependency.name, last_error)


class MavenRepositoryCatalog(HttpCatalog):
    """Lists versions from ``maven-metadata.xml`` in a Maven repository.

    A requirement whose ``source["url"]`` names a repository is looked up
    there; otherwise the default repository is used.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        repository_url: str | None = None,
        timeout: float = 30.0,
    ) -> None:
        super().__init__(client, timeout=timeout)
        self._repository_url = (
            repository_url
            or os.environ.get("VERSIONSENTINEL_MAVEN_REPOSITORY_URL")
            or DEFAULT_MAVEN_REPOSITORY
        ).rstrip("/")

    def metadata_url(self, dependency: Dependency) -> str:
        group_id, _, artifact_id = dependency.name.partition(":")
        if not artifact_id:
            group_id, artifact_id = "", group_id
        repository = self._repository_url
        for req in dependency.requirements:
            if req.source and req.source.get("url"):
                repository = req.source["url"].rstrip("/")
                break
        path = "/".join(filter(None, [group_id.replace(".", "/"), artifact_id]))
        return f"{repository}/{path}/maven-metadata.xml"

    async def versions_for(self, dependency: Dependency) -> list[VersionCandidate]:
        url = self.metadata_url(dependency)
        resp = await self._get(dependency, url)
        if resp is None:
            return []
        try:
            root = ET.fromstring(resp.text)
        except ET.ParseError as exc:
            raise CatalogLookupError(dependency.name, f"malformed metadata: {exc}") from exc
        return [
            VersionCandidate(version=el.text.strip(), listing_url=url)
            for el in root.iterfind("./versioning/versions/version")
            if el.text and el.text.strip()
        ]


class NuGetCatalog(HttpCatalog):
    """Lists versions from the NuGet v3 flat container."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        base_url: str = NUGET_FLAT_CONTAINER,
        timeout: float = 30.0,
    ) -> None:
        super().__init__(client, timeout=timeout)
        self._base_url = base_url.rstrip("/")

    async def versions_for(self, dependency: Dependency) -> list[VersionCandidate]:
        url = f"{self._base_url}/{dependency.name.lower()}/index.json"
        resp = await self._get(dependency, url)
        if resp is None:
            return []
        try:
            versions = resp.json().get("versions", [])
            return [VersionCandidate(version=str(v), listing_url=url) for v in versions]
        except (ValueError, TypeError, AttributeError) as exc:
            raise CatalogLookupError(dependency.name, f"malformed index: {exc!r}") from exc


class CratesCatalog(HttpCatalog):
    """Lists versions from the crates.io API (yanked versions excluded)."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        base_url: str = CRATES_API,
        timeout: float = 30.0,
    ) -> None:
        super().__init__(client, timeout=timeout)
        self._base_url = base_url.rstrip("/")

    async def versions_for(self, dependency: Dependency) -> list[VersionCandidate]:
        url = f"{self._base_url}/{dependency.name}"
        resp = await self._get(dependency, url)
        if resp is None:
            return []
        try:
            data = resp.json()
            repository = (data.get("crate") or {}).get("repository")
            return [
                VersionCandidate(version=v["num"], source_url=repository, listing_url=url)
                for v in data.get("versions", [])
                if not v.get("yanked")
            ]
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise CatalogLookupError(dependency.name, f"malformed response: {exc!r}") from exc
