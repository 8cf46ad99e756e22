"""Group validator — is a candidate version acceptable to a whole property group?"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Sequence
from dataclasses import dataclass

import structlog

from versionsentinel.engines.update_checker.catalog import VersionCatalog
from versionsentinel.engines.update_checker.errors import (
    CatalogLookupError,
    UnsupportedEcosystemError,
)
from versionsentinel.engines.update_checker.models import Dependency, VersionCandidate

log = structlog.get_logger("versionsentinel.engine")

_DEFAULT_TIMEOUT = 30.0  # seconds per lookup
_DEFAULT_CONCURRENCY = 8


def _env_float(key: str, default: float) -> float:
    return float(os.environ.get(key, default))


def _env_flag(key: str) -> bool:
    return os.environ.get(key, "0").strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class GroupVerdict:
    """Outcome of validating one candidate against one group."""

    candidate: str
    acceptable: bool
    unavailable: tuple[str, ...] = ()
    no_information: tuple[str, ...] = ()
    failed: tuple[str, ...] = ()


class GroupValidator:
    """Checks a candidate against every grouped dependency's own catalog.

    A member accepts the candidate if its catalog lists it, or if its
    catalog lists nothing at all.  One member whose catalog lists other
    versions but not the candidate vetoes the group.  A failed lookup
    counts as "no information" unless *strict_catalog* is set, in which
    case it vetoes too.
    """

    def __init__(
        self,
        catalog: VersionCatalog,
        *,
        timeout: float | None = None,
        concurrency: int | None = None,
        strict_catalog: bool | None = None,
    ) -> None:
        self._catalog = catalog
        self._timeout = (
            timeout
            if timeout is not None
            else _env_float("VERSIONSENTINEL_CATALOG_TIMEOUT", _DEFAULT_TIMEOUT)
        )
        self._concurrency = (
            concurrency
            if concurrency is not None
            else int(_env_float("VERSIONSENTINEL_CATALOG_CONCURRENCY", _DEFAULT_CONCURRENCY))
        )
        self.strict_catalog = (
            strict_catalog
            if strict_catalog is not None
            else _env_flag("VERSIONSENTINEL_STRICT_CATALOG")
        )

    async def is_candidate_acceptable(
        self,
        group: Sequence[Dependency],
        candidate: VersionCandidate | str,
    ) -> bool:
        verdict = await self.evaluate(group, candidate)
        return verdict.acceptable

    async def evaluate(
        self,
        group: Sequence[Dependency],
        candidate: VersionCandidate | str,
    ) -> GroupVerdict:
        version = VersionCandidate.coerce(candidate).version
        sem = asyncio.Semaphore(max(self._concurrency, 1))
        listings = await asyncio.gather(*(self._lookup(dep, sem) for dep in group))

        unavailable: list[str] = []
        no_information: list[str] = []
        failed: list[str] = []
        for dep, versions in zip(group, listings, strict=True):
            if versions is None:
                failed.append(dep.name)
            elif not versions:
                no_information.append(dep.name)
            elif version not in versions:
                unavailable.append(dep.name)

        acceptable = not unavailable and not (self.strict_catalog and failed)
        verdict = GroupVerdict(
            candidate=version,
            acceptable=acceptable,
            unavailable=tuple(unavailable),
            no_information=tuple(no_information),
            failed=tuple(failed),
        )
        log.debug(
            "validator.verdict",
            candidate=version,
            group=[dep.name for dep in group],
            acceptable=acceptable,
            unavailable=verdict.unavailable,
            no_information=verdict.no_information,
            failed=verdict.failed,
        )
        return verdict

    async def _lookup(self, dep: Dependency, sem: asyncio.Semaphore) -> set[str] | None:
        """Versions listed for *dep*; ``None`` when the lookup failed or timed out."""
        async with sem:
            try:
                entries = await asyncio.wait_for(
                    self._catalog.versions_for(dep), timeout=self._timeout
                )
            except asyncio.TimeoutError:
                log.warning("validator.lookup_timeout", dependency=dep.name, timeout=self._timeout)
                return None
            except CatalogLookupError as exc:
                log.warning("validator.lookup_failed", dependency=dep.name, error=exc.reason)
                return None
            except UnsupportedEcosystemError as exc:
                log.warning("validator.no_catalog", dependency=dep.name, error=str(exc))
                return None
        return {entry.version for entry in entries}
