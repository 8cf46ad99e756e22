"""UpdateChecker — answer "can dependency D be updated to version V?" for a snapshot."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

import structlog

from versionsentinel.engines.update_checker.catalog import VersionCatalog
from versionsentinel.engines.update_checker.ecosystems import (
    Ecosystem,
    UpdateStrategy,
    get_ecosystem,
)
from versionsentinel.engines.update_checker.guard import blocks_resolution
from versionsentinel.engines.update_checker.locator import DeclarationLocator
from versionsentinel.engines.update_checker.models import (
    Dependency,
    Direct,
    Planned,
    PlannerState,
    Rejected,
    RejectionReason,
    UpdatePlan,
    VersionCandidate,
)
from versionsentinel.engines.update_checker.planner import CoordinatedUpdatePlanner
from versionsentinel.engines.update_checker.property_index import PropertyIndex
from versionsentinel.engines.update_checker.validator import GroupValidator

log = structlog.get_logger("versionsentinel.engine")


@dataclass(frozen=True)
class CheckResult:
    """Outcome of one update check."""

    dependency: Dependency
    candidate: VersionCandidate
    state: PlannerState
    strategy: UpdateStrategy | None = None
    updated_dependencies: tuple[UpdatePlan, ...] = ()
    rejection: Rejected | None = None
    blocked: bool = False

    @property
    def can_update(self) -> bool:
        return bool(self.updated_dependencies)


class UpdateChecker:
    """Update checks against one immutable manifest snapshot.

    The property index is built once here and shared by every check.
    *strategies* overrides an ecosystem's default :class:`UpdateStrategy`
    per package manager.
    """

    def __init__(
        self,
        dependencies: Iterable[Dependency],
        manifests: Mapping[str, str],
        catalog: VersionCatalog,
        *,
        strategies: Mapping[str, UpdateStrategy] | None = None,
        validator: GroupValidator | None = None,
    ) -> None:
        self._dependencies = tuple(dependencies)
        self._manifests = dict(manifests)
        self._strategies = dict(strategies or {})
        self._validator = validator or GroupValidator(catalog)
        self._locators: dict[str, DeclarationLocator] = {}
        self.index = PropertyIndex.build(self._dependencies)

    @property
    def dependencies(self) -> tuple[Dependency, ...]:
        return self._dependencies

    def find(self, name: str) -> Dependency | None:
        return next((d for d in self._dependencies if d.name == name), None)

    def strategy_for(self, ecosystem: Ecosystem) -> UpdateStrategy:
        strategy = self._strategies.get(ecosystem.package_manager, ecosystem.strategy)
        if strategy is UpdateStrategy.COORDINATED and not ecosystem.supports_coordination:
            log.warning(
                "checker.coordination_unsupported",
                package_manager=ecosystem.package_manager,
            )
            return UpdateStrategy.VETO
        return strategy

    async def check(
        self,
        dependency: Dependency,
        candidate: VersionCandidate | str,
    ) -> CheckResult:
        candidate = VersionCandidate.coerce(candidate)
        ecosystem = get_ecosystem(dependency.package_manager)

        if not dependency.property_names():
            return await self._check_single(dependency, candidate, ecosystem, PlannerState.DIRECT)

        strategy = self.strategy_for(ecosystem)
        if strategy is UpdateStrategy.VETO:
            if blocks_resolution(dependency, self._dependencies):
                log.info(
                    "checker.blocked",
                    dependency=dependency.name,
                    properties=dependency.property_names(),
                )
                return CheckResult(
                    dependency=dependency,
                    candidate=candidate,
                    state=PlannerState.REJECTED,
                    strategy=strategy,
                    blocked=True,
                )
            return await self._check_single(dependency, candidate, ecosystem, PlannerState.PLANNED)

        planner = CoordinatedUpdatePlanner(
            index=self.index,
            validator=self._validator,
            locator=self._locator(ecosystem),
            rewriter=ecosystem.rewriter,
            syntax=ecosystem.syntax,  # type: ignore[arg-type]
        )
        result = await planner.plan(dependency, candidate)
        if isinstance(result, Planned):
            return CheckResult(
                dependency=dependency,
                candidate=candidate,
                state=result.state,
                strategy=strategy,
                updated_dependencies=result.plans,
            )
        if isinstance(result, Direct):
            return await self._check_single(dependency, candidate, ecosystem, PlannerState.DIRECT)
        return CheckResult(
            dependency=dependency,
            candidate=candidate,
            state=result.state,
            strategy=strategy,
            rejection=result,
        )

    def latest_resolvable_version(
        self,
        dependency: Dependency,
        candidate: VersionCandidate | str,
    ) -> str | None:
        """The candidate's version, unless the dependency shares its version property."""
        if blocks_resolution(dependency, self._dependencies):
            return None
        return VersionCandidate.coerce(candidate).version

    # ── internal ─────────────────────────────────────────────────────────

    async def _check_single(
        self,
        dependency: Dependency,
        candidate: VersionCandidate,
        ecosystem: Ecosystem,
        state: PlannerState,
    ) -> CheckResult:
        """Update one dependency on its own; its properties are not shared."""
        strategy = None if state is PlannerState.DIRECT else UpdateStrategy.VETO
        verdict = await self._validator.evaluate([dependency], candidate)
        if not verdict.acceptable:
            reason = (
                RejectionReason.CANDIDATE_UNAVAILABLE
                if verdict.unavailable
                else RejectionReason.CATALOG_LOOKUP_FAILURE
            )
            return CheckResult(
                dependency=dependency,
                candidate=candidate,
                state=PlannerState.REJECTED,
                strategy=strategy,
                rejection=Rejected(reason, (dependency.name,), f"{candidate.version} rejected"),
            )

        properties = dependency.property_names()
        plan = UpdatePlan(
            name=dependency.name,
            package_manager=dependency.package_manager,
            version=candidate.version,
            requirements=ecosystem.rewriter.rewrite(
                dependency.requirements,
                candidate.version,
                properties,
                source_url=candidate.source_url,
            ),
            previous_version=dependency.version,
            previous_requirements=dependency.requirements,
            property_updates={name: candidate.version for name in properties},
        )
        return CheckResult(
            dependency=dependency,
            candidate=candidate,
            state=state,
            strategy=strategy,
            updated_dependencies=(plan,),
        )

    def _locator(self, ecosystem: Ecosystem) -> DeclarationLocator:
        locator = self._locators.get(ecosystem.package_manager)
        if locator is None:
            manifests = {f: c for f, c in self._manifests.items() if ecosystem.owns(f)}
            locator = ecosystem.locator_factory(manifests)  # type: ignore[misc]
            self._locators[ecosystem.package_manager] = locator
        return locator
