"""Coordinated update planner — all-or-nothing updates of a shared version property."""

from __future__ import annotations

import structlog

from versionsentinel.engines.update_checker.errors import (
    DeclarationNotFoundError,
    InconsistentPropertyIndexError,
    NoPropertyNameError,
    UnresolvableNestingError,
)
from versionsentinel.engines.update_checker.locator import DeclarationLocator
from versionsentinel.engines.update_checker.models import (
    Dependency,
    Direct,
    Planned,
    PlannerState,
    PlanResult,
    Rejected,
    RejectionReason,
    UpdatePlan,
    VersionCandidate,
)
from versionsentinel.engines.update_checker.placeholders import PlaceholderSyntax
from versionsentinel.engines.update_checker.property_index import PropertyIndex
from versionsentinel.engines.update_checker.rewriter import RequirementRewriter
from versionsentinel.engines.update_checker.validator import GroupValidator

log = structlog.get_logger("versionsentinel.engine")


def property_name_of(dependency: Dependency) -> str:
    """The property the dependency's version comes from (first one declared)."""
    names = dependency.property_names()
    if not names:
        raise NoPropertyNameError(dependency.name)
    return names[0]


class CoordinatedUpdatePlanner:
    """Plan an update of every dependency that shares a version property.

    Runs ``Start -> PropertyDetected -> GroupAssembled -> Validated ->
    Planned``; any failure after the group is assembled ends in
    ``Rejected`` and no plan is returned for any member.  A dependency
    without a property reference ends in ``Direct``.
    """

    def __init__(
        self,
        index: PropertyIndex,
        validator: GroupValidator,
        locator: DeclarationLocator,
        rewriter: RequirementRewriter,
        syntax: PlaceholderSyntax,
    ) -> None:
        self._index = index
        self._validator = validator
        self._locator = locator
        self._rewriter = rewriter
        self._syntax = syntax

    async def plan(
        self,
        dependency: Dependency,
        candidate: VersionCandidate | str,
    ) -> PlanResult:
        candidate = VersionCandidate.coerce(candidate)
        state = PlannerState.START

        if not dependency.property_names():
            log.debug("planner.direct", dependency=dependency.name)
            return Direct(dependency)
        state = PlannerState.PROPERTY_DETECTED
        property_name = property_name_of(dependency)

        group = self._index.group(property_name, dependency.package_manager)
        if not self._index.contains(property_name, dependency):
            raise InconsistentPropertyIndexError(dependency.name, property_name)
        state = PlannerState.GROUP_ASSEMBLED

        verdict = await self._validator.evaluate(group, candidate)
        if not verdict.acceptable:
            if verdict.unavailable:
                rejection = Rejected(
                    RejectionReason.CANDIDATE_UNAVAILABLE,
                    verdict.unavailable,
                    f"{candidate.version} unavailable for at least one grouped dependency",
                )
            else:
                rejection = Rejected(
                    RejectionReason.CATALOG_LOOKUP_FAILURE,
                    verdict.failed,
                    f"version lookup failed for {', '.join(verdict.failed)}",
                )
            return self._reject(dependency, property_name, state, rejection)
        state = PlannerState.VALIDATED

        try:
            plans = tuple(
                self.build_plan(member, property_name, candidate) for member in group
            )
        except DeclarationNotFoundError as exc:
            rejection = Rejected(
                RejectionReason.DECLARATION_NOT_FOUND, (exc.dependency_name,), str(exc)
            )
            return self._reject(dependency, property_name, state, rejection)
        except UnresolvableNestingError as exc:
            rejection = Rejected(
                RejectionReason.UNRESOLVABLE_NESTING,
                tuple(m.name for m in group),
                str(exc),
            )
            return self._reject(dependency, property_name, state, rejection)

        log.info(
            "planner.planned",
            dependency=dependency.name,
            property=property_name,
            candidate=candidate.version,
            group=[m.name for m in group],
        )
        return Planned(plans)

    def build_plan(
        self,
        dependency: Dependency,
        property_name: str,
        candidate: VersionCandidate,
    ) -> UpdatePlan:
        """Plan one member of the group.  Raises on a missing or unresolvable declaration."""
        requirement = dependency.declaring_requirement(property_name)
        if requirement is None:
            raise NoPropertyNameError(dependency.name)

        declaration = self._locator.locate(dependency, requirement)
        new_version = declaration.version_string.replace(
            self._syntax.placeholder(property_name), candidate.version
        )
        return UpdatePlan(
            name=dependency.name,
            package_manager=dependency.package_manager,
            version=new_version,
            requirements=self._rewriter.rewrite(
                dependency.requirements,
                new_version,
                {property_name},
                source_url=candidate.source_url,
            ),
            previous_version=dependency.version,
            previous_requirements=dependency.requirements,
            declaration=declaration.raw_version,
            property_updates={property_name: candidate.version},
        )

    @staticmethod
    def _reject(
        dependency: Dependency,
        property_name: str,
        state: PlannerState,
        rejection: Rejected,
    ) -> Rejected:
        log.info(
            "planner.rejected",
            dependency=dependency.name,
            property=property_name,
            at_state=state.value,
            reason=rejection.reason.value,
            offending=list(rejection.dependency_names),
        )
        return rejection
