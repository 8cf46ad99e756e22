"""Data models for the update checker engine.

All values are immutable: an update produces new :class:`Dependency`
values, it never mutates the parsed ones.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType


def _freeze(mapping: Mapping[str, str] | None) -> Mapping[str, str]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class Requirement:
    """One declaration of a dependency in one manifest file.

    ``requirement`` is the raw version text as written (it may be a
    placeholder such as ``${shared.version}``).  ``metadata["property_name"]``
    is present iff the version is indirected through a named property.
    """

    file: str
    requirement: str | None
    groups: tuple[str, ...] = ()
    source: Mapping[str, str] | None = None
    metadata: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "groups", tuple(self.groups))
        object.__setattr__(self, "metadata", _freeze(self.metadata))
        if self.source is not None:
            object.__setattr__(self, "source", _freeze(self.source))

    @property
    def property_name(self) -> str | None:
        return self.metadata.get("property_name")

    def with_requirement(self, requirement: str | None, **source: str) -> Requirement:
        new_source = dict(self.source or {})
        new_source.update(source)
        return Requirement(
            file=self.file,
            requirement=requirement,
            groups=self.groups,
            source=new_source or None,
            metadata=self.metadata,
        )


@dataclass(frozen=True)
class Dependency:
    """A dependency parsed from a project's manifests."""

    name: str
    package_manager: str
    version: str | None = None
    requirements: tuple[Requirement, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "requirements", tuple(self.requirements))

    @property
    def key(self) -> tuple[str, str]:
        return (self.name, self.package_manager)

    def property_names(self) -> list[str]:
        """Property names referenced by this dependency, in declaration order."""
        names: list[str] = []
        for req in self.requirements:
            if req.property_name and req.property_name not in names:
                names.append(req.property_name)
        return names

    def declaring_requirement(self, property_name: str) -> Requirement | None:
        for req in self.requirements:
            if req.property_name == property_name:
                return req
        return None


@dataclass(frozen=True)
class VersionCandidate:
    """A version under evaluation, plus where it was listed."""

    version: str
    source_url: str | None = None
    listing_url: str | None = None

    @classmethod
    def coerce(cls, value: VersionCandidate | str) -> VersionCandidate:
        if isinstance(value, VersionCandidate):
            return value
        return cls(version=str(value))


@dataclass(frozen=True)
class UpdatePlan:
    """The edit for one dependency.  Plans for a property group come as a set."""

    name: str
    package_manager: str
    version: str
    requirements: tuple[Requirement, ...]
    previous_version: str | None
    previous_requirements: tuple[Requirement, ...]
    declaration: str | None = None
    property_updates: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "requirements", tuple(self.requirements))
        object.__setattr__(self, "previous_requirements", tuple(self.previous_requirements))
        object.__setattr__(self, "property_updates", _freeze(self.property_updates))

    def to_dependency(self) -> Dependency:
        return Dependency(
            name=self.name,
            package_manager=self.package_manager,
            version=self.version,
            requirements=self.requirements,
        )


class PlannerState(str, Enum):
    START = "start"
    PROPERTY_DETECTED = "property_detected"
    DIRECT = "direct"
    GROUP_ASSEMBLED = "group_assembled"
    VALIDATED = "validated"
    PLANNED = "planned"
    REJECTED = "rejected"


class RejectionReason(str, Enum):
    CANDIDATE_UNAVAILABLE = "candidate_unavailable"
    DECLARATION_NOT_FOUND = "declaration_not_found"
    CATALOG_LOOKUP_FAILURE = "catalog_lookup_failure"
    UNRESOLVABLE_NESTING = "unresolvable_nesting"


@dataclass(frozen=True)
class Planned:
    """Terminal success: one plan per member of the property group."""

    plans: tuple[UpdatePlan, ...]

    state = PlannerState.PLANNED


@dataclass(frozen=True)
class Rejected:
    """Terminal failure.  No plan is produced for any member of the group."""

    reason: RejectionReason
    dependency_names: tuple[str, ...] = ()
    detail: str = ""

    state = PlannerState.REJECTED


@dataclass(frozen=True)
class Direct:
    """The dependency is not property-indirected; a plain literal update applies."""

    dependency: Dependency

    state = PlannerState.DIRECT


PlanResult = Planned | Rejected | Direct
