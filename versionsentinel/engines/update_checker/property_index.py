"""Property index — which dependencies share each named version property."""

from __future__ import annotations

from collections.abc import Iterable

from versionsentinel.engines.update_checker.models import Dependency


class PropertyIndex:
    """Mapping from property name to the dependencies indirected through it.

    Built once per manifest snapshot and passed by reference to the
    validator, planner and guard.  Group order is parse order.

    Properties are scoped to a package manager: a Maven ``${Version}`` and
    an MSBuild ``$(Version)`` in the same checkout are unrelated, so each
    group is keyed by ``(package_manager, property_name)``.
    """

    def __init__(self, groups: dict[tuple[str, str], tuple[Dependency, ...]]) -> None:
        self._groups = groups

    @classmethod
    def build(cls, dependencies: Iterable[Dependency]) -> PropertyIndex:
        groups: dict[tuple[str, str], list[Dependency]] = {}
        for dep in dependencies:
            for req in dep.requirements:
                prop = req.property_name
                if not prop:
                    continue
                members = groups.setdefault((dep.package_manager, prop), [])
                if not any(m.key == dep.key for m in members):
                    members.append(dep)
        return cls({key: tuple(members) for key, members in groups.items()})

    def package_managers(self, property_name: str) -> list[str]:
        return [pm for pm, name in self._groups if name == property_name]

    def group(
        self, property_name: str, package_manager: str | None = None
    ) -> tuple[Dependency, ...]:
        """Dependencies sharing *property_name* within one package manager.

        *package_manager* may be omitted only while a single ecosystem
        uses the name; otherwise :class:`ValueError` is raised.
        """
        if package_manager is None:
            managers = self.package_managers(property_name)
            if not managers:
                return ()
            if len(managers) > 1:
                raise ValueError(
                    f"property '{property_name}' is used by several package managers: "
                    f"{', '.join(managers)}"
                )
            package_manager = managers[0]
        return self._groups.get((package_manager, property_name), ())

    def property_names(self, package_manager: str | None = None) -> list[str]:
        names: list[str] = []
        for pm, name in self._groups:
            if package_manager is not None and pm != package_manager:
                continue
            if name not in names:
                names.append(name)
        return names

    def contains(self, property_name: str, dependency: Dependency) -> bool:
        members = self.group(property_name, dependency.package_manager)
        return any(m.key == dependency.key for m in members)

    def as_mapping(self, package_manager: str | None = None) -> dict[str, list[Dependency]]:
        return {
            name: list(self.group(name, package_manager))
            for name in self.property_names(package_manager)
        }

    def __len__(self) -> int:
        return len(self._groups)


def index(
    dependencies: Iterable[Dependency], package_manager: str | None = None
) -> dict[str, list[Dependency]]:
    """Group *dependencies* by the property names their requirements reference.

    Pass *package_manager* when *dependencies* span several ecosystems.
    """
    return PropertyIndex.build(dependencies).as_mapping(package_manager)
