"""Single-dependency guard — veto updates that would desynchronise a shared property."""

from __future__ import annotations

from collections.abc import Iterable

from versionsentinel.engines.update_checker.models import Dependency


def blocks_resolution(dependency: Dependency, all_dependencies: Iterable[Dependency]) -> bool:
    """True if *dependency*'s version property is also used by another dependency.

    Updating only *dependency* would then rewrite a value that other
    declarations read too, so it must not be reported as independently
    resolvable.  Only dependencies of the same package manager can share a
    property.  A dependency without property references is never blocked.
    """
    property_names = set(dependency.property_names())
    if not property_names:
        return False

    for other in all_dependencies:
        if other.name == dependency.name or other.package_manager != dependency.package_manager:
            continue
        if property_names.intersection(other.property_names()):
            return True
    return False
