"""Apply update plans to manifest text.

Property values are rewritten at their single definition; literal
requirements are rewritten on their own declaration.  Lockfiles are not
touched.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping

import structlog

from versionsentinel.engines.update_checker.ecosystems import ECOSYSTEM_REGISTRY
from versionsentinel.engines.update_checker.errors import ManifestUpdateError
from versionsentinel.engines.update_checker.models import Requirement, UpdatePlan

log = structlog.get_logger("versionsentinel.engine")


def _property_definition_re(name: str) -> re.Pattern[str]:
    # <Name>, or <Name Condition="..."> with attributes; never a self-closing tag
    return re.compile(
        rf"(<{re.escape(name)}(?:\s[^>]*)?(?<!/)>)\s*([^<]*?)\s*(</{re.escape(name)}>)"
    )


def _declaration_re(plan: UpdatePlan) -> re.Pattern[str]:
    name = re.escape(plan.name)
    if plan.package_manager == "maven":
        artifact = re.escape(plan.name.split(":")[-1])
        return re.compile(
            rf"<(dependency|plugin)>(?:(?!</\1>).)*?<artifactId>\s*{artifact}\s*</artifactId>"
            rf"(?:(?!</\1>).)*?</\1>",
            re.DOTALL,
        )
    if plan.package_manager == "nuget":
        return re.compile(
            rf"<Package(?:Reference|Version)\b[^>]*\b(?:Include|Update)\s*=\s*\"{name}\"[^>]*>",
            re.IGNORECASE,
        )
    return re.compile(rf"(?:^|[\"'])({name})[\"']?\s*=.*$", re.IGNORECASE | re.MULTILINE)


def belongs_to(package_manager: str, file: str) -> bool:
    """True if *file* is a manifest of *package_manager*.  Unknown managers own every file."""
    ecosystem = ECOSYSTEM_REGISTRY.get(package_manager)
    return ecosystem is None or ecosystem.owns(file)


def _find(requirements: Iterable[Requirement], file: str) -> Requirement | None:
    return next((r for r in requirements if r.file == file), None)


def defines_property(content: str, name: str) -> bool:
    return _property_definition_re(name).search(content) is not None


def update_property_definitions(content: str, property_updates: Mapping[str, str]) -> str:
    """Set each property's defining value.  Raises if a property is not defined."""
    updated = content
    for name, value in property_updates.items():
        updated, count = _property_definition_re(name).subn(
            lambda m, value=value: f"{m.group(1)}{value}{m.group(3)}", updated
        )
        if count == 0:
            raise ManifestUpdateError(f"property '{name}' is not defined")
    return updated


def update_literal_requirements(content: str, plans: Iterable[UpdatePlan], file: str) -> str:
    """Rewrite changed literal requirements declared in *file*."""
    updated = content
    for plan in plans:
        new_req = _find(plan.requirements, file)
        old_req = _find(plan.previous_requirements, file)
        if new_req is None or old_req is None:
            continue
        if new_req.requirement == old_req.requirement or not old_req.requirement:
            continue

        old_text, new_text = old_req.requirement, new_req.requirement or ""
        replaced = _declaration_re(plan).sub(
            lambda m: m.group(0).replace(old_text, new_text), updated
        )
        if replaced == updated:
            raise ManifestUpdateError(
                f"expected declaration of '{plan.name}' in {file} to change"
            )
        updated = replaced
    return updated


def apply_plans(manifests: Mapping[str, str], plans: Iterable[UpdatePlan]) -> dict[str, str]:
    """Apply *plans* to *manifests*; return only the files whose content changed.

    A property is rewritten only in manifests of the package manager whose
    plan carries it, so a Maven and an MSBuild property of the same name
    stay independent.
    """
    plans = list(plans)
    property_updates: dict[tuple[str, str], str] = {}
    for plan in plans:
        for name, value in plan.property_updates.items():
            property_updates[(plan.package_manager, name)] = value

    pending = set(property_updates)
    changed: dict[str, str] = {}
    for file, content in manifests.items():
        updated = update_literal_requirements(content, plans, file)

        local = {
            key: value
            for key, value in property_updates.items()
            if belongs_to(key[0], file) and defines_property(updated, key[1])
        }
        if local:
            updated = update_property_definitions(
                updated, {name: value for (_, name), value in local.items()}
            )
            pending.difference_update(local)

        if updated != content:
            changed[file] = updated
            log.info("manifest.updated", file=file, properties=sorted(n for _, n in local))

    if pending:
        names = sorted({name for _, name in pending})
        raise ManifestUpdateError(
            f"no manifest defines propert{'y' if len(names) == 1 else 'ies'} "
            f"{', '.join(names)}"
        )
    return changed
