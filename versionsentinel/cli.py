"""CLI entry point: versionsentinel-check.

Usage:
    versionsentinel-check /path/to/repo com.example:lib-a 1.2.0
    versionsentinel-check . Newtonsoft.Json 13.0.3 --strategy coordinated
    versionsentinel-check . com.example:lib-a 1.2.0 --json
    versionsentinel-check . com.example:lib-a 1.2.0 --write     # apply to manifests

Exit status: 0 when the update is possible, 1 when it is not, 2 on errors.
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

import click
import structlog

from versionsentinel.core.logging import setup_logging
from versionsentinel.engines.dependency_scanner import load_manifests, scan
from versionsentinel.engines.update_checker.catalog import (
    CompositeCatalog,
    CratesCatalog,
    MavenRepositoryCatalog,
    NuGetCatalog,
)
from versionsentinel.engines.update_checker.checker import CheckResult, UpdateChecker
from versionsentinel.engines.update_checker.ecosystems import UpdateStrategy
from versionsentinel.engines.update_checker.errors import UpdateCheckerError
from versionsentinel.engines.update_checker.manifest_updater import apply_plans
from versionsentinel.engines.update_checker.models import Requirement, UpdatePlan
from versionsentinel.engines.update_checker.validator import GroupValidator

log = structlog.get_logger("versionsentinel.cli")


def _requirement_dict(req: Requirement) -> dict:
    return {
        "file": req.file,
        "requirement": req.requirement,
        "groups": list(req.groups),
        "source": dict(req.source) if req.source else None,
        "metadata": dict(req.metadata),
    }


def _plan_dict(plan: UpdatePlan) -> dict:
    # asdict() cannot copy the read-only mappings on these dataclasses
    return {
        "name": plan.name,
        "package_manager": plan.package_manager,
        "version": plan.version,
        "previous_version": plan.previous_version,
        "requirements": [_requirement_dict(r) for r in plan.requirements],
        "previous_requirements": [_requirement_dict(r) for r in plan.previous_requirements],
        "declaration": plan.declaration,
        "property_updates": dict(plan.property_updates),
    }


def _result_dict(result: CheckResult) -> dict:
    row = {
        "dependency": result.dependency.name,
        "candidate": result.candidate.version,
        "state": result.state.value,
        "strategy": result.strategy.value if result.strategy else None,
        "blocked": result.blocked,
        "rejection": None,
        "updated_dependencies": [_plan_dict(p) for p in result.updated_dependencies],
    }
    if result.rejection is not None:
        row["rejection"] = {
            "reason": result.rejection.reason.value,
            "dependencies": list(result.rejection.dependency_names),
            "detail": result.rejection.detail,
        }
    return row


def _echo_result(result: CheckResult) -> None:
    click.echo(f"{result.dependency.name} -> {result.candidate.version}: {result.state.value}")
    if result.blocked:
        click.echo("  version property is shared with other dependencies; not updated on its own")
    if result.rejection is not None:
        names = ", ".join(result.rejection.dependency_names)
        click.echo(f"  rejected ({result.rejection.reason.value}): {names}")
    for plan in result.updated_dependencies:
        click.echo(f"  {plan.name} {plan.previous_version or '?'} -> {plan.version}")
        for prop, value in sorted(plan.property_updates.items()):
            click.echo(f"    property {prop} = {value}")


async def _run_check(
    repo: Path,
    dependency_name: str,
    version: str,
    strategy: str | None,
    strict_catalog: bool,
) -> tuple[CheckResult | None, dict[str, str]]:
    dependencies = scan(repo)
    manifests = load_manifests(repo)

    dependency = next((d for d in dependencies if d.name == dependency_name), None)
    if dependency is None:
        return None, manifests

    strategies = {}
    if strategy:
        strategies[dependency.package_manager] = UpdateStrategy(strategy)

    async with (
        MavenRepositoryCatalog() as maven,
        NuGetCatalog() as nuget,
        CratesCatalog() as crates,
    ):
        catalog = CompositeCatalog({"maven": maven, "nuget": nuget, "cargo": crates})
        checker = UpdateChecker(
            dependencies,
            manifests,
            catalog,
            strategies=strategies,
            validator=GroupValidator(catalog, strict_catalog=strict_catalog or None),
        )
        result = await checker.check(dependency, version)
    return result, manifests


@click.command()
@click.argument("repo", type=click.Path(exists=True, file_okay=False))
@click.argument("dependency")
@click.argument("version")
@click.option(
    "--strategy",
    type=click.Choice([s.value for s in UpdateStrategy]),
    default=None,
    help="Override how a shared version property is handled",
)
@click.option(
    "--strict-catalog",
    is_flag=True,
    help="Reject when a version lookup fails instead of treating it as no information",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("--write", is_flag=True, help="Apply the update to the manifests")
@click.option("--log-level", default=None, help="Override VERSIONSENTINEL_LOG_LEVEL")
def main(
    repo: str,
    dependency: str,
    version: str,
    strategy: str | None,
    strict_catalog: bool,
    as_json: bool,
    write: bool,
    log_level: str | None,
) -> None:
    """Check whether DEPENDENCY in REPO can be updated to VERSION."""
    setup_logging(log_level)
    repo_path = Path(repo).resolve()

    try:
        result, manifests = asyncio.run(
            _run_check(repo_path, dependency, version, strategy, strict_catalog)
        )
    except UpdateCheckerError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    if result is None:
        click.echo(f"Error: {dependency} is not declared in {repo_path}", err=True)
        sys.exit(2)

    if as_json:
        click.echo(json.dumps(_result_dict(result), indent=2))
    else:
        _echo_result(result)

    if write and result.can_update:
        try:
            changed = apply_plans(manifests, result.updated_dependencies)
        except UpdateCheckerError as exc:
            click.echo(f"Error: {exc}", err=True)
            sys.exit(2)
        for rel, content in changed.items():
            (repo_path / rel).write_text(content, encoding="utf-8")
            log.info("cli.wrote_manifest", file=rel)

    sys.exit(0 if result.can_update else 1)


if __name__ == "__main__":
    main()
