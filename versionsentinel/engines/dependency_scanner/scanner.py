"""Scan a local checkout into an immutable dependency snapshot."""

from __future__ import annotations

from pathlib import Path

import structlog

# Ensure parsers are registered before any scan runs.
import versionsentinel.engines.dependency_scanner.parsers  # noqa: F401
from versionsentinel.engines.dependency_scanner.registry import discover_manifests
from versionsentinel.engines.update_checker.models import Dependency

log = structlog.get_logger("versionsentinel.engine")


def load_manifests(repo_path: Path) -> dict[str, str]:
    """Read every recognised manifest, keyed by path relative to the repo root."""
    manifests: dict[str, str] = {}
    for _, file_path in discover_manifests(repo_path):
        rel = file_path.relative_to(repo_path).as_posix()
        manifests[rel] = file_path.read_text(encoding="utf-8", errors="replace")
    return manifests


def scan(repo_path: Path) -> list[Dependency]:
    """Scan a local repo directory for dependencies.

    Declarations of the same ``(name, package_manager)`` in several files
    are merged into one :class:`Dependency` carrying all requirements, in
    discovery order.
    """
    merged: dict[tuple[str, str], Dependency] = {}
    for parser, file_path in discover_manifests(repo_path):
        rel = file_path.relative_to(repo_path).as_posix()
        content = file_path.read_text(encoding="utf-8", errors="replace")
        parsed = parser.parse(rel, content)
        log.debug("scanner.parsed", file=rel, parser=parser.package_manager, count=len(parsed))
        for dep in parsed:
            prev = merged.get(dep.key)
            if prev is None:
                merged[dep.key] = dep
                continue
            merged[dep.key] = Dependency(
                name=prev.name,
                package_manager=prev.package_manager,
                version=prev.version or dep.version,
                requirements=prev.requirements + dep.requirements,
            )
    return list(merged.values())
