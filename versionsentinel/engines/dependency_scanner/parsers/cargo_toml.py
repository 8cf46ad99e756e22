"""Parser for Rust Cargo.toml files."""

from __future__ import annotations

import sys

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

import structlog

from versionsentinel.engines.dependency_scanner.registry import register_parser
from versionsentinel.engines.update_checker.models import Dependency, Requirement

log = structlog.get_logger("versionsentinel.engine")

_DEP_SECTIONS = ("dependencies", "dev-dependencies", "build-dependencies")


def _parse_version(spec: str | dict) -> str | None:
    """Extract version constraint from a dependency spec."""
    if isinstance(spec, str):
        return spec
    if isinstance(spec, dict):
        return spec.get("version")
    return None


class CargoTomlParser:
    package_manager = "cargo"
    file_patterns = ["**/Cargo.toml"]

    def parse(self, file_name: str, content: str) -> list[Dependency]:
        try:
            data = tomllib.loads(content)
        except tomllib.TOMLDecodeError:
            log.warning("parser.malformed_manifest", file=file_name, parser=self.package_manager)
            return []

        deps: list[Dependency] = []

        for section in _DEP_SECTIONS:
            dep_table = data.get(section, {})
            for name, spec in dep_table.items():
                version = _parse_version(spec)

                # Git source if specified in table form
                source: dict[str, str] | None = None
                if isinstance(spec, dict) and spec.get("git"):
                    source = {"type": "git", "url": spec["git"]}

                deps.append(
                    Dependency(
                        name=name,
                        package_manager=self.package_manager,
                        version=version.lstrip("=") if version and version.startswith("=") else None,
                        requirements=(
                            Requirement(
                                file=file_name,
                                requirement=version,
                                groups=(section,),
                                source=source,
                            ),
                        ),
                    )
                )

        return deps


register_parser(CargoTomlParser())
