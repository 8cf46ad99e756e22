"""Parser for NuGet package references in MSBuild project files."""

from __future__ import annotations

import xml.etree.ElementTree as ET

import structlog

from versionsentinel.engines.dependency_scanner.registry import register_parser
from versionsentinel.engines.update_checker.errors import UnresolvableNestingError
from versionsentinel.engines.update_checker.models import Dependency, Requirement
from versionsentinel.engines.update_checker.placeholders import (
    MSBUILD_SYNTAX,
    defining_property,
    resolve_value,
)

log = structlog.get_logger("versionsentinel.engine")


def _local(tag: str) -> str:
    return tag.split("}")[-1] if "}" in tag else tag


class MsBuildProjectParser:
    package_manager = "nuget"
    file_patterns = [
        "**/*.csproj",
        "**/*.vbproj",
        "**/*.fsproj",
        "**/Directory.Build.props",
        "**/Directory.Packages.props",
    ]

    def parse(self, file_name: str, content: str) -> list[Dependency]:
        try:
            root = ET.fromstring(content)
        except ET.ParseError:
            log.warning("parser.malformed_manifest", file=file_name, parser=self.package_manager)
            return []

        props = self._extract_properties(root)
        deps: list[Dependency] = []
        seen: set[str] = set()

        for el in root.iter():
            if _local(el.tag) not in ("PackageReference", "PackageVersion"):
                continue
            name = el.get("Include") or el.get("Update")
            if not name or name.lower() in seen:
                continue
            seen.add(name.lower())

            raw_version = el.get("Version")
            if raw_version is None:
                for child in el:
                    if _local(child.tag) == "Version" and child.text:
                        raw_version = child.text.strip()

            metadata: dict[str, str] = {}
            version = raw_version
            if raw_version and MSBUILD_SYNTAX.references(raw_version):
                try:
                    metadata["property_name"] = defining_property(
                        raw_version, props, MSBUILD_SYNTAX
                    ) or MSBUILD_SYNTAX.references(raw_version)[0]
                except UnresolvableNestingError:
                    # Defined in an imported props file.
                    metadata["property_name"] = MSBUILD_SYNTAX.references(raw_version)[0]
                version = resolve_value(raw_version, props, MSBUILD_SYNTAX)
                if MSBUILD_SYNTAX.references(version):
                    version = None

            deps.append(
                Dependency(
                    name=name,
                    package_manager=self.package_manager,
                    version=version,
                    requirements=(
                        Requirement(
                            file=file_name,
                            requirement=raw_version,
                            metadata=metadata,
                        ),
                    ),
                )
            )

        return deps

    @staticmethod
    def _extract_properties(root: ET.Element) -> dict[str, str]:
        props: dict[str, str] = {}
        for group in root:
            if _local(group.tag) != "PropertyGroup":
                continue
            for prop in group:
                if prop.text:
                    props[_local(prop.tag)] = prop.text.strip()
        return props


register_parser(MsBuildProjectParser())
