"""Parser for Maven pom.xml files."""

from __future__ import annotations

import xml.etree.ElementTree as ET

import structlog

from versionsentinel.engines.dependency_scanner.registry import register_parser
from versionsentinel.engines.update_checker.errors import UnresolvableNestingError
from versionsentinel.engines.update_checker.models import Dependency, Requirement
from versionsentinel.engines.update_checker.placeholders import (
    MAVEN_SYNTAX,
    defining_property,
    resolve_value,
)

log = structlog.get_logger("versionsentinel.engine")

_NS = "{http://maven.apache.org/POM/4.0.0}"


def _text(element: ET.Element | None) -> str | None:
    if element is None:
        return None
    return element.text.strip() if element.text else None


class MavenPomParser:
    package_manager = "maven"
    file_patterns = ["**/pom.xml"]

    def parse(self, file_name: str, content: str) -> list[Dependency]:
        try:
            root = ET.fromstring(content)
        except ET.ParseError:
            log.warning("parser.malformed_manifest", file=file_name, parser=self.package_manager)
            return []

        props = self._extract_properties(root)
        repository = self._first_repository(root)

        deps: list[Dependency] = []
        seen: set[str] = set()

        # Try both namespaced and non-namespaced
        for ns in (_NS, ""):
            for kind, group in (("dependency", "dependencies"), ("plugin", "plugins")):
                for el in root.iter(f"{ns}{kind}"):
                    dep = self._parse_declaration(el, ns, group, file_name, props, repository)
                    if dep is None or dep.name in seen:
                        continue
                    seen.add(dep.name)
                    deps.append(dep)

        return deps

    def _parse_declaration(
        self,
        el: ET.Element,
        ns: str,
        group: str,
        file_name: str,
        props: dict[str, str],
        repository: str | None,
    ) -> Dependency | None:
        group_id = _text(el.find(f"{ns}groupId"))
        artifact_id = _text(el.find(f"{ns}artifactId"))
        raw_version = _text(el.find(f"{ns}version"))

        if not artifact_id:
            return None

        name = f"{group_id}:{artifact_id}" if group_id else artifact_id

        metadata: dict[str, str] = {}
        version = raw_version
        if raw_version:
            property_name = self._property_name(raw_version, props, file_name)
            if property_name:
                metadata["property_name"] = property_name
            version = resolve_value(raw_version, props, MAVEN_SYNTAX)
            if MAVEN_SYNTAX.references(version):
                version = None  # defined outside this file

        return Dependency(
            name=name,
            package_manager=self.package_manager,
            version=version,
            requirements=(
                Requirement(
                    file=file_name,
                    requirement=raw_version,
                    groups=(group,),
                    source={"url": repository} if repository else None,
                    metadata=metadata,
                ),
            ),
        )

    @staticmethod
    def _property_name(raw_version: str, props: dict[str, str], file_name: str) -> str | None:
        try:
            return defining_property(raw_version, props, MAVEN_SYNTAX)
        except UnresolvableNestingError:
            # Probably defined in a parent POM; keep the outermost reference.
            log.debug("parser.unresolved_property", file=file_name, version=raw_version)
            return MAVEN_SYNTAX.references(raw_version)[0]

    @staticmethod
    def _extract_properties(root: ET.Element) -> dict[str, str]:
        """Extract <properties> key-value pairs from the POM root."""
        props: dict[str, str] = {}
        for ns in (_NS, ""):
            props_el = root.find(f"{ns}properties")
            if props_el is not None:
                for child in props_el:
                    # Strip namespace from tag name
                    tag = child.tag.split("}")[-1] if "}" in child.tag else child.tag
                    if child.text:
                        props[tag] = child.text.strip()
        return props

    @staticmethod
    def _first_repository(root: ET.Element) -> str | None:
        for ns in (_NS, ""):
            for repo in root.iter(f"{ns}repository"):
                url = _text(repo.find(f"{ns}url"))
                if url:
                    return url
        return None


register_parser(MavenPomParser())
