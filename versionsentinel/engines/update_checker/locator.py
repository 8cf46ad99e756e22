"""Declaration locators — find the manifest text that declares a requirement."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from versionsentinel.engines.update_checker.errors import DeclarationNotFoundError
from versionsentinel.engines.update_checker.models import Dependency, Requirement
from versionsentinel.engines.update_checker.placeholders import (
    MAVEN_SYNTAX,
    MSBUILD_SYNTAX,
    PlaceholderSyntax,
    resolve_property_reference,
)


@dataclass(frozen=True)
class Declaration:
    """The version text of one declaration.

    ``raw_version`` is exactly what the manifest says; ``version_string``
    has intermediate property references expanded so that the placeholder
    of the requirement's defining property is visible.
    """

    file: str
    raw_version: str
    version_string: str


@runtime_checkable
class DeclarationLocator(Protocol):
    """Interface every ecosystem's locator must satisfy."""

    def locate(self, dependency: Dependency, requirement: Requirement) -> Declaration: ...


def _local(tag: str) -> str:
    return tag.split("}")[-1] if "}" in tag else tag


def _child_text(element: ET.Element, name: str) -> str | None:
    for child in element:
        if _local(child.tag) == name:
            return child.text.strip() if child.text else None
    return None


class XmlManifestLocator(ABC):
    """Common plumbing for XML manifests with a property section."""

    syntax: PlaceholderSyntax

    def __init__(self, manifests: Mapping[str, str]) -> None:
        self._manifests = dict(manifests)
        self._trees: dict[str, ET.Element | None] = {}

    def locate(self, dependency: Dependency, requirement: Requirement) -> Declaration:
        root = self._root(requirement.file)
        if root is None:
            raise DeclarationNotFoundError(dependency.name, requirement.file)

        versions = [v for v in self._declared_versions(root, dependency.name) if v]
        if not versions:
            raise DeclarationNotFoundError(dependency.name, requirement.file)

        # Several declarations of the same name: prefer the one this requirement came from.
        raw = next((v for v in versions if v == requirement.requirement), versions[0])

        version_string = raw
        if requirement.property_name:
            version_string = resolve_property_reference(
                raw, requirement.property_name, self.properties(requirement.file), self.syntax
            )
        return Declaration(file=requirement.file, raw_version=raw, version_string=version_string)

    def properties(self, file: str) -> dict[str, str]:
        """Properties visible from *file*; its own definitions win."""
        merged: dict[str, str] = {}
        for name in self._manifests:
            if name == file:
                continue
            root = self._root(name)
            if root is not None:
                merged.update(self._extract_properties(root))
        own = self._root(file)
        if own is not None:
            merged.update(self._extract_properties(own))
        return merged

    def _root(self, file: str) -> ET.Element | None:
        if file not in self._trees:
            content = self._manifests.get(file)
            try:
                self._trees[file] = ET.fromstring(content) if content is not None else None
            except ET.ParseError:
                self._trees[file] = None
        return self._trees[file]

    @abstractmethod
    def _declared_versions(self, root: ET.Element, name: str) -> Iterator[str | None]:
        """Yield the version text of every declaration of *name*."""

    @abstractmethod
    def _extract_properties(self, root: ET.Element) -> dict[str, str]:
        """Return the property definitions in one manifest."""


class MavenPomLocator(XmlManifestLocator):
    """Locate ``<dependency>``/``<plugin>`` declarations in ``pom.xml`` files."""

    syntax = MAVEN_SYNTAX

    def _declared_versions(self, root: ET.Element, name: str) -> Iterator[str | None]:
        for el in root.iter():
            if _local(el.tag) not in ("dependency", "plugin"):
                continue
            group_id = _child_text(el, "groupId")
            artifact_id = _child_text(el, "artifactId")
            if not artifact_id:
                continue
            declared = f"{group_id}:{artifact_id}" if group_id else artifact_id
            if declared == name:
                yield _child_text(el, "version")

    def _extract_properties(self, root: ET.Element) -> dict[str, str]:
        props: dict[str, str] = {}
        for child in root:
            if _local(child.tag) != "properties":
                continue
            for prop in child:
                if prop.text:
                    props[_local(prop.tag)] = prop.text.strip()
        return props


class MsBuildLocator(XmlManifestLocator):
    """Locate ``<PackageReference>`` declarations in MSBuild project files."""

    syntax = MSBUILD_SYNTAX

    def _declared_versions(self, root: ET.Element, name: str) -> Iterator[str | None]:
        for el in root.iter():
            if _local(el.tag) not in ("PackageReference", "PackageVersion"):
                continue
            include = el.get("Include") or el.get("Update") or ""
            if include.lower() != name.lower():
                continue
            yield el.get("Version") or _child_text(el, "Version")

    def _extract_properties(self, root: ET.Element) -> dict[str, str]:
        props: dict[str, str] = {}
        for group in root:
            if _local(group.tag) != "PropertyGroup":
                continue
            for prop in group:
                if prop.text:
                    props[_local(prop.tag)] = prop.text.strip()
        return props
