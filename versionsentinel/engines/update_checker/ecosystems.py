"""Ecosystem registry — per package manager update capabilities."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from fnmatch import fnmatchcase
from pathlib import PurePosixPath

from versionsentinel.engines.update_checker.errors import UnsupportedEcosystemError
from versionsentinel.engines.update_checker.locator import (
    DeclarationLocator,
    MavenPomLocator,
    MsBuildLocator,
)
from versionsentinel.engines.update_checker.placeholders import (
    MAVEN_SYNTAX,
    MSBUILD_SYNTAX,
    PlaceholderSyntax,
)
from versionsentinel.engines.update_checker.rewriter import (
    PropertyAwareRewriter,
    RequirementRewriter,
)

LocatorFactory = Callable[[Mapping[str, str]], DeclarationLocator]


class UpdateStrategy(str, Enum):
    """How a shared version property is handled."""

    COORDINATED = "coordinated"  # update every dependency in the property group together
    VETO = "veto"  # refuse to update a dependency whose property is shared


@dataclass(frozen=True)
class Ecosystem:
    """Update capabilities of one package manager.

    ``manifest_patterns`` are file-name globs of the manifests this package
    manager reads; properties are only looked up and rewritten there.
    """

    package_manager: str
    strategy: UpdateStrategy
    rewriter: RequirementRewriter
    syntax: PlaceholderSyntax | None = None
    locator_factory: LocatorFactory | None = None
    manifest_patterns: tuple[str, ...] = ()

    @property
    def supports_coordination(self) -> bool:
        return self.syntax is not None and self.locator_factory is not None

    def owns(self, file: str) -> bool:
        if not self.manifest_patterns:
            return True
        name = PurePosixPath(file).name
        return any(fnmatchcase(name, pattern) for pattern in self.manifest_patterns)


ECOSYSTEM_REGISTRY: dict[str, Ecosystem] = {}


def register_ecosystem(ecosystem: Ecosystem) -> None:
    """Register an ecosystem by its package_manager tag."""
    ECOSYSTEM_REGISTRY[ecosystem.package_manager] = ecosystem


def get_ecosystem(package_manager: str) -> Ecosystem:
    try:
        return ECOSYSTEM_REGISTRY[package_manager]
    except KeyError:
        raise UnsupportedEcosystemError(
            f"no ecosystem registered for package manager '{package_manager}'"
        ) from None


register_ecosystem(
    Ecosystem(
        package_manager="maven",
        strategy=UpdateStrategy.COORDINATED,
        rewriter=PropertyAwareRewriter(MAVEN_SYNTAX),
        syntax=MAVEN_SYNTAX,
        locator_factory=MavenPomLocator,
        manifest_patterns=("pom.xml",),
    )
)
register_ecosystem(
    Ecosystem(
        package_manager="nuget",
        strategy=UpdateStrategy.VETO,
        rewriter=PropertyAwareRewriter(MSBUILD_SYNTAX),
        syntax=MSBUILD_SYNTAX,
        locator_factory=MsBuildLocator,
        manifest_patterns=("*.csproj", "*.vbproj", "*.fsproj", "*.props", "*.targets"),
    )
)
register_ecosystem(
    Ecosystem(
        package_manager="cargo",
        strategy=UpdateStrategy.VETO,
        rewriter=PropertyAwareRewriter(),
        manifest_patterns=("Cargo.toml",),
    )
)
# No parser or catalog ships for npm_and_yarn.  It is registered veto-only so that
# callers supplying their own package.json dependencies get the shared-property guard.
register_ecosystem(
    Ecosystem(
        package_manager="npm_and_yarn",
        strategy=UpdateStrategy.VETO,
        rewriter=PropertyAwareRewriter(),
        manifest_patterns=("package.json",),
    )
)
