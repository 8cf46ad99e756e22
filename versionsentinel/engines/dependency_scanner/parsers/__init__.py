"""Manifest parsers — auto-registered on import."""

from versionsentinel.engines.dependency_scanner.parsers import (
    cargo_toml,  # noqa: F401
    maven_pom,  # noqa: F401
    msbuild_project,  # noqa: F401
)
