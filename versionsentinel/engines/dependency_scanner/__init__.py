"""Dependency scanner engine — parse manifests into property-aware dependencies."""

from versionsentinel.engines.dependency_scanner.scanner import load_manifests, scan

__all__ = ["load_manifests", "scan"]
