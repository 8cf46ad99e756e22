"""Parser registry — discover manifest files and match them to parsers."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from versionsentinel.engines.update_checker.models import Dependency


@runtime_checkable
class ManifestParser(Protocol):
    """Interface that every manifest parser must satisfy."""

    package_manager: str
    file_patterns: list[str]

    def parse(self, file_name: str, content: str) -> list[Dependency]: ...


PARSER_REGISTRY: dict[str, ManifestParser] = {}


def register_parser(parser: ManifestParser) -> None:
    """Register a parser instance by its package_manager."""
    PARSER_REGISTRY[parser.package_manager] = parser


def discover_manifests(repo_path: Path) -> list[tuple[ManifestParser, Path]]:
    """Walk the repo and match manifest files to registered parsers.

    Returns a list of (parser, matched_file) pairs.  A file matched by
    several patterns of the same parser is returned once.
    """
    matches: list[tuple[ManifestParser, Path]] = []
    for parser in PARSER_REGISTRY.values():
        seen: set[Path] = set()
        for pattern in parser.file_patterns:
            for hit in sorted(repo_path.glob(pattern)):
                if hit.is_file() and hit not in seen:
                    seen.add(hit)
                    matches.append((parser, hit))
    return matches
