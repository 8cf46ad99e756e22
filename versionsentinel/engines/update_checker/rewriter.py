"""Requirement rewriters — compute the new requirement list for an update."""

from __future__ import annotations

import re
from collections.abc import Collection, Iterable
from typing import Protocol, runtime_checkable

import structlog

from versionsentinel.engines.update_checker.models import Requirement
from versionsentinel.engines.update_checker.placeholders import PlaceholderSyntax

log = structlog.get_logger("versionsentinel.engine")

# An optional single operator followed by one version, e.g. "1.0", "^1.0", ">= 2.3.1".
_SIMPLE_CONSTRAINT_RE = re.compile(
    r"^(?P<op>\s*(?:\^|~=|~>|~|[<>]=?|==?|!=)?\s*)(?P<version>[0-9A-Za-z][0-9A-Za-z.+_-]*)\s*$"
)


@runtime_checkable
class RequirementRewriter(Protocol):
    """Interface for ecosystem-specific requirement rewriting."""

    def rewrite(
        self,
        requirements: Iterable[Requirement],
        new_version: str,
        updated_property_names: Collection[str],
        *,
        source_url: str | None = None,
    ) -> tuple[Requirement, ...]: ...


class PropertyAwareRewriter:
    """Rewrite literal requirements in place and leave property placeholders alone.

    * A requirement indirected through a property that is *not* being
      updated is returned unchanged.
    * A requirement indirected through an updated property keeps its
      placeholder text; the property's definition carries the new value.
      If the parser stored the resolved literal instead, the literal is
      rewritten.
    * A literal requirement has its version replaced, keeping any leading
      operator.  Ranges and compound constraints are left untouched.
    """

    def __init__(self, syntax: PlaceholderSyntax | None = None) -> None:
        self._syntax = syntax

    def rewrite(
        self,
        requirements: Iterable[Requirement],
        new_version: str,
        updated_property_names: Collection[str],
        *,
        source_url: str | None = None,
    ) -> tuple[Requirement, ...]:
        extra = {"source_url": source_url} if source_url else {}
        return tuple(
            self._rewrite_one(req, new_version, updated_property_names, extra)
            for req in requirements
        )

    def _rewrite_one(
        self,
        req: Requirement,
        new_version: str,
        updated_property_names: Collection[str],
        extra: dict[str, str],
    ) -> Requirement:
        if req.requirement is None:
            return req

        prop = req.property_name
        if prop:
            if prop not in updated_property_names:
                return req
            if self._has_placeholder(req.requirement):
                return req.with_requirement(req.requirement, **extra)

        updated = self.rewrite_literal(req.requirement, new_version)
        if updated is None:
            log.debug("rewriter.left_unchanged", file=req.file, requirement=req.requirement)
            return req
        return req.with_requirement(updated, **extra)

    @staticmethod
    def rewrite_literal(requirement: str, new_version: str) -> str | None:
        """Swap the version in a single-version constraint, or ``None`` if it is not one."""
        match = _SIMPLE_CONSTRAINT_RE.match(requirement)
        if match is None:
            return None
        return f"{match.group('op')}{new_version}"

    def _has_placeholder(self, text: str) -> bool:
        return self._syntax is not None and bool(self._syntax.references(text))
