"""Property placeholder syntax and bounded nested-reference resolution."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass

from versionsentinel.engines.update_checker.errors import UnresolvableNestingError

MAX_NESTING_DEPTH = 2


@dataclass(frozen=True)
class PlaceholderSyntax:
    """How an ecosystem writes a reference to a named property."""

    pattern: re.Pattern[str]
    template: str

    def placeholder(self, name: str) -> str:
        return self.template.format(name)

    def references(self, text: str) -> list[str]:
        return self.pattern.findall(text)

    def is_reference(self, text: str) -> bool:
        return bool(self.pattern.fullmatch(text.strip()))


MAVEN_SYNTAX = PlaceholderSyntax(re.compile(r"\$\{([^}]+)\}"), "${{{}}}")
MSBUILD_SYNTAX = PlaceholderSyntax(re.compile(r"\$\(([^)]+)\)"), "$({})")


def defining_property(
    text: str,
    properties: Mapping[str, str],
    syntax: PlaceholderSyntax,
    *,
    max_depth: int = MAX_NESTING_DEPTH,
) -> str | None:
    """Return the property that ultimately holds the literal behind *text*.

    ``${a}`` where ``a`` is ``${b}`` and ``b`` is ``1.0`` yields ``"b"``.
    Returns ``None`` when *text* references no property.  Raises
    :class:`UnresolvableNestingError` when the chain is longer than
    *max_depth* levels or dangles on an undefined property.
    """
    refs = syntax.references(text)
    if not refs:
        return None

    name = refs[0]
    for _ in range(max_depth):
        if name not in properties:
            raise UnresolvableNestingError(text, max_depth)
        inner = syntax.references(properties[name])
        if not inner:
            return name
        name = inner[0]
    raise UnresolvableNestingError(text, max_depth)


def resolve_property_reference(
    text: str,
    property_name: str,
    properties: Mapping[str, str],
    syntax: PlaceholderSyntax,
    *,
    max_depth: int = MAX_NESTING_DEPTH,
) -> str:
    """Expand intermediate references in *text* until *property_name*'s placeholder shows.

    Only references other than *property_name* are expanded, so the
    returned string still carries the placeholder of the defining property.
    """
    target = syntax.placeholder(property_name)
    current = text
    for _ in range(max_depth + 1):
        if target in current:
            return current
        refs = [r for r in syntax.references(current) if r != property_name]
        if not refs:
            break
        for ref in refs:
            if ref not in properties:
                raise UnresolvableNestingError(text, max_depth)
            current = current.replace(syntax.placeholder(ref), properties[ref])
    raise UnresolvableNestingError(text, max_depth)


def resolve_value(
    text: str,
    properties: Mapping[str, str],
    syntax: PlaceholderSyntax,
    *,
    max_depth: int = MAX_NESTING_DEPTH,
) -> str:
    """Fully substitute every reference in *text*; unknown references are kept."""
    current = text
    for _ in range(max_depth):
        expanded = syntax.pattern.sub(lambda m: properties.get(m.group(1), m.group(0)), current)
        if expanded == current:
            break
        current = expanded
    return current
