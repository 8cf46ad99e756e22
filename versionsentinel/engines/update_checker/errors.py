"""Exceptions raised by the update checker engine."""


class UpdateCheckerError(Exception):
    """Base exception for all update checker errors."""


class NoPropertyNameError(UpdateCheckerError):
    """Raised when coordination is requested for a dependency with no property reference."""

    def __init__(self, dependency_name: str):
        self.dependency_name = dependency_name
        super().__init__(f"No requirement with a property name for '{dependency_name}'")


class InconsistentPropertyIndexError(UpdateCheckerError):
    """Raised when a dependency is missing from the group of its own property."""

    def __init__(self, dependency_name: str, property_name: str):
        self.dependency_name = dependency_name
        self.property_name = property_name
        super().__init__(
            f"'{dependency_name}' references property '{property_name}' "
            f"but is not in that property's group"
        )


class DeclarationNotFoundError(UpdateCheckerError):
    """Raised when the manifest fragment declaring a requirement cannot be found."""

    def __init__(self, dependency_name: str, file: str):
        self.dependency_name = dependency_name
        self.file = file
        super().__init__(f"No declaration of '{dependency_name}' found in {file}")


class UnresolvableNestingError(UpdateCheckerError):
    """Raised when a property reference cannot be resolved within the nesting limit."""

    def __init__(self, value: str, max_depth: int):
        self.value = value
        self.max_depth = max_depth
        super().__init__(
            f"Cannot resolve property reference in '{value}' within {max_depth} level(s)"
        )


class CatalogLookupError(UpdateCheckerError):
    """Raised by a version catalog when a listing could not be retrieved."""

    def __init__(self, dependency_name: str, reason: str):
        self.dependency_name = dependency_name
        self.reason = reason
        super().__init__(f"Version lookup failed for '{dependency_name}': {reason}")


class UnsupportedEcosystemError(UpdateCheckerError):
    """Raised when no ecosystem is registered for a package manager."""


class ManifestUpdateError(UpdateCheckerError):
    """Raised when applying update plans does not change a manifest as expected."""
