"""Collection Hub exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each pipeline stage raises a specific error type for debuggability.
"""

from __future__ import annotations


class HubError(Exception):
    """Base exception for all Collection Hub failures."""


class HubConfigError(HubError):
    """Raised for invalid runtime configuration."""


class HubDependencyError(HubError):
    """Raised when an optional runtime dependency is missing."""


class RegistryError(HubError):
    """Raised for registry manifest loading failures."""


class ManifestNotFoundError(RegistryError):
    """Raised when the registry manifest path does not resolve."""


class ManifestParseError(RegistryError):
    """Raised when the registry manifest has invalid content or structure."""


class FetchError(HubError):
    """Raised when one collection version cannot be fetched."""


class BuildError(HubError):
    """Raised for build-stage failures."""


class CollectionsRootNotFoundError(BuildError):
    """Raised when the build stage has no materialized collections root."""


class VersionPathNotFoundError(BuildError):
    """Raised when a collection version has no materialized source directory."""


class PackingError(BuildError):
    """Raised when the external packer fails for one collection version."""

    def __init__(self, message: str, diagnostics: str = "") -> None:
        super().__init__(message)
        self.diagnostics = diagnostics


class ConversionError(BuildError):
    """Raised when a packed document cannot be converted to canonical form."""
