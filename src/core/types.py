"""Shared typed models.

This module defines immutable data models used by the registry, fetch,
build, and SDK layers to keep interfaces explicit and stable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

FailureKind = Literal[
    "version_path_not_found",
    "packing_error",
    "conversion_error",
    "unexpected_error",
]


@dataclass(frozen=True)
class VersionEntry:
    """One declared version of a collection.

    Attributes:
        name: Version name, unique within its collection.
        source_location: Git URL, local path, or ``s3://`` prefix; None when
            the registry declares no url.
    """

    name: str
    source_location: str | None = None


@dataclass(frozen=True)
class CollectionEntry:
    """One named collection with its declared versions.

    Attributes:
        name: Collection name, used as a directory and URL segment.
        versions: Declared versions in registry order.
    """

    name: str
    versions: tuple[VersionEntry, ...] = ()


@dataclass(frozen=True)
class Registry:
    """Immutable registry loaded once per run.

    Attributes:
        collections: Declared collections in registry order.
    """

    collections: tuple[CollectionEntry, ...] = ()

    @property
    def is_empty(self) -> bool:
        return len(self.collections) == 0

    def fetchable_pairs(self) -> tuple[tuple[str, str], ...]:
        """Return (collection, version) pairs that declare a source location."""
        return tuple(
            (collection.name, version.name)
            for collection in self.collections
            for version in collection.versions
            if version.source_location
        )


@dataclass(frozen=True)
class FetchReport:
    """Stage-one fetch outcomes.

    Attributes:
        materialized: Pairs fetched into the collections root.
        skipped: Pairs skipped because no source location is declared.
        failed: Pairs whose fetch failed.
    """

    materialized: tuple[tuple[str, str], ...] = ()
    skipped: tuple[tuple[str, str], ...] = ()
    failed: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True)
class VersionOutcome:
    """Result of processing one collection version in the build stage.

    Attributes:
        collection_name: Collection identity.
        version_name: Version identity.
        succeeded: Whether a canonical document was written.
        failure_kind: Failure category when not succeeded.
        message: Human-readable failure message.
        canonical_path: Written canonical document path on success.
    """

    collection_name: str
    version_name: str
    succeeded: bool
    failure_kind: FailureKind | None = None
    message: str | None = None
    canonical_path: str | None = None


@dataclass(frozen=True)
class BatchResult:
    """Aggregate build counters folded from version outcomes."""

    success_count: int = 0
    failure_count: int = 0

    @property
    def has_failures(self) -> bool:
        return self.failure_count > 0


@dataclass(frozen=True)
class BatchRun:
    """Build-stage output: all outcomes plus their folded counters."""

    outcomes: tuple[VersionOutcome, ...]
    result: BatchResult
    output_root: str


@dataclass(frozen=True)
class PipelineReport:
    """Full pipeline run summary.

    Attributes:
        registry_empty: True when the registry declared no collections.
        output_root: Output root location.
        result: Folded build counters.
        fetch: Stage-one report, None for build-only runs.
        outcomes: Per-version build outcomes.
        aliases: (collection, source version) pairs published as latest.
        pruned: Output directories removed by the stale output sweep.
    """

    registry_empty: bool
    output_root: str
    result: BatchResult = field(default_factory=BatchResult)
    fetch: FetchReport | None = None
    outcomes: tuple[VersionOutcome, ...] = ()
    aliases: tuple[tuple[str, str], ...] = ()
    pruned: tuple[str, ...] = ()

    @property
    def exit_code(self) -> int:
        return 1 if self.result.has_failures else 0
