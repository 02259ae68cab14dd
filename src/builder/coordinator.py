"""Batch build orchestration.

This module enumerates materialized collection versions, packs and converts
each one inside an isolation boundary, and folds per-version outcomes into
aggregate counters. A failing version never aborts the batch.
"""

from __future__ import annotations

from dataclasses import replace
from functools import reduce
from pathlib import Path
from typing import Iterable, Sequence

from builder.canonical_writer import (
    ConvertFn,
    remove_intermediate_document,
    write_canonical_document,
)
from builder.converter import convert_bruno_to_opencollection
from builder.packer import Packer
from core.constants import CANONICAL_FILE_NAME, INTERMEDIATE_FILE_NAME
from core.errors import (
    CollectionsRootNotFoundError,
    ConversionError,
    PackingError,
    VersionPathNotFoundError,
)
from core.logging_config import get_logger
from core.types import BatchResult, BatchRun, FailureKind, VersionOutcome

_LOGGER = get_logger(__name__)


class BatchCoordinator:
    """Sequential runner for the build stage."""

    def __init__(
        self,
        collections_root: Path,
        output_root: Path,
        packer: Packer,
        convert: ConvertFn = convert_bruno_to_opencollection,
    ) -> None:
        self._collections_root = collections_root
        self._output_root = output_root
        self._packer = packer
        self._convert = convert

    def run(self, expected_pairs: Sequence[tuple[str, str]] = ()) -> BatchRun:
        """Build every materialized version and return folded outcomes.

        Args:
            expected_pairs: Registry pairs that should have been materialized.
                Pairs missing from disk are reported as failures.

        Returns:
            All version outcomes with their aggregate counters.

        Raises:
            CollectionsRootNotFoundError: If the collections root is missing.
        """
        discovered_pairs = discover_version_pairs(self._collections_root)
        pairs = sorted(set(discovered_pairs) | set(expected_pairs))
        self._output_root.mkdir(parents=True, exist_ok=True)
        _LOGGER.info(
            "build_started",
            collections_root=str(self._collections_root),
            output_root=str(self._output_root),
            version_count=len(pairs),
        )
        outcomes = tuple(
            self.process_version(collection_name, version_name)
            for collection_name, version_name in pairs
        )
        result = fold_outcomes(outcomes)
        _LOGGER.info(
            "build_completed",
            output_root=str(self._output_root),
            success_count=result.success_count,
            failure_count=result.failure_count,
        )
        return BatchRun(outcomes=outcomes, result=result, output_root=str(self._output_root))

    def process_version(self, collection_name: str, version_name: str) -> VersionOutcome:
        """Pack and convert one collection version.

        Args:
            collection_name: Collection directory name.
            version_name: Version directory name.

        Returns:
            Success or failure outcome; errors never propagate.
        """
        source_dir = self._collections_root / collection_name / version_name
        output_dir = self._output_root / collection_name / version_name
        _LOGGER.info("version_build_started", collection=collection_name, version=version_name)
        if not source_dir.is_dir():
            error = VersionPathNotFoundError(f"Version path not found: {source_dir}")
            return _failure(collection_name, version_name, "version_path_not_found", error)
        output_dir.mkdir(parents=True, exist_ok=True)
        intermediate_path = output_dir / INTERMEDIATE_FILE_NAME
        canonical_path = output_dir / CANONICAL_FILE_NAME
        try:
            self._packer.pack(source_dir, intermediate_path)
            _LOGGER.info("version_packed", collection=collection_name, version=version_name)
            write_canonical_document(intermediate_path, canonical_path, self._convert)
        except PackingError as error:
            _discard_failed_output(output_dir, intermediate_path)
            return _failure(collection_name, version_name, "packing_error", error)
        except ConversionError as error:
            _discard_failed_output(output_dir, intermediate_path)
            return _failure(collection_name, version_name, "conversion_error", error)
        except Exception as error:
            _discard_failed_output(output_dir, intermediate_path)
            return _failure(collection_name, version_name, "unexpected_error", error)
        finally:
            remove_intermediate_document(intermediate_path)
        _LOGGER.info(
            "version_build_succeeded",
            collection=collection_name,
            version=version_name,
            canonical_path=str(canonical_path),
        )
        return VersionOutcome(
            collection_name=collection_name,
            version_name=version_name,
            succeeded=True,
            canonical_path=str(canonical_path),
        )


def build_collections(
    collections_root: Path,
    output_root: Path,
    packer: Packer,
    expected_pairs: Sequence[tuple[str, str]] = (),
) -> BatchRun:
    """Run the build stage over a materialized collections root.

    Args:
        collections_root: Root produced by the fetch stage.
        output_root: Root for canonical documents.
        packer: Packing strategy.
        expected_pairs: Registry pairs expected on disk.

    Returns:
        Batch outcomes and counters.
    """
    coordinator = BatchCoordinator(collections_root, output_root, packer)
    return coordinator.run(expected_pairs)


def discover_version_pairs(collections_root: Path) -> list[tuple[str, str]]:
    """List (collection, version) directories two levels under the root.

    Raises:
        CollectionsRootNotFoundError: If the root directory is missing.
    """
    if not collections_root.is_dir():
        raise CollectionsRootNotFoundError(
            f"Collections directory not found at {collections_root}. "
            "Run the fetch command first."
        )
    pairs: list[tuple[str, str]] = []
    for collection_dir in _visible_subdirectories(collections_root):
        for version_dir in _visible_subdirectories(collection_dir):
            pairs.append((collection_dir.name, version_dir.name))
    return pairs


def fold_outcomes(outcomes: Iterable[VersionOutcome]) -> BatchResult:
    """Reduce version outcomes into success and failure counters."""
    return reduce(_accumulate_outcome, outcomes, BatchResult())


def _accumulate_outcome(result: BatchResult, outcome: VersionOutcome) -> BatchResult:
    if outcome.succeeded:
        return replace(result, success_count=result.success_count + 1)
    return replace(result, failure_count=result.failure_count + 1)


def _visible_subdirectories(directory: Path) -> list[Path]:
    return sorted(
        entry for entry in directory.iterdir() if entry.is_dir() and not entry.name.startswith(".")
    )


def _discard_failed_output(output_dir: Path, intermediate_path: Path) -> None:
    remove_intermediate_document(intermediate_path)
    if output_dir.is_dir() and not any(output_dir.iterdir()):
        output_dir.rmdir()


def _failure(
    collection_name: str,
    version_name: str,
    failure_kind: FailureKind,
    error: Exception,
) -> VersionOutcome:
    fields: dict[str, object] = {
        "collection": collection_name,
        "version": version_name,
        "failure_kind": failure_kind,
        "error": str(error),
    }
    if isinstance(error, PackingError) and error.diagnostics:
        fields["diagnostics"] = error.diagnostics
    _LOGGER.error("version_build_failed", **fields)
    return VersionOutcome(
        collection_name=collection_name,
        version_name=version_name,
        succeeded=False,
        failure_kind=failure_kind,
        message=str(error),
    )
