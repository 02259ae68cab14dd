"""Unit tests for the batch build coordinator."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from builder.coordinator import BatchCoordinator, discover_version_pairs, fold_outcomes
from builder.packer import SubprocessPacker
from core.errors import CollectionsRootNotFoundError
from core.types import BatchResult, VersionOutcome
from tests.pipeline_fakes import FAIL_MARKER_FILE, TreePacker, write_source_tree


def _materialize(collections_root: Path, collection: str, version: str) -> Path:
    return write_source_tree(
        collections_root / collection / version,
        {"ping": {"method": "GET", "url": f"/{collection}/{version}/ping"}},
    )


def test_discover_version_pairs_lists_two_levels(tmp_path: Path) -> None:
    """Pairs should come from directories, sorted, ignoring hidden entries."""
    _materialize(tmp_path, "beta", "v1")
    _materialize(tmp_path, "alpha", "v2")
    _materialize(tmp_path, "alpha", "v1")
    (tmp_path / "alpha" / ".v3.partial").mkdir()
    (tmp_path / "README.md").write_text("notes", encoding="utf-8")

    assert discover_version_pairs(tmp_path) == [("alpha", "v1"), ("alpha", "v2"), ("beta", "v1")]


def test_discover_version_pairs_missing_root_raises(tmp_path: Path) -> None:
    """A missing collections root is a fatal build error."""
    with pytest.raises(CollectionsRootNotFoundError):
        discover_version_pairs(tmp_path / "collections")


def test_run_builds_every_version(tmp_path: Path) -> None:
    """Every materialized version should produce a canonical document."""
    collections_root = tmp_path / "collections"
    output_root = tmp_path / "dist"
    _materialize(collections_root, "demo", "v1")
    _materialize(collections_root, "demo", "v2")

    batch = BatchCoordinator(collections_root, output_root, TreePacker()).run()

    assert batch.result == BatchResult(success_count=2, failure_count=0)
    for version in ("v1", "v2"):
        version_dir = output_root / "demo" / version
        assert [path.name for path in version_dir.iterdir()] == ["opencollection.json"]


def test_run_isolates_single_packing_failure(tmp_path: Path) -> None:
    """One failing packer call should not stop the other versions."""
    collections_root = tmp_path / "collections"
    output_root = tmp_path / "dist"
    _materialize(collections_root, "demo", "v1")
    broken_dir = _materialize(collections_root, "demo", "v2")
    (broken_dir / FAIL_MARKER_FILE).write_text("", encoding="utf-8")
    _materialize(collections_root, "other", "v1")

    batch = BatchCoordinator(collections_root, output_root, TreePacker()).run()

    assert batch.result == BatchResult(success_count=2, failure_count=1)
    failed = [outcome for outcome in batch.outcomes if not outcome.succeeded]
    assert [(o.collection_name, o.version_name, o.failure_kind) for o in failed] == [
        ("demo", "v2", "packing_error")
    ]
    assert (output_root / "demo" / "v1" / "opencollection.json").is_file()
    assert (output_root / "other" / "v1" / "opencollection.json").is_file()
    assert not (output_root / "demo" / "v2").exists()


def test_run_reports_expected_pair_missing_on_disk(tmp_path: Path) -> None:
    """Expected pairs without a source directory fail as version_path_not_found."""
    collections_root = tmp_path / "collections"
    _materialize(collections_root, "demo", "v1")

    batch = BatchCoordinator(collections_root, tmp_path / "dist", TreePacker()).run(
        expected_pairs=[("demo", "v1"), ("demo", "unreachable")]
    )

    missing = [outcome for outcome in batch.outcomes if not outcome.succeeded]
    assert batch.result == BatchResult(success_count=1, failure_count=1)
    assert missing[0].failure_kind == "version_path_not_found"
    assert "Version path not found" in str(missing[0].message)


def test_process_version_conversion_error_removes_intermediate(tmp_path: Path) -> None:
    """A conversion failure should be counted and leave no intermediate file."""
    collections_root = tmp_path / "collections"
    output_root = tmp_path / "dist"
    _materialize(collections_root, "demo", "v1")

    class _GarbagePacker:
        def pack(self, source_dir: Path, destination_file: Path) -> None:
            destination_file.write_text("<html>not json</html>", encoding="utf-8")

    outcome = BatchCoordinator(collections_root, output_root, _GarbagePacker()).process_version(
        "demo", "v1"
    )

    assert outcome.failure_kind == "conversion_error"
    assert not (output_root / "demo" / "v1").exists()


def test_process_version_packing_error_removes_partial_intermediate(tmp_path: Path) -> None:
    """A partial packer output should be removed when packing fails."""
    collections_root = tmp_path / "collections"
    output_root = tmp_path / "dist"
    _materialize(collections_root, "demo", "v1")

    class _HalfWritingPacker:
        def pack(self, source_dir: Path, destination_file: Path) -> None:
            destination_file.write_text('{"name": ', encoding="utf-8")
            raise RuntimeError("packer crashed")

    outcome = BatchCoordinator(
        collections_root, output_root, _HalfWritingPacker()
    ).process_version("demo", "v1")

    assert outcome.failure_kind == "unexpected_error"
    assert not (output_root / "demo" / "v1" / "bruno-collection.json").exists()


def test_run_empty_collections_root_creates_no_version_directories(tmp_path: Path) -> None:
    """An empty collections root should yield zero counts and an empty output root."""
    collections_root = tmp_path / "collections"
    collections_root.mkdir()
    output_root = tmp_path / "dist"

    batch = BatchCoordinator(collections_root, output_root, TreePacker()).run()

    assert batch.result == BatchResult() and list(output_root.iterdir()) == []


def test_canonical_document_lists_each_source_request(tmp_path: Path) -> None:
    """Nested source requests should all appear in the canonical document."""
    collections_root = tmp_path / "collections"
    output_root = tmp_path / "dist"
    write_source_tree(
        collections_root / "shop" / "v1",
        {
            "health": {"method": "GET", "url": "/health"},
            "orders/create": {"method": "POST", "url": "/orders"},
            "orders/items/list": {"method": "GET", "url": "/orders/{id}/items"},
        },
    )

    BatchCoordinator(collections_root, output_root, TreePacker()).run()

    document = json.loads((output_root / "shop" / "v1" / "opencollection.json").read_text())
    urls = sorted(_collect_urls(document["items"]))
    assert urls == ["/health", "/orders", "/orders/{id}/items"]


def _collect_urls(items: list[dict[str, object]]) -> list[str]:
    urls: list[str] = []
    for item in items:
        if "items" in item:
            urls.extend(_collect_urls(item["items"]))  # type: ignore[arg-type]
        else:
            urls.append(item["http"]["url"])  # type: ignore[index]
    return urls


def test_fold_outcomes_counts_successes_and_failures() -> None:
    """Folding outcomes should count successes and failures independently."""
    outcomes = [
        VersionOutcome("a", "v1", True),
        VersionOutcome("a", "v2", False, "packing_error", "boom"),
        VersionOutcome("b", "v1", True),
    ]

    assert fold_outcomes(outcomes) == BatchResult(success_count=2, failure_count=1)
    assert fold_outcomes([]) == BatchResult(success_count=0, failure_count=0)


def test_run_empty_source_version_counts_as_packing_failure(tmp_path: Path) -> None:
    """A version directory with no collection files should fail to pack."""
    collections_root = tmp_path / "collections"
    (collections_root / "hollow" / "v1" / ".git").mkdir(parents=True)
    output_root = tmp_path / "dist"

    batch = BatchCoordinator(collections_root, output_root, SubprocessPacker()).run()

    assert batch.result == BatchResult(success_count=0, failure_count=1)
    assert batch.outcomes[0].failure_kind == "packing_error"
    assert not (output_root / "hollow" / "v1").exists()
