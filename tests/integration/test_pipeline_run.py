"""Integration tests for full fetch-and-build pipeline runs."""

from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path

from core.config import HubConfig
from core.types import BatchResult
from sdk.hub_client import HubClient
from tests.pipeline_fakes import FAIL_MARKER_FILE, CopyTreeFetcher, TreePacker, write_source_tree

_REGISTRY_TEXT = """\
collections:
  - name: shop
    versions:
      - name: v2
        url: git://shop-v2
      - name: v1
        url: git://shop-v1
  - name: weather
    versions:
      - name: latest
        url: s3://bucket/weather
      - name: draft
"""


def _config(tmp_path: Path, registry_text: str = _REGISTRY_TEXT) -> HubConfig:
    registry_file = tmp_path / "registry.yml"
    registry_file.write_text(registry_text, encoding="utf-8")
    return replace(
        HubConfig.from_env(),
        registry_file=registry_file,
        collections_root=tmp_path / "collections",
        output_root=tmp_path / "dist",
        prune_stale_output=True,
    )


def _templates(tmp_path: Path) -> dict[str, Path]:
    templates_root = tmp_path / "templates"
    return {
        "git://shop-v2": write_source_tree(
            templates_root / "shop-v2",
            {
                "health": {"method": "GET", "url": "/health"},
                "orders/create": {"method": "POST", "url": "/orders"},
                "orders/list": {"method": "GET", "url": "/orders"},
            },
        ),
        "git://shop-v1": write_source_tree(
            templates_root / "shop-v1",
            {"health": {"method": "GET", "url": "/health"}},
        ),
        "s3://bucket/weather": write_source_tree(
            templates_root / "weather",
            {"forecast": {"method": "GET", "url": "/forecast"}},
        ),
    }


def _client(tmp_path: Path, config: HubConfig) -> HubClient:
    return HubClient(config, fetcher=CopyTreeFetcher(_templates(tmp_path)), packer=TreePacker())


def _request_names(items: list[dict[str, object]]) -> list[str]:
    names: list[str] = []
    for item in items:
        if "items" in item:
            names.extend(_request_names(item["items"]))  # type: ignore[arg-type]
        else:
            names.append(item["info"]["name"])  # type: ignore[index]
    return names


def test_run_builds_every_declared_version(tmp_path: Path) -> None:
    """Every fetchable version should produce a canonical document."""
    config = _config(tmp_path)

    report = _client(tmp_path, config).run()

    assert report.result == BatchResult(success_count=3, failure_count=0)
    assert report.exit_code == 0
    assert report.fetch is not None and report.fetch.skipped == (("weather", "draft"),)
    shop_document = json.loads(
        (config.output_root / "shop" / "v2" / "opencollection.json").read_text(encoding="utf-8")
    )
    assert sorted(_request_names(shop_document["items"])) == ["create", "health", "list"]
    assert not list(config.output_root.rglob("bruno-collection.json"))


def test_run_publishes_latest_aliases(tmp_path: Path) -> None:
    """Each collection should expose a latest canonical document."""
    config = _config(tmp_path)

    report = _client(tmp_path, config).run()

    assert report.aliases == (("shop", "v2"), ("weather", "latest"))
    shop_root = config.output_root / "shop"
    assert (shop_root / "latest" / "opencollection.json").read_bytes() == (
        shop_root / "v2" / "opencollection.json"
    ).read_bytes()


def test_run_twice_is_byte_identical(tmp_path: Path) -> None:
    """Re-running with unchanged inputs should reproduce identical output."""
    config = _config(tmp_path)
    _client(tmp_path, config).run()
    first_run = {
        path.relative_to(config.output_root): path.read_bytes()
        for path in config.output_root.rglob("*")
        if path.is_file()
    }

    _client(tmp_path, config).run()
    second_run = {
        path.relative_to(config.output_root): path.read_bytes()
        for path in config.output_root.rglob("*")
        if path.is_file()
    }

    assert second_run == first_run


def test_run_counts_unreachable_and_broken_versions(tmp_path: Path) -> None:
    """Fetch and pack failures should each count once without stopping the run."""
    config = _config(tmp_path)
    templates = _templates(tmp_path)
    (templates["git://shop-v1"] / FAIL_MARKER_FILE).write_text("", encoding="utf-8")
    del templates["s3://bucket/weather"]
    client = HubClient(config, fetcher=CopyTreeFetcher(templates), packer=TreePacker())

    report = client.run()

    assert report.result == BatchResult(success_count=1, failure_count=2)
    assert report.exit_code == 1
    assert report.fetch is not None and report.fetch.failed == (("weather", "latest"),)
    failures = {
        (outcome.collection_name, outcome.version_name): outcome.failure_kind
        for outcome in report.outcomes
        if not outcome.succeeded
    }
    assert failures == {
        ("shop", "v1"): "packing_error",
        ("weather", "latest"): "version_path_not_found",
    }
    assert (config.output_root / "shop" / "v2" / "opencollection.json").is_file()


def test_run_prunes_versions_removed_from_registry(tmp_path: Path) -> None:
    """Outputs of versions dropped from the registry should be removed."""
    config = _config(tmp_path)
    _client(tmp_path, config).run()
    reduced_config = _config(
        tmp_path,
        "collections:\n"
        "  - name: shop\n"
        "    versions:\n"
        "      - name: v2\n"
        "        url: git://shop-v2\n",
    )

    report = _client(tmp_path, reduced_config).run()

    assert report.pruned == ("shop/v1", "weather")
    assert sorted(path.name for path in (config.output_root / "shop").iterdir()) == [
        "latest",
        "v2",
    ]


def test_run_keeps_stale_output_when_pruning_disabled(tmp_path: Path) -> None:
    """Disabling the sweep should leave outputs of removed versions in place."""
    config = _config(tmp_path)
    _client(tmp_path, config).run()
    reduced_config = replace(
        _config(
            tmp_path,
            "collections:\n"
            "  - name: shop\n"
            "    versions:\n"
            "      - name: v2\n"
            "        url: git://shop-v2\n",
        ),
        prune_stale_output=False,
    )

    report = _client(tmp_path, reduced_config).run()

    assert report.pruned == ()
    assert (config.output_root / "shop" / "v1" / "opencollection.json").is_file()


def test_run_empty_registry_touches_nothing(tmp_path: Path) -> None:
    """An empty registry should be a successful no-op run."""
    config = _config(tmp_path, "collections: []\n")

    report = _client(tmp_path, config).run()

    assert report.registry_empty and report.exit_code == 0
    assert report.result == BatchResult()
    assert not config.collections_root.exists()
    assert not config.output_root.exists()
