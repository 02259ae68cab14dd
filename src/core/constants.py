"""Core constants used across Collection Hub modules.

This module centralizes non-domain-specific constants.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_REGISTRY_FILE = Path("registry.yml")
DEFAULT_COLLECTIONS_ROOT = Path("collections")
DEFAULT_OUTPUT_ROOT = Path("dist")
DEFAULT_LOG_LEVEL = "INFO"
CANONICAL_FILE_NAME = "opencollection.json"
INTERMEDIATE_FILE_NAME = "bruno-collection.json"
LATEST_VERSION_ALIAS = "latest"
PARTIAL_DIR_SUFFIX = ".partial"
DEFAULT_PACKER_COMMAND = "npx"
PACKER_PACKAGE = "@usebruno/cli-next@2.13.2-oc2"
OPENCOLLECTION_FORMAT_VERSION = "1.0.0"
CANONICAL_JSON_INDENT = 2
VCS_METADATA_NAMES = (".git", ".gitignore", ".gitattributes", ".github")
S3_URI_PREFIX = "s3://"
