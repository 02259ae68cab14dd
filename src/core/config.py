"""Runtime configuration model for Collection Hub.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from pathlib import Path

from core.constants import (
    DEFAULT_COLLECTIONS_ROOT,
    DEFAULT_LOG_LEVEL,
    DEFAULT_OUTPUT_ROOT,
    DEFAULT_PACKER_COMMAND,
    DEFAULT_REGISTRY_FILE,
)
from core.errors import HubConfigError

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


@dataclass(frozen=True)
class HubConfig:
    """Validated runtime configuration.

    Attributes:
        registry_file: YAML registry manifest path.
        collections_root: Local root for materialized source collections.
        output_root: Local root for canonical documents.
        packer_command: Executable used to launch the pinned packer package.
        prune_stale_output: Remove output directories absent from the registry.
        s3_region: Optional default AWS region for s3:// sources.
        s3_profile: Optional AWS profile for boto3 session initialization.
        log_level: Standard logging level name.
    """

    registry_file: Path
    collections_root: Path
    output_root: Path
    packer_command: str
    prune_stale_output: bool
    s3_region: str | None
    s3_profile: str | None
    log_level: str

    @classmethod
    def from_env(cls) -> "HubConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            HubConfigError: If environment values are invalid.
        """
        registry_value = os.getenv("HUB_REGISTRY_FILE", str(DEFAULT_REGISTRY_FILE))
        collections_value = os.getenv("HUB_COLLECTIONS_ROOT", str(DEFAULT_COLLECTIONS_ROOT))
        output_value = os.getenv("HUB_OUTPUT_ROOT", str(DEFAULT_OUTPUT_ROOT))
        packer_command = os.getenv("HUB_PACKER_COMMAND", DEFAULT_PACKER_COMMAND).strip()
        if not packer_command:
            raise HubConfigError(
                "Invalid HUB_PACKER_COMMAND value: expected an executable name, got ''. "
                "Unset HUB_PACKER_COMMAND to use npx."
            )
        prune_value = os.getenv("HUB_PRUNE_STALE_OUTPUT", "true")
        log_level_value = os.getenv("HUB_LOG_LEVEL", DEFAULT_LOG_LEVEL)
        return cls(
            registry_file=_resolve_path(registry_value),
            collections_root=_resolve_path(collections_value),
            output_root=_resolve_path(output_value),
            packer_command=packer_command,
            prune_stale_output=_parse_bool("HUB_PRUNE_STALE_OUTPUT", prune_value),
            s3_region=os.getenv("HUB_S3_REGION"),
            s3_profile=os.getenv("HUB_S3_PROFILE"),
            log_level=parse_log_level(log_level_value),
        )


def parse_log_level(raw_value: str) -> str:
    """Normalize and validate a logging level name.

    Args:
        raw_value: Level name such as ``info`` or ``DEBUG``.

    Returns:
        Upper-case level name known to the logging module.

    Raises:
        HubConfigError: If the level name is unknown.
    """
    level_name = raw_value.strip().upper()
    if not isinstance(logging.getLevelName(level_name), int):
        raise HubConfigError(
            f"Invalid log level '{raw_value}'. "
            "Use one of DEBUG, INFO, WARNING, ERROR."
        )
    return level_name


def _resolve_path(raw_value: str) -> Path:
    return Path(raw_value).expanduser().resolve()


def _parse_bool(variable_name: str, raw_value: str) -> bool:
    """Parse a boolean environment value.

    Args:
        variable_name: Environment variable name for error context.
        raw_value: Raw string from environment.

    Returns:
        Parsed boolean.

    Raises:
        HubConfigError: If value is not a recognized boolean.
    """
    normalized_value = raw_value.strip().lower()
    if normalized_value in _TRUE_VALUES:
        return True
    if normalized_value in _FALSE_VALUES:
        return False
    raise HubConfigError(
        f"Invalid {variable_name} value: expected boolean, got '{raw_value}'. "
        f"Set {variable_name} to true or false."
    )
