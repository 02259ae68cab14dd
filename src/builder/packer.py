"""Format packer adapter.

This module invokes the pinned external packer that serializes a
directory-based Bruno collection into one intermediate JSON document.
"""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Protocol

from core.constants import DEFAULT_PACKER_COMMAND, PACKER_PACKAGE, VCS_METADATA_NAMES
from core.errors import PackingError
from core.logging_config import get_logger

_LOGGER = get_logger(__name__)


class Packer(Protocol):
    """Packing contract used by the batch coordinator."""

    def pack(self, source_dir: Path, destination_file: Path) -> None:
        """Write the packed document for ``source_dir`` to ``destination_file``."""
        ...


class SubprocessPacker:
    """Run ``<command> <pinned package> pack -s <source> -o <output>``."""

    def __init__(
        self,
        command: str = DEFAULT_PACKER_COMMAND,
        package: str = PACKER_PACKAGE,
    ) -> None:
        self._command = command
        self._package = package

    def build_command(self, source_dir: Path, destination_file: Path) -> list[str]:
        """Return the argument vector for one packer invocation."""
        return [
            self._command,
            self._package,
            "pack",
            "-s",
            str(source_dir),
            "-o",
            str(destination_file),
        ]

    def pack(self, source_dir: Path, destination_file: Path) -> None:
        """Pack one materialized source directory.

        Args:
            source_dir: Materialized collection version directory.
            destination_file: Intermediate document path to produce.

        Raises:
            PackingError: If the source holds no collection files, the tool
                cannot start, exits non-zero, or produces no output file.
        """
        if not has_collection_files(source_dir):
            raise PackingError(
                f"Source directory {source_dir} contains no collection files. "
                "Check that the registry url points at a Bruno collection."
            )
        command = self.build_command(source_dir, destination_file)
        _LOGGER.debug("packer_invoked", command=command)
        try:
            completed = subprocess.run(
                command,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as error:
            raise PackingError(
                f"Failed to start packer '{self._command}': {error}. "
                "Install Node.js (npx) or set HUB_PACKER_COMMAND.",
                diagnostics=str(error),
            ) from error
        if completed.returncode != 0:
            diagnostics = (completed.stderr or completed.stdout or "").strip()
            raise PackingError(
                f"Packer exited with status {completed.returncode} for {source_dir}: "
                f"{diagnostics or 'no diagnostic output'}",
                diagnostics=diagnostics,
            )
        if not destination_file.is_file():
            raise PackingError(
                f"Packer exited successfully but did not write {destination_file}.",
                diagnostics=(completed.stdout or "").strip(),
            )


def has_collection_files(source_dir: Path) -> bool:
    """Return whether a source directory holds anything besides VCS metadata."""
    if not source_dir.is_dir():
        return False
    return any(entry.name not in VCS_METADATA_NAMES for entry in source_dir.iterdir())
