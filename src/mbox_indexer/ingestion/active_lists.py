"""Filtering of delta files against the configured active mailing lists."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Set
from dataclasses import dataclass, field

from ..core.models import DeltaFile
from .filenames import FilenameDecodeError, get_info

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ActiveListPartition:
    """Files split by the active list check."""

    kept: list[DeltaFile] = field(default_factory=list)
    deleted: list[DeltaFile] = field(default_factory=list)
    skipped: list[DeltaFile] = field(default_factory=list)


def partition_active(
    files: Iterable[DeltaFile], active_keys: Set[str]
) -> ActiveListPartition:
    """Split ``files`` into kept, deleted and skipped groups.

    Files of inactive lists are deleted on the spot since nobody will ever
    index them. Files whose name cannot be decoded are skipped but left on
    disk for manual inspection.
    """
    partition = ActiveListPartition()
    for delta_file in files:
        try:
            info = get_info(delta_file.name)
        except FilenameDecodeError as exc:
            LOGGER.error(
                "Cannot extract info from file name [%s]; skipping this file: %s",
                delta_file.name,
                exc,
            )
            partition.skipped.append(delta_file)
            continue

        if info.list_key in active_keys:
            partition.kept.append(delta_file)
            continue

        LOGGER.debug(
            "Deleting %s: mailing list %s is not active", delta_file.name, info.list_key
        )
        partition.deleted.append(delta_file)
        try:
            delta_file.path.unlink()
        except OSError as exc:
            # another process may have removed it already
            LOGGER.error(
                "Could not delete file %s (exists: %s): %s",
                delta_file.name,
                delta_file.path.exists(),
                exc,
            )

    LOGGER.info(
        "Filtered %d files out in total (%d inactive, %d undecodable)",
        len(partition.deleted) + len(partition.skipped),
        len(partition.deleted),
        len(partition.skipped),
    )
    return partition


def filter_active(files: Iterable[DeltaFile], active_keys: Set[str]) -> list[DeltaFile]:
    """Return the files that belong to an active mailing list."""
    return partition_active(files, active_keys).kept


__all__ = ["ActiveListPartition", "filter_active", "partition_active"]
