"""Delta folder indexing orchestration."""

from __future__ import annotations

import hashlib
import logging
import os
import time
from collections.abc import Callable, Iterable, Set
from concurrent.futures import Future
from pathlib import Path
from typing import Any, Protocol

from ..core.interfaces import DeliverySink
from ..core.models import (
    ArchiveUrlInfo,
    DeltaFile,
    IndexReport,
    Mail,
    ProcessingOutcome,
)
from ..core.serialization import to_json
from .active_lists import partition_active
from .executor import CallerRunsExecutor
from .filenames import get_info

LOGGER = logging.getLogger(__name__)

DEFAULT_MIN_FILE_AGE = 2.0
DEFAULT_SHUTDOWN_TIMEOUT = 10.0


class DeltaFolderError(RuntimeError):
    """Raised when the delta folder cannot be listed."""


class MailParserProtocol(Protocol):
    """Minimal protocol implemented by mail parsers."""

    def parse_bytes(self, payload: bytes) -> Mail:
        """Convert a raw mail source into a :class:`Mail`."""
        raise NotImplementedError


Serializer = Callable[[Mail, dict[str, Any]], str]


def discover(
    root: Path | str, min_age: float = DEFAULT_MIN_FILE_AGE, *, now: float | None = None
) -> list[DeltaFile]:
    """List files of ``root`` that are old enough and writable.

    Only immediate entries are considered. Files modified within the last
    ``min_age`` seconds may still be written by the archiver and are left for
    the next run; files this process cannot delete are never picked up since
    they would be indexed again on every run.
    """
    root_path = Path(root)
    LOGGER.info("Reading folder %s", root_path)
    try:
        with os.scandir(root_path) as iterator:
            entries = list(iterator)
    except OSError as exc:
        raise DeltaFolderError(f"Cannot read delta folder {root_path}: {exc}") from exc

    current = time.time() if now is None else now
    LOGGER.info("Checking %d files", len(entries))
    files: list[DeltaFile] = []
    for entry in entries:
        if not entry.is_file():
            continue
        try:
            modified_at = entry.stat().st_mtime
        except OSError as exc:
            LOGGER.warning("Cannot stat %s: %s", entry.name, exc)
            continue
        delta_file = DeltaFile(
            path=Path(entry.path),
            modified_at=modified_at,
            writable=os.access(entry.path, os.W_OK),
        )
        if not delta_file.writable:
            LOGGER.debug("Ignoring %s: not writable", entry.name)
            continue
        if delta_file.age(current) <= min_age:
            LOGGER.debug("Ignoring %s: modified less than %.1fs ago", entry.name, min_age)
            continue
        files.append(delta_file)

    files.sort(key=lambda item: item.name)
    return files


def document_id(mail: Mail, info: ArchiveUrlInfo) -> str:
    """Return the id a mail is indexed under."""
    if mail.message_id:
        return mail.message_id
    return hashlib.sha1(info.source_url.encode("utf-8")).hexdigest()


def _metadata(info: ArchiveUrlInfo) -> dict[str, Any]:
    return {
        "project": info.project,
        "mail_list_category": info.list_type,
        "message_url": info.source_url,
    }


class DeltaFolderIndexer:
    """Parse, deliver and delete the mail files of a delta folder."""

    def __init__(
        self,
        parser: MailParserProtocol,
        sink: DeliverySink,
        *,
        concurrency: int,
        min_file_age: float = DEFAULT_MIN_FILE_AGE,
        shutdown_timeout: float = DEFAULT_SHUTDOWN_TIMEOUT,
        serializer: Serializer = to_json,
    ) -> None:
        # pylint: disable=too-many-arguments
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._parser = parser
        self._sink = sink
        self._concurrency = concurrency
        self._min_file_age = min_file_age
        self._shutdown_timeout = shutdown_timeout
        self._serializer = serializer

    def run(self, root: Path | str, active_keys: Set[str]) -> IndexReport:
        """Discover, filter and index the files currently in ``root``."""
        files = discover(root, self._min_file_age)
        partition = partition_active(files, active_keys)
        report = self.index(partition.kept)
        report.discovered = len(files)
        report.filtered_out = len(partition.deleted)
        report.skipped = len(partition.skipped)
        return report

    def index(self, files: Iterable[DeltaFile]) -> IndexReport:
        """Process ``files`` on the worker pool and wait for them.

        Tasks still unfinished once the shutdown timeout expires are
        cancelled (or abandoned when already running); their files stay on
        disk for the next run.
        """
        pending = list(files)
        report = IndexReport()
        LOGGER.info("Starting to index %d files", len(pending))
        if not pending:
            return report

        executor = CallerRunsExecutor(self._concurrency)
        futures: list[Future[ProcessingOutcome]] = []
        try:
            for delta_file in pending:
                futures.append(executor.submit(self.process_file, delta_file))
        finally:
            if not executor.shutdown(self._shutdown_timeout):
                LOGGER.warning("Executor not terminated, forcing termination")
                executor.shutdown_now()

        for future in futures:
            if not future.done() or future.cancelled():
                report.unfinished += 1
                continue
            outcome = future.result()
            report.outcomes.append(outcome)
            if outcome.delivered:
                report.delivered += 1
            else:
                report.failed += 1

        LOGGER.info(
            "Indexed %d files: %d delivered, %d failed, %d unfinished",
            len(pending),
            report.delivered,
            report.failed,
            report.unfinished,
        )
        return report

    def process_file(self, delta_file: DeltaFile) -> ProcessingOutcome:
        """Index one delta file, deleting it once delivered.

        Any failure leaves the file in place so the next run retries it.
        """
        source_url: str | None = None
        try:
            info = get_info(delta_file.name)
            source_url = info.source_url
            LOGGER.debug("Processing mail %s", source_url)
            mail = self._parser.parse_bytes(delta_file.path.read_bytes())
            document = self._serializer(mail, _metadata(info))
            response = self._sink.post(document, document_id(mail, info))
            LOGGER.debug("Delivered %s: %s", source_url, response)
        except Exception as exc:  # pylint: disable=broad-except
            LOGGER.error(
                "Error processing mail [%s] from %s: %s",
                source_url,
                delta_file.name,
                exc,
            )
            LOGGER.debug("Error details", exc_info=True)
            return ProcessingOutcome(
                path=delta_file.path,
                source_url=source_url,
                delivered=False,
                error=str(exc),
            )

        try:
            delta_file.path.unlink()
        except OSError as exc:
            LOGGER.error(
                "Could not delete file %s after successful processing (exists: %s): %s",
                delta_file.name,
                delta_file.path.exists(),
                exc,
            )
        return ProcessingOutcome(path=delta_file.path, source_url=source_url, delivered=True)


__all__ = [
    "DEFAULT_MIN_FILE_AGE",
    "DEFAULT_SHUTDOWN_TIMEOUT",
    "DeltaFolderError",
    "DeltaFolderIndexer",
    "MailParserProtocol",
    "discover",
    "document_id",
]
