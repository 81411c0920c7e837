"""Command-line entry point for the delta folder indexer."""

from __future__ import annotations

import argparse
import logging
from collections.abc import Sequence
from pathlib import Path

from mbox_indexer.core import (
    ActiveListConfigError,
    AppSettings,
    configure_logging,
    load_active_lists,
    load_app_settings,
)
from mbox_indexer.core.models import IndexReport
from mbox_indexer.ingestion import DeltaFolderError, DeltaFolderIndexer
from mbox_indexer.parsing import (
    AttachmentTextExtractor,
    BodyExtractor,
    ChardetCharsetDetector,
    MailParser,
)
from mbox_indexer.transport import SearchiskoClient

LOGGER = logging.getLogger(__name__)

_POSITIONALS = (
    "drop_folder",
    "concurrency",
    "service_host",
    "service_path",
    "content_type",
    "username",
    "password",
    "active_list_config",
)

USAGE = """\
Parameters: pathToDeltaArchive numberOfThreads serviceHost servicePath contentType username password activeMailListsConf

pathToDeltaArchive - path to folder with delta mbox files
numberOfThreads - max threads used for processing tasks
serviceHost - service host URL
servicePath - service path
contentType - provider sys_content_type
username - provider username (plaintext)
password - provider password (plaintext)
activeMailListsConf - conf file with list of mail lists to include into delta indexing (other files are still deleted!)
"""


def build_parser() -> argparse.ArgumentParser:
    """Create and configure the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="mbox-indexer",
        description="Index archived mailing list mails from a delta folder",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Path to a .env file containing configuration overrides.",
    )
    parser.add_argument("drop_folder", nargs="?", type=Path, help="Delta folder to index.")
    parser.add_argument(
        "concurrency", nargs="?", type=int, help="Number of worker threads."
    )
    parser.add_argument("service_host", nargs="?", help="Indexing service base URL.")
    parser.add_argument("service_path", nargs="?", help="Content push API path.")
    parser.add_argument("content_type", nargs="?", help="Provider content type.")
    parser.add_argument("username", nargs="?", help="Provider username.")
    parser.add_argument("password", nargs="?", help="Provider password.")
    parser.add_argument(
        "active_list_config",
        nargs="?",
        type=Path,
        help="File listing the active project[-listType] keys.",
    )
    return parser


def apply_arguments(settings: AppSettings, args: argparse.Namespace) -> AppSettings:
    """Return ``settings`` with the delivery section taken from ``args``."""
    delivery = settings.delivery.model_copy(
        update={
            "service_host": args.service_host.strip(),
            "service_path": args.service_path.strip(),
            "content_type": args.content_type.strip(),
            "username": args.username.strip() or None,
            "password": args.password.strip() or None,
        }
    )
    return settings.model_copy(update={"delivery": delivery})


def run_indexer(
    settings: AppSettings,
    drop_folder: Path,
    concurrency: int,
    active_keys: frozenset[str],
) -> IndexReport:
    """Wire the indexing components and process ``drop_folder`` once."""
    attachment_extractor = AttachmentTextExtractor(settings.extraction.max_attachment_chars)
    body_extractor = BodyExtractor(
        attachment_extractor,
        ChardetCharsetDetector(),
        confidence_threshold=settings.extraction.charset_confidence_threshold,
    )
    mail_parser = MailParser(body_extractor)
    # The submitting thread may run a task too, hence one extra connection.
    with SearchiskoClient(settings.delivery, max_connections=concurrency + 1) as client:
        indexer = DeltaFolderIndexer(
            mail_parser,
            client,
            concurrency=concurrency,
            min_file_age=settings.pipeline.min_file_age_seconds,
            shutdown_timeout=settings.pipeline.shutdown_timeout_seconds,
        )
        return indexer.run(drop_folder, active_keys)


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if any(getattr(args, name) is None for name in _POSITIONALS):
        print(USAGE)
        return 0
    if args.concurrency < 1:
        parser.error("numberOfThreads must be at least 1")

    settings = apply_arguments(load_app_settings(env_file=args.env_file), args)
    configure_logging(settings.logging)
    LOGGER.debug(
        "pathToDeltaArchive: %s, numberOfThreads: %d, activeMailListsConf: %s",
        args.drop_folder,
        args.concurrency,
        args.active_list_config,
    )

    try:
        active_keys = load_active_lists(args.active_list_config)
        report = run_indexer(settings, args.drop_folder, args.concurrency, active_keys)
    except (ActiveListConfigError, DeltaFolderError) as exc:
        LOGGER.error("Indexing aborted: %s", exc)
        return 1

    print(
        f"Checked {report.discovered} file(s): {report.delivered} delivered, "
        f"{report.failed} failed, {report.filtered_out} filtered out, "
        f"{report.skipped} skipped, {report.unfinished} unfinished."
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
