"""Tests for filtering delta files by active mailing list."""

from __future__ import annotations

from pathlib import Path

from mbox_indexer.core.models import DeltaFile
from mbox_indexer.ingestion.active_lists import filter_active, partition_active
from mbox_indexer.ingestion.filenames import encode_filename


def _delta_file(folder: Path, url: str | None = None, name: str | None = None) -> DeltaFile:
    path = folder / (name or encode_filename(url or ""))
    path.write_bytes(b"Subject: test\n\nbody\n")
    return DeltaFile(path=path, modified_at=0.0, writable=True)


def test_active_files_are_kept(tmp_path: Path) -> None:
    delta_file = _delta_file(
        tmp_path, "http://lists.jboss.org/pipermail/hibernate-dev/2013-May/1.html"
    )

    kept = filter_active([delta_file], frozenset({"hibernate-dev"}))

    assert kept == [delta_file]
    assert delta_file.path.exists()


def test_project_without_list_type_uses_project_key(tmp_path: Path) -> None:
    delta_file = _delta_file(
        tmp_path, "http://lists.jboss.org/pipermail/infinispan/2013-May/1.html"
    )

    assert filter_active([delta_file], frozenset({"infinispan"})) == [delta_file]


def test_inactive_files_are_deleted(tmp_path: Path) -> None:
    delta_file = _delta_file(
        tmp_path, "http://lists.jboss.org/pipermail/weld-users/2013-May/1.html"
    )

    partition = partition_active([delta_file], frozenset({"weld-dev", "weld"}))

    assert partition.kept == []
    assert partition.deleted == [delta_file]
    assert not delta_file.path.exists()


def test_undecodable_files_are_skipped_but_retained(tmp_path: Path) -> None:
    delta_file = _delta_file(tmp_path, name="not-an-archive-name.txt")

    partition = partition_active([delta_file], frozenset({"hibernate-dev"}))

    assert partition.kept == []
    assert partition.skipped == [delta_file]
    assert delta_file.path.exists()


def test_delete_failure_is_not_fatal(tmp_path: Path) -> None:
    delta_file = _delta_file(
        tmp_path, "http://lists.jboss.org/pipermail/weld-users/2013-May/1.html"
    )
    delta_file.path.unlink()

    partition = partition_active([delta_file], frozenset())

    assert partition.deleted == [delta_file]
