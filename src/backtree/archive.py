from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Union
import logging
import sqlite3

from .errors import BacktreeError, IoFailure, with_context
from .fs_index import FileSystemIndex
from .interner import StringPool
from .manifest import ManifestDB
from .materialize import Materializer, WriteMode
from .models import BacktreeConfig, ManifestRecord
from .utils import is_valid_content_id

logger = logging.getLogger(__name__)


# ------------------- progress events -------------------

@dataclass(frozen=True)
class Querying:
    pass


@dataclass(frozen=True)
class Indexing:
    processed: int
    total: int


@dataclass(frozen=True)
class Extracting:
    written: int
    total: int


@dataclass(frozen=True)
class Migrating:
    migrated: int
    total: int


ProgressEvent = Union[Querying, Indexing, Extracting, Migrating]
ProgressCallback = Callable[[ProgressEvent], None]


def _no_progress(_event: ProgressEvent) -> None:
    pass


class Archive:
    """
    A backup archive: `<root>/Manifest.db` plus the bucketed blob store under `root`.

    Each operation builds its own index and discards it on return. Nothing is
    retried, and files already written before a failure stay on disk.
    """

    def __init__(self, root: str | Path, manifest: ManifestDB, config: BacktreeConfig | None = None):
        self.root = Path(root)
        self.manifest = manifest
        self.config = config or BacktreeConfig()
        self.materializer = Materializer(self.root, bucket_width=self.config.bucket_width)

    @classmethod
    def open(cls, root: str | Path, config: BacktreeConfig | None = None) -> "Archive":
        config = config or BacktreeConfig()
        try:
            manifest = ManifestDB.open(Path(root) / config.manifest_name)
        except BacktreeError as e:
            raise with_context(e, "failed to open the manifest database")
        return cls(root, manifest, config)

    def close(self) -> None:
        self.manifest.close()

    def __enter__(self) -> "Archive":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def list_domains(self) -> List[str]:
        try:
            return self.manifest.list_domains()
        except sqlite3.Error as e:
            raise IoFailure("failed to list domains") from e

    def query_rows(self, domain: str) -> List[ManifestRecord]:
        try:
            return self.manifest.query_rows(domain)
        except sqlite3.Error as e:
            raise IoFailure("failed to query files from database") from e

    def _has_valid_id(self, record: ManifestRecord) -> bool:
        if is_valid_content_id(record.content_id, self.config.content_id_length):
            return True
        logger.warning(
            "skipping %s: content id %r is not %d characters long",
            record.relative_path, record.content_id, self.config.content_id_length,
        )
        return False

    def build_index(self, domain: str, progress: ProgressCallback = _no_progress) -> FileSystemIndex:
        """Querying + Indexing stages: an index of every regular file in `domain`."""
        index = FileSystemIndex(StringPool())

        progress(Querying())
        records = self.query_rows(domain)
        total = len(records)
        logger.info("indexing %d manifest rows of %s", total, domain)

        for processed, record in enumerate(records, 1):
            if record.is_regular_file and self._has_valid_id(record):
                try:
                    index.add_file(record.relative_path, record.content_id)
                except BacktreeError as e:
                    raise with_context(
                        e, f"failed to index file: {record.relative_path} ({record.content_id})"
                    )
            progress(Indexing(processed=processed, total=total))
        return index

    def extract(
        self,
        domain: str,
        dest_dir: str | Path,
        mode: WriteMode = WriteMode.LINK,
        progress: ProgressCallback = _no_progress,
    ) -> int:
        """Rebuild `domain`'s tree under `dest_dir`. Returns the number of files written."""
        dest_dir = Path(dest_dir)
        index = self.build_index(domain, progress)

        total = index.file_count()
        written = 0
        logger.info("extracting %d files of %s to %s (%s)", total, domain, dest_dir, mode.value)

        def _extract_one(path: str, content_id: str) -> Optional[BacktreeError]:
            nonlocal written
            try:
                self.materializer.write(dest_dir, path, content_id, mode)
            except BacktreeError as e:
                return with_context(e, f"failed to create file: {dest_dir / path}")
            written += 1
            progress(Extracting(written=written, total=total))
            return None

        err = index.walk(_extract_one)
        if err is not None:
            raise err
        return written

    def migrate(
        self,
        domain: str,
        source: "Archive",
        mode: WriteMode = WriteMode.COPY,
        progress: ProgressCallback = _no_progress,
    ) -> int:
        """
        Replace `domain` in this archive with `source`'s copy of it.

        The destination rows are deleted first; regular-file blobs are written to
        this archive's buckets (replacing any existing blob) and every other row
        is copied as-is. Returns the number of rows processed.
        """
        if source.root.resolve() == self.root.resolve():
            raise BacktreeError(f"cannot migrate an archive onto itself: {self.root}")

        try:
            self.manifest.delete_rows(domain)
        except sqlite3.Error as e:
            raise IoFailure("failed to perform cleanup on target archive") from e

        progress(Querying())
        records = source.query_rows(domain)
        total = len(records)
        logger.info("migrating %d rows of %s from %s to %s", total, domain, source.root, self.root)

        for migrated, record in enumerate(records, 1):
            if record.is_regular_file:
                if not self._has_valid_id(record):
                    progress(Migrating(migrated=migrated, total=total))
                    continue
                dest_blob = self.materializer.blob_path(record.content_id)
                try:
                    source.materializer.write_to(dest_blob, record.content_id, mode)
                except BacktreeError as e:
                    raise with_context(e, f"failed to create file: {dest_blob}")

            try:
                self.manifest.insert_row(domain, record)
            except sqlite3.Error as e:
                raise IoFailure(f"failed to update manifest for {record.relative_path}") from e
            progress(Migrating(migrated=migrated, total=total))

        return total
