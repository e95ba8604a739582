import hashlib
import plistlib
from pathlib import Path

import pytest

from backtree.manifest import ManifestDB
from backtree.models import EntryType, ManifestRecord


def content_id(seed: str) -> str:
    # 40 hex chars, same shape as the real backup ids
    return hashlib.sha1(seed.encode()).hexdigest()


def metadata_blob(path: str) -> bytes:
    return plistlib.dumps({"RelativePath": path}, fmt=plistlib.FMT_BINARY)


class ArchiveBuilder:
    """Writes a Manifest.db plus bucketed blobs under `root`."""

    def __init__(self, root: Path):
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)
        self.manifest = ManifestDB.create(root / "Manifest.db")

    def add_file(self, domain: str, path: str, cid: str, data: bytes | None = None) -> "ArchiveBuilder":
        self.manifest.insert_row(domain, ManifestRecord(
            content_id=cid, relative_path=path,
            entry_type=EntryType.REGULAR_FILE, raw_metadata=metadata_blob(path),
        ))
        if data is not None:
            self.put_blob(cid, data)
        return self

    def add_dir(self, domain: str, path: str, cid: str) -> "ArchiveBuilder":
        self.manifest.insert_row(domain, ManifestRecord(
            content_id=cid, relative_path=path,
            entry_type=EntryType.DIRECTORY, raw_metadata=metadata_blob(path),
        ))
        return self

    def add_symlink(self, domain: str, path: str, cid: str) -> "ArchiveBuilder":
        self.manifest.insert_row(domain, ManifestRecord(
            content_id=cid, relative_path=path,
            entry_type=EntryType.SYMBOLIC_LINK, raw_metadata=metadata_blob(path),
        ))
        return self

    def put_blob(self, cid: str, data: bytes) -> Path:
        p = self.root / cid[:2] / cid
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_bytes(data)
        return p

    def close(self):
        self.manifest.close()


@pytest.fixture
def make_archive(tmp_path):
    builders = []

    def _make(name: str = "src") -> ArchiveBuilder:
        b = ArchiveBuilder(tmp_path / name)
        builders.append(b)
        return b

    yield _make
    for b in builders:
        b.close()


@pytest.fixture
def app_archive(make_archive):
    # The tree from the round-trip example, plus rows that extraction must skip
    b = make_archive("src")
    b.add_file("AppDomain-com.example", "L/C/a", content_id("a"), b"alpha")
    b.add_file("AppDomain-com.example", "L/C/b", content_id("b"), b"bravo")
    b.add_file("AppDomain-com.example", "L/P/x.plist", content_id("x"), b"<plist/>")
    b.add_dir("AppDomain-com.example", "L", content_id("dir-L"))
    b.add_dir("AppDomain-com.example", "L/C", content_id("dir-L/C"))
    b.add_symlink("AppDomain-com.example", "L/link", content_id("link"))
    b.add_file("HomeDomain", "Library/Prefs/p.plist", content_id("p"), b"prefs")
    return b
