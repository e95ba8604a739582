from __future__ import annotations
from enum import Enum
from pathlib import Path
import logging
import os
import shutil

from .errors import DestinationConflict, IoFailure
from .utils import bucket_path

logger = logging.getLogger(__name__)


class WriteMode(str, Enum):
    COPY = "copy"
    # symbolic link to the source blob; needs an OS/filesystem with symlink support
    LINK = "link"


def ensure_dir(path: Path) -> None:
    """mkdir -p, refusing to treat an existing non-directory as a directory."""
    if path.is_dir():
        return
    try:
        path.mkdir(parents=True, exist_ok=True)
    except (FileExistsError, NotADirectoryError) as e:
        raise DestinationConflict(f"file already exists but not a directory: {path}") from e
    except OSError as e:
        raise IoFailure(f"failed to create directory: {path}") from e


class Materializer:
    """
    Produces files from a bucketed content store.

    Blobs live at `<store_root>/<id[:bucket_width]>/<id>`. Each `write` ensures
    the destination's parent chain exists and then copies or links the blob.
    An existing non-directory at the destination is replaced.
    """

    def __init__(self, store_root: str | Path, bucket_width: int = 2):
        self.store_root = Path(store_root)
        self.bucket_width = bucket_width

    def blob_path(self, content_id: str) -> Path:
        return bucket_path(self.store_root, content_id, self.bucket_width)

    def write(self, dest_root: str | Path, relative_path: str, content_id: str, mode: WriteMode) -> Path:
        dest_path = Path(dest_root) / relative_path
        self.write_to(dest_path, content_id, mode)
        return dest_path

    def write_to(self, dest_path: Path, content_id: str, mode: WriteMode) -> None:
        ensure_dir(dest_path.parent)

        if dest_path.is_dir() and not dest_path.is_symlink():
            raise DestinationConflict(f"destination is a directory: {dest_path}")

        src = self.blob_path(content_id)
        if not src.is_file():
            raise IoFailure(f"blob {content_id} not found at {src}")

        try:
            if dest_path.is_symlink() or dest_path.exists():
                logger.debug("removing existing %s", dest_path)
                dest_path.unlink()
            if mode is WriteMode.COPY:
                shutil.copyfile(src, dest_path)
            else:
                os.symlink(os.path.abspath(src), dest_path)
        except OSError as e:
            raise IoFailure(f"failed to {mode.value} {src} to {dest_path}") from e
