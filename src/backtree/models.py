from __future__ import annotations
from enum import IntEnum
from pathlib import Path
from typing import Optional
import os
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import BacktreeError


class EntryType(IntEnum):
    # values are the on-disk `flags` column
    REGULAR_FILE = 1
    DIRECTORY = 2
    SYMBOLIC_LINK = 4


class ManifestRecord(BaseModel):
    """One manifest row. `raw_metadata` is an opaque plist blob, never interpreted."""

    model_config = ConfigDict(frozen=True)

    content_id: str
    relative_path: str
    entry_type: EntryType
    raw_metadata: bytes = b""

    @property
    def is_regular_file(self) -> bool:
        return self.entry_type == EntryType.REGULAR_FILE


class ProgressSettings(BaseModel):
    enabled: bool = True
    refresh_interval_s: float = Field(0.2, gt=0)


class BacktreeConfig(BaseModel):
    manifest_name: str = "Manifest.db"
    content_id_length: int = Field(40, gt=0)
    # leading characters of a content id naming its bucket directory
    bucket_width: int = Field(2, gt=0)
    progress: ProgressSettings = ProgressSettings()


_FALSEY = ("0", "false", "no", "off", "n", "f")


def load_config(path: Optional[str | Path] = None) -> BacktreeConfig:
    """
    Load a YAML config (or defaults when `path` is None), then apply the
    BACKTREE_PROGRESS environment toggle.
    """
    data = {}
    try:
        if path is not None:
            data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
        cfg = BacktreeConfig(**data)
    except (OSError, yaml.YAMLError, ValidationError, TypeError) as e:
        raise BacktreeError(f"invalid config file: {path}") from e

    use_env = os.getenv("BACKTREE_PROGRESS", "").strip().lower()
    if use_env in _FALSEY:
        cfg = cfg.model_copy(update={"progress": cfg.progress.model_copy(update={"enabled": False})})
    return cfg
