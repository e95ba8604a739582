from __future__ import annotations
from pathlib import Path
import time
from rich.console import Console


def bucket_path(store_root: Path, content_id: str, bucket_width: int = 2) -> Path:
    """Physical blob location: `<store_root>/<content_id[:bucket_width]>/<content_id>`."""
    return Path(store_root) / content_id[:bucket_width] / content_id


def is_valid_content_id(content_id: str, expected_length: int = 40) -> bool:
    return len(content_id) == expected_length


class PerfTimer:
    """Wall-clock timer that prints a dim `finished in <N>ms` line."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()
        self._start = time.perf_counter()

    def elapsed_ms(self) -> int:
        return int((time.perf_counter() - self._start) * 1000)

    def finish(self) -> None:
        self.console.print(f"\n[dim]finished in {self.elapsed_ms()}ms[/dim]")
