from __future__ import annotations
from queue import Empty, Queue
from typing import Optional
import threading

from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from .archive import Extracting, Indexing, Migrating, ProgressEvent, Querying

_END = None  # end-of-stream sentinel


def describe_event(event: ProgressEvent) -> tuple[str, Optional[int], Optional[int]]:
    """(message, completed, total) shown for one event."""
    if isinstance(event, Querying):
        return "Querying database...", None, None
    if isinstance(event, Indexing):
        return f"Creating file system index... ({event.processed}/{event.total})", event.processed, event.total
    if isinstance(event, Extracting):
        return f"Extracting files... ({event.written}/{event.total})", event.written, event.total
    if isinstance(event, Migrating):
        return f"Migrating files... ({event.migrated}/{event.total})", event.migrated, event.total
    raise TypeError(f"unknown progress event: {event!r}")


class ProgressPort:
    """
    Send side of the progress display.

    Events go through an unbounded queue to a dedicated thread that owns the
    rich `Progress` bar, so `send` never blocks the caller. `close` posts the
    end sentinel and joins the thread; events sent afterwards are dropped.
    Use as a context manager so the thread is joined on error paths too.
    """

    def __init__(self, console: Console | None = None, refresh_interval_s: float = 0.2, enabled: bool = True):
        self.console = console or Console(stderr=True)
        self.refresh_interval_s = refresh_interval_s
        self.enabled = enabled
        self._queue: "Queue[Optional[ProgressEvent]]" = Queue()
        self._closed = False
        self._thread: threading.Thread | None = None
        if enabled:
            self._thread = threading.Thread(target=self._thread_main, name="ProgressUIThread", daemon=True)
            self._thread.start()

    def send(self, event: ProgressEvent) -> None:
        if self._closed or not self.enabled:
            return
        self._queue.put_nowait(event)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._thread is not None:
            self._queue.put_nowait(_END)
            self._thread.join()

    def __enter__(self) -> "ProgressPort":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _thread_main(self) -> None:
        columns = (
            SpinnerColumn(),
            BarColumn(bar_width=20),
            TextColumn("{task.description}"),
            TimeElapsedColumn(),
        )
        with Progress(*columns, console=self.console, transient=True, auto_refresh=False) as progress:
            task_id = progress.add_task("", total=None)
            done = False
            while not done:
                try:
                    event = self._queue.get(timeout=self.refresh_interval_s)
                except Empty:
                    # keep the spinner animating while the producer is busy
                    progress.refresh()
                    continue
                # only the newest pending event is worth drawing
                while event is not _END:
                    try:
                        nxt = self._queue.get_nowait()
                    except Empty:
                        break
                    if nxt is _END:
                        done = True
                        break
                    event = nxt
                if event is _END:
                    break
                message, completed, total = describe_event(event)
                progress.update(task_id, description=message, completed=completed or 0, total=total)
                progress.refresh()
