from __future__ import annotations
from typing import List


class BacktreeError(Exception):
    """Base class for every error raised by backtree."""


class SchemaIncompatible(BacktreeError):
    """Manifest database is missing, or its `files` table lacks/mistypes a column."""


class MalformedRecord(BacktreeError):
    """A single manifest row is corrupt (bad identifier length, unknown flags)."""


class MalformedPath(BacktreeError):
    """A relative path contains an empty, `.` or `..` component."""


class PathCollision(BacktreeError):
    """A path component is needed as a directory but is a file, or vice versa."""


class DestinationConflict(BacktreeError):
    """A destination path that must be a directory exists as something else."""


class IoFailure(BacktreeError):
    """An underlying read/write/copy/link error, wrapped with path context."""


def with_context(err: BacktreeError, message: str) -> BacktreeError:
    """A new error of the same class as `err`, carrying `message` and caused by `err`."""
    wrapped = type(err)(message)
    wrapped.__cause__ = err
    return wrapped


def error_chain(err: BaseException) -> List[BaseException]:
    chain = [err]
    cur = err.__cause__
    while cur is not None and cur not in chain:
        chain.append(cur)
        cur = cur.__cause__
    return chain


def describe_error(err: BaseException) -> str:
    """
    Render an exception and its `__cause__` chain, outermost first:

        failed to extract files

        Caused by:
            0: failed to create file: out/L/C/a
            1: [Errno 13] Permission denied: 'out/L/C/a'
    """
    chain = error_chain(err)
    head = str(chain[0]) or type(chain[0]).__name__
    if len(chain) == 1:
        return head
    lines = [head, "", "Caused by:"]
    for i, cause in enumerate(chain[1:]):
        lines.append(f"    {i}: {str(cause) or type(cause).__name__}")
    return "\n".join(lines)
