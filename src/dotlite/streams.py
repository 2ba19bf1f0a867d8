"""Resolve input/output byte streams for a render."""
from __future__ import annotations

import sys
from contextlib import contextmanager
from typing import BinaryIO, Iterator, Optional


class StreamError(OSError):
    """An input or output stream could not be opened, read or written."""


class InputStreamError(StreamError):
    pass


class OutputStreamError(StreamError):
    pass


def _wrap(error_type: type, exc: OSError, path: Optional[str]) -> StreamError:
    return error_type(exc.errno, exc.strerror or str(exc), path if path is not None else exc.filename)


@contextmanager
def open_input(path: Optional[str]) -> Iterator[BinaryIO]:
    if path is None:
        yield sys.stdin.buffer
        return
    try:
        fh = open(path, "rb")
    except OSError as exc:
        raise _wrap(InputStreamError, exc, path) from exc
    with fh:
        yield fh


@contextmanager
def open_output(path: Optional[str]) -> Iterator[BinaryIO]:
    """Yield the output sink; files are truncated, stdout is flushed but left open."""
    if path is None:
        stream = sys.stdout.buffer
        try:
            yield stream
        finally:
            stream.flush()
        return
    try:
        fh = open(path, "wb")
    except OSError as exc:
        raise _wrap(OutputStreamError, exc, path) from exc
    with fh:
        yield fh


def read_all(source: BinaryIO, path: Optional[str] = None) -> bytes:
    try:
        return source.read()
    except OSError as exc:
        raise _wrap(InputStreamError, exc, path) from exc


def write_all(sink: BinaryIO, payload: bytes, path: Optional[str] = None) -> None:
    try:
        sink.write(payload)
    except OSError as exc:
        raise _wrap(OutputStreamError, exc, path) from exc
