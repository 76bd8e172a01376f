"""Suspendable filesystem calls and the two drivers that run them.

Resolution algorithms are written once, as generators. Every filesystem probe
is a ``yield`` of a ``FileSystemCall``; the driver performs the call against a
port and sends the result back in. ``run_sync`` drives a blocking port and
``run_async`` awaits an awaitable one, so the same algorithm body serves both
calling conventions. Exceptions raised by the port are thrown back into the
generator at the suspension point.

Sub-steps compose with ``yield from``::

    def probe(url):
        if (yield from file_exists(url)):
            return url
        return None
"""

from __future__ import annotations

from typing import Any, Generator, NamedTuple, Optional, TypeVar

T = TypeVar("T")


class FileSystemCall(NamedTuple):
    """One request to the filesystem port."""
    operation: str
    url: str


# Generator type used by every resolution step
Task = Generator[FileSystemCall, Any, T]

DIRECTORY_EXISTS = "directory_exists"
FILE_EXISTS = "file_exists"
READ_FILE = "read_file"
READ_LINK = "read_link"


def directory_exists(url: str) -> Task[bool]:
    return (yield FileSystemCall(DIRECTORY_EXISTS, url))


def file_exists(url: str) -> Task[bool]:
    return (yield FileSystemCall(FILE_EXISTS, url))


def read_file(url: str) -> Task[str]:
    return (yield FileSystemCall(READ_FILE, url))


def read_link(url: str) -> Task[Optional[str]]:
    return (yield FileSystemCall(READ_LINK, url))


def _port_method(fs: Any, call: FileSystemCall):
    method = getattr(fs, call.operation, None)
    if method is None:
        # read_link is optional; a port without it has no links
        if call.operation == READ_LINK:
            return None
        raise TypeError(f"Filesystem port does not implement {call.operation}()")
    return method


def run_sync(task: Task[T], fs: Any) -> T:
    """Drive ``task`` to completion against a blocking port."""
    value: Any = None
    error: Optional[BaseException] = None
    while True:
        try:
            if error is not None:
                call = task.throw(error)
            else:
                call = task.send(value)
        except StopIteration as stop:
            return stop.value
        value, error = None, None
        method = _port_method(fs, call)
        if method is None:
            continue
        try:
            value = method(call.url)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            error = exc


async def run_async(task: Task[T], fs: Any) -> T:
    """Drive ``task`` to completion against an awaitable port."""
    value: Any = None
    error: Optional[BaseException] = None
    while True:
        try:
            if error is not None:
                call = task.throw(error)
            else:
                call = task.send(value)
        except StopIteration as stop:
            return stop.value
        value, error = None, None
        method = _port_method(fs, call)
        if method is None:
            continue
        try:
            value = await method(call.url)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            error = exc
