"""The terminal device abstraction, and its real & in-memory implementations.

Everything that touches the terminal device goes through the `Terminal`
protocol, so the rest of the library can run against `MemoryTerminal` in
tests.
"""

from __future__ import annotations

import logging
import os
import signal
import termios
import threading
import tty
from collections import deque
from contextlib import ExitStack, contextmanager
from select import select
from typing import Any, Callable, Generator, Protocol

from .core import (
    END_ALT_BUFFER,
    END_BRACKETED_PASTE,
    END_MOUSE_REPORTING,
    HIDE_CURSOR,
    SHOW_CURSOR,
    START_ALT_BUFFER,
    START_BRACKETED_PASTE,
    START_MOUSE_REPORTING,
    TerminalIOError,
)

__all__ = [
    "Terminal",
    "TTYTerminal",
    "MemoryTerminal",
    "session",
]

logger = logging.getLogger(__name__)

READ_SIZE = 1024
EXIT_SIGNALS = ("SIGTERM", "SIGHUP")


class Terminal(Protocol):
    """The operations the library needs from a terminal device."""

    def enter_raw_mode(self) -> None:
        """Disables echo & line buffering. Nested calls are reference counted."""

    def leave_raw_mode(self) -> None:
        """Undoes one `enter_raw_mode`; the outermost one restores the device."""

    def hide_cursor(self) -> None:
        ...

    def show_cursor(self) -> None:
        ...

    def size(self) -> tuple[int, int]:
        """Returns the size of the terminal, as (columns, rows)."""

    def read(self, timeout: float | None = None) -> bytes | None:
        """Waits at most `timeout` seconds for input, None meaning no limit.

        Returns:
            The bytes available as soon as there are any, or None if the timeout
            passed without input.
        """

    def write(self, data: bytes) -> None:
        """Writes all of `data`, raising `TerminalIOError` if the device is gone."""


class TTYTerminal:  # no-cov
    """A terminal backed by a TTY device.

    By default this opens `/dev/tty`, so it keeps working when the standard
    streams are redirected. An already open descriptor can be passed instead, in
    which case it is left open by `close`.
    """

    def __init__(self, fd: int | None = None, path: str = "/dev/tty") -> None:
        self._owns_fd = fd is None

        if fd is None:
            try:
                fd = os.open(path, os.O_RDWR | os.O_NOCTTY)

            except OSError as exc:
                raise TerminalIOError(f"Could not open {path!r}.") from exc

        if not os.isatty(fd):
            if self._owns_fd:
                os.close(fd)

            raise TerminalIOError(f"File descriptor {fd} is not a terminal.")

        self.fd = fd
        self.closed = False

        self._raw_depth = 0
        self._saved_attributes: list[Any] | None = None

    def __enter__(self) -> TTYTerminal:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    @property
    def is_raw(self) -> bool:
        """Returns whether raw mode is currently on."""

        return self._raw_depth > 0

    def close(self) -> None:
        """Restores the device, and closes it if we opened it."""

        if self.closed:
            return

        try:
            if self._raw_depth:
                self._raw_depth = 1
                self.leave_raw_mode()

        finally:
            if self._owns_fd:
                os.close(self.fd)

            self.closed = True

    def enter_raw_mode(self) -> None:
        if self._raw_depth == 0:
            try:
                self._saved_attributes = termios.tcgetattr(self.fd)
                tty.setraw(self.fd, termios.TCSAFLUSH)

            except termios.error as exc:
                raise TerminalIOError("Could not enter raw mode.") from exc

        self._raw_depth += 1

    def leave_raw_mode(self) -> None:
        if self._raw_depth == 0:
            return

        self._raw_depth -= 1

        if self._raw_depth == 0 and self._saved_attributes is not None:
            try:
                termios.tcsetattr(self.fd, termios.TCSAFLUSH, self._saved_attributes)

            except termios.error as exc:
                raise TerminalIOError("Could not leave raw mode.") from exc

            finally:
                self._saved_attributes = None

    def hide_cursor(self) -> None:
        self.write(HIDE_CURSOR.encode())

    def show_cursor(self) -> None:
        self.write(SHOW_CURSOR.encode())

    def size(self) -> tuple[int, int]:
        try:
            size = os.get_terminal_size(self.fd)

        except OSError as exc:
            raise TerminalIOError("Could not query the terminal's size.") from exc

        return size.columns, size.lines

    def read(self, timeout: float | None = None) -> bytes | None:
        try:
            ready, _, _ = select([self.fd], [], [], timeout)

            if not ready:
                return None

            data = os.read(self.fd, READ_SIZE)

        except (OSError, ValueError) as exc:
            raise TerminalIOError("Could not read from the terminal.") from exc

        if data == b"":
            raise TerminalIOError("The terminal was closed.")

        return data

    def write(self, data: bytes) -> None:
        view = memoryview(data)

        while view:
            try:
                written = os.write(self.fd, view)

            except OSError as exc:
                raise TerminalIOError("Could not write to the terminal.") from exc

            view = view[written:]


class MemoryTerminal:
    """An in-memory terminal, for tests and headless use.

    Input is queued with `feed` (and gaps in it with `pause`), output collects in
    `output`, and every mode change is recorded in `calls`.
    """

    def __init__(self, width: int = 80, height: int = 24) -> None:
        self.width = width
        self.height = height

        self.calls: list[str] = []
        self.output = bytearray()

        self.raw_depth = 0
        self.cursor_visible = True
        self.closed = False
        self.fail_writes = False

        self._input: deque[bytes | None] = deque()

    @property
    def is_raw(self) -> bool:
        """Returns whether raw mode is currently on."""

        return self.raw_depth > 0

    def feed(self, data: bytes | str) -> None:
        """Queues a chunk of input, returned by a single `read` call."""

        if isinstance(data, str):
            data = data.encode("utf-8")

        self._input.append(data)

    def pause(self) -> None:
        """Queues a `read` call that times out without input."""

        self._input.append(None)

    def close(self) -> None:
        """Makes `read` fail once the queued input runs out, like a hangup."""

        self.closed = True

    def resize(self, width: int, height: int) -> None:
        self.width = width
        self.height = height

    def take_output(self) -> bytes:
        """Returns everything written since the last call."""

        data = bytes(self.output)
        self.output.clear()

        return data

    def enter_raw_mode(self) -> None:
        self.calls.append("enter_raw_mode")
        self.raw_depth += 1

    def leave_raw_mode(self) -> None:
        self.calls.append("leave_raw_mode")

        if self.raw_depth:
            self.raw_depth -= 1

    def hide_cursor(self) -> None:
        self.calls.append("hide_cursor")
        self.cursor_visible = False

    def show_cursor(self) -> None:
        self.calls.append("show_cursor")
        self.cursor_visible = True

    def size(self) -> tuple[int, int]:
        return self.width, self.height

    def read(self, timeout: float | None = None) -> bytes | None:
        if self._input:
            return self._input.popleft()

        if self.closed:
            raise TerminalIOError("The terminal was closed.")

        return None

    def write(self, data: bytes) -> None:
        if self.fail_writes:
            raise TerminalIOError("Broken pipe.")

        self.output += data


@contextmanager
def _exit_on_signals() -> Generator[None, None, None]:
    """Turns termination signals into `SystemExit` while the context runs.

    Handlers can only be installed from the main thread, so elsewhere this does
    nothing.
    """

    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _raise_exit(signum: int, _: Any) -> None:
        raise SystemExit(128 + signum)

    previous = {}

    try:
        for name in EXIT_SIGNALS:
            if (signum := getattr(signal, name, None)) is not None:
                previous[signum] = signal.signal(signum, _raise_exit)

        yield

    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)


def _restore_with(
    stack: ExitStack, step: Callable[..., None], *args: Any
) -> None:
    """Registers one step of the terminal restoration."""

    def _restore() -> None:
        try:
            step(*args)

        except Exception:
            logger.exception("Restoring the terminal failed at %s.", step.__name__)
            raise

    stack.callback(_restore)


@contextmanager
def session(
    terminal: Terminal,
    *,
    alt_screen: bool = False,
    mouse: bool = False,
    paste: bool = False,
    handle_signals: bool = True,
) -> Generator[Terminal, None, None]:
    """Puts the terminal into application mode for the duration of the context.

    Raw mode is entered and the cursor hidden, along with any of the optional
    modes. Everything is undone in reverse order however the context is left,
    and a failing step doesn't stop the ones after it.

    Args:
        terminal: The terminal to set up.
        alt_screen: Switch to the alternate screen buffer.
        mouse: Turn on mouse reporting.
        paste: Turn on bracketed paste.
        handle_signals: Turn SIGTERM & SIGHUP into `SystemExit`, so they unwind
            through this context too.
    """

    with ExitStack() as stack:
        if handle_signals:
            stack.enter_context(_exit_on_signals())

        terminal.enter_raw_mode()
        _restore_with(stack, terminal.leave_raw_mode)

        if alt_screen:
            terminal.write(START_ALT_BUFFER.encode())
            _restore_with(stack, terminal.write, END_ALT_BUFFER.encode())

        terminal.hide_cursor()
        _restore_with(stack, terminal.show_cursor)

        if mouse:
            terminal.write(START_MOUSE_REPORTING.encode())
            _restore_with(stack, terminal.write, END_MOUSE_REPORTING.encode())

        if paste:
            terminal.write(START_BRACKETED_PASTE.encode())
            _restore_with(stack, terminal.write, END_BRACKETED_PASTE.encode())

        logger.debug("terminal session started")

        yield terminal

    logger.debug("terminal session ended")
