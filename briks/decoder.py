"""The Decoder class, which turns raw terminal input into events.

Input arrives in arbitrary chunks, so an escape sequence or a UTF-8 character
may be split across reads. The decoder keeps the unresolved tail of the input
around until the rest of it arrives, or until it times out.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Callable, Iterator

from .core import (
    PASTE_END,
    PASTE_START,
    MalformedSequence,
    get_escape_timeout,
)
from .event import (
    Char,
    Event,
    FunctionKey,
    KeyCode,
    KeyEvent,
    KeyModifiers,
    MouseButton,
    MouseEvent,
    MouseKind,
    NamedKey,
    PasteEvent,
)

if TYPE_CHECKING:
    from .terminal import Terminal

__all__ = ["Decoder"]

logger = logging.getLogger(__name__)

REPLACEMENT = "�"

ESC = 0x1B

# Final bytes of `CSI [1;modifier] X` keys.
CSI_KEYS: dict[str, KeyCode] = {
    "A": NamedKey.UP,
    "B": NamedKey.DOWN,
    "C": NamedKey.RIGHT,
    "D": NamedKey.LEFT,
    "H": NamedKey.HOME,
    "F": NamedKey.END,
    "P": FunctionKey(1),
    "Q": FunctionKey(2),
    "R": FunctionKey(3),
    "S": FunctionKey(4),
}

# Numbers of `CSI number [;modifier] ~` keys.
TILDE_KEYS: dict[int, KeyCode] = {
    1: NamedKey.HOME,
    2: NamedKey.INSERT,
    3: NamedKey.DELETE,
    4: NamedKey.END,
    5: NamedKey.PAGE_UP,
    6: NamedKey.PAGE_DOWN,
    7: NamedKey.HOME,
    8: NamedKey.END,
    11: FunctionKey(1),
    12: FunctionKey(2),
    13: FunctionKey(3),
    14: FunctionKey(4),
    15: FunctionKey(5),
    17: FunctionKey(6),
    18: FunctionKey(7),
    19: FunctionKey(8),
    20: FunctionKey(9),
    21: FunctionKey(10),
    23: FunctionKey(11),
    24: FunctionKey(12),
}

SS3_KEYS: dict[str, KeyCode] = {
    "A": NamedKey.UP,
    "B": NamedKey.DOWN,
    "C": NamedKey.RIGHT,
    "D": NamedKey.LEFT,
    "H": NamedKey.HOME,
    "F": NamedKey.END,
    "M": NamedKey.ENTER,
    "P": FunctionKey(1),
    "Q": FunctionKey(2),
    "R": FunctionKey(3),
    "S": FunctionKey(4),
}

MOUSE_BUTTONS = (MouseButton.LEFT, MouseButton.MIDDLE, MouseButton.RIGHT)
MOUSE_SCROLLS = (
    MouseKind.SCROLL_UP,
    MouseKind.SCROLL_DOWN,
    MouseKind.SCROLL_LEFT,
    MouseKind.SCROLL_RIGHT,
)


def _utf8_width(lead: int) -> int:
    """Returns the byte length announced by a UTF-8 leading byte, 0 if invalid."""

    if lead & 0b1000_0000 == 0:
        return 1

    if lead & 0b1110_0000 == 0b1100_0000:
        return 2

    if lead & 0b1111_0000 == 0b1110_0000:
        return 3

    if lead & 0b1111_1000 == 0b1111_0000:
        return 4

    return 0


def _with_alt(event: KeyEvent) -> KeyEvent:
    return KeyEvent(event.code, event.modifiers | KeyModifiers.ALT)


def _numbers(params: str) -> list[int]:
    """Splits CSI parameters into integers, empty ones defaulting to 1."""

    numbers = []

    for part in params.split(";"):
        if part == "":
            numbers.append(1)
            continue

        if not part.isdigit():
            raise MalformedSequence(f"non-numeric parameter {part!r}")

        numbers.append(int(part))

    return numbers


def decode_ascii(byte: int) -> KeyEvent:
    """Decodes a single byte below 0x80."""

    if byte in (0x0D, 0x0A):
        return KeyEvent(NamedKey.ENTER)

    if byte == 0x09:
        return KeyEvent(NamedKey.TAB)

    if byte in (0x7F, 0x08):
        return KeyEvent(NamedKey.BACKSPACE)

    if byte == 0x00:
        return KeyEvent(NamedKey.NULL)

    if byte == ESC:
        return KeyEvent(NamedKey.ESC)

    # ctrl-a through ctrl-z
    if byte < 0x1B:
        return KeyEvent(Char(chr(byte + 0x60)), KeyModifiers.CTRL)

    # ctrl-4 through ctrl-7
    if byte < 0x20:
        return KeyEvent(Char(chr(byte + 0x18)), KeyModifiers.CTRL)

    return KeyEvent(Char(chr(byte)))


def decode_mouse(code: int, x: int, y: int, released: bool = False) -> MouseEvent:
    """Decodes the button code shared by the X10 and SGR (1006) mouse protocols.

    Args:
        code: The button code. The low two bits select the button, 4, 8 and 16
            are shift, alt and ctrl, 32 marks motion and 64 marks the wheel.
        x: The 0-based column.
        y: The 0-based row.
        released: Set when the protocol reported a release (SGR's `m`).
    """

    modifiers = KeyModifiers.NONE

    if code & 4:
        modifiers |= KeyModifiers.SHIFT

    if code & 8:
        modifiers |= KeyModifiers.ALT

    if code & 16:
        modifiers |= KeyModifiers.CTRL

    button_bits = code & 3
    x, y = max(x, 0), max(y, 0)

    if code & 64:
        return MouseEvent(MOUSE_SCROLLS[button_bits], MouseButton.NONE, x, y, modifiers)

    if code & 32:
        if button_bits == 3:
            return MouseEvent(MouseKind.MOVE, MouseButton.NONE, x, y, modifiers)

        return MouseEvent(
            MouseKind.DRAG, MOUSE_BUTTONS[button_bits], x, y, modifiers
        )

    # X10 reports every release as button 3, without saying which one it was.
    if button_bits == 3:
        return MouseEvent(MouseKind.UP, MouseButton.NONE, x, y, modifiers)

    kind = MouseKind.UP if released else MouseKind.DOWN

    return MouseEvent(kind, MOUSE_BUTTONS[button_bits], x, y, modifiers)


def parse_csi(params: str, final: str) -> Event:
    """Parses the body of a complete CSI sequence.

    Args:
        params: The parameter and intermediate bytes, e.g. `1;5` or `<0;3;4`.
        final: The final byte, e.g. `A` or `~`.

    Raises:
        MalformedSequence: The sequence doesn't describe any known input.
    """

    if params.startswith("<"):
        if final not in "Mm":
            raise MalformedSequence(f"unknown SGR mouse terminator {final!r}")

        parts = _numbers(params[1:])

        if len(parts) != 3:
            raise MalformedSequence(f"SGR mouse report needs 3 fields, got {params!r}")

        code, x, y = parts
        return decode_mouse(code, x - 1, y - 1, released=final == "m")

    if final == "Z":
        return KeyEvent(NamedKey.BACK_TAB, KeyModifiers.SHIFT)

    if final in CSI_KEYS:
        parts = _numbers(params)
        modifiers = (
            KeyModifiers.from_xterm(parts[1]) if len(parts) > 1 else KeyModifiers.NONE
        )

        return KeyEvent(CSI_KEYS[final], modifiers)

    if final == "~" and params:
        parts = _numbers(params)
        code = TILDE_KEYS.get(parts[0])

        if code is None:
            raise MalformedSequence(f"unknown key number {parts[0]}")

        modifiers = (
            KeyModifiers.from_xterm(parts[1]) if len(parts) > 1 else KeyModifiers.NONE
        )

        return KeyEvent(code, modifiers)

    raise MalformedSequence(f"unsupported sequence CSI {params}{final}")


class Decoder:
    """A resumable state machine turning terminal bytes into events.

    Feed it bytes as they come in, and it returns every event they complete.
    Whatever is left over (half of an escape sequence, or of a UTF-8
    character) is held until more bytes arrive or `escape_timeout` seconds
    pass, at which point it is resolved on its own: a lone ESC byte becomes an
    ESC key press, and unfinished sequences are dropped.
    """

    def __init__(
        self,
        escape_timeout: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if escape_timeout is None:
            escape_timeout = get_escape_timeout()

        self.escape_timeout = escape_timeout

        self._clock = clock
        self._buffer = bytearray()
        self._started: float | None = None

    @property
    def pending(self) -> bytes:
        """Returns the bytes of the unresolved partial sequence."""

        return bytes(self._buffer)

    @property
    def in_paste(self) -> bool:
        """Returns whether a bracketed paste has started but not yet ended."""

        return self._buffer.startswith(PASTE_START)

    def feed(self, data: bytes) -> list[Event]:
        """Adds some bytes and returns all the events they complete."""

        self._buffer += data

        return self._drain(final=False)

    def timeout(self) -> float | None:
        """Returns the seconds left before the pending sequence gets resolved.

        Returns:
            None if nothing is pending, or a bracketed paste is in progress.
            Pastes can be arbitrarily long, so they only end with their end
            marker.
        """

        if self._started is None or self.in_paste:
            return None

        return max(self._started + self.escape_timeout - self._clock(), 0.0)

    def expire(self) -> list[Event]:
        """Resolves the pending sequence if it has waited long enough."""

        if self.timeout() != 0.0:
            return []

        return self.flush()

    def flush(self) -> list[Event]:
        """Resolves the pending sequence now, however incomplete it is."""

        return self._drain(final=True)

    def poll(self, terminal: Terminal, timeout: float | None = None) -> list[Event]:
        """Reads from the terminal once and returns the resulting events.

        Args:
            terminal: The terminal to read from.
            timeout: The longest time to wait for input. If a partial sequence is
                pending, the wait is cut short to when it has to be resolved, and
                the read coming back empty resolves it.
        """

        # A sequence that timed out while the caller was busy is resolved before
        # newer input can join it.
        events = self.expire()

        remaining = self.timeout()
        bounded = remaining is not None and (timeout is None or remaining <= timeout)

        if bounded:
            timeout = remaining

        data = terminal.read(timeout)

        if data is None:
            return events + (self.flush() if bounded else self.expire())

        return events + self.feed(data) + self.expire()

    def events(
        self, terminal: Terminal, timeout: float | None = None
    ) -> Iterator[Event]:
        """Yields events from the terminal as input arrives, forever.

        The iterator is bound to this decoder's state, so it can't be restarted.
        """

        while True:
            yield from self.poll(terminal, timeout)

    def _drain(self, final: bool) -> list[Event]:
        """Decodes as much of the buffer as possible.

        Args:
            final: Resolve everything, even sequences that are still incomplete.
        """

        events: list[Event] = []
        consumed_any = False

        while self._buffer:
            result = self._decode(self._buffer, final)

            if result is None:
                break

            consumed, event = result
            del self._buffer[:consumed]
            consumed_any = True

            if event is not None:
                events.append(event)

        if not self._buffer:
            self._started = None

        elif consumed_any or self._started is None:
            self._started = self._clock()

        return events

    def _decode(self, buffer: bytearray, final: bool) -> tuple[int, Event | None] | None:
        lead = buffer[0]

        if lead == ESC:
            return self._decode_escape(buffer, final)

        if lead < 0x80:
            return 1, decode_ascii(lead)

        return self._decode_utf8(buffer, 0, final)

    def _decode_utf8(
        self, buffer: bytearray, start: int, final: bool
    ) -> tuple[int, KeyEvent] | None:
        """Decodes the UTF-8 character starting at `start`.

        The returned length is counted from `start`. Bytes that can't form a
        character come out as U+FFFD, so no input disappears silently.
        """

        width = _utf8_width(buffer[start])

        if width == 0:
            logger.debug("invalid UTF-8 byte 0x%02x", buffer[start])
            return 1, KeyEvent(Char(REPLACEMENT))

        for offset in range(1, width):
            if start + offset >= len(buffer):
                if final:
                    logger.debug("truncated UTF-8 character %r", bytes(buffer[start:]))
                    return offset, KeyEvent(Char(REPLACEMENT))

                return None

            # The offending byte is left in the buffer to be decoded on its own.
            if buffer[start + offset] & 0b1100_0000 != 0b1000_0000:
                logger.debug(
                    "UTF-8 character interrupted by byte 0x%02x", buffer[start + offset]
                )
                return offset, KeyEvent(Char(REPLACEMENT))

        try:
            char = bytes(buffer[start : start + width]).decode("utf-8")

        except UnicodeDecodeError:
            logger.debug("invalid UTF-8 character %r", bytes(buffer[start : start + width]))
            return width, KeyEvent(Char(REPLACEMENT))

        return width, KeyEvent(Char(char))

    def _decode_escape(
        self, buffer: bytearray, final: bool
    ) -> tuple[int, Event | None] | None:
        if len(buffer) == 1:
            return (1, KeyEvent(NamedKey.ESC)) if final else None

        introducer = buffer[1]

        if introducer == ord("["):
            return self._decode_csi(buffer, final)

        if introducer == ord("O"):
            return self._decode_ss3(buffer, final)

        # A double ESC is an ESC key press, followed by whatever the second one
        # turns out to be.
        if introducer == ESC:
            return 1, KeyEvent(NamedKey.ESC)

        if introducer < 0x80:
            return 2, _with_alt(decode_ascii(introducer))

        result = self._decode_utf8(buffer, 1, final)

        if result is None:
            return None

        consumed, event = result
        return consumed + 1, _with_alt(event)

    def _decode_ss3(
        self, buffer: bytearray, final: bool
    ) -> tuple[int, Event | None] | None:
        if len(buffer) == 2:
            return (2, KeyEvent(Char("O"), KeyModifiers.ALT)) if final else None

        code = SS3_KEYS.get(chr(buffer[2]))

        if code is None:
            logger.debug("dropped unknown sequence %r", bytes(buffer[:3]))
            return 3, None

        return 3, KeyEvent(code)

    def _decode_csi(
        self, buffer: bytearray, final: bool
    ) -> tuple[int, Event | None] | None:
        if len(buffer) == 2:
            return (2, KeyEvent(Char("["), KeyModifiers.ALT)) if final else None

        index = 2

        while index < len(buffer):
            byte = buffer[index]

            if 0x40 <= byte <= 0x7E:
                break

            # Anything outside the parameter & intermediate range ends the
            # sequence, and is decoded on its own.
            if not 0x20 <= byte <= 0x3F:
                logger.debug("dropped interrupted sequence %r", bytes(buffer[:index]))
                return index, None

            index += 1

        else:
            if final:
                logger.debug("dropped truncated sequence %r", bytes(buffer))
                return len(buffer), None

            return None

        end = index + 1
        params = buffer[2:index].decode("ascii")
        final_byte = chr(buffer[index])

        if params == "" and final_byte == "M":
            return self._decode_x10_mouse(buffer, final)

        if params == "200" and final_byte == "~":
            return self._decode_paste(buffer, end, final)

        try:
            event = parse_csi(params, final_byte)

        except MalformedSequence as exc:
            logger.debug("dropped sequence %r: %s", bytes(buffer[:end]), exc)
            return end, None

        return end, event

    def _decode_x10_mouse(
        self, buffer: bytearray, final: bool
    ) -> tuple[int, Event | None] | None:
        """Decodes `CSI M Cb Cx Cy`, with every field offset by 32."""

        if len(buffer) < 6:
            if final:
                logger.debug("dropped truncated mouse report %r", bytes(buffer))
                return len(buffer), None

            return None

        code, x, y = buffer[3] - 32, buffer[4] - 33, buffer[5] - 33

        return 6, decode_mouse(code, x, y)

    def _decode_paste(
        self, buffer: bytearray, start: int, final: bool
    ) -> tuple[int, Event | None] | None:
        end = buffer.find(PASTE_END, start)

        if end == -1:
            if final:
                return len(buffer), PasteEvent(
                    bytes(buffer[start:]).decode("utf-8", errors="replace")
                )

            return None

        text = bytes(buffer[start:end]).decode("utf-8", errors="replace")

        return end + len(PASTE_END), PasteEvent(text)
