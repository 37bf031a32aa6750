"""Shared constants, configuration lookups and the error hierarchy.

Most of these are best used through the `Terminal`, `Decoder` and `Renderer`
objects.
"""

from __future__ import annotations

import os
from enum import Enum

__all__ = [
    "BriksError",
    "TerminalIOError",
    "MalformedSequence",
    "StyleError",
    "StackUnderflow",
    "UnbalancedStyles",
    "RenderDesync",
    "ColorSpace",
    "get_color_space",
    "get_escape_timeout",
]

START_ALT_BUFFER = "\x1b[?1049h"
END_ALT_BUFFER = "\x1b[?1049l"
SHOW_CURSOR = "\x1b[?25h"
HIDE_CURSOR = "\x1b[?25l"

# X10 button tracking, drag tracking and SGR extended coordinates.
START_MOUSE_REPORTING = "\x1b[?1000h\x1b[?1002h\x1b[?1006h"
END_MOUSE_REPORTING = "\x1b[?1006l\x1b[?1002l\x1b[?1000l"

START_BRACKETED_PASTE = "\x1b[?2004h"
END_BRACKETED_PASTE = "\x1b[?2004l"
PASTE_START = b"\x1b[200~"
PASTE_END = b"\x1b[201~"

RESET_STYLE = "\x1b[0m"
SET_CURSOR = "\x1b[{row};{column}H"

DEFAULT_ESCAPE_TIMEOUT = 0.05


class BriksError(Exception):
    """The base of every error raised by the library."""


class TerminalIOError(BriksError, OSError):
    """Raised when the terminal device cannot be read, written or queried.

    This is fatal for the session using the device.
    """


class MalformedSequence(BriksError):
    """Raised internally when an escape sequence cannot be decoded.

    The decoder recovers from these by dropping the sequence, so they never
    reach application code.
    """


class StyleError(BriksError):
    """Raised when the style stack's push/pop contract is broken."""


class StackUnderflow(StyleError):
    """Raised when popping a style stack that only holds its base layer."""


class UnbalancedStyles(StyleError):
    """Raised when a drawing pass finishes with styles still pushed."""


class RenderDesync(BriksError):
    """Raised when writing a frame fails partway through.

    The renderer no longer knows what the screen shows, so the next render is
    a full repaint.
    """


class ColorSpace(Enum):
    """The color space supported by the terminal."""

    NO_COLOR = "no_color"
    """Set by the `$NO_COLOR` shell variable; no colors are written at all."""

    STANDARD = "standard"
    """Only the 16 standard colors are supported."""

    EIGHT_BIT = "eight_bit"
    """256 colors are supported."""

    TRUE_COLOR = "true_color"
    """Full RGB color support is available."""


def get_color_space() -> ColorSpace:
    """Gets the maximum supported color system supported by the shell environment.

    Returns:
        The highest-supported color system in the terminal. `$BRIKS_COLORSYS`
        overrides detection, and if `$NO_COLOR` is set `ColorSpace.NO_COLOR` is
        returned.
    """

    shell_sys = os.getenv("BRIKS_COLORSYS")
    if shell_sys is not None:
        return ColorSpace(shell_sys.lower())

    if os.getenv("NO_COLOR") is not None:
        return ColorSpace.NO_COLOR

    term = os.getenv("TERM", "")
    color_term = os.getenv("COLORTERM", "").strip().lower()

    if color_term == "":
        color_term = term.split("xterm-")[-1]

    if color_term in ["24bit", "truecolor"]:
        return ColorSpace.TRUE_COLOR

    if color_term == "256color":
        return ColorSpace.EIGHT_BIT

    return ColorSpace.STANDARD


def get_escape_timeout() -> float:
    """Returns how long (in seconds) a lone ESC waits for the rest of a sequence.

    Reads `$BRIKS_ESCAPE_TIMEOUT`, falling back to `DEFAULT_ESCAPE_TIMEOUT` when
    it is unset or not a non-negative number.
    """

    value = os.getenv("BRIKS_ESCAPE_TIMEOUT")

    if value is None:
        return DEFAULT_ESCAPE_TIMEOUT

    try:
        timeout = float(value)

    except ValueError:
        return DEFAULT_ESCAPE_TIMEOUT

    if timeout < 0:
        return DEFAULT_ESCAPE_TIMEOUT

    return timeout
