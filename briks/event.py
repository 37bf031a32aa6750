"""The input events produced by the decoder."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, Flag
from typing import Union

__all__ = [
    "Char",
    "FunctionKey",
    "NamedKey",
    "KeyCode",
    "KeyModifiers",
    "KeyEvent",
    "MouseButton",
    "MouseKind",
    "MouseEvent",
    "ResizeEvent",
    "PasteEvent",
    "Event",
]


@dataclass(frozen=True)
class Char:
    """A key that types a character, like `a`, `?` or `é`."""

    char: str


@dataclass(frozen=True)
class FunctionKey:
    """One of the function keys, F1 being `FunctionKey(1)`."""

    number: int


class NamedKey(Enum):
    """Keys that don't type a character."""

    ENTER = "enter"
    ESC = "esc"
    BACKSPACE = "backspace"
    TAB = "tab"
    BACK_TAB = "back_tab"
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    HOME = "home"
    END = "end"
    PAGE_UP = "page_up"
    PAGE_DOWN = "page_down"
    INSERT = "insert"
    DELETE = "delete"
    NULL = "null"


KeyCode = Union[Char, FunctionKey, NamedKey]


class KeyModifiers(Flag):
    """The keys held down during an input event.

    These are unrelated to the styling `Modifier`.
    """

    NONE = 0
    SHIFT = 1
    ALT = 2
    CTRL = 4

    @classmethod
    def from_xterm(cls, parameter: int) -> KeyModifiers:
        """Decodes the `1 + bitmask` modifier parameter used by xterm."""

        bits = max(parameter - 1, 0)
        modifiers = cls.NONE

        if bits & 1:
            modifiers |= cls.SHIFT

        if bits & 2:
            modifiers |= cls.ALT

        if bits & 4:
            modifiers |= cls.CTRL

        return modifiers


@dataclass(frozen=True)
class KeyEvent:
    """A key press."""

    code: KeyCode
    modifiers: KeyModifiers = KeyModifiers.NONE


class MouseButton(Enum):
    """The mouse button involved in a mouse event."""

    NONE = "none"
    LEFT = "left"
    MIDDLE = "middle"
    RIGHT = "right"


class MouseKind(Enum):
    """What the mouse did."""

    DOWN = "down"
    UP = "up"
    DRAG = "drag"
    MOVE = "move"
    SCROLL_UP = "scroll_up"
    SCROLL_DOWN = "scroll_down"
    SCROLL_LEFT = "scroll_left"
    SCROLL_RIGHT = "scroll_right"


@dataclass(frozen=True)
class MouseEvent:
    """A mouse action at the 0-based cell position (x, y)."""

    kind: MouseKind
    button: MouseButton
    x: int
    y: int
    modifiers: KeyModifiers = KeyModifiers.NONE


@dataclass(frozen=True)
class ResizeEvent:
    """The terminal now has the given number of columns and rows."""

    width: int
    height: int


@dataclass(frozen=True)
class PasteEvent:
    """Text pasted while bracketed paste mode was active."""

    text: str


Event = Union[KeyEvent, MouseEvent, ResizeEvent, PasteEvent]
